#!/usr/bin/env python3
"""
Verifier Key Tooling
====================

Operational commands for the verifier signing key. This script is the only
place key material may be exported; the HTTP service never does.

Usage:
    python scripts/verifier_keys.py generate
    python scripts/verifier_keys.py export
    python scripts/verifier_keys.py check attestation.json

Commands:
    generate  Create a fresh keypair and print it as base58
    export    Print the keypair configured in VERIFIER_PRIVATE_KEY
    check     Verify a saved attestation (SignedAttestation JSON, or a
              VerifyResponse containing one)
"""

import argparse
import json
import sys
from pathlib import Path

# Add parent to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from pydantic import ValidationError

from shared.config import settings
from shared.zk.attestation import build_message
from shared.zk.exceptions import ConfigurationError
from shared.zk.models import SignedAttestation
from shared.zk.signer import AttestationSigner, verify_attestation


def cmd_generate(args: argparse.Namespace) -> int:
    signer = AttestationSigner(allow_export=True)
    exported = signer.export_keypair()

    print(f"Public key: {exported['publicKey']}")
    print(f"Secret key: {exported['secretKey']}")
    print()
    print("Set VERIFIER_PRIVATE_KEY to the secret key and register the public key")
    print("with the on-chain program.")
    return 0


def cmd_export(args: argparse.Namespace) -> int:
    secret = settings.verifier.private_key
    if not secret.get_secret_value():
        print("VERIFIER_PRIVATE_KEY is not set", file=sys.stderr)
        return 1

    signer = AttestationSigner(secret=secret, allow_ephemeral=False, allow_export=True)
    try:
        exported = signer.export_keypair()
    except ConfigurationError as e:
        print(f"Invalid key: {e}", file=sys.stderr)
        return 1

    if args.public_only:
        print(exported["publicKey"])
    else:
        print(json.dumps(exported, indent=2))
    return 0


def cmd_check(args: argparse.Namespace) -> int:
    data = json.loads(Path(args.file).read_text(encoding="utf-8"))
    if "attestation" in data:
        data = data["attestation"]

    try:
        attestation = SignedAttestation.model_validate(data)
    except ValidationError as e:
        print(f"Not an attestation: {e}", file=sys.stderr)
        return 1

    valid = verify_attestation(attestation)
    print(f"Verifier:        {attestation.verifier}")
    print(f"Format version:  {attestation.format_version}")
    print(f"Proof type:      {attestation.result.proof_type.value}")
    print(f"Epoch:           {attestation.result.epoch}")
    print(f"Signature valid: {valid}")
    if args.show_message and valid:
        print(f"Message (hex):   {build_message(attestation.result, attestation.format_version).message.hex()}")
    return 0 if valid else 2


def main() -> int:
    parser = argparse.ArgumentParser(description="Verifier signing key tooling")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("generate", help="Generate a new keypair").set_defaults(func=cmd_generate)

    export = sub.add_parser("export", help="Export the configured keypair")
    export.add_argument("--public-only", action="store_true", help="Print only the public key")
    export.set_defaults(func=cmd_export)

    check = sub.add_parser("check", help="Verify a saved attestation")
    check.add_argument("file", help="Path to attestation JSON")
    check.add_argument("--show-message", action="store_true", help="Print the signed message")
    check.set_defaults(func=cmd_check)

    args = parser.parse_args()
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
