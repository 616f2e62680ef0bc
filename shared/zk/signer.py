"""
Attestation Signing
===================

Ed25519 signing of verification results. The verifier's public key is
registered with the on-chain program, which rebuilds the canonical message
and checks the detached signature. Keys and signatures travel as base58,
following the Solana convention.

Ed25519 signatures are deterministic, so an attestation is a pure function
of its result and the loaded key.

Version: 0.1.0
"""

import json
from dataclasses import dataclass, field

import base58
from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives.asymmetric.ed25519 import (
    Ed25519PrivateKey,
    Ed25519PublicKey,
)
from cryptography.hazmat.primitives.serialization import (
    Encoding,
    NoEncryption,
    PrivateFormat,
    PublicFormat,
)
from pydantic import SecretStr

from shared.logging import get_logger
from shared.zk.attestation import CURRENT_FORMAT, AttestationFormat, build_message
from shared.zk.exceptions import (
    AttestationEncodingError,
    KeyExportNotAllowedError,
    SignerConfigurationError,
)
from shared.zk.models import SignedAttestation, VerificationResult


logger = get_logger(__name__)

SEED_LENGTH = 32
PUBLIC_KEY_LENGTH = 32
SECRET_KEY_LENGTH = 64  # seed || public key


@dataclass(frozen=True)
class VerifierKeypair:
    """Long-lived Ed25519 keypair of this verifier."""

    private_key: Ed25519PrivateKey = field(repr=False)
    public_key: Ed25519PublicKey

    @classmethod
    def generate(cls) -> "VerifierKeypair":
        sk = Ed25519PrivateKey.generate()
        return cls(private_key=sk, public_key=sk.public_key())

    @classmethod
    def from_secret_bytes(cls, secret: bytes) -> "VerifierKeypair":
        """
        Build from a 64-byte Solana secret key or a bare 32-byte seed.

        Raises:
            SignerConfigurationError: wrong length, or a 64-byte key whose
                public half does not match its seed
        """
        if len(secret) not in (SEED_LENGTH, SECRET_KEY_LENGTH):
            raise SignerConfigurationError(
                f"Secret key must be {SEED_LENGTH} or {SECRET_KEY_LENGTH} bytes, got {len(secret)}"
            )
        sk = Ed25519PrivateKey.from_private_bytes(secret[:SEED_LENGTH])
        keypair = cls(private_key=sk, public_key=sk.public_key())
        if len(secret) == SECRET_KEY_LENGTH and secret[SEED_LENGTH:] != keypair.public_bytes():
            raise SignerConfigurationError("Secret key public half does not match its seed")
        return keypair

    def public_bytes(self) -> bytes:
        return self.public_key.public_bytes(Encoding.Raw, PublicFormat.Raw)

    def secret_bytes(self) -> bytes:
        seed = self.private_key.private_bytes(Encoding.Raw, PrivateFormat.Raw, NoEncryption())
        return seed + self.public_bytes()

    @property
    def public_key_base58(self) -> str:
        return base58.b58encode(self.public_bytes()).decode("ascii")

    def sign(self, message: bytes) -> bytes:
        return self.private_key.sign(message)


def decode_secret(secret: str) -> bytes:
    """
    Decode a configured secret key.

    Tries base58 first, then a JSON array of byte values.

    Raises:
        SignerConfigurationError: neither encoding decodes to a usable key
    """
    secret = secret.strip()
    try:
        raw = base58.b58decode(secret)
        if len(raw) in (SEED_LENGTH, SECRET_KEY_LENGTH):
            return raw
    except ValueError:
        pass

    try:
        values = json.loads(secret)
    except json.JSONDecodeError as e:
        raise SignerConfigurationError(
            "VERIFIER_PRIVATE_KEY is neither base58 nor a JSON byte array"
        ) from e
    if not isinstance(values, list) or not all(
        isinstance(v, int) and 0 <= v <= 255 for v in values
    ):
        raise SignerConfigurationError("VERIFIER_PRIVATE_KEY JSON must be an array of bytes")
    return bytes(values)


class AttestationSigner:
    """
    Holds the verifier keypair and signs verification results.

    Usage:
        signer = AttestationSigner(secret=settings.verifier.private_key)
        signer.initialize()

        attestation = signer.sign(result)
        assert signer.verify_signature(attestation)
    """

    def __init__(
        self,
        secret: SecretStr | str | None = None,
        *,
        allow_ephemeral: bool = True,
        allow_export: bool = False,
    ) -> None:
        """
        Args:
            secret: Configured secret key (base58 or JSON byte array)
            allow_ephemeral: Generate a throwaway key when no secret is set.
                Disabled in production.
            allow_export: Permit ``export_keypair``. Only operational
                tooling sets this.
        """
        if isinstance(secret, SecretStr):
            secret = secret.get_secret_value()
        self._secret = secret or None
        self._allow_ephemeral = allow_ephemeral
        self._allow_export = allow_export
        self._keypair: VerifierKeypair | None = None

    def __repr__(self) -> str:
        loaded = self._keypair.public_key_base58 if self._keypair else None
        return f"AttestationSigner(public_key={loaded!r})"

    @property
    def is_ephemeral(self) -> bool:
        return self._secret is None

    def initialize(self) -> VerifierKeypair:
        """Load the keypair once; later calls return it unchanged."""
        if self._keypair is not None:
            return self._keypair

        if self._secret is not None:
            self._keypair = VerifierKeypair.from_secret_bytes(decode_secret(self._secret))
            logger.info("verifier_keypair_loaded", public_key=self._keypair.public_key_base58)
            return self._keypair

        if not self._allow_ephemeral:
            raise SignerConfigurationError(
                "VERIFIER_PRIVATE_KEY must be set; ephemeral keys are disabled"
            )

        self._keypair = VerifierKeypair.generate()
        logger.warning(
            "verifier_using_ephemeral_keypair",
            public_key=self._keypair.public_key_base58,
            hint="Set VERIFIER_PRIVATE_KEY; attestations from this key will not be accepted on-chain",
        )
        return self._keypair

    @property
    def public_key(self) -> str:
        return self.initialize().public_key_base58

    def sign(
        self,
        result: VerificationResult,
        fmt: AttestationFormat = CURRENT_FORMAT,
    ) -> SignedAttestation:
        """
        Sign the canonical message for ``result``.

        Raises:
            AttestationEncodingError: a result field cannot be encoded
        """
        keypair = self.initialize()
        encoded = build_message(result, fmt)
        signature = keypair.sign(encoded.message)

        return SignedAttestation(
            result=result,
            verifier=keypair.public_key_base58,
            signature=base58.b58encode(signature).decode("ascii"),
            attestation_hash=encoded.attestation_hash_hex,
            format_version=int(encoded.format),
        )

    def verify_signature(self, attestation: SignedAttestation) -> bool:
        """Check an attestation against the public key it embeds."""
        return verify_attestation(attestation)

    def export_keypair(self) -> dict[str, str]:
        """
        Raw key material for out-of-band registration.

        Raises:
            KeyExportNotAllowedError: signer was not built with ``allow_export``
        """
        if not self._allow_export:
            raise KeyExportNotAllowedError("Key export is restricted to operational tooling")
        keypair = self.initialize()
        logger.warning("verifier_keypair_exported", public_key=keypair.public_key_base58)
        return {
            "publicKey": keypair.public_key_base58,
            "secretKey": base58.b58encode(keypair.secret_bytes()).decode("ascii"),
        }


def verify_attestation(attestation: SignedAttestation) -> bool:
    """
    Rebuild the canonical message from ``attestation.result`` and check the
    signature. Any decoding or encoding problem counts as a failed check.
    """
    try:
        encoded = build_message(attestation.result, attestation.format_version)
        if encoded.attestation_hash_hex != attestation.attestation_hash.lower():
            raise ValueError("attestation hash does not match result")
        signature = base58.b58decode(attestation.signature)
        public_key = Ed25519PublicKey.from_public_bytes(base58.b58decode(attestation.verifier))
        public_key.verify(signature, encoded.message)
    except (InvalidSignature, AttestationEncodingError, ValueError) as e:
        logger.debug(
            "attestation_signature_rejected",
            error=str(e) or type(e).__name__,
            format_version=attestation.format_version,
        )
        return False
    return True
