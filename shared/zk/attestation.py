"""
Attestation Message Encoding
============================

Canonical byte layouts signed by the verifier and rebuilt by the on-chain
program. Every format generation stays registered under its version number
so historical attestations remain independently re-verifiable. A new
revision gets a new encoder; existing layouts are never edited.

Format v1 (superseded)
    UTF-8 string ``valid|proof_type|nullifier|commitment|epoch|data_hash|verified_at``
    with validity spelled ``1``/``0``. The attestation hash is SHA-256 of the
    whole string, and the signature covers the string bytes.

Format v2 (current), 125 bytes::

    offset  width  field
         0     20  domain separator  b"vouch_attestation_v2"
        20      1  proof type code   (0 = unknown)
        21     32  nullifier
        53      8  epoch             u64 big-endian
        61     32  data hash
        93     32  attestation hash  SHA-256("{valid}|{proof_type}|{verified_at}")

The v2 attestation hash is computed from the metadata string first and then
spliced into the message, binding outcome and timing to the
nullifier/epoch/data-hash triple.

Version: 0.1.0
"""

import hashlib
import re
import struct
from collections.abc import Callable
from dataclasses import dataclass
from enum import IntEnum

from shared.logging import get_logger
from shared.zk.exceptions import AttestationEncodingError, UnsupportedFormatError
from shared.zk.models import ProofType, VerificationResult, U64_MAX


logger = get_logger(__name__)


class AttestationFormat(IntEnum):
    """Attestation wire format generations."""

    V1 = 1
    V2 = 2


CURRENT_FORMAT = AttestationFormat.V2

DOMAIN_SEPARATOR = b"vouch_attestation_v2"

# Must match the on-chain ProofType discriminants
PROOF_TYPE_CODES: dict[str, int] = {
    ProofType.DEVELOPER.value: 1,
    ProofType.WHALE.value: 2,
}
UNKNOWN_PROOF_TYPE_CODE = 0

DOMAIN_OFFSET, DOMAIN_WIDTH = 0, 20
PROOF_TYPE_OFFSET = 20
NULLIFIER_OFFSET = 21
EPOCH_OFFSET = 53
DATA_HASH_OFFSET = 61
ATTESTATION_HASH_OFFSET = 93
FIELD_WIDTH = 32
MESSAGE_LENGTH = 125

_EPOCH = struct.Struct(">Q")
_HEX_DIGITS = re.compile(r"[0-9a-fA-F]*")


@dataclass(frozen=True)
class EncodedAttestation:
    """Signable message bytes and the attestation hash that goes with them."""

    format: AttestationFormat
    message: bytes
    attestation_hash: bytes

    @property
    def attestation_hash_hex(self) -> str:
        return self.attestation_hash.hex()


@dataclass(frozen=True)
class DecodedMessageV2:
    """Fields recovered from a v2 message."""

    proof_type_code: int
    nullifier: str
    epoch: int
    data_hash: str
    attestation_hash: str


def strip_hex_prefix(value: str) -> str:
    return value[2:] if value.startswith(("0x", "0X")) else value


def decode_hex32(value: str, field: str) -> bytes:
    """
    Decode a 32-byte hex field.

    Raises:
        AttestationEncodingError: if the value is not exactly 64 hex chars
            after removing an optional ``0x`` prefix
    """
    clean = strip_hex_prefix(value)
    if len(clean) != 2 * FIELD_WIDTH:
        raise AttestationEncodingError(
            f"{field} must be {2 * FIELD_WIDTH} hex characters, got {len(clean)}"
        )
    # bytes.fromhex skips whitespace, so check the digits before decoding
    if not _HEX_DIGITS.fullmatch(clean):
        raise AttestationEncodingError(f"{field} is not valid hex")
    return bytes.fromhex(clean)


def proof_type_code(proof_type: ProofType | str) -> int:
    """Map a proof type to its on-chain discriminant, 0 when unknown."""
    key = proof_type.value if isinstance(proof_type, ProofType) else str(proof_type)
    code = PROOF_TYPE_CODES.get(key, UNKNOWN_PROOF_TYPE_CODE)
    if code == UNKNOWN_PROOF_TYPE_CODE:
        logger.warning("attestation_unknown_proof_type", proof_type=key)
    return code


def encode_epoch(epoch: int) -> bytes:
    if not 0 <= epoch <= U64_MAX:
        raise AttestationEncodingError(f"epoch {epoch} does not fit in u64")
    return _EPOCH.pack(epoch)


def _js_bool(value: bool) -> str:
    # The deployed signer hashed JavaScript's boolean spelling
    return "true" if value else "false"


def metadata_hash(result: VerificationResult) -> bytes:
    """SHA-256 over validity, proof type and verification time."""
    metadata = f"{_js_bool(result.is_valid)}|{result.proof_type.value}|{result.verified_at}"
    return hashlib.sha256(metadata.encode("utf-8")).digest()


def encode_v1(result: VerificationResult) -> EncodedAttestation:
    """Pipe-delimited legacy format."""
    message = "|".join(
        [
            "1" if result.is_valid else "0",
            result.proof_type.value,
            result.nullifier,
            result.commitment,
            str(result.epoch),
            result.data_hash,
            str(result.verified_at),
        ]
    ).encode("utf-8")
    return EncodedAttestation(
        format=AttestationFormat.V1,
        message=message,
        attestation_hash=hashlib.sha256(message).digest(),
    )


def encode_v2(result: VerificationResult) -> EncodedAttestation:
    """Fixed 125-byte binary format."""
    # Validate every variable-width field before assembling anything
    nullifier = decode_hex32(result.nullifier, "nullifier")
    data_hash = decode_hex32(result.data_hash, "data_hash")
    epoch = encode_epoch(result.epoch)
    attestation_hash = metadata_hash(result)

    message = bytearray(MESSAGE_LENGTH)
    message[DOMAIN_OFFSET : DOMAIN_OFFSET + DOMAIN_WIDTH] = DOMAIN_SEPARATOR
    message[PROOF_TYPE_OFFSET] = proof_type_code(result.proof_type)
    message[NULLIFIER_OFFSET : NULLIFIER_OFFSET + FIELD_WIDTH] = nullifier
    message[EPOCH_OFFSET : EPOCH_OFFSET + _EPOCH.size] = epoch
    message[DATA_HASH_OFFSET : DATA_HASH_OFFSET + FIELD_WIDTH] = data_hash
    message[ATTESTATION_HASH_OFFSET:MESSAGE_LENGTH] = attestation_hash

    return EncodedAttestation(
        format=AttestationFormat.V2,
        message=bytes(message),
        attestation_hash=attestation_hash,
    )


ENCODERS: dict[AttestationFormat, Callable[[VerificationResult], EncodedAttestation]] = {
    AttestationFormat.V1: encode_v1,
    AttestationFormat.V2: encode_v2,
}


def build_message(
    result: VerificationResult,
    fmt: AttestationFormat | int = CURRENT_FORMAT,
) -> EncodedAttestation:
    """
    Build the canonical signable message for a result.

    Signing and signature checks both go through here so that the two can
    never disagree on layout.

    Raises:
        UnsupportedFormatError: no encoder for ``fmt``
        AttestationEncodingError: a field cannot be encoded
    """
    try:
        encoder = ENCODERS[AttestationFormat(fmt)]
    except (ValueError, KeyError) as e:
        raise UnsupportedFormatError(f"Unsupported attestation format: {fmt}") from e
    return encoder(result)


def decode_v2(message: bytes) -> DecodedMessageV2:
    """Parse a v2 message back into its fields."""
    if len(message) != MESSAGE_LENGTH:
        raise AttestationEncodingError(
            f"v2 message must be {MESSAGE_LENGTH} bytes, got {len(message)}"
        )
    if message[DOMAIN_OFFSET : DOMAIN_OFFSET + DOMAIN_WIDTH] != DOMAIN_SEPARATOR:
        raise AttestationEncodingError("v2 message has wrong domain separator")

    (epoch,) = _EPOCH.unpack_from(message, EPOCH_OFFSET)
    return DecodedMessageV2(
        proof_type_code=message[PROOF_TYPE_OFFSET],
        nullifier=message[NULLIFIER_OFFSET : NULLIFIER_OFFSET + FIELD_WIDTH].hex(),
        epoch=epoch,
        data_hash=message[DATA_HASH_OFFSET : DATA_HASH_OFFSET + FIELD_WIDTH].hex(),
        attestation_hash=message[ATTESTATION_HASH_OFFSET:MESSAGE_LENGTH].hex(),
    )
