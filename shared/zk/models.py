"""
Verification Data Models
========================

Pydantic models for proof submissions, verification results and signed
attestations. Wire names are camelCase to match the web client and the
on-chain tooling; Python attributes stay snake_case.

Version: 0.1.0
"""

import re
import time
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


U64_MAX = 2**64 - 1
MS_PER_DAY = 86_400_000
HEX32_PATTERN = re.compile(r"(0x)?[0-9a-fA-F]{64}")
PROOF_HEX_PATTERN = re.compile(r"(0x)?([0-9a-fA-F]{2})+")
ZERO_HASH = "0" * 64


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


def current_epoch() -> int:
    """Day bucket used when a submission does not carry its own epoch."""
    return now_ms() // MS_PER_DAY


class ProofType(str, Enum):
    """Kinds of claims a proof can attest to."""

    DEVELOPER = "developer"
    WHALE = "whale"


class WireModel(BaseModel):
    """Base model using camelCase aliases on the wire."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )


class VerificationResult(WireModel):
    """
    Outcome of a single verification attempt.

    Immutable once built. ``nullifier``, ``commitment`` and ``data_hash``
    are carried exactly as submitted; encoders decode them but never
    rewrite them.
    """

    model_config = ConfigDict(frozen=True)

    is_valid: bool
    proof_type: ProofType
    nullifier: str
    commitment: str
    epoch: int = Field(..., ge=0, le=U64_MAX)
    data_hash: str
    verified_at: int = Field(..., description="Epoch milliseconds")


class SignedAttestation(WireModel):
    """A verification result plus the verifier's detached signature."""

    model_config = ConfigDict(frozen=True)

    result: VerificationResult
    verifier: str = Field(..., description="Verifier public key (base58)")
    signature: str = Field(..., description="Ed25519 signature (base58)")
    attestation_hash: str = Field(..., description="Attestation hash (hex)")
    format_version: int = Field(default=2, ge=1)


class VerifyRequest(WireModel):
    """Proof submission accepted by the verify endpoint."""

    proof: str = Field(..., min_length=1, description="Proof bytes as hex")
    public_inputs: list[str] = Field(..., min_length=1)
    proof_type: ProofType
    nullifier: str
    commitment: str
    epoch: int = Field(default_factory=current_epoch, ge=0, le=U64_MAX)
    data_hash: str = ZERO_HASH

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "proof": "0x1f2e...",
                    "publicInputs": ["0x" + "00" * 32],
                    "proofType": "developer",
                    "nullifier": "a" * 64,
                    "commitment": "b" * 64,
                    "epoch": 20000,
                }
            ]
        }
    }

    @field_validator("proof")
    @classmethod
    def proof_must_be_hex(cls, v: str) -> str:
        if not PROOF_HEX_PATTERN.fullmatch(v):
            raise ValueError("Proof must be an even-length hex string")
        return v

    @field_validator("nullifier", "commitment")
    @classmethod
    def must_be_64_hex_chars(cls, v: str, info) -> str:
        if len(v) != 64 or not HEX32_PATTERN.fullmatch(v):
            raise ValueError(f"{info.field_name.capitalize()} must be 64 hex characters")
        return v

    @field_validator("data_hash")
    @classmethod
    def data_hash_must_be_hex32(cls, v: str) -> str:
        if not HEX32_PATTERN.fullmatch(v):
            raise ValueError("Data hash must be 32 bytes of hex")
        return v

    @field_validator("public_inputs")
    @classmethod
    def public_inputs_must_be_field_elements(cls, v: list[str]) -> list[str]:
        for index, value in enumerate(v):
            if not HEX32_PATTERN.fullmatch(value):
                raise ValueError(f"Public input {index} must be a 32-byte hex field element")
        return v


class VerifyResponse(BaseModel):
    """Response envelope for the verify endpoint."""

    success: bool
    attestation: SignedAttestation | None = None
    error: str | None = None


class HealthResponse(WireModel):
    """Health check response."""

    status: str
    version: str
    verifier: str
    circuits_loaded: dict[str, bool] = Field(default_factory=dict)
    engine: dict[str, object] = Field(default_factory=dict)


class VerifierKeyResponse(WireModel):
    """Public key published for on-chain registration."""

    public_key: str
    message: str = "Register this public key in the on-chain program to authorize attestations"
