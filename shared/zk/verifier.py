"""
Proof Verification
==================

Checks submitted proofs with the circuit handle for their proof type and
records the outcome as a VerificationResult.

Once a submission is accepted, an invalid proof and an engine failure both
come back as ``is_valid=False``. Input that cannot be interpreted (an
unknown proof type, proof bytes that are not hex) raises before any engine
work starts. Internally the outcome
keeps the distinction (``VerificationOutcome.status``) so the two can be
logged and alerted on separately.

Version: 0.1.0
"""

import time
from dataclasses import dataclass
from enum import Enum

from shared.logging import get_logger
from shared.zk.attestation import strip_hex_prefix
from shared.zk.exceptions import AttestationEncodingError
from shared.zk.lifecycle import BackendManager
from shared.zk.models import PROOF_HEX_PATTERN, ProofType, VerificationResult, now_ms


logger = get_logger(__name__)


class OutcomeStatus(str, Enum):
    """Why a verification ended the way it did."""

    VALID = "valid"
    INVALID = "invalid"
    INFRASTRUCTURE_ERROR = "infrastructure_error"


@dataclass(frozen=True)
class VerificationOutcome:
    """Verification result tagged with its cause."""

    status: OutcomeStatus
    result: VerificationResult
    verification_time_ms: int
    cause: BaseException | None = None

    @property
    def is_infrastructure_error(self) -> bool:
        return self.status == OutcomeStatus.INFRASTRUCTURE_ERROR


def decode_proof(proof: bytes | str) -> bytes:
    """
    Accept raw proof bytes or hex with an optional ``0x`` prefix.

    Raises:
        AttestationEncodingError: proof is not an even-length hex string
    """
    if isinstance(proof, bytes):
        return proof
    clean = strip_hex_prefix(proof)
    if not PROOF_HEX_PATTERN.fullmatch(clean):
        raise AttestationEncodingError("proof is not an even-length hex string")
    return bytes.fromhex(clean)


class ProofVerifier:
    """
    Validates proofs against their circuits.

    Usage:
        verifier = ProofVerifier(manager)
        result = await verifier.verify(
            proof, public_inputs, ProofType.DEVELOPER,
            nullifier, commitment, epoch, data_hash,
        )
    """

    def __init__(self, backends: BackendManager) -> None:
        self.backends = backends

    async def verify(
        self,
        proof: bytes | str,
        public_inputs: list[str],
        proof_type: ProofType | str,
        nullifier: str,
        commitment: str,
        epoch: int,
        data_hash: str,
    ) -> VerificationResult:
        """
        Verify a proof.

        Args:
            proof: Proof bytes, or hex
            public_inputs: Public inputs as 32-byte hex field elements
            proof_type: Circuit the proof was generated for
            nullifier: Caller-supplied nullifier, carried through unchanged
            commitment: Caller-supplied commitment, carried through unchanged
            epoch: Time bucket the proof is bound to
            data_hash: Hash of the private data behind the proof

        Returns:
            VerificationResult; ``is_valid`` is False when the proof does not
            verify or the engine fails

        Raises:
            ValueError: unknown proof type
            AttestationEncodingError: proof is not valid hex
        """
        outcome = await self.check(
            proof, public_inputs, proof_type, nullifier, commitment, epoch, data_hash
        )
        return outcome.result

    async def check(
        self,
        proof: bytes | str,
        public_inputs: list[str],
        proof_type: ProofType | str,
        nullifier: str,
        commitment: str,
        epoch: int,
        data_hash: str,
    ) -> VerificationOutcome:
        """
        Verify a proof and keep the reason for the outcome.

        Raises the same input errors as ``verify``, before any engine work.
        """
        proof_type = ProofType(proof_type)
        proof_bytes = decode_proof(proof)
        start = time.perf_counter()

        try:
            handle = await self.backends.get_circuit_handle(proof_type)
            logger.info(
                "proof_verifying",
                proof_type=proof_type.value,
                proof_bytes=len(proof_bytes),
                public_inputs=len(public_inputs),
                nullifier_prefix=nullifier[:16],
            )
            is_valid = bool(await handle.verifier.verify(proof_bytes, public_inputs))
            status = OutcomeStatus.VALID if is_valid else OutcomeStatus.INVALID
            cause = None
        except Exception as e:
            logger.error(
                "proof_verification_error",
                proof_type=proof_type.value,
                error=str(e),
                error_type=type(e).__name__,
            )
            is_valid = False
            status = OutcomeStatus.INFRASTRUCTURE_ERROR
            cause = e

        elapsed_ms = int((time.perf_counter() - start) * 1000)
        result = VerificationResult(
            is_valid=is_valid,
            proof_type=proof_type,
            nullifier=nullifier,
            commitment=commitment,
            epoch=epoch,
            data_hash=data_hash,
            verified_at=now_ms(),
        )

        logger.info(
            "proof_verified",
            proof_type=proof_type.value,
            valid=is_valid,
            status=status.value,
            verification_time_ms=elapsed_ms,
        )
        return VerificationOutcome(
            status=status,
            result=result,
            verification_time_ms=elapsed_ms,
            cause=cause,
        )
