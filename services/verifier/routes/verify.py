"""
Proof Verification Routes
=========================

Accepts proof submissions, verifies them and returns signed attestations.
"""

import asyncio

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import JSONResponse

from services.verifier.context import VerifierContext, get_context
from shared.logging import get_logger
from shared.zk.models import VerifyRequest, VerifyResponse


logger = get_logger(__name__)
router = APIRouter()

VERIFICATION_FAILED = "Proof verification failed"


def _failure(message: str, status_code: int = status.HTTP_400_BAD_REQUEST) -> JSONResponse:
    body = VerifyResponse(success=False, error=message)
    return JSONResponse(
        status_code=status_code,
        content=body.model_dump(mode="json", by_alias=True, exclude_none=True),
    )


@router.post("", response_model=VerifyResponse, response_model_exclude_none=True)
async def verify_proof(
    request: VerifyRequest,
    context: VerifierContext = Depends(get_context),
) -> VerifyResponse | JSONResponse:
    """
    Verify a zero-knowledge proof and return a signed attestation.

    A proof that fails verification and an engine failure both produce the
    same 400 response; only the server logs tell them apart.
    """
    limits = context.settings.verifier
    if len(request.proof) > limits.max_proof_hex_length:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"Proof exceeds {limits.max_proof_hex_length} hex characters",
        )

    logger.info(
        "verify_request_received",
        proof_type=request.proof_type.value,
        nullifier_prefix=request.nullifier[:16],
        proof_chars=len(request.proof),
        epoch=request.epoch,
    )

    try:
        outcome = await asyncio.wait_for(
            context.verifier.check(
                request.proof,
                request.public_inputs,
                request.proof_type,
                request.nullifier,
                request.commitment,
                request.epoch,
                request.data_hash,
            ),
            timeout=limits.request_timeout_seconds,
        )
    except TimeoutError:
        logger.error(
            "proof_verification_timeout",
            proof_type=request.proof_type.value,
            timeout_seconds=limits.request_timeout_seconds,
        )
        return _failure(VERIFICATION_FAILED)

    if outcome.is_infrastructure_error:
        logger.warning(
            "verify_request_infrastructure_error",
            proof_type=request.proof_type.value,
            cause=type(outcome.cause).__name__,
        )

    if not outcome.result.is_valid:
        return _failure(VERIFICATION_FAILED)

    attestation = context.signer.sign(outcome.result)
    logger.info(
        "attestation_issued",
        proof_type=request.proof_type.value,
        attestation_hash_prefix=attestation.attestation_hash[:16],
        format_version=attestation.format_version,
    )
    return VerifyResponse(success=True, attestation=attestation)
