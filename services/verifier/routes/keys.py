"""
Verifier Key Routes
===================

Publishes the verifier's public key for on-chain registration. Secret key
material is never served; export lives in ``scripts/verifier_keys.py``.
"""

from fastapi import APIRouter, Depends

from services.verifier.context import VerifierContext, get_context
from shared.zk.models import VerifierKeyResponse


router = APIRouter()


@router.get("", response_model=VerifierKeyResponse)
async def get_verifier_key(
    context: VerifierContext = Depends(get_context),
) -> VerifierKeyResponse:
    """Get the verifier's public key (base58)."""
    return VerifierKeyResponse(public_key=context.signer.public_key)
