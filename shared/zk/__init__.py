"""
ZK Verification and Attestation
===============================

Server-side verification of client-generated Noir proofs and Ed25519
attestations that the on-chain program can check.

Usage:
    from shared.zk import AttestationSigner, BackendManager, ProofVerifier

    manager = BackendManager.from_settings(settings)
    verifier = ProofVerifier(manager)
    signer = AttestationSigner(secret=settings.verifier.private_key)

    result = await verifier.verify(
        proof, public_inputs, "developer", nullifier, commitment, epoch, data_hash,
    )
    if result.is_valid:
        attestation = signer.sign(result)

Version: 0.1.0
"""

from shared.zk.attestation import (
    CURRENT_FORMAT,
    DOMAIN_SEPARATOR,
    MESSAGE_LENGTH,
    AttestationFormat,
    build_message,
    decode_v2,
)
from shared.zk.backend import CircuitHandle, ProvingEngine, create_engine
from shared.zk.exceptions import (
    AttestationEncodingError,
    CircuitArtifactError,
    ConfigurationError,
    EngineError,
    KeyExportNotAllowedError,
    SignerConfigurationError,
    VouchError,
)
from shared.zk.lifecycle import AsyncOnce, BackendManager
from shared.zk.models import (
    ProofType,
    SignedAttestation,
    VerificationResult,
    VerifyRequest,
    VerifyResponse,
)
from shared.zk.signer import AttestationSigner, verify_attestation
from shared.zk.verifier import OutcomeStatus, ProofVerifier, VerificationOutcome


__all__ = [
    # Lifecycle
    "AsyncOnce",
    "BackendManager",
    "CircuitHandle",
    "ProvingEngine",
    "create_engine",
    # Verification
    "ProofVerifier",
    "VerificationOutcome",
    "OutcomeStatus",
    # Attestation
    "AttestationFormat",
    "CURRENT_FORMAT",
    "DOMAIN_SEPARATOR",
    "MESSAGE_LENGTH",
    "build_message",
    "decode_v2",
    # Signing
    "AttestationSigner",
    "verify_attestation",
    # Models
    "ProofType",
    "VerificationResult",
    "SignedAttestation",
    "VerifyRequest",
    "VerifyResponse",
    # Errors
    "VouchError",
    "ConfigurationError",
    "CircuitArtifactError",
    "SignerConfigurationError",
    "KeyExportNotAllowedError",
    "EngineError",
    "AttestationEncodingError",
]
