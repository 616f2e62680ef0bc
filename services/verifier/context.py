"""
Verifier Service Context
========================

Composition root: builds the backend manager, proof verifier and signer
once and hands them to request handlers through a FastAPI dependency.
"""

from dataclasses import dataclass

from fastapi import Request

from shared.config import Settings
from shared.logging import get_logger
from shared.zk.lifecycle import BackendManager
from shared.zk.signer import AttestationSigner
from shared.zk.verifier import ProofVerifier


logger = get_logger(__name__)


@dataclass
class VerifierContext:
    """Process-wide collaborators of the verifier service."""

    settings: Settings
    backends: BackendManager
    verifier: ProofVerifier
    signer: AttestationSigner

    @classmethod
    def from_settings(cls, settings: Settings) -> "VerifierContext":
        backends = BackendManager.from_settings(settings)
        return cls(
            settings=settings,
            backends=backends,
            verifier=ProofVerifier(backends),
            signer=AttestationSigner(
                secret=settings.verifier.private_key,
                allow_ephemeral=not settings.is_production,
            ),
        )

    async def start(self) -> None:
        """Load the signing key (fatal on bad config) and warm the circuits."""
        self.signer.initialize()
        if self.settings.circuits.preload:
            loaded = await self.backends.preload()
            logger.info(
                "circuits_preloaded",
                loaded=[t.value for t, ok in loaded.items() if ok],
                failed=[t.value for t, ok in loaded.items() if not ok],
            )

    async def stop(self) -> None:
        await self.backends.shutdown()


def get_context(request: Request) -> VerifierContext:
    """FastAPI dependency returning the app's context."""
    return request.app.state.context
