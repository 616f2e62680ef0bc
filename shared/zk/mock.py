"""
Mock Proving Engine
===================

In-memory engine for development and testing.

A proof is accepted when it equals
``sha256(circuit_id || public input bytes)``; ``mock_proof`` builds one.
No real cryptography happens here.

Version: 0.1.0
"""

import asyncio
import hashlib
from typing import Any

from shared.logging import get_logger
from shared.zk.backend import (
    CircuitHandle,
    CircuitProgram,
    CircuitVerifier,
    ProvingEngine,
    field_elements_to_bytes,
)
from shared.zk.exceptions import EngineError
from shared.zk.models import ProofType

logger = get_logger(__name__)


def mock_proof(circuit_id: str, public_inputs: list[str]) -> bytes:
    """Build a proof the mock engine accepts."""
    return hashlib.sha256(circuit_id.encode() + field_elements_to_bytes(public_inputs)).digest()


class MockCircuitVerifier(CircuitVerifier):
    """Verifier handle for the mock engine."""

    def __init__(self, engine: "MockProvingEngine", circuit_id: str) -> None:
        self._engine = engine
        self.circuit_id = circuit_id

    async def verify(self, proof: bytes, public_inputs: list[str]) -> bool:
        self._engine.verify_calls += 1
        if self._engine.fail_verification:
            raise EngineError("mock engine verification failure")
        await asyncio.sleep(0)
        return proof == mock_proof(self.circuit_id, public_inputs)


class MockProvingEngine(ProvingEngine):
    """
    In-memory proving engine.

    Counts every call so tests can assert how often setup work ran.
    """

    name = "mock"

    def __init__(self) -> None:
        self.setup_calls: dict[str, int] = {}
        self.release_calls = 0
        self.verify_calls = 0
        self.destroyed = False
        self.fail_verification = False
        logger.debug("mock_proving_engine_initialized")

    async def setup_circuit(
        self,
        proof_type: ProofType,
        program: CircuitProgram,
    ) -> CircuitVerifier:
        self.setup_calls[proof_type.value] = self.setup_calls.get(proof_type.value, 0) + 1
        await asyncio.sleep(0)
        return MockCircuitVerifier(self, program.circuit_id)

    async def release_circuit(self, handle: CircuitHandle) -> None:
        self.release_calls += 1

    async def destroy(self) -> None:
        self.destroyed = True

    async def health_check(self) -> dict[str, Any]:
        return {
            "status": "unhealthy" if self.destroyed else "healthy",
            "engine": self.name,
        }
