"""
Proving Engine Interface
========================

Abstract interface to the cryptographic engine that checks proofs, plus the
Barretenberg implementation that drives the ``bb`` binary.

The engine itself is expensive to start and is shared process-wide; each
circuit gets its own verifier handle built from the compiled Noir artifact.
Lifetimes of both are owned by ``shared.zk.lifecycle.BackendManager``.

Version: 0.1.0
"""

import asyncio
import hashlib
import json
import os
import shutil
import subprocess
import tempfile
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from shared.config.settings import EngineMode, EngineSettings
from shared.logging import get_logger
from shared.zk.exceptions import EngineCommandError, EngineInitializationError
from shared.zk.models import ProofType


logger = get_logger(__name__)


@dataclass(frozen=True)
class CircuitProgram:
    """A compiled Noir circuit as loaded from its JSON artifact."""

    circuit_id: str
    bytecode: str
    abi: dict[str, Any]
    noir_version: str | None = None
    artifact: dict[str, Any] = field(default_factory=dict, repr=False)

    @classmethod
    def from_artifact(cls, circuit_id: str, artifact: dict[str, Any]) -> "CircuitProgram":
        """
        Raises:
            ValueError: artifact has no bytecode
        """
        bytecode = artifact.get("bytecode")
        if not isinstance(bytecode, str) or not bytecode:
            raise ValueError("artifact has no bytecode")
        return cls(
            circuit_id=circuit_id,
            bytecode=bytecode,
            abi=artifact.get("abi") or {},
            noir_version=artifact.get("noir_version"),
            artifact=artifact,
        )

    @property
    def bytecode_hash(self) -> str:
        return hashlib.sha256(self.bytecode.encode("ascii")).hexdigest()


class CircuitVerifier(ABC):
    """Engine-side verifier for one circuit."""

    @abstractmethod
    async def verify(self, proof: bytes, public_inputs: list[str]) -> bool:
        """
        Check a proof against its public inputs.

        Returns:
            True if the proof is cryptographically valid

        Raises:
            EngineError: the engine could not complete the check
        """
        ...


@dataclass(frozen=True)
class CircuitHandle:
    """Cached per-proof-type handle."""

    proof_type: ProofType
    circuit_id: str
    program: CircuitProgram
    verifier: CircuitVerifier
    loaded_at: datetime = field(default_factory=lambda: datetime.now(UTC))


class ProvingEngine(ABC):
    """Shared cryptographic engine."""

    name: str = "abstract"

    @abstractmethod
    async def setup_circuit(
        self,
        proof_type: ProofType,
        program: CircuitProgram,
    ) -> CircuitVerifier:
        """Prepare a verifier handle for a compiled circuit."""
        ...

    @abstractmethod
    async def release_circuit(self, handle: CircuitHandle) -> None:
        """Free resources held for a circuit."""
        ...

    @abstractmethod
    async def destroy(self) -> None:
        """Tear the engine down."""
        ...

    @abstractmethod
    async def health_check(self) -> dict[str, Any]:
        """Engine status for the health endpoint."""
        ...


def field_elements_to_bytes(public_inputs: list[str]) -> bytes:
    """Concatenate 32-byte hex field elements into the engine's binary form."""
    out = bytearray()
    for value in public_inputs:
        clean = value[2:] if value.startswith("0x") else value
        out += bytes.fromhex(clean.rjust(64, "0"))
    return bytes(out)


# ============================================================================
# Barretenberg
# ============================================================================


class BarretenbergCircuitVerifier(CircuitVerifier):
    """Runs ``bb verify`` against a circuit's verification key."""

    def __init__(self, engine: "BarretenbergEngine", circuit_dir: Path, vk_path: Path) -> None:
        self._engine = engine
        self.circuit_dir = circuit_dir
        self.vk_path = vk_path

    async def verify(self, proof: bytes, public_inputs: list[str]) -> bool:
        inputs = field_elements_to_bytes(public_inputs)
        staging = await asyncio.to_thread(_stage_files, self.circuit_dir, proof, inputs)

        try:
            result = await self._engine.run(
                "verify",
                "--scheme", self._engine.scheme,
                "-k", str(self.vk_path),
                "-p", str(staging / "proof"),
                "-i", str(staging / "public_inputs"),
                check=False,
            )
        finally:
            await asyncio.to_thread(shutil.rmtree, staging, ignore_errors=True)

        return result.returncode == 0


def _stage_files(circuit_dir: Path, proof: bytes, inputs: bytes) -> Path:
    staging = Path(tempfile.mkdtemp(dir=circuit_dir))
    (staging / "proof").write_bytes(proof)
    (staging / "public_inputs").write_bytes(inputs)
    return staging


class BarretenbergEngine(ProvingEngine):
    """
    Barretenberg UltraHonk engine driven through the ``bb`` CLI.

    Commands run in a worker thread so the event loop is never blocked.

    Usage:
        engine = await BarretenbergEngine.create(settings.engine)
        verifier = await engine.setup_circuit(ProofType.DEVELOPER, program)
        ok = await verifier.verify(proof_bytes, public_inputs)
        await engine.destroy()
    """

    name = "barretenberg"

    def __init__(self, binary: str, work_dir: Path, settings: EngineSettings) -> None:
        self.binary = binary
        self.work_dir = work_dir
        self.scheme = settings.scheme
        self.timeout = settings.command_timeout_seconds
        self.version: str | None = None
        self._env = {**os.environ, "HARDWARE_CONCURRENCY": str(settings.threads)}

    @classmethod
    async def create(cls, settings: EngineSettings) -> "BarretenbergEngine":
        """
        Locate the binary, probe it and set up a private work directory.

        Raises:
            EngineInitializationError: binary missing or not runnable
        """
        binary = shutil.which(settings.bb_path)
        if binary is None:
            raise EngineInitializationError(f"Barretenberg binary not found: {settings.bb_path}")

        if settings.work_dir is not None:
            settings.work_dir.mkdir(parents=True, exist_ok=True)
        work_dir = Path(tempfile.mkdtemp(prefix="vouch-bb-", dir=settings.work_dir))

        engine = cls(binary, work_dir, settings)
        try:
            probe = await engine.run("--version")
        except EngineCommandError as e:
            shutil.rmtree(work_dir, ignore_errors=True)
            raise EngineInitializationError(str(e)) from e

        engine.version = probe.stdout.strip() or None
        logger.info(
            "barretenberg_engine_ready",
            binary=binary,
            version=engine.version,
            scheme=engine.scheme,
            threads=settings.threads,
        )
        return engine

    async def run(self, *args: str, check: bool = True) -> subprocess.CompletedProcess[str]:
        """
        Run a ``bb`` subcommand.

        Raises:
            EngineCommandError: timeout, spawn failure, or (with ``check``)
                a non-zero exit
        """
        command = [self.binary, *args]
        try:
            result = await asyncio.to_thread(
                subprocess.run,
                command,
                capture_output=True,
                text=True,
                timeout=self.timeout,
                env=self._env,
                cwd=self.work_dir,
            )
        except subprocess.TimeoutExpired as e:
            raise EngineCommandError(args[0], None, f"timed out after {self.timeout}s") from e
        except OSError as e:
            raise EngineCommandError(args[0], None, str(e)) from e

        if check and result.returncode != 0:
            raise EngineCommandError(args[0], result.returncode, result.stderr)
        return result

    async def setup_circuit(
        self,
        proof_type: ProofType,
        program: CircuitProgram,
    ) -> CircuitVerifier:
        circuit_dir = self.work_dir / program.circuit_id
        circuit_dir.mkdir(parents=True, exist_ok=True)
        circuit_file = circuit_dir / "circuit.json"
        await asyncio.to_thread(circuit_file.write_text, json.dumps(program.artifact))

        await self.run(
            "write_vk",
            "--scheme", self.scheme,
            "-b", str(circuit_file),
            "-o", str(circuit_dir),
        )
        vk_path = circuit_dir / "vk"
        if not vk_path.exists():
            raise EngineCommandError("write_vk", 0, f"verification key not written to {vk_path}")

        logger.info(
            "barretenberg_circuit_ready",
            proof_type=proof_type.value,
            circuit_id=program.circuit_id,
            bytecode_hash=program.bytecode_hash[:16],
        )
        return BarretenbergCircuitVerifier(self, circuit_dir, vk_path)

    async def release_circuit(self, handle: CircuitHandle) -> None:
        await asyncio.to_thread(
            shutil.rmtree, self.work_dir / handle.circuit_id, ignore_errors=True
        )

    async def destroy(self) -> None:
        await asyncio.to_thread(shutil.rmtree, self.work_dir, ignore_errors=True)
        logger.info("barretenberg_engine_destroyed")

    async def health_check(self) -> dict[str, Any]:
        return {
            "status": "healthy" if self.work_dir.exists() else "unhealthy",
            "engine": self.name,
            "version": self.version,
        }


async def create_engine(settings: EngineSettings) -> ProvingEngine:
    """
    Create the configured engine.

    Returns:
        ProvingEngine instance based on settings
    """
    mode = settings.mode

    if mode == EngineMode.MOCK:
        from shared.zk.mock import MockProvingEngine

        return MockProvingEngine()
    if mode == EngineMode.BARRETENBERG:
        return await BarretenbergEngine.create(settings)

    raise ValueError(f"Unknown engine mode: {mode}")
