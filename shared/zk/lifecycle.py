"""
Backend Lifecycle Manager
=========================

Owns the shared proving engine and the per-proof-type circuit handles.

Both are filled lazily through ``AsyncOnce`` cells: the first caller starts
the work as a task, every concurrent caller awaits that same task, and a
failure clears the cell so a later call can try again. Nothing here is
global; the service's composition root builds one manager and passes it
around.

Version: 0.1.0
"""

import asyncio
import functools
import json
import time
from collections.abc import Awaitable, Callable, Iterable, Mapping
from pathlib import Path
from typing import Any, Generic, TypeVar

from shared.config.settings import Settings
from shared.logging import get_logger
from shared.zk.backend import CircuitHandle, CircuitProgram, ProvingEngine, create_engine
from shared.zk.exceptions import CircuitArtifactError
from shared.zk.models import ProofType


logger = get_logger(__name__)

T = TypeVar("T")

# Compiled artifact file stem per proof type
CIRCUIT_ARTIFACTS: dict[ProofType, str] = {
    ProofType.DEVELOPER: "dev_reputation",
    ProofType.WHALE: "whale_trading",
}


class AsyncOnce(Generic[T]):
    """
    Single-flight async initializer.

    The in-flight task itself is stored, not its eventual value, so callers
    arriving mid-initialization share it instead of starting another.
    """

    def __init__(self) -> None:
        self._task: asyncio.Task[T] | None = None

    @property
    def ready(self) -> bool:
        task = self._task
        return (
            task is not None
            and task.done()
            and not task.cancelled()
            and task.exception() is None
        )

    @property
    def value(self) -> T | None:
        return self._task.result() if self.ready else None  # type: ignore[union-attr]

    async def get(self, factory: Callable[[], Awaitable[T]]) -> T:
        task = self._task
        if task is None:
            task = asyncio.ensure_future(factory())
            self._task = task

        try:
            # A waiter being cancelled must not cancel the shared work
            return await asyncio.shield(task)
        except BaseException:
            if task.done() and (task.cancelled() or task.exception() is not None):
                if self._task is task:
                    self._task = None
            raise

    async def close(self) -> T | None:
        """Detach the cell, cancelling unfinished work. Returns the value if there was one."""
        task, self._task = self._task, None
        if task is None:
            return None
        if not task.done():
            task.cancel()
        await asyncio.gather(task, return_exceptions=True)
        if task.cancelled() or task.exception() is not None:
            return None
        return task.result()


class BackendManager:
    """
    Lazy, deduplicated owner of the proving engine and circuit handles.

    Usage:
        manager = BackendManager.from_settings(settings)
        await manager.preload()

        handle = await manager.get_circuit_handle(ProofType.DEVELOPER)
        ok = await handle.verifier.verify(proof, public_inputs)

        await manager.shutdown()
    """

    def __init__(
        self,
        circuits_dir: str | Path,
        engine_factory: Callable[[], Awaitable[ProvingEngine]],
        artifacts: Mapping[ProofType, str] | None = None,
    ) -> None:
        """
        Args:
            circuits_dir: Directory holding compiled circuit JSON artifacts
            engine_factory: Coroutine function creating the shared engine
            artifacts: Artifact file stem per proof type
        """
        self.circuits_dir = Path(circuits_dir)
        self._engine_factory = engine_factory
        self._artifacts = dict(artifacts or CIRCUIT_ARTIFACTS)
        self._engine_cell: AsyncOnce[ProvingEngine] = AsyncOnce()
        self._circuit_cells: dict[ProofType, AsyncOnce[CircuitHandle]] = {}

    @classmethod
    def from_settings(cls, settings: Settings) -> "BackendManager":
        return cls(
            circuits_dir=settings.circuits.dir,
            engine_factory=functools.partial(create_engine, settings.engine),
        )

    @property
    def proof_types(self) -> list[ProofType]:
        return list(self._artifacts)

    @property
    def engine_ready(self) -> bool:
        return self._engine_cell.ready

    # =========================================================================
    # Shared engine
    # =========================================================================

    async def get_shared_engine(self) -> ProvingEngine:
        """
        Return the process-wide engine, starting it on first use.

        Raises:
            EngineInitializationError: startup failed; the next call retries
        """
        return await self._engine_cell.get(self._start_engine)

    async def _start_engine(self) -> ProvingEngine:
        logger.info("proving_engine_initializing")
        start = time.perf_counter()
        try:
            engine = await self._engine_factory()
        except Exception as e:
            logger.error("proving_engine_init_failed", error=str(e), error_type=type(e).__name__)
            raise

        logger.info(
            "proving_engine_initialized",
            engine=engine.name,
            elapsed_ms=round((time.perf_counter() - start) * 1000, 2),
        )
        return engine

    # =========================================================================
    # Circuit handles
    # =========================================================================

    def artifact_path(self, proof_type: ProofType) -> Path:
        return self.circuits_dir / f"{self._artifacts[proof_type]}.json"

    async def get_circuit_handle(self, proof_type: ProofType | str) -> CircuitHandle:
        """
        Return the cached handle for ``proof_type``, loading it if needed.

        Raises:
            ValueError: unknown proof type
            CircuitArtifactError: artifact missing or unreadable
            EngineError: engine failed to start or to set up the circuit
        """
        proof_type = ProofType(proof_type)
        if proof_type not in self._artifacts:
            raise ValueError(f"No circuit configured for proof type '{proof_type.value}'")

        cell = self._circuit_cells.setdefault(proof_type, AsyncOnce())
        return await cell.get(functools.partial(self._load_circuit, proof_type))

    async def _load_circuit(self, proof_type: ProofType) -> CircuitHandle:
        circuit_id = self._artifacts[proof_type]
        path = self.artifact_path(proof_type)
        logger.info("circuit_loading", proof_type=proof_type.value, path=str(path))

        program = await asyncio.to_thread(_read_artifact, proof_type, circuit_id, path)
        engine = await self.get_shared_engine()
        verifier = await engine.setup_circuit(proof_type, program)

        logger.info(
            "circuit_loaded",
            proof_type=proof_type.value,
            circuit_id=circuit_id,
            noir_version=program.noir_version,
        )
        return CircuitHandle(
            proof_type=proof_type,
            circuit_id=circuit_id,
            program=program,
            verifier=verifier,
        )

    async def preload(
        self,
        proof_types: Iterable[ProofType] | None = None,
    ) -> dict[ProofType, bool]:
        """
        Load circuits eagerly. A circuit that fails is logged and skipped;
        the rest still load.

        Returns:
            Load outcome per proof type
        """
        types = list(proof_types) if proof_types is not None else self.proof_types
        logger.info("circuits_preloading", proof_types=[t.value for t in types])

        results = await asyncio.gather(
            *(self.get_circuit_handle(t) for t in types),
            return_exceptions=True,
        )

        loaded: dict[ProofType, bool] = {}
        for proof_type, outcome in zip(types, results):
            if isinstance(outcome, BaseException):
                logger.error(
                    "circuit_preload_failed",
                    proof_type=proof_type.value,
                    error=str(outcome),
                    error_type=type(outcome).__name__,
                )
                loaded[proof_type] = False
            else:
                loaded[proof_type] = True
        return loaded

    def circuit_status(self) -> dict[str, bool]:
        """Which circuits are cached right now."""
        return {
            proof_type.value: (
                proof_type in self._circuit_cells and self._circuit_cells[proof_type].ready
            )
            for proof_type in self._artifacts
        }

    async def health_check(self) -> dict[str, Any]:
        engine = self._engine_cell.value
        if engine is None:
            return {"status": "not_initialized"}
        return await engine.health_check()

    # =========================================================================
    # Teardown
    # =========================================================================

    async def shutdown(self) -> None:
        """
        Release every handle and destroy the engine.

        Safe when nothing was initialized and safe to repeat. Release
        failures are logged per handle and do not stop the teardown.
        """
        logger.info("backend_manager_shutting_down")

        circuit_cells, self._circuit_cells = self._circuit_cells, {}
        engine_cell, self._engine_cell = self._engine_cell, AsyncOnce()

        handles = [await cell.close() for cell in circuit_cells.values()]
        engine = await engine_cell.close()
        if engine is None:
            return

        for handle in handles:
            if handle is None:
                continue
            try:
                await engine.release_circuit(handle)
                logger.info("circuit_released", proof_type=handle.proof_type.value)
            except Exception as e:
                logger.error(
                    "circuit_release_failed",
                    proof_type=handle.proof_type.value,
                    error=str(e),
                )

        try:
            await engine.destroy()
            logger.info("proving_engine_destroyed", engine=engine.name)
        except Exception as e:
            logger.error("proving_engine_destroy_failed", engine=engine.name, error=str(e))


def _read_artifact(proof_type: ProofType, circuit_id: str, path: Path) -> CircuitProgram:
    if not path.is_file():
        raise CircuitArtifactError(proof_type.value, str(path), "file not found")
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
        if not isinstance(data, dict):
            raise ValueError("artifact is not a JSON object")
        return CircuitProgram.from_artifact(circuit_id, data)
    except (OSError, ValueError) as e:
        raise CircuitArtifactError(proof_type.value, str(path), str(e)) from e
