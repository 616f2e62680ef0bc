"""
Test Configuration
==================

Pytest fixtures for Vouch verifier tests.
"""

import json
import os
from collections.abc import AsyncGenerator, Awaitable, Callable
from pathlib import Path

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

# Set test environment
os.environ["ENVIRONMENT"] = "testing"
os.environ["ENGINE_MODE"] = "mock"
os.environ.pop("VERIFIER_PRIVATE_KEY", None)

from shared.zk.backend import ProvingEngine  # noqa: E402
from shared.zk.lifecycle import BackendManager  # noqa: E402
from shared.zk.mock import MockProvingEngine  # noqa: E402
from shared.zk.models import ProofType, VerificationResult  # noqa: E402
from shared.zk.signer import AttestationSigner  # noqa: E402


# Fixed 32-byte seed so signatures are reproducible across runs
TEST_SEED = bytes(range(1, 33))

SAMPLE_ARTIFACT = {
    "noir_version": "1.0.0-beta.3+test",
    "hash": 1234567890,
    "abi": {"parameters": [], "return_type": None},
    "bytecode": "H4sIAAAAAAAA/+3BAQ0AAADCoPdPbQ8HFAAAAAAAAAAAAAAAAAAAAAAAAAB8GgUBLvAMAAA=",
}


@pytest.fixture(scope="session")
def anyio_backend() -> str:
    """Use asyncio backend for async tests."""
    return "asyncio"


@pytest.fixture
def sample_result() -> VerificationResult:
    """Valid developer verification result."""
    return VerificationResult(
        is_valid=True,
        proof_type=ProofType.DEVELOPER,
        nullifier="a" * 64,
        commitment="b" * 64,
        epoch=42,
        data_hash="c" * 64,
        verified_at=1_700_000_000_000,
    )


@pytest.fixture
def signer() -> AttestationSigner:
    """Signer with a deterministic key."""
    signer = AttestationSigner(secret=json.dumps(list(TEST_SEED)))
    signer.initialize()
    return signer


@pytest.fixture
def circuits_dir(tmp_path: Path) -> Path:
    """Directory holding artifacts for every proof type."""
    directory = tmp_path / "circuits"
    directory.mkdir()
    for stem in ("dev_reputation", "whale_trading"):
        (directory / f"{stem}.json").write_text(json.dumps(SAMPLE_ARTIFACT))
    return directory


@pytest.fixture
def mock_engine() -> MockProvingEngine:
    return MockProvingEngine()


class CountingFactory:
    """Engine factory that records how many times it ran."""

    def __init__(self, engine: ProvingEngine) -> None:
        self.engine = engine
        self.calls = 0

    async def __call__(self) -> ProvingEngine:
        self.calls += 1
        return self.engine


@pytest.fixture
def engine_factory(mock_engine: MockProvingEngine) -> CountingFactory:
    return CountingFactory(mock_engine)


@pytest.fixture
def backend_manager(
    circuits_dir: Path,
    engine_factory: Callable[[], Awaitable[ProvingEngine]],
) -> BackendManager:
    return BackendManager(circuits_dir=circuits_dir, engine_factory=engine_factory)


@pytest_asyncio.fixture
async def verifier_client(
    backend_manager: BackendManager,
    signer: AttestationSigner,
) -> AsyncGenerator[AsyncClient, None]:
    """Create test client for the Verifier Service backed by the mock engine."""
    from services.verifier.context import VerifierContext
    from services.verifier.main import create_app
    from shared.config import get_settings
    from shared.zk.verifier import ProofVerifier

    context = VerifierContext(
        settings=get_settings(),
        backends=backend_manager,
        verifier=ProofVerifier(backend_manager),
        signer=signer,
    )
    await context.start()
    app = create_app(context)

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as client:
        yield client

    await context.stop()
