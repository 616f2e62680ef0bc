"""
Tests for the Verifier Service HTTP API.
"""

import pytest
from httpx import AsyncClient

from shared.zk.mock import mock_proof
from shared.zk.models import SignedAttestation
from shared.zk.signer import verify_attestation


PUBLIC_INPUTS = ["0x" + "00" * 31 + "07"]


def _submission(proof: bytes, **overrides) -> dict:
    body = {
        "proof": "0x" + proof.hex(),
        "publicInputs": PUBLIC_INPUTS,
        "proofType": "developer",
        "nullifier": "a" * 64,
        "commitment": "b" * 64,
        "epoch": 19000,
        "dataHash": "c" * 64,
    }
    body.update(overrides)
    return body


class TestHealthEndpoint:
    """Tests for the health endpoint."""

    @pytest.mark.asyncio
    async def test_health_check(self, verifier_client: AsyncClient) -> None:
        response = await verifier_client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ok"
        assert data["circuitsLoaded"] == {"developer": True, "whale": True}
        assert data["engine"]["engine"] == "mock"
        assert data["verifier"]


class TestVerifierKeyEndpoint:
    @pytest.mark.asyncio
    async def test_public_key_only(self, verifier_client: AsyncClient) -> None:
        health = (await verifier_client.get("/health")).json()
        response = await verifier_client.get("/verifier")

        assert response.status_code == 200
        data = response.json()
        assert data["publicKey"] == health["verifier"]
        assert "message" in data
        assert "secretKey" not in data


class TestVerifyEndpoint:
    """Tests for proof submission."""

    @pytest.mark.asyncio
    async def test_valid_proof_returns_signed_attestation(
        self, verifier_client: AsyncClient
    ) -> None:
        proof = mock_proof("dev_reputation", PUBLIC_INPUTS)

        response = await verifier_client.post("/verify", json=_submission(proof))

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert "error" not in data

        attestation = SignedAttestation.model_validate(data["attestation"])
        assert attestation.result.is_valid is True
        assert attestation.result.epoch == 19000
        assert attestation.result.nullifier == "a" * 64
        assert verify_attestation(attestation) is True

    @pytest.mark.asyncio
    async def test_whale_proof(self, verifier_client: AsyncClient) -> None:
        proof = mock_proof("whale_trading", PUBLIC_INPUTS)

        response = await verifier_client.post(
            "/verify", json=_submission(proof, proofType="whale")
        )

        assert response.status_code == 200
        assert response.json()["attestation"]["result"]["proofType"] == "whale"

    @pytest.mark.asyncio
    async def test_invalid_proof_is_rejected(self, verifier_client: AsyncClient) -> None:
        response = await verifier_client.post("/verify", json=_submission(b"\x00" * 32))

        assert response.status_code == 400
        assert response.json() == {"success": False, "error": "Proof verification failed"}

    @pytest.mark.asyncio
    async def test_engine_failure_looks_like_invalid_proof(
        self,
        verifier_client: AsyncClient,
        mock_engine,
    ) -> None:
        mock_engine.fail_verification = True
        proof = mock_proof("dev_reputation", PUBLIC_INPUTS)

        response = await verifier_client.post("/verify", json=_submission(proof))

        assert response.status_code == 400
        assert response.json()["error"] == "Proof verification failed"

    @pytest.mark.asyncio
    async def test_malformed_nullifier(self, verifier_client: AsyncClient) -> None:
        response = await verifier_client.post(
            "/verify", json=_submission(b"\x01", nullifier="abc")
        )

        assert response.status_code == 400
        data = response.json()
        assert data["success"] is False
        assert data["error"].startswith("Invalid request")
        assert "Nullifier must be 64 hex characters" in data["error"]

    @pytest.mark.asyncio
    async def test_non_hex_proof_is_rejected_before_verification(
        self,
        verifier_client: AsyncClient,
        mock_engine,
    ) -> None:
        calls_before = mock_engine.verify_calls
        body = _submission(b"\x01")
        body["proof"] = "0xnot-hex"

        response = await verifier_client.post("/verify", json=body)

        assert response.status_code == 400
        assert "Proof must be an even-length hex string" in response.json()["error"]
        assert mock_engine.verify_calls == calls_before

    @pytest.mark.asyncio
    async def test_missing_fields(self, verifier_client: AsyncClient) -> None:
        response = await verifier_client.post("/verify", json={"proofType": "developer"})

        assert response.status_code == 400
        assert response.json()["error"].startswith("Invalid request")

    @pytest.mark.asyncio
    async def test_oversized_proof(self, verifier_client: AsyncClient) -> None:
        response = await verifier_client.post(
            "/verify", json=_submission(b"\x01" * 100_001)
        )

        assert response.status_code == 413
        assert response.json()["success"] is False
