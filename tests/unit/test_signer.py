"""
Unit tests for attestation signing.
"""

import json

import base58
import pytest

from shared.zk.attestation import AttestationFormat, build_message
from shared.zk.exceptions import (
    AttestationEncodingError,
    KeyExportNotAllowedError,
    SignerConfigurationError,
)
from shared.zk.models import ProofType, SignedAttestation, VerificationResult
from shared.zk.signer import AttestationSigner, VerifierKeypair, decode_secret, verify_attestation
from tests.conftest import TEST_SEED


class TestSignAndVerify:
    """Tests for the sign / verify round trip."""

    def test_round_trip(self, signer: AttestationSigner, sample_result: VerificationResult) -> None:
        attestation = signer.sign(sample_result)

        assert signer.verify_signature(attestation) is True
        assert attestation.format_version == 2
        assert attestation.verifier == signer.public_key

    def test_signature_is_64_bytes(
        self, signer: AttestationSigner, sample_result: VerificationResult
    ) -> None:
        attestation = signer.sign(sample_result)

        assert len(base58.b58decode(attestation.signature)) == 64

    def test_signing_is_deterministic(
        self, signer: AttestationSigner, sample_result: VerificationResult
    ) -> None:
        assert signer.sign(sample_result) == signer.sign(sample_result)

    def test_same_key_reproduces_attestation(self, sample_result: VerificationResult) -> None:
        secret = json.dumps(list(TEST_SEED))
        first = AttestationSigner(secret=secret).sign(sample_result)
        second = AttestationSigner(secret=secret).sign(sample_result)

        assert first.signature == second.signature

    def test_attestation_hash_matches_message(
        self, signer: AttestationSigner, sample_result: VerificationResult
    ) -> None:
        attestation = signer.sign(sample_result)

        assert attestation.attestation_hash == build_message(sample_result).attestation_hash_hex

    @pytest.mark.parametrize(
        "update",
        [
            {"epoch": 43},
            {"nullifier": "d" * 64},
            {"data_hash": "e" * 64},
            {"proof_type": ProofType.WHALE},
            {"is_valid": False},
            {"verified_at": 1_700_000_000_001},
        ],
    )
    def test_tampered_result_fails(
        self,
        signer: AttestationSigner,
        sample_result: VerificationResult,
        update: dict,
    ) -> None:
        attestation = signer.sign(sample_result)
        tampered = attestation.model_copy(
            update={"result": attestation.result.model_copy(update=update)}
        )

        assert signer.verify_signature(tampered) is False

    def test_tampered_attestation_hash_fails(
        self, signer: AttestationSigner, sample_result: VerificationResult
    ) -> None:
        attestation = signer.sign(sample_result)
        tampered = attestation.model_copy(update={"attestation_hash": "00" * 32})

        assert verify_attestation(tampered) is False

    def test_other_verifier_key_fails(
        self, signer: AttestationSigner, sample_result: VerificationResult
    ) -> None:
        attestation = signer.sign(sample_result)
        other = AttestationSigner().public_key
        forged = attestation.model_copy(update={"verifier": other})

        assert verify_attestation(forged) is False

    def test_garbage_signature_fails(
        self, signer: AttestationSigner, sample_result: VerificationResult
    ) -> None:
        attestation = signer.sign(sample_result)

        assert verify_attestation(attestation.model_copy(update={"signature": "0OIl"})) is False
        assert verify_attestation(attestation.model_copy(update={"verifier": "abc"})) is False

    def test_malformed_nullifier_rejected_before_signing(
        self, signer: AttestationSigner, sample_result: VerificationResult
    ) -> None:
        short = sample_result.model_copy(update={"nullifier": "a" * 63})

        with pytest.raises(AttestationEncodingError, match="got 63"):
            signer.sign(short)

    def test_developer_scenario_via_json(
        self, signer: AttestationSigner, sample_result: VerificationResult
    ) -> None:
        """Encode, sign, serialize, decode, verify; then flip validity."""
        attestation = signer.sign(sample_result)
        wire = attestation.model_dump_json(by_alias=True)

        decoded = SignedAttestation.model_validate_json(wire)
        assert verify_attestation(decoded) is True

        payload = json.loads(wire)
        payload["result"]["isValid"] = False
        flipped = SignedAttestation.model_validate(payload)
        assert verify_attestation(flipped) is False

    def test_wire_names_are_camel_case(
        self, signer: AttestationSigner, sample_result: VerificationResult
    ) -> None:
        payload = json.loads(signer.sign(sample_result).model_dump_json(by_alias=True))

        assert set(payload) == {"result", "verifier", "signature", "attestationHash", "formatVersion"}
        assert payload["result"]["dataHash"] == "c" * 64
        assert payload["result"]["verifiedAt"] == 1_700_000_000_000


class TestFormatVersions:
    """Tests for signing under older formats."""

    def test_v1_round_trip(self, signer: AttestationSigner, sample_result: VerificationResult) -> None:
        attestation = signer.sign(sample_result, AttestationFormat.V1)

        assert attestation.format_version == 1
        assert verify_attestation(attestation) is True

    def test_version_tag_is_bound(
        self, signer: AttestationSigner, sample_result: VerificationResult
    ) -> None:
        attestation = signer.sign(sample_result, AttestationFormat.V1)
        relabelled = attestation.model_copy(update={"format_version": 2})

        assert verify_attestation(relabelled) is False

    def test_unknown_version_fails_verification(
        self, signer: AttestationSigner, sample_result: VerificationResult
    ) -> None:
        attestation = signer.sign(sample_result).model_copy(update={"format_version": 7})

        assert verify_attestation(attestation) is False


class TestKeyLoading:
    """Tests for loading the verifier keypair."""

    def test_initialize_is_idempotent(self) -> None:
        signer = AttestationSigner()

        assert signer.initialize() is signer.initialize()
        assert signer.is_ephemeral is True

    def test_loads_base58_secret_key(self) -> None:
        keypair = VerifierKeypair.from_secret_bytes(TEST_SEED)
        secret = base58.b58encode(keypair.secret_bytes()).decode()

        signer = AttestationSigner(secret=secret)

        assert signer.public_key == keypair.public_key_base58
        assert signer.is_ephemeral is False

    def test_loads_json_secret_key(self) -> None:
        keypair = VerifierKeypair.from_secret_bytes(TEST_SEED)
        secret = json.dumps(list(keypair.secret_bytes()))

        assert AttestationSigner(secret=secret).public_key == keypair.public_key_base58

    def test_loads_32_byte_seed(self) -> None:
        secret = base58.b58encode(TEST_SEED).decode()
        keypair = VerifierKeypair.from_secret_bytes(TEST_SEED)

        assert AttestationSigner(secret=secret).public_key == keypair.public_key_base58

    def test_mismatched_public_half_rejected(self) -> None:
        secret = TEST_SEED + b"\x00" * 32

        with pytest.raises(SignerConfigurationError, match="does not match"):
            AttestationSigner(secret=json.dumps(list(secret))).initialize()

    def test_undecodable_secret_is_fatal(self) -> None:
        with pytest.raises(SignerConfigurationError):
            AttestationSigner(secret="not-a-key!").initialize()

    def test_wrong_length_json_is_fatal(self) -> None:
        with pytest.raises(SignerConfigurationError, match="bytes"):
            AttestationSigner(secret="[1, 2, 3]").initialize()

    def test_json_must_hold_bytes(self) -> None:
        with pytest.raises(SignerConfigurationError):
            decode_secret("[1, 2, 300]")

    def test_missing_secret_without_ephemeral(self) -> None:
        with pytest.raises(SignerConfigurationError, match="must be set"):
            AttestationSigner(allow_ephemeral=False).initialize()

    def test_repr_hides_secret(self) -> None:
        keypair = VerifierKeypair.from_secret_bytes(TEST_SEED)
        secret = base58.b58encode(keypair.secret_bytes()).decode()
        signer = AttestationSigner(secret=secret)
        signer.initialize()

        assert secret not in repr(signer)
        assert "private_key" not in repr(keypair)


class TestKeyExport:
    """Tests for guarded key export."""

    def test_export_blocked_by_default(self, signer: AttestationSigner) -> None:
        with pytest.raises(KeyExportNotAllowedError):
            signer.export_keypair()

    def test_export_round_trips(self) -> None:
        exporter = AttestationSigner(secret=json.dumps(list(TEST_SEED)), allow_export=True)
        exported = exporter.export_keypair()

        reloaded = AttestationSigner(secret=exported["secretKey"])
        assert reloaded.public_key == exported["publicKey"]
        assert len(base58.b58decode(exported["secretKey"])) == 64
