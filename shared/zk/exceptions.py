"""
Verification Core Errors
========================

Configuration and encoding errors propagate to the caller and abort the
operation. Engine errors raised on the verification path are absorbed by
the ProofVerifier and reported as ``is_valid=False``.
"""


class VouchError(Exception):
    """Base class for verification core errors."""


# Configuration errors (fatal at startup or on first use, never retried)


class ConfigurationError(VouchError):
    """Service is misconfigured."""


class CircuitArtifactError(ConfigurationError):
    """A compiled circuit artifact is missing or unreadable."""

    def __init__(self, proof_type: str, path: str, reason: str) -> None:
        self.proof_type = proof_type
        self.path = path
        super().__init__(f"Circuit artifact for '{proof_type}' unusable ({path}): {reason}")


class SignerConfigurationError(ConfigurationError):
    """Verifier secret key is malformed or required but absent."""


class KeyExportNotAllowedError(ConfigurationError):
    """Key export attempted from a signer not built for operational tooling."""


# Engine errors


class EngineError(VouchError):
    """The proving engine failed."""


class EngineInitializationError(EngineError):
    """The shared proving engine could not be started."""


class EngineCommandError(EngineError):
    """An engine command exited abnormally."""

    def __init__(self, command: str, returncode: int | None, stderr: str = "") -> None:
        self.command = command
        self.returncode = returncode
        self.stderr = stderr
        detail = stderr.strip().splitlines()[-1] if stderr.strip() else "no output"
        super().__init__(f"{command} failed (exit {returncode}): {detail}")


# Encoding errors (raised synchronously before any signing)


class AttestationEncodingError(VouchError, ValueError):
    """A field cannot be encoded into the attestation layout."""


class UnsupportedFormatError(AttestationEncodingError):
    """No encoder is registered for the requested format version."""
