"""
VOUCH Shared Library
====================

Common code for the Vouch verifier service.

Modules:
    - config: Configuration management with Pydantic Settings
    - logging: Structured logging with structlog
    - zk: Proof verification, attestation encoding and signing

Version: 0.1.0
"""

__version__ = "0.1.0"

from shared.config import settings
from shared.logging import get_logger, setup_logging

__all__ = [
    "settings",
    "get_logger",
    "setup_logging",
    "__version__",
]
