"""
Logging Module
==============

Structured logging using structlog with JSON output for production
and colored console output for development.

Usage:
    from shared.logging import get_logger, setup_logging

    # Setup at application start
    setup_logging()

    # Get logger for a module
    logger = get_logger(__name__)

    # Log with context
    logger.info("proof_verified", proof_type="developer", valid=True)
    logger.error("engine_error", error=str(e), command=cmd)
"""

from shared.logging.logger import (
    bind_context,
    clear_context,
    get_logger,
    setup_logging,
)


__all__ = [
    "bind_context",
    "clear_context",
    "get_logger",
    "setup_logging",
]
