"""
Verifier Service Routes
=======================

API route handlers for the verifier service.
"""

from services.verifier.routes import keys, verify


__all__ = ["keys", "verify"]
