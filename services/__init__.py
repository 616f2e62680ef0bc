"""
Vouch Services
==============

Services:
- verifier: ZK proof verification and signed attestations
"""

__all__ = [
    "verifier",
]
