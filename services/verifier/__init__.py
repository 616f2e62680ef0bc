"""
Verifier Service
================

Server-side verification of client-generated zero-knowledge proofs.

This service provides:
- Proof verification against compiled Noir circuits (Barretenberg UltraHonk)
- Ed25519-signed attestations in the on-chain wire format
- The verifier public key for on-chain registration

Version: 0.1.0
"""

__version__ = "0.1.0"
