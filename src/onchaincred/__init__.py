"""OnChainCred: deterministic on-chain credit scores with Merkle commitments."""

__version__ = "0.1.0"
