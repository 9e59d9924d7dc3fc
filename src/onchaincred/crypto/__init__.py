"""Cryptographic primitives: hashing, Merkle commitments, bundle signing."""

from onchaincred.crypto.merkle import MerkleProof, MerkleTree
from onchaincred.crypto.signer import BundleSigner, LocalKeySigner, SigningFailure

__all__ = ["BundleSigner", "LocalKeySigner", "MerkleProof", "MerkleTree", "SigningFailure"]
