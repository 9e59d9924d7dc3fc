"""Hash primitive shared by the Merkle engine, leaf encoder, and signer.

Everything hashed here must match Solidity byte-for-byte:

- Internal nodes: keccak256(abi.encode(bytes32 left, bytes32 right)),
  i.e. the 64-byte concatenation left‖right. Never commutative.
- Leaves: keccak256(abi.encode(string name, uint256 score,
  uint256 maxScore, address user)).

Hashes are passed around as 0x-prefixed, lowercase, 32-byte hex strings.
"""

from __future__ import annotations

from typing import Any, Sequence

from eth_abi import encode as abi_encode
from web3 import Web3

LEAF_TYPES = ("string", "uint256", "uint256", "address")
NODE_TYPES = ("bytes32", "bytes32")


def to_bytes32(value: str | bytes) -> bytes:
    """Decode a 32-byte hash from hex (with or without 0x) or raw bytes."""
    if isinstance(value, (bytes, bytearray)):
        raw = bytes(value)
    elif isinstance(value, str):
        raw = bytes.fromhex(value.removeprefix("0x"))
    else:
        raise ValueError(f"Expected hex string or bytes, got {type(value).__name__}")
    if len(raw) != 32:
        raise ValueError(f"Expected 32 bytes, got {len(raw)}")
    return raw


def keccak_hex(data: bytes) -> str:
    return Web3.to_hex(Web3.keccak(primitive=data))


def hash_abi(types: Sequence[str], values: Sequence[Any]) -> str:
    """Keccak-256 of the ABI tuple encoding of ``values``."""
    return keccak_hex(abi_encode(list(types), list(values)))


def hash_pair(left: str, right: str) -> str:
    """Hash two child nodes, left before right."""
    return hash_abi(NODE_TYPES, [to_bytes32(left), to_bytes32(right)])


def leaf_hash(name: str, score: int, max_score: int, user_address: str) -> str:
    """Leaf committing to one score component and the subject's address."""
    return hash_abi(
        LEAF_TYPES,
        [name, int(score), int(max_score), Web3.to_checksum_address(user_address)],
    )
