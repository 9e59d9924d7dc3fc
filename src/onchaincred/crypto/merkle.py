"""Merkle commitment engine for score components.

Uses Keccak-256 over ABI-encoded pairs (see crypto.hashing) so that roots
and proofs verify unchanged in a Solidity verifier.

Construction rules:
- Leaves keep their input order. There is no sorting; leaf i is
  component i.
- A single leaf is its own root.
- An odd level is padded by duplicating its last node, at every level,
  not only the leaf level.
- Proofs follow the same padding: a node without a sibling is paired
  with itself, so every honestly generated proof reproduces the root.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from functools import lru_cache
from typing import Callable, Sequence

from onchaincred.crypto.hashing import hash_abi, hash_pair, leaf_hash, to_bytes32
from onchaincred.models.score import ScoreComponent

logger = logging.getLogger(__name__)

HashFn = Callable[[str, str], str]


class MerkleError(Exception):
    """Base class for Merkle commitment errors."""


class EmptyInputError(MerkleError, ValueError):
    """A root, tree, or depth was requested over zero leaves."""


class IndexOutOfRangeError(MerkleError, IndexError):
    """A proof was requested for a leaf index not present in the input."""


class MalformedProofError(MerkleError, ValueError):
    """A proof's siblings and indices do not line up."""


@dataclass(frozen=True)
class MerkleProof:
    """An inclusion proof for one leaf.

    ``indices[i] == 1`` means the node being folded at step i is a right
    child, so the sibling goes on the left.
    """
    leaf: str
    leaf_index: int
    siblings: tuple[str, ...]
    indices: tuple[int, ...]
    path: tuple[str, ...]  # node visited at each level, leaf first

    def to_dict(self) -> dict[str, object]:
        return {
            "leaf": self.leaf,
            "leafIndex": self.leaf_index,
            "siblings": list(self.siblings),
            "indices": list(self.indices),
            "path": list(self.path),
        }


@dataclass(frozen=True)
class ScoreTree:
    """Root, leaves, and one proof per leaf for a component list."""
    root: str
    leaves: tuple[str, ...]
    proofs: tuple[MerkleProof, ...]


class MerkleTree:
    """Stateless Merkle engine over an ordered leaf sequence.

    Usage:
        tree = MerkleTree()
        leaves = tree.build_leaves(components, user_address)
        root = tree.generate_root(leaves)
        proof = tree.generate_proof(leaves, 0)
        assert tree.verify_proof(proof.leaf, proof.siblings, root, proof.indices)
    """

    def __init__(self, hash_fn: HashFn = hash_pair) -> None:
        self._hash_fn = hash_fn

    def build_leaves(
        self,
        components: Sequence[ScoreComponent],
        user_address: str,
    ) -> list[str]:
        """Encode each component as a leaf, preserving order."""
        return [
            leaf_hash(c.name, c.leaf_score, c.max_score, user_address)
            for c in components
        ]

    def generate_root(self, leaves: Sequence[str]) -> str:
        if not leaves:
            raise EmptyInputError("Cannot generate root from empty leaves")
        levels = _build_levels(tuple(leaves), self._hash_fn)
        return levels[-1][0]

    def generate_proof(self, leaves: Sequence[str], leaf_index: int) -> MerkleProof:
        """Build the sibling path from ``leaves[leaf_index]`` to the root."""
        if not leaves:
            raise EmptyInputError("Cannot generate proof from empty leaves")
        if leaf_index < 0 or leaf_index >= len(leaves):
            raise IndexOutOfRangeError(
                f"Leaf index {leaf_index} out of range for {len(leaves)} leaves"
            )

        levels = _build_levels(tuple(leaves), self._hash_fn)
        siblings: list[str] = []
        indices: list[int] = []
        path: list[str] = []

        current = leaf_index
        for level in levels[:-1]:
            sibling_idx = current ^ 1
            if sibling_idx < len(level):
                sibling = level[sibling_idx]
            else:
                sibling = level[current]  # Duplicate
            path.append(level[current])
            siblings.append(sibling)
            indices.append(current & 1)
            current //= 2

        return MerkleProof(
            leaf=leaves[leaf_index],
            leaf_index=leaf_index,
            siblings=tuple(siblings),
            indices=tuple(indices),
            path=tuple(path),
        )

    def verify_proof(
        self,
        leaf: str,
        siblings: Sequence[str],
        root: str,
        indices: Sequence[int],
    ) -> bool:
        """Fold ``leaf`` up through ``siblings`` and compare with ``root``.

        Fails closed: malformed input (wrong types included) returns False,
        never raises.
        """
        try:
            _check_proof_shape(siblings, indices)
            current = leaf
            for sibling, is_right in zip(siblings, indices):
                if is_right == 1:
                    current = self._hash_fn(sibling, current)
                else:
                    current = self._hash_fn(current, sibling)
            return to_bytes32(current) == to_bytes32(root)
        except (ValueError, TypeError) as exc:
            logger.debug("Rejected proof: %s", exc)
            return False

    @staticmethod
    def get_tree_depth(leaf_count: int) -> int:
        """Number of proof steps for ``leaf_count`` leaves (sizing hint)."""
        if leaf_count < 1:
            raise EmptyInputError("Tree depth undefined for zero leaves")
        return math.ceil(math.log2(leaf_count))

    # ------------------------------------------------------------------
    # Score component helpers
    # ------------------------------------------------------------------

    def create_score_tree(
        self,
        components: Sequence[ScoreComponent],
        user_address: str,
    ) -> ScoreTree:
        leaves = self.build_leaves(components, user_address)
        root = self.generate_root(leaves)
        proofs = tuple(self.generate_proof(leaves, i) for i in range(len(leaves)))
        return ScoreTree(root=root, leaves=tuple(leaves), proofs=proofs)

    def verify_score_component(
        self,
        component: ScoreComponent,
        user_address: str,
        proof: MerkleProof,
        root: str,
    ) -> bool:
        """Recompute the component's leaf and verify it against ``root``."""
        leaf = leaf_hash(
            component.name, component.leaf_score, component.max_score, user_address,
        )
        return self.verify_proof(leaf, proof.siblings, root, proof.indices)


def generate_sample_leaves(count: int) -> list[str]:
    """Deterministic sample leaves: keccak(abi.encode(i, "Sample data i"))."""
    return [
        hash_abi(("uint256", "string"), [i, f"Sample data {i}"])
        for i in range(count)
    ]


def _check_proof_shape(siblings: Sequence[str], indices: Sequence[int]) -> None:
    if len(siblings) != len(indices):
        raise MalformedProofError(
            f"{len(siblings)} siblings but {len(indices)} indices"
        )
    bad = [i for i in indices if i not in (0, 1)]
    if bad:
        raise MalformedProofError(f"Proof indices must be 0 or 1, got {bad}")


@lru_cache(maxsize=256)
def _build_levels(
    leaves: tuple[str, ...],
    hash_fn: HashFn,
) -> tuple[tuple[str, ...], ...]:
    """Build every level of the tree, leaves first, root last.

    Cached on the full leaf tuple; any change to the leaves is a new key.
    """
    if len(leaves) == 1:
        return (leaves,)

    current = list(leaves)
    if len(current) % 2 == 1:
        current.append(current[-1])
    levels = [tuple(current)]

    while len(current) > 1:
        next_level: list[str] = []
        for i in range(0, len(current), 2):
            left = current[i]
            right = current[i + 1] if i + 1 < len(current) else left
            next_level.append(hash_fn(left, right))
        levels.append(tuple(next_level))
        current = next_level

    logger.debug("Built Merkle tree: %d leaves, %d levels", len(leaves), len(levels))
    return tuple(levels)
