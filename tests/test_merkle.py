"""Tests for the Merkle commitment engine: proves build/prove/verify agree."""

import pytest
from web3 import Web3

from onchaincred.crypto.hashing import hash_pair, to_bytes32
from onchaincred.crypto.merkle import (
    EmptyInputError,
    IndexOutOfRangeError,
    MerkleTree,
    generate_sample_leaves,
)
from onchaincred.models.events import EventCategory
from onchaincred.models.score import ScoreComponent

USER = "0xf39Fd6e51aad88F6F4ce6aB8827279cffFb92266"


@pytest.fixture
def tree() -> MerkleTree:
    return MerkleTree()


def _h(n: int) -> str:
    """Generate a deterministic test hash."""
    return f"0x{n:064x}"


def _components() -> list[ScoreComponent]:
    return [
        ScoreComponent("Repayment History", EventCategory.LENDING, 350.0, 0.40, "r", 400),
        ScoreComponent("Staking Behavior", EventCategory.STAKING, 120.5, 0.25, "s", 250),
        ScoreComponent("Transaction Activity", EventCategory.TRANSACTION, 80.0, 0.20, "a", 200),
        ScoreComponent("Social Attestations", EventCategory.ATTESTATION, 40.0, 0.10, "t", 100),
        ScoreComponent("Risk Assessment", EventCategory.RISK, 15.0, 0.05, "k", 50),
    ]


class TestGenerateRoot:
    def test_empty_leaves_rejected(self, tree: MerkleTree) -> None:
        with pytest.raises(EmptyInputError):
            tree.generate_root([])

    def test_single_leaf_is_root(self, tree: MerkleTree) -> None:
        assert tree.generate_root([_h(1)]) == _h(1)

    def test_two_leaves(self, tree: MerkleTree) -> None:
        assert tree.generate_root([_h(1), _h(2)]) == hash_pair(_h(1), _h(2))

    def test_order_matters(self, tree: MerkleTree) -> None:
        """No sorting: leaf order is part of the commitment."""
        assert tree.generate_root([_h(1), _h(2)]) != tree.generate_root([_h(2), _h(1)])

    def test_odd_leaf_padding(self, tree: MerkleTree) -> None:
        a, b, c = _h(1), _h(2), _h(3)
        assert tree.generate_root([a, b, c]) == tree.generate_root([a, b, c, c])

    def test_three_leaves_explicit(self, tree: MerkleTree) -> None:
        a, b, c = _h(1), _h(2), _h(3)
        expected = hash_pair(hash_pair(a, b), hash_pair(c, c))
        assert tree.generate_root([a, b, c]) == expected

    def test_odd_inner_level_duplicated(self, tree: MerkleTree) -> None:
        """Six leaves give a three-node level, whose last node pairs with itself."""
        leaves = [_h(i) for i in range(6)]
        n0 = hash_pair(leaves[0], leaves[1])
        n1 = hash_pair(leaves[2], leaves[3])
        n2 = hash_pair(leaves[4], leaves[5])
        expected = hash_pair(hash_pair(n0, n1), hash_pair(n2, n2))
        assert tree.generate_root(leaves) == expected

    def test_deterministic(self, tree: MerkleTree) -> None:
        leaves = generate_sample_leaves(7)
        assert tree.generate_root(leaves) == MerkleTree().generate_root(list(leaves))

    def test_different_leaves_different_roots(self, tree: MerkleTree) -> None:
        assert tree.generate_root([_h(1), _h(2)]) != tree.generate_root([_h(1), _h(3)])


class TestHashPrimitive:
    def test_pair_hash_is_keccak_of_concatenation(self) -> None:
        left, right = _h(0xAA), _h(0xBB)
        expected = Web3.to_hex(Web3.keccak(to_bytes32(left) + to_bytes32(right)))
        assert hash_pair(left, right) == expected

    def test_pair_hash_not_commutative(self) -> None:
        assert hash_pair(_h(1), _h(2)) != hash_pair(_h(2), _h(1))

    @pytest.mark.parametrize("value", [None, 7, [b"\x00" * 32]])
    def test_to_bytes32_rejects_non_hash_types(self, value) -> None:
        with pytest.raises(ValueError, match="hex string or bytes"):
            to_bytes32(value)

    def test_swappable_hash_function(self) -> None:
        calls: list[tuple[str, str]] = []

        def recording_hash(left: str, right: str) -> str:
            calls.append((left, right))
            return hash_pair(left, right)

        tree = MerkleTree(hash_fn=recording_hash)
        tree.generate_root([_h(10), _h(11), _h(12), _h(13)])
        assert (_h(10), _h(11)) in calls


class TestGenerateProof:
    def test_index_out_of_range(self, tree: MerkleTree) -> None:
        with pytest.raises(IndexOutOfRangeError):
            tree.generate_proof([_h(1), _h(2)], 2)

    def test_negative_index_rejected(self, tree: MerkleTree) -> None:
        with pytest.raises(IndexOutOfRangeError):
            tree.generate_proof([_h(1), _h(2)], -1)

    def test_empty_leaves_rejected(self, tree: MerkleTree) -> None:
        with pytest.raises(EmptyInputError):
            tree.generate_proof([], 0)

    def test_index_error_is_catchable_as_index_error(self, tree: MerkleTree) -> None:
        with pytest.raises(IndexError):
            tree.generate_proof([_h(1)], 5)

    def test_proof_shape(self, tree: MerkleTree) -> None:
        leaves = [_h(i) for i in range(4)]
        proof = tree.generate_proof(leaves, 2)
        assert proof.leaf == leaves[2]
        assert proof.leaf_index == 2
        assert proof.siblings[0] == leaves[3]
        assert proof.indices == (0, 1)
        assert proof.path[0] == leaves[2]
        assert len(proof.siblings) == tree.get_tree_depth(4)

    def test_right_child_index_bit(self, tree: MerkleTree) -> None:
        proof = tree.generate_proof([_h(1), _h(2)], 1)
        assert proof.siblings == (_h(1),)
        assert proof.indices == (1,)

    def test_single_leaf_proof_is_empty(self, tree: MerkleTree) -> None:
        proof = tree.generate_proof([_h(1)], 0)
        assert proof.siblings == ()
        assert tree.verify_proof(_h(1), proof.siblings, _h(1), proof.indices)

    def test_three_leaf_first_index_verifies(self, tree: MerkleTree) -> None:
        leaves = [_h(1), _h(2), _h(3)]
        proof = tree.generate_proof(leaves, 0)
        root = tree.generate_root(leaves)
        assert tree.verify_proof(leaves[0], proof.siblings, root, proof.indices)

    def test_last_leaf_of_odd_set_pairs_with_itself(self, tree: MerkleTree) -> None:
        leaves = [_h(1), _h(2), _h(3)]
        proof = tree.generate_proof(leaves, 2)
        assert proof.siblings[0] == leaves[2]
        assert proof.indices[0] == 0

    @pytest.mark.parametrize("count", [1, 2, 3, 5, 6, 7, 8, 11])
    def test_round_trip_every_index(self, tree: MerkleTree, count: int) -> None:
        leaves = generate_sample_leaves(count)
        root = tree.generate_root(leaves)
        for i in range(count):
            proof = tree.generate_proof(leaves, i)
            assert tree.verify_proof(leaves[i], proof.siblings, root, proof.indices), i

    def test_to_dict(self, tree: MerkleTree) -> None:
        proof = tree.generate_proof([_h(1), _h(2)], 0)
        data = proof.to_dict()
        assert data["leafIndex"] == 0
        assert data["siblings"] == [_h(2)]
        assert data["indices"] == [0]


class TestVerifyProof:
    def test_mismatched_lengths_fail_closed(self, tree: MerkleTree) -> None:
        leaves = [_h(1), _h(2), _h(3), _h(4)]
        root = tree.generate_root(leaves)
        proof = tree.generate_proof(leaves, 0)
        assert tree.verify_proof(leaves[0], proof.siblings, root, [0]) is False

    def test_non_binary_index_fails_closed(self, tree: MerkleTree) -> None:
        leaves = [_h(1), _h(2)]
        root = tree.generate_root(leaves)
        assert tree.verify_proof(leaves[0], [leaves[1]], root, [2]) is False

    def test_malformed_hex_fails_closed(self, tree: MerkleTree) -> None:
        assert tree.verify_proof("0xzz", [_h(2)], _h(3), [0]) is False

    def test_wrong_leaf_rejected(self, tree: MerkleTree) -> None:
        leaves = [_h(1), _h(2), _h(3), _h(4)]
        root = tree.generate_root(leaves)
        proof = tree.generate_proof(leaves, 0)
        assert not tree.verify_proof(_h(99), proof.siblings, root, proof.indices)

    def test_wrong_position_rejected(self, tree: MerkleTree) -> None:
        leaves = [_h(1), _h(2), _h(3), _h(4)]
        root = tree.generate_root(leaves)
        proof = tree.generate_proof(leaves, 0)
        flipped = [1 - i for i in proof.indices]
        assert not tree.verify_proof(leaves[0], proof.siblings, root, flipped)

    def test_tampered_sibling_rejected(self, tree: MerkleTree) -> None:
        leaves = generate_sample_leaves(5)
        root = tree.generate_root(leaves)
        proof = tree.generate_proof(leaves, 3)
        siblings = list(proof.siblings)
        siblings[1] = _h(0)
        assert not tree.verify_proof(leaves[3], siblings, root, proof.indices)

    def test_root_comparison_ignores_hex_case(self, tree: MerkleTree) -> None:
        leaves = generate_sample_leaves(4)
        root = tree.generate_root(leaves)
        proof = tree.generate_proof(leaves, 1)
        upper_root = "0x" + root[2:].upper()
        assert tree.verify_proof(leaves[1], proof.siblings, upper_root, proof.indices)

    @pytest.mark.parametrize("bad", [None, 0, 12345, 1.5])
    def test_non_hash_sibling_fails_closed(self, tree: MerkleTree, bad) -> None:
        leaves = generate_sample_leaves(4)
        root = tree.generate_root(leaves)
        assert tree.verify_proof(leaves[0], [bad, leaves[2]], root, [0, 0]) is False

    @pytest.mark.parametrize("bad", [None, 0, ["0x00"]])
    def test_non_hash_root_fails_closed(self, tree: MerkleTree, bad) -> None:
        leaves = generate_sample_leaves(4)
        proof = tree.generate_proof(leaves, 0)
        assert tree.verify_proof(leaves[0], proof.siblings, bad, proof.indices) is False

    def test_non_hash_leaf_fails_closed(self, tree: MerkleTree) -> None:
        leaves = generate_sample_leaves(1)
        assert tree.verify_proof(None, [], leaves[0], []) is False

    def test_missing_siblings_fails_closed(self, tree: MerkleTree) -> None:
        leaves = generate_sample_leaves(2)
        root = tree.generate_root(leaves)
        assert tree.verify_proof(leaves[0], None, root, [0]) is False


class TestTreeDepth:
    @pytest.mark.parametrize(
        "count,depth", [(1, 0), (2, 1), (3, 2), (4, 2), (5, 3), (8, 3), (9, 4)],
    )
    def test_depth(self, count: int, depth: int) -> None:
        assert MerkleTree.get_tree_depth(count) == depth

    def test_zero_leaves_rejected(self) -> None:
        with pytest.raises(EmptyInputError):
            MerkleTree.get_tree_depth(0)


class TestScoreTree:
    def test_build_leaves_preserves_order(self, tree: MerkleTree) -> None:
        components = _components()
        leaves = tree.build_leaves(components, USER)
        assert len(leaves) == 5
        reversed_leaves = tree.build_leaves(list(reversed(components)), USER)
        assert reversed_leaves == list(reversed(leaves))

    def test_leaves_bind_user_address(self, tree: MerkleTree) -> None:
        other = "0x70997970C51812dc3A010C7d01b50e0d17dc79C8"
        assert tree.build_leaves(_components(), USER) != tree.build_leaves(_components(), other)

    def test_leaves_accept_lowercase_address(self, tree: MerkleTree) -> None:
        assert tree.build_leaves(_components(), USER) == tree.build_leaves(
            _components(), USER.lower(),
        )

    def test_build_leaves_deterministic(self, tree: MerkleTree) -> None:
        assert tree.build_leaves(_components(), USER) == tree.build_leaves(_components(), USER)

    def test_create_score_tree(self, tree: MerkleTree) -> None:
        score_tree = tree.create_score_tree(_components(), USER)
        assert score_tree.root == tree.generate_root(list(score_tree.leaves))
        assert len(score_tree.proofs) == 5
        for leaf, proof in zip(score_tree.leaves, score_tree.proofs):
            assert tree.verify_proof(leaf, proof.siblings, score_tree.root, proof.indices)

    def test_verify_score_component(self, tree: MerkleTree) -> None:
        components = _components()
        score_tree = tree.create_score_tree(components, USER)
        for component, proof in zip(components, score_tree.proofs):
            assert tree.verify_score_component(component, USER, proof, score_tree.root)

    def test_altered_component_rejected(self, tree: MerkleTree) -> None:
        components = _components()
        score_tree = tree.create_score_tree(components, USER)
        forged = ScoreComponent(
            "Repayment History", EventCategory.LENDING, 400.0, 0.40, "r", 400,
        )
        assert not tree.verify_score_component(forged, USER, score_tree.proofs[0], score_tree.root)


class TestSampleLeaves:
    def test_count_and_uniqueness(self) -> None:
        leaves = generate_sample_leaves(6)
        assert len(leaves) == 6
        assert len(set(leaves)) == 6

    def test_deterministic(self) -> None:
        assert generate_sample_leaves(3) == generate_sample_leaves(3)
