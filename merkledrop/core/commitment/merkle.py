"""
Merkle Tree for reward-list commitment.

Conceptual Background:
---------------------
A Merkle tree lets a distributor commit to an entire reward list with a single
32-byte root, while each recipient later proves membership of their leaf with
a short list of sibling hashes.

Construction policy (must be identical for generation and any regeneration):
- Leaves are paired left-to-right in *input order* (leaves are not sorted)
- Each pair is combined as keccak256(min(a, b) || max(a, b))
- An unpaired last node is carried up to the next level unchanged
  (the final leaf is never duplicated)

Because pairs are sorted before hashing, a proof is just the list of siblings;
no left/right bit is needed. The root still depends on leaf order: reordering
the same entries can produce a different root.

This matches merkletreejs with `sortPairs: true`.

Properties:
----------
- Build: O(n)
- Root: O(1) (levels kept after build)
- Prove: O(log n)
- Verify: O(log n), pure, no shared state
"""

from typing import Iterable, List, Sequence

from merkledrop.core.errors import EmptyTreeError
from merkledrop.crypto import keccak256, bytes_to_hex
from merkledrop.utils.validation import MAX_HASH_SIZE, validate_hash, validate_proof


# =============================================================================
# Hashing Rule
# =============================================================================


def hash_pair(a: bytes, b: bytes) -> bytes:
    """Hash two nodes together, smaller one first."""
    if a <= b:
        return keccak256(a + b)
    return keccak256(b + a)


# =============================================================================
# Merkle Tree
# =============================================================================


class MerkleTree:
    """
    Immutable binary Merkle tree over an ordered list of 32-byte leaves.

    Attributes:
        leaves: Leaves in input order
        levels: levels[0] is the leaf level, levels[-1] == [root]
    """

    def __init__(self, leaves: Iterable[bytes]):
        """
        Build the tree.

        Args:
            leaves: 32-byte leaf hashes, in the order they are committed

        Raises:
            EmptyTreeError: if no leaves are given
            ValueError: if a leaf is not 32 bytes
        """
        self.leaves: List[bytes] = list(leaves)
        if not self.leaves:
            raise EmptyTreeError()

        for i, leaf in enumerate(self.leaves):
            if not isinstance(leaf, (bytes, bytearray)) or len(leaf) != MAX_HASH_SIZE:
                raise ValueError(f"Leaf {i} must be 32 bytes")

        self.levels: List[List[bytes]] = self._build_levels(self.leaves)

    @staticmethod
    def _build_levels(leaves: List[bytes]) -> List[List[bytes]]:
        """Hash from leaves up, carrying odd nodes."""
        levels = [list(leaves)]
        layer = levels[0]

        while len(layer) > 1:
            next_layer = []
            for i in range(0, len(layer), 2):
                if i + 1 < len(layer):
                    next_layer.append(hash_pair(layer[i], layer[i + 1]))
                else:
                    next_layer.append(layer[i])
            levels.append(next_layer)
            layer = next_layer

        return levels

    def root(self) -> bytes:
        """
        Get the Merkle root.

        Returns:
            32-byte root hash
        """
        return self.levels[-1][0]

    def hex_root(self) -> str:
        return bytes_to_hex(self.root())

    @property
    def depth(self) -> int:
        """Number of hashing levels above the leaves."""
        return len(self.levels) - 1

    def prove(self, leaf_index: int) -> List[bytes]:
        """
        Generate the authentication path for a leaf.

        Args:
            leaf_index: Index of the leaf in input order

        Returns:
            Sibling hashes from the leaf level upwards. Levels where the
            node was carried up without a sibling contribute nothing.
        """
        if not 0 <= leaf_index < len(self.leaves):
            raise IndexError(f"Leaf index {leaf_index} out of range")

        proof = []
        idx = leaf_index

        for layer in self.levels[:-1]:
            sibling_idx = idx ^ 1
            if sibling_idx < len(layer):
                proof.append(layer[sibling_idx])
            idx //= 2

        return proof

    def prove_leaf(self, leaf: bytes) -> List[bytes]:
        """
        Generate the proof for the first occurrence of a leaf value.

        Raises:
            ValueError: if the leaf is not in the tree
        """
        try:
            index = self.leaves.index(leaf)
        except ValueError:
            raise ValueError(f"Leaf {bytes_to_hex(leaf)} not in tree") from None
        return self.prove(index)

    def hex_proof(self, leaf_index: int) -> List[str]:
        return [bytes_to_hex(sibling) for sibling in self.prove(leaf_index)]

    @classmethod
    def verify(cls, leaf: bytes, proof: Sequence[bytes], root: bytes) -> bool:
        """Verify a Merkle proof. See verify_proof."""
        return verify_proof(leaf, proof, root)

    def __len__(self) -> int:
        return len(self.leaves)

    def __contains__(self, leaf: bytes) -> bool:
        return leaf in self.leaves

    def get_leaf(self, index: int) -> bytes:
        """Get leaf at index."""
        return self.leaves[index]

    def __repr__(self) -> str:
        return f"MerkleTree(leaves={len(self.leaves)}, root={self.hex_root()[:10]}...)"


# =============================================================================
# Verification
# =============================================================================


def process_proof(leaf: bytes, proof: Sequence[bytes]) -> bytes:
    """Fold a proof over a leaf and return the implied root."""
    current = leaf
    for sibling in proof:
        current = hash_pair(current, sibling)
    return current


def verify_proof(leaf: bytes, proof: Sequence[bytes], root: bytes) -> bool:
    """
    Verify a Merkle proof.

    Malformed input (wrong lengths, non-bytes) verifies as False.

    Args:
        leaf: The 32-byte leaf being proven
        proof: Sibling hashes, leaf level first
        root: Expected root hash

    Returns:
        True if the proof hashes up to root
    """
    proof = list(proof)
    if not validate_proof(proof)[0]:
        return False
    if not (validate_hash(leaf)[0] and validate_hash(root)[0]):
        return False

    return process_proof(bytes(leaf), [bytes(p) for p in proof]) == bytes(root)
