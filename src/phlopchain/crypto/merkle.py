"""Commitment tree — ordered binary hash tree with inclusion proofs.

Leaves keep insertion order (the tree commits to a sequence, not a set).
When a level has an odd number of nodes, the last node is paired with
itself. Proof generation uses the same rule, so a proof carries the node's
own digest as its sibling at such a level.
"""

from __future__ import annotations

from typing import Iterable, Optional

from phlopchain.crypto.digest import Digest


# Root committed by a block with no transactions.
EMPTY_COMMITMENT = Digest.hash_text("empty")


class CommitmentTree:
    """A SHA-256 commitment tree over an ordered list of digests.

    Usage:
        tree = CommitmentTree()
        tree.add_leaf(Digest.hash_text("tx1"))
        tree.add_leaf(Digest.hash_text("tx2"))
        tree.build()
        root = tree.get_root()
        proof = tree.get_proof(0)
        assert tree.verify_proof(Digest.hash_text("tx1"), proof, 0)
    """

    def __init__(self) -> None:
        self._leaves: list[Digest] = []
        self._levels: list[list[Digest]] = []
        self._root: Optional[Digest] = None

    @classmethod
    def from_leaves(cls, leaves: Iterable[Digest]) -> CommitmentTree:
        """Build a tree over pre-hashed leaves."""
        tree = cls()
        for leaf in leaves:
            tree.add_leaf(leaf)
        tree.build()
        return tree

    @classmethod
    def from_data(cls, items: Iterable[str]) -> CommitmentTree:
        """Build a tree over the hashes of string items."""
        return cls.from_leaves(Digest.hash_text(item) for item in items)

    def add_leaf(self, leaf: Digest) -> None:
        """Append a leaf. Invalidates the root until the next build()."""
        self._leaves.append(leaf)
        self._root = None

    def __len__(self) -> int:
        return len(self._leaves)

    @property
    def is_empty(self) -> bool:
        return not self._leaves

    @property
    def leaves(self) -> list[Digest]:
        return list(self._leaves)

    def build(self) -> Optional[Digest]:
        """Recompute every level bottom-up and cache the root.

        Returns the root, or None for an empty tree.
        """
        self._levels = []
        if not self._leaves:
            self._root = None
            return None

        current_level = list(self._leaves)
        while len(current_level) > 1:
            next_level: list[Digest] = []
            for i in range(0, len(current_level), 2):
                left = current_level[i]
                right = current_level[_pair_index(i, len(current_level))]
                next_level.append(left.combine(right))
            self._levels.append(current_level)
            current_level = next_level

        self._levels.append(current_level)
        self._root = current_level[0]
        return self._root

    def get_root(self) -> Optional[Digest]:
        """Return the root cached by the last build(), if still valid."""
        return self._root

    def get_proof(self, index: int) -> Optional[list[Digest]]:
        """Return sibling digests from leaf level up to (not including) the root.

        Returns None if index is out of range or the tree is not built.
        """
        if self._root is None or not 0 <= index < len(self._leaves):
            return None

        proof: list[Digest] = []
        current_index = index
        for level in self._levels[:-1]:
            proof.append(level[_sibling_index(current_index, len(level))])
            current_index //= 2
        return proof

    def verify_proof(self, leaf: Digest, proof: list[Digest], index: int) -> bool:
        """Fold proof against leaf and compare with the stored root."""
        if self._root is None:
            return False
        return root_from_proof(leaf, proof, index) == self._root


def root_from_proof(leaf: Digest, proof: Iterable[Digest], index: int) -> Digest:
    """Recompute a candidate root from a leaf and its sibling path."""
    current = leaf
    for sibling in proof:
        if index % 2 == 0:
            current = current.combine(sibling)
        else:
            current = sibling.combine(current)
        index //= 2
    return current


def build_commitment(items: Iterable[Digest]) -> Optional[Digest]:
    """Root of a commitment tree over ordered digests, or None if empty."""
    return CommitmentTree.from_leaves(items).get_root()


def _pair_index(left_index: int, level_size: int) -> int:
    """Right partner of an even-indexed node; itself when unpaired."""
    right = left_index + 1
    return right if right < level_size else left_index


def _sibling_index(index: int, level_size: int) -> int:
    if index % 2 == 1:
        return index - 1
    return _pair_index(index, level_size)
