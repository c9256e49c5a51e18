"""Cryptographic primitives — digests and ordered commitment trees."""

from phlopchain.crypto.digest import Digest
from phlopchain.crypto.merkle import CommitmentTree, build_commitment

__all__ = ["Digest", "CommitmentTree", "build_commitment"]
