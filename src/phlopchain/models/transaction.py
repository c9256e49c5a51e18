"""Transaction and block envelopes.

A block commits to its transactions through a commitment tree over the
transaction hashes. Its own hash covers index, timestamp, previous hash,
commitment root and, once sealed, the mining result's rounds and games.
"""

from __future__ import annotations

import json
import time
from dataclasses import dataclass, field
from typing import Any, Optional

from phlopchain.crypto.digest import Digest
from phlopchain.crypto.merkle import EMPTY_COMMITMENT, CommitmentTree
from phlopchain.mining.miner import Miner, MiningResult


GENESIS_PREVIOUS_HASH = Digest.hash_text("genesis")


def _now() -> int:
    return int(time.time())


@dataclass(frozen=True)
class Transaction:
    """A value transfer between two accounts. The hash covers every field.

    Amounts are non-negative; a zero-amount transfer is valid.
    """
    sender: str
    receiver: str
    amount: int
    nonce: int
    timestamp: int
    hash: Digest

    @staticmethod
    def create(
        sender: str,
        receiver: str,
        amount: int,
        nonce: int,
        timestamp: Optional[int] = None,
    ) -> Transaction:
        """Create a transaction with computed hash."""
        ts = _now() if timestamp is None else timestamp
        return Transaction(
            sender=sender,
            receiver=receiver,
            amount=amount,
            nonce=nonce,
            timestamp=ts,
            hash=_transaction_hash(sender, receiver, amount, nonce, ts),
        )

    def calculate_hash(self) -> Digest:
        return _transaction_hash(
            self.sender, self.receiver, self.amount, self.nonce, self.timestamp
        )

    def is_valid(self) -> bool:
        return (
            self.hash == self.calculate_hash()
            and self.amount >= 0
            and bool(self.sender)
            and bool(self.receiver)
            and self.sender != self.receiver
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "from": self.sender,
            "to": self.receiver,
            "amount": self.amount,
            "nonce": self.nonce,
            "timestamp": self.timestamp,
            "hash": self.hash.to_hex(),
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), sort_keys=True)


def _transaction_hash(
    sender: str, receiver: str, amount: int, nonce: int, timestamp: int
) -> Digest:
    return Digest.hash_text(f"{sender}{receiver}{amount}{nonce}{timestamp}")


def commitment_root(transactions: list[Transaction]) -> Digest:
    """Commitment over transaction hashes; EMPTY_COMMITMENT for none."""
    if not transactions:
        return EMPTY_COMMITMENT
    root = CommitmentTree.from_leaves(tx.hash for tx in transactions).get_root()
    return root if root is not None else EMPTY_COMMITMENT


@dataclass
class Block:
    """A chain block. Mutable only while it is being sealed."""
    index: int
    timestamp: int
    transactions: list[Transaction]
    previous_hash: Digest
    merkle_root: Digest
    hash: Digest
    mining_result: Optional[MiningResult] = field(default=None)

    @staticmethod
    def create(
        index: int,
        transactions: list[Transaction],
        previous_hash: Digest,
        timestamp: Optional[int] = None,
    ) -> Block:
        """Create an unsealed block with computed commitment root and hash."""
        block = Block(
            index=index,
            timestamp=_now() if timestamp is None else timestamp,
            transactions=list(transactions),
            previous_hash=previous_hash,
            merkle_root=commitment_root(transactions),
            hash=EMPTY_COMMITMENT,
        )
        block.hash = block.calculate_hash()
        return block

    @staticmethod
    def genesis(timestamp: Optional[int] = None) -> Block:
        return Block.create(0, [], GENESIS_PREVIOUS_HASH, timestamp=timestamp)

    def mining_payload(self) -> str:
        """Block descriptor fed to the miner."""
        return (
            f"{self.index}{self.timestamp}"
            f"{self.previous_hash.to_hex()}{self.merkle_root.to_hex()}"
        )

    def calculate_hash(self) -> Digest:
        if self.mining_result is not None:
            seal_tag = f"{self.mining_result.rounds}:{self.mining_result.total_games}"
        else:
            seal_tag = "pending"
        return Digest.hash_text(f"{self.mining_payload()}{seal_tag}")

    def seal(self, miner: Miner) -> MiningResult:
        """Seal this block with the miner and recompute its hash.

        Propagates MiningTimeoutError; the block is left unsealed.
        """
        result = miner.seal(self.mining_payload())
        self.mining_result = result
        self.hash = self.calculate_hash()
        return result

    def is_valid(self, previous: Optional[Block] = None) -> bool:
        if self.hash != self.calculate_hash():
            return False
        if self.merkle_root != commitment_root(self.transactions):
            return False

        if previous is not None:
            if self.previous_hash != previous.hash:
                return False
            if self.index != previous.index + 1:
                return False
        elif self.index != 0:
            return False

        return all(tx.is_valid() for tx in self.transactions)

    def _tree(self) -> CommitmentTree:
        return CommitmentTree.from_leaves(tx.hash for tx in self.transactions)

    def transaction_proof(self, tx_index: int) -> Optional[list[Digest]]:
        """Inclusion proof for the transaction at tx_index, or None."""
        if not 0 <= tx_index < len(self.transactions):
            return None
        return self._tree().get_proof(tx_index)

    def verify_transaction_inclusion(
        self, tx: Transaction, proof: list[Digest], tx_index: int
    ) -> bool:
        return self._tree().verify_proof(tx.hash, proof, tx_index)

    def to_dict(self) -> dict[str, Any]:
        return {
            "index": self.index,
            "timestamp": self.timestamp,
            "previous_hash": self.previous_hash.to_hex(),
            "merkle_root": self.merkle_root.to_hex(),
            "hash": self.hash.to_hex(),
            "transactions": [tx.to_dict() for tx in self.transactions],
            "mining_result": (
                self.mining_result.to_dict() if self.mining_result else None
            ),
        }
