"""Blockchain — the chain context that owns ledger, nonces and the miner.

Sealing is all-or-nothing. Transfers, nonce increments, the reward
credit and the block-counter increment are applied to staged copies of
the ledger and registry, which replace the live ones only after the miner
seals the block. A failed seal leaves every observable piece of state
as it was and returns the drained transactions to the front of the queue.
"""

from __future__ import annotations

import logging
from collections import deque
from typing import Optional

from phlopchain.config import ChainConfig
from phlopchain.crypto.digest import Digest
from phlopchain.crypto.merkle import CommitmentTree
from phlopchain.errors import (
    InsufficientFundsError,
    ProofNotFoundError,
    TransactionRejectedError,
)
from phlopchain.ledger.balances import BalanceLedger
from phlopchain.ledger.system import NonceRegistry
from phlopchain.mining.miner import DifficultyInfo, Miner, MiningConfig
from phlopchain.models.transaction import Block, Transaction


logger = logging.getLogger(__name__)

# Source account of block rewards. It never holds a balance.
NETWORK_ACCOUNT = "network"


class Blockchain:
    """A single-node chain sealed by the quota-based miner.

    Usage:
        chain = Blockchain(ChainConfig(base_seed=7))
        chain.add_transaction(Transaction.create("alice", "bob", 100, 1))
        block = chain.mine_pending_transactions("miner")
        proof, tx_index, block_index = chain.transaction_proof(tx.hash)
    """

    def __init__(
        self,
        config: Optional[ChainConfig] = None,
        miner: Optional[Miner] = None,
        genesis_timestamp: Optional[int] = None,
    ) -> None:
        self.config = config if config is not None else ChainConfig()
        self.miner = miner if miner is not None else Miner(
            MiningConfig(total_players=self.config.total_players),
            base_seed=self.config.base_seed,
            max_rounds=self.config.max_rounds,
        )
        self.mining_reward = self.config.mining_reward
        self.chain: list[Block] = []
        self.pending_transactions: deque[Transaction] = deque()
        self.balances = BalanceLedger()
        self.system = NonceRegistry()
        self._create_genesis_block(genesis_timestamp)

    def _create_genesis_block(self, timestamp: Optional[int]) -> None:
        # Genesis is not mined.
        self.chain.append(Block.genesis(timestamp=timestamp))
        for account, amount in self.config.genesis_balances.items():
            self.balances.set_balance(account, amount)

    # ------------------------------------------------------------------ #
    # Transactions                                                        #
    # ------------------------------------------------------------------ #

    def expected_nonce(self, account: str) -> int:
        """Nonce the next transaction from account must carry."""
        queued = sum(1 for tx in self.pending_transactions if tx.sender == account)
        return self.system.get_nonce(account) + 1 + queued

    def add_transaction(self, transaction: Transaction) -> None:
        """Admit a transaction to the pending queue.

        Raises TransactionRejectedError with the reason on failure.
        """
        if not transaction.is_valid():
            raise TransactionRejectedError("Invalid transaction")

        if self.balances.get_balance(transaction.sender) < transaction.amount:
            raise TransactionRejectedError("Insufficient balance")

        expected = self.expected_nonce(transaction.sender)
        if transaction.nonce != expected:
            raise TransactionRejectedError(
                f"Invalid nonce: expected {expected}, got {transaction.nonce}"
            )

        self.pending_transactions.append(transaction)
        logger.debug("Queued transaction %s", transaction.hash.to_hex()[:16])

    # ------------------------------------------------------------------ #
    # Sealing                                                             #
    # ------------------------------------------------------------------ #

    def mine_pending_transactions(
        self,
        reward_address: str,
        timestamp: Optional[int] = None,
    ) -> Block:
        """Seal a block with the reward transaction and pending transfers.

        Raises MiningTimeoutError if the miner gives up. On any failure the
        drained transactions go back to the front of the queue and chain
        state is unchanged.
        """
        if not reward_address or reward_address == NETWORK_ACCOUNT:
            raise ValueError(f"Invalid reward address: {reward_address!r}")

        staged_balances = self.balances.copy()
        staged_system = self.system.copy()

        transactions = [
            Transaction.create(
                NETWORK_ACCOUNT, reward_address, self.mining_reward, 0,
                timestamp=timestamp,
            )
        ]
        drained: list[Transaction] = []
        limit = self.config.max_transactions_per_block

        try:
            while self.pending_transactions and len(transactions) < limit:
                tx = self.pending_transactions.popleft()
                drained.append(tx)
                if self._apply_staged(tx, staged_balances, staged_system):
                    transactions.append(tx)

            block = Block.create(
                len(self.chain), transactions, self.latest_block.hash,
                timestamp=timestamp,
            )
            block.seal(self.miner)
        except Exception:
            # Nothing was committed. Requeue in original order.
            self.pending_transactions.extendleft(reversed(drained))
            raise

        staged_balances.credit(reward_address, self.mining_reward)
        staged_system.increment_block_counter()

        self.balances = staged_balances
        self.system = staged_system
        self.chain.append(block)
        logger.info(
            "Block %d sealed: %s (%d transactions)",
            block.index, block.hash.to_hex()[:16], len(block.transactions),
        )
        return block

    def _apply_staged(
        self,
        tx: Transaction,
        balances: BalanceLedger,
        system: NonceRegistry,
    ) -> bool:
        """Apply one drained transfer to the staged state.

        A transfer is dropped when its sender can no longer cover it or
        when an earlier drop left a gap before its nonce.
        """
        expected = system.get_nonce(tx.sender) + 1
        if tx.nonce != expected:
            logger.warning(
                "Dropping transaction %s: nonce %d, expected %d",
                tx.hash.to_hex()[:16], tx.nonce, expected,
            )
            return False
        try:
            balances.transfer(tx.sender, tx.receiver, tx.amount)
        except InsufficientFundsError as exc:
            logger.warning("Dropping transaction %s: %s", tx.hash.to_hex()[:16], exc)
            return False
        system.increment_nonce(tx.sender)
        return True

    # ------------------------------------------------------------------ #
    # Queries                                                             #
    # ------------------------------------------------------------------ #

    @property
    def latest_block(self) -> Block:
        return self.chain[-1]

    @property
    def chain_length(self) -> int:
        return len(self.chain)

    @property
    def pending_count(self) -> int:
        return len(self.pending_transactions)

    def get_balance(self, account: str) -> int:
        return self.balances.get_balance(account)

    def is_chain_valid(self) -> bool:
        if not self.chain or not self.chain[0].is_valid(None):
            return False
        for previous, current in zip(self.chain, self.chain[1:]):
            if not current.is_valid(previous):
                return False
            result = current.mining_result
            if result is None or not result.success:
                return False
        return True

    def transaction_history(self, account: str) -> list[Transaction]:
        return [
            tx
            for block in self.chain
            for tx in block.transactions
            if tx.sender == account or tx.receiver == account
        ]

    def find_transaction(
        self, tx_hash: Digest
    ) -> Optional[tuple[Block, Transaction, int]]:
        for block in self.chain:
            for index, tx in enumerate(block.transactions):
                if tx.hash == tx_hash:
                    return block, tx, index
        return None

    def transaction_proof(self, tx_hash: Digest) -> tuple[list[Digest], int, int]:
        """Return (proof, tx_index, block_index) for a sealed transaction.

        Raises ProofNotFoundError if the transaction is not on chain.
        """
        found = self.find_transaction(tx_hash)
        if found is None:
            raise ProofNotFoundError(f"Transaction not found: {tx_hash.to_hex()}")
        block, _tx, tx_index = found
        proof = block.transaction_proof(tx_index)
        if proof is None:
            raise ProofNotFoundError(
                f"No proof for index {tx_index} in block {block.index}"
            )
        return proof, tx_index, block.index

    def verify_transaction_proof(
        self,
        tx: Transaction,
        proof: list[Digest],
        tx_index: int,
        block_index: int,
    ) -> bool:
        block = self.block_by_index(block_index)
        if block is None:
            return False
        return block.verify_transaction_inclusion(tx, proof, tx_index)

    def block_by_index(self, index: int) -> Optional[Block]:
        if 0 <= index < len(self.chain):
            return self.chain[index]
        return None

    def block_by_hash(self, block_hash: Digest) -> Optional[Block]:
        for block in self.chain:
            if block.hash == block_hash:
                return block
        return None

    def network_hash_rate(self) -> float:
        """Games per second between the two most recent blocks."""
        if len(self.chain) < 2:
            return 0.0
        latest, previous = self.chain[-1], self.chain[-2]
        time_diff = latest.timestamp - previous.timestamp
        if latest.mining_result is None or time_diff <= 0:
            return 0.0
        return latest.mining_result.total_games / time_diff

    def difficulty_info(self) -> DifficultyInfo:
        return self.miner.get_difficulty_info()

    def total_games(self) -> int:
        return sum(
            block.mining_result.total_games
            for block in self.chain[1:]
            if block.mining_result is not None
        )

    def state_tree(self) -> CommitmentTree:
        """Commitment tree over "account:balance" in account order."""
        return CommitmentTree.from_data(
            f"{account}:{balance}" for account, balance in self.balances.accounts()
        )

    def state_root(self) -> Optional[Digest]:
        return self.state_tree().get_root()
