"""PhlopChain service — unified facade over the chain.

This is the primary interface for programmatic access:
- Transfers (validate, queue)
- Block sealing (reward, pending transfers, quota-based mining)
- Inclusion proofs (generate, verify)
- Difficulty schedule and chain statistics
- Audit trail (event log with commitment root)

All operations return a ServiceResult instead of raising. Accepted
transfers, sealed blocks and failed sealing attempts are recorded in the
event log.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Optional

from phlopchain import __version__
from phlopchain.audit.event_log import EventKind, EventLog, EventRecord
from phlopchain.chain.blockchain import Blockchain
from phlopchain.config import ChainConfig
from phlopchain.crypto.digest import Digest
from phlopchain.errors import (
    MiningTimeoutError,
    ProofNotFoundError,
    TransactionRejectedError,
)
from phlopchain.models.transaction import Transaction


logger = logging.getLogger(__name__)

VERSION = __version__


@dataclass(frozen=True)
class ServiceResult:
    """Result of a service operation."""
    success: bool
    errors: list[str] = field(default_factory=list)
    data: dict[str, Any] = field(default_factory=dict)


class ChainService:
    """Facade over a Blockchain and its audit log.

    Usage:
        service = ChainService(ChainConfig(base_seed=7))
        service.submit_transfer("alice", "bob", 200)
        result = service.mine_block("miner")
        proof = service.transaction_proof(tx_hash_hex)
    """

    def __init__(
        self,
        config: Optional[ChainConfig] = None,
        blockchain: Optional[Blockchain] = None,
        event_log: Optional[EventLog] = None,
    ) -> None:
        self._blockchain = blockchain if blockchain is not None else Blockchain(config)
        self._event_log = event_log if event_log is not None else EventLog()
        self._event_counter = 0

    @property
    def blockchain(self) -> Blockchain:
        return self._blockchain

    @property
    def event_log(self) -> EventLog:
        return self._event_log

    # ------------------------------------------------------------------ #
    # Transfers and sealing                                               #
    # ------------------------------------------------------------------ #

    def submit_transfer(
        self,
        sender: str,
        receiver: str,
        amount: int,
        nonce: Optional[int] = None,
        timestamp: Optional[int] = None,
    ) -> ServiceResult:
        """Queue a transfer. The next expected nonce is used if none is given."""
        if amount < 0:
            return ServiceResult(success=False, errors=["Amount cannot be negative"])
        if nonce is None:
            nonce = self._blockchain.expected_nonce(sender)

        tx = Transaction.create(sender, receiver, amount, nonce, timestamp=timestamp)
        try:
            self._blockchain.add_transaction(tx)
        except TransactionRejectedError as e:
            self._record(EventKind.TRANSACTION_REJECTED, sender, {
                "tx_hash": tx.hash.to_hex(),
                "reason": str(e),
            })
            return ServiceResult(success=False, errors=[str(e)])

        self._record(EventKind.TRANSACTION_ACCEPTED, sender, {
            "tx_hash": tx.hash.to_hex(),
            "to": receiver,
            "amount": amount,
            "nonce": nonce,
        })
        return ServiceResult(success=True, data=tx.to_dict())

    def mine_block(
        self,
        reward_address: str,
        timestamp: Optional[int] = None,
    ) -> ServiceResult:
        """Seal the pending transfers into a new block."""
        try:
            block = self._blockchain.mine_pending_transactions(
                reward_address, timestamp=timestamp
            )
        except MiningTimeoutError as e:
            self._record(EventKind.MINING_FAILED, reward_address, {"reason": str(e)})
            return ServiceResult(success=False, errors=[f"Mining failed: {e}"])
        except ValueError as e:
            return ServiceResult(success=False, errors=[str(e)])

        result = block.mining_result
        self._record(EventKind.BLOCK_SEALED, reward_address, {
            "block_index": block.index,
            "block_hash": block.hash.to_hex(),
            "rounds": result.rounds if result else 0,
            "total_games": result.total_games if result else 0,
        })
        return ServiceResult(success=True, data={
            "index": block.index,
            "hash": block.hash.to_hex(),
            "merkle_root": block.merkle_root.to_hex(),
            "transactions": len(block.transactions),
            "mining_result": result.to_dict() if result else None,
            "reward": self._blockchain.mining_reward,
        })

    # ------------------------------------------------------------------ #
    # Proofs                                                              #
    # ------------------------------------------------------------------ #

    def transaction_proof(self, tx_hash_hex: str) -> ServiceResult:
        """Inclusion proof for a sealed transaction, by hex hash."""
        tx_hash = _parse_hex_digest(tx_hash_hex)
        if tx_hash is None:
            return ServiceResult(success=False, errors=[f"Malformed hash: {tx_hash_hex}"])
        try:
            proof, tx_index, block_index = self._blockchain.transaction_proof(tx_hash)
        except ProofNotFoundError as e:
            return ServiceResult(success=False, errors=[str(e)])
        return ServiceResult(success=True, data={
            "tx_hash": tx_hash.to_hex(),
            "tx_index": tx_index,
            "block_index": block_index,
            "proof": [d.to_hex() for d in proof],
        })

    def verify_transaction_proof(
        self,
        tx_hash_hex: str,
        proof_hex: list[str],
        tx_index: int,
        block_index: int,
    ) -> ServiceResult:
        """Check a proof against the commitment root of block_index."""
        tx_hash = _parse_hex_digest(tx_hash_hex)
        proof = [_parse_hex_digest(h) for h in proof_hex]
        if tx_hash is None or any(d is None for d in proof):
            return ServiceResult(success=False, errors=["Malformed hash in proof"])

        found = self._blockchain.find_transaction(tx_hash)
        if found is None:
            return ServiceResult(success=False, errors=["Transaction not found"])
        _block, tx, _index = found

        valid = self._blockchain.verify_transaction_proof(tx, proof, tx_index, block_index)
        return ServiceResult(success=True, data={"valid": valid})

    # ------------------------------------------------------------------ #
    # Queries                                                             #
    # ------------------------------------------------------------------ #

    def difficulty(self) -> ServiceResult:
        info = self._blockchain.difficulty_info()
        return ServiceResult(success=True, data=info.to_dict())

    def balances(self) -> ServiceResult:
        return ServiceResult(success=True, data=dict(self._blockchain.balances.accounts()))

    def history(self, account: str) -> ServiceResult:
        return ServiceResult(success=True, data={
            "account": account,
            "transactions": [
                tx.to_dict() for tx in self._blockchain.transaction_history(account)
            ],
        })

    def validate_chain(self) -> ServiceResult:
        if self._blockchain.is_chain_valid():
            return ServiceResult(success=True, data={"valid": True})
        return ServiceResult(success=False, errors=["Chain validation failed"])

    def status(self) -> dict[str, Any]:
        """Return chain-wide status summary."""
        chain = self._blockchain
        state_root = chain.state_root()
        event_root = self._event_log.commitment_root()
        return {
            "version": VERSION,
            "chain": {
                "length": chain.chain_length,
                "latest_hash": chain.latest_block.hash.to_hex(),
                "pending_transactions": chain.pending_count,
                "valid": chain.is_chain_valid(),
            },
            "mining": {
                "blocks_mined": chain.miner.config.blocks_mined,
                "difficulty_score": chain.difficulty_info().difficulty_score(),
                "total_games": chain.total_games(),
                "network_hash_rate": chain.network_hash_rate(),
                "mining_reward": chain.mining_reward,
            },
            "state_root": state_root.to_hex() if state_root else None,
            "events": {
                "count": self._event_log.count,
                "commitment_root": event_root.to_hex() if event_root else None,
            },
        }

    # ------------------------------------------------------------------ #
    # Audit                                                               #
    # ------------------------------------------------------------------ #

    def _next_event_id(self) -> str:
        """Generate a monotonically increasing unique event ID."""
        self._event_counter += 1
        return f"EVT-{self._event_counter:08d}"

    def _record(self, kind: EventKind, actor_id: str, payload: dict[str, Any]) -> None:
        event = EventRecord.create(
            event_id=self._next_event_id(),
            event_kind=kind,
            actor_id=actor_id,
            payload=payload,
        )
        self._event_log.append(event)
        logger.debug("Recorded %s event %s", kind.value, event.event_id)


def _parse_hex_digest(text: str) -> Optional[Digest]:
    try:
        return Digest.from_hex(text)
    except ValueError:
        return None
