"""Tests for transaction and block envelopes."""

import json
import typing

import pytest

from phlopchain.crypto.digest import Digest
from phlopchain.crypto.merkle import EMPTY_COMMITMENT, CommitmentTree
from phlopchain.errors import MiningTimeoutError
from phlopchain.mining.miner import Miner, MiningConfig
from phlopchain.models.transaction import GENESIS_PREVIOUS_HASH, Block, Transaction


TS = 1_700_000_000


def _tx(sender: str = "alice", receiver: str = "bob", amount: int = 100, nonce: int = 1) -> Transaction:
    return Transaction.create(sender, receiver, amount, nonce, timestamp=TS)


class TestTransaction:
    def test_creation_is_valid(self) -> None:
        tx = _tx()
        assert tx.is_valid()
        assert tx.hash == Digest.hash_text(f"alicebob1001{TS}")

    def test_self_transfer_invalid(self) -> None:
        assert not _tx("alice", "alice").is_valid()

    def test_empty_endpoint_invalid(self) -> None:
        assert not _tx("", "bob").is_valid()
        assert not _tx("alice", "").is_valid()

    def test_negative_amount_invalid(self) -> None:
        assert not _tx(amount=-1).is_valid()

    def test_zero_amount_valid(self) -> None:
        assert _tx(amount=0).is_valid()

    def test_tampered_hash_invalid(self) -> None:
        tx = _tx()
        forged = Transaction(
            sender=tx.sender, receiver=tx.receiver, amount=999,
            nonce=tx.nonce, timestamp=tx.timestamp, hash=tx.hash,
        )
        assert not forged.is_valid()

    def test_to_json(self) -> None:
        data = json.loads(_tx().to_json())
        assert data["from"] == "alice"
        assert data["to"] == "bob"
        assert data["hash"] == _tx().hash.to_hex()


class TestBlock:
    def test_genesis(self) -> None:
        genesis = Block.genesis(timestamp=TS)
        assert genesis.index == 0
        assert genesis.transactions == []
        assert genesis.previous_hash == GENESIS_PREVIOUS_HASH
        assert genesis.merkle_root == EMPTY_COMMITMENT
        assert genesis.is_valid(None)

    def test_merkle_root_over_transaction_hashes(self) -> None:
        txs = [_tx(nonce=1), _tx(nonce=2), _tx(nonce=3)]
        block = Block.create(1, txs, GENESIS_PREVIOUS_HASH, timestamp=TS)
        expected = CommitmentTree.from_leaves(tx.hash for tx in txs).get_root()
        assert block.merkle_root == expected

    def test_links_to_previous(self) -> None:
        genesis = Block.genesis(timestamp=TS)
        block = Block.create(1, [_tx()], genesis.hash, timestamp=TS)
        assert block.is_valid(genesis)

    def test_wrong_previous_hash_invalid(self) -> None:
        genesis = Block.genesis(timestamp=TS)
        block = Block.create(1, [_tx()], Digest.hash_text("other"), timestamp=TS)
        assert not block.is_valid(genesis)

    def test_wrong_index_invalid(self) -> None:
        genesis = Block.genesis(timestamp=TS)
        block = Block.create(2, [_tx()], genesis.hash, timestamp=TS)
        assert not block.is_valid(genesis)
        assert not block.is_valid(None)

    def test_tampered_transactions_invalid(self) -> None:
        genesis = Block.genesis(timestamp=TS)
        block = Block.create(1, [_tx()], genesis.hash, timestamp=TS)
        block.transactions.append(_tx(nonce=2))
        assert not block.is_valid(genesis)

    def test_seal_embeds_result_and_rehashes(self) -> None:
        genesis = Block.genesis(timestamp=TS)
        block = Block.create(1, [_tx()], genesis.hash, timestamp=TS)
        pending_hash = block.hash
        result = block.seal(Miner(MiningConfig(), base_seed=7))
        assert block.mining_result is result
        assert block.hash != pending_hash
        assert block.hash == Digest.hash_text(
            f"{block.mining_payload()}{result.rounds}:{result.total_games}"
        )
        assert block.is_valid(genesis)

    def test_failed_seal_leaves_block_unsealed(self) -> None:
        block = Block.create(1, [_tx()], GENESIS_PREVIOUS_HASH, timestamp=TS)
        pending_hash = block.hash
        miner = Miner(MiningConfig(total_players=2), base_seed=7, max_rounds=1)
        miner.players[0].required_wins = 5
        with pytest.raises(MiningTimeoutError):
            block.seal(miner)
        assert block.mining_result is None
        assert block.hash == pending_hash

    def test_mining_payload(self) -> None:
        block = Block.create(3, [], GENESIS_PREVIOUS_HASH, timestamp=TS)
        assert block.mining_payload() == (
            f"3{TS}{GENESIS_PREVIOUS_HASH.to_hex()}{EMPTY_COMMITMENT.to_hex()}"
        )

    def test_transaction_proofs(self) -> None:
        txs = [_tx(nonce=n) for n in range(1, 6)]
        block = Block.create(1, txs, GENESIS_PREVIOUS_HASH, timestamp=TS)
        for index, tx in enumerate(txs):
            proof = block.transaction_proof(index)
            assert proof is not None
            assert block.verify_transaction_inclusion(tx, proof, index)

    def test_proof_out_of_range(self) -> None:
        block = Block.create(1, [_tx()], GENESIS_PREVIOUS_HASH, timestamp=TS)
        assert block.transaction_proof(1) is None

    def test_foreign_transaction_fails_inclusion(self) -> None:
        txs = [_tx(nonce=1), _tx(nonce=2)]
        block = Block.create(1, txs, GENESIS_PREVIOUS_HASH, timestamp=TS)
        proof = block.transaction_proof(0)
        assert not block.verify_transaction_inclusion(_tx(nonce=9), proof, 0)

    def test_field_annotations_resolve(self) -> None:
        hints = typing.get_type_hints(Block)
        assert hints["transactions"] == list[Transaction]
        assert hints["merkle_root"] is Digest
