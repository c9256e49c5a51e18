"""PhlopChain CLI — command-line interface for the quota-mined chain.

Every invocation starts a fresh in-memory chain from the configured
genesis balances; nothing is persisted between runs.

Usage:
    python -m phlopchain.cli status
    python -m phlopchain.cli mine --blocks 3 --miner miner
    python -m phlopchain.cli transfer --from alice --to bob --amount 200 --mine
    python -m phlopchain.cli difficulty --blocks-sealed 5
    python -m phlopchain.cli prove --item tx1 --item tx2 --item tx3 --index 2
    python -m phlopchain.cli demo
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from dataclasses import replace
from pathlib import Path
from typing import Optional

from phlopchain.config import DEFAULT_CONFIG_DIR, ChainConfig
from phlopchain.crypto.digest import Digest
from phlopchain.crypto.merkle import CommitmentTree
from phlopchain.mining.miner import MiningConfig
from phlopchain.service import ChainService


def _load_config(args: argparse.Namespace) -> ChainConfig:
    config_dir: Path = args.config
    if (config_dir / ChainConfig.PARAMS_FILENAME).exists():
        config = ChainConfig.from_config_dir(config_dir)
    else:
        config = ChainConfig()
    config = ChainConfig.from_env(args.env_file, base=config)
    if args.seed is not None:
        config = replace(config, base_seed=args.seed)
    return config


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _make_service(args: argparse.Namespace) -> ChainService:
    config = _load_config(args)
    _configure_logging(args.log_level or config.log_level)
    return ChainService(config)


def _print_json(data: object) -> None:
    print(json.dumps(data, indent=2, default=str))


def cmd_status(args: argparse.Namespace) -> int:
    service = _make_service(args)
    _print_json(service.status())
    return 0


def cmd_mine(args: argparse.Namespace) -> int:
    service = _make_service(args)
    sealed = []
    for _ in range(args.blocks):
        result = service.mine_block(args.miner)
        if not result.success:
            print(f"Failed: {'; '.join(result.errors)}", file=sys.stderr)
            return 1
        sealed.append(result.data)
    _print_json({"blocks": sealed, "balance": service.blockchain.get_balance(args.miner)})
    return 0


def cmd_transfer(args: argparse.Namespace) -> int:
    service = _make_service(args)
    result = service.submit_transfer(args.sender, args.receiver, args.amount)
    if not result.success:
        print(f"Failed: {'; '.join(result.errors)}", file=sys.stderr)
        return 1
    print(f"Queued transaction: {result.data['hash']}")

    if args.mine:
        mined = service.mine_block(args.miner)
        if not mined.success:
            print(f"Failed: {'; '.join(mined.errors)}", file=sys.stderr)
            return 1
        print(f"Sealed block {mined.data['index']}: {mined.data['hash']}")
        _print_json(service.balances().data)
    return 0


def cmd_difficulty(args: argparse.Namespace) -> int:
    if args.blocks_sealed is None:
        service = _make_service(args)
        _print_json(service.difficulty().data)
        return 0

    config = _load_config(args)
    info = MiningConfig(
        total_players=config.total_players, blocks_mined=args.blocks_sealed
    ).difficulty_info()
    _print_json(info.to_dict())
    return 0


def cmd_prove(args: argparse.Namespace) -> int:
    tree = CommitmentTree.from_data(args.item)
    root = tree.get_root()
    proof = tree.get_proof(args.index)
    if root is None or proof is None:
        print(f"Failed: no proof for index {args.index}", file=sys.stderr)
        return 1
    leaf = Digest.hash_text(args.item[args.index])
    _print_json({
        "root": root.to_hex(),
        "leaf": leaf.to_hex(),
        "index": args.index,
        "proof": [d.to_hex() for d in proof],
        "verified": tree.verify_proof(leaf, proof, args.index),
    })
    return 0


def cmd_demo(args: argparse.Namespace) -> int:
    """Walk through transfers, sealing, proofs and validation."""
    service = _make_service(args)
    chain = service.blockchain
    print(f"Genesis block: {chain.latest_block.hash}")

    submitted = []
    for sender, receiver, amount in (
        ("alice", "bob", 200),
        ("alice", "charlie", 150),
        ("bob", "charlie", 100),
    ):
        result = service.submit_transfer(sender, receiver, amount)
        status = "queued" if result.success else f"rejected ({'; '.join(result.errors)})"
        print(f"{sender} -> {receiver} ({amount}): {status}")
        if result.success:
            submitted.append(result.data["hash"])

    mined = service.mine_block("miner")
    if not mined.success:
        print(f"Failed: {'; '.join(mined.errors)}", file=sys.stderr)
        return 1
    mining = mined.data["mining_result"]
    print(
        f"Sealed block {mined.data['index']}: {mined.data['hash']} "
        f"(rounds: {mining['rounds']}, games: {mining['total_games']})"
    )

    rejected = service.submit_transfer("charlie", "alice", 10_000)
    print(f"Overdraft rejected: {not rejected.success}")

    if submitted:
        proof = service.transaction_proof(submitted[0])
        if proof.success:
            check = service.verify_transaction_proof(
                submitted[0], proof.data["proof"],
                proof.data["tx_index"], proof.data["block_index"],
            )
            print(
                f"Proof for {submitted[0][:16]}: {len(proof.data['proof'])} hashes, "
                f"valid={check.data.get('valid', False)}"
            )

    service.submit_transfer("bob", "alice", 50)
    second = service.mine_block("miner2")
    if not second.success:
        print(f"Failed: {'; '.join(second.errors)}", file=sys.stderr)
        return 1

    _print_json(service.balances().data)
    _print_json(service.difficulty().data)
    valid = service.validate_chain().success
    print(f"Chain length: {chain.chain_length}, valid: {valid}")
    return 0 if valid else 1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="phlopchain",
        description="PhlopChain — ledger sealed by quota-based game mining",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=DEFAULT_CONFIG_DIR,
        help=(
            "Path to config directory (default: config/ of a source checkout; "
            "built-in defaults apply when it holds no chain_params.json)"
        ),
    )
    parser.add_argument("--env-file", type=Path, help="Optional .env file with PHLOPCHAIN_* settings")
    parser.add_argument("--seed", type=int, help="Miner base seed (default: clock-derived)")
    parser.add_argument("--log-level", help="Logging level (default: from config)")
    sub = parser.add_subparsers(dest="command")

    # status
    sub.add_parser("status", help="Show chain status")

    # mine
    p_mine = sub.add_parser("mine", help="Seal one or more blocks")
    p_mine.add_argument("--blocks", type=int, default=1, help="Number of blocks (default: 1)")
    p_mine.add_argument("--miner", default="miner", help="Reward address (default: miner)")

    # transfer
    p_tx = sub.add_parser("transfer", help="Queue a transfer")
    p_tx.add_argument("--from", dest="sender", required=True, help="Sender account")
    p_tx.add_argument("--to", dest="receiver", required=True, help="Receiver account")
    p_tx.add_argument("--amount", type=int, required=True, help="Amount")
    p_tx.add_argument("--mine", action="store_true", help="Seal a block afterwards")
    p_tx.add_argument("--miner", default="miner", help="Reward address (default: miner)")

    # difficulty
    p_diff = sub.add_parser("difficulty", help="Show the quota schedule")
    p_diff.add_argument("--blocks-sealed", type=int, help="Evaluate after N sealed blocks")

    # prove
    p_prove = sub.add_parser("prove", help="Build a commitment tree and prove one item")
    p_prove.add_argument("--item", action="append", required=True, help="Item (repeatable)")
    p_prove.add_argument("--index", type=int, required=True, help="Item index to prove")

    # demo
    sub.add_parser("demo", help="Run the end-to-end demonstration")

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    commands = {
        "status": cmd_status,
        "mine": cmd_mine,
        "transfer": cmd_transfer,
        "difficulty": cmd_difficulty,
        "prove": cmd_prove,
        "demo": cmd_demo,
    }

    handler = commands.get(args.command)
    if handler is None:
        print(f"Unknown command: {args.command}", file=sys.stderr)
        return 1

    return handler(args)


if __name__ == "__main__":
    raise SystemExit(main())
