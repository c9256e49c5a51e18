"""Chain configuration — mining, reward and genesis parameters.

Sources, in increasing precedence:
1. Built-in defaults.
2. config/chain_params.json (from_config_dir).
3. PHLOPCHAIN_* environment variables, optionally loaded from a .env
   file (from_env).
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Optional

from dotenv import load_dotenv

from phlopchain.mining.miner import DEFAULT_TOTAL_PLAYERS, MAX_ROUNDS


DEFAULT_CONFIG_DIR = Path(__file__).resolve().parents[2] / "config"

ENV_PREFIX = "PHLOPCHAIN_"


def _default_genesis_balances() -> dict[str, int]:
    return {"genesis": 1_000_000, "alice": 1000, "bob": 500}


@dataclass(frozen=True)
class ChainConfig:
    """Immutable chain parameters.

    base_seed=None means the miner derives its seed from the clock, so
    sealed blocks are only reproducible when a seed is configured.
    """
    total_players: int = DEFAULT_TOTAL_PLAYERS
    max_rounds: int = MAX_ROUNDS
    mining_reward: int = 100
    max_transactions_per_block: int = 100
    genesis_balances: dict[str, int] = field(default_factory=_default_genesis_balances)
    base_seed: Optional[int] = None
    log_level: str = "WARNING"

    PARAMS_FILENAME = "chain_params.json"

    def __post_init__(self) -> None:
        if self.total_players < 1:
            raise ValueError(f"total_players must be positive, got {self.total_players}")
        if self.max_rounds < 1:
            raise ValueError(f"max_rounds must be positive, got {self.max_rounds}")
        if self.mining_reward < 0:
            raise ValueError(f"mining_reward cannot be negative, got {self.mining_reward}")
        if self.max_transactions_per_block < 1:
            raise ValueError(
                "max_transactions_per_block must be at least 1 (the reward transaction)"
            )
        for account, amount in self.genesis_balances.items():
            if amount < 0:
                raise ValueError(f"Negative genesis balance for {account!r}")

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ChainConfig:
        known = {
            "total_players", "max_rounds", "mining_reward",
            "max_transactions_per_block", "genesis_balances",
            "base_seed", "log_level",
        }
        unknown = set(data) - known
        if unknown:
            raise ValueError(f"Unknown chain parameters: {sorted(unknown)}")
        kwargs = dict(data)
        if "genesis_balances" in kwargs:
            kwargs["genesis_balances"] = {
                str(k): int(v) for k, v in kwargs["genesis_balances"].items()
            }
        return cls(**kwargs)

    @classmethod
    def from_config_dir(cls, config_dir: Path = DEFAULT_CONFIG_DIR) -> ChainConfig:
        """Load chain_params.json from config_dir.

        Raises:
            FileNotFoundError: If chain_params.json does not exist.
            ValueError: If a parameter is unknown or out of range.
        """
        path = config_dir / cls.PARAMS_FILENAME
        if not path.exists():
            raise FileNotFoundError(f"Chain parameters not found: {path}")
        with path.open("r", encoding="utf-8") as f:
            data = json.load(f)
        return cls.from_dict(data)

    @classmethod
    def from_env(
        cls,
        env_file: Optional[Path] = None,
        base: Optional[ChainConfig] = None,
    ) -> ChainConfig:
        """Apply PHLOPCHAIN_* overrides on top of base (defaults if None)."""
        if env_file is not None:
            load_dotenv(env_file)
        config = base if base is not None else cls()

        overrides: dict[str, Any] = {}
        for name in ("total_players", "max_rounds", "mining_reward",
                     "max_transactions_per_block", "base_seed"):
            raw = os.getenv(ENV_PREFIX + name.upper())
            if raw:
                overrides[name] = int(raw)
        log_level = os.getenv(ENV_PREFIX + "LOG_LEVEL")
        if log_level:
            overrides["log_level"] = log_level.upper()

        return replace(config, **overrides) if overrides else config
