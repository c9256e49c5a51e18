"""Quota-based mining simulation — seals blocks by play instead of hashing.

Sealing a block:
1. Derive a block seed from the block descriptor, the miner's base seed
   and the cumulative number of games played by this miner.
2. Each round, every player still short of its quota faces a network move
   derived from (block seed, round, player id) and keeps playing until it
   wins that round.
3. Once every player has met its quota the block is sealed. Players are
   reset, the blocks-sealed counter advances, and the next quota schedule
   is applied to the same players.

The only failure mode is exceeding the round ceiling.

Difficulty schedule: the first block needs one win from every player.
After n sealed blocks, min(n, P) players need two wins and the rest need
one. The `i // P` escalation term can never be non-zero within a single
schedule, so quotas stay at two.
"""

from __future__ import annotations

import hashlib
import logging
import time
from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Optional, Union

from phlopchain.errors import MiningTimeoutError
from phlopchain.mining.game import GameOutcome, move_from_seed
from phlopchain.mining.player import U64_MASK, Player, PlayerSnapshot


logger = logging.getLogger(__name__)

DEFAULT_TOTAL_PLAYERS = 100
MAX_ROUNDS = 1_000_000


@dataclass
class MiningConfig:
    """Population size and the blocks-sealed counter driving quotas."""
    total_players: int = DEFAULT_TOTAL_PLAYERS
    blocks_mined: int = 0

    def get_win_requirements(self) -> list[int]:
        """Quota for each player, indexed by player id."""
        population = self.total_players
        if self.blocks_mined == 0:
            return [1] * population

        players_with_extra_wins = min(self.blocks_mined, population)
        requirements = [1] * (population - players_with_extra_wins)
        for i in range(players_with_extra_wins):
            requirements.append(2 + (i // population))
        return requirements

    def difficulty_info(self) -> DifficultyInfo:
        requirements = self.get_win_requirements()
        return DifficultyInfo(
            block_number=self.blocks_mined,
            total_required_wins=sum(requirements),
            win_distribution=dict(Counter(requirements)),
            total_players=self.total_players,
        )


@dataclass(frozen=True)
class MiningResult:
    """Outcome of one successful sealing pass."""
    success: bool
    rounds: int
    total_games: int
    mining_time_ms: float
    winning_players: tuple[PlayerSnapshot, ...]
    final_seed: int

    def to_dict(self, include_players: bool = False) -> dict[str, Any]:
        data: dict[str, Any] = {
            "success": self.success,
            "rounds": self.rounds,
            "total_games": self.total_games,
            "mining_time_ms": round(self.mining_time_ms, 3),
            "final_seed": self.final_seed,
            "players": len(self.winning_players),
        }
        if include_players:
            data["winning_players"] = [
                {
                    "player_id": p.player_id,
                    "required_wins": p.required_wins,
                    "current_wins": p.current_wins,
                    "games_played": p.games_played,
                }
                for p in self.winning_players
            ]
        return data


@dataclass(frozen=True)
class DifficultyInfo:
    """Read-only summary of the current quota schedule."""
    block_number: int
    total_required_wins: int
    win_distribution: dict[int, int] = field(default_factory=dict)
    total_players: int = DEFAULT_TOTAL_PLAYERS

    def difficulty_score(self) -> float:
        """Quadratic-weighted mean quota: sum(q^2 * count) / population."""
        score = 0.0
        for wins, count in self.win_distribution.items():
            score += float(wins) ** 2 * count
        return score / self.total_players

    def to_dict(self) -> dict[str, Any]:
        return {
            "block_number": self.block_number,
            "total_required_wins": self.total_required_wins,
            "win_distribution": {
                str(wins): count for wins, count in sorted(self.win_distribution.items())
            },
            "total_players": self.total_players,
            "difficulty_score": self.difficulty_score(),
        }


class Miner:
    """Runs the player population to seal blocks.

    Usage:
        miner = Miner(MiningConfig(), base_seed=42)
        result = miner.seal(block.mining_payload())
        info = miner.get_difficulty_info()

    The miner owns its players for its whole lifetime. Seeds are derived
    once from the base seed; only quotas change between blocks.
    """

    def __init__(
        self,
        config: Optional[MiningConfig] = None,
        base_seed: Optional[int] = None,
        max_rounds: int = MAX_ROUNDS,
    ) -> None:
        self.config = config if config is not None else MiningConfig()
        if base_seed is None:
            base_seed = time.time_ns()
        self.base_seed = base_seed & U64_MASK
        self.max_rounds = max_rounds
        self.games_played = 0
        self.players: list[Player] = [
            Player.create(i, required_wins, self.base_seed)
            for i, required_wins in enumerate(self.config.get_win_requirements())
        ]

    def block_seed(self, block_data: Union[str, bytes]) -> int:
        """Seed for one sealing attempt over the given block descriptor."""
        if isinstance(block_data, str):
            block_data = block_data.encode("utf-8")
        digest = hashlib.sha256(
            block_data
            + self.base_seed.to_bytes(8, "big")
            + (self.games_played & U64_MASK).to_bytes(8, "big")
        ).digest()
        return int.from_bytes(digest[:8], "big")

    def seal(self, block_data: Union[str, bytes]) -> MiningResult:
        """Run rounds until every player meets its quota.

        Raises MiningTimeoutError if the round ceiling is exceeded.
        """
        block_seed = self.block_seed(block_data)
        started = time.perf_counter()
        total_games = 0
        round_number = 0
        logger.debug(
            "Sealing with seed %d (blocks mined: %d)",
            block_seed, self.config.blocks_mined,
        )

        while True:
            round_number += 1
            round_games = 0

            for player in self.players:
                if player.has_met_quota():
                    continue
                network_move = move_from_seed(
                    (block_seed + round_number + player.player_id) & U64_MASK
                )
                # Terminates within three games: the player's move cycles.
                while player.play_round(network_move) != GameOutcome.PLAYER_WIN:
                    round_games += 1
                round_games += 1

            total_games += round_games
            self.games_played += round_games

            if all(player.has_met_quota() for player in self.players):
                elapsed_ms = (time.perf_counter() - started) * 1000.0
                result = MiningResult(
                    success=True,
                    rounds=round_number,
                    total_games=total_games,
                    mining_time_ms=elapsed_ms,
                    winning_players=tuple(p.snapshot() for p in self.players),
                    final_seed=block_seed,
                )
                self._advance_schedule()
                logger.info(
                    "Sealed block after %d rounds and %d games",
                    round_number, total_games,
                )
                return result

            if round_number > self.max_rounds:
                for player in self.players:
                    player.reset()
                logger.error("Mining timeout after %d rounds", round_number)
                raise MiningTimeoutError(
                    f"Mining timeout: too many rounds ({round_number})"
                )

    def _advance_schedule(self) -> None:
        for player in self.players:
            player.reset()
        self.config.blocks_mined += 1
        requirements = self.config.get_win_requirements()
        for player, required_wins in zip(self.players, requirements):
            player.required_wins = required_wins

    def get_difficulty_info(self) -> DifficultyInfo:
        return self.config.difficulty_info()
