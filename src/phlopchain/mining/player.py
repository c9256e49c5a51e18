"""Simulated mining players.

A player's move sequence is fixed by its seed: game n uses
move_from_seed(seed + n). Consecutive games therefore cycle through all
three moves, so a player facing a fixed network move wins within at
most three games.
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass

from phlopchain.mining.game import GameOutcome, Move, adjudicate, move_from_seed


U64_MASK = (1 << 64) - 1


def derive_player_seed(base_seed: int, player_id: int) -> int:
    """First 8 bytes of SHA-256(base_seed || player_id), big-endian."""
    digest = hashlib.sha256(
        (base_seed & U64_MASK).to_bytes(8, "big") + player_id.to_bytes(4, "big")
    ).digest()
    return int.from_bytes(digest[:8], "big")


@dataclass(frozen=True)
class PlayerSnapshot:
    """Immutable view of a player at the end of a sealing pass."""
    player_id: int
    required_wins: int
    current_wins: int
    games_played: int
    seed: int


@dataclass
class Player:
    """A participant with a per-block win quota.

    Identity and seed never change. Only required_wins is rewritten
    between blocks; current_wins and games_played are per-block progress.
    """
    player_id: int
    required_wins: int
    seed: int
    current_wins: int = 0
    games_played: int = 0

    @classmethod
    def create(cls, player_id: int, required_wins: int, base_seed: int) -> Player:
        return cls(
            player_id=player_id,
            required_wins=required_wins,
            seed=derive_player_seed(base_seed, player_id),
        )

    def next_move(self) -> Move:
        return move_from_seed((self.seed + self.games_played) & U64_MASK)

    def play_round(self, network_move: Move) -> GameOutcome:
        """Play one game against network_move; a win counts toward the quota."""
        player_move = self.next_move()
        self.games_played += 1

        outcome = adjudicate(player_move, network_move)
        if outcome == GameOutcome.PLAYER_WIN:
            self.current_wins += 1
        return outcome

    def has_met_quota(self) -> bool:
        return self.current_wins >= self.required_wins

    def reset(self) -> None:
        """Clear per-block progress. Identity, quota and seed are kept."""
        self.current_wins = 0
        self.games_played = 0

    def snapshot(self) -> PlayerSnapshot:
        return PlayerSnapshot(
            player_id=self.player_id,
            required_wins=self.required_wins,
            current_wins=self.current_wins,
            games_played=self.games_played,
            seed=self.seed,
        )
