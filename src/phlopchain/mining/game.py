"""Rock-paper-scissors engine used by the mining simulation.

Moves are derived from a seed by `seed mod 3`. Adjudication is a closed
3x3 table: each move beats exactly one other move and identical moves tie.
"""

from __future__ import annotations

import enum


class Move(str, enum.Enum):
    """A game move. Declaration order is the seed order (0, 1, 2)."""
    ROCK = "rock"
    PAPER = "paper"
    SCISSORS = "scissors"


class GameOutcome(str, enum.Enum):
    """Result of a single game from the player's point of view."""
    PLAYER_WIN = "player_win"
    NETWORK_WIN = "network_win"
    TIE = "tie"


_SEED_ORDER: tuple[Move, Move, Move] = (Move.ROCK, Move.PAPER, Move.SCISSORS)

# Full 3x3 table keyed by (player move, network move).
OUTCOMES: dict[tuple[Move, Move], GameOutcome] = {
    (Move.ROCK, Move.ROCK): GameOutcome.TIE,
    (Move.ROCK, Move.PAPER): GameOutcome.NETWORK_WIN,
    (Move.ROCK, Move.SCISSORS): GameOutcome.PLAYER_WIN,
    (Move.PAPER, Move.ROCK): GameOutcome.PLAYER_WIN,
    (Move.PAPER, Move.PAPER): GameOutcome.TIE,
    (Move.PAPER, Move.SCISSORS): GameOutcome.NETWORK_WIN,
    (Move.SCISSORS, Move.ROCK): GameOutcome.NETWORK_WIN,
    (Move.SCISSORS, Move.PAPER): GameOutcome.PLAYER_WIN,
    (Move.SCISSORS, Move.SCISSORS): GameOutcome.TIE,
}


def move_from_seed(seed: int) -> Move:
    """Map a non-negative seed to a move."""
    return _SEED_ORDER[seed % 3]


def adjudicate(player_move: Move, network_move: Move) -> GameOutcome:
    """Decide a game between the player's move and the network's move."""
    return OUTCOMES[(player_move, network_move)]
