"""Quota-based mining — game engine, players and the sealing simulation."""

from phlopchain.mining.game import GameOutcome, Move, adjudicate, move_from_seed
from phlopchain.mining.miner import DifficultyInfo, Miner, MiningConfig, MiningResult
from phlopchain.mining.player import Player, PlayerSnapshot

__all__ = [
    "GameOutcome",
    "Move",
    "adjudicate",
    "move_from_seed",
    "DifficultyInfo",
    "Miner",
    "MiningConfig",
    "MiningResult",
    "Player",
    "PlayerSnapshot",
]
