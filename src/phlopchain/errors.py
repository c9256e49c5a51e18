"""Error hierarchy for the ledger and mining core."""

from __future__ import annotations


class PhlopChainError(Exception):
    """Base class for all chain errors."""


class ProofNotFoundError(PhlopChainError, LookupError):
    """No inclusion proof exists: unknown item, bad index or unbuilt tree."""


class MiningTimeoutError(PhlopChainError, RuntimeError):
    """Sealing exceeded the round ceiling."""


class TransactionRejectedError(PhlopChainError, ValueError):
    """A transaction failed admission to the pending pool."""


class InsufficientFundsError(PhlopChainError, ValueError):
    """A transfer would overdraw the sender."""
