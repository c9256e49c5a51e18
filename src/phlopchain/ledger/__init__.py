"""Account bookkeeping — balances and nonces."""

from phlopchain.ledger.balances import BalanceLedger
from phlopchain.ledger.system import NonceRegistry

__all__ = ["BalanceLedger", "NonceRegistry"]
