"""Balance ledger — credit/debit bookkeeping for chain accounts.

Storage is in-memory. Balances are non-negative integers and unknown
accounts read as zero. A sealing attempt works on a copy() of the ledger
and the chain swaps it in only once the block is sealed.
"""

from __future__ import annotations

from typing import Optional

from phlopchain.errors import InsufficientFundsError


class BalanceLedger:
    """In-memory account balances.

    Usage:
        ledger = BalanceLedger({"alice": 1000})
        ledger.transfer("alice", "bob", 200)
        ledger.get_balance("bob")  # 200
    """

    def __init__(self, balances: Optional[dict[str, int]] = None) -> None:
        self._balances: dict[str, int] = {}
        for account, amount in (balances or {}).items():
            self.set_balance(account, amount)

    def set_balance(self, account: str, amount: int) -> None:
        if amount < 0:
            raise ValueError(f"Balance cannot be negative: {account}={amount}")
        self._balances[account] = amount

    def get_balance(self, account: str) -> int:
        return self._balances.get(account, 0)

    def credit(self, account: str, amount: int) -> None:
        """Mint amount into account (used for block rewards)."""
        if amount < 0:
            raise ValueError(f"Credit amount cannot be negative: {amount}")
        self._balances[account] = self.get_balance(account) + amount

    def transfer(self, sender: str, receiver: str, amount: int) -> None:
        """Move amount from sender to receiver.

        Raises InsufficientFundsError if the sender cannot cover it.
        """
        if amount < 0:
            raise ValueError(f"Transfer amount cannot be negative: {amount}")
        sender_balance = self.get_balance(sender)
        if sender_balance < amount:
            raise InsufficientFundsError(
                f"Insufficient sender balance: {sender} has {sender_balance}, needs {amount}"
            )
        self._balances[sender] = sender_balance - amount
        self._balances[receiver] = self.get_balance(receiver) + amount

    def accounts(self) -> list[tuple[str, int]]:
        """All (account, balance) pairs in account order."""
        return sorted(self._balances.items())

    def copy(self) -> BalanceLedger:
        return BalanceLedger(dict(self._balances))
