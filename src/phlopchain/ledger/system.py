"""Nonce registry and block counter."""

from __future__ import annotations

from typing import Optional


class NonceRegistry:
    """Per-account transaction nonces plus the chain's block counter."""

    def __init__(
        self,
        nonces: Optional[dict[str, int]] = None,
        block_number: int = 0,
    ) -> None:
        self._nonces: dict[str, int] = dict(nonces or {})
        self._block_number = block_number

    @property
    def block_number(self) -> int:
        return self._block_number

    def increment_block_counter(self) -> None:
        self._block_number += 1

    def get_nonce(self, account: str) -> int:
        return self._nonces.get(account, 0)

    def increment_nonce(self, account: str) -> None:
        self._nonces[account] = self.get_nonce(account) + 1

    def copy(self) -> NonceRegistry:
        return NonceRegistry(self._nonces, self._block_number)
