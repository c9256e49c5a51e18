"""Chain data models — transaction and block envelopes."""

from phlopchain.models.transaction import Block, Transaction

__all__ = ["Block", "Transaction"]
