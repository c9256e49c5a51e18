"""PhlopChain — a single-node ledger sealed by quota-based game mining."""

__version__ = "0.1.0"
