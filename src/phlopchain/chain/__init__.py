"""Chain context."""

from phlopchain.chain.blockchain import NETWORK_ACCOUNT, Blockchain

__all__ = ["NETWORK_ACCOUNT", "Blockchain"]
