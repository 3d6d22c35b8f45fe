"""
Chain client package.

JSON-RPC reads against the Arc (EVM-compatible) node: block height, blocks with
transactions, receipts, and best-effort native / token balances.
"""

from backend_arcscore.chain_client.client import ChainClient
from backend_arcscore.chain_client.models import Block, ChainTransaction, Receipt

__all__ = [
    "Block",
    "ChainClient",
    "ChainTransaction",
    "Receipt",
]
