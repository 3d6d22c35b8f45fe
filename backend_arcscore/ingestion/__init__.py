"""
Block ingestion: cursor store with run lease, and the indexer that turns chain
blocks into stored transactions, wallets and daily activity.
"""

from backend_arcscore.ingestion.cursor import CursorStore
from backend_arcscore.ingestion.indexer import BlockIndexResult, IndexerService

__all__ = ["BlockIndexResult", "CursorStore", "IndexerService"]
