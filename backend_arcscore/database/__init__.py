"""
Database abstraction layer: wallets, transactions, daily activity, indexer state, network stats.

SQLite by default via get_database(); any SQLAlchemy URL (e.g. PostgreSQL) works unchanged.
"""

from backend_arcscore.database.database import (
    Database,
    DatabaseBackend,
    SQLAlchemyBackend,
    get_database,
)
from backend_arcscore.database.models import (
    DailyActivityRecord,
    IndexerStateRecord,
    NetworkStatsRecord,
    TransactionRecord,
    WalletRecord,
)

__all__ = [
    "Database",
    "DatabaseBackend",
    "SQLAlchemyBackend",
    "get_database",
    "DailyActivityRecord",
    "IndexerStateRecord",
    "NetworkStatsRecord",
    "TransactionRecord",
    "WalletRecord",
]
