"""Network-wide aggregates, recomputed wholesale from stored wallets and the cursor."""

from __future__ import annotations

import time
from typing import Callable, Sequence

from backend_arcscore.arc_logging import get_logger
from backend_arcscore.database import Database, NetworkStatsRecord

logger = get_logger(__name__)


def median(values: Sequence[int | float]) -> float:
    """Median of values; mean of the two middle values for even length; 0 for empty."""
    ordered = sorted(values)
    n = len(ordered)
    if n == 0:
        return 0.0
    mid = n // 2
    if n % 2 == 0:
        return (ordered[mid - 1] + ordered[mid]) / 2
    return float(ordered[mid])


class NetworkAggregator:
    """Builds and saves the NetworkStats singleton."""

    def __init__(
        self,
        db: Database,
        *,
        start_block: int = 0,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._db = db
        self._start_block = start_block
        self._clock = clock

    def compute_network_stats(self) -> NetworkStatsRecord:
        total_wallets = self._db.count_wallets()
        total_transactions = self._db.count_transactions()
        active_counts = self._db.active_transaction_counts()
        avg = total_transactions / total_wallets if total_wallets else 0.0
        return NetworkStatsRecord(
            total_wallets=total_wallets,
            total_transactions=total_transactions,
            total_active_wallets=len(active_counts),
            avg_transactions_per_wallet=round(avg, 4),
            median_transactions_per_wallet=median(active_counts),
            last_processed_block=self._db.get_indexer_state(self._start_block).last_block_number,
            last_updated=int(self._clock()),
        )

    def update_network_stats(self) -> NetworkStatsRecord:
        """Recompute all aggregates and replace the stored row in one write."""
        stats = self.compute_network_stats()
        self._db.save_network_stats(stats)
        logger.info(
            "network_stats_updated",
            total_wallets=stats.total_wallets,
            total_transactions=stats.total_transactions,
            total_active_wallets=stats.total_active_wallets,
            last_processed_block=stats.last_processed_block,
        )
        return stats
