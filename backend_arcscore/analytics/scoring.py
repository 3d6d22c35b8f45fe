"""
Scoring engine: per-wallet ARC score, then a full rank / percentile pass.

Formula: arc_score = min(cap, tx_count * tx_weight + active_days * day_weight),
with tx_weight = 0.1, day_weight = 2, cap = 100 unless configured otherwise.
Inputs are counted from stored transactions and daily activity rows, never from
the wallet's cached counters.

Ranking orders every wallet by arc_score desc, first_seen_at asc, address asc;
rank = position + 1 and percentile = (N - rank) / N * 100.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

from backend_arcscore.arc_logging import get_logger
from backend_arcscore.database import Database, WalletRecord

logger = get_logger(__name__)

TX_WEIGHT = 0.1
DAY_WEIGHT = 2.0
SCORE_CAP = 100.0
SCORE_MIN = 0.0
SCORE_DECIMALS = 4


@dataclass(frozen=True)
class ScoringConfig:
    """Tunable coefficients of the ARC score."""

    tx_weight: float = TX_WEIGHT
    day_weight: float = DAY_WEIGHT
    cap: float = SCORE_CAP


def compute_arc_score(
    transaction_count: int,
    active_days: int,
    config: ScoringConfig | None = None,
) -> float:
    """Bounded linear score, clamped to [0, cap]."""
    cfg = config or ScoringConfig()
    raw = max(0, transaction_count) * cfg.tx_weight + max(0, active_days) * cfg.day_weight
    return round(max(SCORE_MIN, min(cfg.cap, raw)), SCORE_DECIMALS)


def compute_percentile(rank: int, total: int) -> float:
    """(total - rank) / total * 100, unrounded; rank 1 is highest but below 100, rank total is 0."""
    if total <= 0:
        return 0.0
    return (total - rank) / total * 100


class MetricsService:
    """Recomputes cached wallet metrics and the global ranking."""

    def __init__(
        self,
        db: Database,
        config: ScoringConfig | None = None,
        *,
        on_all_metrics: Callable[[], object] | None = None,
    ) -> None:
        self._db = db
        self._config = config or ScoringConfig()
        self._on_all_metrics = on_all_metrics

    @property
    def config(self) -> ScoringConfig:
        return self._config

    def recompute_wallet_metrics(self, address: str, *, rerank: bool = True) -> WalletRecord | None:
        """
        Count the wallet's transactions and active days from stored rows, write the
        new score, and (by default) rerank everyone. None if the wallet is unknown.
        """
        tx_count = self._db.count_transactions(sender=address)
        active_days = self._db.count_active_days(address)
        score = compute_arc_score(tx_count, active_days, self._config)
        if not self._db.update_wallet_metrics(address, tx_count, active_days, score):
            logger.warning("wallet_metrics_missing_wallet", wallet_id=address)
            return None
        logger.debug(
            "wallet_metrics_updated",
            wallet_id=address,
            total_transactions=tx_count,
            active_days=active_days,
            arc_score=score,
        )
        if rerank:
            self.recalculate_ranks()
        return self._db.get_wallet(address)

    def recalculate_ranks(self) -> int:
        """Assign rank and percentile to every wallet. Returns the wallet count."""
        wallets = self._db.list_wallets_by_score()
        total = len(wallets)
        ranks = [
            (w.address, position + 1, compute_percentile(position + 1, total))
            for position, w in enumerate(wallets)
        ]
        self._db.update_wallet_ranks(ranks)
        logger.info("ranks_recalculated", total_wallets=total)
        return total

    def recalculate_all_metrics(self) -> int:
        """
        Recompute every wallet's counters and score in one pass, rank once, then
        run the network stats callback. A wallet that fails is logged and left
        with its previous metrics. Returns the number of wallets scored.
        """
        addresses = self._db.list_wallet_addresses()
        scored = 0
        for address in addresses:
            try:
                if self.recompute_wallet_metrics(address, rerank=False) is not None:
                    scored += 1
            except Exception:
                logger.exception("wallet_metrics_failed", wallet_id=address)
        self.recalculate_ranks()
        if self._on_all_metrics is not None:
            self._on_all_metrics()
        logger.info("all_metrics_recalculated", wallets=scored)
        return scored
