"""Network read-side queries: stored aggregates and the score leaderboard."""

from __future__ import annotations

from typing import Any

from backend_arcscore.analytics.wallet_overview import DEFAULT_PAGE_LIMIT, clamp_page, pagination
from backend_arcscore.database import Database


def get_network_stats(db: Database) -> dict[str, Any]:
    """NetworkStats singleton; a zero row is created on first read."""
    return db.get_network_stats().to_dict()


def get_leaderboard(db: Database, limit: int = DEFAULT_PAGE_LIMIT, offset: int = 0) -> dict[str, Any]:
    """Wallets with at least one transaction, best score first."""
    limit, offset = clamp_page(limit, offset)
    wallets = db.list_wallets_by_score(limit=limit, offset=offset, active_only=True)
    total = db.count_wallets(active_only=True)
    return {
        "wallets": [
            {
                "address": w.address,
                "arcScore": w.arc_score,
                "rank": w.rank,
                "percentile": w.percentile,
                "totalTransactions": w.total_transactions,
                "activeDays": w.active_days,
                "status": w.status,
            }
            for w in wallets
        ],
        "pagination": pagination(total, limit, offset),
    }
