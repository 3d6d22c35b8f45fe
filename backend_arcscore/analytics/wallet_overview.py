"""
Wallet read-side queries for the HTTP layer.

get_wallet_overview() scores a wallet on demand when it has never been scored and
adds best-effort balances; get_wallet_transactions() pages a wallet's sent
transactions newest first.
"""

from __future__ import annotations

import time
from typing import Any, Callable

from backend_arcscore.analytics.scoring import MetricsService
from backend_arcscore.arc_logging import get_logger
from backend_arcscore.chain_client import ChainClient
from backend_arcscore.database import Database
from backend_arcscore.utils.wallet_utils import normalize_address

logger = get_logger(__name__)

RECENT_TRANSACTIONS_LIMIT = 10
ACTIVITY_DAYS_LIMIT = 30
DEFAULT_PAGE_LIMIT = 100
MAX_PAGE_LIMIT = 1000


def clamp_page(limit: int, offset: int) -> tuple[int, int]:
    """limit into 1..MAX_PAGE_LIMIT, offset to >= 0."""
    return max(1, min(int(limit), MAX_PAGE_LIMIT)), max(0, int(offset))


def pagination(total: int, limit: int, offset: int) -> dict[str, Any]:
    return {"total": total, "limit": limit, "offset": offset, "hasMore": offset + limit < total}


class WalletQueries:
    """Overview and transaction history for one wallet at a time."""

    def __init__(
        self,
        db: Database,
        chain: ChainClient,
        metrics: MetricsService,
        *,
        token_contract_address: str | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._db = db
        self._chain = chain
        self._metrics = metrics
        self._token = token_contract_address
        self._clock = clock

    def get_wallet_overview(self, address: str) -> dict[str, Any]:
        """
        Scores, counts, recent transactions, daily activity and balances for address.
        Raises InvalidWalletAddress for a malformed address.
        """
        address = normalize_address(address)
        wallet = self._db.get_wallet(address)
        if wallet is None:
            wallet = self._db.create_wallet_if_missing(address, int(self._clock()))
        if not wallet.is_scored:
            logger.info("wallet_scored_on_demand", wallet_id=address)
            wallet = self._metrics.recompute_wallet_metrics(address) or wallet

        overview = wallet.to_dict()
        overview["totalTransactions"] = self._db.count_transactions(sender=address)
        overview["activeDays"] = self._db.count_active_days(address)
        overview["recentTransactions"] = [
            tx.to_dict() for tx in self._db.list_transactions(address, limit=RECENT_TRANSACTIONS_LIMIT)
        ]
        overview["activityData"] = [
            day.to_dict() for day in self._db.list_daily_activity(address, limit=ACTIVITY_DAYS_LIMIT)
        ]
        overview["balance"] = self._balances(address)
        return overview

    def _balances(self, address: str) -> dict[str, str]:
        native = self._chain.get_balance(address)
        token = self._chain.get_token_balance(self._token, address) if self._token else "0"
        return {"native": native, "token": token}

    def get_wallet_transactions(
        self,
        address: str,
        limit: int = DEFAULT_PAGE_LIMIT,
        offset: int = 0,
    ) -> dict[str, Any]:
        """Sent transactions newest first, with total / hasMore pagination."""
        address = normalize_address(address)
        limit, offset = clamp_page(limit, offset)
        total = self._db.count_transactions(sender=address)
        rows = self._db.list_transactions(address, limit=limit, offset=offset)
        return {
            "transactions": [tx.to_dict() for tx in rows],
            "pagination": pagination(total, limit, offset),
        }
