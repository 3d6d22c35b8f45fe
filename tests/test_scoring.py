"""
Tests for the scoring engine and network aggregator.
"""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest

from backend_arcscore.analytics import MetricsService, NetworkAggregator, ScoringConfig, compute_arc_score, median
from backend_arcscore.analytics.scoring import compute_percentile
from backend_arcscore.database import TransactionRecord

from conftest import DAY, T0

WALLETS = [
    "0x1111111111111111111111111111111111111111",
    "0x2222222222222222222222222222222222222222",
    "0x3333333333333333333333333333333333333333",
    "0x4444444444444444444444444444444444444444",
]


def _seed(db, sender: str, count: int, days: int = 1, start: int = 0) -> None:
    """count transactions from sender spread over `days` UTC days."""
    for i in range(count):
        n = start + i
        db.record_transaction(
            TransactionRecord(
                hash="0x" + format(int(sender[2:], 16) + n, "064x"),
                block_number=n + 1,
                block_hash=None,
                from_address=sender,
                to_address=None,
                value="0",
                gas_used="21000",
                gas_price="1",
                timestamp=T0 + (i % days) * DAY,
                transaction_index=0,
            )
        )


def test_compute_arc_score_formula():
    assert compute_arc_score(0, 0) == 0
    assert compute_arc_score(10, 1) == pytest.approx(3.0)
    assert compute_arc_score(100, 5) == pytest.approx(20.0)


def test_compute_arc_score_monotonic_and_capped():
    """More transactions never lower the score; the score never exceeds the cap."""
    for days in (0, 1, 10, 60):
        scores = [compute_arc_score(n, days) for n in range(0, 2000, 37)]
        assert scores == sorted(scores)
        assert max(scores) <= 100
    assert compute_arc_score(10_000, 100) == 100


def test_compute_arc_score_custom_config():
    cfg = ScoringConfig(tx_weight=1.0, day_weight=0.0, cap=5.0)
    assert compute_arc_score(3, 99, cfg) == 3.0
    assert compute_arc_score(30, 0, cfg) == 5.0


def test_compute_percentile():
    assert compute_percentile(1, 4) == 75.0
    assert compute_percentile(4, 4) == 0.0
    assert compute_percentile(1, 1) == 0.0
    assert compute_percentile(1, 0) == 0.0


def test_top_rank_stays_below_100_for_large_populations():
    assert compute_percentile(1, 30000) < 100
    assert compute_percentile(1, 30000) > compute_percentile(2, 30000)


def test_recompute_wallet_metrics_counts_from_stored_rows(db):
    """Cached counters are outputs: a stale cached value is overwritten."""
    _seed(db, WALLETS[0], count=10, days=2)
    db.update_wallet_metrics(WALLETS[0], total_transactions=999, active_days=999, arc_score=99.0)
    wallet = MetricsService(db).recompute_wallet_metrics(WALLETS[0])
    assert wallet.total_transactions == 10
    assert wallet.active_days == 2
    assert wallet.arc_score == pytest.approx(5.0)
    assert wallet.rank == 1


def test_recompute_unknown_wallet_returns_none(db):
    assert MetricsService(db).recompute_wallet_metrics(WALLETS[3]) is None


def test_ranks_form_permutation_with_decreasing_percentile(db):
    _seed(db, WALLETS[0], count=1)
    _seed(db, WALLETS[1], count=30, days=3)
    _seed(db, WALLETS[2], count=5, days=2)
    _seed(db, WALLETS[3], count=1)
    service = MetricsService(db)
    assert service.recalculate_all_metrics() == 4

    wallets = db.list_wallets_by_score()
    ranks = [w.rank for w in wallets]
    assert sorted(ranks) == [1, 2, 3, 4]
    assert ranks == [1, 2, 3, 4]
    assert wallets[0].address == WALLETS[1]
    percentiles = [w.percentile for w in wallets]
    assert percentiles == [75.0, 50.0, 25.0, 0.0]
    # equal scores: earlier first_seen, then lower address
    assert [w.address for w in wallets[2:]] == [WALLETS[0], WALLETS[3]]


def test_recalculate_all_metrics_ranks_once_and_runs_callback(db):
    for i, w in enumerate(WALLETS):
        _seed(db, w, count=i + 1)
    callback = MagicMock()
    service = MetricsService(db, on_all_metrics=callback)
    original = service.recalculate_ranks
    service.recalculate_ranks = MagicMock(side_effect=original)
    service.recalculate_all_metrics()
    assert service.recalculate_ranks.call_count == 1
    callback.assert_called_once_with()


def test_recalculate_all_metrics_continues_past_failing_wallet(db):
    """One wallet raising is logged and skipped; the rest are scored and ranked."""
    for i, w in enumerate(WALLETS[:3]):
        _seed(db, w, count=i + 1)
    count_active_days = db.count_active_days

    def flaky(address):
        if address == WALLETS[1]:
            raise RuntimeError("disk I/O error")
        return count_active_days(address)

    callback = MagicMock()
    service = MetricsService(db, on_all_metrics=callback)
    with patch.object(db, "count_active_days", side_effect=flaky):
        assert service.recalculate_all_metrics() == 2
    callback.assert_called_once_with()
    assert db.get_wallet(WALLETS[2]).rank == 1
    assert db.get_wallet(WALLETS[0]).total_transactions == 1
    assert sorted(w.rank for w in db.list_wallets_by_score()) == [1, 2, 3]


def test_median():
    """Even count averages the two middle values; odd count takes the middle."""
    assert median([1, 3, 5, 7]) == 4
    assert median([1, 3, 5]) == 3
    assert median([7, 1, 5, 3]) == 4
    assert median([]) == 0


def test_update_network_stats(db):
    _seed(db, WALLETS[0], count=1)
    _seed(db, WALLETS[1], count=3)
    _seed(db, WALLETS[2], count=5)
    _seed(db, WALLETS[3], count=7)
    db.create_wallet_if_missing("0x5555555555555555555555555555555555555555", seen_at=T0)
    MetricsService(db).recalculate_all_metrics()
    db.get_indexer_state()
    db.advance_cursor(42, "0xh")

    aggregator = NetworkAggregator(db, clock=lambda: T0 + 5)
    stats = aggregator.update_network_stats()
    assert stats.total_wallets == 5
    assert stats.total_transactions == 16
    assert stats.total_active_wallets == 4
    assert stats.avg_transactions_per_wallet == pytest.approx(3.2)
    assert stats.median_transactions_per_wallet == 4
    assert stats.last_processed_block == 42
    assert stats.last_updated == T0 + 5
    assert db.get_network_stats().total_transactions == 16


def test_update_network_stats_empty_store(db):
    stats = NetworkAggregator(db).update_network_stats()
    assert stats.total_wallets == 0
    assert stats.avg_transactions_per_wallet == 0
    assert stats.median_transactions_per_wallet == 0
