"""
Tests for the repository layer: atomic record_transaction, ordering, run lease.
"""

from __future__ import annotations

from datetime import date

from backend_arcscore.database import NetworkStatsRecord, TransactionRecord

from conftest import DAY, T0

ADDR = "0x1111111111111111111111111111111111111111"
ADDR_2 = "0x2222222222222222222222222222222222222222"


def _tx(n: int, sender: str = ADDR, ts: int = T0) -> TransactionRecord:
    return TransactionRecord(
        hash="0x" + format(n, "064x"),
        block_number=n,
        block_hash="0xb" + str(n),
        from_address=sender,
        to_address=ADDR_2,
        value="1000000000000000000",
        gas_used="21000",
        gas_price="1000000000",
        timestamp=ts,
        transaction_index=0,
    )


def test_record_transaction_creates_wallet_and_daily_activity(db):
    """First transaction creates the wallet with first/last seen = block time and one daily row."""
    assert db.record_transaction(_tx(1)) is True
    wallet = db.get_wallet(ADDR)
    assert wallet.first_seen_at == T0
    assert wallet.last_seen_at == T0
    assert wallet.rank is None and wallet.percentile is None
    days = db.list_daily_activity(ADDR)
    assert len(days) == 1
    assert days[0].date == date(2023, 11, 14)
    assert days[0].transaction_count == 1


def test_record_transaction_is_idempotent(db):
    """Same hash twice: second call returns False and nothing is double counted."""
    assert db.record_transaction(_tx(1)) is True
    assert db.record_transaction(_tx(1)) is False
    assert db.count_transactions() == 1
    assert db.list_daily_activity(ADDR)[0].transaction_count == 1


def test_daily_activity_buckets_by_utc_day(db):
    db.record_transaction(_tx(1, ts=T0))
    db.record_transaction(_tx(2, ts=T0 + 60))
    db.record_transaction(_tx(3, ts=T0 + DAY))
    days = db.list_daily_activity(ADDR)
    assert [d.transaction_count for d in days] == [1, 2]
    assert days[0].date > days[1].date
    assert db.count_active_days(ADDR) == 2


def test_seen_times_keep_extremes_out_of_order(db):
    """A late-arriving older block lowers first_seen_at but never lowers last_seen_at."""
    db.record_transaction(_tx(2, ts=T0 + 100))
    db.record_transaction(_tx(1, ts=T0))
    wallet = db.get_wallet(ADDR)
    assert wallet.first_seen_at == T0
    assert wallet.last_seen_at == T0 + 100


def test_list_transactions_newest_first(db):
    for n in range(1, 4):
        db.record_transaction(_tx(n, ts=T0 + n))
    rows = db.list_transactions(ADDR, limit=2)
    assert [r.block_number for r in rows] == [3, 2]
    assert db.list_transactions(ADDR, limit=2, offset=2)[0].block_number == 1
    assert db.count_transactions(sender=ADDR) == 3
    assert db.count_transactions(sender=ADDR_2) == 0


def test_list_wallets_by_score_tie_break(db):
    """Equal scores order by first_seen_at, then address."""
    db.record_transaction(_tx(1, sender=ADDR_2, ts=T0))
    db.record_transaction(_tx(2, sender=ADDR, ts=T0))
    db.record_transaction(_tx(3, sender="0x" + "0" * 39 + "9", ts=T0 - 10))
    for address in db.list_wallet_addresses():
        db.update_wallet_metrics(address, 1, 1, 2.1)
    order = [w.address for w in db.list_wallets_by_score()]
    assert order == ["0x" + "0" * 39 + "9", ADDR, ADDR_2]


def test_create_wallet_if_missing_keeps_existing(db):
    db.record_transaction(_tx(1))
    wallet = db.create_wallet_if_missing(ADDR, seen_at=T0 + 999)
    assert wallet.first_seen_at == T0
    fresh = db.create_wallet_if_missing(ADDR_2, seen_at=T0 + 5)
    assert fresh.first_seen_at == fresh.last_seen_at == T0 + 5
    assert fresh.total_transactions == 0


def test_indexer_state_created_at_start_block(db):
    state = db.get_indexer_state(start_block=500)
    assert state.last_block_number == 500
    assert state.run_state == "idle"
    # later start_block values do not reset an existing row
    assert db.get_indexer_state(start_block=9).last_block_number == 500


def test_run_lease_excludes_second_owner(db):
    """Only one owner holds the lease; an expired lease can be taken over."""
    db.get_indexer_state()
    assert db.try_acquire_run_lease("a", ttl_sec=60, now=1000.0) is True
    assert db.try_acquire_run_lease("b", ttl_sec=60, now=1010.0) is False
    assert db.extend_run_lease("a", ttl_sec=60, now=1050.0) is True
    assert db.try_acquire_run_lease("b", ttl_sec=60, now=1100.0) is False
    assert db.try_acquire_run_lease("b", ttl_sec=60, now=1111.0) is True
    # the stale owner can no longer release or extend
    assert db.release_run_lease("a") is False
    assert db.extend_run_lease("a", ttl_sec=60) is False
    assert db.get_indexer_state().lease_owner == "b"


def test_release_and_fail_transitions(db):
    db.get_indexer_state()
    assert db.try_acquire_run_lease("a", ttl_sec=60)
    assert db.mark_run_failed("a", "node down") is True
    state = db.get_indexer_state()
    assert state.run_state == "failed"
    assert state.error_message == "node down"
    assert state.is_running is False
    assert db.try_acquire_run_lease("b", ttl_sec=60)
    assert db.release_run_lease("b") is True
    state = db.get_indexer_state()
    assert state.run_state == "idle"
    assert state.error_message is None


def test_advance_cursor_never_moves_backwards(db):
    db.get_indexer_state()
    assert db.advance_cursor(10, "0xa") is True
    assert db.advance_cursor(5, "0xb") is False
    assert db.advance_cursor(10, "0xc") is False
    state = db.get_indexer_state()
    assert state.last_block_number == 10
    assert state.last_block_hash == "0xa"


def test_network_stats_default_and_replace(db):
    stats = db.get_network_stats()
    assert stats.total_wallets == 0
    assert stats.to_dict()["totalTransactions"] == "0"
    db.save_network_stats(NetworkStatsRecord(total_wallets=3, total_transactions=12, last_processed_block=77))
    saved = db.get_network_stats()
    assert saved.total_wallets == 3
    assert saved.total_transactions == 12
    assert saved.to_dict()["lastProcessedBlock"] == "77"
