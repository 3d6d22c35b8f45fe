"""
Repository layer for wallets, transactions, daily activity, indexer state and network stats.

All access goes through the DatabaseBackend interface; SQLAlchemyBackend implements it
for any SQLAlchemy URL (SQLite file by default, PostgreSQL via DATABASE_URL).
Every method opens its own session and commits on success, so no ORM object
escapes to callers and no state is cached between indexing cycles.
"""

from __future__ import annotations

import time
from abc import ABC, abstractmethod
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

from sqlalchemy import create_engine, func, or_
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from backend_arcscore.arc_logging import get_logger
from backend_arcscore.config.env import DEFAULT_DATABASE_URL, mask_url
from backend_arcscore.database.models import (
    DailyActivityRecord,
    IndexerStateRecord,
    NetworkStatsRecord,
    TransactionRecord,
    WalletRecord,
)
from backend_arcscore.database.tables import (
    SINGLETON_ID,
    Base,
    DailyActivityRow,
    IndexerStateRow,
    NetworkStatsRow,
    TransactionRow,
    WalletRow,
)

logger = get_logger(__name__)


# -----------------------------------------------------------------------------
# Abstract backend
# -----------------------------------------------------------------------------


class DatabaseBackend(ABC):
    """Abstract interface over the five ARC Score entities."""

    @abstractmethod
    def ensure_schema(self) -> None:
        """Create tables and indexes if they do not exist."""
        ...

    # --- Wallets ---

    @abstractmethod
    def get_wallet(self, address: str) -> WalletRecord | None:
        ...

    @abstractmethod
    def create_wallet_if_missing(self, address: str, seen_at: int) -> WalletRecord:
        """Return the wallet, inserting it with first/last seen = seen_at when absent."""
        ...

    @abstractmethod
    def list_wallet_addresses(self) -> list[str]:
        """All wallet addresses in storage order."""
        ...

    @abstractmethod
    def count_wallets(self, *, active_only: bool = False) -> int:
        """Count wallets; active_only counts wallets with total_transactions > 0."""
        ...

    @abstractmethod
    def list_wallets_by_score(
        self,
        *,
        limit: int | None = None,
        offset: int = 0,
        active_only: bool = False,
    ) -> list[WalletRecord]:
        """
        Wallets ordered by arc_score desc, then first_seen_at asc, then address asc.
        The two secondary keys make the order total, so ranks are deterministic on ties.
        """
        ...

    @abstractmethod
    def active_transaction_counts(self) -> list[int]:
        """total_transactions of every wallet with total_transactions > 0, ascending."""
        ...

    @abstractmethod
    def update_wallet_metrics(
        self,
        address: str,
        total_transactions: int,
        active_days: int,
        arc_score: float,
    ) -> bool:
        """Write cached metrics onto a wallet. Returns False if the wallet does not exist."""
        ...

    @abstractmethod
    def update_wallet_ranks(self, ranks: list[tuple[str, int, float]]) -> None:
        """Write (address, rank, percentile) for many wallets in one transaction."""
        ...

    # --- Transactions ---

    @abstractmethod
    def transaction_exists(self, tx_hash: str) -> bool:
        ...

    @abstractmethod
    def record_transaction(self, tx: TransactionRecord) -> bool:
        """
        Atomically: upsert the sender wallet, insert the transaction, and increment the
        sender's daily activity for the transaction's UTC day. Returns False (and writes
        nothing) if a transaction with this hash already exists.
        """
        ...

    @abstractmethod
    def count_transactions(self, *, sender: str | None = None) -> int:
        ...

    @abstractmethod
    def list_transactions(
        self,
        sender: str,
        *,
        limit: int = 100,
        offset: int = 0,
    ) -> list[TransactionRecord]:
        """Transactions sent by sender, newest first."""
        ...

    # --- Daily activity ---

    @abstractmethod
    def count_active_days(self, address: str) -> int:
        ...

    @abstractmethod
    def list_daily_activity(self, address: str, *, limit: int = 30) -> list[DailyActivityRecord]:
        """Daily activity rows for a wallet, newest day first."""
        ...

    # --- Indexer state ---

    @abstractmethod
    def get_indexer_state(self, start_block: int = 0) -> IndexerStateRecord:
        """Return the singleton, creating it with last_block_number = start_block when absent."""
        ...

    @abstractmethod
    def try_acquire_run_lease(self, owner: str, now: float, ttl_sec: float) -> bool:
        """
        Single conditional UPDATE: take the run lease if nobody holds it or the
        holder's lease expired. Returns True only for the caller that won.
        """
        ...

    @abstractmethod
    def extend_run_lease(self, owner: str, now: float, ttl_sec: float) -> bool:
        """Push the owner's lease expiry to now + ttl_sec. False if the lease was lost."""
        ...

    @abstractmethod
    def advance_cursor(self, block_number: int, block_hash: str | None, now: int) -> bool:
        """Move the cursor forward to block_number. Never moves it backwards."""
        ...

    @abstractmethod
    def release_run_lease(self, owner: str, now: int) -> bool:
        """Running -> Idle for the lease owner; clears error_message."""
        ...

    @abstractmethod
    def mark_run_failed(self, owner: str, error_message: str, now: int) -> bool:
        """Running -> Failed for the lease owner; records error_message, clears is_running."""
        ...

    # --- Network stats ---

    @abstractmethod
    def get_network_stats(self) -> NetworkStatsRecord:
        """Return the singleton, creating a zero row when absent."""
        ...

    @abstractmethod
    def save_network_stats(self, stats: NetworkStatsRecord) -> None:
        """Replace the singleton wholesale in one write."""
        ...


# -----------------------------------------------------------------------------
# SQLAlchemy backend
# -----------------------------------------------------------------------------


def create_db_engine(url: str) -> Engine:
    """Engine for url. SQLite files get their parent directory created; :memory: shares one connection."""
    parsed = make_url(url)
    kwargs: dict = {"pool_pre_ping": True}
    if parsed.drivername.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False}
        database = parsed.database or ""
        if database in ("", ":memory:"):
            kwargs["poolclass"] = StaticPool
        else:
            Path(database).parent.mkdir(parents=True, exist_ok=True)
    return create_engine(url, **kwargs)


class SQLAlchemyBackend(DatabaseBackend):
    """SQLAlchemy implementation; one short-lived session per operation."""

    def __init__(self, engine: Engine) -> None:
        self._engine = engine
        self._session_factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    @contextmanager
    def _session_scope(self) -> Iterator[Session]:
        """Commits on success, rolls back on error."""
        session = self._session_factory()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def ensure_schema(self) -> None:
        Base.metadata.create_all(bind=self._engine)

    # --- Wallets ---

    def get_wallet(self, address: str) -> WalletRecord | None:
        with self._session_scope() as session:
            row = session.get(WalletRow, address)
            return row.to_record() if row else None

    def create_wallet_if_missing(self, address: str, seen_at: int) -> WalletRecord:
        try:
            with self._session_scope() as session:
                row = session.get(WalletRow, address)
                if row is None:
                    row = WalletRow(address=address, first_seen_at=seen_at, last_seen_at=seen_at)
                    session.add(row)
                    session.flush()
                    logger.info("wallet_created", wallet_id=address)
                return row.to_record()
        except IntegrityError:
            # created concurrently between get and insert
            existing = self.get_wallet(address)
            if existing is None:
                raise
            return existing

    def list_wallet_addresses(self) -> list[str]:
        with self._session_scope() as session:
            rows = session.query(WalletRow.address).order_by(WalletRow.address).all()
            return [r[0] for r in rows]

    def count_wallets(self, *, active_only: bool = False) -> int:
        with self._session_scope() as session:
            q = session.query(func.count(WalletRow.address))
            if active_only:
                q = q.filter(WalletRow.total_transactions > 0)
            return int(q.scalar() or 0)

    def list_wallets_by_score(
        self,
        *,
        limit: int | None = None,
        offset: int = 0,
        active_only: bool = False,
    ) -> list[WalletRecord]:
        with self._session_scope() as session:
            q = session.query(WalletRow)
            if active_only:
                q = q.filter(WalletRow.total_transactions > 0)
            q = q.order_by(
                WalletRow.arc_score.desc(),
                WalletRow.first_seen_at.asc(),
                WalletRow.address.asc(),
            )
            if offset:
                q = q.offset(offset)
            if limit is not None:
                q = q.limit(limit)
            return [r.to_record() for r in q.all()]

    def active_transaction_counts(self) -> list[int]:
        with self._session_scope() as session:
            rows = (
                session.query(WalletRow.total_transactions)
                .filter(WalletRow.total_transactions > 0)
                .order_by(WalletRow.total_transactions.asc())
                .all()
            )
            return [int(r[0]) for r in rows]

    def update_wallet_metrics(
        self,
        address: str,
        total_transactions: int,
        active_days: int,
        arc_score: float,
    ) -> bool:
        with self._session_scope() as session:
            updated = (
                session.query(WalletRow)
                .filter(WalletRow.address == address)
                .update(
                    {
                        "total_transactions": total_transactions,
                        "active_days": active_days,
                        "arc_score": arc_score,
                    },
                    synchronize_session=False,
                )
            )
            return updated == 1

    def update_wallet_ranks(self, ranks: list[tuple[str, int, float]]) -> None:
        if not ranks:
            return
        with self._session_scope() as session:
            session.bulk_update_mappings(
                WalletRow,
                [
                    {"address": address, "rank": rank, "percentile": percentile}
                    for address, rank, percentile in ranks
                ],
            )

    # --- Transactions ---

    def transaction_exists(self, tx_hash: str) -> bool:
        with self._session_scope() as session:
            return session.get(TransactionRow, tx_hash) is not None

    def record_transaction(self, tx: TransactionRecord) -> bool:
        try:
            with self._session_scope() as session:
                if session.get(TransactionRow, tx.hash) is not None:
                    return False
                wallet = session.get(WalletRow, tx.from_address)
                if wallet is None:
                    session.add(
                        WalletRow(
                            address=tx.from_address,
                            first_seen_at=tx.timestamp,
                            last_seen_at=tx.timestamp,
                        )
                    )
                else:
                    # blocks may arrive out of order under retries; keep the extremes
                    if tx.timestamp > wallet.last_seen_at:
                        wallet.last_seen_at = tx.timestamp
                    if tx.timestamp < wallet.first_seen_at:
                        wallet.first_seen_at = tx.timestamp
                session.add(TransactionRow.from_record(tx))
                day = tx.day
                bumped = (
                    session.query(DailyActivityRow)
                    .filter(
                        DailyActivityRow.wallet_address == tx.from_address,
                        DailyActivityRow.date == day,
                    )
                    .update(
                        {"transaction_count": DailyActivityRow.transaction_count + 1},
                        synchronize_session=False,
                    )
                )
                if bumped == 0:
                    session.add(
                        DailyActivityRow(wallet_address=tx.from_address, date=day, transaction_count=1)
                    )
                session.flush()
                return True
        except IntegrityError:
            if self.transaction_exists(tx.hash):
                return False
            raise

    def count_transactions(self, *, sender: str | None = None) -> int:
        with self._session_scope() as session:
            q = session.query(func.count(TransactionRow.hash))
            if sender is not None:
                q = q.filter(TransactionRow.from_address == sender)
            return int(q.scalar() or 0)

    def list_transactions(
        self,
        sender: str,
        *,
        limit: int = 100,
        offset: int = 0,
    ) -> list[TransactionRecord]:
        with self._session_scope() as session:
            rows = (
                session.query(TransactionRow)
                .filter(TransactionRow.from_address == sender)
                .order_by(
                    TransactionRow.timestamp.desc(),
                    TransactionRow.block_number.desc(),
                    TransactionRow.transaction_index.desc(),
                )
                .offset(offset)
                .limit(limit)
                .all()
            )
            return [r.to_record() for r in rows]

    # --- Daily activity ---

    def count_active_days(self, address: str) -> int:
        with self._session_scope() as session:
            return int(
                session.query(func.count(DailyActivityRow.date))
                .filter(DailyActivityRow.wallet_address == address)
                .scalar()
                or 0
            )

    def list_daily_activity(self, address: str, *, limit: int = 30) -> list[DailyActivityRecord]:
        with self._session_scope() as session:
            rows = (
                session.query(DailyActivityRow)
                .filter(DailyActivityRow.wallet_address == address)
                .order_by(DailyActivityRow.date.desc())
                .limit(limit)
                .all()
            )
            return [r.to_record() for r in rows]

    # --- Indexer state ---

    def get_indexer_state(self, start_block: int = 0) -> IndexerStateRecord:
        try:
            with self._session_scope() as session:
                row = session.get(IndexerStateRow, SINGLETON_ID)
                if row is None:
                    row = IndexerStateRow(
                        id=SINGLETON_ID,
                        last_block_number=start_block,
                        is_running=False,
                    )
                    session.add(row)
                    session.flush()
                    logger.info("indexer_state_created", start_block=start_block)
                return row.to_record()
        except IntegrityError:
            with self._session_scope() as session:
                return session.get(IndexerStateRow, SINGLETON_ID).to_record()

    def try_acquire_run_lease(self, owner: str, now: float, ttl_sec: float) -> bool:
        with self._session_scope() as session:
            updated = (
                session.query(IndexerStateRow)
                .filter(
                    IndexerStateRow.id == SINGLETON_ID,
                    or_(
                        IndexerStateRow.is_running.is_(False),
                        IndexerStateRow.lease_expires_at.is_(None),
                        IndexerStateRow.lease_expires_at < now,
                    ),
                )
                .update(
                    {
                        "is_running": True,
                        "lease_owner": owner,
                        "lease_expires_at": now + ttl_sec,
                    },
                    synchronize_session=False,
                )
            )
            return updated == 1

    def extend_run_lease(self, owner: str, now: float, ttl_sec: float) -> bool:
        with self._session_scope() as session:
            updated = (
                session.query(IndexerStateRow)
                .filter(
                    IndexerStateRow.id == SINGLETON_ID,
                    IndexerStateRow.is_running.is_(True),
                    IndexerStateRow.lease_owner == owner,
                )
                .update({"lease_expires_at": now + ttl_sec}, synchronize_session=False)
            )
            return updated == 1

    def advance_cursor(self, block_number: int, block_hash: str | None, now: int) -> bool:
        with self._session_scope() as session:
            updated = (
                session.query(IndexerStateRow)
                .filter(
                    IndexerStateRow.id == SINGLETON_ID,
                    IndexerStateRow.last_block_number < block_number,
                )
                .update(
                    {
                        "last_block_number": block_number,
                        "last_block_hash": block_hash,
                        "last_run_at": now,
                    },
                    synchronize_session=False,
                )
            )
            return updated == 1

    def release_run_lease(self, owner: str, now: int) -> bool:
        return self._finish_run(owner, None, now)

    def mark_run_failed(self, owner: str, error_message: str, now: int) -> bool:
        return self._finish_run(owner, error_message, now)

    def _finish_run(self, owner: str, error_message: str | None, now: int) -> bool:
        with self._session_scope() as session:
            updated = (
                session.query(IndexerStateRow)
                .filter(
                    IndexerStateRow.id == SINGLETON_ID,
                    IndexerStateRow.lease_owner == owner,
                )
                .update(
                    {
                        "is_running": False,
                        "lease_owner": None,
                        "lease_expires_at": None,
                        "error_message": error_message,
                        "last_run_at": now,
                    },
                    synchronize_session=False,
                )
            )
            return updated == 1

    # --- Network stats ---

    def get_network_stats(self) -> NetworkStatsRecord:
        try:
            with self._session_scope() as session:
                row = session.get(NetworkStatsRow, SINGLETON_ID)
                if row is None:
                    row = NetworkStatsRow(id=SINGLETON_ID)
                    session.add(row)
                    session.flush()
                return row.to_record()
        except IntegrityError:
            with self._session_scope() as session:
                return session.get(NetworkStatsRow, SINGLETON_ID).to_record()

    def save_network_stats(self, stats: NetworkStatsRecord) -> None:
        values = {
            "total_wallets": stats.total_wallets,
            "total_transactions": str(stats.total_transactions),
            "total_active_wallets": stats.total_active_wallets,
            "avg_transactions_per_wallet": stats.avg_transactions_per_wallet,
            "median_transactions_per_wallet": stats.median_transactions_per_wallet,
            "last_processed_block": stats.last_processed_block,
            "last_updated": stats.last_updated,
        }
        with self._session_scope() as session:
            row = session.get(NetworkStatsRow, SINGLETON_ID)
            if row is None:
                session.add(NetworkStatsRow(id=SINGLETON_ID, **values))
            else:
                for key, value in values.items():
                    setattr(row, key, value)


# -----------------------------------------------------------------------------
# Database facade
# -----------------------------------------------------------------------------


class Database:
    """
    Single entrypoint for the ingestion engine, scorer and read-side queries.

    Wraps a DatabaseBackend; fills in "now" for state transitions so callers
    only pass a clock when they need a deterministic one.
    """

    def __init__(self, backend: DatabaseBackend) -> None:
        self._backend = backend

    def ensure_schema(self) -> None:
        self._backend.ensure_schema()

    # --- Wallets ---

    def get_wallet(self, address: str) -> WalletRecord | None:
        return self._backend.get_wallet(address)

    def create_wallet_if_missing(self, address: str, seen_at: int | None = None) -> WalletRecord:
        seen_at = seen_at if seen_at is not None else int(time.time())
        return self._backend.create_wallet_if_missing(address, seen_at)

    def list_wallet_addresses(self) -> list[str]:
        return self._backend.list_wallet_addresses()

    def count_wallets(self, *, active_only: bool = False) -> int:
        return self._backend.count_wallets(active_only=active_only)

    def list_wallets_by_score(
        self,
        *,
        limit: int | None = None,
        offset: int = 0,
        active_only: bool = False,
    ) -> list[WalletRecord]:
        return self._backend.list_wallets_by_score(limit=limit, offset=offset, active_only=active_only)

    def active_transaction_counts(self) -> list[int]:
        return self._backend.active_transaction_counts()

    def update_wallet_metrics(
        self,
        address: str,
        total_transactions: int,
        active_days: int,
        arc_score: float,
    ) -> bool:
        return self._backend.update_wallet_metrics(address, total_transactions, active_days, arc_score)

    def update_wallet_ranks(self, ranks: list[tuple[str, int, float]]) -> None:
        self._backend.update_wallet_ranks(ranks)

    # --- Transactions ---

    def transaction_exists(self, tx_hash: str) -> bool:
        return self._backend.transaction_exists(tx_hash)

    def record_transaction(self, tx: TransactionRecord) -> bool:
        return self._backend.record_transaction(tx)

    def count_transactions(self, *, sender: str | None = None) -> int:
        return self._backend.count_transactions(sender=sender)

    def list_transactions(self, sender: str, *, limit: int = 100, offset: int = 0) -> list[TransactionRecord]:
        return self._backend.list_transactions(sender, limit=limit, offset=offset)

    # --- Daily activity ---

    def count_active_days(self, address: str) -> int:
        return self._backend.count_active_days(address)

    def list_daily_activity(self, address: str, *, limit: int = 30) -> list[DailyActivityRecord]:
        return self._backend.list_daily_activity(address, limit=limit)

    # --- Indexer state ---

    def get_indexer_state(self, start_block: int = 0) -> IndexerStateRecord:
        return self._backend.get_indexer_state(start_block)

    def try_acquire_run_lease(self, owner: str, ttl_sec: float, now: float | None = None) -> bool:
        now = now if now is not None else time.time()
        return self._backend.try_acquire_run_lease(owner, now, ttl_sec)

    def extend_run_lease(self, owner: str, ttl_sec: float, now: float | None = None) -> bool:
        now = now if now is not None else time.time()
        return self._backend.extend_run_lease(owner, now, ttl_sec)

    def advance_cursor(self, block_number: int, block_hash: str | None, now: int | None = None) -> bool:
        now = now if now is not None else int(time.time())
        return self._backend.advance_cursor(block_number, block_hash, now)

    def release_run_lease(self, owner: str, now: int | None = None) -> bool:
        now = now if now is not None else int(time.time())
        return self._backend.release_run_lease(owner, now)

    def mark_run_failed(self, owner: str, error_message: str, now: int | None = None) -> bool:
        now = now if now is not None else int(time.time())
        return self._backend.mark_run_failed(owner, error_message, now)

    # --- Network stats ---

    def get_network_stats(self) -> NetworkStatsRecord:
        return self._backend.get_network_stats()

    def save_network_stats(self, stats: NetworkStatsRecord) -> None:
        self._backend.save_network_stats(stats)


def get_database(url: str | None = None) -> Database:
    """
    Return a Database over the given SQLAlchemy URL with the schema in place.

    url: e.g. "sqlite:///data/arcscore.db" or "postgresql+psycopg://user:pw@host/arcscore".
    Default: sqlite:///arcscore.db in cwd.
    """
    url = url or DEFAULT_DATABASE_URL
    backend = SQLAlchemyBackend(create_db_engine(url))
    db = Database(backend)
    db.ensure_schema()
    logger.info("database_ready", url=mask_url(url))
    return db
