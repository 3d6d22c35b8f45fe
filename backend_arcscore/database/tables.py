"""
SQLAlchemy table definitions for the ARC Score store.

wallets, transactions, daily_activity, plus the two singleton rows
indexer_state and network_stats (id = 1). Wei amounts are strings to avoid
precision loss; timestamps are Unix seconds.
"""

from __future__ import annotations

from sqlalchemy import (
    BigInteger,
    Boolean,
    Column,
    Date,
    Float,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import declarative_base

from backend_arcscore.database.models import (
    DailyActivityRecord,
    IndexerStateRecord,
    NetworkStatsRecord,
    TransactionRecord,
    WalletRecord,
)

Base = declarative_base()

SINGLETON_ID = 1


class WalletRow(Base):
    __tablename__ = "wallets"

    address = Column(String(42), primary_key=True)
    first_seen_at = Column(Integer, nullable=False)
    last_seen_at = Column(Integer, nullable=False, index=True)
    total_transactions = Column(Integer, nullable=False, default=0, index=True)
    active_days = Column(Integer, nullable=False, default=0)
    arc_score = Column(Float, nullable=False, default=0.0, index=True)
    rank = Column(Integer, nullable=True)
    percentile = Column(Float, nullable=True)
    status = Column(String(32), nullable=False, default="active")

    def to_record(self) -> WalletRecord:
        return WalletRecord(
            address=self.address,
            first_seen_at=self.first_seen_at,
            last_seen_at=self.last_seen_at,
            total_transactions=self.total_transactions or 0,
            active_days=self.active_days or 0,
            arc_score=self.arc_score or 0.0,
            rank=self.rank,
            percentile=self.percentile,
            status=self.status or "active",
        )


class TransactionRow(Base):
    __tablename__ = "transactions"

    hash = Column(String(66), primary_key=True)
    block_number = Column(BigInteger, nullable=False, index=True)
    block_hash = Column(String(66), nullable=True)
    from_address = Column(String(42), nullable=False, index=True)
    to_address = Column(String(42), nullable=True, index=True)
    value = Column(String(80), nullable=False, default="0")
    gas_used = Column(String(80), nullable=False, default="0")
    gas_price = Column(String(80), nullable=False, default="0")
    timestamp = Column(Integer, nullable=False, index=True)
    transaction_index = Column(Integer, nullable=True)
    status = Column(Integer, nullable=False, default=1)
    is_contract_creation = Column(Boolean, nullable=False, default=False)
    contract_address = Column(String(42), nullable=True)

    __table_args__ = (Index("ix_transactions_from_timestamp", "from_address", "timestamp"),)

    @classmethod
    def from_record(cls, tx: TransactionRecord) -> "TransactionRow":
        return cls(
            hash=tx.hash,
            block_number=tx.block_number,
            block_hash=tx.block_hash,
            from_address=tx.from_address,
            to_address=tx.to_address,
            value=tx.value,
            gas_used=tx.gas_used,
            gas_price=tx.gas_price,
            timestamp=tx.timestamp,
            transaction_index=tx.transaction_index,
            status=tx.status,
            is_contract_creation=tx.is_contract_creation,
            contract_address=tx.contract_address,
        )

    def to_record(self) -> TransactionRecord:
        return TransactionRecord(
            hash=self.hash,
            block_number=self.block_number,
            block_hash=self.block_hash,
            from_address=self.from_address,
            to_address=self.to_address,
            value=self.value,
            gas_used=self.gas_used,
            gas_price=self.gas_price,
            timestamp=self.timestamp,
            transaction_index=self.transaction_index,
            status=self.status,
            is_contract_creation=bool(self.is_contract_creation),
            contract_address=self.contract_address,
        )


class DailyActivityRow(Base):
    __tablename__ = "daily_activity"

    wallet_address = Column(String(42), primary_key=True)
    date = Column(Date, primary_key=True)
    transaction_count = Column(Integer, nullable=False, default=0)

    def to_record(self) -> DailyActivityRecord:
        return DailyActivityRecord(
            wallet_address=self.wallet_address,
            date=self.date,
            transaction_count=self.transaction_count,
        )


class IndexerStateRow(Base):
    __tablename__ = "indexer_state"

    id = Column(Integer, primary_key=True)
    last_block_number = Column(BigInteger, nullable=False, default=0)
    last_block_hash = Column(String(66), nullable=True)
    is_running = Column(Boolean, nullable=False, default=False)
    last_run_at = Column(Integer, nullable=True)
    error_message = Column(Text, nullable=True)
    lease_owner = Column(String(255), nullable=True)
    lease_expires_at = Column(Float, nullable=True)

    def to_record(self) -> IndexerStateRecord:
        return IndexerStateRecord(
            last_block_number=self.last_block_number or 0,
            last_block_hash=self.last_block_hash,
            is_running=bool(self.is_running),
            last_run_at=self.last_run_at,
            error_message=self.error_message,
            lease_owner=self.lease_owner,
            lease_expires_at=self.lease_expires_at,
        )


class NetworkStatsRow(Base):
    __tablename__ = "network_stats"

    id = Column(Integer, primary_key=True)
    total_wallets = Column(Integer, nullable=False, default=0)
    total_transactions = Column(String(32), nullable=False, default="0")
    total_active_wallets = Column(Integer, nullable=False, default=0)
    avg_transactions_per_wallet = Column(Float, nullable=False, default=0.0)
    median_transactions_per_wallet = Column(Float, nullable=False, default=0.0)
    last_processed_block = Column(BigInteger, nullable=False, default=0)
    last_updated = Column(Integer, nullable=True)

    def to_record(self) -> NetworkStatsRecord:
        return NetworkStatsRecord(
            total_wallets=self.total_wallets or 0,
            total_transactions=int(self.total_transactions or 0),
            total_active_wallets=self.total_active_wallets or 0,
            avg_transactions_per_wallet=self.avg_transactions_per_wallet or 0.0,
            median_transactions_per_wallet=self.median_transactions_per_wallet or 0.0,
            last_processed_block=self.last_processed_block or 0,
            last_updated=self.last_updated,
        )
