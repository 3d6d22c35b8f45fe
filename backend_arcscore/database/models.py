"""
Domain records for database entities.

Wallets, transactions, daily activity, indexer state and network stats as plain
dataclasses. The repository layer converts ORM rows to these so callers never
hold a live session object.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Any


def iso_utc(ts: int | float | None) -> str | None:
    """Unix seconds to ISO 8601 UTC string; None passes through."""
    if ts is None:
        return None
    return datetime.fromtimestamp(ts, tz=timezone.utc).isoformat()


@dataclass
class WalletRecord:
    """Stored wallet with cached metrics. address is always lowercase."""

    address: str
    first_seen_at: int
    """Unix timestamp (seconds) of the earliest block the wallet sent from."""
    last_seen_at: int
    """Unix timestamp (seconds) of the latest block the wallet sent from."""
    total_transactions: int = 0
    active_days: int = 0
    arc_score: float = 0.0
    rank: int | None = None
    """1-based; None until the first ranking pass."""
    percentile: float | None = None
    status: str = "active"

    @property
    def is_scored(self) -> bool:
        return self.arc_score != 0 and self.rank is not None

    def to_dict(self) -> dict[str, Any]:
        return {
            "address": self.address,
            "arcScore": self.arc_score,
            "rank": self.rank,
            "percentile": self.percentile,
            "totalTransactions": self.total_transactions,
            "activeDays": self.active_days,
            "firstSeenAt": iso_utc(self.first_seen_at),
            "lastSeenAt": iso_utc(self.last_seen_at),
            "status": self.status,
        }


@dataclass
class TransactionRecord:
    """Single ingested transaction. Wei quantities are decimal strings."""

    hash: str
    block_number: int
    block_hash: str | None
    from_address: str
    to_address: str | None
    """None for contract creation."""
    value: str
    gas_used: str
    gas_price: str
    timestamp: int
    transaction_index: int | None
    status: int = 1
    is_contract_creation: bool = False
    contract_address: str | None = None

    @property
    def day(self) -> date:
        """UTC calendar day of the block timestamp (daily activity bucket)."""
        return datetime.fromtimestamp(self.timestamp, tz=timezone.utc).date()

    def to_dict(self) -> dict[str, Any]:
        return {
            "hash": self.hash,
            "blockNumber": str(self.block_number),
            "blockHash": self.block_hash,
            "from": self.from_address,
            "to": self.to_address,
            "value": self.value,
            "gasUsed": self.gas_used,
            "gasPrice": self.gas_price,
            "timestamp": iso_utc(self.timestamp),
            "transactionIndex": self.transaction_index,
            "status": self.status,
            "isContractCreation": self.is_contract_creation,
            "contractAddress": self.contract_address,
        }


@dataclass
class DailyActivityRecord:
    """Transactions sent by one wallet on one UTC day."""

    wallet_address: str
    date: date
    transaction_count: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "walletAddress": self.wallet_address,
            "date": self.date.isoformat(),
            "transactionCount": self.transaction_count,
        }


@dataclass
class IndexerStateRecord:
    """Singleton cursor and run state of the ingestion engine."""

    last_block_number: int = 0
    last_block_hash: str | None = None
    is_running: bool = False
    last_run_at: int | None = None
    error_message: str | None = None
    lease_owner: str | None = None
    lease_expires_at: float | None = None

    @property
    def run_state(self) -> str:
        """idle | running | failed."""
        if self.is_running:
            return "running"
        if self.error_message:
            return "failed"
        return "idle"


@dataclass
class NetworkStatsRecord:
    """Singleton network-wide aggregates, recomputed wholesale."""

    total_wallets: int = 0
    total_transactions: int = 0
    total_active_wallets: int = 0
    avg_transactions_per_wallet: float = 0.0
    median_transactions_per_wallet: float = 0.0
    last_processed_block: int = 0
    last_updated: int | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "totalWallets": self.total_wallets,
            "totalTransactions": str(self.total_transactions),
            "totalActiveWallets": self.total_active_wallets,
            "avgTransactionsPerWallet": self.avg_transactions_per_wallet,
            "medianTransactionsPerWallet": self.median_transactions_per_wallet,
            "lastProcessedBlock": str(self.last_processed_block),
            "lastUpdated": iso_utc(self.last_updated),
        }
