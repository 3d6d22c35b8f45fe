"""
Application settings.

Settings is built once from the environment (after .env is loaded) and passed by
reference to the chain client, indexer, scoring engine and scheduler.
Numeric values are validated at construction; bad values raise ValueError.
"""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache

from backend_arcscore.config.env import (
    DEFAULT_DATABASE_URL,
    env_bool,
    env_float,
    env_int,
    env_str,
    get_rpc_url,
    get_token_contract_address,
    load_arc_env,
)

DEFAULT_BATCH_SIZE = 100
DEFAULT_LEASE_SEC = 600.0
DEFAULT_INDEXER_INTERVAL_SEC = 30.0
DEFAULT_METRICS_INTERVAL_SEC = 300.0
DEFAULT_RPC_TIMEOUT_SEC = 15.0

DEFAULT_TX_WEIGHT = 0.1
DEFAULT_DAY_WEIGHT = 2.0
DEFAULT_SCORE_CAP = 100.0


@dataclass(frozen=True)
class Settings:
    """Typed configuration for the indexer, scorer and scheduler."""

    rpc_url: str
    database_url: str = DEFAULT_DATABASE_URL
    indexer_enabled: bool = False
    batch_size: int = DEFAULT_BATCH_SIZE
    start_block: int = 0
    lease_sec: float = DEFAULT_LEASE_SEC
    indexer_interval_sec: float = DEFAULT_INDEXER_INTERVAL_SEC
    metrics_interval_sec: float = DEFAULT_METRICS_INTERVAL_SEC
    rpc_timeout_sec: float = DEFAULT_RPC_TIMEOUT_SEC
    token_contract_address: str | None = None
    tx_weight: float = DEFAULT_TX_WEIGHT
    day_weight: float = DEFAULT_DAY_WEIGHT
    score_cap: float = DEFAULT_SCORE_CAP

    def __post_init__(self) -> None:
        if not self.rpc_url.strip():
            raise ValueError("rpc_url must be non-empty")
        if self.batch_size < 1:
            raise ValueError("INDEXER_BATCH_SIZE must be >= 1")
        if self.start_block < 0:
            raise ValueError("INDEXER_START_BLOCK must be >= 0")
        if self.lease_sec <= 0:
            raise ValueError("INDEXER_LEASE_SEC must be positive")
        if self.indexer_interval_sec <= 0 or self.metrics_interval_sec <= 0:
            raise ValueError("scheduler intervals must be positive")
        if self.rpc_timeout_sec <= 0:
            raise ValueError("RPC_TIMEOUT_SEC must be positive")
        if self.tx_weight < 0 or self.day_weight < 0 or self.score_cap <= 0:
            raise ValueError("score weights must be >= 0 and ARC_SCORE_CAP > 0")

    @classmethod
    def from_env(cls) -> "Settings":
        load_arc_env()
        return cls(
            rpc_url=get_rpc_url(),
            database_url=env_str("DATABASE_URL", DEFAULT_DATABASE_URL),
            indexer_enabled=env_bool("INDEXER_ENABLED", False),
            batch_size=env_int("INDEXER_BATCH_SIZE", DEFAULT_BATCH_SIZE),
            start_block=env_int("INDEXER_START_BLOCK", 0),
            lease_sec=env_float("INDEXER_LEASE_SEC", DEFAULT_LEASE_SEC),
            indexer_interval_sec=env_float("INDEXER_INTERVAL_SEC", DEFAULT_INDEXER_INTERVAL_SEC),
            metrics_interval_sec=env_float("METRICS_INTERVAL_SEC", DEFAULT_METRICS_INTERVAL_SEC),
            rpc_timeout_sec=env_float("RPC_TIMEOUT_SEC", DEFAULT_RPC_TIMEOUT_SEC),
            token_contract_address=get_token_contract_address(),
            tx_weight=env_float("ARC_SCORE_TX_WEIGHT", DEFAULT_TX_WEIGHT),
            day_weight=env_float("ARC_SCORE_DAY_WEIGHT", DEFAULT_DAY_WEIGHT),
            score_cap=env_float("ARC_SCORE_CAP", DEFAULT_SCORE_CAP),
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Process-wide settings, read from env on first call."""
    return Settings.from_env()
