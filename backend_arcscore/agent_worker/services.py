"""
Process-wide service wiring.

build_services() constructs the chain client, database, cursor store, indexer,
scoring engine, aggregator and wallet queries once; cycle drivers and the CLI
receive the resulting ArcServices bundle instead of re-creating anything per call.
"""

from __future__ import annotations

from dataclasses import dataclass

from backend_arcscore.analytics.aggregator import NetworkAggregator
from backend_arcscore.analytics.scoring import MetricsService, ScoringConfig
from backend_arcscore.analytics.wallet_overview import WalletQueries
from backend_arcscore.arc_logging import get_logger
from backend_arcscore.chain_client import ChainClient
from backend_arcscore.config import Settings, get_settings
from backend_arcscore.config.env import mask_url
from backend_arcscore.database import Database, get_database
from backend_arcscore.ingestion import CursorStore, IndexerService

logger = get_logger(__name__)


@dataclass
class ArcServices:
    """Everything a trigger needs, built once per process."""

    settings: Settings
    db: Database
    chain: ChainClient
    cursor: CursorStore
    indexer: IndexerService
    metrics: MetricsService
    aggregator: NetworkAggregator
    wallets: WalletQueries

    def close(self) -> None:
        self.chain.close()


def build_services(
    settings: Settings | None = None,
    *,
    db: Database | None = None,
    chain: ChainClient | None = None,
) -> ArcServices:
    """
    Wire services from settings. db and chain may be injected (tests pass a
    temporary database and a client over a mock transport).
    """
    settings = settings or get_settings()
    db = db or get_database(settings.database_url)
    chain = chain or ChainClient(settings.rpc_url, timeout_sec=settings.rpc_timeout_sec)
    cursor = CursorStore(db, start_block=settings.start_block, lease_sec=settings.lease_sec)
    indexer = IndexerService(db, chain, cursor, batch_size=settings.batch_size)
    aggregator = NetworkAggregator(db, start_block=settings.start_block)
    metrics = MetricsService(
        db,
        ScoringConfig(
            tx_weight=settings.tx_weight,
            day_weight=settings.day_weight,
            cap=settings.score_cap,
        ),
        on_all_metrics=aggregator.update_network_stats,
    )
    wallets = WalletQueries(
        db,
        chain,
        metrics,
        token_contract_address=settings.token_contract_address,
    )
    logger.info(
        "services_built",
        rpc_url=mask_url(settings.rpc_url),
        indexer_enabled=settings.indexer_enabled,
        batch_size=settings.batch_size,
    )
    return ArcServices(
        settings=settings,
        db=db,
        chain=chain,
        cursor=cursor,
        indexer=indexer,
        metrics=metrics,
        aggregator=aggregator,
        wallets=wallets,
    )
