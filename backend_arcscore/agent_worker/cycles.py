"""
Cycle drivers invoked by the scheduler, the CLI and on-demand triggers.

- run_indexer_cycle(): periodic trigger. Skips quietly when disabled or when
  another cycle holds the run lease; never raises.
- run_indexer_now(): on-demand trigger. Raises IndexerDisabled /
  IndexerAlreadyRunning so the caller can report why nothing ran.
- run_metrics_cycle(): rescoring of every wallet followed by network stats.
- run_action(): dispatch by action name (indexer, metrics, network-stats).
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field

from backend_arcscore.agent_worker.services import ArcServices
from backend_arcscore.arc_logging import get_logger
from backend_arcscore.core.exceptions import IndexerAlreadyRunning, IndexerDisabled

logger = get_logger(__name__)

STATUS_COMPLETED = "completed"
STATUS_SKIPPED = "skipped"
STATUS_DISABLED = "disabled"
STATUS_FAILED = "failed"

ACTION_INDEXER = "indexer"
ACTION_METRICS = "metrics"
ACTION_NETWORK_STATS = "network-stats"
ACTIONS = (ACTION_INDEXER, ACTION_METRICS, ACTION_NETWORK_STATS)


@dataclass
class CycleResult:
    """Outcome of one trigger."""

    action: str
    status: str
    blocks_indexed: int = 0
    transactions_ingested: int = 0
    transactions_failed: int = 0
    last_block_number: int | None = None
    wallets_scored: int = 0
    error: str | None = None
    duration_sec: float = 0.0
    block_numbers: list[int] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.status != STATUS_FAILED

    def to_dict(self) -> dict:
        return {
            "action": self.action,
            "status": self.status,
            "blocksIndexed": self.blocks_indexed,
            "transactionsIngested": self.transactions_ingested,
            "transactionsFailed": self.transactions_failed,
            "lastBlockNumber": self.last_block_number,
            "walletsScored": self.wallets_scored,
            "error": self.error,
            "durationSec": round(self.duration_sec, 3),
        }


def _index_under_lease(services: ArcServices, owner: str) -> CycleResult:
    """Index the next batch while holding the lease; Idle on success, Failed on any error."""
    cursor = services.cursor
    result = CycleResult(action=ACTION_INDEXER, status=STATUS_COMPLETED)
    start = time.monotonic()
    try:
        blocks = services.indexer.compute_blocks_to_index()
        logger.info("indexer_cycle_started", blocks=len(blocks), first_block=blocks[0] if blocks else None)
        for number in blocks:
            outcome = services.indexer.index_block(number)
            if not outcome.found:
                # later blocks cannot exist yet either
                break
            result.blocks_indexed += 1
            result.transactions_ingested += outcome.ingested
            result.transactions_failed += outcome.failed
            result.block_numbers.append(number)
            if not cursor.heartbeat(owner):
                break
        cursor.finish(owner)
    except Exception as e:
        result.status = STATUS_FAILED
        result.error = str(e) or type(e).__name__
        logger.exception("indexer_cycle_failed", error=result.error)
        try:
            cursor.fail(owner, result.error)
        except Exception:
            # lease expires on its own after lease_sec
            logger.exception("indexer_fail_record_failed", owner=owner)
    try:
        result.last_block_number = cursor.last_block_number()
    except Exception:
        logger.exception("indexer_cursor_read_failed")
    result.duration_sec = time.monotonic() - start
    logger.info(
        "indexer_cycle_finished",
        status=result.status,
        blocks_indexed=result.blocks_indexed,
        transactions_ingested=result.transactions_ingested,
        last_block_number=result.last_block_number,
        duration_sec=round(result.duration_sec, 3),
    )
    return result


def run_indexer_cycle(services: ArcServices) -> CycleResult:
    """Periodic indexer trigger. Disabled or already running means a no-op result."""
    if not services.settings.indexer_enabled:
        logger.debug("indexer_disabled")
        return CycleResult(action=ACTION_INDEXER, status=STATUS_DISABLED)
    try:
        owner = services.cursor.try_start()
    except Exception as e:
        error = str(e) or type(e).__name__
        logger.exception("indexer_lease_acquire_failed", error=error)
        return CycleResult(action=ACTION_INDEXER, status=STATUS_FAILED, error=error)
    if owner is None:
        return CycleResult(action=ACTION_INDEXER, status=STATUS_SKIPPED)
    return _index_under_lease(services, owner)


def run_indexer_now(services: ArcServices) -> CycleResult:
    """On-demand indexer trigger. Raises instead of returning a no-op result."""
    if not services.settings.indexer_enabled:
        raise IndexerDisabled("Indexer is disabled (INDEXER_ENABLED is not true)")
    owner = services.cursor.try_start()
    if owner is None:
        raise IndexerAlreadyRunning("Indexer is already running")
    return _index_under_lease(services, owner)


def run_metrics_cycle(services: ArcServices) -> CycleResult:
    """Rescore every wallet, rerank once, refresh network stats. Never raises."""
    start = time.monotonic()
    result = CycleResult(action=ACTION_METRICS, status=STATUS_COMPLETED)
    try:
        result.wallets_scored = services.metrics.recalculate_all_metrics()
    except Exception as e:
        result.status = STATUS_FAILED
        result.error = str(e) or type(e).__name__
        logger.exception("metrics_cycle_failed", error=result.error)
    result.duration_sec = time.monotonic() - start
    return result


def run_network_stats_cycle(services: ArcServices) -> CycleResult:
    start = time.monotonic()
    result = CycleResult(action=ACTION_NETWORK_STATS, status=STATUS_COMPLETED)
    try:
        stats = services.aggregator.update_network_stats()
        result.last_block_number = stats.last_processed_block
    except Exception as e:
        result.status = STATUS_FAILED
        result.error = str(e) or type(e).__name__
        logger.exception("network_stats_cycle_failed", error=result.error)
    result.duration_sec = time.monotonic() - start
    return result


def run_action(services: ArcServices, action: str) -> CycleResult:
    """Run one named action. Raises ValueError for an unknown name."""
    name = (action or "").strip().lower()
    if name == ACTION_INDEXER:
        return run_indexer_cycle(services)
    if name == ACTION_METRICS:
        return run_metrics_cycle(services)
    if name == ACTION_NETWORK_STATS:
        return run_network_stats_cycle(services)
    raise ValueError(f"Unknown action {action!r}; expected one of: {', '.join(ACTIONS)}")
