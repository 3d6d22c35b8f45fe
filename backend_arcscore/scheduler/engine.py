"""
Periodic triggers via APScheduler.

Two interval jobs on one BlockingScheduler (UTC):
- arc_indexer: run_indexer_cycle every INDEXER_INTERVAL_SEC
- arc_metrics: run_metrics_cycle every METRICS_INTERVAL_SEC

max_instances=1 and coalesce=True: a late or overlapping tick is merged, never
queued. Cross-process exclusion is the run lease in the cursor store.
"""

from __future__ import annotations

from apscheduler.schedulers.blocking import BlockingScheduler
from pytz import utc

from backend_arcscore.agent_worker.cycles import CycleResult, run_indexer_cycle, run_metrics_cycle
from backend_arcscore.agent_worker.services import ArcServices
from backend_arcscore.arc_logging import get_logger

logger = get_logger(__name__)

INDEXER_JOB_ID = "arc_indexer"
METRICS_JOB_ID = "arc_metrics"


def job_indexer(services: ArcServices) -> CycleResult:
    """Scheduled job: one indexer cycle."""
    logger.debug("scheduler_job_start", job=INDEXER_JOB_ID)
    result = run_indexer_cycle(services)
    if not result.ok:
        logger.warning("scheduler_job_end", job=INDEXER_JOB_ID, success=False, error=result.error)
    return result


def job_metrics(services: ArcServices) -> CycleResult:
    """Scheduled job: rescoring plus network stats."""
    logger.info("scheduler_job_start", job=METRICS_JOB_ID)
    result = run_metrics_cycle(services)
    logger.info(
        "scheduler_job_end",
        job=METRICS_JOB_ID,
        success=result.ok,
        wallets_scored=result.wallets_scored,
        error=result.error,
    )
    return result


def build_scheduler(services: ArcServices) -> BlockingScheduler:
    """Scheduler with both interval jobs registered, not yet started."""
    settings = services.settings
    scheduler = BlockingScheduler(timezone=utc)
    scheduler.add_job(
        job_indexer,
        "interval",
        seconds=settings.indexer_interval_sec,
        args=[services],
        id=INDEXER_JOB_ID,
        max_instances=1,
        coalesce=True,
    )
    scheduler.add_job(
        job_metrics,
        "interval",
        seconds=settings.metrics_interval_sec,
        args=[services],
        id=METRICS_JOB_ID,
        max_instances=1,
        coalesce=True,
    )
    return scheduler


def run_scheduler(services: ArcServices) -> None:
    """Block running the periodic jobs until interrupted."""
    scheduler = build_scheduler(services)
    logger.info(
        "scheduler_started",
        indexer_enabled=services.settings.indexer_enabled,
        indexer_interval_sec=services.settings.indexer_interval_sec,
        metrics_interval_sec=services.settings.metrics_interval_sec,
    )
    try:
        scheduler.start()
    except (KeyboardInterrupt, SystemExit):
        logger.info("scheduler_stopped")
