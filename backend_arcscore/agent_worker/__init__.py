"""
Agent worker package: cycle drivers and process-wide service wiring.

The scheduler, CLI and any HTTP layer call into run_indexer_cycle /
run_indexer_now / run_metrics_cycle / run_action with one ArcServices bundle.
"""

from backend_arcscore.agent_worker.cycles import (
    CycleResult,
    run_action,
    run_indexer_cycle,
    run_indexer_now,
    run_metrics_cycle,
)
from backend_arcscore.agent_worker.services import ArcServices, build_services

__all__ = [
    "ArcServices",
    "CycleResult",
    "build_services",
    "run_action",
    "run_indexer_cycle",
    "run_indexer_now",
    "run_metrics_cycle",
]
