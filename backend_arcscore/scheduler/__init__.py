"""Periodic indexer and metrics triggers."""

from backend_arcscore.scheduler.engine import build_scheduler, run_scheduler

__all__ = ["build_scheduler", "run_scheduler"]
