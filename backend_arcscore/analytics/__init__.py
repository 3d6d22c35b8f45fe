"""
ARC Score analytics.

Scoring engine (score, rank, percentile), network aggregator and the read-side
queries served to the HTTP layer.
"""

from backend_arcscore.analytics.aggregator import NetworkAggregator, median
from backend_arcscore.analytics.network import get_leaderboard, get_network_stats
from backend_arcscore.analytics.scoring import MetricsService, ScoringConfig, compute_arc_score
from backend_arcscore.analytics.wallet_overview import WalletQueries

__all__ = [
    "MetricsService",
    "NetworkAggregator",
    "ScoringConfig",
    "WalletQueries",
    "compute_arc_score",
    "get_leaderboard",
    "get_network_stats",
    "median",
]
