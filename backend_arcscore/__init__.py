"""
Backend ARC Score: block indexer and wallet reputation scoring for the Arc network.

Polls a chain node, turns blocks and transactions into durable records, and
recomputes ARC scores, ranks, percentiles and network-wide statistics.
Modular layout: chain client, ingestion engine, analytics, agent worker, scheduler.
"""

__version__ = "0.1.0"
