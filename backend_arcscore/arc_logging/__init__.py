"""
Structured logging for Backend ARC Score.

JSON logs with timestamp, event_type, and per-event fields (block_number, tx_hash, wallet_id).
"""

from backend_arcscore.arc_logging.logger import bind_block, get_logger

__all__ = ["bind_block", "get_logger"]
