"""
Application-level exceptions.

Only conditions a caller must react to are exceptions. Expected transient cases
(block not produced yet, receipt not yet available, duplicate transaction hash)
are returned as None / False and logged where they happen.
"""

from __future__ import annotations


class ArcScoreError(Exception):
    """Base class for all ARC Score errors."""


class ChainClientError(ArcScoreError):
    """A call to the chain node failed."""

    def __init__(self, method: str, message: str) -> None:
        super().__init__(f"{method}: {message}")
        self.method = method


class RpcUnavailable(ChainClientError):
    """Node unreachable, timed out, or answered with a non-2xx status. Fatal to the cycle."""


class RpcResponseError(ChainClientError):
    """Node answered with a JSON-RPC error object or an unparseable payload."""

    def __init__(self, method: str, message: str, code: int | None = None) -> None:
        super().__init__(method, message)
        self.code = code


class InvalidWalletAddress(ArcScoreError, ValueError):
    """Address is not a 20-byte hex EVM address."""

    def __init__(self, address: str) -> None:
        super().__init__(f"Invalid wallet address: {address!r}")
        self.address = address


class IndexerDisabled(ArcScoreError):
    """On-demand indexer run requested while INDEXER_ENABLED is off."""


class IndexerAlreadyRunning(ArcScoreError):
    """On-demand indexer run requested while another cycle holds the run lease."""
