"""
Cursor store and run-state machine for the ingestion engine.

States (derived from the indexer_state singleton):
    idle     is_running = false, no error
    running  is_running = true, lease held by one owner until lease_expires_at
    failed   is_running = false, error_message set

Transitions: idle/failed -> running (try_start), running -> idle (finish),
running -> failed (fail). A trigger that finds the lease held gets None from
try_start and skips its cycle. A lease left behind by a crashed process expires
after lease_sec and can then be taken over.
"""

from __future__ import annotations

import os
import socket
import time
import uuid
from typing import Callable

from backend_arcscore.arc_logging import get_logger
from backend_arcscore.config.settings import DEFAULT_LEASE_SEC
from backend_arcscore.database import Database, IndexerStateRecord

logger = get_logger(__name__)

MAX_ERROR_MESSAGE_LEN = 2000
MAX_HOSTNAME_LEN = 200


def new_owner_id() -> str:
    """Lease owner id unique per trigger: host:pid:random."""
    host = socket.gethostname()[:MAX_HOSTNAME_LEN]
    return f"{host}:{os.getpid()}:{uuid.uuid4().hex[:8]}"


class CursorStore:
    """Durable cursor (last indexed block) plus the advisory run lease."""

    def __init__(
        self,
        db: Database,
        *,
        start_block: int = 0,
        lease_sec: float = DEFAULT_LEASE_SEC,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._db = db
        self._start_block = start_block
        self._lease_sec = lease_sec
        self._clock = clock

    def state(self) -> IndexerStateRecord:
        """Current singleton; created at start_block on first use."""
        return self._db.get_indexer_state(self._start_block)

    def last_block_number(self) -> int:
        return self.state().last_block_number

    def is_running(self) -> bool:
        state = self.state()
        if not state.is_running:
            return False
        return state.lease_expires_at is not None and state.lease_expires_at >= self._clock()

    def try_start(self) -> str | None:
        """Idle/Failed -> Running. Returns the lease owner id, or None if another cycle holds it."""
        self.state()
        owner = new_owner_id()
        if self._db.try_acquire_run_lease(owner, self._lease_sec, now=self._clock()):
            logger.debug("indexer_lease_acquired", owner=owner, lease_sec=self._lease_sec)
            return owner
        logger.info("indexer_already_running")
        return None

    def heartbeat(self, owner: str) -> bool:
        """Extend the lease while a long cycle is still making progress."""
        kept = self._db.extend_run_lease(owner, self._lease_sec, now=self._clock())
        if not kept:
            logger.warning("indexer_lease_lost", owner=owner)
        return kept

    def advance(self, block_number: int, block_hash: str | None) -> bool:
        """Move the cursor to block_number; a lower number than the stored one is ignored."""
        self.state()
        moved = self._db.advance_cursor(block_number, block_hash, now=int(self._clock()))
        if not moved:
            logger.debug("indexer_cursor_not_advanced", block_number=block_number)
        return moved

    def finish(self, owner: str) -> None:
        """Running -> Idle; clears the previous error."""
        if not self._db.release_run_lease(owner, now=int(self._clock())):
            logger.warning("indexer_release_not_owner", owner=owner)

    def fail(self, owner: str, error_message: str) -> None:
        """Running -> Failed; the cursor stays where the last fully indexed block left it."""
        message = (error_message or "unknown error")[:MAX_ERROR_MESSAGE_LEN]
        if not self._db.mark_run_failed(owner, message, now=int(self._clock())):
            logger.warning("indexer_fail_not_owner", owner=owner, error=message)
