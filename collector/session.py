"""
Topology Query Session

Owns the single in-flight LINKS query. Starting a new query supersedes the
open one; its partially collected records are discarded.
"""

import time
import logging
import threading
from typing import Optional, Callable
from dataclasses import dataclass, field

from .links import LinkSnapshot, LinkRecord

logger = logging.getLogger(__name__)


@dataclass
class LinksQuery:
    """One topology query and the records collected for it so far."""
    requester: str
    summary_only: bool = False
    started_at: float = 0.0
    snapshot: LinkSnapshot = field(default_factory=LinkSnapshot)

    def age(self, now: float) -> float:
        return now - self.started_at


class QuerySession:
    """
    Thread-safe holder for the current topology query.

    Record arrival and query initiation may run on different threads. Only
    one query is current; begin() replaces it rather than queuing.
    """

    DEFAULT_TIMEOUT = 120.0

    def __init__(
        self,
        timeout: float = DEFAULT_TIMEOUT,
        clock: Callable[[], float] = time.monotonic
    ):
        """
        Initialize the session.

        Args:
            timeout: Seconds an open query may wait for its end-of-list
                signal before it is expired. Zero or less disables it.
            clock: Monotonic time source
        """
        self.timeout = timeout
        self._clock = clock
        self._lock = threading.Lock()
        self._current: Optional[LinksQuery] = None

    def begin(self, requester: str, summary_only: bool = False) -> Optional[LinksQuery]:
        """
        Open a new query, superseding any open one.

        Returns:
            The superseded query, or None if nothing was open
        """
        query = LinksQuery(
            requester=requester,
            summary_only=summary_only,
            started_at=self._clock(),
        )
        with self._lock:
            previous = self._current
            self._current = query

        if previous is not None:
            logger.warning(
                f"LINKS query for {previous.requester} superseded by {requester}, "
                f"discarding {len(previous.snapshot)} collected records"
            )
        return previous

    def add_record(self, record: LinkRecord) -> bool:
        """Add a record to the open query. Returns False if none is open."""
        with self._lock:
            query = self._live_query()
            if query is None:
                logger.debug(f"No open LINKS query, dropping record for {record.server}")
                return False
            query.snapshot.add_record(record)
        return True

    def end(self) -> Optional[LinksQuery]:
        """Detach and return the open query; the session is left empty."""
        with self._lock:
            query = self._live_query()
            self._current = None
        return query

    def expire_stale(self) -> Optional[LinksQuery]:
        """Discard the open query if it has outlived the timeout."""
        with self._lock:
            query = self._current
            if query is None or not self._is_expired(query):
                return None
            self._current = None

        logger.warning(
            f"LINKS query for {query.requester} expired after {self.timeout:.0f}s "
            f"with {len(query.snapshot)} records"
        )
        return query

    @property
    def current(self) -> Optional[LinksQuery]:
        with self._lock:
            return self._current

    def _live_query(self) -> Optional[LinksQuery]:
        # caller holds the lock
        query = self._current
        if query is not None and self._is_expired(query):
            logger.warning(f"LINKS query for {query.requester} expired, discarding")
            self._current = None
            return None
        return query

    def _is_expired(self, query: LinksQuery) -> bool:
        if self.timeout <= 0:
            return False
        return query.age(self._clock()) > self.timeout
