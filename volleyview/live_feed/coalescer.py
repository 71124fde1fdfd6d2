"""
Fetch coalescing across viewer sessions.

Every session polls the same live feed on its own timer. When several
sessions ask for the same path at the same time, only one upstream call
is made and all of them share the result. Each caller still honours its
own cancellation token: a cancelled waiter stops waiting, and a cancelled
initiator finishes the call for the others but does not use the result.
"""
import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional

from .cancellation import CancellationToken

logger = logging.getLogger("live_feed.coalescer")


@dataclass
class InFlightFetch:
    """Tracks an in-progress upstream fetch."""
    done: threading.Event = field(default_factory=threading.Event)
    result: Optional[Any] = None
    error: Optional[Exception] = None
    waiter_count: int = 0


class FeedCoalescer:
    """
    Ensures concurrent fetches of the same key share one upstream call.

    Usage:
        coalescer = FeedCoalescer()
        data = coalescer.get_or_fetch("/live", fetch_fn, token=token)
    """

    def __init__(self, timeout: float = 30.0, check_interval: float = 0.05):
        """
        Args:
            timeout: Max seconds a waiter waits for an in-flight fetch
            check_interval: How often a waiter re-checks its token
        """
        self._in_flight: Dict[str, InFlightFetch] = {}
        self._lock = threading.Lock()
        self._timeout = timeout
        self._check_interval = check_interval

    def get_or_fetch(
        self,
        key: str,
        fetch_fn: Callable[[], Any],
        token: Optional[CancellationToken] = None,
    ) -> Any:
        """
        Join an in-flight fetch for `key` or start one.

        Raises:
            FetchCancelled: The caller's token was cancelled
            TimeoutError: Waiting for another caller's fetch timed out
            Exception: Any error from fetch_fn is propagated to every caller
        """
        if token is not None:
            token.raise_if_cancelled()

        with self._lock:
            in_flight = self._in_flight.get(key)
            if in_flight is not None:
                in_flight.waiter_count += 1
                logger.debug(f"Coalescing fetch for {key} (waiters: {in_flight.waiter_count})")
                is_initiator = False
            else:
                in_flight = InFlightFetch()
                self._in_flight[key] = in_flight
                is_initiator = True
                logger.debug(f"Initiating fetch for {key}")

        if is_initiator:
            try:
                in_flight.result = fetch_fn()
            except Exception as e:
                in_flight.error = e
                logger.debug(f"Fetch failed for {key}: {e}")
            finally:
                in_flight.done.set()
                with self._lock:
                    if self._in_flight.get(key) is in_flight:
                        del self._in_flight[key]
        else:
            deadline = time.monotonic() + self._timeout
            while not in_flight.done.wait(self._check_interval):
                if token is not None:
                    token.raise_if_cancelled()
                if time.monotonic() >= deadline:
                    logger.error(f"Timeout waiting for coalesced fetch: {key}")
                    raise TimeoutError(f"Fetch for {key} timed out after {self._timeout}s")

        if token is not None:
            token.raise_if_cancelled()
        if in_flight.error is not None:
            raise in_flight.error
        return in_flight.result

    @property
    def active_requests(self) -> int:
        """Number of currently in-flight fetches."""
        with self._lock:
            return len(self._in_flight)

    def get_stats(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "active_requests": len(self._in_flight),
                "active_keys": list(self._in_flight.keys()),
            }
