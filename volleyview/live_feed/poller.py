"""
Timer-driven poll loop with cooperative cancellation.

A poller fires one cycle as soon as it starts and then one per interval.
Starting a cycle cancels the previous cycle's token, so at most one cycle
per poller can still publish. Cancelled cycles are dropped silently; any
other failure is reported through `on_error` and the next tick retries.
"""
import logging
import threading
from concurrent.futures import Executor, ThreadPoolExecutor
from typing import Any, Callable, Optional

from .cancellation import CancellationToken
from .errors import FetchCancelled

logger = logging.getLogger("live_feed.poller")


class SnapshotPoller:
    """
    Periodically calls `fetch_fn(token)` and hands results to `on_result`.

    Args:
        name: Label used for logging and thread names
        fetch_fn: Performs one fetch; must check the token before returning
        on_result: Receives each non-cancelled result, one at a time
        interval: Seconds between ticks
        on_error: Receives non-cancellation failures
        executor: Runs cycles off the timer thread (tests pass an inline one)
    """

    def __init__(
        self,
        name: str,
        fetch_fn: Callable[[CancellationToken], Any],
        on_result: Callable[[Any], None],
        interval: float,
        on_error: Optional[Callable[[Exception], None]] = None,
        executor: Optional[Executor] = None,
    ):
        self.name = name
        self.interval = interval
        self._fetch_fn = fetch_fn
        self._on_result = on_result
        self._on_error = on_error

        self._owns_executor = executor is None
        self._executor = executor or ThreadPoolExecutor(
            max_workers=2,
            thread_name_prefix=f"poll-{name}",
        )

        self._lock = threading.Lock()
        self._publish_lock = threading.Lock()
        self._current: Optional[CancellationToken] = None
        self._cycles = 0
        self._stop_event = threading.Event()
        self._stopped = False
        self._thread: Optional[threading.Thread] = None

    @property
    def running(self) -> bool:
        return self._thread is not None and not self._stopped

    @property
    def current_token(self) -> Optional[CancellationToken]:
        return self._current

    def start(self) -> None:
        """Fire one cycle now and keep ticking until stop()."""
        with self._lock:
            if self._thread is not None or self._stopped:
                return
            self._thread = threading.Thread(
                target=self._run,
                name=f"poller-{self.name}",
                daemon=True,
            )
        self._thread.start()
        logger.info(f"Poller {self.name} started (every {self.interval}s)")

    def _run(self) -> None:
        self.tick()
        while not self._stop_event.wait(self.interval):
            self.tick()

    def tick(self) -> Optional[CancellationToken]:
        """Cancel the previous cycle and start a new one. Returns its token."""
        with self._lock:
            if self._stopped:
                return None
            if self._current is not None:
                self._current.cancel()
            self._cycles += 1
            token = CancellationToken(f"{self.name}#{self._cycles}")
            self._current = token

        try:
            self._executor.submit(self.run_cycle, token)
        except RuntimeError as e:
            # Executor already shut down by a concurrent stop()
            token.cancel()
            logger.debug(f"Poller {self.name} could not schedule {token.label}: {e}")
            return None
        return token

    def run_cycle(self, token: CancellationToken) -> None:
        """Fetch, then publish unless the token was cancelled meanwhile."""
        try:
            result = self._fetch_fn(token)
        except FetchCancelled:
            logger.debug(f"Cycle {token.label} cancelled")
            return
        except Exception as e:
            if token.cancelled:
                logger.debug(f"Cycle {token.label} failed after cancellation: {e}")
                return
            logger.warning(f"Poller {self.name} fetch failed: {e}")
            self._report(e)
            return

        with self._publish_lock:
            if token.cancelled:
                logger.debug(f"Discarding result of cancelled cycle {token.label}")
                return
            try:
                self._on_result(result)
            except Exception as e:
                logger.exception(f"Poller {self.name} failed to publish {token.label}")
                self._report(e)

    def _report(self, error: Exception) -> None:
        if self._on_error is not None:
            self._on_error(error)

    def stop(self) -> None:
        """Stop ticking and cancel any in-flight cycle. Safe to call repeatedly."""
        with self._lock:
            already_stopped = self._stopped
            self._stopped = True
            self._stop_event.set()
            if self._current is not None:
                self._current.cancel()
            thread = self._thread

        if already_stopped:
            return

        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=1.0)
        if self._owns_executor:
            self._executor.shutdown(wait=False, cancel_futures=True)
        logger.info(f"Poller {self.name} stopped")
