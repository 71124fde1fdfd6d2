"""
Wake-lock resource management.

Keeps the viewing device awake only while a focused match is live and a
set is actually being played. The manager holds at most one handle,
serialises acquire/release so a release can never overtake a pending
acquire, and re-acquires after the platform silently revoked the lock
while the page was hidden.

Wake locks are a convenience: platform failures are logged and swallowed.
"""
import logging
import threading
from typing import Callable, List, Optional, Protocol

from .errors import WakeLockUnavailable
from .models import MatchSnapshot

logger = logging.getLogger("live_feed.wake_lock")


def should_keep_awake(focused: Optional[MatchSnapshot]) -> bool:
    """True iff a match is focused, it is live, and a set is in progress."""
    if focused is None:
        return False
    return focused.is_live and focused.current_points is not None


class WakeLockHandle:
    """An acquired wake lock. Released by its owner or revoked by the platform."""

    def __init__(self, source: str = ""):
        self.source = source
        self._released = False
        self._lock = threading.Lock()
        self._callbacks: List[Callable[[], None]] = []

    @property
    def released(self) -> bool:
        return self._released

    def on_release(self, callback: Callable[[], None]) -> None:
        with self._lock:
            self._callbacks.append(callback)

    def release(self) -> None:
        with self._lock:
            if self._released:
                return
            self._released = True
            callbacks = list(self._callbacks)
        for callback in callbacks:
            callback()


class WakeLockPlatform(Protocol):
    """Something that can hand out wake locks."""

    def request(self) -> WakeLockHandle:
        ...


class UnsupportedWakeLockPlatform:
    """Platform without wake-lock support."""

    def request(self) -> WakeLockHandle:
        raise WakeLockUnavailable("Wake lock is not supported on this platform")


class ClientWakeLockPlatform:
    """
    Wake locks held on behalf of a remote viewing device.

    The device reads `held` from the board payload and keeps its screen on
    accordingly. When the device reports it is hidden, every outstanding
    handle is revoked, the same way a browser drops screen locks for a
    hidden page.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._handles: List[WakeLockHandle] = []

    @property
    def held(self) -> bool:
        with self._lock:
            return any(not handle.released for handle in self._handles)

    def request(self) -> WakeLockHandle:
        handle = WakeLockHandle(source="client")
        with self._lock:
            self._handles = [h for h in self._handles if not h.released]
            self._handles.append(handle)
        return handle

    def revoke_all(self) -> None:
        with self._lock:
            handles = list(self._handles)
            self._handles = []
        for handle in handles:
            handle.release()


class WakeLockManager:
    """
    Owns the single wake-lock handle for a session.

    Each session stands for one viewing device, so "at most one handle"
    holds per device: N open sessions may hold N handles, one per screen.

    Call `update()` with the current precondition after every reconcile
    cycle and focus change, `visibility_changed()` on visibility events,
    and `teardown()` when the session ends.
    """

    def __init__(self, platform: WakeLockPlatform):
        self._platform = platform
        self._lock = threading.RLock()
        self._handle: Optional[WakeLockHandle] = None
        self._wanted = False
        self._visible = True
        self._closed = False

    @property
    def held(self) -> bool:
        handle = self._handle
        return handle is not None and not handle.released

    @property
    def wanted(self) -> bool:
        return self._wanted

    def update(self, should_hold: bool) -> None:
        """Acquire or release so that holding matches `should_hold`."""
        with self._lock:
            if self._closed:
                return
            self._wanted = should_hold
            if should_hold:
                self._acquire()
            else:
                self._release()

    def visibility_changed(self, visible: bool) -> None:
        """On hidden→visible, re-acquire if the lock is still wanted."""
        with self._lock:
            became_visible = visible and not self._visible
            self._visible = visible
            if self._closed:
                return
            if became_visible and self._wanted:
                self._acquire()

    def teardown(self) -> None:
        """Release unconditionally and refuse further acquisition."""
        with self._lock:
            self._closed = True
            self._wanted = False
            self._release()

    def _acquire(self) -> None:
        if self.held:
            return
        if not self._visible:
            # Platforms refuse locks for hidden pages; retried on visible.
            return
        try:
            handle = self._platform.request()
        except Exception as e:
            logger.warning(f"Wake lock request failed: {e}")
            return
        handle.on_release(lambda: self._forget(handle))
        self._handle = handle
        logger.info("Wake lock acquired")

    def _forget(self, handle: WakeLockHandle) -> None:
        with self._lock:
            if self._handle is handle:
                self._handle = None
                logger.info("Wake lock released")

    def _release(self) -> None:
        handle = self._handle
        if handle is None:
            return
        try:
            handle.release()
        except Exception as e:
            logger.warning(f"Wake lock release failed: {e}")
        finally:
            self._handle = None
