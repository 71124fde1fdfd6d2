"""
Live session: one viewer's board.

A session wires the two pollers to its own Reconciler, keeps the latest
roster as a side input to classification, applies the viewer's events
(select match, change filter, visibility) and drives the wake lock.
Sessions never share derived state; only the transport is shared.
"""
import logging
import threading
import time
import uuid
from concurrent.futures import Executor
from typing import TYPE_CHECKING, Callable, Dict, List, Optional

from config.settings import settings

from .classifier import count_by_classification, suggest_filter
from .client import LiveFeedClient, get_live_feed_client
from .focus import FocusController
from .models import Classification, MatchKey, MatchSnapshot, RosterEntry
from .poller import SnapshotPoller
from .reconciler import Reconciler, ReconcileResult
from .wake_lock import (
    ClientWakeLockPlatform,
    WakeLockManager,
    WakeLockPlatform,
    should_keep_awake,
)

if TYPE_CHECKING:
    from volleyview.view_models import LiveBoardView

logger = logging.getLogger("live_feed.session")


class SessionLimitReached(Exception):
    """Too many viewer sessions are open."""


class LiveSession:
    """
    Composition root for one viewer.

    Usage:
        session = LiveSession()
        session.start()
        board = session.board()
        session.select_match(board.matches[0].key)
        session.teardown()
    """

    def __init__(
        self,
        session_id: Optional[str] = None,
        client: Optional[LiveFeedClient] = None,
        wake_lock_platform: Optional[WakeLockPlatform] = None,
        live_interval: Optional[float] = None,
        roster_interval: Optional[float] = None,
        home_country: Optional[str] = None,
        executor: Optional[Executor] = None,
    ):
        self.session_id = session_id or uuid.uuid4().hex
        self.client = client or get_live_feed_client()
        self.home_country = home_country or settings.home_federation_country

        self.reconciler = Reconciler()
        self.focus = FocusController()
        self.wake_lock_platform = wake_lock_platform or ClientWakeLockPlatform()
        self.wake_lock = WakeLockManager(self.wake_lock_platform)

        self._lock = threading.RLock()
        self._roster: Dict[int, RosterEntry] = {}
        self._live_error: Optional[str] = None
        self._roster_error: Optional[str] = None
        self._loading = True
        self._closed = False
        self.last_seen = time.monotonic()

        self.live_poller = SnapshotPoller(
            name=f"live-{self.session_id[:8]}",
            fetch_fn=self.client.fetch_live,
            on_result=self._on_snapshots,
            on_error=self._on_live_error,
            interval=settings.live_poll_seconds if live_interval is None else live_interval,
            executor=executor,
        )
        self.roster_poller = SnapshotPoller(
            name=f"roster-{self.session_id[:8]}",
            fetch_fn=self.client.fetch_roster,
            on_result=self._on_roster,
            on_error=self._on_roster_error,
            interval=settings.roster_poll_seconds if roster_interval is None else roster_interval,
            executor=executor,
        )

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def touch(self) -> None:
        """Record that the viewing surface is still there."""
        self.last_seen = time.monotonic()

    def is_idle(self, idle_seconds: float) -> bool:
        return time.monotonic() - self.last_seen > idle_seconds

    @property
    def closed(self) -> bool:
        return self._closed

    def start(self) -> None:
        logger.info(f"Session {self.session_id} starting")
        self.roster_poller.start()
        self.live_poller.start()

    def teardown(self) -> None:
        """Stop both timers, cancel in-flight fetches, release the wake lock."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
        self.live_poller.stop()
        self.roster_poller.stop()
        self.wake_lock.teardown()
        logger.info(f"Session {self.session_id} torn down")

    # -------------------------------------------------------------------------
    # Poll callbacks
    # -------------------------------------------------------------------------

    def _on_snapshots(self, snapshots: List[MatchSnapshot]) -> None:
        self.reconciler.reconcile(snapshots)
        with self._lock:
            self._live_error = None
            self._loading = False
            self._refresh()

    def _on_live_error(self, error: Exception) -> None:
        with self._lock:
            self._live_error = str(error)
            self._loading = False

    def _on_roster(self, roster: Dict[int, RosterEntry]) -> None:
        with self._lock:
            self._roster = roster
            self._roster_error = None
            self._refresh()

    def _on_roster_error(self, error: Exception) -> None:
        with self._lock:
            self._roster_error = str(error)

    def _refresh(self) -> None:
        """Re-derive the default filter and the wake-lock precondition."""
        live = [s for s in self.reconciler.latest.snapshots if s.is_live]
        counts = count_by_classification(live, self._roster, self.home_country)
        self.focus.suggest_filter(suggest_filter(counts))
        self._update_wake_lock()

    def _update_wake_lock(self) -> None:
        if self._closed:
            return
        self.wake_lock.update(should_keep_awake(self.focused_snapshot()))

    # -------------------------------------------------------------------------
    # Inbound events
    # -------------------------------------------------------------------------

    def select_match(self, key: Optional[MatchKey]) -> Optional[MatchKey]:
        """Toggle focus. Matches without a stable id cannot be focused."""
        self.touch()
        with self._lock:
            if key is not None:
                snapshot = self.reconciler.latest.snapshot_for(key)
                if snapshot is not None and not snapshot.has_stable_id:
                    key = None
            focused = self.focus.select(key)
            self._update_wake_lock()
            return focused

    def set_active_filter(self, category: Classification) -> None:
        self.touch()
        with self._lock:
            self.focus.set_active_filter(category)
            self._update_wake_lock()

    def document_visibility_changed(self, visible: bool) -> None:
        self.touch()
        with self._lock:
            if not visible and isinstance(self.wake_lock_platform, ClientWakeLockPlatform):
                self.wake_lock_platform.revoke_all()
            self.wake_lock.visibility_changed(visible)

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    @property
    def latest(self) -> ReconcileResult:
        return self.reconciler.latest

    @property
    def roster(self) -> Dict[int, RosterEntry]:
        return self._roster

    @property
    def error(self) -> Optional[str]:
        """One visible message: the live-feed failure first, else the roster's."""
        return self._live_error or self._roster_error

    @property
    def loading(self) -> bool:
        return self._loading

    def focused_snapshot(self) -> Optional[MatchSnapshot]:
        focused = self.focus.focused
        if focused is None:
            return None
        snapshot = self.reconciler.latest.snapshot_for(focused)
        if snapshot is None or not snapshot.has_stable_id:
            return None
        return snapshot

    def board(self) -> "LiveBoardView":
        """Build the board view for the rendering surface."""
        # Import here to avoid circular imports
        from volleyview.view_models import build_board

        self.touch()
        with self._lock:
            return build_board(
                result=self.reconciler.latest,
                roster=self._roster,
                active_filter=self.focus.active_filter,
                focused_key=self.focus.focused,
                error=self.error,
                loading=self._loading,
                keep_awake=self.wake_lock.held,
                home_country=self.home_country,
            )


class SessionRegistry:
    """
    Open viewer sessions keyed by id.

    A session whose surface has not read the board or sent an event for
    `idle_seconds` is treated as abandoned: it is torn down and dropped the
    next time a session is created or looked up.
    """

    def __init__(
        self,
        factory: Optional[Callable[[], LiveSession]] = None,
        max_sessions: Optional[int] = None,
        idle_seconds: Optional[float] = None,
    ):
        self._factory = factory or LiveSession
        self._max_sessions = settings.max_sessions if max_sessions is None else max_sessions
        self._idle_seconds = settings.session_idle_seconds if idle_seconds is None else idle_seconds
        self._sessions: Dict[str, LiveSession] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

    def cleanup_expired(self) -> int:
        """
        Tear down sessions idle longer than `idle_seconds`.

        Returns the number of sessions removed.
        """
        with self._lock:
            expired = [
                session for session in self._sessions.values()
                if session.is_idle(self._idle_seconds)
            ]
            for session in expired:
                del self._sessions[session.session_id]
        for session in expired:
            logger.info(f"Session {session.session_id} idle, reaping")
            session.teardown()
        return len(expired)

    def create(self) -> LiveSession:
        """Create and start a session."""
        self.cleanup_expired()
        with self._lock:
            if len(self._sessions) >= self._max_sessions:
                raise SessionLimitReached(f"At most {self._max_sessions} sessions may be open")
            session = self._factory()
            self._sessions[session.session_id] = session
        session.start()
        return session

    def get(self, session_id: str) -> Optional[LiveSession]:
        self.cleanup_expired()
        with self._lock:
            return self._sessions.get(session_id)

    def close(self, session_id: str) -> bool:
        with self._lock:
            session = self._sessions.pop(session_id, None)
        if session is None:
            return False
        session.teardown()
        return True

    def close_all(self) -> None:
        with self._lock:
            sessions = list(self._sessions.values())
            self._sessions.clear()
        for session in sessions:
            session.teardown()
