"""
Live feed module for the volleyball live board.

Polls the live feed and roster directory, reconstructs serve possession
and rally labels from point deltas, classifies matches against the home
federation roster, and manages focus and the screen wake lock.
"""
from .models import (
    Classification,
    JustIncreased,
    MatchKey,
    MatchSnapshot,
    MatchStatus,
    PlayKind,
    PlayLabel,
    PointState,
    RosterEntry,
    SERVE_UNKNOWN,
    ServeState,
    ServeUnknown,
    Serving,
    Side,
    UNCHANGED,
    Unchanged,
)
from .errors import FeedError, FetchCancelled, WakeLockUnavailable
from .serve import advance
from .classifier import build_roster_map, classify, count_by_classification, suggest_filter
from .reconciler import MatchState, ReconcileResult, Reconciler
from .cancellation import CancellationToken
from .client import LiveFeedClient, close_live_feed_client, get_live_feed_client
from .poller import SnapshotPoller
from .focus import FocusController
from .wake_lock import (
    ClientWakeLockPlatform,
    UnsupportedWakeLockPlatform,
    WakeLockHandle,
    WakeLockManager,
    should_keep_awake,
)
from .session import LiveSession, SessionLimitReached, SessionRegistry

__all__ = [
    # Models
    "Classification",
    "JustIncreased",
    "MatchKey",
    "MatchSnapshot",
    "MatchStatus",
    "PlayKind",
    "PlayLabel",
    "PointState",
    "RosterEntry",
    "SERVE_UNKNOWN",
    "ServeState",
    "ServeUnknown",
    "Serving",
    "Side",
    "UNCHANGED",
    "Unchanged",
    # Errors
    "FeedError",
    "FetchCancelled",
    "WakeLockUnavailable",
    # Inference
    "advance",
    "build_roster_map",
    "classify",
    "count_by_classification",
    "suggest_filter",
    "MatchState",
    "ReconcileResult",
    "Reconciler",
    # Polling
    "CancellationToken",
    "LiveFeedClient",
    "get_live_feed_client",
    "close_live_feed_client",
    "SnapshotPoller",
    # Focus / wake lock
    "FocusController",
    "ClientWakeLockPlatform",
    "UnsupportedWakeLockPlatform",
    "WakeLockHandle",
    "WakeLockManager",
    "should_keep_awake",
    # Sessions
    "LiveSession",
    "SessionLimitReached",
    "SessionRegistry",
]
