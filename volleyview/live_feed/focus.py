"""
Focus controller: at most one selected match per session.
"""
import logging
import threading
from typing import Optional

from .models import Classification, MatchKey

logger = logging.getLogger("live_feed.focus")


class FocusController:
    """
    Tracks the focused match and the active category filter.

    Selecting the focused key again clears it, selecting another key
    replaces it, and an explicit filter choice always clears focus. The
    filter is "suggested" until the viewer picks one, and a suggested
    change leaves focus alone.
    """

    def __init__(self, initial_filter: Classification = Classification.OTHER):
        self._lock = threading.Lock()
        self._focused: Optional[MatchKey] = None
        self._filter = initial_filter
        self._filter_pinned = False

    @property
    def focused(self) -> Optional[MatchKey]:
        return self._focused

    @property
    def active_filter(self) -> Classification:
        return self._filter

    @property
    def filter_pinned(self) -> bool:
        return self._filter_pinned

    def select(self, key: Optional[MatchKey]) -> Optional[MatchKey]:
        """Toggle focus on `key`; None clears. Returns the new focus."""
        with self._lock:
            if key is None or key == self._focused:
                self._focused = None
            else:
                self._focused = key
            logger.debug(f"Focus is now {self._focused!r}")
            return self._focused

    def set_active_filter(self, category: Classification) -> None:
        """Viewer picked a filter: pin it and drop focus."""
        with self._lock:
            self._filter = category
            self._filter_pinned = True
            self._focused = None

    def suggest_filter(self, category: Classification) -> bool:
        """
        Apply a computed default unless the viewer already chose one.

        Returns True if the active filter changed. Focus is left alone;
        only an explicit choice clears it.
        """
        with self._lock:
            if self._filter_pinned or category == self._filter:
                return False
            self._filter = category
            return True
