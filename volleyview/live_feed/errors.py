"""
Exceptions raised by the live feed subsystem.
"""


class FeedError(Exception):
    """A live-feed or roster fetch failed (transport, HTTP status or payload shape)."""


class FetchCancelled(Exception):
    """The fetch belonged to a superseded or torn-down cycle. Never user-facing."""


class WakeLockUnavailable(Exception):
    """The platform refused or does not support keeping the screen awake."""
