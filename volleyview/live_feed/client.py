"""
HTTP client for the live volleyball feed and the roster directory.

Thin transport over requests: fetch JSON, check the cancellation token,
map items onto snapshots / roster entries. Concurrent identical fetches
from different sessions are coalesced into one upstream call.
"""
import logging
from typing import Any, Dict, List, Optional

import requests
from dotenv import load_dotenv

from config.settings import settings

from .cancellation import CancellationToken
from .classifier import build_roster_map
from .coalescer import FeedCoalescer
from .errors import FeedError, FetchCancelled
from .models import MatchSnapshot, RosterEntry

load_dotenv()

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("live_feed.client")

DEFAULT_HEADERS = {
    "Accept": "application/json",
    "Cache-Control": "no-cache",
}


def _cache_key(path: str, params: Optional[Dict[str, Any]]) -> str:
    if not params:
        return path
    query = "&".join(f"{k}={v}" for k, v in sorted(params.items()))
    return f"{path}?{query}"


class LiveFeedClient:
    """
    Reads the two upstream feeds.

    Args:
        base_url: Feed host, defaults to settings.feed_base_url
        timeout: Per-request timeout in seconds
        session: requests.Session to use (tests pass a fake)
        coalescer: Shared FeedCoalescer
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        session: Optional[requests.Session] = None,
        coalescer: Optional[FeedCoalescer] = None,
        live_path: Optional[str] = None,
        roster_path: Optional[str] = None,
        roster_page_size: Optional[int] = None,
    ):
        self.base_url = (base_url or settings.feed_base_url).rstrip("/")
        self.timeout = settings.request_timeout_seconds if timeout is None else timeout
        self.live_path = live_path or settings.live_path
        self.roster_path = roster_path or settings.roster_path
        self.roster_page_size = roster_page_size or settings.roster_page_size
        self._session = session or requests.Session()
        self._coalescer = coalescer or FeedCoalescer(timeout=self.timeout * 2)

    def _get_json(
        self,
        path: str,
        params: Optional[Dict[str, Any]],
        token: Optional[CancellationToken],
    ) -> Any:
        url = f"{self.base_url}{path}"

        def fetch():
            response = self._session.get(
                url,
                headers=DEFAULT_HEADERS,
                params=params,
                timeout=self.timeout,
            )
            response.raise_for_status()
            return response.json()

        try:
            return self._coalescer.get_or_fetch(_cache_key(path, params), fetch, token=token)
        except FetchCancelled:
            raise
        except requests.RequestException as e:
            raise FeedError(f"{path}: {e}") from e
        except ValueError as e:
            raise FeedError(f"{path}: invalid JSON ({e})") from e
        except TimeoutError as e:
            raise FeedError(f"{path}: {e}") from e

    def fetch_live(self, token: Optional[CancellationToken] = None) -> List[MatchSnapshot]:
        """
        Fetch the current live snapshot array.

        Items that are not objects are skipped; malformed fields inside an
        item degrade to None instead of failing the whole poll.

        Raises:
            FetchCancelled: token was cancelled before the result was ready
            FeedError: transport, HTTP or payload-shape failure
        """
        data = self._get_json(self.live_path, None, token)
        if not isinstance(data, list):
            raise FeedError(f"{self.live_path}: expected a JSON array, got {type(data).__name__}")

        snapshots = []
        for index, item in enumerate(data):
            if not isinstance(item, dict):
                logger.warning(f"Skipping live item {index}: not an object")
                continue
            snapshots.append(MatchSnapshot.from_raw(item))

        if token is not None:
            token.raise_if_cancelled()
        return snapshots

    def fetch_roster(self, token: Optional[CancellationToken] = None) -> Dict[int, RosterEntry]:
        """Fetch the roster directory keyed by foreign team id."""
        params = {"limit": self.roster_page_size, "offset": 0}
        data = self._get_json(self.roster_path, params, token)
        if not isinstance(data, list):
            raise FeedError(f"{self.roster_path}: expected a JSON array, got {type(data).__name__}")

        roster = build_roster_map(data)
        if token is not None:
            token.raise_if_cancelled()
        logger.debug(f"Roster refreshed: {len(roster)} teams with foreign ids")
        return roster

    def close(self) -> None:
        self._session.close()


# Singleton factory
_client: Optional[LiveFeedClient] = None


def get_live_feed_client() -> LiveFeedClient:
    """Shared client so every session's fetches go through one coalescer."""
    global _client
    if _client is None:
        _client = LiveFeedClient()
    return _client


def close_live_feed_client() -> None:
    """Close the shared client's HTTP session, if one was created."""
    global _client
    if _client is not None:
        _client.close()
        _client = None
