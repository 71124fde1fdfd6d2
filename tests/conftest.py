"""
Shared fixtures: raw feed items, an inline executor and fake transports.
"""
from concurrent.futures import Executor, Future
from typing import Any, Dict, List, Optional

import pytest
import requests

from volleyview.live_feed.models import MatchSnapshot


def raw_event(
    event_id: Optional[Any] = "M1",
    home_id: Optional[int] = 501,
    away_id: Optional[int] = 999,
    status: str = "inprogress",
    sets: Optional[List[tuple]] = None,
    **extra: Any,
) -> Dict[str, Any]:
    """Build a raw live-feed item. `sets` is a list of (home, away) per set."""
    raw = {
        "event_id": event_id,
        "home_team_id": home_id,
        "away_team_id": away_id,
        "home_team_name": "Home VK",
        "away_team_name": "Away VK",
        "status_type": status,
        "status_desc": "1st set",
        "home_sets": 0,
        "away_sets": 0,
        "start_ts": 1760000000,
        "tournament_name": "Eliteserien",
        "season_name": "2025/26",
    }
    for number, (home, away) in enumerate(sets or [], start=1):
        raw[f"home_p{number}"] = home
        raw[f"away_p{number}"] = away
    raw.update(extra)
    return raw


def snapshot(**kwargs: Any) -> MatchSnapshot:
    return MatchSnapshot.from_raw(raw_event(**kwargs))


class InlineExecutor(Executor):
    """Runs submitted work immediately on the calling thread."""

    def __init__(self):
        self.submitted = 0

    def submit(self, fn, *args, **kwargs):
        self.submitted += 1
        future = Future()
        try:
            future.set_result(fn(*args, **kwargs))
        except Exception as e:
            future.set_exception(e)
        return future


class FakeResponse:
    def __init__(self, payload: Any = None, status_code: int = 200, json_error: Optional[Exception] = None):
        self.payload = payload
        self.status_code = status_code
        self.json_error = json_error

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Server Error")

    def json(self) -> Any:
        if self.json_error is not None:
            raise self.json_error
        return self.payload


class FakeHttpSession:
    """Stands in for requests.Session; returns queued responses per path."""

    def __init__(self, responses: Optional[Dict[str, List[Any]]] = None):
        self.responses = responses or {}
        self.calls: List[Dict[str, Any]] = []
        self.closed = False

    def get(self, url, headers=None, params=None, timeout=None):
        self.calls.append({"url": url, "headers": headers, "params": params, "timeout": timeout})
        for path, queue in self.responses.items():
            if url.endswith(path):
                item = queue.pop(0) if len(queue) > 1 else queue[0]
                if isinstance(item, Exception):
                    raise item
                return item
        raise AssertionError(f"Unexpected URL {url}")

    def close(self) -> None:
        self.closed = True


class FakeFeedClient:
    """Scripted live feed: each fetch_live returns the next queued poll."""

    def __init__(self, polls: Optional[List[Any]] = None, roster: Optional[Any] = None):
        self.polls = list(polls or [])
        self.roster = roster if roster is not None else {}
        self.live_calls = 0
        self.roster_calls = 0

    def fetch_live(self, token=None):
        self.live_calls += 1
        item = self.polls.pop(0) if len(self.polls) > 1 else self.polls[0]
        if isinstance(item, Exception):
            raise item
        if token is not None:
            token.raise_if_cancelled()
        return [MatchSnapshot.from_raw(raw) for raw in item]

    def fetch_roster(self, token=None):
        self.roster_calls += 1
        if isinstance(self.roster, Exception):
            raise self.roster
        return self.roster


@pytest.fixture
def inline_executor():
    return InlineExecutor()
