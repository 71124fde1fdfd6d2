"""
Tests for the snapshot poller: cancellation, error reporting, teardown.
"""
import threading
import time

import pytest

from volleyview.live_feed.cancellation import CancellationToken
from volleyview.live_feed.errors import FeedError, FetchCancelled
from volleyview.live_feed.poller import SnapshotPoller


class Recorder:
    """Collects results and errors published by a poller."""

    def __init__(self):
        self.results = []
        self.errors = []

    def on_result(self, result):
        self.results.append(result)

    def on_error(self, error):
        self.errors.append(error)


@pytest.fixture
def recorder():
    return Recorder()


def make_poller(fetch_fn, recorder, executor, interval=60.0):
    return SnapshotPoller(
        name="test",
        fetch_fn=fetch_fn,
        on_result=recorder.on_result,
        on_error=recorder.on_error,
        interval=interval,
        executor=executor,
    )


class TestCycles:

    def test_tick_publishes_result(self, recorder, inline_executor):
        poller = make_poller(lambda token: ["snap"], recorder, inline_executor)
        token = poller.tick()

        assert recorder.results == [["snap"]]
        assert recorder.errors == []
        assert token is poller.current_token

    def test_new_tick_cancels_previous_token(self, recorder, inline_executor):
        poller = make_poller(lambda token: [], recorder, inline_executor)
        first = poller.tick()
        second = poller.tick()

        assert first.cancelled
        assert not second.cancelled

    def test_cancelled_fetch_is_swallowed(self, recorder, inline_executor):
        def fetch(token):
            raise FetchCancelled("superseded")

        make_poller(fetch, recorder, inline_executor).tick()
        assert recorder.results == []
        assert recorder.errors == []

    def test_failure_is_reported_and_next_tick_retries(self, recorder, inline_executor):
        outcomes = [FeedError("503 Service Unavailable"), ["recovered"]]

        def fetch(token):
            outcome = outcomes.pop(0)
            if isinstance(outcome, Exception):
                raise outcome
            return outcome

        poller = make_poller(fetch, recorder, inline_executor)
        poller.tick()
        assert len(recorder.errors) == 1
        assert recorder.results == []

        poller.tick()
        assert recorder.results == [["recovered"]]

    def test_result_of_cancelled_cycle_is_discarded(self, recorder, inline_executor):
        poller = make_poller(lambda token: ["stale"], recorder, inline_executor)
        token = CancellationToken("old")
        token.cancel()

        poller.run_cycle(token)
        assert recorder.results == []

    def test_error_after_cancellation_is_not_reported(self, recorder, inline_executor):
        poller = make_poller(lambda token: [], recorder, inline_executor)
        token = CancellationToken("old")

        def fetch(t):
            t.cancel()
            raise ConnectionError("connection reset")

        poller._fetch_fn = fetch
        poller.run_cycle(token)
        assert recorder.errors == []

    def test_publish_failure_is_reported(self, recorder, inline_executor):
        def explode(result):
            raise ValueError("bad state")

        poller = SnapshotPoller(
            name="test",
            fetch_fn=lambda token: [],
            on_result=explode,
            on_error=recorder.on_error,
            interval=60.0,
            executor=inline_executor,
        )
        poller.tick()
        assert isinstance(recorder.errors[0], ValueError)

    def test_superseded_in_flight_cycle_never_publishes(self, recorder):
        """A slow cycle overtaken by a new tick drops its result."""
        release = threading.Event()
        started = threading.Event()
        calls = []

        def fetch(token):
            calls.append(token)
            if len(calls) == 1:
                started.set()
                release.wait(2.0)
            return [token.label]

        poller = SnapshotPoller(
            name="race",
            fetch_fn=fetch,
            on_result=recorder.on_result,
            interval=60.0,
        )
        try:
            slow = poller.tick()
            assert started.wait(2.0)
            fast = poller.tick()
            release.set()

            for _ in range(100):
                if recorder.results:
                    break
                time.sleep(0.02)
        finally:
            poller.stop()

        assert slow.cancelled
        assert recorder.results == [[fast.label]]


class TestLifecycle:

    def test_start_fires_immediately(self, recorder, inline_executor):
        fired = threading.Event()

        def fetch(token):
            fired.set()
            return []

        poller = make_poller(fetch, recorder, inline_executor, interval=60.0)
        poller.start()
        try:
            assert fired.wait(2.0)
            assert poller.running
        finally:
            poller.stop()

    def test_stop_is_idempotent_and_cancels_in_flight(self, recorder, inline_executor):
        poller = make_poller(lambda token: [], recorder, inline_executor)
        token = poller.tick()

        poller.stop()
        poller.stop()

        assert token.cancelled
        assert not poller.running
        assert poller.tick() is None

    def test_stop_before_start(self, recorder, inline_executor):
        poller = make_poller(lambda token: [], recorder, inline_executor)
        poller.stop()
        poller.start()
        assert not poller.running
