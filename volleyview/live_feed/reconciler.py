"""
Reconciler: turns consecutive live-feed polls into per-match derived state.

Each session owns one Reconciler. It keeps the last seen points and serve
state per match key, diffs every new poll against them, and publishes a
fresh ReconcileResult. Play labels and flash markers are rebuilt from
scratch every cycle; serve state persists for the lifetime of the session.
"""
import itertools
import logging
import threading
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from .models import (
    MatchFlash,
    MatchKey,
    MatchSnapshot,
    PlayLabel,
    PointState,
    SERVE_UNKNOWN,
    ServeState,
    Side,
)
from .serve import advance

logger = logging.getLogger("live_feed.reconciler")


@dataclass(frozen=True)
class MatchState:
    """Derived state for one match after a cycle."""
    serve: ServeState = SERVE_UNKNOWN
    play_label: Optional[PlayLabel] = None


@dataclass(frozen=True)
class ReconcileResult:
    """
    Output of one reconciliation cycle.

    `states` covers every key seen this session (matches missing from the
    latest poll keep their serve state, without a label). `flashes` only
    holds keys where a side scored in this cycle.
    """
    cycle: int
    snapshots: List[MatchSnapshot] = field(default_factory=list)
    states: Dict[MatchKey, MatchState] = field(default_factory=dict)
    flashes: Dict[MatchKey, MatchFlash] = field(default_factory=dict)

    def state_for(self, key: MatchKey) -> MatchState:
        return self.states.get(key, MatchState())

    def flash_for(self, key: MatchKey) -> MatchFlash:
        return self.flashes.get(key, MatchFlash())

    def snapshot_for(self, key: MatchKey) -> Optional[MatchSnapshot]:
        for snapshot in self.snapshots:
            if snapshot.key == key:
                return snapshot
        return None


EMPTY_RESULT = ReconcileResult(cycle=0)


def scoring_sides(
    prior: Optional[PointState],
    current: Optional[PointState],
) -> List[Side]:
    """
    Sides whose current-set points went up since the prior poll.

    A first sighting (no prior) is a baseline, never a score. Missing
    values on either poll never count as a score for that side.
    The set number is not compared: a prior pair from an earlier set is
    still diffed by value.
    """
    if prior is None or current is None:
        return []

    sides = []
    for side in (Side.HOME, Side.AWAY):
        before = prior.points_for(side)
        now = current.points_for(side)
        if before is not None and now is not None and now > before:
            sides.append(side)
    return sides


class Reconciler:
    """
    Per-session owner of the match state table and flash table.

    Usage:
        reconciler = Reconciler()
        result = reconciler.reconcile(snapshots)
        result.state_for(key).serve
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._points: Dict[MatchKey, Optional[PointState]] = {}
        self._serve: Dict[MatchKey, ServeState] = {}
        self._generations = itertools.count(1)
        self._cycles = 0
        self._latest = EMPTY_RESULT

    @property
    def latest(self) -> ReconcileResult:
        """Most recently published result (EMPTY_RESULT before the first cycle)."""
        return self._latest

    def reconcile(self, snapshots: Sequence[MatchSnapshot]) -> ReconcileResult:
        """Diff a new poll against stored state and publish a new result."""
        with self._lock:
            self._cycles += 1
            labels: Dict[MatchKey, PlayLabel] = {}
            flashes: Dict[MatchKey, MatchFlash] = {}
            seen = set()

            for snapshot in snapshots:
                key = snapshot.key
                if key in seen:
                    logger.debug(f"Duplicate match key {key!r} in one poll")
                seen.add(key)

                current = snapshot.current_points
                prior = self._points.get(key)
                scored = scoring_sides(prior, current)

                if scored:
                    flash = flashes.setdefault(key, MatchFlash())
                    for side in scored:
                        flash.mark(side, next(self._generations))

                # Both sides up in one poll means a missed rally in between;
                # the away side is treated as the latest scorer.
                side_scored = scored[-1] if scored else None
                serve, label = advance(self._serve.get(key, SERVE_UNKNOWN), side_scored)

                self._serve[key] = serve
                self._points[key] = current
                if label is not None:
                    labels[key] = label
                else:
                    labels.pop(key, None)

            states = {
                key: MatchState(serve=serve, play_label=labels.get(key))
                for key, serve in self._serve.items()
            }

            self._latest = ReconcileResult(
                cycle=self._cycles,
                snapshots=list(snapshots),
                states=states,
                flashes=flashes,
            )

        logger.debug(
            f"Cycle {self._latest.cycle}: {len(snapshots)} matches, "
            f"{len(labels)} labels, {len(flashes)} flashed"
        )
        return self._latest
