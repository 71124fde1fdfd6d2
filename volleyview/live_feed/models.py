"""
Data models for the live volleyball board.

Snapshots are immutable and replaced wholesale every poll. Everything the
feed never states (who serves, what the last rally was, which side just
scored) is modelled with explicit variants so illegal combinations cannot
be built.
"""
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Tuple, Union

from volleyview.utils.helpers import first_present, optional_int, safe_lower, safe_str

# "home_p1", "away_p12", ... one key per side per set, no upper bound
SET_POINTS_KEY = re.compile(r"^(home|away)_p(\d+)$")

MatchKey = str


class Side(Enum):
    """One of the two teams in a match."""
    HOME = "home"
    AWAY = "away"

    @property
    def other(self) -> "Side":
        return Side.AWAY if self is Side.HOME else Side.HOME


class PlayKind(Enum):
    """What the most recent rally meant for serve possession."""
    BREAK_POINT = "break-point"
    SIDE_OUT = "side-out"


class Classification(Enum):
    """Competitive category of a match relative to the home federation."""
    HOME_FEDERATION = "home-federation"
    ABROAD = "abroad"
    OTHER = "other"


class MatchStatus(Enum):
    """Coarse status derived from the feed's free-text status category."""
    LIVE = "live"
    FINISHED = "finished"
    UPCOMING = "upcoming"
    UNKNOWN = "unknown"

    @classmethod
    def from_status_type(cls, status_type: Any) -> "MatchStatus":
        text = safe_lower(status_type)
        if "inprogress" in text or "live" in text or "inplay" in text:
            return cls.LIVE
        if "finished" in text or "ended" in text:
            return cls.FINISHED
        if "not" in text or "sched" in text:
            return cls.UPCOMING
        return cls.UNKNOWN


# =============================================================================
# Serve possession
# =============================================================================

@dataclass(frozen=True)
class ServeUnknown:
    """No rally has been observed yet, so nobody is known to hold serve."""

    def to_dict(self) -> Optional[Dict[str, Any]]:
        return None


@dataclass(frozen=True)
class Serving:
    """`side` holds serve; `hot` once it has won a rally on its own serve."""
    side: Side
    hot: bool = False

    def to_dict(self) -> Optional[Dict[str, Any]]:
        return {"side": self.side.value, "hot": self.hot}


ServeState = Union[ServeUnknown, Serving]

SERVE_UNKNOWN = ServeUnknown()


@dataclass(frozen=True)
class PlayLabel:
    """Label for the rally just observed. Never carried to the next poll."""
    side: Side
    kind: PlayKind

    def to_dict(self) -> Dict[str, str]:
        return {"side": self.side.value, "kind": self.kind.value}


# =============================================================================
# Flash markers
# =============================================================================

@dataclass(frozen=True)
class Unchanged:
    """Side did not score in the latest poll."""


@dataclass(frozen=True)
class JustIncreased:
    """
    Side scored in the latest poll.

    The generation is unique per reconciler, so two consecutive increases
    never compare equal and the rendering surface always sees a change.
    """
    generation: int


FlashMark = Union[Unchanged, JustIncreased]

UNCHANGED = Unchanged()


# =============================================================================
# Points and snapshots
# =============================================================================

@dataclass(frozen=True)
class PointState:
    """Points in the set currently being played."""
    set_number: int
    home_points: Optional[int]
    away_points: Optional[int]

    def points_for(self, side: Side) -> Optional[int]:
        return self.home_points if side is Side.HOME else self.away_points


@dataclass(frozen=True)
class SetScore:
    """Point pair for one set. Either value may be missing."""
    number: int
    home: Optional[int] = None
    away: Optional[int] = None

    @property
    def has_points(self) -> bool:
        return self.home is not None or self.away is not None


@dataclass(frozen=True)
class RosterEntry:
    """A team record from the roster directory."""
    internal_id: Optional[int]
    foreign_id: int
    country: str
    name: str = ""

    @classmethod
    def from_raw(cls, raw: Dict[str, Any]) -> Optional["RosterEntry"]:
        """Map a raw team record; None if it carries no usable foreign id."""
        foreign_id = optional_int(raw.get("sofascore_team_id"))
        if foreign_id is None:
            return None
        return cls(
            internal_id=optional_int(raw.get("id")),
            foreign_id=foreign_id,
            country=safe_str(raw.get("country")).strip(),
            name=safe_str(raw.get("name")).strip(),
        )


@dataclass(frozen=True)
class MatchSnapshot:
    """
    One match as reported by a single live-feed poll.

    Built with `from_raw`, which degrades malformed fields to None rather
    than failing, so one bad field never hides the rest of the card.
    """
    event_id: Optional[str]
    home_team_id: Optional[int]
    away_team_id: Optional[int]
    home_name: str
    away_name: str
    status_type: str
    status_detail: str
    sets: Tuple[SetScore, ...] = ()
    home_sets: Optional[int] = None
    away_sets: Optional[int] = None
    start_ts: Optional[int] = None
    tournament_name: str = ""
    season_name: str = ""
    tournament_id: Optional[str] = None
    group_type: str = ""

    @classmethod
    def from_raw(cls, raw: Dict[str, Any]) -> "MatchSnapshot":
        """Map a raw feed item onto a snapshot."""
        event_id = first_present(raw, "event_id", "custom_id")

        return cls(
            event_id=safe_str(event_id) if event_id is not None else None,
            home_team_id=optional_int(first_present(raw, "home_team_id", "home_teams_id")),
            away_team_id=optional_int(first_present(raw, "away_team_id", "away_teams_id")),
            home_name=safe_str(raw.get("home_team_name")),
            away_name=safe_str(raw.get("away_team_name")),
            status_type=safe_str(raw.get("status_type")),
            status_detail=safe_str(raw.get("status_desc")),
            sets=_parse_sets(raw),
            home_sets=optional_int(raw.get("home_sets")),
            away_sets=optional_int(raw.get("away_sets")),
            start_ts=optional_int(raw.get("start_ts")),
            tournament_name=safe_str(raw.get("tournament_name")),
            season_name=safe_str(raw.get("season_name")),
            tournament_id=_tournament_id(raw),
            group_type=safe_str(raw.get("group_type")),
        )

    @property
    def has_stable_id(self) -> bool:
        return self.event_id is not None

    @property
    def key(self) -> MatchKey:
        """Stable id when present, else start time plus both team names."""
        if self.event_id is not None:
            return self.event_id
        start = "" if self.start_ts is None else str(self.start_ts)
        return f"{start}-{self.home_name}-{self.away_name}"

    @property
    def status(self) -> MatchStatus:
        return MatchStatus.from_status_type(self.status_type)

    @property
    def is_live(self) -> bool:
        return self.status is MatchStatus.LIVE

    @property
    def current_points(self) -> Optional[PointState]:
        """The highest-numbered set with any points, or None before play."""
        for set_score in sorted(self.sets, key=lambda s: s.number, reverse=True):
            if set_score.has_points:
                return PointState(
                    set_number=set_score.number,
                    home_points=set_score.home,
                    away_points=set_score.away,
                )
        return None


def _parse_sets(raw: Dict[str, Any]) -> Tuple[SetScore, ...]:
    points: Dict[int, Dict[str, Optional[int]]] = {}
    for raw_key, value in raw.items():
        match = SET_POINTS_KEY.match(str(raw_key))
        if not match:
            continue
        number = int(match.group(2))
        if number < 1:
            continue
        points.setdefault(number, {})[match.group(1)] = optional_int(value)

    return tuple(
        SetScore(number=number, home=pair.get("home"), away=pair.get("away"))
        for number, pair in sorted(points.items())
    )


def _tournament_id(raw: Dict[str, Any]) -> Optional[str]:
    value = first_present(raw, "tournament_id", "tournamentId")
    if value is None:
        tournament = raw.get("tournament")
        if isinstance(tournament, dict):
            value = tournament.get("id")
        elif isinstance(tournament, (int, str)) and not isinstance(tournament, bool):
            value = tournament
    return None if value is None else safe_str(value)


@dataclass
class MatchFlash:
    """Flash markers for both sides of one match."""
    home: FlashMark = field(default=UNCHANGED)
    away: FlashMark = field(default=UNCHANGED)

    def mark(self, side: Side, generation: int) -> None:
        if side is Side.HOME:
            self.home = JustIncreased(generation)
        else:
            self.away = JustIncreased(generation)
