"""
View Models for the live board.
Strict mapping layer that turns snapshots plus derived state into the
payloads the rendering surface consumes. The surface never sees raw feed
items or reconciler internals.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from config.settings import settings
from volleyview.live_feed.classifier import classify, count_by_classification
from volleyview.live_feed.models import (
    Classification,
    JustIncreased,
    MatchSnapshot,
    MatchStatus,
    PlayKind,
    RosterEntry,
    Side,
)
from volleyview.live_feed.reconciler import ReconcileResult

logger = logging.getLogger("view_models")

PLACEHOLDER = "—"

STATUS_LABELS = {
    MatchStatus.LIVE: "LIVE",
    MatchStatus.FINISHED: "SLUTT",
    MatchStatus.UPCOMING: "KOMMER",
}

PLAY_TEXT = {
    PlayKind.BREAK_POINT: "Break-point",
    PlayKind.SIDE_OUT: "Side-out",
}

MONTHS_NB = ["jan", "feb", "mar", "apr", "mai", "jun", "jul", "aug", "sep", "okt", "nov", "des"]


@dataclass(frozen=True)
class FilterDefinition:
    """Label and empty-state text for one category filter."""
    category: Classification
    label: str
    empty_message: str


FILTERS = [
    FilterDefinition(
        Classification.HOME_FEDERATION,
        "Mizuno Norge",
        "Det er ingen pågående kamper for lag fra Norge nå.",
    ),
    FilterDefinition(
        Classification.ABROAD,
        "Norske spillere i utlandet",
        "Det er ingen norske spillere i utlandet i aksjon nå.",
    ),
    FilterDefinition(
        Classification.OTHER,
        "Andre",
        "Det er ingen andre livekamper for øyeblikket.",
    ),
]

FILTERS_BY_CATEGORY = {f.category: f for f in FILTERS}


# =============================================================================
# Formatting helpers
# =============================================================================

def status_label(status_type: str) -> str:
    """LIVE / SLUTT / KOMMER, else the raw status text or a placeholder."""
    label = STATUS_LABELS.get(MatchStatus.from_status_type(status_type))
    if label:
        return label
    return status_type or PLACEHOLDER


def status_text(snapshot: MatchSnapshot) -> str:
    label = status_label(snapshot.status_type)
    if snapshot.status_detail:
        return f"{label} · {snapshot.status_detail}"
    return label


def competition_text(snapshot: MatchSnapshot) -> str:
    """'Tournament · Season', either part alone, or a placeholder."""
    parts = [p for p in (snapshot.tournament_name, snapshot.season_name) if p]
    return " · ".join(parts) if parts else PLACEHOLDER


def _display_zone():
    try:
        return ZoneInfo(settings.display_timezone)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning(f"Unknown display timezone {settings.display_timezone!r}, using UTC")
        return timezone.utc


def format_start(start_ts: Optional[int]) -> str:
    """Format epoch seconds as '05. okt. 18:30' in the display timezone."""
    if not start_ts:
        return ""
    try:
        dt = datetime.fromtimestamp(start_ts, tz=timezone.utc).astimezone(_display_zone())
    except (OverflowError, OSError, ValueError):
        return ""
    return f"{dt.day:02d}. {MONTHS_NB[dt.month - 1]}. {dt.hour:02d}:{dt.minute:02d}"


def team_logo_url(team_id: Optional[int]) -> Optional[str]:
    if team_id is None:
        return None
    return f"{settings.feed_base_url}/img/teams/{team_id}.png"


def tournament_logo_url(tournament_id: Optional[str]) -> Optional[str]:
    if tournament_id is None:
        return None
    return f"{settings.feed_base_url}/img/tournaments/{tournament_id}.png"


def _points_text(value: Optional[int]) -> str:
    return PLACEHOLDER if value is None else str(value)


# =============================================================================
# PAYLOAD CONTRACTS (UI-Stable View Models)
# =============================================================================

@dataclass
class TeamView:
    """One side of a match card."""
    id: Optional[int]
    name: str
    logo: Optional[str]

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "name": self.name, "logo": self.logo}


@dataclass
class MatchCardView:
    """
    Stable payload for one match card.
    The rendering surface relies on these exact field names.
    """
    key: str
    focusable: bool
    label: str
    status_text: str
    competition: str
    competition_logo: Optional[str]
    group_type: str
    home: TeamView
    away: TeamView
    set_number: Optional[int]
    home_points: Optional[int]
    away_points: Optional[int]
    home_sets: int
    away_sets: int
    serve: Optional[Dict[str, Any]]
    serve_team: Optional[str]
    play_label: Optional[Dict[str, str]]
    play_text: Optional[str]
    flash_home: Optional[int]
    flash_away: Optional[int]
    classification: Classification
    is_focused: bool
    start_ts: Optional[int]
    start_text: str

    @classmethod
    def build(
        cls,
        snapshot: MatchSnapshot,
        result: ReconcileResult,
        classification: Classification,
        is_focused: bool,
    ) -> "MatchCardView":
        key = snapshot.key
        state = result.state_for(key)
        flash = result.flash_for(key)
        points = snapshot.current_points

        serve = state.serve.to_dict()
        serve_team = None
        if serve is not None:
            serve_team = snapshot.home_name if serve["side"] == Side.HOME.value else snapshot.away_name

        label = state.play_label
        flash_home = flash.home.generation if isinstance(flash.home, JustIncreased) else None
        flash_away = flash.away.generation if isinstance(flash.away, JustIncreased) else None

        return cls(
            key=key,
            focusable=snapshot.has_stable_id,
            label=status_label(snapshot.status_type),
            status_text=status_text(snapshot),
            competition=competition_text(snapshot),
            competition_logo=tournament_logo_url(snapshot.tournament_id),
            group_type=snapshot.group_type,
            home=TeamView(snapshot.home_team_id, snapshot.home_name, team_logo_url(snapshot.home_team_id)),
            away=TeamView(snapshot.away_team_id, snapshot.away_name, team_logo_url(snapshot.away_team_id)),
            set_number=points.set_number if points else None,
            home_points=points.home_points if points else None,
            away_points=points.away_points if points else None,
            home_sets=snapshot.home_sets or 0,
            away_sets=snapshot.away_sets or 0,
            serve=serve,
            serve_team=serve_team,
            play_label=label.to_dict() if label else None,
            play_text=PLAY_TEXT[label.kind] if label else None,
            flash_home=flash_home,
            flash_away=flash_away,
            classification=classification,
            is_focused=is_focused,
            start_ts=snapshot.start_ts,
            start_text=format_start(snapshot.start_ts),
        )

    @property
    def score_text(self) -> str:
        return f"{_points_text(self.home_points)} - {_points_text(self.away_points)}"

    @property
    def current_set_text(self) -> str:
        if self.set_number:
            return f"{self.set_number}. sett"
        return PLACEHOLDER

    @property
    def sets_text(self) -> str:
        text = f"{self.home_sets} - {self.away_sets} i sett"
        if self.set_number:
            text += f" · {self.current_set_text}"
        return text

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dict for JSON serialization."""
        return {
            "key": self.key,
            "focusable": self.focusable,
            "label": self.label,
            "statusText": self.status_text,
            "competition": {"name": self.competition, "logo": self.competition_logo},
            "groupType": self.group_type,
            "home": self.home.to_dict(),
            "away": self.away.to_dict(),
            "setNumber": self.set_number,
            "currentSetText": self.current_set_text,
            "points": {"home": self.home_points, "away": self.away_points},
            "scoreText": self.score_text,
            "setsWon": {"home": self.home_sets, "away": self.away_sets},
            "setsText": self.sets_text,
            "serve": self.serve,
            "serveTeam": self.serve_team,
            "playLabel": self.play_label,
            "playText": self.play_text,
            "flashed": {"home": self.flash_home is not None, "away": self.flash_away is not None},
            "flashToken": {"home": self.flash_home, "away": self.flash_away},
            "classification": self.classification.value,
            "isFocused": self.is_focused,
            "start": {"ts": self.start_ts, "text": self.start_text},
        }


@dataclass
class FilterBadge:
    """A category filter button with its live-match count."""
    category: Classification
    label: str
    count: int
    active: bool

    def to_dict(self) -> Dict[str, Any]:
        return {
            "category": self.category.value,
            "label": self.label,
            "count": self.count,
            "active": self.active,
        }


@dataclass
class LiveBoardView:
    """Everything the rendering surface needs for one render."""
    cycle: int
    active_filter: Classification
    focused_key: Optional[str]
    filters: List[FilterBadge] = field(default_factory=list)
    matches: List[MatchCardView] = field(default_factory=list)
    error: Optional[str] = None
    loading: bool = False
    keep_awake: bool = False

    @property
    def empty_message(self) -> Optional[str]:
        if self.matches or self.loading or self.error:
            return None
        return FILTERS_BY_CATEGORY[self.active_filter].empty_message

    def to_dict(self) -> Dict[str, Any]:
        return {
            "cycle": self.cycle,
            "activeFilter": self.active_filter.value,
            "focusedKey": self.focused_key,
            "filters": [f.to_dict() for f in self.filters],
            "matches": [m.to_dict() for m in self.matches],
            "emptyMessage": self.empty_message,
            "error": self.error,
            "loading": self.loading,
            "keepAwake": self.keep_awake,
        }


def live_matches(result: ReconcileResult) -> List[MatchSnapshot]:
    """Live matches from the latest poll, earliest start first."""
    live = [s for s in result.snapshots if s.is_live]
    live.sort(key=lambda s: s.start_ts or 0)
    return live


def find_focused(
    focused_key: Optional[str],
    candidates: List[MatchSnapshot],
) -> Optional[MatchSnapshot]:
    """The focusable snapshot matching the focused key, if present."""
    if focused_key is None:
        return None
    for snapshot in candidates:
        if snapshot.has_stable_id and snapshot.key == focused_key:
            return snapshot
    return None


def build_board(
    result: ReconcileResult,
    roster: Optional[Mapping[int, RosterEntry]],
    active_filter: Classification,
    focused_key: Optional[str],
    error: Optional[str] = None,
    loading: bool = False,
    keep_awake: bool = False,
    home_country: Optional[str] = None,
) -> LiveBoardView:
    """
    Assemble the board for one render.

    Only live matches are shown. With a focused live match the board
    narrows to that single card; otherwise it shows the active category.
    """
    live = live_matches(result)
    classes = {id(s): classify(s, roster, home_country) for s in live}
    counts = count_by_classification(live, roster, home_country)

    filtered = [s for s in live if classes[id(s)] == active_filter]
    focused = find_focused(focused_key, filtered) or find_focused(focused_key, live)
    visible = [focused] if focused is not None else filtered

    return LiveBoardView(
        cycle=result.cycle,
        active_filter=active_filter,
        focused_key=focused_key,
        filters=[
            FilterBadge(
                category=f.category,
                label=f.label,
                count=counts[f.category],
                active=f.category == active_filter,
            )
            for f in FILTERS
        ],
        matches=[
            MatchCardView.build(
                snapshot=s,
                result=result,
                classification=classes[id(s)],
                is_focused=focused is not None and s is focused,
            )
            for s in visible
        ],
        error=error,
        loading=loading,
        keep_awake=keep_awake,
    )
