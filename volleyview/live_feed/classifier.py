"""
Group classifier: which competitive category a match belongs to.

Pure functions over (snapshot, roster map). Nothing is cached per match,
since the roster refreshes on its own timer and may change between polls.
"""
import logging
from typing import Any, Dict, Iterable, Mapping, Optional

from config.settings import settings

from .models import Classification, MatchSnapshot, RosterEntry

logger = logging.getLogger("live_feed.classifier")

RosterMap = Mapping[int, RosterEntry]


def build_roster_map(records: Iterable[Any]) -> Dict[int, RosterEntry]:
    """
    Index raw roster records by their foreign (live-feed) team id.

    Records that are not mappings or lack a numeric foreign id are skipped.
    When two records share a foreign id the later one wins.
    """
    roster: Dict[int, RosterEntry] = {}
    skipped = 0
    for record in records:
        if not isinstance(record, dict):
            skipped += 1
            continue
        entry = RosterEntry.from_raw(record)
        if entry is None:
            skipped += 1
            continue
        roster[entry.foreign_id] = entry

    if skipped:
        logger.debug(f"Skipped {skipped} roster records without a foreign id")
    return roster


def classify(
    snapshot: MatchSnapshot,
    roster_by_foreign_id: Optional[RosterMap],
    home_country: Optional[str] = None,
) -> Classification:
    """
    Classify a match against the roster.

    - home-federation: either resolved team is from the home country
    - abroad: at least one team resolved, none from the home country
    - other: neither team resolves (also for an empty or missing roster)
    """
    if not roster_by_foreign_id:
        return Classification.OTHER

    country = settings.home_federation_country if home_country is None else home_country

    resolved = [
        roster_by_foreign_id.get(team_id)
        for team_id in (snapshot.home_team_id, snapshot.away_team_id)
        if team_id is not None
    ]
    resolved = [team for team in resolved if team is not None]

    if any(team.country == country for team in resolved):
        return Classification.HOME_FEDERATION
    if resolved:
        return Classification.ABROAD
    return Classification.OTHER


def count_by_classification(
    snapshots: Iterable[MatchSnapshot],
    roster_by_foreign_id: Optional[RosterMap],
    home_country: Optional[str] = None,
) -> Dict[Classification, int]:
    """Number of matches per category (every category present, possibly 0)."""
    counts = {category: 0 for category in Classification}
    for snapshot in snapshots:
        counts[classify(snapshot, roster_by_foreign_id, home_country)] += 1
    return counts


def suggest_filter(counts: Mapping[Classification, int]) -> Classification:
    """Default filter: home federation if it has matches, then abroad, then other."""
    if counts.get(Classification.HOME_FEDERATION, 0) > 0:
        return Classification.HOME_FEDERATION
    if counts.get(Classification.ABROAD, 0) > 0:
        return Classification.ABROAD
    return Classification.OTHER
