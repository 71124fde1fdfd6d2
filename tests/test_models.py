"""
Tests for feed mapping: snapshot parsing, keys, current set detection.
"""
import pytest

from conftest import raw_event

from volleyview.live_feed.models import (
    MatchSnapshot,
    MatchStatus,
    PointState,
    RosterEntry,
    Side,
)
from volleyview.utils.helpers import optional_int


class TestMatchKey:

    def test_stable_id_is_the_key(self):
        snap = MatchSnapshot.from_raw(raw_event(event_id=12345))
        assert snap.key == "12345"
        assert snap.has_stable_id

    def test_custom_id_is_used_when_event_id_missing(self):
        raw = raw_event(event_id=None, custom_id="c-7")
        assert MatchSnapshot.from_raw(raw).key == "c-7"

    def test_fallback_key_from_start_and_names(self):
        snap = MatchSnapshot.from_raw(raw_event(event_id=None))
        assert snap.key == "1760000000-Home VK-Away VK"
        assert not snap.has_stable_id

    def test_fallback_key_without_start_time(self):
        snap = MatchSnapshot.from_raw(raw_event(event_id=None, start_ts=None))
        assert snap.key == "-Home VK-Away VK"


class TestCurrentPoints:

    def test_no_points_means_no_current_set(self):
        assert MatchSnapshot.from_raw(raw_event(sets=[])).current_points is None

    def test_highest_set_with_a_value_is_current(self):
        snap = MatchSnapshot.from_raw(raw_event(sets=[(25, 20), (18, 25), (3, 1)]))
        assert snap.current_points == PointState(3, 3, 1)

    def test_trailing_empty_sets_are_skipped(self):
        snap = MatchSnapshot.from_raw(raw_event(sets=[(25, 20), (4, 6), (None, None)]))
        assert snap.current_points == PointState(2, 4, 6)

    def test_one_sided_value_counts(self):
        snap = MatchSnapshot.from_raw(raw_event(sets=[(25, 20), (None, 1)]))
        assert snap.current_points == PointState(2, None, 1)

    def test_no_hard_coded_set_limit(self):
        raw = raw_event(sets=[])
        raw["home_p9"] = 2
        raw["away_p9"] = 0
        assert MatchSnapshot.from_raw(raw).current_points == PointState(9, 2, 0)

    def test_points_for_side(self):
        state = PointState(1, 7, 9)
        assert state.points_for(Side.HOME) == 7
        assert state.points_for(Side.AWAY) == 9


class TestFromRaw:

    def test_alias_team_ids(self):
        raw = raw_event(home_id=None, away_id=None, home_teams_id="11", away_teams_id=12)
        snap = MatchSnapshot.from_raw(raw)
        assert snap.home_team_id == 11
        assert snap.away_team_id == 12

    def test_malformed_numbers_degrade_to_none(self):
        raw = raw_event(home_sets="two", start_ts="soon", sets=[("x", 4)])
        snap = MatchSnapshot.from_raw(raw)
        assert snap.home_sets is None
        assert snap.start_ts is None
        assert snap.sets[0].home is None
        assert snap.sets[0].away == 4

    @pytest.mark.parametrize("raw_tournament, expected", [
        ({"tournament_id": 5}, "5"),
        ({"tournamentId": "9"}, "9"),
        ({"tournament": {"id": 3}}, "3"),
        ({"tournament": 77}, "77"),
        ({}, None),
    ])
    def test_tournament_id_aliases(self, raw_tournament, expected):
        assert MatchSnapshot.from_raw(raw_event(**raw_tournament)).tournament_id == expected

    @pytest.mark.parametrize("status_type, expected", [
        ("inprogress", MatchStatus.LIVE),
        ("Live", MatchStatus.LIVE),
        ("inplay", MatchStatus.LIVE),
        ("finished", MatchStatus.FINISHED),
        ("ended", MatchStatus.FINISHED),
        ("notstarted", MatchStatus.UPCOMING),
        ("scheduled", MatchStatus.UPCOMING),
        ("postponed", MatchStatus.UNKNOWN),
        ("", MatchStatus.UNKNOWN),
    ])
    def test_status(self, status_type, expected):
        assert MatchSnapshot.from_raw(raw_event(status=status_type)).status is expected


class TestRosterEntry:

    def test_maps_foreign_id_and_country(self):
        entry = RosterEntry.from_raw({"id": 3, "sofascore_team_id": "501", "country": " Norge ", "name": "Tromsø"})
        assert entry == RosterEntry(internal_id=3, foreign_id=501, country="Norge", name="Tromsø")

    @pytest.mark.parametrize("foreign_id", [None, "", "abc"])
    def test_unusable_foreign_id(self, foreign_id):
        assert RosterEntry.from_raw({"id": 1, "sofascore_team_id": foreign_id}) is None


@pytest.mark.parametrize("value, expected", [
    (3, 3),
    ("12", 12),
    (" 4 ", 4),
    (7.0, 7),
    ("7.0", 7),
    (7.5, None),
    ("", None),
    (None, None),
    (True, None),
    ([1], None),
])
def test_optional_int(value, expected):
    assert optional_int(value) == expected
