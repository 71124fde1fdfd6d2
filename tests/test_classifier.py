"""
Tests for the group classifier.
"""
import pytest

from conftest import snapshot

from volleyview.live_feed.classifier import (
    build_roster_map,
    classify,
    count_by_classification,
    suggest_filter,
)
from volleyview.live_feed.models import Classification


@pytest.fixture
def roster():
    return build_roster_map([
        {"id": 1, "sofascore_team_id": 501, "country": "Norge"},
        {"id": 2, "sofascore_team_id": 601, "country": "Italia"},
        {"id": 3, "sofascore_team_id": 602, "country": "Polen"},
    ])


class TestClassify:

    def test_home_team_from_home_country_against_unresolved(self, roster):
        match = snapshot(home_id=501, away_id=999)
        assert classify(match, roster, "Norge") is Classification.HOME_FEDERATION

    def test_away_team_from_home_country(self, roster):
        match = snapshot(home_id=601, away_id=501)
        assert classify(match, roster, "Norge") is Classification.HOME_FEDERATION

    def test_resolved_foreign_team_is_abroad(self, roster):
        match = snapshot(home_id=999, away_id=601)
        assert classify(match, roster, "Norge") is Classification.ABROAD

    def test_two_resolved_foreign_teams_are_abroad(self, roster):
        match = snapshot(home_id=601, away_id=602)
        assert classify(match, roster, "Norge") is Classification.ABROAD

    def test_two_unresolved_teams_are_other(self, roster):
        match = snapshot(home_id=777, away_id=999)
        assert classify(match, roster, "Norge") is Classification.OTHER

    def test_missing_team_ids_are_other(self, roster):
        match = snapshot(home_id=None, away_id=None)
        assert classify(match, roster, "Norge") is Classification.OTHER

    @pytest.mark.parametrize("empty", [None, {}])
    def test_empty_roster_is_other(self, empty):
        assert classify(snapshot(home_id=501), empty, "Norge") is Classification.OTHER

    def test_is_deterministic(self, roster):
        match = snapshot(home_id=501, away_id=999)
        results = {classify(match, roster, "Norge") for _ in range(5)}
        assert results == {Classification.HOME_FEDERATION}

    def test_country_comes_from_settings_by_default(self, roster):
        # Default settings use "Norge"
        assert classify(snapshot(home_id=501), roster) is Classification.HOME_FEDERATION

    def test_roster_refresh_changes_the_result(self, roster):
        match = snapshot(home_id=777, away_id=999)
        assert classify(match, roster, "Norge") is Classification.OTHER

        refreshed = build_roster_map([{"id": 9, "sofascore_team_id": 777, "country": "Norge"}])
        assert classify(match, refreshed, "Norge") is Classification.HOME_FEDERATION


class TestRosterMap:

    def test_skips_records_without_foreign_id(self):
        roster = build_roster_map([
            {"id": 1, "sofascore_team_id": None, "country": "Norge"},
            {"id": 2, "sofascore_team_id": "", "country": "Norge"},
            "not a record",
            {"id": 3, "sofascore_team_id": "42", "country": "Norge"},
        ])
        assert list(roster) == [42]
        assert roster[42].internal_id == 3


class TestFilterSuggestion:

    def test_counts_every_category(self, roster):
        counts = count_by_classification(
            [snapshot(home_id=501), snapshot(home_id=601, away_id=1), snapshot(home_id=5, away_id=6)],
            roster,
            "Norge",
        )
        assert counts == {
            Classification.HOME_FEDERATION: 1,
            Classification.ABROAD: 1,
            Classification.OTHER: 1,
        }

    @pytest.mark.parametrize("home, abroad, expected", [
        (2, 1, Classification.HOME_FEDERATION),
        (0, 1, Classification.ABROAD),
        (0, 0, Classification.OTHER),
    ])
    def test_suggest_filter(self, home, abroad, expected):
        counts = {
            Classification.HOME_FEDERATION: home,
            Classification.ABROAD: abroad,
            Classification.OTHER: 4,
        }
        assert suggest_filter(counts) is expected
