"""Unit tests for season lifecycle and resets."""

from __future__ import annotations

from datetime import timedelta

import pytest

from bassball.middleware.error_handler import (
    ConflictError,
    InvalidStateError,
    SeasonNotFoundError,
    ValidationError,
)
from bassball.seasons.manager import (
    SeasonManager,
    calculate_reset_adjustments,
    calculate_xp_carryover,
)
from bassball.seasons.models import (
    EntityType,
    PlayerResetRequest,
    PlayerSeasonStats,
    ResetRules,
    SeasonStatus,
)


@pytest.fixture
def seasons(storage, utc_clock) -> SeasonManager:
    return SeasonManager(storage, clock=utc_clock)


def _request(entity_id, *, entity_type=EntityType.PLAYER, **stats) -> PlayerResetRequest:
    return PlayerResetRequest(
        entity_id=entity_id,
        entity_name=entity_id.title(),
        entity_type=entity_type,
        stats=PlayerSeasonStats(**stats),
    )


class TestCalculations:
    def test_default_carryover_is_ten_percent(self):
        assert calculate_xp_carryover(12345, ResetRules()) == 1234

    def test_no_carryover_when_not_preserved(self):
        assert calculate_xp_carryover(5000, ResetRules(preserve_xp=False)) == 0

    def test_zero_percentage(self):
        assert calculate_xp_carryover(5000, ResetRules(preserve_xp_percentage=0)) == 0

    def test_full_reset(self):
        rules = ResetRules(reset_level=True, reset_tier=True, preserve_xp_percentage=50)
        adjustments = calculate_reset_adjustments(30, "diamond", 801, rules)
        assert adjustments.new_level == 1
        assert adjustments.new_tier == "bronze"
        assert adjustments.new_xp == 400
        assert adjustments.xp_carried_over == 400

    def test_keep_progression(self):
        adjustments = calculate_reset_adjustments(12, "gold", 100, ResetRules())
        assert (adjustments.new_level, adjustments.new_tier) == (12, "gold")


class TestLifecycle:
    def test_create_sets_current(self, seasons):
        season = seasons.create_season(1, "Kickoff", theme="Spring")
        assert season.season_id == "season_1"
        assert season.status == SeasonStatus.PLANNING
        assert seasons.get_current_season().season_id == "season_1"
        assert seasons.get_active_season() is None

    def test_duplicate_number(self, seasons):
        seasons.create_season(1, "Kickoff")
        with pytest.raises(ConflictError):
            seasons.create_season(1, "Again")

    def test_activate_and_end(self, seasons, utc_clock):
        seasons.create_season(1, "Kickoff")
        active = seasons.activate_season("season_1")
        assert active.start_date == utc_clock.now

        utc_clock.advance(days=90)
        ended = seasons.end_season("season_1")
        assert ended.status == SeasonStatus.CONCLUDED
        assert seasons.get_season_duration("season_1") == timedelta(days=90)

    def test_single_active_season(self, seasons):
        seasons.create_season(1, "One")
        seasons.create_season(2, "Two")
        seasons.activate_season("season_1")
        with pytest.raises(InvalidStateError):
            seasons.activate_season("season_2")

    def test_cannot_reactivate(self, seasons):
        seasons.create_season(1, "One")
        seasons.activate_season("season_1")
        seasons.end_season("season_1")
        with pytest.raises(InvalidStateError):
            seasons.activate_season("season_1")

    def test_end_requires_active(self, seasons):
        seasons.create_season(1, "One")
        with pytest.raises(InvalidStateError):
            seasons.end_season("season_1")

    def test_unknown_season(self, seasons):
        with pytest.raises(SeasonNotFoundError):
            seasons.activate_season("season_9")
        assert seasons.get_reset_rules("season_9") is None
        assert seasons.get_season_duration("season_9") is None

    def test_listing_and_previous(self, seasons):
        for number in (1, 3, 2):
            seasons.create_season(number, f"S{number}")
        assert [s.season_number for s in seasons.list_seasons()] == [3, 2, 1]
        assert seasons.get_previous_season("season_3").season_id == "season_2"
        assert seasons.get_previous_season("season_1") is None


class TestSnapshots:
    def test_snapshot_replaces_per_entity(self, seasons):
        seasons.create_season(1, "One")
        seasons.take_snapshot("season_1", "p1", "P1", EntityType.PLAYER, PlayerSeasonStats(level=3))
        seasons.take_snapshot("season_1", "p1", "P1", EntityType.PLAYER, PlayerSeasonStats(level=4))
        snapshots = seasons.get_season_snapshots("season_1")
        assert len(snapshots) == 1
        assert seasons.get_snapshot("snap_season_1_p1").stats.level == 4

    def test_stats(self, seasons):
        seasons.create_season(1, "One")
        seasons.take_snapshot(
            "season_1", "p1", "P1", EntityType.PLAYER,
            PlayerSeasonStats(level=10, tier="gold", matches_played=20, win_rate=55.0),
        )
        seasons.take_snapshot(
            "season_1", "p2", "P2", EntityType.PLAYER,
            PlayerSeasonStats(level=5, tier="diamond", matches_played=12, win_rate=40.0),
        )
        seasons.take_snapshot(
            "season_1", "t1", "T1", EntityType.TEAM,
            PlayerSeasonStats(level=2, tier="mystery", matches_played=8),
        )
        stats = seasons.get_season_stats("season_1")
        assert stats.total_snapshots == 3
        assert stats.average_final_level == 5.7
        assert stats.top_tier == "diamond"
        assert stats.total_matches_played == 40
        assert stats.highest_win_rate == 55.0

    def test_stats_empty(self, seasons):
        seasons.create_season(1, "One")
        assert seasons.get_season_stats("season_1") is None


class TestSeasonReset:
    @pytest.fixture
    def two_seasons(self, seasons):
        seasons.create_season(
            1, "One", reset_rules=ResetRules(reset_level=True, preserve_xp_percentage=20)
        )
        seasons.activate_season("season_1")
        seasons.create_season(2, "Two")
        return seasons

    def test_reset_moves_to_next_season(self, two_seasons, utc_clock):
        players = [
            _request("p1", level=20, tier="gold", total_xp=1000, badges=["mvp"]),
            _request("p2", level=3, total_xp=0),
            _request("t1", entity_type=EntityType.TEAM, level=7, total_xp=50),
        ]
        result = two_seasons.execute_season_reset("season_1", "season_2", players)

        assert result.reset_id == "reset_season_1_season_2"
        assert (result.players_reset, result.teams_reset) == (2, 1)
        assert result.preserved.players_with_badges == 1
        assert result.preserved.players_with_xp_carryover == 2
        assert result.preserved.players_with_level_carryover == 0

        p1 = result.players[0]
        assert (p1.new_level, p1.new_tier, p1.new_xp) == (1, "gold", 200)
        assert p1.preserved_badges == ["mvp"]

        assert two_seasons.get_season("season_1").status == SeasonStatus.ARCHIVED
        assert two_seasons.get_season("season_1").reset_date == utc_clock.now
        assert two_seasons.get_active_season().season_id == "season_2"
        assert two_seasons.get_current_season().season_id == "season_2"
        assert len(two_seasons.get_season_snapshots("season_1")) == 3

    def test_badges_dropped_when_not_preserved(self, seasons):
        seasons.create_season(1, "One", reset_rules=ResetRules(preserve_badges=False))
        seasons.activate_season("season_1")
        result = seasons.execute_player_reset("season_1", _request("p1", badges=["mvp"]))
        assert result.preserved_badges == []

    def test_reset_into_itself(self, two_seasons):
        with pytest.raises(ValidationError):
            two_seasons.execute_season_reset("season_1", "season_1", [])

    def test_target_must_be_planned(self, two_seasons):
        two_seasons.execute_season_reset("season_1", "season_2", [])
        with pytest.raises(InvalidStateError):
            two_seasons.execute_season_reset("season_2", "season_1", [])

    def test_source_must_have_run(self, seasons):
        seasons.create_season(1, "One")
        seasons.create_season(2, "Two")
        with pytest.raises(InvalidStateError):
            seasons.execute_season_reset("season_1", "season_2", [])

    def test_reset_refused_while_another_season_is_active(self, seasons):
        for number in (1, 2, 3):
            seasons.create_season(number, f"S{number}")
        seasons.activate_season("season_1")
        seasons.end_season("season_1")
        seasons.activate_season("season_2")

        with pytest.raises(InvalidStateError):
            seasons.execute_season_reset("season_1", "season_3", [])

        assert seasons.get_season("season_3").status == SeasonStatus.PLANNING
        assert seasons.get_season("season_1").status == SeasonStatus.CONCLUDED
        assert seasons.get_active_season().season_id == "season_2"

    def test_reset_from_concluded_season(self, seasons):
        seasons.create_season(1, "One")
        seasons.create_season(2, "Two")
        seasons.activate_season("season_1")
        seasons.end_season("season_1")

        seasons.execute_season_reset("season_1", "season_2", [])

        active = [s.season_id for s in seasons.list_seasons() if s.status == SeasonStatus.ACTIVE]
        assert active == ["season_2"]

    def test_history_newest_first(self, two_seasons, utc_clock):
        two_seasons.execute_season_reset("season_1", "season_2", [])
        two_seasons.create_season(3, "Three")
        utc_clock.advance(days=1)
        two_seasons.execute_season_reset("season_2", "season_3", [])

        history = two_seasons.get_reset_history()
        assert [r.reset_id for r in history] == [
            "reset_season_2_season_3",
            "reset_season_1_season_2",
        ]
        assert len(two_seasons.get_reset_history("season_3")) == 1
