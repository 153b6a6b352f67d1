"""Unit tests for the battle pass manager."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from bassball.battlepass.manager import BattlePassManager, generate_levels
from bassball.battlepass.models import BattlePassTier, Rarity, SeasonKind
from bassball.middleware.error_handler import (
    ConflictError,
    InvalidStateError,
    LimitExceededError,
    NotFoundError,
    PlayerNotEnrolledError,
    SeasonNotFoundError,
    ValidationError,
)


@pytest.fixture
def battle_pass(storage, utc_clock) -> BattlePassManager:
    manager = BattlePassManager(storage, clock=utc_clock)
    manager.seed_default_seasons()
    return manager


class TestGenerateLevels:
    def test_required_xp_and_free_reward(self):
        levels = generate_levels(20)
        assert levels[0].required_xp == 1000
        assert levels[6].required_xp == 7000
        assert levels[6].free_reward.value == 70

    def test_premium_every_fifth_level(self):
        levels = generate_levels(20)
        assert levels[3].premium_reward is None
        assert levels[4].premium_reward.rarity == Rarity.RARE
        assert levels[9].premium_reward.rarity == Rarity.EPIC

    def test_milestones(self):
        levels = generate_levels(20)
        assert levels[9].milestone is True
        assert levels[9].milestone_name == "Milestone 1"
        assert levels[19].milestone_name == "Milestone 2"
        assert levels[8].milestone is False


class TestSeasons:
    def test_seeded_seasons(self, battle_pass: BattlePassManager):
        assert [s.id for s in battle_pass.list_seasons()] == ["season_1", "season_2"]
        current = battle_pass.get_current_season()
        assert current.name == "Rise of Champions"
        assert current.premium_discounted_price == 7.99
        assert len(current.levels) == 100
        assert len(current.challenges) == 5

    def test_seed_is_idempotent(self, battle_pass: BattlePassManager):
        battle_pass.seed_default_seasons()
        assert len(battle_pass.list_seasons()) == 2

    def test_duplicate_season(self, battle_pass: BattlePassManager):
        with pytest.raises(ConflictError):
            battle_pass.create_season(
                "season_1",
                1,
                "Again",
                SeasonKind.EVENT,
                datetime(2025, 1, 1, tzinfo=timezone.utc),
                datetime(2025, 2, 1, tzinfo=timezone.utc),
            )

    def test_end_before_start(self, battle_pass: BattlePassManager):
        with pytest.raises(ValidationError):
            battle_pass.create_season(
                "season_9",
                9,
                "Backwards",
                SeasonKind.EVENT,
                datetime(2025, 2, 1, tzinfo=timezone.utc),
                datetime(2025, 1, 1, tzinfo=timezone.utc),
            )

    def test_set_active_unknown(self, battle_pass: BattlePassManager):
        with pytest.raises(SeasonNotFoundError):
            battle_pass.set_active_season("season_42")

    def test_challenges_unknown_season(self, battle_pass: BattlePassManager):
        assert battle_pass.get_challenges("nope") == []

    def test_no_current_season(self, storage):
        manager = BattlePassManager(storage)
        manager.enroll_player("u1")
        with pytest.raises(SeasonNotFoundError):
            manager.add_xp("u1", 10)


class TestProgression:
    def test_enroll(self, battle_pass: BattlePassManager):
        progress = battle_pass.enroll_player("u1")
        assert progress.current_level == 1
        assert progress.tier == BattlePassTier.FREE
        assert progress.season_id == "season_1"

    def test_re_enroll_updates_tier_only(self, battle_pass: BattlePassManager):
        battle_pass.enroll_player("u1")
        battle_pass.add_xp("u1", 500)
        progress = battle_pass.enroll_player("u1", BattlePassTier.PREMIUM)
        assert progress.tier == BattlePassTier.PREMIUM
        assert progress.current_xp == 500

    def test_add_xp_levels_up_with_carry_over(self, battle_pass: BattlePassManager):
        battle_pass.enroll_player("u1")
        assert battle_pass.add_xp("u1", 999) == (False, 1)
        assert battle_pass.add_xp("u1", 201) == (True, 2)
        progress = battle_pass.get_player_progress("u1")
        assert progress.current_xp == 200
        assert progress.total_xp == 1200

    def test_add_xp_at_most_one_level(self, battle_pass: BattlePassManager):
        battle_pass.enroll_player("u1")
        assert battle_pass.add_xp("u1", 50_000) == (True, 2)

    def test_add_xp_requires_enrollment(self, battle_pass: BattlePassManager):
        with pytest.raises(PlayerNotEnrolledError):
            battle_pass.add_xp("ghost", 10)

    def test_negative_xp(self, battle_pass: BattlePassManager):
        battle_pass.enroll_player("u1")
        with pytest.raises(ValidationError):
            battle_pass.add_xp("u1", -1)


class TestChallenges:
    def test_complete_once(self, battle_pass: BattlePassManager):
        battle_pass.enroll_player("u1")
        progress = battle_pass.complete_challenge("u1", "season_1_score_100")
        assert progress.has_completed("season_1_score_100")
        assert progress.total_xp == 1000
        with pytest.raises(ConflictError):
            battle_pass.complete_challenge("u1", "season_1_score_100")

    def test_unknown_challenge(self, battle_pass: BattlePassManager):
        battle_pass.enroll_player("u1")
        with pytest.raises(NotFoundError):
            battle_pass.complete_challenge("u1", "nope")

    def test_progress_completes_at_target(self, battle_pass: BattlePassManager):
        battle_pass.enroll_player("u1")
        progress = battle_pass.update_challenge_progress("u1", "season_1_win_5", 3)
        assert progress.challenge_progress["season_1_win_5"] == 3
        assert not progress.has_completed("season_1_win_5")

        progress = battle_pass.update_challenge_progress("u1", "season_1_win_5", 5)
        assert progress.has_completed("season_1_win_5")
        assert progress.total_xp == 500

        progress = battle_pass.update_challenge_progress("u1", "season_1_win_5", 6)
        assert len(progress.completed_challenges) == 1


class TestRewards:
    def test_claim_free(self, battle_pass: BattlePassManager):
        battle_pass.enroll_player("u1")
        claim = battle_pass.claim_reward("u1", 1)
        assert claim.reward_ids == ["reward_free_1"]

    def test_claim_premium_includes_cosmetic(self, battle_pass: BattlePassManager):
        battle_pass.enroll_player("u1", BattlePassTier.PREMIUM)
        battle_pass.buy_levels("u1", 4, 3.0)
        claim = battle_pass.claim_reward("u1", 5)
        assert claim.reward_ids == ["reward_free_5", "reward_premium_5"]

    def test_free_tier_gets_no_premium(self, battle_pass: BattlePassManager):
        battle_pass.enroll_player("u1")
        battle_pass.buy_levels("u1", 4, 3.0)
        assert battle_pass.claim_reward("u1", 5).reward_ids == ["reward_free_5"]

    def test_claim_unreached_level(self, battle_pass: BattlePassManager):
        battle_pass.enroll_player("u1")
        with pytest.raises(InvalidStateError):
            battle_pass.claim_reward("u1", 3)

    def test_claim_twice(self, battle_pass: BattlePassManager):
        battle_pass.enroll_player("u1")
        battle_pass.claim_reward("u1", 1)
        with pytest.raises(ConflictError):
            battle_pass.claim_reward("u1", 1)

    def test_claim_missing_level(self, battle_pass: BattlePassManager):
        battle_pass.enroll_player("u1")
        with pytest.raises(ValidationError):
            battle_pass.claim_reward("u1", 101)


class TestBuyLevels:
    def test_records_purchase_and_revenue(self, battle_pass: BattlePassManager):
        battle_pass.enroll_player("u1")
        progress = battle_pass.buy_levels("u1", 10, 4.5)
        assert progress.current_level == 11
        assert progress.purchases[0].level == 11
        assert battle_pass.get_stats().seasonal_revenue == 4.5

    def test_cannot_exceed_cap(self, battle_pass: BattlePassManager):
        battle_pass.enroll_player("u1")
        battle_pass.buy_levels("u1", 99, 50.0)
        with pytest.raises(LimitExceededError):
            battle_pass.buy_levels("u1", 1, 1.0)

    def test_xp_does_not_level_past_cap(self, battle_pass: BattlePassManager):
        battle_pass.enroll_player("u1")
        battle_pass.buy_levels("u1", 99, 50.0)
        assert battle_pass.add_xp("u1", 1_000_000) == (False, 100)


class TestStats:
    def test_stats(self, battle_pass: BattlePassManager):
        battle_pass.enroll_player("u1")
        battle_pass.enroll_player("u2", BattlePassTier.PREMIUM)
        battle_pass.buy_levels("u2", 2, 2.0)
        battle_pass.complete_challenge("u1", "season_1_daily_5")

        stats = battle_pass.get_stats()
        assert stats.active_season_id == "season_1"
        assert stats.total_players_enrolled == 2
        assert stats.premium_subscribers == 1
        assert stats.free_players_enrolled == 1
        assert stats.total_challenges_completed == 1
        assert stats.average_player_level == 2.0

    def test_season_stats(self, battle_pass: BattlePassManager):
        battle_pass.enroll_player("u1", BattlePassTier.PREMIUM)
        stats = battle_pass.get_season_stats("season_1")
        assert stats.enrolled_players == 1
        assert stats.premium_players == 1
        assert battle_pass.get_season_stats("season_2").enrolled_players == 0

    def test_season_stats_unknown(self, battle_pass: BattlePassManager):
        with pytest.raises(SeasonNotFoundError):
            battle_pass.get_season_stats("season_77")
