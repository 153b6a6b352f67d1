"""Battle pass progression: seasons, XP, challenges, rewards and level purchases."""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from bassball.battlepass.models import (
    BattlePassLevel,
    BattlePassReward,
    BattlePassSeason,
    BattlePassStats,
    BattlePassTier,
    Challenge,
    ChallengeCategory,
    ChallengeDifficulty,
    ClaimedReward,
    CompletedChallenge,
    LevelPurchase,
    PlayerProgress,
    Rarity,
    ResetFrequency,
    RewardType,
    SeasonKind,
    SeasonStats,
)
from bassball.middleware.error_handler import (
    ConflictError,
    InvalidStateError,
    LimitExceededError,
    NotFoundError,
    PlayerNotEnrolledError,
    SeasonNotFoundError,
    ValidationError,
)
from bassball.storage.repository import ModelStore, StorageBackend
from bassball.timeutil import Clock, utc_now

logger = logging.getLogger(__name__)

DEFAULT_TOTAL_LEVELS = 100
XP_PER_LEVEL = 1000

_STATE_KEY = "state"


def generate_levels(count: int) -> list[BattlePassLevel]:
    """Level *i* needs ``i * 1000`` XP. Premium cosmetics every 5th level, milestones every 10th."""
    levels = []
    for i in range(1, count + 1):
        milestone = i % 10 == 0
        premium = None
        if i % 5 == 0:
            premium = BattlePassReward(
                id=f"reward_premium_{i}",
                name=f"Premium Cosmetic {i}",
                type=RewardType.COSMETIC,
                rarity=Rarity.EPIC if milestone else Rarity.RARE,
                value=f"cosmetic_{i}",
            )
        levels.append(
            BattlePassLevel(
                level=i,
                required_xp=i * XP_PER_LEVEL,
                free_reward=BattlePassReward(
                    id=f"reward_free_{i}",
                    name=f"Level {i} Reward",
                    type=RewardType.CURRENCY,
                    rarity=Rarity.COMMON,
                    value=i * 10,
                ),
                premium_reward=premium,
                milestone=milestone,
                milestone_name=f"Milestone {i // 10}" if milestone else None,
            )
        )
    return levels


def generate_challenges(season_id: str) -> list[Challenge]:
    return [
        Challenge(
            id=f"{season_id}_win_5",
            name="Victory Seeker",
            description="Win 5 matches",
            category=ChallengeCategory.MATCH,
            difficulty=ChallengeDifficulty.EASY,
            xp_reward=500,
            target=5,
            repeatable=True,
            reset_frequency=ResetFrequency.WEEKLY,
        ),
        Challenge(
            id=f"{season_id}_score_100",
            name="Goal Scorer",
            description="Score 100 goals",
            category=ChallengeCategory.PERSONAL,
            difficulty=ChallengeDifficulty.MEDIUM,
            xp_reward=1000,
            target=100,
        ),
        Challenge(
            id=f"{season_id}_assist_50",
            name="Team Player",
            description="Get 50 assists",
            category=ChallengeCategory.TEAM,
            difficulty=ChallengeDifficulty.MEDIUM,
            xp_reward=800,
            target=50,
        ),
        Challenge(
            id=f"{season_id}_play_100",
            name="Marathon Player",
            description="Play 100 matches",
            category=ChallengeCategory.MATCH,
            difficulty=ChallengeDifficulty.HARD,
            xp_reward=1500,
            target=100,
        ),
        Challenge(
            id=f"{season_id}_daily_5",
            name="Daily Grinder",
            description="Complete 5 daily challenges",
            category=ChallengeCategory.SEASONAL,
            difficulty=ChallengeDifficulty.EASY,
            xp_reward=250,
            target=5,
            repeatable=True,
            reset_frequency=ResetFrequency.DAILY,
        ),
    ]


class BattlePassManager:
    """Tracks battle pass seasons and per-player progression.

    Parameters
    ----------
    storage:
        Backend providing the ``battlepass_*`` repositories.
    clock:
        Returns the current aware UTC time.
    """

    def __init__(self, storage: StorageBackend, clock: Clock = utc_now) -> None:
        self._clock = clock
        self._seasons = ModelStore(storage.repository("battlepass_seasons"), BattlePassSeason)
        self._players = ModelStore(storage.repository("battlepass_players"), PlayerProgress)
        self._meta = storage.repository("battlepass_meta")

    # ------------------------------------------------------------------
    # Seasons
    # ------------------------------------------------------------------

    def create_season(
        self,
        season_id: str,
        number: int,
        name: str,
        kind: SeasonKind,
        start_date: datetime,
        end_date: datetime,
        *,
        total_levels: int = DEFAULT_TOTAL_LEVELS,
        premium_price: float = 9.99,
        premium_discounted_price: float | None = None,
        theme: str = "",
        description: str = "",
    ) -> BattlePassSeason:
        if season_id in self._seasons:
            raise ConflictError(f"Battle pass season '{season_id}' already exists")
        if end_date <= start_date:
            raise ValidationError("Season must end after it starts", season_id=season_id)

        season = BattlePassSeason(
            id=season_id,
            number=number,
            name=name,
            kind=kind,
            theme=theme,
            start_date=start_date,
            end_date=end_date,
            total_levels=total_levels,
            levels=generate_levels(total_levels),
            challenges=generate_challenges(season_id),
            premium_price=premium_price,
            premium_discounted_price=premium_discounted_price,
            description=description,
        )
        self._seasons.put(season_id, season)
        logger.info(
            "Created battle pass season %s (%s)",
            season_id,
            name,
            extra={"event": "battlepass_season_created", "entity_id": season_id},
        )
        return season

    def seed_default_seasons(self) -> None:
        """Create the two launch seasons if missing and make season_1 current."""
        if "season_1" not in self._seasons:
            self.create_season(
                "season_1",
                1,
                "Rise of Champions",
                SeasonKind.SPRING,
                datetime(2024, 1, 1, tzinfo=timezone.utc),
                datetime(2024, 3, 31, tzinfo=timezone.utc),
                premium_price=9.99,
                premium_discounted_price=7.99,
                theme="Glory & Victory",
                description="Unlock exclusive cosmetics, titles, and rewards throughout the season",
            )
        if "season_2" not in self._seasons:
            self.create_season(
                "season_2",
                2,
                "Summer Showdown",
                SeasonKind.SUMMER,
                datetime(2024, 4, 1, tzinfo=timezone.utc),
                datetime(2024, 6, 30, tzinfo=timezone.utc),
                premium_price=9.99,
                theme="Beach & Festival",
                description="Summer special battle pass with beach-themed cosmetics and rewards",
            )
        self.set_active_season("season_1")

    def get_season(self, season_id: str) -> BattlePassSeason | None:
        return self._seasons.get(season_id)

    def get_current_season(self) -> BattlePassSeason | None:
        current = self._state().get("current_season_id")
        return self._seasons.get(current) if current else None

    def list_seasons(self) -> list[BattlePassSeason]:
        return sorted(self._seasons.all(), key=lambda s: s.number)

    def set_active_season(self, season_id: str) -> BattlePassSeason:
        season = self._seasons.get(season_id)
        if season is None:
            raise SeasonNotFoundError(season_id=season_id)
        self._update_state(current_season_id=season_id)
        logger.info(
            "Active battle pass season set to %s",
            season_id,
            extra={"event": "battlepass_season_activated", "entity_id": season_id},
        )
        return season

    def get_challenges(self, season_id: str) -> list[Challenge]:
        season = self._seasons.get(season_id)
        return list(season.challenges) if season else []

    # ------------------------------------------------------------------
    # Players
    # ------------------------------------------------------------------

    def enroll_player(
        self, user_id: str, tier: BattlePassTier = BattlePassTier.FREE
    ) -> PlayerProgress:
        """Enroll *user_id*; enrolling again only changes the tier."""
        progress = self._players.get(user_id)
        if progress is None:
            season = self.get_current_season()
            progress = PlayerProgress(
                user_id=user_id,
                tier=tier,
                season_id=season.id if season else None,
            )
            logger.info(
                "Enrolled %s in the %s battle pass",
                user_id,
                tier.value,
                extra={"event": "battlepass_enrolled", "entity_id": user_id},
            )
        else:
            progress.tier = tier
        return self._players.put(user_id, progress)

    def get_player_progress(self, user_id: str) -> PlayerProgress | None:
        return self._players.get(user_id)

    def add_xp(self, user_id: str, xp: int) -> tuple[bool, int]:
        """Add XP and advance at most one level.

        Returns ``(leveled_up, new_level)``. XP past the level requirement
        carries over to the next level.
        """
        if xp < 0:
            raise ValidationError("XP amount must not be negative", xp=xp)
        progress = self._require_player(user_id)
        season = self._require_current_season()
        leveled_up = self._apply_xp(progress, season, xp)
        self._players.put(user_id, progress)
        return leveled_up, progress.current_level

    def complete_challenge(self, user_id: str, challenge_id: str) -> PlayerProgress:
        """Mark a challenge complete (once per player) and grant its XP."""
        progress = self._require_player(user_id)
        season = self._require_current_season()
        challenge = season.challenge(challenge_id)
        if challenge is None:
            raise NotFoundError(
                f"Challenge '{challenge_id}' is not part of season '{season.id}'",
                challenge_id=challenge_id,
            )
        if progress.has_completed(challenge_id):
            raise ConflictError("Challenge already completed", challenge_id=challenge_id)

        self._complete(progress, season, challenge)
        return self._players.put(user_id, progress)

    def update_challenge_progress(
        self, user_id: str, challenge_id: str, value: int
    ) -> PlayerProgress:
        """Record the player's progress; completes the challenge at its target."""
        progress = self._require_player(user_id)
        season = self._require_current_season()
        challenge = season.challenge(challenge_id)
        if challenge is None:
            raise NotFoundError(
                f"Challenge '{challenge_id}' is not part of season '{season.id}'",
                challenge_id=challenge_id,
            )
        if value < 0:
            raise ValidationError("Challenge progress must not be negative", value=value)

        progress.challenge_progress[challenge_id] = value
        if value >= challenge.target and not progress.has_completed(challenge_id):
            self._complete(progress, season, challenge)
        return self._players.put(user_id, progress)

    def claim_reward(self, user_id: str, level: int) -> ClaimedReward:
        """Claim the rewards of a reached level, once per level.

        Premium rewards are included only for premium-tier players.
        """
        progress = self._require_player(user_id)
        season = self._require_current_season()
        season_level = season.level(level)
        if season_level is None:
            raise ValidationError(f"Level {level} does not exist", level=level)
        if progress.current_level < level:
            raise InvalidStateError(
                f"Level {level} not reached yet",
                level=level,
                current_level=progress.current_level,
            )
        if progress.has_claimed(level):
            raise ConflictError(f"Rewards for level {level} already claimed", level=level)

        reward_ids = [season_level.free_reward.id]
        if progress.tier == BattlePassTier.PREMIUM and season_level.premium_reward:
            reward_ids.append(season_level.premium_reward.id)

        claim = ClaimedReward(
            level=level, tier=progress.tier, reward_ids=reward_ids, claimed_at=self._clock()
        )
        progress.claimed_rewards.append(claim)
        self._players.put(user_id, progress)
        return claim

    def buy_levels(self, user_id: str, levels: int, cost: float) -> PlayerProgress:
        if levels < 1:
            raise ValidationError("Must buy at least one level", levels=levels)
        if cost < 0:
            raise ValidationError("Cost must not be negative", cost=cost)
        progress = self._require_player(user_id)
        season = self._require_current_season()
        if progress.current_level + levels > season.total_levels:
            raise LimitExceededError(
                "Purchase would exceed the season's level cap",
                current_level=progress.current_level,
                total_levels=season.total_levels,
            )

        progress.current_level += levels
        progress.purchases.append(
            LevelPurchase(level=progress.current_level, cost=cost, purchased_at=self._clock())
        )
        self._players.put(user_id, progress)

        revenue = float(self._state().get("seasonal_revenue", 0.0)) + cost
        self._update_state(seasonal_revenue=revenue)
        logger.info(
            "%s bought %d battle pass levels for %.2f",
            user_id,
            levels,
            cost,
            extra={"event": "battlepass_levels_bought", "entity_id": user_id},
        )
        return progress

    # ------------------------------------------------------------------
    # Stats
    # ------------------------------------------------------------------

    def get_stats(self) -> BattlePassStats:
        players = self._players.all()
        premium = sum(1 for p in players if p.tier == BattlePassTier.PREMIUM)
        state = self._state()
        return BattlePassStats(
            active_season_id=state.get("current_season_id"),
            total_players_enrolled=len(players),
            premium_subscribers=premium,
            free_players_enrolled=len(players) - premium,
            total_challenges_completed=sum(len(p.completed_challenges) for p in players),
            average_player_level=(
                sum(p.current_level for p in players) / len(players) if players else 0.0
            ),
            seasonal_revenue=float(state.get("seasonal_revenue", 0.0)),
        )

    def get_season_stats(self, season_id: str) -> SeasonStats:
        if season_id not in self._seasons:
            raise SeasonNotFoundError(season_id=season_id)
        players = [p for p in self._players.all() if p.season_id == season_id]
        return SeasonStats(
            season_id=season_id,
            enrolled_players=len(players),
            premium_players=sum(1 for p in players if p.tier == BattlePassTier.PREMIUM),
            average_level=(
                sum(p.current_level for p in players) / len(players) if players else 0.0
            ),
        )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _apply_xp(self, progress: PlayerProgress, season: BattlePassSeason, xp: int) -> bool:
        progress.current_xp += xp
        progress.total_xp += xp

        level = season.level(progress.current_level)
        if (
            level is None
            or progress.current_level >= season.total_levels
            or progress.current_xp < level.required_xp
        ):
            return False

        progress.current_xp -= level.required_xp
        progress.current_level += 1
        logger.info(
            "%s reached battle pass level %d",
            progress.user_id,
            progress.current_level,
            extra={"event": "battlepass_level_up", "entity_id": progress.user_id},
        )
        return True

    def _complete(
        self, progress: PlayerProgress, season: BattlePassSeason, challenge: Challenge
    ) -> None:
        progress.completed_challenges.append(
            CompletedChallenge(challenge_id=challenge.id, completed_at=self._clock())
        )
        self._apply_xp(progress, season, challenge.xp_reward)

    def _require_player(self, user_id: str) -> PlayerProgress:
        progress = self._players.get(user_id)
        if progress is None:
            raise PlayerNotEnrolledError(user_id=user_id)
        return progress

    def _require_current_season(self) -> BattlePassSeason:
        season = self.get_current_season()
        if season is None:
            raise SeasonNotFoundError("No active battle pass season")
        return season

    def _state(self) -> dict:
        return self._meta.get(_STATE_KEY) or {}

    def _update_state(self, **changes: object) -> None:
        state = self._state()
        state.update(changes)
        self._meta.put(_STATE_KEY, state)
