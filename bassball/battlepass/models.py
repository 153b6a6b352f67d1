"""Battle pass seasons, levels, challenges and player progress."""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field


class BattlePassTier(str, Enum):
    FREE = "free"
    PREMIUM = "premium"


class SeasonKind(str, Enum):
    SPRING = "spring"
    SUMMER = "summer"
    FALL = "fall"
    WINTER = "winter"
    EVENT = "event"


class RewardType(str, Enum):
    COSMETIC = "cosmetic"
    CURRENCY = "currency"
    EXPERIENCE = "experience"
    TITLE = "title"
    EMOTE = "emote"


class Rarity(str, Enum):
    COMMON = "common"
    RARE = "rare"
    EPIC = "epic"
    LEGENDARY = "legendary"


class ChallengeCategory(str, Enum):
    MATCH = "match"
    PERSONAL = "personal"
    TEAM = "team"
    SEASONAL = "seasonal"


class ChallengeDifficulty(str, Enum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"
    ELITE = "elite"


class ResetFrequency(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


class BattlePassReward(BaseModel):
    id: str
    name: str
    type: RewardType
    rarity: Rarity
    value: str | int


class BattlePassLevel(BaseModel):
    level: int = Field(..., ge=1)
    required_xp: int = Field(..., ge=0)
    free_reward: BattlePassReward
    premium_reward: BattlePassReward | None = None
    milestone: bool = False
    milestone_name: str | None = None


class Challenge(BaseModel):
    """Season challenge definition. Per-player progress lives on ``PlayerProgress``."""

    id: str
    name: str
    description: str
    category: ChallengeCategory
    difficulty: ChallengeDifficulty
    xp_reward: int = Field(..., ge=0)
    target: int = Field(..., ge=1)
    repeatable: bool = False
    reset_frequency: ResetFrequency | None = None


class BattlePassSeason(BaseModel):
    id: str
    number: int
    name: str
    kind: SeasonKind
    theme: str = ""
    start_date: datetime
    end_date: datetime
    total_levels: int = Field(..., ge=1)
    levels: list[BattlePassLevel]
    challenges: list[Challenge]
    premium_price: float = Field(..., ge=0)
    premium_discounted_price: float | None = None
    premium_currency: str = "USD"
    description: str = ""

    def level(self, number: int) -> BattlePassLevel | None:
        if 1 <= number <= len(self.levels):
            return self.levels[number - 1]
        return None

    def challenge(self, challenge_id: str) -> Challenge | None:
        return next((c for c in self.challenges if c.id == challenge_id), None)


class LevelPurchase(BaseModel):
    level: int
    cost: float
    purchased_at: datetime


class CompletedChallenge(BaseModel):
    challenge_id: str
    completed_at: datetime


class ClaimedReward(BaseModel):
    level: int
    tier: BattlePassTier
    reward_ids: list[str]
    claimed_at: datetime


class PlayerProgress(BaseModel):
    user_id: str
    season_id: str | None = None
    current_level: int = 1
    current_xp: int = 0
    total_xp: int = 0
    tier: BattlePassTier = BattlePassTier.FREE
    purchases: list[LevelPurchase] = Field(default_factory=list)
    completed_challenges: list[CompletedChallenge] = Field(default_factory=list)
    claimed_rewards: list[ClaimedReward] = Field(default_factory=list)
    challenge_progress: dict[str, int] = Field(default_factory=dict)

    def has_completed(self, challenge_id: str) -> bool:
        return any(c.challenge_id == challenge_id for c in self.completed_challenges)

    def has_claimed(self, level: int) -> bool:
        return any(r.level == level for r in self.claimed_rewards)


class BattlePassStats(BaseModel):
    active_season_id: str | None
    total_players_enrolled: int
    premium_subscribers: int
    free_players_enrolled: int
    total_challenges_completed: int
    average_player_level: float
    seasonal_revenue: float


class SeasonStats(BaseModel):
    season_id: str
    enrolled_players: int
    premium_players: int
    average_level: float
