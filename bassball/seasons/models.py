"""Season lifecycle, reset rules, end-of-season snapshots and ranking NFTs."""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field


class SeasonStatus(str, Enum):
    PLANNING = "planning"
    ACTIVE = "active"
    CONCLUDED = "concluded"
    ARCHIVED = "archived"


class Tier(str, Enum):
    BRONZE = "bronze"
    SILVER = "silver"
    GOLD = "gold"
    PLATINUM = "platinum"
    DIAMOND = "diamond"
    MASTER = "master"


TIER_RANKS = {tier: rank for rank, tier in enumerate(Tier, start=1)}


def tier_rank(tier: str) -> int:
    """Ordinal of *tier* (bronze=1 .. master=6); unknown tiers rank 0."""
    try:
        return TIER_RANKS[Tier(tier)]
    except ValueError:
        return 0


class EntityType(str, Enum):
    PLAYER = "player"
    TEAM = "team"


class ResetRules(BaseModel):
    reset_level: bool = False
    reset_tier: bool = False
    preserve_xp: bool = True
    preserve_xp_percentage: int = Field(default=10, ge=0, le=100)
    reset_matches: bool = True
    preserve_badges: bool = True
    reset_streak: bool = True


class SeasonConfig(BaseModel):
    season_id: str
    season_number: int = Field(..., ge=1)
    season_name: str
    theme: str | None = None
    status: SeasonStatus = SeasonStatus.PLANNING
    reset_rules: ResetRules = Field(default_factory=ResetRules)
    created_at: datetime
    start_date: datetime | None = None
    end_date: datetime | None = None
    reset_date: datetime | None = None


class PlayerSeasonStats(BaseModel):
    """Stats reported for an entity when its season is snapshotted."""

    level: int = Field(default=1, ge=1)
    tier: str = Tier.BRONZE.value
    total_xp: int = Field(default=0, ge=0)
    matches_played: int = Field(default=0, ge=0)
    wins: int = Field(default=0, ge=0)
    losses: int = Field(default=0, ge=0)
    draws: int = Field(default=0, ge=0)
    win_rate: float = 0.0
    goals_scored: int = 0
    assists: int = 0
    average_rating: float = 0.0
    badges: list[str] = Field(default_factory=list)
    milestones: list[str] = Field(default_factory=list)
    rank: int = 0
    division: str | None = None
    position: int | None = None


class PlayerSeasonSnapshot(BaseModel):
    snapshot_id: str
    season_id: str
    entity_id: str
    entity_name: str
    entity_type: EntityType
    stats: PlayerSeasonStats
    snapshot_date: datetime
    season_start_date: datetime | None
    season_end_date: datetime


class ResetAdjustments(BaseModel):
    new_level: int
    new_tier: str
    new_xp: int
    xp_carried_over: int


class PlayerResetRequest(BaseModel):
    entity_id: str
    entity_name: str
    entity_type: EntityType = EntityType.PLAYER
    stats: PlayerSeasonStats


class PlayerResetResult(ResetAdjustments):
    entity_id: str
    preserved_badges: list[str]


class PreservedData(BaseModel):
    players_with_badges: int = 0
    players_with_xp_carryover: int = 0
    players_with_level_carryover: int = 0


class SeasonResetResult(BaseModel):
    reset_id: str
    season_from: str
    season_to: str
    players_reset: int
    teams_reset: int
    reset_date: datetime
    preserved: PreservedData
    players: list[PlayerResetResult] = Field(default_factory=list)


class SeasonSnapshotStats(BaseModel):
    total_snapshots: int
    average_final_level: float
    top_tier: str
    total_matches_played: int
    highest_win_rate: float


# ---------------------------------------------------------------------------
# Seasonal ranking NFTs
# ---------------------------------------------------------------------------


class Badge(str, Enum):
    PLATINUM = "platinum"
    GOLD = "gold"
    SILVER = "silver"
    BRONZE = "bronze"
    PARTICIPANT = "participant"


class RankingSeason(BaseModel):
    season_id: str = Field(..., min_length=1)
    season_name: str
    start_date: datetime
    end_date: datetime
    is_active: bool = False
    total_participants: int = Field(default=0, ge=0)
    points_per_goal: int = 3
    points_per_assist: int = 2
    points_per_win: int = 3
    points_per_draw: int = 1


class RankingStats(BaseModel):
    """Final standing of a player for one season."""

    final_rank: int = Field(..., ge=1)
    total_points: int = Field(default=0, ge=0)
    matches_played: int = Field(default=0, ge=0)
    goals_scored: int = Field(default=0, ge=0)
    assists: int = Field(default=0, ge=0)
    average_rating: float = Field(default=0.0, ge=0, le=99)


class SeasonalRankingNFT(BaseModel):
    token_id: str
    contract_address: str | None = None
    chain_id: int | None = None

    season_id: str
    season_name: str
    season_start_date: datetime
    season_end_date: datetime

    player_id: str
    player_name: str
    player_team: str

    final_rank: int
    total_points: int
    matches_played: int
    goals_scored: int
    assists: int
    average_rating: float

    badge: Badge
    tier: int
    league_position: str

    owner: str
    issuer: str
    issued_at: datetime
    minted_at: datetime | None = None
    tx_hash: str | None = None
    block_number: int | None = None
    image_url: str | None = None


class BadgeSummary(BaseModel):
    count: int = 0
    top_rank: int | None = None
