"""Season lifecycle, resets and seasonal ranking NFTs."""

from bassball.seasons.manager import SeasonManager
from bassball.seasons.models import (
    Badge,
    EntityType,
    PlayerResetRequest,
    PlayerSeasonStats,
    RankingSeason,
    RankingStats,
    ResetRules,
    SeasonConfig,
    SeasonStatus,
    Tier,
)
from bassball.seasons.ranking_nft import (
    SeasonalRankingNFTManager,
    badge_for_rank,
    league_position,
)

__all__ = [
    "Badge",
    "EntityType",
    "PlayerResetRequest",
    "PlayerSeasonStats",
    "RankingSeason",
    "RankingStats",
    "ResetRules",
    "SeasonConfig",
    "SeasonManager",
    "SeasonStatus",
    "SeasonalRankingNFTManager",
    "Tier",
    "badge_for_rank",
    "league_position",
]
