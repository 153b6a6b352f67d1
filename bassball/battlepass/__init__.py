"""Battle pass seasons and player progression."""

from bassball.battlepass.manager import BattlePassManager
from bassball.battlepass.models import (
    BattlePassSeason,
    BattlePassStats,
    BattlePassTier,
    Challenge,
    PlayerProgress,
    SeasonKind,
)

__all__ = [
    "BattlePassManager",
    "BattlePassSeason",
    "BattlePassStats",
    "BattlePassTier",
    "Challenge",
    "PlayerProgress",
    "SeasonKind",
]
