"""Seasonal ranking NFTs: end-of-season certificates for a player's final rank.

Badge by final rank: platinum (1-5), gold (6-25), silver (26-100),
bronze (101-500), participant (501+). A player holds at most one NFT per
season; awarding again replaces the previous certificate.
"""

from __future__ import annotations

import json
import logging

from bassball.middleware.error_handler import (
    ConflictError,
    NFTNotFoundError,
    SeasonNotFoundError,
    ValidationError,
)
from bassball.seasons.models import (
    Badge,
    BadgeSummary,
    RankingSeason,
    RankingStats,
    SeasonalRankingNFT,
)
from bassball.storage.repository import ModelStore, StorageBackend
from bassball.timeutil import Clock, utc_now

logger = logging.getLogger(__name__)

EXTERNAL_URL_BASE = "https://bassball.example/seasonal"
PLACEHOLDER_IMAGE_BASE = "https://placeholder.nft/seasonal"

_BADGE_THRESHOLDS = (
    (5, Badge.PLATINUM),
    (25, Badge.GOLD),
    (100, Badge.SILVER),
    (500, Badge.BRONZE),
)

_LEAGUE_POSITIONS = (5, 10, 25, 50, 100, 500)


def badge_for_rank(rank: int) -> Badge:
    for limit, badge in _BADGE_THRESHOLDS:
        if rank <= limit:
            return badge
    return Badge.PARTICIPANT


def league_position(rank: int) -> str:
    for limit in _LEAGUE_POSITIONS:
        if rank <= limit:
            return f"Top {limit}"
    return "Ranked"


class SeasonalRankingNFTManager:
    def __init__(self, storage: StorageBackend, clock: Clock = utc_now) -> None:
        self._clock = clock
        self._seasons = ModelStore(storage.repository("ranking_seasons"), RankingSeason)
        self._nfts = ModelStore(storage.repository("ranking_nfts"), SeasonalRankingNFT)
        self._meta = storage.repository("ranking_meta")

    # ------------------------------------------------------------------
    # Seasons
    # ------------------------------------------------------------------

    def create_season(self, season: RankingSeason) -> RankingSeason:
        """Register a ranking season; an active one becomes current."""
        if season.end_date <= season.start_date:
            raise ValidationError("Season must end after it starts", season_id=season.season_id)
        if season.season_id in self._seasons:
            raise ConflictError("Ranking season already exists", season_id=season.season_id)

        self._seasons.put(season.season_id, season)
        if season.is_active:
            self._meta.put("state", {"current_season_id": season.season_id})
        return season

    def get_season(self, season_id: str) -> RankingSeason | None:
        return self._seasons.get(season_id)

    def list_seasons(self) -> list[RankingSeason]:
        return sorted(self._seasons.all(), key=lambda s: s.start_date)

    def get_current_season(self) -> RankingSeason | None:
        current = (self._meta.get("state") or {}).get("current_season_id")
        return self._seasons.get(current) if current else None

    # ------------------------------------------------------------------
    # Awards
    # ------------------------------------------------------------------

    def award_nft(
        self,
        player_id: str,
        player_name: str,
        player_team: str,
        season_id: str,
        ranking: RankingStats,
        owner: str,
        issuer: str = "platform",
    ) -> SeasonalRankingNFT:
        season = self._seasons.get(season_id)
        if season is None:
            raise SeasonNotFoundError(season_id=season_id)

        token_id = f"{season_id}:{player_id}"
        replaced = token_id in self._nfts

        nft = SeasonalRankingNFT(
            token_id=token_id,
            season_id=season_id,
            season_name=season.season_name,
            season_start_date=season.start_date,
            season_end_date=season.end_date,
            player_id=player_id,
            player_name=player_name,
            player_team=player_team,
            final_rank=ranking.final_rank,
            total_points=ranking.total_points,
            matches_played=ranking.matches_played,
            goals_scored=ranking.goals_scored,
            assists=ranking.assists,
            average_rating=ranking.average_rating,
            badge=badge_for_rank(ranking.final_rank),
            tier=ranking.final_rank,
            league_position=league_position(ranking.final_rank),
            owner=owner,
            issuer=issuer,
            issued_at=self._clock(),
        )
        self._nfts.put(token_id, nft)
        logger.info(
            "%s ranking NFT for %s in %s (rank %d, %s)",
            "Re-awarded" if replaced else "Awarded",
            player_id,
            season_id,
            ranking.final_rank,
            nft.badge.value,
            extra={"event": "ranking_nft_awarded", "entity_id": token_id},
        )
        return nft

    def record_mint(
        self,
        token_id: str,
        contract_address: str,
        chain_id: int,
        tx_hash: str,
        block_number: int,
    ) -> SeasonalRankingNFT:
        nft = self._require_nft(token_id)
        if nft.minted_at is not None:
            raise ConflictError("NFT already minted", token_id=token_id, tx_hash=nft.tx_hash)
        nft.contract_address = contract_address
        nft.chain_id = chain_id
        nft.tx_hash = tx_hash
        nft.block_number = block_number
        nft.minted_at = self._clock()
        return self._nfts.put(token_id, nft)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_nft(self, token_id: str) -> SeasonalRankingNFT | None:
        return self._nfts.get(token_id)

    def get_player_nfts(self, player_id: str) -> list[SeasonalRankingNFT]:
        nfts = [n for n in self._nfts.all() if n.player_id == player_id]
        return sorted(nfts, key=lambda n: n.season_start_date)

    def get_player_nft(self, player_id: str, season_id: str) -> SeasonalRankingNFT | None:
        return self._nfts.get(f"{season_id}:{player_id}")

    def get_season_nfts(self, season_id: str) -> list[SeasonalRankingNFT]:
        return [n for n in self._nfts.all() if n.season_id == season_id]

    def get_nfts_by_badge(self, badge: Badge) -> list[SeasonalRankingNFT]:
        return [n for n in self._nfts.all() if n.badge == badge]

    def get_season_leaderboard(self, season_id: str) -> list[SeasonalRankingNFT]:
        return sorted(self.get_season_nfts(season_id), key=lambda n: n.final_rank)

    def get_top_players_by_badge(self, season_id: str, badge: Badge) -> list[SeasonalRankingNFT]:
        return [n for n in self.get_season_leaderboard(season_id) if n.badge == badge]

    def get_badge_stats(self, season_id: str) -> dict[Badge, BadgeSummary]:
        stats = {badge: BadgeSummary() for badge in Badge}
        for nft in self.get_season_nfts(season_id):
            summary = stats[nft.badge]
            summary.count += 1
            if summary.top_rank is None or nft.final_rank < summary.top_rank:
                summary.top_rank = nft.final_rank
        return stats

    # ------------------------------------------------------------------
    # Metadata
    # ------------------------------------------------------------------

    def generate_metadata(self, nft: SeasonalRankingNFT) -> dict:
        """ERC-721 metadata document for *nft*."""
        badge_name = nft.badge.value.capitalize()
        return {
            "name": f"{nft.player_name} - {nft.season_name} {badge_name}",
            "description": (
                f"{nft.player_name} ranked #{nft.final_rank} in {nft.season_name}. "
                f"Scored {nft.goals_scored} goals with {nft.assists} assists "
                f"across {nft.matches_played} matches."
            ),
            "image": nft.image_url or f"{PLACEHOLDER_IMAGE_BASE}/{nft.badge.value}",
            "external_url": f"{EXTERNAL_URL_BASE}/{nft.season_id}/{nft.player_id}",
            "attributes": [
                {"trait_type": "Season", "value": nft.season_name},
                {"trait_type": "Badge", "value": badge_name},
                {"trait_type": "Final Rank", "value": nft.final_rank},
                {"trait_type": "League Position", "value": nft.league_position},
                {"trait_type": "Total Points", "value": nft.total_points},
                {"trait_type": "Matches Played", "value": nft.matches_played},
                {"trait_type": "Goals Scored", "value": nft.goals_scored},
                {"trait_type": "Assists", "value": nft.assists},
                {"trait_type": "Average Rating", "value": nft.average_rating},
                {"trait_type": "Player Team", "value": nft.player_team},
            ],
        }

    def export_nft(self, token_id: str) -> str:
        nft = self._require_nft(token_id)
        return json.dumps(nft.model_dump(mode="json"), indent=2)

    def _require_nft(self, token_id: str) -> SeasonalRankingNFT:
        nft = self._nfts.get(token_id)
        if nft is None:
            raise NFTNotFoundError(token_id=token_id)
        return nft
