"""Unit tests for seasonal ranking NFTs."""

from __future__ import annotations

import json
from datetime import datetime, timezone

import pytest

from bassball.middleware.error_handler import (
    ConflictError,
    NFTNotFoundError,
    SeasonNotFoundError,
    ValidationError,
)
from bassball.seasons.models import Badge, RankingSeason, RankingStats
from bassball.seasons.ranking_nft import (
    SeasonalRankingNFTManager,
    badge_for_rank,
    league_position,
)

OWNER = "0x00000000000000000000000000000000000000aa"


@pytest.fixture
def nfts(storage, utc_clock) -> SeasonalRankingNFTManager:
    manager = SeasonalRankingNFTManager(storage, clock=utc_clock)
    manager.create_season(
        RankingSeason(
            season_id="s1",
            season_name="Spring Cup",
            start_date=datetime(2026, 1, 1, tzinfo=timezone.utc),
            end_date=datetime(2026, 3, 31, tzinfo=timezone.utc),
            is_active=True,
        )
    )
    return manager


def _award(manager, player_id, rank, season_id="s1", **stats):
    return manager.award_nft(
        player_id,
        player_id.upper(),
        "Lisbon Bass",
        season_id,
        RankingStats(final_rank=rank, **stats),
        OWNER,
    )


@pytest.mark.parametrize(
    "rank,badge",
    [
        (1, Badge.PLATINUM),
        (5, Badge.PLATINUM),
        (6, Badge.GOLD),
        (25, Badge.GOLD),
        (26, Badge.SILVER),
        (100, Badge.SILVER),
        (101, Badge.BRONZE),
        (500, Badge.BRONZE),
        (501, Badge.PARTICIPANT),
    ],
)
def test_badge_boundaries(rank, badge):
    assert badge_for_rank(rank) == badge


@pytest.mark.parametrize(
    "rank,position",
    [(3, "Top 5"), (8, "Top 10"), (40, "Top 50"), (499, "Top 500"), (900, "Ranked")],
)
def test_league_position(rank, position):
    assert league_position(rank) == position


class TestSeasons:
    def test_active_season_is_current(self, nfts):
        assert nfts.get_current_season().season_id == "s1"

    def test_end_before_start(self, nfts):
        with pytest.raises(ValidationError):
            nfts.create_season(
                RankingSeason(
                    season_id="bad",
                    season_name="Bad",
                    start_date=datetime(2026, 5, 1, tzinfo=timezone.utc),
                    end_date=datetime(2026, 4, 1, tzinfo=timezone.utc),
                )
            )

    def test_duplicate(self, nfts):
        with pytest.raises(ConflictError):
            nfts.create_season(nfts.get_season("s1"))

    def test_inactive_season_not_current(self, nfts):
        nfts.create_season(
            RankingSeason(
                season_id="s0",
                season_name="Preseason",
                start_date=datetime(2025, 10, 1, tzinfo=timezone.utc),
                end_date=datetime(2025, 12, 1, tzinfo=timezone.utc),
            )
        )
        assert nfts.get_current_season().season_id == "s1"
        assert [s.season_id for s in nfts.list_seasons()] == ["s0", "s1"]


class TestAwards:
    def test_award(self, nfts, utc_clock):
        nft = _award(nfts, "p1", 7, goals_scored=12, assists=4, matches_played=20)
        assert nft.token_id == "s1:p1"
        assert nft.badge == Badge.GOLD
        assert nft.tier == 7
        assert nft.league_position == "Top 10"
        assert nft.issuer == "platform"
        assert nft.issued_at == utc_clock.now
        assert nft.season_name == "Spring Cup"

    def test_reaward_replaces(self, nfts):
        _award(nfts, "p1", 200)
        _award(nfts, "p1", 3)
        assert len(nfts.get_player_nfts("p1")) == 1
        assert nfts.get_player_nft("p1", "s1").badge == Badge.PLATINUM

    def test_unknown_season(self, nfts):
        with pytest.raises(SeasonNotFoundError):
            _award(nfts, "p1", 1, season_id="nope")

    def test_record_mint_once(self, nfts):
        nft = _award(nfts, "p1", 1)
        minted = nfts.record_mint(nft.token_id, "0xcontract", 8453, "0xtx", 123)
        assert minted.minted_at is not None
        assert nfts.get_nft(nft.token_id).block_number == 123
        with pytest.raises(ConflictError):
            nfts.record_mint(nft.token_id, "0xcontract", 8453, "0xtx2", 124)

    def test_record_mint_unknown(self, nfts):
        with pytest.raises(NFTNotFoundError):
            nfts.record_mint("s1:ghost", "0xc", 1, "0xtx", 1)


class TestQueries:
    @pytest.fixture
    def populated(self, nfts):
        _award(nfts, "p3", 30)
        _award(nfts, "p1", 2)
        _award(nfts, "p2", 4)
        _award(nfts, "p4", 600)
        return nfts

    def test_leaderboard_sorted_by_rank(self, populated):
        ranks = [n.final_rank for n in populated.get_season_leaderboard("s1")]
        assert ranks == [2, 4, 30, 600]

    def test_top_players_by_badge(self, populated):
        top = populated.get_top_players_by_badge("s1", Badge.PLATINUM)
        assert [n.player_id for n in top] == ["p1", "p2"]
        assert len(populated.get_nfts_by_badge(Badge.PARTICIPANT)) == 1

    def test_badge_stats(self, populated):
        stats = populated.get_badge_stats("s1")
        assert set(stats) == set(Badge)
        assert stats[Badge.PLATINUM].count == 2
        assert stats[Badge.PLATINUM].top_rank == 2
        assert stats[Badge.GOLD].count == 0
        assert stats[Badge.GOLD].top_rank is None


class TestMetadata:
    def test_metadata_document(self, nfts):
        nft = _award(nfts, "p1", 1, goals_scored=9, assists=3, matches_played=11)
        metadata = nfts.generate_metadata(nft)
        assert metadata["name"] == "P1 - Spring Cup Platinum"
        assert "ranked #1" in metadata["description"]
        assert metadata["image"].endswith("/platinum")
        assert metadata["external_url"].endswith("/s1/p1")
        traits = {a["trait_type"]: a["value"] for a in metadata["attributes"]}
        assert len(metadata["attributes"]) == 10
        assert traits["Goals Scored"] == 9
        assert traits["League Position"] == "Top 5"

    def test_export(self, nfts):
        nft = _award(nfts, "p1", 1)
        exported = json.loads(nfts.export_nft(nft.token_id))
        assert exported["token_id"] == "s1:p1"
        assert exported["badge"] == "platinum"

    def test_export_unknown(self, nfts):
        with pytest.raises(NFTNotFoundError):
            nfts.export_nft("s1:ghost")
