"""Season lifecycle and end-of-season resets.

Seasons move ``planning -> active -> concluded -> archived``. A season reset
snapshots every reported entity under the outgoing season, applies that
season's reset rules to their progression, archives it and activates the
incoming one.
"""

from __future__ import annotations

import logging
from datetime import timedelta

from bassball.middleware.error_handler import (
    ConflictError,
    InvalidStateError,
    SeasonNotFoundError,
    ValidationError,
)
from bassball.seasons.models import (
    EntityType,
    PlayerResetRequest,
    PlayerResetResult,
    PlayerSeasonSnapshot,
    PlayerSeasonStats,
    PreservedData,
    ResetAdjustments,
    ResetRules,
    SeasonConfig,
    SeasonResetResult,
    SeasonSnapshotStats,
    SeasonStatus,
    Tier,
    tier_rank,
)
from bassball.storage.repository import ModelStore, StorageBackend
from bassball.timeutil import Clock, utc_now

logger = logging.getLogger(__name__)

_STATE_KEY = "state"


def calculate_xp_carryover(current_xp: int, rules: ResetRules) -> int:
    """XP kept into the next season: ``floor(xp * percentage / 100)``."""
    if not rules.preserve_xp:
        return 0
    return current_xp * rules.preserve_xp_percentage // 100


def calculate_reset_adjustments(
    current_level: int, current_tier: str, current_xp: int, rules: ResetRules
) -> ResetAdjustments:
    carryover = calculate_xp_carryover(current_xp, rules)
    return ResetAdjustments(
        new_level=1 if rules.reset_level else current_level,
        new_tier=Tier.BRONZE.value if rules.reset_tier else current_tier,
        new_xp=carryover,
        xp_carried_over=carryover,
    )


class SeasonManager:
    """Creates seasons, snapshots standings and runs season resets.

    Parameters
    ----------
    storage:
        Backend providing the ``season_*`` repositories.
    clock:
        Returns the current aware UTC time.
    """

    def __init__(self, storage: StorageBackend, clock: Clock = utc_now) -> None:
        self._clock = clock
        self._seasons = ModelStore(storage.repository("season_configs"), SeasonConfig)
        self._snapshots = ModelStore(
            storage.repository("season_snapshots"), PlayerSeasonSnapshot
        )
        self._resets = ModelStore(storage.repository("season_resets"), SeasonResetResult)
        self._meta = storage.repository("season_meta")

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def create_season(
        self,
        season_number: int,
        season_name: str,
        theme: str | None = None,
        reset_rules: ResetRules | None = None,
    ) -> SeasonConfig:
        """Create a season in ``planning``; it becomes the current season."""
        season_id = f"season_{season_number}"
        if season_id in self._seasons:
            raise ConflictError(f"Season {season_number} already exists", season_id=season_id)

        season = SeasonConfig(
            season_id=season_id,
            season_number=season_number,
            season_name=season_name,
            theme=theme,
            reset_rules=reset_rules or ResetRules(),
            created_at=self._clock(),
        )
        self._seasons.put(season_id, season)
        self._set_current(season_id)
        logger.info(
            "Created season %s (%s)",
            season_id,
            season_name,
            extra={"event": "season_created", "entity_id": season_id},
        )
        return season

    def activate_season(self, season_id: str) -> SeasonConfig:
        season = self._require_season(season_id)
        if season.status != SeasonStatus.PLANNING:
            raise InvalidStateError(
                f"Only planned seasons can be activated (status: {season.status.value})",
                season_id=season_id,
            )
        active = self.get_active_season()
        if active is not None:
            raise InvalidStateError(
                f"Season {active.season_id} is still active", season_id=season_id
            )
        return self._activate(season)

    def end_season(self, season_id: str) -> SeasonConfig:
        season = self._require_season(season_id)
        if season.status != SeasonStatus.ACTIVE:
            raise InvalidStateError(
                f"Only active seasons can end (status: {season.status.value})",
                season_id=season_id,
            )
        season.status = SeasonStatus.CONCLUDED
        season.end_date = self._clock()
        self._seasons.put(season_id, season)
        logger.info(
            "Season %s concluded",
            season_id,
            extra={"event": "season_concluded", "entity_id": season_id},
        )
        return season

    # ------------------------------------------------------------------
    # Snapshots
    # ------------------------------------------------------------------

    def take_snapshot(
        self,
        season_id: str,
        entity_id: str,
        entity_name: str,
        entity_type: EntityType,
        stats: PlayerSeasonStats,
    ) -> PlayerSeasonSnapshot:
        """Record an entity's final stats; one snapshot per entity per season."""
        season = self._require_season(season_id)
        now = self._clock()
        snapshot = PlayerSeasonSnapshot(
            snapshot_id=f"snap_{season_id}_{entity_id}",
            season_id=season_id,
            entity_id=entity_id,
            entity_name=entity_name,
            entity_type=entity_type,
            stats=stats,
            snapshot_date=now,
            season_start_date=season.start_date,
            season_end_date=season.end_date or now,
        )
        return self._snapshots.put(snapshot.snapshot_id, snapshot)

    def get_snapshot(self, snapshot_id: str) -> PlayerSeasonSnapshot | None:
        return self._snapshots.get(snapshot_id)

    def get_season_snapshots(self, season_id: str) -> list[PlayerSeasonSnapshot]:
        return [s for s in self._snapshots.all() if s.season_id == season_id]

    # ------------------------------------------------------------------
    # Resets
    # ------------------------------------------------------------------

    def get_reset_rules(self, season_id: str) -> ResetRules | None:
        season = self._seasons.get(season_id)
        return season.reset_rules if season else None

    def calculate_xp_carryover(self, current_xp: int, rules: ResetRules) -> int:
        return calculate_xp_carryover(current_xp, rules)

    def calculate_reset_adjustments(
        self, current_level: int, current_tier: str, current_xp: int, rules: ResetRules
    ) -> ResetAdjustments:
        return calculate_reset_adjustments(current_level, current_tier, current_xp, rules)

    def execute_player_reset(
        self, season_id: str, request: PlayerResetRequest
    ) -> PlayerResetResult:
        """Snapshot one entity and compute its progression for the next season."""
        season = self._require_season(season_id)
        rules = season.reset_rules
        self.take_snapshot(
            season_id, request.entity_id, request.entity_name, request.entity_type, request.stats
        )
        adjustments = calculate_reset_adjustments(
            request.stats.level, request.stats.tier, request.stats.total_xp, rules
        )
        return PlayerResetResult(
            **adjustments.model_dump(),
            entity_id=request.entity_id,
            preserved_badges=list(request.stats.badges) if rules.preserve_badges else [],
        )

    def execute_season_reset(
        self, from_season_id: str, to_season_id: str, players: list[PlayerResetRequest]
    ) -> SeasonResetResult:
        """Reset every entity out of *from_season_id* and start *to_season_id*."""
        if from_season_id == to_season_id:
            raise ValidationError("Cannot reset a season into itself")
        source = self._require_season(from_season_id)
        target = self._require_season(to_season_id)
        if source.status not in (SeasonStatus.ACTIVE, SeasonStatus.CONCLUDED):
            raise InvalidStateError(
                f"Season {from_season_id} is {source.status.value}", season_id=from_season_id
            )
        if target.status != SeasonStatus.PLANNING:
            raise InvalidStateError(
                f"Season {to_season_id} is {target.status.value}", season_id=to_season_id
            )
        active = self.get_active_season()
        if active is not None and active.season_id != from_season_id:
            raise InvalidStateError(
                f"Season {active.season_id} is still active", season_id=to_season_id
            )

        results = [self.execute_player_reset(from_season_id, p) for p in players]
        preserved = PreservedData(
            players_with_badges=sum(1 for r in results if r.preserved_badges),
            players_with_xp_carryover=sum(1 for r in results if r.xp_carried_over > 0),
            players_with_level_carryover=0 if source.reset_rules.reset_level else len(results),
        )

        now = self._clock()
        result = SeasonResetResult(
            reset_id=f"reset_{from_season_id}_{to_season_id}",
            season_from=from_season_id,
            season_to=to_season_id,
            players_reset=sum(1 for p in players if p.entity_type == EntityType.PLAYER),
            teams_reset=sum(1 for p in players if p.entity_type == EntityType.TEAM),
            reset_date=now,
            preserved=preserved,
            players=results,
        )
        self._resets.put(result.reset_id, result)

        source = self._require_season(from_season_id)
        source.status = SeasonStatus.ARCHIVED
        source.reset_date = now
        if source.end_date is None:
            source.end_date = now
        self._seasons.put(from_season_id, source)
        self._activate(target)

        logger.info(
            "Season reset %s -> %s: %d entities",
            from_season_id,
            to_season_id,
            len(results),
            extra={"event": "season_reset", "entity_id": result.reset_id},
        )
        return result

    def get_reset_history(self, season_id: str | None = None) -> list[SeasonResetResult]:
        history = self._resets.all()
        if season_id is not None:
            history = [r for r in history if season_id in (r.season_from, r.season_to)]
        return sorted(history, key=lambda r: r.reset_date, reverse=True)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_season(self, season_id: str) -> SeasonConfig | None:
        return self._seasons.get(season_id)

    def get_current_season(self) -> SeasonConfig | None:
        """Most recently created or activated season."""
        current = (self._meta.get(_STATE_KEY) or {}).get("current_season_id")
        return self._seasons.get(current) if current else None

    def get_active_season(self) -> SeasonConfig | None:
        return next(
            (s for s in self._seasons.all() if s.status == SeasonStatus.ACTIVE), None
        )

    def get_previous_season(self, season_id: str) -> SeasonConfig | None:
        season = self._seasons.get(season_id)
        if season is None:
            return None
        earlier = [s for s in self._seasons.all() if s.season_number < season.season_number]
        return max(earlier, key=lambda s: s.season_number, default=None)

    def list_seasons(self) -> list[SeasonConfig]:
        """Newest season number first."""
        return sorted(self._seasons.all(), key=lambda s: s.season_number, reverse=True)

    def get_season_duration(self, season_id: str) -> timedelta | None:
        season = self._seasons.get(season_id)
        if season is None or season.start_date is None or season.end_date is None:
            return None
        return season.end_date - season.start_date

    def get_season_stats(self, season_id: str) -> SeasonSnapshotStats | None:
        """Aggregate the season's snapshots; ``None`` when there are none."""
        snapshots = self.get_season_snapshots(season_id)
        if not snapshots:
            return None

        top_tier = Tier.BRONZE.value
        for snapshot in snapshots:
            if tier_rank(snapshot.stats.tier) > tier_rank(top_tier):
                top_tier = snapshot.stats.tier

        return SeasonSnapshotStats(
            total_snapshots=len(snapshots),
            average_final_level=round(
                sum(s.stats.level for s in snapshots) / len(snapshots), 1
            ),
            top_tier=top_tier,
            total_matches_played=sum(s.stats.matches_played for s in snapshots),
            highest_win_rate=round(max(s.stats.win_rate for s in snapshots), 1),
        )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _require_season(self, season_id: str) -> SeasonConfig:
        season = self._seasons.get(season_id)
        if season is None:
            raise SeasonNotFoundError(season_id=season_id)
        return season

    def _activate(self, season: SeasonConfig) -> SeasonConfig:
        season.status = SeasonStatus.ACTIVE
        season.start_date = self._clock()
        self._seasons.put(season.season_id, season)
        self._set_current(season.season_id)
        logger.info(
            "Season %s activated",
            season.season_id,
            extra={"event": "season_activated", "entity_id": season.season_id},
        )
        return season

    def _set_current(self, season_id: str) -> None:
        self._meta.put(_STATE_KEY, {"current_season_id": season_id})
