"""Burn and sink mechanics: removing NFTs and currency from circulation.

Burns are permanent and may pay a reward defined by the burn mechanic. Sinks
lock currency either for a fixed duration (escrow, staking) or forever
(fees). Daily burn limits are tracked per entity, per UTC calendar day and
per mechanic, in units of the burned amount.
"""

from __future__ import annotations

import logging
from datetime import timedelta
from uuid import uuid4

from bassball.economy.models import (
    BurnMechanic,
    BurnRecord,
    BurnResult,
    BurnStats,
    BurnType,
    CurrencyType,
    SinkMechanic,
    SinkRecord,
    SinkType,
)
from bassball.middleware.error_handler import (
    ConflictError,
    InvalidStateError,
    LimitExceededError,
    MechanicNotFoundError,
    SinkNotFoundError,
    ValidationError,
)
from bassball.storage.repository import ModelStore, StorageBackend
from bassball.timeutil import Clock, utc_now

logger = logging.getLogger(__name__)

DEFAULT_HISTORY_LIMIT = 50

DEFAULT_BURN_MECHANICS = (
    BurnMechanic(
        mechanic_id="cosmetic_upgrade",
        name="Cosmetic Upgrade",
        description="Burn soft currency to upgrade cosmetics",
        burn_type=BurnType.SOFT_CURRENCY,
        reward=10,
        daily_limit=5000,
    ),
    BurnMechanic(
        mechanic_id="nft_evolution",
        name="NFT Evolution",
        description="Burn duplicate NFTs to improve rarity",
        burn_type=BurnType.NFT,
        reward=100,
    ),
    BurnMechanic(
        mechanic_id="hard_currency_sink",
        name="Hardcore Sink",
        description="Burn hard currency for exclusive rewards",
        burn_type=BurnType.HARD_CURRENCY,
        reward=500,
        daily_limit=10,
    ),
)

DEFAULT_SINK_MECHANICS = (
    SinkMechanic(
        mechanic_id="tournament_escrow",
        name="Tournament Escrow",
        description="Currency locked during tournament",
        sink_type=SinkType.TEMP_LOCK,
        lock_duration_seconds=24 * 60 * 60,
        purpose="tournament_escrow",
    ),
    SinkMechanic(
        mechanic_id="battle_fee_sink",
        name="Battle Fee Sink",
        description="Small percentage removed per battle",
        sink_type=SinkType.PERMANENT_SINK,
        purpose="battle_fee",
    ),
    SinkMechanic(
        mechanic_id="staking_lock",
        name="Staking Lock",
        description="Currency locked for staking rewards",
        sink_type=SinkType.STAKING,
        lock_duration_seconds=7 * 24 * 60 * 60,
        purpose="staking",
    ),
)


class BurnSinkManager:
    """Records burns and sinks against entities (players, clubs).

    Default mechanics are installed on first use of an empty store.
    """

    def __init__(self, storage: StorageBackend, clock: Clock = utc_now) -> None:
        self._clock = clock
        self._burns = ModelStore(storage.repository("economy_burns"), BurnRecord)
        self._sinks = ModelStore(storage.repository("economy_sinks"), SinkRecord)
        self._burn_mechanics = ModelStore(
            storage.repository("economy_burn_mechanics"), BurnMechanic
        )
        self._sink_mechanics = ModelStore(
            storage.repository("economy_sink_mechanics"), SinkMechanic
        )
        self._daily = storage.repository("economy_daily_burns")

        for mechanic in DEFAULT_BURN_MECHANICS:
            if mechanic.mechanic_id not in self._burn_mechanics:
                self._burn_mechanics.put(mechanic.mechanic_id, mechanic)
        for mechanic in DEFAULT_SINK_MECHANICS:
            if mechanic.mechanic_id not in self._sink_mechanics:
                self._sink_mechanics.put(mechanic.mechanic_id, mechanic)

    # ------------------------------------------------------------------
    # Mechanics
    # ------------------------------------------------------------------

    def add_burn_mechanic(self, mechanic: BurnMechanic) -> BurnMechanic:
        """Register or replace a burn mechanic."""
        return self._burn_mechanics.put(mechanic.mechanic_id, mechanic)

    def add_sink_mechanic(self, mechanic: SinkMechanic) -> SinkMechanic:
        """Register or replace a sink mechanic."""
        if mechanic.sink_type != SinkType.PERMANENT_SINK and mechanic.lock_duration_seconds is None:
            raise ValidationError(
                "Timed sink mechanics need a lock duration", mechanic_id=mechanic.mechanic_id
            )
        return self._sink_mechanics.put(mechanic.mechanic_id, mechanic)

    def list_burn_mechanics(self) -> list[BurnMechanic]:
        return self._burn_mechanics.all()

    def list_sink_mechanics(self) -> list[SinkMechanic]:
        return self._sink_mechanics.all()

    # ------------------------------------------------------------------
    # Burns
    # ------------------------------------------------------------------

    def burn_nft(
        self,
        entity_id: str,
        entity_name: str,
        nft_id: str,
        mechanic_id: str | None = None,
        reason: str | None = None,
    ) -> BurnResult:
        mechanic = self._resolve_burn_mechanic(mechanic_id, BurnType.NFT)
        record = BurnRecord(
            burn_id=f"burn_{uuid4().hex}",
            burn_type=BurnType.NFT,
            entity_id=entity_id,
            entity_name=entity_name,
            nft_id=nft_id,
            amount=1,
            mechanic_id=mechanic_id,
            reason=reason or mechanic_id,
            timestamp=self._clock(),
        )
        return self._record_burn(record, mechanic)

    def burn_currency(
        self,
        currency_type: CurrencyType,
        entity_id: str,
        entity_name: str,
        amount: int,
        mechanic_id: str | None = None,
        reason: str | None = None,
    ) -> BurnResult:
        if amount <= 0:
            raise ValidationError("Burn amount must be positive", amount=amount)
        mechanic = self._resolve_burn_mechanic(mechanic_id, currency_type.burn_type)
        record = BurnRecord(
            burn_id=f"burn_{uuid4().hex}",
            burn_type=currency_type.burn_type,
            entity_id=entity_id,
            entity_name=entity_name,
            amount=amount,
            currency_type=currency_type,
            mechanic_id=mechanic_id,
            reason=reason or mechanic_id,
            timestamp=self._clock(),
        )
        return self._record_burn(record, mechanic)

    def get_burn_history(
        self, entity_id: str, limit: int = DEFAULT_HISTORY_LIMIT
    ) -> list[BurnRecord]:
        burns = [b for b in self._burns.all() if b.entity_id == entity_id]
        burns.sort(key=lambda b: b.timestamp, reverse=True)
        return burns[:limit]

    # ------------------------------------------------------------------
    # Sinks
    # ------------------------------------------------------------------

    def sink_currency(
        self,
        entity_id: str,
        entity_name: str,
        amount: int,
        currency_type: CurrencyType,
        mechanic_id: str,
        metadata: dict | None = None,
    ) -> SinkRecord:
        if amount <= 0:
            raise ValidationError("Sink amount must be positive", amount=amount)
        mechanic = self._sink_mechanics.get(mechanic_id)
        if mechanic is None:
            raise MechanicNotFoundError(mechanic_id=mechanic_id)
        if not mechanic.enabled:
            raise InvalidStateError("Sink mechanic is disabled", mechanic_id=mechanic_id)

        now = self._clock()
        unlocks_at = None
        if mechanic.sink_type != SinkType.PERMANENT_SINK and mechanic.lock_duration_seconds:
            unlocks_at = now + timedelta(seconds=mechanic.lock_duration_seconds)

        record = SinkRecord(
            sink_id=f"sink_{uuid4().hex}",
            sink_type=mechanic.sink_type,
            entity_id=entity_id,
            entity_name=entity_name,
            amount=amount,
            currency_type=currency_type,
            mechanic_id=mechanic_id,
            sunk_at=now,
            unlocks_at=unlocks_at,
            metadata=metadata or {},
        )
        self._sinks.put(record.sink_id, record)
        logger.info(
            "Sank %d %s currency from %s via %s",
            amount,
            currency_type.value,
            entity_id,
            mechanic_id,
            extra={"event": "currency_sunk", "entity_id": entity_id},
        )
        return record

    def release_sink(self, sink_id: str) -> int:
        """Release a timed sink after it unlocks. Returns the released amount."""
        record = self._sinks.get(sink_id)
        if record is None:
            raise SinkNotFoundError(sink_id=sink_id)
        if record.sink_type == SinkType.PERMANENT_SINK:
            raise InvalidStateError("Permanent sinks cannot be released", sink_id=sink_id)
        if record.is_released:
            raise InvalidStateError("Sink already released", sink_id=sink_id)

        now = self._clock()
        if record.unlocks_at is not None and now < record.unlocks_at:
            raise InvalidStateError(
                "Sink is still locked",
                sink_id=sink_id,
                unlocks_at=record.unlocks_at.isoformat(),
            )

        record.released_at = now
        self._sinks.put(sink_id, record)
        logger.info(
            "Released sink %s (%d %s)",
            sink_id,
            record.amount,
            record.currency_type.value,
            extra={"event": "sink_released", "entity_id": record.entity_id},
        )
        return record.amount

    def get_sink_history(
        self, entity_id: str, limit: int = DEFAULT_HISTORY_LIMIT
    ) -> list[SinkRecord]:
        sinks = [s for s in self._sinks.all() if s.entity_id == entity_id]
        sinks.sort(key=lambda s: s.sunk_at, reverse=True)
        return sinks[:limit]

    def get_active_sinks(self, entity_id: str) -> list[SinkRecord]:
        """Unreleased sinks of *entity_id*, permanent ones included."""
        return [s for s in self._sinks.all() if s.entity_id == entity_id and not s.is_released]

    def get_total_sunk(self, currency_type: CurrencyType | None = None) -> int:
        """Currency currently held by unreleased sinks."""
        return sum(
            s.amount
            for s in self._sinks.all()
            if not s.is_released and (currency_type is None or s.currency_type == currency_type)
        )

    # ------------------------------------------------------------------
    # Stats
    # ------------------------------------------------------------------

    def get_stats(self) -> BurnStats:
        stats = BurnStats()
        for burn in self._burns.all():
            stats.total_rewards_given += burn.reward
            if burn.burn_type == BurnType.NFT:
                stats.total_nfts_burned += 1
            elif burn.burn_type == BurnType.SOFT_CURRENCY:
                stats.total_soft_burned += burn.amount
            else:
                stats.total_hard_burned += burn.amount
        stats.total_sunk = sum(s.amount for s in self._sinks.all())

        burned = stats.total_soft_burned + stats.total_hard_burned
        removed = burned + stats.total_sunk
        stats.burn_rate = round(burned / removed * 100, 2) if removed else 0.0
        return stats

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _resolve_burn_mechanic(
        self, mechanic_id: str | None, burn_type: BurnType
    ) -> BurnMechanic | None:
        if mechanic_id is None:
            return None
        mechanic = self._burn_mechanics.get(mechanic_id)
        if mechanic is None:
            raise MechanicNotFoundError(mechanic_id=mechanic_id)
        if not mechanic.enabled:
            raise InvalidStateError("Burn mechanic is disabled", mechanic_id=mechanic_id)
        if mechanic.burn_type != burn_type:
            raise ValidationError(
                f"Mechanic '{mechanic_id}' burns {mechanic.burn_type.value}, not {burn_type.value}",
                mechanic_id=mechanic_id,
            )
        return mechanic

    def _record_burn(self, record: BurnRecord, mechanic: BurnMechanic | None) -> BurnResult:
        if record.burn_id in self._burns:
            raise ConflictError("Duplicate burn id", burn_id=record.burn_id)

        if mechanic is not None and mechanic.daily_limit is not None:
            # one entry per entity and mechanic, holding the current UTC day only
            key = f"{record.entity_id}:{mechanic.mechanic_id}"
            day = record.timestamp.date().isoformat()
            entry = self._daily.get(key) or {}
            used = entry.get("amount", 0) if entry.get("day") == day else 0
            if used + record.amount > mechanic.daily_limit:
                raise LimitExceededError(
                    "Daily burn limit reached",
                    mechanic_id=mechanic.mechanic_id,
                    daily_limit=mechanic.daily_limit,
                    used=used,
                )
            self._daily.put(key, {"day": day, "amount": used + record.amount})

        if mechanic is not None:
            record.reward = mechanic.reward
            record.reward_type = mechanic.reward_type

        self._burns.put(record.burn_id, record)
        logger.info(
            "Burned %s x%d for %s (reward %d %s)",
            record.burn_type.value,
            record.amount,
            record.entity_id,
            record.reward,
            record.reward_type.value,
            extra={"event": "burn_recorded", "entity_id": record.entity_id},
        )
        return BurnResult(
            burn_id=record.burn_id, reward=record.reward, reward_type=record.reward_type
        )
