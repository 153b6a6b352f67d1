"""Burn and sink records, mechanics and aggregate stats."""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field


class BurnType(str, Enum):
    NFT = "nft"
    SOFT_CURRENCY = "soft_currency"
    HARD_CURRENCY = "hard_currency"


class SinkType(str, Enum):
    TEMP_LOCK = "temp_lock"
    PERMANENT_SINK = "permanent_sink"
    STAKING = "staking"


class CurrencyType(str, Enum):
    SOFT = "soft"
    HARD = "hard"

    @property
    def burn_type(self) -> BurnType:
        return BurnType.SOFT_CURRENCY if self is CurrencyType.SOFT else BurnType.HARD_CURRENCY


class BurnMechanic(BaseModel):
    mechanic_id: str = Field(..., min_length=1)
    name: str
    description: str = ""
    enabled: bool = True
    burn_type: BurnType
    reward: int = Field(default=0, ge=0)
    reward_type: CurrencyType = CurrencyType.SOFT
    daily_limit: int | None = Field(default=None, ge=1)


class SinkMechanic(BaseModel):
    mechanic_id: str = Field(..., min_length=1)
    name: str
    description: str = ""
    enabled: bool = True
    sink_type: SinkType
    lock_duration_seconds: int | None = Field(default=None, ge=1)
    purpose: str


class BurnRecord(BaseModel):
    burn_id: str
    burn_type: BurnType
    entity_id: str
    entity_name: str
    nft_id: str | None = None
    amount: int = Field(..., gt=0)
    currency_type: CurrencyType | None = None
    reward: int = 0
    reward_type: CurrencyType = CurrencyType.SOFT
    mechanic_id: str | None = None
    reason: str | None = None
    timestamp: datetime


class SinkRecord(BaseModel):
    sink_id: str
    sink_type: SinkType
    entity_id: str
    entity_name: str
    amount: int = Field(..., gt=0)
    currency_type: CurrencyType
    mechanic_id: str
    sunk_at: datetime
    unlocks_at: datetime | None = None  # None for permanent sinks
    released_at: datetime | None = None
    metadata: dict = Field(default_factory=dict)

    @property
    def is_released(self) -> bool:
        return self.released_at is not None


class BurnResult(BaseModel):
    burn_id: str
    reward: int
    reward_type: CurrencyType


class BurnStats(BaseModel):
    total_nfts_burned: int = 0
    total_soft_burned: int = 0
    total_hard_burned: int = 0
    total_rewards_given: int = 0
    total_sunk: int = 0
    burn_rate: float = 0.0  # percent of removed currency that was burned
