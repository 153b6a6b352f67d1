"""Burn and sink economy mechanics."""

from bassball.economy.burn_sink import BurnSinkManager
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

__all__ = [
    "BurnMechanic",
    "BurnRecord",
    "BurnResult",
    "BurnSinkManager",
    "BurnStats",
    "BurnType",
    "CurrencyType",
    "SinkMechanic",
    "SinkRecord",
    "SinkType",
]
