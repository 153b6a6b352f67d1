"""Property tests for daily burn limits.

Validates that the amount an entity burns through a limited mechanic in one
day never exceeds the mechanic's daily limit, and that every accepted burn
is reflected in the burn statistics.
"""

from __future__ import annotations

from datetime import datetime, timezone

from hypothesis import given, settings
from hypothesis import strategies as st

from bassball.economy.burn_sink import BurnSinkManager
from bassball.economy.models import BurnMechanic, BurnType, CurrencyType
from bassball.middleware.error_handler import LimitExceededError
from bassball.storage import InMemoryStorage


# ---------------------------------------------------------------------------
# Strategies
# ---------------------------------------------------------------------------

daily_limits = st.integers(min_value=1, max_value=1_000)

burn_amounts = st.lists(st.integers(min_value=1, max_value=400), min_size=1, max_size=25)

_FIXED_NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


@settings(max_examples=100)
@given(limit=daily_limits, amounts=burn_amounts)
def test_daily_burns_never_exceed_limit(limit: int, amounts: list[int]) -> None:
    economy = BurnSinkManager(InMemoryStorage(), clock=lambda: _FIXED_NOW)
    economy.add_burn_mechanic(
        BurnMechanic(
            mechanic_id="capped",
            name="Capped burn",
            burn_type=BurnType.SOFT_CURRENCY,
            reward=1,
            daily_limit=limit,
        )
    )

    accepted = 0
    for amount in amounts:
        try:
            economy.burn_currency(CurrencyType.SOFT, "p1", "P1", amount, mechanic_id="capped")
        except LimitExceededError:
            assert accepted + amount > limit
            continue
        accepted += amount
        assert accepted <= limit

    stats = economy.get_stats()
    assert stats.total_soft_burned == accepted
    assert stats.total_rewards_given == len(economy.get_burn_history("p1", limit=len(amounts)))
