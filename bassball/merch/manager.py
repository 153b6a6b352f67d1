"""Fan merchandise ordering.

Order lifecycle::

    pending -> confirmed -> processing -> shipped -> delivered
       |           |             |
       +-----------+-------------+--> cancelled

Every status change goes through ``ALLOWED_TRANSITIONS``; the transition
that reaches a status also stamps its timestamp.
"""

from __future__ import annotations

import logging
from uuid import uuid4

from bassball.merch.models import (
    ALLOWED_TRANSITIONS,
    REVENUE_STATUSES,
    JerseyPopularity,
    JerseyType,
    OrderStatus,
    ShippingAddress,
    ShirtOrder,
    ShirtSize,
    TeamMerchandisePricing,
    TeamRevenue,
)
from bassball.middleware.error_handler import (
    InvalidStateError,
    OrderNotFoundError,
    PricingNotFoundError,
    ValidationError,
)
from bassball.storage.repository import ModelStore, StorageBackend
from bassball.timeutil import Clock, utc_now

logger = logging.getLogger(__name__)

_TIMESTAMP_FIELDS = {
    OrderStatus.CONFIRMED: "confirmed_at",
    OrderStatus.SHIPPED: "shipped_at",
    OrderStatus.DELIVERED: "delivered_at",
    OrderStatus.CANCELLED: "cancelled_at",
}


class FanMerchandiseManager:
    """Team shirt orders with per-team pricing.

    Parameters
    ----------
    storage:
        Backend providing the ``merch_*`` repositories.
    clock:
        Returns the current aware UTC time.
    """

    def __init__(self, storage: StorageBackend, clock: Clock = utc_now) -> None:
        self._clock = clock
        self._pricing = ModelStore(storage.repository("merch_pricing"), TeamMerchandisePricing)
        self._orders = ModelStore(storage.repository("merch_orders"), ShirtOrder)

    # ------------------------------------------------------------------
    # Pricing
    # ------------------------------------------------------------------

    def set_team_pricing(self, pricing: TeamMerchandisePricing) -> TeamMerchandisePricing:
        """Create or replace the pricing for ``pricing.team_id``."""
        self._pricing.put(pricing.team_id, pricing)
        logger.info(
            "Updated merchandise pricing for team %s",
            pricing.team_id,
            extra={"event": "merch_pricing_set", "entity_id": pricing.team_id},
        )
        return pricing

    def get_team_pricing(self, team_id: str) -> TeamMerchandisePricing | None:
        return self._pricing.get(team_id)

    # ------------------------------------------------------------------
    # Orders
    # ------------------------------------------------------------------

    def create_order(
        self,
        team_id: str,
        team_name: str,
        fan_address: str,
        jersey_type: JerseyType,
        size: ShirtSize,
        shipping_address: ShippingAddress,
        *,
        player_name: str | None = None,
        player_number: int | None = None,
        is_holder: bool = False,
    ) -> ShirtOrder:
        """Price and record a pending order.

        ``total = base - holder discount + customization + shipping``; the
        holder discount applies to the base price only.
        """
        pricing = self._pricing.get(team_id)
        if pricing is None:
            raise PricingNotFoundError(team_id=team_id)
        if player_number is not None and not 1 <= player_number <= 99:
            raise ValidationError("Shirt number must be between 1 and 99", number=player_number)
        if player_name is not None and not player_name.strip():
            raise ValidationError("Custom shirt name must not be blank")

        base_price = pricing.shirt_price(jersey_type)
        discount = base_price * pricing.discount_for_holders // 100 if is_holder else 0

        customization_fee = 0
        if player_name:
            customization_fee += pricing.custom_name_fee
        if player_number is not None:
            customization_fee += pricing.custom_number_fee

        order = ShirtOrder(
            order_id=f"order_{uuid4().hex}",
            team_id=team_id,
            team_name=team_name,
            fan_address=fan_address,
            jersey_type=jersey_type,
            size=size,
            player_name=player_name,
            player_number=player_number,
            base_price=base_price,
            holder_discount=discount,
            customization_fee=customization_fee,
            shipping_fee=pricing.shipping_fee,
            total_price=base_price - discount + customization_fee + pricing.shipping_fee,
            currency=pricing.currency,
            ordered_at=self._clock(),
            shipping_address=shipping_address,
        )
        self._orders.put(order.order_id, order)
        logger.info(
            "Created %s jersey order %s for team %s",
            jersey_type.value,
            order.order_id,
            team_id,
            extra={"event": "merch_order_created", "entity_id": order.order_id},
        )
        return order

    def confirm_order(self, order_id: str, tx_hash: str) -> ShirtOrder:
        """Mark a pending order paid."""
        if not tx_hash:
            raise ValidationError("Transaction hash is required")
        order = self._require_order(order_id)
        order.transaction_hash = tx_hash
        return self._transition(order, OrderStatus.CONFIRMED)

    def advance_order(
        self,
        order_id: str,
        status: OrderStatus,
        tracking_number: str | None = None,
        ipfs_hash: str | None = None,
    ) -> ShirtOrder:
        order = self._require_order(order_id)
        if tracking_number is not None:
            order.tracking_number = tracking_number
        if ipfs_hash is not None:
            order.ipfs_metadata_hash = ipfs_hash
        return self._transition(order, status)

    def cancel_order(self, order_id: str, reason: str) -> ShirtOrder:
        order = self._require_order(order_id)
        order.cancel_reason = reason
        return self._transition(order, OrderStatus.CANCELLED)

    def get_order(self, order_id: str) -> ShirtOrder | None:
        return self._orders.get(order_id)

    def get_team_orders(self, team_id: str) -> list[ShirtOrder]:
        orders = [o for o in self._orders.all() if o.team_id == team_id]
        return sorted(orders, key=lambda o: o.ordered_at)

    def get_fan_orders(self, fan_address: str) -> list[ShirtOrder]:
        address = fan_address.lower()
        orders = [o for o in self._orders.all() if o.fan_address.lower() == address]
        return sorted(orders, key=lambda o: o.ordered_at)

    # ------------------------------------------------------------------
    # Reporting
    # ------------------------------------------------------------------

    def get_team_revenue(self, team_id: str) -> TeamRevenue:
        """Revenue from paid (confirmed or later) orders and the team's royalty."""
        orders = self.get_team_orders(team_id)
        by_type = {jersey: 0 for jersey in JerseyType}
        paid = 0
        for order in orders:
            if order.status in REVENUE_STATUSES:
                paid += 1
                by_type[order.jersey_type] += order.total_price

        total = sum(by_type.values())
        pricing = self._pricing.get(team_id)
        royalty = total * pricing.royalty_percentage // 100 if pricing else 0
        return TeamRevenue(
            team_id=team_id,
            total_orders=len(orders),
            paid_orders=paid,
            total_revenue=total,
            revenue_by_type=by_type,
            royalty_earned=royalty,
        )

    def get_popular_jerseys(self, team_id: str) -> list[JerseyPopularity]:
        """Non-cancelled orders grouped by jersey type, most ordered first."""
        stats: dict[JerseyType, JerseyPopularity] = {}
        for order in self.get_team_orders(team_id):
            if order.status == OrderStatus.CANCELLED:
                continue
            entry = stats.setdefault(
                order.jersey_type,
                JerseyPopularity(type=order.jersey_type, order_count=0, revenue=0),
            )
            entry.order_count += 1
            entry.revenue += order.total_price
        return sorted(stats.values(), key=lambda e: e.order_count, reverse=True)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _require_order(self, order_id: str) -> ShirtOrder:
        order = self._orders.get(order_id)
        if order is None:
            raise OrderNotFoundError(order_id=order_id)
        return order

    def _transition(self, order: ShirtOrder, target: OrderStatus) -> ShirtOrder:
        if target not in ALLOWED_TRANSITIONS[order.status]:
            raise InvalidStateError(
                f"Cannot move order from {order.status.value} to {target.value}",
                order_id=order.order_id,
                status=order.status.value,
                target=target.value,
            )

        previous = order.status
        order.status = target
        stamp = _TIMESTAMP_FIELDS.get(target)
        if stamp is not None:
            setattr(order, stamp, self._clock())

        self._orders.put(order.order_id, order)
        logger.info(
            "Order %s moved from %s to %s",
            order.order_id,
            previous.value,
            target.value,
            extra={"event": "merch_order_status", "entity_id": order.order_id},
        )
        return order
