"""Fan merchandise orders, team pricing and the order status machine.

Prices are integer base units of the order currency (wei for ETH).
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field


class JerseyType(str, Enum):
    HOME = "home"
    AWAY = "away"
    NEUTRAL = "neutral"


class ShirtSize(str, Enum):
    XS = "XS"
    S = "S"
    M = "M"
    L = "L"
    XL = "XL"
    XXL = "XXL"


class MerchCurrency(str, Enum):
    ETH = "ETH"
    USDC = "USDC"
    GAME_TOKEN = "GAME_TOKEN"


class OrderStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


ALLOWED_TRANSITIONS: dict[OrderStatus, frozenset[OrderStatus]] = {
    OrderStatus.PENDING: frozenset({OrderStatus.CONFIRMED, OrderStatus.CANCELLED}),
    OrderStatus.CONFIRMED: frozenset({OrderStatus.PROCESSING, OrderStatus.CANCELLED}),
    OrderStatus.PROCESSING: frozenset({OrderStatus.SHIPPED, OrderStatus.CANCELLED}),
    OrderStatus.SHIPPED: frozenset({OrderStatus.DELIVERED}),
    OrderStatus.DELIVERED: frozenset(),
    OrderStatus.CANCELLED: frozenset(),
}

# Orders in these states have been paid for
REVENUE_STATUSES = frozenset(
    {
        OrderStatus.CONFIRMED,
        OrderStatus.PROCESSING,
        OrderStatus.SHIPPED,
        OrderStatus.DELIVERED,
    }
)


class ShippingAddress(BaseModel):
    name: str = Field(..., min_length=1)
    address_line1: str = Field(..., min_length=1)
    address_line2: str | None = None
    city: str = Field(..., min_length=1)
    state: str = ""
    postal_code: str = Field(..., min_length=1)
    country: str = Field(..., min_length=1)
    phone: str = ""


class TeamMerchandisePricing(BaseModel):
    team_id: str
    home_shirt_price: int = Field(..., ge=0)
    away_shirt_price: int = Field(..., ge=0)
    neutral_shirt_price: int = Field(..., ge=0)
    custom_name_fee: int = Field(default=0, ge=0)
    custom_number_fee: int = Field(default=0, ge=0)
    shipping_fee: int = Field(default=0, ge=0)
    currency: MerchCurrency = MerchCurrency.ETH
    discount_for_holders: int = Field(default=0, ge=0, le=100)  # percent
    royalty_percentage: int = Field(default=0, ge=0, le=100)

    def shirt_price(self, jersey_type: JerseyType) -> int:
        return {
            JerseyType.HOME: self.home_shirt_price,
            JerseyType.AWAY: self.away_shirt_price,
            JerseyType.NEUTRAL: self.neutral_shirt_price,
        }[jersey_type]


class ShirtOrder(BaseModel):
    order_id: str
    team_id: str
    team_name: str
    fan_address: str
    jersey_type: JerseyType
    size: ShirtSize
    player_name: str | None = None
    player_number: int | None = Field(default=None, ge=1, le=99)

    base_price: int
    holder_discount: int = 0
    customization_fee: int = 0
    shipping_fee: int = 0
    total_price: int
    currency: MerchCurrency

    status: OrderStatus = OrderStatus.PENDING
    ordered_at: datetime
    confirmed_at: datetime | None = None
    shipped_at: datetime | None = None
    delivered_at: datetime | None = None
    cancelled_at: datetime | None = None
    cancel_reason: str | None = None
    tracking_number: str | None = None

    shipping_address: ShippingAddress
    transaction_hash: str | None = None
    ipfs_metadata_hash: str | None = None


class TeamRevenue(BaseModel):
    team_id: str
    total_orders: int
    paid_orders: int
    total_revenue: int
    revenue_by_type: dict[JerseyType, int]
    royalty_earned: int


class JerseyPopularity(BaseModel):
    type: JerseyType
    order_count: int
    revenue: int
