"""Fan merchandise orders and team pricing."""

from bassball.merch.manager import FanMerchandiseManager
from bassball.merch.models import (
    ALLOWED_TRANSITIONS,
    JerseyType,
    MerchCurrency,
    OrderStatus,
    ShippingAddress,
    ShirtOrder,
    ShirtSize,
    TeamMerchandisePricing,
)

__all__ = [
    "ALLOWED_TRANSITIONS",
    "FanMerchandiseManager",
    "JerseyType",
    "MerchCurrency",
    "OrderStatus",
    "ShippingAddress",
    "ShirtOrder",
    "ShirtSize",
    "TeamMerchandisePricing",
]
