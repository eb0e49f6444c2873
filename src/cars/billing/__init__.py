"""Pure billing rules: pricing, alert ladder, gating transitions."""

from src.cars.billing.pricing import (
    BYTES_PER_GB,
    BillingRates,
    CostBreakdown,
    UsageSample,
    price_usage,
)
from src.cars.billing.thresholds import (
    BILLING_THRESHOLDS,
    GatingChange,
    crossed_thresholds,
    gating_change,
)

__all__ = [
    "BILLING_THRESHOLDS",
    "BYTES_PER_GB",
    "BillingRates",
    "CostBreakdown",
    "GatingChange",
    "UsageSample",
    "crossed_thresholds",
    "gating_change",
    "price_usage",
]
