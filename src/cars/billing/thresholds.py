"""Balance alert ladder and access gating transitions."""

from collections.abc import Sequence
from enum import Enum

# Descending; alerts fire when a debit carries the balance below a rung.
BILLING_THRESHOLDS: tuple[int, ...] = (
    50_000_000,
    20_000_000,
    10_000_000,
    5_000_000,
    2_000_000,
    1_000_000,
    500_000,
    200_000,
    100_000,
    50_000,
    20_000,
    5_000,
    1_000,
    500,
    0,
    -500,
    -2_000,
    -10_000,
    -50_000,
    -100_000,
    -200_000,
    -300_000,
    -400_000,
    -500_000,
    -700_000,
    -1_000_000,
    -5_000_000,
    -10_000_000,
    -20_000_000,
    -50_000_000,
)


def crossed_thresholds(
    old_balance: int,
    new_balance: int,
    ladder: Sequence[int] = BILLING_THRESHOLDS,
) -> list[int]:
    """Thresholds crossed downward by old -> new, in ladder order.

    A rung t is crossed iff old >= t > new. Credits (new >= old) cross nothing,
    so a rung only fires again after the balance has risen back above it.
    """
    return [t for t in ladder if old_balance >= t > new_balance]


class GatingChange(str, Enum):
    DISABLE = "disable"
    ENABLE = "enable"


def gating_change(old_balance: int, new_balance: int) -> GatingChange | None:
    """Ingress toggle implied by a balance transition, if any."""
    if old_balance >= 0 > new_balance:
        return GatingChange.DISABLE
    if old_balance < 0 <= new_balance:
        return GatingChange.ENABLE
    return None
