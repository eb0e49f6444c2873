"""Usage pricing for one billing interval."""

import math
from dataclasses import dataclass
from typing import Any

from src.cars.core.config import Settings

BYTES_PER_GB = 1024 * 1024 * 1024


@dataclass(frozen=True)
class BillingRates:
    """Price per unit per interval, in the smallest monetary unit."""

    cpu_per_core: int
    mem_per_gb: int
    disk_per_gb: int
    net_per_gb: int

    @classmethod
    def from_settings(cls, settings: Settings) -> "BillingRates":
        return cls(
            cpu_per_core=settings.cpu_rate_per_core_5min,
            mem_per_gb=settings.mem_rate_per_gb_5min,
            disk_per_gb=settings.disk_rate_per_gb_5min,
            net_per_gb=settings.net_rate_per_gb_5min,
        )

    def as_metadata(self) -> dict[str, int]:
        return {
            "CPU_RATE_PER_CORE_5MIN": self.cpu_per_core,
            "MEM_RATE_PER_GB_5MIN": self.mem_per_gb,
            "DISK_RATE_PER_GB_5MIN": self.disk_per_gb,
            "NET_RATE_PER_GB_5MIN": self.net_per_gb,
        }


@dataclass(frozen=True)
class UsageSample:
    """Resource consumption of one namespace over the last interval."""

    cpu_cores: float = 0.0
    memory_bytes: float = 0.0
    disk_bytes: float = 0.0
    network_bytes: float = 0.0


@dataclass(frozen=True)
class CostBreakdown:
    cpu: int
    mem: int
    disk: int
    net: int

    @property
    def total(self) -> int:
        return self.cpu + self.mem + self.disk + self.net

    def as_metadata(self, rates: BillingRates) -> dict[str, Any]:
        """Shape stored on the debit AccountingEntry."""
        return {
            "cpuCost": self.cpu,
            "memCost": self.mem,
            "diskCost": self.disk,
            "netCost": self.net,
            "rates": rates.as_metadata(),
        }


def _cost(quantity: float, rate: int) -> int:
    return math.ceil(max(quantity, 0.0) * rate)


def price_usage(usage: UsageSample, rates: BillingRates) -> CostBreakdown:
    """Cost per dimension is ceil(usage in canonical unit * rate).

    Canonical units: cores for CPU, gigabytes (1024^3 bytes) for the rest.
    """
    return CostBreakdown(
        cpu=_cost(usage.cpu_cores, rates.cpu_per_core),
        mem=_cost(usage.memory_bytes / BYTES_PER_GB, rates.mem_per_gb),
        disk=_cost(usage.disk_bytes / BYTES_PER_GB, rates.disk_per_gb),
        net=_cost(usage.network_bytes / BYTES_PER_GB, rates.net_per_gb),
    )
