from src.cars.schemas.base import CamelModel


class Pricing(CamelModel):
    cpu_rate_per_core_5min: int
    mem_rate_per_gb_5min: int
    disk_rate_per_gb_5min: int
    net_rate_per_gb_5min: int


class PublicInfo(CamelModel):
    pricing: Pricing
    project_deployment_domain: str
