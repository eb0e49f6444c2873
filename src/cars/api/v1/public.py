"""Unauthenticated platform information."""

from fastapi import APIRouter

from src.cars.core.config import get_settings
from src.cars.schemas import Pricing, PublicInfo

router = APIRouter(prefix="/public", tags=["public"])


@router.get(
    "",
    response_model=PublicInfo,
    summary="Public info",
    description="Current pricing rates and the domain projects are deployed under.",
)
async def public_info() -> PublicInfo:
    settings = get_settings()
    return PublicInfo(
        pricing=Pricing(
            cpu_rate_per_core_5min=settings.cpu_rate_per_core_5min,
            mem_rate_per_gb_5min=settings.mem_rate_per_gb_5min,
            disk_rate_per_gb_5min=settings.disk_rate_per_gb_5min,
            net_rate_per_gb_5min=settings.net_rate_per_gb_5min,
        ),
        project_deployment_domain=settings.project_deployment_dns_name,
    )
