from fastapi import APIRouter

from src.cars.api.v1 import (
    admins,
    auth,
    billing,
    deployments,
    domains,
    engine_admin,
    projects,
    public,
    upload,
)

api_router = APIRouter(prefix="/api/v1")
api_router.include_router(auth.router)
api_router.include_router(projects.router)
api_router.include_router(admins.router)
api_router.include_router(deployments.router)
api_router.include_router(billing.router)
api_router.include_router(domains.router)
api_router.include_router(engine_admin.router)
api_router.include_router(upload.router)
api_router.include_router(public.router)
