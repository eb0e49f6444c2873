from src.cars.services.admin_service import AdminService
from src.cars.services.billing_service import BillingService, BillingTick
from src.cars.services.deployment_pipeline import DeploymentPipeline, PipelineResult
from src.cars.services.deployment_service import DeploymentService, PipelineRunner
from src.cars.services.domain_service import DomainService
from src.cars.services.engine_admin_service import EngineAction, EngineAdminService
from src.cars.services.log_service import LogService
from src.cars.services.notification_service import NotificationService
from src.cars.services.project_service import ProjectService

__all__ = [
    "AdminService",
    "BillingService",
    "BillingTick",
    "DeploymentPipeline",
    "DeploymentService",
    "DomainService",
    "EngineAction",
    "EngineAdminService",
    "LogService",
    "NotificationService",
    "PipelineResult",
    "PipelineRunner",
    "ProjectService",
]
