"""Temporal Workflows - Re-exports for worker registration."""

from src.cars.temporal.workflows.billing_tick import BillingTickWorkflow
from src.cars.temporal.workflows.deployment_pipeline import DeploymentPipelineWorkflow

__all__ = [
    "BillingTickWorkflow",
    "DeploymentPipelineWorkflow",
]
