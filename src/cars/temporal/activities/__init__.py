"""Temporal Activities - side effects live here, not in workflows."""

from src.cars.temporal.activities.billing import BillAllProjectsOutput, bill_all_projects
from src.cars.temporal.activities.deployment import (
    RunPipelineInput,
    RunPipelineOutput,
    run_deployment_pipeline,
)

__all__ = [
    # Dataclasses
    "BillAllProjectsOutput",
    "RunPipelineInput",
    "RunPipelineOutput",
    # Activities
    "bill_all_projects",
    "run_deployment_pipeline",
]
