"""
Deployment Pipeline Workflow.

Runs the pipeline for one uploaded artifact. The workflow id is derived
from the deployment id, so a deployment can only ever have one pipeline.
The activity is attempted once: a failed build or rollout is reported, and
the operator retries by uploading again.
"""

from datetime import timedelta

from temporalio import workflow
from temporalio.common import RetryPolicy

with workflow.unsafe.imports_passed_through():
    from src.cars.temporal.activities import (
        RunPipelineInput,
        RunPipelineOutput,
        run_deployment_pipeline,
    )


@workflow.defn
class DeploymentPipelineWorkflow:
    @workflow.run
    async def run(self, input: RunPipelineInput) -> RunPipelineOutput:
        workflow.logger.info(f"Starting deployment pipeline for {input.deployment_id}")
        result = await workflow.execute_activity(
            run_deployment_pipeline,
            input,
            start_to_close_timeout=timedelta(minutes=input.timeout_minutes),
            retry_policy=RetryPolicy(maximum_attempts=1),
        )
        workflow.logger.info(f"Deployment {input.deployment_id} finished: {result.status}")
        return result
