"""
Billing Tick Workflow.

Started once with a cron schedule (every five minutes by default); each run
bills every project for the preceding interval.
"""

from datetime import timedelta

from temporalio import workflow
from temporalio.common import RetryPolicy

with workflow.unsafe.imports_passed_through():
    from src.cars.temporal.activities import BillAllProjectsOutput, bill_all_projects


@workflow.defn
class BillingTickWorkflow:
    @workflow.run
    async def run(self) -> BillAllProjectsOutput:
        # One attempt per interval. Per-project failures stay inside the activity.
        return await workflow.execute_activity(
            bill_all_projects,
            start_to_close_timeout=timedelta(minutes=4),
            retry_policy=RetryPolicy(maximum_attempts=1),
        )
