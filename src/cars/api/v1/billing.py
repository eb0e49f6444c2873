"""Project balance top-up and billing history."""

from datetime import datetime
from typing import Annotated

from fastapi import APIRouter, Query

from src.cars.api.dependencies import AdminProject, BillingServiceDep
from src.cars.models import AccountingEntryType
from src.cars.schemas import AccountingEntryRead, BillingStats, PayRequest, PayResponse

router = APIRouter(prefix="/projects", tags=["billing"])


@router.post(
    "/{project_id}/pay",
    response_model=PayResponse,
    summary="Top up balance",
    description="Credit a positive amount of satoshis to the project balance.",
    responses={
        200: {"description": "Balance credited"},
        400: {"description": "Amount must be a positive integer"},
        403: {"description": "Not admin of project"},
    },
)
async def pay(
    request: PayRequest,
    project: AdminProject,
    service: BillingServiceDep,
) -> PayResponse:
    outcome = await service.credit(project.id, request.amount)
    return PayResponse(
        message=f"Paid {outcome.amount} sats. New balance: {outcome.new_balance}",
        balance=outcome.new_balance,
    )


@router.get(
    "/{project_id}/billing/stats",
    response_model=BillingStats,
    summary="Billing history",
    description="Accounting entries, newest first, optionally filtered by type and time range.",
)
async def billing_stats(
    project: AdminProject,
    service: BillingServiceDep,
    entry_type: Annotated[
        AccountingEntryType | None, Query(alias="type", description="debit or credit")
    ] = None,
    start: Annotated[datetime | None, Query(description="Inclusive lower bound")] = None,
    end: Annotated[datetime | None, Query(description="Inclusive upper bound")] = None,
) -> BillingStats:
    entries = await service.history(project.id, entry_type=entry_type, start=start, end=end)
    return BillingStats(
        records=[
            AccountingEntryRead(
                id=e.id,
                type=AccountingEntryType(e.entry_type),
                amount=e.amount,
                balance_after=e.balance_after,
                metadata=e.details,
                timestamp=e.created_at,
            )
            for e in entries
        ]
    )
