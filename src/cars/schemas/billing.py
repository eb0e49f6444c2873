from datetime import datetime
from typing import Any

from src.cars.models import AccountingEntryType
from src.cars.schemas.base import CamelModel


class PayRequest(CamelModel):
    # Non-positive amounts are rejected by the billing service with a 400
    amount: int


class PayResponse(CamelModel):
    message: str
    balance: int


class AccountingEntryRead(CamelModel):
    id: int
    type: AccountingEntryType
    amount: int
    balance_after: int
    metadata: dict[str, Any]
    deployment_id: str | None = None
    timestamp: datetime


class BillingStats(CamelModel):
    records: list[AccountingEntryRead]
