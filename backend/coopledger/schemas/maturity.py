from pydantic import BaseModel
from datetime import date, datetime
from decimal import Decimal

from coopledger.domain.models import MaturityStatus


class MaturityOut(BaseModel):
    member_id: int
    total_deposit: float
    start_date: date
    maturity_date: date
    months_completed: int
    remaining_months: int
    monthly_interest_rate: float
    current_interest: float
    full_interest: float
    adjusted_interest: float
    current_adjustment: float
    loan_adjustment: float
    net_payable: float
    manual_override: bool
    status: MaturityStatus
    claimed_at: datetime | None


class MaturityOverrideIn(BaseModel):
    adjusted_interest: Decimal
    actor: str = "staff"


class BatchResultOut(BaseModel):
    processed: int
    created: int
    updated: int
    unchanged: int
    skipped: int
    failed: int
    failed_member_ids: list[int]

    class Config:
        from_attributes = True
