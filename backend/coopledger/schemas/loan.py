from pydantic import BaseModel, field_validator
from datetime import date
from decimal import Decimal

from coopledger.domain.models import LoanStatus, Severity

class LoanCreate(BaseModel):
    principal_amount: Decimal
    interest_rate_percent_per_month: Decimal = Decimal("1.0")
    override: bool = False

    @field_validator("interest_rate_percent_per_month")
    @classmethod
    def rate_must_be_non_negative(cls, v: Decimal):
        if not v.is_finite() or v < 0:
            raise ValueError("interest rate must be a non-negative number")
        return v

class LoanOut(BaseModel):
    id: int
    member_id: int
    principal_amount: float
    interest_rate_percent_per_month: float
    status: LoanStatus
    remaining_balance: float
    disbursed_date: date | None
    next_due_date: date | None

    class Config:
        from_attributes = True

class DefaulterOut(BaseModel):
    member_id: int
    member_name: str | None = None
    phone: str | None = None
    loan_id: int | None
    remaining_balance: float
    days_overdue: int
    severity: Severity
