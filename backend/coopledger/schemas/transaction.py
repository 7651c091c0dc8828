from pydantic import BaseModel, field_validator
from datetime import date
from decimal import Decimal

from coopledger.domain.models import TransactionKind


class TxCreate(BaseModel):
    transaction_date: date
    deposit_amount: Decimal | None = None
    loan_installment_amount: Decimal | None = None
    interest_amount: Decimal | None = None
    fine_amount: Decimal | None = None
    mode: str = ""
    loan_reference_id: int | None = None

    @field_validator("deposit_amount", "loan_installment_amount", "interest_amount", "fine_amount")
    @classmethod
    def amount_must_be_finite_and_non_negative(cls, v: Decimal | None):
        if v is None:
            return None
        if not v.is_finite():
            raise ValueError("amount must be finite")
        if v < 0:
            raise ValueError("amount must be non-negative")
        return v

    @field_validator("mode")
    @classmethod
    def mode_trim(cls, v: str):
        return (v or "").strip()


class TxOut(BaseModel):
    id: int
    member_id: int
    transaction_date: date
    deposit_amount: float | None
    loan_installment_amount: float | None
    interest_amount: float | None
    fine_amount: float | None
    mode: str
    loan_reference_id: int | None
    kind: TransactionKind | None
    needs_review: bool

    class Config:
        from_attributes = True


class DepositTotalOut(BaseModel):
    member_id: int
    qualifying_deposits: float
    max_loan_amount: float
