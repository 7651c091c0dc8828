from pydantic import BaseModel

from coopledger.domain.models import MaturityStatus


class MemberSummaryOut(BaseModel):
    member_id: int
    total_deposits: float
    loan_taken: float
    principal_paid: float
    interest_paid: float
    fine_paid: float
    active_loan_balance: float
    net_worth: float
    maturity_status: MaturityStatus | None = None
    net_payable: float | None = None

    class Config:
        from_attributes = True


class SocietySummaryOut(BaseModel):
    deposits: float
    interest_income: float
    fine_income: float
    loans_issued: float
    loans_outstanding: float
    loans_recovered: float
    active_loan_count: int
    maturity_liability: float

    class Config:
        from_attributes = True
