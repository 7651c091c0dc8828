from pydantic import BaseModel
from datetime import date

class LedgerRow(BaseModel):
    date: date
    deposit_total: float
    emi_total: float
    loan_disbursed_total: float
    interest_total: float
    fine_total: float
    cash_in: float
    cash_out: float
    net_flow: float
    running_balance: float

    class Config:
        from_attributes = True

class CashbookRow(BaseModel):
    date: date
    cash_in: float
    cash_out: float
    bank_in: float
    bank_out: float
    upi_in: float
    upi_out: float
    closing: float

    class Config:
        from_attributes = True
