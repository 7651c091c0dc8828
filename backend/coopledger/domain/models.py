from __future__ import annotations

import enum
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal

from coopledger.domain.exceptions import ValidationError

ZERO = Decimal("0")


class TransactionKind(str, enum.Enum):
    deposit = "deposit"
    loan_disbursement = "loan_disbursement"
    emi = "emi"
    loan_charge = "loan_charge"
    interest = "interest"
    fine = "fine"
    donation = "donation"
    other = "other"

    @property
    def loan_related(self) -> bool:
        return self in (TransactionKind.loan_disbursement, TransactionKind.emi, TransactionKind.loan_charge)


class LoanStatus(str, enum.Enum):
    pending = "pending"
    active = "active"
    closed = "closed"
    rejected = "rejected"


class MaturityStatus(str, enum.Enum):
    active = "active"
    matured = "matured"
    claimed = "claimed"


class Severity(str, enum.Enum):
    watch = "Watch"
    critical = "Critical"


@dataclass(frozen=True)
class Member:
    id: int
    society_id: int
    name: str
    phone: str = ""
    join_date: date | None = None
    status: str = "active"


@dataclass(frozen=True)
class TransactionRecord:
    id: int | None
    member_id: int
    transaction_date: date
    deposit_amount: Decimal | None = None
    loan_installment_amount: Decimal | None = None
    interest_amount: Decimal | None = None
    fine_amount: Decimal | None = None
    mode: str = ""
    loan_reference_id: int | None = None
    kind: TransactionKind | None = None
    needs_review: bool = False

    def __post_init__(self):
        for name in ("deposit_amount", "loan_installment_amount", "interest_amount", "fine_amount"):
            v = getattr(self, name)
            if v is not None and v < 0:
                raise ValidationError(f"{name} must be non-negative")

    @property
    def deposit(self) -> Decimal:
        return self.deposit_amount or ZERO

    @property
    def installment(self) -> Decimal:
        return self.loan_installment_amount or ZERO

    @property
    def interest(self) -> Decimal:
        return self.interest_amount or ZERO

    @property
    def fine(self) -> Decimal:
        return self.fine_amount or ZERO


@dataclass(frozen=True)
class Loan:
    id: int | None
    member_id: int
    principal_amount: Decimal
    interest_rate_percent_per_month: Decimal = Decimal("1.0")
    status: LoanStatus = LoanStatus.pending
    remaining_balance: Decimal = ZERO
    disbursed_date: date | None = None
    next_due_date: date | None = None


@dataclass(frozen=True)
class LedgerDay:
    date: date
    deposit_total: Decimal
    emi_total: Decimal
    loan_disbursed_total: Decimal
    interest_total: Decimal
    fine_total: Decimal
    cash_in: Decimal
    cash_out: Decimal
    net_flow: Decimal
    running_balance: Decimal


@dataclass(frozen=True)
class CashbookDay:
    date: date
    cash_in: Decimal
    cash_out: Decimal
    bank_in: Decimal
    bank_out: Decimal
    upi_in: Decimal
    upi_out: Decimal
    closing: Decimal


@dataclass(frozen=True)
class MaturityRecord:
    id: int | None
    member_id: int
    total_deposit: Decimal
    start_date: date
    maturity_date: date
    months_completed: int
    remaining_months: int
    monthly_interest_rate: Decimal
    current_interest: Decimal
    full_interest: Decimal
    adjusted_interest: Decimal
    loan_adjustment: Decimal = ZERO
    manual_override: bool = False
    status: MaturityStatus = MaturityStatus.active
    claimed_at: datetime | None = None

    @property
    def current_adjustment(self) -> Decimal:
        return self.adjusted_interest - self.current_interest


@dataclass(frozen=True)
class DefaulterEntry:
    member_id: int
    loan_id: int | None
    remaining_balance: Decimal
    days_overdue: int
    severity: Severity


@dataclass(frozen=True)
class MemberSummary:
    member_id: int
    total_deposits: Decimal
    loan_taken: Decimal
    principal_paid: Decimal
    interest_paid: Decimal
    fine_paid: Decimal
    active_loan_balance: Decimal
    net_worth: Decimal
    maturity_status: MaturityStatus | None = None
    net_payable: Decimal | None = None
