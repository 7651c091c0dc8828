"""Reducing-balance loan engine.

Every installment first pays the month's interest on the outstanding balance
and the rest goes to principal. Functions here never mutate the loan they
are given; they return a new ``Loan``.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Iterable, Sequence

from coopledger.domain.exceptions import InvalidStateError, ValidationError
from coopledger.domain.models import Loan, LoanStatus, TransactionRecord
from coopledger.services.classification import eighty_percent_limit
from coopledger.utils.money import d2

ZERO = Decimal("0")
DEFAULT_RATE_PERCENT_PER_MONTH = Decimal("1.0")
DUE_INTERVAL_DAYS = 30
MIN_LOAN_AMOUNT = Decimal("1000")


@dataclass(frozen=True)
class InstallmentSplit:
    interest_due: Decimal
    principal_portion: Decimal
    remaining_balance: Decimal


@dataclass(frozen=True)
class LoanReplay:
    loan: Loan
    principal_paid: Decimal
    interest_paid: Decimal
    installments_applied: int


@dataclass(frozen=True)
class LoanRequestCheck:
    approved: bool
    max_loan_amount: Decimal
    qualifying_deposits: Decimal
    error: str | None = None


def _as_date(v: date | datetime) -> date:
    return v.date() if isinstance(v, datetime) else v


def split_installment(balance: Decimal, rate_percent_per_month: Decimal, amount: Decimal) -> InstallmentSplit:
    interest_due = d2(balance * (rate_percent_per_month / Decimal("100")))
    principal_portion = max(ZERO, amount - interest_due)
    remaining = max(ZERO, balance - principal_portion)
    return InstallmentSplit(interest_due=interest_due, principal_portion=principal_portion, remaining_balance=remaining)


def disburse(loan: Loan, now: date | datetime) -> Loan:
    if loan.status != LoanStatus.pending:
        raise InvalidStateError(f"loan {loan.id} is {loan.status.value}; only pending loans can be disbursed")
    if loan.principal_amount <= 0:
        raise ValidationError("principal_amount must be positive")

    day = _as_date(now)
    return dataclasses.replace(
        loan,
        status=LoanStatus.active,
        remaining_balance=loan.principal_amount,
        disbursed_date=day,
        next_due_date=day + timedelta(days=DUE_INTERVAL_DAYS),
    )


def apply_installment(loan: Loan, record: TransactionRecord) -> Loan:
    amount = record.loan_installment_amount
    if amount is None or amount <= 0:
        raise ValidationError("loan_installment_amount must be positive")
    if record.loan_reference_id is not None and loan.id is not None and record.loan_reference_id != loan.id:
        raise ValidationError(f"record references loan {record.loan_reference_id}, not loan {loan.id}")
    if loan.status != LoanStatus.active:
        raise InvalidStateError(f"loan {loan.id} is {loan.status.value}; installments need an active loan")

    split = split_installment(loan.remaining_balance, loan.interest_rate_percent_per_month, amount)
    if split.remaining_balance == 0:
        return dataclasses.replace(loan, remaining_balance=ZERO, status=LoanStatus.closed, next_due_date=None)

    return dataclasses.replace(
        loan,
        remaining_balance=split.remaining_balance,
        next_due_date=record.transaction_date + timedelta(days=DUE_INTERVAL_DAYS),
    )


def reject(loan: Loan) -> Loan:
    if loan.status != LoanStatus.pending:
        raise InvalidStateError(f"loan {loan.id} is {loan.status.value}; only pending loans can be rejected")
    return dataclasses.replace(loan, status=LoanStatus.rejected, remaining_balance=ZERO)


def close(loan: Loan) -> Loan:
    if loan.status != LoanStatus.active:
        raise InvalidStateError(f"loan {loan.id} is {loan.status.value}; only active loans can be closed")
    return dataclasses.replace(loan, status=LoanStatus.closed, remaining_balance=ZERO, next_due_date=None)


def installments_for(loan: Loan, records: Iterable[TransactionRecord]) -> list[TransactionRecord]:
    rows = [r for r in records if r.loan_reference_id == loan.id and r.installment > 0]
    rows.sort(key=lambda r: (r.transaction_date, r.id if r.id is not None else -1))
    return rows


def replay_installments(loan: Loan, records: Iterable[TransactionRecord]) -> LoanReplay:
    """Rebuild a disbursed loan from principal by re-applying its installments in date order.

    Installments after the loan closes are ignored.
    """
    if loan.status in (LoanStatus.pending, LoanStatus.rejected):
        return LoanReplay(loan=loan, principal_paid=ZERO, interest_paid=ZERO, installments_applied=0)

    cur = dataclasses.replace(
        loan,
        status=LoanStatus.active,
        remaining_balance=loan.principal_amount,
        next_due_date=None,
    )
    principal_paid = ZERO
    interest_paid = ZERO
    applied = 0
    for r in installments_for(loan, records):
        if cur.status != LoanStatus.active:
            break
        split = split_installment(cur.remaining_balance, cur.interest_rate_percent_per_month, r.installment)
        interest_paid += min(split.interest_due, r.installment)
        principal_paid += cur.remaining_balance - split.remaining_balance
        cur = apply_installment(cur, r)
        applied += 1

    return LoanReplay(loan=cur, principal_paid=principal_paid, interest_paid=interest_paid, installments_applied=applied)


def check_loan_request(
    requested: Decimal,
    qualifying_total: Decimal,
    active_loans: Sequence[Loan] = (),
    override: bool = False,
) -> LoanRequestCheck:
    limit = eighty_percent_limit(qualifying_total)

    def _no(err: str) -> LoanRequestCheck:
        return LoanRequestCheck(approved=False, max_loan_amount=limit, qualifying_deposits=qualifying_total, error=err)

    if requested <= 0:
        return _no("loan_amount_invalid")
    if not override:
        if requested > limit:
            return _no("loan_amount_exceeds_limit")
        if any(ln.status == LoanStatus.active for ln in active_loans):
            return _no("active_loan_exists")
        if requested < MIN_LOAN_AMOUNT:
            return _no("loan_amount_below_minimum")

    return LoanRequestCheck(approved=True, max_loan_amount=limit, qualifying_deposits=qualifying_total)
