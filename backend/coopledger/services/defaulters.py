from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Iterable

from coopledger.domain.models import DefaulterEntry, Loan, LoanStatus, Severity

CRITICAL_AFTER_DAYS = 60


def severity_for(days_overdue: int) -> Severity:
    return Severity.critical if days_overdue > CRITICAL_AFTER_DAYS else Severity.watch


def classify(loans: Iterable[Loan], now: date | datetime) -> list[DefaulterEntry]:
    today = now.date() if isinstance(now, datetime) else now

    out: list[DefaulterEntry] = []
    for ln in loans:
        if ln.status != LoanStatus.active or ln.next_due_date is None:
            continue
        if ln.remaining_balance <= Decimal("0"):
            continue
        days = (today - ln.next_due_date).days
        if days <= 0:
            continue
        out.append(
            DefaulterEntry(
                member_id=ln.member_id,
                loan_id=ln.id,
                remaining_balance=ln.remaining_balance,
                days_overdue=days,
                severity=severity_for(days),
            )
        )

    out.sort(key=lambda e: (-e.days_overdue, e.loan_id if e.loan_id is not None else -1))
    return out
