"""Report-ready roll-ups built from ledger days, loans and maturity records.

Everything here is a pure aggregation and never raises: missing inputs just
contribute zero.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Iterable, Sequence

from coopledger.domain.exceptions import EngineError
from coopledger.domain.models import (
    CashbookDay,
    LedgerDay,
    Loan,
    LoanStatus,
    MaturityRecord,
    MaturityStatus,
    Member,
    MemberSummary,
    TransactionRecord,
)
from coopledger.services.classification import qualifying_deposits
from coopledger.services.ledger import build_ledger
from coopledger.services.loans import replay_installments
from coopledger.services.maturity import FULL_INTEREST_RATE, TENURE_MONTHS, net_payable
from coopledger.utils.money import d2

ZERO = Decimal("0")
DISBURSED = (LoanStatus.active, LoanStatus.closed)


@dataclass(frozen=True)
class SocietySummary:
    deposits: Decimal
    interest_income: Decimal
    fine_income: Decimal
    loans_issued: Decimal
    loans_outstanding: Decimal
    loans_recovered: Decimal
    active_loan_count: int
    maturity_liability: Decimal = ZERO


@dataclass(frozen=True)
class ChannelBalances:
    cash: Decimal
    bank: Decimal
    upi: Decimal


@dataclass(frozen=True)
class MaturityProjection:
    member_id: int
    member_name: str
    join_date: date | None
    current_deposit: Decimal
    target_deposit: Decimal
    projected_interest: Decimal
    maturity_amount: Decimal
    outstanding_loan: Decimal
    net_payable: Decimal


def _sum(values: Iterable[Decimal]) -> Decimal:
    return sum(values, ZERO)


def _outstanding(loans: Iterable[Loan]) -> Decimal:
    return _sum(ln.remaining_balance for ln in loans if ln.status == LoanStatus.active)


def summarize(
    member: Member,
    ledger_days: Sequence[LedgerDay] | None,
    loans: Sequence[Loan] | None,
    maturity: MaturityRecord | None = None,
    records: Sequence[TransactionRecord] | None = None,
) -> MemberSummary:
    ledger_days = ledger_days or []
    loans = [ln for ln in (loans or []) if ln.member_id == member.id]
    records = records or []

    total_deposits = _sum(d.deposit_total for d in ledger_days)
    fine_paid = _sum(d.fine_total for d in ledger_days)
    loan_taken = _sum(ln.principal_amount for ln in loans if ln.status in DISBURSED)
    active_balance = _outstanding(loans)

    principal_paid = ZERO
    interest_paid = ZERO
    for ln in loans:
        try:
            rp = replay_installments(ln, records)
        except EngineError:
            continue
        principal_paid += rp.principal_paid
        interest_paid += rp.interest_paid

    return MemberSummary(
        member_id=member.id,
        total_deposits=total_deposits,
        loan_taken=loan_taken,
        principal_paid=principal_paid,
        interest_paid=interest_paid,
        fine_paid=fine_paid,
        active_loan_balance=active_balance,
        net_worth=total_deposits - active_balance + interest_paid,
        maturity_status=maturity.status if maturity is not None else None,
        net_payable=net_payable(maturity) if maturity is not None else None,
    )


def summarize_society(
    ledger_days: Sequence[LedgerDay],
    loans: Sequence[Loan],
    maturity: Sequence[MaturityRecord] | None = None,
) -> SocietySummary:
    issued = _sum(ln.principal_amount for ln in loans if ln.status in DISBURSED)
    outstanding = _outstanding(loans)
    return SocietySummary(
        deposits=_sum(d.deposit_total for d in ledger_days),
        interest_income=_sum(d.interest_total for d in ledger_days),
        fine_income=_sum(d.fine_total for d in ledger_days),
        loans_issued=issued,
        loans_outstanding=outstanding,
        loans_recovered=issued - outstanding,
        active_loan_count=sum(1 for ln in loans if ln.status == LoanStatus.active and ln.remaining_balance > 0),
        # interest still owed to members who have not claimed yet
        maturity_liability=_sum(m.adjusted_interest for m in (maturity or []) if m.status != MaturityStatus.claimed),
    )


def channel_balances(cashbook: Iterable[CashbookDay]) -> ChannelBalances:
    cash = bank = upi = ZERO
    for c in cashbook:
        cash += c.cash_in - c.cash_out
        bank += c.bank_in - c.bank_out
        upi += c.upi_in - c.upi_out
    return ChannelBalances(cash=cash, bank=bank, upi=upi)


def member_reports(
    members: Sequence[Member],
    records: Sequence[TransactionRecord],
    loans: Sequence[Loan],
    maturity: Sequence[MaturityRecord] | None = None,
) -> list[MemberSummary]:
    """One summary per member, in the order given."""
    by_member: dict[int, list[TransactionRecord]] = {}
    for r in records:
        by_member.setdefault(r.member_id, []).append(r)
    maturity_by_member = {m.member_id: m for m in (maturity or [])}

    out = []
    for m in members:
        own = by_member.get(m.id, [])
        out.append(summarize(m, build_ledger(own), loans, maturity=maturity_by_member.get(m.id), records=own))
    return out


def maturity_projection(
    member: Member,
    records: Sequence[TransactionRecord],
    loans: Sequence[Loan],
    maturity: MaturityRecord | None = None,
) -> MaturityProjection:
    deposits = sorted(
        qualifying_deposits(r for r in records if r.member_id == member.id),
        key=lambda r: (r.transaction_date, r.id if r.id is not None else -1),
    )
    # The first deposit sets the monthly instalment the member committed to.
    monthly = deposits[0].deposit if deposits else ZERO
    target = monthly * TENURE_MONTHS
    if maturity is not None and maturity.manual_override:
        projected = maturity.adjusted_interest
    else:
        projected = d2(target * FULL_INTEREST_RATE)

    maturity_amount = target + projected
    outstanding = _outstanding(ln for ln in loans if ln.member_id == member.id)

    return MaturityProjection(
        member_id=member.id,
        member_name=member.name,
        join_date=member.join_date,
        current_deposit=_sum(r.deposit for r in deposits),
        target_deposit=target,
        projected_interest=projected,
        maturity_amount=maturity_amount,
        outstanding_loan=outstanding,
        net_payable=maturity_amount - outstanding,
    )
