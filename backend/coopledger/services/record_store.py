"""Persistence boundary for the engine.

Engine functions only see the frozen dataclasses from ``coopledger.domain``.
``RecordStore`` is what the batch driver and the HTTP layer talk to;
``SqlRecordStore`` maps it onto the SQLAlchemy rows in ``coopledger.models``.
Stores flush but never commit on their own, the caller owns the unit of work.
"""

from __future__ import annotations

from typing import Protocol

from sqlalchemy import select
from sqlalchemy.orm import Session

from coopledger.domain.models import (
    Loan,
    LoanStatus,
    MaturityRecord,
    MaturityStatus,
    Member,
    TransactionKind,
    TransactionRecord,
)
from coopledger.models.loan import Loan as LoanRow
from coopledger.models.maturity_record import MaturityRecord as MaturityRow
from coopledger.models.member import Member as MemberRow
from coopledger.models.transaction import Transaction as TransactionRow
from coopledger.utils.money import to_dec, to_dec_or_none
from coopledger.utils.timezone import as_local


class RecordStore(Protocol):
    def list_members(self, society_id: int | None = None) -> list[Member]: ...

    def get_member(self, member_id: int) -> Member | None: ...

    def add_member(self, member: Member) -> Member: ...

    def list_records(self, member_id: int | None = None, society_id: int | None = None) -> list[TransactionRecord]: ...

    def add_record(self, record: TransactionRecord) -> TransactionRecord: ...

    def list_loans(self, member_id: int | None = None, society_id: int | None = None) -> list[Loan]: ...

    def get_loan(self, loan_id: int) -> Loan | None: ...

    def save_loan(self, loan: Loan) -> Loan: ...

    def get_maturity(self, member_id: int) -> MaturityRecord | None: ...

    def list_maturity(self, society_id: int | None = None) -> list[MaturityRecord]: ...

    def upsert_maturity(self, record: MaturityRecord) -> MaturityRecord: ...

    def commit(self) -> None: ...

    def rollback(self) -> None: ...


def _member(row: MemberRow) -> Member:
    return Member(
        id=row.id,
        society_id=row.society_id,
        name=row.name,
        phone=row.phone or "",
        join_date=row.join_date,
        status=row.status or "active",
    )


def _record(row: TransactionRow) -> TransactionRecord:
    return TransactionRecord(
        id=row.id,
        member_id=row.member_id,
        transaction_date=row.transaction_date,
        deposit_amount=to_dec_or_none(row.deposit_amount),
        loan_installment_amount=to_dec_or_none(row.loan_installment_amount),
        interest_amount=to_dec_or_none(row.interest_amount),
        fine_amount=to_dec_or_none(row.fine_amount),
        mode=row.mode or "",
        loan_reference_id=row.loan_reference_id,
        kind=TransactionKind(row.kind) if row.kind else None,
        needs_review=bool(row.needs_review),
    )


def _loan(row: LoanRow) -> Loan:
    return Loan(
        id=row.id,
        member_id=row.member_id,
        principal_amount=to_dec(row.principal_amount),
        interest_rate_percent_per_month=to_dec(row.interest_rate_percent_per_month),
        status=LoanStatus(row.status),
        remaining_balance=to_dec(row.remaining_balance),
        disbursed_date=row.disbursed_date,
        next_due_date=row.next_due_date,
    )


def _maturity(row: MaturityRow) -> MaturityRecord:
    return MaturityRecord(
        id=row.id,
        member_id=row.member_id,
        total_deposit=to_dec(row.total_deposit),
        start_date=row.start_date,
        maturity_date=row.maturity_date,
        months_completed=int(row.months_completed),
        remaining_months=int(row.remaining_months),
        monthly_interest_rate=to_dec(row.monthly_interest_rate),
        current_interest=to_dec(row.current_interest),
        full_interest=to_dec(row.full_interest),
        adjusted_interest=to_dec(row.adjusted_interest),
        loan_adjustment=to_dec(row.loan_adjustment),
        manual_override=bool(row.manual_override),
        status=MaturityStatus(row.status),
        claimed_at=as_local(row.claimed_at),
    )


class SqlRecordStore:
    def __init__(self, s: Session):
        self.s = s

    # members

    def list_members(self, society_id: int | None = None) -> list[Member]:
        q = select(MemberRow)
        if society_id is not None:
            q = q.where(MemberRow.society_id == society_id)
        q = q.order_by(MemberRow.id.asc())
        return [_member(r) for r in self.s.execute(q).scalars().all()]

    def get_member(self, member_id: int) -> Member | None:
        row = self.s.get(MemberRow, member_id)
        return _member(row) if row is not None else None

    def add_member(self, member: Member) -> Member:
        row = MemberRow(
            society_id=member.society_id,
            name=member.name,
            phone=member.phone,
            join_date=member.join_date,
            status=member.status,
        )
        self.s.add(row)
        self.s.flush()
        return _member(row)

    # transactions

    def list_records(self, member_id: int | None = None, society_id: int | None = None) -> list[TransactionRecord]:
        q = select(TransactionRow)
        if member_id is not None:
            q = q.where(TransactionRow.member_id == member_id)
        if society_id is not None:
            q = q.join(MemberRow, MemberRow.id == TransactionRow.member_id).where(MemberRow.society_id == society_id)
        q = q.order_by(TransactionRow.transaction_date.asc(), TransactionRow.id.asc())
        return [_record(r) for r in self.s.execute(q).scalars().all()]

    def add_record(self, record: TransactionRecord) -> TransactionRecord:
        row = TransactionRow(
            member_id=record.member_id,
            transaction_date=record.transaction_date,
            deposit_amount=record.deposit_amount,
            loan_installment_amount=record.loan_installment_amount,
            interest_amount=record.interest_amount,
            fine_amount=record.fine_amount,
            mode=record.mode,
            loan_reference_id=record.loan_reference_id,
            kind=record.kind.value if record.kind is not None else None,
            needs_review=record.needs_review,
        )
        self.s.add(row)
        self.s.flush()
        return _record(row)

    # loans

    def list_loans(self, member_id: int | None = None, society_id: int | None = None) -> list[Loan]:
        q = select(LoanRow)
        if member_id is not None:
            q = q.where(LoanRow.member_id == member_id)
        if society_id is not None:
            q = q.join(MemberRow, MemberRow.id == LoanRow.member_id).where(MemberRow.society_id == society_id)
        q = q.order_by(LoanRow.id.asc())
        return [_loan(r) for r in self.s.execute(q).scalars().all()]

    def get_loan(self, loan_id: int) -> Loan | None:
        row = self.s.get(LoanRow, loan_id)
        return _loan(row) if row is not None else None

    def save_loan(self, loan: Loan) -> Loan:
        row = self.s.get(LoanRow, loan.id) if loan.id is not None else None
        if row is None:
            row = LoanRow(member_id=loan.member_id)
            self.s.add(row)
        row.principal_amount = loan.principal_amount
        row.interest_rate_percent_per_month = loan.interest_rate_percent_per_month
        row.status = loan.status.value
        row.remaining_balance = loan.remaining_balance
        row.disbursed_date = loan.disbursed_date
        row.next_due_date = loan.next_due_date
        self.s.flush()
        return _loan(row)

    # maturity

    def get_maturity(self, member_id: int) -> MaturityRecord | None:
        row = self.s.execute(select(MaturityRow).where(MaturityRow.member_id == member_id)).scalar_one_or_none()
        return _maturity(row) if row is not None else None

    def list_maturity(self, society_id: int | None = None) -> list[MaturityRecord]:
        q = select(MaturityRow)
        if society_id is not None:
            q = q.join(MemberRow, MemberRow.id == MaturityRow.member_id).where(MemberRow.society_id == society_id)
        q = q.order_by(MaturityRow.member_id.asc())
        return [_maturity(r) for r in self.s.execute(q).scalars().all()]

    def upsert_maturity(self, record: MaturityRecord) -> MaturityRecord:
        """Insert or update the member's single maturity row.

        Updates go through the row's ``version`` column, so a concurrent write
        for the same member raises ``StaleDataError`` at flush.
        """
        row = self.s.execute(
            select(MaturityRow).where(MaturityRow.member_id == record.member_id)
        ).scalar_one_or_none()
        if row is None:
            row = MaturityRow(member_id=record.member_id)
            self.s.add(row)

        row.total_deposit = record.total_deposit
        row.start_date = record.start_date
        row.maturity_date = record.maturity_date
        row.months_completed = record.months_completed
        row.remaining_months = record.remaining_months
        row.monthly_interest_rate = record.monthly_interest_rate
        row.current_interest = record.current_interest
        row.full_interest = record.full_interest
        row.adjusted_interest = record.adjusted_interest
        row.loan_adjustment = record.loan_adjustment
        row.manual_override = record.manual_override
        row.status = record.status.value
        row.claimed_at = record.claimed_at
        self.s.flush()
        return _maturity(row)

    def commit(self) -> None:
        self.s.commit()

    def rollback(self) -> None:
        self.s.rollback()
