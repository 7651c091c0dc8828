from __future__ import annotations

import dataclasses
from datetime import date, datetime
from decimal import Decimal
from typing import Iterable, Sequence

from dateutil.relativedelta import relativedelta

from coopledger.domain.exceptions import InvalidStateError, ValidationError
from coopledger.domain.models import MaturityRecord, MaturityStatus, TransactionRecord
from coopledger.services.classification import qualifying_deposits
from coopledger.utils.money import d2

ZERO = Decimal("0")
TENURE_MONTHS = 36
FULL_INTEREST_RATE = Decimal("0.12")
# Flat monthly accrual factor used for the running interest figure.
MONTHLY_INTEREST_RATE = Decimal("0.0333333333")


def _as_date(v: date | datetime) -> date:
    return v.date() if isinstance(v, datetime) else v


def add_months(d: date, months: int) -> date:
    return d + relativedelta(months=months)


def months_between(start: date, now: date | datetime) -> int:
    day = _as_date(now)
    if day < start:
        return 0
    rd = relativedelta(day, start)
    return rd.years * 12 + rd.months


def project(
    member_deposits: Iterable[TransactionRecord],
    existing: MaturityRecord | None,
    now: date | datetime,
    *,
    loan_adjustment: Decimal | None = None,
) -> MaturityRecord:
    deposits = qualifying_deposits(member_deposits)
    if not deposits:
        raise ValidationError("member has no qualifying deposits")

    member_ids = {r.member_id for r in deposits}
    if len(member_ids) != 1:
        raise ValidationError("deposits belong to more than one member")
    member_id = member_ids.pop()
    if existing is not None and existing.member_id != member_id:
        raise ValidationError(f"existing maturity record belongs to member {existing.member_id}")

    total = sum((r.deposit for r in deposits), ZERO)
    start = min(r.transaction_date for r in deposits)
    months = months_between(start, now)

    current_interest = d2(total * MONTHLY_INTEREST_RATE * Decimal(months))
    full_interest = d2(total * FULL_INTEREST_RATE)

    override = existing is not None and existing.manual_override
    adjusted = existing.adjusted_interest if override else full_interest

    if loan_adjustment is None:
        loan_adjustment = existing.loan_adjustment if existing is not None else ZERO

    claimed_at = existing.claimed_at if existing is not None else None
    if claimed_at is not None:
        status = MaturityStatus.claimed
    elif months >= TENURE_MONTHS:
        status = MaturityStatus.matured
    else:
        status = MaturityStatus.active

    return MaturityRecord(
        id=existing.id if existing is not None else None,
        member_id=member_id,
        total_deposit=total,
        start_date=start,
        maturity_date=add_months(start, TENURE_MONTHS),
        months_completed=months,
        remaining_months=max(0, TENURE_MONTHS - months),
        monthly_interest_rate=MONTHLY_INTEREST_RATE,
        current_interest=current_interest,
        full_interest=full_interest,
        adjusted_interest=adjusted,
        loan_adjustment=d2(loan_adjustment),
        manual_override=override,
        status=status,
        claimed_at=claimed_at,
    )


def record_changed(old: MaturityRecord | None, new: MaturityRecord) -> bool:
    return old is None or old != new


def apply_override(record: MaturityRecord, adjusted_interest: Decimal) -> MaturityRecord:
    if adjusted_interest < 0:
        raise ValidationError("adjusted_interest must be non-negative")
    if record.status == MaturityStatus.claimed:
        raise InvalidStateError(f"maturity for member {record.member_id} is already claimed")
    return dataclasses.replace(record, manual_override=True, adjusted_interest=d2(adjusted_interest))


def clear_override(record: MaturityRecord) -> MaturityRecord:
    if record.status == MaturityStatus.claimed:
        raise InvalidStateError(f"maturity for member {record.member_id} is already claimed")
    return dataclasses.replace(record, manual_override=False, adjusted_interest=record.full_interest)


def claim(record: MaturityRecord, now: datetime) -> MaturityRecord:
    if record.status == MaturityStatus.claimed:
        raise InvalidStateError(f"maturity for member {record.member_id} is already claimed")
    if record.status != MaturityStatus.matured:
        raise InvalidStateError(f"maturity for member {record.member_id} has not matured")
    return dataclasses.replace(record, status=MaturityStatus.claimed, claimed_at=now)


def net_payable(record: MaturityRecord) -> Decimal:
    return record.total_deposit + record.adjusted_interest - record.loan_adjustment


def approaching_maturity(
    records: Sequence[MaturityRecord],
    now: date | datetime,
    within_months: int = 3,
) -> list[MaturityRecord]:
    horizon = add_months(_as_date(now), within_months)
    out = [r for r in records if r.status == MaturityStatus.active and r.maturity_date <= horizon]
    out.sort(key=lambda r: (r.maturity_date, r.member_id))
    return out
