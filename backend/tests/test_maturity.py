from datetime import date, datetime
from decimal import Decimal

import pytest

from coopledger.domain.exceptions import InvalidStateError, ValidationError
from coopledger.domain.models import MaturityStatus, TransactionRecord
from coopledger.services.maturity import (
    add_months,
    apply_override,
    approaching_maturity,
    claim,
    clear_override,
    months_between,
    net_payable,
    project,
    record_changed,
)


def _dep(rid: int, d: date, amount: str, mode: str = "cash", member_id: int = 7, loan_ref=None):
    return TransactionRecord(
        id=rid,
        member_id=member_id,
        transaction_date=d,
        deposit_amount=Decimal(amount),
        mode=mode,
        loan_reference_id=loan_ref,
    )


def _deposits():
    return [
        _dep(1, date(2023, 1, 15), "1000"),
        _dep(2, date(2023, 2, 15), "1000"),
        _dep(3, date(2023, 3, 1), "5000", mode="loan disbursal"),
    ]


def test_projection_values():
    rec = project(_deposits(), None, date(2024, 1, 20))

    assert rec.member_id == 7
    assert rec.total_deposit == Decimal("2000")
    assert rec.start_date == date(2023, 1, 15)
    assert rec.maturity_date == date(2026, 1, 15)
    assert rec.months_completed == 12
    assert rec.remaining_months == 24
    assert rec.monthly_interest_rate == Decimal("0.0333333333")
    assert rec.current_interest == Decimal("800.00")
    assert rec.full_interest == Decimal("240.00")
    assert rec.adjusted_interest == Decimal("240.00")
    assert rec.manual_override is False
    assert rec.status == MaturityStatus.active


def test_projection_is_idempotent():
    now = datetime(2024, 6, 1, 10, 30)
    first = project(_deposits(), None, now)
    second = project(_deposits(), first, now)
    assert second == first
    assert record_changed(first, second) is False
    assert record_changed(None, first) is True


def test_maturity_boundary():
    deposits = [_dep(1, date(2020, 1, 10), "500")]
    assert project(deposits, None, date(2022, 12, 10)).status == MaturityStatus.active
    assert project(deposits, None, date(2022, 12, 10)).months_completed == 35

    matured = project(deposits, None, date(2023, 1, 10))
    assert matured.months_completed == 36
    assert matured.remaining_months == 0
    assert matured.status == MaturityStatus.matured


def test_months_past_tenure_do_not_go_negative():
    rec = project([_dep(1, date(2019, 1, 1), "500")], None, date(2024, 1, 1))
    assert rec.months_completed == 60
    assert rec.remaining_months == 0


def test_sticky_override_survives_recomputation():
    rec = project(_deposits(), None, date(2024, 1, 20))
    overridden = apply_override(rec, Decimal("333.333"))
    assert overridden.adjusted_interest == Decimal("333.33")

    later = project(_deposits() + [_dep(4, date(2024, 2, 1), "1000")], overridden, date(2024, 3, 1))
    assert later.total_deposit == Decimal("3000")
    assert later.full_interest == Decimal("360.00")
    assert later.manual_override is True
    assert later.adjusted_interest == Decimal("333.33")

    cleared = clear_override(later)
    assert cleared.manual_override is False
    assert cleared.adjusted_interest == Decimal("360.00")


def test_override_rejects_negative_amount():
    rec = project(_deposits(), None, date(2024, 1, 20))
    with pytest.raises(ValidationError):
        apply_override(rec, Decimal("-1"))


def test_claim_is_terminal():
    deposits = [_dep(1, date(2020, 1, 10), "500")]
    matured = project(deposits, None, date(2023, 1, 10))
    claimed = claim(matured, datetime(2023, 1, 11, 9, 0))
    assert claimed.status == MaturityStatus.claimed

    again = project(deposits, claimed, date(2024, 1, 10))
    assert again.status == MaturityStatus.claimed
    assert again.claimed_at == datetime(2023, 1, 11, 9, 0)

    with pytest.raises(InvalidStateError):
        claim(claimed, datetime(2023, 2, 1))
    with pytest.raises(InvalidStateError):
        apply_override(claimed, Decimal("10"))


def test_claim_requires_matured_record():
    rec = project(_deposits(), None, date(2024, 1, 20))
    with pytest.raises(InvalidStateError):
        claim(rec, datetime(2024, 1, 21))


def test_no_qualifying_deposits_is_a_validation_error():
    with pytest.raises(ValidationError):
        project([_dep(1, date(2023, 1, 1), "5000", mode="loan disbursal")], None, date(2024, 1, 1))
    with pytest.raises(ValidationError):
        project([], None, date(2024, 1, 1))


def test_deposits_from_two_members_are_rejected():
    deposits = [_dep(1, date(2023, 1, 1), "100"), _dep(2, date(2023, 1, 1), "100", member_id=8)]
    with pytest.raises(ValidationError):
        project(deposits, None, date(2024, 1, 1))


def test_now_before_first_deposit_counts_zero_months():
    rec = project([_dep(1, date(2024, 5, 1), "100")], None, date(2024, 4, 1))
    assert rec.months_completed == 0
    assert rec.current_interest == Decimal("0.00")


def test_loan_adjustment_and_net_payable():
    rec = project(_deposits(), None, date(2024, 1, 20), loan_adjustment=Decimal("500"))
    assert rec.loan_adjustment == Decimal("500.00")
    assert net_payable(rec) == Decimal("1740.00")
    assert rec.current_adjustment == Decimal("-560.00")

    kept = project(_deposits(), rec, date(2024, 1, 20))
    assert kept.loan_adjustment == Decimal("500.00")


def test_calendar_month_arithmetic():
    assert add_months(date(2023, 1, 31), 1) == date(2023, 2, 28)
    assert add_months(date(2024, 2, 29), 36) == date(2027, 2, 28)
    assert months_between(date(2023, 1, 31), date(2023, 2, 28)) == 0
    assert months_between(date(2023, 1, 31), date(2023, 3, 1)) == 1


def test_approaching_maturity_window():
    soon = project([_dep(1, date(2021, 3, 1), "100", member_id=1)], None, date(2024, 1, 1))
    later = project([_dep(2, date(2022, 3, 1), "100", member_id=2)], None, date(2024, 1, 1))
    done = project([_dep(3, date(2020, 1, 1), "100", member_id=3)], None, date(2024, 1, 1))

    out = approaching_maturity([later, soon, done], date(2024, 1, 1), within_months=3)
    assert [r.member_id for r in out] == [1]
