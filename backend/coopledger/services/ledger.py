from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Iterable, Sequence

from coopledger.domain.models import CashbookDay, LedgerDay, TransactionRecord
from coopledger.services.classification import is_loan_related, normalize_channel

ZERO = Decimal("0")


@dataclass
class _DayTotals:
    deposit: Decimal = ZERO
    emi: Decimal = ZERO
    loan_out: Decimal = ZERO
    interest: Decimal = ZERO
    fine: Decimal = ZERO


@dataclass
class _ChannelTotals:
    inflow: dict[str, Decimal] = field(default_factory=lambda: {"cash": ZERO, "bank": ZERO, "upi": ZERO})
    outflow: dict[str, Decimal] = field(default_factory=lambda: {"cash": ZERO, "bank": ZERO, "upi": ZERO})


def _sorted_records(records: Iterable[TransactionRecord]) -> list[TransactionRecord]:
    return sorted(records, key=lambda r: (r.transaction_date, r.id if r.id is not None else -1))


def _group_by_day(records: Iterable[TransactionRecord]) -> dict[date, list[TransactionRecord]]:
    tx_by_day: dict[date, list[TransactionRecord]] = {}
    for r in _sorted_records(records):
        tx_by_day.setdefault(r.transaction_date, []).append(r)
    return tx_by_day


def _apply_record(t: _DayTotals, r: TransactionRecord) -> None:
    # A loan-related "deposit" is the disbursal credited to the member: cash leaving the society.
    if is_loan_related(r):
        t.loan_out += r.deposit
    else:
        t.deposit += r.deposit
    t.emi += r.installment
    t.interest += r.interest
    t.fine += r.fine


def build_ledger(records: Iterable[TransactionRecord]) -> list[LedgerDay]:
    tx_by_day = _group_by_day(records)

    rows: list[LedgerDay] = []
    running = ZERO
    for day in sorted(tx_by_day.keys()):
        t = _DayTotals()
        for r in tx_by_day[day]:
            _apply_record(t, r)

        cash_in = t.deposit + t.emi + t.interest + t.fine
        cash_out = t.loan_out
        net = cash_in - cash_out
        running = running + net

        rows.append(
            LedgerDay(
                date=day,
                deposit_total=t.deposit,
                emi_total=t.emi,
                loan_disbursed_total=t.loan_out,
                interest_total=t.interest,
                fine_total=t.fine,
                cash_in=cash_in,
                cash_out=cash_out,
                net_flow=net,
                running_balance=running,
            )
        )

    return rows


def window(days: Sequence[LedgerDay], start: date | None = None, end: date | None = None) -> list[LedgerDay]:
    """Slice a full ledger to a date range; running balances keep their prior history."""
    out = []
    for d in days:
        if start is not None and d.date < start:
            continue
        if end is not None and d.date > end:
            continue
        out.append(d)
    return out


def build_cashbook(records: Iterable[TransactionRecord]) -> list[CashbookDay]:
    """Daily cash-in/cash-out split by payment channel with a closing balance."""
    tx_by_day = _group_by_day(records)

    rows: list[CashbookDay] = []
    closing = ZERO
    for day in sorted(tx_by_day.keys()):
        ch = _ChannelTotals()
        for r in tx_by_day[day]:
            channel = normalize_channel(r.mode)
            if is_loan_related(r):
                ch.outflow[channel] += r.deposit
                ch.inflow[channel] += r.installment + r.interest + r.fine
            else:
                ch.inflow[channel] += r.deposit + r.installment + r.interest + r.fine

        closing = closing + sum(ch.inflow.values(), ZERO) - sum(ch.outflow.values(), ZERO)
        rows.append(
            CashbookDay(
                date=day,
                cash_in=ch.inflow["cash"],
                cash_out=ch.outflow["cash"],
                bank_in=ch.inflow["bank"],
                bank_out=ch.outflow["bank"],
                upi_in=ch.inflow["upi"],
                upi_out=ch.outflow["upi"],
                closing=closing,
            )
        )

    return rows
