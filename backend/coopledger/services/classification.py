"""Deposit classification.

Decides whether a passbook record belongs to a loan (disbursal or
repayment) or is a member's own savings deposit. Only savings deposits count
toward the qualifying total, which in turn caps loan principal at 80%.

The ``mode`` column is a free-text channel label typed by society staff, so
classification is a heuristic. It runs once at ingestion (``ingest``) and the
result is stored on the record as a ``TransactionKind``. ``is_loan_related``
always applies the keyword rule; a stored loan kind can only add to it.
"""

from __future__ import annotations

import dataclasses
import logging
import re
import warnings
from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable

from coopledger.domain.exceptions import ClassificationAmbiguity
from coopledger.domain.models import TransactionKind, TransactionRecord
from coopledger.utils.money import d2

logger = logging.getLogger(__name__)

LOAN_KEYWORDS = ("loan", "disbursal", "approved")
LOAN_TO_DEPOSIT_RATIO = Decimal("0.80")

# Words staff use for payment channels and entry types. A mode made only of
# other words is not something we can place.
_CHANNEL_WORDS = {
    "cash": "cash",
    "upi": "upi",
    "online": "upi",
    "gpay": "upi",
    "phonepe": "upi",
    "paytm": "upi",
    "bank": "bank",
    "cheque": "bank",
    "neft": "bank",
    "rtgs": "bank",
    "imps": "bank",
    "transfer": "bank",
}
_ENTRY_WORDS = {
    "deposit",
    "savings",
    "saving",
    "monthly",
    "emi",
    "installment",
    "instalment",
    "interest",
    "fine",
    "penalty",
    "donation",
    "maturity",
    "claim",
    "payment",
}

_TOKEN = re.compile(r"[a-z0-9]+")


@dataclass(frozen=True)
class Classification:
    loan_related: bool
    kind: TransactionKind
    ambiguous: bool = False
    reason: str | None = None


def _tokens(mode: str) -> list[str]:
    return _TOKEN.findall((mode or "").lower())


def _keyword_match(mode: str) -> tuple[bool, bool]:
    """Return (matched, subword_only) for the loan keywords.

    Any occurrence of a keyword counts as a match. ``subword_only`` is set when
    no token starts with a keyword, e.g. "Sloane Bank" or "preapproved".
    """
    m = (mode or "").lower()
    matched = any(k in m for k in LOAN_KEYWORDS)
    if not matched:
        return False, False
    whole = any(t.startswith(k) for t in _tokens(m) for k in LOAN_KEYWORDS)
    return True, not whole


def _is_known_vocabulary(mode: str) -> bool:
    toks = _tokens(mode)
    if not toks:
        return True
    return any(t in _CHANNEL_WORDS or t in _ENTRY_WORDS for t in toks)


def normalize_channel(mode: str) -> str:
    """Map a free-text mode onto cash / upi / bank. Unknown modes count as cash."""
    for t in _tokens(mode):
        ch = _CHANNEL_WORDS.get(t)
        if ch is not None:
            return ch
    return "cash"


def _kind_for(record: TransactionRecord, loan_related: bool) -> TransactionKind:
    if loan_related:
        if record.installment > 0:
            return TransactionKind.emi
        if record.deposit > 0:
            return TransactionKind.loan_disbursement
        return TransactionKind.loan_charge
    if "donation" in _tokens(record.mode):
        return TransactionKind.donation
    if record.deposit > 0:
        return TransactionKind.deposit
    if record.interest > 0:
        return TransactionKind.interest
    if record.fine > 0:
        return TransactionKind.fine
    return TransactionKind.other


def classify_record(record: TransactionRecord) -> Classification:
    """Run the text heuristic. Ignores any kind already stored on the record."""
    if record.loan_reference_id is not None:
        return Classification(loan_related=True, kind=_kind_for(record, True))

    matched, subword_only = _keyword_match(record.mode)
    if subword_only:
        return Classification(
            loan_related=True,
            kind=_kind_for(record, True),
            ambiguous=True,
            reason=f"loan keyword inside another word in mode {record.mode!r}",
        )
    if matched:
        return Classification(loan_related=True, kind=_kind_for(record, True))

    if not _is_known_vocabulary(record.mode):
        return Classification(
            loan_related=False,
            kind=_kind_for(record, False),
            ambiguous=True,
            reason=f"unrecognised mode {record.mode!r}",
        )

    return Classification(loan_related=False, kind=_kind_for(record, False))


def is_loan_related(record: TransactionRecord) -> bool:
    """A linked loan or a keyword anywhere in the mode makes a record loan-related.

    A stored loan kind also counts, so a record staff re-filed against a loan
    stays out of the savings total even when its mode reads like a deposit.
    """
    if record.loan_reference_id is not None:
        return True
    if record.kind is not None and record.kind.loan_related:
        return True
    return _keyword_match(record.mode)[0]


def ingest(record: TransactionRecord) -> TransactionRecord:
    """Stamp a freshly received record with its kind and review flag."""
    c = classify_record(record)
    if c.ambiguous:
        treated = "loan-related" if c.loan_related else "not loan-related"
        msg = f"member {record.member_id} record {record.id}: {c.reason}; treated as {treated}"
        logger.warning(msg)
        warnings.warn(msg, ClassificationAmbiguity, stacklevel=2)
    return dataclasses.replace(record, kind=c.kind, needs_review=c.ambiguous)


def qualifying_deposits(records: Iterable[TransactionRecord]) -> list[TransactionRecord]:
    return [r for r in records if r.deposit > 0 and not is_loan_related(r)]


def qualifying_deposit_total(records: Iterable[TransactionRecord]) -> Decimal:
    return sum((r.deposit for r in qualifying_deposits(records)), Decimal("0"))


def eighty_percent_limit(qualifying_total: Decimal) -> Decimal:
    return d2(qualifying_total * LOAN_TO_DEPOSIT_RATIO)
