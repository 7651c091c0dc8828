from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm.exc import StaleDataError

from coopledger.core.config import settings
from coopledger.db.session import SessionLocal
from coopledger.domain.models import LoanStatus, Member
from coopledger.services.classification import qualifying_deposits
from coopledger.services.maturity import project, record_changed
from coopledger.services.record_store import RecordStore, SqlRecordStore
from coopledger.utils.timezone import now_local

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


@dataclass
class BatchResult:
    processed: int = 0
    created: int = 0
    updated: int = 0
    unchanged: int = 0
    skipped: int = 0
    failed: int = 0
    failed_member_ids: list[int] = field(default_factory=list)


def _outstanding_for(store: RecordStore, member_id: int) -> Decimal:
    loans = store.list_loans(member_id=member_id)
    return sum((ln.remaining_balance for ln in loans if ln.status == LoanStatus.active), ZERO)


def _refresh_member(store: RecordStore, member: Member, now: datetime) -> str:
    deposits = qualifying_deposits(store.list_records(member_id=member.id))
    if not deposits:
        return "skipped"

    existing = store.get_maturity(member.id)
    fresh = project(deposits, existing, now, loan_adjustment=_outstanding_for(store, member.id))
    if not record_changed(existing, fresh):
        return "unchanged"

    store.upsert_maturity(fresh)
    store.commit()
    return "created" if existing is None else "updated"


def run_maturity_batch(store: RecordStore, now: datetime, society_id: int | None = None) -> BatchResult:
    """Recompute every member's maturity record.

    Members without qualifying deposits are skipped. A member whose row was
    written concurrently is re-read and recomputed once; any other failure is
    logged and counted, and the batch moves on to the next member.
    """
    result = BatchResult()

    for member in store.list_members(society_id):
        result.processed += 1
        try:
            try:
                outcome = _refresh_member(store, member, now)
            except (StaleDataError, IntegrityError):
                store.rollback()
                logger.info("maturity row for member %s changed underneath us; retrying", member.id)
                outcome = _refresh_member(store, member, now)
        except Exception:
            store.rollback()
            logging.exception("maturity batch failed for member %s", member.id)
            result.failed += 1
            result.failed_member_ids.append(member.id)
            continue

        setattr(result, outcome, getattr(result, outcome) + 1)

    logger.info(
        "maturity batch done: processed=%s created=%s updated=%s unchanged=%s skipped=%s failed=%s",
        result.processed,
        result.created,
        result.updated,
        result.unchanged,
        result.skipped,
        result.failed,
    )
    return result


def run_maturity_batch_once() -> BatchResult:
    with SessionLocal() as s:
        return run_maturity_batch(SqlRecordStore(s), now_local())


async def maturity_batch_loop() -> None:
    if not settings.maturity_batch_enabled:
        return

    interval = int(settings.maturity_batch_interval_seconds or 86400)
    await asyncio.sleep(3)

    while True:
        try:
            await asyncio.to_thread(run_maturity_batch_once)
        except Exception as e:
            logging.exception("maturity_batch failed", exc_info=e)

        await asyncio.sleep(max(60, interval))
