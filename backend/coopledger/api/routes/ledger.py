from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from datetime import date

from coopledger.api.deps import require_member, store
from coopledger.schemas.ledger import CashbookRow, LedgerRow
from coopledger.services.ledger import build_cashbook, build_ledger, window
from coopledger.services.record_store import SqlRecordStore

router = APIRouter(prefix="/societies/{society_id}", tags=["ledger"])


@router.get("/ledger", response_model=list[LedgerRow])
def society_ledger(
    society_id: int,
    start: date | None = Query(None),
    end: date | None = Query(None),
    st: SqlRecordStore = Depends(store),
):
    # Build from the full history so running balances stay correct inside a window.
    return window(build_ledger(st.list_records(society_id=society_id)), start, end)


@router.get("/members/{member_id}/ledger", response_model=list[LedgerRow])
def member_ledger(
    society_id: int,
    member_id: int,
    start: date | None = Query(None),
    end: date | None = Query(None),
    st: SqlRecordStore = Depends(store),
):
    require_member(st, society_id, member_id)
    return window(build_ledger(st.list_records(member_id=member_id)), start, end)


@router.get("/cashbook", response_model=list[CashbookRow])
def cashbook(
    society_id: int,
    start: date | None = Query(None),
    end: date | None = Query(None),
    st: SqlRecordStore = Depends(store),
):
    rows = build_cashbook(st.list_records(society_id=society_id))
    return [r for r in rows if (start is None or r.date >= start) and (end is None or r.date <= end)]
