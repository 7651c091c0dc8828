from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from coopledger.api.deps import db, require_member, store
from coopledger.domain.models import MaturityRecord, Member
from coopledger.schemas.maturity import BatchResultOut, MaturityOut, MaturityOverrideIn
from coopledger.services import maturity as engine
from coopledger.services.audit import log_event
from coopledger.services.classification import qualifying_deposits
from coopledger.services.maturity_batch import run_maturity_batch
from coopledger.services.record_store import SqlRecordStore
from coopledger.utils.timezone import now_local

router = APIRouter(prefix="/societies/{society_id}", tags=["maturity"])


def _out(r: MaturityRecord) -> MaturityOut:
    return MaturityOut(
        member_id=r.member_id,
        total_deposit=float(r.total_deposit),
        start_date=r.start_date,
        maturity_date=r.maturity_date,
        months_completed=r.months_completed,
        remaining_months=r.remaining_months,
        monthly_interest_rate=float(r.monthly_interest_rate),
        current_interest=float(r.current_interest),
        full_interest=float(r.full_interest),
        adjusted_interest=float(r.adjusted_interest),
        current_adjustment=float(r.current_adjustment),
        loan_adjustment=float(r.loan_adjustment),
        net_payable=float(engine.net_payable(r)),
        manual_override=r.manual_override,
        status=r.status,
        claimed_at=r.claimed_at,
    )


def _current(st: SqlRecordStore, m: Member) -> MaturityRecord:
    """Stored record brought up to date with today's deposits."""
    existing = st.get_maturity(m.id)
    deposits = qualifying_deposits(st.list_records(member_id=m.id))
    if not deposits:
        if existing is None:
            raise HTTPException(status_code=404, detail="maturity_not_found")
        return existing
    return engine.project(deposits, existing, now_local())


@router.get("/maturity", response_model=list[MaturityOut])
def list_maturity(society_id: int, st: SqlRecordStore = Depends(store)):
    return [_out(r) for r in st.list_maturity(society_id)]


@router.get("/maturity/approaching", response_model=list[MaturityOut])
def approaching(
    society_id: int,
    within_months: int = Query(3, ge=0, le=36),
    st: SqlRecordStore = Depends(store),
):
    return [_out(r) for r in engine.approaching_maturity(st.list_maturity(society_id), now_local(), within_months)]


@router.post("/maturity/run", response_model=BatchResultOut)
def run_batch(society_id: int, st: SqlRecordStore = Depends(store)):
    return run_maturity_batch(st, now_local(), society_id)


@router.get("/members/{member_id}/maturity", response_model=MaturityOut)
def member_maturity(society_id: int, member_id: int, st: SqlRecordStore = Depends(store)):
    require_member(st, society_id, member_id)
    r = st.get_maturity(member_id)
    if r is None:
        raise HTTPException(status_code=404, detail="maturity_not_found")
    return _out(r)


@router.post("/members/{member_id}/maturity/override", response_model=MaturityOut)
def override(
    society_id: int,
    member_id: int,
    body: MaturityOverrideIn,
    st: SqlRecordStore = Depends(store),
    s: Session = Depends(db),
):
    m = require_member(st, society_id, member_id)
    before = _current(st, m)
    r = st.upsert_maturity(engine.apply_override(before, body.adjusted_interest))
    st.commit()

    log_event(
        s,
        actor=body.actor,
        action="maturity.override",
        entity_type="maturity",
        entity_id=r.id,
        society_id=society_id,
        details={
            "member_id": member_id,
            "from": str(before.adjusted_interest),
            "to": str(r.adjusted_interest),
            "full_interest": str(r.full_interest),
        },
    )
    return _out(r)


@router.post("/members/{member_id}/maturity/claim", response_model=MaturityOut)
def claim(
    society_id: int,
    member_id: int,
    actor: str = Query("staff"),
    st: SqlRecordStore = Depends(store),
    s: Session = Depends(db),
):
    m = require_member(st, society_id, member_id)
    r = st.upsert_maturity(engine.claim(_current(st, m), now_local()))
    st.commit()

    log_event(
        s,
        actor=actor,
        action="maturity.claim",
        entity_type="maturity",
        entity_id=r.id,
        society_id=society_id,
        details={"member_id": member_id, "net_payable": str(engine.net_payable(r))},
    )
    return _out(r)


@router.delete("/members/{member_id}/maturity/override", response_model=MaturityOut)
def clear_override(
    society_id: int,
    member_id: int,
    actor: str = Query("staff"),
    st: SqlRecordStore = Depends(store),
    s: Session = Depends(db),
):
    m = require_member(st, society_id, member_id)
    before = _current(st, m)
    r = st.upsert_maturity(engine.clear_override(before))
    st.commit()

    log_event(
        s,
        actor=actor,
        action="maturity.override_clear",
        entity_type="maturity",
        entity_id=r.id,
        society_id=society_id,
        details={"member_id": member_id, "from": str(before.adjusted_interest), "to": str(r.adjusted_interest)},
    )
    return _out(r)
