from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from coopledger.api.deps import db, require_loan, require_member, store
from coopledger.domain.models import Loan, LoanStatus, TransactionRecord
from coopledger.schemas.loan import LoanCreate, LoanOut
from coopledger.services import loans as engine
from coopledger.services.audit import log_event
from coopledger.services.classification import ingest, qualifying_deposit_total
from coopledger.services.record_store import SqlRecordStore
from coopledger.utils.timezone import now_local

router = APIRouter(prefix="/societies/{society_id}/members/{member_id}/loans", tags=["loans"])

DISBURSAL_MODE = "loan disbursal"


@router.get("", response_model=list[LoanOut])
def list_loans(society_id: int, member_id: int, st: SqlRecordStore = Depends(store)):
    require_member(st, society_id, member_id)
    return st.list_loans(member_id=member_id)


@router.post("", response_model=LoanOut)
def create_loan(
    society_id: int,
    member_id: int,
    body: LoanCreate,
    actor: str = Query("staff"),
    st: SqlRecordStore = Depends(store),
    s: Session = Depends(db),
):
    require_member(st, society_id, member_id)

    total = qualifying_deposit_total(st.list_records(member_id=member_id))
    check = engine.check_loan_request(
        body.principal_amount,
        total,
        active_loans=st.list_loans(member_id=member_id),
        override=body.override,
    )
    if not check.approved:
        raise HTTPException(status_code=400, detail=check.error)

    ln = st.save_loan(
        Loan(
            id=None,
            member_id=member_id,
            principal_amount=body.principal_amount,
            interest_rate_percent_per_month=body.interest_rate_percent_per_month,
            status=LoanStatus.pending,
        )
    )
    st.commit()

    log_event(
        s,
        actor=actor,
        action="loan.create",
        entity_type="loan",
        entity_id=ln.id,
        society_id=society_id,
        details={
            "member_id": member_id,
            "principal_amount": str(ln.principal_amount),
            "max_loan_amount": str(check.max_loan_amount),
            "override": body.override,
        },
    )
    return ln


@router.post("/{loan_id}/disburse", response_model=LoanOut)
def disburse_loan(
    society_id: int,
    member_id: int,
    loan_id: int,
    actor: str = Query("staff"),
    st: SqlRecordStore = Depends(store),
    s: Session = Depends(db),
):
    m = require_member(st, society_id, member_id)
    ln = engine.disburse(require_loan(st, m, loan_id), now_local())

    ln = st.save_loan(ln)
    st.add_record(
        ingest(
            TransactionRecord(
                id=None,
                member_id=member_id,
                transaction_date=ln.disbursed_date,
                deposit_amount=ln.principal_amount,
                mode=DISBURSAL_MODE,
                loan_reference_id=ln.id,
            )
        )
    )
    st.commit()

    log_event(
        s,
        actor=actor,
        action="loan.disburse",
        entity_type="loan",
        entity_id=ln.id,
        society_id=society_id,
        details={"member_id": member_id, "principal_amount": str(ln.principal_amount), "date": str(ln.disbursed_date)},
    )
    return ln


@router.post("/{loan_id}/reject", response_model=LoanOut)
def reject_loan(
    society_id: int,
    member_id: int,
    loan_id: int,
    actor: str = Query("staff"),
    st: SqlRecordStore = Depends(store),
    s: Session = Depends(db),
):
    m = require_member(st, society_id, member_id)
    ln = st.save_loan(engine.reject(require_loan(st, m, loan_id)))
    st.commit()

    log_event(s, actor=actor, action="loan.reject", entity_type="loan", entity_id=ln.id, society_id=society_id)
    return ln


@router.post("/{loan_id}/close", response_model=LoanOut)
def close_loan(
    society_id: int,
    member_id: int,
    loan_id: int,
    actor: str = Query("staff"),
    st: SqlRecordStore = Depends(store),
    s: Session = Depends(db),
):
    m = require_member(st, society_id, member_id)
    before = require_loan(st, m, loan_id)
    ln = st.save_loan(engine.close(before))
    st.commit()

    log_event(
        s,
        actor=actor,
        action="loan.close",
        entity_type="loan",
        entity_id=ln.id,
        society_id=society_id,
        details={"balance_written_off": str(before.remaining_balance)},
    )
    return ln
