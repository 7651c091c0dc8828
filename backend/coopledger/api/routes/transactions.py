from fastapi import APIRouter, Depends, Query, HTTPException
from datetime import date

from coopledger.api.deps import require_loan, require_member, store
from coopledger.domain.models import TransactionRecord
from coopledger.schemas.transaction import TxCreate, TxOut
from coopledger.services.classification import ingest
from coopledger.services.loans import apply_installment
from coopledger.services.record_store import SqlRecordStore

router = APIRouter(prefix="/societies/{society_id}/members/{member_id}/transactions", tags=["transactions"])


@router.get("", response_model=list[TxOut])
def list_transactions(
    society_id: int,
    member_id: int,
    start: date | None = Query(None),
    end: date | None = Query(None),
    st: SqlRecordStore = Depends(store),
):
    require_member(st, society_id, member_id)
    out = []
    for r in st.list_records(member_id=member_id):
        if start is not None and r.transaction_date < start:
            continue
        if end is not None and r.transaction_date > end:
            continue
        out.append(r)
    return out


@router.post("", response_model=TxOut)
def add_tx(society_id: int, member_id: int, body: TxCreate, st: SqlRecordStore = Depends(store)):
    m = require_member(st, society_id, member_id)

    if not any(
        v is not None and v > 0
        for v in (body.deposit_amount, body.loan_installment_amount, body.interest_amount, body.fine_amount)
    ):
        raise HTTPException(status_code=400, detail="amount_required")

    rec = ingest(
        TransactionRecord(
            id=None,
            member_id=member_id,
            transaction_date=body.transaction_date,
            deposit_amount=body.deposit_amount,
            loan_installment_amount=body.loan_installment_amount,
            interest_amount=body.interest_amount,
            fine_amount=body.fine_amount,
            mode=body.mode,
            loan_reference_id=body.loan_reference_id,
        )
    )

    # Installments against a loan move its balance in the same unit of work.
    updated_loan = None
    if rec.loan_reference_id is not None:
        ln = require_loan(st, m, rec.loan_reference_id)
        if rec.installment > 0:
            updated_loan = apply_installment(ln, rec)

    saved = st.add_record(rec)
    if updated_loan is not None:
        st.save_loan(updated_loan)
    st.commit()
    return saved
