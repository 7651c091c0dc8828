from fastapi import APIRouter, Depends

from coopledger.api.deps import require_member, store
from coopledger.schemas.summary import MemberSummaryOut, SocietySummaryOut
from coopledger.services.ledger import build_ledger
from coopledger.services.record_store import SqlRecordStore
from coopledger.services.summary import summarize, summarize_society

router = APIRouter(prefix="/societies/{society_id}", tags=["summary"])


@router.get("/members/{member_id}/summary", response_model=MemberSummaryOut)
def member_summary(society_id: int, member_id: int, st: SqlRecordStore = Depends(store)):
    m = require_member(st, society_id, member_id)
    records = st.list_records(member_id=member_id)
    return summarize(
        m,
        build_ledger(records),
        st.list_loans(member_id=member_id),
        maturity=st.get_maturity(member_id),
        records=records,
    )


@router.get("/summary", response_model=SocietySummaryOut)
def society_summary(society_id: int, st: SqlRecordStore = Depends(store)):
    return summarize_society(
        build_ledger(st.list_records(society_id=society_id)),
        st.list_loans(society_id=society_id),
        st.list_maturity(society_id),
    )
