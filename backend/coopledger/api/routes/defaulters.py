from fastapi import APIRouter, Depends

from coopledger.api.deps import store
from coopledger.schemas.loan import DefaulterOut
from coopledger.services.defaulters import classify
from coopledger.services.record_store import SqlRecordStore
from coopledger.utils.timezone import now_local

router = APIRouter(prefix="/societies/{society_id}/defaulters", tags=["defaulters"])


@router.get("", response_model=list[DefaulterOut])
def list_defaulters(society_id: int, st: SqlRecordStore = Depends(store)):
    members = {m.id: m for m in st.list_members(society_id)}
    out = []
    for e in classify(st.list_loans(society_id=society_id), now_local()):
        m = members.get(e.member_id)
        out.append(
            DefaulterOut(
                member_id=e.member_id,
                member_name=m.name if m else None,
                phone=m.phone if m else None,
                loan_id=e.loan_id,
                remaining_balance=float(e.remaining_balance),
                days_overdue=e.days_overdue,
                severity=e.severity,
            )
        )
    return out
