from fastapi import APIRouter, Depends

from coopledger.api.deps import require_member, store
from coopledger.domain.models import Member
from coopledger.schemas.member import MemberCreate, MemberOut
from coopledger.schemas.transaction import DepositTotalOut
from coopledger.services.classification import eighty_percent_limit, qualifying_deposit_total
from coopledger.services.record_store import SqlRecordStore

router = APIRouter(prefix="/societies/{society_id}/members", tags=["members"])


@router.get("", response_model=list[MemberOut])
def list_members(society_id: int, st: SqlRecordStore = Depends(store)):
    return st.list_members(society_id)


@router.post("", response_model=MemberOut)
def create_member(society_id: int, body: MemberCreate, st: SqlRecordStore = Depends(store)):
    m = st.add_member(Member(id=0, society_id=society_id, name=body.name, phone=body.phone, join_date=body.join_date))
    st.commit()
    return m


@router.get("/{member_id}", response_model=MemberOut)
def get_member(society_id: int, member_id: int, st: SqlRecordStore = Depends(store)):
    return require_member(st, society_id, member_id)


@router.get("/{member_id}/deposit-total", response_model=DepositTotalOut)
def deposit_total(society_id: int, member_id: int, st: SqlRecordStore = Depends(store)):
    require_member(st, society_id, member_id)
    total = qualifying_deposit_total(st.list_records(member_id=member_id))
    return DepositTotalOut(
        member_id=member_id,
        qualifying_deposits=float(total),
        max_loan_amount=float(eighty_percent_limit(total)),
    )
