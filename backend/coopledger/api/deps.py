from fastapi import Depends, HTTPException
from sqlalchemy.orm import Session
from coopledger.db.session import SessionLocal
from coopledger.domain.models import Loan, Member
from coopledger.services.record_store import SqlRecordStore

def db():
    s = SessionLocal()
    try:
        yield s
    finally:
        s.close()

def store(s: Session = Depends(db)) -> SqlRecordStore:
    return SqlRecordStore(s)

def require_member(st: SqlRecordStore, society_id: int, member_id: int) -> Member:
    m = st.get_member(member_id)
    if m is None or m.society_id != society_id:
        raise HTTPException(status_code=404, detail="member_not_found")
    return m

def require_loan(st: SqlRecordStore, member: Member, loan_id: int) -> Loan:
    ln = st.get_loan(loan_id)
    if ln is None or ln.member_id != member.id:
        raise HTTPException(status_code=404, detail="loan_not_found")
    return ln
