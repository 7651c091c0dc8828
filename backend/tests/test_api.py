from datetime import date, timedelta
from io import BytesIO

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from coopledger.api.deps import db
from coopledger.db.base import Base
from coopledger.main import app
from coopledger.models.audit_log import AuditLog  # noqa: F401
from coopledger.models.loan import Loan  # noqa: F401
from coopledger.models.maturity_record import MaturityRecord  # noqa: F401
from coopledger.models.member import Member  # noqa: F401
from coopledger.models.transaction import Transaction  # noqa: F401

SID = 1


@pytest.fixture()
def client():
    eng = create_engine(
        "sqlite+pysqlite:///:memory:",
        future=True,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(eng)
    Session = sessionmaker(bind=eng, autoflush=False, autocommit=False, future=True)

    def _db():
        s = Session()
        try:
            yield s
        finally:
            s.close()

    app.dependency_overrides[db] = _db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
        eng.dispose()


def _mk_member(client, name="Meena"):
    r = client.post(f"/societies/{SID}/members", json={"name": name, "phone": " 98450 ", "join_date": "2024-01-01"})
    assert r.status_code == 200, r.text
    return r.json()


def _deposit(client, member_id, amount, d, mode="cash"):
    r = client.post(
        f"/societies/{SID}/members/{member_id}/transactions",
        json={"transaction_date": str(d), "deposit_amount": amount, "mode": mode},
    )
    assert r.status_code == 200, r.text
    return r.json()


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


def test_members_are_scoped_to_society(client):
    m = _mk_member(client)
    assert m["phone"] == "98450"

    assert [x["id"] for x in client.get(f"/societies/{SID}/members").json()] == [m["id"]]
    assert client.get("/societies/2/members").json() == []

    r = client.get(f"/societies/2/members/{m['id']}/summary")
    assert r.status_code == 404
    assert r.json()["detail"] == "member_not_found"


def test_transaction_validation(client):
    m = _mk_member(client)
    base = f"/societies/{SID}/members/{m['id']}/transactions"

    r = client.post(base, json={"transaction_date": "2024-01-01", "deposit_amount": -5})
    assert r.status_code == 422

    r = client.post(base, json={"transaction_date": "2024-01-01", "mode": "cash"})
    assert r.status_code == 400
    assert r.json()["detail"] == "amount_required"


def test_ambiguous_mode_is_flagged_for_review(client):
    m = _mk_member(client)
    tx = _deposit(client, m["id"], 1000, date(2024, 1, 1), mode="Sloane Bank")
    assert tx["kind"] == "loan_disbursement"
    assert tx["needs_review"] is True

    tx = _deposit(client, m["id"], 400, date(2024, 1, 2), mode="hand delivered")
    assert tx["kind"] == "deposit"
    assert tx["needs_review"] is True

    total = client.get(f"/societies/{SID}/members/{m['id']}/deposit-total").json()
    assert total["qualifying_deposits"] == 400.0


def test_loan_lifecycle(client):
    m = _mk_member(client)
    mid = m["id"]
    start = date.today() - timedelta(days=40)
    _deposit(client, mid, 10000, start)

    total = client.get(f"/societies/{SID}/members/{mid}/deposit-total").json()
    assert total["qualifying_deposits"] == 10000.0
    assert total["max_loan_amount"] == 8000.0

    loans = f"/societies/{SID}/members/{mid}/loans"
    r = client.post(loans, json={"principal_amount": 9000})
    assert r.status_code == 400
    assert r.json()["detail"] == "loan_amount_exceeds_limit"

    r = client.post(loans, json={"principal_amount": 5000})
    assert r.status_code == 200, r.text
    loan = r.json()
    assert loan["status"] == "pending"
    assert loan["remaining_balance"] == 0.0

    r = client.post(f"{loans}/{loan['id']}/disburse", params={"actor": "treasurer"})
    assert r.status_code == 200, r.text
    loan = r.json()
    assert loan["status"] == "active"
    assert loan["remaining_balance"] == 5000.0

    r = client.post(f"{loans}/{loan['id']}/disburse")
    assert r.status_code == 409

    txs = client.get(f"/societies/{SID}/members/{mid}/transactions").json()
    disbursal = [t for t in txs if t["kind"] == "loan_disbursement"]
    assert len(disbursal) == 1
    assert disbursal[0]["mode"] == "loan disbursal"
    assert disbursal[0]["loan_reference_id"] == loan["id"]
    assert disbursal[0]["deposit_amount"] == 5000.0

    # the disbursal must not count toward the member's own savings
    assert client.get(f"/societies/{SID}/members/{mid}/deposit-total").json()["qualifying_deposits"] == 10000.0

    r = client.post(
        f"/societies/{SID}/members/{mid}/transactions",
        json={"transaction_date": str(date.today()), "loan_installment_amount": 500, "loan_reference_id": loan["id"]},
    )
    assert r.status_code == 200, r.text
    assert r.json()["kind"] == "emi"

    loan = client.get(loans).json()[0]
    assert loan["remaining_balance"] == 4550.0

    ledger = client.get(f"/societies/{SID}/ledger").json()
    assert ledger[-1]["running_balance"] == 5500.0
    assert sum(r["deposit_total"] for r in ledger) == 10000.0
    assert sum(r["loan_disbursed_total"] for r in ledger) == 5000.0

    member_ledger = client.get(f"/societies/{SID}/members/{mid}/ledger", params={"start": str(start)}).json()
    assert member_ledger == ledger

    summary = client.get(f"/societies/{SID}/members/{mid}/summary").json()
    assert summary["total_deposits"] == 10000.0
    assert summary["loan_taken"] == 5000.0
    assert summary["principal_paid"] == 450.0
    assert summary["interest_paid"] == 50.0
    assert summary["active_loan_balance"] == 4550.0
    assert summary["net_worth"] == 5500.0

    society = client.get(f"/societies/{SID}/summary").json()
    assert society["loans_outstanding"] == 4550.0
    assert society["active_loan_count"] == 1

    r = client.post(loans, json={"principal_amount": 2000})
    assert r.status_code == 400
    assert r.json()["detail"] == "active_loan_exists"

    assert client.get(f"/societies/{SID}/defaulters").json() == []

    actions = {a["action"] for a in client.get("/audit", params={"society_id": SID}).json()}
    assert {"loan.create", "loan.disburse"} <= actions


def test_reject_and_close(client):
    m = _mk_member(client)
    mid = m["id"]
    _deposit(client, mid, 10000, date.today() - timedelta(days=10))
    loans = f"/societies/{SID}/members/{mid}/loans"

    pending = client.post(loans, json={"principal_amount": 2000}).json()
    assert client.post(f"{loans}/{pending['id']}/reject").json()["status"] == "rejected"
    assert client.post(f"{loans}/{pending['id']}/close").status_code == 409

    assert client.post(f"{loans}/999/reject").status_code == 404

    ln = client.post(loans, json={"principal_amount": 3000}).json()
    client.post(f"{loans}/{ln['id']}/disburse")
    closed = client.post(f"{loans}/{ln['id']}/close").json()
    assert closed["status"] == "closed"
    assert closed["remaining_balance"] == 0.0


def test_maturity_batch_override_and_claim(client):
    m = _mk_member(client)
    mid = m["id"]
    _deposit(client, mid, 1000, date.today() - timedelta(days=70))
    _mk_member(client, "No Deposits")

    res = client.post(f"/societies/{SID}/maturity/run").json()
    assert res["processed"] == 2
    assert res["created"] == 1
    assert res["skipped"] == 1

    rows = client.get(f"/societies/{SID}/maturity").json()
    assert len(rows) == 1
    assert rows[0]["total_deposit"] == 1000.0
    assert rows[0]["full_interest"] == 120.0
    assert rows[0]["status"] == "active"

    r = client.post(f"/societies/{SID}/members/{mid}/maturity/override", json={"adjusted_interest": 150, "actor": "secretary"})
    assert r.status_code == 200, r.text
    assert r.json()["adjusted_interest"] == 150.0
    assert r.json()["manual_override"] is True

    client.post(f"/societies/{SID}/maturity/run")
    assert client.get(f"/societies/{SID}/members/{mid}/maturity").json()["adjusted_interest"] == 150.0

    r = client.post(f"/societies/{SID}/members/{mid}/maturity/claim")
    assert r.status_code == 409

    r = client.delete(f"/societies/{SID}/members/{mid}/maturity/override")
    assert r.json()["manual_override"] is False
    assert r.json()["adjusted_interest"] == 120.0
    assert client.get(f"/societies/{SID}/summary").json()["maturity_liability"] == 120.0

    r = client.post(f"/societies/{SID}/members/{mid}/maturity/override", json={"adjusted_interest": -1})
    assert r.status_code == 400

    audit = client.get("/audit", params={"action": "maturity.override"}).json()
    assert audit[0]["actor"] == "secretary"
    assert audit[0]["details"]["to"] == "150.00"


def test_report_download(client):
    openpyxl = pytest.importorskip("openpyxl")

    m = _mk_member(client)
    _deposit(client, m["id"], 1000, date(2024, 1, 1))

    r = client.get(f"/societies/{SID}/report")
    assert r.status_code == 200
    assert r.headers["content-type"].startswith("application/vnd.openxmlformats")

    wb = openpyxl.load_workbook(BytesIO(r.content))
    assert {"Daily Ledger", "Defaulters", "Maturity"} <= set(wb.sheetnames)
