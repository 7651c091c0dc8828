from datetime import date, datetime
from decimal import Decimal
from io import BytesIO

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from coopledger.db.base import Base
from coopledger.domain.models import Loan, LoanStatus, Member, TransactionRecord
from coopledger.models.audit_log import AuditLog  # noqa: F401
from coopledger.models.loan import Loan as LoanRow  # noqa: F401
from coopledger.models.maturity_record import MaturityRecord  # noqa: F401
from coopledger.models.member import Member as MemberRow  # noqa: F401
from coopledger.models.transaction import Transaction  # noqa: F401
from coopledger.services.classification import ingest
from coopledger.services.record_store import SqlRecordStore
from coopledger.services.reports import build_society_report


@pytest.fixture()
def store():
    eng = create_engine(
        "sqlite+pysqlite:///:memory:",
        future=True,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(eng)
    Session = sessionmaker(bind=eng, autoflush=False, autocommit=False, future=True)
    s = Session()
    try:
        yield SqlRecordStore(s)
    finally:
        s.close()
        eng.dispose()


def _seed(store):
    saver = store.add_member(Member(id=0, society_id=1, name="Lakshmi", phone="111", join_date=date(2023, 12, 1)))
    borrower = store.add_member(Member(id=0, society_id=1, name="Gopal", phone="222"))

    def _tx(member_id, d, mode="cash", **amounts):
        store.add_record(ingest(TransactionRecord(id=None, member_id=member_id, transaction_date=d, mode=mode, **amounts)))

    _tx(saver.id, date(2024, 1, 1), deposit_amount=Decimal("1000"))
    _tx(saver.id, date(2024, 2, 1), deposit_amount=Decimal("1000"))

    ln = store.save_loan(
        Loan(
            id=None,
            member_id=borrower.id,
            principal_amount=Decimal("5000"),
            status=LoanStatus.active,
            remaining_balance=Decimal("4000"),
            disbursed_date=date(2024, 2, 1),
            next_due_date=date(2024, 3, 1),
        )
    )
    _tx(borrower.id, date(2024, 2, 1), mode="loan disbursal", deposit_amount=Decimal("5000"), loan_reference_id=ln.id)
    store.commit()


def _sheet_rows(ws):
    return [[c.value for c in row] for row in ws.iter_rows()]


def test_society_report_sheets_and_values(store):
    openpyxl = pytest.importorskip("openpyxl")
    _seed(store)

    buf = BytesIO()
    build_society_report(store, 1, datetime(2024, 6, 1, 8, 0), buf)
    buf.seek(0)
    wb = openpyxl.load_workbook(buf)

    assert wb.sheetnames[:3] == ["Daily Ledger", "Defaulters", "Maturity"]

    ledger = _sheet_rows(wb["Daily Ledger"])
    assert ledger[3] == [
        "Date",
        "Deposit",
        "EMI",
        "LoanOut",
        "Interest",
        "Fine",
        "CashIn",
        "CashOut",
        "NetFlow",
        "RunningBalance",
    ]
    assert ledger[4][0] == datetime(2024, 1, 1)
    assert ledger[4][1] == 1000
    assert ledger[4][9] == 1000
    assert ledger[5][3] == 5000
    assert ledger[5][9] == -3000
    assert ledger[6][0] == "Totals"

    defaulters = _sheet_rows(wb["Defaulters"])
    assert defaulters[3] == ["Member", "Phone", "LoanAmount", "Balance", "OverdueDays", "Status"]
    assert defaulters[4] == ["Gopal", "222", 5000, 4000, 92, "Critical"]

    maturity = _sheet_rows(wb["Maturity"])
    assert maturity[3][0] == "Member"
    assert maturity[3][-1] == "NetPayable"
    assert maturity[4][0] == "Lakshmi"
    assert maturity[4][1] == datetime(2023, 12, 1)
    assert maturity[4][2:] == [2000, 36000, 4320, 40320, 0, 40320]
    # the borrower has no savings deposits, so no maturity row
    assert maturity[5][0] == "Totals"


def test_report_window_keeps_running_balance(store):
    openpyxl = pytest.importorskip("openpyxl")
    _seed(store)

    buf = BytesIO()
    build_society_report(store, 1, datetime(2024, 6, 1), buf, start=date(2024, 2, 1), end=date(2024, 2, 28))
    buf.seek(0)
    ledger = _sheet_rows(openpyxl.load_workbook(buf)["Daily Ledger"])

    assert ledger[4][0] == datetime(2024, 2, 1)
    assert ledger[4][9] == -3000
    assert ledger[5][0] == "Totals"


def test_empty_society_report(store):
    openpyxl = pytest.importorskip("openpyxl")

    buf = BytesIO()
    build_society_report(store, 42, datetime(2024, 6, 1), buf)
    buf.seek(0)
    wb = openpyxl.load_workbook(buf)
    assert _sheet_rows(wb["Defaulters"])[4][0] == "No overdue loans."
    assert len(_sheet_rows(wb["Daily Ledger"])) == 4


def test_member_reports_and_cashbook_sheets(store):
    openpyxl = pytest.importorskip("openpyxl")
    _seed(store)

    buf = BytesIO()
    build_society_report(store, 1, datetime(2024, 6, 1), buf)
    buf.seek(0)
    wb = openpyxl.load_workbook(buf)

    reports = _sheet_rows(wb["Member Reports"])
    assert reports[3][0] == "Member"
    assert reports[3][-1] == "NetWorth"
    assert reports[4] == ["Lakshmi", "111", 2000, 0, 0, 0, 0, 0, 2000]
    assert reports[5] == ["Gopal", "222", 0, 5000, 0, 0, 0, 4000, -4000]
    assert reports[6][0] == "Totals"

    cashbook = _sheet_rows(wb["Cashbook"])
    assert cashbook[3] == ["Date", "CashIn", "CashOut", "BankIn", "BankOut", "UPIIn", "UPIOut", "Closing"]
    assert cashbook[4] == [datetime(2024, 1, 1), 1000, 0, 0, 0, 0, 0, 1000]
    assert cashbook[5] == [datetime(2024, 2, 1), 1000, 5000, 0, 0, 0, 0, -3000]
    balances = {row[0]: row[1] for row in cashbook[6:] if row[0]}
    assert balances == {"Cash Balance": -3000, "Bank Balance": 0, "UPI Balance": 0}


def test_summary_sheet_lists_liability_and_channel_balances(store):
    openpyxl = pytest.importorskip("openpyxl")
    _seed(store)

    buf = BytesIO()
    build_society_report(store, 1, datetime(2024, 6, 1), buf)
    buf.seek(0)
    rows = _sheet_rows(openpyxl.load_workbook(buf)["Summary"])

    lines = {row[0]: row[1] for row in rows[3:]}
    assert lines["Deposits"] == 2000
    assert lines["Loans Outstanding"] == 4000
    assert lines["Maturity Liability"] == 0
    assert lines["Cash Balance"] == -3000
    assert lines["Active Loans"] == 1
