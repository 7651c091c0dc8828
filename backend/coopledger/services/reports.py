from __future__ import annotations

from datetime import date, datetime, time
from decimal import Decimal

import xlsxwriter

from coopledger.services.classification import qualifying_deposits
from coopledger.services.defaulters import classify
from coopledger.services.ledger import build_cashbook, build_ledger, window
from coopledger.services.record_store import RecordStore
from coopledger.services.summary import channel_balances, maturity_projection, member_reports, summarize_society

STRIPE = {"type": "formula", "criteria": "=MOD(ROW(),2)=0"}


def _f(v: Decimal) -> float:
    return float(v)


def _dt(d: date) -> datetime:
    return datetime.combine(d, time.min)


def build_society_report(
    store: RecordStore,
    society_id: int,
    now: datetime,
    out_file,
    start: date | None = None,
    end: date | None = None,
):
    members = {m.id: m for m in store.list_members(society_id)}
    records = store.list_records(society_id=society_id)
    loans = store.list_loans(society_id=society_id)
    loans_by_id = {ln.id: ln for ln in loans}

    # Running balances carry history from before the window.
    ledger_all = build_ledger(records)
    ledger_rows = window(ledger_all, start, end)
    defaulters = classify(loans, now)
    maturity_rows = store.list_maturity(society_id)
    maturity_by_member = {m.member_id: m for m in maturity_rows}
    depositors = sorted({r.member_id for r in qualifying_deposits(records)})

    wb = xlsxwriter.Workbook(out_file, {"in_memory": True})
    base_font = "Calibri"

    # ----------------------------
    # Formats
    # ----------------------------
    meta_label = wb.add_format({"bold": True, "font_name": base_font, "font_size": 11, "font_color": "#334155"})
    meta_value = wb.add_format({"font_name": base_font, "font_size": 11, "font_color": "#0f172a"})
    subtle = wb.add_format({"font_name": base_font, "font_size": 10, "font_color": "#64748b"})
    title = wb.add_format({"bold": True, "font_name": base_font, "font_size": 14, "font_color": "#0f172a"})

    header = wb.add_format(
        {
            "bold": True,
            "font_name": base_font,
            "font_size": 11,
            "bg_color": "#F1F5F9",
            "border": 1,
            "align": "center",
            "valign": "vcenter",
        }
    )

    date_fmt = wb.add_format({"font_name": base_font, "font_size": 11, "num_format": "yyyy-mm-dd", "border": 1})
    money2 = wb.add_format(
        {"font_name": base_font, "font_size": 11, "num_format": "#,##0.00", "border": 1, "align": "right"}
    )
    int0 = wb.add_format({"font_name": base_font, "font_size": 11, "num_format": "0", "border": 1, "align": "right"})
    text_cell = wb.add_format({"font_name": base_font, "font_size": 11, "border": 1, "align": "left"})
    critical_cell = wb.add_format(
        {"font_name": base_font, "font_size": 11, "border": 1, "align": "left", "font_color": "#B91C1C", "bold": True}
    )

    total_label = wb.add_format(
        {"bold": True, "font_name": base_font, "font_size": 11, "bg_color": "#F8FAFC", "border": 1, "align": "left"}
    )
    total_money2 = wb.add_format(
        {
            "bold": True,
            "font_name": base_font,
            "font_size": 11,
            "bg_color": "#F8FAFC",
            "border": 1,
            "num_format": "#,##0.00",
            "align": "right",
        }
    )

    stripe_date = wb.add_format({"bg_color": "#FBFDFF", "num_format": "yyyy-mm-dd"})
    stripe_money2 = wb.add_format({"bg_color": "#FBFDFF", "num_format": "#,##0.00", "align": "right"})
    stripe_text = wb.add_format({"bg_color": "#FBFDFF", "align": "left"})
    for f in (stripe_date, stripe_money2, stripe_text):
        f.set_border(1)
        f.set_font_name(base_font)
        f.set_font_size(11)

    range_label = f"{start or 'beginning'} to {end or 'latest'}"

    def _meta(ws):
        ws.write(0, 0, "Society", meta_label)
        ws.write(0, 1, society_id, meta_value)
        ws.write(1, 0, "Range", meta_label)
        ws.write(1, 1, range_label, subtle)
        ws.write(2, 0, "Generated", meta_label)
        ws.write(2, 1, now.strftime("%Y-%m-%d %H:%M"), subtle)

    def _headers(ws, names):
        ws.set_row(3, 18)
        for c, h in enumerate(names):
            ws.write(3, c, h, header)
        ws.freeze_panes(4, 1)

    # ----------------------------
    # Sheet 1: Daily Ledger
    # ----------------------------
    ws = wb.add_worksheet("Daily Ledger")
    ws.set_column(0, 0, 12)
    ws.set_column(1, 9, 16)
    _meta(ws)
    _headers(
        ws,
        ["Date", "Deposit", "EMI", "LoanOut", "Interest", "Fine", "CashIn", "CashOut", "NetFlow", "RunningBalance"],
    )

    r = 4
    for day in ledger_rows:
        ws.write_datetime(r, 0, _dt(day.date), date_fmt)
        ws.write_number(r, 1, _f(day.deposit_total), money2)
        ws.write_number(r, 2, _f(day.emi_total), money2)
        ws.write_number(r, 3, _f(day.loan_disbursed_total), money2)
        ws.write_number(r, 4, _f(day.interest_total), money2)
        ws.write_number(r, 5, _f(day.fine_total), money2)
        ws.write_number(r, 6, _f(day.cash_in), money2)
        ws.write_number(r, 7, _f(day.cash_out), money2)
        ws.write_number(r, 8, _f(day.net_flow), money2)
        ws.write_number(r, 9, _f(day.running_balance), money2)
        r += 1

    last_data_row = r - 1
    if last_data_row >= 4:
        ws.autofilter(3, 0, last_data_row, 9)
        ws.conditional_format(4, 0, last_data_row, 0, {**STRIPE, "format": stripe_date})
        ws.conditional_format(4, 1, last_data_row, 9, {**STRIPE, "format": stripe_money2})

        total_row = last_data_row + 1
        last_excel = last_data_row + 1
        ws.write(total_row, 0, "Totals", total_label)
        for c, col in enumerate("BCDEFGHI", start=1):
            ws.write_formula(total_row, c, f"=SUM({col}5:{col}{last_excel})", total_money2)
        ws.write_formula(total_row, 9, f"=J{last_excel}", total_money2)

        ws.set_landscape()
        ws.fit_to_pages(1, 0)

    # ----------------------------
    # Sheet 2: Defaulters
    # ----------------------------
    dws = wb.add_worksheet("Defaulters")
    dws.set_column(0, 0, 28)
    dws.set_column(1, 1, 16)
    dws.set_column(2, 3, 16)
    dws.set_column(4, 5, 12)
    _meta(dws)
    _headers(dws, ["Member", "Phone", "LoanAmount", "Balance", "OverdueDays", "Status"])

    dr = 4
    for e in defaulters:
        m = members.get(e.member_id)
        ln = loans_by_id.get(e.loan_id)
        dws.write(dr, 0, m.name if m else f"#{e.member_id}", text_cell)
        dws.write(dr, 1, m.phone if m else "", text_cell)
        dws.write_number(dr, 2, _f(ln.principal_amount) if ln else 0.0, money2)
        dws.write_number(dr, 3, _f(e.remaining_balance), money2)
        dws.write_number(dr, 4, e.days_overdue, int0)
        dws.write(dr, 5, e.severity.value, critical_cell if e.severity.value == "Critical" else text_cell)
        dr += 1

    last_def_row = dr - 1
    if last_def_row >= 4:
        dws.autofilter(3, 0, last_def_row, 5)
        dws.conditional_format(4, 0, last_def_row, 1, {**STRIPE, "format": stripe_text})
    else:
        dws.write(4, 0, "No overdue loans.", subtle)

    # ----------------------------
    # Sheet 3: Maturity
    # ----------------------------
    mws = wb.add_worksheet("Maturity")
    mws.set_column(0, 0, 28)
    mws.set_column(1, 1, 12)
    mws.set_column(2, 7, 18)
    _meta(mws)
    _headers(
        mws,
        [
            "Member",
            "JoinDate",
            "CurrentDeposit",
            "TargetDeposit",
            "ProjectedInterest",
            "MaturityAmount",
            "OutstandingLoan",
            "NetPayable",
        ],
    )

    mr = 4
    for member_id in depositors:
        m = members.get(member_id)
        if m is None:
            continue
        p = maturity_projection(m, records, loans, maturity_by_member.get(member_id))
        mws.write(mr, 0, p.member_name, text_cell)
        if p.join_date is not None:
            mws.write_datetime(mr, 1, _dt(p.join_date), date_fmt)
        else:
            mws.write_blank(mr, 1, None, text_cell)
        mws.write_number(mr, 2, _f(p.current_deposit), money2)
        mws.write_number(mr, 3, _f(p.target_deposit), money2)
        mws.write_number(mr, 4, _f(p.projected_interest), money2)
        mws.write_number(mr, 5, _f(p.maturity_amount), money2)
        mws.write_number(mr, 6, _f(p.outstanding_loan), money2)
        mws.write_number(mr, 7, _f(p.net_payable), money2)
        mr += 1

    last_mat_row = mr - 1
    if last_mat_row >= 4:
        mws.autofilter(3, 0, last_mat_row, 7)
        mws.conditional_format(4, 2, last_mat_row, 7, {**STRIPE, "format": stripe_money2})

        total_row = last_mat_row + 1
        last_excel = last_mat_row + 1
        mws.write(total_row, 0, "Totals", total_label)
        mws.write_blank(total_row, 1, None, total_label)
        for c, col in enumerate("CDEFGH", start=2):
            mws.write_formula(total_row, c, f"=SUM({col}5:{col}{last_excel})", total_money2)

    # ----------------------------
    # Sheet 4: Member Reports
    # ----------------------------
    rws = wb.add_worksheet("Member Reports")
    rws.set_column(0, 0, 28)
    rws.set_column(1, 1, 16)
    rws.set_column(2, 8, 16)
    _meta(rws)
    _headers(
        rws,
        [
            "Member",
            "Phone",
            "Deposits",
            "LoanTaken",
            "PrincipalPaid",
            "InterestPaid",
            "FinePaid",
            "ActiveLoanBal",
            "NetWorth",
        ],
    )

    in_range = [
        r
        for r in records
        if (start is None or r.transaction_date >= start) and (end is None or r.transaction_date <= end)
    ]
    reports = member_reports(list(members.values()), in_range, loans, maturity_rows)

    rr = 4
    for rep in reports:
        m = members[rep.member_id]
        rws.write(rr, 0, m.name, text_cell)
        rws.write(rr, 1, m.phone, text_cell)
        rws.write_number(rr, 2, _f(rep.total_deposits), money2)
        rws.write_number(rr, 3, _f(rep.loan_taken), money2)
        rws.write_number(rr, 4, _f(rep.principal_paid), money2)
        rws.write_number(rr, 5, _f(rep.interest_paid), money2)
        rws.write_number(rr, 6, _f(rep.fine_paid), money2)
        rws.write_number(rr, 7, _f(rep.active_loan_balance), money2)
        rws.write_number(rr, 8, _f(rep.net_worth), money2)
        rr += 1

    last_rep_row = rr - 1
    if last_rep_row >= 4:
        rws.autofilter(3, 0, last_rep_row, 8)
        rws.conditional_format(4, 2, last_rep_row, 8, {**STRIPE, "format": stripe_money2})

        total_row = last_rep_row + 1
        last_excel = last_rep_row + 1
        rws.write(total_row, 0, "Totals", total_label)
        rws.write_blank(total_row, 1, None, total_label)
        for c, col in enumerate("CDEFGHI", start=2):
            rws.write_formula(total_row, c, f"=SUM({col}5:{col}{last_excel})", total_money2)

    # ----------------------------
    # Sheet 5: Cashbook
    # ----------------------------
    cws = wb.add_worksheet("Cashbook")
    cws.set_column(0, 0, 12)
    cws.set_column(1, 7, 16)
    _meta(cws)
    _headers(cws, ["Date", "CashIn", "CashOut", "BankIn", "BankOut", "UPIIn", "UPIOut", "Closing"])

    cashbook_all = build_cashbook(records)
    cb_rows = window(cashbook_all, start, end)

    cr = 4
    for day in cb_rows:
        cws.write_datetime(cr, 0, _dt(day.date), date_fmt)
        cws.write_number(cr, 1, _f(day.cash_in), money2)
        cws.write_number(cr, 2, _f(day.cash_out), money2)
        cws.write_number(cr, 3, _f(day.bank_in), money2)
        cws.write_number(cr, 4, _f(day.bank_out), money2)
        cws.write_number(cr, 5, _f(day.upi_in), money2)
        cws.write_number(cr, 6, _f(day.upi_out), money2)
        cws.write_number(cr, 7, _f(day.closing), money2)
        cr += 1

    last_cb_row = cr - 1
    if last_cb_row >= 4:
        cws.autofilter(3, 0, last_cb_row, 7)
        cws.conditional_format(4, 0, last_cb_row, 0, {**STRIPE, "format": stripe_date})
        cws.conditional_format(4, 1, last_cb_row, 7, {**STRIPE, "format": stripe_money2})

    # Channel balances cover everything up to the end of the range.
    balances = channel_balances(window(cashbook_all, None, end))
    br = cr + 1
    for label, value in (("Cash Balance", balances.cash), ("Bank Balance", balances.bank), ("UPI Balance", balances.upi)):
        cws.write(br, 0, label, total_label)
        cws.write_number(br, 1, _f(value), total_money2)
        br += 1

    # ----------------------------
    # Sheet 6: Summary
    # ----------------------------
    soc = summarize_society(ledger_rows, loans, maturity_rows)
    sws = wb.add_worksheet("Summary")
    sws.set_column(0, 0, 24)
    sws.set_column(1, 1, 20)
    sws.write(0, 0, "Society Summary", title)
    sws.write(1, 0, "Range", meta_label)
    sws.write(1, 1, range_label, subtle)

    lines = [
        ("Deposits", soc.deposits),
        ("Interest Income", soc.interest_income),
        ("Fine Income", soc.fine_income),
        ("Loans Issued", soc.loans_issued),
        ("Loans Recovered", soc.loans_recovered),
        ("Loans Outstanding", soc.loans_outstanding),
        ("Maturity Liability", soc.maturity_liability),
        ("Cash Balance", balances.cash),
        ("Bank Balance", balances.bank),
        ("UPI Balance", balances.upi),
    ]
    for i, (label, value) in enumerate(lines, start=3):
        sws.write(i, 0, label, meta_label)
        sws.write_number(i, 1, _f(value), money2)
    sws.write(len(lines) + 3, 0, "Active Loans", meta_label)
    sws.write_number(len(lines) + 3, 1, soc.active_loan_count, int0)

    wb.close()
