# streamlit_app.py

import logging
import datetime
from typing import List, Optional

import streamlit as st
from dotenv import load_dotenv
load_dotenv()

import gspread
import pandas as pd

from cashdesk.sheets_client import SheetsClient
from cashdesk.calc import parse_amount, suggest_payout_breakdown
from cashdesk.config import load_employee_pass_hash, load_pass_hash, load_policy_params, load_spreadsheet_id
from cashdesk.gate import EMPLOYEE, current_role, is_unlocked, resolve_role, set_unlocked
from cashdesk.kpis import (
    below_target_alert,
    days_in_month,
    fmt_cop,
    missing_days,
    month_end,
    month_start,
    monthly_totals,
    months_window,
    range_kpis,
)
from cashdesk.models import DailySalesRecord, FinancialTargets, MonthEndClosing

# --- Logging ---------------------------------------------------------------
logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)

st.set_page_config(page_title="Cash Desk", layout="wide")

# st.secrets raises when no secrets.toml exists; fall back to env vars only
try:
    st_secrets = dict(st.secrets)
except Exception:
    logger.info("No Streamlit secrets found, using environment variables")
    st_secrets = {}

METHOD_LABELS = {
    "cash": "Cash",
    "card": "Card",
    "bank_transfer": "Bank transfer",
    "platforms": "Platforms",
}


def day_label(d: datetime.date) -> str:
    return d.strftime("%A %d/%m/%Y")


def amount_inputs(key_prefix: str, existing: Optional[DailySalesRecord] = None):
    """Render the four payment-method inputs; returns (parsed amounts, parse errors)."""
    parsed = {}
    errors = []
    for key, label in METHOD_LABELS.items():
        old = getattr(existing, key) if existing else 0
        raw = st.text_input(label, value=str(old), key=f"{key_prefix}_{key}")
        try:
            parsed[key] = parse_amount(raw)
        except ValueError as e:
            errors.append((label, raw, str(e)))
            parsed[key] = 0
    st.write(f"Total: **{fmt_cop(sum(parsed.values()))}**")
    return parsed, errors


# --- Gate ------------------------------------------------------------------
try:
    pass_hash = load_pass_hash(st_secrets)
except ValueError as e:
    st.error(str(e))
    st.stop()
employee_pass_hash = load_employee_pass_hash(st_secrets)

if not is_unlocked(st.session_state):
    st.title("Cash Desk")
    with st.form("gate"):
        password = st.text_input("Password", type="password")
        submitted = st.form_submit_button("Unlock")
    if submitted:
        role = resolve_role(password, pass_hash, employee_pass_hash)
        if role:
            set_unlocked(st.session_state, True, role)
            st.rerun()
        else:
            st.error("Wrong password")
    st.stop()

role = current_role(st.session_state)

# --- Initialize Sheets client -----------------------------------------------
try:
    client = SheetsClient(load_spreadsheet_id(st_secrets), st_secrets)
except Exception:
    st.error("Failed to initialize Sheets client. Check SPREADSHEET_ID, service account secrets and logs.")
    logger.exception("SheetsClient init failed")
    st.stop()

today = datetime.date.today()

if st.sidebar.button("Lock"):
    set_unlocked(st.session_state, False)
    st.rerun()

# --- Staff submission (employee password unlocks only this page) ------------
if role == EMPLOYEE:
    st.title("Daily report")
    report_date = st.date_input("Date", value=today, key="staff_date")
    try:
        staff_names: List[str] = client.list_active_employees()
    except Exception:
        st.error("Failed to load the employee list. Check logs.")
        logger.exception("list_active_employees failed")
        st.stop()
    if not staff_names:
        st.warning("No active employees configured.")
        st.stop()
    staff_name = st.selectbox("Your name", staff_names, index=None, placeholder="Select your name")
    staff_amounts, staff_errors = amount_inputs("staff")

    if st.button("Send report"):
        if staff_errors:
            for (field, raw, err_msg) in staff_errors:
                st.error(f"{field}: cannot read {raw!r} ({err_msg})")
        elif not staff_name:
            st.error("Select your name")
        else:
            try:
                saved = client.upsert_daily_record(DailySalesRecord.build(report_date, employee_name=staff_name, **staff_amounts))
                st.success(f"Report sent: {saved.date.isoformat()} · {fmt_cop(saved.total)}")
            except Exception:
                st.error("Failed to send the report. Check logs for details.")
                logger.exception("staff upsert_daily_record failed for %s", report_date)
    st.stop()

policy_error = ""
try:
    policy = load_policy_params(st_secrets)
except ValueError as e:
    policy = None
    policy_error = str(e)
    logger.error("Payout policy not loaded: %s", e)

try:
    targets = client.read_targets()
except Exception:
    st.error("Failed to read targets from the Settings tab. Check logs.")
    logger.exception("read_targets failed")
    st.stop()

# --- Sidebar ---------------------------------------------------------------
st.sidebar.header("Range")
range_start = st.sidebar.date_input("From", value=month_start(today))
range_end = st.sidebar.date_input("To", value=month_end(today))
if range_start > range_end:
    st.sidebar.error("'From' must not be after 'To'.")
    st.stop()
st.sidebar.caption(f"{range_start.isoformat()} → {range_end.isoformat()}")

st.title("Cash Desk")
tab_dashboard, tab_entry, tab_closing, tab_targets = st.tabs(["Dashboard", "Daily entry", "Month closing", "Targets"])

# --- Dashboard -------------------------------------------------------------
with tab_dashboard:
    try:
        rows = client.list_daily_records(range_start, range_end)
    except Exception:
        st.error("Failed to read daily records. Check logs.")
        logger.exception("list_daily_records failed")
        rows = []

    kpis = range_kpis(rows, range_start, range_end)

    alert = below_target_alert(rows, range_start, range_end, today, targets.break_even_target)
    if alert:
        st.warning(
            f"{alert['days_left']} day(s) left. Month projection: {fmt_cop(alert['projected'])} "
            f"({fmt_cop(alert['shortfall'])} below the break-even target)."
        )

    c1, c2, c3, c4, c5 = st.columns(5)
    c1.metric("Total sales", fmt_cop(kpis["total"]))
    c2.metric("Break-even target", fmt_cop(targets.break_even_target))
    c3.metric("Profit target", fmt_cop(targets.profit_target))
    c4.metric("Average / day", fmt_cop(kpis["avg_day"]))
    c5.metric("Average / week", fmt_cop(kpis["avg_week"]))

    method_cols = st.columns(len(METHOD_LABELS))
    for col, (key, label) in zip(method_cols, METHOD_LABELS.items()):
        col.metric(label, f"{fmt_cop(kpis['per_method'][key])} ({kpis['share_pct'][key]}%)")

    st.subheader("Last months")
    win_start, win_end = months_window(today, 6)
    try:
        months_df = monthly_totals(client.list_daily_records(win_start, win_end), targets.break_even_target)
    except Exception:
        st.error("Failed to read monthly totals. Check logs.")
        logger.exception("monthly_totals failed")
        months_df = pd.DataFrame()
    if months_df.empty:
        st.caption("No data")
    else:
        shown = months_df.copy()
        for c in ("total", "target", "surplus"):
            shown[c] = shown[c].map(fmt_cop)
        st.dataframe(shown, hide_index=True, use_container_width=True)

    st.subheader("Days")
    if not rows:
        st.caption("No records in this range.")
    for r in rows:
        left, mid, right = st.columns([4, 1, 1])
        left.markdown(f"**{day_label(r.date)}**  \n{fmt_cop(r.total)} · {r.employee_name}")
        if mid.button("Edit", key=f"edit_{r.date.isoformat()}"):
            # the entry tab's date widget is created later in this run, so it can still be set
            st.session_state["entry_date_input"] = r.date
            st.info(f"Open the 'Daily entry' tab to edit {r.date.isoformat()}.")
        if right.button("Delete", key=f"delete_{r.date.isoformat()}"):
            deleted = False
            try:
                deleted = client.delete_daily_record(r.date)
            except Exception:
                st.error("Failed to delete record. Check logs.")
                logger.exception("delete_daily_record failed for %s", r.date)
            if deleted:
                st.rerun()

# --- Daily entry -----------------------------------------------------------
with tab_entry:
    if "entry_date_input" not in st.session_state:
        st.session_state["entry_date_input"] = today
    entry_date = st.date_input("Date", key="entry_date_input")

    try:
        existing = client.get_daily_record(entry_date)
        employees: List[str] = client.list_active_employees()
    except Exception:
        st.error("Failed to read the daily record. Check logs.")
        logger.exception("prefill failed for %s", entry_date)
        existing = None
        employees = []

    if existing and existing.employee_name and existing.employee_name not in employees:
        employees = employees + [existing.employee_name]
    emp_index = employees.index(existing.employee_name) if existing and existing.employee_name in employees else None
    employee = st.selectbox("Employee", employees, index=emp_index, placeholder="Select")

    parsed, parse_errors = amount_inputs(f"in_{entry_date.isoformat()}", existing)

    if st.button("Save"):
        if parse_errors:
            for (field, raw, err_msg) in parse_errors:
                st.error(f"{field}: cannot read {raw!r} ({err_msg})")
        elif not employee:
            st.error("Select an employee")
        else:
            try:
                saved = client.upsert_daily_record(DailySalesRecord.build(entry_date, employee_name=employee, **parsed))
                st.success(f"Saved {saved.date.isoformat()}: {fmt_cop(saved.total)}")
            except Exception:
                st.error("Failed to save. Check logs for details.")
                logger.exception("upsert_daily_record failed for %s", entry_date)

    st.subheader("Missing days this month")
    try:
        month_rows = client.list_daily_records(month_start(entry_date), month_end(entry_date))
        gaps = missing_days(month_rows, entry_date)
    except Exception:
        logger.exception("missing days lookup failed")
        gaps = None
    if gaps is None:
        st.caption("Could not load missing days.")
    elif not gaps:
        st.caption("No missing days.")
    else:
        st.write(" · ".join(f"{d.day:02d}" for d in gaps))

# --- Month closing & payout ------------------------------------------------
with tab_closing:
    picked = st.date_input("Month", value=month_start(today), key="closing_month")
    month = month_start(picked)

    try:
        closing: Optional[MonthEndClosing] = client.get_closing(month)
    except Exception:
        st.error("Failed to read the month closing. Check logs.")
        logger.exception("get_closing failed for %s", month)
        closing = None

    raw_cash = st.text_input("Cash on hand at close", value=str(closing.cash_on_hand) if closing else "", key=f"cash_{month.isoformat()}")
    notes = st.text_input("Notes", value=(closing.notes or "") if closing else "", key=f"notes_{month.isoformat()}")
    if st.button("Save closing"):
        try:
            cash_on_hand = parse_amount(raw_cash)
        except ValueError as e:
            st.error(str(e))
        else:
            if raw_cash.strip() == "":
                st.error("Enter the counted cash")
            else:
                try:
                    closing = client.upsert_closing(MonthEndClosing(month, cash_on_hand, notes.strip() or None))
                    st.success(f"Closing saved: {fmt_cop(closing.cash_on_hand)}")
                except Exception:
                    st.error("Failed to save closing. Check logs for details.")
                    logger.exception("upsert_closing failed for %s", month)

    st.subheader("Suggested payout")
    if policy is None:
        st.error(f"Payout policy not configured. {policy_error}")
    else:
        try:
            month_records = client.list_daily_records(month, month_end(month))
        except Exception:
            st.error("Failed to read the month's records. Check logs.")
            logger.exception("list_daily_records failed for %s", month)
            month_records = None

        if month_records is not None:
            reserve, breakdown = suggest_payout_breakdown(
                month_records,
                closing.cash_on_hand if closing else None,
                targets.break_even_target,
                policy,
                days_in_month(month),
            )
            if breakdown is None:
                st.metric("Suggested payout", "—")
                st.caption("No cash count recorded for this month yet, so there is no suggestion.")
            else:
                st.metric("Suggested payout", fmt_cop(breakdown.payout))
                st.table(pd.DataFrame([
                    ("Reserve", reserve),
                    ("Surplus over break-even", breakdown.surplus),
                    ("Available cash", breakdown.available_cash),
                    ("Comfort ceiling", breakdown.comfort_ceiling),
                    ("Excess cash", breakdown.excess_cash),
                    ("Before rounding", breakdown.raw_payout),
                ], columns=["Item", "Amount"]).assign(Amount=lambda d: d["Amount"].map(fmt_cop)))

# --- Targets ---------------------------------------------------------------
with tab_targets:
    with st.form("targets"):
        raw_be = st.text_input("Break-even target", value=str(targets.break_even_target))
        raw_profit = st.text_input("Profit target", value=str(targets.profit_target))
        save_targets = st.form_submit_button("Save")
    if save_targets:
        try:
            new_targets = FinancialTargets(parse_amount(raw_be), parse_amount(raw_profit))
        except ValueError as e:
            st.error(str(e))
        else:
            saved_targets = False
            try:
                client.write_targets(new_targets)
                saved_targets = True
            except gspread.WorksheetNotFound:
                st.error("No Settings tab found in the spreadsheet.")
                logger.error("write_targets: Settings tab missing")
            except Exception:
                st.error("Failed to save targets. Check logs.")
                logger.exception("write_targets failed")
            if saved_targets:
                st.rerun()

# --- End of file -----------------------------------------------------------
