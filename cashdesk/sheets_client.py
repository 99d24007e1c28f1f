# cashdesk/sheets_client.py
"""
Record store on top of a Google spreadsheet, via gspread and a service account.

Tabs used (header row first):
- DailyLogs:  log_date, employee_name, cash, card, bank_transfer, platforms, total
- Closings:   month_key, cash_on_hand, notes
- Settings:   break_even_target, profit_target   (single data row)
- Employees:  name, is_active

Provides:
- list_daily_records(start, end) / get_daily_record(day)
- upsert_daily_record(record) / delete_daily_record(day)
- get_closing(month) / upsert_closing(closing)
- read_targets() / write_targets(targets)
- list_active_employees()

The client expects a Streamlit secrets dict passed on init containing
"SERVICE_ACCOUNT_JSON" (single-line JSON or multi-line), or the env var
GOOGLE_SERVICE_ACCOUNT_FILE pointing to the JSON key file.
"""

import os
import json
import datetime
import logging
from typing import List, Mapping, Optional

import pandas as pd

import gspread
from google.oauth2.service_account import Credentials

from cashdesk.calc import parse_amount
from cashdesk.models import DailySalesRecord, FinancialTargets, MonthEndClosing

logger = logging.getLogger(__name__)

SCOPES = ["https://www.googleapis.com/auth/spreadsheets", "https://www.googleapis.com/auth/drive"]

DAILY_TAB = "DailyLogs"
CLOSINGS_TAB = "Closings"
SETTINGS_TAB = "Settings"
EMPLOYEES_TAB = "Employees"

DAILY_COLUMNS = ["log_date", "employee_name", "cash", "card", "bank_transfer", "platforms", "total"]
CLOSING_COLUMNS = ["month_key", "cash_on_hand", "notes"]
SETTINGS_COLUMNS = ["break_even_target", "profit_target"]

DEFAULT_TARGETS = FinancialTargets(break_even_target=30_000_000, profit_target=0)


def _get_gspread_client_from_secrets(st_secrets: dict):
    """
    Accepts:
      st_secrets["SERVICE_ACCOUNT_JSON"] -> full JSON text OR
      env var GOOGLE_SERVICE_ACCOUNT_FILE pointing to local path of json
    Returns gspread client.
    """
    raw = None
    if st_secrets and "SERVICE_ACCOUNT_JSON" in st_secrets:
        raw = st_secrets["SERVICE_ACCOUNT_JSON"]
    raw_env = os.getenv("GOOGLE_SERVICE_ACCOUNT_FILE")
    if not raw and raw_env:
        with open(raw_env, "r") as f:
            sa_info = json.load(f)
    else:
        if not raw:
            raise RuntimeError("No SERVICE_ACCOUNT_JSON found in secrets or GOOGLE_SERVICE_ACCOUNT_FILE env var")
        if isinstance(raw, str) and raw.strip().startswith("{"):
            try:
                sa_info = json.loads(raw)
            except ValueError as e:
                # pasted keys often carry literal \n inside private_key
                try:
                    sa_info = json.loads(raw.replace("\\n", "\n"))
                except ValueError:
                    raise RuntimeError("SERVICE_ACCOUNT_JSON is invalid JSON. Re-paste into secrets (use proper JSON or escaped \\n for private_key).") from e
        elif isinstance(raw, Mapping):
            sa_info = dict(raw)
        else:
            raise RuntimeError("SERVICE_ACCOUNT_JSON must be JSON string in secrets")

    creds = Credentials.from_service_account_info(sa_info, scopes=SCOPES)
    return gspread.authorize(creds)


def _parse_date_cell(v) -> Optional[datetime.date]:
    if v is None or v == "":
        return None
    if isinstance(v, datetime.datetime):
        return v.date()
    if isinstance(v, datetime.date):
        return v
    try:
        if pd.isna(v):
            return None
        return pd.to_datetime(v).date()
    except (TypeError, ValueError):
        return None


def _amount_cell(v, field: str, key) -> int:
    try:
        return parse_amount(v)
    except ValueError:
        logger.warning("Unparseable %s %r for %s, using 0", field, v, key)
        return 0


def _is_truthy(v) -> bool:
    if isinstance(v, bool):
        return v
    return str(v).strip().lower() in ("true", "1", "yes", "y", "si", "sí")


class SheetsClient:
    def __init__(self, sheet_id: str, st_secrets: Optional[dict] = None, gc=None):
        self.sheet_id = sheet_id
        self.st_secrets = st_secrets or {}
        self.gc = gc if gc is not None else _get_gspread_client_from_secrets(self.st_secrets)

    # --- tab plumbing --------------------------------------------------------
    def _spreadsheet(self):
        return self.gc.open_by_key(self.sheet_id)

    def _read_tab(self, tab: str) -> pd.DataFrame:
        """Read a whole tab into a DataFrame. Raises gspread.WorksheetNotFound if absent."""
        ws = self._spreadsheet().worksheet(tab)
        records = ws.get_all_records()
        if not records:
            headers = ws.row_values(1) or []
            return pd.DataFrame(columns=headers)
        return pd.DataFrame(records)

    def _read_tab_or_empty(self, tab: str, columns: List[str]) -> pd.DataFrame:
        try:
            df = self._read_tab(tab)
        except gspread.WorksheetNotFound:
            return pd.DataFrame(columns=columns)
        for c in columns:
            if c not in df.columns:
                df[c] = ""
        return df

    def _write_tab(self, tab: str, df: pd.DataFrame, create: bool = False):
        """
        Overwrite the tab with df content (header row + rows as strings).
        A missing tab is created only when create=True, otherwise the error propagates.
        """
        sh = self._spreadsheet()
        try:
            ws = sh.worksheet(tab)
            ws.clear()
        except gspread.WorksheetNotFound:
            if not create:
                raise
            ws = sh.add_worksheet(title=tab, rows=str(max(100, len(df) + 10)), cols=str(max(10, len(df.columns))))

        header = list(df.columns)
        values = [header]
        for _, row in df.iterrows():
            values.append([("" if pd.isna(x) else str(x)) for x in row.tolist()])

        ws.update(values=values, range_name="A1")

    # --- daily sales ---------------------------------------------------------
    def _daily_frame(self) -> pd.DataFrame:
        return self._read_tab_or_empty(DAILY_TAB, DAILY_COLUMNS)

    @staticmethod
    def _row_to_record(row) -> Optional[DailySalesRecord]:
        day = _parse_date_cell(row.get("log_date"))
        if day is None:
            logger.warning("Skipping %s row with unparseable date %r", DAILY_TAB, row.get("log_date"))
            return None
        amounts = {f: _amount_cell(row.get(f), f, day) for f in ("cash", "card", "bank_transfer", "platforms")}
        stored_total = row.get("total")
        if stored_total is None or stored_total == "" or pd.isna(stored_total):
            total = sum(amounts.values())
        else:
            total = _amount_cell(stored_total, "total", day)
        return DailySalesRecord(
            date=day,
            employee_name=str(row.get("employee_name") or "").strip(),
            total=total,
            **amounts,
        )

    def list_daily_records(self, start: datetime.date, end: datetime.date) -> List[DailySalesRecord]:
        """Records with start <= date <= end, date ascending."""
        df = self._daily_frame()
        out = []
        for _, row in df.iterrows():
            rec = self._row_to_record(row)
            if rec is not None and start <= rec.date <= end:
                out.append(rec)
        out.sort(key=lambda r: r.date)
        return out

    def get_daily_record(self, day: datetime.date) -> Optional[DailySalesRecord]:
        found = self.list_daily_records(day, day)
        return found[0] if found else None

    def upsert_daily_record(self, record: DailySalesRecord) -> DailySalesRecord:
        """Insert or replace the record for record.date. The stored total is recomputed."""
        saved = DailySalesRecord.build(
            record.date,
            employee_name=record.employee_name,
            cash=record.cash,
            card=record.card,
            bank_transfer=record.bank_transfer,
            platforms=record.platforms,
        )
        df = self._daily_frame()
        df = df.loc[df["log_date"].map(_parse_date_cell) != saved.date]

        new_row = {c: "" for c in df.columns}
        new_row.update({
            "log_date": saved.date.isoformat(),
            "employee_name": saved.employee_name,
            "cash": saved.cash,
            "card": saved.card,
            "bank_transfer": saved.bank_transfer,
            "platforms": saved.platforms,
            "total": saved.total,
        })
        df = pd.concat([df, pd.DataFrame([new_row])], ignore_index=True)
        df = df.sort_values("log_date", key=lambda s: s.astype(str)).reset_index(drop=True)

        self._write_tab(DAILY_TAB, df, create=True)
        logger.info("Saved daily record for %s (total %s)", saved.date, saved.total)
        return saved

    def delete_daily_record(self, day: datetime.date) -> bool:
        """Remove the record for day. Returns False when there was none."""
        df = self._daily_frame()
        keep = df["log_date"].map(_parse_date_cell) != day
        if bool(keep.all()):
            return False
        self._write_tab(DAILY_TAB, df.loc[keep].reset_index(drop=True))
        logger.info("Deleted daily record for %s", day)
        return True

    # --- month-end closings --------------------------------------------------
    def _closings_frame(self) -> pd.DataFrame:
        return self._read_tab_or_empty(CLOSINGS_TAB, CLOSING_COLUMNS)

    def get_closing(self, month: datetime.date) -> Optional[MonthEndClosing]:
        key = month.replace(day=1)
        df = self._closings_frame()
        for _, row in df.iterrows():
            d = _parse_date_cell(row.get("month_key"))
            if d is not None and d.replace(day=1) == key:
                cash = row.get("cash_on_hand")
                # a row without a counted figure is not a closing
                if cash is None or (isinstance(cash, str) and cash.strip() == "") or pd.isna(cash):
                    logger.warning("%s row for %s has no cash_on_hand, treating as not closed", CLOSINGS_TAB, key)
                    return None
                notes = str(row.get("notes") or "").strip() or None
                return MonthEndClosing(
                    month_key=key,
                    cash_on_hand=_amount_cell(cash, "cash_on_hand", key),
                    notes=notes,
                )
        return None

    def upsert_closing(self, closing: MonthEndClosing) -> MonthEndClosing:
        key = closing.month_key.replace(day=1)
        saved = MonthEndClosing(month_key=key, cash_on_hand=closing.cash_on_hand, notes=closing.notes)

        df = self._closings_frame()
        months = df["month_key"].map(lambda v: (_parse_date_cell(v) or datetime.date.min).replace(day=1))
        df = df.loc[months != key]

        new_row = {c: "" for c in df.columns}
        new_row.update({
            "month_key": key.isoformat(),
            "cash_on_hand": saved.cash_on_hand,
            "notes": saved.notes or "",
        })
        df = pd.concat([df, pd.DataFrame([new_row])], ignore_index=True)
        df = df.sort_values("month_key", key=lambda s: s.astype(str)).reset_index(drop=True)

        self._write_tab(CLOSINGS_TAB, df, create=True)
        logger.info("Saved month closing for %s (cash on hand %s)", key, saved.cash_on_hand)
        return saved

    # --- targets -------------------------------------------------------------
    def read_targets(self) -> FinancialTargets:
        """Targets from the Settings tab, defaults when the tab or its row is missing."""
        try:
            df = self._read_tab(SETTINGS_TAB)
        except gspread.WorksheetNotFound:
            logger.warning("No %s tab, using default targets", SETTINGS_TAB)
            return DEFAULT_TARGETS
        if df.empty:
            return DEFAULT_TARGETS
        row = df.iloc[0]

        def _value(col, default):
            v = row.get(col)
            if v is None or v == "":
                return default
            return _amount_cell(v, col, SETTINGS_TAB)

        return FinancialTargets(
            break_even_target=_value("break_even_target", DEFAULT_TARGETS.break_even_target),
            profit_target=_value("profit_target", DEFAULT_TARGETS.profit_target),
        )

    def write_targets(self, targets: FinancialTargets):
        """Overwrite the Settings row. Raises gspread.WorksheetNotFound if the tab does not exist."""
        df = pd.DataFrame([{
            "break_even_target": targets.break_even_target,
            "profit_target": targets.profit_target,
        }], columns=SETTINGS_COLUMNS)
        self._write_tab(SETTINGS_TAB, df)
        logger.info("Saved targets: break-even %s, profit %s", targets.break_even_target, targets.profit_target)

    # --- employees -----------------------------------------------------------
    def list_active_employees(self) -> List[str]:
        try:
            df = self._read_tab(EMPLOYEES_TAB)
        except gspread.WorksheetNotFound:
            logger.warning("No %s tab, employee list is empty", EMPLOYEES_TAB)
            return []
        if df.empty or "name" not in df.columns:
            return []
        names = []
        for _, row in df.iterrows():
            name = str(row.get("name") or "").strip()
            if name and _is_truthy(row.get("is_active", True)):
                names.append(name)
        return sorted(names)
