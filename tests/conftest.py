"""Shared fixtures: record factory and an in-memory stand-in for a gspread spreadsheet."""

import datetime
import re

import gspread
import pytest

from cashdesk.models import DailySalesRecord, PayoutPolicyParams
from cashdesk.sheets_client import SheetsClient


def rec(day, cash=0, card=0, bank_transfer=0, platforms=0, employee_name="Ana"):
    if isinstance(day, str):
        day = datetime.date.fromisoformat(day)
    return DailySalesRecord.build(
        day,
        employee_name=employee_name,
        cash=cash,
        card=card,
        bank_transfer=bank_transfer,
        platforms=platforms,
    )


class FakeWorksheet:
    """Keeps cells as strings; get_all_records turns integer-looking cells into ints like gspread does."""

    def __init__(self, title, rows=None):
        self.title = title
        self.rows = [list(r) for r in (rows or [])]

    def get_all_records(self):
        if len(self.rows) < 2:
            return []
        header = self.rows[0]
        out = []
        for row in self.rows[1:]:
            padded = list(row) + [""] * (len(header) - len(row))
            out.append({h: self._numericise(v) for h, v in zip(header, padded)})
        return out

    @staticmethod
    def _numericise(v):
        s = str(v)
        if re.fullmatch(r"-?\d+", s):
            return int(s)
        return v

    def row_values(self, index):
        if len(self.rows) < index:
            return []
        return list(self.rows[index - 1])

    def clear(self):
        self.rows = []

    def update(self, values=None, range_name=None, **kwargs):
        self.rows = [list(r) for r in values]


class FakeSpreadsheet:
    def __init__(self):
        self.tabs = {}

    def add_tab(self, title, rows):
        self.tabs[title] = FakeWorksheet(title, rows)
        return self.tabs[title]

    def worksheet(self, title):
        if title not in self.tabs:
            raise gspread.WorksheetNotFound(title)
        return self.tabs[title]

    def add_worksheet(self, title, rows, cols):
        return self.add_tab(title, [])


class FakeGspreadClient:
    def __init__(self, spreadsheet):
        self.spreadsheet = spreadsheet
        self.opened = []

    def open_by_key(self, key):
        self.opened.append(key)
        return self.spreadsheet


@pytest.fixture
def spreadsheet():
    return FakeSpreadsheet()


@pytest.fixture
def store(spreadsheet):
    return SheetsClient("sheet-123", gc=FakeGspreadClient(spreadsheet))


@pytest.fixture
def policy():
    return PayoutPolicyParams(
        fixed_monthly_cost=6_000_000,
        buffer_days=3,
        safety_margin=0.02,
        comfort_cash_additional=1_000_000,
    )


@pytest.fixture
def make_record():
    return rec
