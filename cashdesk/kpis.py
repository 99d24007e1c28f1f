# cashdesk/kpis.py
"""
Dashboard derivations over daily sales records: range KPIs, the last-months
table, the below-target projection alert and the missing-days list.

Month helpers live here too since every view works month by month.
"""

import calendar
import datetime
from typing import Dict, Iterable, List, Optional, Tuple

import pandas as pd

from cashdesk.calc import aggregate, sanitize_amount
from cashdesk.models import DailySalesRecord

ALERT_DAYS_LEFT = 5
CLOSED_WEEKDAY = 0  # Monday


# --- Month helpers -----------------------------------------------------------
def month_start(d: datetime.date) -> datetime.date:
    return d.replace(day=1)


def days_in_month(d: datetime.date) -> int:
    return calendar.monthrange(d.year, d.month)[1]


def month_end(d: datetime.date) -> datetime.date:
    return d.replace(day=days_in_month(d))


def add_months(d: datetime.date, n: int) -> datetime.date:
    """First day of the month n months away from d."""
    idx = d.year * 12 + (d.month - 1) + n
    return datetime.date(idx // 12, idx % 12 + 1, 1)


def month_key(d: datetime.date) -> str:
    return f"{d.year}-{d.month:02d}"


def months_window(today: datetime.date, last_n: int = 6) -> Tuple[datetime.date, datetime.date]:
    """Date range covering the last_n months before today's month plus the current one."""
    return add_months(month_start(today), -last_n), month_end(today)


def fmt_cop(n) -> str:
    """Format as Colombian pesos, e.g. '$ 1.234.567'. Negative values show as 0."""
    return "$ " + f"{sanitize_amount(n):,}".replace(",", ".")


# --- KPIs --------------------------------------------------------------------
def range_kpis(records: List[DailySalesRecord], start: datetime.date, end: datetime.date) -> Dict:
    agg = aggregate(records)
    total = agg.total_sales
    avg_day = total / agg.days_with_data if agg.days_with_data else 0

    # weekly average uses calendar days between the first and last recorded day
    if records:
        first = min(r.date for r in records)
        last = max(r.date for r in records)
    else:
        first, last = start, end
    range_days = max(1, (last - first).days + 1)
    avg_week = total / range_days * 7

    def pct(v):
        return sanitize_amount(v / total * 100) if total else 0

    methods = agg.per_method.as_dict()
    return {
        "total": total,
        "days_with_data": agg.days_with_data,
        "avg_day": avg_day,
        "avg_week": avg_week,
        "per_method": methods,
        "share_pct": {k: pct(v) for k, v in methods.items()},
    }


def monthly_totals(records: Iterable[DailySalesRecord], break_even_target: int) -> pd.DataFrame:
    """One row per month (ascending) with total, target and surplus over the target."""
    columns = ["month", "total", "target", "surplus"]
    rows = [{"month": month_key(r.date), "total": r.total} for r in records]
    if not rows:
        return pd.DataFrame(columns=columns)

    df = pd.DataFrame(rows).groupby("month", as_index=False)["total"].sum()
    df = df.sort_values("month").reset_index(drop=True)
    df["target"] = break_even_target
    df["surplus"] = (df["total"] - break_even_target).clip(lower=0)
    return df[columns]


def below_target_alert(
    records: List[DailySalesRecord],
    range_start: datetime.date,
    range_end: datetime.date,
    today: datetime.date,
    break_even_target: int,
) -> Optional[Dict]:
    """
    Warn near month end when the current month is projected to miss the
    break-even target. Only applies when the whole range sits in today's month.
    """
    current = month_start(today)
    if month_start(range_start) != current or month_start(range_end) != current:
        return None

    dim = days_in_month(today)
    days_left = dim - today.day
    agg = aggregate(records)
    avg_so_far = agg.total_sales / agg.days_with_data if agg.days_with_data else 0
    projected = avg_so_far * dim

    if days_left <= ALERT_DAYS_LEFT and projected < break_even_target:
        return {
            "days_left": days_left,
            "projected": projected,
            "shortfall": break_even_target - projected,
        }
    return None


def missing_days(records: Iterable[DailySalesRecord], month: datetime.date) -> List[datetime.date]:
    """Days of the month with no record, skipping Mondays when the shop is closed."""
    recorded = {r.date for r in records}
    first = month_start(month)
    out = []
    for day in range(1, days_in_month(first) + 1):
        d = first.replace(day=day)
        if d.weekday() == CLOSED_WEEKDAY:
            continue
        if d not in recorded:
            out.append(d)
    return out
