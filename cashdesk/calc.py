# cashdesk/calc.py
"""
Monthly payout advisor.

Turns a month of daily sales records plus the cash counted at month end into
a conservative owner withdrawal recommendation:

    aggregate(records)        -> SalesAggregate
    compute_reserve(...)      -> cash that must stay in the till
    compute_payout(...)       -> withdrawal, floored to PAYOUT_DENOMINATION

All functions are pure; callers pass already-resolved values and get plain
values back. Boundary values coming from the UI or the spreadsheet go through
sanitize_amount / parse_amount first.
"""

import logging
import math
import numbers
import re
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Optional, Tuple

from cashdesk.models import (
    DailySalesRecord,
    MethodTotals,
    PayoutBreakdown,
    PayoutPolicyParams,
    SalesAggregate,
)

logger = logging.getLogger(__name__)

PAYOUT_DENOMINATION = 100_000


# --- Boundary sanitization -------------------------------------------------
def sanitize_amount(val) -> int:
    """max(0, round(val)); None, NaN and infinities become 0."""
    if val is None:
        return 0
    if isinstance(val, numbers.Integral):
        return max(0, int(val))
    try:
        num = float(val)
    except (TypeError, ValueError):
        return 0
    if not math.isfinite(num):
        return 0
    return max(0, _round_half_up(num))


def _is_thousands_grouped(number: str) -> bool:
    groups = re.split(r"[.,]", number)
    return 1 <= len(groups[0]) <= 3 and all(len(g) == 3 for g in groups[1:])


def parse_amount(val) -> int:
    """
    Parse a user/spreadsheet currency value into a sanitized integer amount:
    - None, empty, '-' or '—' -> 0
    - strips currency symbols and whitespace
    - '.' and ',' are thousands separators when every group after them has
      3 digits ('1.234.567'); otherwise the last one is the decimal point
      ('1234.5', '1.234,5') and the value is rounded half-up
    - parentheses or a leading minus mean negative, which clamps to 0
    - raises ValueError if a non-empty value holds no digits or the
      separators cannot be read either way ('1.234.5')
    """
    if val is None:
        return 0
    if isinstance(val, (int, float)):
        return sanitize_amount(val)
    s = str(val).strip()
    if s == "" or s in ("-", "—"):
        return 0

    negative = (s.startswith("(") and s.endswith(")")) or s.startswith("-")

    number = re.sub(r"[^\d.,]", "", s)
    if not re.search(r"\d", number):
        raise ValueError(f"Unparseable amount: {val!r}")
    number = number.rstrip(".,")

    if not re.search(r"[.,]", number) or _is_thousands_grouped(number):
        amount = Decimal(re.sub(r"[.,]", "", number))
    else:
        point = max(number.rfind("."), number.rfind(","))
        int_part, frac = number[:point], number[point + 1:]
        if number[point] in int_part:
            raise ValueError(f"Ambiguous amount: {val!r}")
        int_part = re.sub(r"[.,]", "", int_part) or "0"
        amount = Decimal(f"{int_part}.{frac}")

    if negative:
        return 0
    return int(amount.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def _round_half_up(x: float) -> int:
    return int(math.floor(x + 0.5))


# --- Aggregator --------------------------------------------------------------
def aggregate(records: Iterable[DailySalesRecord]) -> SalesAggregate:
    total = cash = card = transfer = platforms = days = 0
    for r in records:
        total += r.total
        cash += r.cash
        card += r.card
        transfer += r.bank_transfer
        platforms += r.platforms
        days += 1
    return SalesAggregate(
        total_sales=total,
        days_with_data=days,
        per_method=MethodTotals(cash=cash, card=card, bank_transfer=transfer, platforms=platforms),
    )


# --- Reserve calculator ------------------------------------------------------
def variable_daily_cost(fixed_cost: int, days_in_month: int, break_even_target: int) -> float:
    """Non-fixed share of the break-even target spread over the month."""
    if days_in_month <= 0:
        return 0.0
    return max(0.0, (break_even_target - fixed_cost) / days_in_month)


def compute_reserve(
    fixed_cost: int,
    days_in_month: int,
    buffer_days: int,
    safety_margin: float,
    break_even_target: int,
) -> int:
    """
    fixed_cost + buffer_days * variable daily cost + safety_margin * discretionary cost,
    rounded half-up. Never below fixed_cost.
    """
    v = variable_daily_cost(fixed_cost, days_in_month, break_even_target)
    safety = max(0.0, safety_margin * (break_even_target - fixed_cost))
    reserve = _round_half_up(fixed_cost + buffer_days * v + safety)
    return max(0, reserve)


# --- Payout calculator -------------------------------------------------------
def payout_breakdown(
    month_sales: int,
    cash_on_hand: Optional[int],
    reserve: int,
    comfort_cash_additional: int,
    break_even_target: int,
) -> Optional[PayoutBreakdown]:
    # no cash count, no advice
    if cash_on_hand is None:
        return None

    surplus = max(0, month_sales - break_even_target)
    available_cash = max(0, cash_on_hand - reserve)
    comfort_ceiling = reserve + comfort_cash_additional
    excess_cash = max(0, cash_on_hand - comfort_ceiling)

    base = min(available_cash, surplus)
    extra = max(0, min(available_cash, base + excess_cash) - base)
    raw_payout = min(available_cash, base + extra)
    payout = (raw_payout // PAYOUT_DENOMINATION) * PAYOUT_DENOMINATION

    return PayoutBreakdown(
        surplus=surplus,
        available_cash=available_cash,
        comfort_ceiling=comfort_ceiling,
        excess_cash=excess_cash,
        base=base,
        extra=extra,
        raw_payout=raw_payout,
        payout=payout,
    )


def compute_payout(
    month_sales: int,
    cash_on_hand: Optional[int],
    reserve: int,
    comfort_cash_additional: int,
    break_even_target: int,
) -> Optional[int]:
    breakdown = payout_breakdown(month_sales, cash_on_hand, reserve, comfort_cash_additional, break_even_target)
    if breakdown is None:
        return None
    return breakdown.payout


# --- Composed entry point ----------------------------------------------------
def suggest_payout_breakdown(
    records: Iterable[DailySalesRecord],
    cash_on_hand: Optional[int],
    break_even_target: int,
    policy: PayoutPolicyParams,
    days_in_month: int,
) -> Tuple[int, Optional[PayoutBreakdown]]:
    """Return (reserve, breakdown); breakdown is None when cash_on_hand is None."""
    agg = aggregate(records)
    reserve = compute_reserve(
        policy.fixed_monthly_cost,
        days_in_month,
        policy.buffer_days,
        policy.safety_margin,
        break_even_target,
    )
    breakdown = payout_breakdown(
        agg.total_sales,
        cash_on_hand,
        reserve,
        policy.comfort_cash_additional,
        break_even_target,
    )
    logger.debug(
        "payout suggestion: sales=%s days=%s reserve=%s cash=%s payout=%s",
        agg.total_sales, agg.days_with_data, reserve, cash_on_hand,
        breakdown.payout if breakdown else None,
    )
    return reserve, breakdown


def suggest_payout(
    records: Iterable[DailySalesRecord],
    cash_on_hand: Optional[int],
    break_even_target: int,
    policy: PayoutPolicyParams,
    days_in_month: int,
) -> Optional[int]:
    _, breakdown = suggest_payout_breakdown(records, cash_on_hand, break_even_target, policy, days_in_month)
    if breakdown is None:
        return None
    return breakdown.payout
