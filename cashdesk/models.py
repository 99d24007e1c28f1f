# cashdesk/models.py
"""
Plain value types shared by the payout advisor, the dashboard derivations
and the spreadsheet store.

All currency amounts are non-negative integers in the smallest currency unit.
"""

import datetime
from dataclasses import dataclass, field
from typing import Optional


@dataclass(frozen=True)
class DailySalesRecord:
    date: datetime.date
    employee_name: str = ""
    cash: int = 0
    card: int = 0
    bank_transfer: int = 0
    platforms: int = 0
    total: int = 0

    @classmethod
    def build(cls, date, employee_name="", cash=0, card=0, bank_transfer=0, platforms=0):
        """Create a record whose total is the sum of the four payment methods."""
        return cls(
            date=date,
            employee_name=employee_name,
            cash=cash,
            card=card,
            bank_transfer=bank_transfer,
            platforms=platforms,
            total=cash + card + bank_transfer + platforms,
        )


@dataclass(frozen=True)
class MonthEndClosing:
    month_key: datetime.date  # always the first day of the month
    cash_on_hand: int
    notes: Optional[str] = None


@dataclass(frozen=True)
class FinancialTargets:
    break_even_target: int
    profit_target: int


@dataclass(frozen=True)
class PayoutPolicyParams:
    fixed_monthly_cost: int
    buffer_days: int
    safety_margin: float
    comfort_cash_additional: int


@dataclass(frozen=True)
class MethodTotals:
    cash: int = 0
    card: int = 0
    bank_transfer: int = 0
    platforms: int = 0

    def as_dict(self) -> dict:
        return {
            "cash": self.cash,
            "card": self.card,
            "bank_transfer": self.bank_transfer,
            "platforms": self.platforms,
        }


@dataclass(frozen=True)
class SalesAggregate:
    total_sales: int = 0
    days_with_data: int = 0
    per_method: MethodTotals = field(default_factory=MethodTotals)


@dataclass(frozen=True)
class PayoutBreakdown:
    """Every intermediate figure behind one payout recommendation."""

    surplus: int
    available_cash: int
    comfort_ceiling: int
    excess_cash: int
    base: int
    extra: int
    raw_payout: int
    payout: int
