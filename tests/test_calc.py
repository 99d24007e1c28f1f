"""
Tests for the payout advisor.

Covers:
- Aggregation of daily records
- Reserve requirement
- Payout recommendation and its rounding
- The composed entry point
- Boundary sanitization of amounts
"""

import datetime
import math

import pytest

from cashdesk.calc import (
    PAYOUT_DENOMINATION,
    aggregate,
    compute_payout,
    compute_reserve,
    parse_amount,
    payout_breakdown,
    sanitize_amount,
    suggest_payout,
    suggest_payout_breakdown,
    variable_daily_cost,
)
from cashdesk.models import MethodTotals, SalesAggregate


class TestAggregate:

    def test_empty_list_is_all_zero(self):
        assert aggregate([]) == SalesAggregate(0, 0, MethodTotals(0, 0, 0, 0))

    def test_sums_totals_and_methods(self, make_record):
        records = [
            make_record("2025-09-02", cash=100, card=200, platforms=100),
            make_record("2025-09-05", cash=300, bank_transfer=200, platforms=100),
        ]
        agg = aggregate(records)

        assert agg.total_sales == 1000
        assert agg.days_with_data == 2
        assert agg.per_method == MethodTotals(cash=400, card=200, bank_transfer=200, platforms=200)

    def test_uses_stored_total(self, make_record):
        """total comes from the record, not recomputed from the methods."""
        r = make_record("2025-09-02", cash=100)
        odd = type(r)(date=r.date, cash=100, total=150)
        assert aggregate([odd]).total_sales == 150

    def test_accepts_generator(self, make_record):
        agg = aggregate(make_record(f"2025-09-{d:02d}", cash=10) for d in range(1, 11))
        assert agg.total_sales == 100
        assert agg.days_with_data == 10


class TestReserve:

    def test_reference_scenario(self):
        """fixed 6M, target 30M over 30 days, 3 buffer days, 2% margin."""
        assert variable_daily_cost(6_000_000, 30, 30_000_000) == 800_000
        assert compute_reserve(6_000_000, 30, 3, 0.02, 30_000_000) == 8_880_000

    def test_target_below_fixed_cost_reserves_fixed_cost(self):
        assert variable_daily_cost(6_000_000, 30, 4_000_000) == 0
        assert compute_reserve(6_000_000, 30, 3, 0.02, 4_000_000) == 6_000_000

    def test_target_equal_to_fixed_cost(self):
        assert compute_reserve(6_000_000, 30, 10, 0.5, 6_000_000) == 6_000_000

    def test_zero_buffer_and_margin(self):
        assert compute_reserve(6_000_000, 30, 0, 0.0, 30_000_000) == 6_000_000

    def test_rounds_half_up(self):
        # 1 buffer day * 0.5 per day
        assert compute_reserve(0, 2, 1, 0.0, 1) == 1

    def test_non_positive_days_in_month_drops_variable_term(self):
        assert compute_reserve(1_000, 0, 5, 0.1, 2_000) == 1_100

    def test_full_margin(self):
        # fixed + 0 buffer + whole discretionary part
        assert compute_reserve(1_000_000, 31, 0, 1.0, 4_100_000) == 4_100_000


class TestPayout:

    def test_reference_scenario(self):
        breakdown = payout_breakdown(35_000_000, 12_000_000, 8_880_000, 1_000_000, 30_000_000)

        assert breakdown.surplus == 5_000_000
        assert breakdown.available_cash == 3_120_000
        assert breakdown.comfort_ceiling == 9_880_000
        assert breakdown.excess_cash == 2_120_000
        assert breakdown.base == 3_120_000
        assert breakdown.extra == 0
        assert breakdown.raw_payout == 3_120_000
        assert breakdown.payout == 3_100_000
        assert compute_payout(35_000_000, 12_000_000, 8_880_000, 1_000_000, 30_000_000) == 3_100_000

    @pytest.mark.parametrize("month_sales", [0, 30_000_000, 90_000_000])
    def test_absent_cash_gives_no_recommendation(self, month_sales):
        assert compute_payout(month_sales, None, 8_880_000, 1_000_000, 30_000_000) is None
        assert payout_breakdown(month_sales, None, 8_880_000, 1_000_000, 30_000_000) is None

    def test_zero_cash_is_a_recommendation_of_zero(self):
        assert compute_payout(35_000_000, 0, 8_880_000, 1_000_000, 30_000_000) == 0

    def test_small_surplus_tops_up_with_excess_cash(self):
        breakdown = payout_breakdown(30_500_000, 12_000_000, 8_880_000, 1_000_000, 30_000_000)

        assert breakdown.base == 500_000
        assert breakdown.extra == 2_120_000
        assert breakdown.raw_payout == 2_620_000
        assert breakdown.payout == 2_600_000

    def test_no_surplus_still_releases_excess_cash(self):
        breakdown = payout_breakdown(20_000_000, 12_000_000, 8_880_000, 1_000_000, 30_000_000)

        assert breakdown.surplus == 0
        assert breakdown.base == 0
        assert breakdown.extra == 2_120_000
        assert breakdown.payout == 2_100_000

    def test_cash_below_reserve(self):
        breakdown = payout_breakdown(50_000_000, 5_000_000, 8_880_000, 1_000_000, 30_000_000)

        assert breakdown.available_cash == 0
        assert breakdown.excess_cash == 0
        assert breakdown.payout == 0

    def test_cash_between_reserve_and_comfort_ceiling_without_surplus(self):
        assert compute_payout(10_000_000, 9_500_000, 8_880_000, 1_000_000, 30_000_000) == 0

    def test_floors_to_denomination(self):
        """349,999 floors to 300,000, it is not rounded to 350,000 or 400,000."""
        breakdown = payout_breakdown(10_000_000, 1_349_999, 1_000_000, 0, 0)

        assert breakdown.raw_payout == 349_999
        assert breakdown.payout == 300_000

    def test_exact_denomination_is_kept(self):
        assert compute_payout(10_000_000, 1_400_000, 1_000_000, 0, 0) == 400_000

    def test_below_one_denomination_is_zero(self):
        assert compute_payout(10_000_000, 1_099_999, 1_000_000, 0, 0) == 0


class TestSuggestPayout:

    def _month(self, make_record, total_per_day, days=5):
        return [make_record(datetime.date(2025, 9, d), cash=total_per_day) for d in range(1, days + 1)]

    def test_reference_scenario(self, make_record, policy):
        records = self._month(make_record, 7_000_000)  # 35M over five days

        assert suggest_payout(records, 12_000_000, 30_000_000, policy, 30) == 3_100_000

        reserve, breakdown = suggest_payout_breakdown(records, 12_000_000, 30_000_000, policy, 30)
        assert reserve == 8_880_000
        assert breakdown.surplus == 5_000_000

    def test_absent_cash(self, make_record, policy):
        records = self._month(make_record, 20_000_000)

        assert suggest_payout(records, None, 30_000_000, policy, 30) is None
        reserve, breakdown = suggest_payout_breakdown(records, None, 30_000_000, policy, 30)
        assert breakdown is None
        assert reserve == 8_880_000

    def test_no_records(self, policy):
        # no sales: only cash above the comfort ceiling is released
        assert suggest_payout([], 12_000_000, 30_000_000, policy, 30) == 2_100_000

    def test_result_is_denomination_multiple(self, make_record, policy):
        records = self._month(make_record, 6_543_210)
        result = suggest_payout(records, 17_777_777, 30_000_000, policy, 31)
        assert result % PAYOUT_DENOMINATION == 0


class TestSanitize:

    @pytest.mark.parametrize("val, expected", [
        (None, 0),
        (-5, 0),
        (0, 0),
        (2.5, 3),
        (2.4, 2),
        (1500, 1500),
        ("12", 12),
        ("abc", 0),
        (math.nan, 0),
        (math.inf, 0),
        (-math.inf, 0),
        (10**17 + 1, 10**17 + 1),
    ])
    def test_sanitize_amount(self, val, expected):
        assert sanitize_amount(val) == expected

    @pytest.mark.parametrize("val, expected", [
        (None, 0),
        ("", 0),
        ("  ", 0),
        ("-", 0),
        ("—", 0),
        ("$ 1.234.567", 1_234_567),
        ("1,234,567", 1_234_567),
        ("COP 50 000", 50_000),
        ("(500)", 0),
        ("-500", 0),
        (1500.6, 1501),
        (-3, 0),
        ("1234.5", 1235),
        ("1,234.56", 1235),
        ("1.234,5", 1235),
        ("12,5", 13),
        (".5", 1),
        ("1.234.", 1234),
        (10**17 + 1, 10**17 + 1),
    ])
    def test_parse_amount(self, val, expected):
        assert parse_amount(val) == expected

    def test_parse_amount_rejects_text_without_digits(self):
        with pytest.raises(ValueError):
            parse_amount("n/a")

    @pytest.mark.parametrize("val", ["1.234.5", "1,234,56"])
    def test_parse_amount_rejects_mixed_grouping(self, val):
        with pytest.raises(ValueError, match="Ambiguous"):
            parse_amount(val)
