"""
Unit Tests - Period Comparison
"""
from datetime import date, datetime, timezone

import pytest

from storecast.analytics.aggregator import OrderTotals
from storecast.analytics.comparison import (
    NOT_AVAILABLE,
    change_pct,
    compare_periods,
    compare_totals,
)
from storecast.models import PeriodWindow


class TestPeriodWindow:
    """Tests for PeriodWindow"""

    def test_trailing_window(self):
        window = PeriodWindow.trailing(30, date(2024, 6, 30))

        assert window.start == date(2024, 6, 1)
        assert window.end == date(2024, 7, 1)
        assert window.last_day == date(2024, 6, 30)
        assert window.length_days == 30

    def test_previous_window_is_adjacent(self):
        window = PeriodWindow.trailing(30, date(2024, 6, 30))
        previous = window.previous()

        assert previous.end == window.start
        assert previous.length_days == window.length_days
        assert previous.start == date(2024, 5, 2)

    def test_rejects_non_positive_length(self):
        with pytest.raises(ValueError):
            PeriodWindow.trailing(0, date(2024, 6, 30))
        with pytest.raises(ValueError):
            PeriodWindow(start=date(2024, 6, 2), end=date(2024, 6, 1))

    def test_contains_is_half_open(self):
        window = PeriodWindow(start=date(2024, 6, 1), end=date(2024, 6, 8))

        assert window.contains(date(2024, 6, 1))
        assert window.contains(datetime(2024, 6, 7, 23, 59, tzinfo=timezone.utc))
        assert not window.contains(date(2024, 6, 8))
        assert not window.contains(date(2024, 5, 31))


class TestChangePct:
    """Tests for percentage deltas"""

    def test_increase(self):
        assert change_pct(150, 100) == "50.0"

    def test_decrease(self):
        assert change_pct(75, 100) == "-25.0"

    def test_no_previous_value(self):
        assert change_pct(150, 0) == NOT_AVAILABLE
        assert change_pct(0, 0) == "N/A"


class TestComparePeriods:
    """Tests for compare_periods"""

    def test_revenue_and_order_deltas(self, make_order):
        window = PeriodWindow.trailing(7, date(2024, 6, 14))
        current = [make_order(total="100"), make_order(total="50")]
        previous = [make_order(total="100")]

        comparison = compare_periods(current, previous, window)

        assert comparison.revenue_change_pct == "50.0"
        assert comparison.orders_change_pct == "100.0"
        assert comparison.previous_revenue == 100.0
        assert comparison.previous_orders == 1
        assert comparison.previous_start == "2024-06-01"
        assert comparison.previous_end == "2024-06-07"

    def test_empty_previous_period(self, make_order):
        window = PeriodWindow.trailing(7, date(2024, 6, 14))

        comparison = compare_periods([make_order()], [], window)

        assert comparison.revenue_change_pct == "N/A"
        assert comparison.orders_change_pct == "N/A"
        assert comparison.previous_orders == 0

    def test_rejects_non_adjacent_windows(self):
        window = PeriodWindow.trailing(7, date(2024, 6, 14))
        gap = PeriodWindow(start=date(2024, 5, 1), end=date(2024, 5, 8))

        with pytest.raises(ValueError):
            compare_periods([], [], window, gap)

    def test_compare_totals_without_window(self):
        comparison = compare_totals(
            OrderTotals(order_count=3, revenue_total=300.0),
            OrderTotals(order_count=4, revenue_total=400.0),
        )

        assert comparison.revenue_change_pct == "-25.0"
        assert comparison.previous_start is None
