"""Tests for period splitting and comparisons."""

import math

import pandas as pd
import pytest

from retail_core.exceptions import ConfigError
from retail_core.sales.periods import (
    ComparisonKind,
    compare_periods,
    compare_periods_revenue,
    compare_periods_sales,
    compare_periods_ticket,
    compute_delta,
    split_data_by_period,
)
from tests.test_utils import dated_frame


@pytest.fixture
def rows() -> pd.DataFrame:
    """Anchor 2024-03-31; month windows start 2024-02-29 and 2024-01-29."""
    return dated_frame(
        [
            ("2024-03-31", 100.0),
            ("2024-03-01", 50.0),
            ("2024-02-29", 30.0),  # current window start, inclusive
            ("2024-02-28", 40.0),
            ("2024-01-29", 10.0),  # previous window start, inclusive
            ("2024-01-28", 5.0),  # outside both windows
            ("garbage", 1000.0),
        ]
    )


class TestSplit:
    def test_month_windows(self, rows: pd.DataFrame) -> None:
        """Both window starts are inclusive; the undated row is in neither."""
        split = split_data_by_period(rows, "date", "month")

        assert list(split.current["value"]) == [100.0, 50.0, 30.0]
        assert list(split.previous["value"]) == [40.0, 10.0]
        assert split.anchor == pd.Timestamp("2024-03-31")
        assert split.current_start == pd.Timestamp("2024-02-29")

    def test_day_windows(self, rows: pd.DataFrame) -> None:
        """No sale falls in the seven days before the current window."""
        split = split_data_by_period(rows, "date", "7d")

        assert list(split.current["value"]) == [100.0]
        assert split.previous.empty

    def test_all_has_no_previous(self, rows: pd.DataFrame) -> None:
        """The "all" filter keeps every dated row and has no previous window."""
        split = split_data_by_period(rows, "date", "all")

        assert len(split.current) == 6
        assert split.previous.empty
        assert compare_periods_revenue(split.current, split.previous) is None
        assert compare_periods(split.current, split.previous) == {}

    def test_unknown_filter_raises(self, rows: pd.DataFrame) -> None:
        """Filters outside the known set are a configuration error."""
        with pytest.raises(ConfigError):
            split_data_by_period(rows, "date", "fortnight")

    def test_no_date_column(self) -> None:
        """Rows without dates fall in neither window."""
        split = split_data_by_period([{"value": 1.0}], "date", "month")
        assert split.current.empty and split.previous.empty


def test_comparisons(rows: pd.DataFrame) -> None:
    """current: 3 sales, 180.00; previous: 2 sales, 50.00."""
    split = split_data_by_period(rows, "date", "month")

    revenue = compare_periods_revenue(split.current, split.previous)
    sales = compare_periods_sales(split.current, split.previous)
    ticket = compare_periods_ticket(split.current, split.previous)

    assert (revenue.current_value, revenue.previous_value) == (180.0, 50.0)
    assert revenue.delta_percent == 260.0
    assert revenue.kind is ComparisonKind.NORMAL
    assert sales.delta_percent == 50.0
    assert ticket.current_value == 60.0
    assert ticket.previous_value == 25.0
    assert ticket.delta_percent == 140.0


def test_delta_edge_cases() -> None:
    """Growth from zero, both zero and ordinary declines."""
    new = compute_delta(150.0, 0.0)
    assert new.kind is ComparisonKind.NEW
    assert math.isinf(new.delta_percent) and new.delta_percent > 0

    zero = compute_delta(0.0, 0.0)
    assert zero.kind is ComparisonKind.ZERO
    assert zero.delta_percent == 0.0

    assert compute_delta(90.0, 120.0).delta_percent == -25.0
    assert compute_delta(1.0, 3.0).delta_percent == -66.7
    assert new.to_dict()["kind"] == "new"


def test_negative_current_over_zero() -> None:
    """-5 against 0 is a (corrupt) decline, not a flat ZERO period."""
    result = compute_delta(-5.0, 0.0)

    assert result.kind is ComparisonKind.NORMAL
    assert math.isinf(result.delta_percent) and result.delta_percent < 0
