"""Tests for the individual audit checks."""

import math

import pytest

from retail_core.exceptions import ConfigError
from retail_core.findings import CheckOutcome, Severity
from retail_core.qa.checks import (
    validate_abc,
    validate_aggregate,
    validate_buckets,
    validate_comparison,
    validate_raw_data,
    validate_ticket,
    validate_weekday,
)
from retail_core.qa.report import build_report
from retail_core.sales.aggregate import AggregateBucket
from retail_core.sales.periods import ComparisonKind, compute_delta
from retail_core.sales.weekday import weekday_performance
from tests.test_utils import category_frame, dated_frame


def sale(date: str = "2024-03-01", value=10.0, quantity=1) -> dict:
    return {"date": date, "value": value, "quantity": quantity}


class TestRawData:
    def test_duplicates_keep_first(self) -> None:
        """Same date, value and quantity twice keeps the first row only."""
        check = validate_raw_data([sale(), sale(), sale(value=11.0)], today="2024-04-01")

        assert check.valid
        assert check.stats["duplicates"] == 1
        assert check.stats["valid"] == 2
        assert check.outcome.findings == []

    def test_negative_value_is_warning_and_clamped(self) -> None:
        """A negative sale is clamped to 0 with a warning, not rejected."""
        check = validate_raw_data([sale(value=-50)], today="2024-04-01")

        assert check.valid
        assert check.corrected_rows[0]["value"] == 0.0
        assert check.stats["corrected"] == 1
        assert [f.severity for f in check.outcome.findings] == [Severity.WARNING]
        assert "negative value" in check.outcome.findings[0].message

    def test_invalid_number_is_critical_and_zeroed(self) -> None:
        """Text in the value column is critical and the cell becomes 0."""
        check = validate_raw_data([sale(value="abc"), sale(value=5.0)], today="2024-04-01")

        assert not check.valid
        assert check.stats["invalid"] == 1
        assert check.corrected_rows[0]["value"] == 0.0
        assert len(check.outcome.of(Severity.CRITICAL)) == 1

    @pytest.mark.parametrize("value", [float("nan"), float("inf"), None])
    def test_non_finite_values_are_critical(self, value) -> None:
        """NaN, Infinity and missing values cannot be summed."""
        check = validate_raw_data([sale(value=value)], today="2024-04-01")
        assert check.outcome.of(Severity.CRITICAL)

    def test_invalid_date_drops_row(self) -> None:
        """An unparseable date is grave and the row is left out."""
        check = validate_raw_data([sale(date="not a date"), sale()], today="2024-04-01")

        assert not check.valid
        assert check.stats["valid"] == 1
        assert check.stats["invalid"] == 1
        assert len(check.outcome.of(Severity.GRAVE)) == 1

    def test_future_date_is_warning(self) -> None:
        """A sale dated after today is kept with a warning."""
        check = validate_raw_data([sale(date="2024-03-01")], today="2024-01-01")

        assert check.valid
        assert "future" in check.outcome.of(Severity.WARNING)[0].message

    def test_rounding_counts_as_correction(self) -> None:
        """10.123 becomes 10.12 and "2" becomes 2, one corrected row."""
        check = validate_raw_data([sale(value=10.123, quantity="2")], today="2024-04-01")

        assert check.corrected_rows[0]["value"] == 10.12
        assert check.corrected_rows[0]["quantity"] == 2
        assert check.stats["corrected"] == 1
        assert check.outcome.corrections == ["sales[0]: values corrected"]

    @pytest.mark.parametrize("rows", ["not rows", None, []])
    def test_unusable_input_is_critical(self, rows) -> None:
        """Anything that is not a non-empty list of rows is critical."""
        check = validate_raw_data(rows)

        assert not check.valid
        assert check.corrected_rows == []
        assert check.outcome.of(Severity.CRITICAL)


class TestAggregate:
    def test_tolerance_is_inclusive(self) -> None:
        """A difference of exactly 0.02 passes."""
        check = validate_aggregate([{"value": 1000.0}], 999.98)

        assert check.valid
        assert check.outcome.findings == []

    def test_difference_beyond_tolerance_is_grave(self) -> None:
        """0.03 off is grave and names the difference."""
        check = validate_aggregate([{"value": 1000.0}], 999.97, context="total revenue")

        assert not check.valid
        assert check.corrected_value == 1000.0
        message = check.outcome.of(Severity.GRAVE)[0].message
        assert "difference of 0.03" in message
        assert check.outcome.corrections

    def test_average(self) -> None:
        """The ticket is checked with kind="average"."""
        check = validate_aggregate([{"value": 100.0}, {"value": 200.0}], 150.0, kind="average")
        assert check.valid

    @pytest.mark.parametrize("produced", ["abc", None, float("nan")])
    def test_invalid_produced_is_critical(self, produced) -> None:
        """A produced value that is not a number is replaced by the recomputed one."""
        check = validate_aggregate([{"value": 10.0}], produced)

        assert not check.valid
        assert check.corrected_value == 10.0
        assert check.outcome.of(Severity.CRITICAL)

    def test_unknown_kind_raises(self) -> None:
        """Only sum and average are recomputed."""
        with pytest.raises(ConfigError):
            validate_aggregate([{"value": 1.0}], 1.0, kind="median")


class TestBuckets:
    def test_unknown_key_and_drift(self) -> None:
        """Z is not in the data, B is 50.00 off and A only has a wrong share."""
        rows = category_frame({"A": 100.0, "B": 300.0})
        buckets = [
            AggregateBucket("B", 350.0, percentage=75.0),
            AggregateBucket("A", 100.0, percentage=30.0),
            AggregateBucket("Z", 5.0),
        ]
        check = validate_buckets(rows, buckets, "category")

        assert not check.valid
        assert len(check.outcome.of(Severity.GRAVE)) == 2
        assert [(b.dimension_value, b.value) for b in check.buckets] == [("B", 300.0), ("A", 100.0)]
        assert check.buckets[1].percentage == 25.0
        assert len(check.outcome.corrections) == 1

    def test_quantity_drift_is_grave(self) -> None:
        """A quantity ranking is checked on units, not only on value."""
        rows = [{"product": "x", "quantity": 5}, {"product": "y", "quantity": 1}]
        buckets = [AggregateBucket("x", 0.0, quantity=999.0, percentage=83.3333)]

        check = validate_buckets(rows, buckets, "product", quantity_field="quantity", by="quantity")

        assert not check.valid
        assert "quantity 999 reported, 5 found" in check.outcome.of(Severity.GRAVE)[0].message
        assert check.buckets[0].quantity == 5.0

    def test_missing_leader_is_grave(self) -> None:
        """A top-1 list naming the second best group is replaced."""
        rows = category_frame({"Mercearia": 300.0, "Bebidas": 600.0, "Limpeza": 200.0})
        buckets = [AggregateBucket("Mercearia", 300.0, percentage=27.2727)]

        check = validate_buckets(rows, buckets, "category", direction="desc")

        assert not check.valid
        assert "ranking does not match the data" in check.outcome.of(Severity.GRAVE)[0].message
        assert [(b.dimension_value, b.value) for b in check.buckets] == [("Bebidas", 600.0)]

    def test_wrong_order_is_a_correction(self) -> None:
        """The right groups in the wrong order are only reordered."""
        rows = category_frame({"A": 100.0, "B": 300.0})
        buckets = [AggregateBucket("A", 100.0, percentage=25.0), AggregateBucket("B", 300.0, percentage=75.0)]

        check = validate_buckets(rows, buckets, "category", direction="desc")

        assert check.valid
        assert [b.dimension_value for b in check.buckets] == ["B", "A"]
        assert check.outcome.corrections == ["ranking: order corrected to ['B', 'A']"]

    def test_tie_at_cut_off_is_a_correction(self) -> None:
        """A and B tie; the first-seen group wins the only slot."""
        rows = category_frame({"A": 100.0, "B": 100.0, "C": 50.0})

        check = validate_buckets(rows, [AggregateBucket("B", 100.0, percentage=40.0)], "category", direction="desc")

        assert check.valid
        assert [b.dimension_value for b in check.buckets] == ["A"]
        assert check.outcome.corrections

    def test_worst_list_uses_ascending_order(self) -> None:
        """C and A are the two weakest groups, weakest first."""
        rows = category_frame({"A": 100.0, "B": 300.0, "C": 50.0})
        buckets = [AggregateBucket("C", 50.0, percentage=11.1111), AggregateBucket("A", 100.0, percentage=22.2222)]

        check = validate_buckets(rows, buckets, "category", direction="asc")

        assert check.valid
        assert check.outcome.corrections == []


class TestABC:
    @staticmethod
    def items(**overrides) -> list:
        base = [
            {"dimension_value": "X", "value": 500.0},
            {"dimension_value": "Y", "value": 300.0},
            {"dimension_value": "Z", "value": 200.0},
        ]
        for key, values in overrides.items():
            for item, value in zip(base, values):
                item[key] = value
        return base

    def test_wrong_class_is_corrected(self) -> None:
        """Y at 80% accumulated is C, not B; a class fix does not block."""
        check = validate_abc(self.items(abc_class=["A", "B", "D"]))

        assert check.valid
        assert [i.abc_class for i in check.items] == ["A", "C", "D"]
        assert any("class corrected from B to C" in c for c in check.outcome.corrections)
        assert check.distribution == {"A": 1, "B": 0, "C": 1, "D": 1}

    def test_decreasing_curve_is_corrected(self) -> None:
        """A running share that goes down is recomputed."""
        check = validate_abc(self.items(accumulated_percentage=[50.0, 40.0, 100.0]))

        assert check.valid
        assert any("decreased" in c for c in check.outcome.corrections)
        assert [i.accumulated_percentage for i in check.items] == [50.0, 80.0, 100.0]

    def test_unsorted_items_are_resorted(self) -> None:
        """Items are put back in descending value order."""
        items = self.items()
        check = validate_abc([items[2], items[0], items[1]])

        assert [i.dimension_value for i in check.items] == ["X", "Y", "Z"]
        assert any("re-sorted" in c for c in check.outcome.corrections)

    def test_curve_not_closing_is_grave(self) -> None:
        """A produced curve ending at 90% is grave; the recomputed one closes."""
        check = validate_abc(self.items(accumulated_percentage=[50.0, 80.0, 90.0]))

        assert not check.valid
        assert "90.00%" in check.outcome.of(Severity.GRAVE)[0].message
        assert check.items[-1].accumulated_percentage == 100.0

    def test_long_curve_shares_sum_to_100(self) -> None:
        """300 equal items keep 4-decimal shares that still add up to 100."""
        items = [{"dimension_value": f"P{i}", "value": 1.0} for i in range(300)]

        check = validate_abc(items, [70, 10, 10, 10])

        assert check.valid
        assert check.items[0].percentage == 0.3333
        assert sum(i.percentage for i in check.items) == pytest.approx(100, abs=0.1)

    def test_product_level_critical_flag(self) -> None:
        """P2 holds 0.5% in class D, so it must be flagged."""
        items = [{"dimension_value": "P1", "value": 995.0}, {"dimension_value": "P2", "value": 5.0, "is_critical": False}]
        check = validate_abc(items, [70, 10, 10, 10], product_level=True)

        assert check.items[1].is_critical
        assert any("critical flag" in c for c in check.outcome.corrections)

    def test_invalid_thresholds_and_empty_input(self) -> None:
        """Bad thresholds, no items and a zero total are critical."""
        assert validate_abc(self.items(), [40, 30, 20, 5]).outcome.of(Severity.CRITICAL)
        assert validate_abc([]).outcome.of(Severity.CRITICAL)
        assert validate_abc([{"value": 0.0}]).outcome.of(Severity.CRITICAL)


class TestComparison:
    def test_growth_from_zero(self) -> None:
        """Previous 0 and current positive is NEW with an infinite delta."""
        check = validate_comparison(150.0, 0.0)

        assert check.valid
        assert check.result.kind is ComparisonKind.NEW
        assert math.isinf(check.delta_percent)

    def test_growth_from_zero_matches_produced(self) -> None:
        """An infinite produced delta equal to the recomputed one is not corrected."""
        check = validate_comparison(150.0, 0.0, produced=compute_delta(150.0, 0.0))

        assert check.outcome.corrections == []

    def test_both_zero(self) -> None:
        """No sales in either period is ZERO, not NEW."""
        check = validate_comparison(0.0, 0.0)

        assert check.result.kind is ComparisonKind.ZERO
        assert check.delta_percent == 0.0

    def test_large_swing_is_warning(self) -> None:
        """+600% is computed but flagged for manual verification."""
        check = validate_comparison(700.0, 100.0)

        assert check.valid
        assert check.delta_percent == 600.0
        assert check.outcome.of(Severity.WARNING)

    def test_invalid_input(self) -> None:
        """A non-numeric period value gives no result."""
        check = validate_comparison("x", 100.0)

        assert not check.valid
        assert check.result is None
        assert check.delta_percent == 0.0

    def test_negative_period_value_is_critical(self) -> None:
        """Period totals are never negative after validation."""
        check = validate_comparison(-5.0, 0.0)

        assert not check.valid
        assert "negative value" in check.outcome.of(Severity.CRITICAL)[0].message

    def test_produced_delta_is_corrected(self) -> None:
        """A produced +20% over a true +10% is a correction."""
        check = validate_comparison(110.0, 100.0, produced=compute_delta(120.0, 100.0))

        assert check.delta_percent == 10.0
        assert check.outcome.corrections


class TestTicket:
    def test_no_transactions(self) -> None:
        """No sales gives a ticket of 0 and no finding."""
        check = validate_ticket(100.0, 0)
        assert check.ticket == 0.0
        assert check.outcome.findings == []

    def test_implausible_tickets_warn(self) -> None:
        """150,000.00 per sale is too high, 0.50 too low."""
        assert validate_ticket(300_000.0, 2).outcome.of(Severity.WARNING)
        assert validate_ticket(1.0, 2).outcome.of(Severity.WARNING)

    def test_normal_ticket(self) -> None:
        """Four sales of 100.00 in total give 25.00."""
        check = validate_ticket(100.0, 4)
        assert check.ticket == 25.0
        assert check.outcome.findings == []


def test_weekday_tampered_bucket_is_grave() -> None:
    """A Monday total off by 10.00 is grave; the wrong worst day is a correction."""
    rows = dated_frame([("2024-03-04", 100.0), ("2024-03-05", 50.0)])
    produced = weekday_performance(rows)
    produced.bucket("Monday").value = 110.0
    produced.worst_day = "Monday"

    check = validate_weekday(rows, produced)

    assert not check.valid
    assert len(check.outcome.of(Severity.GRAVE)) == 1
    assert check.performance.bucket("Monday").value == 100.0
    assert check.outcome.corrections


def test_build_report_merges_in_order() -> None:
    """Outcomes are merged in the order given; any grave error rejects."""
    first, second = CheckOutcome(), CheckOutcome()
    first.warning("w1")
    first.corrections.append("c1")
    second.grave("g1")
    second.validations.append("v1")

    report = build_report(first, second)

    assert not report.approved
    assert report.grave_errors == ("g1",)
    assert report.warnings == ("w1",)
    assert report.summary["corrections"] == 1
    assert build_report(first).approved
