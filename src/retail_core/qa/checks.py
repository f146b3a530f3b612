"""Shadow-computation checks for the sales engines.

Each ``validate_*`` function recomputes one produced number (or structure)
independently from the rows, compares it with what the engine produced and
returns a result that carries its own :class:`CheckOutcome`. Checks never
raise for bad data; they report findings and hand back corrected values.

Checks are pure: they keep no state between calls. Combine their outcomes
with :func:`retail_core.qa.report.build_report`.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Mapping, Optional, Sequence

import pandas as pd

from retail_core.exceptions import ConfigError
from retail_core.fields.cleaning import is_number, strip_invisibles, to_date, to_float, to_int
from retail_core.fields.resolver import CanonicalFieldMap, Rows, headers_of, resolve_fields, to_frame
from retail_core.findings import CheckOutcome
from retail_core.sales.abc import ABC_CLASSES, CATEGORY_THRESHOLDS, ABCItem, ABCThresholds
from retail_core.sales.aggregate import AggregateBucket, aggregate_buckets, sum_by, top_n
from retail_core.sales.periods import ComparisonKind, ComparisonResult, compute_delta
from retail_core.sales.weekday import WeekdayPerformance, weekday_performance

logger = logging.getLogger(__name__)

MONEY_TOLERANCE = 0.02
ABC_CLOSURE_TOLERANCE = 0.5
PERCENTAGE_TOLERANCE = 0.01
DELTA_TOLERANCE = 0.1
SWING_WARNING_PCT = 500.0
TICKET_HIGH = 100_000.0
TICKET_LOW = 1.0

AGGREGATE_KINDS = ("sum", "average")


def _money(x: float) -> str:
    return f"{x:,.2f}"


def _blank(x: Any) -> bool:
    if x is None:
        return True
    if isinstance(x, float) and math.isnan(x):
        return True
    return isinstance(x, str) and not strip_invisibles(x)


# ---------------------------------------------------------------------------
# Raw rows
# ---------------------------------------------------------------------------


@dataclass
class RawDataCheck:
    """Result of :func:`validate_raw_data`.

    Attributes:
        valid: True when no row was invalid (unparseable number or date).
        corrected_rows: Rows after coercion, clamping and de-duplication,
            keeping their original keys.
        stats: Counts: total, valid, invalid, corrected, duplicates.
            ``duplicates`` is the English name of the ``duplicatas`` stat.
        outcome: Findings and corrections of this check.
    """

    valid: bool
    corrected_rows: List[Dict[str, Any]]
    stats: Dict[str, int]
    outcome: CheckOutcome = field(default_factory=CheckOutcome)


def _empty_stats(total: int = 0) -> Dict[str, int]:
    return {"total": total, "valid": 0, "invalid": 0, "corrected": 0, "duplicates": 0}


def validate_raw_data(
    rows: Any,
    field_map: Optional[CanonicalFieldMap] = None,
    label: str = "sales",
    today: Optional[Any] = None,
) -> RawDataCheck:
    """Coerce, clamp and de-duplicate raw rows.

    Per row, using the value, quantity and date columns of ``field_map``
    (resolved from the rows' own headers when not given):

    - value: coerced to a number rounded to 2 decimals. Unparseable
      (None, NaN, Infinity, text) is critical and set to 0. Negative is a
      warning and clamped to 0.
    - quantity: same rules, rounded to an integer.
    - date: when present, an unparseable date is grave and the row is
      dropped. A date after ``today`` is a warning.
    - duplicates on (date, value, quantity) keep the first occurrence only.

    Args:
        rows: List of row mappings or a DataFrame. Anything else yields
            ``valid=False`` and a critical finding.
        field_map: Resolved fields for these rows.
        label: Prefix for messages.
        today: Reference date for the future-date warning (default: now).

    Returns:
        RawDataCheck.
    """
    outcome = CheckOutcome()
    if isinstance(rows, pd.DataFrame):
        records = rows.to_dict("records")
    elif isinstance(rows, (list, tuple)):
        records = list(rows)
    else:
        outcome.critical(f"{label}: rows are not a list (got {type(rows).__name__})")
        return RawDataCheck(False, [], _empty_stats(), outcome)

    if not records:
        outcome.critical(f"{label}: no rows to validate")
        return RawDataCheck(False, [], _empty_stats(), outcome)

    if field_map is None:
        field_map = resolve_fields(headers_of(records))
    value_key, qty_key, date_key = field_map.value, field_map.quantity, field_map.date

    reference = pd.Timestamp.now() if today is None else to_date(today)
    reference = reference.normalize()

    seen = set()
    corrected_rows: List[Dict[str, Any]] = []
    invalid = corrected = duplicates = 0

    for index, row in enumerate(records):
        where = f"{label}[{index}]"
        if not isinstance(row, Mapping):
            outcome.critical(f"{where}: row is not a mapping")
            invalid += 1
            continue

        fixed = dict(row)
        row_invalid = row_corrected = False

        if value_key is not None and value_key in fixed:
            raw = fixed[value_key]
            number = to_float(raw)
            if number is None:
                outcome.critical(f"{where}.{value_key}: invalid number ({raw!r}), set to 0")
                fixed[value_key] = 0.0
                row_invalid = True
            elif number < 0:
                outcome.warning(f"{where}: negative value ({number:g}) corrected to 0")
                fixed[value_key] = 0.0
                row_corrected = True
            else:
                rounded = round(number, 2)
                fixed[value_key] = rounded
                if rounded != number:
                    row_corrected = True

        if qty_key is not None and qty_key in fixed:
            raw = fixed[qty_key]
            number = to_float(raw)
            if number is None:
                outcome.critical(f"{where}.{qty_key}: invalid quantity ({raw!r}), set to 0")
                fixed[qty_key] = 0
                row_invalid = True
            elif number < 0:
                outcome.warning(f"{where}: negative quantity ({number:g}) corrected to 0")
                fixed[qty_key] = 0
                row_corrected = True
            else:
                whole = to_int(number)
                fixed[qty_key] = whole
                if whole != number:
                    row_corrected = True

        date_token = None
        if date_key is not None and not _blank(fixed.get(date_key)):
            parsed = to_date(fixed[date_key])
            if pd.isna(parsed):
                outcome.grave(f"{where}: invalid date ({fixed[date_key]!r}), row dropped")
                invalid += 1
                continue
            if parsed.normalize() > reference:
                outcome.warning(f"{where}: date in the future ({parsed.date().isoformat()})")
            date_token = parsed.isoformat()

        key = (
            date_token,
            fixed.get(value_key) if value_key is not None else None,
            fixed.get(qty_key) if qty_key is not None else None,
        )
        if key in seen:
            duplicates += 1
            continue
        seen.add(key)

        if row_invalid:
            invalid += 1
        elif row_corrected:
            corrected += 1
        if row_invalid or row_corrected:
            outcome.corrections.append(f"{where}: values corrected")
        corrected_rows.append(fixed)

    stats = {
        "total": len(records),
        "valid": len(corrected_rows),
        "invalid": invalid,
        "corrected": corrected,
        "duplicates": duplicates,
    }
    valid = invalid == 0
    if valid:
        outcome.validations.append(f"{label}: {len(corrected_rows)} rows validated")

    logger.info(
        f"Raw data '{label}': {stats['total']} rows, {stats['valid']} kept, "
        f"{invalid} invalid, {corrected} corrected, {duplicates} duplicates removed"
    )
    return RawDataCheck(valid, corrected_rows, stats, outcome)


# ---------------------------------------------------------------------------
# Aggregates
# ---------------------------------------------------------------------------


@dataclass
class AggregateCheck:
    """Result of :func:`validate_aggregate`.

    ``corrected_value`` is the recomputed value when the check failed and the
    produced value (rounded) when it passed.
    """

    valid: bool
    produced: Optional[float]
    expected: float
    difference: float
    outcome: CheckOutcome = field(default_factory=CheckOutcome)

    @property
    def corrected_value(self) -> float:
        if self.valid and self.produced is not None:
            return round(self.produced, 2)
        return self.expected


def _value_field(rows: Rows, value_field: Optional[str]) -> str:
    if value_field is not None:
        return value_field
    return resolve_fields(headers_of(rows)).value or "value"


def validate_aggregate(
    rows: Rows,
    produced: Any,
    kind: str = "sum",
    context: str = "total",
    value_field: Optional[str] = None,
    tolerance: float = MONEY_TOLERANCE,
) -> AggregateCheck:
    """Recompute a sum or average from rows and compare it to ``produced``.

    Both values are rounded to cents first. A difference up to ``tolerance``
    (inclusive) passes; anything larger is a grave finding that names the
    difference and the corrected value.

    Raises:
        ConfigError: If ``kind`` is not "sum" or "average".

    Examples:
        >>> check = validate_aggregate([{"value": 1000.0}], 999.98)
        >>> check.valid
        True
    """
    if kind not in AGGREGATE_KINDS:
        raise ConfigError(f"Unknown aggregate kind '{kind}'. Expected one of {AGGREGATE_KINDS}")

    outcome = CheckOutcome()
    df = to_frame(rows)
    column = _value_field(df, value_field)
    total = sum_by(df, column)
    if kind == "sum":
        expected = round(total, 2)
    else:
        expected = round(total / len(df), 2) if len(df) else 0.0

    if not is_number(produced):
        outcome.critical(f"{context}: produced value is not a valid number ({produced!r}); using {_money(expected)}")
        return AggregateCheck(False, None, expected, math.inf, outcome)

    produced_rounded = round(float(produced), 2)
    difference = round(abs(produced_rounded - expected), 2)
    if difference > tolerance:
        outcome.grave(
            f"{context}: difference of {difference:.2f} detected "
            f"(computed: {_money(produced_rounded)}, expected: {_money(expected)})"
        )
        outcome.corrections.append(f"{context}: corrected from {_money(produced_rounded)} to {_money(expected)}")
        return AggregateCheck(False, produced_rounded, expected, difference, outcome)

    outcome.validations.append(f"{context}: aggregate validated")
    return AggregateCheck(True, produced_rounded, expected, difference, outcome)


@dataclass
class BucketCheck:
    """Result of :func:`validate_buckets`: the buckets with corrected figures."""

    valid: bool
    buckets: List[AggregateBucket]
    outcome: CheckOutcome = field(default_factory=CheckOutcome)


def validate_buckets(
    rows: Rows,
    buckets: Sequence[AggregateBucket],
    group_field: str,
    value_field: str = "value",
    quantity_field: Optional[str] = None,
    by: str = "value",
    context: str = "ranking",
    tolerance: float = MONEY_TOLERANCE,
    direction: Optional[str] = None,
) -> BucketCheck:
    """Recompute each ranked bucket from the rows.

    A bucket whose value (or quantity, when ``quantity_field`` is given)
    differs beyond ``tolerance`` is a grave finding and is replaced by the
    recomputed bucket. A share differing by more than 0.01 points is
    silently corrected (recorded as a correction). Buckets whose key does
    not exist in the rows are grave and dropped.

    With ``direction`` ("desc" or "asc") the list itself is checked too: it
    must be the first ``len(buckets)`` groups of :func:`top_n` ranked on
    ``by``. The same groups in another order, or groups tied on the metric
    at the cut-off, are a correction. Missing or extra groups are grave.
    Either way the recomputed ranking is returned.
    """
    outcome = CheckOutcome()
    truth = {b.dimension_value: b for b in aggregate_buckets(rows, group_field, value_field, quantity_field, by=by)}

    fixed: List[AggregateBucket] = []
    for bucket in buckets:
        actual = truth.get(bucket.dimension_value)
        if actual is None:
            outcome.grave(f"{context}: '{bucket.dimension_value}' does not exist in the data, removed")
            continue
        difference = round(abs(bucket.value - actual.value), 2)
        if difference > tolerance:
            outcome.grave(
                f"{context} '{bucket.dimension_value}': difference of {difference:.2f} detected "
                f"(computed: {_money(bucket.value)}, expected: {_money(actual.value)})"
            )
            fixed.append(actual)
            continue
        if quantity_field is not None and round(abs(bucket.quantity - actual.quantity), 2) > tolerance:
            outcome.grave(
                f"{context} '{bucket.dimension_value}': quantity {bucket.quantity:g} reported, "
                f"{actual.quantity:g} found"
            )
            fixed.append(actual)
            continue
        if abs(bucket.percentage - actual.percentage) > PERCENTAGE_TOLERANCE:
            outcome.corrections.append(
                f"{context} '{bucket.dimension_value}': share corrected from "
                f"{bucket.percentage:.2f}% to {actual.percentage:.2f}%"
            )
            fixed.append(replace(bucket, percentage=actual.percentage))
            continue
        fixed.append(bucket)

    if direction is not None:
        expected = top_n(
            rows, group_field, value_field, n=len(buckets), by=by, direction=direction, quantity_field=quantity_field
        )
        given_keys = [b.dimension_value for b in fixed]
        expected_keys = [b.dimension_value for b in expected]
        if given_keys != expected_keys:
            given_metrics = sorted(getattr(truth[key], by) for key in given_keys)
            expected_metrics = sorted(getattr(b, by) for b in expected)
            if given_metrics == expected_metrics:
                outcome.corrections.append(f"{context}: order corrected to {expected_keys}")
                by_key = {b.dimension_value: b for b in fixed}
                fixed = [by_key.get(b.dimension_value, b) for b in expected]
            else:
                outcome.grave(
                    f"{context}: ranking does not match the data (reported: {given_keys}, "
                    f"expected: {expected_keys}), replaced"
                )
                fixed = expected

    valid = not outcome.has_blocking
    if valid:
        outcome.validations.append(f"{context}: {len(fixed)} buckets validated")
    return BucketCheck(valid, fixed, outcome)



# ---------------------------------------------------------------------------
# ABC curve
# ---------------------------------------------------------------------------


@dataclass
class ABCCheck:
    """Result of :func:`validate_abc`.

    ``items`` is the independently recomputed curve (descending by value).
    ``distribution`` counts items per class.
    """

    valid: bool
    items: List[ABCItem]
    distribution: Dict[str, int]
    outcome: CheckOutcome = field(default_factory=CheckOutcome)


def _attr(item: Any, name: str, default: Any = None) -> Any:
    if isinstance(item, Mapping):
        return item.get(name, default)
    return getattr(item, name, default)


def validate_abc(
    items: Sequence[Any],
    thresholds: Any = CATEGORY_THRESHOLDS,
    product_level: bool = False,
    critical_share: float = 1.0,
    closure_tolerance: float = ABC_CLOSURE_TOLERANCE,
    context: str = "ABC",
) -> ABCCheck:
    """Recompute shares, running totals and classes of an ABC curve.

    Items (ABCItem, AggregateBucket or mappings with ``value``) are put in
    descending value order, the order the classifier uses, then walked
    exactly like :func:`retail_core.sales.abc.build_curve`. Divergent
    classes, shares, running totals or ordering are recorded as corrections.

    - thresholds not summing to 100, no items, or zero total: critical
    - produced final running total farther than ``closure_tolerance`` from
      100: grave (the recomputed curve is returned either way)
    """
    outcome = CheckOutcome()
    thresholds = ABCThresholds.from_value(thresholds)
    empty = {cls: 0 for cls in ABC_CLASSES}

    if not thresholds.is_valid():
        outcome.critical(f"{context}: thresholds do not sum to 100% (sum: {thresholds.total:g}%)")
        return ABCCheck(False, [], empty, outcome)
    if not items:
        outcome.critical(f"{context}: no items to classify")
        return ABCCheck(False, [], empty, outcome)

    values = [to_float(_attr(item, "value", 0)) or 0.0 for item in items]
    total = sum(values)
    if total == 0:
        outcome.critical(f"{context}: total is zero, classification impossible")
        return ABCCheck(False, [], empty, outcome)

    order = sorted(range(len(items)), key=lambda i: values[i], reverse=True)
    if order != list(range(len(items))):
        outcome.corrections.append(f"{context}: items re-sorted by descending value")

    given_curve = [to_float(_attr(item, "accumulated_percentage")) for item in items]
    given_curve = [acc for acc in given_curve if acc is not None]
    for before, after in zip(given_curve, given_curve[1:]):
        if after < before:
            outcome.corrections.append(
                f"{context}: accumulated share decreased ({before:.2f}% -> {after:.2f}%), curve recomputed"
            )
            break

    recomputed: List[ABCItem] = []
    running = 0.0
    for position, i in enumerate(order):
        item = items[i]
        raw_share = values[i] / total * 100
        running += raw_share
        share = round(raw_share, 4)
        accumulated = round(running, 2)
        abc_class = thresholds.classify(accumulated)
        flagged = product_level and abc_class == "D" and share < critical_share
        label = _attr(item, "dimension_value", position)

        given_class = _attr(item, "abc_class")
        if given_class is not None and given_class != abc_class:
            outcome.corrections.append(
                f"{context}[{label}]: class corrected from {given_class} to {abc_class} "
                f"(accumulated: {accumulated:.2f}%)"
            )
        given_share = to_float(_attr(item, "percentage"))
        if given_share is not None and abs(given_share - share) > PERCENTAGE_TOLERANCE:
            outcome.corrections.append(f"{context}[{label}]: share corrected from {given_share:.2f}% to {share:.2f}%")
        if product_level and bool(_attr(item, "is_critical", flagged)) != flagged:
            outcome.corrections.append(f"{context}[{label}]: critical flag corrected to {flagged}")

        recomputed.append(
            ABCItem(
                dimension_value=label,
                value=round(values[i], 2),
                quantity=to_float(_attr(item, "quantity", 0)) or 0.0,
                count=int(to_float(_attr(item, "count", 0)) or 0),
                percentage=share,
                accumulated_percentage=accumulated,
                abc_class=abc_class,
                is_critical=flagged,
            )
        )

    # The produced curve must close; the recomputed one always does
    final = given_curve[-1] if given_curve else recomputed[-1].accumulated_percentage
    if abs(final - 100) > closure_tolerance:
        outcome.grave(
            f"{context}: final accumulated share is {final:.2f}% (expected ~100%), "
            f"corrected to {recomputed[-1].accumulated_percentage:.2f}%"
        )
    else:
        outcome.validations.append(f"{context}: final accumulated share is correct")

    distribution = dict(empty)
    for item in recomputed:
        distribution[item.abc_class] += 1

    return ABCCheck(not outcome.has_blocking, recomputed, distribution, outcome)


# ---------------------------------------------------------------------------
# Comparisons and tickets
# ---------------------------------------------------------------------------


@dataclass
class ComparisonCheck:
    """Result of :func:`validate_comparison`; ``result`` is None when invalid."""

    valid: bool
    result: Optional[ComparisonResult]
    outcome: CheckOutcome = field(default_factory=CheckOutcome)

    @property
    def delta_percent(self) -> float:
        return self.result.delta_percent if self.result is not None else 0.0


def validate_comparison(
    current: Any,
    previous: Any,
    context: str = "comparison",
    produced: Optional[ComparisonResult] = None,
    swing_pct: float = SWING_WARNING_PCT,
) -> ComparisonCheck:
    """Recompute a period-over-period delta.

    - a non-numeric, non-finite or negative period value is critical
      (revenue, sales count and ticket are never below 0 after validation)
    - previous 0 and current > 0: kind NEW, delta +inf, valid
    - both 0: kind ZERO, delta 0, valid
    - otherwise delta rounded to 1 decimal; above ``swing_pct`` in absolute
      value is a warning asking for manual verification

    When ``produced`` is given, a different kind or a delta off by more than
    0.1 points is recorded as a correction.
    """
    outcome = CheckOutcome()
    for name, value in (("current", current), ("previous", previous)):
        if not is_number(value):
            outcome.critical(f"{context}.{name}: invalid number ({value!r})")
        elif float(value) < 0:
            outcome.critical(f"{context}.{name}: negative value ({float(value):g})")
    if outcome.findings:
        return ComparisonCheck(False, None, outcome)

    result = compute_delta(round(float(current), 2), round(float(previous), 2))
    if result.kind is ComparisonKind.NEW:
        outcome.validations.append(f"{context}: growth from zero validated")
    elif result.kind is ComparisonKind.NORMAL:
        if abs(result.delta_percent) > swing_pct:
            outcome.warning(
                f"{context}: very large change ({result.delta_percent:.1f}%), check that the data is correct"
            )
        outcome.validations.append(f"{context}: change computed correctly")

    if produced is not None:
        same_kind = produced.kind == result.kind
        if not math.isfinite(result.delta_percent):
            same_delta = produced.delta_percent == result.delta_percent
        else:
            same_delta = abs(produced.delta_percent - result.delta_percent) <= DELTA_TOLERANCE
        if not (same_kind and same_delta):
            outcome.corrections.append(
                f"{context}: change corrected from {produced.delta_percent:.1f}% ({produced.kind.value}) "
                f"to {result.delta_percent:.1f}% ({result.kind.value})"
            )
    return ComparisonCheck(True, result, outcome)


@dataclass
class TicketCheck:
    valid: bool
    ticket: float
    outcome: CheckOutcome = field(default_factory=CheckOutcome)


def validate_ticket(
    total: Any,
    count: int,
    context: str = "average ticket",
    high: float = TICKET_HIGH,
    low: float = TICKET_LOW,
) -> TicketCheck:
    """Recompute the average ticket as total / count.

    No transactions gives a ticket of 0 and no finding. Tickets above
    ``high``, or below ``low`` while the total is positive, are warnings.
    """
    outcome = CheckOutcome()
    if not is_number(total):
        outcome.critical(f"{context}.total: invalid number ({total!r})")
        return TicketCheck(False, 0.0, outcome)
    if not count:
        return TicketCheck(True, 0.0, outcome)

    ticket = round(float(total) / count, 2)
    if ticket > high:
        outcome.warning(f"{context}: average ticket very high ({_money(ticket)}), check the data")
    if ticket < low and total > 0:
        outcome.warning(f"{context}: average ticket very low ({_money(ticket)}), check the data")
    outcome.validations.append(f"{context}: computation validated")
    return TicketCheck(True, ticket, outcome)


@dataclass
class WeekdayCheck:
    valid: bool
    performance: WeekdayPerformance
    outcome: CheckOutcome = field(default_factory=CheckOutcome)


def validate_weekday(
    rows: Rows,
    produced: WeekdayPerformance,
    date_field: str = "date",
    value_field: str = "value",
    context: str = "weekday",
    tolerance: float = MONEY_TOLERANCE,
) -> WeekdayCheck:
    """Recompute weekday buckets and insights.

    A day whose value or count differs from the recomputation is grave.
    Differing best/worst day or per-active-day average are corrections.
    The returned performance is always the recomputed one.
    """
    outcome = CheckOutcome()
    expected = weekday_performance(rows, date_field, value_field)

    for actual in expected.buckets:
        given = produced.bucket(actual.day)
        if given is None:
            if actual.active:
                outcome.grave(f"{context}: {actual.day} is missing ({_money(actual.value)} expected)")
            continue
        difference = round(abs(given.value - actual.value), 2)
        if difference > tolerance or given.count != actual.count:
            outcome.grave(
                f"{context} {actual.day}: difference of {difference:.2f} detected "
                f"(computed: {_money(given.value)} in {given.count} sales, "
                f"expected: {_money(actual.value)} in {actual.count} sales)"
            )

    for name in ("best_day", "worst_day"):
        if getattr(produced, name) != getattr(expected, name):
            outcome.corrections.append(
                f"{context}: {name.replace('_', ' ')} corrected from {getattr(produced, name)} "
                f"to {getattr(expected, name)}"
            )
    if abs(produced.average_per_active_day - expected.average_per_active_day) > tolerance:
        outcome.corrections.append(
            f"{context}: average per active day corrected from {_money(produced.average_per_active_day)} "
            f"to {_money(expected.average_per_active_day)}"
        )

    valid = not outcome.has_blocking
    if valid:
        outcome.validations.append(f"{context}: {expected.active_days} active days validated")
    return WeekdayCheck(valid, expected, outcome)
