"""Public API for the sales audit.

The audit treats everything the engines produced as untrusted output: it
re-validates the raw rows, recomputes every aggregate from them and compares.
It is a pure function of its inputs; nothing is accumulated between calls.

This module:
- does NOT read or write any files,
- does NOT print (logging only),
- never raises for data problems; they become findings in the report.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Optional, Tuple

import pandas as pd

from retail_core.config import EngineConfig
from retail_core.fields.resolver import CanonicalFieldMap, canonicalize, headers_of, resolve_fields
from retail_core.findings import CheckOutcome
from retail_core.qa.checks import (
    RawDataCheck,
    validate_abc,
    validate_aggregate,
    validate_buckets,
    validate_comparison,
    validate_raw_data,
    validate_ticket,
    validate_weekday,
)
from retail_core.qa.report import AuditReport, build_report
from retail_core.sales.abc import ABCResult
from retail_core.sales.aggregate import AggregateBucket, average_ticket, clean_keys, total_revenue
from retail_core.sales.periods import ComparisonResult, split_data_by_period
from retail_core.sales.weekday import WeekdayPerformance

logger = logging.getLogger(__name__)

# Role ranked by each known ranking name
RANKING_DIMENSIONS = {
    "top_categories": "category",
    "top_products": "product",
    "worst_products": "product",
    "top_suppliers": "supplier",
    "seller_ranking": "seller",
}


@dataclass
class Ranking:
    """A top/worst list together with how it was ranked.

    ``direction`` is "desc" for best performers and "asc" for worst ones. The
    audit recomputes the list with the same metric, direction and length.
    """

    dimension: str
    buckets: List[AggregateBucket] = field(default_factory=list)
    by: str = "value"
    direction: str = "desc"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "dimension": self.dimension,
            "by": self.by,
            "direction": self.direction,
            "buckets": [b.to_dict() for b in self.buckets],
        }


@dataclass
class ProducedAggregates:
    """Numbers produced by the engines for one dataset.

    Every field is optional. None means the feature was not computed (for
    example because its role is unavailable) and is not audited.

    Attributes:
        total_revenue: Sum of values.
        average_ticket: Total revenue / number of sales.
        transaction_count: Number of sales rows.
        rankings: Top/worst lists keyed by name (see RANKING_DIMENSIONS).
        category_abc: Category-level ABC result.
        product_abc: Product-level ABC result.
        selected_category: Category the product ABC was restricted to.
        comparisons: Period comparisons keyed by metric (revenue, sales, ticket).
        weekday: Weekday performance.
    """

    total_revenue: Optional[float] = None
    average_ticket: Optional[float] = None
    transaction_count: Optional[int] = None
    rankings: Dict[str, Ranking] = field(default_factory=dict)
    category_abc: Optional[ABCResult] = None
    product_abc: Optional[ABCResult] = None
    selected_category: Optional[Any] = None
    comparisons: Dict[str, ComparisonResult] = field(default_factory=dict)
    weekday: Optional[WeekdayPerformance] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_revenue": self.total_revenue,
            "average_ticket": self.average_ticket,
            "transaction_count": self.transaction_count,
            "rankings": {name: ranking.to_dict() for name, ranking in self.rankings.items()},
            "category_abc": self.category_abc.to_dict() if self.category_abc is not None else None,
            "product_abc": self.product_abc.to_dict() if self.product_abc is not None else None,
            "selected_category": self.selected_category,
            "comparisons": {name: c.to_dict() for name, c in self.comparisons.items()},
            "weekday": self.weekday.to_dict() if self.weekday is not None else None,
        }


@dataclass
class AuditResult:
    """Result of :func:`run_audit`.

    Attributes:
        report: Approval and every finding, correction and validation.
        corrected: The produced aggregates with every correction applied.
        raw_check: Outcome of raw-row validation, including corrected rows.
    """

    report: AuditReport
    corrected: ProducedAggregates
    raw_check: RawDataCheck


def _period_metric(rows: pd.DataFrame, metric: str) -> float:
    if metric == "revenue":
        return total_revenue(rows)
    if metric == "sales":
        return float(len(rows))
    return average_ticket(rows)


def _audit_abc(
    rows: pd.DataFrame,
    result: ABCResult,
    dimension: str,
    thresholds: Any,
    config: EngineConfig,
    product_level: bool,
    context: str,
) -> Tuple[ABCResult, List[CheckOutcome]]:
    """Check item values against the rows, then the curve itself."""
    outcomes: List[CheckOutcome] = []
    items = list(result.items)
    if items and dimension in rows.columns:
        bucket_check = validate_buckets(
            rows, items, dimension, "value", context=f"{context} values", direction="desc"
        )
        outcomes.append(bucket_check.outcome)
        items = bucket_check.buckets
    abc_check = validate_abc(
        items,
        thresholds,
        product_level=product_level,
        critical_share=config.critical_share_pct,
        closure_tolerance=config.abc_closure_tolerance,
        context=context,
    )
    outcomes.append(abc_check.outcome)
    corrected = ABCResult(items=abc_check.items, findings=list(result.findings), thresholds=result.thresholds)
    return corrected, outcomes


def run_audit(
    raw_rows: Any,
    produced: ProducedAggregates,
    field_map: Optional[CanonicalFieldMap] = None,
    config: Optional[EngineConfig] = None,
    today: Optional[Any] = None,
) -> AuditResult:
    """Audit produced aggregates against an independent recomputation.

    Args:
        raw_rows: The rows the engines were given, before any cleaning.
        produced: What the engines produced.
        field_map: Resolved fields; resolved from the rows' headers when None.
        config: Tolerances and thresholds (default: EngineConfig()).
        today: Reference date for the future-date warning.

    Returns:
        AuditResult with the report and the corrected aggregates.

    Examples:
        >>> result = run_audit(rows, ProducedAggregates(total_revenue=999.0))
        >>> result.report.approved
        False
        >>> result.corrected.total_revenue
        1000.0
    """
    config = config or EngineConfig()
    if field_map is None:
        field_map = resolve_fields(headers_of(raw_rows) if isinstance(raw_rows, (list, tuple, pd.DataFrame)) else [])

    raw_check = validate_raw_data(raw_rows, field_map, today=today)
    outcomes: List[CheckOutcome] = [raw_check.outcome]
    rows = canonicalize(raw_check.corrected_rows, field_map)
    corrected = replace(produced, rankings=dict(produced.rankings), comparisons=dict(produced.comparisons))

    if produced.transaction_count is not None and produced.transaction_count != len(rows):
        count_fix = CheckOutcome()
        count_fix.grave(f"transaction count: {produced.transaction_count} reported, {len(rows)} rows found")
        outcomes.append(count_fix)
        corrected.transaction_count = len(rows)

    for name, ranking in produced.rankings.items():
        if ranking.dimension not in rows.columns:
            continue
        check = validate_buckets(
            rows,
            ranking.buckets,
            ranking.dimension,
            "value",
            "quantity" if "quantity" in rows.columns else None,
            by=ranking.by,
            context=name.replace("_", " "),
            tolerance=config.money_tolerance,
            direction=ranking.direction,
        )
        outcomes.append(check.outcome)
        corrected.rankings[name] = replace(ranking, buckets=check.buckets)

    if field_map.value is None:
        logger.warning("No value column resolved; money checks skipped")
        report = build_report(*outcomes)
        return AuditResult(report, corrected, raw_check)

    if produced.total_revenue is not None:
        check = validate_aggregate(
            rows, produced.total_revenue, "sum", "total revenue", "value", config.money_tolerance
        )
        outcomes.append(check.outcome)
        corrected.total_revenue = check.corrected_value

    if produced.average_ticket is not None:
        check = validate_aggregate(
            rows, produced.average_ticket, "average", "average ticket", "value", config.money_tolerance
        )
        outcomes.append(check.outcome)
        corrected.average_ticket = check.corrected_value

    ticket_check = validate_ticket(
        total_revenue(rows), len(rows), high=config.ticket_high, low=config.ticket_low
    )
    outcomes.append(ticket_check.outcome)

    if produced.category_abc is not None:
        corrected.category_abc, abc_outcomes = _audit_abc(
            rows, produced.category_abc, "category", config.category_thresholds, config, False, "ABC categories"
        )
        outcomes.extend(abc_outcomes)

    if produced.product_abc is not None:
        product_rows = rows
        if produced.selected_category is not None and "category" in rows.columns:
            product_rows = rows[clean_keys(rows["category"]) == produced.selected_category]
        corrected.product_abc, abc_outcomes = _audit_abc(
            product_rows, produced.product_abc, "product", config.product_thresholds, config, True, "ABC products"
        )
        outcomes.extend(abc_outcomes)

    if produced.comparisons and "date" in rows.columns:
        split = split_data_by_period(rows, "date", config.period_filter)
        for metric, comparison in produced.comparisons.items():
            context = f"{metric} comparison"
            if split.current.empty or split.previous.empty:
                dropped = CheckOutcome()
                dropped.corrections.append(f"{context}: removed, one of the periods has no sales")
                outcomes.append(dropped)
                corrected.comparisons.pop(metric, None)
                continue
            check = validate_comparison(
                _period_metric(split.current, metric),
                _period_metric(split.previous, metric),
                context,
                produced=comparison,
                swing_pct=config.comparison_swing_pct,
            )
            outcomes.append(check.outcome)
            if check.result is not None:
                corrected.comparisons[metric] = check.result

    if produced.weekday is not None and "date" in rows.columns:
        check = validate_weekday(rows, produced.weekday, tolerance=config.money_tolerance)
        outcomes.append(check.outcome)
        corrected.weekday = check.performance

    report = build_report(*outcomes)
    logger.info(
        f"Audit complete: approved={report.approved}, {len(report.critical_errors)} critical, "
        f"{len(report.grave_errors)} grave, {len(report.warnings)} warnings, "
        f"{len(report.corrections)} corrections"
    )
    return AuditResult(report, corrected, raw_check)


def audit(
    raw_rows: Any,
    produced: ProducedAggregates,
    field_map: Optional[CanonicalFieldMap] = None,
    config: Optional[EngineConfig] = None,
) -> AuditReport:
    """Shorthand for ``run_audit(...).report``."""
    return run_audit(raw_rows, produced, field_map, config).report
