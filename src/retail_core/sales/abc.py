"""ABC concentration curve for categories and products.

Groups are sorted by revenue, descending, and walked while accumulating
each group's share of the total. The running share decides the class:

    accumulated <= A            -> "A"
    accumulated <= A + B        -> "B"
    accumulated <= A + B + C    -> "C"
    otherwise                   -> "D"

Boundaries are inclusive, so a group landing exactly on 50.00% with A=50 is
class A. A class band can be skipped entirely when one group's share jumps
over it (values 500/300/200 with 50/25/15/10 give A, C, D).

Two presets are used:

- categories: 50 / 25 / 15 / 10
- products:   70 / 10 / 10 / 10, optionally within one selected category.
  Products in class D whose own share is below 1% are flagged ``is_critical``
  as stock-reduction candidates.

Example:
    >>> result = classify_categories(rows)
    >>> [(i.dimension_value, i.abc_class) for i in result.items]
    [('Bebidas', 'A'), ('Mercearia', 'C'), ('Limpeza', 'D')]
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

import pandas as pd

from retail_core.findings import AuditFinding, Severity
from retail_core.fields.resolver import Rows, to_frame
from retail_core.sales.aggregate import AggregateBucket, clean_keys, aggregate_buckets

logger = logging.getLogger(__name__)

ABC_CLASSES = ("A", "B", "C", "D")
THRESHOLD_SUM_TOLERANCE = 0.01


@dataclass(frozen=True)
class ABCThresholds:
    """Share of the cumulative curve given to each class, in percent.

    The four parts must add up to 100.
    """

    a: float = 50.0
    b: float = 25.0
    c: float = 15.0
    d: float = 10.0

    @property
    def total(self) -> float:
        return self.a + self.b + self.c + self.d

    def is_valid(self) -> bool:
        return abs(self.total - 100) <= THRESHOLD_SUM_TOLERANCE

    def classify(self, accumulated: float) -> str:
        if accumulated <= self.a:
            return "A"
        if accumulated <= self.a + self.b:
            return "B"
        if accumulated <= self.a + self.b + self.c:
            return "C"
        return "D"

    @classmethod
    def from_value(cls, value: Union["ABCThresholds", Mapping[str, float], Sequence[float]]) -> "ABCThresholds":
        """Build thresholds from an instance, ``{"A": 50, ...}`` or ``[50, 25, 15, 10]``."""
        if isinstance(value, ABCThresholds):
            return value
        if isinstance(value, Mapping):
            lowered = {str(k).lower(): float(v) for k, v in value.items()}
            return cls(**{k: lowered.get(k, 0.0) for k in ("a", "b", "c", "d")})
        parts = [float(v) for v in value]
        parts += [0.0] * (4 - len(parts))
        return cls(*parts[:4])

    def to_dict(self) -> Dict[str, float]:
        return {"A": self.a, "B": self.b, "C": self.c, "D": self.d}


CATEGORY_THRESHOLDS = ABCThresholds(50, 25, 15, 10)
PRODUCT_THRESHOLDS = ABCThresholds(70, 10, 10, 10)


@dataclass
class ABCItem(AggregateBucket):
    """AggregateBucket with its ABC class.

    ``is_critical`` is only ever set at product level.
    """

    abc_class: str = "D"
    is_critical: bool = False


@dataclass
class ABCResult:
    """Classified items (descending by value) and any findings."""

    items: List[ABCItem] = field(default_factory=list)
    findings: List[AuditFinding] = field(default_factory=list)
    thresholds: ABCThresholds = CATEGORY_THRESHOLDS

    @property
    def classified(self) -> bool:
        return not any(f.severity is Severity.CRITICAL for f in self.findings)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "items": [item.to_dict() for item in self.items],
            "findings": [f.to_dict() for f in self.findings],
            "thresholds": self.thresholds.to_dict(),
        }


def build_curve(
    buckets: Sequence[AggregateBucket],
    thresholds: ABCThresholds,
    critical_share: Optional[float] = None,
) -> List[ABCItem]:
    """Sort buckets by value and assign cumulative share and class.

    Shares carry 4 decimals, like aggregate_buckets, so they still add up
    to 100% on long curves. Running totals are reported with 2 decimals and
    accumulate unrounded shares, so the last item closes at 100% however
    many items there are.
    """
    total = sum(b.value for b in buckets)
    ordered = sorted(buckets, key=lambda b: b.value, reverse=True)

    items = []
    running = 0.0
    for bucket in ordered:
        raw_share = bucket.value / total * 100
        running += raw_share
        share = round(raw_share, 4)
        accumulated = round(running, 2)
        abc_class = thresholds.classify(accumulated)
        flagged = critical_share is not None and abc_class == "D" and share < critical_share
        items.append(
            ABCItem(
                dimension_value=bucket.dimension_value,
                value=bucket.value,
                quantity=bucket.quantity,
                count=bucket.count,
                percentage=share,
                accumulated_percentage=accumulated,
                abc_class=abc_class,
                is_critical=flagged,
            )
        )
    return items


def _classify(
    df: pd.DataFrame,
    group_field: str,
    value_field: str,
    quantity_field: Optional[str],
    thresholds: ABCThresholds,
    level: str,
    critical_share: Optional[float] = None,
) -> ABCResult:
    if not thresholds.is_valid():
        message = (
            f"ABC {level}: thresholds sum to {thresholds.total:g}% instead of 100% "
            f"(A={thresholds.a:g}, B={thresholds.b:g}, C={thresholds.c:g}, D={thresholds.d:g})"
        )
        logger.warning(message)
        return ABCResult(findings=[AuditFinding(Severity.CRITICAL, message)], thresholds=thresholds)

    buckets = aggregate_buckets(df, group_field, value_field, quantity_field)
    total = sum(b.value for b in buckets)
    if not buckets or total <= 0:
        message = f"ABC {level}: total value is zero, classification impossible"
        logger.warning(message)
        return ABCResult(findings=[AuditFinding(Severity.CRITICAL, message)], thresholds=thresholds)

    items = build_curve(buckets, thresholds, critical_share)
    logger.debug(f"ABC {level}: {len(items)} items classified, distribution {abc_stats(items)}")
    return ABCResult(items=items, thresholds=thresholds)


def classify_categories(
    rows: Rows,
    category_field: str = "category",
    value_field: str = "value",
    thresholds: Union[ABCThresholds, Mapping[str, float], Sequence[float]] = CATEGORY_THRESHOLDS,
    quantity_field: Optional[str] = None,
) -> ABCResult:
    """Category-level ABC curve.

    Args:
        rows: Sales rows.
        category_field: Column holding the category.
        value_field: Monetary column.
        thresholds: A/B/C/D parts summing to 100 (default 50/25/15/10).
        quantity_field: Optional quantity column summed into each item.

    Returns:
        ABCResult. When thresholds do not sum to 100, or the total value is
        zero, ``items`` is empty and ``findings`` holds one critical finding.
    """
    return _classify(
        to_frame(rows),
        category_field,
        value_field,
        quantity_field,
        ABCThresholds.from_value(thresholds),
        level="categories",
    )


def classify_products(
    rows: Rows,
    product_field: str = "product",
    value_field: str = "value",
    category_field: Optional[str] = "category",
    selected_category: Optional[Any] = None,
    quantity_field: Optional[str] = None,
    thresholds: Union[ABCThresholds, Mapping[str, float], Sequence[float]] = PRODUCT_THRESHOLDS,
    critical_share: float = 1.0,
) -> ABCResult:
    """Product-level ABC curve, optionally within a single category.

    Args:
        rows: Sales rows.
        product_field: Column holding the product.
        value_field: Monetary column.
        category_field: Column holding the category, used with
            ``selected_category``.
        selected_category: Restrict to this category. None means all products.
        quantity_field: Optional quantity column summed into each item.
        thresholds: A/B/C/D parts summing to 100 (default 70/10/10/10).
        critical_share: Individual share (percent) under which a class D
            product is flagged ``is_critical``.

    Returns:
        ABCResult, same contract as :func:`classify_categories`.
    """
    df = to_frame(rows)
    level = "products"
    if selected_category is not None and not df.empty:
        level = f"products in '{selected_category}'"
        if category_field is not None and category_field in df.columns:
            df = df[clean_keys(df[category_field]) == selected_category]
        else:
            logger.warning(f"Cannot filter by category '{selected_category}': no '{category_field}' column")
    return _classify(
        df,
        product_field,
        value_field,
        quantity_field,
        ABCThresholds.from_value(thresholds),
        level=level,
        critical_share=critical_share,
    )


def abc_stats(items: Sequence[ABCItem]) -> Dict[str, int]:
    """Count items per class plus the number flagged critical.

    Examples:
        >>> abc_stats(result.items)
        {'A': 1, 'B': 0, 'C': 1, 'D': 1, 'critical': 0, 'total': 3}
    """
    stats = {cls: 0 for cls in ABC_CLASSES}
    for item in items:
        stats[item.abc_class] = stats.get(item.abc_class, 0) + 1
    stats["critical"] = sum(1 for item in items if item.is_critical)
    stats["total"] = len(items)
    return stats

