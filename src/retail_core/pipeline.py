"""End-to-end analysis: resolve fields, run the engines, audit the result.

    raw rows -> Field Resolver -> canonical rows -> engines -> audit
             -> corrected aggregates + AuditReport

Example:
    >>> from retail_core import EngineConfig, run_analysis
    >>> result = run_analysis(rows, config=EngineConfig(period_filter="3months"))
    >>> result.report.approved
    True
    >>> result.aggregates.total_revenue
    15230.5
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, List, Optional, Sequence

import numpy as np
import pandas as pd

from retail_core.config import EngineConfig
from retail_core.fields.resolver import (
    CanonicalFieldMap,
    available_analyses,
    canonicalize,
    headers_of,
    resolve_fields,
)
from retail_core.qa.api import ProducedAggregates, Ranking, run_audit
from retail_core.qa.checks import validate_raw_data
from retail_core.qa.report import AuditReport
from retail_core.sales.abc import classify_categories, classify_products
from retail_core.sales.aggregate import (
    AggregateBucket,
    average_ticket,
    median_by,
    revenue_by_period,
    std_by,
    top_n,
    total_revenue,
    worst_n,
)
from retail_core.sales.inventory import identify_slow_moving, identify_stockouts, stock_value
from retail_core.sales.layout import DistributionEntry, category_distribution, supplier_distribution
from retail_core.sales.periods import compare_periods, split_data_by_period
from retail_core.sales.team import SellerPerformance, revenue_dispersion, seller_performance
from retail_core.sales.weekday import weekday_performance

logger = logging.getLogger(__name__)


def _plain(value: Any) -> Any:
    """Turn frames, timestamps and numpy scalars into JSON-ready values.

    DataFrames become lists of records. Midnight timestamps (the usual case
    for sales dates and period starts) are written as ``YYYY-MM-DD``, other
    dates in ISO format. Missing cells become None; infinite deltas are kept.
    """
    if isinstance(value, pd.DataFrame):
        return [_plain(record) for record in value.to_dict(orient="records")]
    if isinstance(value, dict):
        return {key: _plain(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_plain(item) for item in value]
    if value is None or value is pd.NaT:
        return None
    if isinstance(value, pd.Timestamp):
        return value.strftime("%Y-%m-%d") if value == value.normalize() else value.isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, np.generic):
        value = value.item()
    if isinstance(value, float) and math.isnan(value):
        return None
    return value


@dataclass
class InventorySignals:
    """Inventory findings; None where the needed columns are missing."""

    stockouts: Optional[pd.DataFrame] = None
    slow_moving: Optional[pd.DataFrame] = None
    stock_value: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "stockouts": _plain(self.stockouts),
            "slow_moving": _plain(self.slow_moving),
            "stock_value": self.stock_value,
        }


@dataclass
class TeamSignals:
    """Per-seller performance; empty when there is no seller column.

    ``top_seller`` and ``dispersion`` are read from the audited seller
    ranking, so they always agree with ``aggregates.rankings``.
    """

    performance: Dict[Any, SellerPerformance] = field(default_factory=dict)
    top_seller: Optional[AggregateBucket] = None
    dispersion: Dict[str, float] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "performance": [p.to_dict() for p in self.performance.values()],
            "top_seller": self.top_seller.to_dict() if self.top_seller is not None else None,
            "dispersion": dict(self.dispersion),
        }


@dataclass
class LayoutSignals:
    categories: List[DistributionEntry] = field(default_factory=list)
    suppliers: List[DistributionEntry] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "categories": [e.to_dict() for e in self.categories],
            "suppliers": [e.to_dict() for e in self.suppliers],
        }


@dataclass
class AnalysisResult:
    """Result of :func:`run_analysis`.

    Attributes:
        field_map: Roles resolved from the headers.
        analyses: Analyses the dataset supports (revenue, inventory, team, layout).
        aggregates: Engine output after every audit correction.
        report: The audit report.
        raw_stats: Row counts from raw-data validation.
        inventory: Stockout and slow-moving signals.
        team: Seller performance, top seller and revenue dispersion.
        layout: Row distribution over categories and suppliers.
        sale_statistics: ``median`` (non-zero sales) and population ``std``
            of single sale values; empty without a value column.
        revenue_series: Daily revenue, or None without date and value.
        metadata: Period boundaries and configuration echo.
    """

    field_map: CanonicalFieldMap
    analyses: List[str]
    aggregates: ProducedAggregates
    report: AuditReport
    raw_stats: Dict[str, int]
    inventory: InventorySignals = field(default_factory=InventorySignals)
    team: TeamSignals = field(default_factory=TeamSignals)
    layout: LayoutSignals = field(default_factory=LayoutSignals)
    sale_statistics: Dict[str, float] = field(default_factory=dict)
    revenue_series: Optional[pd.DataFrame] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Plain dict that ``json.dumps`` accepts (dates as ISO strings)."""
        return _plain(
            {
                "field_map": self.field_map.to_dict(),
                "analyses": list(self.analyses),
                "aggregates": self.aggregates.to_dict(),
                "report": self.report.to_dict(),
                "raw_stats": dict(self.raw_stats),
                "inventory": self.inventory.to_dict(),
                "team": self.team.to_dict(),
                "layout": self.layout.to_dict(),
                "sale_statistics": dict(self.sale_statistics),
                "revenue_series": self.revenue_series,
                "metadata": dict(self.metadata),
            }
        )



def _produce(
    df: pd.DataFrame,
    fm: CanonicalFieldMap,
    config: EngineConfig,
    selected_category: Optional[Any],
) -> ProducedAggregates:
    produced = ProducedAggregates(selected_category=selected_category)
    quantity = "quantity" if fm.has("quantity") else None

    if fm.has("value"):
        produced.total_revenue = total_revenue(df)
        produced.average_ticket = average_ticket(df)
        produced.transaction_count = len(df)

        for name, role in (("top_categories", "category"), ("top_products", "product"), ("top_suppliers", "supplier")):
            if fm.has(role):
                buckets = top_n(df, role, "value", n=config.top_n, quantity_field=quantity)
                produced.rankings[name] = Ranking(role, buckets)
        if fm.has("product"):
            produced.rankings["worst_products"] = Ranking(
                "product", worst_n(df, "product", "value", n=config.top_n, quantity_field=quantity), direction="asc"
            )
        if fm.has("seller"):
            produced.rankings["seller_ranking"] = Ranking(
                "seller", top_n(df, "seller", "value", n=len(df), quantity_field=quantity)
            )

        if fm.has("category"):
            produced.category_abc = classify_categories(
                df, thresholds=config.category_thresholds, quantity_field=quantity
            )
        if fm.has("product"):
            produced.product_abc = classify_products(
                df,
                category_field="category" if fm.has("category") else None,
                selected_category=selected_category,
                quantity_field=quantity,
                thresholds=config.product_thresholds,
                critical_share=config.critical_share_pct,
            )
        if fm.has("date"):
            produced.weekday = weekday_performance(df)
            split = split_data_by_period(df, "date", config.period_filter)
            produced.comparisons = compare_periods(split.current, split.previous)
    elif fm.has("product", "quantity"):
        # Revenue-less tables can still rank products by units sold
        produced.transaction_count = len(df)
        produced.rankings["top_products"] = Ranking(
            "product", top_n(df, "product", "value", n=config.top_n, by="quantity", quantity_field="quantity"), "quantity"
        )

    return produced


def _inventory(df: pd.DataFrame, fm: CanonicalFieldMap, config: EngineConfig) -> InventorySignals:
    signals = InventorySignals()
    if not fm.has("stock"):
        return signals
    signals.stockouts = identify_stockouts(df, "stock", config.stockout_threshold)
    if fm.has("product", "quantity"):
        signals.slow_moving = identify_slow_moving(df, threshold=config.slow_moving_threshold)
    if fm.has("value"):
        signals.stock_value = stock_value(df)
    return signals


def _team(df: pd.DataFrame, fm: CanonicalFieldMap, aggregates: ProducedAggregates) -> TeamSignals:
    signals = TeamSignals()
    if not fm.has("seller", "value"):
        return signals
    signals.performance = seller_performance(df, quantity_field="quantity" if fm.has("quantity") else None)
    ranking = aggregates.rankings.get("seller_ranking")
    if ranking is not None:
        signals.top_seller = ranking.buckets[0] if ranking.buckets else None
        signals.dispersion = revenue_dispersion(ranking.buckets)
    return signals


def _layout(df: pd.DataFrame, fm: CanonicalFieldMap) -> LayoutSignals:
    signals = LayoutSignals()
    if fm.has("category"):
        signals.categories = category_distribution(df)
    if fm.has("supplier"):
        signals.suppliers = supplier_distribution(df)
    return signals



def run_analysis(
    rows: Any,
    headers: Optional[Sequence[str]] = None,
    config: Optional[EngineConfig] = None,
    selected_category: Optional[Any] = None,
    today: Optional[Any] = None,
) -> AnalysisResult:
    """Analyze one sales table and audit every number produced.

    Args:
        rows: Row mappings (or a DataFrame) as produced by the file parser.
        headers: Header list; defaults to the keys of the first row.
        config: Engine configuration (default: EngineConfig()).
        selected_category: Restrict the product ABC curve to one category.
        today: Reference date for future-date warnings (default: now).

    Returns:
        AnalysisResult. Never raises for data problems; they are in
        ``result.report``.

    Raises:
        ConfigError: Only for invalid configuration.
    """
    config = config or EngineConfig()
    if headers is None:
        headers = headers_of(rows) if isinstance(rows, (list, tuple, pd.DataFrame)) else []
    fm = resolve_fields(headers)
    analyses = available_analyses(fm)
    logger.info(f"Analyzing dataset: roles {sorted(fm.resolved)}, analyses {analyses}")

    raw_check = validate_raw_data(rows, fm, today=today)
    df = canonicalize(raw_check.corrected_rows, fm)

    produced = _produce(df, fm, config, selected_category)
    audit_result = run_audit(rows, produced, fm, config, today=today)

    metadata: Dict[str, Any] = {"period_filter": config.period_filter, "top_n": config.top_n}
    if fm.has("date") and not df.empty:
        split = split_data_by_period(df, "date", config.period_filter)
        metadata["anchor_date"] = split.anchor.isoformat() if split.anchor is not None else None
        metadata["current_start"] = split.current_start.isoformat() if split.current_start is not None else None
        metadata["previous_start"] = split.previous_start.isoformat() if split.previous_start is not None else None

    series = revenue_by_period(df) if fm.has("date", "value") else None
    statistics = {"median": median_by(df, "value"), "std": std_by(df, "value")} if fm.has("value") else {}

    return AnalysisResult(
        field_map=fm,
        analyses=analyses,
        aggregates=audit_result.corrected,
        report=audit_result.report,
        raw_stats=raw_check.stats,
        inventory=_inventory(df, fm, config),
        team=_team(df, fm, audit_result.corrected),
        layout=_layout(df, fm),
        sale_statistics=statistics,
        revenue_series=series,
        metadata=metadata,
    )
