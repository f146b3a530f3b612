"""Unified configuration for Retail Core.

This module provides a single configuration class used across the engines
(aggregation, periods, ABC, inventory) and the audit.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from typing import Any, Mapping

from retail_core.exceptions import ConfigError
from retail_core.sales.abc import CATEGORY_THRESHOLDS, PRODUCT_THRESHOLDS, ABCThresholds
from retail_core.sales.periods import PERIOD_FILTERS


@dataclass
class EngineConfig:
    """Tunable parameters of one analysis run.

    Attributes:
        period_filter: Length of the current window (default: "month").
            One of month, 3months, 6months, year, 7d, 30d, 90d, 365d, all.
        top_n: Number of buckets in top/worst rankings (default: 5).
        category_thresholds: ABC parts for categories (default: 50/25/15/10).
        product_thresholds: ABC parts for products (default: 70/10/10/10).
        critical_share_pct: Share under which a class D product is flagged
            critical (default: 1.0).
        money_tolerance: Absolute tolerance when comparing money (default: 0.02).
        abc_closure_tolerance: Allowed distance of the final accumulated ABC
            percentage from 100 (default: 0.5).
        comparison_swing_pct: Period delta, in percent, above which a
            comparison is flagged for manual review (default: 500).
        ticket_high: Average ticket above which a warning is raised.
        ticket_low: Average ticket below which a warning is raised.
        stockout_threshold: Stock under which a row is a stockout (default: 5).
        slow_moving_threshold: Turnover under which a product is slow moving
            (default: 0.1).
    """

    period_filter: str = "month"
    top_n: int = 5
    category_thresholds: ABCThresholds = field(default_factory=lambda: CATEGORY_THRESHOLDS)
    product_thresholds: ABCThresholds = field(default_factory=lambda: PRODUCT_THRESHOLDS)
    critical_share_pct: float = 1.0
    money_tolerance: float = 0.02
    abc_closure_tolerance: float = 0.5
    comparison_swing_pct: float = 500.0
    ticket_high: float = 100_000.0
    ticket_low: float = 1.0
    stockout_threshold: float = 5.0
    slow_moving_threshold: float = 0.1

    def __post_init__(self) -> None:
        if self.period_filter not in PERIOD_FILTERS:
            raise ConfigError(
                f"Unknown period filter '{self.period_filter}'. Expected one of {list(PERIOD_FILTERS)}"
            )
        if self.top_n < 0:
            raise ConfigError(f"top_n must be >= 0, got {self.top_n}")
        if self.money_tolerance < 0:
            raise ConfigError(f"money_tolerance must be >= 0, got {self.money_tolerance}")
        # Threshold sums are not checked here: the classifier reports them as findings
        self.category_thresholds = ABCThresholds.from_value(self.category_thresholds)
        self.product_thresholds = ABCThresholds.from_value(self.product_thresholds)

    @classmethod
    def from_dict(cls, values: Mapping[str, Any]) -> EngineConfig:
        """Create an EngineConfig from a plain mapping.

        Raises:
            ConfigError: If the mapping has unknown keys or invalid values.

        Examples:
            >>> cfg = EngineConfig.from_dict({"period_filter": "3months", "top_n": 10})
            >>> cfg.top_n
            10
        """
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(values) - known)
        if unknown:
            raise ConfigError(f"Unknown configuration keys: {unknown}. Known keys: {sorted(known)}")
        return cls(**dict(values))
