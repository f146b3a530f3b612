"""Period filtering and period-over-period comparisons.

A dataset is split into a *current* window that ends at the dataset's most
recent date and a *previous* window of the same length right before it.
Windows are anchored on the data, not on today's date, so historical uploads
compare the way recent ones do.

Example:
    >>> split = split_data_by_period(rows, "date", "3months")
    >>> result = compare_periods_revenue(split.current, split.previous)
    >>> if result is not None:
    ...     print(result.delta_percent, result.kind)
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional, Union

import pandas as pd

from retail_core.exceptions import ConfigError
from retail_core.fields.cleaning import to_dates
from retail_core.fields.resolver import Rows, to_frame
from retail_core.sales.aggregate import average_ticket, total_revenue

logger = logging.getLogger(__name__)

PERIOD_OFFSETS: Dict[str, Optional[Union[pd.DateOffset, pd.Timedelta]]] = {
    "month": pd.DateOffset(months=1),
    "3months": pd.DateOffset(months=3),
    "6months": pd.DateOffset(months=6),
    "year": pd.DateOffset(years=1),
    "7d": pd.Timedelta(days=7),
    "30d": pd.Timedelta(days=30),
    "90d": pd.Timedelta(days=90),
    "365d": pd.Timedelta(days=365),
    "all": None,
}

PERIOD_FILTERS = tuple(PERIOD_OFFSETS)


class ComparisonKind(str, Enum):
    """How a delta between two period values should be read."""

    NORMAL = "normal"
    NEW = "new"  # previous was 0, current is positive
    ZERO = "zero"  # both periods are 0


@dataclass(frozen=True)
class ComparisonResult:
    """Metric value for two periods and the relative change between them.

    Attributes:
        current_value: Metric for the current window.
        previous_value: Metric for the previous window.
        delta_percent: (current - previous) / previous * 100, one decimal.
            ``inf`` for NEW, ``0.0`` for ZERO, ``-inf`` for a negative
            current value over a previous 0.
        kind: ComparisonKind.
    """

    current_value: float
    previous_value: float
    delta_percent: float
    kind: ComparisonKind = ComparisonKind.NORMAL

    def to_dict(self) -> Dict[str, object]:
        return {
            "current_value": self.current_value,
            "previous_value": self.previous_value,
            "delta_percent": self.delta_percent,
            "kind": self.kind.value,
        }


@dataclass
class PeriodSplit:
    """Rows of the current window and of the equal-length window before it.

    ``previous`` is empty for the ``all`` filter and when the data does not
    reach back far enough. Boundary timestamps are None when no row carries a
    parseable date.
    """

    current: pd.DataFrame
    previous: pd.DataFrame
    period_filter: str
    anchor: Optional[pd.Timestamp] = None
    current_start: Optional[pd.Timestamp] = None
    previous_start: Optional[pd.Timestamp] = None


def validate_period_filter(period_filter: str) -> str:
    if period_filter not in PERIOD_OFFSETS:
        raise ConfigError(f"Unknown period filter '{period_filter}'. Expected one of {list(PERIOD_FILTERS)}")
    return period_filter


def split_data_by_period(rows: Rows, date_field: str = "date", period_filter: str = "month") -> PeriodSplit:
    """Split rows into the current and previous windows.

    The current window is ``[anchor - length, anchor]`` (both ends
    inclusive) where ``anchor`` is the latest date in the data. The previous
    window is ``[anchor - 2 * length, anchor - length)``. Rows whose date
    cannot be parsed belong to neither window.

    Args:
        rows: Sales rows.
        date_field: Column holding the transaction date.
        period_filter: One of ``PERIOD_FILTERS``.

    Returns:
        PeriodSplit with both subsets (original columns preserved).

    Raises:
        ConfigError: If ``period_filter`` is unknown.
    """
    validate_period_filter(period_filter)
    df = to_frame(rows).reset_index(drop=True)

    if df.empty or date_field not in df.columns:
        logger.warning(f"No '{date_field}' column to split by period; returning empty windows")
        return PeriodSplit(current=df.iloc[0:0], previous=df.iloc[0:0], period_filter=period_filter)

    dates = to_dates(df[date_field])
    dated = dates.notna()
    if not dated.any():
        return PeriodSplit(current=df.iloc[0:0], previous=df.iloc[0:0], period_filter=period_filter)

    anchor = dates[dated].max()
    offset = PERIOD_OFFSETS[period_filter]
    if offset is None:
        return PeriodSplit(
            current=df[dated].reset_index(drop=True),
            previous=df.iloc[0:0],
            period_filter=period_filter,
            anchor=anchor,
            current_start=dates[dated].min(),
        )

    current_start = anchor - offset
    previous_start = current_start - offset
    in_current = dated & (dates >= current_start) & (dates <= anchor)
    in_previous = dated & (dates >= previous_start) & (dates < current_start)

    logger.debug(
        f"Period '{period_filter}' anchored at {anchor.date()}: "
        f"{int(in_current.sum())} current rows, {int(in_previous.sum())} previous rows"
    )
    return PeriodSplit(
        current=df[in_current].reset_index(drop=True),
        previous=df[in_previous].reset_index(drop=True),
        period_filter=period_filter,
        anchor=anchor,
        current_start=current_start,
        previous_start=previous_start,
    )


def compute_delta(current: float, previous: float) -> ComparisonResult:
    """Build a ComparisonResult from two already computed metric values.

    With a previous value of 0 a positive current gives NEW (+inf) and 0
    gives ZERO. A negative current only comes from corrupted input; it gives
    NORMAL with a delta of -inf.
    """
    if previous == 0:
        if current > 0:
            return ComparisonResult(current, previous, math.inf, ComparisonKind.NEW)
        if current < 0:
            return ComparisonResult(current, previous, -math.inf, ComparisonKind.NORMAL)
        return ComparisonResult(current, previous, 0.0, ComparisonKind.ZERO)
    delta = round((current - previous) / previous * 100, 1)
    return ComparisonResult(current, previous, delta, ComparisonKind.NORMAL)


def _both_present(current: Rows, previous: Rows) -> bool:
    return not to_frame(current).empty and not to_frame(previous).empty


def compare_periods_revenue(
    current: Rows, previous: Rows, value_field: str = "value"
) -> Optional[ComparisonResult]:
    """Revenue change between periods; None if either period has no rows."""
    if not _both_present(current, previous):
        return None
    return compute_delta(total_revenue(current, value_field), total_revenue(previous, value_field))


def compare_periods_sales(
    current: Rows, previous: Rows, value_field: str = "value"
) -> Optional[ComparisonResult]:
    """Change in number of sales (rows) between periods."""
    if not _both_present(current, previous):
        return None
    return compute_delta(float(len(to_frame(current))), float(len(to_frame(previous))))


def compare_periods_ticket(
    current: Rows, previous: Rows, value_field: str = "value"
) -> Optional[ComparisonResult]:
    """Average ticket change between periods."""
    if not _both_present(current, previous):
        return None
    return compute_delta(average_ticket(current, value_field), average_ticket(previous, value_field))


def compare_periods(current: Rows, previous: Rows, value_field: str = "value") -> Dict[str, ComparisonResult]:
    """All three comparisons keyed by metric; empty when a period has no rows."""
    if not _both_present(current, previous):
        return {}
    return {
        "revenue": compare_periods_revenue(current, previous, value_field),
        "sales": compare_periods_sales(current, previous, value_field),
        "ticket": compare_periods_ticket(current, previous, value_field),
    }
