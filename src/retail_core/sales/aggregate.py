"""Aggregation engine: group, sum, average and rank sales rows.

All functions accept either a DataFrame or a list of row mappings and read
columns by name. After :func:`retail_core.fields.resolver.canonicalize` those
names are the role names (``value``, ``category``, ...), but any column works.

Numeric cells go through :func:`retail_core.fields.cleaning.to_float`; cells
that do not parse count as 0 and never raise.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Optional

import pandas as pd

from retail_core.exceptions import ConfigError
from retail_core.fields.cleaning import strip_invisibles, to_dates, to_floats
from retail_core.fields.resolver import Rows, to_frame

logger = logging.getLogger(__name__)

RANK_METRICS = ("value", "quantity")
RANK_DIRECTIONS = ("desc", "asc")

# "W" is anchored on Sunday, matching the weekday analyzer's week start
PERIOD_FREQUENCIES = {"day": "D", "week": "W-SAT", "month": "M"}


@dataclass
class AggregateBucket:
    """One distinct value of a grouping dimension and its totals.

    Attributes:
        dimension_value: The group key (category name, product, seller...).
        value: Sum of the value column, rounded to cents.
        quantity: Sum of the quantity column (0 when there is none).
        count: Number of rows in the group.
        percentage: Share of the ranking metric over all groups, 0-100
            (4 decimals, so shares of large groupings still add up to 100).
        accumulated_percentage: Running share, set by the ABC classifier.
    """

    dimension_value: Any
    value: float
    quantity: float = 0.0
    count: int = 0
    percentage: float = 0.0
    accumulated_percentage: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def clean_keys(series: pd.Series) -> pd.Series:
    """Strip text keys and turn blank ones into missing values."""
    cleaned = series.map(lambda v: strip_invisibles(v) if isinstance(v, str) else v)
    return cleaned.map(lambda v: None if isinstance(v, str) and not v else v)


def numeric_column(df: pd.DataFrame, field: Optional[str]) -> pd.Series:
    """Coerced numeric view of a column; a missing column reads as zeros."""
    if field is None or field not in df.columns:
        return pd.Series(0.0, index=df.index)
    return to_floats(df[field])


def group_by(rows: Rows, field: str) -> Dict[Any, pd.DataFrame]:
    """Group rows by a column, preserving first-seen key order.

    Rows whose key is missing or blank are left out.

    Examples:
        >>> groups = group_by([{"cat": "B"}, {"cat": "A"}, {"cat": "B"}], "cat")
        >>> list(groups)
        ['B', 'A']
    """
    df = to_frame(rows)
    if df.empty or field not in df.columns:
        return {}
    keys = clean_keys(df[field])
    mask = keys.notna()
    grouped = df[mask].groupby(keys[mask], sort=False)
    return {key: frame for key, frame in grouped}


def sum_by(rows: Rows, field: str) -> float:
    """Sum a numeric column; unparseable cells contribute 0."""
    df = to_frame(rows)
    if df.empty:
        return 0.0
    return float(numeric_column(df, field).sum())


def average_by(rows: Rows, field: str) -> float:
    """Mean of a numeric column over all rows (unparseable cells count as 0)."""
    df = to_frame(rows)
    if df.empty:
        return 0.0
    return sum_by(df, field) / len(df)


def median_by(rows: Rows, field: str) -> float:
    """Median of the non-zero cells of a numeric column.

    Zeros (including unparseable cells) are left out, so rows cleared by
    validation do not pull the median down. No non-zero cell gives 0.

    Examples:
        >>> median_by([{"v": 10}, {"v": 0}, {"v": 30}, {"v": 20}, {"v": 40}], "v")
        25.0
    """
    df = to_frame(rows)
    if df.empty:
        return 0.0
    values = numeric_column(df, field)
    values = values[values != 0]
    if values.empty:
        return 0.0
    return round(float(values.median()), 2)


def std_by(rows: Rows, field: str) -> float:
    """Population standard deviation of a numeric column, zeros included."""
    df = to_frame(rows)
    if df.empty:
        return 0.0
    return round(float(numeric_column(df, field).std(ddof=0)), 2)


def total_revenue(rows: Rows, value_field: str = "value") -> float:
    return round(sum_by(rows, value_field), 2)


def average_ticket(rows: Rows, value_field: str = "value") -> float:
    """Average ticket (ticket médio): total revenue / number of rows."""
    df = to_frame(rows)
    if df.empty:
        return 0.0
    return round(sum_by(df, value_field) / len(df), 2)


def aggregate_buckets(
    rows: Rows,
    group_field: str,
    value_field: str = "value",
    quantity_field: Optional[str] = None,
    by: str = "value",
) -> List[AggregateBucket]:
    """Aggregate every group, in first-seen order, with share of the total.

    The share is computed on ``by`` (value or quantity) over all groups.
    """
    if by not in RANK_METRICS:
        raise ConfigError(f"Unknown ranking metric '{by}'. Expected one of {RANK_METRICS}")

    df = to_frame(rows)
    if df.empty or group_field not in df.columns:
        return []

    frame = pd.DataFrame(
        {
            "key": clean_keys(df[group_field]),
            "value": numeric_column(df, value_field),
            "quantity": numeric_column(df, quantity_field),
        }
    )
    frame = frame[frame["key"].notna()]
    if frame.empty:
        return []

    totals = frame.groupby("key", sort=False).agg(
        value=("value", "sum"), quantity=("quantity", "sum"), count=("value", "size")
    )
    grand_total = float(totals[by].sum())

    buckets = []
    for key, row in totals.iterrows():
        metric = float(row[by])
        share = round(metric / grand_total * 100, 4) if grand_total > 0 else 0.0
        buckets.append(
            AggregateBucket(
                dimension_value=key,
                value=round(float(row["value"]), 2),
                quantity=round(float(row["quantity"]), 2),
                count=int(row["count"]),
                percentage=share,
            )
        )
    return buckets


def top_n(
    rows: Rows,
    group_field: str,
    value_field: str = "value",
    n: int = 5,
    by: str = "value",
    direction: str = "desc",
    quantity_field: Optional[str] = None,
) -> List[AggregateBucket]:
    """Rank groups by value or quantity and return the first ``n``.

    Args:
        rows: Rows to aggregate.
        group_field: Dimension column (category, product, seller...).
        value_field: Monetary column.
        n: Number of buckets to return.
        by: Ranking metric, ``"value"`` or ``"quantity"``.
        direction: ``"desc"`` for best performers, ``"asc"`` for worst.
        quantity_field: Optional quantity column, summed into each bucket.

    Returns:
        Up to ``n`` AggregateBuckets. Percentages are relative to the total
        over all groups, not just the returned ones.

    Raises:
        ConfigError: If ``by`` or ``direction`` is not recognized.

    Note:
        Groups with equal metrics keep first-seen order when descending.
        Ascending results are the full descending ranking reversed, so ties
        come out in reverse first-seen order.
    """
    if direction not in RANK_DIRECTIONS:
        raise ConfigError(f"Unknown ranking direction '{direction}'. Expected one of {RANK_DIRECTIONS}")

    buckets = aggregate_buckets(rows, group_field, value_field, quantity_field, by=by)
    ranked = sorted(buckets, key=lambda b: getattr(b, by), reverse=True)
    if direction == "asc":
        ranked = list(reversed(ranked))
    return ranked[: max(n, 0)]


def worst_n(
    rows: Rows,
    group_field: str,
    value_field: str = "value",
    n: int = 5,
    by: str = "value",
    quantity_field: Optional[str] = None,
) -> List[AggregateBucket]:
    """Bottom ``n`` groups, lowest first. See :func:`top_n`."""
    return top_n(rows, group_field, value_field, n=n, by=by, direction="asc", quantity_field=quantity_field)


def revenue_by_period(
    rows: Rows,
    date_field: str = "date",
    value_field: str = "value",
    freq: str = "day",
) -> pd.DataFrame:
    """Revenue time series, one row per day, week or month.

    Rows without a parseable date are ignored. Periods with no sales inside
    the covered range are omitted.

    Returns:
        DataFrame with columns ``period`` (Timestamp of period start),
        ``value`` and ``count``, sorted chronologically.
    """
    if freq not in PERIOD_FREQUENCIES:
        raise ConfigError(f"Unknown frequency '{freq}'. Expected one of {list(PERIOD_FREQUENCIES)}")

    df = to_frame(rows)
    empty = pd.DataFrame(columns=["period", "value", "count"])
    if df.empty or date_field not in df.columns:
        return empty

    frame = pd.DataFrame({"date": to_dates(df[date_field]), "value": numeric_column(df, value_field)})
    frame = frame.dropna(subset=["date"])
    if frame.empty:
        return empty

    periods = frame["date"].dt.to_period(PERIOD_FREQUENCIES[freq]).dt.start_time
    out = (
        frame.groupby(periods)
        .agg(value=("value", "sum"), count=("value", "size"))
        .reset_index()
        .rename(columns={"date": "period"})
    )
    out["value"] = out["value"].round(2)
    logger.debug(f"revenue_by_period: {len(out)} {freq} periods from {len(frame)} dated rows")
    return out.sort_values("period").reset_index(drop=True)
