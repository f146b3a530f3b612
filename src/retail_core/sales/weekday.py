"""Weekday performance: revenue and transaction count per day of the week.

Days are bucketed Sunday..Saturday from the transaction date and reported in
business-week (Monday-first) order.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional

import pandas as pd

from retail_core.fields.cleaning import to_dates
from retail_core.fields.resolver import Rows, to_frame
from retail_core.sales.aggregate import numeric_column

logger = logging.getLogger(__name__)

# Monday through Sunday, matching datetime.weekday()
DAY_NAMES = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]

# Calendar order used for bucketing (Sunday first)
CALENDAR_ORDER = DAY_NAMES[6:] + DAY_NAMES[:6]


@dataclass
class WeekdayBucket:
    """Totals for one day of the week."""

    day: str
    value: float = 0.0
    count: int = 0
    percentage: float = 0.0

    @property
    def active(self) -> bool:
        return self.count > 0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class WeekdayPerformance:
    """Weekday buckets (Monday first) and derived insights.

    Attributes:
        buckets: Seven WeekdayBuckets in Monday..Sunday order.
        total: Grand total value over dated rows.
        active_days: Number of weekdays with at least one transaction.
        best_day: Day with the highest value, or None without data.
        worst_day: Active day with the lowest value, or None without data.
        average_per_active_day: total / active_days (0 without data).
    """

    buckets: List[WeekdayBucket] = field(default_factory=list)
    total: float = 0.0
    active_days: int = 0
    best_day: Optional[str] = None
    worst_day: Optional[str] = None
    average_per_active_day: float = 0.0

    def bucket(self, day: str) -> Optional[WeekdayBucket]:
        for b in self.buckets:
            if b.day == day:
                return b
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "buckets": [b.to_dict() for b in self.buckets],
            "total": self.total,
            "active_days": self.active_days,
            "best_day": self.best_day,
            "worst_day": self.worst_day,
            "average_per_active_day": self.average_per_active_day,
        }


def bucket_by_weekday(rows: Rows, date_field: str = "date", value_field: str = "value") -> Dict[str, WeekdayBucket]:
    """Sum value and count rows per weekday, Sunday first.

    Rows without a parseable date are skipped. Percentages are left at 0;
    see :func:`weekday_performance`.
    """
    buckets = {day: WeekdayBucket(day=day) for day in CALENDAR_ORDER}
    df = to_frame(rows)
    if df.empty or date_field not in df.columns:
        return buckets

    frame = pd.DataFrame({"date": to_dates(df[date_field]), "value": numeric_column(df, value_field)})
    frame = frame.dropna(subset=["date"])
    if frame.empty:
        return buckets

    frame["day"] = frame["date"].dt.weekday.map(lambda i: DAY_NAMES[i])
    totals = frame.groupby("day").agg(value=("value", "sum"), count=("value", "size"))
    for day, row in totals.iterrows():
        buckets[day].value = round(float(row["value"]), 2)
        buckets[day].count = int(row["count"])
    return buckets


def weekday_performance(rows: Rows, date_field: str = "date", value_field: str = "value") -> WeekdayPerformance:
    """Analyze sales per day of the week.

    Args:
        rows: Sales rows.
        date_field: Column holding the transaction date.
        value_field: Monetary column.

    Returns:
        WeekdayPerformance with all seven days in Monday-first order.
        Days without transactions are included with zeros but are left out
        of ``worst_day`` and of the per-active-day average.

    Examples:
        >>> perf = weekday_performance(rows)
        >>> [b.day for b in perf.buckets][:2]
        ['Monday', 'Tuesday']
    """
    by_day = bucket_by_weekday(rows, date_field, value_field)
    total = round(sum(b.value for b in by_day.values()), 2)
    for bucket in by_day.values():
        bucket.percentage = round(bucket.value / total * 100, 2) if total > 0 else 0.0

    ordered = [by_day[day] for day in DAY_NAMES]
    active = [b for b in ordered if b.active]
    if not active:
        return WeekdayPerformance(buckets=ordered)

    best = max(active, key=lambda b: b.value)
    worst = min(active, key=lambda b: b.value)
    performance = WeekdayPerformance(
        buckets=ordered,
        total=total,
        active_days=len(active),
        best_day=best.day,
        worst_day=worst.day,
        average_per_active_day=round(total / len(active), 2),
    )
    logger.debug(
        f"Weekday performance: best={performance.best_day}, worst={performance.worst_day}, "
        f"{performance.active_days} active days"
    )
    return performance
