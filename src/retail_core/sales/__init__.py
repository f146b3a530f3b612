"""Sales engines.

This module provides the computations behind the dashboard KPIs:

- **aggregate**: group-by, sums, averages, top/worst N with share of total
- **periods**: current vs previous window split and deltas
- **abc**: category and product ABC curves
- **weekday**: revenue per day of the week
- **inventory**: stockouts and slow-moving products
- **team**: per-seller performance, top seller and revenue dispersion
- **layout**: row distribution over categories and suppliers

All engines take canonical rows (see ``retail_core.fields.canonicalize``).

Example:
    >>> from retail_core.sales import classify_categories, top_n
    >>>
    >>> top = top_n(df, "category", "value", n=3)
    >>> curve = classify_categories(df)
    >>> [item.abc_class for item in curve.items]
    ['A', 'C', 'D']
"""

from retail_core.sales.abc import (
    ABCItem,
    ABCResult,
    ABCThresholds,
    abc_stats,
    classify_categories,
    classify_products,
)
from retail_core.sales.aggregate import (
    AggregateBucket,
    average_by,
    average_ticket,
    group_by,
    median_by,
    revenue_by_period,
    std_by,
    sum_by,
    top_n,
    total_revenue,
    worst_n,
)
from retail_core.sales.inventory import identify_slow_moving, identify_stockouts, stock_value
from retail_core.sales.layout import (
    DistributionEntry,
    category_distribution,
    count_distribution,
    supplier_distribution,
)
from retail_core.sales.periods import (
    ComparisonKind,
    ComparisonResult,
    PeriodSplit,
    compare_periods,
    compare_periods_revenue,
    compare_periods_sales,
    compare_periods_ticket,
    split_data_by_period,
)
from retail_core.sales.team import SellerPerformance, revenue_dispersion, seller_performance, top_seller
from retail_core.sales.weekday import WeekdayBucket, WeekdayPerformance, weekday_performance

__all__ = [
    "ABCItem",
    "ABCResult",
    "ABCThresholds",
    "AggregateBucket",
    "ComparisonKind",
    "ComparisonResult",
    "DistributionEntry",
    "PeriodSplit",
    "SellerPerformance",
    "WeekdayBucket",
    "WeekdayPerformance",
    "abc_stats",
    "average_by",
    "average_ticket",
    "category_distribution",
    "classify_categories",
    "classify_products",
    "compare_periods",
    "compare_periods_revenue",
    "compare_periods_sales",
    "compare_periods_ticket",
    "count_distribution",
    "group_by",
    "identify_slow_moving",
    "identify_stockouts",
    "median_by",
    "revenue_by_period",
    "revenue_dispersion",
    "seller_performance",
    "split_data_by_period",
    "std_by",
    "stock_value",
    "sum_by",
    "supplier_distribution",
    "top_n",
    "top_seller",
    "total_revenue",
    "weekday_performance",
    "worst_n",
]
