"""Team analysis: per-seller performance and the top seller.

Seller performance complements the ``seller_ranking`` produced by
:func:`retail_core.sales.aggregate.top_n` with per-sale figures (largest and
smallest sale, average ticket, units per sale) that a ranking does not carry.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Optional

from retail_core.fields.resolver import Rows
from retail_core.sales.aggregate import AggregateBucket, group_by, numeric_column, std_by, top_n

logger = logging.getLogger(__name__)


@dataclass
class SellerPerformance:
    """Sales figures of one seller.

    Attributes:
        seller: The seller key as found in the rows.
        total_value: Sum of the seller's sales.
        sales_count: Number of rows.
        average_ticket: total_value / sales_count.
        max_sale: Largest single sale.
        min_sale: Smallest single sale.
        total_quantity: Units sold, None without a quantity column.
        average_quantity: Units per sale, None without a quantity column.
    """

    seller: Any
    total_value: float
    sales_count: int
    average_ticket: float
    max_sale: float
    min_sale: float
    total_quantity: Optional[float] = None
    average_quantity: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def seller_performance(
    rows: Rows,
    seller_field: str = "seller",
    value_field: str = "value",
    quantity_field: Optional[str] = None,
) -> Dict[Any, SellerPerformance]:
    """Per-seller totals, ticket and sale extremes, in first-seen seller order.

    Rows without a seller are left out. Unparseable values count as 0, so
    they can show up as ``min_sale``.

    Examples:
        >>> perf = seller_performance(rows, quantity_field="quantity")
        >>> perf["Ana"].average_ticket
        233.33
    """
    performance = {}
    for seller, items in group_by(rows, seller_field).items():
        values = numeric_column(items, value_field)
        count = len(items)
        total = float(values.sum())
        entry = SellerPerformance(
            seller=seller,
            total_value=round(total, 2),
            sales_count=count,
            average_ticket=round(total / count, 2),
            max_sale=round(float(values.max()), 2),
            min_sale=round(float(values.min()), 2),
        )
        if quantity_field is not None:
            units = float(numeric_column(items, quantity_field).sum())
            entry.total_quantity = round(units, 2)
            entry.average_quantity = round(units / count, 2)
        performance[seller] = entry
    logger.debug(f"Seller performance computed for {len(performance)} sellers")
    return performance


def top_seller(rows: Rows, seller_field: str = "seller", value_field: str = "value") -> Optional[AggregateBucket]:
    """First entry of the seller ranking by revenue, or None without sellers."""
    ranked = top_n(rows, seller_field, value_field, n=1)
    return ranked[0] if ranked else None


def revenue_dispersion(ranking: List[AggregateBucket]) -> Dict[str, float]:
    """Spread of revenue across sellers.

    Args:
        ranking: The full seller ranking (one bucket per seller).

    Returns:
        ``average`` revenue per seller, its population ``std`` and the
        ``coefficient_of_variation`` (std / average, in percent; 0 when the
        average is 0). All zero for an empty ranking.
    """
    if not ranking:
        return {"average": 0.0, "std": 0.0, "coefficient_of_variation": 0.0}
    records = [b.to_dict() for b in ranking]
    average = sum(b.value for b in ranking) / len(ranking)
    std = std_by(records, "value")
    variation = round(std / average * 100, 2) if average > 0 else 0.0
    return {"average": round(average, 2), "std": std, "coefficient_of_variation": variation}
