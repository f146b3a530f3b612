"""Layout analysis: how sales rows spread over categories and suppliers."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Dict, List

from retail_core.fields.resolver import Rows, to_frame
from retail_core.sales.aggregate import group_by


@dataclass
class DistributionEntry:
    """Number of rows of one group and their share of all rows (2 decimals)."""

    dimension_value: Any
    count: int
    percentage: float

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def count_distribution(rows: Rows, group_field: str) -> List[DistributionEntry]:
    """Row count per group, most frequent first.

    Shares are taken over every row, including rows with no key, so they
    only add up to 100 when every row has one. Equal counts keep first-seen
    order.

    Examples:
        >>> [(e.dimension_value, e.count) for e in count_distribution(rows, "category")]
        [('Bebidas', 2), ('Limpeza', 2), ('Mercearia', 1)]
    """
    total = len(to_frame(rows))
    if not total:
        return []
    entries = [
        DistributionEntry(key, len(items), round(len(items) / total * 100, 2))
        for key, items in group_by(rows, group_field).items()
    ]
    return sorted(entries, key=lambda e: e.count, reverse=True)


def category_distribution(rows: Rows, category_field: str = "category") -> List[DistributionEntry]:
    return count_distribution(rows, category_field)


def supplier_distribution(rows: Rows, supplier_field: str = "supplier") -> List[DistributionEntry]:
    return count_distribution(rows, supplier_field)
