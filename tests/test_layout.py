"""Tests for the layout analysis."""

import pandas as pd

from retail_core.sales.layout import category_distribution, count_distribution, supplier_distribution


def layout_frame() -> pd.DataFrame:
    """Five rows: Mercearia 1, Bebidas 2, Limpeza 2; one row without supplier."""
    return pd.DataFrame(
        {
            "category": ["Mercearia", "Bebidas", "Limpeza", "Bebidas", "Limpeza"],
            "supplier": ["F1", "F2", "F2", "F2", None],
        }
    )


def test_category_distribution_most_frequent_first() -> None:
    """Bebidas and Limpeza tie at 2 and keep their first-seen order."""
    entries = category_distribution(layout_frame())

    assert [(e.dimension_value, e.count, e.percentage) for e in entries] == [
        ("Bebidas", 2, 40.0),
        ("Limpeza", 2, 40.0),
        ("Mercearia", 1, 20.0),
    ]


def test_supplier_shares_are_of_all_rows() -> None:
    """The row without supplier still counts in the denominator."""
    entries = supplier_distribution(layout_frame())

    assert [(e.dimension_value, e.percentage) for e in entries] == [("F2", 60.0), ("F1", 20.0)]
    assert sum(e.percentage for e in entries) == 80.0


def test_empty_input() -> None:
    """No rows or no such column gives an empty distribution."""
    assert count_distribution([], "category") == []
    assert count_distribution(layout_frame(), "missing") == []
    assert category_distribution(layout_frame())[0].to_dict() == {
        "dimension_value": "Bebidas",
        "count": 2,
        "percentage": 40.0,
    }
