"""Tests for stockout and slow-moving detection."""

import pandas as pd

from retail_core.sales.inventory import identify_slow_moving, identify_stockouts, stock_value


def stock_frame() -> pd.DataFrame:
    return pd.DataFrame(
        {
            "product": ["Café", "Arroz", "Sabão", "Café", "Óleo"],
            "quantity": [2, 3, 1, 1, 5],
            "value": [10.0, 5.0, 2.0, 10.0, 8.0],
            "stock": [50, 40, 3, 50, 0],
        }
    )


def test_stockouts_flag_rows_below_threshold() -> None:
    """Sabão (3) and Óleo (0) are under the default of 5."""
    flagged = identify_stockouts(stock_frame())

    assert list(flagged["product"]) == ["Sabão", "Óleo"]


def test_stockouts_without_stock_column() -> None:
    """No stock column means nothing to flag."""
    assert identify_stockouts([{"product": "x"}]).empty


def test_slow_moving_uses_first_row_stock() -> None:
    """Café 3/50 and Arroz 3/40 turn over below 0.1; Óleo has no stock."""
    slow = identify_slow_moving(stock_frame())

    assert list(slow["product"]) == ["Café", "Arroz"]
    assert list(slow["turnover_rate"]) == [0.06, 0.075]
    assert list(slow["quantity_sold"]) == [3.0, 3.0]


def test_slow_moving_empty_keeps_columns() -> None:
    """An empty result still carries the expected columns."""
    slow = identify_slow_moving(stock_frame(), threshold=0.01)

    assert slow.empty
    assert list(slow.columns) == ["product", "stock", "quantity_sold", "turnover_rate"]


def test_stock_value() -> None:
    """Stock times unit value, summed over rows."""
    # 500 + 200 + 6 + 500 + 0
    assert stock_value(stock_frame()) == 1206.0
