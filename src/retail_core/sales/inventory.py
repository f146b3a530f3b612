"""Inventory signals: stockouts (ruptura) and slow-moving stock (encalhe).

These run on the same sales rows when the table also carries a stock column.
Like the QA detectors they return DataFrames, empty when nothing is flagged.
"""

from __future__ import annotations

import logging
from typing import Optional

import pandas as pd

from retail_core.fields.resolver import Rows, to_frame
from retail_core.sales.aggregate import group_by, numeric_column

logger = logging.getLogger(__name__)

STOCKOUT_THRESHOLD = 5
SLOW_MOVING_THRESHOLD = 0.1

SLOW_MOVING_COLUMNS = ["product", "stock", "quantity_sold", "turnover_rate"]


def identify_stockouts(rows: Rows, stock_field: str = "stock", threshold: float = STOCKOUT_THRESHOLD) -> pd.DataFrame:
    """Rows whose stock is below ``threshold``.

    A stock cell that cannot be parsed reads as 0 and is therefore flagged.

    Returns:
        The flagged rows (all original columns), or an empty DataFrame when
        there is no stock column.
    """
    df = to_frame(rows)
    if df.empty or stock_field not in df.columns:
        return pd.DataFrame()
    stock = numeric_column(df, stock_field)
    flagged = df[stock < threshold].reset_index(drop=True)
    logger.debug(f"{len(flagged)} of {len(df)} rows below stock threshold {threshold}")
    return flagged


def identify_slow_moving(
    rows: Rows,
    product_field: str = "product",
    quantity_field: str = "quantity",
    stock_field: str = "stock",
    threshold: float = SLOW_MOVING_THRESHOLD,
) -> pd.DataFrame:
    """Products whose sold quantity relative to stock is below ``threshold``.

    Turnover is ``sum(quantity sold) / stock``, where stock is read from the
    product's first row. Products with no positive stock are not rated.

    Returns:
        DataFrame with columns product, stock, quantity_sold, turnover_rate
        (4 decimals), in first-seen product order.
    """
    records = []
    for product, items in group_by(rows, product_field).items():
        stock_values = numeric_column(items, stock_field)
        stock = float(stock_values.iloc[0]) if len(stock_values) else 0.0
        if stock <= 0:
            continue
        sold = float(numeric_column(items, quantity_field).sum())
        turnover = sold / stock
        if turnover < threshold:
            records.append(
                {
                    "product": product,
                    "stock": stock,
                    "quantity_sold": sold,
                    "turnover_rate": round(turnover, 4),
                }
            )
    return pd.DataFrame(records, columns=SLOW_MOVING_COLUMNS)


def stock_value(rows: Rows, stock_field: str = "stock", unit_value_field: Optional[str] = "value") -> float:
    """Money tied up in stock: sum of stock x unit value over rows."""
    df = to_frame(rows)
    if df.empty:
        return 0.0
    stock = numeric_column(df, stock_field)
    unit = numeric_column(df, unit_value_field)
    return round(float((stock * unit).sum()), 2)
