"""Shared test data builders.

This module provides small, hand-checked sales tables used across the test
files. Totals are noted next to each builder so assertions stay readable.
"""

from typing import Any, Dict, List

import pandas as pd

HEADERS = ["Data", "Produto", "Categoria", "Fornecedor", "Vendedor", "Quantidade", "Valor", "Estoque"]


def store_rows() -> List[Dict[str, Any]]:
    """Raw rows as a spreadsheet parser would hand them over.

    Row 4 duplicates row 0 (same date, value and quantity) and row 5 has a
    negative value. After validation: 5 rows, total 1100.00, of which
    1000.00 in March (current month) and 100.00 in February.
    """
    return [
        {"Data": "2024-03-04", "Produto": "Café", "Categoria": "Bebidas", "Fornecedor": "F1",
         "Vendedor": "Ana", "Quantidade": 2, "Valor": 500.0, "Estoque": 50},
        {"Data": "05/03/2024", "Produto": "Arroz", "Categoria": "Mercearia", "Fornecedor": "F2",
         "Vendedor": "Bia", "Quantidade": 3, "Valor": "300,00", "Estoque": 40},
        {"Data": "2024-03-08", "Produto": "Sabão", "Categoria": "Limpeza", "Fornecedor": "F2",
         "Vendedor": "Ana", "Quantidade": 1, "Valor": 200.0, "Estoque": 3},
        {"Data": "2024-02-05", "Produto": "Café", "Categoria": "Bebidas", "Fornecedor": "F1",
         "Vendedor": "Bia", "Quantidade": 1, "Valor": 100.0, "Estoque": 50},
        {"Data": "2024-03-04", "Produto": "Café", "Categoria": "Bebidas", "Fornecedor": "F1",
         "Vendedor": "Ana", "Quantidade": 2, "Valor": 500.0, "Estoque": 50},
        {"Data": "2024-03-08", "Produto": "Sabão", "Categoria": "Limpeza", "Fornecedor": "F2",
         "Vendedor": "Ana", "Quantidade": 1, "Valor": -20.0, "Estoque": 3},
    ]


def category_frame(values: Dict[str, float]) -> pd.DataFrame:
    """Canonical rows, one per category, in the given order."""
    return pd.DataFrame({"category": list(values), "value": list(values.values())})


def dated_frame(entries: List[tuple]) -> pd.DataFrame:
    """Canonical rows from (date, value) pairs."""
    return pd.DataFrame({"date": [d for d, _ in entries], "value": [v for _, v in entries]})
