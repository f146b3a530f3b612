"""Tests for cell coercion helpers."""

from datetime import date

import numpy as np
import pandas as pd
import pytest

from retail_core.fields.cleaning import normalize_header, to_date, to_float, to_int


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("R$ 1.234,56", 1234.56),
        ("1,234.56", 1234.56),
        ("(10,00)", -10.0),
        ("-50", -50.0),
        ("12,5", 12.5),
        (np.int64(7), 7.0),
        (3, 3.0),
    ],
)
def test_to_float_formats(raw, expected) -> None:
    """Brazilian, US, currency and native numbers all parse."""
    assert to_float(raw) == pytest.approx(expected)


@pytest.mark.parametrize("raw", [None, "", "abc", float("nan"), float("inf"), True, "nan"])
def test_to_float_rejects_non_numbers(raw) -> None:
    """Missing, non-finite, boolean and textual cells are not numbers."""
    assert to_float(raw) is None


def test_to_int_rounds_half_up() -> None:
    """Half rounds away from zero; text is not a number."""
    assert to_int("2.5") == 3
    assert to_int("2,4") == 2
    assert to_int("x") is None


def test_to_date_formats() -> None:
    """ISO, Brazilian day-first, Excel serial and date objects."""
    expected = pd.Timestamp("2024-03-05")
    assert to_date("2024-03-05") == expected
    assert to_date("05/03/2024") == expected
    assert to_date(45356) == expected
    assert to_date(date(2024, 3, 5)) == expected


def test_to_date_invalid_is_nat() -> None:
    """Unparseable dates become NaT instead of raising."""
    assert pd.isna(to_date("not a date"))
    assert pd.isna(to_date(None))
    assert pd.isna(to_date("2024"))


def test_normalize_header() -> None:
    """Headers compare without accents, case or surrounding spaces."""
    assert normalize_header(" Preço Total ") == "preco total"
    assert normalize_header(None) == ""
