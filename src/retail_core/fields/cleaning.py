"""Shared utilities for coercing raw spreadsheet cells.

Rows arrive from an external parser with whatever the spreadsheet held:
numbers, numeric strings in Brazilian or US notation, currency-prefixed
text, Excel serial dates, ISO strings or ``dd/mm/yyyy`` strings. Every
engine coerces through these helpers so that a given cell is read the same
way everywhere.

Key utilities:
- Text normalization: strip invisible characters, remove accents
- Number parsing: robust handling of currency and separator formats
- Date parsing: ISO, Brazilian and Excel serial formats

Examples:
    >>> from retail_core.fields.cleaning import to_float, to_date
    >>> to_float("R$ 1.234,56")
    1234.56
    >>> to_date("15/01/2024")
    Timestamp('2024-01-15 00:00:00')
"""

from __future__ import annotations

import math
import re
import unicodedata
from datetime import date, datetime
from typing import Any, Optional

import numpy as np
import pandas as pd

NBSP = "\u00a0"  # Non-breaking space
NNBSP = "\u202f"  # Narrow non-breaking space
ZW = "".join(chr(c) for c in (0x200B, 0x200C, 0x200D, 0xFEFF))

# Keeps digits, separators, sign and parentheses; drops "R$", "$", letters
_CURRENCY_RE = re.compile(r"[^\d,.\-\(\)\s]")

# Excel serial day 1 is 1900-01-01; the 1899-12-30 origin absorbs the 1900 leap bug
EXCEL_EPOCH = pd.Timestamp("1899-12-30")
EXCEL_MAX_SERIAL = 2958465  # 9999-12-31

# Brazilian day-first formats are tried before the US month-first one
DATE_FORMATS = (
    "%Y-%m-%d",
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%dT%H:%M:%S",
    "%d/%m/%Y",
    "%d/%m/%Y %H:%M",
    "%d/%m/%Y %H:%M:%S",
    "%d-%m-%Y",
    "%d.%m.%Y",
    "%m/%d/%Y",
)


def strip_invisibles(x: Any) -> Optional[str]:
    """Remove invisible and problematic whitespace characters from text.

    Args:
        x: Value to clean (string, number, or None).

    Returns:
        Cleaned string or None if input is None/NaN.

    Examples:
        >>> strip_invisibles("  Café Bar  ")
        'Café Bar'
    """
    if x is None or (isinstance(x, float) and pd.isna(x)):
        return None
    s = str(x)
    s = s.replace("\r", "").replace("\t", " ").replace(NBSP, " ").replace(NNBSP, " ")
    s = re.sub(r"[%s]" % re.escape(ZW), "", s)
    s = re.sub(r"\s+", " ", s).strip()
    return s


def is_number(x: Any) -> bool:
    """Return True for real, finite numbers (bools excluded)."""
    if isinstance(x, (bool, np.bool_)):
        return False
    if isinstance(x, (int, float, np.integer, np.floating)):
        return math.isfinite(float(x))
    return False


def to_float(x: Any) -> Optional[float]:
    """Robustly parse a monetary or numeric cell.

    Handles the formats commonly found in retail exports:
    - Native numbers: returned as float when finite
    - Brazilian format: '1.234,56' (dot thousands, comma decimal)
    - US format: '1,234.56' (comma thousands, dot decimal)
    - Negative in parentheses: '(1.234,56)'
    - Currency symbols: 'R$ 1 234,56'

    Args:
        x: Value to parse.

    Returns:
        Parsed float value, or None when the value is missing, not finite,
        a boolean, or not a number at all.

    Examples:
        >>> to_float("1.234,56")
        1234.56
        >>> to_float("(R$ 10,00)")
        -10.0
        >>> to_float("abc") is None
        True
    """
    if x is None or isinstance(x, (bool, np.bool_)):
        return None
    if isinstance(x, (int, float, np.integer, np.floating)):
        return float(x) if math.isfinite(float(x)) else None
    s = strip_invisibles(x)
    if not s:
        return None
    # Textual "nan"/"inf" would otherwise survive float()
    if not re.search(r"\d", s):
        return None

    neg = False
    if s.startswith("(") and s.endswith(")"):
        neg, s = True, s[1:-1].strip()

    s = _CURRENCY_RE.sub("", s)
    s = re.sub(r"\s+", "", s)
    if not s:
        return None

    has_dot = "." in s
    has_com = "," in s

    def _finalize(num_str: str, negative: bool) -> Optional[float]:
        try:
            v = float(num_str)
        except ValueError:
            return None
        if not math.isfinite(v):
            return None
        return -v if negative else v

    # 1.234,56
    if re.fullmatch(r"-?\d{1,3}(?:\.\d{3})+,\d{1,2}", s):
        return _finalize(s.replace(".", "").replace(",", "."), neg)

    # 1,234.56
    if re.fullmatch(r"-?\d{1,3}(?:,\d{3})+\.\d{1,2}", s):
        return _finalize(s.replace(",", ""), neg)

    if has_com and not has_dot:
        if re.fullmatch(r"-?\d{1,3}(?:,\d{3})+", s):
            return _finalize(s.replace(",", ""), neg)
        return _finalize(s.replace(",", "."), neg)

    if has_dot and not has_com:
        if s.count(".") == 1:
            return _finalize(s, neg)
        if re.fullmatch(r"-?\d{1,3}(?:\.\d{3})+", s):
            return _finalize(s.replace(".", ""), neg)
        return None

    return _finalize(s, neg)


def to_int(val: Any) -> Optional[int]:
    """Convert a cell to an integer via float parsing and rounding.

    Returns None when the value cannot be parsed.

    Examples:
        >>> to_int("3,0")
        3
        >>> to_int("2.6")
        3
    """
    f = to_float(val)
    if f is None:
        return None
    # Half away from zero, as spreadsheets round
    return int(math.floor(abs(f) + 0.5)) * (1 if f >= 0 else -1)


def to_date(val: Any) -> pd.Timestamp:
    """Parse a transaction date from the formats spreadsheets produce.

    Attempts, in order:
    1. Timestamp / datetime / date objects (passed through)
    2. Excel serial numbers between 1 and 2958465 (days since 1899-12-30)
    3. Explicit formats in ``DATE_FORMATS`` (ISO first, then Brazilian)
    4. Pandas auto-detection

    Args:
        val: Value to parse.

    Returns:
        Timezone-naive Timestamp, or pd.NaT if parsing fails.

    Examples:
        >>> to_date("2024-03-05")
        Timestamp('2024-03-05 00:00:00')
        >>> to_date(45356)
        Timestamp('2024-03-05 00:00:00')
    """
    if val is None or isinstance(val, (bool, np.bool_)):
        return pd.NaT
    if isinstance(val, float) and pd.isna(val):
        return pd.NaT
    if isinstance(val, (pd.Timestamp, datetime, date, np.datetime64)):
        ts = pd.to_datetime(val, errors="coerce")
        if ts is pd.NaT or pd.isna(ts):
            return pd.NaT
        return ts.tz_localize(None) if ts.tzinfo is not None else ts
    if is_number(val):
        serial = float(val)
        if 1 <= serial <= EXCEL_MAX_SERIAL:
            return EXCEL_EPOCH + pd.to_timedelta(serial, unit="D")
        return pd.NaT

    s = strip_invisibles(val)
    if not s:
        return pd.NaT
    for fmt in DATE_FORMATS:
        try:
            return pd.to_datetime(s, format=fmt, errors="raise")
        except (ValueError, TypeError):
            pass
    # Bare digits are not dates ("2024" would otherwise become Jan 1st)
    if re.fullmatch(r"\d+", s):
        return pd.NaT
    try:
        ts = pd.to_datetime(s, errors="coerce", dayfirst=True)
    except (ValueError, TypeError, OverflowError):
        return pd.NaT
    if pd.isna(ts):
        return pd.NaT
    return ts.tz_localize(None) if ts.tzinfo is not None else ts


def to_dates(values: Any) -> pd.Series:
    """Vectorised ``to_date`` over a Series-like, returning datetime64 values."""
    series = values if isinstance(values, pd.Series) else pd.Series(list(values), dtype=object)
    parsed = series.map(to_date)
    return pd.to_datetime(parsed, errors="coerce")


def to_floats(values: Any, fill: float = 0.0) -> pd.Series:
    """Vectorised ``to_float``; unparseable cells become ``fill``."""
    series = values if isinstance(values, pd.Series) else pd.Series(list(values), dtype=object)
    return series.map(lambda v: to_float(v)).astype(float).fillna(fill)


def remove_accents(s: str) -> str:
    """Remove accents and diacritics from string.

    Examples:
        >>> remove_accents("Preço")
        'Preco'
    """
    return "".join(c for c in unicodedata.normalize("NFD", s) if unicodedata.category(c) != "Mn")


def normalize_header(s: Any) -> str:
    """Normalize a column header for comparison.

    Strips invisible characters, trims, lowercases and removes accents, so
    that ``" Preço Total "`` and ``"preco total"`` compare equal.

    Examples:
        >>> normalize_header(" Preço Total ")
        'preco total'
    """
    base = strip_invisibles(s if s is not None else "")
    if not base:
        return ""
    return remove_accents(base).lower()
