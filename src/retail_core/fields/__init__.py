"""Field resolution and cell coercion.

Example:
    >>> from retail_core.fields import resolve_fields, canonicalize
    >>>
    >>> field_map = resolve_fields(["Data Venda", "Categoria", "Vlr Total"])
    >>> field_map.value
    'Vlr Total'
    >>> df = canonicalize(rows, field_map)  # columns: date, category, value
"""

from retail_core.fields.cleaning import to_date, to_float, to_int
from retail_core.fields.resolver import (
    FIELD_VARIATIONS,
    ROLES,
    CanonicalFieldMap,
    available_analyses,
    canonicalize,
    resolve_fields,
)

__all__ = [
    "FIELD_VARIATIONS",
    "ROLES",
    "CanonicalFieldMap",
    "available_analyses",
    "canonicalize",
    "resolve_fields",
    "to_date",
    "to_float",
    "to_int",
]
