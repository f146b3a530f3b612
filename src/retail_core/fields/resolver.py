"""Field resolution: map arbitrary spreadsheet headers to semantic roles.

Uploaded sales tables have no fixed schema. A single pass over the header
list produces an immutable :class:`CanonicalFieldMap`; every engine reads
columns through that map (or through :func:`canonicalize`) and never guesses
on its own.

Matching rules, per role and per header (headers in their given order):

1. exact match with a known variant (case and accent insensitive)
2. substring match in either direction
3. exact match after removing spaces, underscores and hyphens

The first header that satisfies any rule wins. Roles are resolved
independently, so one header may serve two roles. A role with no match
stays ``None`` and the features that need it are disabled.
"""

from __future__ import annotations

import logging
import re
from dataclasses import asdict, dataclass
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Union

import pandas as pd

from retail_core.fields.cleaning import normalize_header

logger = logging.getLogger(__name__)

ROLES = ("date", "value", "product", "category", "supplier", "seller", "quantity", "stock")

FIELD_VARIATIONS: Dict[str, List[str]] = {
    "date": ["data", "date", "data_venda", "data venda", "dt_venda", "dt venda", "data_vend", "data vend"],
    "value": [
        "valor",
        "value",
        "preco",
        "preço",
        "total",
        "vlr",
        "price",
        "amount",
        "valor_total",
        "valor total",
        "preço_total",
        "preco total",
    ],
    "product": [
        "produto",
        "item",
        "descricao",
        "descrição",
        "product",
        "sku",
        "nome_produto",
        "nome produto",
        "prod",
    ],
    "category": ["categoria", "category", "tipo", "group", "grupo", "categ", "cat"],
    "supplier": ["fornecedor", "supplier", "vendor", "fabricante", "forn", "marca"],
    "seller": [
        "vendedor",
        "vendedora",
        "seller",
        "atendente",
        "consultor",
        "vended",
        "vendedor_nome",
        "vendedor nome",
    ],
    "quantity": ["quantidade", "qtd", "qty", "quantity", "unidades", "qnt", "qtde"],
    "stock": ["estoque", "stock", "saldo", "disponivel", "disponível", "qtd_estoque", "qtd estoque"],
}

_SEPARATORS_RE = re.compile(r"[\s_\-]")

Rows = Union[pd.DataFrame, Sequence[Mapping[str, Any]]]


@dataclass(frozen=True)
class CanonicalFieldMap:
    """Semantic role -> original column header found in the dataset.

    Attributes hold the header exactly as it appeared in the input (not the
    normalized form), or None when the role is unavailable.
    """

    date: Optional[str] = None
    value: Optional[str] = None
    product: Optional[str] = None
    category: Optional[str] = None
    supplier: Optional[str] = None
    seller: Optional[str] = None
    quantity: Optional[str] = None
    stock: Optional[str] = None

    def get(self, role: str) -> Optional[str]:
        if role not in ROLES:
            return None
        return getattr(self, role)

    def has(self, *roles: str) -> bool:
        """True when every given role is resolved."""
        return all(self.get(role) is not None for role in roles)

    @property
    def resolved(self) -> Dict[str, str]:
        """Only the roles that matched a header."""
        return {role: col for role, col in asdict(self).items() if col is not None}

    def to_dict(self) -> Dict[str, Optional[str]]:
        return asdict(self)


def _variant_matches(header: str, variant: str) -> bool:
    if header == variant:
        return True
    if variant in header or header in variant:
        return True
    return _SEPARATORS_RE.sub("", header) == _SEPARATORS_RE.sub("", variant)


def resolve_fields(headers: Iterable[Any]) -> CanonicalFieldMap:
    """Resolve semantic roles from a list of raw headers.

    Args:
        headers: Column headers as produced by the file parser. Non-string
            headers are stringified; empty headers never match.

    Returns:
        CanonicalFieldMap with the first matching header per role.

    Examples:
        >>> fm = resolve_fields(["Data Venda", "Produto", "Valor Total", "Qtd"])
        >>> fm.date, fm.value, fm.quantity
        ('Data Venda', 'Valor Total', 'Qtd')
    """
    original = [h for h in (headers or []) if h is not None]
    normalized = [normalize_header(h) for h in original]
    variants = {role: [normalize_header(v) for v in FIELD_VARIATIONS[role]] for role in ROLES}

    found: Dict[str, str] = {}
    for role in ROLES:
        for raw, norm in zip(original, normalized):
            if not norm:
                continue
            if any(_variant_matches(norm, variant) for variant in variants[role]):
                found[role] = raw if isinstance(raw, str) else str(raw)
                break

    field_map = CanonicalFieldMap(**found)
    missing = [role for role in ROLES if role not in found]
    logger.debug(f"Resolved fields {field_map.resolved}; unavailable roles: {missing}")
    return field_map


def headers_of(rows: Rows) -> List[str]:
    """Header list of a row set: DataFrame columns or the first row's keys."""
    if isinstance(rows, pd.DataFrame):
        return [str(c) for c in rows.columns]
    for row in rows or []:
        if isinstance(row, Mapping):
            return [str(k) for k in row.keys()]
    return []


def available_analyses(field_map: CanonicalFieldMap) -> List[str]:
    """List the analyses a dataset supports given its resolved fields.

    - ``revenue``: value, or product together with quantity
    - ``inventory``: stock, or product together with quantity
    - ``team``: seller
    - ``layout``: category or supplier

    Examples:
        >>> available_analyses(CanonicalFieldMap(value="Valor", seller="Vendedor"))
        ['revenue', 'team']
    """
    analyses = []
    product_and_qty = field_map.has("product", "quantity")
    if field_map.has("value") or product_and_qty:
        analyses.append("revenue")
    if field_map.has("stock") or product_and_qty:
        analyses.append("inventory")
    if field_map.has("seller"):
        analyses.append("team")
    if field_map.has("category") or field_map.has("supplier"):
        analyses.append("layout")
    return analyses


def to_frame(rows: Rows) -> pd.DataFrame:
    """Build an object-typed DataFrame from rows, keeping cells untouched."""
    if isinstance(rows, pd.DataFrame):
        return rows.copy()
    records = [dict(row) for row in (rows or []) if isinstance(row, Mapping)]
    if not records:
        return pd.DataFrame()
    return pd.DataFrame.from_records(records).astype(object)


def canonicalize(rows: Rows, field_map: CanonicalFieldMap) -> pd.DataFrame:
    """Return rows with resolved columns renamed to their role names.

    Only resolved roles are kept, so downstream code works with ``value``,
    ``date``, ``category`` and so on regardless of the input spelling. One
    source column serving two roles is duplicated under both names.

    Args:
        rows: Raw rows (list of mappings) or a DataFrame.
        field_map: Result of :func:`resolve_fields` for these rows.

    Returns:
        DataFrame whose columns are a subset of ``ROLES``.
    """
    df = to_frame(rows)
    out = pd.DataFrame(index=df.index)
    for role, column in field_map.resolved.items():
        if column in df.columns:
            out[role] = df[column]
        else:
            logger.warning(f"Column '{column}' resolved for role '{role}' is absent from rows")
    return out.reset_index(drop=True)
