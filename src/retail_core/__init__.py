"""Retail Core - sales aggregation and self-auditing engine.

This package turns a heterogeneous table of sales rows into business KPIs
(revenue, average ticket, top/worst rankings, weekday performance, period
deltas, ABC curves) and then independently recomputes every number to detect
and correct drift before it reaches a consumer.

Module Structure:
    retail_core.fields: Header resolution and cell coercion
    retail_core.sales: Aggregation, periods, ABC, weekday and inventory engines
    retail_core.qa: Shadow-computation audit and reports
    retail_core.pipeline: run_analysis(), the end-to-end entry point
    retail_core.config: EngineConfig

Quick Start:
    >>> from retail_core import EngineConfig, run_analysis
    >>> from retail_core.qa import format_report_for_console
    >>>
    >>> rows = [
    ...     {"Data": "2024-03-01", "Categoria": "Bebidas", "Produto": "Café", "Valor": 500.0},
    ...     {"Data": "2024-03-02", "Categoria": "Mercearia", "Produto": "Arroz", "Valor": 300.0},
    ... ]
    >>> result = run_analysis(rows, config=EngineConfig(period_filter="3months"))
    >>> result.aggregates.total_revenue
    800.0
    >>> print(format_report_for_console(result.report))
"""

__version__ = "0.1.0"

from retail_core.config import EngineConfig
from retail_core.exceptions import ConfigError, RetailCoreError
from retail_core.fields.resolver import CanonicalFieldMap, resolve_fields
from retail_core.findings import AuditFinding, Severity
from retail_core.pipeline import AnalysisResult, run_analysis
from retail_core.qa import AuditReport, audit, run_audit

__all__ = [
    "AnalysisResult",
    "AuditFinding",
    "AuditReport",
    "CanonicalFieldMap",
    "ConfigError",
    "EngineConfig",
    "RetailCoreError",
    "Severity",
    "__version__",
    "audit",
    "resolve_fields",
    "run_analysis",
    "run_audit",
]
