"""QA module: shadow-computation audit of the sales engines.

Example:
    >>> from retail_core.qa import ProducedAggregates, run_audit
    >>>
    >>> produced = ProducedAggregates(total_revenue=999.0, average_ticket=333.0)
    >>> result = run_audit(rows, produced)
    >>>
    >>> print(result.report.approved)
    >>> for message in result.report.grave_errors:
    ...     print(message)
    >>> result.corrected.total_revenue  # recomputed value when the check failed
"""

from retail_core.qa.api import AuditResult, ProducedAggregates, Ranking, audit, run_audit
from retail_core.qa.formatters import format_report_for_console
from retail_core.qa.report import AuditReport, build_report

__all__ = [
    "AuditReport",
    "AuditResult",
    "ProducedAggregates",
    "Ranking",
    "audit",
    "build_report",
    "format_report_for_console",
    "run_audit",
]
