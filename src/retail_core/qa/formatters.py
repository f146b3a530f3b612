"""Console formatting for audit reports.

Findings are values; this module is the presentation layer that turns an
AuditReport into text for terminals and logs.
"""

from __future__ import annotations

from typing import Iterable, List, Optional

from retail_core.qa.report import AuditReport

SECTIONS = (
    ("critical_errors", "Critical errors"),
    ("grave_errors", "Grave errors"),
    ("warnings", "Warnings"),
    ("corrections", "Corrections applied"),
)


def _section(lines: List[str], title: str, messages: Iterable[str], limit: Optional[int]) -> None:
    messages = list(messages)
    if not messages:
        return
    lines.append(f"{title} ({len(messages)}):")
    shown = messages if limit is None else messages[:limit]
    for message in shown:
        lines.append(f"  - {message}")
    if len(shown) < len(messages):
        lines.append(f"  ... and {len(messages) - len(shown)} more")
    lines.append("")


def format_report_for_console(
    report: AuditReport,
    title: str = "Sales Audit Report",
    limit: Optional[int] = 20,
    show_validations: bool = False,
) -> str:
    """Format an audit report for console display.

    Args:
        report: AuditReport to render.
        title: Heading line.
        limit: Maximum messages shown per section (None for all).
        show_validations: Also list the checks that passed.

    Returns:
        Multi-line string.
    """
    lines = [title, "=" * 60, ""]
    status = "APPROVED" if report.approved else "REJECTED"
    lines.append(f"Status: {status}")
    summary = report.summary
    lines.append(
        f"  {summary['critical_errors']} critical, {summary['grave_errors']} grave, "
        f"{summary['warnings']} warnings, {summary['corrections']} corrections, "
        f"{summary['validations']} validations"
    )
    lines.append("")

    for attribute, heading in SECTIONS:
        _section(lines, heading, getattr(report, attribute), limit)
    if show_validations:
        _section(lines, "Validations", report.validations, limit)

    return "\n".join(lines).rstrip() + "\n"
