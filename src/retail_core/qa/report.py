"""Audit report: the merged, immutable view over all check outcomes."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Tuple

from retail_core.findings import CheckOutcome, Severity


@dataclass(frozen=True)
class AuditReport:
    """Everything an audit run found, fixed and confirmed.

    Attributes:
        approved: True when there are no critical and no grave errors.
            Warnings and corrections never block approval.
        critical_errors: Messages of critical findings.
        grave_errors: Messages of grave findings.
        warnings: Messages of warning findings.
        corrections: Values that were fixed.
        validations: Values that checked out.
    """

    approved: bool
    critical_errors: Tuple[str, ...] = ()
    grave_errors: Tuple[str, ...] = ()
    warnings: Tuple[str, ...] = ()
    corrections: Tuple[str, ...] = ()
    validations: Tuple[str, ...] = ()

    @property
    def summary(self) -> Dict[str, int]:
        return {
            "critical_errors": len(self.critical_errors),
            "grave_errors": len(self.grave_errors),
            "warnings": len(self.warnings),
            "corrections": len(self.corrections),
            "validations": len(self.validations),
        }

    def to_dict(self) -> Dict[str, object]:
        return {
            "approved": self.approved,
            "critical_errors": list(self.critical_errors),
            "grave_errors": list(self.grave_errors),
            "warnings": list(self.warnings),
            "corrections": list(self.corrections),
            "validations": list(self.validations),
            "summary": self.summary,
        }


def build_report(*outcomes: CheckOutcome) -> AuditReport:
    """Merge check outcomes, in order, into one AuditReport."""
    messages: Dict[Severity, List[str]] = {severity: [] for severity in Severity}
    corrections: List[str] = []
    validations: List[str] = []
    for outcome in outcomes:
        for finding in outcome.findings:
            messages[finding.severity].append(finding.message)
        corrections.extend(outcome.corrections)
        validations.extend(outcome.validations)

    return AuditReport(
        approved=not messages[Severity.CRITICAL] and not messages[Severity.GRAVE],
        critical_errors=tuple(messages[Severity.CRITICAL]),
        grave_errors=tuple(messages[Severity.GRAVE]),
        warnings=tuple(messages[Severity.WARNING]),
        corrections=tuple(corrections),
        validations=tuple(validations),
    )
