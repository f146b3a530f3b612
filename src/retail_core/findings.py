"""Severity-tagged findings shared by the classifiers and the audit engine.

Findings are plain values. Nothing here logs or prints; rendering a report is
the job of :mod:`retail_core.qa.formatters`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List


class Severity(str, Enum):
    """Three-tier severity used by every check.

    - CRITICAL: malformed numbers, NaN/Infinity, invalid thresholds, or
      input that makes a computation impossible. The affected value is
      forced to a safe default.
    - GRAVE: a produced number disagrees with its recomputation beyond
      tolerance, or an ABC curve does not close at 100%.
    - WARNING: auto-corrected negatives, extreme swings, implausible tickets.

    Critical and grave findings block approval. Warnings never do.
    """

    CRITICAL = "critical"
    GRAVE = "grave"
    WARNING = "warning"

    @property
    def blocks_approval(self) -> bool:
        return self is not Severity.WARNING


@dataclass(frozen=True)
class AuditFinding:
    """A single problem detected by a check."""

    severity: Severity
    message: str

    def to_dict(self) -> Dict[str, str]:
        return {"severity": self.severity.value, "message": self.message}


@dataclass
class CheckOutcome:
    """What one check found, fixed and confirmed.

    Attributes:
        findings: Problems, each with a severity.
        corrections: Human-readable descriptions of values that were fixed.
        validations: Human-readable descriptions of values that checked out.
    """

    findings: List[AuditFinding] = field(default_factory=list)
    corrections: List[str] = field(default_factory=list)
    validations: List[str] = field(default_factory=list)

    def critical(self, message: str) -> None:
        self.findings.append(AuditFinding(Severity.CRITICAL, message))

    def grave(self, message: str) -> None:
        self.findings.append(AuditFinding(Severity.GRAVE, message))

    def warning(self, message: str) -> None:
        self.findings.append(AuditFinding(Severity.WARNING, message))

    def of(self, severity: Severity) -> List[AuditFinding]:
        return [f for f in self.findings if f.severity is severity]

    @property
    def has_blocking(self) -> bool:
        return any(f.severity.blocks_approval for f in self.findings)

    def extend(self, other: "CheckOutcome") -> "CheckOutcome":
        self.findings.extend(other.findings)
        self.corrections.extend(other.corrections)
        self.validations.extend(other.validations)
        return self
