"""Tests for console report formatting."""

from retail_core.findings import CheckOutcome
from retail_core.qa import build_report, format_report_for_console


def test_rejected_report() -> None:
    """Long sections are cut at the limit; validations are hidden by default."""
    outcome = CheckOutcome()
    outcome.grave("total revenue: difference of 0.03 detected")
    for i in range(3):
        outcome.warning(f"warning {i}")
    outcome.validations.append("total: aggregate validated")

    text = format_report_for_console(build_report(outcome), limit=2)

    assert text.startswith("Sales Audit Report\n")
    assert "Status: REJECTED" in text
    assert "Grave errors (1):" in text
    assert "  - warning 1" in text
    assert "warning 2" not in text
    assert "... and 1 more" in text
    assert "Validations" not in text


def test_approved_report_with_validations() -> None:
    """Validations are listed only on request."""
    outcome = CheckOutcome()
    outcome.validations.append("total: aggregate validated")

    text = format_report_for_console(build_report(outcome), title="Store 1", show_validations=True)

    assert "Status: APPROVED" in text
    assert "Validations (1):" in text
    assert "Critical errors" not in text
