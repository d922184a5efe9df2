"""Judge prompts for the probabilistic judgment fallback.

The judge never sees the document. It reads a summary of what the earlier
stages found and returns one of the three verdicts.
"""

from verdict.core.routing import missing_essential_fields
from verdict.pydantic_models import (
    CorrectedOnRetry,
    JudgmentContext,
    NoRetryNeeded,
    StillFailing,
)

MAX_WARNINGS_SHOWN = 3

JUDGMENT_SYSTEM_PROMPT = """You are the final gatekeeper in a financial document processing system.

You review the reports produced by earlier processing stages and make one decision.
You do NOT see the document itself.

## Decision Options

### AUTO_APPROVE (target: 95%+ of documents)
Choose when ALL of these are true:
- No critical audit failures remaining
- No unresolved critical conflicts between the two extraction sources
- Extraction confidence >= 80%
- Essential fields are present

The document is then processed SILENTLY. The user never sees it.

### NEEDS_REVIEW
Choose when:
- Warning-level issues are present but no critical failures
- Sources disagreed but the conflicts were resolved with reasonable confidence
- Some non-essential fields are missing
- Extraction confidence is between 50% and 80%

The user will see the document with the specific issues highlighted.

### REJECT
Choose when:
- Critical audit failures remain after retries
- Essential fields (amount, vendor) are missing
- The document type could not be determined
- Extraction confidence < 50%

The document then requires manual processing.

## Philosophy: "Silence"
Users should NEVER see a document unless there is a genuine issue.
When in doubt, lean towards AUTO_APPROVE for clean extractions.
Only escalate when correctness genuinely cannot be verified.

## Output Format
Return JSON:
{
  "decision": "AUTO_APPROVE" | "NEEDS_REVIEW" | "REJECT",
  "confidence": 0.0-1.0,
  "reasoning": "Brief explanation (1-2 sentences)",
  "issues_for_user": ["Issue 1", "Issue 2"]
}
"""


def _percent(value: float) -> str:
    return f"{int(value * 100)}%"


def build_judgment_prompt(context: JudgmentContext) -> str:
    """Build the judge's user prompt from the stage reports.

    Args:
        context: Judgment inputs for one document.

    Returns:
        Formatted prompt string.
    """
    missing = missing_essential_fields(context.record, context.document_type)
    lines = [
        "# Document Analysis Report",
        "",
        "## Document Summary",
        f"- Document Type: {context.document_type.value}",
        f"- Extraction Confidence: {_percent(context.extraction_confidence)}",
        f"- Essential Fields Present: {'No' if missing else 'Yes'}",
    ]
    if missing:
        lines.append(f"- Missing Fields: {', '.join(missing)}")
    lines.append("")

    lines.append("## Model Consensus")
    report = context.conflict_report
    if report is None or not report.had_conflicts:
        lines.append("No conflicts - the sources agreed on every field")
    else:
        lines.append(f"{len(report.conflicts)} field conflict(s) detected:")
        for conflict in report.conflicts:
            lines.append(f"  - [{conflict.severity.value.upper()}] {conflict.describe()}")
        lines.append(f"  Critical conflicts: {len(report.critical_conflicts)}")
    lines.append("")

    audit = context.audit_report
    lines.extend([
        "## Validation Audit",
        f"- Total Checks: {len(audit.checks)}",
        f"- Passed: {audit.passed_count}",
        f"- Failed: {audit.failed_count}",
        f"- Status: {audit.status.value.upper()}",
    ])
    if audit.critical_failures:
        lines.append("Critical Failures:")
        for check in audit.critical_failures:
            lines.append(f"  - {check.check_type.display_name}: {check.message}")
    if audit.warnings:
        lines.append("Warnings:")
        for check in audit.warnings[:MAX_WARNINGS_SHOWN]:
            lines.append(f"  - {check.check_type.display_name}: {check.message}")
        if len(audit.warnings) > MAX_WARNINGS_SHOWN:
            lines.append(f"  ... and {len(audit.warnings) - MAX_WARNINGS_SHOWN} more")
    lines.append("")

    lines.append("## Self-Correction")
    retry = context.retry_outcome
    if isinstance(retry, NoRetryNeeded):
        lines.append("No retry needed - passed on first attempt")
    elif isinstance(retry, CorrectedOnRetry):
        lines.append(f"Corrected on retry attempt {retry.attempt}")
        lines.append(f"   Corrected fields: {', '.join(retry.corrected_fields) or 'none'}")
    elif isinstance(retry, StillFailing):
        lines.append(f"Still failing after {retry.attempts} retry attempt(s)")
        lines.append(f"   Remaining failures: {len(retry.remaining_failures)}")
    else:
        lines.append("Self-correction not attempted")
    lines.append("")

    lines.extend([
        "## Your Decision",
        "Based on the above, decide: AUTO_APPROVE, NEEDS_REVIEW, or REJECT.",
        "Consider the 'Silence' philosophy: approve when confident, escalate when uncertain.",
    ])
    return "\n".join(lines)
