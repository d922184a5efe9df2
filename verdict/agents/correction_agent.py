"""Correction agent - bounded self-correction driven by audit feedback.

When the first audit finds CRITICAL failures, the extraction source is asked
again with feedback naming exactly which checks failed and where to look.
Attempts are strictly sequential: each attempt's feedback is built from the
previous attempt's audit. The provider is never called more than
`max_retries` times.

Outcomes:
- NoRetryNeeded: the first audit passed
- CorrectedOnRetry: an attempt produced a record with no CRITICAL failures
- StillFailing: retries exhausted, or the provider failed after the first attempt
- None: the provider failed on the first attempt; self-correction was skipped
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable

from verdict.core.config import CorrectionConfig
from verdict.core.deadlines import run_before
from verdict.core.errors import PipelineErrors, PipelineIssue, provider_error, timeout_error
from verdict.core.providers import ExtractionProvider
from verdict.pydantic_models import (
    AuditCheck,
    AuditReport,
    ConflictReport,
    ConsensusOutcome,
    CorrectedOnRetry,
    DocumentType,
    ExtractionRecord,
    NoRetryNeeded,
    RetryOutcome,
    SourceSelector,
    StillFailing,
)
from verdict.prompts.feedback_prompt import build_correction_summary, build_feedback_prompt

logger = logging.getLogger(__name__)

AuditFn = Callable[[ExtractionRecord], Awaitable[AuditReport]]
ReconcileFn = Callable[[ExtractionRecord], ConsensusOutcome]


@dataclass
class CorrectionResult:
    """Final state of the correction loop."""

    record: ExtractionRecord
    audit_report: AuditReport
    conflict_report: ConflictReport | None
    outcome: RetryOutcome | None
    issues: list[PipelineIssue] = field(default_factory=list)

    @property
    def notes(self) -> list[str]:
        return [issue.to_note() for issue in self.issues]


def corrected_fields(original_failures: list[AuditCheck], report: AuditReport) -> list[str]:
    """Fields of the original failures whose check no longer fails, in order."""
    fields: list[str] = []
    for check in original_failures:
        if report.is_failing(check.check_type, check.field):
            continue
        if check.field not in fields:
            fields.append(check.field)
    return fields


async def run_correction_loop(
    document_text: str,
    document_type: DocumentType,
    record: ExtractionRecord,
    report: AuditReport,
    *,
    provider: ExtractionProvider,
    audit: AuditFn,
    reconcile: ReconcileFn | None = None,
    conflict_report: ConflictReport | None = None,
    max_retries: int = CorrectionConfig.DEFAULT_MAX_RETRIES,
    deadline: float | None = None,
    source: SourceSelector = SourceSelector.EXPERT,
    errors: PipelineErrors | None = None,
    provenance: bool = False,
) -> CorrectionResult:
    """Re-extract with feedback until the audit passes or retries run out.

    Args:
        document_text: Document text sent to the provider.
        document_type: Document family, passed through to the provider.
        record: Canonical record of the first pass.
        report: Audit of the first pass.
        provider: Extraction provider used for retries.
        audit: Audits a candidate record (route-aware, registry-aware).
        reconcile: In ensemble mode, merges a retry record (as source B)
            with the original source-A record.
        conflict_report: Conflicts of the first pass.
        max_retries: Upper bound on provider calls.
        deadline: Absolute loop time after which calls time out.
        source: Source selector for retry calls.
        errors: Collector for provider failures.
        provenance: Ask for per-field source spans; when False any spans
            on retry records are dropped.

    Returns:
        CorrectionResult with the latest record, audit and conflicts.
    """
    issues: list[PipelineIssue] = []

    def _finish(rec, rep, conflicts, outcome) -> CorrectionResult:
        if errors is not None:
            for issue in issues:
                errors.add(issue)
        return CorrectionResult(rec, rep, conflicts, outcome, issues)

    if report.passed:
        return _finish(record, report, conflict_report, NoRetryNeeded())

    original_failures = report.failures
    logger.info("Self-correction needed: %s", build_correction_summary(original_failures))

    current_record, current_report, current_conflicts = record, report, conflict_report

    for attempt in range(max_retries):
        feedback = build_feedback_prompt(current_report.failures, attempt, max_retries)

        try:
            candidate = await run_before(
                provider.extract(
                    document_text, source, feedback, document_type=document_type, provenance=provenance
                ),
                deadline,
            )
        except asyncio.TimeoutError:
            issues.append(timeout_error("correction", source.value))
            logger.warning("Retry %d timed out", attempt + 1)
        except Exception as e:
            issues.append(provider_error(f"retry {attempt + 1} failed: {e}", "correction", source.value, e))
            logger.warning("Retry %d failed: %s", attempt + 1, e)
        else:
            if not provenance:
                candidate = candidate.without_provenance()
            if reconcile is not None:
                merged = reconcile(candidate)
                current_record = merged.record or candidate
                current_conflicts = merged.report
            else:
                current_record = candidate
            current_report = await audit(current_record)

            if current_report.passed:
                fixed = corrected_fields(original_failures, current_report)
                logger.info("Corrected on attempt %d: %s", attempt + 1, ", ".join(fixed) or "no field changes")
                return _finish(
                    current_record,
                    current_report,
                    current_conflicts,
                    CorrectedOnRetry(
                        attempt=attempt + 1,
                        corrected_fields=fixed,
                        original_failures=original_failures,
                    ),
                )
            continue

        # Provider call failed
        if attempt == 0:
            issues.append(provider_error(
                "self-correction skipped, audited once", "correction", source.value
            ))
            return _finish(record, report, conflict_report, None)
        return _finish(
            current_record,
            current_report,
            current_conflicts,
            StillFailing(attempts=attempt + 1, remaining_failures=current_report.failures),
        )

    logger.info("Still failing after %d attempt(s)", max_retries)
    return _finish(
        current_record,
        current_report,
        current_conflicts,
        StillFailing(attempts=max_retries, remaining_failures=current_report.failures),
    )
