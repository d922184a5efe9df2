"""Tests for verdict.agents.judgment_agent module.

Tests:
- Deterministic rules 1-8 in order
- Profile thresholds (default, strict, lenient)
- can_potentially_auto_approve() pre-check
- The gated probabilistic judge (autonomy, opt-in, fallbacks)
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from verdict.agents.judgment_agent import (
    JudgmentAgent,
    apply_llm_verdict,
    can_potentially_auto_approve,
    evaluate_criteria,
    llm_judge_allowed,
)
from verdict.core.config import AutonomyLevel, JudgmentConfig
from verdict.core.errors import ErrorCategory, PipelineErrors
from verdict.pydantic_models import (
    AuditCheck,
    AuditReport,
    CheckType,
    ConflictReport,
    ConflictSeverity,
    CorrectedOnRetry,
    DocumentType,
    ExtractionRecord,
    FieldConflict,
    JudgmentContext,
    JudgmentOutcome,
    LlmJudgmentResponse,
    SourceSelector,
    StillFailing,
)

RECORD = ExtractionRecord(supplier_name="Acme Supplies BV", total_amount="121.00", confidence=0.92)


def make_record(**overrides) -> ExtractionRecord:
    return RECORD.model_copy(update=overrides)


def _context(
    confidence: float = 0.92,
    document_type: DocumentType = DocumentType.INVOICE,
    record=None,
    audit_report: AuditReport | None = None,
    conflict_report: ConflictReport | None = None,
    retry_outcome=None,
) -> JudgmentContext:
    return JudgmentContext(
        document_type=document_type,
        record=record or make_record(),
        extraction_confidence=confidence,
        conflict_report=conflict_report,
        audit_report=audit_report or AuditReport(),
        retry_outcome=retry_outcome,
    )


def _math_failure() -> AuditCheck:
    return AuditCheck.critical(
        CheckType.MATH, "total_amount", "total is off by 1.00", "Re-read the TOTALS section.", "121.00", "120.00"
    )


def _warnings(count: int) -> AuditReport:
    return AuditReport(checks=[
        AuditCheck.warning(CheckType.VAT_RATE, "vat_rate", f"warning {i}", "Re-check")
        for i in range(count)
    ])


def _critical_conflict() -> ConflictReport:
    return ConflictReport(conflicts=[FieldConflict(
        field="total_amount",
        value_from_source_a="127.00",
        value_from_source_b="121.00",
        chosen_value="121.00",
        chosen_source=SourceSelector.EXPERT,
        severity=ConflictSeverity.CRITICAL,
    )])


# =============================================================================
# Deterministic rules
# =============================================================================


class TestEvaluateCriteria:
    """Tests for evaluate_criteria()."""

    def test_clean_document_auto_approved(self):
        decision = evaluate_criteria(_context())
        assert decision.outcome == JudgmentOutcome.AUTO_APPROVE
        assert decision.decided_by == "rules"
        assert decision.issues_for_user == []
        assert decision.all_critical_checks_passed
        assert decision.has_model_consensus
        assert decision.confidence == 0.92

    def test_missing_essential_field_rejected(self):
        decision = evaluate_criteria(_context(record=make_record(total_amount=None)))
        assert decision.outcome == JudgmentOutcome.REJECT
        assert decision.reasoning == "Essential fields missing: total_amount"

    def test_missing_fields_checked_before_unknown_type(self):
        context = _context(document_type=DocumentType.UNKNOWN, record=make_record(total_amount=None))
        assert "Essential fields missing" in evaluate_criteria(context).reasoning

    def test_unknown_type_rejected(self):
        decision = evaluate_criteria(_context(document_type=DocumentType.UNKNOWN))
        assert decision.outcome == JudgmentOutcome.REJECT
        assert decision.reasoning == "Could not determine the document type"

    def test_critical_failures_after_retries_rejected(self):
        report = AuditReport(checks=[_math_failure()])
        retry = StillFailing(attempts=2, remaining_failures=report.critical_failures)
        decision = evaluate_criteria(_context(audit_report=report, retry_outcome=retry))
        assert decision.outcome == JudgmentOutcome.REJECT
        assert "after 2 retry attempt(s)" in decision.reasoning
        assert not decision.all_critical_checks_passed
        assert decision.retry_attempts == 2
        assert decision.issues_for_user == ["Mathematical Verification: total is off by 1.00"]

    def test_critical_failures_without_retry_rejected(self):
        decision = evaluate_criteria(_context(audit_report=AuditReport(checks=[_math_failure()])))
        assert decision.outcome == JudgmentOutcome.REJECT
        assert "no retry corrected them" in decision.reasoning

    def test_confidence_below_review_threshold_rejected(self):
        decision = evaluate_criteria(_context(confidence=0.40))
        assert decision.outcome == JudgmentOutcome.REJECT
        assert "confidence" in decision.reasoning

    def test_critical_conflict_needs_review(self):
        decision = evaluate_criteria(_context(conflict_report=_critical_conflict()))
        assert decision.outcome == JudgmentOutcome.NEEDS_REVIEW
        assert not decision.has_model_consensus
        assert "127.00" in decision.issues_for_user[0]

    def test_critical_conflict_ignored_when_consensus_not_required(self):
        decision = evaluate_criteria(_context(conflict_report=_critical_conflict()), JudgmentConfig.lenient())
        assert decision.outcome == JudgmentOutcome.AUTO_APPROVE

    def test_low_confidence_needs_review(self):
        decision = evaluate_criteria(_context(confidence=0.65))
        assert decision.outcome == JudgmentOutcome.NEEDS_REVIEW
        assert decision.issues_for_user == ["Low extraction confidence (65%)"]

    def test_warnings_up_to_limit_approved(self):
        assert evaluate_criteria(_context(audit_report=_warnings(3))).outcome == JudgmentOutcome.AUTO_APPROVE

    def test_too_many_warnings_need_review(self):
        decision = evaluate_criteria(_context(audit_report=_warnings(4)))
        assert decision.outcome == JudgmentOutcome.NEEDS_REVIEW
        assert "4 validation warnings" in decision.reasoning

    def test_warnings_allowed_when_configured(self):
        config = JudgmentConfig(auto_approve_with_warnings=True)
        assert evaluate_criteria(_context(audit_report=_warnings(10)), config).outcome == JudgmentOutcome.AUTO_APPROVE

    def test_corrected_fields_carried(self):
        retry = CorrectedOnRetry(attempt=1, corrected_fields=["total_amount"])
        decision = evaluate_criteria(_context(retry_outcome=retry))
        assert decision.outcome == JudgmentOutcome.AUTO_APPROVE
        assert decision.retry_attempts == 1
        assert decision.corrected_fields == ["total_amount"]


class TestProfiles:
    """Profile thresholds move the approve/review boundaries."""

    def test_strict_approves_high_confidence(self):
        assert evaluate_criteria(_context(confidence=0.92), JudgmentConfig.strict()).outcome == JudgmentOutcome.AUTO_APPROVE

    def test_strict_reviews_medium_confidence(self):
        assert evaluate_criteria(_context(confidence=0.85), JudgmentConfig.strict()).outcome == JudgmentOutcome.NEEDS_REVIEW

    def test_strict_warning_cap(self):
        assert evaluate_criteria(_context(audit_report=_warnings(2)), JudgmentConfig.strict()).outcome == JudgmentOutcome.NEEDS_REVIEW

    def test_lenient_approves_lower_confidence(self):
        assert evaluate_criteria(_context(confidence=0.72), JudgmentConfig.lenient()).outcome == JudgmentOutcome.AUTO_APPROVE

    def test_lenient_reviews_instead_of_rejecting(self):
        assert evaluate_criteria(_context(confidence=0.45), JudgmentConfig.lenient()).outcome == JudgmentOutcome.NEEDS_REVIEW


class TestCanPotentiallyAutoApprove:
    """Tests for can_potentially_auto_approve()."""

    def test_clean(self):
        assert can_potentially_auto_approve(_context())

    def test_critical_failure(self):
        assert not can_potentially_auto_approve(_context(audit_report=AuditReport(checks=[_math_failure()])))

    def test_low_confidence(self):
        assert not can_potentially_auto_approve(_context(confidence=0.6))

    def test_ignores_warning_cap(self):
        assert can_potentially_auto_approve(_context(audit_report=_warnings(10)))


# =============================================================================
# Probabilistic judge
# =============================================================================


def _client(response=None, error: Exception | None = None) -> MagicMock:
    client = MagicMock()
    client.complete_structured = AsyncMock(return_value=response, side_effect=error)
    return client


class TestLlmJudgeGate:
    """The judge is consulted only for NEEDS_REVIEW, when allowed."""

    def test_assisted_never_allows_judge(self):
        assert not llm_judge_allowed(AutonomyLevel.ASSISTED)
        assert llm_judge_allowed(AutonomyLevel.AUTONOMOUS)
        assert llm_judge_allowed(AutonomyLevel.SOVEREIGN)

    @pytest.mark.asyncio
    async def test_judge_overrides_needs_review(self):
        client = _client(LlmJudgmentResponse(decision="AUTO_APPROVE", confidence=0.88, reasoning="Looks fine"))
        agent = JudgmentAgent(client=client, model="judge-model")

        decision = await agent.judge(_context(confidence=0.65), use_llm_judge=True)

        assert decision.outcome == JudgmentOutcome.AUTO_APPROVE
        assert decision.decided_by == "llm"
        assert decision.confidence == 0.88
        assert decision.issues_for_user == []
        kwargs = client.complete_structured.await_args.kwargs
        assert kwargs["model"] == "judge-model"
        assert kwargs["response_model"] is LlmJudgmentResponse
        assert "## Validation Audit" in kwargs["user_prompt"]

    @pytest.mark.asyncio
    async def test_judge_not_called_in_assisted_mode(self):
        client = _client(LlmJudgmentResponse(decision="AUTO_APPROVE"))
        agent = JudgmentAgent(client=client)
        decision = await agent.judge(
            _context(confidence=0.65), autonomy=AutonomyLevel.ASSISTED, use_llm_judge=True
        )
        assert decision.outcome == JudgmentOutcome.NEEDS_REVIEW
        client.complete_structured.assert_not_called()

    @pytest.mark.asyncio
    async def test_judge_not_called_when_disabled(self):
        client = _client(LlmJudgmentResponse(decision="AUTO_APPROVE"))
        decision = await JudgmentAgent(client=client).judge(_context(confidence=0.65))
        assert decision.decided_by == "rules"
        client.complete_structured.assert_not_called()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("confidence,document_type", [
        (0.92, DocumentType.INVOICE),
        (0.92, DocumentType.UNKNOWN),
    ])
    async def test_judge_not_called_for_terminal_rule_verdicts(self, confidence, document_type):
        client = _client(LlmJudgmentResponse(decision="NEEDS_REVIEW"))
        await JudgmentAgent(client=client).judge(
            _context(confidence=confidence, document_type=document_type), use_llm_judge=True
        )
        client.complete_structured.assert_not_called()

    @pytest.mark.asyncio
    async def test_judge_failure_keeps_rule_verdict(self):
        client = _client(error=RuntimeError("provider down"))
        errors = PipelineErrors()
        decision = await JudgmentAgent(client=client).judge(
            _context(confidence=0.65), use_llm_judge=True, errors=errors
        )
        assert decision.outcome == JudgmentOutcome.NEEDS_REVIEW
        assert decision.decided_by == "rules"
        assert errors.warnings[0].category == ErrorCategory.JUDGE

    @pytest.mark.asyncio
    async def test_model_override(self):
        client = _client(LlmJudgmentResponse(decision="NEEDS_REVIEW", issues_for_user=["Check VAT"]))
        decision = await JudgmentAgent(client=client).judge(
            _context(confidence=0.65), use_llm_judge=True, model="other-model"
        )
        assert client.complete_structured.await_args.kwargs["model"] == "other-model"
        assert decision.issues_for_user == ["Check VAT"]


class TestApplyLlmVerdict:
    """Tests for apply_llm_verdict()."""

    def test_approval_with_critical_failures_ignored(self):
        context = _context(audit_report=AuditReport(checks=[_math_failure()]))
        fallback = evaluate_criteria(context)
        response = LlmJudgmentResponse(decision="AUTO_APPROVE", confidence=0.99)
        assert apply_llm_verdict(response, fallback, context) is fallback

    def test_empty_reasoning_falls_back(self):
        context = _context(confidence=0.65)
        fallback = evaluate_criteria(context)
        decision = apply_llm_verdict(LlmJudgmentResponse(decision="REJECT"), fallback, context)
        assert decision.outcome == JudgmentOutcome.REJECT
        assert decision.reasoning == fallback.reasoning
        assert decision.issues_for_user == fallback.issues_for_user
