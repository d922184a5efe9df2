"""Judgment agent - the final gate between extraction and the user.

Most documents should be processed silently. The deterministic rules below
decide almost every case; the probabilistic judge is only consulted for
NEEDS_REVIEW verdicts, only when the autonomy level allows it, and it can
never upgrade a REJECT or approve a document with CRITICAL audit failures.

Rule order (first match wins):
1. Essential fields missing for the document type -> REJECT
2. Document type UNKNOWN -> REJECT
3. CRITICAL audit failures remain (after retries, or with no retry) -> REJECT
4. Confidence below the review threshold -> REJECT
5. Unresolved CRITICAL conflicts, when consensus is required -> NEEDS_REVIEW
6. Confidence below the approve threshold -> NEEDS_REVIEW
7. Too many warnings -> NEEDS_REVIEW
8. Otherwise -> AUTO_APPROVE
"""

import logging

from verdict.core.config import DEFAULT_MODELS, AutonomyLevel, JudgmentConfig
from verdict.core.errors import PipelineErrors, judge_error
from verdict.core.llm_client import LLMClient
from verdict.core.routing import missing_essential_fields
from verdict.pydantic_models import (
    DocumentType,
    JudgmentContext,
    JudgmentDecision,
    JudgmentOutcome,
    LlmJudgmentResponse,
    StillFailing,
)
from verdict.prompts.judgment_prompt import JUDGMENT_SYSTEM_PROMPT, build_judgment_prompt

logger = logging.getLogger(__name__)


def _percent(value: float) -> str:
    return f"{int(round(value * 100))}%"


def _decision(
    context: JudgmentContext,
    outcome: JudgmentOutcome,
    reasoning: str,
    issues: list[str] | None = None,
) -> JudgmentDecision:
    return JudgmentDecision(
        outcome=outcome,
        confidence=context.extraction_confidence,
        reasoning=reasoning,
        issues_for_user=issues or [],
        all_critical_checks_passed=not context.audit_report.critical_failures,
        has_model_consensus=context.has_model_consensus,
        retry_attempts=context.retry_attempts,
        corrected_fields=context.corrected_fields,
    )


def evaluate_criteria(context: JudgmentContext, config: JudgmentConfig | None = None) -> JudgmentDecision:
    """Apply the deterministic rules to one document.

    Args:
        context: Judgment inputs.
        config: Thresholds. Defaults to JudgmentConfig.default().

    Returns:
        JudgmentDecision with decided_by="rules".
    """
    config = config or JudgmentConfig.default()
    confidence = context.extraction_confidence
    audit = context.audit_report

    missing = missing_essential_fields(context.record, context.document_type)
    if missing:
        return _decision(
            context,
            JudgmentOutcome.REJECT,
            f"Essential fields missing: {', '.join(missing)}",
            [f"Missing essential field: {name}" for name in missing],
        )

    if context.document_type == DocumentType.UNKNOWN:
        return _decision(
            context,
            JudgmentOutcome.REJECT,
            "Could not determine the document type",
            ["Unknown document type"],
        )

    if audit.critical_failures:
        retry = context.retry_outcome
        if isinstance(retry, StillFailing):
            reasoning = f"Critical validation failures remain after {retry.attempts} retry attempt(s)"
        else:
            reasoning = "Critical validation failures remain and no retry corrected them"
        return _decision(
            context,
            JudgmentOutcome.REJECT,
            reasoning,
            [f"{c.check_type.display_name}: {c.message}" for c in audit.critical_failures],
        )

    if confidence < config.review_threshold:
        return _decision(
            context,
            JudgmentOutcome.REJECT,
            f"Extraction confidence {_percent(confidence)} is below the review threshold "
            f"{_percent(config.review_threshold)}",
            [f"Very low extraction confidence ({_percent(confidence)})"],
        )

    report = context.conflict_report
    if config.require_consensus_for_auto_approve and report is not None and report.has_critical_conflicts:
        return _decision(
            context,
            JudgmentOutcome.NEEDS_REVIEW,
            f"{len(report.critical_conflicts)} critical conflict(s) between extraction sources",
            [f"Sources disagree on {c.describe()}" for c in report.critical_conflicts],
        )

    if confidence < config.approve_threshold:
        return _decision(
            context,
            JudgmentOutcome.NEEDS_REVIEW,
            f"Extraction confidence {_percent(confidence)} is below the auto-approve threshold "
            f"{_percent(config.approve_threshold)}",
            [f"Low extraction confidence ({_percent(confidence)})"],
        )

    warnings = audit.warnings
    if not config.auto_approve_with_warnings and len(warnings) > config.max_warnings_for_auto_approve:
        return _decision(
            context,
            JudgmentOutcome.NEEDS_REVIEW,
            f"{len(warnings)} validation warnings exceed the limit of {config.max_warnings_for_auto_approve}",
            [f"{c.check_type.display_name}: {c.message}" for c in warnings],
        )

    return _decision(
        context,
        JudgmentOutcome.AUTO_APPROVE,
        f"All checks passed with {_percent(confidence)} confidence",
    )


def can_potentially_auto_approve(context: JudgmentContext, config: JudgmentConfig | None = None) -> bool:
    """Quick pre-check: could this context reach AUTO_APPROVE at all?

    Ignores the warning cap, which a retry or a lenient profile can change.
    """
    config = config or JudgmentConfig.default()
    if missing_essential_fields(context.record, context.document_type):
        return False
    if context.document_type == DocumentType.UNKNOWN:
        return False
    if context.audit_report.critical_failures:
        return False
    if context.extraction_confidence < config.approve_threshold:
        return False
    report = context.conflict_report
    if config.require_consensus_for_auto_approve and report is not None and report.has_critical_conflicts:
        return False
    return True


def llm_judge_allowed(autonomy: AutonomyLevel) -> bool:
    """The probabilistic judge is never consulted in ASSISTED mode."""
    return autonomy != AutonomyLevel.ASSISTED


_LLM_OUTCOMES = {
    "AUTO_APPROVE": JudgmentOutcome.AUTO_APPROVE,
    "NEEDS_REVIEW": JudgmentOutcome.NEEDS_REVIEW,
    "REJECT": JudgmentOutcome.REJECT,
}


def apply_llm_verdict(
    response: LlmJudgmentResponse,
    fallback: JudgmentDecision,
    context: JudgmentContext,
) -> JudgmentDecision:
    """Turn the judge's reply into a decision, keeping the rule-based facts."""
    outcome = _LLM_OUTCOMES[response.decision]

    if outcome == JudgmentOutcome.AUTO_APPROVE and context.audit_report.critical_failures:
        logger.warning("Judge approved a document with critical failures, keeping rule verdict")
        return fallback

    return fallback.model_copy(update={
        "outcome": outcome,
        "confidence": response.confidence,
        "reasoning": response.reasoning or fallback.reasoning,
        "issues_for_user": [] if outcome == JudgmentOutcome.AUTO_APPROVE else (
            response.issues_for_user or fallback.issues_for_user
        ),
        "decided_by": "llm",
    })


class JudgmentAgent:
    """Deterministic rules with a gated probabilistic fallback.

    Usage:
        agent = JudgmentAgent()
        decision = await agent.judge(context, config, autonomy=AutonomyLevel.AUTONOMOUS,
                                     use_llm_judge=True)
    """

    def __init__(self, client: LLMClient | None = None, model: str = DEFAULT_MODELS["judge"]):
        self.client = client
        self.model = model

    async def judge(
        self,
        context: JudgmentContext,
        config: JudgmentConfig | None = None,
        autonomy: AutonomyLevel = AutonomyLevel.AUTONOMOUS,
        use_llm_judge: bool = False,
        model: str | None = None,
        errors: PipelineErrors | None = None,
    ) -> JudgmentDecision:
        """Decide one document.

        Args:
            context: Judgment inputs.
            config: Thresholds.
            autonomy: Gate for the probabilistic judge.
            use_llm_judge: Consult the judge on NEEDS_REVIEW verdicts.
            model: Override the judge model for this call.
            errors: Collector for judge failures.

        Returns:
            The rule verdict, or the judge's verdict for NEEDS_REVIEW cases.
        """
        decision = evaluate_criteria(context, config)
        logger.debug("Rule verdict: %s (%s)", decision.outcome.value, decision.reasoning)

        if decision.outcome != JudgmentOutcome.NEEDS_REVIEW:
            return decision
        if not use_llm_judge or not llm_judge_allowed(autonomy):
            return decision

        if self.client is None:
            self.client = LLMClient()

        try:
            response = await self.client.complete_structured(
                system_prompt=JUDGMENT_SYSTEM_PROMPT,
                user_prompt=build_judgment_prompt(context),
                model=model or self.model,
                response_model=LlmJudgmentResponse,
                agent="judge",
            )
        except Exception as e:
            logger.warning("Judge unavailable, keeping rule verdict: %s", e)
            if errors is not None:
                errors.add(judge_error(f"judge unavailable, rule verdict kept: {e}", e))
            return decision

        return apply_llm_verdict(response, decision, context)
