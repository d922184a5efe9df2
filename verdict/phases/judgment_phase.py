"""Judgment phase - the final verdict."""

from verdict.phases.phase_base import PhaseRunner
from verdict.pydantic_models import JudgmentContext, JudgmentDecision


class JudgmentPhase(PhaseRunner[JudgmentDecision]):
    """Phase 4: Judgment.

    Confidence is the canonical record's confidence (for ensemble runs, the
    merged confidence including the conflict penalty).
    """

    name = "Judgment"

    async def run(self) -> JudgmentDecision:
        ctx = self.context
        state = ctx.state
        use_llm = ctx.config.use_llm_judge
        self.start(model=ctx.config.judge_model if use_llm else "")

        context = JudgmentContext(
            document_type=ctx.document_type,
            record=state.record,
            extraction_confidence=state.record.confidence,
            conflict_report=state.conflict_report,
            audit_report=state.audit_report,
            retry_outcome=state.retry_outcome,
        )
        decision = await ctx.judge.judge(
            context,
            ctx.config.judgment,
            autonomy=ctx.config.autonomy,
            use_llm_judge=use_llm,
            model=ctx.config.judge_model,
            errors=ctx.errors,
        )
        state.judgment = decision

        self.logger.phase_result(
            "judgment",
            decision.outcome.value,
            confidence=f"{decision.confidence:.2f}",
            decided_by=decision.decided_by,
        )
        if not decision.is_auto_approved:
            self.logger.milestone(decision.reasoning)
        self.end()
        return decision
