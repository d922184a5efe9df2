"""Correction phase - bounded re-extraction when the audit fails."""

from verdict.agents.correction_agent import run_correction_loop
from verdict.core.routing import prepare_record
from verdict.phases.phase_base import PhaseRunner
from verdict.pydantic_models import ExtractionRecord, NoRetryNeeded, RetryOutcome, SourceSelector


class CorrectionPhase(PhaseRunner[RetryOutcome | None]):
    """Phase 3: Self-correction.

    Skipped (audit once, with a note) when self-correction is disabled. In
    ensemble mode each retry record is merged again with the original fast
    source record.
    """

    name = "Correction"

    async def run(self) -> RetryOutcome | None:
        ctx = self.context
        state = ctx.state

        if state.audit_report.passed:
            state.retry_outcome = NoRetryNeeded()
            return state.retry_outcome

        if not ctx.config.retries_enabled:
            state.notes.append("correction: self-correction disabled, audited once")
            self.logger.milestone("self-correction disabled, audited once")
            return None

        self.start()

        reconcile = None
        if ctx.config.ensemble_enabled and state.source_a is not None:
            source_a = state.source_a

            def reconcile(candidate: ExtractionRecord):
                return ctx.consensus_engine.merge(source_a, candidate)

        result = await run_correction_loop(
            state.document_text,
            ctx.document_type,
            state.record,
            state.audit_report,
            provider=ctx.provider,
            audit=ctx.audit_record,
            reconcile=reconcile,
            conflict_report=state.conflict_report,
            max_retries=ctx.config.max_retries,
            deadline=state.deadline,
            source=SourceSelector.EXPERT,
            errors=ctx.errors,
            provenance=ctx.config.provenance_enabled,
        )

        state.record = prepare_record(result.record, ctx.document_type)
        state.audit_report = result.audit_report
        if ctx.config.ensemble_enabled:
            state.conflict_report = result.conflict_report
        state.retry_outcome = result.outcome

        outcome = result.outcome.kind if result.outcome else "skipped"
        self.logger.phase_result(
            "correction",
            outcome,
            attempts=result.outcome.retry_attempts if result.outcome else 0,
            critical=len(result.audit_report.critical_failures),
        )
        self.end()
        return result.outcome
