"""Extraction phase - run the sources and merge them into one record."""

import asyncio
from dataclasses import dataclass

from verdict.core.deadlines import run_before
from verdict.core.errors import provider_error, timeout_error
from verdict.core.routing import prepare_record
from verdict.phases.phase_base import PhaseRunner
from verdict.pydantic_models import ConsensusMode, ExtractionRecord, SourceSelector


@dataclass
class ExtractionResult:
    """Result from the extraction phase."""

    mode: ConsensusMode
    sources_succeeded: int
    sources_attempted: int
    conflicts: int


class ExtractionPhase(PhaseRunner[ExtractionResult]):
    """Phase 1: Extraction and consensus.

    In ensemble mode both sources run concurrently; the merge waits for both.
    One failed source degrades to single-source mode with a note. Without
    ensemble mode only the expert source runs and no conflict report is kept.
    """

    name = "Extraction"

    async def run(self) -> ExtractionResult:
        self.start()
        ctx = self.context
        ensemble = ctx.config.ensemble_enabled
        sources = [SourceSelector.FAST, SourceSelector.EXPERT] if ensemble else [SourceSelector.EXPERT]

        tasks = [
            run_before(
                ctx.provider.extract(
                    ctx.state.document_text,
                    source,
                    None,
                    document_type=ctx.document_type,
                    provenance=ctx.config.provenance_enabled,
                ),
                ctx.state.deadline,
            )
            for source in sources
        ]
        results = await asyncio.gather(*tasks, return_exceptions=True)

        records: dict[SourceSelector, ExtractionRecord] = {}
        for source, result in zip(sources, results):
            if isinstance(result, asyncio.TimeoutError):
                ctx.errors.add(timeout_error("extraction", source.value, ctx.config.timeout_seconds))
                self.log(f"{source.value} source timed out", "warning")
            elif isinstance(result, BaseException):
                ctx.errors.add(provider_error(
                    f"{source.value} source failed: {result}", "extraction", source.value, result
                ))
                self.log(f"{source.value} source failed: {result}", "warning")
            elif result.is_empty():
                ctx.errors.add(provider_error(
                    f"{source.value} source returned an empty record", "extraction", source.value
                ))
                self.log(f"{source.value} source returned an empty record", "warning")
            elif ctx.config.provenance_enabled:
                records[source] = result
            else:
                records[source] = result.without_provenance()

        engine = ctx.consensus_engine
        if ensemble:
            outcome = engine.merge(records.get(SourceSelector.FAST), records.get(SourceSelector.EXPERT))
        elif SourceSelector.EXPERT in records:
            outcome = engine.single_source(records[SourceSelector.EXPERT], SourceSelector.EXPERT, None)
        else:
            outcome = engine.no_data("extraction source produced no record")

        ctx.state.consensus = outcome
        ctx.state.source_a = records.get(SourceSelector.FAST)
        ctx.state.conflict_report = outcome.report if ensemble else None
        if outcome.record is not None:
            ctx.state.record = prepare_record(outcome.record, ctx.document_type)
        if outcome.note and outcome.mode != ConsensusMode.NO_DATA:
            ctx.state.notes.append(f"extraction: {outcome.note}")
            self.logger.milestone(outcome.note)

        conflicts = len(outcome.report.conflicts)
        self.logger.phase_result(
            "extraction",
            outcome.mode.value,
            sources=f"{len(records)}/{len(sources)}",
            conflicts=conflicts,
        )
        self.end()
        return ExtractionResult(
            mode=outcome.mode,
            sources_succeeded=len(records),
            sources_attempted=len(sources),
            conflicts=conflicts,
        )
