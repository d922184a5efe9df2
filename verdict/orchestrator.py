"""Pipeline coordinator - runs every stage for one document, in order.

Stages are separate phase classes so each one can be tested and reasoned
about in isolation. Between phases, data flows through a per-document
ProcessingState (see phases/phase_base.py): one phase writes its output, the
next phase reads it. Nothing is shared between documents except the
append-only batch accumulator behind ``stats()``.

Flow:
  Classification → Extraction (+ consensus) → Audit → Correction → Judgment

Early rejection (a ``Rejected`` result, never an exception):
- classification failed, UNKNOWN, or below the confidence threshold
- no extraction source produced a usable record
"""

from verdict.agents.judgment_agent import JudgmentAgent
from verdict.core.auditor import ComplianceAuditor
from verdict.core.config import ProcessingConfig
from verdict.core.deadlines import deadline_after
from verdict.core.errors import PipelineErrors, classification_error
from verdict.core.pipeline_logger import PipelineLogger, get_logger
from verdict.core.providers import CompanyRegistry, DocumentClassifier, ExtractionProvider
from verdict.core.statistics import BatchAccumulator, ProcessingStats
from verdict.phases import (
    AuditPhase,
    CorrectionPhase,
    DocumentResources,
    ExtractionPhase,
    JudgmentPhase,
    PhaseContext,
    ProcessingState,
)
from verdict.pydantic_models import (
    DocumentClassification,
    DocumentType,
    ProcessingResult,
    Rejected,
    RejectionStage,
    Success,
)


class PipelineCoordinator:
    """Entry point of the validation and judgment pipeline.

    Usage:
        coordinator = PipelineCoordinator(provider, registry=registry)
        result = await coordinator.process(text, DocumentType.INVOICE)
        if isinstance(result, Success) and result.judgment.is_auto_approved:
            ...
        coordinator.stats().auto_approve_rate
    """

    def __init__(
        self,
        provider: ExtractionProvider,
        registry: CompanyRegistry | None = None,
        classifier: DocumentClassifier | None = None,
        judge: JudgmentAgent | None = None,
        config: ProcessingConfig | None = None,
        logger: PipelineLogger | None = None,
    ):
        """Initialize the coordinator.

        Args:
            provider: Extraction provider for both sources and retries.
            registry: Company registry. Without one, company checks are skipped.
            classifier: Used when process() is called without a document type.
            judge: Judgment agent. Defaults to one on the configured judge model.
            config: Default ProcessingConfig for process() calls.
            logger: Pipeline logger. Defaults to the global one.
        """
        self.provider = provider
        self.registry = registry
        self.classifier = classifier
        self.config = config or ProcessingConfig.default()
        self.judge = judge or JudgmentAgent(model=self.config.judge_model)
        self.logger = logger or get_logger()
        self._batch = BatchAccumulator()
        self._document_count = 0

    @property
    def results(self) -> tuple[ProcessingResult, ...]:
        return self._batch.results

    def stats(self) -> ProcessingStats:
        """Statistics over every document processed so far."""
        return self._batch.stats()

    def log_stats(self) -> ProcessingStats:
        """Log the batch summary block and return the statistics."""
        stats = self.stats()
        self.logger.summary(stats.to_dict())
        return stats

    async def process(
        self,
        document_text: str,
        document_type: DocumentType | DocumentClassification | None = None,
        config: ProcessingConfig | None = None,
        *,
        timeout: float | None = None,
    ) -> ProcessingResult:
        """Process one document.

        Args:
            document_text: Text of the document, passed to the provider.
            document_type: Known type, a classification, or None to classify.
            config: Overrides the coordinator's default config for this call.
            timeout: Deadline (seconds) for extraction and retry calls.
                Overrides config.timeout_seconds.

        Returns:
            Success (reached judgment) or Rejected (stopped early).
        """
        config = config or self.config
        self._document_count += 1
        document_id = f"doc-{self._document_count}"
        errors = PipelineErrors()

        self.logger.start_pipeline(document_id, profile=config.profile_name)

        classification = await self._classify(document_text, document_type, errors)
        rejection = self._check_classification(classification, config, errors)
        if rejection is not None:
            return self._finish(document_id, rejection)

        state = ProcessingState(
            document_text=document_text,
            classification=classification,
            deadline=deadline_after(timeout if timeout is not None else config.timeout_seconds),
            errors=errors,
        )
        context = PhaseContext(
            resources=DocumentResources(
                provider=self.provider,
                auditor=ComplianceAuditor(
                    registry=self.registry if config.external_validation_enabled else None
                ),
                judge=self.judge,
                logger=self.logger,
            ),
            config=config,
            state=state,
        )

        await ExtractionPhase(context).run()
        if state.record is None:
            return self._finish(document_id, Rejected(
                reason="No extraction source produced a usable record",
                classification=classification,
                stage=RejectionStage.EXTRACTION,
                details={
                    "ensemble": config.ensemble_enabled,
                    "notes": state.all_notes(),
                    "errors": errors.summary(),
                },
            ))

        await AuditPhase(context).run()
        await CorrectionPhase(context).run()
        decision = await JudgmentPhase(context).run()

        return self._finish(document_id, Success(
            classification=classification,
            canonical_extraction=state.record,
            conflict_report=state.conflict_report,
            audit_report=state.audit_report,
            retry_outcome=state.retry_outcome,
            judgment=decision,
            notes=state.all_notes(),
        ))

    async def _classify(
        self,
        document_text: str,
        document_type: DocumentType | DocumentClassification | None,
        errors: PipelineErrors,
    ) -> DocumentClassification | None:
        if isinstance(document_type, DocumentClassification):
            return document_type
        if isinstance(document_type, DocumentType):
            return DocumentClassification(document_type=document_type, reasoning="provided by caller")

        if self.classifier is None:
            errors.add(classification_error("no document type given and no classifier configured"))
            return None
        try:
            return await self.classifier.classify(document_text)
        except Exception as e:
            errors.add(classification_error(f"classifier failed: {e}", e))
            self.logger.error("Classification failed", exc=e)
            return None

    @staticmethod
    def _check_classification(
        classification: DocumentClassification | None,
        config: ProcessingConfig,
        errors: PipelineErrors,
    ) -> Rejected | None:
        if classification is None:
            return Rejected(
                reason="Document could not be classified",
                stage=RejectionStage.CLASSIFICATION,
                details={"notes": errors.notes()},
            )
        if classification.document_type == DocumentType.UNKNOWN:
            return Rejected(
                reason="Unknown document type",
                classification=classification,
                stage=RejectionStage.CLASSIFICATION,
                details={"confidence": classification.confidence},
            )
        if classification.confidence < config.min_classification_confidence:
            return Rejected(
                reason=(
                    f"Classification confidence {classification.confidence:.2f} below "
                    f"{config.min_classification_confidence:.2f}"
                ),
                classification=classification,
                stage=RejectionStage.CLASSIFICATION,
                details={
                    "confidence": classification.confidence,
                    "threshold": config.min_classification_confidence,
                },
            )
        return None

    def _finish(self, document_id: str, result: ProcessingResult) -> ProcessingResult:
        self._batch.append(result)
        if isinstance(result, Success):
            self.logger.end_pipeline(
                True,
                document_id=document_id,
                outcome=result.judgment.outcome.value,
                confidence=f"{result.confidence:.2f}",
                retries=result.retry_attempts,
            )
        else:
            self.logger.end_pipeline(
                False, document_id=document_id, stage=result.stage.value, reason=result.reason
            )
        return result
