"""Base classes for pipeline phases.

The per-document context is split into three parts:
- **DocumentResources** (frozen): collaborators created once per run,
  i.e. extraction provider, auditor, judge, logger.
- **ProcessingConfig** (frozen): the settings of the run, never changed
  mid-document (see verdict.core.config).
- **ProcessingState** (mutable): what accumulates as each phase runs, from
  source records to the canonical record, audit, retry outcome and verdict.

PhaseContext wraps all three and exposes convenience properties so phases can
write ``ctx.provider`` instead of ``ctx.resources.provider``.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Generic, TypeVar

from verdict.agents.judgment_agent import JudgmentAgent
from verdict.core.auditor import ComplianceAuditor
from verdict.core.config import EXTERNAL_CHECKS, ProcessingConfig
from verdict.core.consensus import ConsensusEngine
from verdict.core.errors import PipelineErrors
from verdict.core.pipeline_logger import PipelineLogger
from verdict.core.providers import ExtractionProvider
from verdict.core.routing import DocumentRoute, prepare_record, route_for
from verdict.pydantic_models import (
    EMPTY_AUDIT_REPORT,
    AuditReport,
    CheckType,
    ConflictReport,
    ConsensusOutcome,
    DocumentClassification,
    DocumentType,
    ExtractionRecord,
    JudgmentDecision,
    RetryOutcome,
)


@dataclass(frozen=True)
class DocumentResources:
    """Collaborators shared by every phase of one document."""

    provider: ExtractionProvider
    auditor: ComplianceAuditor
    judge: JudgmentAgent
    logger: PipelineLogger


@dataclass
class ProcessingState:
    """Mutable state of one document.

    Each field is written by exactly one phase:
    - source_a, consensus, record, conflict_report: Extraction
    - audit_report: Audit, then Correction
    - retry_outcome: Correction
    - judgment: Judgment
    - errors, notes: any phase
    """

    document_text: str
    classification: DocumentClassification
    deadline: float | None = None

    source_a: ExtractionRecord | None = None
    consensus: ConsensusOutcome | None = None
    record: ExtractionRecord | None = None
    conflict_report: ConflictReport | None = None
    audit_report: AuditReport = EMPTY_AUDIT_REPORT
    retry_outcome: RetryOutcome | None = None
    judgment: JudgmentDecision | None = None

    errors: PipelineErrors = field(default_factory=PipelineErrors)
    notes: list[str] = field(default_factory=list)   # Fallbacks that are not errors

    def all_notes(self) -> list[str]:
        return self.notes + self.errors.notes()


class PhaseContext:
    """What phases receive: resources, config and state of one document."""

    def __init__(self, resources: DocumentResources, config: ProcessingConfig, state: ProcessingState):
        self.resources = resources
        self.config = config
        self.state = state
        self.consensus_engine = ConsensusEngine(policies=config.field_policies)

    # -- Resource properties (read-only) --

    @property
    def provider(self) -> ExtractionProvider:
        return self.resources.provider

    @property
    def auditor(self) -> ComplianceAuditor:
        return self.resources.auditor

    @property
    def judge(self) -> JudgmentAgent:
        return self.resources.judge

    @property
    def logger(self) -> PipelineLogger:
        return self.resources.logger

    # -- Routing --

    @property
    def document_type(self) -> DocumentType:
        return self.state.classification.document_type

    @property
    def route(self) -> DocumentRoute:
        return route_for(self.document_type)

    @property
    def checks(self) -> frozenset[CheckType]:
        """Checks to run: enabled by config, routed for the type, and
        registry checks only when external validation is on."""
        checks = self.config.enabled_checks & self.route.checks
        if not self.config.external_validation_enabled:
            checks = checks - EXTERNAL_CHECKS
        return checks

    @property
    def errors(self) -> PipelineErrors:
        return self.state.errors

    async def audit_record(self, record: ExtractionRecord) -> AuditReport:
        """Audit a candidate record along this document's route."""
        return await self.auditor.audit(
            prepare_record(record, self.document_type),
            self.checks,
            company_vat_field=self.route.company_vat_field,
            company_name_field=self.route.company_name_field,
            require_vat_breakdown=self.config.require_vat_breakdown,
            errors=self.state.errors,
        )


T = TypeVar("T")


class PhaseRunner(ABC, Generic[T]):
    """Base class for pipeline phase runners.

    Each phase:
    - Has a name for logging
    - Takes a PhaseContext with shared state
    - Produces a typed result
    - Records recoverable failures in ``context.errors`` instead of raising
    """

    name: str = "unnamed"

    def __init__(self, context: PhaseContext):
        self.context = context
        self.logger = context.logger

    @abstractmethod
    async def run(self) -> T:
        """Execute the phase."""
        pass

    def log(self, message: str, level: str = "info", **data):
        """Log a message with phase context."""
        if level == "debug":
            self.logger.debug(f"[{self.name}] {message}", **data)
        elif level == "warning":
            self.logger.warning(f"[{self.name}] {message}", **data)
        elif level == "error":
            self.logger.error(f"[{self.name}] {message}", **data)
        else:
            self.logger.info(f"[{self.name}] {message}", **data)

    def start(self, model: str = ""):
        self.logger.start_phase(self.name, model=model)

    def end(self):
        self.logger.end_phase(self.name)
