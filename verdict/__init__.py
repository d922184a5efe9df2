"""Financial document validation and judgment pipeline.

Takes the output of two independent extraction sources for a Belgian
financial document (invoice, bill, receipt, expense) and turns it into one
verdict: AUTO_APPROVE, NEEDS_REVIEW or REJECT, with an audit trail.

Architecture:
    core/             - config, errors, logging, checksums, consensus, auditor, stats
    prompts/          - correction feedback and judge prompts
    agents/           - correction loop and judgment agent
    pydantic_models/  - data passed between stages
    phases/           - phase runner classes for the per-document pipeline

Usage:
    from verdict import PipelineCoordinator, DocumentType

    coordinator = PipelineCoordinator(provider, registry=registry)
    result = await coordinator.process(text, DocumentType.INVOICE)
    stats = coordinator.stats()
"""

from verdict.orchestrator import PipelineCoordinator
from verdict.core.config import AutonomyLevel, JudgmentConfig, ProcessingConfig
from verdict.core.errors import ConfigurationError
from verdict.core.statistics import ProcessingStats, compute_stats
from verdict.pydantic_models import (
    AuditCheck,
    AuditReport,
    CheckType,
    ConflictReport,
    DocumentClassification,
    DocumentType,
    ExtractionRecord,
    FieldPolicy,
    JudgmentDecision,
    JudgmentOutcome,
    ProcessingResult,
    Rejected,
    RejectionStage,
    SourceSelector,
    Success,
)

__all__ = [
    # Entry points
    "PipelineCoordinator",
    "compute_stats",
    # Configuration
    "AutonomyLevel",
    "JudgmentConfig",
    "ProcessingConfig",
    "ConfigurationError",
    # Models
    "AuditCheck",
    "AuditReport",
    "CheckType",
    "ConflictReport",
    "DocumentClassification",
    "DocumentType",
    "ExtractionRecord",
    "FieldPolicy",
    "JudgmentDecision",
    "JudgmentOutcome",
    "ProcessingResult",
    "ProcessingStats",
    "Rejected",
    "RejectionStage",
    "SourceSelector",
    "Success",
]
