"""Pydantic models for the validation and judgment pipeline.

Modules:
- extraction_models: ExtractionRecord, LineItem, VatBreakdownEntry, DocumentType
- consensus_models: FieldConflict, ConflictReport, ConsensusOutcome, FieldPolicy
- audit_models: AuditCheck, AuditReport, CheckType, AuditSeverity
- retry_models: NoRetryNeeded, CorrectedOnRetry, StillFailing
- judgment_models: JudgmentDecision, JudgmentContext, LlmJudgmentResponse
- result_models: Success, Rejected, ProcessingResult
"""

from verdict.pydantic_models.extraction_models import (
    SCALAR_FIELDS,
    DocumentClassification,
    DocumentType,
    ExtractionRecord,
    LineItem,
    SourceSelector,
    SourceSpan,
    VatBreakdownEntry,
)
from verdict.pydantic_models.consensus_models import (
    ConflictReport,
    ConflictSeverity,
    ConsensusMode,
    ConsensusOutcome,
    FieldConflict,
    FieldPolicy,
)
from verdict.pydantic_models.audit_models import (
    EMPTY_AUDIT_REPORT,
    AuditCheck,
    AuditReport,
    AuditSeverity,
    AuditStatus,
    CheckType,
)
from verdict.pydantic_models.retry_models import (
    CorrectedOnRetry,
    NoRetryNeeded,
    RetryOutcome,
    StillFailing,
)
from verdict.pydantic_models.judgment_models import (
    JudgmentContext,
    JudgmentDecision,
    JudgmentOutcome,
    LlmJudgmentResponse,
)
from verdict.pydantic_models.result_models import (
    ProcessingResult,
    Rejected,
    RejectionStage,
    Success,
)

__all__ = [
    # Extraction
    "SCALAR_FIELDS",
    "DocumentClassification",
    "DocumentType",
    "ExtractionRecord",
    "LineItem",
    "SourceSelector",
    "SourceSpan",
    "VatBreakdownEntry",
    # Consensus
    "ConflictReport",
    "ConflictSeverity",
    "ConsensusMode",
    "ConsensusOutcome",
    "FieldConflict",
    "FieldPolicy",
    # Audit
    "EMPTY_AUDIT_REPORT",
    "AuditCheck",
    "AuditReport",
    "AuditSeverity",
    "AuditStatus",
    "CheckType",
    # Retry
    "CorrectedOnRetry",
    "NoRetryNeeded",
    "RetryOutcome",
    "StillFailing",
    # Judgment
    "JudgmentContext",
    "JudgmentDecision",
    "JudgmentOutcome",
    "LlmJudgmentResponse",
    # Results
    "ProcessingResult",
    "Rejected",
    "RejectionStage",
    "Success",
]
