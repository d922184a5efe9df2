"""Pydantic schemas for per-document pipeline results.

A Success means the pipeline reached judgment; the judgment itself may still
be REJECT. A Rejected means the pipeline stopped before judgment.
"""

from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from verdict.pydantic_models.audit_models import AuditReport
from verdict.pydantic_models.consensus_models import ConflictReport
from verdict.pydantic_models.extraction_models import DocumentClassification, ExtractionRecord
from verdict.pydantic_models.judgment_models import JudgmentDecision
from verdict.pydantic_models.retry_models import RetryOutcome


class RejectionStage(Enum):
    CLASSIFICATION = "classification"
    EXTRACTION = "extraction"


class Success(BaseModel):
    """Pipeline ran to judgment."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["success"] = "success"
    classification: DocumentClassification
    canonical_extraction: ExtractionRecord
    conflict_report: ConflictReport | None = None
    audit_report: AuditReport
    retry_outcome: RetryOutcome | None = None
    judgment: JudgmentDecision
    notes: list[str] = Field(
        default_factory=list,
        description="Fallbacks taken along the way (single source, skipped retry, ...)",
    )

    @property
    def had_conflicts(self) -> bool:
        return self.conflict_report is not None and self.conflict_report.had_conflicts

    @property
    def confidence(self) -> float:
        return self.judgment.confidence

    @property
    def retry_attempts(self) -> int:
        return self.retry_outcome.retry_attempts if self.retry_outcome else 0


class Rejected(BaseModel):
    """Pipeline stopped before judgment."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["rejected"] = "rejected"
    reason: str
    classification: DocumentClassification | None = None
    stage: RejectionStage
    details: dict[str, Any] = Field(default_factory=dict)


ProcessingResult = Success | Rejected
