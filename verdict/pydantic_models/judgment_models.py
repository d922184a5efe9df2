"""Pydantic schemas for the judgment stage."""

from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from verdict.pydantic_models.audit_models import AuditReport, EMPTY_AUDIT_REPORT
from verdict.pydantic_models.consensus_models import ConflictReport
from verdict.pydantic_models.extraction_models import DocumentType, ExtractionRecord
from verdict.pydantic_models.retry_models import RetryOutcome


class JudgmentOutcome(Enum):
    AUTO_APPROVE = "auto_approve"
    NEEDS_REVIEW = "needs_review"
    REJECT = "reject"


class JudgmentContext(BaseModel):
    """Everything the judgment rules look at for one document."""

    model_config = ConfigDict(frozen=True)

    document_type: DocumentType
    record: ExtractionRecord
    extraction_confidence: float = Field(ge=0.0, le=1.0)
    conflict_report: ConflictReport | None = None
    audit_report: AuditReport = EMPTY_AUDIT_REPORT
    retry_outcome: RetryOutcome | None = None

    @property
    def retry_attempts(self) -> int:
        return self.retry_outcome.retry_attempts if self.retry_outcome else 0

    @property
    def corrected_fields(self) -> list[str]:
        return list(self.retry_outcome.corrected_fields) if self.retry_outcome else []

    @property
    def has_model_consensus(self) -> bool:
        return self.conflict_report is None or not self.conflict_report.had_conflicts


class JudgmentDecision(BaseModel):
    """Terminal verdict for one document.

    Attributes:
        outcome: AUTO_APPROVE, NEEDS_REVIEW or REJECT
        confidence: Confidence carried into the decision
        reasoning: One human-readable sentence
        issues_for_user: What a reviewer should look at (empty on approve)
        all_critical_checks_passed: No CRITICAL audit failures remained
        has_model_consensus: The two sources agreed on every field
        retry_attempts: Correction attempts made
        corrected_fields: Fields fixed by a retry
        decided_by: "rules" or "llm"
    """

    model_config = ConfigDict(frozen=True)

    outcome: JudgmentOutcome
    confidence: float = Field(ge=0.0, le=1.0)
    reasoning: str
    issues_for_user: list[str] = Field(default_factory=list)
    all_critical_checks_passed: bool = True
    has_model_consensus: bool = True
    retry_attempts: int = 0
    corrected_fields: list[str] = Field(default_factory=list)
    decided_by: Literal["rules", "llm"] = "rules"

    @property
    def is_auto_approved(self) -> bool:
        return self.outcome == JudgmentOutcome.AUTO_APPROVE

    @property
    def needs_review(self) -> bool:
        return self.outcome == JudgmentOutcome.NEEDS_REVIEW

    @property
    def is_rejected(self) -> bool:
        return self.outcome == JudgmentOutcome.REJECT


class LlmJudgmentResponse(BaseModel):
    """Structured reply expected from the probabilistic judge."""

    decision: Literal["AUTO_APPROVE", "NEEDS_REVIEW", "REJECT"] = Field(
        description="Final verdict for the document"
    )
    confidence: float = Field(
        default=0.8,
        ge=0.0,
        le=1.0,
        description="How sure the judge is, 0.0 to 1.0",
    )
    reasoning: str = Field(default="", description="Brief explanation (1-2 sentences)")
    issues_for_user: list[str] = Field(
        default_factory=list,
        description="Specific issues a human reviewer should check",
    )
