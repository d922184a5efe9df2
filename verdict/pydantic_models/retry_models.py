"""Pydantic schemas for self-correction outcomes.

Exactly one variant describes what the correction loop did for a document.
Each variant carries a literal ``kind`` tag so the union round-trips through
JSON.
"""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from verdict.pydantic_models.audit_models import AuditCheck


class NoRetryNeeded(BaseModel):
    """The first audit passed."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["no_retry_needed"] = "no_retry_needed"

    @property
    def retry_attempts(self) -> int:
        return 0

    @property
    def corrected_fields(self) -> list[str]:
        return []


class CorrectedOnRetry(BaseModel):
    """A retry produced a record with no remaining CRITICAL failures."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["corrected_on_retry"] = "corrected_on_retry"
    attempt: int = Field(ge=1, description="1-based attempt that succeeded")
    corrected_fields: list[str] = Field(default_factory=list)
    original_failures: list[AuditCheck] = Field(default_factory=list)

    @property
    def retry_attempts(self) -> int:
        return self.attempt


class StillFailing(BaseModel):
    """Retries exhausted (or aborted) with failures remaining."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["still_failing"] = "still_failing"
    attempts: int = Field(ge=0, description="Extraction calls actually made")
    remaining_failures: list[AuditCheck] = Field(default_factory=list)

    @property
    def retry_attempts(self) -> int:
        return self.attempts

    @property
    def corrected_fields(self) -> list[str]:
        return []


RetryOutcome = NoRetryNeeded | CorrectedOnRetry | StillFailing
