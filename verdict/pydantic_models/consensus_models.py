"""Pydantic schemas for the consensus stage.

These describe how two extraction sources were reconciled: which fields
disagreed, how each disagreement was resolved, and the merged record.
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from verdict.pydantic_models.extraction_models import ExtractionRecord, SourceSelector


class FieldPolicy(Enum):
    """How to pick a value when the two sources disagree on a field."""
    PREFER_SOURCE_A = "prefer_source_a"
    PREFER_SOURCE_B = "prefer_source_b"
    REQUIRE_MATCH = "require_match"   # Disagreement nulls the field


class ConflictSeverity(Enum):
    INFO = "info"
    WARNING = "warning"
    CRITICAL = "critical"


class ConsensusMode(Enum):
    """How the canonical record came about."""
    NO_DATA = "no_data"               # Neither source produced a record
    SINGLE_SOURCE = "single_source"   # One source failed or ensemble disabled
    UNANIMOUS = "unanimous"           # Both sources, no disagreement
    WITH_CONFLICTS = "with_conflicts"


class FieldConflict(BaseModel):
    """A disagreement between the two sources on one field."""

    model_config = ConfigDict(frozen=True)

    field: str = Field(description="Record field name")
    value_from_source_a: str | None = Field(description="Raw value from the fast source")
    value_from_source_b: str | None = Field(description="Raw value from the expert source")
    chosen_value: str | None = Field(description="Value written to the canonical record")
    chosen_source: SourceSelector | None = Field(
        description="Source the chosen value came from, None when the field was nulled"
    )
    severity: ConflictSeverity

    @property
    def is_critical(self) -> bool:
        return self.severity == ConflictSeverity.CRITICAL

    def describe(self) -> str:
        return (
            f"{self.field}: '{self.value_from_source_a}' vs '{self.value_from_source_b}'"
            f" -> '{self.chosen_value}'"
        )


class ConflictReport(BaseModel):
    """Ordered conflicts for one extraction round. Empty means full agreement."""

    model_config = ConfigDict(frozen=True)

    conflicts: list[FieldConflict] = Field(default_factory=list)

    @property
    def had_conflicts(self) -> bool:
        return bool(self.conflicts)

    @property
    def critical_conflicts(self) -> list[FieldConflict]:
        return [c for c in self.conflicts if c.is_critical]

    @property
    def has_critical_conflicts(self) -> bool:
        return any(c.is_critical for c in self.conflicts)

    def by_field(self, field_name: str) -> FieldConflict | None:
        for conflict in self.conflicts:
            if conflict.field == field_name:
                return conflict
        return None


class ConsensusOutcome(BaseModel):
    """Canonical record plus the report that produced it."""

    model_config = ConfigDict(frozen=True)

    record: ExtractionRecord | None
    report: ConflictReport = Field(default_factory=ConflictReport)
    mode: ConsensusMode
    source: SourceSelector | None = Field(
        default=None,
        description="Surviving source in SINGLE_SOURCE mode",
    )
    note: str | None = Field(default=None, description="Fallback explanation, if any")
