"""Structured error types for the validation pipeline.

Provides:
- Exceptions for the few conditions that do stop work
  (bad configuration, provider and registry failures raised by collaborators)
- PipelineIssue records for failures the pipeline recovers from. These never
  propagate out of ``process()``; they end up as notes on the result.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ConfigurationError(ValueError):
    """Raised when a configuration object is invalid.

    Attributes:
        issues: Every problem found, one sentence each.
    """

    def __init__(self, issues: list[str]):
        self.issues = list(issues)
        super().__init__("Invalid configuration: " + "; ".join(self.issues))


class ProviderError(Exception):
    """An extraction provider could not produce a record."""


class RegistryUnavailable(Exception):
    """The company registry could not be reached."""


class ErrorSeverity(Enum):
    """Severity levels for recovered pipeline issues."""
    WARNING = "warning"   # Degraded, result still trustworthy
    ERROR = "error"       # A stage was skipped or fell back


class ErrorCategory(Enum):
    """Categories of recovered pipeline issues."""
    PROVIDER = "provider"               # Extraction provider failed
    TIMEOUT = "timeout"                 # Deadline hit during extraction/retry
    REGISTRY = "registry"               # Company registry unreachable
    JUDGE = "judge"                     # Probabilistic judge failed
    CLASSIFICATION = "classification"   # Classifier failed
    UNKNOWN = "unknown"


@dataclass
class PipelineIssue:
    """A failure the pipeline recovered from, with context."""

    category: ErrorCategory
    severity: ErrorSeverity
    message: str
    phase: str
    source: str | None = None   # "fast", "expert", "registry", ...
    original_error: Exception | None = None
    context: dict[str, Any] = field(default_factory=dict)

    def __str__(self) -> str:
        parts = [f"[{self.severity.value.upper()}] {self.category.value}: {self.message}"]
        if self.source:
            parts.append(f"source={self.source}")
        if self.phase:
            parts.append(f"phase={self.phase}")
        return " | ".join(parts)

    def to_note(self) -> str:
        """Short note for the processing result."""
        return f"{self.phase}: {self.message}"

    def to_dict(self) -> dict:
        return {
            "category": self.category.value,
            "severity": self.severity.value,
            "message": self.message,
            "phase": self.phase,
            "source": self.source,
            "error": f"{type(self.original_error).__name__}: {self.original_error}"
            if self.original_error else None,
            "context": self.context,
        }


@dataclass
class PipelineErrors:
    """Issues accumulated while processing one document."""

    errors: list[PipelineIssue] = field(default_factory=list)
    warnings: list[PipelineIssue] = field(default_factory=list)

    def add(self, issue: PipelineIssue):
        if issue.severity == ErrorSeverity.WARNING:
            self.warnings.append(issue)
        else:
            self.errors.append(issue)

    @property
    def error_count(self) -> int:
        return len(self.errors)

    @property
    def warning_count(self) -> int:
        return len(self.warnings)

    def notes(self) -> list[str]:
        """All issues as result notes, errors first."""
        return [issue.to_note() for issue in self.errors + self.warnings]

    def summary(self) -> dict:
        by_category: dict[str, int] = {}
        for issue in self.errors + self.warnings:
            cat = issue.category.value
            by_category[cat] = by_category.get(cat, 0) + 1

        return {
            "total_errors": self.error_count,
            "total_warnings": self.warning_count,
            "issues_by_category": by_category,
        }

    def to_dict(self) -> dict:
        return {
            "errors": [e.to_dict() for e in self.errors],
            "warnings": [w.to_dict() for w in self.warnings],
            "summary": self.summary(),
        }


# Factory functions for common issues

def provider_error(
    message: str,
    phase: str,
    source: str | None = None,
    original: Exception | None = None,
) -> PipelineIssue:
    """Create an extraction provider issue."""
    return PipelineIssue(
        category=ErrorCategory.PROVIDER,
        severity=ErrorSeverity.ERROR,
        message=message,
        phase=phase,
        source=source,
        original_error=original,
    )


def timeout_error(
    phase: str,
    source: str | None = None,
    timeout_seconds: float | None = None,
) -> PipelineIssue:
    """Create a timeout issue."""
    return PipelineIssue(
        category=ErrorCategory.TIMEOUT,
        severity=ErrorSeverity.ERROR,
        message=f"Operation timed out after {timeout_seconds}s" if timeout_seconds else "Operation timed out",
        phase=phase,
        source=source,
    )


def registry_error(
    message: str,
    vat_number: str | None = None,
    original: Exception | None = None,
) -> PipelineIssue:
    """Create a registry issue. Registry outages only degrade the audit."""
    return PipelineIssue(
        category=ErrorCategory.REGISTRY,
        severity=ErrorSeverity.WARNING,
        message=message,
        phase="audit",
        source="registry",
        original_error=original,
        context={"vat_number": vat_number} if vat_number else {},
    )


def judge_error(
    message: str,
    original: Exception | None = None,
) -> PipelineIssue:
    """Create a probabilistic judge issue."""
    return PipelineIssue(
        category=ErrorCategory.JUDGE,
        severity=ErrorSeverity.WARNING,
        message=message,
        phase="judgment",
        source="judge",
        original_error=original,
    )


def classification_error(
    message: str,
    original: Exception | None = None,
) -> PipelineIssue:
    """Create a classifier issue."""
    return PipelineIssue(
        category=ErrorCategory.CLASSIFICATION,
        severity=ErrorSeverity.ERROR,
        message=message,
        phase="classification",
        original_error=original,
    )
