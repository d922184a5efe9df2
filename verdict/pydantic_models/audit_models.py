"""Pydantic schemas for the compliance audit stage.

Audit failures are data, not exceptions: each check produces an AuditCheck
and the report aggregates them. A failing check always carries a ``hint``
written so that the correction loop can paste it back into a retry prompt.
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class CheckType(Enum):
    """Closed set of deterministic checks."""
    MATH = "math"
    CHECKSUM_OGM = "checksum_ogm"
    CHECKSUM_IBAN = "checksum_iban"
    VAT_RATE = "vat_rate"
    VAT_BREAKDOWN = "vat_breakdown"
    COMPANY_EXISTS = "company_exists"
    COMPANY_NAME = "company_name"

    @property
    def display_name(self) -> str:
        return _DISPLAY_NAMES[self]


_DISPLAY_NAMES = {
    CheckType.MATH: "Mathematical Verification",
    CheckType.CHECKSUM_OGM: "OGM Payment Reference",
    CheckType.CHECKSUM_IBAN: "IBAN Bank Account",
    CheckType.VAT_RATE: "VAT Rate",
    CheckType.VAT_BREAKDOWN: "VAT Breakdown",
    CheckType.COMPANY_EXISTS: "Company Registry",
    CheckType.COMPANY_NAME: "Company Name",
}


class AuditSeverity(Enum):
    INFO = "info"
    WARNING = "warning"
    CRITICAL = "critical"


class AuditStatus(Enum):
    PASSED = "passed"
    FAILED = "failed"


class AuditCheck(BaseModel):
    """Result of one check against one field."""

    model_config = ConfigDict(frozen=True)

    check_type: CheckType
    field: str = Field(description="Record field the check is about")
    passed: bool
    severity: AuditSeverity
    message: str
    hint: str | None = Field(default=None, description="Re-extraction guidance, set on failure")
    expected: str | None = None
    actual: str | None = None

    @classmethod
    def passed_check(cls, check_type: CheckType, field: str, message: str) -> "AuditCheck":
        return cls(
            check_type=check_type,
            field=field,
            passed=True,
            severity=AuditSeverity.INFO,
            message=message,
        )

    @classmethod
    def incomplete(cls, check_type: CheckType, field: str, message: str = "") -> "AuditCheck":
        """Data needed for the check is missing. Not a failure."""
        return cls(
            check_type=check_type,
            field=field,
            passed=True,
            severity=AuditSeverity.INFO,
            message=f"incomplete: {message}" if message else "incomplete",
        )

    @classmethod
    def warning(
        cls,
        check_type: CheckType,
        field: str,
        message: str,
        hint: str,
        expected: str | None = None,
        actual: str | None = None,
    ) -> "AuditCheck":
        return cls(
            check_type=check_type,
            field=field,
            passed=False,
            severity=AuditSeverity.WARNING,
            message=message,
            hint=hint,
            expected=expected,
            actual=actual,
        )

    @classmethod
    def critical(
        cls,
        check_type: CheckType,
        field: str,
        message: str,
        hint: str,
        expected: str | None = None,
        actual: str | None = None,
    ) -> "AuditCheck":
        return cls(
            check_type=check_type,
            field=field,
            passed=False,
            severity=AuditSeverity.CRITICAL,
            message=message,
            hint=hint,
            expected=expected,
            actual=actual,
        )

    @property
    def is_critical_failure(self) -> bool:
        return not self.passed and self.severity == AuditSeverity.CRITICAL

    @property
    def is_warning(self) -> bool:
        return not self.passed and self.severity == AuditSeverity.WARNING


class AuditReport(BaseModel):
    """All checks run against one canonical record.

    The report passes iff no check is a CRITICAL failure, so an empty report
    always passes.
    """

    model_config = ConfigDict(frozen=True)

    checks: list[AuditCheck] = Field(default_factory=list)

    @classmethod
    def empty(cls) -> "AuditReport":
        return EMPTY_AUDIT_REPORT

    @property
    def critical_failures(self) -> list[AuditCheck]:
        return [c for c in self.checks if c.is_critical_failure]

    @property
    def warnings(self) -> list[AuditCheck]:
        return [c for c in self.checks if c.is_warning]

    @property
    def failures(self) -> list[AuditCheck]:
        """CRITICAL failures first, then warnings. This is what retries act on."""
        return self.critical_failures + self.warnings

    @property
    def status(self) -> AuditStatus:
        return AuditStatus.FAILED if self.critical_failures else AuditStatus.PASSED

    @property
    def passed(self) -> bool:
        return self.status == AuditStatus.PASSED

    @property
    def passed_count(self) -> int:
        return sum(1 for c in self.checks if c.passed)

    @property
    def failed_count(self) -> int:
        return sum(1 for c in self.checks if not c.passed)

    def is_failing(self, check_type: CheckType, field: str) -> bool:
        return any(
            not c.passed and c.check_type == check_type and c.field == field
            for c in self.checks
        )


EMPTY_AUDIT_REPORT = AuditReport()
