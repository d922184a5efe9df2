"""Centralized configuration for the validation and judgment pipeline.

Two kinds of configuration live here:
- Constants (tolerances, valid VAT rates, checksum tables, model names),
  grouped in constant-holder classes with one docstring per value.
- Runtime configuration objects (JudgmentConfig, ProcessingConfig) that are
  validated when they are built. An invalid configuration raises
  ConfigurationError with every problem listed, so a pipeline never starts
  with settings it cannot honour.
"""

import os
from dataclasses import dataclass, field, replace
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Final

from verdict.core.errors import ConfigurationError
from verdict.pydantic_models.audit_models import CheckType
from verdict.pydantic_models.consensus_models import FieldPolicy


# =============================================================================
# LLM Provider Configuration
# =============================================================================
#
# The probabilistic judge is the only component that talks to an LLM.
# Switch providers with the LLM_PROVIDER environment variable:
#   - "openrouter" (default): Uses OpenRouter API gateway
#   - "azure": Uses Azure OpenAI Service (AZURE_API_KEY, AZURE_API_BASE,
#     AZURE_API_VERSION, AZURE_DEPLOYMENT_GPT_4O, AZURE_DEPLOYMENT_GPT_4O_MINI)
#
# =============================================================================

LLM_PROVIDER: Final[str] = os.environ.get("LLM_PROVIDER", "openrouter")
"""LLM provider to use. Set via LLM_PROVIDER env var."""

API_KEY_ENV_VARS: Final[dict[str, str]] = {
    "openrouter": "OPENROUTER_API_KEY",
    "azure": "AZURE_API_KEY",
}

API_KEY_ENV_VAR: Final[str] = API_KEY_ENV_VARS.get(LLM_PROVIDER, "OPENROUTER_API_KEY")
"""Environment variable name for the LLM API key (provider-dependent)."""


def _get_model_name(base_model: str) -> str:
    """Convert a base model name to provider-specific format.

    Args:
        base_model: Base model name (e.g., "gpt-4o", "gpt-4o-mini")

    Returns:
        Provider-specific model identifier.
    """
    if LLM_PROVIDER == "azure":
        deployment_env = f"AZURE_DEPLOYMENT_{base_model.upper().replace('-', '_')}"
        return f"azure/{os.environ.get(deployment_env, base_model)}"
    return f"openrouter/openai/{base_model}"


SMART_MODEL: Final[str] = _get_model_name("gpt-4o")
"""Stronger model, used as the router fallback for the judge."""

FAST_MODEL: Final[str] = _get_model_name("gpt-4o-mini")
"""Cheap model used for the judge by default.

The judge only sees a short summary of the audit, never the document, so a
small model is enough.
"""

DEFAULT_MODELS: Final[dict[str, str]] = {
    "judge": FAST_MODEL,
}


class LLMConfig:
    """Default parameters for LLM API calls."""

    TEMPERATURE: Final[float] = 0.0
    """Sampling temperature. 0.0 keeps verdicts reproducible."""

    MAX_VALIDATION_RETRIES: Final[int] = 2
    """How many times the structured-output layer re-asks on invalid JSON."""


# =============================================================================
# Check Constants
# =============================================================================


class MathConfig:
    """Tolerances for arithmetic checks."""

    TOLERANCE: Final[Decimal] = Decimal("0.02")
    """Absolute tolerance for subtotal + VAT = total, in currency units.

    Two cents absorbs per-line rounding on invoices with many lines while
    still catching any misread digit.
    """

    LINE_ITEM_TOLERANCE: Final[Decimal] = Decimal("0.05")
    """Tolerance for quantity x unit price = line total.

    Looser than TOLERANCE because unit prices are often printed with more
    precision than line totals.
    """


class VatConfig:
    """Belgian VAT rules."""

    VALID_RATES: Final[tuple[Decimal, ...]] = (
        Decimal("0"),
        Decimal("6"),
        Decimal("12"),
        Decimal("21"),
    )
    """Valid Belgian VAT rates, in percent."""

    HORECA_RATE: Final[Decimal] = Decimal("12")
    """Rate extended to the Horeca sector by the 2026 reform."""

    HORECA_REFORM_DATE: Final[date] = date(2026, 3, 1)
    """Horeca documents may use HORECA_RATE only from this date on."""

    HORECA_KEYWORDS: Final[tuple[str, ...]] = (
        "horeca",
        "restaurant",
        "hotel",
        "catering",
        "takeaway",
        "take-away",
        "cafe",
        "café",
    )
    """Category keywords (case-insensitive) that mark a document as Horeca."""

    IMPLIED_RATE_TOLERANCE: Final[Decimal] = Decimal("0.5")
    """Max distance (percentage points) between the rate implied by
    vat_amount / subtotal and a valid rate before it counts as that rate."""


class ChecksumConfig:
    """Payment reference and bank account checks."""

    OCR_CONFUSABLES: Final[dict[str, str]] = {
        "O": "0",
        "I": "1",
        "B": "8",
        "S": "5",
        "G": "6",
    }
    """Letter -> digit pairs that OCR commonly swaps."""

    OCR_PAIRS_TEXT: Final[str] = "0↔O, 1↔I, 8↔B, 5↔S, 6↔G"
    """OCR_CONFUSABLES rendered for hints and feedback."""

    OGM_LENGTH: Final[int] = 12
    """10-digit base plus 2 check digits."""

    OGM_MAX_OCR_LETTERS: Final[int] = 4
    """A 12-character reference with more confusable letters than this is
    treated as free text, not as a misread OGM."""

    OGM_SEPARATORS: Final[str] = "+*/ .-"
    """Characters stripped before parsing an OGM (+++123/4567/89002+++)."""

    BELGIAN_IBAN_LENGTH: Final[int] = 16
    IBAN_MIN_LENGTH: Final[int] = 15
    IBAN_MAX_LENGTH: Final[int] = 34


class CompanyConfig:
    """Registry-backed company checks."""

    NAME_MATCH_THRESHOLD: Final[float] = 85.0
    """Minimum rapidfuzz token_sort_ratio (0-100) between extracted and
    official company names. Below this the name check warns."""

    BELGIAN_VAT_PATTERN: Final[str] = r"^BE[01]\d{9}$"
    """Belgian VAT number: BE + 10 digits, first digit 0 or 1."""


class ConsensusConfig:
    """Ensemble merge parameters."""

    CRITICAL_FIELDS: Final[frozenset[str]] = frozenset({
        "total_amount",
        "subtotal",
        "vat_amount",
        "iban",
        "payment_reference",
        "supplier_vat_number",
        "customer_vat_number",
    })
    """Disagreement on any of these fields is a CRITICAL conflict."""

    EXPERT_WEIGHT: Final[int] = 2
    """Weight of source B (expert) in the merged confidence."""

    CONFLICT_PENALTY: Final[float] = 0.05
    """Confidence removed per conflict."""

    MAX_CONFLICT_PENALTY: Final[float] = 0.25
    """Cap on the total conflict penalty."""


class ClassificationConfig:
    MIN_CONFIDENCE: Final[float] = 0.3
    """Documents classified below this confidence are rejected early."""


class CorrectionConfig:
    DEFAULT_MAX_RETRIES: Final[int] = 2
    AGGRESSIVE_MAX_RETRIES: Final[int] = 3


class AutonomyLevel(Enum):
    """How much the pipeline may decide on its own.

    ASSISTED is the lowest tier and never consults the probabilistic judge.
    """
    ASSISTED = "assisted"
    AUTONOMOUS = "autonomous"
    SOVEREIGN = "sovereign"


ALL_CHECKS: Final[frozenset[CheckType]] = frozenset(CheckType)

EXTERNAL_CHECKS: Final[frozenset[CheckType]] = frozenset({
    CheckType.COMPANY_EXISTS,
    CheckType.COMPANY_NAME,
})
"""Checks that need the company registry."""


# =============================================================================
# Runtime Configuration
# =============================================================================


def _validate_unit_interval(name: str, value: float, issues: list[str]) -> None:
    if not 0.0 <= value <= 1.0:
        issues.append(f"{name} must be between 0.0 and 1.0, got {value}")


@dataclass(frozen=True)
class JudgmentConfig:
    """Thresholds for the deterministic judgment rules.

    Confidence >= approve_threshold may auto-approve; confidence below
    review_threshold is rejected; in between goes to review.
    """

    approve_threshold: float = 0.80
    review_threshold: float = 0.50
    require_consensus_for_auto_approve: bool = True
    auto_approve_with_warnings: bool = False
    max_warnings_for_auto_approve: int = 3

    def __post_init__(self):
        issues = self.validation_issues()
        if issues:
            raise ConfigurationError(issues)

    def validation_issues(self) -> list[str]:
        issues: list[str] = []
        _validate_unit_interval("approve_threshold", self.approve_threshold, issues)
        _validate_unit_interval("review_threshold", self.review_threshold, issues)
        if self.review_threshold > self.approve_threshold:
            issues.append(
                f"review_threshold ({self.review_threshold}) must not exceed "
                f"approve_threshold ({self.approve_threshold})"
            )
        if self.max_warnings_for_auto_approve < 0:
            issues.append(
                f"max_warnings_for_auto_approve must be >= 0, got {self.max_warnings_for_auto_approve}"
            )
        return issues

    @classmethod
    def default(cls) -> "JudgmentConfig":
        return cls()

    @classmethod
    def strict(cls) -> "JudgmentConfig":
        return cls(approve_threshold=0.90, review_threshold=0.60, max_warnings_for_auto_approve=1)

    @classmethod
    def lenient(cls) -> "JudgmentConfig":
        return cls(
            approve_threshold=0.70,
            review_threshold=0.40,
            require_consensus_for_auto_approve=False,
            max_warnings_for_auto_approve=5,
        )


@dataclass(frozen=True)
class ProcessingConfig:
    """Settings for one pipeline run.

    Build one directly, or start from a named profile:
        config = ProcessingConfig.profile("thorough")
        config = ProcessingConfig.offline()

    Attributes:
        profile_name: Label used in logs and results.
        ensemble_enabled: Run both extraction sources concurrently.
        self_correction_enabled: Allow the correction loop to re-extract.
        max_retries: Upper bound on correction attempts.
        external_validation_enabled: Allow registry lookups.
        provenance_enabled: Ask sources for per-field source spans.
        enabled_checks: Audit checks allowed to run (routing narrows further).
        require_vat_breakdown: Missing breakdown is a warning.
        judgment: Thresholds for the judgment rules.
        autonomy: Gate for the probabilistic judge.
        use_llm_judge: Consult the judge on NEEDS_REVIEW verdicts.
        judge_model: Model the judge runs on.
        min_classification_confidence: Early-rejection threshold.
        timeout_seconds: Deadline for the extraction and retry calls of one
            document. None means no deadline.
        field_policies: Per-field conflict policy, defaults to PREFER_SOURCE_B.
    """

    profile_name: str = "default"
    ensemble_enabled: bool = True
    self_correction_enabled: bool = True
    max_retries: int = CorrectionConfig.DEFAULT_MAX_RETRIES
    external_validation_enabled: bool = True
    provenance_enabled: bool = False
    enabled_checks: frozenset[CheckType] = ALL_CHECKS
    require_vat_breakdown: bool = False
    judgment: JudgmentConfig = field(default_factory=JudgmentConfig.default)
    autonomy: AutonomyLevel = AutonomyLevel.AUTONOMOUS
    use_llm_judge: bool = False
    judge_model: str = DEFAULT_MODELS["judge"]
    min_classification_confidence: float = ClassificationConfig.MIN_CONFIDENCE
    timeout_seconds: float | None = None
    field_policies: dict[str, FieldPolicy] = field(default_factory=dict)

    def __post_init__(self):
        issues = self.validation_issues()
        if issues:
            raise ConfigurationError(issues)

    def validation_issues(self) -> list[str]:
        issues: list[str] = []
        if not self.enabled_checks:
            issues.append("enabled_checks must contain at least one check")
        if self.max_retries < 0:
            issues.append(f"max_retries must be >= 0, got {self.max_retries}")
        _validate_unit_interval(
            "min_classification_confidence", self.min_classification_confidence, issues
        )
        if self.timeout_seconds is not None and self.timeout_seconds <= 0:
            issues.append(f"timeout_seconds must be positive, got {self.timeout_seconds}")
        return issues

    @property
    def retries_enabled(self) -> bool:
        return self.self_correction_enabled and self.max_retries > 0

    def with_overrides(self, **changes) -> "ProcessingConfig":
        """Copy with some fields changed. The copy is validated again."""
        return replace(self, **changes)

    # -- Named profiles --

    @classmethod
    def default(cls) -> "ProcessingConfig":
        return cls()

    @classmethod
    def fast(cls) -> "ProcessingConfig":
        """Single source, no retries, lenient judgment."""
        return cls(
            profile_name="fast",
            ensemble_enabled=False,
            self_correction_enabled=False,
            max_retries=0,
            judgment=JudgmentConfig.lenient(),
        )

    @classmethod
    def thorough(cls) -> "ProcessingConfig":
        """Full ensemble, aggressive retries, strict judgment."""
        return cls(
            profile_name="thorough",
            max_retries=CorrectionConfig.AGGRESSIVE_MAX_RETRIES,
            require_vat_breakdown=True,
            judgment=JudgmentConfig.strict(),
        )

    @classmethod
    def offline(cls) -> "ProcessingConfig":
        """No registry lookups."""
        return cls(
            profile_name="offline",
            external_validation_enabled=False,
            enabled_checks=ALL_CHECKS - EXTERNAL_CHECKS,
        )

    @classmethod
    def development(cls) -> "ProcessingConfig":
        """Single source with provenance, for debugging extractions."""
        return cls(
            profile_name="development",
            ensemble_enabled=False,
            provenance_enabled=True,
        )

    @classmethod
    def profile(cls, name: str) -> "ProcessingConfig":
        """Look up a named profile (case-insensitive).

        Raises:
            ConfigurationError: If the name is not a known profile.
        """
        factories = {
            "default": cls.default,
            "fast": cls.fast,
            "thorough": cls.thorough,
            "offline": cls.offline,
            "development": cls.development,
        }
        factory = factories.get(name.strip().lower())
        if factory is None:
            raise ConfigurationError(
                [f"unknown profile '{name}', expected one of: {', '.join(factories)}"]
            )
        return factory()
