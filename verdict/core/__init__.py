"""Core utilities for the validation pipeline."""

from verdict.core.config import (
    LLM_PROVIDER,
    API_KEY_ENV_VAR,
    API_KEY_ENV_VARS,
    DEFAULT_MODELS,
    SMART_MODEL,
    FAST_MODEL,
    ALL_CHECKS,
    EXTERNAL_CHECKS,
    AutonomyLevel,
    JudgmentConfig,
    ProcessingConfig,
    LLMConfig,
    MathConfig,
    VatConfig,
    ChecksumConfig,
    CompanyConfig,
    ConsensusConfig,
    ClassificationConfig,
    CorrectionConfig,
)
from verdict.core.errors import (
    ConfigurationError,
    ProviderError,
    RegistryUnavailable,
    ErrorSeverity,
    ErrorCategory,
    PipelineIssue,
    PipelineErrors,
    provider_error,
    timeout_error,
    registry_error,
    judge_error,
    classification_error,
)
from verdict.core.pipeline_logger import PipelineLogger, get_logger, reset_logger
from verdict.core.llm_client import LLMClient
from verdict.core.providers import (
    CompanyLookup,
    CompanyRegistry,
    DocumentClassifier,
    ExtractionProvider,
)
from verdict.core.checksums import (
    IbanResult,
    IbanStatus,
    OgmResult,
    OgmStatus,
    is_valid_belgian_vat,
    validate_iban,
    validate_ogm,
)
from verdict.core.consensus import ConsensusEngine, resolve_conflicts, values_agree
from verdict.core.auditor import ComplianceAuditor, valid_vat_rates
from verdict.core.routing import DocumentRoute, route_for, missing_essential_fields
from verdict.core.statistics import BatchAccumulator, ProcessingStats, compute_stats

__all__ = [
    # Config
    "LLM_PROVIDER",
    "API_KEY_ENV_VAR",
    "API_KEY_ENV_VARS",
    "DEFAULT_MODELS",
    "SMART_MODEL",
    "FAST_MODEL",
    "ALL_CHECKS",
    "EXTERNAL_CHECKS",
    "AutonomyLevel",
    "JudgmentConfig",
    "ProcessingConfig",
    "LLMConfig",
    "MathConfig",
    "VatConfig",
    "ChecksumConfig",
    "CompanyConfig",
    "ConsensusConfig",
    "ClassificationConfig",
    "CorrectionConfig",
    # Errors
    "ConfigurationError",
    "ProviderError",
    "RegistryUnavailable",
    "ErrorSeverity",
    "ErrorCategory",
    "PipelineIssue",
    "PipelineErrors",
    "provider_error",
    "timeout_error",
    "registry_error",
    "judge_error",
    "classification_error",
    # Logging
    "PipelineLogger",
    "get_logger",
    "reset_logger",
    # LLM
    "LLMClient",
    # Collaborators
    "CompanyLookup",
    "CompanyRegistry",
    "DocumentClassifier",
    "ExtractionProvider",
    # Checks
    "IbanResult",
    "IbanStatus",
    "OgmResult",
    "OgmStatus",
    "is_valid_belgian_vat",
    "validate_iban",
    "validate_ogm",
    "ConsensusEngine",
    "resolve_conflicts",
    "values_agree",
    "ComplianceAuditor",
    "valid_vat_rates",
    "DocumentRoute",
    "route_for",
    "missing_essential_fields",
    # Statistics
    "BatchAccumulator",
    "ProcessingStats",
    "compute_stats",
]
