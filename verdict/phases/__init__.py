"""Phase runners for the validation pipeline.

Each phase is encapsulated in its own runner class with:
- Clear inputs and outputs
- Recoverable failures recorded, not raised
- Logging
"""

from verdict.phases.phase_base import (
    PhaseRunner,
    PhaseContext,
    DocumentResources,
    ProcessingState,
)
from verdict.phases.extraction_phase import ExtractionPhase, ExtractionResult
from verdict.phases.audit_phase import AuditPhase
from verdict.phases.correction_phase import CorrectionPhase
from verdict.phases.judgment_phase import JudgmentPhase

__all__ = [
    "PhaseRunner",
    "PhaseContext",
    "DocumentResources",
    "ProcessingState",
    "ExtractionPhase",
    "ExtractionResult",
    "AuditPhase",
    "CorrectionPhase",
    "JudgmentPhase",
]
