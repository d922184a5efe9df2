"""Agent implementations for the validation pipeline.

- correction_agent: bounded self-correction loop
- judgment_agent: deterministic verdict rules with a gated LLM judge
"""

from verdict.agents.correction_agent import (
    CorrectionResult,
    corrected_fields,
    run_correction_loop,
)
from verdict.agents.judgment_agent import (
    JudgmentAgent,
    apply_llm_verdict,
    can_potentially_auto_approve,
    evaluate_criteria,
    llm_judge_allowed,
)

__all__ = [
    "CorrectionResult",
    "corrected_fields",
    "run_correction_loop",
    "JudgmentAgent",
    "apply_llm_verdict",
    "can_potentially_auto_approve",
    "evaluate_criteria",
    "llm_judge_allowed",
]
