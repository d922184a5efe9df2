"""Prompt templates: correction feedback for retries and the judge prompt."""

from verdict.prompts.feedback_prompt import (
    build_check_feedback,
    build_correction_summary,
    build_feedback_prompt,
)
from verdict.prompts.judgment_prompt import JUDGMENT_SYSTEM_PROMPT, build_judgment_prompt

__all__ = [
    "build_check_feedback",
    "build_correction_summary",
    "build_feedback_prompt",
    "JUDGMENT_SYSTEM_PROMPT",
    "build_judgment_prompt",
]
