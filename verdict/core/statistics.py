"""Batch statistics over processing results.

The "silence" goal: at least 95% of documents should be auto-approved and
never reach a human.
"""

from dataclasses import asdict, dataclass, field
from typing import Final

from verdict.pydantic_models import JudgmentOutcome, ProcessingResult, Rejected, Success

SILENCE_GOAL: Final[float] = 0.95
"""Auto-approve rate a batch must reach to meet the silence goal."""


@dataclass(frozen=True)
class ProcessingStats:
    """Aggregate outcome of a batch.

    ``rejected`` counts documents judged REJECT; documents stopped before
    judgment are counted in ``early_rejections``. Both feed
    ``rejection_rate``. Averages are taken over documents that reached
    judgment.
    """

    total_processed: int = 0
    auto_approved: int = 0
    needs_review: int = 0
    rejected: int = 0
    early_rejections: int = 0
    auto_approve_rate: float = 0.0
    review_rate: float = 0.0
    rejection_rate: float = 0.0
    average_confidence: float = 0.0
    average_retry_attempts: float = 0.0
    meets_silence_goal: bool = False

    def to_dict(self) -> dict:
        return asdict(self)


def compute_stats(results: list[ProcessingResult]) -> ProcessingStats:
    """Aggregate a batch of results. An empty batch gives all zeros."""
    total = len(results)
    if total == 0:
        return ProcessingStats()

    successes = [r for r in results if isinstance(r, Success)]
    early = sum(1 for r in results if isinstance(r, Rejected))

    auto = sum(1 for r in successes if r.judgment.outcome == JudgmentOutcome.AUTO_APPROVE)
    review = sum(1 for r in successes if r.judgment.outcome == JudgmentOutcome.NEEDS_REVIEW)
    rejected = sum(1 for r in successes if r.judgment.outcome == JudgmentOutcome.REJECT)

    if successes:
        average_confidence = sum(r.confidence for r in successes) / len(successes)
        average_retries = sum(r.retry_attempts for r in successes) / len(successes)
    else:
        average_confidence = average_retries = 0.0

    auto_rate = auto / total
    return ProcessingStats(
        total_processed=total,
        auto_approved=auto,
        needs_review=review,
        rejected=rejected,
        early_rejections=early,
        auto_approve_rate=auto_rate,
        review_rate=review / total,
        rejection_rate=(rejected + early) / total,
        average_confidence=average_confidence,
        average_retry_attempts=average_retries,
        meets_silence_goal=auto_rate >= SILENCE_GOAL,
    )


@dataclass
class BatchAccumulator:
    """Append-only record of results for one coordinator."""

    _results: list[ProcessingResult] = field(default_factory=list)

    def append(self, result: ProcessingResult):
        self._results.append(result)

    @property
    def results(self) -> tuple[ProcessingResult, ...]:
        return tuple(self._results)

    def __len__(self) -> int:
        return len(self._results)

    def stats(self) -> ProcessingStats:
        return compute_stats(list(self._results))
