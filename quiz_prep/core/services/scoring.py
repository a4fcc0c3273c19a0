"""Score computation for quiz attempts."""

from __future__ import annotations

from quiz_prep.core.errors import NoActiveAttemptError
from quiz_prep.core.models import Attempt, BankMetadata, ResultSummary, Score


def compute_score(attempt: Attempt, total_questions: int) -> Score:
    """Summarize an attempt against the number of questions in its bank.

    Works for partial attempts: unanswered questions count as skipped.
    Percentages are left unrounded and negative marking is never applied.
    """
    correct = sum(1 for a in attempt.answers if a.is_correct)
    attempted = len(attempt.answers)
    return Score(
        correct=correct,
        incorrect=attempted - correct,
        attempted=attempted,
        total_questions=total_questions,
        skipped=max(total_questions - attempted, 0),
        marks_earned=sum(a.marks_earned for a in attempt.answers),
        percentage_of_attempted=(correct / attempted * 100) if attempted > 0 else 0.0,
        percentage_of_total=(correct / total_questions * 100) if total_questions > 0 else 0.0,
        is_partial=attempted < total_questions,
    )


def build_results(attempt: Attempt | None, metadata: BankMetadata) -> ResultSummary:
    if attempt is None or not attempt.answers:
        raise NoActiveAttemptError("No quiz attempt found")

    time_taken = 0
    if attempt.ended_at is not None:
        time_taken = max(int((attempt.ended_at - attempt.started_at).total_seconds()), 0)

    return ResultSummary(
        score=compute_score(attempt, metadata.total_questions),
        time_taken_seconds=time_taken,
        total_marks=metadata.total_marks,
        review_allowed=metadata.review_after_attempt,
    )
