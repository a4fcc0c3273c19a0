"""Post-attempt review built from the bank and an attempt's answers."""

from __future__ import annotations

from quiz_prep.core.models import (
    Attempt,
    QuestionBank,
    ReviewCounts,
    ReviewFilter,
    ReviewItem,
    ReviewReport,
)


def _answered_items(bank: QuestionBank, attempt: Attempt) -> list[ReviewItem]:
    items: list[ReviewItem] = []
    for question in bank.questions:
        answer = attempt.answer_for(question.id)
        if answer is not None:
            items.append(ReviewItem(question=question, answer=answer))
    return items


def _matches(item: ReviewItem, review_filter: ReviewFilter) -> bool:
    if review_filter is ReviewFilter.CORRECT_ONLY:
        return item.answer.is_correct
    if review_filter is ReviewFilter.INCORRECT_ONLY:
        return not item.answer.is_correct
    return True


def build_review(
    bank: QuestionBank,
    attempt: Attempt,
    review_filter: ReviewFilter = ReviewFilter.ALL,
) -> tuple[ReviewItem, ...]:
    """Answered questions in bank order, narrowed by ``review_filter``."""
    return tuple(
        item for item in _answered_items(bank, attempt) if _matches(item, review_filter)
    )


def review_counts(bank: QuestionBank, attempt: Attempt) -> ReviewCounts:
    """Counts over every answered question, whatever filter is active."""
    items = _answered_items(bank, attempt)
    correct = sum(1 for item in items if item.answer.is_correct)
    return ReviewCounts(total=len(items), correct=correct, incorrect=len(items) - correct)


def compile_review(
    bank: QuestionBank,
    attempt: Attempt,
    review_filter: ReviewFilter = ReviewFilter.ALL,
) -> ReviewReport:
    return ReviewReport(
        items=build_review(bank, attempt, review_filter),
        review_filter=review_filter,
        counts=review_counts(bank, attempt),
    )
