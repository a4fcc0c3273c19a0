import pytest

from quiz_prep.core.models import ReviewFilter
from quiz_prep.core.services.attempt_machine import AttemptStateMachine
from quiz_prep.core.services.review import build_review, compile_review, review_counts


@pytest.fixture
def answered(five_question_bank):
    machine = AttemptStateMachine(five_question_bank)
    attempt = machine.start()
    # Submitted out of bank order: Q4 wrong, Q1 right, Q2 wrong.
    attempt = machine.submit_answer(attempt, 4, 2)
    attempt = machine.submit_answer(attempt, 1, 1)
    attempt = machine.submit_answer(attempt, 2, 3)
    return attempt


def test_all_filter_returns_answered_in_bank_order(five_question_bank, answered):
    items = build_review(five_question_bank, answered, ReviewFilter.ALL)
    assert [item.question.id for item in items] == [1, 2, 4]


def test_correct_and_incorrect_partition_all(five_question_bank, answered):
    everything = {i.question.id for i in build_review(five_question_bank, answered)}
    correct = {i.question.id for i in build_review(five_question_bank, answered, ReviewFilter.CORRECT_ONLY)}
    incorrect = {i.question.id for i in build_review(five_question_bank, answered, ReviewFilter.INCORRECT_ONLY)}
    assert correct == {1}
    assert incorrect == {2, 4}
    assert correct | incorrect == everything
    assert not correct & incorrect


def test_unanswered_questions_never_appear(five_question_bank, clock):
    machine = AttemptStateMachine(five_question_bank, clock=clock)
    assert build_review(five_question_bank, machine.start()) == ()


def test_counts_ignore_active_filter(five_question_bank, answered):
    report = compile_review(five_question_bank, answered, ReviewFilter.CORRECT_ONLY)
    assert len(report.items) == 1
    assert report.review_filter is ReviewFilter.CORRECT_ONLY
    assert report.counts == review_counts(five_question_bank, answered)
    assert (report.counts.total, report.counts.correct, report.counts.incorrect) == (3, 1, 2)


def test_review_is_repeatable_and_leaves_attempt_untouched(five_question_bank, answered):
    before = answered
    first = build_review(five_question_bank, answered, ReviewFilter.INCORRECT_ONLY)
    second = build_review(five_question_bank, answered, ReviewFilter.INCORRECT_ONLY)
    assert first == second
    assert answered == before
