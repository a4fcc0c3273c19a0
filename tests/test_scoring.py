from datetime import datetime, timedelta, timezone

import pytest

from quiz_prep.core.errors import NoActiveAttemptError
from quiz_prep.core.models import Answer, Attempt
from quiz_prep.core.services.attempt_machine import AttemptStateMachine
from quiz_prep.core.services.scoring import build_results, compute_score

STARTED = datetime(2024, 1, 1, tzinfo=timezone.utc)


def _attempt(*answers, ended_at=None):
    return Attempt(
        session_id=-1,
        started_at=STARTED,
        ended_at=ended_at,
        answers=tuple(answers),
        completed=ended_at is not None,
    )


def test_partial_attempt_scenario(five_question_bank, clock):
    machine = AttemptStateMachine(five_question_bank, clock=clock)
    attempt = machine.start()
    attempt = machine.submit_answer(attempt, 1, 1)
    attempt = machine.submit_answer(attempt, 2, 2)
    attempt = machine.submit_answer(attempt, 3, 1)
    attempt = machine.complete(attempt)

    score = compute_score(attempt, len(five_question_bank))

    assert score.correct == 2
    assert score.incorrect == 1
    assert score.attempted == 3
    assert score.skipped == 2
    assert score.marks_earned == 3
    assert score.percentage_of_attempted == pytest.approx(66.67, abs=0.01)
    assert score.percentage_of_total == pytest.approx(40.0)
    assert score.is_partial is True


def test_full_attempt_is_not_partial():
    attempt = _attempt(Answer(1, 1, True, 2.5), Answer(2, 3, True, 1.5))
    score = compute_score(attempt, 2)
    assert score.is_partial is False
    assert score.skipped == 0
    assert score.marks_earned == 4.0
    assert score.percentage_of_total == 100.0


def test_empty_attempt_has_zero_percentages():
    score = compute_score(_attempt(), 0)
    assert score.percentage_of_attempted == 0.0
    assert score.percentage_of_total == 0.0
    assert score.is_partial is False


def test_skipped_never_negative():
    attempt = _attempt(Answer(1, 1, True, 1), Answer(2, 1, False, 0), Answer(3, 1, True, 1))
    score = compute_score(attempt, 2)
    assert score.skipped == 0
    assert score.attempted == 3


def test_compute_score_is_idempotent():
    attempt = _attempt(Answer(1, 1, True, 1), Answer(2, 2, False, 0))
    assert compute_score(attempt, 5) == compute_score(attempt, 5)


def test_percentages_are_not_rounded():
    attempt = _attempt(Answer(1, 1, True, 1), Answer(2, 2, False, 0), Answer(3, 2, False, 0))
    percentage = compute_score(attempt, 3).percentage_of_attempted
    assert percentage == 1 / 3 * 100
    assert percentage != round(percentage, 2)


def test_build_results_reports_time_and_metadata(five_question_bank):
    attempt = _attempt(Answer(1, 1, True, 1), ended_at=STARTED + timedelta(seconds=95))
    results = build_results(attempt, five_question_bank.metadata())
    assert results.time_taken_seconds == 95
    assert results.total_marks == 10
    assert results.review_allowed is True
    assert results.score.total_questions == 5
    assert results.score.skipped == 4


def test_build_results_in_progress_has_zero_time(five_question_bank):
    results = build_results(_attempt(Answer(1, 1, True, 1)), five_question_bank.metadata())
    assert results.time_taken_seconds == 0


def test_build_results_requires_answers(five_question_bank):
    with pytest.raises(NoActiveAttemptError):
        build_results(None, five_question_bank.metadata())
    with pytest.raises(NoActiveAttemptError):
        build_results(_attempt(), five_question_bank.metadata())
