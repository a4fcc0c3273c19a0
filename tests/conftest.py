from datetime import datetime, timedelta, timezone

import pytest

from quiz_prep.core.models import Question, QuestionBank, SourceQuiz


def build_question(question_id, marks=1.0, correct_option=1, options=("A", "B", "C", "D"), statement=None):
    return Question(
        id=question_id,
        statement=statement or f"Question {question_id}",
        option_slots=tuple(options),
        marks=marks,
        correct_option=correct_option,
    )


class StepClock:
    """Deterministic clock that moves forward one minute per call."""

    def __init__(self):
        self.now = datetime(2024, 1, 1, 9, 0, tzinfo=timezone.utc)

    def __call__(self):
        current = self.now
        self.now += timedelta(minutes=1)
        return current


@pytest.fixture
def make_question():
    return build_question


@pytest.fixture
def clock():
    return StepClock()


@pytest.fixture
def five_question_bank():
    """Five questions worth [1, 1, 2, 2, 4] marks; option 1 is always correct."""
    questions = [build_question(i, marks=m) for i, m in zip(range(1, 6), [1, 1, 2, 2, 4])]
    source = SourceQuiz(
        id=7,
        title="Sample",
        total_marks=10,
        duration_minutes=15,
        review_after_attempt=True,
    )
    return QuestionBank.from_sources([(source, questions)])


@pytest.fixture
def two_quiz_bank():
    first = SourceQuiz(id=1, title="First", total_marks=2, duration_minutes=5)
    second = SourceQuiz(id=2, title="Second", total_marks=3, duration_minutes=10, negative_marks=1)
    return QuestionBank.from_sources(
        [
            (first, [build_question(10, statement="What is entropy?"), build_question(11)]),
            (second, [build_question(20, marks=3, correct_option=2, statement="Define ENTROPY change")]),
        ]
    )


SAMPLE_QUIZ_JSON = """
{
  "id": 3,
  "title": "Physics",
  "totalMarks": 3,
  "duration": 10,
  "reviewAfterAttempt": true,
  "negativeMarks": 0,
  "negative": false,
  "questions": [
    {"id": 1, "statement": "Unit of force?", "option1": "Newton", "option2": "Joule",
     "option3": "Watt", "option4": "Pascal", "option5": null, "option6": null,
     "marks": 1.0, "correctOption": 1},
    {"id": 2, "statement": "Unit of power?", "option1": "Newton", "option2": "Joule",
     "option3": "Watt", "option4": "", "marks": 2.0, "correctOption": 3}
  ]
}
"""


@pytest.fixture
def sample_quiz_json():
    return SAMPLE_QUIZ_JSON
