"""Domain models for the quiz application."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
import logging

from quiz_prep.constants.quiz_constants import (
    COMBINED_SESSION_ID,
    MAX_OPTION_SLOTS,
    MIN_OPTION_SLOTS,
)

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class QuizOption:
    """Normalized option ready for rendering."""

    index: int  # 1-based slot number
    text: str
    is_correct: bool


@dataclass(slots=True, frozen=True)
class Question:
    """Multiple-choice question with two to six option slots.

    Slots may be ``None`` or empty; only present, non-empty slots are offered
    to the user. ``correct_option`` is the 1-based slot number of the right
    answer and must point at a present slot.
    """

    id: int
    statement: str
    option_slots: tuple[str | None, ...]
    marks: float
    correct_option: int
    source_quiz_id: int | None = None
    difficulty_level: str = ""

    def __post_init__(self) -> None:
        if not MIN_OPTION_SLOTS <= len(self.option_slots) <= MAX_OPTION_SLOTS:
            raise ValueError(
                f"Question {self.id} must have between {MIN_OPTION_SLOTS} and "
                f"{MAX_OPTION_SLOTS} option slots."
            )
        if self.marks < 0:
            raise ValueError(f"Question {self.id} marks cannot be negative.")
        if self.correct_option not in self.option_indices():
            raise ValueError(
                f"Question {self.id} correct option {self.correct_option} "
                "does not point at a present option."
            )

    def options(self) -> list[QuizOption]:
        return [
            QuizOption(index=index, text=text, is_correct=index == self.correct_option)
            for index, text in enumerate(self.option_slots, start=1)
            if text
        ]

    def option_indices(self) -> set[int]:
        return {index for index, text in enumerate(self.option_slots, start=1) if text}


@dataclass(slots=True, frozen=True)
class SourceQuiz:
    """Metadata for one quiz in an imported bank file."""

    id: int
    title: str = ""
    description: str = ""
    total_marks: float = 0.0
    duration_minutes: int = 0
    review_after_attempt: bool = False
    passing_marks: float = 0.0
    negative_marks: float = 0.0
    negative: bool = False
    question_ids: tuple[int, ...] = ()


@dataclass(slots=True, frozen=True)
class BankMetadata:
    """Aggregate metadata combined across all source quizzes."""

    total_questions: int
    total_marks: float
    duration_minutes: int
    review_after_attempt: bool
    negative_marking_declared: bool


@dataclass(slots=True, frozen=True)
class QuestionBank:
    """Ordered questions concatenated from one or more source quizzes."""

    questions: tuple[Question, ...]
    sources: tuple[SourceQuiz, ...] = ()

    @classmethod
    def from_sources(cls, sources: list[tuple[SourceQuiz, list[Question]]]) -> QuestionBank:
        """Concatenate per-quiz question lists, keeping the first of any duplicate id."""
        seen: set[int] = set()
        questions: list[Question] = []
        kept_sources: list[SourceQuiz] = []
        for source, source_questions in sources:
            kept_ids: list[int] = []
            for question in source_questions:
                if question.id in seen:
                    logger.warning(
                        "Skipping duplicate question id %s in quiz %s", question.id, source.id
                    )
                    continue
                seen.add(question.id)
                kept_ids.append(question.id)
                questions.append(question)
            kept_sources.append(
                SourceQuiz(
                    id=source.id,
                    title=source.title,
                    description=source.description,
                    total_marks=source.total_marks,
                    duration_minutes=source.duration_minutes,
                    review_after_attempt=source.review_after_attempt,
                    passing_marks=source.passing_marks,
                    negative_marks=source.negative_marks,
                    negative=source.negative,
                    question_ids=tuple(kept_ids),
                )
            )
        return cls(questions=tuple(questions), sources=tuple(kept_sources))

    def __len__(self) -> int:
        return len(self.questions)

    def is_empty(self) -> bool:
        return not self.questions

    def question_at(self, index: int) -> Question:
        if not 0 <= index < len(self.questions):
            raise IndexError(f"Question index {index} out of range")
        return self.questions[index]

    def find(self, question_id: int) -> Question | None:
        return next((q for q in self.questions if q.id == question_id), None)

    def for_source(self, quiz_id: int) -> QuestionBank:
        """Return the bank restricted to one source quiz (or everything for the combined id)."""
        if quiz_id == COMBINED_SESSION_ID:
            return self
        source = next((s for s in self.sources if s.id == quiz_id), None)
        if source is None:
            return QuestionBank(questions=())
        wanted = set(source.question_ids)
        return QuestionBank(
            questions=tuple(q for q in self.questions if q.id in wanted),
            sources=(source,),
        )

    def search(self, query: str) -> list[Question]:
        needle = query.strip().casefold()
        if not needle:
            return list(self.questions)
        return [q for q in self.questions if needle in q.statement.casefold()]

    def metadata(self) -> BankMetadata:
        return BankMetadata(
            total_questions=len(self.questions),
            total_marks=sum(s.total_marks for s in self.sources),
            duration_minutes=sum(s.duration_minutes for s in self.sources),
            review_after_attempt=any(s.review_after_attempt for s in self.sources),
            negative_marking_declared=any(
                s.negative or s.negative_marks > 0 for s in self.sources
            ),
        )


@dataclass(slots=True, frozen=True)
class Answer:
    """A submitted choice for one question."""

    question_id: int
    selected_option: int  # 1-based slot number
    is_correct: bool
    marks_earned: float


@dataclass(slots=True, frozen=True)
class Attempt:
    """Immutable snapshot of a quiz attempt.

    Transitions never mutate a snapshot; they return a new one built with
    ``dataclasses.replace``.
    """

    session_id: int
    started_at: datetime
    ended_at: datetime | None = None
    position: int = 0
    answers: tuple[Answer, ...] = ()
    completed: bool = False
    pending_selection: int | None = None

    def __post_init__(self) -> None:
        if self.position < 0:
            raise ValueError("Attempt position cannot be negative.")
        if self.completed and self.ended_at is None:
            raise ValueError("A completed attempt must have an end time.")

    @property
    def is_combined(self) -> bool:
        return self.session_id == COMBINED_SESSION_ID

    def answer_for(self, question_id: int) -> Answer | None:
        return next((a for a in self.answers if a.question_id == question_id), None)


@dataclass(slots=True, frozen=True)
class Score:
    """Derived score summary; never stored."""

    correct: int
    incorrect: int
    attempted: int
    total_questions: int
    skipped: int
    marks_earned: float
    percentage_of_attempted: float
    percentage_of_total: float
    is_partial: bool


@dataclass(slots=True, frozen=True)
class ResultSummary:
    """Everything the results screen shows after an attempt."""

    score: Score
    time_taken_seconds: int
    total_marks: float
    review_allowed: bool


class ReviewFilter(Enum):
    ALL = "all"
    CORRECT_ONLY = "correct"
    INCORRECT_ONLY = "incorrect"


@dataclass(slots=True, frozen=True)
class ReviewItem:
    question: Question
    answer: Answer


@dataclass(slots=True, frozen=True)
class ReviewCounts:
    total: int
    correct: int
    incorrect: int


@dataclass(slots=True, frozen=True)
class ReviewReport:
    items: tuple[ReviewItem, ...]
    review_filter: ReviewFilter
    counts: ReviewCounts


@dataclass(slots=True, frozen=True)
class QuestionView:
    """Current question as the quiz screen needs it."""

    question: Question
    number: int
    total: int
    selected_option: int | None
    is_submitted: bool
    can_go_previous: bool
    can_go_next: bool
    is_last: bool


@dataclass(slots=True)
class RecentSource:
    """A previously opened bank file."""

    identifier: str
    display_name: str
    question_count: int
    last_accessed: datetime = field(default_factory=datetime.now)
