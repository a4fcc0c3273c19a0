"""Facade coordinating the bank, the live attempt and their derived views."""

from __future__ import annotations

from dataclasses import replace
import logging
from threading import Lock
from typing import Callable, TypeVar

from quiz_prep.constants.quiz_constants import COMBINED_SESSION_ID
from quiz_prep.core.errors import (
    EmptyBankError,
    InvalidSelectionError,
    NoActiveAttemptError,
    QuizPrepError,
)
from quiz_prep.core.models import (
    Attempt,
    BankMetadata,
    Question,
    QuestionBank,
    QuestionView,
    ResultSummary,
    ReviewFilter,
    ReviewReport,
    Score,
)
from quiz_prep.core.outcomes import Failed, Loading, Outcome, Ready
from quiz_prep.core.services.attempt_machine import AnswerMode, AttemptStateMachine
from quiz_prep.core.services.review import compile_review
from quiz_prep.core.services.scoring import build_results, compute_score

logger = logging.getLogger(__name__)

T = TypeVar("T")


class SessionOrchestrator:
    """Owns at most one question bank and one attempt.

    Every public method returns ``Ready(payload)`` or ``Failed(error)``;
    core errors never escape. Mid-quiz actions the presentation layer should
    not have offered (invalid option, blocked move, locked question) leave the
    state unchanged and still return ``Ready``.
    """

    def __init__(self, mode: AnswerMode = AnswerMode.IMMEDIATE) -> None:
        self._lock = Lock()
        self._mode = mode
        self._bank: QuestionBank | None = None
        self._machine: AttemptStateMachine | None = None
        self._attempt: Attempt | None = None
        self._loading = False
        self._load_error: QuizPrepError | None = None

    @property
    def mode(self) -> AnswerMode:
        return self._mode

    # --- Bank ---

    def begin_load(self) -> None:
        """Mark that a loader is reading a new bank."""
        with self._lock:
            self._loading = True
            self._load_error = None

    def fail_load(self, error: QuizPrepError) -> Failed:
        with self._lock:
            self._loading = False
            self._load_error = error
        logger.warning("Question bank load failed: %s", error)
        return Failed(error)

    def load(self, bank: QuestionBank) -> Outcome[BankMetadata]:
        """Replace the loaded bank. Any attempt on the previous bank is discarded."""
        with self._lock:
            self._loading = False
            self._load_error = None
            self._bank = bank
            self._machine = None
            self._attempt = None
            metadata = bank.metadata()
        logger.info(
            "Loaded %d question(s) from %d quiz(zes)",
            metadata.total_questions,
            len(bank.sources),
        )
        return Ready(metadata)

    def bank_status(self) -> Outcome[BankMetadata]:
        with self._lock:
            if self._loading:
                return Loading()
            if self._load_error is not None:
                return Failed(self._load_error)
            if self._bank is None:
                return Failed(EmptyBankError("No question bank loaded"))
            return Ready(self._bank.metadata())

    def metadata(self) -> Outcome[BankMetadata]:
        with self._lock:
            if self._bank is None:
                return Failed(EmptyBankError("No question bank loaded"))
            return Ready(self._bank.metadata())

    def search_questions(self, query: str = "") -> Outcome[list[Question]]:
        with self._lock:
            if self._bank is None or self._bank.is_empty():
                return Failed(EmptyBankError("No questions loaded"))
            return Ready(self._bank.search(query))

    # --- Attempt lifecycle ---

    def start_attempt(self, quiz_id: int) -> Outcome[Attempt]:
        """Start an attempt over a single source quiz's questions."""
        with self._lock:
            bank = self._bank.for_source(quiz_id) if self._bank else QuestionBank(questions=())
            return self._start(bank, quiz_id)

    def start_combined_attempt(self) -> Outcome[Attempt]:
        """Start an attempt over every loaded question as one sequence."""
        with self._lock:
            return self._start(self._bank or QuestionBank(questions=()), COMBINED_SESSION_ID)

    def restore_attempt(self, attempt: Attempt) -> Outcome[Attempt]:
        """Resume a saved attempt against the currently loaded bank.

        Saved answers are replayed through the state machine, so correctness
        and marks always come from the loaded questions, not from the file.
        """
        with self._lock:
            if self._bank is None:
                return Failed(EmptyBankError("No question bank loaded"))
            bank = self._bank.for_source(attempt.session_id)
            if bank.is_empty():
                return Failed(EmptyBankError(f"Quiz {attempt.session_id} has no loaded questions"))
            unknown = [a.question_id for a in attempt.answers if bank.find(a.question_id) is None]
            if unknown:
                return Failed(
                    InvalidSelectionError(f"Saved answers refer to unknown questions {unknown}")
                )
            machine = AttemptStateMachine(bank, mode=self._mode)
            try:
                restored = self._replay(machine, attempt)
            except InvalidSelectionError as exc:
                logger.warning("Could not restore attempt %s: %s", attempt.session_id, exc)
                return Failed(exc)
            self._machine = machine
            self._attempt = restored
        logger.info("Restored attempt %s with %d answer(s)", restored.session_id, len(restored.answers))
        return Ready(restored)

    def current_attempt(self) -> Outcome[Attempt]:
        with self._lock:
            if self._attempt is None:
                return Failed(NoActiveAttemptError("No quiz attempt found"))
            return Ready(self._attempt)

    def current_question(self) -> Outcome[QuestionView]:
        with self._lock:
            return self._guard(lambda machine, attempt: self._view(machine, attempt))

    def reset(self) -> None:
        with self._lock:
            self._clear()
        logger.info("Session reset")

    # --- Quiz actions ---

    def select_option(self, option_index: int) -> Outcome[Attempt]:
        with self._lock:
            return self._transition(lambda m, a: m.select_option(a, option_index))

    def submit_answer(self) -> Outcome[Attempt]:
        """Submit the staged selection for the current question."""
        with self._lock:
            return self._transition(lambda m, a: m.submit_selection(a))

    def next_question(self) -> Outcome[Attempt]:
        def step(machine: AttemptStateMachine, attempt: Attempt) -> Attempt:
            if machine.mode is AnswerMode.IMMEDIATE:
                attempt = machine.submit_selection(attempt)
            if not machine.can_advance(attempt):
                logger.debug("Advance blocked at position %d", attempt.position)
                return attempt
            return machine.advance(attempt)

        with self._lock:
            return self._transition(step)

    def previous_question(self) -> Outcome[Attempt]:
        with self._lock:
            return self._transition(lambda m, a: m.retreat(a))

    def complete(self) -> Outcome[Attempt]:
        with self._lock:
            return self._transition(lambda m, a: m.complete(a))

    def abandon(self) -> Outcome[Attempt | None]:
        """Back out of the quiz.

        An attempt with no answers resets the whole session (``Ready(None)``)
        so the user is back at bank selection. Otherwise the attempt is
        completed as a partial attempt and its results remain available.
        """
        with self._lock:
            if self._attempt is None or self._machine is None:
                return Failed(NoActiveAttemptError("No quiz attempt found"))
            abandoned = self._machine.abandon(self._attempt)
            if abandoned is not None:
                self._attempt = abandoned
                return Ready(abandoned)
            self._clear()
        logger.info("Session reset after abandoning an unanswered attempt")
        return Ready(None)

    # --- Derived views ---

    def score(self) -> Outcome[Score]:
        with self._lock:
            return self._guard(lambda m, a: compute_score(a, len(m.bank)))

    def results(self) -> Outcome[ResultSummary]:
        with self._lock:
            return self._guard(lambda m, a: build_results(a, m.bank.metadata()))

    def review(self, review_filter: ReviewFilter = ReviewFilter.ALL) -> Outcome[ReviewReport]:
        with self._lock:
            return self._guard(lambda m, a: compile_review(m.bank, a, review_filter))

    # --- Helpers (call with the lock held) ---

    def _clear(self) -> None:
        self._bank = None
        self._machine = None
        self._attempt = None
        self._loading = False
        self._load_error = None

    @staticmethod
    def _replay(machine: AttemptStateMachine, saved: Attempt) -> Attempt:
        position = min(saved.position, len(machine.bank) - 1)
        attempt = replace(
            saved,
            position=position,
            answers=(),
            completed=False,
            ended_at=None,
            pending_selection=None,
        )
        for answer in saved.answers:
            attempt = machine.submit_answer(attempt, answer.question_id, answer.selected_option)

        pending = saved.pending_selection
        if pending is not None and not saved.completed:
            question = machine.current_question(attempt)
            if pending not in question.option_indices():
                raise InvalidSelectionError(
                    f"Saved selection {pending} is not a valid choice for question {question.id}."
                )
        else:
            recorded = attempt.answer_for(machine.current_question(attempt).id)
            pending = recorded.selected_option if recorded else None
        return replace(
            attempt,
            completed=saved.completed,
            ended_at=saved.ended_at,
            pending_selection=pending,
        )

    def _start(self, bank: QuestionBank, session_id: int) -> Outcome[Attempt]:
        machine = AttemptStateMachine(bank, mode=self._mode)
        try:
            attempt = machine.start(session_id)
        except QuizPrepError as exc:
            logger.warning("Could not start attempt %s: %s", session_id, exc)
            return Failed(exc)
        self._machine = machine
        self._attempt = attempt
        return Ready(attempt)

    def _guard(self, fn: Callable[[AttemptStateMachine, Attempt], T]) -> Outcome[T]:
        if self._attempt is None or self._machine is None:
            return Failed(NoActiveAttemptError("No quiz attempt found"))
        try:
            return Ready(fn(self._machine, self._attempt))
        except QuizPrepError as exc:
            return Failed(exc)

    def _transition(self, fn: Callable[[AttemptStateMachine, Attempt], Attempt]) -> Outcome[Attempt]:
        if self._attempt is None or self._machine is None:
            return Failed(NoActiveAttemptError("No quiz attempt found"))
        try:
            self._attempt = fn(self._machine, self._attempt)
        except InvalidSelectionError as exc:
            logger.debug("Rejected action: %s", exc)
        return Ready(self._attempt)

    @staticmethod
    def _view(machine: AttemptStateMachine, attempt: Attempt) -> QuestionView:
        question = machine.current_question(attempt)
        return QuestionView(
            question=question,
            number=attempt.position + 1,
            total=len(machine.bank),
            selected_option=attempt.pending_selection,
            is_submitted=machine.is_submitted(attempt),
            can_go_previous=attempt.position > 0 and not attempt.completed,
            can_go_next=machine.can_advance(attempt),
            is_last=machine.is_last_question(attempt),
        )
