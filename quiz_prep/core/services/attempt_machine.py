"""State machine driving a single quiz attempt through its questions."""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timezone
from enum import Enum
import logging
from typing import Callable

from quiz_prep.constants.quiz_constants import COMBINED_SESSION_ID
from quiz_prep.core.errors import EmptyBankError, InvalidSelectionError
from quiz_prep.core.models import Answer, Attempt, Question, QuestionBank

logger = logging.getLogger(__name__)


class AnswerMode(Enum):
    """When a selection counts as a submitted answer."""

    IMMEDIATE = "immediate"
    SUBMIT_THEN_REVEAL = "submit_then_reveal"


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class AttemptStateMachine:
    """Transitions over immutable ``Attempt`` snapshots for one bank.

    ``NotStarted -> InProgress -> Completed``. Each operation returns a new
    snapshot (or the same one when nothing changes); none mutates its input.
    """

    def __init__(
        self,
        bank: QuestionBank,
        mode: AnswerMode = AnswerMode.IMMEDIATE,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self._bank = bank
        self._mode = mode
        self._clock = clock

    @property
    def bank(self) -> QuestionBank:
        return self._bank

    @property
    def mode(self) -> AnswerMode:
        return self._mode

    def start(self, session_id: int = COMBINED_SESSION_ID) -> Attempt:
        if self._bank.is_empty():
            raise EmptyBankError("Cannot start an attempt: the question bank is empty.")
        logger.info(
            "Starting attempt %s over %d question(s) in %s mode",
            session_id,
            len(self._bank),
            self._mode.value,
        )
        return Attempt(session_id=session_id, started_at=self._clock())

    # --- Queries ---

    def current_question(self, attempt: Attempt) -> Question:
        return self._bank.question_at(min(attempt.position, len(self._bank) - 1))

    def is_submitted(self, attempt: Attempt) -> bool:
        """True when the current question already has a recorded answer."""
        return attempt.answer_for(self.current_question(attempt).id) is not None

    def can_advance(self, attempt: Attempt) -> bool:
        if attempt.completed:
            return False
        if self._mode is AnswerMode.SUBMIT_THEN_REVEAL:
            return self.is_submitted(attempt)
        return attempt.pending_selection is not None or self.is_submitted(attempt)

    def is_last_question(self, attempt: Attempt) -> bool:
        return attempt.position >= len(self._bank) - 1

    # --- Transitions ---

    def select_option(self, attempt: Attempt, option_index: int) -> Attempt:
        if attempt.completed:
            logger.debug("Ignoring selection on completed attempt %s", attempt.session_id)
            return attempt
        question = self.current_question(attempt)
        if self._mode is AnswerMode.SUBMIT_THEN_REVEAL and self.is_submitted(attempt):
            logger.debug("Question %s is locked; selection ignored", question.id)
            return attempt
        self._check_option(question, option_index)
        staged = replace(attempt, pending_selection=option_index)
        if self._mode is AnswerMode.IMMEDIATE:
            return self.submit_answer(staged, question.id, option_index)
        return staged

    def submit_answer(self, attempt: Attempt, question_id: int, selected_option: int) -> Attempt:
        """Record (or replace) the answer for ``question_id``."""
        if attempt.completed:
            logger.debug("Ignoring submission on completed attempt %s", attempt.session_id)
            return attempt
        question = self._bank.find(question_id)
        if question is None:
            raise InvalidSelectionError(f"Question {question_id} is not part of this attempt.")
        self._check_option(question, selected_option)

        previous = attempt.answer_for(question_id)
        if previous is not None and previous.selected_option == selected_option:
            return attempt

        is_correct = selected_option == question.correct_option
        answer = Answer(
            question_id=question_id,
            selected_option=selected_option,
            is_correct=is_correct,
            marks_earned=question.marks if is_correct else 0.0,
        )
        answers = tuple(a for a in attempt.answers if a.question_id != question_id) + (answer,)
        pending = attempt.pending_selection
        if self.current_question(attempt).id == question_id:
            pending = selected_option
        return replace(attempt, answers=answers, pending_selection=pending)

    def submit_selection(self, attempt: Attempt) -> Attempt:
        """Submit the staged selection for the current question, if any."""
        if attempt.completed or attempt.pending_selection is None:
            return attempt
        question = self.current_question(attempt)
        return self.submit_answer(attempt, question.id, attempt.pending_selection)

    def advance(self, attempt: Attempt) -> Attempt:
        if attempt.completed:
            return attempt
        if self.is_last_question(attempt):
            return self._finish(attempt)
        return self._move_to(attempt, attempt.position + 1)

    def retreat(self, attempt: Attempt) -> Attempt:
        if attempt.completed or attempt.position == 0:
            return attempt
        return self._move_to(attempt, attempt.position - 1)

    def complete(self, attempt: Attempt) -> Attempt:
        """Submit any staged selection, then finish the attempt.

        A staged selection that is not a valid option is dropped; completion
        itself never fails.
        """
        if attempt.completed:
            return attempt
        try:
            attempt = self.submit_selection(attempt)
        except InvalidSelectionError as exc:
            logger.warning("Dropping staged selection on completion: %s", exc)
            attempt = replace(attempt, pending_selection=None)
        return self._finish(attempt)

    def abandon(self, attempt: Attempt) -> Attempt | None:
        """Back out of the quiz.

        With no answers the attempt is discarded and ``None`` is returned;
        otherwise it is completed as a partial attempt so results stay viewable.
        """
        if not attempt.answers:
            logger.info("Abandoned attempt %s had no answers; discarding", attempt.session_id)
            return None
        return self.complete(attempt)

    # --- Helpers ---

    def _move_to(self, attempt: Attempt, position: int) -> Attempt:
        position = max(0, min(position, len(self._bank) - 1))
        answer = attempt.answer_for(self._bank.question_at(position).id)
        return replace(
            attempt,
            position=position,
            pending_selection=answer.selected_option if answer else None,
        )

    def _finish(self, attempt: Attempt) -> Attempt:
        finished = replace(attempt, completed=True, ended_at=self._clock())
        logger.info(
            "Attempt %s completed with %d of %d question(s) answered",
            attempt.session_id,
            len(finished.answers),
            len(self._bank),
        )
        return finished

    @staticmethod
    def _check_option(question: Question, option_index: int) -> None:
        if option_index not in question.option_indices():
            raise InvalidSelectionError(
                f"Option {option_index} is not a valid choice for question {question.id}."
            )
