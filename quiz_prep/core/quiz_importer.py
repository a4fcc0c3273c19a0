"""Utilities for importing question banks from JSON files.

A bank file holds quiz objects in one of three shapes:

    [ {quiz}, {quiz}, ... ]       a JSON array
    {quiz}                        a single object
    {quiz}{quiz}{quiz}            objects concatenated without separators

Each quiz looks like::

    {
      "id": 12,
      "title": "Thermodynamics",
      "totalMarks": 10,
      "duration": 15,
      "reviewAfterAttempt": true,
      "negativeMarks": 0,
      "negative": false,
      "questions": [
        {"id": 101, "statement": "...", "option1": "...", "option2": "...",
         "option3": "...", "option4": "...", "option5": null, "option6": null,
         "marks": 1.0, "correctOption": 2}
      ]
    }

Malformed quizzes and questions are skipped with a warning; the import only
fails when nothing usable is left.
"""

from __future__ import annotations

from dataclasses import dataclass
import json
import logging
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from quiz_prep.core.errors import EmptyBankError, QuizImportError, QuizParseError
from quiz_prep.core.models import Question, QuestionBank, SourceQuiz

logger = logging.getLogger(__name__)


class QuestionRecord(BaseModel):
    """Raw question as it appears in a bank file."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: int
    statement: str
    option1: str | None = None
    option2: str | None = None
    option3: str | None = None
    option4: str | None = None
    option5: str | None = None
    option6: str | None = None
    marks: float = Field(default=0.0, ge=0)
    correct_option: int = Field(alias="correctOption")
    difficulty_level: str = Field(default="", alias="difficultyLevel")

    def to_question(self, source_quiz_id: int) -> Question:
        slots = [self.option1, self.option2, self.option3, self.option4, self.option5, self.option6]
        # Trailing absent slots are dropped so a four-option question has four slots.
        while len(slots) > 2 and slots[-1] is None:
            slots.pop()
        return Question(
            id=self.id,
            statement=self.statement.strip(),
            option_slots=tuple(slot.strip() if slot else None for slot in slots),
            marks=self.marks,
            correct_option=self.correct_option,
            source_quiz_id=source_quiz_id,
            difficulty_level=self.difficulty_level,
        )


class QuizRecord(BaseModel):
    """Raw quiz object with its questions left unparsed."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: int
    title: str = ""
    description: str = ""
    total_marks: float = Field(default=0.0, alias="totalMarks")
    duration: int = 0
    review_after_attempt: bool = Field(default=False, alias="reviewAfterAttempt")
    passing_marks: float = Field(default=0.0, alias="passingMarks")
    negative_marks: float = Field(default=0.0, alias="negativeMarks")
    negative: bool = False
    questions: list[Any] = Field(default_factory=list)

    def to_source(self) -> SourceQuiz:
        return SourceQuiz(
            id=self.id,
            title=self.title,
            description=self.description,
            total_marks=self.total_marks,
            duration_minutes=self.duration,
            review_after_attempt=self.review_after_attempt,
            passing_marks=self.passing_marks,
            negative_marks=self.negative_marks,
            negative=self.negative,
        )


@dataclass(slots=True)
class ImportedBank:
    """Container for an imported bank and where it came from."""

    source_path: Path
    bank: QuestionBank
    quiz_count: int


def load_bank_from_file(file_path: Path) -> ImportedBank:
    try:
        text = file_path.read_text(encoding="utf-8")
    except UnicodeDecodeError as exc:
        raise QuizParseError(f"{file_path.name} is not a UTF-8 text file.") from exc
    except OSError as exc:
        raise QuizImportError(f"Could not read {file_path}: {exc}") from exc
    bank = parse_bank_text(text)
    logger.info("Imported %d question(s) from %s", len(bank), file_path)
    return ImportedBank(source_path=file_path, bank=bank, quiz_count=len(bank.sources))


def parse_bank_text(text: str) -> QuestionBank:
    raw_quizzes = _decode_quiz_objects(text)
    sources: list[tuple[SourceQuiz, list[Question]]] = []
    for raw in raw_quizzes:
        if not isinstance(raw, dict):
            logger.warning("Skipping non-object quiz entry: %r", type(raw).__name__)
            continue
        try:
            record = QuizRecord.model_validate(raw)
        except ValueError as exc:
            logger.warning("Skipping malformed quiz record: %s", exc)
            continue
        sources.append((record.to_source(), _parse_questions(record)))

    if not sources:
        raise QuizParseError("No valid quiz data found")
    bank = QuestionBank.from_sources(sources)
    if bank.is_empty():
        raise EmptyBankError("The quiz file does not contain any valid questions.")
    return bank


def _parse_questions(record: QuizRecord) -> list[Question]:
    questions: list[Question] = []
    for raw in record.questions:
        try:
            questions.append(QuestionRecord.model_validate(raw).to_question(record.id))
        except ValueError as exc:
            logger.warning("Skipping malformed question in quiz %s: %s", record.id, exc)
    return questions


def _decode_quiz_objects(text: str) -> list[Any]:
    stripped = text.strip()
    if not stripped:
        raise QuizParseError("The quiz file is empty.")
    try:
        document = json.loads(stripped)
    except json.JSONDecodeError:
        return _decode_concatenated(stripped)
    if isinstance(document, list):
        return document
    if isinstance(document, dict):
        return [document]
    raise QuizParseError("Expected a quiz object or an array of quizzes.")


def _decode_concatenated(text: str) -> list[Any]:
    """Decode ``{...}{...}`` streams, skipping objects that fail to parse."""
    objects: list[Any] = []
    for chunk in _split_top_level_objects(text):
        try:
            objects.append(json.loads(chunk))
        except json.JSONDecodeError as exc:
            logger.warning("Skipping unparseable quiz object: %s", exc)
    if not objects:
        raise QuizParseError("No valid quiz data found")
    return objects


def _split_top_level_objects(text: str) -> list[str]:
    chunks: list[str] = []
    depth = 0
    start = -1
    in_string = False
    escaped = False
    for position, char in enumerate(text):
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
            continue
        if char == '"':
            in_string = True
        elif char == "{":
            if depth == 0:
                start = position
            depth += 1
        elif char == "}" and depth > 0:
            depth -= 1
            if depth == 0:
                chunks.append(text[start : position + 1])
    return chunks
