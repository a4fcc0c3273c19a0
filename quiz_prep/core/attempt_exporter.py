"""Utilities for saving an attempt snapshot to disk and reading it back."""

from __future__ import annotations

from datetime import datetime
import json
from pathlib import Path
from typing import Any

from quiz_prep.core.errors import AttemptStoreError
from quiz_prep.core.models import Answer, Attempt


def save_attempt(file_path: Path, attempt: Attempt) -> None:
    file_path = file_path.resolve()
    file_path.parent.mkdir(parents=True, exist_ok=True)
    file_path.write_text(json.dumps(attempt_to_dict(attempt), indent=2), encoding="utf-8")


def load_attempt(file_path: Path) -> Attempt:
    try:
        document = json.loads(file_path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise AttemptStoreError(f"Could not read saved attempt {file_path}: {exc}") from exc
    return attempt_from_dict(document)


def attempt_to_dict(attempt: Attempt) -> dict[str, Any]:
    return {
        "session_id": attempt.session_id,
        "started_at": attempt.started_at.isoformat(),
        "ended_at": attempt.ended_at.isoformat() if attempt.ended_at else None,
        "position": attempt.position,
        "completed": attempt.completed,
        "pending_selection": attempt.pending_selection,
        "answers": [
            {
                "question_id": a.question_id,
                "selected_option": a.selected_option,
                "is_correct": a.is_correct,
                "marks_earned": a.marks_earned,
            }
            for a in attempt.answers
        ],
    }


def attempt_from_dict(document: Any) -> Attempt:
    if not isinstance(document, dict):
        raise AttemptStoreError("Saved attempt must be a JSON object.")
    try:
        answers = tuple(
            Answer(
                question_id=int(a["question_id"]),
                selected_option=int(a["selected_option"]),
                is_correct=bool(a["is_correct"]),
                marks_earned=float(a["marks_earned"]),
            )
            for a in document.get("answers", [])
        )
        if len({a.question_id for a in answers}) != len(answers):
            raise AttemptStoreError("Saved attempt has more than one answer per question.")
        started_at = datetime.fromisoformat(document["started_at"])
        ended_at = document.get("ended_at")
        ended_at = datetime.fromisoformat(ended_at) if ended_at else None
        # Naive and aware timestamps cannot be subtracted when timing the attempt.
        if ended_at is not None and (started_at.tzinfo is None) != (ended_at.tzinfo is None):
            raise AttemptStoreError("Saved attempt mixes naive and timezone-aware timestamps.")
        pending = document.get("pending_selection")
        return Attempt(
            session_id=int(document["session_id"]),
            started_at=started_at,
            ended_at=ended_at,
            position=int(document.get("position", 0)),
            answers=answers,
            completed=bool(document.get("completed", False)),
            pending_selection=int(pending) if pending is not None else None,
        )
    except (KeyError, TypeError, ValueError) as exc:
        raise AttemptStoreError(f"Saved attempt is malformed: {exc}") from exc
