"""FastAPI server that exposes the quiz session to a mobile client."""

from __future__ import annotations

from pathlib import Path
from typing import Any, TypeVar

from fastapi import Depends, FastAPI, HTTPException, Query, Response
from pydantic import BaseModel

from quiz_prep.constants.about import APP_NAME, APP_VERSION
from quiz_prep.core.attempt_exporter import attempt_to_dict, load_attempt, save_attempt
from quiz_prep.core.errors import (
    AttemptStoreError,
    EmptyBankError,
    InvalidSelectionError,
    NoActiveAttemptError,
    QuizImportError,
    QuizParseError,
    QuizPrepError,
)
from quiz_prep.core.models import (
    Attempt,
    BankMetadata,
    Question,
    QuestionView,
    RecentSource,
    ResultSummary,
    ReviewFilter,
    ReviewReport,
    Score,
)
from quiz_prep.core.outcomes import Failed, Loading, Outcome, Ready
from quiz_prep.core.quiz_importer import load_bank_from_file, parse_bank_text
from quiz_prep.core.services.recent_sources import RecentSourceStore
from quiz_prep.core.session_orchestrator import SessionOrchestrator

T = TypeVar("T")

_STATUS_BY_ERROR: list[tuple[type[QuizPrepError], int]] = [
    (QuizParseError, 422),
    (EmptyBankError, 422),
    (InvalidSelectionError, 422),
    (AttemptStoreError, 422),
    (NoActiveAttemptError, 409),
    (QuizImportError, 400),
]


class BankPayload(BaseModel):
    content: str
    display_name: str = ""
    identifier: str = ""


class BankFilePayload(BaseModel):
    path: str


class StartPayload(BaseModel):
    quiz_id: int | None = None


class SelectPayload(BaseModel):
    option_index: int


def _status_for(error: QuizPrepError) -> int:
    for error_type, status in _STATUS_BY_ERROR:
        if isinstance(error, error_type):
            return status
    return 400


def _unwrap(outcome: Outcome[T]) -> T:
    if isinstance(outcome, Ready):
        return outcome.payload
    if isinstance(outcome, Failed):
        raise HTTPException(status_code=_status_for(outcome.error), detail=outcome.message)
    raise HTTPException(status_code=409, detail="Question bank is still loading")


def _metadata_payload(metadata: BankMetadata) -> dict[str, object]:
    return {
        "total_questions": metadata.total_questions,
        "total_marks": metadata.total_marks,
        "duration_minutes": metadata.duration_minutes,
        "review_after_attempt": metadata.review_after_attempt,
        "negative_marking_declared": metadata.negative_marking_declared,
    }


def _question_payload(question: Question, reveal: bool = False) -> dict[str, object]:
    options: list[dict[str, object]] = []
    for option in question.options():
        entry: dict[str, object] = {"index": option.index, "text": option.text}
        if reveal:
            entry["is_correct"] = option.is_correct
        options.append(entry)
    payload: dict[str, object] = {
        "id": question.id,
        "statement": question.statement,
        "options": options,
        "marks": question.marks,
        "difficulty_level": question.difficulty_level,
    }
    if reveal:
        payload["correct_option"] = question.correct_option
    return payload


def _view_payload(view: QuestionView) -> dict[str, object]:
    return {
        # The answer key is only revealed once the question has been submitted.
        "question": _question_payload(view.question, reveal=view.is_submitted),
        "question_number": view.number,
        "total_questions": view.total,
        "selected_option": view.selected_option,
        "is_submitted": view.is_submitted,
        "can_go_previous": view.can_go_previous,
        "can_go_next": view.can_go_next,
        "is_last_question": view.is_last,
    }


def _score_payload(score: Score) -> dict[str, object]:
    return {
        "correct": score.correct,
        "incorrect": score.incorrect,
        "attempted": score.attempted,
        "total_questions": score.total_questions,
        "skipped": score.skipped,
        "marks_earned": score.marks_earned,
        "percentage_of_attempted": score.percentage_of_attempted,
        "percentage_of_total": score.percentage_of_total,
        "is_partial": score.is_partial,
    }


def _results_payload(results: ResultSummary) -> dict[str, object]:
    return {
        "score": _score_payload(results.score),
        "time_taken_seconds": results.time_taken_seconds,
        "total_marks": results.total_marks,
        "review_allowed": results.review_allowed,
    }


def _review_payload(report: ReviewReport) -> dict[str, object]:
    return {
        "filter": report.review_filter.value,
        "total": report.counts.total,
        "correct": report.counts.correct,
        "incorrect": report.counts.incorrect,
        "items": [
            {
                "question": _question_payload(item.question, reveal=True),
                "selected_option": item.answer.selected_option,
                "is_correct": item.answer.is_correct,
                "marks_earned": item.answer.marks_earned,
            }
            for item in report.items
        ],
    }


def _recent_payload(entries: list[RecentSource]) -> list[dict[str, object]]:
    return [
        {
            "identifier": e.identifier,
            "display_name": e.display_name,
            "question_count": e.question_count,
            "last_accessed": e.last_accessed.isoformat(),
        }
        for e in entries
    ]


def _attempt_payload(attempt: Attempt | None) -> dict[str, Any] | None:
    return attempt_to_dict(attempt) if attempt is not None else None


def _get_orchestrator_dependency(orchestrator: SessionOrchestrator):
    def dependency() -> SessionOrchestrator:
        return orchestrator

    return dependency


def create_api_app(
    orchestrator: SessionOrchestrator,
    recent_store: RecentSourceStore | None = None,
    attempt_path: Path | None = None,
) -> FastAPI:
    app = FastAPI(title=APP_NAME, version=APP_VERSION)
    orchestrator_dep = _get_orchestrator_dependency(orchestrator)

    def remember(identifier: str, display_name: str, question_count: int) -> None:
        if recent_store is not None and identifier:
            recent_store.save(identifier, display_name or identifier, question_count)

    # --- Bank ---

    @app.post("/bank", status_code=201)
    def load_bank(
        payload: BankPayload,
        manager: SessionOrchestrator = Depends(orchestrator_dep),
    ) -> dict[str, object]:
        manager.begin_load()
        try:
            bank = parse_bank_text(payload.content)
        except QuizPrepError as exc:
            failed = manager.fail_load(exc)
            raise HTTPException(status_code=_status_for(failed.error), detail=failed.message) from exc
        metadata = _unwrap(manager.load(bank))
        remember(payload.identifier, payload.display_name, metadata.total_questions)
        return _metadata_payload(metadata)

    @app.post("/bank/file", status_code=201)
    def load_bank_file(
        payload: BankFilePayload,
        manager: SessionOrchestrator = Depends(orchestrator_dep),
    ) -> dict[str, object]:
        manager.begin_load()
        path = Path(payload.path)
        try:
            imported = load_bank_from_file(path)
        except QuizPrepError as exc:
            failed = manager.fail_load(exc)
            raise HTTPException(status_code=_status_for(failed.error), detail=failed.message) from exc
        metadata = _unwrap(manager.load(imported.bank))
        remember(str(path), path.name, metadata.total_questions)
        return _metadata_payload(metadata)

    @app.get("/bank")
    def get_bank(
        response: Response,
        manager: SessionOrchestrator = Depends(orchestrator_dep),
    ) -> dict[str, object]:
        status = manager.bank_status()
        if isinstance(status, Loading):
            response.status_code = 202
            return {"status": "loading"}
        return {"status": "ready", **_metadata_payload(_unwrap(status))}

    @app.get("/questions")
    def search_questions(
        search: str = "",
        manager: SessionOrchestrator = Depends(orchestrator_dep),
    ) -> list[dict[str, object]]:
        return [_question_payload(q) for q in _unwrap(manager.search_questions(search))]

    # --- Attempt ---

    @app.post("/attempt", status_code=201)
    def start_attempt(
        payload: StartPayload,
        manager: SessionOrchestrator = Depends(orchestrator_dep),
    ) -> dict[str, Any] | None:
        if payload.quiz_id is None:
            outcome = manager.start_combined_attempt()
        else:
            outcome = manager.start_attempt(payload.quiz_id)
        return _attempt_payload(_unwrap(outcome))

    @app.get("/attempt")
    def get_attempt(manager: SessionOrchestrator = Depends(orchestrator_dep)) -> dict[str, Any] | None:
        return _attempt_payload(_unwrap(manager.current_attempt()))

    @app.get("/question")
    def get_question(manager: SessionOrchestrator = Depends(orchestrator_dep)) -> dict[str, object]:
        return _view_payload(_unwrap(manager.current_question()))

    @app.post("/select")
    def select_option(
        payload: SelectPayload,
        manager: SessionOrchestrator = Depends(orchestrator_dep),
    ) -> dict[str, Any] | None:
        return _attempt_payload(_unwrap(manager.select_option(payload.option_index)))

    @app.post("/submit")
    def submit_answer(manager: SessionOrchestrator = Depends(orchestrator_dep)) -> dict[str, Any] | None:
        return _attempt_payload(_unwrap(manager.submit_answer()))

    @app.post("/next")
    def next_question(manager: SessionOrchestrator = Depends(orchestrator_dep)) -> dict[str, Any] | None:
        return _attempt_payload(_unwrap(manager.next_question()))

    @app.post("/previous")
    def previous_question(
        manager: SessionOrchestrator = Depends(orchestrator_dep),
    ) -> dict[str, Any] | None:
        return _attempt_payload(_unwrap(manager.previous_question()))

    @app.post("/complete")
    def complete(manager: SessionOrchestrator = Depends(orchestrator_dep)) -> dict[str, Any] | None:
        return _attempt_payload(_unwrap(manager.complete()))

    @app.post("/abandon")
    def abandon(manager: SessionOrchestrator = Depends(orchestrator_dep)) -> dict[str, object]:
        attempt = _unwrap(manager.abandon())
        return {"session_reset": attempt is None, "attempt": _attempt_payload(attempt)}

    @app.post("/attempt/save")
    def save_current_attempt(
        manager: SessionOrchestrator = Depends(orchestrator_dep),
    ) -> dict[str, Any] | None:
        if attempt_path is None:
            raise HTTPException(status_code=404, detail="Attempt storage is not configured")
        attempt = _unwrap(manager.current_attempt())
        save_attempt(attempt_path, attempt)
        return _attempt_payload(attempt)

    @app.post("/attempt/restore")
    def restore_saved_attempt(
        manager: SessionOrchestrator = Depends(orchestrator_dep),
    ) -> dict[str, Any] | None:
        if attempt_path is None:
            raise HTTPException(status_code=404, detail="Attempt storage is not configured")
        try:
            saved = load_attempt(attempt_path)
        except AttemptStoreError as exc:
            raise HTTPException(status_code=_status_for(exc), detail=str(exc)) from exc
        return _attempt_payload(_unwrap(manager.restore_attempt(saved)))

    # --- Results ---

    @app.get("/score")
    def get_score(manager: SessionOrchestrator = Depends(orchestrator_dep)) -> dict[str, object]:
        return _score_payload(_unwrap(manager.score()))

    @app.get("/results")
    def get_results(manager: SessionOrchestrator = Depends(orchestrator_dep)) -> dict[str, object]:
        return _results_payload(_unwrap(manager.results()))

    @app.get("/review")
    def get_review(
        review_filter: ReviewFilter = Query(ReviewFilter.ALL, alias="filter"),
        manager: SessionOrchestrator = Depends(orchestrator_dep),
    ) -> dict[str, object]:
        return _review_payload(_unwrap(manager.review(review_filter)))

    @app.post("/reset", status_code=204)
    def reset(manager: SessionOrchestrator = Depends(orchestrator_dep)) -> Response:
        manager.reset()
        return Response(status_code=204)

    # --- Recent sources ---

    @app.get("/recent")
    def get_recent() -> list[dict[str, object]]:
        if recent_store is None:
            return []
        return _recent_payload(recent_store.get_recent())

    @app.delete("/recent")
    def forget_recent(identifier: str | None = None) -> list[dict[str, object]]:
        if recent_store is None:
            return []
        if identifier is None:
            recent_store.clear()
            return []
        return _recent_payload(recent_store.remove(identifier))

    return app

