"""Application entry point for the quiz_prep server."""

from __future__ import annotations

import argparse
from pathlib import Path

import uvicorn

from quiz_prep.constants.network_constants import DEFAULT_HOST, DEFAULT_PORT
from quiz_prep.constants.quiz_constants import DEFAULT_ANSWER_MODE, DEFAULT_RECENT_SOURCES_PATH
from quiz_prep.core.errors import QuizPrepError
from quiz_prep.core.quiz_importer import load_bank_from_file
from quiz_prep.core.services.attempt_machine import AnswerMode
from quiz_prep.core.services.recent_sources import RecentSourceStore
from quiz_prep.core.session_orchestrator import SessionOrchestrator
from quiz_prep.server.api_server import create_api_app
from quiz_prep.utils.logging_config import configure_logging


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Serve a quiz session over HTTP.")
    parser.add_argument("--host", default=DEFAULT_HOST)
    parser.add_argument("--port", type=int, default=DEFAULT_PORT)
    parser.add_argument(
        "--mode",
        choices=[mode.value for mode in AnswerMode],
        default=DEFAULT_ANSWER_MODE,
        help="When a selected option counts as a submitted answer.",
    )
    parser.add_argument("--bank", type=Path, help="Question bank file to load at startup.")
    parser.add_argument("--recent-file", type=Path, default=DEFAULT_RECENT_SOURCES_PATH)
    parser.add_argument("--attempt-file", type=Path, help="Where /attempt/save writes the attempt.")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> None:
    """Initialize logging, optionally preload a bank, and serve the API."""
    args = _parse_args(argv)
    logger = configure_logging()
    logger.info("Starting quiz_prep in %s mode", args.mode)

    orchestrator = SessionOrchestrator(mode=AnswerMode(args.mode))
    recent_store = RecentSourceStore(args.recent_file)

    if args.bank is not None:
        try:
            imported = load_bank_from_file(args.bank)
        except QuizPrepError as exc:
            orchestrator.fail_load(exc)
        else:
            orchestrator.load(imported.bank)
            recent_store.save(str(args.bank), args.bank.name, len(imported.bank))

    app = create_api_app(orchestrator, recent_store=recent_store, attempt_path=args.attempt_file)
    logger.info("Serving on http://%s:%d/", args.host, args.port)
    uvicorn.run(app, host=args.host, port=args.port, log_level="info")


if __name__ == "__main__":
    main()
