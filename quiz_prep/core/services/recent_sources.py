"""Service for remembering recently opened question bank files."""

from __future__ import annotations

from datetime import datetime
import json
import logging
from pathlib import Path

from quiz_prep.constants.quiz_constants import MAX_RECENT_SOURCES
from quiz_prep.core.models import RecentSource

logger = logging.getLogger(__name__)


class RecentSourceStore:
    """Most-recent-first list of bank files, persisted as JSON.

    The list is advisory: an unreadable store simply reads as empty.
    """

    def __init__(self, store_path: Path, limit: int = MAX_RECENT_SOURCES) -> None:
        self._store_path = store_path
        self._limit = limit

    def get_recent(self) -> list[RecentSource]:
        if not self._store_path.exists():
            return []
        try:
            entries = json.loads(self._store_path.read_text(encoding="utf-8"))
            return [
                RecentSource(
                    identifier=entry["identifier"],
                    display_name=entry["display_name"],
                    question_count=int(entry["question_count"]),
                    last_accessed=datetime.fromisoformat(entry["last_accessed"]),
                )
                for entry in entries
            ]
        except (OSError, ValueError, KeyError, TypeError) as exc:
            logger.warning("Ignoring unreadable recent sources at %s: %s", self._store_path, exc)
            return []

    def save(self, identifier: str, display_name: str, question_count: int) -> list[RecentSource]:
        """Move (or add) ``identifier`` to the front of the list."""
        entries = [e for e in self.get_recent() if e.identifier != identifier]
        entries.insert(
            0,
            RecentSource(
                identifier=identifier,
                display_name=display_name,
                question_count=question_count,
            ),
        )
        entries = entries[: self._limit]
        self._write(entries)
        return entries

    def remove(self, identifier: str) -> list[RecentSource]:
        entries = [e for e in self.get_recent() if e.identifier != identifier]
        self._write(entries)
        return entries

    def clear(self) -> None:
        if self._store_path.exists():
            self._store_path.unlink()

    def _write(self, entries: list[RecentSource]) -> None:
        self._store_path.parent.mkdir(parents=True, exist_ok=True)
        document = [
            {
                "identifier": e.identifier,
                "display_name": e.display_name,
                "question_count": e.question_count,
                "last_accessed": e.last_accessed.isoformat(),
            }
            for e in entries
        ]
        self._store_path.write_text(json.dumps(document, indent=2), encoding="utf-8")
