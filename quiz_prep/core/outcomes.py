"""Tagged outcome values returned by the session orchestrator."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, TypeVar, Union

from quiz_prep.core.errors import QuizPrepError

T = TypeVar("T")


@dataclass(slots=True, frozen=True)
class Loading:
    """Work has been requested but no value is available yet."""


@dataclass(slots=True, frozen=True)
class Ready(Generic[T]):
    payload: T


@dataclass(slots=True, frozen=True)
class Failed:
    error: QuizPrepError

    @property
    def message(self) -> str:
        return str(self.error)


Outcome = Union[Loading, Ready[T], Failed]
