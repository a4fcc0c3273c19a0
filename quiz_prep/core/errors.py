"""Exception types raised by the quiz core."""

from __future__ import annotations


class QuizPrepError(Exception):
    """Base class for every error the core reports."""


class EmptyBankError(QuizPrepError):
    """Raised when an attempt is started (or a bank loaded) with no questions."""


class InvalidSelectionError(QuizPrepError):
    """Raised when an option index is outside the question's valid options."""


class NoActiveAttemptError(QuizPrepError):
    """Raised when scoring or review is requested without a current attempt."""


class QuizImportError(QuizPrepError):
    """Raised when a question bank file cannot be read."""


class QuizParseError(QuizImportError):
    """Raised when a question bank file contains no usable quiz data."""


class AttemptStoreError(QuizPrepError):
    """Raised when a saved attempt cannot be read back."""
