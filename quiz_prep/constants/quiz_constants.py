"""Quiz-related constants shared across core and server layers."""

from pathlib import Path

COMBINED_SESSION_ID: int = -1
MIN_OPTION_SLOTS: int = 2
MAX_OPTION_SLOTS: int = 6

DEFAULT_ANSWER_MODE: str = "immediate"
MAX_RECENT_SOURCES: int = 10

DEFAULT_DATA_DIR: Path = Path.home() / ".quiz_prep"
DEFAULT_RECENT_SOURCES_PATH: Path = DEFAULT_DATA_DIR / "recent_sources.json"
