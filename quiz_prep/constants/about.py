"""Static metadata describing quiz_prep."""

APP_NAME = "quiz_prep"
APP_VERSION = "0.1"
APP_LICENSE = "MIT License"
APP_ABOUT_TEXT = (
    "quiz_prep imports JSON question banks, runs one quiz attempt at a time, "
    "and reports scores with an optional per-question review."
)
