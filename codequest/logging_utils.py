"""Logging utilities for Code Quest sessions.

Provides color-coded output to distinguish engine steps, session transitions,
failures and successes.
"""

import os
from enum import Enum


class Color(Enum):
    """ANSI color codes for terminal output."""

    # Colors for operation types
    BLUE = "\033[94m"      # Engine operations (linearizer, interpreter)
    MAGENTA = "\033[95m"   # Session state transitions
    RED = "\033[91m"       # Failed runs and rejected requests
    GREEN = "\033[92m"     # Success/completion
    CYAN = "\033[96m"      # Info/metadata

    # Formatting
    BOLD = "\033[1m"
    RESET = "\033[0m"


def colored(text: str, color: Color, bold: bool = False) -> str:
    """Wrap text in ANSI color codes if colors are enabled.

    Args:
        text: Text to colorize
        color: Color to apply
        bold: Whether to make text bold

    Returns:
        Colorized text if CODEQUEST_NO_COLOR is not set, otherwise plain text
    """
    if os.getenv("CODEQUEST_NO_COLOR"):
        return text

    prefix = color.value
    if bold:
        prefix = Color.BOLD.value + prefix

    return f"{prefix}{text}{Color.RESET.value}"


def is_verbose() -> bool:
    """Per-instruction tracing is enabled with CODEQUEST_VERBOSE."""
    return os.getenv("CODEQUEST_VERBOSE", "").lower() in ("1", "true", "yes")


# Markers for operation types (color-blind accessible)
LOG_TAG_ENGINE = "[•]"    # Deterministic engine operation
LOG_TAG_SESSION = "[>]"   # Session transition
LOG_TAG_ERROR = "[!]"     # Failure/rejection
LOG_TAG_SUCCESS = "[✓]"   # Success
LOG_TAG_INFO = "[i]"      # Information


def log_engine(message: str) -> None:
    """Log an engine operation (blue)."""
    print(colored(f"{LOG_TAG_ENGINE} {message}", Color.BLUE))


def log_session(message: str) -> None:
    """Log a session state transition (magenta)."""
    print(colored(f"{LOG_TAG_SESSION} {message}", Color.MAGENTA))


def log_error(message: str) -> None:
    """Log a failure or rejected request (red)."""
    print(colored(f"{LOG_TAG_ERROR} {message}", Color.RED))


def log_success(message: str) -> None:
    """Log a success (green)."""
    print(colored(f"{LOG_TAG_SUCCESS} {message}", Color.GREEN))


def log_info(message: str) -> None:
    """Log metadata/info (cyan)."""
    print(colored(f"{LOG_TAG_INFO} {message}", Color.CYAN))
