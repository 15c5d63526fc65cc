"""
Code Quest Configuration

Loads configuration from environment variables with sensible defaults.
"""

import os
from pathlib import Path
from dotenv import load_dotenv

# Load .env file if it exists
load_dotenv()


class Config:
    """Engine configuration loaded from environment variables."""

    # Project Paths
    PROJECT_ROOT: Path = Path(__file__).parent.parent
    LEVELS_DIR: Path = Path(
        os.getenv("CODEQUEST_LEVELS_DIR", str(PROJECT_ROOT / "examples" / "levels"))
    )
    PROGRESS_DIR: Path = Path(os.getenv("CODEQUEST_PROGRESS_DIR", "codequest_progress"))

    # Execution pacing. Tick speed is milliseconds between instructions; only
    # the values in TICK_SPEEDS are accepted by a session.
    TICK_SPEEDS: dict[int, str] = {800: "1x", 400: "2x", 200: "4x"}
    DEFAULT_TICK_MS: int = int(os.getenv("CODEQUEST_TICK_MS", "800"))

    # Upper bound on the unrolled instruction stream
    MAX_INSTRUCTIONS: int = int(os.getenv("CODEQUEST_MAX_INSTRUCTIONS", "1000"))

    # Pre-run countdown (3 beats of 0.8s plus a 0.5s "go")
    COUNTDOWN_SECONDS: float = float(os.getenv("CODEQUEST_COUNTDOWN_SECONDS", "2.9"))

    @classmethod
    def validate(cls) -> None:
        """Validate configuration and raise errors if values are unusable."""
        if cls.DEFAULT_TICK_MS not in cls.TICK_SPEEDS:
            raise ValueError(
                f"CODEQUEST_TICK_MS must be one of {sorted(cls.TICK_SPEEDS)}, "
                f"got {cls.DEFAULT_TICK_MS}"
            )

        if cls.MAX_INSTRUCTIONS < 1:
            raise ValueError("CODEQUEST_MAX_INSTRUCTIONS must be at least 1")

        if cls.COUNTDOWN_SECONDS < 0:
            raise ValueError("CODEQUEST_COUNTDOWN_SECONDS cannot be negative")

    @classmethod
    def display(cls) -> str:
        """Return a formatted string showing current configuration."""
        lines = [
            "Code Quest Configuration:",
            f"  Levels: {cls.LEVELS_DIR}",
            f"  Progress: {cls.PROGRESS_DIR}",
            f"  Tick Speed: {cls.DEFAULT_TICK_MS}ms ({cls.TICK_SPEEDS.get(cls.DEFAULT_TICK_MS, '?')})",
            f"  Max Instructions: {cls.MAX_INSTRUCTIONS}",
            f"  Countdown: {cls.COUNTDOWN_SECONDS}s",
        ]
        return "\n".join(lines)
