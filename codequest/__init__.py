"""
Code Quest - block-program execution engine for a kids' coding game.

Players build a program from command blocks; the engine unrolls its loops,
runs it one instruction per tick on a grid world with buttons, doors, spikes
and collectibles, and scores the outcome.

No rendering, no global session. Catalog and progress store are injected.
"""

__version__ = "0.1.0"

# Session and runtime
from .session import (
    GameSession,
    SessionState,
    InvalidTransitionError,
    LevelLockedError,
)
from .execution import ExecutionController, TickReport, evaluate_goal
from .interpreter import execute_command
from .linearizer import linearize, ProgramTooLongError
from .program import Program
from .scoring import score_failure, score_success, star_rating

# Storage and data
from .catalog import LevelCatalog, load_level
from .persistence import ProgressStore, InMemoryProgressStore, JsonProgressStore

# Core schemas
from .schemas import (
    CommandBlock,
    CommandType,
    Difficulty,
    ExecutionResult,
    ExecutionStep,
    GoalType,
    Level,
    LevelProgress,
)
from .world import (
    Direction,
    GridSize,
    Position,
    Robot,
    Tile,
    TileChange,
    TileType,
    WorldState,
    render_ascii,
)

__all__ = [
    # Session and runtime
    "GameSession",
    "SessionState",
    "InvalidTransitionError",
    "LevelLockedError",
    "ExecutionController",
    "TickReport",
    "evaluate_goal",
    "execute_command",
    "linearize",
    "ProgramTooLongError",
    "Program",
    "score_failure",
    "score_success",
    "star_rating",
    # Storage
    "LevelCatalog",
    "load_level",
    "ProgressStore",
    "InMemoryProgressStore",
    "JsonProgressStore",
    # Schemas
    "CommandBlock",
    "CommandType",
    "Difficulty",
    "ExecutionResult",
    "ExecutionStep",
    "GoalType",
    "Level",
    "LevelProgress",
    # World
    "Direction",
    "GridSize",
    "Position",
    "Robot",
    "Tile",
    "TileChange",
    "TileType",
    "WorldState",
    "render_ascii",
]
