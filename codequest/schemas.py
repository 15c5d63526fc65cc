"""
Pydantic schemas for the Code Quest engine.

All data structures shared between the program model, the interpreter, the
execution controller and the progress store are defined here.

Design Philosophy:
- Level definitions are immutable inputs; runs derive their own WorldState
- Command blocks are flat; loop/if nesting is expressed with marker blocks
- Results and progress records serialize cleanly to JSON for the progress store
"""

from enum import Enum
from typing import List, Optional, Set

from pydantic import BaseModel, Field

from codequest.world import (
    Direction,
    GridSize,
    Position,
    Robot,
    Tile,
    TileChange,
    WorldState,
    initial_tiles,
)


# ============================================================================
# Program Schemas
# ============================================================================


class CommandType(str, Enum):
    """Closed vocabulary of command blocks."""

    MOVE_FORWARD = "move_forward"
    MOVE_BACKWARD = "move_backward"
    TURN_LEFT = "turn_left"
    TURN_RIGHT = "turn_right"
    JUMP = "jump"
    WAIT = "wait"
    INTERACT = "interact"
    LOOP_START = "loop_start"
    LOOP_END = "loop_end"
    IF_START = "if_start"
    IF_ELSE = "if_else"
    IF_END = "if_end"

    @property
    def is_marker(self) -> bool:
        """Loop and if markers structure the program but do nothing at runtime."""
        return self in MARKER_COMMANDS


MARKER_COMMANDS = frozenset(
    {
        CommandType.LOOP_START,
        CommandType.LOOP_END,
        CommandType.IF_START,
        CommandType.IF_ELSE,
        CommandType.IF_END,
    }
)

# Closing markers that become available whenever their opener is.
MARKER_PARTNERS = {
    CommandType.LOOP_START: (CommandType.LOOP_END,),
    CommandType.IF_START: (CommandType.IF_ELSE, CommandType.IF_END),
}

LOOP_REPEAT_MIN = 1
LOOP_REPEAT_MAX = 10
LOOP_REPEAT_DEFAULT = 2


class CommandBlock(BaseModel):
    """One authored block in the player's program."""

    type: CommandType
    instance_id: str = Field(..., description="Unique id of this placed block")
    # Derived from bracket depth by Program after every edit; display only
    nest_level: int = Field(0, ge=0)
    value: Optional[int] = Field(
        None,
        ge=LOOP_REPEAT_MIN,
        le=LOOP_REPEAT_MAX,
        description="Repeat count; only set on loop_start blocks",
    )

    @property
    def repeat_count(self) -> int:
        return self.value or LOOP_REPEAT_DEFAULT


# ============================================================================
# Level Schemas
# ============================================================================


class Difficulty(str, Enum):
    BEGINNER = "beginner"
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"
    EXPERT = "expert"


class GoalType(str, Enum):
    """Win-condition policy evaluated when the instruction stream runs out."""

    REACH_GOAL = "reach_goal"
    COLLECT_ALL = "collect_all"
    COLLECT_AND_REACH = "collect_and_reach"


class Level(BaseModel):
    """Immutable level definition from the catalog.

    A level supplies the grid, the robot's start pose, which commands the
    player may use, the block budget and the win condition. ``optimal_blocks``
    drives star rating; when a level does not set it the block budget is used.
    """

    id: int = Field(..., ge=1)
    name: str
    chapter: int = 1
    chapter_name: str = ""
    description: str = ""
    difficulty: Difficulty = Difficulty.BEGINNER
    grid_size: GridSize
    tiles: List[Tile] = Field(default_factory=list)
    start_position: Position
    start_direction: Direction = Direction.RIGHT
    available_commands: List[CommandType] = Field(default_factory=list)
    max_blocks: int = Field(..., ge=1, description="Block budget for the program")
    optimal_blocks: Optional[int] = Field(None, ge=1)
    goal_type: GoalType = GoalType.REACH_GOAL
    coins_required: int = Field(0, ge=0)
    gems_required: int = Field(0, ge=0)
    hints: List[str] = Field(default_factory=list)

    @property
    def optimal_block_count(self) -> int:
        return self.optimal_blocks if self.optimal_blocks is not None else self.max_blocks

    def allowed_commands(self) -> Set[CommandType]:
        """Commands the editor accepts, including closing markers of allowed openers."""
        allowed = set(self.available_commands)
        for opener, partners in MARKER_PARTNERS.items():
            if opener in allowed:
                allowed.update(partners)
        return allowed

    def initial_world(self) -> WorldState:
        """Derive a fresh WorldState: tiles cloned, doors closed, robot at start."""
        return WorldState(
            grid_size=self.grid_size.model_copy(),
            tiles=initial_tiles(self.tiles),
            robot=Robot(
                position=self.start_position.model_copy(),
                direction=self.start_direction,
            ),
        )


# ============================================================================
# Execution Schemas
# ============================================================================


class ExecutionStep(BaseModel):
    """Outcome of interpreting a single instruction.

    ``robot`` is the robot after the instruction. On a failed step it is the
    robot the player should see (unchanged for a blocked move, standing on the
    spike for a hazard) and ``tile_changes`` is empty.
    """

    command_id: str
    command_type: CommandType
    robot: Robot
    tile_changes: List[TileChange] = Field(default_factory=list)
    message: str = ""
    success: bool = True
    is_last_step: bool = False


class ExecutionResult(BaseModel):
    """Execution result for one terminal run of a level."""

    level_id: int
    completed: bool
    stars: int = Field(0, ge=0, le=3)
    blocks_used: int = Field(0, ge=0)
    optimal_blocks: int = Field(0, ge=0)
    coins_collected: int = 0
    gems_collected: int = 0
    steps: int = Field(0, ge=0, description="Instructions executed, including a failing one")
    time_spent: int = Field(0, ge=0, description="Milliseconds from run start to outcome")
    score: int = 0
    xp_earned: int = 0
    sparks_earned: int = 0
    is_perfect: bool = False
    reason: Optional[str] = Field(None, description="Why the run failed, if it did")


# ============================================================================
# Progress Schemas
# ============================================================================


class LevelProgress(BaseModel):
    """Best-result ledger entry for one level."""

    level_id: int
    completed: bool = False
    stars: int = Field(0, ge=0, le=3)
    best_blocks: Optional[int] = None
    best_time: Optional[int] = Field(None, description="Fastest completed run in ms")
    times_played: int = 0
    unlocked: bool = False
