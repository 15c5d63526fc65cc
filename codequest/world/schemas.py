"""Pydantic schemas for the grid world.

These models describe the tiles and the robot that the interpreter moves
around. Snapshots are never mutated in place by the engine: every step builds
new instances with ``model_copy(update=...)`` so a failed or paused run can
always be inspected as it was.
"""

from __future__ import annotations

from enum import Enum
from typing import List, Optional, Tuple

from pydantic import BaseModel, Field


class Direction(str, Enum):
    """Facing of the robot.

    Turning walks a fixed 4-cycle (up, right, down, left) rather than rotating
    a vector, so the order below is significant.
    """

    UP = "up"
    RIGHT = "right"
    DOWN = "down"
    LEFT = "left"

    @property
    def vector(self) -> Tuple[int, int]:
        """(row, col) delta for one step in this direction."""
        return _VECTORS[self]

    def turn_right(self) -> "Direction":
        mapping = {
            Direction.UP: Direction.RIGHT,
            Direction.RIGHT: Direction.DOWN,
            Direction.DOWN: Direction.LEFT,
            Direction.LEFT: Direction.UP,
        }
        return mapping[self]

    def turn_left(self) -> "Direction":
        mapping = {
            Direction.UP: Direction.LEFT,
            Direction.LEFT: Direction.DOWN,
            Direction.DOWN: Direction.RIGHT,
            Direction.RIGHT: Direction.UP,
        }
        return mapping[self]

    def reverse(self) -> "Direction":
        mapping = {
            Direction.UP: Direction.DOWN,
            Direction.DOWN: Direction.UP,
            Direction.LEFT: Direction.RIGHT,
            Direction.RIGHT: Direction.LEFT,
        }
        return mapping[self]


_VECTORS = {
    Direction.UP: (-1, 0),
    Direction.DOWN: (1, 0),
    Direction.LEFT: (0, -1),
    Direction.RIGHT: (0, 1),
}


class TileType(str, Enum):
    """Closed set of tile kinds a level can contain."""

    EMPTY = "empty"
    FLOOR = "floor"
    WALL = "wall"
    START = "start"
    GOAL = "goal"
    COIN = "coin"
    GEM = "gem"
    SPIKE = "spike"
    PIT = "pit"
    BUTTON = "button"
    DOOR = "door"


# Doors are handled separately: walkable only while active (open).
WALKABLE_TILE_TYPES = frozenset(
    {
        TileType.EMPTY,
        TileType.FLOOR,
        TileType.START,
        TileType.GOAL,
        TileType.COIN,
        TileType.GEM,
        TileType.BUTTON,
    }
)


class Position(BaseModel):
    """A (row, col) cell on the level grid. Row 0 is the top row."""

    row: int
    col: int

    def offset(self, d_row: int, d_col: int) -> "Position":
        return Position(row=self.row + d_row, col=self.col + d_col)

    def as_tuple(self) -> Tuple[int, int]:
        return (self.row, self.col)


class GridSize(BaseModel):
    rows: int = Field(..., ge=1)
    cols: int = Field(..., ge=1)

    def contains(self, position: Position) -> bool:
        return 0 <= position.row < self.rows and 0 <= position.col < self.cols


class Tile(BaseModel):
    """One cell of the level.

    ``is_active`` tracks door state (open when True). ``linked_to`` names the
    door a button is meant to control; it is carried through from level data
    but door resolution currently uses the first door in the level (see
    ``codequest.world.grid.find_door``).
    """

    id: str
    type: TileType
    position: Position
    is_active: Optional[bool] = None
    linked_to: Optional[str] = None

    @property
    def is_walkable(self) -> bool:
        if self.type == TileType.DOOR:
            return bool(self.is_active)
        return self.type in WALKABLE_TILE_TYPES


class Robot(BaseModel):
    """The actor driven by the player's program."""

    position: Position
    direction: Direction = Direction.RIGHT
    is_jumping: bool = False
    is_moving: bool = False
    coins: int = 0
    gems: int = 0
    energy: int = 100


class TileChange(BaseModel):
    """Partial update for a single tile, addressed by tile id."""

    id: str
    type: Optional[TileType] = None
    is_active: Optional[bool] = None


class WorldState(BaseModel):
    """Live snapshot of a run: the grid tiles plus the robot."""

    grid_size: GridSize
    tiles: List[Tile] = Field(default_factory=list)
    robot: Robot
