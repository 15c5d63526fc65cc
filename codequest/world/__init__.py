"""Grid world: tiles, the robot, and helpers to query and update them."""

from .schemas import (
    Direction,
    GridSize,
    Position,
    Robot,
    Tile,
    TileChange,
    TileType,
    WorldState,
    WALKABLE_TILE_TYPES,
)
from .grid import (
    apply_tile_changes,
    can_enter,
    count_tiles,
    find_door,
    find_goal,
    initial_tiles,
    tile_at,
)
from .helpers import render_ascii

__all__ = [
    "Direction",
    "GridSize",
    "Position",
    "Robot",
    "Tile",
    "TileChange",
    "TileType",
    "WorldState",
    "WALKABLE_TILE_TYPES",
    "apply_tile_changes",
    "can_enter",
    "count_tiles",
    "find_door",
    "find_goal",
    "initial_tiles",
    "tile_at",
    "render_ascii",
]
