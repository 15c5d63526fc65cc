"""Text rendering of a world snapshot for logs, examples and tests."""

from __future__ import annotations

from typing import Dict, List, Optional

from .grid import tile_at
from .schemas import Direction, Position, TileType, WorldState


_DEFAULT_TILE_SYMBOLS: Dict[TileType, str] = {
    TileType.EMPTY: " ",
    TileType.FLOOR: ".",
    TileType.WALL: "#",
    TileType.START: "S",
    TileType.GOAL: "G",
    TileType.COIN: "o",
    TileType.GEM: "*",
    TileType.SPIKE: "^",
    TileType.PIT: "x",
    TileType.BUTTON: "b",
    TileType.DOOR: "D",
}

_ROBOT_SYMBOLS: Dict[Direction, str] = {
    Direction.UP: "A",
    Direction.RIGHT: ">",
    Direction.DOWN: "V",
    Direction.LEFT: "<",
}


def render_ascii(
    world: WorldState,
    *,
    symbols: Optional[Dict[TileType, str]] = None,
    show_robot: bool = True,
) -> str:
    """Render the grid as one line per row.

    Cells without a tile render as ``?``. Open doors render as ``d`` so door
    state is visible in a snapshot. The robot is drawn as an arrow showing its
    facing.
    """

    mapping = {**_DEFAULT_TILE_SYMBOLS}
    if symbols:
        mapping.update(symbols)

    robot = world.robot
    lines: List[str] = []
    for row in range(world.grid_size.rows):
        row_chars: List[str] = []
        for col in range(world.grid_size.cols):
            if show_robot and robot.position.row == row and robot.position.col == col:
                row_chars.append(_ROBOT_SYMBOLS[robot.direction])
                continue
            tile = tile_at(world.tiles, Position(row=row, col=col))
            if tile is None:
                row_chars.append("?")
            elif tile.type == TileType.DOOR and tile.is_active:
                row_chars.append("d")
            else:
                row_chars.append(mapping.get(tile.type, "?"))
        lines.append("".join(row_chars))

    return "\n".join(lines)
