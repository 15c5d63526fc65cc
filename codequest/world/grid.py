"""Grid queries and tile updates used by the interpreter.

All helpers are pure: they read tile lists and return new objects, leaving
their inputs untouched.
"""

from __future__ import annotations

from typing import Dict, Iterable, List, Optional

from .schemas import GridSize, Position, Tile, TileChange, TileType


def tile_at(tiles: Iterable[Tile], position: Position) -> Optional[Tile]:
    """Return the tile occupying ``position`` or None for a hole in the map."""
    for tile in tiles:
        if tile.position.row == position.row and tile.position.col == position.col:
            return tile
    return None


def can_enter(tiles: List[Tile], grid_size: GridSize, position: Position) -> bool:
    """Check whether the robot may step (or land) on ``position``.

    A cell can be entered when it is inside the grid, has a tile, and that
    tile is walkable. Spikes are the exception: they are not walkable, but they
    do not block movement either. Entering one is resolved by the interpreter
    as a hazard failure instead of a blocked move.
    """
    if not grid_size.contains(position):
        return False
    tile = tile_at(tiles, position)
    if tile is None:
        return False
    return tile.is_walkable or tile.type == TileType.SPIKE


def find_door(tiles: Iterable[Tile], button: Optional[Tile] = None) -> Optional[Tile]:
    """Resolve the door controlled by ``button``.

    Currently every button drives the first door tile in the level and the
    button's ``linked_to`` is ignored. Levels with more than one door would
    need this to honour the link instead.
    """
    for tile in tiles:
        if tile.type == TileType.DOOR:
            return tile
    return None


def find_goal(tiles: Iterable[Tile]) -> Optional[Tile]:
    for tile in tiles:
        if tile.type == TileType.GOAL:
            return tile
    return None


def apply_tile_changes(tiles: List[Tile], changes: Iterable[TileChange]) -> List[Tile]:
    """Return a new tile list with ``changes`` merged in.

    Only fields set on a change are applied, so ``TileChange(id=..., is_active=True)``
    leaves the tile type alone. Unknown ids are ignored.
    """
    updates: Dict[str, dict] = {}
    for change in changes:
        fields = change.model_dump(exclude={"id"}, exclude_none=True)
        updates.setdefault(change.id, {}).update(fields)

    if not updates:
        return list(tiles)

    return [
        tile.model_copy(update=updates[tile.id]) if tile.id in updates else tile
        for tile in tiles
    ]


def initial_tiles(tiles: Iterable[Tile]) -> List[Tile]:
    """Clone level tiles for a fresh run. Every door starts closed."""
    return [
        tile.model_copy(update={"is_active": False}) if tile.type == TileType.DOOR
        else tile.model_copy()
        for tile in tiles
    ]


def count_tiles(tiles: Iterable[Tile], tile_type: TileType) -> int:
    return sum(1 for tile in tiles if tile.type == tile_type)
