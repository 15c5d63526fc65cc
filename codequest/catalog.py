"""
Level catalog: loads JSON level definitions into validated Level models.

Levels are data, not code. Each ``*.json`` file in the levels directory holds
one level; files whose name starts with ``_`` are ignored (drafts, shared
fragments).

Level file structure:
```json
{
  "id": 1,
  "name": "First Steps",
  "chapter": 1,
  "chapter_name": "Sequences",
  "difficulty": "beginner",
  "grid_size": {"rows": 3, "cols": 5},
  "layout": [
    "#####",
    "S...G",
    "#####"
  ],
  "start_direction": "right",
  "available_commands": ["move_forward"],
  "max_blocks": 4,
  "goal_type": "reach_goal",
  "hints": ["The goal is straight ahead!"]
}
```

Tiles can be listed explicitly under ``"tiles"`` (``{"id", "type", "row",
"col"}`` or with a ``"position"`` object) or drawn with ``"layout"``, one
string per row:

    .  floor     _  empty     #  wall     S  start     G  goal
    o  coin      *  gem       ^  spike    x  pit       b  button
    D  door

``start_position`` may be omitted when the grid contains exactly one start
tile. ``grid_size`` may be omitted when a layout is given.

Usage:
    catalog = LevelCatalog()
    level = catalog.load(1)
"""

import json
from pathlib import Path
from typing import Any, Dict, List, Optional

from .config import Config
from .schemas import GoalType, Level
from .world import Position, Tile, TileType


LAYOUT_LEGEND: Dict[str, TileType] = {
    ".": TileType.FLOOR,
    "_": TileType.EMPTY,
    "#": TileType.WALL,
    "S": TileType.START,
    "G": TileType.GOAL,
    "o": TileType.COIN,
    "*": TileType.GEM,
    "^": TileType.SPIKE,
    "x": TileType.PIT,
    "b": TileType.BUTTON,
    "D": TileType.DOOR,
}


class LevelCatalog:
    """Load and validate level definitions from a directory of JSON files.

    Directory structure:
    - Default: Config.LEVELS_DIR ({PROJECT_ROOT}/examples/levels)
    - Override via constructor: LevelCatalog(Path("/custom/levels"))

    Validation (ValueError on failure):
    - Required fields: id, name, available_commands, max_blocks, and tiles or layout
    - Every tile inside the grid, at most one tile per cell, unique tile ids
    - Start position inside the grid
    - Exactly one goal tile for reach_goal / collect_and_reach levels
    - No duplicate level ids across files
    """

    def __init__(self, levels_dir: Optional[Path] = None):
        self.levels_dir = Path(levels_dir) if levels_dir is not None else Config.LEVELS_DIR
        self._levels: Optional[Dict[int, Level]] = None

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def load(self, level_id: int) -> Level:
        """Return the level with ``level_id``.

        Raises:
            FileNotFoundError: If the levels directory does not exist
            KeyError: If no level has this id
            ValueError: If any level file is malformed
        """
        levels = self._index()
        if level_id not in levels:
            raise KeyError(f"Level {level_id} not found in {self.levels_dir}")
        return levels[level_id]

    def list_levels(self) -> List[Level]:
        levels = self._index()
        return [levels[key] for key in sorted(levels)]

    def next_level(self, level_id: int) -> Optional[Level]:
        """Return the level following ``level_id`` in id order, if any."""
        for level in self.list_levels():
            if level.id > level_id:
                return level
        return None

    def levels_by_chapter(self, chapter: int) -> List[Level]:
        return [level for level in self.list_levels() if level.chapter == chapter]

    def chapters(self) -> List[Dict[str, Any]]:
        """Summaries of each chapter: id, name and level ids, in chapter order."""
        summary: Dict[int, Dict[str, Any]] = {}
        for level in self.list_levels():
            entry = summary.setdefault(
                level.chapter,
                {"chapter": level.chapter, "name": level.chapter_name, "levels": []},
            )
            entry["levels"].append(level.id)
        return [summary[key] for key in sorted(summary)]

    def get_level_info(self, level_id: int) -> Dict[str, Any]:
        """Get display metadata for a level."""
        level = self.load(level_id)
        return {
            "id": level.id,
            "name": level.name,
            "chapter": level.chapter,
            "chapter_name": level.chapter_name,
            "difficulty": level.difficulty.value,
            "max_blocks": level.max_blocks,
            "goal_type": level.goal_type.value,
        }

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    def _index(self) -> Dict[int, Level]:
        if self._levels is None:
            self._levels = self._load_all()
        return self._levels

    def _load_all(self) -> Dict[int, Level]:
        if not self.levels_dir.exists():
            raise FileNotFoundError(f"Levels directory not found: {self.levels_dir}")

        levels: Dict[int, Level] = {}
        for path in sorted(self.levels_dir.glob("*.json")):
            if path.name.startswith("_"):
                continue
            level = self.parse_level(json.loads(path.read_text("utf-8")), source=path.name)
            if level.id in levels:
                raise ValueError(f"Duplicate level id {level.id} in {path.name}")
            levels[level.id] = level
        return levels

    def parse_level(self, data: Dict[str, Any], *, source: str = "<level>") -> Level:
        """Convert one raw level dict into a validated Level.

        Args:
            data: Parsed JSON object
            source: Name used in error messages

        Raises:
            ValueError: If required fields are missing or the grid is inconsistent
        """
        self._validate_fields(data, source)

        tiles = self._parse_tiles(data, source)
        grid_size = data.get("grid_size")
        if grid_size is None:
            layout = data["layout"]
            grid_size = {"rows": len(layout), "cols": max(len(row) for row in layout)}

        start = data.get("start_position")
        if start is None:
            starts = [tile for tile in tiles if tile.type == TileType.START]
            if len(starts) != 1:
                raise ValueError(
                    f"{source}: start_position missing and grid has {len(starts)} start tiles"
                )
            start = starts[0].position.model_dump()
        elif isinstance(start, (list, tuple)):
            start = {"row": int(start[0]), "col": int(start[1])}

        fields = {
            key: value
            for key, value in data.items()
            if key not in ("layout", "tiles", "grid_size", "start_position")
        }
        level = Level(**fields, grid_size=grid_size, tiles=tiles, start_position=start)
        self._validate_grid(level, source)
        return level

    def _validate_fields(self, data: Dict[str, Any], source: str) -> None:
        required = ["id", "name", "available_commands", "max_blocks"]
        missing = [field for field in required if field not in data]
        if "tiles" not in data and "layout" not in data:
            missing.append("tiles|layout")
        if "layout" not in data and "grid_size" not in data:
            missing.append("grid_size")

        if missing:
            raise ValueError(f"{source}: level missing required fields: {missing}")

    def _parse_tiles(self, data: Dict[str, Any], source: str) -> List[Tile]:
        if "layout" in data:
            tiles: List[Tile] = []
            for row, line in enumerate(data["layout"]):
                for col, char in enumerate(line):
                    if char not in LAYOUT_LEGEND:
                        raise ValueError(f"{source}: unknown layout symbol {char!r} at ({row}, {col})")
                    tiles.append(
                        Tile(
                            id=f"t-{row}-{col}",
                            type=LAYOUT_LEGEND[char],
                            position=Position(row=row, col=col),
                        )
                    )
            # Explicit entries may refine layout tiles (e.g. button links)
            overrides = {item["id"]: item for item in data.get("tiles", []) if isinstance(item, dict)}
            return [
                tile.model_copy(update=self._tile_extras(overrides[tile.id])) if tile.id in overrides else tile
                for tile in tiles
            ]

        tiles = []
        for item in data["tiles"]:
            if not isinstance(item, dict):
                continue
            if "position" in item:
                position = item["position"]
            else:
                position = {"row": item.get("row"), "col": item.get("col")}
            if position.get("row") is None or position.get("col") is None:
                raise ValueError(f"{source}: tile {item.get('id')!r} has no position")
            tiles.append(
                Tile(
                    id=item.get("id", f"t-{position['row']}-{position['col']}"),
                    type=item["type"],
                    position=position,
                    is_active=item.get("is_active"),
                    linked_to=item.get("linked_to"),
                )
            )
        return tiles

    @staticmethod
    def _tile_extras(item: Dict[str, Any]) -> Dict[str, Any]:
        return {key: item[key] for key in ("is_active", "linked_to") if key in item}

    def _validate_grid(self, level: Level, source: str) -> None:
        seen_positions = set()
        seen_ids = set()
        for tile in level.tiles:
            if not level.grid_size.contains(tile.position):
                raise ValueError(f"{source}: tile {tile.id} is outside the grid")
            key = tile.position.as_tuple()
            if key in seen_positions:
                raise ValueError(f"{source}: more than one tile at {key}")
            if tile.id in seen_ids:
                raise ValueError(f"{source}: duplicate tile id {tile.id}")
            seen_positions.add(key)
            seen_ids.add(tile.id)

        if not level.grid_size.contains(level.start_position):
            raise ValueError(f"{source}: start position is outside the grid")

        if level.goal_type in (GoalType.REACH_GOAL, GoalType.COLLECT_AND_REACH):
            goals = sum(1 for tile in level.tiles if tile.type == TileType.GOAL)
            if goals != 1:
                raise ValueError(
                    f"{source}: {level.goal_type.value} levels need exactly one goal tile, found {goals}"
                )


def load_level(level_id: int) -> Level:
    """Convenience function to load a level from the default catalog.

    Args:
        level_id: Level to load

    Returns:
        The validated Level
    """
    catalog = LevelCatalog()
    return catalog.load(level_id)
