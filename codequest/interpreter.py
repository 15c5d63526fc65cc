"""
Command interpreter: executes one instruction against the world.

``execute_command`` is a pure function. It receives the robot and tiles as
they are before the instruction and returns an ExecutionStep describing the
robot afterwards plus the tile changes to apply. Inputs are never mutated,
so the caller decides whether and when to commit the step.

Blocked moves and hazards are not exceptions. They come back as a step with
``success=False`` and a message for the player; the execution controller
turns that into a failed run.

Landing rules are shared by every command that changes the robot's cell
(forward, backward, jump):
- coin / gem: counter +1, tile becomes floor (so it can only be taken once)
- spike: the run fails with "Ouch! Hit a spike!" (walking only; a jump
  cannot land on a spike)
- button: the level's door opens and becomes floor
"""

from __future__ import annotations

from typing import Callable, Dict, List, Optional, Sequence, Tuple

from .schemas import CommandBlock, CommandType, ExecutionStep, Level
from .world import (
    Position,
    Robot,
    Tile,
    TileChange,
    TileType,
    can_enter,
    find_door,
    tile_at,
)


SPIKE_MESSAGE = "Ouch! Hit a spike!"
BLOCKED_FORWARD_MESSAGE = "Cannot move forward - blocked!"
BLOCKED_BACKWARD_MESSAGE = "Cannot move backward - blocked!"
BLOCKED_JUMP_MESSAGE = "Cannot jump there!"


# (robot, tile_changes, message, success)
_Outcome = Tuple[Robot, List[TileChange], str, bool]
_Handler = Callable[[Robot, Sequence[Tile], Level], _Outcome]


def execute_command(
    command: CommandBlock,
    robot: Robot,
    tiles: Sequence[Tile],
    level: Level,
) -> ExecutionStep:
    """Interpret ``command`` for ``robot`` standing in ``tiles``.

    Args:
        command: Instruction from the linearized stream
        robot: Robot before the instruction
        tiles: Current tiles of the run (not the level's pristine tiles)
        level: Level definition, used for grid bounds

    Returns:
        ExecutionStep with the resulting robot, tile changes and message.
        ``is_last_step`` is left False; the controller knows the stream length.
    """
    # Motion flags describe the current step only
    settled = robot.model_copy(update={"is_moving": False, "is_jumping": False})

    handler = _HANDLERS.get(command.type)
    if handler is None:
        # Loop/if markers should be gone after linearization; treat as no-ops
        new_robot, changes, message, success = settled, [], "", True
    else:
        new_robot, changes, message, success = handler(settled, tiles, level)

    return ExecutionStep(
        command_id=command.instance_id,
        command_type=command.type,
        robot=new_robot,
        tile_changes=changes,
        message=message,
        success=success,
    )


# ----------------------------------------------------------------------
# Movement
# ----------------------------------------------------------------------


def _target(robot: Robot, distance: int) -> Position:
    d_row, d_col = robot.direction.vector
    return robot.position.offset(d_row * distance, d_col * distance)


def _land(
    robot: Robot,
    destination: Position,
    tiles: Sequence[Tile],
    **flags: bool,
) -> _Outcome:
    """Place the robot on ``destination`` and resolve what it landed on."""
    moved = robot.model_copy(update={"position": destination, **flags})
    tile = tile_at(tiles, destination)
    changes: List[TileChange] = []

    if tile is None:
        return moved, changes, "", True

    if tile.type == TileType.SPIKE:
        return moved, [], SPIKE_MESSAGE, False

    if tile.type == TileType.COIN:
        moved = moved.model_copy(update={"coins": moved.coins + 1})
        changes.append(TileChange(id=tile.id, type=TileType.FLOOR))
        return moved, changes, "Picked up a coin!", True

    if tile.type == TileType.GEM:
        moved = moved.model_copy(update={"gems": moved.gems + 1})
        changes.append(TileChange(id=tile.id, type=TileType.FLOOR))
        return moved, changes, "Picked up a gem!", True

    if tile.type == TileType.BUTTON:
        door = find_door(tiles, tile)
        if door is not None:
            changes.append(TileChange(id=door.id, is_active=True, type=TileType.FLOOR))
            return moved, changes, "A door opened!", True

    return moved, changes, "", True


def _step(robot: Robot, tiles: Sequence[Tile], level: Level, *, distance: int, blocked: str) -> _Outcome:
    destination = _target(robot, distance)
    if not can_enter(list(tiles), level.grid_size, destination):
        return robot, [], blocked, False
    return _land(robot, destination, tiles, is_moving=True)


def _move_forward(robot: Robot, tiles: Sequence[Tile], level: Level) -> _Outcome:
    return _step(robot, tiles, level, distance=1, blocked=BLOCKED_FORWARD_MESSAGE)


def _move_backward(robot: Robot, tiles: Sequence[Tile], level: Level) -> _Outcome:
    return _step(robot, tiles, level, distance=-1, blocked=BLOCKED_BACKWARD_MESSAGE)


def _jump(robot: Robot, tiles: Sequence[Tile], level: Level) -> _Outcome:
    # Only the landing cell is checked; whatever sits in between is hopped over
    destination = _target(robot, 2)
    landing = tile_at(tiles, destination)
    if not can_enter(list(tiles), level.grid_size, destination) or (
        landing is not None and landing.type == TileType.SPIKE
    ):
        return robot, [], BLOCKED_JUMP_MESSAGE, False
    return _land(robot, destination, tiles, is_jumping=True)


# ----------------------------------------------------------------------
# In-place commands
# ----------------------------------------------------------------------


def _turn_left(robot: Robot, tiles: Sequence[Tile], level: Level) -> _Outcome:
    return robot.model_copy(update={"direction": robot.direction.turn_left()}), [], "", True


def _turn_right(robot: Robot, tiles: Sequence[Tile], level: Level) -> _Outcome:
    return robot.model_copy(update={"direction": robot.direction.turn_right()}), [], "", True


def _wait(robot: Robot, tiles: Sequence[Tile], level: Level) -> _Outcome:
    return robot, [], "", True


def _interact(robot: Robot, tiles: Sequence[Tile], level: Level) -> _Outcome:
    facing: Optional[Tile] = tile_at(tiles, _target(robot, 1))
    if facing is None or facing.type != TileType.BUTTON:
        return robot, [], "", True

    door = find_door(tiles, facing)
    if door is None:
        return robot, [], "", True

    now_open = not door.is_active
    message = "The door opened!" if now_open else "The door closed!"
    return robot, [TileChange(id=door.id, is_active=now_open)], message, True


_HANDLERS: Dict[CommandType, _Handler] = {
    CommandType.MOVE_FORWARD: _move_forward,
    CommandType.MOVE_BACKWARD: _move_backward,
    CommandType.TURN_LEFT: _turn_left,
    CommandType.TURN_RIGHT: _turn_right,
    CommandType.JUMP: _jump,
    CommandType.WAIT: _wait,
    CommandType.INTERACT: _interact,
}
