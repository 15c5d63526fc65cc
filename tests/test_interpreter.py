"""Tests for single-instruction execution against a grid world."""

from typing import List

import pytest

from codequest.catalog import LevelCatalog
from codequest.interpreter import (
    _HANDLERS,
    BLOCKED_BACKWARD_MESSAGE,
    BLOCKED_FORWARD_MESSAGE,
    BLOCKED_JUMP_MESSAGE,
    SPIKE_MESSAGE,
    execute_command,
)
from codequest.schemas import CommandBlock, CommandType, GoalType, Level
from codequest.world import (
    Direction,
    Position,
    Robot,
    Tile,
    TileType,
    apply_tile_changes,
    tile_at,
)


def make_level(*layout: str) -> Level:
    return LevelCatalog().parse_level(
        {
            "id": 1,
            "name": "Test",
            "layout": list(layout),
            "available_commands": [c.value for c in CommandType],
            "max_blocks": 10,
            "goal_type": GoalType.COLLECT_ALL.value,
        }
    )


def command(command_type: CommandType) -> CommandBlock:
    return CommandBlock(type=command_type, instance_id=f"cmd-{command_type.value}")


def robot_at(row: int, col: int, direction: Direction = Direction.RIGHT, **extra) -> Robot:
    return Robot(position=Position(row=row, col=col), direction=direction, **extra)


def run(level: Level, robot: Robot, tiles: List[Tile], *commands: CommandType):
    """Execute commands in order, committing tile changes between them."""
    step = None
    for command_type in commands:
        step = execute_command(command(command_type), robot, tiles, level)
        robot = step.robot
        tiles = apply_tile_changes(tiles, step.tile_changes)
    return step, robot, tiles


def test_move_forward_onto_floor():
    level = make_level("S.G")
    world = level.initial_world()

    step = execute_command(command(CommandType.MOVE_FORWARD), world.robot, world.tiles, level)

    assert step.success is True
    assert step.robot.position == Position(row=0, col=1)
    assert step.robot.is_moving is True
    assert step.robot.is_jumping is False
    assert step.message == ""
    assert step.command_type == CommandType.MOVE_FORWARD
    assert step.command_id == "cmd-move_forward"


def test_move_off_grid_fails_without_moving():
    level = make_level("S.G")
    robot = robot_at(0, 0, Direction.LEFT)

    step = execute_command(command(CommandType.MOVE_FORWARD), robot, level.initial_world().tiles, level)

    assert step.success is False
    assert step.message == BLOCKED_FORWARD_MESSAGE
    assert step.robot.position == robot.position
    assert step.tile_changes == []


@pytest.mark.parametrize(
    "row,col,direction",
    [
        (0, 1, Direction.UP),
        (0, 1, Direction.DOWN),
        (0, 0, Direction.LEFT),
        (0, 2, Direction.RIGHT),
    ],
)
def test_move_off_each_edge_fails(row, col, direction):
    level = make_level("S.G")
    robot = robot_at(row, col, direction)

    step = execute_command(command(CommandType.MOVE_FORWARD), robot, level.initial_world().tiles, level)

    assert step.success is False
    assert step.message == BLOCKED_FORWARD_MESSAGE
    assert step.robot.position == robot.position


def test_move_into_wall_fails():
    level = make_level("S#G")
    world = level.initial_world()

    step = execute_command(command(CommandType.MOVE_FORWARD), world.robot, world.tiles, level)

    assert step.success is False
    assert step.robot.position == Position(row=0, col=0)


def test_empty_tile_is_walkable():
    level = make_level("S_G")
    world = level.initial_world()

    step = execute_command(command(CommandType.MOVE_FORWARD), world.robot, world.tiles, level)

    assert step.success is True
    assert step.robot.position == Position(row=0, col=1)


def test_move_into_missing_tile_fails():
    level = make_level("S.G")
    world = level.initial_world()
    tiles = [tile for tile in world.tiles if tile.id != "t-0-1"]

    step = execute_command(command(CommandType.MOVE_FORWARD), world.robot, tiles, level)

    assert step.success is False
    assert step.message == BLOCKED_FORWARD_MESSAGE


def test_move_backward_keeps_facing():
    level = make_level("S.G")
    robot = robot_at(0, 1)

    step = execute_command(command(CommandType.MOVE_BACKWARD), robot, level.initial_world().tiles, level)

    assert step.success is True
    assert step.robot.position == Position(row=0, col=0)
    assert step.robot.direction == Direction.RIGHT


def test_move_backward_blocked_message():
    level = make_level("S.G")
    world = level.initial_world()

    step = execute_command(command(CommandType.MOVE_BACKWARD), world.robot, world.tiles, level)

    assert step.success is False
    assert step.message == BLOCKED_BACKWARD_MESSAGE


def test_turns_rotate_in_place():
    level = make_level("S.G")
    world = level.initial_world()

    left = execute_command(command(CommandType.TURN_LEFT), world.robot, world.tiles, level)
    right = execute_command(command(CommandType.TURN_RIGHT), world.robot, world.tiles, level)

    assert left.robot.direction == Direction.UP
    assert right.robot.direction == Direction.DOWN
    assert left.robot.position == world.robot.position

    _, robot, _ = run(level, world.robot, world.tiles, *[CommandType.TURN_RIGHT] * 4)
    assert robot.direction == Direction.RIGHT


def test_motion_flags_only_describe_current_step():
    level = make_level("S.G")
    world = level.initial_world()

    step, robot, _ = run(level, world.robot, world.tiles, CommandType.MOVE_FORWARD, CommandType.WAIT)

    assert step.success is True
    assert robot.is_moving is False
    assert robot.position == Position(row=0, col=1)


def test_coin_is_collected_once():
    level = make_level("So.G")
    world = level.initial_world()

    step = execute_command(command(CommandType.MOVE_FORWARD), world.robot, world.tiles, level)
    assert step.robot.coins == 1
    assert step.message == "Picked up a coin!"
    assert [(c.id, c.type) for c in step.tile_changes] == [("t-0-1", TileType.FLOOR)]

    _, robot, tiles = run(
        level,
        world.robot,
        world.tiles,
        CommandType.MOVE_FORWARD,
        CommandType.MOVE_BACKWARD,
        CommandType.MOVE_FORWARD,
    )
    assert robot.coins == 1
    assert tile_at(tiles, Position(row=0, col=1)).type == TileType.FLOOR


def test_gem_is_collected():
    level = make_level("S*G")
    world = level.initial_world()

    step = execute_command(command(CommandType.MOVE_FORWARD), world.robot, world.tiles, level)

    assert step.robot.gems == 1
    assert step.robot.coins == 0
    assert step.message == "Picked up a gem!"


def test_spike_fails_regardless_of_collectibles():
    level = make_level("S^G")
    robot = robot_at(0, 0, coins=3, gems=2)

    step = execute_command(command(CommandType.MOVE_FORWARD), robot, level.initial_world().tiles, level)

    assert step.success is False
    assert step.message == SPIKE_MESSAGE
    assert step.robot.position == Position(row=0, col=1)
    assert step.tile_changes == []


def test_button_opens_door():
    level = make_level("SbD.G")
    world = level.initial_world()

    step = execute_command(command(CommandType.MOVE_FORWARD), world.robot, world.tiles, level)

    assert step.success is True
    assert step.message == "A door opened!"
    assert len(step.tile_changes) == 1
    change = step.tile_changes[0]
    assert change.id == "t-0-2"
    assert change.is_active is True
    assert change.type == TileType.FLOOR

    _, robot, _ = run(
        level,
        world.robot,
        world.tiles,
        CommandType.MOVE_FORWARD,
        CommandType.MOVE_FORWARD,
        CommandType.MOVE_FORWARD,
    )
    assert robot.position == Position(row=0, col=3)


def test_closed_door_blocks_movement():
    level = make_level("S.D.G")
    world = level.initial_world()

    step, robot, _ = run(
        level, world.robot, world.tiles, CommandType.MOVE_FORWARD, CommandType.MOVE_FORWARD
    )

    assert step.success is False
    assert step.message == BLOCKED_FORWARD_MESSAGE
    assert robot.position == Position(row=0, col=1)


def test_interact_toggles_door_from_facing_button():
    level = make_level("SbD.G")
    world = level.initial_world()

    opened, robot, tiles = run(level, world.robot, world.tiles, CommandType.INTERACT)
    assert opened.message == "The door opened!"
    assert tile_at(tiles, Position(row=0, col=2)).is_active is True
    assert robot.position == world.robot.position

    closed, _, tiles = run(level, robot, tiles, CommandType.INTERACT)
    assert closed.message == "The door closed!"
    assert tile_at(tiles, Position(row=0, col=2)).is_active is False


def test_interact_without_button_does_nothing():
    level = make_level("S.G")
    world = level.initial_world()

    step = execute_command(command(CommandType.INTERACT), world.robot, world.tiles, level)

    assert step.success is True
    assert step.tile_changes == []
    assert step.robot == world.robot


def test_jump_clears_pit():
    level = make_level("SxG")
    world = level.initial_world()

    step = execute_command(command(CommandType.JUMP), world.robot, world.tiles, level)

    assert step.success is True
    assert step.robot.position == Position(row=0, col=2)
    assert step.robot.is_jumping is True
    assert step.robot.is_moving is False


def test_jump_onto_wall_fails():
    level = make_level("S.#G")
    world = level.initial_world()

    step = execute_command(command(CommandType.JUMP), world.robot, world.tiles, level)

    assert step.success is False
    assert step.message == BLOCKED_JUMP_MESSAGE
    assert step.robot.position == world.robot.position


def test_jump_cannot_land_on_spike():
    level = make_level("S.^G")
    world = level.initial_world()

    step = execute_command(command(CommandType.JUMP), world.robot, world.tiles, level)

    assert step.success is False
    assert step.message == BLOCKED_JUMP_MESSAGE
    assert step.robot.position == world.robot.position
    assert step.tile_changes == []


def test_jump_off_grid_fails():
    level = make_level("S.G")
    robot = robot_at(0, 1)

    step = execute_command(command(CommandType.JUMP), robot, level.initial_world().tiles, level)

    assert step.success is False
    assert step.message == BLOCKED_JUMP_MESSAGE


def test_jump_landing_on_coin_collects_it():
    level = make_level("S#oG")
    world = level.initial_world()

    step = execute_command(command(CommandType.JUMP), world.robot, world.tiles, level)

    assert step.success is True
    assert step.robot.coins == 1


def test_pit_blocks_walking():
    level = make_level("SxG")
    world = level.initial_world()

    step = execute_command(command(CommandType.MOVE_FORWARD), world.robot, world.tiles, level)

    assert step.success is False


def test_markers_are_no_ops():
    level = make_level("S.G")
    world = level.initial_world()

    for marker in (CommandType.LOOP_START, CommandType.IF_START, CommandType.IF_ELSE, CommandType.IF_END):
        step = execute_command(command(marker), world.robot, world.tiles, level)
        assert step.success is True
        assert step.robot == world.robot
        assert step.tile_changes == []


def test_inputs_are_not_mutated():
    level = make_level("SobDG")
    world = level.initial_world()
    robot_before = world.robot.model_copy(deep=True)
    tiles_before = [tile.model_copy(deep=True) for tile in world.tiles]

    for command_type in (CommandType.MOVE_FORWARD, CommandType.JUMP, CommandType.INTERACT):
        execute_command(command(command_type), world.robot, world.tiles, level)

    assert world.robot == robot_before
    assert world.tiles == tiles_before


def test_every_command_is_handled_or_a_marker():
    markers = {c for c in CommandType if c.is_marker}

    assert set(_HANDLERS) | markers == set(CommandType)
    assert not set(_HANDLERS) & markers
