"""Tests for program editing: budget, command set, nesting and loop repeats."""

from codequest.catalog import LevelCatalog
from codequest.program import Program, assign_nest_levels
from codequest.schemas import CommandBlock, CommandType, Level


def make_level(available, max_blocks: int = 5) -> Level:
    return LevelCatalog().parse_level(
        {
            "id": 1,
            "name": "Editing",
            "layout": ["S...G"],
            "available_commands": [c.value for c in available],
            "max_blocks": max_blocks,
        }
    )


def types(program: Program):
    return [b.type for b in program.blocks]


def test_add_block_appends_and_inserts():
    program = Program(make_level([CommandType.MOVE_FORWARD, CommandType.TURN_LEFT]))

    first = program.add_block(CommandType.MOVE_FORWARD)
    program.add_block(CommandType.TURN_LEFT, index=0)

    assert first is not None
    assert types(program) == [CommandType.TURN_LEFT, CommandType.MOVE_FORWARD]
    assert program.blocks[1].instance_id == first.instance_id


def test_instance_ids_are_unique():
    program = Program(make_level([CommandType.MOVE_FORWARD]))

    for _ in range(5):
        program.add_block(CommandType.MOVE_FORWARD)

    assert len({b.instance_id for b in program.blocks}) == 5


def test_block_budget_is_enforced():
    program = Program(make_level([CommandType.MOVE_FORWARD], max_blocks=2))

    assert program.add_block(CommandType.MOVE_FORWARD) is not None
    assert program.add_block(CommandType.MOVE_FORWARD) is not None
    assert program.is_full
    assert program.remaining_slots == 0

    assert program.add_block(CommandType.MOVE_FORWARD) is None
    assert len(program) == 2


def test_unavailable_command_is_rejected():
    program = Program(make_level([CommandType.MOVE_FORWARD]))

    assert program.add_block(CommandType.JUMP) is None
    assert program.add_block("jump") is None
    assert len(program) == 0


def test_loop_end_allowed_with_loop_start():
    program = Program(make_level([CommandType.MOVE_FORWARD, CommandType.LOOP_START]))

    start = program.add_block(CommandType.LOOP_START)
    program.add_block(CommandType.MOVE_FORWARD)
    end = program.add_block(CommandType.LOOP_END)

    assert start.value == 2
    assert end is not None
    assert end.value is None


def test_nest_levels_follow_brackets():
    program = Program(
        make_level([CommandType.MOVE_FORWARD, CommandType.LOOP_START], max_blocks=10)
    )
    for command_type in (
        CommandType.LOOP_START,
        CommandType.MOVE_FORWARD,
        CommandType.LOOP_START,
        CommandType.MOVE_FORWARD,
        CommandType.LOOP_END,
        CommandType.LOOP_END,
        CommandType.MOVE_FORWARD,
    ):
        program.add_block(command_type)

    assert [b.nest_level for b in program.blocks] == [0, 1, 1, 2, 1, 0, 0]


def test_if_else_lines_up_with_if_start():
    blocks = [
        CommandBlock(type=CommandType.IF_START, instance_id="if"),
        CommandBlock(type=CommandType.WAIT, instance_id="a"),
        CommandBlock(type=CommandType.IF_ELSE, instance_id="else"),
        CommandBlock(type=CommandType.WAIT, instance_id="b"),
        CommandBlock(type=CommandType.IF_END, instance_id="end"),
    ]

    assert [b.nest_level for b in assign_nest_levels(blocks)] == [0, 1, 0, 1, 0]


def test_stray_closer_does_not_go_negative():
    blocks = [
        CommandBlock(type=CommandType.LOOP_END, instance_id="stray"),
        CommandBlock(type=CommandType.WAIT, instance_id="a"),
    ]

    assert [b.nest_level for b in assign_nest_levels(blocks)] == [0, 0]


def test_remove_block():
    program = Program(make_level([CommandType.MOVE_FORWARD]))
    block = program.add_block(CommandType.MOVE_FORWARD)

    assert program.remove_block(block.instance_id) is True
    assert program.remove_block(block.instance_id) is False
    assert len(program) == 0


def test_move_block_clamps_index():
    program = Program(make_level([CommandType.MOVE_FORWARD, CommandType.TURN_LEFT, CommandType.JUMP]))
    forward = program.add_block(CommandType.MOVE_FORWARD)
    program.add_block(CommandType.TURN_LEFT)
    program.add_block(CommandType.JUMP)

    assert program.move_block(forward.instance_id, 99) is True
    assert types(program) == [CommandType.TURN_LEFT, CommandType.JUMP, CommandType.MOVE_FORWARD]

    assert program.move_block(forward.instance_id, -5) is True
    assert types(program)[0] == CommandType.MOVE_FORWARD

    assert program.move_block("missing", 0) is False


def test_move_block_recomputes_nesting():
    program = Program(make_level([CommandType.MOVE_FORWARD, CommandType.LOOP_START]))
    start = program.add_block(CommandType.LOOP_START)
    forward = program.add_block(CommandType.MOVE_FORWARD)
    program.add_block(CommandType.LOOP_END)
    assert program.find(forward.instance_id).nest_level == 1

    program.move_block(start.instance_id, 2)

    assert program.find(forward.instance_id).nest_level == 0


def test_set_loop_repeat_clamps_to_range():
    program = Program(make_level([CommandType.MOVE_FORWARD, CommandType.LOOP_START]))
    loop = program.add_block(CommandType.LOOP_START)

    assert program.set_loop_repeat(loop.instance_id, 25) is True
    assert program.find(loop.instance_id).value == 10

    assert program.set_loop_repeat(loop.instance_id, 0) is True
    assert program.find(loop.instance_id).value == 1

    program.set_loop_repeat(loop.instance_id, 4)
    assert program.find(loop.instance_id).repeat_count == 4


def test_set_loop_repeat_only_for_loop_start():
    program = Program(make_level([CommandType.MOVE_FORWARD]))
    forward = program.add_block(CommandType.MOVE_FORWARD)

    assert program.set_loop_repeat(forward.instance_id, 3) is False
    assert program.set_loop_repeat("missing", 3) is False
    assert program.find(forward.instance_id).value is None


def test_clear_empties_program():
    program = Program(make_level([CommandType.MOVE_FORWARD]))
    program.add_block(CommandType.MOVE_FORWARD)
    program.add_block(CommandType.MOVE_FORWARD)

    program.clear()

    assert len(program) == 0
    assert program.remaining_slots == 5
