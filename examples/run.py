"""
Code Quest demo: plays the first levels of the example catalog headlessly.

Each level is solved with a scripted program, ticking at the fastest speed
and printing the grid after every instruction.

Run: python examples/run.py
"""

import asyncio
import tempfile
from pathlib import Path

from codequest import (
    CommandType,
    GameSession,
    JsonProgressStore,
    LevelCatalog,
    SessionState,
    render_ascii,
)


LEVELS_DIR = Path(__file__).parent / "levels"

F = CommandType.MOVE_FORWARD
L = CommandType.TURN_LEFT
R = CommandType.TURN_RIGHT
J = CommandType.JUMP

SOLUTIONS = {
    1: [F, F, F, F],
    2: [F, F, R, F, F, L, F],
    3: [F, F, F, F, F],
    4: [CommandType.LOOP_START, F, CommandType.LOOP_END],
    5: [CommandType.LOOP_START, F, CommandType.LOOP_END],
    6: [F, J, J, F],
}
LOOP_REPEATS = {4: 7, 5: 4}


async def play_level(session: GameSession, level_id: int) -> None:
    level = await session.select_level(level_id)
    await session.run_countdown(seconds=0)

    for command in SOLUTIONS[level_id]:
        block = session.add_block(command)
        if block and command == CommandType.LOOP_START:
            session.set_loop_repeat(block.instance_id, LOOP_REPEATS[level_id])

    print(f"\n=== Level {level.id}: {level.name} ===")
    print(render_ascii(session.world))

    session.run()
    while session.state == SessionState.EXECUTING:
        await asyncio.sleep(session.tick_ms / 1000)
        report = await session.tick()
        if report and report.step:
            print(f"\n{report.step.command_type.value}: {report.step.message}")
            print(render_ascii(session.world))

    result = session.last_result
    if result is not None:
        print(f"\nStars: {result.stars}  Score: {result.score}  Perfect: {result.is_perfect}")


async def main() -> None:
    with tempfile.TemporaryDirectory() as progress_dir:
        progress = JsonProgressStore(progress_dir)
        await progress.initialize()

        session = GameSession(LevelCatalog(LEVELS_DIR), progress, tick_ms=200)
        session.open_level_select()

        for level_id in sorted(SOLUTIONS):
            await play_level(session, level_id)

        print(f"\nTotal stars: {await progress.total_stars()}")
        await progress.close()


if __name__ == "__main__":
    asyncio.run(main())
