"""
Execution controller: steps a linearized program through the interpreter.

One ExecutionController is the whole runtime context of a session: the
instruction stream, the cursor, the live WorldState, the start timestamp and
the step history. Nothing lives at module level, so independent controllers
(tests, several windows) never see each other's runs.

Stepping contract:
1. ``start(blocks)`` re-derives the world from the level, linearizes the
   program and resets the cursor
2. each ``step()`` executes exactly one instruction and commits its snapshot,
   or, once the stream is exhausted, evaluates the goal
3. the first failing instruction or the goal evaluation produces an
   ExecutionResult; after that the run is frozen until ``start``/``reset``
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence

from .interpreter import execute_command
from .linearizer import linearize
from .schemas import CommandBlock, ExecutionResult, ExecutionStep, GoalType, Level
from .scoring import score_failure, score_success
from .world import WorldState, apply_tile_changes, find_goal
from .logging_utils import is_verbose, log_engine


GOAL_NOT_REACHED = "Goal not reached"


@dataclass
class TickReport:
    """What one call to ``ExecutionController.step`` did.

    ``step`` is set when an instruction ran. ``result`` is set once the run is
    over, either on the failing instruction itself or on the goal check after
    the last instruction.
    """

    step: Optional[ExecutionStep] = None
    result: Optional[ExecutionResult] = None

    @property
    def is_terminal(self) -> bool:
        return self.result is not None


def evaluate_goal(level: Level, world: WorldState) -> Optional[str]:
    """Check the level's win condition against the final world.

    Returns:
        None when the goal is met, otherwise the failure reason
    """
    robot = world.robot
    goal = find_goal(world.tiles)
    at_goal = goal is not None and goal.position.as_tuple() == robot.position.as_tuple()
    collected = robot.coins >= level.coins_required and robot.gems >= level.gems_required

    if level.goal_type == GoalType.REACH_GOAL:
        met = at_goal
    elif level.goal_type == GoalType.COLLECT_ALL:
        met = collected
    else:
        met = at_goal and collected

    return None if met else GOAL_NOT_REACHED


class ExecutionController:
    """Runtime state of a single level run."""

    def __init__(
        self,
        level: Level,
        *,
        max_instructions: Optional[int] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.level = level
        self.max_instructions = max_instructions
        self._clock = clock

        self.world: WorldState = level.initial_world()
        self.stream: List[CommandBlock] = []
        self.cursor: int = 0
        self.history: List[ExecutionStep] = []
        self.blocks_used: int = 0
        self.started_at: Optional[float] = None
        self.result: Optional[ExecutionResult] = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self, blocks: Sequence[CommandBlock]) -> None:
        """Begin a fresh run of ``blocks``.

        Raises:
            ProgramTooLongError: If the program unrolls past the instruction cap.
                The controller is left reset in that case.
        """
        self.reset()
        self.stream = linearize(blocks, max_instructions=self.max_instructions)
        self.blocks_used = len(blocks)
        self.started_at = self._clock()
        log_engine(
            f"[Linearizer] {self.blocks_used} blocks -> {len(self.stream)} instructions"
        )

    def reset(self) -> None:
        """Discard the run and restore the level's initial world."""
        self.world = self.level.initial_world()
        self.stream = []
        self.cursor = 0
        self.history = []
        self.blocks_used = 0
        self.started_at = None
        self.result = None

    @property
    def is_exhausted(self) -> bool:
        return self.cursor >= len(self.stream)

    @property
    def is_finished(self) -> bool:
        return self.result is not None

    @property
    def current_instruction(self) -> Optional[CommandBlock]:
        if self.is_exhausted:
            return None
        return self.stream[self.cursor]

    # ------------------------------------------------------------------
    # Stepping
    # ------------------------------------------------------------------

    def step(self) -> TickReport:
        """Execute one instruction, or evaluate the goal if none remain."""
        if self.result is not None:
            return TickReport(result=self.result)

        if self.is_exhausted:
            reason = evaluate_goal(self.level, self.world)
            self.result = self._finish(reason)
            return TickReport(result=self.result)

        instruction = self.stream[self.cursor]
        step = execute_command(instruction, self.world.robot, self.world.tiles, self.level)
        self.cursor += 1
        step = step.model_copy(
            update={"is_last_step": not step.success or self.is_exhausted}
        )
        self.history.append(step)

        if is_verbose():
            log_engine(
                f"[Step {self.cursor}/{len(self.stream)}] {instruction.type.value}"
                f" -> ({step.robot.position.row}, {step.robot.position.col})"
                f" facing {step.robot.direction.value}"
                + (f": {step.message}" if step.message else "")
            )

        # Commit the new snapshot. A failed step keeps its robot for display
        # (e.g. standing on the spike) and carries no tile changes.
        self.world = WorldState(
            grid_size=self.world.grid_size,
            tiles=apply_tile_changes(self.world.tiles, step.tile_changes),
            robot=step.robot,
        )

        if not step.success:
            self.result = self._finish(step.message or "Execution failed")
            return TickReport(step=step, result=self.result)

        return TickReport(step=step)

    def _finish(self, failure_reason: Optional[str]) -> ExecutionResult:
        elapsed_ms = 0
        if self.started_at is not None:
            elapsed_ms = max(0, int((self._clock() - self.started_at) * 1000))

        if failure_reason is None:
            return score_success(
                self.level,
                self.world.robot,
                blocks_used=self.blocks_used,
                steps=len(self.history),
                time_spent=elapsed_ms,
            )
        return score_failure(
            self.level,
            self.world.robot,
            blocks_used=self.blocks_used,
            steps=len(self.history),
            time_spent=elapsed_ms,
            reason=failure_reason,
        )
