"""
Game session: the state machine tying editing, stepped execution and scoring.

Fully decoupled from rendering. The presentation layer reads ``state``,
``program``, ``world``, ``cursor`` and ``last_result`` and calls the request
methods below. The level catalog and progress store are injected.

States and transitions:
    menu ──> level_select ──> countdown ──> building ──> executing ──> results
                  ^                            ^  │          │   └──> failed
                  │                            │  v          v
                  │                            └─ paused <───┘
                  └──────────────── results / failed (next level, quit)

Request methods return False when they do not apply in the current state
(pausing from the menu, running an empty program, ...). Internal transitions
are checked against TRANSITIONS and raise InvalidTransitionError if the
session logic itself tries something illegal.

Tick source:
    ``play()`` sleeps for the current tick speed and calls ``tick()`` while the
    session is executing. ``run()``, ``pause()``, ``stop()``, ``reset()`` and
    every new ``play()`` retire the loop that is currently sleeping: it wakes at
    the next instruction boundary and returns without executing anything
    further, so a run never has two tick sources.
"""

from __future__ import annotations

import asyncio
from enum import Enum
from typing import Callable, Dict, FrozenSet, List, Optional

from .catalog import LevelCatalog
from .config import Config
from .execution import ExecutionController, TickReport
from .linearizer import ProgramTooLongError
from .persistence import InMemoryProgressStore, ProgressStore
from .program import Program
from .schemas import CommandBlock, CommandType, ExecutionResult, ExecutionStep, Level
from .world import WorldState
from .logging_utils import log_error, log_info, log_session, log_success


class SessionState(str, Enum):
    MENU = "menu"
    LEVEL_SELECT = "level_select"
    COUNTDOWN = "countdown"
    BUILDING = "building"
    EXECUTING = "executing"
    PAUSED = "paused"
    RESULTS = "results"
    FAILED = "failed"


TRANSITIONS: Dict[SessionState, FrozenSet[SessionState]] = {
    SessionState.MENU: frozenset({SessionState.LEVEL_SELECT}),
    SessionState.LEVEL_SELECT: frozenset({SessionState.COUNTDOWN, SessionState.MENU}),
    SessionState.COUNTDOWN: frozenset({SessionState.BUILDING}),
    SessionState.BUILDING: frozenset({SessionState.EXECUTING, SessionState.PAUSED}),
    SessionState.EXECUTING: frozenset(
        {
            SessionState.PAUSED,
            SessionState.RESULTS,
            SessionState.FAILED,
            SessionState.BUILDING,
        }
    ),
    SessionState.PAUSED: frozenset({SessionState.EXECUTING, SessionState.BUILDING}),
    SessionState.RESULTS: frozenset(
        {SessionState.BUILDING, SessionState.COUNTDOWN, SessionState.LEVEL_SELECT}
    ),
    SessionState.FAILED: frozenset(
        {SessionState.BUILDING, SessionState.COUNTDOWN, SessionState.LEVEL_SELECT}
    ),
}


# =============================
# Module-level Exceptions
# =============================

class InvalidTransitionError(Exception):
    """Raised when the session attempts a transition the state machine forbids."""

    def __init__(self, *, current: SessionState, target: SessionState) -> None:
        self.current = current
        self.target = target
        allowed = ", ".join(sorted(s.value for s in TRANSITIONS[current])) or "none"
        super().__init__(
            f"Cannot go from '{current.value}' to '{target.value}'. "
            f"Allowed from '{current.value}': {allowed}"
        )


class LevelLockedError(Exception):
    """Raised when selecting a level whose predecessor is not completed yet."""

    def __init__(self, *, level_id: int) -> None:
        self.level_id = level_id
        message = (
            f"Level {level_id} is locked.\n\n"
            "Remediation tips:\n"
            f"  - Complete level {level_id - 1} first\n"
            "  - Check the progress store passed to the session"
        )
        super().__init__(message)


StateListener = Callable[[SessionState, SessionState], None]


class GameSession:
    """One player's session: current level, program, run and results.

    Each session owns its own ExecutionController, so several sessions can
    run side by side without sharing any state.
    """

    def __init__(
        self,
        catalog: Optional[LevelCatalog] = None,
        progress: Optional[ProgressStore] = None,
        *,
        tick_ms: Optional[int] = None,
        max_instructions: Optional[int] = None,
        clock: Optional[Callable[[], float]] = None,
        state_listeners: Optional[List[StateListener]] = None,
    ):
        """Initialize a session with its collaborators injected.

        Args:
            catalog: Level source (defaults to LevelCatalog() on Config.LEVELS_DIR)
            progress: Progress ledger (defaults to InMemoryProgressStore)
            tick_ms: Initial tick speed; must be one of Config.TICK_SPEEDS
            max_instructions: Instruction stream cap (defaults to Config.MAX_INSTRUCTIONS)
            clock: Optional time source in seconds for run timing
            state_listeners: Callables invoked with (old_state, new_state) on
                every transition
        """
        self.catalog = catalog or LevelCatalog()
        self.progress = progress or InMemoryProgressStore()
        self.max_instructions = max_instructions
        self._clock = clock
        self.state_listeners = state_listeners or []
        # Bumped whenever the active tick loop must stop (run, pause, stop, reset)
        self._tick_generation = 0

        self.state = SessionState.MENU
        self.level: Optional[Level] = None
        self.program: Optional[Program] = None
        self.controller: Optional[ExecutionController] = None
        self.last_result: Optional[ExecutionResult] = None
        self.last_message: str = ""
        self.tick_ms = Config.DEFAULT_TICK_MS
        self.set_speed(tick_ms if tick_ms is not None else Config.DEFAULT_TICK_MS)

    # ------------------------------------------------------------------
    # Presentation accessors
    # ------------------------------------------------------------------

    @property
    def world(self) -> Optional[WorldState]:
        return self.controller.world if self.controller else None

    @property
    def cursor(self) -> int:
        return self.controller.cursor if self.controller else 0

    @property
    def history(self) -> List[ExecutionStep]:
        return list(self.controller.history) if self.controller else []

    @property
    def blocks(self) -> List[CommandBlock]:
        return self.program.blocks if self.program else []

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def _transition(self, target: SessionState) -> None:
        if target not in TRANSITIONS[self.state]:
            raise InvalidTransitionError(current=self.state, target=target)
        previous = self.state
        self.state = target
        log_session(f"[Session] {previous.value} -> {target.value}")
        for listener in self.state_listeners:
            listener(previous, target)

    def open_level_select(self) -> bool:
        if self.state != SessionState.MENU:
            return False
        self._transition(SessionState.LEVEL_SELECT)
        return True

    def back_to_menu(self) -> bool:
        if self.state != SessionState.LEVEL_SELECT:
            return False
        self._transition(SessionState.MENU)
        return True

    async def select_level(self, level_id: int) -> Level:
        """Pick a level and enter the countdown.

        Allowed from level_select, results and failed (next level / replay).

        Raises:
            InvalidTransitionError: If called from another state
            LevelLockedError: If the level's predecessor is not completed
            KeyError: If the catalog has no such level
        """
        if self.state not in (SessionState.LEVEL_SELECT, SessionState.RESULTS, SessionState.FAILED):
            raise InvalidTransitionError(current=self.state, target=SessionState.COUNTDOWN)

        level = self.catalog.load(level_id)
        if not await self.progress.is_level_unlocked(level_id):
            log_error(f"[Session] Level {level_id} is locked")
            raise LevelLockedError(level_id=level_id)

        self._load_level(level)
        self._transition(SessionState.COUNTDOWN)
        log_info(f"[Session] Level {level.id}: {level.name} ({level.difficulty.value})")
        return level

    def _load_level(self, level: Level) -> None:
        self.level = level
        self.program = Program(level)
        controller_kwargs = {"max_instructions": self.max_instructions}
        if self._clock is not None:
            controller_kwargs["clock"] = self._clock
        self.controller = ExecutionController(level, **controller_kwargs)
        self.last_result = None
        self.last_message = ""

    def finish_countdown(self) -> bool:
        if self.state != SessionState.COUNTDOWN:
            return False
        self._transition(SessionState.BUILDING)
        return True

    async def run_countdown(self, seconds: Optional[float] = None) -> bool:
        """Wait out the pre-run countdown, then open the editor."""
        if self.state != SessionState.COUNTDOWN:
            return False
        await asyncio.sleep(Config.COUNTDOWN_SECONDS if seconds is None else seconds)
        return self.finish_countdown()

    # ------------------------------------------------------------------
    # Editing (building stage only)
    # ------------------------------------------------------------------

    def add_block(self, command_type: CommandType | str, index: Optional[int] = None) -> Optional[CommandBlock]:
        if self.state != SessionState.BUILDING or self.program is None:
            return None
        block = self.program.add_block(command_type, index)
        if block is None:
            self.last_message = (
                f"Block limit reached ({self.program.level.max_blocks} max)"
                if self.program.is_full
                else f"'{CommandType(command_type).value}' is not available in this level"
            )
        return block

    def remove_block(self, instance_id: str) -> bool:
        if self.state != SessionState.BUILDING or self.program is None:
            return False
        return self.program.remove_block(instance_id)

    def move_block(self, instance_id: str, new_index: int) -> bool:
        if self.state != SessionState.BUILDING or self.program is None:
            return False
        return self.program.move_block(instance_id, new_index)

    def set_loop_repeat(self, instance_id: str, value: int) -> bool:
        if self.state != SessionState.BUILDING or self.program is None:
            return False
        return self.program.set_loop_repeat(instance_id, value)

    def clear_program(self) -> bool:
        if self.state != SessionState.BUILDING or self.program is None:
            return False
        self.program.clear()
        return True

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    def set_speed(self, tick_ms: int) -> None:
        """Change the tick pacing; takes effect from the next tick."""
        if tick_ms not in Config.TICK_SPEEDS:
            raise ValueError(
                f"Unknown tick speed {tick_ms}ms; choose one of {sorted(Config.TICK_SPEEDS)}"
            )
        self.tick_ms = tick_ms

    def run(self) -> bool:
        """Start executing the current program (building -> executing).

        Returns False, leaving the program untouched, when there is nothing to
        run or the program unrolls past the instruction cap.
        """
        if self.state != SessionState.BUILDING or self.program is None or self.controller is None:
            return False
        if len(self.program) == 0:
            self.last_message = "Add at least one block before running"
            return False

        try:
            self.controller.start(self.program.blocks)
        except ProgramTooLongError as exc:
            self.controller.reset()
            self.last_message = f"Program is too long to run (over {exc.limit} steps)"
            log_error(f"[Session] {self.last_message}")
            return False

        self._tick_generation += 1
        self.last_result = None
        self.last_message = ""
        self._transition(SessionState.EXECUTING)
        return True

    async def tick(self) -> Optional[TickReport]:
        """Execute one instruction if the session is executing.

        On a terminal outcome the session moves to results/failed and the
        result is written to the progress store.
        """
        if self.state != SessionState.EXECUTING or self.controller is None:
            return None

        report = self.controller.step()
        if report.step is not None and report.step.message:
            self.last_message = report.step.message

        if report.result is not None:
            await self._conclude(report.result)
        return report

    async def play(self, tick_ms: Optional[int] = None) -> Optional[ExecutionResult]:
        """Drive ``tick()`` at the session's pace until the run leaves executing.

        Returns:
            The ExecutionResult if the run finished, None if it was paused or stopped
        """
        if tick_ms is not None:
            self.set_speed(tick_ms)

        # Only the most recent loop drives the run
        self._tick_generation += 1
        generation = self._tick_generation

        while self.state == SessionState.EXECUTING:
            await asyncio.sleep(self.tick_ms / 1000)
            # Pause/stop (or a newer play) may have happened while sleeping
            if generation != self._tick_generation or self.state != SessionState.EXECUTING:
                break
            await self.tick()

        if self.state in (SessionState.RESULTS, SessionState.FAILED):
            return self.last_result
        return None

    async def _conclude(self, result: ExecutionResult) -> None:
        self.last_result = result
        if result.completed:
            self._transition(SessionState.RESULTS)
            log_success(
                f"[Result] Level {result.level_id} complete: {result.stars} stars, "
                f"score {result.score}, {result.steps} steps"
            )
        else:
            self.last_message = result.reason or "Execution failed"
            self._transition(SessionState.FAILED)
            log_error(f"[Result] Level {result.level_id} failed: {self.last_message}")

        following = self.catalog.next_level(result.level_id)
        await self.progress.record_result(
            result, next_level_id=following.id if following is not None else None
        )

    def pause(self) -> bool:
        if self.state not in (SessionState.BUILDING, SessionState.EXECUTING):
            return False
        self._tick_generation += 1
        self._transition(SessionState.PAUSED)
        return True

    def resume(self) -> bool:
        """Continue a paused run, or return to the editor if nothing is left to run."""
        if self.state != SessionState.PAUSED or self.controller is None:
            return False
        if not self.controller.is_exhausted:
            self._transition(SessionState.EXECUTING)
        else:
            self._transition(SessionState.BUILDING)
        return True

    def stop(self) -> bool:
        """Abort the run and restore the level's initial world."""
        if self.state not in (SessionState.EXECUTING, SessionState.PAUSED) or self.controller is None:
            return False
        self._tick_generation += 1
        self.controller.reset()
        self._transition(SessionState.BUILDING)
        return True

    # ------------------------------------------------------------------
    # After the run
    # ------------------------------------------------------------------

    def retry(self) -> bool:
        """Back to the editor with the same program and a fresh world."""
        if self.state not in (SessionState.RESULTS, SessionState.FAILED) or self.controller is None:
            return False
        self.controller.reset()
        self.last_message = ""
        self._transition(SessionState.BUILDING)
        return True

    async def next_level(self) -> Optional[Level]:
        """Advance to the next catalog level, or to level select when there is none."""
        if self.state not in (SessionState.RESULTS, SessionState.FAILED) or self.level is None:
            return None
        following = self.catalog.next_level(self.level.id)
        if following is None or not await self.progress.is_level_unlocked(following.id):
            self._transition(SessionState.LEVEL_SELECT)
            return None
        return await self.select_level(following.id)

    def quit_to_level_select(self) -> bool:
        if self.state not in (SessionState.RESULTS, SessionState.FAILED):
            return False
        self._transition(SessionState.LEVEL_SELECT)
        return True

    def reset(self) -> None:
        """Drop the current level and return to the menu."""
        previous = self.state
        self._tick_generation += 1
        self.state = SessionState.MENU
        self.level = None
        self.program = None
        self.controller = None
        self.last_result = None
        self.last_message = ""
        if previous != SessionState.MENU:
            log_session(f"[Session] {previous.value} -> {SessionState.MENU.value}")
            for listener in self.state_listeners:
                listener(previous, SessionState.MENU)
