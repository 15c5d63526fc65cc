"""
ProgressStore interface for pluggable progress storage.

This module provides the abstract ProgressStore interface and two concrete
implementations for the per-level best-result ledger. The ledger is the only
state that outlives a run: it is read when the player picks a level (to gate
locked levels) and written once per terminal outcome.

Two included implementations:
1. InMemoryProgressStore - Dict-based storage, data lost on exit (testing)
2. JsonProgressStore - One JSON file per level under a directory

Merging rules live on the base class so every backend behaves the same:
- completed is sticky (once completed, always completed)
- stars keeps the best rating
- best_blocks / best_time only consider completed runs
- times_played counts every terminal outcome
- completing a level creates an unlocked record for the level after it
  (N + 1 unless the caller names the next catalog level)

Usage pattern:
    store = InMemoryProgressStore()  # or JsonProgressStore("progress/")
    await store.initialize()

    if await store.is_level_unlocked(3):
        ...
    await store.record_result(result)

    await store.close()
"""

import asyncio
import json
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, List, Optional

from codequest.schemas import ExecutionResult, LevelProgress
from .config import Config


FIRST_LEVEL_ID = 1


def merge_result(current: Optional[LevelProgress], result: ExecutionResult) -> LevelProgress:
    """Fold one execution result into a level's progress record."""
    if current is None:
        current = LevelProgress(level_id=result.level_id, unlocked=True)

    best_blocks = current.best_blocks
    best_time = current.best_time
    if result.completed:
        best_blocks = result.blocks_used if best_blocks is None else min(best_blocks, result.blocks_used)
        best_time = result.time_spent if best_time is None else min(best_time, result.time_spent)

    return current.model_copy(
        update={
            "completed": current.completed or result.completed,
            "stars": max(current.stars, result.stars),
            "best_blocks": best_blocks,
            "best_time": best_time,
            "times_played": current.times_played + 1,
            "unlocked": True,
        }
    )


class ProgressStore(ABC):
    """Abstract base class for the best-result-per-level ledger.

    Backends only implement storage (get/save/list plus lifecycle); merging,
    unlocking and totals are shared. All methods are async so file or
    database backends never block the tick loop.
    """

    @abstractmethod
    async def initialize(self) -> None:
        """
        Prepare the backend (create directories, open connections).

        Raises:
            Exception: If initialization fails
        """
        pass

    @abstractmethod
    async def close(self) -> None:
        """Release backend resources."""
        pass

    @abstractmethod
    async def get_progress(self, level_id: int) -> Optional[LevelProgress]:
        """
        Retrieve the progress record for a level.

        Args:
            level_id: Level identifier

        Returns:
            LevelProgress if the level has a record, None otherwise
        """
        pass

    @abstractmethod
    async def save_progress(self, progress: LevelProgress) -> None:
        """
        Store (replace) the progress record for ``progress.level_id``.

        Args:
            progress: Record to save
        """
        pass

    @abstractmethod
    async def all_progress(self) -> List[LevelProgress]:
        """Return every stored record, ordered by level id."""
        pass

    # ------------------------------------------------------------------
    # Shared behaviour
    # ------------------------------------------------------------------

    async def record_result(
        self, result: ExecutionResult, *, next_level_id: Optional[int] = None
    ) -> LevelProgress:
        """Merge ``result`` into the ledger and unlock the next level on completion.

        Args:
            result: Terminal outcome of a run
            next_level_id: Level to unlock on completion (defaults to
                ``result.level_id + 1``; catalogs with gaps in their ids pass
                the next catalog level)

        Returns:
            The updated record for ``result.level_id``
        """
        current = await self.get_progress(result.level_id)
        updated = merge_result(current, result)
        await self.save_progress(updated)

        if result.completed:
            next_id = result.level_id + 1 if next_level_id is None else next_level_id
            following = await self.get_progress(next_id)
            if following is None:
                await self.save_progress(LevelProgress(level_id=next_id, unlocked=True))
            elif not following.unlocked:
                await self.save_progress(following.model_copy(update={"unlocked": True}))

        return updated

    async def is_level_unlocked(self, level_id: int) -> bool:
        """Level 1 is always open; level N opens once level N - 1 is completed."""
        if level_id <= FIRST_LEVEL_ID:
            return True
        progress = await self.get_progress(level_id)
        if progress is not None and progress.unlocked:
            return True
        previous = await self.get_progress(level_id - 1)
        return bool(previous and previous.completed)

    async def total_stars(self) -> int:
        return sum(progress.stars for progress in await self.all_progress())


class InMemoryProgressStore(ProgressStore):
    """In-memory ledger using a dict keyed by level id.

    Data is lost when the process exits. Intended for tests and for sessions
    that do not need to remember anything between launches.
    """

    def __init__(self):
        self.records: Dict[int, LevelProgress] = {}

    async def initialize(self) -> None:
        pass

    async def close(self) -> None:
        # Records are kept after close so callers can inspect them
        pass

    async def get_progress(self, level_id: int) -> Optional[LevelProgress]:
        return self.records.get(level_id)

    async def save_progress(self, progress: LevelProgress) -> None:
        self.records[progress.level_id] = progress

    async def all_progress(self) -> List[LevelProgress]:
        return [self.records[key] for key in sorted(self.records)]


class JsonProgressStore(ProgressStore):
    """File-based ledger storing one pretty-printed JSON file per level.

    Directory structure:
    ```
    {base_path}/
      level_001.json
      level_002.json
      ...
    ```

    All file I/O runs in a thread (asyncio.to_thread) so a slow disk never
    stalls the session's tick loop.
    """

    def __init__(self, base_path: Path | str | None = None):
        self.base_path = Path(base_path) if base_path is not None else Config.PROGRESS_DIR

    async def initialize(self) -> None:
        await asyncio.to_thread(self.base_path.mkdir, parents=True, exist_ok=True)

    async def close(self) -> None:
        # Nothing to clean up for JSON persistence
        return None

    def _path(self, level_id: int) -> Path:
        return self.base_path / f"level_{level_id:03d}.json"

    async def get_progress(self, level_id: int) -> Optional[LevelProgress]:
        path = self._path(level_id)
        if not path.exists():
            return None

        raw = await asyncio.to_thread(path.read_text, "utf-8")
        payload = json.loads(raw)
        return LevelProgress.model_validate(payload)

    async def save_progress(self, progress: LevelProgress) -> None:
        path = self._path(progress.level_id)
        await asyncio.to_thread(path.parent.mkdir, parents=True, exist_ok=True)
        payload = progress.model_dump(mode="json")
        await asyncio.to_thread(
            path.write_text, json.dumps(payload, indent=2), "utf-8"
        )

    async def all_progress(self) -> List[LevelProgress]:
        if not self.base_path.exists():
            return []

        def _load_all() -> List[LevelProgress]:
            records = [
                LevelProgress.model_validate(json.loads(path.read_text("utf-8")))
                for path in self.base_path.glob("level_*.json")
            ]
            return sorted(records, key=lambda record: record.level_id)

        return await asyncio.to_thread(_load_all)
