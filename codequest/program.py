"""
Program model: the list of command blocks a player authors for a level.

The Program owns the edit operations exposed to the presentation layer
(add, remove, move, set loop repeat, clear). Edits that would break the
level's rules are rejected by returning False and leaving the blocks
untouched; nothing here raises for a bad edit.

Block nesting is expressed with marker blocks (loop_start/loop_end,
if_start/if_else/if_end) in a flat list. ``nest_level`` on each block is
recomputed from bracket depth after every edit and is only used for display.
"""

from __future__ import annotations

from typing import Iterator, List, Optional
from uuid import uuid4

from .schemas import (
    CommandBlock,
    CommandType,
    Level,
    LOOP_REPEAT_DEFAULT,
    LOOP_REPEAT_MAX,
    LOOP_REPEAT_MIN,
)


_OPENERS = {CommandType.LOOP_START, CommandType.IF_START}
_CLOSERS = {CommandType.LOOP_END, CommandType.IF_END}


def new_block(command_type: CommandType) -> CommandBlock:
    """Create a freshly placed block with a unique instance id."""
    return CommandBlock(
        type=command_type,
        instance_id=uuid4().hex[:8],
        value=LOOP_REPEAT_DEFAULT if command_type == CommandType.LOOP_START else None,
    )


def assign_nest_levels(blocks: List[CommandBlock]) -> List[CommandBlock]:
    """Return copies of ``blocks`` with nest_level set from bracket depth.

    Openers sit at the outer depth and indent what follows; closers sit back
    at the outer depth. ``if_else`` lines up with its ``if_start``. Unmatched
    closers never push the depth below zero.
    """
    depth = 0
    result: List[CommandBlock] = []
    for block in blocks:
        if block.type in _CLOSERS:
            depth = max(0, depth - 1)
            level = depth
        elif block.type == CommandType.IF_ELSE:
            level = max(0, depth - 1)
        else:
            level = depth
        result.append(block.model_copy(update={"nest_level": level}))
        if block.type in _OPENERS:
            depth += 1
    return result


class Program:
    """Editable program bound to a level's block budget and command set."""

    def __init__(self, level: Level, blocks: Optional[List[CommandBlock]] = None):
        self.level = level
        self._blocks: List[CommandBlock] = assign_nest_levels(list(blocks or []))

    # ------------------------------------------------------------------
    # Read access
    # ------------------------------------------------------------------

    @property
    def blocks(self) -> List[CommandBlock]:
        return list(self._blocks)

    def __len__(self) -> int:
        return len(self._blocks)

    def __iter__(self) -> Iterator[CommandBlock]:
        return iter(list(self._blocks))

    @property
    def remaining_slots(self) -> int:
        return max(0, self.level.max_blocks - len(self._blocks))

    @property
    def is_full(self) -> bool:
        return len(self._blocks) >= self.level.max_blocks

    def find(self, instance_id: str) -> Optional[CommandBlock]:
        for block in self._blocks:
            if block.instance_id == instance_id:
                return block
        return None

    # ------------------------------------------------------------------
    # Edit operations
    # ------------------------------------------------------------------

    def add_block(self, command_type: CommandType | str, index: Optional[int] = None) -> Optional[CommandBlock]:
        """Insert a new block at ``index`` (append when None).

        Returns the placed block, or None when the budget is exhausted or the
        level does not offer this command.
        """
        command_type = CommandType(command_type)
        if self.is_full:
            return None
        if command_type not in self.level.allowed_commands():
            return None

        block = new_block(command_type)
        blocks = list(self._blocks)
        if index is None:
            blocks.append(block)
        else:
            blocks.insert(max(0, index), block)
        self._blocks = assign_nest_levels(blocks)
        return self.find(block.instance_id)

    def remove_block(self, instance_id: str) -> bool:
        blocks = [b for b in self._blocks if b.instance_id != instance_id]
        if len(blocks) == len(self._blocks):
            return False
        self._blocks = assign_nest_levels(blocks)
        return True

    def move_block(self, instance_id: str, new_index: int) -> bool:
        """Move a block to ``new_index`` (clamped into range)."""
        current_index = next(
            (i for i, b in enumerate(self._blocks) if b.instance_id == instance_id), None
        )
        if current_index is None:
            return False

        blocks = list(self._blocks)
        moved = blocks.pop(current_index)
        new_index = max(0, min(new_index, len(blocks)))
        blocks.insert(new_index, moved)
        self._blocks = assign_nest_levels(blocks)
        return True

    def set_loop_repeat(self, instance_id: str, value: int) -> bool:
        """Set a loop's repeat count, capped to 1-10. Only loop_start blocks take a value."""
        block = self.find(instance_id)
        if block is None or block.type != CommandType.LOOP_START:
            return False

        value = max(LOOP_REPEAT_MIN, min(LOOP_REPEAT_MAX, int(value)))
        self._blocks = [
            b.model_copy(update={"value": value}) if b.instance_id == instance_id else b
            for b in self._blocks
        ]
        return True

    def clear(self) -> None:
        self._blocks = []
