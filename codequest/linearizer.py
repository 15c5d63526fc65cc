"""
Program linearizer: unrolls loop blocks into a flat instruction stream.

Scanning left to right, ordinary blocks pass through; a ``loop_start``
captures everything up to its depth-matched ``loop_end``, linearizes that
range recursively and appends it once per repeat. Stray ``loop_end`` blocks
are dropped and a ``loop_start`` that is never closed runs to the end of the
program. ``if_*`` blocks have no runtime meaning yet and pass through as inert
markers.

The stream is capped: nested loops multiply (10 x 10 x 10 is already 1000
instructions), so expansion stops with ProgramTooLongError as soon as the
output would exceed ``max_instructions``.
"""

from __future__ import annotations

from typing import List, Optional, Sequence

from .config import Config
from .schemas import CommandBlock, CommandType


class ProgramTooLongError(Exception):
    """Raised when a program unrolls to more instructions than allowed."""

    def __init__(self, *, limit: int) -> None:
        self.limit = limit
        message = (
            f"Program unrolls to more than {limit} instructions.\n\n"
            "Remediation tips:\n"
            "  - Lower loop repeat counts or nest fewer loops\n"
            "  - Raise CODEQUEST_MAX_INSTRUCTIONS if the level really needs it"
        )
        super().__init__(message)


def linearize(
    blocks: Sequence[CommandBlock],
    *,
    max_instructions: Optional[int] = None,
) -> List[CommandBlock]:
    """Expand loops in ``blocks`` into a new flat list of instructions.

    Args:
        blocks: Authored program, in order
        max_instructions: Stream length cap (defaults to Config.MAX_INSTRUCTIONS)

    Returns:
        Loop-free list of blocks; the input is not modified

    Raises:
        ProgramTooLongError: If the unrolled stream would exceed the cap
    """
    limit = Config.MAX_INSTRUCTIONS if max_instructions is None else max_instructions
    return _expand(list(blocks), limit)


def _expand(blocks: List[CommandBlock], limit: int) -> List[CommandBlock]:
    expanded: List[CommandBlock] = []
    i = 0

    while i < len(blocks):
        block = blocks[i]

        if block.type == CommandType.LOOP_START:
            body: List[CommandBlock] = []
            depth = 1
            i += 1
            # Collect the body up to the matching loop_end
            while i < len(blocks) and depth > 0:
                if blocks[i].type == CommandType.LOOP_START:
                    depth += 1
                elif blocks[i].type == CommandType.LOOP_END:
                    depth -= 1
                if depth > 0:
                    body.append(blocks[i])
                i += 1

            unrolled_body = _expand(body, limit)
            for _ in range(block.repeat_count):
                expanded.extend(unrolled_body)
                if len(expanded) > limit:
                    raise ProgramTooLongError(limit=limit)
        elif block.type == CommandType.LOOP_END:
            i += 1
        else:
            expanded.append(block)
            if len(expanded) > limit:
                raise ProgramTooLongError(limit=limit)
            i += 1

    return expanded
