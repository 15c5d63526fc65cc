"""
Scoring and rating: turns a terminal run into stars, score and rewards.

Star rating compares the number of authored blocks (loop markers included)
against the level's optimal count:

    3 stars  blocks_used <= optimal
    2 stars  blocks_used <= 1.5 x optimal
    1 star   any other successful run
    0 stars  failed run

The 1.5x threshold is compared as ``2 * used <= 3 * optimal`` to stay in
integer arithmetic.
"""

from __future__ import annotations

import math
from typing import Dict

from .schemas import Difficulty, ExecutionResult, Level
from .world import Robot


BASE_SCORE_PER_LEVEL = 100
DIFFICULTY_MULTIPLIER: Dict[Difficulty, float] = {
    Difficulty.BEGINNER: 1.0,
    Difficulty.EASY: 1.25,
    Difficulty.MEDIUM: 1.5,
    Difficulty.HARD: 2.0,
    Difficulty.EXPERT: 2.5,
}
COIN_BONUS = 10
GEM_BONUS = 25
BLOCK_EFFICIENCY_BONUS = 15

SPARKS_PER_STAR = 5
SPARKS_PER_COIN = 1
SPARKS_PER_GEM = 5


def star_rating(blocks_used: int, optimal_blocks: int) -> int:
    """Stars for a successful run."""
    if blocks_used <= optimal_blocks:
        return 3
    if 2 * blocks_used <= 3 * optimal_blocks:
        return 2
    return 1


def level_score(level: Level, robot: Robot, blocks_used: int) -> int:
    base = BASE_SCORE_PER_LEVEL * DIFFICULTY_MULTIPLIER[level.difficulty]
    coin_bonus = robot.coins * COIN_BONUS
    gem_bonus = robot.gems * GEM_BONUS
    efficiency_bonus = max(0, level.optimal_block_count - blocks_used) * BLOCK_EFFICIENCY_BONUS
    return math.floor(base + coin_bonus + gem_bonus + efficiency_bonus)


def score_success(
    level: Level,
    robot: Robot,
    *,
    blocks_used: int,
    steps: int,
    time_spent: int,
) -> ExecutionResult:
    """Build the result for a run that met its goal."""
    optimal = level.optimal_block_count
    stars = star_rating(blocks_used, optimal)
    score = level_score(level, robot, blocks_used)

    return ExecutionResult(
        level_id=level.id,
        completed=True,
        stars=stars,
        blocks_used=blocks_used,
        optimal_blocks=optimal,
        coins_collected=robot.coins,
        gems_collected=robot.gems,
        steps=steps,
        time_spent=time_spent,
        score=score,
        xp_earned=score // 10,
        sparks_earned=(
            stars * SPARKS_PER_STAR
            + robot.coins * SPARKS_PER_COIN
            + robot.gems * SPARKS_PER_GEM
        ),
        is_perfect=(
            stars == 3
            and robot.coins >= level.coins_required
            and robot.gems >= level.gems_required
        ),
    )


def score_failure(
    level: Level,
    robot: Robot,
    *,
    blocks_used: int,
    steps: int,
    time_spent: int,
    reason: str,
) -> ExecutionResult:
    """Build the result for a failed run: no stars, no score, no rewards."""
    return ExecutionResult(
        level_id=level.id,
        completed=False,
        stars=0,
        blocks_used=blocks_used,
        optimal_blocks=level.optimal_block_count,
        coins_collected=robot.coins,
        gems_collected=robot.gems,
        steps=steps,
        time_spent=time_spent,
        score=0,
        xp_earned=0,
        sparks_earned=0,
        is_perfect=False,
        reason=reason,
    )
