"""
Elo-like rating updates for head-to-head company votes.

The winner gains the full rating delta while the loser only gives up half
of it, so the total points in the arena slowly inflate as votes come in.
Neither side ever drops below the score floor.
"""

import math
from typing import NamedTuple

DEFAULT_K = 32
SCORE_FLOOR = 100


class EloResult(NamedTuple):
    """New scores after a vote and the magnitude of the change."""

    winner_score: int
    loser_score: int
    delta: int


def expected_score(rating_a: float, rating_b: float) -> float:
    """Probability that A beats B given their current ratings."""
    return 1 / (1 + 10 ** ((rating_b - rating_a) / 400))


def compute_elo(
    winner_score: int,
    loser_score: int,
    k: int = DEFAULT_K,
    floor: int = SCORE_FLOOR,
) -> EloResult:
    """
    Compute the new pair of scores after `winner` beats `loser`.

    Args:
        winner_score: Current score of the winner
        loser_score: Current score of the loser
        k: K-factor, how far a single vote moves ratings
        floor: Lowest score either side can reach

    Returns:
        EloResult with both new scores and the delta awarded to the winner
    """
    expected_winner = expected_score(winner_score, loser_score)
    # Half-up rounding; delta is always positive here
    delta = math.floor(k * (1 - expected_winner) + 0.5)

    new_winner_score = max(winner_score + delta, floor)
    new_loser_score = max(loser_score - math.floor(delta * 0.5), floor)

    return EloResult(new_winner_score, new_loser_score, delta)
