"""
Opponent selection for battles.

Both pickers choose uniformly at random from whatever roster they are
given; callers decide which companies are eligible.
"""

import random
from typing import Iterable, Optional, Sequence, Tuple, TypeVar

from arena.exceptions import InsufficientRoster


T = TypeVar("T")


def pick_two(roster: Sequence[T], rng: Optional[random.Random] = None) -> Tuple[T, T]:
    """
    Pick two distinct entries from the roster.

    The second index is drawn from the remaining n-1 positions and shifted
    past the first, so the pair is always distinct without rejection.

    Raises:
        InsufficientRoster: fewer than two entries are available
    """
    rng = rng or random
    n = len(roster)
    if n < 2:
        raise InsufficientRoster(available=n)

    i = rng.randrange(n)
    j = rng.randrange(n - 1)
    if j >= i:
        j += 1
    return roster[i], roster[j]


def pick_one(
    roster: Sequence[T],
    exclude_ids: Iterable[str] = (),
    rng: Optional[random.Random] = None,
) -> Optional[T]:
    """
    Pick one entry whose `id` is not excluded.

    Returns None when nothing is eligible. That is a normal outcome, not an
    error; callers usually fall back to a fresh `pick_two`.
    """
    rng = rng or random
    excluded = set(exclude_ids)
    eligible = [entry for entry in roster if entry.id not in excluded]
    if not eligible:
        return None
    return eligible[rng.randrange(len(eligible))]
