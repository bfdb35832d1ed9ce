"""
Final score aggregation.

The final score of a deliverable is a 1/1 trimmed mean: exactly one lowest
and one highest value are dropped whatever the sample size, and the rest
are averaged.
"""

from decimal import Decimal
from typing import Iterable

from peer_jury.models import round_two_places

MIN_GRADES_FOR_SCORE = 3


def final_score(values: Iterable[Decimal | int | float | str]) -> Decimal | None:
    """
    Reduce submitted grade values to one final score.

    Args:
        values: Grade values, in any order.

    Returns:
        The trimmed mean rounded to two decimals, or None when fewer than
        three values exist. None means "not enough grades yet", not a failure.
    """
    ordered = sorted(v if isinstance(v, Decimal) else Decimal(str(v)) for v in values)
    if len(ordered) < MIN_GRADES_FOR_SCORE:
        return None

    # Drop one instance of each extreme, even when tied.
    trimmed = ordered[1:-1]
    mean = sum(trimmed, Decimal(0)) / len(trimmed)
    return round_two_places(mean)
