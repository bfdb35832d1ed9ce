"""
Jury selector.

Draws the jury of a deliverable exactly once, the first time it is seen at
or after its due instant. There is no scheduler: callers invoke
``assign_if_due`` at every read boundary and the call is idempotent.
"""

import logging
import random
from datetime import datetime
from typing import Sequence

from peer_jury.models import MIN_JURY_SIZE, Deliverable, User

logger = logging.getLogger(__name__)


class JurySelector:
    """
    Assigns juries using an injected random source.

    The shuffle is ``random.Random.shuffle`` (Fisher-Yates), so every
    permutation of the pool, and therefore every subset of the wanted size,
    is equally likely.
    """

    def __init__(self, rng: random.Random | None = None):
        """
        Initialize the selector.

        Args:
            rng: Entropy source. A fresh unseeded Random if not provided.
        """
        self._rng = rng or random.Random()

    def assign_if_due(
        self,
        deliverable: Deliverable,
        pool: Sequence[User],
        now: datetime,
    ) -> Deliverable:
        """
        Assign a jury to the deliverable if it is due and has none yet.

        Args:
            deliverable: The deliverable to inspect.
            pool: Eligible jurors (see ``eligible_jurors``).
            now: Current instant.

        Returns:
            The deliverable with its jury filled in, or the same instance
            unchanged when the jury already exists or it is not due yet.
        """
        if deliverable.jury_assigned:
            return deliverable

        if not deliverable.is_due(now):
            return deliverable

        wanted = max(MIN_JURY_SIZE, deliverable.jury_size)
        candidates = [u.id for u in pool]
        self._rng.shuffle(candidates)
        chosen = tuple(candidates[: min(wanted, len(candidates))])

        if len(chosen) < wanted:
            logger.warning(
                "Deliverable %s wants %d jurors but only %d are eligible",
                deliverable.id,
                wanted,
                len(chosen),
            )
        if chosen:
            logger.info("Assigned %d jurors to deliverable %s", len(chosen), deliverable.id)

        return deliverable.model_copy(update={"jury": chosen})
