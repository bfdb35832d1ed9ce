"""
Grade ledger.

Holds at most one grade per (deliverable, juror) and only lets the juror
create or revise it until the edit window after the due instant closes.
"""

import logging
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any

from peer_jury.errors import EditWindowClosed, InvalidValue, NotJuror
from peer_jury.models import GRADE_MAX, GRADE_MIN, Deliverable, Grade, User, round_two_places

logger = logging.getLogger(__name__)


def normalize_grade_value(raw_value: Any) -> Decimal:
    """
    Parse and validate a raw grade value.

    The value is rounded to two decimals (halves away from zero) before the
    range check, so float artifacts such as 7.999999999 are accepted as 8.00
    and extra digits never survive normalization.

    Args:
        raw_value: Number or numeric string supplied by the juror.

    Returns:
        Decimal with exactly two fractional digits in [1, 10].

    Raises:
        InvalidValue: If the value is not a finite number or is out of range.
    """
    if isinstance(raw_value, bool) or raw_value is None:
        raise InvalidValue(f"Grade must be a number, got {raw_value!r}", raw_value)

    try:
        if isinstance(raw_value, Decimal):
            value = raw_value
        elif isinstance(raw_value, (int, float)):
            value = Decimal(str(raw_value))
        elif isinstance(raw_value, str):
            value = Decimal(raw_value.strip())
        else:
            raise InvalidValue(f"Grade must be a number, got {raw_value!r}", raw_value)

        if not value.is_finite():
            raise InvalidValue(f"Grade must be a finite number, got {raw_value!r}", raw_value)

        normalized = round_two_places(value)
    except InvalidOperation as e:
        raise InvalidValue(f"Grade must be a number, got {raw_value!r}", raw_value) from e

    if normalized < GRADE_MIN or normalized > GRADE_MAX:
        raise InvalidValue(
            f"Grade must be between {GRADE_MIN} and {GRADE_MAX}, got {normalized}", raw_value
        )

    return normalized


class GradeLedger:
    """
    Enforces who may write a grade and until when.

    Operates on the grade list of a loaded database snapshot; a failed call
    leaves the list untouched.
    """

    def find(self, grades: list[Grade], deliverable_id: Any, evaluator_id: Any) -> Grade | None:
        """Return the grade of one juror for one deliverable, if any."""
        return next(
            (
                g
                for g in grades
                if g.deliverable_id == deliverable_id and g.evaluator_id == evaluator_id
            ),
            None,
        )

    def submit_or_update(
        self,
        grades: list[Grade],
        deliverable: Deliverable,
        evaluator: User,
        raw_value: Any,
        now: datetime,
    ) -> Grade:
        """
        Create the evaluator's grade or overwrite its value.

        Args:
            grades: Grade list of the snapshot (mutated on success).
            deliverable: The deliverable being graded.
            evaluator: The calling user; only their own record is touched.
            raw_value: Submitted value before normalization.
            now: Current instant.

        Returns:
            The stored Grade.

        Raises:
            NotJuror: If the evaluator is not on the jury.
            EditWindowClosed: If now is past the edit deadline.
            InvalidValue: If the value fails normalization.
        """
        if not deliverable.has_juror(evaluator.id):
            raise NotJuror(f"'{evaluator.username}' is not on the jury of '{deliverable.title}'")

        if not deliverable.can_edit(now):
            raise EditWindowClosed(
                f"Editing closed for '{deliverable.title}' at "
                f"{deliverable.edit_deadline.isoformat()}"
            )

        value = normalize_grade_value(raw_value)

        existing = self.find(grades, deliverable.id, evaluator.id)
        if existing is None:
            grade = Grade(
                deliverable_id=deliverable.id,
                evaluator_id=evaluator.id,
                value=value,
                created_at=now,
                updated_at=now,
            )
            grades.append(grade)
            logger.debug("Grade created for deliverable %s", deliverable.id)
            return grade

        grade = existing.model_copy(update={"value": value, "updated_at": now})
        grades[grades.index(existing)] = grade
        logger.debug("Grade updated for deliverable %s", deliverable.id)
        return grade
