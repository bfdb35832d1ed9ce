"""
Unit tests for the grade ledger and the final score aggregator.
"""

from datetime import timedelta
from decimal import Decimal

import pytest

from peer_jury.errors import EditWindowClosed, InvalidValue, NotJuror
from peer_jury.grading import GradeLedger, final_score, normalize_grade_value
from peer_jury.models import Deliverable, Grade, User

from conftest import NOW


class TestNormalizeGradeValue:
    """Tests for normalize_grade_value."""

    @pytest.mark.parametrize(
        "raw, expected",
        [
            (7, Decimal("7.00")),
            (7.5, Decimal("7.50")),
            ("8.25", Decimal("8.25")),
            (" 9 ", Decimal("9.00")),
            (7.999999999, Decimal("8.00")),
            (Decimal("1"), Decimal("1.00")),
            (10, Decimal("10.00")),
        ],
    )
    def test_valid_values(self, raw: object, expected: Decimal) -> None:
        assert normalize_grade_value(raw) == expected

    def test_half_rounds_away_from_zero(self) -> None:
        """Test 7.005 is stored as 7.01 and re-validates as two decimals."""
        value = normalize_grade_value(7.005)

        assert value == Decimal("7.01")
        assert value.as_tuple().exponent == -2
        assert normalize_grade_value(value) == value
        assert Decimal("1") <= value <= Decimal("10")

    @pytest.mark.parametrize(
        "raw, expected",
        [("7.123", Decimal("7.12")), (8.4449, Decimal("8.44")), ("9.9951", Decimal("10.00"))],
    )
    def test_extra_digits_are_rounded_away(self, raw: object, expected: Decimal) -> None:
        """Test more than two decimals never reach the stored value."""
        value = normalize_grade_value(raw)

        assert value == expected
        assert value.as_tuple().exponent == -2

    def test_rounding_happens_before_range_check(self) -> None:
        assert normalize_grade_value(0.995) == Decimal("1.00")
        assert normalize_grade_value(10.004) == Decimal("10.00")

    @pytest.mark.parametrize("raw", [0.99, 10.01, 0, -3, 11, "10.005"])
    def test_out_of_range(self, raw: object) -> None:
        with pytest.raises(InvalidValue, match="between"):
            normalize_grade_value(raw)

    @pytest.mark.parametrize("raw", ["abc", "", None, True, "NaN", float("inf"), [7], "1e40"])
    def test_not_a_number(self, raw: object) -> None:
        with pytest.raises(InvalidValue):
            normalize_grade_value(raw)


class TestGradeLedger:
    """Tests for GradeLedger.submit_or_update."""

    def test_first_submission_creates_grade(
        self, juried_deliverable: Deliverable, students: list[User]
    ) -> None:
        grades: list[Grade] = []
        grade = GradeLedger().submit_or_update(grades, juried_deliverable, students[2], "8.5", NOW)

        assert grades == [grade]
        assert grade.value == Decimal("8.50")
        assert grade.evaluator_id == students[2].id
        assert grade.created_at == grade.updated_at == NOW

    def test_update_preserves_created_at(
        self, juried_deliverable: Deliverable, students: list[User]
    ) -> None:
        """Test an update overwrites value and updated_at only."""
        ledger = GradeLedger()
        grades: list[Grade] = []
        first = ledger.submit_or_update(grades, juried_deliverable, students[2], 6, NOW)
        later = NOW + timedelta(minutes=10)
        second = ledger.submit_or_update(grades, juried_deliverable, students[2], 9, later)

        assert len(grades) == 1
        assert second.id == first.id
        assert second.value == Decimal("9.00")
        assert second.created_at == NOW
        assert second.updated_at == later

    def test_one_grade_per_juror(self, juried_deliverable: Deliverable, students: list[User]) -> None:
        ledger = GradeLedger()
        grades: list[Grade] = []
        for juror, value in zip(students[2:5], (4, 9, 5)):
            ledger.submit_or_update(grades, juried_deliverable, juror, value, NOW)
        ledger.submit_or_update(grades, juried_deliverable, students[3], 8, NOW)

        assert len(grades) == 3
        assert {g.evaluator_id for g in grades} == {s.id for s in students[2:5]}

    def test_non_juror_rejected_without_side_effects(
        self, juried_deliverable: Deliverable, students: list[User]
    ) -> None:
        """Test a user outside the jury cannot create or alter any record."""
        ledger = GradeLedger()
        grades: list[Grade] = []
        ledger.submit_or_update(grades, juried_deliverable, students[2], 7, NOW)
        before = list(grades)

        with pytest.raises(NotJuror):
            ledger.submit_or_update(grades, juried_deliverable, students[7], 3, NOW)

        assert grades == before

    def test_no_jury_means_no_grading(
        self, sample_deliverable: Deliverable, students: list[User]
    ) -> None:
        with pytest.raises(NotJuror):
            GradeLedger().submit_or_update([], sample_deliverable, students[2], 7, NOW)

    def test_edit_window_boundary_first_submission(
        self, juried_deliverable: Deliverable, students: list[User]
    ) -> None:
        """Test creation succeeds up to the deadline and fails after it."""
        deadline = juried_deliverable.edit_deadline
        ledger = GradeLedger()

        grades: list[Grade] = []
        ledger.submit_or_update(grades, juried_deliverable, students[2], 7, deadline - timedelta(seconds=1))
        assert len(grades) == 1

        late: list[Grade] = []
        with pytest.raises(EditWindowClosed):
            ledger.submit_or_update(
                late, juried_deliverable, students[3], 7, deadline + timedelta(milliseconds=1)
            )
        assert late == []

    def test_edit_window_boundary_update(
        self, juried_deliverable: Deliverable, students: list[User]
    ) -> None:
        """Test an existing grade locks once the deadline passes."""
        ledger = GradeLedger()
        grades: list[Grade] = []
        ledger.submit_or_update(grades, juried_deliverable, students[2], 7, NOW)

        with pytest.raises(EditWindowClosed):
            ledger.submit_or_update(
                grades, juried_deliverable, students[2], 3, juried_deliverable.edit_deadline + timedelta(seconds=1)
            )

        assert grades[0].value == Decimal("7.00")

    def test_invalid_value_leaves_grade_untouched(
        self, juried_deliverable: Deliverable, students: list[User]
    ) -> None:
        ledger = GradeLedger()
        grades: list[Grade] = []
        ledger.submit_or_update(grades, juried_deliverable, students[2], 7, NOW)

        with pytest.raises(InvalidValue):
            ledger.submit_or_update(grades, juried_deliverable, students[2], 12, NOW)

        assert grades[0].value == Decimal("7.00")

    def test_not_juror_checked_before_value(
        self, juried_deliverable: Deliverable, students: list[User]
    ) -> None:
        with pytest.raises(NotJuror):
            GradeLedger().submit_or_update([], juried_deliverable, students[0], "garbage", NOW)


class TestFinalScore:
    """Tests for the trimmed-mean aggregator."""

    def test_drops_one_min_and_one_max(self) -> None:
        """Test [6, 7, 10, 2] trims to [6, 7] and averages to 6.50."""
        assert final_score([6, 7, 10, 2]) == Decimal("6.50")

    def test_single_grade_is_indeterminate(self) -> None:
        assert final_score([5]) is None

    def test_two_grades_are_indeterminate(self) -> None:
        assert final_score([Decimal("5"), Decimal("9")]) is None

    def test_no_grades(self) -> None:
        assert final_score([]) is None

    def test_three_grades_return_median(self) -> None:
        assert final_score([Decimal("4"), Decimal("9"), Decimal("5")]) == Decimal("5.00")

    def test_tied_extremes_drop_one_instance_each(self) -> None:
        """Test only one of several tied minimums and maximums is dropped."""
        assert final_score([2, 2, 2, 9, 9]) == Decimal("4.33")

    def test_all_equal(self) -> None:
        assert final_score([7.25, 7.25, 7.25, 7.25]) == Decimal("7.25")

    def test_result_rounded_half_up(self) -> None:
        # trimmed [7.00, 7.01] -> 7.005 -> 7.01
        assert final_score(["1", "7", "7.01", "10"]) == Decimal("7.01")

    def test_order_does_not_matter(self) -> None:
        values = [Decimal("8.5"), Decimal("3"), Decimal("6.25"), Decimal("9.75"), Decimal("7")]
        assert final_score(values) == final_score(list(reversed(values))) == Decimal("7.25")
