"""
Read projections guarded for anonymity.

Owners and supervisors receive DeliverableSummary / ProjectOverview, which
carry counts, the unordered multiset of values and the final score but no
juror identity and no jury membership. A juror receives JurorAssignment,
which carries their own grade and nothing about anyone else's.
"""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, computed_field

from peer_jury.errors import NotJuror
from peer_jury.grading import MIN_GRADES_FOR_SCORE, final_score
from peer_jury.models import Database, Deliverable, Project, User


class DeliverableSummary(BaseModel):
    """Owner/supervisor view of a deliverable."""

    model_config = ConfigDict(frozen=True, strict=True)

    deliverable_id: UUID
    project_id: UUID
    title: str
    due_at: datetime
    edit_deadline: datetime
    link: str
    requested_jury_size: int
    jurors_assigned: int
    is_due: bool

    grade_values: tuple[Decimal, ...] = Field(
        default=(),
        description="Submitted values in ascending order, unattributed",
    )

    final_score: Decimal | None = Field(
        default=None,
        description="Trimmed mean, or None while fewer than three grades exist",
    )

    @computed_field  # type: ignore[prop-decorator]
    @property
    def grades_received(self) -> int:
        """Number of grades submitted so far."""
        return len(self.grade_values)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def needs_more_grades(self) -> bool:
        """True while the final score is indeterminate."""
        return self.grades_received < MIN_GRADES_FOR_SCORE


class ProjectOverview(BaseModel):
    """Owner/supervisor view of a project and its deliverables."""

    model_config = ConfigDict(frozen=True, strict=True)

    project_id: UUID
    title: str
    team: tuple[str, ...]
    deliverables: tuple[DeliverableSummary, ...] = ()


class JurorAssignment(BaseModel):
    """A juror's own view of one deliverable they grade."""

    model_config = ConfigDict(frozen=True, strict=True)

    deliverable_id: UUID
    deliverable_title: str
    project_title: str
    link: str
    due_at: datetime
    edit_deadline: datetime
    can_edit: bool
    my_grade: Decimal | None = None
    graded_at: datetime | None = None


def summarize_deliverable(db: Database, deliverable: Deliverable, now: datetime) -> DeliverableSummary:
    """Build the anonymous view of a deliverable."""
    values = tuple(sorted(g.value for g in db.grades_for(deliverable.id)))
    return DeliverableSummary(
        deliverable_id=deliverable.id,
        project_id=deliverable.project_id,
        title=deliverable.title,
        due_at=deliverable.due_at,
        edit_deadline=deliverable.edit_deadline,
        link=deliverable.link,
        requested_jury_size=deliverable.jury_size,
        jurors_assigned=len(deliverable.jury),
        is_due=deliverable.is_due(now),
        grade_values=values,
        final_score=final_score(values),
    )


def overview_project(db: Database, project: Project, now: datetime) -> ProjectOverview:
    """Build the anonymous view of a project."""
    return ProjectOverview(
        project_id=project.id,
        title=project.title,
        team=project.team,
        deliverables=tuple(
            summarize_deliverable(db, d, now) for d in db.deliverables_for(project.id)
        ),
    )


def juror_assignment(
    db: Database, deliverable: Deliverable, juror: User, now: datetime
) -> JurorAssignment:
    """
    Build a juror's own view of a deliverable.

    Raises:
        NotJuror: If the user is not on the deliverable's jury.
    """
    if not deliverable.has_juror(juror.id):
        raise NotJuror(f"'{juror.username}' is not on the jury of '{deliverable.title}'")

    project = db.project_by_id(deliverable.project_id)
    own = next(
        (
            g
            for g in db.grades_for(deliverable.id)
            if g.evaluator_id == juror.id
        ),
        None,
    )
    return JurorAssignment(
        deliverable_id=deliverable.id,
        deliverable_title=deliverable.title,
        project_title=project.title if project else "Unknown project",
        link=deliverable.link,
        due_at=deliverable.due_at,
        edit_deadline=deliverable.edit_deadline,
        can_edit=deliverable.can_edit(now),
        my_grade=own.value if own else None,
        graded_at=own.updated_at if own else None,
    )
