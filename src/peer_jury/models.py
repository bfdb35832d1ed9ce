"""
Pydantic models for the Peer Jury system.

These models define the schemas for:
- Users and their roles
- Projects with their owning team
- Deliverables with their jury and edit window
- Grades submitted by jurors
- The persisted database document

Relationships are expressed by UUID only; nothing is embedded.
"""

from datetime import datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Any
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

GRADE_MIN = Decimal("1")
GRADE_MAX = Decimal("10")
GRADE_QUANTUM = Decimal("0.01")
MIN_JURY_SIZE = 3


def round_two_places(value: Decimal) -> Decimal:
    """Round to two decimal places, halves away from zero."""
    return value.quantize(GRADE_QUANTUM, rounding=ROUND_HALF_UP)


def same_username(a: str, b: str) -> bool:
    """Usernames compare case-insensitively."""
    return a.casefold() == b.casefold()


# ==============================================================================
# Identity Models
# ==============================================================================


class Role(str, Enum):
    """Role of a registered user."""

    STUDENT = "student"
    SUPERVISOR = "supervisor"


class User(BaseModel):
    """A registered user. Immutable once created."""

    model_config = ConfigDict(frozen=True)

    id: UUID = Field(default_factory=uuid4)

    username: str = Field(
        ...,
        min_length=1,
        max_length=100,
        description="Unique, case-insensitive username",
    )

    role: Role = Field(default=Role.STUDENT)

    @property
    def is_student(self) -> bool:
        return self.role is Role.STUDENT

    @property
    def is_supervisor(self) -> bool:
        return self.role is Role.SUPERVISOR


class Session(BaseModel):
    """Pointer to the user the CLI shell is acting as."""

    model_config = ConfigDict(frozen=True)

    user_id: UUID


# ==============================================================================
# Project Models
# ==============================================================================


class Project(BaseModel):
    """
    A student project owned by a team.

    The team is a snapshot of usernames taken at creation time and never
    changes afterwards. The creator is always one of its members.
    """

    model_config = ConfigDict(frozen=True)

    id: UUID = Field(default_factory=uuid4)

    title: str = Field(..., min_length=1, max_length=200)

    team: tuple[str, ...] = Field(
        ...,
        min_length=1,
        description="Usernames of the owning team (PM group)",
    )

    created_by: UUID = Field(..., description="Id of the creating user")

    creator_username: str = Field(..., min_length=1)

    @model_validator(mode="after")
    def validate_creator_in_team(self) -> "Project":
        """Ensure the creator is a member of the team."""
        if not self.has_member(self.creator_username):
            raise ValueError(
                f"Creator '{self.creator_username}' must be a member of the team"
            )
        return self

    def has_member(self, username: str) -> bool:
        """Check team membership (case-insensitive)."""
        return any(same_username(member, username) for member in self.team)


class Deliverable(BaseModel):
    """
    A deliverable published by a project team.

    The jury starts empty and is filled exactly once, the first time the
    deliverable is observed at or after its due instant.
    """

    model_config = ConfigDict(frozen=True)

    id: UUID = Field(default_factory=uuid4)

    project_id: UUID

    title: str = Field(..., min_length=1, max_length=200)

    due_at: datetime = Field(..., description="Due instant (timezone-aware)")

    jury_size: int = Field(
        default=MIN_JURY_SIZE,
        ge=MIN_JURY_SIZE,
        description="Requested number of jurors",
    )

    edit_window_minutes: int = Field(
        default=60,
        ge=1,
        description="Minutes after due_at during which grades may be edited",
    )

    link: str = Field(default="", description="Video or deployment link")

    jury: tuple[UUID, ...] = Field(
        default=(),
        description="Ids of the assigned jurors (empty until assigned)",
    )

    @field_validator("due_at")
    @classmethod
    def require_aware_due_at(cls, v: datetime) -> datetime:
        """Reject naive datetimes; instants are compared across zones."""
        if v.tzinfo is None or v.utcoffset() is None:
            raise ValueError("due_at must be timezone-aware")
        return v

    @property
    def edit_deadline(self) -> datetime:
        """Last instant at which a grade may still be created or changed."""
        return self.due_at + timedelta(minutes=self.edit_window_minutes)

    @property
    def jury_assigned(self) -> bool:
        return len(self.jury) > 0

    def is_due(self, now: datetime) -> bool:
        return now >= self.due_at

    def can_edit(self, now: datetime) -> bool:
        """Editability is derived from time on every call, never stored."""
        return now <= self.edit_deadline

    def has_juror(self, user_id: UUID) -> bool:
        return user_id in self.jury


# ==============================================================================
# Grade Models
# ==============================================================================


class Grade(BaseModel):
    """A single juror's grade for a deliverable."""

    model_config = ConfigDict(frozen=True)

    id: UUID = Field(default_factory=uuid4)

    deliverable_id: UUID

    evaluator_id: UUID

    value: Decimal = Field(
        ...,
        ge=GRADE_MIN,
        le=GRADE_MAX,
        decimal_places=2,
        description="Grade between 1 and 10 with at most two decimals",
    )

    created_at: datetime

    updated_at: datetime

    @field_validator("value", mode="before")
    @classmethod
    def convert_to_decimal(cls, v: Any) -> Decimal:
        """Convert numeric values to Decimal for precision."""
        if isinstance(v, Decimal):
            return v
        return Decimal(str(v))


# ==============================================================================
# Persisted Document
# ==============================================================================


class Database(BaseModel):
    """
    The whole persisted state, loaded and saved as one document per call.

    Entities are frozen; updating one replaces it in its list.
    """

    users: list[User] = Field(default_factory=list)
    projects: list[Project] = Field(default_factory=list)
    deliverables: list[Deliverable] = Field(default_factory=list)
    grades: list[Grade] = Field(default_factory=list)
    session: Session | None = None

    def user_by_id(self, user_id: UUID) -> User | None:
        return next((u for u in self.users if u.id == user_id), None)

    def user_by_username(self, username: str) -> User | None:
        return next((u for u in self.users if same_username(u.username, username)), None)

    def project_by_id(self, project_id: UUID) -> Project | None:
        return next((p for p in self.projects if p.id == project_id), None)

    def deliverable_by_id(self, deliverable_id: UUID) -> Deliverable | None:
        return next((d for d in self.deliverables if d.id == deliverable_id), None)

    def deliverables_for(self, project_id: UUID) -> list[Deliverable]:
        return [d for d in self.deliverables if d.project_id == project_id]

    def grades_for(self, deliverable_id: UUID) -> list[Grade]:
        return [g for g in self.grades if g.deliverable_id == deliverable_id]

    def replace_deliverable(self, updated: Deliverable) -> None:
        for i, existing in enumerate(self.deliverables):
            if existing.id == updated.id:
                self.deliverables[i] = updated
                return
        raise KeyError(updated.id)
