"""
Peer grading service - the core orchestrator.

Each public method is one call by one actor: it loads a snapshot, lazily
assigns juries to every deliverable that has become due, performs its
action and saves the snapshot once. A call that raises saves nothing.
"""

import logging
import random
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Iterable, Iterator
from uuid import UUID

from peer_jury.clock import Clock, SystemClock
from peer_jury.config import Settings, get_settings
from peer_jury.errors import InvalidInput, NotAuthorized, NotFound
from peer_jury.grading import GradeLedger
from peer_jury.inputs import clean_title, clean_username, parse_due_at, parse_team_usernames
from peer_jury.jury import JurySelector, eligible_jurors
from peer_jury.models import (
    MIN_JURY_SIZE,
    Database,
    Deliverable,
    Project,
    Role,
    Session,
    User,
    same_username,
)
from peer_jury.storage import JsonFileStorage, Storage
from peer_jury.views import (
    DeliverableSummary,
    JurorAssignment,
    ProjectOverview,
    juror_assignment,
    overview_project,
    summarize_deliverable,
)

logger = logging.getLogger(__name__)


class PeerGradingService:
    """
    Coordinates users, projects, deliverables, juries and grades.

    The caller of every privileged operation is passed explicitly; the
    stored session is only a convenience for shells such as the CLI.
    """

    def __init__(
        self,
        storage: Storage,
        clock: Clock | None = None,
        rng: random.Random | None = None,
    ):
        """
        Initialize the service.

        Args:
            storage: Persistence collaborator.
            clock: Source of the current instant. Wall clock if not provided.
            rng: Entropy for jury draws. Unseeded if not provided.
        """
        self._storage = storage
        self._clock = clock or SystemClock()
        self._selector = JurySelector(rng)
        self._ledger = GradeLedger()

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> "PeerGradingService":
        """Build a service backed by the configured JSON data file."""
        settings = settings or get_settings()
        rng = random.Random(settings.random_seed) if settings.random_seed is not None else None
        return cls(JsonFileStorage(settings.data_file), SystemClock(), rng)

    # ==========================================================================
    # Snapshot handling
    # ==========================================================================

    @contextmanager
    def _snapshot(self) -> Iterator[tuple[Database, datetime]]:
        """
        Load, assign due juries, yield, and save the action only on success.

        Newly drawn juries are saved before the action runs, so a failing
        call can never discard a draw and trigger a fresh one.
        """
        db = self._storage.load()
        now = self._clock.now()
        if self._assign_due_juries(db, now):
            self._storage.save(db)
        yield db, now
        self._storage.save(db)

    def _assign_due_juries(self, db: Database, now: datetime) -> int:
        assigned = 0
        for deliverable in list(db.deliverables):
            if deliverable.jury_assigned or not deliverable.is_due(now):
                continue
            project = db.project_by_id(deliverable.project_id)
            if project is None:
                logger.warning("Deliverable %s references a missing project", deliverable.id)
                continue
            updated = self._selector.assign_if_due(
                deliverable, eligible_jurors(project, db.users), now
            )
            if updated is not deliverable and updated.jury_assigned:
                db.replace_deliverable(updated)
                assigned += 1
        return assigned

    def _resolve(self, db: Database, caller: User) -> User:
        user = db.user_by_id(caller.id)
        if user is None:
            raise NotFound("User", caller.username)
        return user

    def _project(self, db: Database, project_id: UUID) -> Project:
        project = db.project_by_id(project_id)
        if project is None:
            raise NotFound("Project", project_id)
        return project

    def _deliverable(self, db: Database, deliverable_id: UUID) -> Deliverable:
        deliverable = db.deliverable_by_id(deliverable_id)
        if deliverable is None:
            raise NotFound("Deliverable", deliverable_id)
        return deliverable

    # ==========================================================================
    # Identity
    # ==========================================================================

    def register(self, username: str, role: Role | str = Role.STUDENT) -> User:
        """
        Register a user and log them in.

        Raises:
            InvalidInput: If the username is malformed or already taken.
        """
        name = clean_username(username)
        try:
            role = Role(role)
        except ValueError as e:
            raise InvalidInput(f"Unknown role: '{role}'") from e

        with self._snapshot() as (db, _now):
            if db.user_by_username(name) is not None:
                raise InvalidInput(f"Username already exists: '{name}'")
            user = User(username=name, role=role)
            db.users.append(user)
            db.session = Session(user_id=user.id)

        logger.info("Registered %s '%s'", user.role.value, user.username)
        return user

    def login(self, username: str) -> User:
        """
        Start a session as an existing user.

        Raises:
            NotFound: If no user has that username.
        """
        name = (username or "").strip()
        with self._snapshot() as (db, _now):
            user = db.user_by_username(name)
            if user is None:
                raise NotFound("User", name)
            db.session = Session(user_id=user.id)
        return user

    def logout(self) -> None:
        with self._snapshot() as (db, _now):
            db.session = None

    def current_user(self) -> User | None:
        """Resolve the stored session to a user, if any."""
        with self._snapshot() as (db, _now):
            if db.session is None:
                return None
            return db.user_by_id(db.session.user_id)

    # ==========================================================================
    # Projects and deliverables
    # ==========================================================================

    def create_project(self, caller: User, title: str, team: str | Iterable[str]) -> Project:
        """
        Create a project owned by a team of registered students.

        Raises:
            NotAuthorized: If the caller is not a student.
            InvalidInput: If the title or team is invalid, the caller is not
                in the team, or a member is not a registered student.
        """
        clean = clean_title(title, "Project title")
        members = parse_team_usernames(team)

        with self._snapshot() as (db, _now):
            me = self._resolve(db, caller)
            if not me.is_student:
                raise NotAuthorized("Only students can create projects")

            if not any(same_username(m, me.username) for m in members):
                raise InvalidInput("Your username must be included in the team")

            for name in members:
                member = db.user_by_username(name)
                if member is None:
                    raise InvalidInput(f"Team member '{name}' is not registered yet")
                if not member.is_student:
                    raise InvalidInput(f"'{name}' is not a student user")

            project = Project(
                title=clean,
                team=members,
                created_by=me.id,
                creator_username=me.username,
            )
            db.projects.append(project)

        logger.info("Project '%s' created with %d team members", project.title, len(members))
        return project

    def create_deliverable(
        self,
        caller: User,
        project_id: UUID,
        title: str,
        due_at: datetime | str,
        jury_size: int = MIN_JURY_SIZE,
        edit_window_minutes: int = 60,
        link: str = "",
    ) -> Deliverable:
        """
        Publish a deliverable for one of the caller's projects.

        Raises:
            NotFound: If the project does not exist.
            NotAuthorized: If the caller is not on the project team.
            InvalidInput: If title, due instant, jury size or edit window
                are invalid.
        """
        clean = clean_title(title, "Deliverable title")
        due = parse_due_at(due_at, assume_local=False)
        if isinstance(jury_size, bool) or not isinstance(jury_size, int) or jury_size < MIN_JURY_SIZE:
            raise InvalidInput(f"Jury size must be at least {MIN_JURY_SIZE}")
        if (
            isinstance(edit_window_minutes, bool)
            or not isinstance(edit_window_minutes, int)
            or edit_window_minutes < 1
        ):
            raise InvalidInput("Edit window must be at least 1 minute")

        with self._snapshot() as (db, _now):
            me = self._resolve(db, caller)
            project = self._project(db, project_id)
            if not project.has_member(me.username):
                raise NotAuthorized("Only the project team can create deliverables")

            deliverable = Deliverable(
                project_id=project.id,
                title=clean,
                due_at=due,
                jury_size=jury_size,
                edit_window_minutes=edit_window_minutes,
                link=link.strip(),
            )
            db.deliverables.append(deliverable)

        logger.info("Deliverable '%s' created, due %s", deliverable.title, due.isoformat())
        return deliverable

    def set_link(self, caller: User, deliverable_id: UUID, link: str) -> Deliverable:
        """
        Update the submission link of a deliverable.

        Raises:
            NotFound: If the deliverable does not exist.
            NotAuthorized: If the caller is not on the owning team.
        """
        with self._snapshot() as (db, _now):
            me = self._resolve(db, caller)
            deliverable = self._deliverable(db, deliverable_id)
            project = self._project(db, deliverable.project_id)
            if not project.has_member(me.username):
                raise NotAuthorized("Only the project team can update links")

            updated = deliverable.model_copy(update={"link": (link or "").strip()})
            db.replace_deliverable(updated)
        return updated

    def refresh_juries(self) -> int:
        """Assign juries to every due deliverable; return how many were drawn."""
        db = self._storage.load()
        assigned = self._assign_due_juries(db, self._clock.now())
        self._storage.save(db)
        return assigned

    # ==========================================================================
    # Grading
    # ==========================================================================

    def submit_grade(self, caller: User, deliverable_id: UUID, raw_value: Any) -> JurorAssignment:
        """
        Submit or revise the caller's grade for a deliverable.

        Returns:
            The caller's own view of the deliverable after the write.

        Raises:
            NotFound: If the deliverable does not exist.
            NotJuror: If the caller is not on its jury.
            EditWindowClosed: If the edit window has elapsed.
            InvalidValue: If the value is not a valid grade.
        """
        with self._snapshot() as (db, now):
            me = self._resolve(db, caller)
            deliverable = self._deliverable(db, deliverable_id)
            self._ledger.submit_or_update(db.grades, deliverable, me, raw_value, now)
            return juror_assignment(db, deliverable, me, now)

    def juror_assignments(self, caller: User) -> list[JurorAssignment]:
        """Every deliverable the caller sits on the jury of, own grade only."""
        with self._snapshot() as (db, now):
            me = self._resolve(db, caller)
            return [
                juror_assignment(db, d, me, now) for d in db.deliverables if d.has_juror(me.id)
            ]

    # ==========================================================================
    # Anonymous views
    # ==========================================================================

    def owned_projects(self, caller: User) -> list[ProjectOverview]:
        """Projects where the caller is on the team, with anonymous summaries."""
        with self._snapshot() as (db, now):
            me = self._resolve(db, caller)
            return [
                overview_project(db, p, now) for p in db.projects if p.has_member(me.username)
            ]

    def supervisor_overview(self, caller: User) -> list[ProjectOverview]:
        """
        All projects with anonymous summaries.

        Raises:
            NotAuthorized: If the caller is not a supervisor.
        """
        with self._snapshot() as (db, now):
            me = self._resolve(db, caller)
            if not me.is_supervisor:
                raise NotAuthorized("Only supervisors can view all projects")
            return [overview_project(db, p, now) for p in db.projects]

    def deliverable_summary(self, caller: User, deliverable_id: UUID) -> DeliverableSummary:
        """
        Anonymous summary of one deliverable.

        Raises:
            NotFound: If the deliverable does not exist.
            NotAuthorized: If the caller is neither supervisor nor team member.
        """
        with self._snapshot() as (db, now):
            me = self._resolve(db, caller)
            deliverable = self._deliverable(db, deliverable_id)
            project = self._project(db, deliverable.project_id)
            if not (me.is_supervisor or project.has_member(me.username)):
                raise NotAuthorized("Only the project team or a supervisor can view results")
            return summarize_deliverable(db, deliverable, now)
