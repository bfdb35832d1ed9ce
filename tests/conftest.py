"""
Pytest configuration and fixtures.

Provides common test fixtures for all test modules.
"""

import random
import tempfile
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Generator

import pytest

from peer_jury.clock import FixedClock
from peer_jury.config import Settings
from peer_jury.models import Database, Deliverable, Project, Role, User
from peer_jury.service import PeerGradingService
from peer_jury.storage import MemoryStorage

NOW = datetime(2026, 5, 1, 12, 0, tzinfo=timezone.utc)


# ==============================================================================
# Directory Fixtures
# ==============================================================================


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


# ==============================================================================
# Collaborator Fixtures
# ==============================================================================


@pytest.fixture
def clock() -> FixedClock:
    """Clock frozen at a known instant."""
    return FixedClock(NOW)


@pytest.fixture
def rng() -> random.Random:
    """Seeded random source for reproducible jury draws."""
    return random.Random(1234)


@pytest.fixture
def storage() -> MemoryStorage:
    return MemoryStorage()


@pytest.fixture
def service(storage: MemoryStorage, clock: FixedClock, rng: random.Random) -> PeerGradingService:
    """Service over in-memory storage with a fixed clock."""
    return PeerGradingService(storage, clock, rng)


@pytest.fixture
def test_settings(temp_dir: Path) -> Settings:
    """Create test settings pointing at a temporary data file."""
    return Settings(
        data_file=temp_dir / "data" / "db.json",
        default_jury_size=3,
        default_edit_window_minutes=30,
        random_seed=7,
        log_level="WARNING",
    )


# ==============================================================================
# Sample Entity Fixtures
# ==============================================================================


@pytest.fixture
def students() -> list[User]:
    """Ten registered students."""
    return [User(username=f"student{i}", role=Role.STUDENT) for i in range(10)]


@pytest.fixture
def supervisor() -> User:
    return User(username="prof", role=Role.SUPERVISOR)


@pytest.fixture
def sample_project(students: list[User]) -> Project:
    """Project owned by the first two students."""
    return Project(
        title="Campus Navigator",
        team=(students[0].username, students[1].username),
        created_by=students[0].id,
        creator_username=students[0].username,
    )


@pytest.fixture
def sample_deliverable(sample_project: Project) -> Deliverable:
    """Deliverable due at NOW with a 30 minute edit window."""
    return Deliverable(
        project_id=sample_project.id,
        title="Sprint 1 demo",
        due_at=NOW,
        jury_size=3,
        edit_window_minutes=30,
        link="https://example.org/demo",
    )


@pytest.fixture
def juried_deliverable(sample_deliverable: Deliverable, students: list[User]) -> Deliverable:
    """Sample deliverable with students 2-4 on its jury."""
    return sample_deliverable.model_copy(
        update={"jury": tuple(s.id for s in students[2:5])}
    )


@pytest.fixture
def sample_database(
    students: list[User],
    supervisor: User,
    sample_project: Project,
    juried_deliverable: Deliverable,
) -> Database:
    return Database(
        users=[*students, supervisor],
        projects=[sample_project],
        deliverables=[juried_deliverable],
    )


# ==============================================================================
# Populated Service Fixtures
# ==============================================================================


@pytest.fixture
def populated_service(
    service: PeerGradingService,
) -> tuple[PeerGradingService, dict[str, User], Deliverable]:
    """
    Service with six students, a supervisor, one project owned by ana and
    bogdan, and one deliverable due one hour after NOW.
    """
    users: dict[str, User] = {}
    for name in ("ana", "bogdan", "carla", "dmitri", "eva", "filip"):
        users[name] = service.register(name, Role.STUDENT)
    users["prof"] = service.register("prof", Role.SUPERVISOR)

    project = service.create_project(users["ana"], "Campus Navigator", "ana, bogdan")
    deliverable = service.create_deliverable(
        users["ana"],
        project.id,
        "Sprint 1 demo",
        NOW + timedelta(hours=1),
        jury_size=3,
        edit_window_minutes=30,
    )
    return service, users, deliverable
