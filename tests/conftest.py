"""
Test configuration: in-memory SQLite shared by the app and the tests.

DATABASE_URL is set before the application is imported so the module-level
engine never tries to reach PostgreSQL.
"""

import os

os.environ["DATABASE_URL"] = "sqlite://"

from datetime import date  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from capacity_planner.core.db import get_db  # noqa: E402
from capacity_planner.main import app  # noqa: E402
from capacity_planner.models.orm.base import Base  # noqa: E402
from capacity_planner.models.orm.engineer import Seniority  # noqa: E402
from capacity_planner.models.schemas.assignment import AssignmentCreateModel  # noqa: E402
from capacity_planner.models.schemas.engineer import EngineerCreateModel  # noqa: E402
from capacity_planner.models.schemas.project import ProjectCreateModel  # noqa: E402
from capacity_planner.repositories.assignment_repo import AssignmentRepository  # noqa: E402
from capacity_planner.repositories.engineer_repo import EngineerRepository  # noqa: E402
from capacity_planner.repositories.project_repo import ProjectRepository  # noqa: E402

# One connection for the whole process so every session sees the same in-memory DB
test_engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=test_engine)


@pytest.fixture
def db_session():
    Base.metadata.create_all(bind=test_engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=test_engine)


@pytest.fixture
def client(db_session):
    """TestClient whose requests run against the test session."""

    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def make_engineer(db_session):
    repo = EngineerRepository(db_session)
    counter = {"n": 0}

    def _make(name="Ada", max_capacity=100, skills=("python",), seniority=Seniority.SENIOR):
        counter["n"] += 1
        return repo.create_engineer(
            EngineerCreateModel(
                name=name,
                email=f"{name.lower()}{counter['n']}@example.com",
                skills=list(skills),
                seniority=seniority,
                department="Platform",
                max_capacity=max_capacity,
            )
        )

    return _make


@pytest.fixture
def make_project(db_session):
    repo = ProjectRepository(db_session)

    def _make(name="Atlas", required_skills=("python",), start=date(2025, 1, 1), end=date(2025, 12, 31)):
        return repo.create_project(
            ProjectCreateModel(
                name=name,
                description=f"{name} project",
                start_date=start,
                end_date=end,
                required_skills=list(required_skills),
                team_size=3,
            )
        )

    return _make


@pytest.fixture
def make_assignment(db_session):
    """Persists an assignment directly, bypassing the capacity check."""
    repo = AssignmentRepository(db_session)

    def _make(engineer, project, percentage, start, end, role="Developer"):
        assignment = repo.create_assignment(
            AssignmentCreateModel(
                engineer_id=engineer.engineer_id,
                project_id=project.project_id,
                allocation_percentage=percentage,
                start_date=start,
                end_date=end,
                role=role,
            )
        )
        db_session.commit()
        return assignment

    return _make
