import threading
from datetime import date

import pytest
from fastapi import HTTPException
from sqlalchemy import create_engine, func, select
from sqlalchemy.orm import sessionmaker

from capacity_planner.core.locks import EngineerLockRegistry
from capacity_planner.models.orm.assignment import AssignmentORM
from capacity_planner.models.orm.base import Base
from capacity_planner.models.orm.engineer import Seniority
from capacity_planner.models.schemas.assignment import AssignmentCreateModel, AssignmentUpdateModel
from capacity_planner.models.schemas.engineer import EngineerCreateModel
from capacity_planner.models.schemas.project import ProjectCreateModel
from capacity_planner.repositories.assignment_repo import AssignmentRepository
from capacity_planner.repositories.engineer_repo import EngineerRepository
from capacity_planner.repositories.project_repo import ProjectRepository
from capacity_planner.services.assignment_service import AssignmentService
from capacity_planner.services.capacity_allocator import InvalidRangeError


def new_assignment(engineer, project, percentage, start, end, role="Developer"):
    return AssignmentCreateModel(
        engineer_id=engineer.engineer_id,
        project_id=project.project_id,
        allocation_percentage=percentage,
        start_date=start,
        end_date=end,
        role=role,
    )


@pytest.fixture
def engineer(make_engineer):
    return make_engineer()


@pytest.fixture
def project(make_project):
    return make_project()


class TestCreateAssignment:
    def test_created_when_capacity_allows(self, db_session, engineer, project, make_assignment):
        make_assignment(engineer, project, 60, date(2025, 3, 1), date(2025, 3, 10))

        created = AssignmentService(db_session).create_assignment(
            new_assignment(engineer, project, 30, date(2025, 3, 5), date(2025, 3, 15))
        )

        assert created.allocation_percentage == 30
        assert AssignmentRepository(db_session).get_assignment(created.assignment_id) is not None

    def test_conflict_carries_breakdown_and_persists_nothing(self, db_session, engineer, project, make_assignment):
        make_assignment(engineer, project, 80, date(2025, 3, 1), date(2025, 3, 10))

        with pytest.raises(HTTPException) as exc_info:
            AssignmentService(db_session).create_assignment(
                new_assignment(engineer, project, 30, date(2025, 3, 5), date(2025, 3, 8))
            )

        assert exc_info.value.status_code == 409
        detail = exc_info.value.detail
        assert detail["allocations"] == {
            "2025-03-05": 110,
            "2025-03-06": 110,
            "2025-03-07": 110,
            "2025-03-08": 110,
        }
        assert set(detail["over_capacity"].values()) == {10}
        assert len(AssignmentRepository(db_session).list_assignments(engineer_id=engineer.engineer_id)) == 1

    def test_unknown_engineer_is_404(self, db_session, engineer, project):
        payload = new_assignment(engineer, project, 10, date(2025, 3, 1), date(2025, 3, 2))
        payload.engineer_id = "missing"

        with pytest.raises(HTTPException) as exc_info:
            AssignmentService(db_session).create_assignment(payload)

        assert exc_info.value.status_code == 404

    def test_busy_engineer_lock_times_out(self, db_session, engineer, project):
        locks = EngineerLockRegistry(timeout_seconds=0.01)
        service = AssignmentService(db_session, locks=locks)

        with locks.hold(engineer.engineer_id):
            with pytest.raises(HTTPException) as exc_info:
                service.create_assignment(
                    new_assignment(engineer, project, 10, date(2025, 3, 1), date(2025, 3, 2))
                )

        assert exc_info.value.status_code == 503
        assert AssignmentRepository(db_session).list_assignments() == []


class TestUpdateAssignment:
    def test_raising_own_percentage_does_not_conflict_with_itself(
        self, db_session, engineer, project, make_assignment
    ):
        existing = make_assignment(engineer, project, 60, date(2025, 3, 1), date(2025, 3, 10))

        updated = AssignmentService(db_session).update_assignment(
            existing.assignment_id, AssignmentUpdateModel(allocation_percentage=90)
        )

        assert updated.allocation_percentage == 90

    def test_update_conflicting_with_another_assignment(self, db_session, engineer, project, make_assignment):
        edited = make_assignment(engineer, project, 40, date(2025, 3, 1), date(2025, 3, 10))
        make_assignment(engineer, project, 50, date(2025, 3, 8), date(2025, 3, 20))

        with pytest.raises(HTTPException) as exc_info:
            AssignmentService(db_session).update_assignment(
                edited.assignment_id, AssignmentUpdateModel(allocation_percentage=60)
            )

        assert exc_info.value.status_code == 409
        assert exc_info.value.detail["over_capacity"] == {
            "2025-03-08": 10,
            "2025-03-09": 10,
            "2025-03-10": 10,
        }
        db_session.expire_all()
        assert AssignmentRepository(db_session).get_assignment(edited.assignment_id).allocation_percentage == 40

    def test_moving_dates_into_a_busy_period_conflicts(self, db_session, engineer, project, make_assignment):
        edited = make_assignment(engineer, project, 50, date(2025, 3, 1), date(2025, 3, 5))
        make_assignment(engineer, project, 60, date(2025, 3, 20), date(2025, 3, 25))

        with pytest.raises(HTTPException) as exc_info:
            AssignmentService(db_session).update_assignment(
                edited.assignment_id,
                AssignmentUpdateModel(start_date=date(2025, 3, 18), end_date=date(2025, 3, 22)),
            )

        assert exc_info.value.status_code == 409

    def test_role_change_skips_capacity_check(self, db_session, engineer, project, make_assignment):
        # Data that is already over-allocated must not block unrelated edits
        edited = make_assignment(engineer, project, 70, date(2025, 3, 1), date(2025, 3, 10))
        make_assignment(engineer, project, 70, date(2025, 3, 1), date(2025, 3, 10))

        updated = AssignmentService(db_session).update_assignment(
            edited.assignment_id, AssignmentUpdateModel(role="  Tech lead ")
        )

        assert updated.role == "Tech lead"

    def test_merged_dates_must_stay_ordered(self, db_session, engineer, project, make_assignment):
        edited = make_assignment(engineer, project, 10, date(2025, 3, 1), date(2025, 3, 10))

        with pytest.raises(InvalidRangeError):
            AssignmentService(db_session).update_assignment(
                edited.assignment_id, AssignmentUpdateModel(start_date=date(2025, 3, 10))
            )

    def test_null_field_is_rejected(self, db_session, engineer, project, make_assignment):
        edited = make_assignment(engineer, project, 10, date(2025, 3, 1), date(2025, 3, 10))

        with pytest.raises(HTTPException) as exc_info:
            AssignmentService(db_session).update_assignment(
                edited.assignment_id, AssignmentUpdateModel(role=None)
            )

        assert exc_info.value.status_code == 400


class TestDeleteAssignment:
    def test_deleting_releases_capacity(self, db_session, engineer, project, make_assignment):
        full = make_assignment(engineer, project, 100, date(2025, 3, 1), date(2025, 3, 10))
        service = AssignmentService(db_session)

        service.delete_assignment(full.assignment_id)
        created = service.create_assignment(
            new_assignment(engineer, project, 100, date(2025, 3, 1), date(2025, 3, 10))
        )

        assert created.allocation_percentage == 100

    def test_missing_assignment_is_404(self, db_session):
        with pytest.raises(HTTPException) as exc_info:
            AssignmentService(db_session).delete_assignment("missing")

        assert exc_info.value.status_code == 404


class TestConcurrentCreation:
    """Two sessions on one file database racing for the same engineer."""

    @pytest.fixture
    def file_sessions(self, tmp_path):
        engine = create_engine(
            f"sqlite:///{tmp_path / 'capacity.db'}",
            connect_args={"check_same_thread": False, "timeout": 10},
        )
        Base.metadata.create_all(bind=engine)
        yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
        engine.dispose()

    def test_only_one_of_two_racing_bookings_fits(self, file_sessions):
        with file_sessions() as seed:
            engineer = EngineerRepository(seed).create_engineer(
                EngineerCreateModel(
                    name="Ada",
                    email="ada@example.com",
                    seniority=Seniority.SENIOR,
                    department="Platform",
                )
            )
            project = ProjectRepository(seed).create_project(
                ProjectCreateModel(
                    name="Atlas",
                    description="Atlas project",
                    start_date=date(2025, 1, 1),
                    end_date=date(2025, 12, 31),
                    team_size=2,
                )
            )
            request = new_assignment(engineer, project, 60, date(2025, 3, 1), date(2025, 3, 10))

        locks = EngineerLockRegistry(timeout_seconds=10)
        barrier = threading.Barrier(2)
        outcomes = []

        def book():
            with file_sessions() as session:
                service = AssignmentService(session, locks=locks)
                barrier.wait()
                try:
                    service.create_assignment(request)
                    outcomes.append(201)
                except HTTPException as e:
                    outcomes.append(e.status_code)

        workers = [threading.Thread(target=book) for _ in range(2)]
        for worker in workers:
            worker.start()
        for worker in workers:
            worker.join(timeout=30)

        assert sorted(outcomes) == [201, 409]
        with file_sessions() as check:
            stored = check.scalar(select(func.count()).select_from(AssignmentORM))
        assert stored == 1
