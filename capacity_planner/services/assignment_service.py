# services/assignment_service.py
import logging
from typing import Optional

from fastapi import HTTPException, status
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from capacity_planner.core.locks import EngineerLockRegistry, LockTimeoutError, engineer_locks
from capacity_planner.models.orm.assignment import AssignmentORM
from capacity_planner.models.schemas.assignment import (
    AssignmentCreateModel,
    AssignmentResponseModel,
    AssignmentUpdateModel,
)
from capacity_planner.models.schemas.capacity import CapacityConflictModel
from capacity_planner.repositories.assignment_repo import AssignmentRepository
from capacity_planner.repositories.engineer_repo import EngineerRepository
from capacity_planner.repositories.project_repo import ProjectRepository
from capacity_planner.services.capacity_allocator import (
    AvailabilityVerdict,
    InvalidRangeError,
    evaluate,
)

logger = logging.getLogger(__name__)

# Changing any of these can change the engineer's daily totals
CAPACITY_FIELDS = {"allocation_percentage", "start_date", "end_date"}


class AssignmentService:
    def __init__(self, db: Session, locks: Optional[EngineerLockRegistry] = None):
        self.assignment_repo = AssignmentRepository(db)
        self.engineer_repo = EngineerRepository(db)
        self.project_repo = ProjectRepository(db)
        self.locks = locks or engineer_locks
        self.db = db

    def _capacity_conflict(self, verdict: AvailabilityVerdict, message: str) -> HTTPException:
        logger.warning(
            "Capacity conflict for engineer %s between %s and %s on %d day(s)",
            verdict.engineer_id,
            verdict.window_start,
            verdict.window_end,
            len(verdict.over_capacity),
        )
        conflict = CapacityConflictModel(
            message=message,
            allocations=verdict.allocations,
            over_capacity=verdict.over_capacity,
        )
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=conflict.model_dump())

    def _check_capacity(
        self,
        engineer_id: str,
        start_date,
        end_date,
        percentage: int,
        exclude_assignment_id: Optional[str] = None,
    ) -> AvailabilityVerdict:
        # Row lock first so the overlap read below sees every committed competitor
        self.engineer_repo.lock_engineer(engineer_id)
        existing = self.assignment_repo.overlapping(
            engineer_id, start_date, end_date, exclude_assignment_id=exclude_assignment_id
        )
        return evaluate(engineer_id, start_date, end_date, percentage, existing)

    def _get_or_404(self, assignment_id: str) -> AssignmentORM:
        assignment = self.assignment_repo.get_assignment(assignment_id)
        if not assignment:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"Assignment {assignment_id} not found.",
            )
        return assignment

    def create_assignment(self, assignment_data: AssignmentCreateModel) -> AssignmentResponseModel:
        """
        Creates an assignment if the engineer has room for it on every day it covers.

        1. Check the engineer and project exist.
        2. Under the engineer's lock: read overlapping assignments, evaluate, persist.
        3. A negative verdict is reported as a 409 carrying the per-day breakdown.
        """
        if not self.engineer_repo.get_engineer(assignment_data.engineer_id):
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"Engineer {assignment_data.engineer_id} not found.",
            )
        if not self.project_repo.get_project(assignment_data.project_id):
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"Project {assignment_data.project_id} not found.",
            )

        try:
            with self.locks.hold(assignment_data.engineer_id):
                try:
                    verdict = self._check_capacity(
                        assignment_data.engineer_id,
                        assignment_data.start_date,
                        assignment_data.end_date,
                        assignment_data.allocation_percentage,
                    )
                    if not verdict.is_available:
                        self.db.rollback()
                        raise self._capacity_conflict(
                            verdict,
                            "Engineer does not have sufficient capacity for this assignment",
                        )

                    assignment = self.assignment_repo.create_assignment(assignment_data)
                    self.db.commit()
                    self.db.refresh(assignment)

                except IntegrityError as e:
                    self.db.rollback()
                    raise HTTPException(
                        status_code=status.HTTP_400_BAD_REQUEST,
                        detail=f"Invalid assignment data: {str(e).splitlines()[0]}",
                    )
                except SQLAlchemyError:
                    self.db.rollback()
                    logger.exception("Database error creating assignment")
                    raise HTTPException(
                        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                        detail="An unexpected database error occurred.",
                    )

        except LockTimeoutError as e:
            self.db.rollback()
            raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e))

        logger.info(
            "Assigned engineer %s to project %s at %d%% from %s to %s",
            assignment.engineer_id,
            assignment.project_id,
            assignment.allocation_percentage,
            assignment.start_date,
            assignment.end_date,
        )
        return AssignmentResponseModel.model_validate(assignment)

    def update_assignment(
        self, assignment_id: str, update_data: AssignmentUpdateModel
    ) -> AssignmentResponseModel:
        """
        Replaces some of percentage, dates and role. When percentage or dates
        change, capacity is re-checked with this assignment's own previous
        contribution left out.
        """
        changes = update_data.model_dump(exclude_unset=True)
        if null_fields := sorted(k for k, v in changes.items() if v is None):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Fields cannot be null: {', '.join(null_fields)}",
            )

        assignment = self._get_or_404(assignment_id)
        if not changes:
            return AssignmentResponseModel.model_validate(assignment)

        start_date = changes.get("start_date", assignment.start_date)
        end_date = changes.get("end_date", assignment.end_date)
        if end_date <= start_date:
            raise InvalidRangeError("end_date must be after start_date")

        engineer_id = assignment.engineer_id
        try:
            with self.locks.hold(engineer_id):
                try:
                    if CAPACITY_FIELDS.intersection(changes):
                        verdict = self._check_capacity(
                            engineer_id,
                            start_date,
                            end_date,
                            changes.get("allocation_percentage", assignment.allocation_percentage),
                            exclude_assignment_id=assignment_id,
                        )
                        if not verdict.is_available:
                            self.db.rollback()
                            raise self._capacity_conflict(
                                verdict,
                                "Engineer does not have sufficient capacity for this update",
                            )

                    self.assignment_repo.apply_update(assignment, changes)
                    self.db.commit()
                    self.db.refresh(assignment)

                except IntegrityError as e:
                    self.db.rollback()
                    raise HTTPException(
                        status_code=status.HTTP_400_BAD_REQUEST,
                        detail=f"Invalid assignment data: {str(e).splitlines()[0]}",
                    )
                except SQLAlchemyError:
                    self.db.rollback()
                    logger.exception("Database error updating assignment %s", assignment_id)
                    raise HTTPException(
                        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                        detail="An unexpected database error occurred.",
                    )

        except LockTimeoutError as e:
            self.db.rollback()
            raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e))

        logger.info("Updated assignment %s: %s", assignment_id, sorted(changes))
        return AssignmentResponseModel.model_validate(assignment)

    def get_assignment(self, assignment_id: str) -> AssignmentResponseModel:
        return AssignmentResponseModel.model_validate(self._get_or_404(assignment_id))

    def list_assignments(self, filter_params: Optional[dict] = None) -> list[AssignmentResponseModel]:
        assignments = self.assignment_repo.list_assignments(**(filter_params or {}))
        return [AssignmentResponseModel.model_validate(a) for a in assignments]

    def delete_assignment(self, assignment_id: str) -> None:
        """Removes an assignment, releasing the capacity it held."""
        assignment = self._get_or_404(assignment_id)
        try:
            self.assignment_repo.delete_assignment(assignment)
        except ValueError as e:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
        except RuntimeError as e:
            raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))

        logger.info("Deleted assignment %s", assignment_id)
