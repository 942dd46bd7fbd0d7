# repositories/assignment_repo.py
import logging
import uuid
from datetime import date, datetime
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from capacity_planner.models.orm.assignment import AssignmentORM
from capacity_planner.models.schemas.assignment import AssignmentCreateModel

logger = logging.getLogger(__name__)


class AssignmentRepository:
    def __init__(self, db: Session):
        self.db = db

    def overlapping(
        self,
        engineer_id: str,
        window_start: date,
        window_end: date,
        exclude_assignment_id: Optional[str] = None,
    ) -> list[AssignmentORM]:
        """
        Every assignment of `engineer_id` whose [start_date, end_date] intersects
        [window_start, window_end]. `exclude_assignment_id` leaves one assignment
        out, so an assignment being edited does not compete with itself.
        No ordering is guaranteed.
        """
        stmt = select(AssignmentORM).where(
            AssignmentORM.engineer_id == engineer_id,
            AssignmentORM.start_date <= window_end,
            AssignmentORM.end_date >= window_start,
        )

        if exclude_assignment_id is not None:
            stmt = stmt.where(AssignmentORM.assignment_id != exclude_assignment_id)

        return list(self.db.scalars(stmt).all())

    def get_assignment(self, assignment_id: str) -> Optional[AssignmentORM]:
        return self.db.get(AssignmentORM, assignment_id)

    def list_assignments(self, **kwargs) -> list[AssignmentORM]:
        """
        Lists assignments sorted by start date, applying optional filters for
        project, engineer and an overlapping date range.
        """
        stmt = select(AssignmentORM)

        if project_id := kwargs.get("project_id"):
            stmt = stmt.where(AssignmentORM.project_id == project_id)

        if engineer_id := kwargs.get("engineer_id"):
            stmt = stmt.where(AssignmentORM.engineer_id == engineer_id)

        start_date = kwargs.get("start_date")
        end_date = kwargs.get("end_date")
        if start_date and end_date:
            stmt = stmt.where(
                AssignmentORM.start_date <= end_date,
                AssignmentORM.end_date >= start_date,
            )

        stmt = stmt.order_by(AssignmentORM.start_date, AssignmentORM.assignment_id)
        return list(self.db.scalars(stmt).all())

    def has_assignments_ending_after(self, project_id: str, day: date) -> bool:
        stmt = (
            select(AssignmentORM.assignment_id)
            .where(
                AssignmentORM.project_id == project_id,
                AssignmentORM.end_date >= day,
            )
            .limit(1)
        )
        return self.db.scalars(stmt).first() is not None

    def create_assignment(self, assignment_data: AssignmentCreateModel) -> AssignmentORM:
        """
        Stages a new assignment in the current transaction.
        Note: the caller owns the transaction and must have checked capacity first.
        """
        db_assignment = AssignmentORM(
            assignment_id=str(uuid.uuid4()),
            created_at=datetime.utcnow(),
            **assignment_data.model_dump(),
        )
        self.db.add(db_assignment)
        self.db.flush()
        return db_assignment

    def apply_update(self, db_assignment: AssignmentORM, changes: dict) -> AssignmentORM:
        for field_name, value in changes.items():
            setattr(db_assignment, field_name, value)
        self.db.flush()
        return db_assignment

    def delete_assignment(self, db_assignment: AssignmentORM) -> None:
        try:
            self.db.delete(db_assignment)
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            raise ValueError(f"Assignment could not be deleted: {e}")
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.exception("Database error deleting assignment %s", db_assignment.assignment_id)
            raise RuntimeError(f"A database error occurred during assignment deletion: {e}")
