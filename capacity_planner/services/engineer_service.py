# services/engineer_service.py
import calendar
import logging
from datetime import date
from typing import Optional

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from capacity_planner.core.settings import config_settings
from capacity_planner.models.orm.engineer import EngineerORM, Seniority
from capacity_planner.models.schemas.assignment import AssignmentResponseModel
from capacity_planner.models.schemas.capacity import (
    AvailabilityResponseModel,
    CurrentAllocationModel,
    EngineerCapacityModel,
)
from capacity_planner.models.schemas.engineer import (
    EngineerCreateModel,
    EngineerResponseModel,
    EngineerUpdateModel,
)
from capacity_planner.repositories.assignment_repo import AssignmentRepository
from capacity_planner.repositories.engineer_repo import EngineerRepository
from capacity_planner.services.capacity_allocator import InvalidRangeError, evaluate

logger = logging.getLogger(__name__)


class EngineerService:
    def __init__(self, db: Session):
        """Initializes the service with repositories it needs."""
        self.engineer_repo = EngineerRepository(db)
        # Read-only overlap queries feed the allocator
        self.assignment_repo = AssignmentRepository(db)

    def _get_or_404(self, engineer_id: str) -> EngineerORM:
        engineer = self.engineer_repo.get_engineer(engineer_id)
        if not engineer:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"Engineer {engineer_id} not found.",
            )
        return engineer

    def create_engineer(self, engineer_data: EngineerCreateModel) -> EngineerResponseModel:
        try:
            engineer = self.engineer_repo.create_engineer(engineer_data)
        except ValueError as e:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
        except RuntimeError as e:
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Failed to create engineer: {str(e)}",
            )

        logger.info("Created engineer %s (%s)", engineer.engineer_id, engineer.email)
        return EngineerResponseModel.model_validate(engineer)

    def get_engineer(self, engineer_id: str) -> EngineerResponseModel:
        return EngineerResponseModel.model_validate(self._get_or_404(engineer_id))

    def update_engineer(self, engineer_id: str, update_data: EngineerUpdateModel) -> EngineerResponseModel:
        changes = update_data.model_dump(exclude_unset=True)
        if null_fields := sorted(k for k, v in changes.items() if v is None):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Fields cannot be null: {', '.join(null_fields)}",
            )

        engineer = self._get_or_404(engineer_id)
        if not changes:
            return EngineerResponseModel.model_validate(engineer)

        try:
            engineer = self.engineer_repo.update_engineer(engineer, changes)
        except ValueError as e:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
        except RuntimeError as e:
            raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))

        logger.info("Updated engineer %s: %s", engineer_id, sorted(changes))
        return EngineerResponseModel.model_validate(engineer)

    def list_engineers(
        self, skills: Optional[list[str]] = None, seniority: Optional[Seniority] = None
    ) -> list[EngineerResponseModel]:
        engineers = self.engineer_repo.list_engineers(skills=skills, seniority=seniority)
        return [EngineerResponseModel.model_validate(e) for e in engineers]

    def get_engineer_assignments(self, engineer_id: str) -> list[AssignmentResponseModel]:
        self._get_or_404(engineer_id)
        assignments = self.assignment_repo.list_assignments(engineer_id=engineer_id)
        return [AssignmentResponseModel.model_validate(a) for a in assignments]

    def check_availability(
        self, engineer_id: str, start_date: date, end_date: date
    ) -> AvailabilityResponseModel:
        """
        Current load of the engineer over the window, without proposing anything new.
        """
        if end_date < start_date:
            raise InvalidRangeError(
                f"Window end {end_date.isoformat()} is before start {start_date.isoformat()}."
            )
        max_days = config_settings.MAX_AVAILABILITY_WINDOW_DAYS
        if (end_date - start_date).days + 1 > max_days:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Availability window cannot exceed {max_days} days.",
            )

        self._get_or_404(engineer_id)
        existing = self.assignment_repo.overlapping(engineer_id, start_date, end_date)
        verdict = evaluate(engineer_id, start_date, end_date, 0, existing)

        return AvailabilityResponseModel(
            engineer_id=engineer_id,
            start_date=start_date,
            end_date=end_date,
            is_available=verdict.is_available,
            allocations=verdict.allocations,
            over_capacity=verdict.over_capacity,
        )

    def get_capacity(self, engineer_id: str, as_of: Optional[date] = None) -> EngineerCapacityModel:
        """
        Month summary for the month containing `as_of` (today by default).
        `total_allocated` is the busiest day of the month, not a plain sum,
        so back-to-back assignments do not look like an overload.
        """
        engineer = self._get_or_404(engineer_id)

        as_of = as_of or date.today()
        month_start = as_of.replace(day=1)
        month_end = as_of.replace(day=calendar.monthrange(as_of.year, as_of.month)[1])

        assignments = sorted(
            self.assignment_repo.overlapping(engineer_id, month_start, month_end),
            key=lambda a: (a.start_date, a.assignment_id),
        )
        verdict = evaluate(engineer_id, month_start, month_end, 0, assignments)
        total_allocated = verdict.peak_allocation

        return EngineerCapacityModel(
            engineer_id=engineer_id,
            period_start=month_start,
            period_end=month_end,
            max_capacity=engineer.max_capacity,
            current_allocations=[
                CurrentAllocationModel(
                    assignment_id=a.assignment_id,
                    project=a.project.name,
                    percentage=a.allocation_percentage,
                    start_date=a.start_date,
                    end_date=a.end_date,
                    role=a.role,
                )
                for a in assignments
            ],
            total_allocated=total_allocated,
            available_capacity=engineer.max_capacity - total_allocated,
        )
