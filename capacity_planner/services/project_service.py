# services/project_service.py
import logging
from datetime import date
from typing import Optional

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from capacity_planner.models.orm.project import ProjectORM
from capacity_planner.models.schemas.assignment import AssignmentResponseModel
from capacity_planner.models.schemas.engineer import EngineerSummaryModel
from capacity_planner.models.schemas.project import (
    ProjectCreateModel,
    ProjectDetailResponseModel,
    ProjectResponseModel,
    ProjectUpdateModel,
    TeamMemberModel,
)
from capacity_planner.repositories.assignment_repo import AssignmentRepository
from capacity_planner.repositories.project_repo import ProjectRepository
from capacity_planner.services.capacity_allocator import InvalidRangeError

logger = logging.getLogger(__name__)


class ProjectService:
    def __init__(self, db: Session):
        self.project_repo = ProjectRepository(db)
        self.assignment_repo = AssignmentRepository(db)

    def _get_or_404(self, project_id: str) -> ProjectORM:
        project = self.project_repo.get_project(project_id)
        if not project:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"Project {project_id} not found.",
            )
        return project

    def create_project(self, project_data: ProjectCreateModel) -> ProjectResponseModel:
        try:
            project = self.project_repo.create_project(project_data)
        except ValueError as e:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
        except RuntimeError as e:
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Failed to create project: {str(e)}",
            )

        logger.info("Created project %s (%s)", project.project_id, project.name)
        return ProjectResponseModel.model_validate(project)

    def get_project(self, project_id: str) -> ProjectDetailResponseModel:
        """A project together with the assignments that staff it."""
        project = self.project_repo.get_project_with_team(project_id)
        if not project:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"Project {project_id} not found.",
            )

        project_model = ProjectResponseModel.model_validate(project)
        team = sorted(project.assignments, key=lambda a: (a.start_date, a.assignment_id))
        return ProjectDetailResponseModel(
            **project_model.model_dump(),
            team=[
                TeamMemberModel(
                    **AssignmentResponseModel.model_validate(a).model_dump(),
                    engineer=EngineerSummaryModel.model_validate(a.engineer),
                )
                for a in team
            ],
        )

    def list_projects(self, filter_params: Optional[dict] = None) -> list[ProjectResponseModel]:
        projects = self.project_repo.list_projects(**(filter_params or {}))
        return [ProjectResponseModel.model_validate(p) for p in projects]

    def update_project(self, project_id: str, update_data: ProjectUpdateModel) -> ProjectResponseModel:
        changes = update_data.model_dump(exclude_unset=True)
        if null_fields := sorted(k for k, v in changes.items() if v is None):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Fields cannot be null: {', '.join(null_fields)}",
            )

        project = self._get_or_404(project_id)

        start_date = changes.get("start_date", project.start_date)
        end_date = changes.get("end_date", project.end_date)
        if end_date <= start_date:
            raise InvalidRangeError("end_date must be after start_date")

        try:
            project = self.project_repo.update_project(project, changes)
        except ValueError as e:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
        except RuntimeError as e:
            raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))

        logger.info("Updated project %s: %s", project_id, sorted(changes))
        return ProjectResponseModel.model_validate(project)

    def delete_project(self, project_id: str, today: Optional[date] = None) -> None:
        """Deletes a project unless some assignment on it is still running or upcoming."""
        project = self._get_or_404(project_id)

        if self.assignment_repo.has_assignments_ending_after(project_id, today or date.today()):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Cannot delete project with active assignments",
            )

        try:
            self.project_repo.delete_project(project)
        except RuntimeError as e:
            raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))

        logger.info("Deleted project %s", project_id)
