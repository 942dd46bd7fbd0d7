import logging
import uuid
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from capacity_planner.models.orm.assignment import AssignmentORM
from capacity_planner.models.orm.project import ProjectORM, ProjectStatus
from capacity_planner.models.schemas.project import ProjectCreateModel

logger = logging.getLogger(__name__)


class ProjectRepository:
    def __init__(self, db: Session):
        """Initializes the repository with a database session."""
        self.db = db

    def create_project(self, project_data: ProjectCreateModel) -> ProjectORM:
        db_project = ProjectORM(
            project_id=str(uuid.uuid4()),
            **project_data.model_dump(),
        )
        try:
            self.db.add(db_project)
            self.db.commit()
            self.db.refresh(db_project)
            return db_project

        except IntegrityError as e:
            self.db.rollback()
            raise ValueError(f"Database integrity error: {str(e).splitlines()[0]}")

        except SQLAlchemyError as e:
            self.db.rollback()
            logger.exception("Database error creating project")
            raise RuntimeError(f"A database error occurred during project creation: {e}")

    def get_project(self, project_id: str) -> Optional[ProjectORM]:
        return self.db.get(ProjectORM, project_id)

    def get_project_with_team(self, project_id: str) -> Optional[ProjectORM]:
        """
        Fetches a single Project and eagerly loads its assignments and their engineers.
        """
        stmt = (
            select(ProjectORM)
            .where(ProjectORM.project_id == project_id)
            .options(selectinload(ProjectORM.assignments).selectinload(AssignmentORM.engineer))
        )
        return self.db.scalars(stmt).one_or_none()

    def list_projects(self, **kwargs) -> list[ProjectORM]:
        stmt = select(ProjectORM)

        if status := kwargs.get("status"):
            stmt = stmt.where(ProjectORM.status == ProjectStatus(status))

        if manager_id := kwargs.get("manager_id"):
            stmt = stmt.where(ProjectORM.manager_id == manager_id)

        stmt = stmt.order_by(ProjectORM.start_date, ProjectORM.name)
        projects = list(self.db.scalars(stmt).all())

        if skills := kwargs.get("skills"):
            wanted = set(skills)
            projects = [p for p in projects if wanted.intersection(p.required_skills or [])]

        return projects

    def update_project(self, db_project: ProjectORM, changes: dict) -> ProjectORM:
        try:
            for field_name, value in changes.items():
                setattr(db_project, field_name, value)
            self.db.commit()
            self.db.refresh(db_project)
            return db_project

        except IntegrityError as e:
            self.db.rollback()
            raise ValueError(f"Database integrity error: {str(e).splitlines()[0]}")

        except SQLAlchemyError as e:
            self.db.rollback()
            logger.exception("Database error updating project %s", db_project.project_id)
            raise RuntimeError(f"A database error occurred during project update: {e}")

    def delete_project(self, db_project: ProjectORM) -> None:
        try:
            self.db.delete(db_project)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.exception("Database error deleting project %s", db_project.project_id)
            raise RuntimeError(f"A database error occurred during project deletion: {e}")
