from sqlalchemy import Column, String, Integer, Date, DateTime, Text, Enum, Index
from sqlalchemy.orm import relationship
from datetime import datetime
import enum

from .base import Base, JSON_TYPE


class ProjectStatus(enum.Enum):
    PLANNING = "planning"
    ACTIVE = "active"
    COMPLETED = "completed"


# --- Project Model ---
class ProjectORM(Base):
    __tablename__ = "projects"

    project_id = Column(String, primary_key=True, index=True)
    name = Column(String, nullable=False)
    description = Column(Text, nullable=False)

    # --- Timing ---
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)

    # --- Staffing ---
    required_skills = Column(JSON_TYPE, default=list, nullable=False)
    team_size = Column(Integer, nullable=False)
    status = Column(Enum(ProjectStatus), default=ProjectStatus.PLANNING, nullable=False)

    # Opaque reference to whoever manages the project; users are not modelled here
    manager_id = Column(String, nullable=True, index=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Historical assignments go with the project; active ones block deletion in the service
    assignments = relationship(
        "AssignmentORM", back_populates="project", cascade="all, delete-orphan"
    )

    __table_args__ = (
        Index("ix_projects_status_manager", "status", "manager_id"),
        Index("ix_projects_dates", "start_date", "end_date"),
    )
