from sqlalchemy import (
    Column,
    String,
    Integer,
    ForeignKey,
    Date,
    DateTime,
    Index,
    CheckConstraint,
)
from sqlalchemy.orm import relationship
from datetime import datetime

from .base import Base


class AssignmentORM(Base):
    __tablename__ = "assignments"

    assignment_id = Column(String, primary_key=True, index=True)

    engineer_id = Column(
        String, ForeignKey("engineers.engineer_id"), nullable=False
    )
    project_id = Column(String, ForeignKey("projects.project_id"), nullable=False)

    allocation_percentage = Column(Integer, nullable=False)

    # Both endpoints are inclusive calendar days
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)

    role = Column(String, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        CheckConstraint(
            "allocation_percentage >= 0 AND allocation_percentage <= 100",
            name="ck_assignment_percentage",
        ),
        CheckConstraint("end_date > start_date", name="ck_assignment_dates"),
        Index("ix_assignments_engineer_window", "engineer_id", "start_date", "end_date"),
        Index("ix_assignments_project_window", "project_id", "start_date", "end_date"),
    )

    engineer = relationship("EngineerORM", back_populates="assignments")

    project = relationship("ProjectORM", back_populates="assignments")
