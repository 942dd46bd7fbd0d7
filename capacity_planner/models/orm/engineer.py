from sqlalchemy import Column, String, Integer, DateTime, Enum
from sqlalchemy.orm import relationship
from datetime import datetime
import enum

from .base import Base, JSON_TYPE


class Seniority(enum.Enum):
    JUNIOR = "junior"
    MID = "mid"
    SENIOR = "senior"


class EngineerORM(Base):
    __tablename__ = "engineers"

    engineer_id = Column(String, primary_key=True, index=True)
    name = Column(String, nullable=False)
    email = Column(String, nullable=False, unique=True)

    skills = Column(JSON_TYPE, default=list, nullable=False)
    seniority = Column(Enum(Seniority), nullable=False)
    department = Column(String, nullable=False)

    # 100 for full-time, 50 for part-time
    max_capacity = Column(Integer, default=100, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    assignments = relationship("AssignmentORM", back_populates="engineer")
