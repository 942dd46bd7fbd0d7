from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, Field, ConfigDict, field_validator

from capacity_planner.models.orm.engineer import Seniority


class EngineerCreateModel(BaseModel):
    """Schema for creating a new Engineer (API Input)."""

    name: str = Field(..., min_length=1)
    email: str = Field(..., pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
    skills: List[str] = Field(default_factory=list)
    seniority: Seniority
    department: str = Field(..., min_length=1)
    max_capacity: int = Field(
        100, ge=0, le=100, description="100 for full-time, 50 for part-time."
    )

    @field_validator("name", "department")
    @classmethod
    def strip_text(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be empty")
        return value

    @field_validator("email")
    @classmethod
    def normalise_email(cls, value: str) -> str:
        return value.strip().lower()

    @field_validator("skills")
    @classmethod
    def strip_skills(cls, value: List[str]) -> List[str]:
        return [skill.strip() for skill in value if skill.strip()]


class EngineerResponseModel(BaseModel):
    engineer_id: str
    name: str
    email: str
    skills: List[str]
    seniority: Seniority
    department: str
    max_capacity: int
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class EngineerUpdateModel(BaseModel):
    """Profile fields an engineer record may change; anything else is rejected."""

    model_config = ConfigDict(extra="forbid")

    name: Optional[str] = Field(None, min_length=1)
    skills: Optional[List[str]] = None
    seniority: Optional[Seniority] = None
    department: Optional[str] = Field(None, min_length=1)

    @field_validator("name", "department")
    @classmethod
    def strip_text(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return value
        value = value.strip()
        if not value:
            raise ValueError("must not be empty")
        return value

    @field_validator("skills")
    @classmethod
    def strip_skills(cls, value: Optional[List[str]]) -> Optional[List[str]]:
        if value is None:
            return value
        return [skill.strip() for skill in value if skill.strip()]


class EngineerSummaryModel(BaseModel):
    """Short form of an engineer, nested in other responses."""

    engineer_id: str
    name: str
    email: str
    skills: List[str]
    seniority: Seniority

    model_config = ConfigDict(from_attributes=True)
