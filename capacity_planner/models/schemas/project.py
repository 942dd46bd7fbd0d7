from datetime import date, datetime
from typing import List, Optional
from pydantic import BaseModel, Field, ConfigDict, field_validator, model_validator

from capacity_planner.models.orm.project import ProjectStatus
from capacity_planner.models.schemas.assignment import AssignmentResponseModel
from capacity_planner.models.schemas.engineer import EngineerSummaryModel


class ProjectCreateModel(BaseModel):
    """Schema for creating a new Project (API Input)."""

    name: str = Field(..., min_length=1)
    description: str = Field(..., min_length=1)
    start_date: date
    end_date: date
    required_skills: List[str] = Field(default_factory=list)
    team_size: int = Field(..., ge=1)
    status: ProjectStatus = ProjectStatus.PLANNING
    manager_id: Optional[str] = None

    @field_validator("name", "description")
    @classmethod
    def strip_text(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be empty")
        return value

    @model_validator(mode="after")
    def check_dates(self):
        if self.end_date <= self.start_date:
            raise ValueError("end_date must be after start_date")
        return self


class ProjectUpdateModel(BaseModel):
    """Partial update; only the listed fields may be changed."""

    model_config = ConfigDict(extra="forbid")

    name: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = Field(None, min_length=1)
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    required_skills: Optional[List[str]] = None
    team_size: Optional[int] = Field(None, ge=1)
    status: Optional[ProjectStatus] = None


class ProjectResponseModel(BaseModel):
    project_id: str
    name: str
    description: str
    start_date: date
    end_date: date
    required_skills: List[str]
    team_size: int
    status: ProjectStatus
    manager_id: Optional[str] = None
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class TeamMemberModel(AssignmentResponseModel):
    """An assignment on the project together with who holds it."""

    engineer: EngineerSummaryModel


class ProjectDetailResponseModel(ProjectResponseModel):
    team: List[TeamMemberModel] = Field(
        default_factory=list, description="Assignments staffing this project."
    )
