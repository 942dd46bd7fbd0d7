from datetime import date, datetime
from typing import Optional
from pydantic import BaseModel, Field, ConfigDict, field_validator, model_validator


def _clean_role(value: Optional[str]) -> Optional[str]:
    if value is None:
        return value
    value = value.strip()
    if not value:
        raise ValueError("role must not be empty")
    return value


class AssignmentCreateModel(BaseModel):
    """Schema for creating a new Assignment (API Input)."""

    engineer_id: str
    project_id: str
    allocation_percentage: int = Field(
        ...,
        ge=0,
        le=100,
        description="Share of the engineer's full-time capacity committed to this project.",
    )
    start_date: date
    end_date: date = Field(..., description="Last day of the assignment, inclusive.")
    role: str = Field(..., description="e.g., 'Backend lead', 'Reviewer'")

    @field_validator("role")
    @classmethod
    def clean_role(cls, value):
        return _clean_role(value)

    @model_validator(mode="after")
    def check_dates(self):
        if self.end_date <= self.start_date:
            raise ValueError("end_date must be after start_date")
        return self


class AssignmentUpdateModel(BaseModel):
    """
    Whole-field replacement of the mutable parts of an assignment.
    Engineer and project cannot be changed; any other key is rejected.
    """

    model_config = ConfigDict(extra="forbid")

    allocation_percentage: Optional[int] = Field(None, ge=0, le=100)
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    role: Optional[str] = None

    @field_validator("role")
    @classmethod
    def clean_role(cls, value):
        return _clean_role(value)


class AssignmentResponseModel(BaseModel):
    """Data model for a persistent assignment record."""

    assignment_id: str
    engineer_id: str
    project_id: str
    allocation_percentage: int
    start_date: date
    end_date: date
    role: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)
