from datetime import date
from typing import Dict, List
from pydantic import BaseModel, Field


class AvailabilityResponseModel(BaseModel):
    """Allocator verdict for one engineer over one date window."""

    engineer_id: str
    start_date: date
    end_date: date
    is_available: bool
    allocations: Dict[str, int] = Field(
        ...,
        description="ISO date -> total allocated percentage, for every day of the window.",
    )
    over_capacity: Dict[str, int] = Field(
        default_factory=dict,
        description="ISO date -> percentage points above 100, only for over-allocated days.",
    )


class CapacityConflictModel(BaseModel):
    """Body of a 409 response when a write would over-allocate an engineer."""

    message: str
    allocations: Dict[str, int]
    over_capacity: Dict[str, int]


class CurrentAllocationModel(BaseModel):
    assignment_id: str
    project: str
    percentage: int
    start_date: date
    end_date: date
    role: str


class EngineerCapacityModel(BaseModel):
    """Summary of an engineer's load over one calendar month."""

    engineer_id: str
    period_start: date
    period_end: date
    max_capacity: int
    current_allocations: List[CurrentAllocationModel]
    total_allocated: int = Field(
        ..., description="Highest daily total over the period."
    )
    available_capacity: int
