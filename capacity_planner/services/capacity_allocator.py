# services/capacity_allocator.py
"""
Day-by-day capacity evaluation for a single engineer.

Everything here is a pure computation over assignments the caller already
fetched: no database access, no shared state. Callers that persist the result
are responsible for serialising writes per engineer.
"""

from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Dict, Iterable, Iterator

FULL_CAPACITY = 100


class InvalidRangeError(ValueError):
    """The window ends before it starts."""


class InvalidPercentageError(ValueError):
    """An allocation percentage outside [0, 100]."""


@dataclass(frozen=True)
class AvailabilityVerdict:
    engineer_id: str
    window_start: date
    window_end: date
    is_available: bool
    # ISO date -> accumulated percentage, ordered by date
    allocations: Dict[str, int] = field(default_factory=dict)

    @property
    def over_capacity(self) -> Dict[str, int]:
        """ISO date -> percentage points above full capacity, for offending days only."""
        return {
            day: total - FULL_CAPACITY
            for day, total in self.allocations.items()
            if total > FULL_CAPACITY
        }

    @property
    def peak_allocation(self) -> int:
        return max(self.allocations.values(), default=0)


def _days(start: date, end: date) -> Iterator[date]:
    """Every calendar day from start to end, both inclusive."""
    # Offsets rather than repeated increments: stepping past date.max overflows
    for offset in range((end - start).days + 1):
        yield start + timedelta(days=offset)


def evaluate(
    engineer_id: str,
    window_start: date,
    window_end: date,
    candidate_percentage: int,
    existing_assignments: Iterable,
) -> AvailabilityVerdict:
    """
    Build the utilisation timeline of `engineer_id` over [window_start, window_end]
    as if an assignment of `candidate_percentage` were added for the whole window.

    `existing_assignments` are objects exposing `start_date`, `end_date` and
    `allocation_percentage` (e.g. AssignmentORM rows from
    AssignmentRepository.overlapping). Assignments outside the window only
    contribute on the days they share with it.

    A day above FULL_CAPACITY makes the verdict negative; a day at exactly
    FULL_CAPACITY is fully but validly used.
    """
    if window_end < window_start:
        raise InvalidRangeError(
            f"Window end {window_end.isoformat()} is before start {window_start.isoformat()}."
        )
    if not 0 <= candidate_percentage <= FULL_CAPACITY:
        raise InvalidPercentageError(
            f"Allocation percentage must be between 0 and {FULL_CAPACITY}. Got: {candidate_percentage}"
        )

    # 1. Seed every day of the window so idle days are reported too
    timeline: Dict[date, int] = {day: 0 for day in _days(window_start, window_end)}

    # 2. Existing load, clipped to the window
    for assignment in existing_assignments:
        overlap_start = max(assignment.start_date, window_start)
        overlap_end = min(assignment.end_date, window_end)
        for day in _days(overlap_start, overlap_end):
            timeline[day] += assignment.allocation_percentage

    # 3. The proposed load covers the whole window
    for day in timeline:
        timeline[day] += candidate_percentage

    is_available = all(total <= FULL_CAPACITY for total in timeline.values())

    return AvailabilityVerdict(
        engineer_id=engineer_id,
        window_start=window_start,
        window_end=window_end,
        is_available=is_available,
        allocations={day.isoformat(): total for day, total in sorted(timeline.items())},
    )
