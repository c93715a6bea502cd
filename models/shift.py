"""
Shift models and duration math.
"""
from dataclasses import dataclass, field, replace
from datetime import date, datetime, timedelta
from enum import Enum
from typing import Any, Dict, Optional


class ShiftStatus(Enum):
    """Scheduling status of a shift."""
    SCHEDULED = "scheduled"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class ShiftValidationStatus(Enum):
    """Approval lifecycle states a shift passes through."""
    DRAFT = "draft"
    READY_REVIEW = "ready_review"
    UNDER_REVIEW = "under_review"
    VALIDATED = "validated"
    PUBLISHED = "published"
    LOCKED_FINAL = "locked_final"

    @property
    def label(self) -> str:
        """Human-readable label."""
        return self.value.replace("_", " ").title()

    @classmethod
    def parse(cls, value: Any) -> Optional["ShiftValidationStatus"]:
        """Convert a status string to ShiftValidationStatus; unknown values give None."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).lower().strip())
        except ValueError:
            return None


def parse_time_minutes(value: str) -> int:
    """
    Convert an "HH:MM" string into minutes past midnight.

    Args:
        value: Time of day, e.g. "06:30"

    Returns:
        Minutes since 00:00
    """
    hours, minutes = value.strip().split(":")[:2]
    return int(hours) * 60 + int(minutes)


def calculate_shift_hours(start_time: str, end_time: str, break_minutes: int = 0) -> float:
    """
    Calculate the worked hours of a shift.

    An end time earlier than the start time means the shift crosses
    midnight. Breaks longer than the shift clamp the result to 0.

    Args:
        start_time: Start of the shift ("HH:MM")
        end_time: End of the shift ("HH:MM")
        break_minutes: Unpaid break in minutes

    Returns:
        Worked hours in decimal form
    """
    start = parse_time_minutes(start_time)
    end = parse_time_minutes(end_time)
    if end < start:
        end += 24 * 60

    worked = end - start - (break_minutes or 0)
    return max(0, worked) / 60


def _coerce_date(value: Any) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


def _coerce_datetime(value: Any) -> Optional[datetime]:
    if value is None or isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value))


@dataclass(frozen=True)
class ShiftUpdate:
    """
    Update instruction for a single shift.

    The engines never mutate shifts; they return these and the caller
    persists them.

    Attributes:
        id: ID of the shift to update
        data: Field name -> new value
    """
    id: str
    data: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict:
        data = {}
        for key, value in self.data.items():
            if isinstance(value, Enum):
                value = value.value
            elif isinstance(value, (date, datetime)):
                value = value.isoformat()
            data[key] = value
        return {"id": self.id, "data": data}


@dataclass(frozen=True)
class Shift:
    """
    A single work shift.

    Attributes:
        id: Unique shift identifier
        employee_id: Assigned employee
        store_id: Store the shift is worked at
        date: Calendar day of the shift start
        start_time: Start time ("HH:MM")
        end_time: End time ("HH:MM"), earlier than start for overnight shifts
        break_duration: Unpaid break in minutes
        actual_hours: Optional override of the computed duration
        status: Scheduling status
        validation_status: Workflow state
        is_locked: Locked shifts are never touched by automated balancing
        locked_at: When the shift was locked
        locked_by: Who locked the shift
        notes: Free-text notes
    """
    id: str
    employee_id: str
    store_id: str
    date: date
    start_time: str
    end_time: str
    break_duration: int = 0
    actual_hours: Optional[float] = None
    status: ShiftStatus = ShiftStatus.SCHEDULED
    validation_status: Optional[ShiftValidationStatus] = ShiftValidationStatus.DRAFT
    is_locked: bool = False
    locked_at: Optional[datetime] = None
    locked_by: Optional[str] = None
    notes: str = ""
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def hours(self) -> float:
        """Worked hours, preferring a positive actual-hours override."""
        if self.actual_hours and self.actual_hours > 0:
            return self.actual_hours
        return calculate_shift_hours(self.start_time, self.end_time, self.break_duration)

    @property
    def start_datetime(self) -> datetime:
        start = parse_time_minutes(self.start_time)
        return datetime.combine(self.date, datetime.min.time()) + timedelta(minutes=start)

    @property
    def end_datetime(self) -> datetime:
        """End of the shift, rolled into the next day for overnight shifts."""
        start = parse_time_minutes(self.start_time)
        end = parse_time_minutes(self.end_time)
        if end < start:
            end += 24 * 60
        return datetime.combine(self.date, datetime.min.time()) + timedelta(minutes=end)

    @property
    def is_overnight(self) -> bool:
        return parse_time_minutes(self.end_time) < parse_time_minutes(self.start_time)

    def overlaps(self, other: "Shift") -> bool:
        """Check if this shift's time interval intersects another's."""
        return (
            self.start_datetime < other.end_datetime
            and other.start_datetime < self.end_datetime
        )

    def apply(self, update: ShiftUpdate) -> "Shift":
        """
        Return a copy of this shift with an update instruction applied.

        Args:
            update: Instruction whose id must match this shift

        Returns:
            The updated shift
        """
        if update.id != self.id:
            raise ValueError(f"Update for shift {update.id} applied to shift {self.id}")
        return replace(self, **update.data)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Shift":
        """Build a shift from a plain mapping (e.g. a JSON record)."""
        validation_status = data.get("validation_status")
        return cls(
            id=str(data["id"]),
            employee_id=str(data["employee_id"]),
            store_id=str(data["store_id"]),
            date=_coerce_date(data["date"]),
            start_time=data["start_time"],
            end_time=data["end_time"],
            break_duration=int(data.get("break_duration") or 0),
            actual_hours=data.get("actual_hours"),
            status=ShiftStatus(data.get("status", ShiftStatus.SCHEDULED.value)),
            validation_status=(
                ShiftValidationStatus(validation_status) if validation_status else None
            ),
            is_locked=bool(data.get("is_locked", False)),
            locked_at=_coerce_datetime(data.get("locked_at")),
            locked_by=data.get("locked_by"),
            notes=data.get("notes") or "",
            created_at=_coerce_datetime(data.get("created_at")),
            updated_at=_coerce_datetime(data.get("updated_at")),
        )

    def to_dict(self) -> dict:
        """Convert shift to dictionary for serialization."""
        return {
            "id": self.id,
            "employee_id": self.employee_id,
            "store_id": self.store_id,
            "date": self.date.isoformat(),
            "start_time": self.start_time,
            "end_time": self.end_time,
            "break_duration": self.break_duration,
            "actual_hours": self.actual_hours,
            "hours": self.hours,
            "status": self.status.value,
            "validation_status": self.validation_status.value if self.validation_status else None,
            "is_locked": self.is_locked,
            "locked_at": self.locked_at.isoformat() if self.locked_at else None,
            "locked_by": self.locked_by,
            "notes": self.notes,
        }

    def __str__(self) -> str:
        lock = " 🔒" if self.is_locked else ""
        return (
            f"{self.id}: {self.employee_id} @ {self.store_id} "
            f"{self.date.isoformat()} {self.start_time}-{self.end_time} ({self.hours:.1f}h){lock}"
        )
