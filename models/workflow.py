"""
Validation workflow models.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from .constraints import ValidationResult
from .shift import Shift, ShiftUpdate, ShiftValidationStatus


class ActorRole(Enum):
    """Roles allowed to act on the workflow, ordered user < manager < admin."""
    USER = "user"
    MANAGER = "manager"
    ADMIN = "admin"

    @property
    def level(self) -> int:
        return {"user": 1, "manager": 2, "admin": 3}[self.value]

    def satisfies(self, required: "ActorRole") -> bool:
        """Check if this role is at least as privileged as ``required``."""
        return self.level >= required.level

    @classmethod
    def parse(cls, value: Any) -> Optional["ActorRole"]:
        """Convert a role string to ActorRole; unknown roles give None."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).lower().strip())
        except ValueError:
            return None


@dataclass(frozen=True)
class WorkflowTransition:
    """
    An allowed move between two validation states.

    Attributes:
        from_status: State the shift must be in
        to_status: State the shift moves to
        required_role: Least privileged role allowed to perform it
        requires_validation: Whether the shift locking rules must pass
        label: Human-readable action name
        auto_transitions: States followed automatically afterwards
    """
    from_status: ShiftValidationStatus
    to_status: ShiftValidationStatus
    required_role: ActorRole
    requires_validation: bool
    label: str
    auto_transitions: Tuple[ShiftValidationStatus, ...] = ()


@dataclass
class WorkflowResult:
    """Outcome of moving a single shift."""
    success: bool
    new_status: Optional[ShiftValidationStatus] = None
    error: Optional[str] = None
    validation_result: Optional[ValidationResult] = None
    auto_transitioned: bool = False
    update: Optional[ShiftUpdate] = None
    shift: Optional[Shift] = None


@dataclass
class TransitionFailure:
    """A shift that could not be moved, with the reason."""
    shift: Shift
    error: str


@dataclass
class BulkTransitionResult:
    """
    Outcome of a bulk transition.

    Attributes:
        successful: Shifts as they look after the transition
        updates: Update instructions for the successful shifts
        failed: Shifts left untouched, with the reason
        summary: total, successful, failed, avg_validation_score
    """
    successful: List[Shift] = field(default_factory=list)
    updates: List[ShiftUpdate] = field(default_factory=list)
    failed: List[TransitionFailure] = field(default_factory=list)
    summary: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "successful": [s.to_dict() for s in self.successful],
            "updates": [u.to_dict() for u in self.updates],
            "failed": [{"shift": f.shift.to_dict(), "error": f.error} for f in self.failed],
            "summary": dict(self.summary),
        }
