"""
Conflict and validation result models.
Used by the conflict validator and the shift locking rules.
"""
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional


class ConflictType(Enum):
    """Categories of conflicts a remediation can raise."""
    AVAILABILITY = "availability"     # Rest periods, time windows
    OVERLAP = "overlap"               # Same-day double booking
    COMPETENCY = "competency"         # Store / skill mismatch
    CONTRACT = "contract"             # Contracted hour limits


@dataclass
class Conflict:
    """
    A conflict detected while validating a remediation.

    Attributes:
        conflict_type: Category of the conflict
        employee_id: Affected employee
        message: Human-readable description
        shift_ids: Shifts involved in the conflict
        blocking: Whether the conflict prevents application
    """
    conflict_type: ConflictType
    employee_id: str
    message: str
    shift_ids: List[str] = field(default_factory=list)
    blocking: bool = False

    def to_dict(self) -> dict:
        return {
            "type": self.conflict_type.value,
            "employee_id": self.employee_id,
            "message": self.message,
            "shift_ids": list(self.shift_ids),
            "blocking": self.blocking,
        }

    def __str__(self) -> str:
        marker = "🔴" if self.blocking else "🟡"
        return f"{marker} [{self.conflict_type.value.upper()}] {self.message}"


@dataclass
class ValidationResult:
    """
    Result of validating a remediation or a shift.

    Errors block application; warnings are advisory only.

    Attributes:
        errors: Blocking problems
        warnings: Advisory problems
        conflicts: Tagged conflicts found
        score: Optional 0-100 quality score (shift locking rules)
        checked_at: When the check was performed
    """
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    conflicts: List[Conflict] = field(default_factory=list)
    score: Optional[float] = None
    checked_at: datetime = field(default_factory=datetime.now)

    @property
    def is_valid(self) -> bool:
        return not self.errors

    def add_error(self, message: str) -> None:
        if message not in self.errors:
            self.errors.append(message)

    def add_warning(self, message: str) -> None:
        if message not in self.warnings:
            self.warnings.append(message)

    def add_conflict(self, conflict: Conflict) -> None:
        """
        Add a conflict, recording its message as an error when blocking.

        Args:
            conflict: The conflict to add
        """
        self.conflicts.append(conflict)
        if conflict.blocking:
            self.add_error(conflict.message)

    def conflicts_of(self, conflict_type: ConflictType) -> List[Conflict]:
        return [c for c in self.conflicts if c.conflict_type == conflict_type]

    def summary(self) -> Dict[str, Any]:
        """Get a summary of the validation result."""
        return {
            "is_valid": self.is_valid,
            "errors": len(self.errors),
            "warnings": len(self.warnings),
            "conflicts": len(self.conflicts),
            "score": self.score,
        }

    def to_dict(self) -> dict:
        return {
            "is_valid": self.is_valid,
            "errors": list(self.errors),
            "warnings": list(self.warnings),
            "conflicts": [c.to_dict() for c in self.conflicts],
            "score": self.score,
        }

    def __str__(self) -> str:
        status = "✅ VALID" if self.is_valid else "❌ INVALID"
        score = f" | Score: {self.score:.1f}/100" if self.score is not None else ""
        return (
            f"{status}{score} | Errors: {len(self.errors)}, "
            f"Warnings: {len(self.warnings)}, Conflicts: {len(self.conflicts)}"
        )
