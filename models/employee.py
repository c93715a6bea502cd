"""
Employee data model.
"""
from dataclasses import dataclass
from typing import Any, Dict, Optional


DEFAULT_CONTRACT_HOURS = 40.0


@dataclass(frozen=True)
class Employee:
    """
    Employee model representing a staff member.

    Attributes:
        id: Unique employee identifier
        first_name: Given name
        last_name: Family name
        contract_hours: Contracted weekly hours (weekly cap)
        fixed_hours: Guaranteed weekly minimum, if any
        store_id: Home store
        is_active: Inactive employees are ignored by every engine
    """
    id: str
    first_name: str
    last_name: str = ""
    contract_hours: Optional[float] = DEFAULT_CONTRACT_HOURS
    fixed_hours: Optional[float] = None
    store_id: Optional[str] = None
    is_active: bool = True

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @property
    def weekly_cap(self) -> float:
        """Contract hours, falling back to the standard 40h week."""
        return self.contract_hours or DEFAULT_CONTRACT_HOURS

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Employee":
        return cls(
            id=str(data["id"]),
            first_name=data.get("first_name", ""),
            last_name=data.get("last_name", ""),
            contract_hours=data.get("contract_hours", DEFAULT_CONTRACT_HOURS),
            fixed_hours=data.get("fixed_hours"),
            store_id=data.get("store_id"),
            is_active=bool(data.get("is_active", True)),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "contract_hours": self.contract_hours,
            "fixed_hours": self.fixed_hours,
            "store_id": self.store_id,
            "is_active": self.is_active,
        }

    def __str__(self) -> str:
        return f"{self.full_name} ({self.id})"
