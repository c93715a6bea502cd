"""
Store model.
"""
from dataclasses import dataclass
from typing import Any, Dict


@dataclass(frozen=True)
class Store:
    """
    Store (shop location) model.

    Attributes:
        id: Store identifier
        name: Store name
        is_active: Inactive stores are ignored by the store-imbalance rule
    """
    id: str
    name: str
    is_active: bool = True

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Store":
        return cls(
            id=str(data["id"]),
            name=data.get("name", str(data["id"])),
            is_active=bool(data.get("is_active", True)),
        )

    def to_dict(self) -> dict:
        return {"id": self.id, "name": self.name, "is_active": self.is_active}

    def __str__(self) -> str:
        return self.name
