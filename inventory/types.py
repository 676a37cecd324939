"""Dataclasses for items, categories and dashboard figures."""
from __future__ import annotations

from dataclasses import asdict, dataclass, fields
from typing import Any, Dict, Optional

ITEM_STATUSES = ("active", "inactive")


@dataclass(slots=True)
class Category:
    id: str
    name: str
    created_at: str

    def as_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(slots=True)
class Item:
    id: str
    name: str
    description: Optional[str]
    category_id: Optional[str]
    quantity: int
    status: str
    created_at: str
    updated_at: str
    category_name: Optional[str] = None

    def as_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(slots=True)
class NewItem:
    name: str
    description: Optional[str] = None
    category_id: Optional[str] = None
    quantity: int = 0
    status: str = "active"


@dataclass(slots=True)
class ItemPatch:
    """Fields to change on an item; ``None`` means "leave unchanged".

    ``clear_description`` and ``clear_category`` set the column to NULL,
    which ``None`` alone cannot express.
    """

    name: Optional[str] = None
    description: Optional[str] = None
    category_id: Optional[str] = None
    quantity: Optional[int] = None
    status: Optional[str] = None
    clear_description: bool = False
    clear_category: bool = False

    @classmethod
    def from_mapping(cls, payload: Dict[str, Any]) -> "ItemPatch":
        known = {field.name for field in fields(cls)}
        return cls(**{key: value for key, value in payload.items() if key in known})


@dataclass(slots=True)
class ItemFilters:
    search: Optional[str] = None
    category_id: Optional[str] = None
    status: str = "all"


@dataclass(slots=True)
class DashboardStats:
    total_items: int
    active_items: int
    inactive_items: int
    total_categories: int

    def as_dict(self) -> Dict[str, int]:
        return {
            "totalItems": self.total_items,
            "activeItems": self.active_items,
            "inactiveItems": self.inactive_items,
            "totalCategories": self.total_categories,
        }


__all__ = [
    "Category",
    "DashboardStats",
    "ITEM_STATUSES",
    "Item",
    "ItemFilters",
    "ItemPatch",
    "NewItem",
]
