"""Items and categories stored alongside the user account."""
from __future__ import annotations

from .patch import patch_assignments
from .repository import InventoryRepository
from .types import Category, DashboardStats, Item, ItemFilters, ItemPatch, NewItem

__all__ = [
    "Category",
    "DashboardStats",
    "InventoryRepository",
    "Item",
    "ItemFilters",
    "ItemPatch",
    "NewItem",
    "patch_assignments",
]
