"""Parameterized CRUD access for items and categories."""
from __future__ import annotations

import logging
import sqlite3
import uuid
from typing import Any, List, Optional

from core.db import StoreHandle
from core.errors import ConflictError, NotFoundError, StorageError, ValidationError
from core.timefmt import format_utc
from core.timers import Clock, utc_now

from .patch import patch_assignments, render_set_clause
from .types import ITEM_STATUSES, Category, DashboardStats, Item, ItemFilters, ItemPatch, NewItem

LOGGER = logging.getLogger("bizdesk.inventory")

_ITEM_SELECT = """
    SELECT i.id, i.name, i.description, i.category_id, i.quantity, i.status,
           i.created_at, i.updated_at, c.name AS category_name
    FROM items i
    LEFT JOIN categories c ON i.category_id = c.id
"""


def _row_to_item(row: sqlite3.Row) -> Item:
    return Item(
        id=row["id"],
        name=row["name"],
        description=row["description"],
        category_id=row["category_id"],
        quantity=int(row["quantity"]),
        status=row["status"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
        category_name=row["category_name"],
    )


def _row_to_category(row: sqlite3.Row) -> Category:
    return Category(id=row["id"], name=row["name"], created_at=row["created_at"])


def _is_integrity_error(exc: StorageError) -> bool:
    return isinstance(exc.__cause__, sqlite3.IntegrityError)


class InventoryRepository:
    def __init__(self, store: StoreHandle, *, clock: Optional[Clock] = None) -> None:
        self._store = store
        self._clock = clock or utc_now

    # ------------------------------------------------------------------
    # items
    def list_items(self, filters: Optional[ItemFilters] = None) -> List[Item]:
        filters = filters or ItemFilters()
        clauses: List[str] = []
        params: List[Any] = []
        if filters.search:
            clauses.append("(i.name LIKE ? OR i.description LIKE ?)")
            needle = f"%{filters.search}%"
            params.extend([needle, needle])
        if filters.category_id:
            clauses.append("i.category_id = ?")
            params.append(filters.category_id)
        if filters.status and filters.status != "all":
            clauses.append("i.status = ?")
            params.append(filters.status)
        where = f" WHERE {' AND '.join(clauses)}" if clauses else ""
        with self._store.read() as conn:
            rows = conn.execute(f"{_ITEM_SELECT}{where} ORDER BY i.created_at DESC, i.rowid DESC", params).fetchall()
        return [_row_to_item(row) for row in rows]

    def get_item(self, item_id: str) -> Optional[Item]:
        with self._store.read() as conn:
            row = conn.execute(f"{_ITEM_SELECT} WHERE i.id = ?", (item_id,)).fetchone()
        return _row_to_item(row) if row else None

    def create_item(self, data: NewItem) -> Item:
        name = (data.name or "").strip()
        if not name:
            raise ValidationError("Item name is required")
        if int(data.quantity or 0) < 0:
            raise ValidationError("Quantity cannot be negative")
        status = data.status or "active"
        if status not in ITEM_STATUSES:
            raise ValidationError(f"Unknown status '{status}'")
        item_id = str(uuid.uuid4())
        now = format_utc(self._clock())
        try:
            with self._store.transaction() as conn:
                conn.execute(
                    """
                    INSERT INTO items (id, name, description, category_id, quantity, status, created_at, updated_at)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (item_id, name, data.description or None, data.category_id or None, int(data.quantity or 0), status, now, now),
                )
        except StorageError as exc:
            if _is_integrity_error(exc):
                raise ValidationError("Unknown category") from exc
            raise
        item = self.get_item(item_id)
        if item is None:
            raise StorageError("Item vanished after write")
        return item

    def update_item(self, item_id: str, patch: ItemPatch) -> Item:
        assignments = patch_assignments(patch)
        if not assignments:
            raise ValidationError("No fields to update")
        assignments.append(("updated_at", format_utc(self._clock())))
        set_clause, params = render_set_clause(assignments)
        try:
            with self._store.transaction() as conn:
                changed = conn.execute(f"UPDATE items SET {set_clause} WHERE id = ?", [*params, item_id]).rowcount
        except StorageError as exc:
            if _is_integrity_error(exc):
                raise ValidationError("Unknown category") from exc
            raise
        if changed == 0:
            raise NotFoundError("Item not found")
        item = self.get_item(item_id)
        if item is None:
            raise StorageError("Item vanished after write")
        return item

    def delete_item(self, item_id: str) -> None:
        with self._store.read() as conn:
            removed = conn.execute("DELETE FROM items WHERE id = ?", (item_id,)).rowcount
        if removed == 0:
            raise NotFoundError("Item not found")

    # ------------------------------------------------------------------
    # categories
    def list_categories(self) -> List[Category]:
        with self._store.read() as conn:
            rows = conn.execute("SELECT id, name, created_at FROM categories ORDER BY name").fetchall()
        return [_row_to_category(row) for row in rows]

    def create_category(self, name: str) -> Category:
        cleaned = (name or "").strip()
        if not cleaned:
            raise ValidationError("Category name is required")
        category = Category(id=str(uuid.uuid4()), name=cleaned, created_at=format_utc(self._clock()))
        try:
            with self._store.transaction() as conn:
                conn.execute(
                    "INSERT INTO categories (id, name, created_at) VALUES (?, ?, ?)",
                    (category.id, category.name, category.created_at),
                )
        except StorageError as exc:
            if _is_integrity_error(exc):
                raise ConflictError("Category already exists") from exc
            raise
        return category

    def delete_category(self, category_id: str) -> None:
        with self._store.transaction() as conn:
            in_use = conn.execute("SELECT COUNT(*) FROM items WHERE category_id = ?", (category_id,)).fetchone()[0]
            if in_use:
                raise ConflictError(f"Cannot delete category. {in_use} items are using this category.")
            removed = conn.execute("DELETE FROM categories WHERE id = ?", (category_id,)).rowcount
        if removed == 0:
            raise NotFoundError("Category not found")

    # ------------------------------------------------------------------
    # dashboard
    def dashboard_stats(self) -> DashboardStats:
        with self._store.read() as conn:
            row = conn.execute(
                """
                SELECT
                    (SELECT COUNT(*) FROM items) AS total,
                    (SELECT COUNT(*) FROM items WHERE status = 'active') AS active,
                    (SELECT COUNT(*) FROM items WHERE status = 'inactive') AS inactive,
                    (SELECT COUNT(*) FROM categories) AS categories
                """
            ).fetchone()
        return DashboardStats(
            total_items=int(row["total"]),
            active_items=int(row["active"]),
            inactive_items=int(row["inactive"]),
            total_categories=int(row["categories"]),
        )

    def recent_items(self, limit: int = 5) -> List[Item]:
        with self._store.read() as conn:
            rows = conn.execute(
                f"{_ITEM_SELECT} ORDER BY i.created_at DESC, i.rowid DESC LIMIT ?",
                (max(1, int(limit)),),
            ).fetchall()
        return [_row_to_item(row) for row in rows]


__all__ = ["InventoryRepository"]
