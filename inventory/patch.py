from __future__ import annotations

from typing import Any, List, Tuple

from core.errors import ValidationError

from .types import ITEM_STATUSES, ItemPatch

Assignment = Tuple[str, Any]


def patch_assignments(patch: ItemPatch) -> List[Assignment]:
    """Map *patch* to ordered ``(column, value)`` pairs.

    Pure: no database access. Raises :class:`ValidationError` for values
    the items table would reject.
    """

    assignments: List[Assignment] = []
    if patch.name is not None:
        name = patch.name.strip()
        if not name:
            raise ValidationError("Item name cannot be empty")
        assignments.append(("name", name))
    if patch.clear_description:
        assignments.append(("description", None))
    elif patch.description is not None:
        assignments.append(("description", patch.description))
    if patch.clear_category:
        assignments.append(("category_id", None))
    elif patch.category_id is not None:
        assignments.append(("category_id", patch.category_id or None))
    if patch.quantity is not None:
        if int(patch.quantity) < 0:
            raise ValidationError("Quantity cannot be negative")
        assignments.append(("quantity", int(patch.quantity)))
    if patch.status is not None:
        if patch.status not in ITEM_STATUSES:
            raise ValidationError(f"Unknown status '{patch.status}'")
        assignments.append(("status", patch.status))
    return assignments


def render_set_clause(assignments: List[Assignment]) -> Tuple[str, List[Any]]:
    columns = ", ".join(f"{column} = ?" for column, _ in assignments)
    return columns, [value for _, value in assignments]


__all__ = ["patch_assignments", "render_set_clause"]
