"""Transport-agnostic request handlers returning plain response dicts."""
from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Optional

from core.errors import AppError
from inventory import ItemFilters, ItemPatch, NewItem

from .context import AppContext

LOGGER = logging.getLogger("bizdesk.api.handlers")

Response = Dict[str, Any]


def _failure(exc: AppError) -> Response:
    return {"success": False, "message": exc.message}


class AppHandlers:
    """Every operation the UI may call, with errors folded into responses.

    No handler raises :class:`AppError`; failures come back as
    ``{"success": False, "message": ...}`` so the caller can show them
    next to the triggering form.
    """

    def __init__(self, context: AppContext) -> None:
        self._ctx = context

    def _run(self, action: Callable[[], Response]) -> Response:
        try:
            return action()
        except AppError as exc:
            LOGGER.info("Request failed (%s): %s", exc.kind, exc.message)
            return _failure(exc)

    # ------------------------------------------------------------------
    # auth
    def check_setup(self) -> bool:
        return self._ctx.vault.is_provisioned()

    def setup(self, username: str, password: str) -> Response:
        def action() -> Response:
            self._ctx.vault.provision(username, password)
            return {"success": True, "message": "Account created successfully"}

        return self._run(action)

    def login(self, username: str, password: str, remember_me: bool = False) -> Response:
        def action() -> Response:
            user = self._ctx.vault.verify(username, password)
            response: Response = {"success": True, "message": "Login successful", "user": user.as_dict()}
            if remember_me and self._ctx.auth_config.remember_me_enabled:
                response["sessionToken"] = self._ctx.sessions.issue(user.id)
            return response

        return self._run(action)

    def logout(self, session_token: Optional[str] = None) -> Response:
        def action() -> Response:
            if session_token:
                self._ctx.sessions.revoke(session_token)
            return {"success": True, "message": "Logged out successfully"}

        return self._run(action)

    def validate_session(self, token: str) -> Response:
        try:
            user = self._ctx.sessions.validate(token)
        except AppError as exc:
            LOGGER.info("Session rejected: %s", exc.message)
            return {"valid": False}
        return {"valid": True, "user": user.as_dict()}

    def change_password(self, current_password: str, new_password: str) -> Response:
        def action() -> Response:
            self._ctx.vault.change_password(current_password, new_password)
            return {"success": True, "message": "Password changed successfully"}

        return self._run(action)

    # ------------------------------------------------------------------
    # backup
    def backup_create(self) -> Response:
        outcome = self._ctx.backups.create_now()
        response: Response = {"success": outcome.ok, "message": outcome.message}
        if outcome.path is not None:
            response["filePath"] = str(outcome.path)
        return response

    def backup_create_manual(self) -> Response:
        outcome = self._ctx.backups.manual_backup()
        return {"success": outcome.ok, "message": outcome.message, "cancelled": outcome.cancelled}

    def backup_get_info(self) -> Response:
        try:
            info = self._ctx.snapshots.get_info()
        except AppError as exc:
            LOGGER.warning("Backup info unavailable: %s", exc.message)
            return {"backupDir": str(self._ctx.snapshots.backup_dir), "lastBackupTime": None, "backupCount": 0}
        last = info.last_backup_time
        return {
            "backupDir": str(info.backup_dir),
            "lastBackupTime": int(last.timestamp() * 1000) if last else None,
            "backupCount": info.backup_count,
        }

    # ------------------------------------------------------------------
    # items
    def items_get_all(self, filters: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        raw = filters or {}
        query = ItemFilters(
            search=raw.get("search") or None,
            category_id=raw.get("category_id") or None,
            status=raw.get("status") or "all",
        )
        return [item.as_dict() for item in self._ctx.inventory.list_items(query)]

    def items_get_by_id(self, item_id: str) -> Optional[Dict[str, Any]]:
        item = self._ctx.inventory.get_item(item_id)
        return item.as_dict() if item else None

    def items_create(self, data: Dict[str, Any]) -> Response:
        def action() -> Response:
            item = self._ctx.inventory.create_item(
                NewItem(
                    name=data.get("name") or "",
                    description=data.get("description"),
                    category_id=data.get("category_id"),
                    quantity=int(data.get("quantity") or 0),
                    status=data.get("status") or "active",
                )
            )
            return {"success": True, "message": "Item created successfully", "item": item.as_dict()}

        return self._run(action)

    def items_update(self, item_id: str, changes: Dict[str, Any]) -> Response:
        def action() -> Response:
            item = self._ctx.inventory.update_item(item_id, ItemPatch.from_mapping(changes))
            return {"success": True, "message": "Item updated successfully", "item": item.as_dict()}

        return self._run(action)

    def items_delete(self, item_id: str) -> Response:
        def action() -> Response:
            self._ctx.inventory.delete_item(item_id)
            return {"success": True, "message": "Item deleted successfully"}

        return self._run(action)

    # ------------------------------------------------------------------
    # categories and dashboard
    def categories_get_all(self) -> List[Dict[str, Any]]:
        return [category.as_dict() for category in self._ctx.inventory.list_categories()]

    def categories_create(self, name: str) -> Response:
        def action() -> Response:
            category = self._ctx.inventory.create_category(name)
            return {"success": True, "message": "Category created successfully", "category": category.as_dict()}

        return self._run(action)

    def categories_delete(self, category_id: str) -> Response:
        def action() -> Response:
            self._ctx.inventory.delete_category(category_id)
            return {"success": True, "message": "Category deleted successfully"}

        return self._run(action)

    def dashboard_stats(self) -> Dict[str, int]:
        return self._ctx.inventory.dashboard_stats().as_dict()

    def dashboard_recent_items(self, limit: int = 5) -> List[Dict[str, Any]]:
        return [item.as_dict() for item in self._ctx.inventory.recent_items(limit)]


__all__ = ["AppHandlers"]
