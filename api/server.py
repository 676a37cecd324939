"""FastAPI application exposing the BizDesk operations over loopback HTTP."""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from fastapi import FastAPI, HTTPException, Query, Request, Response, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from . import __version__
from .context import AppContext
from .handlers import AppHandlers
from .models import (
    BackupInfoResponse,
    BackupResponse,
    CategoriesResponse,
    CategoryCreateRequest,
    CategoryResponse,
    ChangePasswordRequest,
    CredentialsRequest,
    DashboardStatsResponse,
    ItemCreateRequest,
    ItemModel,
    ItemResponse,
    ItemsResponse,
    ItemUpdateRequest,
    LoginRequest,
    LoginResponse,
    LogoutRequest,
    ManualBackupResponse,
    ResultResponse,
    SessionRequest,
    SessionResponse,
    SetupStatusResponse,
)

LOGGER = logging.getLogger("bizdesk.api")


@dataclass(slots=True)
class APIServerConfig:
    """Runtime configuration for the FastAPI application."""

    context: AppContext
    app_version: str = __version__
    lan_only: bool = True
    manage_lifecycle: bool = True


_LOCAL_CLIENT_SENTINELS = {
    "127.0.0.1",
    "::1",
    "localhost",
    "testclient",
}


def _normalise_remote_host(host: Optional[str]) -> Optional[str]:
    if host is None:
        return None
    value = host.strip().lower()
    if not value:
        return None
    if value.startswith("::ffff:"):
        value = value.split("::ffff:")[-1]
    if value.startswith("[") and value.endswith("]"):
        value = value[1:-1]
    if "%" in value:  # strip IPv6 scope id
        value = value.split("%", 1)[0]
    return value


def _is_loopback_host(host: Optional[str]) -> bool:
    value = _normalise_remote_host(host)
    if value is None:
        return True
    return value in _LOCAL_CLIENT_SENTINELS or value.startswith("127.")


def create_app(config: APIServerConfig) -> FastAPI:
    """Create a FastAPI application bound to the given context."""

    app = FastAPI(
        title="BizDesk Local API",
        version=config.app_version,
        docs_url="/docs",
        openapi_url="/openapi.json",
    )
    context = config.context
    handlers = AppHandlers(context)
    lan_only = bool(config.lan_only)

    if config.manage_lifecycle:

        @app.on_event("startup")
        async def _startup() -> None:
            context.start()

        @app.on_event("shutdown")
        async def _shutdown() -> None:
            context.shutdown()

    @app.middleware("http")
    async def log_requests(request: Request, call_next):  # type: ignore[override]
        start = time.perf_counter()
        response: Optional[Response] = None
        client_host = request.client.host if request.client else None
        try:
            if lan_only and not _is_loopback_host(client_host):
                LOGGER.warning("Rejected non-local HTTP request from %s", client_host or "<unknown>")
                response = JSONResponse(status_code=status.HTTP_403_FORBIDDEN, content={"error": "LAN access disabled"})
            else:
                response = await call_next(request)
            return response
        finally:
            duration_ms = (time.perf_counter() - start) * 1000
            status_code = response.status_code if response is not None else 500
            LOGGER.info(
                "%s %s -> %s (%.1f ms) ip=%s",
                request.method,
                request.url.path,
                status_code,
                duration_ms,
                client_host or "-",
            )

    @app.exception_handler(HTTPException)
    async def http_exception_handler(_request: Request, exc: HTTPException):
        detail = exc.detail if isinstance(exc.detail, str) else str(exc.detail)
        return JSONResponse(status_code=exc.status_code, content={"error": detail})

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(_request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"error": "invalid parameters", "details": exc.errors()},
        )

    @app.get("/health")
    def health() -> dict:
        return {
            "ok": True,
            "version": config.app_version,
            "time_utc": datetime.now(timezone.utc).isoformat(),
            "running": context.running,
        }

    # ------------------------------------------------------------------
    # auth
    @app.get("/auth/setup", response_model=SetupStatusResponse)
    def check_setup() -> SetupStatusResponse:
        return SetupStatusResponse(setup_complete=handlers.check_setup())

    @app.post("/auth/setup", response_model=ResultResponse)
    def setup(payload: CredentialsRequest) -> dict:
        return handlers.setup(payload.username, payload.password)

    @app.post("/auth/login", response_model=LoginResponse)
    def login(payload: LoginRequest) -> dict:
        return handlers.login(payload.username, payload.password, remember_me=payload.remember_me)

    @app.post("/auth/logout", response_model=ResultResponse)
    def logout(payload: LogoutRequest) -> dict:
        return handlers.logout(payload.sessionToken)

    @app.post("/auth/session", response_model=SessionResponse)
    def validate_session(payload: SessionRequest) -> dict:
        return handlers.validate_session(payload.sessionToken)

    @app.post("/auth/password", response_model=ResultResponse)
    def change_password(payload: ChangePasswordRequest) -> dict:
        return handlers.change_password(payload.currentPassword, payload.newPassword)

    # ------------------------------------------------------------------
    # backup
    @app.post("/backup", response_model=BackupResponse)
    def backup_create() -> dict:
        return handlers.backup_create()

    @app.post("/backup/manual", response_model=ManualBackupResponse)
    def backup_create_manual() -> dict:
        return handlers.backup_create_manual()

    @app.get("/backup/info", response_model=BackupInfoResponse)
    def backup_info() -> dict:
        return handlers.backup_get_info()

    # ------------------------------------------------------------------
    # items
    @app.get("/items", response_model=ItemsResponse)
    def list_items(
        search: Optional[str] = Query(None),
        category_id: Optional[str] = Query(None),
        status_filter: str = Query("all", alias="status", pattern="^(all|active|inactive)$"),
    ) -> dict:
        filters = {"search": search, "category_id": category_id, "status": status_filter}
        return {"items": handlers.items_get_all(filters)}

    @app.get("/items/{item_id}", response_model=ItemModel)
    def get_item(item_id: str) -> dict:
        item = handlers.items_get_by_id(item_id)
        if item is None:
            raise HTTPException(status_code=404, detail="Item not found")
        return item

    @app.post("/items", response_model=ItemResponse)
    def create_item(payload: ItemCreateRequest) -> dict:
        return handlers.items_create(payload.model_dump())

    @app.patch("/items/{item_id}", response_model=ItemResponse)
    def update_item(item_id: str, payload: ItemUpdateRequest) -> dict:
        return handlers.items_update(item_id, payload.model_dump(exclude_none=True))

    @app.delete("/items/{item_id}", response_model=ResultResponse)
    def delete_item(item_id: str) -> dict:
        return handlers.items_delete(item_id)

    # ------------------------------------------------------------------
    # categories and dashboard
    @app.get("/categories", response_model=CategoriesResponse)
    def list_categories() -> dict:
        return {"categories": handlers.categories_get_all()}

    @app.post("/categories", response_model=CategoryResponse)
    def create_category(payload: CategoryCreateRequest) -> dict:
        return handlers.categories_create(payload.name)

    @app.delete("/categories/{category_id}", response_model=ResultResponse)
    def delete_category(category_id: str) -> dict:
        return handlers.categories_delete(category_id)

    @app.get("/dashboard/stats", response_model=DashboardStatsResponse)
    def dashboard_stats() -> dict:
        return handlers.dashboard_stats()

    @app.get("/dashboard/recent", response_model=ItemsResponse)
    def dashboard_recent(limit: int = Query(5, ge=1, le=100)) -> dict:
        return {"items": handlers.dashboard_recent_items(limit)}

    return app


__all__ = ["APIServerConfig", "create_app"]
