"""Pydantic schemas for the BizDesk local API."""
from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import BaseModel, Field


class UserModel(BaseModel):
    """The single local account as exposed to the UI."""

    id: int = Field(..., description="Always 1; the store holds at most one account.")
    username: str = Field(..., description="Lower-cased, trimmed username.")
    created_at: str = Field(..., description="Account creation time (UTC ISO8601).")
    last_login: Optional[str] = Field(None, description="Previous login time before the current one.")


class ResultResponse(BaseModel):
    success: bool
    message: str


class SetupStatusResponse(BaseModel):
    setup_complete: bool = Field(..., description="True once the account has been provisioned.")


class CredentialsRequest(BaseModel):
    username: str
    password: str


class LoginRequest(CredentialsRequest):
    remember_me: bool = Field(False, alias="rememberMe")

    model_config = {"populate_by_name": True}


class LoginResponse(ResultResponse):
    sessionToken: Optional[str] = Field(None, description="Remember-me token when requested and enabled.")
    user: Optional[UserModel] = None


class LogoutRequest(BaseModel):
    sessionToken: Optional[str] = None


class SessionRequest(BaseModel):
    sessionToken: str


class SessionResponse(BaseModel):
    valid: bool
    user: Optional[UserModel] = None


class ChangePasswordRequest(BaseModel):
    currentPassword: str
    newPassword: str


class BackupResponse(ResultResponse):
    filePath: Optional[str] = Field(None, description="Absolute path of the created snapshot.")


class ManualBackupResponse(ResultResponse):
    cancelled: bool = Field(False, description="True when the user dismissed the destination prompt.")


class BackupInfoResponse(BaseModel):
    backupDir: str = Field(..., description="Directory holding automatic snapshots.")
    lastBackupTime: Optional[int] = Field(None, description="Newest snapshot time in epoch milliseconds.")
    backupCount: int = Field(..., ge=0, description="Number of snapshots currently kept.")


class CategoryModel(BaseModel):
    id: str
    name: str
    created_at: str


class ItemModel(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    category_id: Optional[str] = None
    category_name: Optional[str] = None
    quantity: int
    status: Literal["active", "inactive"]
    created_at: str
    updated_at: str


class ItemCreateRequest(BaseModel):
    name: str
    description: Optional[str] = None
    category_id: Optional[str] = None
    quantity: int = Field(0, ge=0)
    status: Literal["active", "inactive"] = "active"


class ItemUpdateRequest(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    category_id: Optional[str] = None
    quantity: Optional[int] = Field(None, ge=0)
    status: Optional[Literal["active", "inactive"]] = None
    clear_description: bool = False
    clear_category: bool = False


class ItemResponse(ResultResponse):
    item: Optional[ItemModel] = None


class CategoryCreateRequest(BaseModel):
    name: str


class CategoryResponse(ResultResponse):
    category: Optional[CategoryModel] = None


class DashboardStatsResponse(BaseModel):
    totalItems: int
    activeItems: int
    inactiveItems: int
    totalCategories: int


class ItemsResponse(BaseModel):
    items: List[ItemModel]


class CategoriesResponse(BaseModel):
    categories: List[CategoryModel]
