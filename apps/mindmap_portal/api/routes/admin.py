"""
Admin API Routes
=================

GET    /admin/users               - List all accounts
PUT    /admin/users/{id}          - Change role and/or status
DELETE /admin/users/{id}          - Delete an account (and its mind maps)
GET    /admin/applications        - Pending registration applications
PUT    /admin/applications/{id}   - {"action": "approve" | "reject"}

Protected by JWT with the admin role.
"""

from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from ..config import Settings
from ..dependencies import get_settings, get_store, require_admin
from ..models.database import MindmapStore
from ..models.entities import (
    AccountStatus,
    ApplicationAction,
    Language,
    Role,
    parse_enum,
)
from ..services.access_control import Identified
from ..services.auth_service import approve_application, reject_application
from src.utils.safe_logging import get_safe_logger

logger = get_safe_logger(__name__)

router = APIRouter()


# ============================================================
# Pydantic Models
# ============================================================

class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class AdminUser(CamelModel):
    id: str
    email: str
    username: str
    role: str
    status: str
    language: str
    created_at: datetime
    updated_at: datetime


class UserListResponse(BaseModel):
    users: List[AdminUser]


class UserUpdateRequest(BaseModel):
    """Any non-empty subset of role/status"""
    role: Optional[str] = None
    status: Optional[str] = None


class UserUpdateResponse(BaseModel):
    message: str
    user: AdminUser


class Application(CamelModel):
    id: str
    email: str
    username: str
    reason: Optional[str] = None
    status: str
    created_at: datetime
    updated_at: datetime


class ApplicationListResponse(BaseModel):
    applications: List[Application]


class ApplicationDecisionRequest(BaseModel):
    action: Optional[str] = None


class MessageResponse(BaseModel):
    message: str


# ============================================================
# Users
# ============================================================

@router.get("/users", response_model=UserListResponse)
@router.get("/users/list", response_model=UserListResponse, include_in_schema=False)
def list_users(
    _admin: Identified = Depends(require_admin),
    store: MindmapStore = Depends(get_store),
):
    """All accounts, newest first."""
    return UserListResponse(users=[AdminUser(**row) for row in store.list_users()])


@router.put("/users/{user_id}", response_model=UserUpdateResponse)
def update_user(
    user_id: str,
    request: UserUpdateRequest,
    admin: Identified = Depends(require_admin),
    store: MindmapStore = Depends(get_store),
):
    """
    Change an account's role and/or status.

    Unknown values are rejected here and never reach the database.
    """
    role = None
    account_status = None

    if request.role is not None:
        role = parse_enum(Role, request.role)
        if role is None:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid role")

    if request.status is not None:
        account_status = parse_enum(AccountStatus, request.status)
        if account_status is None:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid status")

    if role is None and account_status is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="At least one field must be updated",
        )

    user = store.update_user(user_id, role=role, status=account_status)
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")

    logger.info(
        "Account updated",
        user_id=user_id,
        role=user["role"],
        status=user["status"],
        by=admin.user_id,
    )
    return UserUpdateResponse(message="User updated successfully", user=AdminUser(**user))


@router.delete("/users/{user_id}", response_model=MessageResponse)
def delete_user(
    user_id: str,
    admin: Identified = Depends(require_admin),
    store: MindmapStore = Depends(get_store),
):
    """Delete an account. Its mind maps are deleted with it."""
    if not store.delete_user(user_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")

    logger.info("Account deleted", user_id=user_id, by=admin.user_id)
    return MessageResponse(message="User deleted successfully")


# ============================================================
# Registration Applications
# ============================================================

@router.get("/applications", response_model=ApplicationListResponse)
@router.get("/applications/list", response_model=ApplicationListResponse, include_in_schema=False)
def list_applications(
    _admin: Identified = Depends(require_admin),
    store: MindmapStore = Depends(get_store),
):
    """Pending applications, newest first."""
    rows = store.list_pending_applications()
    return ApplicationListResponse(applications=[Application(**row) for row in rows])


@router.put("/applications/{application_id}", response_model=MessageResponse)
def decide_application(
    application_id: str,
    request: ApplicationDecisionRequest,
    _admin: Identified = Depends(require_admin),
    store: MindmapStore = Depends(get_store),
    settings: Settings = Depends(get_settings),
):
    """
    Approve or reject a pending application.

    Approving creates the account (role user, status approved).
    Repeating the same decision is a no-op; the opposite decision on an
    already decided application is a 409.
    """
    action = parse_enum(ApplicationAction, request.action)
    if action is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail='Action must be "approve" or "reject"',
        )

    if action is ApplicationAction.APPROVE:
        language = parse_enum(Language, settings.DEFAULT_LANGUAGE) or Language.ZH
        message, _account = approve_application(store, application_id, language)
    else:
        message = reject_application(store, application_id)

    return MessageResponse(message=message)
