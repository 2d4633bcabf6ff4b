"""
Authentication Routes
======================

GET  /auth/register  - Describe the registration endpoint
POST /auth/register  - Submit a registration application (admin approves)
POST /auth/login     - Login with email/password
POST /auth/signup    - Direct signup (only when ALLOW_DIRECT_SIGNUP is on)
GET  /auth/me        - Current account
PUT  /auth/me        - Change preferred language (returns a fresh token)
"""

from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from ..config import Settings
from ..dependencies import (
    TokenService,
    claims_for_user,
    get_current_user,
    get_settings,
    get_store,
    get_token_service,
)
from ..models.database import MindmapStore
from ..models.entities import Language, parse_enum
from ..services.access_control import Identified
from ..services.auth_service import (
    authenticate_user,
    signup_user,
    submit_application,
)


router = APIRouter()


# ============================================================
# Request/Response Models
# ============================================================

class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class RegisterRequest(BaseModel):
    """Registration application. Presence is checked in the service."""
    email: Optional[str] = None
    username: Optional[str] = None
    password: Optional[str] = None
    reason: Optional[str] = None


class LoginRequest(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None


class SignupRequest(BaseModel):
    email: Optional[str] = None
    username: Optional[str] = None
    password: Optional[str] = None
    language: Optional[str] = None


class UpdateMeRequest(BaseModel):
    language: Optional[str] = None


class ApplicationInfo(CamelModel):
    id: str
    email: str
    username: str
    status: str
    created_at: datetime


class RegisterResponse(BaseModel):
    message: str
    application: ApplicationInfo


class RegisterInfoResponse(BaseModel):
    message: str
    method: str
    required_fields: List[str]
    optional_fields: List[str]


class UserInfo(CamelModel):
    """Public account fields (never the password hash)"""
    id: str
    email: str
    username: str
    role: str
    status: str
    language: str


class AuthResponse(BaseModel):
    message: str
    token: str
    user: UserInfo


class MeResponse(BaseModel):
    user: UserInfo


# ============================================================
# Routes
# ============================================================

@router.get("/register", response_model=RegisterInfoResponse)
async def register_info():
    """Describe how to submit a registration application."""
    return RegisterInfoResponse(
        message="Registration API endpoint",
        method="POST",
        required_fields=["email", "username", "password"],
        optional_fields=["reason"],
    )


@router.post("/register", response_model=RegisterResponse, status_code=status.HTTP_201_CREATED)
def register(
    request: RegisterRequest,
    store: MindmapStore = Depends(get_store),
    settings: Settings = Depends(get_settings),
):
    """
    Submit a registration application.

    Creates a pending application only; the account exists once an
    admin approves it.
    """
    application = submit_application(
        store,
        email=request.email,
        username=request.username,
        password=request.password,
        reason=request.reason,
        min_length=settings.PASSWORD_MIN_LENGTH,
        rounds=settings.BCRYPT_ROUNDS,
    )
    return RegisterResponse(
        message="Registration application submitted successfully. Waiting for admin approval.",
        application=ApplicationInfo(**application),
    )


@router.post("/login", response_model=AuthResponse)
def login(
    request: LoginRequest,
    store: MindmapStore = Depends(get_store),
    tokens: TokenService = Depends(get_token_service),
):
    """
    Login with email and password.

    Returns a 7-day access token and the public account fields.
    """
    user = authenticate_user(store, request.email, request.password)
    token = tokens.issue_token(claims_for_user(user))
    return AuthResponse(message="Login successful", token=token, user=UserInfo(**user))


@router.post("/signup", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
def signup(
    request: SignupRequest,
    store: MindmapStore = Depends(get_store),
    tokens: TokenService = Depends(get_token_service),
    settings: Settings = Depends(get_settings),
):
    """
    Create an approved account directly and log it in.

    Disabled unless ALLOW_DIRECT_SIGNUP is set. The first account
    created this way becomes an admin.
    """
    user = signup_user(
        store,
        email=request.email,
        username=request.username,
        password=request.password,
        language=request.language,
        enabled=settings.ALLOW_DIRECT_SIGNUP,
        min_length=settings.PASSWORD_MIN_LENGTH,
        rounds=settings.BCRYPT_ROUNDS,
    )
    token = tokens.issue_token(claims_for_user(user))
    return AuthResponse(message="User created successfully", token=token, user=UserInfo(**user))


@router.get("/me", response_model=MeResponse)
def get_me(
    user: Identified = Depends(get_current_user),
    store: MindmapStore = Depends(get_store),
):
    """
    Get current account information.

    Read from the store, so role/status changes show up before the
    token expires.
    """
    account = store.get_user_by_id(user.user_id)
    if account is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return MeResponse(user=UserInfo(**account))


@router.put("/me", response_model=AuthResponse)
def update_me(
    request: UpdateMeRequest,
    user: Identified = Depends(get_current_user),
    store: MindmapStore = Depends(get_store),
    tokens: TokenService = Depends(get_token_service),
):
    """
    Change the preferred language.

    The language travels inside the token, so a new token is issued.
    """
    language = parse_enum(Language, request.language)
    if language is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Language must be \"zh\" or \"en\"",
        )

    account = store.update_user(user.user_id, language=language)
    if account is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")

    token = tokens.issue_token(claims_for_user(account))
    return AuthResponse(message="Language updated", token=token, user=UserInfo(**account))
