"""
Authentication Dependencies
============================

JWT issuance/validation and caller resolution.
Used by every route that cares who is calling.

Three levels of authentication:
- get_caller        optional; a missing or invalid token means Anonymous
- get_current_user  required; 401 without a valid token
- require_admin     required + admin role; 401 / 403
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends, HTTPException, Request, status
from jose import JWTError, jwt

from .config import Settings
from .models.database import MindmapStore
from .models.entities import Language, Role, parse_enum
from .services.access_control import (
    Anonymous,
    Caller,
    Identified,
    TokenClaims,
    check_role,
    raise_for_decision,
)


class TokenService:
    """Issues and verifies signed, time-limited access tokens."""

    def __init__(self, secret_key: str, algorithm: str = "HS256", expire_days: int = 7):
        self.secret_key = secret_key
        self.algorithm = algorithm
        self.expire_days = expire_days

    @classmethod
    def from_settings(cls, settings: Settings) -> "TokenService":
        return cls(
            secret_key=settings.JWT_SECRET_KEY,
            algorithm=settings.JWT_ALGORITHM,
            expire_days=settings.TOKEN_EXPIRE_DAYS,
        )

    def issue_token(self, claims: TokenClaims) -> str:
        """Create a new JWT access token"""
        issued = datetime.now(timezone.utc)
        payload = {
            "sub": claims.user_id,
            "email": claims.email,
            "username": claims.username,
            "role": Role(claims.role).value,
            "language": Language(claims.language).value,
            "iat": issued,
            "exp": issued + timedelta(days=self.expire_days),
        }
        return jwt.encode(payload, self.secret_key, algorithm=self.algorithm)

    def verify_token(self, token: str) -> Optional[TokenClaims]:
        """
        Verify and decode a JWT token.

        Returns None for anything that is not a valid, unexpired token
        signed with our key and carrying well-formed claims.
        """
        try:
            payload = jwt.decode(token, self.secret_key, algorithms=[self.algorithm])
        except JWTError:
            return None

        user_id = payload.get("sub")
        role = parse_enum(Role, payload.get("role"))
        language = parse_enum(Language, payload.get("language"))
        if not user_id or role is None or language is None:
            return None

        return TokenClaims(
            user_id=str(user_id),
            email=payload.get("email", ""),
            username=payload.get("username", ""),
            role=role,
            language=language,
        )


def claims_for_user(user: dict) -> TokenClaims:
    """Token claims for an account row"""
    return TokenClaims(
        user_id=user["id"],
        email=user["email"],
        username=user["username"],
        role=Role(user["role"]),
        language=Language(user["language"]),
    )


def extract_bearer_token(authorization: Optional[str]) -> Optional[str]:
    """Token from an ``Authorization: Bearer <token>`` header, else None."""
    if not authorization:
        return None
    parts = authorization.split(" ")
    if len(parts) != 2 or parts[0] != "Bearer" or not parts[1]:
        return None
    return parts[1]


# ============================================================
# App-scoped objects
# ============================================================

def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_store(request: Request) -> MindmapStore:
    return request.app.state.store


def get_token_service(request: Request) -> TokenService:
    return request.app.state.token_service


# ============================================================
# Caller resolution
# ============================================================

def _resolve(request: Request, tokens: TokenService):
    """(caller, token_was_supplied)"""
    token = extract_bearer_token(request.headers.get("Authorization"))
    if token is None:
        return Anonymous(), request.headers.get("Authorization") is not None
    claims = tokens.verify_token(token)
    if claims is None:
        return Anonymous(), True
    return Identified(claims), True


async def get_caller(
    request: Request,
    tokens: TokenService = Depends(get_token_service),
) -> Caller:
    """
    Optional authentication.

    Used by listing/reading endpoints where a token only widens what the
    caller can see. An invalid token is treated like no token.
    """
    caller, _ = _resolve(request, tokens)
    return caller


async def get_current_user(
    request: Request,
    tokens: TokenService = Depends(get_token_service),
) -> Identified:
    """
    Dependency to get the current authenticated caller.

    Usage:
        @router.post("/")
        async def create(user: Identified = Depends(get_current_user)):
            return {"user_id": user.user_id}
    """
    caller, supplied = _resolve(request, tokens)
    if isinstance(caller, Identified):
        return caller

    raise HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Invalid or expired token" if supplied else "Unauthorized",
        headers={"WWW-Authenticate": "Bearer"},
    )


async def require_admin(
    request: Request,
    tokens: TokenService = Depends(get_token_service),
) -> Identified:
    """Authenticated caller whose token carries the admin role."""
    caller, supplied = _resolve(request, tokens)
    if isinstance(caller, Anonymous):
        raise_for_decision(
            check_role(caller, Role.ADMIN),
            "Invalid or expired token" if supplied else "Unauthorized",
        )
    raise_for_decision(check_role(caller, Role.ADMIN), "Admin access required")
    return caller
