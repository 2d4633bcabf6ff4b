"""
Authentication Service
=======================

Handles:
- Password validation and hashing with bcrypt
- Registration applications (public sign-up request)
- Login (email + password, approved accounts only)
- Admin approval / rejection of applications
- Optional direct signup (first account becomes admin)

Every failure is raised as a ServiceError subclass carrying the HTTP
status it maps to; routes do not inspect message text.
"""

from typing import Dict, Optional, Tuple

import bcrypt

from ..models.database import DuplicateRecordError, MindmapStore
from ..models.entities import (
    AccountStatus,
    ApplicationStatus,
    Language,
    Role,
)
from src.utils.safe_logging import get_safe_logger

logger = get_safe_logger(__name__)

# bcrypt only looks at the first 72 bytes
MAX_PASSWORD_BYTES = 72
DEFAULT_BCRYPT_ROUNDS = 12


class ServiceError(Exception):
    """Base class for expected, user-facing failures"""
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidInputError(ServiceError):
    status_code = 400


class InvalidCredentialsError(ServiceError):
    status_code = 401


class AccountNotApprovedError(ServiceError):
    status_code = 403


class SignupDisabledError(ServiceError):
    status_code = 403


class RecordNotFoundError(ServiceError):
    status_code = 404


class ConflictError(ServiceError):
    status_code = 409


class ApplicationStateError(ConflictError):
    """Application already reached a different terminal state"""


# ============================================================
# PASSWORD VALIDATION
# ============================================================

def validate_password(password: str, min_length: int = 6) -> Tuple[bool, str]:
    """
    Validate password length.

    Requirements:
    - at least ``min_length`` characters
    - at most 72 bytes once UTF-8 encoded (bcrypt limit)

    Returns:
        (is_valid, error_message)
    """
    if len(password) < min_length:
        return False, f"Password must be at least {min_length} characters"
    if len(password.encode('utf-8')) > MAX_PASSWORD_BYTES:
        return False, f"Password must be {MAX_PASSWORD_BYTES} bytes or less"
    return True, ""


# ============================================================
# PASSWORD HASHING (using bcrypt directly)
# ============================================================

def hash_password(password: str, rounds: int = DEFAULT_BCRYPT_ROUNDS) -> str:
    """Hash a password using bcrypt"""
    password_bytes = password.encode('utf-8')
    salt = bcrypt.gensalt(rounds=rounds)
    hashed = bcrypt.hashpw(password_bytes, salt)
    return hashed.decode('utf-8')


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against its hash. A malformed hash never matches."""
    try:
        password_bytes = plain_password.encode('utf-8')
        hashed_bytes = hashed_password.encode('utf-8')
        return bcrypt.checkpw(password_bytes, hashed_bytes)
    except (ValueError, TypeError):
        return False


def _require(fields: Dict[str, Optional[str]], message: str):
    if any(not value for value in fields.values()):
        raise InvalidInputError(message)


def _check_password(password: str, min_length: int):
    is_valid, error_msg = validate_password(password, min_length)
    if not is_valid:
        raise InvalidInputError(error_msg)


def public_user(user: Dict) -> Dict:
    """Account fields safe to return to clients"""
    return {k: v for k, v in user.items() if k != "password_hash"}


# ============================================================
# REGISTRATION (application for an account)
# ============================================================

def submit_application(
    store: MindmapStore,
    email: Optional[str],
    username: Optional[str],
    password: Optional[str],
    reason: Optional[str] = None,
    min_length: int = 6,
    rounds: int = DEFAULT_BCRYPT_ROUNDS,
) -> Dict:
    """
    Create a pending registration application.

    The pre-checks give friendly messages; the UNIQUE constraints are
    what actually serialise concurrent submissions, and a clash there is
    reported the same way.
    """
    _require(
        {"email": email, "username": username, "password": password},
        "Email, username, and password are required",
    )
    _check_password(password, min_length)

    if store.find_user_by_email_or_username(email, username):
        raise ConflictError("Email or username already in use")

    existing = store.find_application_by_email_or_username(email, username)
    if existing:
        if existing["status"] == ApplicationStatus.PENDING.value:
            raise ConflictError("Email or username already has a pending application")
        raise ConflictError("Email or username already in use")

    try:
        application = store.insert_application(
            email=email,
            username=username,
            password_hash=hash_password(password, rounds),
            reason=reason or None,
        )
    except DuplicateRecordError:
        raise ConflictError("Email or username already in use")

    logger.info("Registration application submitted", email=email, application_id=application["id"])
    return application


# ============================================================
# LOGIN
# ============================================================

def authenticate_user(store: MindmapStore, email: Optional[str], password: Optional[str]) -> Dict:
    """
    Authenticate user with email and password.

    Unknown email and wrong password share one message so the response
    does not reveal which accounts exist. Account status is checked
    before the password: a non-approved account is refused either way.

    Returns:
        Public account fields
    """
    _require({"email": email, "password": password}, "Email and password are required")

    user = store.find_user_by_email(email)
    if user is None:
        logger.info("Login failed: unknown account", email=email)
        raise InvalidCredentialsError("Invalid email or password")

    if user["status"] != AccountStatus.APPROVED.value:
        logger.info("Login refused: account not approved", email=email, status=user["status"])
        raise AccountNotApprovedError("Your account is not approved yet")

    if not verify_password(password, user["password_hash"]):
        logger.info("Login failed: bad password", email=email)
        raise InvalidCredentialsError("Invalid email or password")

    return public_user(user)


# ============================================================
# DIRECT SIGNUP (optional bootstrap path)
# ============================================================

def signup_user(
    store: MindmapStore,
    email: Optional[str],
    username: Optional[str],
    password: Optional[str],
    language: Optional[str] = None,
    enabled: bool = False,
    min_length: int = 6,
    rounds: int = DEFAULT_BCRYPT_ROUNDS,
) -> Dict:
    """
    Create an approved account immediately, skipping the application queue.

    The very first account becomes an admin. The count-then-insert is not
    atomic, so two simultaneous first signups could both be promoted;
    that is why this path is off unless ALLOW_DIRECT_SIGNUP is set and
    scripts/setup/create_admin.py is the recommended bootstrap.
    """
    if not enabled:
        raise SignupDisabledError("Direct signup is disabled. Please submit a registration application.")

    _require(
        {"email": email, "username": username, "password": password},
        "Email, username, and password are required",
    )
    _check_password(password, min_length)

    if store.find_user_by_email_or_username(email, username):
        raise ConflictError("Email or username already exists")

    role = Role.ADMIN if store.count_users() == 0 else Role.MEMBER
    lang = Language.EN if language == Language.EN.value else Language.ZH

    try:
        user = store.insert_user(
            email=email,
            username=username,
            password_hash=hash_password(password, rounds),
            role=role,
            status=AccountStatus.APPROVED,
            language=lang,
        )
    except DuplicateRecordError:
        raise ConflictError("Email or username already exists")

    if role is Role.ADMIN:
        logger.warning("First account promoted to admin via direct signup", email=email)
    return user


# ============================================================
# ADMIN: APPLICATION DECISIONS
# ============================================================

def approve_application(
    store: MindmapStore,
    application_id: str,
    language: Language = Language.ZH,
) -> Tuple[str, Optional[Dict]]:
    """
    Approve a pending application: create the account, then mark the
    application approved.

    Safe to retry. If a previous attempt created the account but failed
    to mark the application, the account insert now hits the UNIQUE
    constraint; when the existing account matches both email and
    username it is accepted as ours and the mark is completed.

    Returns:
        (message, account) - account is None when nothing changed
    """
    application = store.get_application(application_id)
    if application is None:
        raise RecordNotFoundError("Application not found")

    current = ApplicationStatus(application["status"])
    if current is ApplicationStatus.APPROVED:
        return "Application already approved", None
    if current is ApplicationStatus.REJECTED:
        raise ApplicationStateError("Application has already been rejected")

    try:
        account = store.insert_user(
            email=application["email"],
            username=application["username"],
            password_hash=application["password_hash"],
            role=Role.MEMBER,
            status=AccountStatus.APPROVED,
            language=language,
        )
    except DuplicateRecordError:
        existing = store.find_user_by_email(application["email"])
        if existing is None or existing["username"] != application["username"]:
            raise ConflictError("Email or username already in use by another account")
        account = public_user(existing)
        logger.warning("Approval retry: account already existed", application_id=application_id)

    if not store.mark_application_approved(application_id):
        # Someone else decided it between our read and this write
        latest = store.get_application(application_id)
        if latest is None or latest["status"] != ApplicationStatus.APPROVED.value:
            raise ApplicationStateError("Application is no longer pending")

    logger.info("Application approved", application_id=application_id, user_id=account["id"])
    return "Application approved and user account created", account


def reject_application(store: MindmapStore, application_id: str) -> str:
    """Reject a pending application. No account is created."""
    application = store.get_application(application_id)
    if application is None:
        raise RecordNotFoundError("Application not found")

    current = ApplicationStatus(application["status"])
    if current is ApplicationStatus.REJECTED:
        return "Application already rejected"
    if current is ApplicationStatus.APPROVED:
        raise ApplicationStateError("Application has already been approved")

    if not store.mark_application_rejected(application_id):
        latest = store.get_application(application_id)
        if latest is None or latest["status"] != ApplicationStatus.REJECTED.value:
            raise ApplicationStateError("Application is no longer pending")

    logger.info("Application rejected", application_id=application_id)
    return "Application rejected"
