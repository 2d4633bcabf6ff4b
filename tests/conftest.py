"""
Pytest configuration and fixtures for Mind Map Portal testing.

This module provides:
- A fresh sqlite database per test (tmp_path)
- Settings with low bcrypt rounds and a fixed JWT secret
- The FastAPI app and a TestClient around it
- Seeded admin / member accounts with bearer headers
"""

import sys
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

# Add project root for imports
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from apps.mindmap_portal.api.config import Settings
from apps.mindmap_portal.api.dependencies import TokenService, claims_for_user
from apps.mindmap_portal.api.main import create_app
from apps.mindmap_portal.api.models.database import MindmapStore
from apps.mindmap_portal.api.models.entities import AccountStatus, Language, Role
from apps.mindmap_portal.api.services.auth_service import hash_password

TEST_SECRET = "test-secret-key-not-for-production"
TEST_BCRYPT_ROUNDS = 4

ADMIN_PASSWORD = "admin-pass-123"
MEMBER_PASSWORD = "member-pass-123"


# ============================================================
# CONFIGURATION / STORE FIXTURES
# ============================================================

@pytest.fixture
def settings(tmp_path):
    """Settings pointing at a throwaway database"""
    return Settings(
        ENV="test",
        DATABASE_PATH=str(tmp_path / "test_mindmap.db"),
        JWT_SECRET_KEY=TEST_SECRET,
        BCRYPT_ROUNDS=TEST_BCRYPT_ROUNDS,
        DEFAULT_LANGUAGE="zh",
        ALLOW_DIRECT_SIGNUP=False,
        CORS_ORIGINS="*",
        DEEPSEEK_API_KEY="",
    )


@pytest.fixture
def store(settings):
    """Store with the schema applied"""
    store = MindmapStore(settings.database_path())
    store.initialize_schema()
    return store


@pytest.fixture
def token_service(settings):
    return TokenService.from_settings(settings)


# ============================================================
# APP FIXTURES
# ============================================================

@pytest.fixture
def app(settings, store):
    """App sharing the test database with the ``store`` fixture"""
    return create_app(settings)


@pytest.fixture
def client(app):
    """TestClient with the lifespan (startup/shutdown) running"""
    with TestClient(app) as test_client:
        yield test_client


# ============================================================
# ACCOUNT FIXTURES
# ============================================================

def _seed_user(store, email, username, password, role=Role.MEMBER,
               status=AccountStatus.APPROVED, language=Language.ZH):
    user = store.insert_user(
        email=email,
        username=username,
        password_hash=hash_password(password, rounds=TEST_BCRYPT_ROUNDS),
        role=role,
        status=status,
        language=language,
    )
    return {**user, "password": password}


def bearer(token_service, user):
    """Authorization header for a seeded account"""
    token = token_service.issue_token(claims_for_user(user))
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin_user(store):
    return _seed_user(store, "admin@example.com", "admin", ADMIN_PASSWORD, role=Role.ADMIN)


@pytest.fixture
def member_user(store):
    return _seed_user(store, "alice@example.com", "alice", MEMBER_PASSWORD)


@pytest.fixture
def other_user(store):
    return _seed_user(store, "bob@example.com", "bob", MEMBER_PASSWORD, language=Language.EN)


@pytest.fixture
def pending_user(store):
    """Account that exists but is not approved"""
    return _seed_user(store, "carol@example.com", "carol", MEMBER_PASSWORD,
                      status=AccountStatus.PENDING)


@pytest.fixture
def admin_headers(token_service, admin_user):
    return bearer(token_service, admin_user)


@pytest.fixture
def member_headers(token_service, member_user):
    return bearer(token_service, member_user)


@pytest.fixture
def other_headers(token_service, other_user):
    return bearer(token_service, other_user)
