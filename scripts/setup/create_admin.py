#!/usr/bin/env python3
"""
Create Administrator Account
=============================

Bootstraps an approved admin account without going through the
registration queue. An existing account with the same email is promoted
instead (role admin, status approved); its password is left unchanged.

Usage:
    python scripts/setup/create_admin.py --email admin@example.com --username admin --password "secret123"
    python scripts/setup/create_admin.py --email admin@example.com --username admin --password "..." --language en
    python scripts/setup/create_admin.py --list   # Show all accounts
"""

import argparse
import sys
from pathlib import Path

# Add project root for imports
PROJECT_ROOT = Path(__file__).parent.parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from apps.mindmap_portal.api.config import get_settings
from apps.mindmap_portal.api.models.database import DuplicateRecordError, MindmapStore
from apps.mindmap_portal.api.models.entities import AccountStatus, Language, Role, parse_enum
from apps.mindmap_portal.api.services.auth_service import hash_password, validate_password


def list_accounts(store: MindmapStore):
    """Print every account with its role and status"""
    print("\n" + "=" * 80)
    print(" ACCOUNTS")
    print("=" * 80 + "\n")

    users = store.list_users()
    if not users:
        print("  (no accounts yet)")
        return

    print(f"  {'Username':<20} {'Email':<32} {'Role':<8} {'Status':<10} {'Lang':<5}")
    print("  " + "-" * 78)
    for user in users:
        print(f"  {user['username']:<20} {user['email']:<32} {user['role']:<8} "
              f"{user['status']:<10} {user['language']:<5}")


def create_admin(store: MindmapStore, email: str, username: str, password: str,
                 language: Language, min_length: int, rounds: int) -> bool:
    """Create (or promote) an approved administrator"""
    print(f"\nSetting up administrator: {username}")

    existing = store.find_user_by_email(email)
    if existing is not None:
        store.update_user(existing["id"], role=Role.ADMIN, status=AccountStatus.APPROVED)
        print(f"[OK] Existing account promoted to admin: {existing['username']}")
        return True

    is_valid, error_msg = validate_password(password, min_length)
    if not is_valid:
        print(f"[FAIL] {error_msg}")
        return False

    try:
        user = store.insert_user(
            email=email,
            username=username,
            password_hash=hash_password(password, rounds),
            role=Role.ADMIN,
            status=AccountStatus.APPROVED,
            language=language,
        )
    except DuplicateRecordError:
        print(f"[FAIL] Username already taken: {username}")
        return False

    print("[OK] Administrator created")
    print(f"   Id:       {user['id']}")
    print(f"   Username: {user['username']}")
    print("\n   Use POST /auth/login with email and password")
    return True


def main():
    parser = argparse.ArgumentParser(description="Create the Mind Map Portal administrator")
    parser.add_argument("--email", help="Admin email")
    parser.add_argument("--username", help="Admin username")
    parser.add_argument("--password", help="Admin password")
    parser.add_argument("--language", default=None, help='Preferred language ("zh" or "en")')
    parser.add_argument("--list", action="store_true", help="List all accounts")
    args = parser.parse_args()

    settings = get_settings()
    store = MindmapStore(settings.database_path())
    store.initialize_schema()

    if args.list:
        list_accounts(store)
        return True

    if not (args.email and args.username and args.password):
        parser.print_help()
        return False

    language = parse_enum(Language, args.language or settings.DEFAULT_LANGUAGE)
    if language is None:
        print('[FAIL] Language must be "zh" or "en"')
        return False

    return create_admin(
        store,
        email=args.email,
        username=args.username,
        password=args.password,
        language=language,
        min_length=settings.PASSWORD_MIN_LENGTH,
        rounds=settings.BCRYPT_ROUNDS,
    )


if __name__ == "__main__":
    success = main()
    sys.exit(0 if success else 1)
