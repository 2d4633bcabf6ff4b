#!/usr/bin/env python3
"""
Initialize Mind Map Portal Database
====================================

Creates the users, user_applications and mind_maps tables (and their
indexes) in the database named by DATABASE_PATH. Safe to run repeatedly.

Usage:
    python scripts/setup/init_database.py
    python scripts/setup/init_database.py --db data/other.db
"""

import argparse
import sys
from pathlib import Path

# Add project root for imports
PROJECT_ROOT = Path(__file__).parent.parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from apps.mindmap_portal.api.config import get_settings
from apps.mindmap_portal.api.models.database import MindmapStore
from apps.mindmap_portal.api.models.schema import SCHEMA_VERSION


def run_init(db_path: Path) -> bool:
    """Create the schema and report what exists afterwards"""
    print("\n" + "=" * 60)
    print(" INIT: Mind Map Portal schema v" + SCHEMA_VERSION)
    print("=" * 60 + "\n")
    print(f"Database: {db_path}")

    store = MindmapStore(db_path)
    try:
        store.initialize_schema()
        health = store.health_check()
    except Exception as e:
        print(f"[FAIL] Schema creation failed: {e}")
        return False

    if not health["tables_initialized"]:
        print("[FAIL] Tables missing after initialization")
        return False

    print("[OK] Tables ready: users, user_applications, mind_maps")
    print(f"     Accounts: {store.count_users()}")

    print("""
NEXT STEPS:
-----------
1. Create the first administrator:
    python scripts/setup/create_admin.py --email admin@example.com --username admin --password "..."
2. Start the API:
    python run.py api
""")
    return True


def main():
    parser = argparse.ArgumentParser(description="Create the Mind Map Portal tables")
    parser.add_argument("--db", help="Database path (default: DATABASE_PATH setting)")
    args = parser.parse_args()

    db_path = Path(args.db) if args.db else get_settings().database_path()
    return run_init(db_path)


if __name__ == "__main__":
    success = main()
    sys.exit(0 if success else 1)
