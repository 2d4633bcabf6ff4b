"""
Start Dev Environment
======================

One-command launcher for the Mind Map Portal API in development mode.

What it does:
1. Sets MINDMAP_ENV=development
2. Creates the dev database if it doesn't exist (runs init_database.py)
3. Starts uvicorn on port 8000 with hot reload

Usage:
    python scripts/setup/start_dev.py              # Start dev API
    python scripts/setup/start_dev.py --port 8001  # Custom port
    python scripts/setup/start_dev.py --reset-db   # Rebuild dev database first
"""

import argparse
import os
import subprocess
import sys
from pathlib import Path

# Add project root for imports
PROJECT_ROOT = Path(__file__).parent.parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from apps.mindmap_portal.api.config import get_settings


def dev_database_path() -> Path:
    """The database file the dev API will open.

    Resolved through the API's own settings so config/.env.development is
    loaded first.
    """
    os.environ["MINDMAP_ENV"] = "development"
    get_settings.cache_clear()
    return get_settings().database_path()


def main():
    parser = argparse.ArgumentParser(description="Start Mind Map Portal API in development mode")
    parser.add_argument("--port", type=int, default=8000, help="API port (default: 8000)")
    parser.add_argument("--reset-db", action="store_true", help="Delete and recreate the dev database")
    parser.add_argument("--no-reload", action="store_true", help="Disable hot reload")
    args = parser.parse_args()

    project_root = PROJECT_ROOT
    os.chdir(project_root)

    dev_db = dev_database_path()
    init_script = project_root / "scripts" / "setup" / "init_database.py"

    print("")
    print("=" * 60)
    print("   MIND MAP PORTAL  --  DEVELOPMENT MODE")
    print("=" * 60)
    print(f"   Project root: {project_root}")
    print(f"   Dev database: {dev_db}")
    print(f"   API port:     {args.port}")
    print("=" * 60)
    print("")

    if args.reset_db and dev_db.exists():
        print("[START] Removing dev database...")
        dev_db.unlink()

    if not dev_db.exists():
        print("[WARN] Dev database not found. Creating it now...")
        result = subprocess.run(
            [sys.executable, str(init_script), "--db", str(dev_db)],
            cwd=str(project_root)
        )
        if result.returncode != 0:
            print("[ERROR] Database setup failed")
            sys.exit(1)
        print("[OK] Dev database created")
        print("")
    else:
        print(f"[OK] Dev database exists: {dev_db}")
        print("")

    print(f"[START] Starting API on http://localhost:{args.port}")
    print(f"   Docs: http://localhost:{args.port}/docs")
    print("   Press Ctrl+C to stop")
    print("")

    uvicorn_args = [
        sys.executable, "-m", "uvicorn",
        "apps.mindmap_portal.api.main:app",
        "--port", str(args.port),
    ]
    if not args.no_reload:
        uvicorn_args.append("--reload")

    try:
        subprocess.run(uvicorn_args, cwd=str(project_root))
    except KeyboardInterrupt:
        print("")
        print("[STOP] Dev server stopped")


if __name__ == "__main__":
    main()
