"""
Mind Map Portal - Main Runner Script
=====================================

Properly run any module from the project root.
Handles Python path setup automatically.

Usage:
    python run.py api            # Start the API (uvicorn, port 8000)
    python run.py init-db        # Create database tables
    python run.py create-admin   # Create/promote an administrator (see --help)
    python run.py health         # Database health check
    python run.py test           # Smoke-test imports, database and logging
"""

import sys
import os

# Add project root to Python path
PROJECT_ROOT = os.path.dirname(os.path.abspath(__file__))
sys.path.insert(0, PROJECT_ROOT)


def main():
    """Main entry point"""

    if len(sys.argv) < 2:
        print(__doc__)
        sys.exit(1)

    command = sys.argv[1].lower()

    # Remove command from sys.argv so submodules get correct args
    sys.argv = [sys.argv[0]] + sys.argv[2:]

    try:
        if command == 'api':
            import uvicorn
            from apps.mindmap_portal.api.config import get_settings

            settings = get_settings()
            port = int(os.getenv("PORT", "8000"))
            uvicorn.run(
                "apps.mindmap_portal.api.main:app",
                host="0.0.0.0",
                port=port,
                reload=not settings.is_production,
            )

        elif command == 'init-db':
            from scripts.setup import init_database
            sys.exit(0 if init_database.main() else 1)

        elif command == 'create-admin':
            from scripts.setup import create_admin
            sys.exit(0 if create_admin.main() else 1)

        elif command == 'health':
            from apps.mindmap_portal.api.config import get_settings
            from apps.mindmap_portal.api.models.database import MindmapStore

            settings = get_settings()
            health = MindmapStore(settings.database_path()).health_check()
            print(f"Database:           {settings.database_path()}")
            print(f"Connected:          {health['connected']}")
            print(f"Tables initialized: {health['tables_initialized']}")
            if settings.uses_default_secret:
                print("[WARN] JWT_SECRET_KEY is the insecure default")
            sys.exit(0 if health['tables_initialized'] else 1)

        elif command == 'test':
            print("Running system tests...\n")
            from apps.mindmap_portal.api.config import get_settings
            from apps.mindmap_portal.api.main import create_app
            from apps.mindmap_portal.api.models.database import MindmapStore
            from src.utils import safe_logging
            print("[OK] All modules imported successfully")

            print("\nTesting database...")
            settings = get_settings()
            health = MindmapStore(settings.database_path()).health_check()
            print(f"[OK] Database connection works (tables initialized: {health['tables_initialized']})")

            print("\nTesting app factory...")
            create_app(settings)
            print("[OK] App builds")

            print("\nTesting safe logging...")
            logger = safe_logging.get_safe_logger(__name__)
            logger.info("Test log message", email="someone@example.com")
            print("[OK] Logging system works")

            print("\nAll tests passed! For the full suite run: python -m pytest tests/")

        else:
            print(f"Unknown command: {command}")
            print(__doc__)
            sys.exit(1)

    except KeyboardInterrupt:
        print("\n\nInterrupted by user")
        sys.exit(0)
    except Exception as e:
        print(f"\n[ERROR] {str(e)}")
        import traceback
        traceback.print_exc()
        sys.exit(1)


if __name__ == "__main__":
    main()
