"""
Mind Map Portal - API
======================

REST API for the Mind Map Portal: registration with admin approval,
login, public/private Markdown mind maps, admin account management and
AI-generated map content.

Run locally (from project root):
    python -m uvicorn apps.mindmap_portal.api.main:app --reload --port 8000

API Docs:
    http://localhost:8000/docs
"""

import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from starlette.exceptions import HTTPException as StarletteHTTPException

from .config import Settings, get_settings
from .dependencies import TokenService
from .models.database import MindmapStore
from .routes import admin, auth, generate, mindmaps
from .services.auth_service import ServiceError
from src.utils.safe_logging import get_safe_logger

logger = get_safe_logger(__name__)

API_VERSION = "1.0.0"

CORS_ALLOW_METHODS = "GET,OPTIONS,PATCH,DELETE,POST,PUT"
CORS_ALLOW_HEADERS = (
    "Authorization, X-CSRF-Token, X-Requested-With, Accept, Accept-Version, "
    "Content-Length, Content-MD5, Content-Type, Date, X-Api-Version"
)


def _print_startup_banner(settings: Settings):
    """Print clear environment banner on API startup.

    Warns loudly when the built-in JWT secret is in use.
    """
    env = settings.ENV.upper()
    db_path = settings.database_path()

    print("")
    print("=" * 60)
    print(f"   MIND MAP PORTAL API  --  {env} MODE")
    print("=" * 60)
    print(f"   Database:    {settings.DATABASE_PATH}")
    print(f"   DB exists:   {db_path.exists()}")
    print(f"   Signup:      {'direct' if settings.ALLOW_DIRECT_SIGNUP else 'application + approval'}")
    print(f"   AI provider: {'configured' if settings.DEEPSEEK_API_KEY else 'not configured'}")
    print("=" * 60)

    if settings.uses_default_secret:
        print("")
        print("   [WARN] *** JWT_SECRET_KEY NOT SET - USING INSECURE DEFAULT ***")
        print("   [WARN] Tokens can be forged by anyone who knows the default.")
        print("   [WARN] Set JWT_SECRET_KEY (e.g. openssl rand -hex 32).")
        print("")

    print("")


def _ensure_schema(store: MindmapStore):
    """Create tables on startup (non-fatal).

    /health reports tables_initialized=false if this did not work.
    """
    try:
        store.initialize_schema()
        print("   [OK] Database schema verified")
    except Exception as e:
        logger.warning("Could not initialize database schema", error=str(e))


def _error_body(message: str, settings: Settings, debug: Optional[str] = None) -> dict:
    body = {"error": message}
    if debug and not settings.is_production:
        body["debug"] = debug
    return body


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Build the FastAPI app around one immutable Settings object.

    The settings, token service and store are attached to app.state and
    reach the routes through dependencies.
    """
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        _print_startup_banner(settings)
        _ensure_schema(app.state.store)
        yield
        print("[STOP] Mind Map Portal API shutting down...")

    app = FastAPI(
        title="Mind Map Portal API",
        description="Author and share Markdown mind maps",
        version=API_VERSION,
        lifespan=lifespan,
        docs_url="/docs" if not settings.is_production else None,
        redoc_url="/redoc" if not settings.is_production else None,
    )

    app.state.settings = settings
    app.state.token_service = TokenService.from_settings(settings)
    app.state.store = MindmapStore(settings.database_path())

    # --------------------------------------------------------
    # Middleware
    # --------------------------------------------------------

    @app.middleware("http")
    async def add_security_headers(request: Request, call_next):
        """Add security headers to all API responses."""
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["X-XSS-Protection"] = "1; mode=block"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        response.headers["Permissions-Policy"] = "camera=(), microphone=(), geolocation=()"
        response.headers["Cache-Control"] = "no-store"
        return response

    @app.middleware("http")
    async def add_timing_header(request: Request, call_next):
        start_time = time.time()
        response = await call_next(request)
        process_time = time.time() - start_time
        response.headers["X-Process-Time"] = str(round(process_time * 1000, 2)) + "ms"
        return response

    allow_any_origin = "*" in settings.cors_origins

    @app.middleware("http")
    async def permissive_cors(request: Request, call_next):
        """Answer every OPTIONS request and stamp the CORS headers.

        CORSMiddleware only handles real preflights (Origin +
        Access-Control-Request-Method); bare OPTIONS requests land here.
        """
        if request.method == "OPTIONS":
            response = Response(status_code=200)
        else:
            response = await call_next(request)

        if allow_any_origin and "access-control-allow-origin" not in response.headers:
            response.headers["Access-Control-Allow-Origin"] = "*"
        if request.method == "OPTIONS":
            response.headers["Access-Control-Allow-Methods"] = CORS_ALLOW_METHODS
            response.headers["Access-Control-Allow-Headers"] = CORS_ALLOW_HEADERS
        return response

    # Added last so it wraps everything above
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=False,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["*"],
    )

    # --------------------------------------------------------
    # Error envelope: {"error": "..."} (+ "debug" outside production)
    # --------------------------------------------------------

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": str(exc.detail)},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        debug = "; ".join(
            f"{'.'.join(str(p) for p in err.get('loc', ()))}: {err.get('msg', '')}" for err in errors
        )
        return JSONResponse(
            status_code=400,
            content=_error_body("Invalid request body", settings, debug),
        )

    @app.exception_handler(ServiceError)
    async def service_exception_handler(request: Request, exc: ServiceError):
        return JSONResponse(status_code=exc.status_code, content={"error": exc.message})

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.error(
            "Unhandled error",
            path=request.url.path,
            method=request.method,
            error=f"{type(exc).__name__}: {exc}",
        )
        return JSONResponse(
            status_code=500,
            content=_error_body("Internal server error", settings, str(exc)),
            headers={"Access-Control-Allow-Origin": "*"} if allow_any_origin else None,
        )

    # --------------------------------------------------------
    # Routers
    # --------------------------------------------------------

    app.include_router(auth.router, prefix="/auth", tags=["Authentication"])
    app.include_router(mindmaps.router, prefix="/mindmaps", tags=["Mind Maps"])
    app.include_router(admin.router, prefix="/admin", tags=["Admin"])
    app.include_router(generate.router, prefix="/generate", tags=["Generation"])

    @app.get("/health", tags=["System"])
    def health_check(request: Request):
        """Database connectivity and schema presence.

        503 when the database cannot be reached.
        """
        environment = {
            "ENV": settings.ENV,
            "DATABASE_PATH": settings.DATABASE_PATH,
            "JWT_SECRET": not settings.uses_default_secret,
            "DEEPSEEK_API_KEY": bool(settings.DEEPSEEK_API_KEY),
        }
        timestamp = datetime.now(timezone.utc).isoformat()

        try:
            database = request.app.state.store.health_check()
        except Exception as e:
            logger.error("Health check failed", error=f"{type(e).__name__}: {e}")
            return JSONResponse(
                status_code=503,
                content={
                    "status": "error",
                    "timestamp": timestamp,
                    "error": "Database connection failed",
                    "errorType": type(e).__name__,
                    "environment": environment,
                    **({"debug": str(e)} if not settings.is_production else {}),
                },
            )

        next_steps = []
        if not database["tables_initialized"]:
            next_steps = [
                "Database connected but tables not initialized",
                "Run: python run.py init-db",
            ]

        return {
            "status": "ok",
            "timestamp": timestamp,
            "version": API_VERSION,
            "database": {
                "connected": database["connected"],
                "tables_initialized": database["tables_initialized"],
            },
            "environment": environment,
            "next_steps": next_steps,
        }

    @app.get("/", tags=["System"])
    async def root():
        """API root - returns basic info"""
        return {
            "name": "Mind Map Portal API",
            "version": API_VERSION,
            "docs": "/docs" if not settings.is_production else "disabled",
        }

    return app


app = create_app()
