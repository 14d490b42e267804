"""
FastAPI main application entry point.

Architecture:
  Client → http://localhost:8000/api/...  → profiles, conversations, messages (SSE),
                                             memory sync, settings and model catalog

State lives in a single SQLite key-value file (see kv_store.py). Chat turns
stream from Gemini (primary) or OpenRouter (secondary), picked per profile.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from chat.state import AppState
from config import get_settings
from database import close_db, connect_db, get_database
from llm.factory import ProviderRouter
from services import init_services, reset_services
from storage import StorageService

# Import routers
from routers import conversations, memory, messages, profiles
from routers import settings as settings_router

settings = get_settings()

# ============================================================
# Logging Configuration
# ============================================================
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

# Suppress per-request noise from the HTTP client
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)


# ============================================================
# Application Lifespan (startup/shutdown)
# ============================================================
@asynccontextmanager
async def lifespan(app: FastAPI):
    """Handle application startup and shutdown events."""
    # Startup
    logger.info("Starting up Vivica backend...")
    logger.info(f"CORS origins: {settings.cors_origins_list}")

    if not settings.primary_api_key:
        logger.warning(
            "GEMINI_API_KEY is not set. Gemini models and memory sync will fail "
            "until it is configured in .env"
        )

    store = await connect_db()
    state = await AppState.load(StorageService(store))
    init_services(state, ProviderRouter.from_settings(settings))

    yield  # Application runs here

    # Shutdown
    logger.info("Shutting down Vivica backend...")
    reset_services()
    await close_db()


# ============================================================
# Create FastAPI Application
# ============================================================
app = FastAPI(
    title="Vivica API",
    description="Multi-profile AI chat with streaming replies and profile memory",
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/api/docs",
    redoc_url="/api/redoc",
    openapi_url="/api/openapi.json",
)


# ============================================================
# Middleware Stack (executes bottom-to-top)
# ============================================================
class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add security headers to every response."""

    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        response.headers.setdefault("Cache-Control", "no-store")
        return response


app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ============================================================
# API Routes (all mounted under /api)
# ============================================================
app.include_router(profiles.router, prefix="/api/profiles", tags=["Profiles"])
app.include_router(conversations.router, prefix="/api/conversations", tags=["Conversations"])
app.include_router(messages.router, prefix="/api/messages", tags=["Messages"])
app.include_router(memory.router, prefix="/api/memory", tags=["Memory"])
app.include_router(settings_router.router, prefix="/api/settings", tags=["Settings"])


# ============================================================
# Health Check Endpoints (under /api for consistency)
# ============================================================
@app.get("/api/health")
async def health_check() -> dict:
    """Liveness probe: confirms the process is running."""
    return {"status": "healthy", "version": "1.0.0"}


@app.get("/api/health/ready")
async def readiness_check() -> dict:
    """Readiness probe: verifies the store is reachable and reports key setup."""
    checks: dict = {}

    try:
        await get_database().keys()
        checks["database"] = "ok"
    except Exception as e:
        checks["database"] = f"error: {e}"

    checks["gemini"] = "configured" if settings.primary_api_key else "not configured"

    if checks["database"].startswith("error"):
        return JSONResponse(
            status_code=503,
            content={"status": "not ready", "checks": checks},
        )

    return {"status": "ready", "checks": checks}


# ============================================================
# Run with Uvicorn (for development)
# ============================================================
if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )
