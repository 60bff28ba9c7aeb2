"""
rallypoint.api.main — FastAPI application entry point
======================================================

Run with::

    uvicorn rallypoint.api.main:app --reload --port 8000
"""

from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

load_dotenv()

from rallypoint.api.deps import get_engine  # noqa: E402
from rallypoint.api.routes.admin import router as admin_router  # noqa: E402
from rallypoint.api.routes.builds import router as builds_router  # noqa: E402
from rallypoint.api.routes.community import router as community_router  # noqa: E402
from rallypoint.api.routes.forums import router as forums_router  # noqa: E402
from rallypoint.api.routes.lfg import router as lfg_router  # noqa: E402
from rallypoint.database.engine import init_db  # noqa: E402
from rallypoint.services.errors import EngagementError, http_status_for  # noqa: E402

logger = logging.getLogger(__name__)


def _cors_origins() -> list[str]:
    """Resolve allowed CORS origins from env.

    Priority:
      1) CORS_ALLOW_ORIGINS (comma-separated)
      2) FRONTEND_URL (single origin)
    """
    raw = os.getenv("CORS_ALLOW_ORIGINS", "").strip()
    if raw:
        return [origin.strip().rstrip("/") for origin in raw.split(",") if origin.strip()]

    frontend_url = os.getenv("FRONTEND_URL", "").strip()
    if frontend_url:
        return [frontend_url.rstrip("/")]

    return []


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown lifecycle — create tables and seed forum categories."""
    engine = get_engine()
    init_db(engine)
    logger.info("Rallypoint API started — engine ready (%s)", engine.url.database)
    yield
    logger.info("Rallypoint API shutting down")


app = FastAPI(
    title="Rallypoint Community API",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Mount routers
app.include_router(builds_router, prefix="/api")
app.include_router(lfg_router, prefix="/api")
app.include_router(forums_router, prefix="/api")
app.include_router(community_router, prefix="/api")
app.include_router(admin_router, prefix="/api")


@app.exception_handler(EngagementError)
async def engagement_error_handler(request: Request, exc: EngagementError) -> JSONResponse:
    """Translate service-layer errors into their HTTP status codes."""
    status_code = http_status_for(exc)
    logger.debug("%s %s → %d (%s)", request.method, request.url.path, status_code, exc)
    return JSONResponse(status_code=status_code, content={"detail": str(exc)})


@app.get("/api/health")
def health():
    return {"status": "ok"}
