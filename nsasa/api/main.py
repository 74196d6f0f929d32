"""
nsasa.api.main — FastAPI application entry point
==================================================

Run with::

    uvicorn nsasa.api.main:app --reload --port 8000
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

from nsasa.api.deps import get_engine  # noqa: E402
from nsasa.api.routes.accounts import router as accounts_router  # noqa: E402
from nsasa.api.routes.admin import router as admin_router  # noqa: E402
from nsasa.api.routes.content import router as content_router  # noqa: E402
from nsasa.api.routes.polls import router as polls_router  # noqa: E402
from nsasa.api.routes.public import router as public_router  # noqa: E402
from nsasa.engine.events import EntityChanged, get_change_bus  # noqa: E402
from nsasa.errors import PortalError  # noqa: E402

logger = logging.getLogger(__name__)


def _cors_origins() -> list[str]:
    """Resolve allowed CORS origins from env with safe defaults.

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


def _log_change(event: EntityChanged) -> None:
    logger.info(
        "%s %s %s (actor=%s)", event.kind, event.entity_id, event.change, event.actor_id,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown lifecycle: warm the DB engine, attach the change log."""
    bus = get_change_bus()
    bus.subscribe(None, _log_change)
    engine = get_engine()
    logger.info("Portal API started, engine ready (%s)", engine.url.database)
    yield
    bus.unsubscribe(None, _log_change)
    logger.info("Portal API shutting down")


app = FastAPI(
    title="Departmental Portal API",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(PortalError)
async def portal_error_handler(request: Request, exc: PortalError):
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


# Mount routers
app.include_router(accounts_router, prefix="/api")
app.include_router(content_router, prefix="/api")
app.include_router(polls_router, prefix="/api")
app.include_router(public_router, prefix="/api")
app.include_router(admin_router, prefix="/api")


@app.get("/api/health")
def health():
    return {"status": "ok"}
