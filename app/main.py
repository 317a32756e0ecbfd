"""
Main application entry point - FastAPI app instance and configuration.
This is where the ASGI application is created and configured.
Run with: uvicorn app.main:app --reload
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI  # The FastAPI framework
from fastapi.middleware.cors import CORSMiddleware  # Cross-Origin Resource Sharing

from app.core.config import settings  # Application settings
from app.core.logging_config import configure_logging
from app.routers import appointments, categories  # Route handlers (endpoints)


configure_logging()
logger = logging.getLogger("eventcal.main")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Report configuration problems at startup instead of on the first request."""
    missing = settings.get_missing_graph_settings()
    if missing:
        logger.warning(f"Graph settings missing, /api/appointments will fail: {', '.join(missing)}")
    else:
        logger.info(f"Serving calendar '{settings.GRAPH_CALENDAR_NAME}'")
    yield


# ---------------------------------------------------------------------------
# CREATE FASTAPI APPLICATION
# ---------------------------------------------------------------------------
# - docs_url: Swagger UI at http://localhost:8000/docs
# - redoc_url: ReDoc at http://localhost:8000/redoc
app = FastAPI(
    title=settings.APP_NAME,
    debug=settings.DEBUG,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

# ---------------------------------------------------------------------------
# CORS MIDDLEWARE
# ---------------------------------------------------------------------------
# The display screens and web widgets load appointments from other origins.
# CORS_ORIGINS narrows this down in production.
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=False,
    allow_methods=["GET"],
    allow_headers=["*"],
)

# ---------------------------------------------------------------------------
# REGISTER ROUTERS
# ---------------------------------------------------------------------------
# appointments.router: /api/appointments, /api/appointments/cache/clear
# categories.router: /api/categories
app.include_router(appointments.router)
app.include_router(categories.router)


# ---------------------------------------------------------------------------
# HEALTH CHECK ENDPOINT
# ---------------------------------------------------------------------------
@app.get("/health", tags=["health"])
def health_check():
    """
    Liveness probe.

    Does NOT touch Graph, the cache or the category set.

    Returns:
        {"status": "ok"}
    """
    return {"status": "ok"}
