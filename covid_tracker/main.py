"""
COVID Tracker API — Application entry point.

Bootstraps FastAPI, wires up middleware, registers route groups,
and manages the orchestrator lifecycle (initial provider load on startup).

Extension points:
  - Add new route groups with app.include_router() below
  - Add new middleware in the middleware block
  - Change startup behaviour in the lifespan context manager

Run locally:
    uvicorn covid_tracker.main:app --reload
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from covid_tracker.core import tracker
from covid_tracker.core.config import settings
from covid_tracker.core.rate_limit import limiter
from covid_tracker.routes.countries import router as countries_router
from covid_tracker.routes.dashboard import router as dashboard_router
from covid_tracker.routes.health import VERSION
from covid_tracker.routes.health import router as health_router

# ─── Logging ───────────────────────────────────────────────────────────────────
logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
)
logger = logging.getLogger(__name__)


# ─── Lifespan ──────────────────────────────────────────────────────────────────
@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Manage startup and shutdown lifecycle.

    Code before `yield` runs on startup (build the orchestrator, run the
    initial load); code after runs on shutdown.
    """
    logger.info("Starting COVID Tracker API (env: %s)", settings.environment)
    await tracker.start_tracker()
    yield
    logger.info("Shutting down COVID Tracker API")
    await tracker.stop_tracker()


# ─── App ───────────────────────────────────────────────────────────────────────
app = FastAPI(
    title="COVID Tracker API",
    description=(
        "Live COVID-19 counters, derived rates, historical series and country "
        "rankings, normalised from the disease.sh provider."
    ),
    version=VERSION,
    lifespan=lifespan,
    docs_url="/docs" if settings.environment != "production" else None,
    redoc_url="/redoc" if settings.environment != "production" else None,
)


# ─── Rate limiting ─────────────────────────────────────────────────────────────
# Attach the limiter to app state so slowapi can find it.
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# ─── Middleware ─────────────────────────────────────────────────────────────────
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ─── Routes ────────────────────────────────────────────────────────────────────
app.include_router(health_router, prefix="/health", tags=["health"])
app.include_router(dashboard_router)
app.include_router(countries_router)


@app.get("/", tags=["root"])
async def root():
    """API root — basic metadata."""
    return {
        "name": "COVID Tracker API",
        "version": VERSION,
        "status": "running",
        "environment": settings.environment,
        "provider": settings.provider_base_url,
        "docs": "/docs",
    }
