"""
Campus Incidents API — Application entry point.

Bootstraps FastAPI, wires up middleware, registers route groups,
and manages the MongoDB connection lifecycle.

Extension points:
  - Add new route groups with app.include_router() below
  - Add new middleware in the middleware block
  - Change startup behaviour in the lifespan context manager
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from campus_incidents.core.config import APP_VERSION, settings
from campus_incidents.core.database import close_mongo_connection, connect_to_mongo
from campus_incidents.core.rate_limit import limiter
from campus_incidents.routes.health import router as health_router
from campus_incidents.routes.incidents import router as incidents_router
from campus_incidents.routes.map import router as map_router

# ─── Logging ───────────────────────────────────────────────────────────────────
logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
)
logger = logging.getLogger(__name__)


# ─── Lifespan ──────────────────────────────────────────────────────────────────
@asynccontextmanager
async def lifespan(app: FastAPI):
    """Connect to MongoDB on startup and disconnect on shutdown."""
    logger.info("Starting Campus Incidents API (env: %s)", settings.environment)
    await connect_to_mongo()
    yield
    logger.info("Shutting down Campus Incidents API")
    await close_mongo_connection()


# ─── App ───────────────────────────────────────────────────────────────────────
app = FastAPI(
    title="Campus Incidents API",
    description=(
        "Campus maintenance incident reporting: duplicate detection, "
        "incident listing and map density/cluster payloads."
    ),
    version=APP_VERSION,
    lifespan=lifespan,
    docs_url="/docs" if settings.environment != "production" else None,
    redoc_url="/redoc" if settings.environment != "production" else None,
)


# ─── Rate limiting ─────────────────────────────────────────────────────────────
# Routes opt-in with @limiter.limit("N/minute") + request: Request parameter.
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

# /map must be registered before /{incident_id} or it is parsed as an id
app.include_router(map_router)
app.include_router(incidents_router)


@app.get("/", tags=["root"])
async def root():
    """API root — basic metadata."""
    return {
        "name": "Campus Incidents API",
        "version": APP_VERSION,
        "status": "running",
        "environment": settings.environment,
        "docs": "/docs",
    }
