"""
Company Arena API Service - FastAPI Application.

Vote-driven company leaderboard: pairs of companies are put head to head,
votes move their Elo-like scores, and the leaderboard ranks them.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse, JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from arena.config import get_settings
from arena.database import init_db
from arena.exceptions import ArenaError, TransientStoreFailure
from arena.models import HealthResponse
from arena.routes import companies_router, votes_router
from arena.scheduler import start_scheduler, stop_scheduler


settings = get_settings()

# Configure logging
logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


LANDING_PAGE = (
    "<h1>Company Arena API</h1>"
    "<p>Call /api/* endpoints from your site.</p>"
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    # Startup
    logger.info("Starting Company Arena API Service...")
    init_db()
    logger.info("Database initialized")
    if settings.prune_scheduler_enabled:
        start_scheduler()

    yield

    # Shutdown
    logger.info("Shutting down Company Arena API Service...")
    stop_scheduler()


def _error_body(message: str, details=None) -> dict:
    body = {"error": message}
    if details and get_settings().debug:
        body["details"] = str(details)
    return body


# Create FastAPI application
app = FastAPI(
    title=settings.app_name,
    description="""
## Company Arena API

Head-to-head voting between companies.

### API Flow

1. Fetch two random companies (GET /api/battle)
2. Vote for one of them (POST /api/vote); both scores update atomically
   and a next opponent is suggested
3. Browse the ranking (GET /api/companies) and totals (GET /api/stats)

Votes are limited per device (`X-Device-Id` header) or per IP.
    """,
    version=settings.app_version,
    lifespan=lifespan,
)

PREFLIGHT_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, POST, OPTIONS",
    "Access-Control-Allow-Headers": "*",
}


@app.middleware("http")
async def answer_options(request: Request, call_next):
    """Bare OPTIONS requests get an empty 204; real preflights never reach here."""
    if request.method == "OPTIONS":
        return Response(status_code=204, headers=PREFLIGHT_HEADERS)
    return await call_next(request)


# Configure CORS
origins = [o.strip() for o in settings.allowed_origins.split(",") if o.strip()]
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials="*" not in origins,
    allow_methods=["*"],
    allow_headers=["*"],
)


# =============================================================================
# Error Handlers
# =============================================================================


@app.exception_handler(ArenaError)
async def arena_error_handler(request: Request, exc: ArenaError) -> JSONResponse:
    """Render domain errors as {error} with their mapped status."""
    if isinstance(exc, TransientStoreFailure):
        logger.warning(f"{request.method} {request.url.path} failed: {exc.details}")
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(exc.message, exc.details),
    )


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed bodies and parameters are client input errors."""
    return JSONResponse(
        status_code=400,
        content=_error_body("Invalid request", exc.errors()),
    )


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Keep the {error} shape for routing errors too."""
    message = "Not found" if exc.status_code == 404 else str(exc.detail)
    return JSONResponse(status_code=exc.status_code, content={"error": message})


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Anything unexpected: log with context, answer with a generic message."""
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return JSONResponse(
        status_code=500,
        content=_error_body("Something went wrong!", exc),
    )


# Include routers
app.include_router(companies_router, prefix="/api")
app.include_router(votes_router, prefix="/api")


# Root endpoint
@app.get("/", response_class=HTMLResponse)
def root():
    """Landing page with API information."""
    return LANDING_PAGE


@app.get("/health", response_model=HealthResponse)
def root_health():
    """Quick health check."""
    return HealthResponse(version=settings.app_version)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "arena.app:app",
        host="0.0.0.0",
        port=8001,
        reload=settings.debug
    )
