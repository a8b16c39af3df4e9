"""
Contractor Marketplace -- FastAPI Application
Main entry point for the API server.

Run with:
    uvicorn marketplace.app:app --reload --host 0.0.0.0 --port 3001
"""

import asyncio
import logging
import traceback
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from marketplace import config
from marketplace.auth import requires_auth, resolve_profile
from marketplace.core.logging import configure_logging
from marketplace.database import init_db
from marketplace.exceptions import InvalidInputError, MarketplaceError
from marketplace.metrics import record_error

configure_logging()
logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Lifespan (startup / shutdown)
# ---------------------------------------------------------------------------

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Runs once on startup, yields for the lifetime of the app."""
    logger.info("Initialising database...")
    await asyncio.to_thread(init_db)
    if config.SEED_ON_STARTUP:
        from marketplace.seed import seed_if_empty
        await asyncio.to_thread(seed_if_empty)
    logger.info("Database ready.")

    yield


# ---------------------------------------------------------------------------
# FastAPI app
# ---------------------------------------------------------------------------

app = FastAPI(
    title="Contractor Marketplace",
    version=config.VERSION,
    description="Contracts, jobs and balances for a client/contractor marketplace",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ---------------------------------------------------------------------------
# Exception handlers
# ---------------------------------------------------------------------------

@app.exception_handler(MarketplaceError)
async def marketplace_error_handler(request: Request, exc: MarketplaceError):
    if exc.status_code >= 500:
        logger.error(
            "%s on %s %s: %s", exc.code, request.method, request.url.path, exc,
            exc_info=getattr(exc, "cause", None),
        )
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    """Malformed path or query values are reported like any other bad input."""
    problems = "; ".join(
        "%s: %s" % (".".join(str(p) for p in err.get("loc", ())), err.get("msg", "invalid"))
        for err in exc.errors()
    )
    error = InvalidInputError(problems or "Invalid request")
    return JSONResponse(status_code=error.status_code, content=error.to_dict())


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    # Traceback stays in the server log; the caller gets an opaque 500
    logger.error(
        "Unhandled exception on %s %s: %s\n%s",
        request.method, request.url.path, exc, traceback.format_exc(),
    )
    record_error()
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error", "code": "INTERNAL_ERROR"},
    )


# ---------------------------------------------------------------------------
# Auth middleware -- resolves the caller's profile before any handler runs
# ---------------------------------------------------------------------------

@app.middleware("http")
async def profile_middleware(request: Request, call_next):
    """Attach ``request.state.profile`` or reject with 401."""
    if request.method != "OPTIONS" and requires_auth(request):
        try:
            request.state.profile = await asyncio.to_thread(
                resolve_profile, request.headers.get(config.PROFILE_HEADER),
            )
        except MarketplaceError as exc:
            if exc.status_code >= 500:
                logger.error("Profile resolution failed: %s", exc)
            return JSONResponse(status_code=exc.status_code, content=exc.to_dict())
    return await call_next(request)


# ---------------------------------------------------------------------------
# Routers
# ---------------------------------------------------------------------------

from marketplace.api.routes import register_routes  # noqa: E402

register_routes(app)


# ---------------------------------------------------------------------------
# Development entry-point
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "marketplace.app:app",
        host="0.0.0.0",
        port=config.PORT,
        reload=True,
    )
