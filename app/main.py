import logging
from contextlib import asynccontextmanager
from collections.abc import AsyncIterator
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from sqlalchemy import text

from app.api import auth, comments, health, likes, posts, users
from app.core.config import settings
from app.core.errors import ApiError, BadRequestError
from app.core.logging_config import setup_logging
from app.core.middleware import RequestLoggingMiddleware
from app.core.rate_limit import limiter
from app.db.session import engine

# Configure structured JSON logging before anything else
setup_logging()

logger = logging.getLogger(__name__)

_HIDDEN_HEADERS = {"cookie", "authorization"}


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan: check the database when it is the configured backend."""
    if settings.storage_backend == "database":
        try:
            async with engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            logger.info("Database connection established")
        except Exception as exc:
            logger.warning("Database connection not available at startup: %s", exc)
    else:
        logger.info("Using in-memory storage under %s", settings.data_dir)
    yield
    await engine.dispose()


app = FastAPI(
    title=f"{settings.app_name} API",
    description="REST API for the community board: accounts, posts, comments and likes.",
    version="1.0.0",
    openapi_url="/api/openapi.json",
    docs_url="/api/docs",
    redoc_url=None,
    debug=settings.debug,
    lifespan=lifespan,
)


# ---------------------------------------------------------------------------
# Rate limiter
# ---------------------------------------------------------------------------
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
app.add_middleware(SlowAPIMiddleware)

# ---------------------------------------------------------------------------
# CORS middleware
# ---------------------------------------------------------------------------
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ---------------------------------------------------------------------------
# Request logging middleware
# ---------------------------------------------------------------------------
app.add_middleware(RequestLoggingMiddleware)


# ---------------------------------------------------------------------------
# Global exception handlers
# ---------------------------------------------------------------------------
def _request_context(request: Request) -> dict:
    return {
        "method": request.method,
        "path": request.url.path,
        "query": dict(request.query_params),
        "headers": {
            name: value
            for name, value in request.headers.items()
            if name.lower() not in _HIDDEN_HEADERS
        },
    }


@app.exception_handler(ApiError)
async def api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
    log = logger.error if exc.status_code >= 500 else logger.info
    log(
        "%s %s failed with %s: %s",
        request.method,
        request.url.path,
        exc.code,
        exc.message,
        extra=_request_context(request),
    )
    return JSONResponse(status_code=exc.status_code, content=exc.to_payload())


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = [
        {"loc": [str(part) for part in error["loc"]], "msg": error["msg"]}
        for error in exc.errors()
    ]
    logger.info(
        "Validation failed on %s %s", request.method, request.url.path,
        extra=_request_context(request),
    )
    error = BadRequestError("Invalid request", errors)
    return JSONResponse(status_code=error.status_code, content=error.to_payload())


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(
        "Unhandled exception on %s %s", request.method, request.url.path,
        extra=_request_context(request),
    )
    error = ApiError("Internal server error")
    return JSONResponse(status_code=error.status_code, content=error.to_payload())


# ---------------------------------------------------------------------------
# Routers
# ---------------------------------------------------------------------------
app.include_router(health.router, prefix="/api")
app.include_router(auth.router, prefix="/api/v1")
app.include_router(users.router, prefix="/api/v1")
# comments and likes share the /posts prefix and must match before /posts/{post_id}
app.include_router(comments.router, prefix="/api/v1")
app.include_router(likes.router, prefix="/api/v1")
app.include_router(posts.router, prefix="/api/v1")

# ---------------------------------------------------------------------------
# Uploaded images
# ---------------------------------------------------------------------------
Path(settings.upload_dir).mkdir(parents=True, exist_ok=True)
app.mount(settings.image_base_url, StaticFiles(directory=settings.upload_dir), name="images")
