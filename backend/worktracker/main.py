import logging
import os
import time
from collections import defaultdict
from contextlib import asynccontextmanager
from threading import Lock

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from starlette.concurrency import run_in_threadpool
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware

from worktracker.core import config
from worktracker.core.logging import configure_logging
from worktracker.database import Base, SessionLocal, engine
from worktracker.models import entities, project, user  # noqa: F401 - import for table creation
from worktracker.routers.auth import router as auth_router
from worktracker.routers.ideas import router as ideas_router
from worktracker.routers.projects import router as projects_router
from worktracker.routers.records import router as records_router
from worktracker.services.migrations import migrate_to_multi_tenancy
from worktracker.services.persistence import RecordNotFoundError

logger = logging.getLogger(__name__)


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Simple in-memory rate limiter for the credential endpoints.

    Limits requests based on client IP using a sliding window algorithm.
    Rate limit settings can be configured via environment variables:
    - RATE_LIMIT_AUTH: Max login/register requests per window (default: 20)
    - RATE_LIMIT_WINDOW_SECONDS: Time window in seconds (default: 60)
    - RATE_LIMIT_DISABLED: Set to "1" to disable rate limiting (useful for testing)
    """

    def __init__(self, app, rate_limit: int = 20, window_seconds: int = 60):
        super().__init__(app)
        self.rate_limit = int(os.environ.get("RATE_LIMIT_AUTH", rate_limit))
        self.window_seconds = int(os.environ.get("RATE_LIMIT_WINDOW_SECONDS", window_seconds))
        self.requests: dict[str, list[float]] = defaultdict(list)
        self.lock = Lock()
        self.rate_limited_paths = {
            ("/api/auth/login", "POST"),
            ("/api/auth/register", "POST"),
        }

    @property
    def disabled(self) -> bool:
        return os.environ.get("RATE_LIMIT_DISABLED", "0") == "1"

    def _get_client_ip(self, request: Request) -> str:
        """Get client IP from request, checking X-Forwarded-For header."""
        forwarded = request.headers.get("X-Forwarded-For")
        if forwarded:
            return forwarded.split(",")[0].strip()
        return request.client.host if request.client else "unknown"

    def _is_rate_limited(self, ip: str) -> bool:
        """Check if IP is rate limited and record new request."""
        current_time = time.time()
        cutoff = current_time - self.window_seconds
        with self.lock:
            self.requests[ip] = [t for t in self.requests[ip] if t > cutoff]
            if len(self.requests[ip]) >= self.rate_limit:
                return True
            self.requests[ip].append(current_time)
            return False

    async def dispatch(self, request: Request, call_next):
        if self.disabled:
            return await call_next(request)

        if (request.url.path, request.method) in self.rate_limited_paths:
            if self._is_rate_limited(self._get_client_ip(request)):
                return JSONResponse(
                    status_code=429,
                    content={
                        "error": f"Rate limit exceeded. Maximum {self.rate_limit} requests per {self.window_seconds} seconds.",
                    },
                    headers={"Retry-After": str(self.window_seconds)},
                )

        return await call_next(request)


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Middleware to add security headers to all responses."""

    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)

        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        # API responses carry personal data
        if request.url.path.startswith("/api"):
            response.headers["Cache-Control"] = "no-store, no-cache, must-revalidate, private"
            response.headers["Pragma"] = "no-cache"

        return response


def init_database() -> None:
    """Create tables, evolve older schemas and adopt orphaned rows."""
    Base.metadata.create_all(bind=engine)
    migrate_to_multi_tenancy(
        engine,
        legacy_email=config.LEGACY_OWNER_EMAIL,
        delay_seconds=config.MIGRATION_DELAY_SECONDS,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    # Runs before the server accepts requests that rely on userId scoping.
    # The migration may sleep, so it stays off the event loop.
    await run_in_threadpool(init_database)
    yield


app = FastAPI(title="Work Tracker API", version="1.0.0", lifespan=lifespan)


# Every error body has the shape {"error": "<message>"}
@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": str(exc.detail)},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    messages = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
        messages.append(f"{location}: {error.get('msg')}" if location else error.get("msg", ""))
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"error": "; ".join(messages) or "Invalid request"},
    )


@app.exception_handler(RecordNotFoundError)
async def not_found_handler(request: Request, exc: RecordNotFoundError):
    return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"error": str(exc)})


@app.exception_handler(SQLAlchemyError)
async def storage_error_handler(request: Request, exc: SQLAlchemyError):
    logger.error("Storage error on %s %s", request.method, request.url.path, exc_info=exc)
    message = str(getattr(exc, "orig", None) or exc)
    return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content={"error": message})


if config.CORS_ORIGINS:
    cors_origins = [origin.strip() for origin in config.CORS_ORIGINS.split(",") if origin.strip()]
else:
    # Default to localhost origins for development only
    cors_origins = ["http://localhost:3000", "http://localhost:5173", "http://127.0.0.1:3000", "http://127.0.0.1:5173"]

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
    allow_headers=["*"],
)
app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(RateLimitMiddleware)

app.include_router(auth_router)
app.include_router(records_router)
app.include_router(projects_router)
app.include_router(ideas_router)


@app.get("/")
def read_root():
    return {"message": "Work Tracker API", "version": "1.0.0"}


@app.get("/healthz")
def healthz():
    """Health check endpoint that verifies database connectivity."""
    try:
        db = SessionLocal()
        try:
            db.execute(text("SELECT 1"))
            return {"status": "ok", "database": "connected"}
        finally:
            db.close()
    except SQLAlchemyError as e:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"Database unavailable: {e}",
        )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("worktracker.main:app", host="127.0.0.1", port=3002, reload=False)
