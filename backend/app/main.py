"""
Chirpline Backend: FastAPI Application Factory
================================================

Entry point for uvicorn (`uvicorn app.main:app`). create_app() wires the
middleware chain, the error envelope and the routers:

    request ─▶ RequestID ─▶ AccessLog ─▶ RateLimit ─▶ GZip ─▶ CORS ─▶ router
                                                                       │
    /tweets (+ /retweets, /quote_tweets, /replies)   /likes /bookmarks │
    /media/{path}                                    /health ◀─────────┘

RequestID is outermost so 429 bodies, access lines and the catch-all 500
handler all carry the request id.

Every failure leaves as the same JSON envelope:
    {"error": ..., "message": ..., "details": ..., "request_id": ...}
"""

import logging
import sys
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncGenerator, Dict, List, Optional, Tuple, Type

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from app import __version__
from app.config import settings
from app.database import dispose_engine
from app.exceptions import (
    ChirplineError,
    DatabaseError,
    FileStorageError,
    NotFoundError,
    ValidationError,
)
from app.middleware.logging import RequestLoggingMiddleware
from app.middleware.rate_limit import RateLimitMiddleware
from app.middleware.request_id import REQUEST_ID_HEADER, RequestIDMiddleware, request_id_var
from app.routes import engagements, health, media, tweets

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

# Libraries that log every statement or request at INFO
NOISY_LOGGERS = ("uvicorn.access", "sqlalchemy.engine", "aiosqlite", "multipart")


def setup_logging() -> None:
    """Root logger to stdout at settings.log_level. Safe to call twice."""
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format=LOG_FORMAT,
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    setup_logging()

    storage = Path(settings.storage_root)
    storage.mkdir(parents=True, exist_ok=True)
    logger.info(
        "Chirpline %s starting: database=%s storage=%s",
        __version__,
        "sqlite" if settings.is_sqlite else "postgresql",
        storage.resolve(),
    )
    logger.info("Tweet limit %d chars, media limit %d bytes", settings.tweet_max_length, settings.media_max_bytes)

    yield

    await dispose_engine()
    logger.info("Chirpline stopped")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def error_response(status_code: int, error: str, message: str, details: Optional[dict] = None) -> JSONResponse:
    """The one error envelope every failure is rendered into."""
    return JSONResponse(
        status_code=status_code,
        content={
            "error": error,
            "message": message,
            "details": details,
            "request_id": request_id_var.get(""),
        },
    )


def _describe_request_errors(exc: RequestValidationError) -> Dict[str, List[str]]:
    """FastAPI's error list -> {"field": ["message", ...]}."""
    errors: Dict[str, List[str]] = {}
    for error in exc.errors():
        location = [str(part) for part in error.get("loc", ()) if part not in ("body", "path", "query")]
        name = ".".join(location) or "body"
        errors.setdefault(name, []).append(error.get("msg", "is invalid"))
    return errors


# Server-side failures: (status, error code, client message or None to pass exc.message)
SERVER_ERRORS: Dict[Type[ChirplineError], Tuple[int, str, Optional[str]]] = {
    DatabaseError: (500, "server_error", "An internal error occurred. Please try again later."),
    FileStorageError: (500, "server_error", None),
}


def register_exception_handlers(app: FastAPI) -> None:
    """
    Map exception types onto status codes:

        ValidationError         → 422
        RequestValidationError  → 422 (non-integer ids, bad like/bookmark bodies)
        NotFoundError           → 404
        DatabaseError           → 500, generic message
        FileStorageError        → 500
        anything else           → 500, generic message

    Context dicts of server-side errors are logged, never returned.
    """

    @app.exception_handler(ValidationError)
    async def handle_validation_error(request: Request, exc: ValidationError):
        logger.info("[%s] %s", request_id_var.get(""), exc.message)
        return error_response(422, "validation_error", exc.message, exc.context)

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation_error(request: Request, exc: RequestValidationError):
        errors = _describe_request_errors(exc)
        summary = ", ".join(f"{name} {messages[0]}" for name, messages in errors.items())
        return error_response(422, "validation_error", f"Validation failed: {summary}", {"errors": errors})

    @app.exception_handler(NotFoundError)
    async def handle_not_found(request: Request, exc: NotFoundError):
        return error_response(404, "not_found", exc.message)

    async def handle_server_error(request: Request, exc: ChirplineError):
        status_code, error, message = SERVER_ERRORS[type(exc)]
        logger.error(
            "[%s] %s: %s | Context: %s",
            request_id_var.get(""),
            type(exc).__name__,
            exc.message,
            exc.context,
        )
        return error_response(status_code, error, message or exc.message)

    for exc_class in SERVER_ERRORS:
        app.add_exception_handler(exc_class, handle_server_error)

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        logger.error("[%s] Unhandled %s: %s", request_id_var.get(""), type(exc).__name__, exc, exc_info=True)
        return error_response(500, "internal_server_error", "An unexpected error occurred.")


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app() -> FastAPI:
    app = FastAPI(
        title="Chirpline API",
        description="Tweets, retweets, quote tweets, replies, likes and bookmarks, with image attachments.",
        version=__version__,
        lifespan=lifespan,
    )

    # add_middleware wraps: the last one added sees the request first
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=[REQUEST_ID_HEADER, "Retry-After"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(RateLimitMiddleware)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)

    register_exception_handlers(app)

    for module in (tweets, engagements, media, health):
        app.include_router(module.router)

    return app


app = create_app()
