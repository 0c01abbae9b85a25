"""
ReadLater Backend — FastAPI Application Factory
================================================

What:  Creates and configures the FastAPI application instance.
How:   create_app() builds the EncryptionService and StorageService from
       settings, stores them on app.state, registers middleware, exception
       handlers and routes.
Who:   uvicorn (readlater.main:app) and the test suite (create_app(settings)).

Exception Handlers:
    ValidationError                   → 400 validation_error
    EncodingError, KeyDerivationError → 400 invalid_key_material / invalid_encoding
    AuthenticationError               → 403 decryption_failed
    StructuralError                   → 403 truncated_content
    NotFoundError                     → 404 not_found
    SerializationError                → 500 corrupt_record
    StorageIOError, ReadLaterError    → 500 server_error
    Exception                         → 500 internal_server_error

Why 403 for a wrong key:
    The request is understood and the article exists; the supplied key is
    simply not allowed to open it. The caller must be able to tell this apart
    from 404 to pick the right user-facing message.
"""

import logging
import sys
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from readlater import __version__
from readlater.config import Settings, settings as default_settings
from readlater.exceptions import (
    AuthenticationError,
    EncodingError,
    KeyDerivationError,
    NotFoundError,
    ReadLaterError,
    SerializationError,
    StorageIOError,
    StructuralError,
    ValidationError,
)
from readlater.middleware.logging import RequestLoggingMiddleware
from readlater.middleware.request_id import RequestIDMiddleware, request_id_var
from readlater.routes import content, health, keys
from readlater.services.encryption_service import EncryptionService
from readlater.services.storage_service import StorageService

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging(level: str = "INFO") -> None:
    """
    Configure root logging once at startup.

    Format: %(asctime)s [%(levelname)s] %(name)s: %(message)s
    Services log ids, sizes and outcomes only; never keys or article text.
    """
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    app_settings: Settings = app.state.settings
    setup_logging(app_settings.log_level)
    logger.info("=" * 60)
    logger.info("ReadLater content vault starting up...")

    if app_settings.is_production and app_settings.key_derivation_iterations < 100_000:
        logger.warning(
            "key_derivation_iterations=%d is below the recommended 100000 for production",
            app_settings.key_derivation_iterations,
        )

    storage = Path(app_settings.storage_root)
    storage.mkdir(parents=True, exist_ok=True)
    logger.info("Storage directory: %s", storage.resolve())
    logger.info("Server ready at http://%s:%d", app_settings.backend_host, app_settings.backend_port)
    logger.info("=" * 60)

    yield

    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def _error_response(status_code: int, error: str, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "error": error,
            "message": message,
            "request_id": request_id_var.get(""),
        },
    )


def register_exception_handlers(app: FastAPI) -> None:
    """
    Map the exception hierarchy to HTTP responses.

    Starlette resolves handlers by walking the exception's MRO, so the most
    specific registered class wins (StructuralError before AuthenticationError).
    Context is logged server-side and never returned.
    """

    @app.exception_handler(ValidationError)
    async def handle_validation_error(request: Request, exc: ValidationError):
        logger.warning("[%s] Validation error: %s", request_id_var.get(""), exc.message)
        return _error_response(400, "validation_error", exc.message)

    @app.exception_handler(EncodingError)
    async def handle_encoding_error(request: Request, exc: EncodingError):
        logger.warning("[%s] Encoding error: %s", request_id_var.get(""), exc.message)
        return _error_response(400, "invalid_encoding", exc.message)

    @app.exception_handler(KeyDerivationError)
    async def handle_key_derivation_error(request: Request, exc: KeyDerivationError):
        logger.warning("[%s] Key derivation error: %s", request_id_var.get(""), exc.message)
        return _error_response(400, "invalid_key_material", exc.message)

    @app.exception_handler(AuthenticationError)
    async def handle_authentication_error(request: Request, exc: AuthenticationError):
        logger.warning("[%s] Decryption failed: %s", request_id_var.get(""), exc.message)
        return _error_response(403, "decryption_failed", exc.message)

    @app.exception_handler(StructuralError)
    async def handle_structural_error(request: Request, exc: StructuralError):
        logger.warning("[%s] Truncated blob: %s", request_id_var.get(""), exc.context)
        return _error_response(403, "truncated_content", exc.message)

    @app.exception_handler(NotFoundError)
    async def handle_not_found(request: Request, exc: NotFoundError):
        return _error_response(404, "not_found", exc.message)

    @app.exception_handler(SerializationError)
    async def handle_serialization_error(request: Request, exc: SerializationError):
        logger.error(
            "[%s] Corrupt record: %s | Context: %s",
            request_id_var.get(""),
            exc.message,
            exc.context,
        )
        return _error_response(500, "corrupt_record", exc.message)

    @app.exception_handler(StorageIOError)
    async def handle_storage_error(request: Request, exc: StorageIOError):
        logger.error(
            "[%s] Storage error: %s | Context: %s",
            request_id_var.get(""),
            exc.message,
            exc.context,
        )
        return _error_response(500, "server_error", exc.message)

    @app.exception_handler(ReadLaterError)
    async def handle_app_error(request: Request, exc: ReadLaterError):
        logger.error("[%s] Application error: %s", request_id_var.get(""), exc.message)
        return _error_response(500, "server_error", exc.message)

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        logger.error(
            "[%s] Unexpected error: %s",
            request_id_var.get(""),
            str(exc),
            exc_info=True,
        )
        return _error_response(
            500,
            "internal_server_error",
            "An unexpected error occurred. Please try again or contact support.",
        )


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app(app_settings: Optional[Settings] = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        app_settings: Override configuration (tests pass a temp storage root
                      and a low iteration count). Defaults to the env settings.
    """
    app_settings = app_settings or default_settings

    app = FastAPI(
        title="ReadLater Content Vault API",
        description="Per-user article content storage with optional AES-256-GCM encryption at rest.",
        version=__version__,
        lifespan=lifespan,
    )

    # ── Services ──────────────────────────────────────────────────────────
    encryption_service = EncryptionService(app_settings.key_derivation_iterations)
    app.state.settings = app_settings
    app.state.encryption_service = encryption_service
    app.state.storage_service = StorageService(
        storage_root=app_settings.storage_root,
        encryption=encryption_service,
        max_content_size=app_settings.max_content_size,
    )

    # ── Middleware (last added = first to execute) ────────────────────────
    app.add_middleware(
        CORSMiddleware,
        allow_origins=app_settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID", "X-Total-Count"],
    )
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)

    register_exception_handlers(app)

    app.include_router(content.router)
    app.include_router(keys.router)
    app.include_router(health.router)

    return app


app = create_app()
