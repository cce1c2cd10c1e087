"""FastAPI application entry point."""

import logging
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded

from aichef import __version__
from aichef.api.routes import ai, favorites, health, recipes
from aichef.config import Settings, settings as default_settings
from aichef.core.context import AppContext, build_context, get_request_id
from aichef.middleware.logging import RequestLoggingMiddleware
from aichef.middleware.rate_limit import get_rate_limit_exceeded_handler, limiter
from aichef.middleware.security import SecurityHeadersMiddleware, setup_compression, setup_cors
from aichef.utils.exceptions import (
    AIChefError,
    InvalidRequest,
    ModelFailure,
    ParseFailure,
    RecipeNotFound,
    StoreFailure,
    ValidationFailure,
)
from aichef.utils.logging_config import setup_logging

logger = logging.getLogger(__name__)

# Most specific first: ImageProcessingError is an InvalidRequest.
_STATUS_BY_ERROR = (
    (InvalidRequest, status.HTTP_400_BAD_REQUEST),
    (RecipeNotFound, status.HTTP_404_NOT_FOUND),
    (ParseFailure, status.HTTP_422_UNPROCESSABLE_ENTITY),
    (ValidationFailure, status.HTTP_422_UNPROCESSABLE_ENTITY),
    (ModelFailure, status.HTTP_502_BAD_GATEWAY),
    (StoreFailure, status.HTTP_500_INTERNAL_SERVER_ERROR),
)


def error_status(exc: AIChefError) -> int:
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return status_code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


async def aichef_exception_handler(request: Request, exc: AIChefError) -> JSONResponse:
    """Map the error hierarchy onto responses.

    Caller-input errors echo their message. Model and store errors only
    expose the generic message; the cause goes to the logs.
    """
    request_id = get_request_id()
    status_code = error_status(exc)

    content = {"error": exc.public_message, "request_id": request_id}
    if isinstance(exc, (InvalidRequest, ValidationFailure)):
        content["error"] = str(exc)
    if isinstance(exc, (ValidationFailure, ParseFailure)):
        content["detail"] = str(exc)
        content.update({k: v for k, v in exc.details.items() if v is not None})

    log = logger.warning if status_code < 500 else logger.error
    log(
        f"Exception: {type(exc).__name__}: {exc}",
        extra={"request_id": request_id, "path": request.url.path, "status_code": status_code},
        exc_info=isinstance(exc, StoreFailure),
    )

    return JSONResponse(status_code=status_code, content=jsonable_encoder(content))


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Handle request validation errors with detailed messages."""
    request_id = get_request_id()
    logger.warning(
        f"Validation error: {exc}",
        extra={"request_id": request_id, "path": request.url.path, "method": request.method},
    )
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=jsonable_encoder({"error": "Validation error", "detail": exc.errors(), "request_id": request_id}),
    )


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle unexpected exceptions."""
    request_id = get_request_id()
    logger.error(f"Unexpected exception: {exc}", extra={"request_id": request_id}, exc_info=True)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": "Internal server error", "request_id": request_id},
    )


def create_app(context: Optional[AppContext] = None, app_settings: Optional[Settings] = None) -> FastAPI:
    """
    Build the API.

    Args:
        context: Pre-built dependencies (tests pass fakes). When omitted the
            real Firebase and Gemini clients are created at startup.
        app_settings: Settings override; defaults to the environment.
    """
    cfg = app_settings or (context.settings if context else default_settings)

    app = FastAPI(
        title="AI Chef API",
        description="Recipe storage and AI-assisted recipe ideas, Q&A and extraction",
        version=__version__,
    )
    app.state.context = context
    app.state.limiter = limiter

    app.add_exception_handler(RateLimitExceeded, get_rate_limit_exceeded_handler())
    app.add_exception_handler(AIChefError, aichef_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)

    # Add middleware (last added runs first)
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(RequestLoggingMiddleware)
    setup_compression(app)
    setup_cors(app, cfg.cors_origins_list)

    app.include_router(health.router)
    app.include_router(ai.router)
    app.include_router(recipes.router)
    app.include_router(favorites.router)

    @app.on_event("startup")
    async def startup_event():
        if app.state.context is None:
            app.state.context = build_context(cfg)
        logger.info("AI Chef API starting up...", extra={"log_level": cfg.log_level})

    @app.on_event("shutdown")
    async def shutdown_event():
        logger.info("AI Chef API shutting down...")

    @app.get("/")
    async def root():
        return {"name": "AI Chef API", "version": __version__, "docs": "/docs"}

    return app


setup_logging(default_settings.log_level)
app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=default_settings.host, port=default_settings.port)
