"""
FastAPI application factory.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from cryptospend.app import SpendTracker
from .routes import router

logger = logging.getLogger(__name__)


def _format_validation_errors(exc: RequestValidationError) -> str:
    """Render validation errors as "field: reason" pairs."""
    parts = []
    for error in exc.errors():
        location = [str(item) for item in error.get("loc", ()) if item != "body"]
        field = ".".join(location) or "body"
        parts.append(f"{field}: {error.get('msg', 'invalid value')}")
    return "; ".join(parts)


async def validation_error_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=400,
        content={"message": f"Validation error: {_format_validation_errors(exc)}"},
    )


async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"message": str(exc.detail)},
        headers=getattr(exc, "headers", None),
    )


async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return JSONResponse(
        status_code=500,
        content={"message": "Internal server error", "error": str(exc)},
    )


def create_app(tracker: SpendTracker) -> FastAPI:
    """
    Create the HTTP application.

    Args:
        tracker: Wired tracker services

    Returns:
        FastAPI application
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Spending tracker API started")
        yield
        tracker.close()
        logger.info("Spending tracker API stopped")

    app = FastAPI(title="cryptospend", lifespan=lifespan)
    app.state.tracker = tracker

    app.add_middleware(
        CORSMiddleware,
        allow_origins=tracker.config.server.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    @app.get("/")
    def read_root():
        return {"message": "Crypto spending tracker API is running"}

    app.include_router(router)
    return app
