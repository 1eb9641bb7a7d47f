"""Ride Share Data Layer FastAPI Application.

Main entry point for the backend-for-frontend serving cached reference data.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.api import router
from app.config import Settings
from app.models import AppError, ErrorCode
from app.services import RequestError, create_data_layer

settings = Settings.from_env()

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level, logging.INFO),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    datefmt="%H:%M:%S",
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    # Startup
    app.state.data_layer = create_data_layer(settings)
    logger.info(f"[APP] data layer ready (api={settings.api_url})")
    yield
    # Shutdown - stop timers and background refetches, close the client
    await app.state.data_layer.close()


app = FastAPI(
    title="Ride Share Data Layer",
    description="Cached reference data for the ride share client",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS configuration
app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:3000",
        "http://localhost:5173",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _error_response(status_code: int, error: AppError) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "error": error.model_dump(mode="json", exclude_none=True)},
    )


# Global exception handlers
@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handle request validation errors."""
    return _error_response(
        422,
        AppError(
            code=ErrorCode.VALIDATION_ERROR,
            message=str(exc),
            user_message="Invalid request format. Please check your input.",
        ),
    )


@app.exception_handler(RequestError)
async def upstream_exception_handler(request: Request, exc: RequestError):
    """Handle failures of the ride share API that no cached data can cover."""
    logger.warning(f"[APP] upstream error on {request.url.path}: {exc.message}")
    return _error_response(
        502,
        AppError(
            code=ErrorCode.UPSTREAM_ERROR,
            message=exc.message,
            user_message="Couldn't reach the ride service. Please try again.",
            status_code=exc.status_code,
        ),
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    """Wrap HTTP errors raised by routes in the error envelope."""
    if exc.status_code == 404:
        code, user_message = ErrorCode.NOT_FOUND, "Not found."
    elif exc.status_code == 502:
        code, user_message = ErrorCode.UPSTREAM_ERROR, "Data is unavailable right now."
    else:
        code, user_message = ErrorCode.API_ERROR, "Something went wrong. Please try again."
    return _error_response(
        exc.status_code,
        AppError(code=code, message=str(exc.detail), user_message=user_message),
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Handle unexpected errors."""
    logger.exception(f"[APP] unhandled error on {request.url.path}")
    return _error_response(
        500,
        AppError(
            code=ErrorCode.API_ERROR,
            message=str(exc),
            user_message="Something went wrong. Please try again.",
        ),
    )


# Include API routes
app.include_router(router, prefix="/api")


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}
