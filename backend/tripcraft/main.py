"""TripCraft FastAPI Application.

Entry point for the enrichment service: builds the pipeline, starts the
weekly image health sweep and serves the image proxy.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from tripcraft import __version__
from tripcraft.api import router
from tripcraft.config import Settings
from tripcraft.models import AppError, ErrorCode
from tripcraft.pipeline import build_pipeline

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    datefmt="%H:%M:%S",
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    settings = Settings.from_env()
    pipeline = build_pipeline(settings)
    app.state.pipeline = pipeline
    if settings.image_sweep_enabled:
        pipeline.scheduler.start()
    yield
    await pipeline.close()


app = FastAPI(
    title="TripCraft API",
    description="Itinerary enrichment: place resolution, images and routes",
    version=__version__,
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
        content={"success": False, "error": error.model_dump(mode="json")},
    )


# Global exception handlers
@app.exception_handler(ValidationError)
async def validation_exception_handler(request: Request, exc: ValidationError):
    """Handle Pydantic validation errors."""
    return _error_response(422, AppError(
        code=ErrorCode.VALIDATION_ERROR,
        message=str(exc),
        user_message="Invalid request format. Please check your input.",
    ))


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Handle unexpected errors."""
    logger.exception(f"[API] Unhandled error on {request.url.path}: {exc}")
    return _error_response(500, AppError(
        code=ErrorCode.API_ERROR,
        message=str(exc),
        user_message="Something went wrong. Please try again.",
    ))


# Include API routes
app.include_router(router, prefix="/api")


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}
