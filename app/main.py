"""FastAPI application entry point."""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from app.api.main import api_router
from app.core.config import settings
from app.core.database import close_database
from app.core.exceptions import AppError, EstimationStageError, ValidationError
from app.schemas.health import RootResponse
from app.utils.logging import get_logger
from app.utils.responses import create_error_response

LOGGER = get_logger(__name__, level=settings.log_level)

ESTIMATE_FAILED = "Failed to generate estimate"


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager.

    The database pool is created lazily on the first request and disposed
    here on shutdown.
    """
    # Startup
    LOGGER.info(
        "Starting application",
        extra={
            "app_name": settings.app_name,
            "version": settings.app_version,
            "environment": settings.environment,
        },
    )

    yield

    # Shutdown
    LOGGER.info("Shutting down application")
    try:
        await close_database()
    except Exception as e:
        LOGGER.error(
            "Error closing database",
            exc_info=True,
            extra={"error": str(e)}
        )


# Create FastAPI application
app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="Retrieval-augmented construction cost estimation backed by Ollama and pgvector",
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    lifespan=lifespan,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(ValidationError)
async def validation_error_handler(request: Request, exc: ValidationError):
    LOGGER.warning(f"Rejected request to {request.url.path}: {exc}")
    return create_error_response(str(exc), status.HTTP_400_BAD_REQUEST)


@app.exception_handler(RequestValidationError)
async def request_validation_error_handler(request: Request, exc: RequestValidationError):
    details = "; ".join(
        f"{'.'.join(str(part) for part in error.get('loc', ()))}: {error.get('msg', '')}"
        for error in exc.errors()
    )
    LOGGER.warning(f"Invalid request body for {request.url.path}: {details}")
    return create_error_response("Invalid request body", status.HTTP_400_BAD_REQUEST, details)


@app.exception_handler(EstimationStageError)
async def estimation_stage_error_handler(request: Request, exc: EstimationStageError):
    LOGGER.error(f"Estimation failed at stage {exc.stage}: {exc}")
    return create_error_response(ESTIMATE_FAILED, status.HTTP_500_INTERNAL_SERVER_ERROR, str(exc))


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    LOGGER.error(f"Request to {request.url.path} failed: {exc}")
    return create_error_response(ESTIMATE_FAILED, status.HTTP_500_INTERNAL_SERVER_ERROR, str(exc))


# Root endpoint
@app.get(
    "/",
    response_model=RootResponse,
    tags=["Root"],
    summary="Root endpoint",
    description="Get basic information about the API",
    operation_id="get_public_root_metadata",
)
async def root() -> RootResponse:
    """Root endpoint.

    Returns:
        RootResponse: Basic API information
    """
    return RootResponse(
        message=f"{settings.app_name} is running",
        version=settings.app_version,
        docs="/docs",
        health=f"{settings.api_prefix}/health",
    )


# Include routers
app.include_router(api_router, prefix=settings.api_prefix)

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "app.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
    )
