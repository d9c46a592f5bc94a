"""
FastAPI application for the ISDOC PDF gateway.

Provides endpoints for:
- Health checks
- Extracting embedded ISDOC invoice data from uploaded PDFs
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .config import Settings, get_settings
from .exceptions import GatewayError
from .routers import extract, health
from .services.isdoc_service import IsdocProvider, get_isdoc_service
from .services.pipeline import ExtractionPipeline

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "SAMEORIGIN",
    "Referrer-Policy": "no-referrer",
    "X-DNS-Prefetch-Control": "off",
    "Cross-Origin-Resource-Policy": "same-origin",
    "Strict-Transport-Security": "max-age=15552000; includeSubDomains",
}

logger = logging.getLogger(__name__)


def configure_logging(level: str) -> None:
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup/shutdown."""
    port = app.state.settings.port
    logger.info("ISDOC PDF API server running on port %d", port)
    logger.info("Health check: http://localhost:%d/health", port)
    logger.info("API endpoint: http://localhost:%d/api/extract-isdoc", port)
    yield
    logger.info("Shutting down ISDOC PDF API server...")


# =============================================================================
# Exception Handlers
# =============================================================================


async def gateway_error_handler(request: Request, exc: GatewayError) -> JSONResponse:
    """Render gateway errors as {"error": ...}."""
    content = {"error": exc.message}
    if exc.detail:
        content["message"] = exc.detail
    return JSONResponse(status_code=exc.status_code, content=content)


async def http_exception_handler(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    """Unknown routes and methods fall back to 404; other HTTP errors keep their status."""
    if exc.status_code in (status.HTTP_404_NOT_FOUND, status.HTTP_405_METHOD_NOT_ALLOWED):
        return JSONResponse(
            status_code=status.HTTP_404_NOT_FOUND,
            content={"error": "Endpoint not found"},
        )
    return JSONResponse(status_code=exc.status_code, content={"error": exc.detail})


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all: log the failure, never echo it to the client."""
    logger.error("Unhandled error: %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": "Internal server error"},
    )


# =============================================================================
# Application Factory
# =============================================================================


def create_app(
    settings: Settings | None = None,
    isdoc_service: IsdocProvider | None = None,
) -> FastAPI:
    """
    Build the gateway application.

    Args:
        settings: Configuration; loaded from the environment if None.
        isdoc_service: Extraction provider; the pypdf-backed service if None.

    Raises:
        pydantic.ValidationError: If settings are loaded from the environment
            and AUTH_TOKEN is missing.
    """
    settings = settings or get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(
        title="ISDOC PDF API",
        description="Extracts embedded ISDOC invoice data from PDF files",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.pipeline = ExtractionPipeline(
        provider=isdoc_service or get_isdoc_service(),
        temp_dir=settings.temp_dir,
        timeout_seconds=settings.extraction_timeout_seconds,
        max_threads=settings.provider_max_threads,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def add_security_headers(request: Request, call_next):
        response = await call_next(request)
        for name, value in SECURITY_HEADERS.items():
            response.headers.setdefault(name, value)
        return response

    app.include_router(health.router)
    app.include_router(extract.router)

    app.add_exception_handler(GatewayError, gateway_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    return app


app = create_app()


def run() -> None:
    """Serve the application with uvicorn on the configured host and port."""
    import uvicorn

    settings = get_settings()
    uvicorn.run(app, host=settings.host, port=settings.port, log_level=settings.log_level.lower())


if __name__ == "__main__":
    run()
