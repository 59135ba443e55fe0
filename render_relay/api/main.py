"""
Main application file for the Render Relay API.

This file initializes the FastAPI application, sets up logging,
registers global exception handlers, and includes the render routes.
It also defines the root liveness endpoint.
"""
from datetime import datetime, timezone

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from render_relay.api.models import HealthResponse
from render_relay.api.routes import render_routes
from render_relay.core.config import config_manager
from render_relay.core.exceptions import RenderFailure, RenderRelayError, RenderRequestError
from render_relay.core.logger import setup_logging, get_logger

# --- Logging Setup ---
# Initialize centralized logging as early as possible when the application starts.
try:
    setup_logging(config_manager)
    logger = get_logger(__name__)
    logger.info("Logging successfully initialized for FastAPI application.")
except Exception as e:
    import logging as py_logging
    py_logging.basicConfig(level=py_logging.WARNING, format="%(asctime)s - %(levelname)s - CRITICAL - Failed to setup custom logging: %(message)s")
    py_logging.critical(f"Failed to initialize custom logging via ConfigurationManager: {e}", exc_info=True)
    logger = py_logging.getLogger(__name__)


# --- FastAPI Application Initialization ---
app = FastAPI(
    title="Render Relay API",
    description="Fetches rendered page HTML with a headless browser, "
                "falling back to ScraperAPI when the browser fails.",
    version="1.0.0"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config_manager.get("server.cors_origins", ["*"]),
    allow_methods=["*"],
    allow_headers=["*"],
)

# --- Global Exception Handlers ---

@app.exception_handler(RenderRequestError)
async def render_request_exception_handler(request: Request, exc: RenderRequestError):
    """
    Rejects requests that cannot be rendered at all (missing URL) with HTTP 400.
    """
    logger.warning(f"Rejected {request.method} {request.url.path}: {exc.message}")
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"error": exc.message},
    )

@app.exception_handler(RenderFailure)
async def render_failure_exception_handler(request: Request, exc: RenderFailure):
    """
    Reports a failed render with HTTP 500.

    When both strategies failed, both messages are returned side by side;
    a forced fallback that failed only carries the remote service's message.
    """
    logger.error(f"Render failed for {request.method} {request.url}: {exc.message}")
    if exc.is_aggregate:
        content = {
            "error": exc.message,
            "puppeteerError": exc.primary_error,
            "scraperApiError": exc.fallback_error,
        }
    else:
        content = {"error": exc.message, "message": exc.fallback_error}
    return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=content)

@app.exception_handler(RenderRelayError)
async def render_relay_exception_handler(request: Request, exc: RenderRelayError):
    """
    Handles any other application exception derived from `RenderRelayError`.
    """
    logger.error(
        f"RenderRelayError caught: {exc.__class__.__name__} - {exc.message} "
        f"for request: {request.method} {request.url}",
        exc_info=True
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": f"An application error occurred: {exc.message}"},
    )

@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """
    Handles malformed request bodies or parameters with HTTP 422.
    """
    errors = jsonable_encoder(exc.errors())
    logger.warning(f"RequestValidationError caught for: {request.method} {request.url}. Errors: {errors}")
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"detail": "Request validation failed", "errors": errors},
    )

@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception):
    """
    Catch-all so that the API always answers with JSON, even for unexpected server errors.
    """
    logger.critical(
        f"Generic unhandled exception caught: {exc.__class__.__name__} - {str(exc)} "
        f"for request: {request.method} {request.url}",
        exc_info=True
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "An unexpected server error occurred. Please contact support if the issue persists."},
    )


# --- API Router Inclusion ---
app.include_router(render_routes.router, tags=["Rendering"])


# --- Root Endpoint ---
@app.get("/", response_model=HealthResponse, tags=["General"], summary="Liveness check")
async def read_root():
    return HealthResponse(status="Render Relay Running", timestamp=datetime.now(timezone.utc))


# --- Main Execution Block ---
if __name__ == "__main__":
    import uvicorn

    host = config_manager.get("server.host", "0.0.0.0")
    port = int(config_manager.get("server.port", 5000))
    logger.info(f"Render Relay starting on {host}:{port} (environment: {config_manager.current_environment}).")
    logger.info("Health check available at /, render endpoints at POST /render and GET /scrape.")
    uvicorn.run(app, host=host, port=port)
