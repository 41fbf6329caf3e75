"""
Main FastAPI application for the MSBTE micro-project report generator.
Handles CORS, request logging middleware, lifespan events, error handlers and router registration.
"""
import logging
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.config import settings
from app.core.exceptions import ReportGenerationError
from app.routers import health, projects
from app.routers.projects import CORS_HEADERS

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Startup / shutdown helpers
# ---------------------------------------------------------------------------

def _check_llm_config() -> bool:
    """Log whether the generation gateway credential is present.  Never raises."""
    if settings.llm_configured:
        logger.info("✓ LLM gateway configured — %s (%s)", settings.LLM_BASE_URL, settings.LLM_MODEL)
        return True
    logger.error("✗ LLM_API_KEY is not set — report generation requests will fail with 500")
    return False


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown event handler."""
    logger.info("=" * 60)
    logger.info("  Starting MSBTE report generator …")
    logger.info("=" * 60)

    _check_llm_config()
    logger.info(
        "✓ Upload limit %d MB, extracted text capped at %d chars",
        settings.MAX_FILE_SIZE // (1024 * 1024),
        settings.MAX_EXTRACTED_CHARS,
    )

    logger.info("=" * 60)
    logger.info("  Report generator ready on http://%s:%d", settings.HOST, settings.PORT)
    logger.info("  Swagger UI : http://%s:%d/docs", settings.HOST, settings.PORT)
    logger.info("  Health     : http://%s:%d/api/health", settings.HOST, settings.PORT)
    logger.info("=" * 60)

    yield  # ← server is running

    logger.info("✓ Shutdown complete.")


# ---------------------------------------------------------------------------
# Application
# ---------------------------------------------------------------------------

app = FastAPI(
    title="MSBTE Report Generator API",
    description=(
        "Generates MSBTE diploma micro-project reports (Annexure I and II) "
        "from a reference PDF, DOCX or PPTX and the student's details.\n\n"
        "Key endpoints:\n"
        "- `POST /api/generate-project` — generate a report (.docx, base64)\n"
        "- `GET  /api/health` — service and LLM configuration status\n"
    ),
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
)


# ---------------------------------------------------------------------------
# CORS
# ---------------------------------------------------------------------------

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.get_allowed_origins(),
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ---------------------------------------------------------------------------
# Request / response logging middleware
# ---------------------------------------------------------------------------

@app.middleware("http")
async def log_requests(request: Request, call_next):
    """
    Log every request with method, path, status code, and elapsed time.
    Attaches an ``X-Process-Time`` header (milliseconds) to every response.
    """
    t0 = time.monotonic()
    response = await call_next(request)
    elapsed_ms = round((time.monotonic() - t0) * 1000, 2)

    # Skip noisy health-check polling from the frontend
    if request.url.path not in ("/api/health", "/api/health/", "/"):
        logger.info(
            "%s %s → %d  (%.2f ms)",
            request.method,
            request.url.path,
            response.status_code,
            elapsed_ms,
        )

    response.headers["X-Process-Time"] = f"{elapsed_ms}ms"
    return response


# ---------------------------------------------------------------------------
# Exception handlers
# ---------------------------------------------------------------------------

def _error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "error": message},
        headers=CORS_HEADERS,
    )


@app.exception_handler(ReportGenerationError)
async def report_error_handler(request: Request, exc: ReportGenerationError):
    """Render domain errors as ``{success: false, error}`` with the error's status."""
    log = logger.error if exc.status_code >= 500 else logger.warning
    log(
        "%s on %s %s: %s",
        type(exc).__name__,
        request.method,
        request.url.path,
        exc.message,
    )
    return _error_response(exc.status_code, exc.message)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    """Body validation failures are reported as missing information (400)."""
    fields = []
    for error in exc.errors():
        loc = [str(part) for part in error.get("loc", ()) if part != "body"]
        if loc and ".".join(loc) not in fields:
            fields.append(".".join(loc))
    message = "Missing required information"
    if fields:
        message += ": " + ", ".join(fields)
    logger.warning("Invalid request on %s: %s", request.url.path, message)
    return _error_response(status.HTTP_400_BAD_REQUEST, message)


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Return a structured JSON error for any unhandled exception."""
    logger.error(
        "Unhandled exception on %s %s: %s",
        request.method,
        request.url.path,
        exc,
        exc_info=True,
    )
    return _error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        str(exc) or "Unknown error occurred",
    )


# ---------------------------------------------------------------------------
# Routers
# ---------------------------------------------------------------------------

app.include_router(health.router,    prefix="/api/health", tags=["Health"])
app.include_router(projects.router,  prefix="/api",        tags=["Projects"])


# ---------------------------------------------------------------------------
# Root
# ---------------------------------------------------------------------------

@app.get("/", tags=["Root"], include_in_schema=False)
async def root():
    """API root — returns basic service info."""
    return {
        "name": "MSBTE Report Generator API",
        "version": "1.0.0",
        "description": "MSBTE micro-project report generation",
        "docs": "/docs",
        "health": "/api/health",
        "endpoints": {
            "generate": "/api/generate-project",
        },
    }


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "app.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=True,
        log_level="info",
    )
