"""
Traffic Buddy - FastAPI Application Entry Point

A WhatsApp-first traffic incident reporting service: citizens report
violations, congestion, road damage and more through a chat bot or a web
capture form; reports are routed to the officers of the division the
incident falls in.

DESIGN PRINCIPLES:
- A location report exists only if it landed in a division AND an officer
  was told about it
- The chat webhook always answers 200 (Twilio retries anything else)
- Best-effort side channels (email, photos, status messages) never block a report
- Raw internal errors never reach citizens
"""

import logging
import secrets
import time

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.core.errors import NotFoundError, TrafficBuddyError, ValidationError
from app.core.settings import settings
from app.models.base import ErrorResponse
from app.routes import divisions, health, join_team, links, reports, webhook

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)

INTERNAL_ERROR_MESSAGE = "Internal server error. Please try again later."


# Initialize FastAPI app
app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="WhatsApp traffic incident reporting with division-based officer routing",
    debug=settings.DEBUG
)


@app.middleware("http")
async def request_logger(request: Request, call_next):
    """Tag each request with a short id and log method, path, status and duration."""
    request_id = secrets.token_hex(4)
    request.state.request_id = request_id
    started = time.perf_counter()
    logger.info(f"[REQ:{request_id}] {request.method} {request.url.path}")

    response = await call_next(request)

    duration_ms = (time.perf_counter() - started) * 1000
    logger.info(f"[RES:{request_id}] STATUS: {response.status_code} TIME: {duration_ms:.0f}ms")
    response.headers["X-Request-ID"] = request_id
    return response


@app.exception_handler(ValidationError)
async def validation_error_handler(request: Request, exc: ValidationError):
    logger.info(f"Rejected {request.method} {request.url.path}: {exc.message}")
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=ErrorResponse(error=exc.reason, message=exc.message).model_dump(),
    )


@app.exception_handler(NotFoundError)
async def not_found_handler(request: Request, exc: NotFoundError):
    logger.info(f"Not found on {request.method} {request.url.path}: {exc.message}")
    return JSONResponse(
        status_code=status.HTTP_404_NOT_FOUND,
        content=ErrorResponse(error=exc.reason, message=exc.message).model_dump(),
    )


@app.exception_handler(TrafficBuddyError)
async def domain_error_handler(request: Request, exc: TrafficBuddyError):
    logger.error(f"Unhandled {type(exc).__name__} on {request.url.path}: {exc.message}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=ErrorResponse(error=exc.reason, message=INTERNAL_ERROR_MESSAGE).model_dump(),
    )


# Pydantic validation error handler
@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    """Log request body validation errors."""
    logger.warning(f"Validation error on {request.method} {request.url.path}: {exc.errors()}")
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"success": False, "error": "INVALID_REQUEST", "detail": exc.errors()},
    )


# Global exception handler to catch ALL exceptions
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Catch all unhandled exceptions and log them with full traceback."""
    logger.error(f"Unhandled exception on {request.method} {request.url.path}: {exc}", exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=ErrorResponse(error="INTERNAL_ERROR", message=INTERNAL_ERROR_MESSAGE).model_dump(),
    )


# CORS - the capture, join and resolve pages call the API from these origins
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Application lifecycle events
@app.on_event("startup")
async def startup_event():
    """
    Initialize services on application startup.
    Currently: Firestore connection (skipped for the in-memory backend)
    """
    logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION}")

    if settings.USE_MOCK_DB:
        logger.info("USE_MOCK_DB=true: using in-memory repositories, data is lost on restart")
        return

    from app.config.firebase import initialize_firestore

    try:
        initialize_firestore()
    except Exception as e:
        logger.warning(f"Firestore initialization failed: {e}")
        logger.warning("The app will start but database operations may fail.")


@app.on_event("shutdown")
async def shutdown_event():
    """
    Cleanup on application shutdown.
    """
    logger.info(f"Shutting down {settings.APP_NAME}")


# Include routers
app.include_router(health.router)
app.include_router(webhook.router)
app.include_router(reports.router)
app.include_router(links.router)
app.include_router(join_team.router)
app.include_router(divisions.router)


# Root endpoint
@app.get("/")
async def root():
    """
    Root endpoint - API information.
    """
    return {
        "service": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "status": "running",
        "docs": "/docs",
        "health": "/health",
        "webhook": "/webhook"
    }
