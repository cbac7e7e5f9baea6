"""
FastAPI entrypoint for the SkiStat backend application.
"""
from datetime import datetime
import logging
import time
from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from starlette.exceptions import HTTPException as StarletteHTTPException
from app.core.config import settings
from app.core.exceptions import AppError
from app.core.utils import format_error, format_response
from app.api.router import api_router
from app.db.session import get_db

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)

STARTED_AT = time.monotonic()

app = FastAPI(
    title=settings.APP_NAME,
    description="Backend API for ski run tracking, friends and leaderboards",
    version=settings.APP_VERSION
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=False,
    allow_methods=["GET", "POST", "PUT", "DELETE", "PATCH"],
    allow_headers=["Content-Type", "Authorization"],
)


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    """Render domain errors with their mapped status code."""
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content=format_error(exc.message, exc.details))


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    """Request body / query validation failures are 400s."""
    details = None
    if settings.DEBUG:
        details = [
            f"{'.'.join(str(p) for p in err.get('loc', ()) if p != 'body')}: {err.get('msg')}"
            for err in exc.errors()
        ]
    return JSONResponse(status_code=400, content=format_error("Validation failed", details))


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    message = "Endpoint not found" if exc.status_code == 404 else str(exc.detail)
    return JSONResponse(status_code=exc.status_code, content=format_error(message))


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    """Last-resort handler: log the traceback, hide details outside debug."""
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    message = str(exc) if settings.DEBUG else "Internal server error"
    return JSONResponse(status_code=500, content=format_error(message))


# Include API routes
app.include_router(api_router, prefix="/v1")


@app.get("/")
async def root():
    """Service banner."""
    return format_response(
        service=settings.APP_NAME,
        version=settings.APP_VERSION,
        status="running",
        timestamp=datetime.utcnow(),
    )


@app.get("/health")
async def health(db: Session = Depends(get_db)):
    """Health check endpoint (verifies the database connection)."""
    try:
        db.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        logger.error("Health check failed: %s", e)
        return JSONResponse(status_code=503, content=format_error("Database unavailable"))
    return format_response(
        status="healthy",
        database="connected",
        uptime=round(time.monotonic() - STARTED_AT, 1),
    )
