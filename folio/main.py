"""Main FastAPI application."""

import logging
import re
import time
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .api import documents_router, organizations_router, users_router
from .core.config import DEFAULT_JWT_SECRET, ConfigurationError, Environment, settings
from .core.logging_config import setup_logging
from .database import DATABASE_URL, SessionLocal, get_db, init_db
from .exceptions import FolioException
from .middleware.exception_handler import folio_exception_handler
from .middleware.request_context import RequestContextMiddleware
from .services import audit_service

# Setup logging first
setup_logging(log_level=settings.log_level, log_format=settings.log_format)
logger = logging.getLogger(__name__)

VERSION = "1.0.0"


def _mask_url(url: str) -> str:
    """Mask password in database URL for safe logging."""
    return re.sub(r"://([^:]+):([^@]+)@", r"://\1:***@", url)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup / shutdown lifecycle for the Folio API."""
    logger.info("Starting Folio API", extra={"environment": settings.environment.value})
    try:
        settings.validate_production_config()
    except ConfigurationError as e:
        logger.critical("Startup blocked by insecure configuration", extra={"error": str(e)})
        raise SystemExit(1) from e

    if settings.environment == Environment.DEVELOPMENT and settings.jwt_secret_key == DEFAULT_JWT_SECRET:
        logger.warning(
            "SECURITY: JWT_SECRET_KEY is the default. Anyone can forge tokens. "
            "Generate a secure key: openssl rand -hex 32"
        )

    logger.info("Connecting to database", extra={"database_url": _mask_url(DATABASE_URL)})
    try:
        init_db()
    except SQLAlchemyError as e:
        logger.critical("Database initialisation failed", extra={"error": str(e)})
        raise SystemExit(1) from e

    # --- Purge old audit logs ---
    if settings.audit_retention_days > 0:
        db = SessionLocal()
        try:
            purged = audit_service.purge_old_entries(db, days=settings.audit_retention_days)
            if purged > 0:
                logger.info(
                    "Purged audit log entries",
                    extra={"purged": purged, "retention_days": settings.audit_retention_days},
                )
        except SQLAlchemyError as e:
            logger.warning("Audit log purge failed", extra={"error": str(e)})
        finally:
            db.close()

    yield  # App runs here


app = FastAPI(
    title="Folio API",
    description=(
        "Organizations, memberships and documents with role-based, share-based "
        "and visibility-based access control.\n\n"
        "**Authentication:** every `/api` endpoint except `POST /api/users` requires a "
        "`Bearer` token in the `Authorization` header."
    ),
    version=VERSION,
    lifespan=lifespan,
)

# Middleware stack (outermost first; CORS wraps request context).
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.get_cors_origins(),
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE"],
    allow_headers=["Content-Type", "Authorization"],
)
app.add_middleware(RequestContextMiddleware)

app.add_exception_handler(FolioException, folio_exception_handler)

app.include_router(users_router)
app.include_router(organizations_router)
app.include_router(documents_router)


@app.get("/")
def root():
    """Root endpoint."""
    return {"name": "Folio API", "version": VERSION, "status": "running"}


_startup_time = time.monotonic()


@app.get("/health")
def health_check(db: Session = Depends(get_db)):
    """Health check returning database status and uptime.

    Never raises — returns degraded status on DB failure so load balancers
    can still probe without receiving 5xx.
    """
    db_status = "ok"
    try:
        db.execute(text("SELECT 1"))
    except SQLAlchemyError:
        db_status = "error"

    return {
        "status": "healthy" if db_status == "ok" else "degraded",
        "db": db_status,
        "uptime_seconds": round(time.monotonic() - _startup_time),
        "version": VERSION,
    }
