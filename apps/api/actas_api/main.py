"""Actas API - Main FastAPI application."""

import logging
import sys
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_client import make_asgi_app
from sqlalchemy import text

from actas_api.db.session import SessionLocal
from actas_api.errors import register_exception_handlers
from actas_api.middleware.correlation import CorrelationIdFilter, CorrelationIDMiddleware
from actas_api.routes import actas, commitments, documents, public
from actas_api.settings import get_settings
from actas_api.storage import get_blob_store

settings = get_settings()

# Configure logging
_handler = logging.StreamHandler(sys.stdout)
_handler.addFilter(CorrelationIdFilter())
if settings.log_format == "json":
    _format = (
        '{"time": "%(asctime)s", "level": "%(levelname)s", "message": "%(message)s", '
        '"module": "%(name)s", "correlation_id": "%(correlation_id)s"}'
    )
else:
    _format = "%(asctime)s %(levelname)s [%(name)s] [%(correlation_id)s] %(message)s"
logging.basicConfig(level=settings.log_level, format=_format, handlers=[_handler])
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    logger.info("Starting Actas API...")
    try:
        settings.validate_production_settings()
        store = get_blob_store()
        logger.info(f"Blob store initialized: {type(store).__name__}")
    except Exception as e:
        logger.error(f"Configuration validation failed: {e}")
        raise ValueError(f"Invalid configuration: {e}") from e

    yield
    logger.info("Shutting down Actas API...")


app = FastAPI(
    title="Actas API",
    description="Meeting record (acta) approval workflow",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=settings.cors_allow_credentials,
    allow_methods=settings.cors_allow_methods,
    allow_headers=settings.cors_allow_headers,
)
app.add_middleware(CorrelationIDMiddleware)

# Prometheus metrics
metrics_app = make_asgi_app()
app.mount("/metrics", metrics_app)

register_exception_handlers(app)

app.include_router(actas.router)
app.include_router(documents.router)
app.include_router(commitments.router)
app.include_router(public.router)


@app.get("/health")
async def health_check():
    """Health check endpoint (basic liveness)."""
    return {
        "status": "healthy",
        "service": "actas-api",
        "version": "0.1.0",
    }


@app.get("/ready")
async def readiness_check():
    """Readiness check endpoint (database and blob store)."""
    checks = {"database": False, "object_storage": False}

    db = SessionLocal()
    try:
        db.execute(text("SELECT 1"))
        checks["database"] = True
    except Exception as e:
        logger.error(f"Database check failed: {e}")
    finally:
        db.close()

    try:
        get_blob_store().exists(".ready-probe")
        checks["object_storage"] = True
    except Exception as e:
        logger.error(f"Object storage check failed: {e}")

    ready = all(checks.values())
    return JSONResponse(
        status_code=200 if ready else 503,
        content={"status": "ready" if ready else "not_ready", "checks": checks},
    )


@app.get("/")
async def root():
    """Root endpoint."""
    return {"message": "Actas API", "version": "0.1.0"}
