"""
FastAPI application for the loan ledger.

Provides REST API endpoints for:
- Loan creation and listing
- Regular payments with idempotent retries
- Early payoff
- Payment history and projected amortization schedules
"""

import os
import logging
import time
import traceback
from contextlib import asynccontextmanager
from typing import Dict, Any

from fastapi import FastAPI, Request, Depends
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.orm import Session

from loan_ledger import __version__
from loan_ledger.api.routes import loans
from loan_ledger.core.config import get_settings
from loan_ledger.db.connection import get_db_manager, init_database, get_db_session
from loan_ledger.utils.error_utils import Busy, LedgerError

logger = logging.getLogger("loan_ledger")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.
    Handles startup and shutdown events.
    """
    is_serverless = bool(os.getenv("VERCEL"))
    if not is_serverless:
        # Startup: Initialize database connection (tables pre-created on Vercel)
        logger.info("Initializing database connection...")
        init_database()
    yield
    if not is_serverless:
        logger.info("Shutting down...")
        get_db_manager().dispose()


# Create FastAPI application
app = FastAPI(
    title="Loan Ledger API",
    description="Loan schedules, payments and payoffs for the personal finance client",
    version=__version__,
    docs_url="/api/docs",
    redoc_url="/api/redoc",
    openapi_url="/api/openapi.json",
    lifespan=lifespan,
)

# CORS configuration for the mobile client's dev servers
_default_origins = "http://localhost:3000,http://localhost:8081,http://localhost:19006"
_cors_origins = [o.strip() for o in os.getenv("CORS_ORIGINS", _default_origins).split(",")]

app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(LedgerError)
async def ledger_exception_handler(request: Request, exc: LedgerError):
    """Render ledger errors as ``{message[, suggestedPayment]}``."""
    logger.warning(f"{request.method} {request.url.path} rejected: {type(exc).__name__}: {exc.message}")
    headers = None
    if isinstance(exc, Busy):
        headers = {"Retry-After": str(max(1, int(get_settings().lock_timeout_seconds)))}
    return JSONResponse(status_code=exc.status_code, content=exc.to_payload(), headers=headers)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Malformed request bodies and parameters."""
    errors = [
        {"field": ".".join(str(part) for part in error["loc"][1:]), "message": error["msg"]}
        for error in exc.errors()
    ]
    logger.warning(f"{request.method} {request.url.path} invalid request: {errors}")
    return JSONResponse(
        status_code=422,
        content={"message": "Invalid request", "errors": errors},
    )


# Global exception handler
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Handle all uncaught exceptions."""
    logger.error(f"Unhandled exception on {request.method} {request.url.path}: {type(exc).__name__}: {exc}")
    logger.error(traceback.format_exc())
    return JSONResponse(
        status_code=500,
        content={
            "message": "Internal server error",
            "type": type(exc).__name__,
        },
    )


# Health check endpoint
@app.get("/health")
async def health_check() -> Dict[str, str]:
    """API health check endpoint."""
    return {
        "status": "healthy",
        "version": __version__,
        "service": "loan-ledger-api",
    }


@app.get("/health/db")
def health_check_db(db: Session = Depends(get_db_session)):
    """Check database connection health and latency."""
    start = time.time()
    try:
        db.execute(text("SELECT 1"))
        latency_ms = (time.time() - start) * 1000
        return {
            "status": "healthy",
            "latency_ms": round(latency_ms, 2),
            "database": db.bind.dialect.name,
        }
    except Exception as e:
        latency_ms = (time.time() - start) * 1000
        logger.error(f"Database health check failed: {e}")
        return {
            "status": "unhealthy",
            "latency_ms": round(latency_ms, 2),
            "error": str(e),
        }


# Include routers
app.include_router(loans.router, prefix="/api/loan", tags=["Loans"])


# Root endpoint
@app.get("/")
async def root() -> Dict[str, Any]:
    """API root endpoint with service information."""
    return {
        "service": "Loan Ledger API",
        "version": __version__,
        "docs": "/api/docs",
        "health": "/health",
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "loan_ledger.api.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
        log_level="info",
    )
