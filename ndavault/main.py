"""
NDAVault - FastAPI Application

Main entry point for the backend API.
Provides endpoints for agreements, subscriptions, billing webhooks and
expiration alerts.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from ndavault.config.settings import settings
from ndavault.infrastructure.exceptions import (
    EntitlementError,
    NDAVaultError,
    NotFoundError,
    PaymentProviderError,
    UnauthorizedError,
    ValidationError,
)

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper()),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup/shutdown."""
    # Startup
    logger.info(f"NDAVault Backend starting in {settings.environment} mode...")

    try:
        from ndavault.infrastructure.db.database import init_db
        await init_db()
        logger.info("SQLModel database connection pool initialized")
    except Exception as e:
        logger.warning(f"SQLModel database initialization skipped: {e}")

    yield

    # Shutdown
    try:
        from ndavault.infrastructure.db.database import close_db
        await close_db()
        logger.info("SQLModel database connection pool closed")
    except Exception as e:
        logger.warning(f"SQLModel database shutdown error: {e}")

    logger.info("NDAVault Backend shutting down...")


app = FastAPI(
    title="NDAVault",
    description="NDA tracking with expiration alerts and Pro subscriptions",
    version="1.0.0",
    lifespan=lifespan,
    debug=settings.debug,
)

# CORS configuration from Settings
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ============================================================================
# Exception Handlers
# ============================================================================

@app.exception_handler(RequestValidationError)
async def request_validation_error_handler(request: Request, exc: RequestValidationError):
    """Malformed request bodies are input errors, same as ValidationError."""
    return JSONResponse(
        status_code=400,
        content={
            "error": "ValidationError",
            "message": "Invalid request",
            "details": {"errors": jsonable_encoder(exc.errors())},
        },
    )


@app.exception_handler(ValidationError)
async def validation_error_handler(request: Request, exc: ValidationError):
    """Handle validation errors."""
    return JSONResponse(
        status_code=400,
        content=exc.to_dict(),
    )


@app.exception_handler(UnauthorizedError)
async def unauthorized_error_handler(request: Request, exc: UnauthorizedError):
    """Handle failed identity or signature checks."""
    logger.warning(f"Unauthorized request to {request.url.path}: {exc.message}")
    return JSONResponse(
        status_code=401,
        content=exc.to_dict(),
    )


@app.exception_handler(EntitlementError)
async def entitlement_error_handler(request: Request, exc: EntitlementError):
    """Handle plan limits and paid-feature checks."""
    return JSONResponse(
        status_code=403,
        content=exc.to_dict(),
    )


@app.exception_handler(NotFoundError)
async def not_found_error_handler(request: Request, exc: NotFoundError):
    """Handle not found errors."""
    return JSONResponse(
        status_code=404,
        content=exc.to_dict(),
    )


@app.exception_handler(PaymentProviderError)
async def payment_provider_error_handler(request: Request, exc: PaymentProviderError):
    """Provider detail is logged here and never returned to the client."""
    logger.error(
        f"Payment provider error on {request.url.path}: {exc.message} "
        f"{exc.details}"
    )
    return JSONResponse(
        status_code=500,
        content=exc.to_dict(),
    )


@app.exception_handler(NDAVaultError)
async def general_error_handler(request: Request, exc: NDAVaultError):
    """Handle all other application errors."""
    logger.error(f"Unhandled application error on {request.url.path}: {exc.message}")
    return JSONResponse(
        status_code=500,
        content=exc.to_dict(),
    )


# ============================================================================
# Health Check
# ============================================================================

@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "service": "ndavault"}


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "message": "NDAVault API",
        "version": "1.0.0",
        "docs": "/docs",
    }


# ============================================================================
# Import and register routers
# ============================================================================

from ndavault.api.routes import agreements, alerts, subscriptions, webhooks  # noqa: E402

app.include_router(agreements.router, prefix="/api", tags=["Agreements"])
app.include_router(subscriptions.router, prefix="/api", tags=["Subscriptions"])
app.include_router(webhooks.router, prefix="/api", tags=["Webhooks"])
app.include_router(alerts.router, prefix="/api", tags=["Alerts"])
