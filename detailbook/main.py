"""
Detailbook - Main Application Entry Point
Multi-tenant booking and appointment engine for detailing businesses
"""

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
import logging
import structlog

from detailbook.core.config import get_settings
from detailbook.core.exceptions import BookingError
from detailbook.api import appointments, booking, customers, services, tenants

# Configure structured logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.format_exc_info,
        structlog.processors.JSONRenderer()
    ],
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
)

logger = structlog.get_logger(__name__)
settings = get_settings()

logging.basicConfig(
    format="%(message)s",
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager"""
    # Startup
    logger.info(f"Initializing {settings.APP_NAME} backend ({settings.ENVIRONMENT})")
    # Tables are created by Alembic migrations, not auto-generated
    logger.info("Database managed by Alembic migrations")

    yield

    # Shutdown
    logger.info(f"Shutting down {settings.APP_NAME} backend")


# Create FastAPI application
app = FastAPI(
    title="Detailbook API",
    description="Booking and appointment lifecycle engine for detailing businesses",
    version="1.0.0",
    lifespan=lifespan,
)

# Configure middleware stack
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(BookingError)
async def booking_error_handler(request: Request, exc: BookingError):
    """Render engine errors with their specific detail"""
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.detail}")
    else:
        logger.info(f"{request.method} {request.url.path} rejected ({exc.status_code}): {exc.detail}")
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})


# Include routers
prefix = settings.API_V1_PREFIX
app.include_router(tenants.router, prefix=f"{prefix}/tenants", tags=["tenants"])
app.include_router(services.router, prefix=f"{prefix}/services", tags=["services"])
app.include_router(booking.router, prefix=f"{prefix}/booking", tags=["booking"])
app.include_router(appointments.router, prefix=f"{prefix}/appointments", tags=["appointments"])
app.include_router(customers.router, prefix=f"{prefix}/customers", tags=["customers"])


@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {"status": "healthy", "service": "detailbook-api"}


@app.get("/")
async def root():
    """Root endpoint"""
    return {
        "message": "Detailbook API",
        "version": "1.0.0",
        "docs": "/docs",
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "detailbook.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.ENVIRONMENT == "development",
        log_level="info",
    )
