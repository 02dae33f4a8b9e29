"""
Main FastAPI application entry point.
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from sos_mecanicos.config import get_settings
from sos_mecanicos.database import init_db
from sos_mecanicos.errors import register_exception_handlers
from sos_mecanicos.logging import RequestIDMiddleware, configure_logging
from sos_mecanicos.routers import (
    auth,
    contact,
    dashboard,
    insurance,
    notifications,
    payments,
    profiles,
    proposals,
    service_requests,
    vehicles,
)
from sos_mecanicos.session import auth_events, log_auth_event

settings = get_settings()

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan events for the application.
    Handles startup and shutdown events.
    """
    # Startup
    configure_logging(settings.log_level, settings.log_json)
    logger.info("Starting %s %s", settings.app_name, settings.app_version)
    await init_db()
    logger.info("Database initialized")
    if not settings.stripe_secret_key:
        logger.warning("STRIPE_SECRET_KEY is not set; payments will fail")
    unsubscribe = auth_events.subscribe(log_auth_event)

    yield

    # Shutdown
    unsubscribe()
    logger.info("Shutting down %s", settings.app_name)


# Create FastAPI application
app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="""
    ## SOS Mecânicos API

    Marketplace connecting vehicle owners to mechanics, tow-truck operators
    and insurers.

    ### Roles:
    * **client**: registers vehicles and opens service requests
    * **mechanic** / **tow**: accept or send proposals for, run and complete the requests addressed to them
    * **insurer**: issues quotes and publishes coverage plans
    """,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(RequestIDMiddleware)

register_exception_handlers(app)

# Include routers
app.include_router(auth.router, prefix=settings.api_v1_prefix)
app.include_router(profiles.router, prefix=settings.api_v1_prefix)
app.include_router(dashboard.router, prefix=settings.api_v1_prefix)
app.include_router(vehicles.router, prefix=settings.api_v1_prefix)
app.include_router(service_requests.router, prefix=settings.api_v1_prefix)
app.include_router(proposals.router, prefix=settings.api_v1_prefix)
app.include_router(notifications.router, prefix=settings.api_v1_prefix)
app.include_router(insurance.router, prefix=settings.api_v1_prefix)
app.include_router(contact.router, prefix=settings.api_v1_prefix)
app.include_router(payments.router, prefix="/api")


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "message": "Welcome to SOS Mecânicos API",
        "version": settings.app_version,
        "docs": "/docs",
        "redoc": "/redoc",
    }


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "version": settings.app_version,
    }


@app.get(f"{settings.api_v1_prefix}/config/public")
async def public_config():
    """Keys the browser client needs."""
    return {
        "stripe_publishable_key": settings.stripe_publishable_key,
        "maps_api_key": settings.maps_api_key,
        "currency": settings.payment_currency,
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "sos_mecanicos.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug,
    )
