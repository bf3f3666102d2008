"""
Table Booking Engine - FastAPI application
"""

from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text
import structlog

from booking_engine.config import settings
from booking_engine.api import auth, analytics, callbacks, reservations, slots
from booking_engine.tools import router as tools_router

logging.basicConfig(format="%(message)s", level=settings.log_level.upper())

# Configure structured logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        (
            structlog.processors.JSONRenderer()
            if settings.log_format == "json"
            else structlog.dev.ConsoleRenderer()
        ),
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager"""
    logger.info("Starting Table Booking Engine", version="1.0.0")
    yield
    logger.info("Shutting down Table Booking Engine")


# Create FastAPI application
app = FastAPI(
    title="Table Booking Engine",
    description="Slot allocation and booking engine for phone reservations",
    version="1.0.0",
    lifespan=lifespan,
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Health check endpoints
@app.get("/health")
async def health():
    """Basic health check"""
    return {"status": "healthy", "service": "booking-engine", "version": "1.0.0"}


@app.get("/health/ready")
async def ready():
    """Readiness check with dependency verification"""
    from booking_engine.database import SessionLocal
    
    checks = {}
    
    # Check database
    try:
        async with SessionLocal() as db:
            await db.execute(text("SELECT 1"))
        checks["database"] = "ok"
    except Exception as e:
        checks["database"] = f"failed: {str(e)}"
    
    # Check Redis
    try:
        from booking_engine.jobs.celery_app import celery_app
        celery_app.control.ping(timeout=1)
        checks["redis"] = "ok"
    except Exception as e:
        checks["redis"] = f"failed: {str(e)}"
    
    all_ok = all(v == "ok" for v in checks.values())
    
    return {
        "status": "ready" if all_ok else "not_ready",
        "checks": checks,
    }


# Include staff API routers
app.include_router(auth.router, prefix="/auth", tags=["Authentication"])
app.include_router(callbacks.router, prefix="/restaurants/{restaurant_id}/callbacks", tags=["Callbacks"])
app.include_router(reservations.router, prefix="/restaurants/{restaurant_id}/reservations", tags=["Reservations"])
app.include_router(slots.router, prefix="/restaurants/{restaurant_id}/slots", tags=["Slots"])
app.include_router(
    slots.blocked_dates_router,
    prefix="/restaurants/{restaurant_id}/blocked_dates",
    tags=["Slots"],
)
app.include_router(analytics.router, prefix="/restaurants/{restaurant_id}/analytics", tags=["Analytics"])

# Include voice agent tools router
app.include_router(tools_router.router, prefix="/tools", tags=["Tools"])


if __name__ == "__main__":
    import uvicorn
    
    uvicorn.run(
        "booking_engine.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.api_debug,
    )
