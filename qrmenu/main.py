"""
QR Menu - Main Application Entry Point
Restaurant menus and table ordering over QR codes
"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from contextlib import asynccontextmanager
from pathlib import Path
import structlog

from qrmenu.core.config import get_settings
from qrmenu.core.database import verify_schema
from qrmenu.core.errors import register_exception_handlers
from qrmenu.core.realtime import register_realtime_handlers
from qrmenu.api import (
    auth, restaurants, menu_categories, menu_items, menu_preview,
    orders, devices, tables, websockets
)

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


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager"""
    # Startup
    logger.info("Initializing QR Menu backend", environment=settings.ENVIRONMENT)
    # Tables are created by Alembic migrations, startup only checks them
    if settings.VERIFY_SCHEMA_ON_STARTUP:
        verify_schema()

    yield

    # Shutdown
    logger.info("Shutting down QR Menu backend")


# Create FastAPI application
app = FastAPI(
    title="QR Menu API",
    description="Restaurant menus, QR table links and device-scoped ordering",
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
    expose_headers=["Content-Disposition"],
)

register_exception_handlers(app)
register_realtime_handlers()

# Include routers
prefix = settings.API_V1_PREFIX
app.include_router(auth.router, prefix=f"{prefix}/auth", tags=["auth"])
app.include_router(restaurants.router, prefix=f"{prefix}/restaurants", tags=["restaurants"])
app.include_router(menu_categories.router, prefix=f"{prefix}/restaurants", tags=["menu-categories"])
app.include_router(menu_items.router, prefix=f"{prefix}/restaurants", tags=["menu-items"])
app.include_router(tables.router, prefix=f"{prefix}/restaurants", tags=["tables"])
app.include_router(orders.router, prefix=prefix, tags=["orders"])
app.include_router(menu_preview.router, prefix=f"{prefix}/menu", tags=["menu"])
app.include_router(devices.router, prefix=f"{prefix}/devices", tags=["devices"])
app.include_router(websockets.router, prefix=f"{prefix}/ws", tags=["websockets"])

# Locally stored menu images
Path(settings.MEDIA_ROOT).mkdir(parents=True, exist_ok=True)
app.mount(settings.MEDIA_URL, StaticFiles(directory=settings.MEDIA_ROOT), name="media")


@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {"status": "healthy", "service": "qrmenu-api"}


@app.get("/")
async def root():
    """Root endpoint"""
    return {
        "message": "QR Menu API",
        "version": "1.0.0",
        "docs": "/docs",
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "qrmenu.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.ENVIRONMENT == "development",
        log_level="info",
    )
