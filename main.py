"""
Restaurant POS - FastAPI Backend
Main application entry point
"""

import os
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
import uvicorn

from restopos.core.config import settings
from restopos.core.db import engine, Base, SessionLocal
from restopos.api import routes_admin, routes_auth, routes_public, routes_tables, ws
from restopos.services.auth_service import AuthService
from restopos.utils.responses import register_exception_handlers

# Configure logging
logging.basicConfig(level=settings.LOG_LEVEL)
logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan management"""
    if not settings.USE_FIREBASE:
        # Create database tables
        Base.metadata.create_all(bind=engine)
        logger.info("Database tables created")

    db = SessionLocal()
    try:
        AuthService.ensure_admin_password(db)
        AuthService.purge_expired_sessions(db)
    finally:
        db.close()
    yield
    logger.info("Application shutdown")

# Create FastAPI application
app = FastAPI(
    title="Restaurant POS",
    description="Table service point of sale: order entry, close-out, sales ledger and admin",
    version="1.0.0",
    lifespan=lifespan
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOW_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Mount locally stored media
os.makedirs(settings.MEDIA_DIR, exist_ok=True)
app.mount("/media", StaticFiles(directory=settings.MEDIA_DIR), name="media")

register_exception_handlers(app)

# Include routers
app.include_router(routes_public.router, tags=["public"])
app.include_router(routes_auth.router, prefix="/auth", tags=["auth"])
app.include_router(routes_tables.router, tags=["tables"])
app.include_router(routes_admin.router, prefix="/admin", tags=["admin"])
app.include_router(ws.router, prefix="/ws", tags=["websocket"])

# Note: Run this ASGI app directly with Uvicorn or Hypercorn. For Gunicorn,
# use `uvicorn.workers.UvicornWorker` instead of wrapping the app.

if __name__ == "__main__":
    uvicorn.run(
        "main:app",
        host="127.0.0.1",
        port=8000,
        reload=True
    )
