"""
FastAPI application entry point for studio-sync.
"""

# Load environment variables FIRST before any other imports
from pathlib import Path
from dotenv import load_dotenv

# Try to find .env file in project root
current_file = Path(__file__)
project_root = current_file.parent.parent.parent.parent  # src/studio_sync/api/main.py -> root
env_file = project_root / ".env"
if env_file.exists():
    load_dotenv(env_file)

from contextlib import asynccontextmanager
import os

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from studio_sync import __version__
from studio_sync.api.routes import admin, firms, health, sync
from studio_sync.api.middleware.error_handler import ErrorHandlerMiddleware, register_exception_handlers
from studio_sync.utils.logger import get_logger, setup_logging

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    setup_logging()
    logger.info("Starting studio-sync API...")
    yield
    logger.info("Shutting down studio-sync API...")


# Create FastAPI application
app = FastAPI(
    title="Studio Sync API",
    description="Tenant provisioning, spreadsheet sync and purge for the studio management app",
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    lifespan=lifespan
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=os.getenv("CORS_ORIGINS", "*").split(","),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_middleware(ErrorHandlerMiddleware)
register_exception_handlers(app)

# Register routes
app.include_router(sync.router, prefix="/api/v1/sync", tags=["Sync"])
app.include_router(firms.router, prefix="/api/v1/firms", tags=["Firms"])
app.include_router(admin.router, prefix="/api/v1/admin", tags=["Admin"])
app.include_router(health.router, prefix="/api/v1/health", tags=["Health"])


@app.get("/", tags=["Root"])
async def root():
    """Root endpoint."""
    return {
        "name": "Studio Sync API",
        "version": __version__,
        "status": "operational",
        "docs": "/docs"
    }


if __name__ == "__main__":
    import uvicorn
    
    uvicorn.run(
        "studio_sync.api.main:app",
        host=os.getenv("API_HOST", "0.0.0.0"),
        port=int(os.getenv("API_PORT", 8000)),
        reload=os.getenv("DEBUG", "false").lower() == "true"
    )
