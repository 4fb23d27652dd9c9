"""
FastAPI application entry point.

Run with: uvicorn api.main:app --reload
"""
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from pathlib import Path
from dotenv import load_dotenv

# Load environment variables from backend/.env (optional) before other imports that read env
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(env_path)

from api.routes import dashboard
from db import init_db
from services.dashboard import get_default_orchestrator

logger = logging.getLogger(__name__)


# Create app
app = FastAPI(
    title="Weather Places API",
    description="API for searching places and their weather and nearby attractions",
    version="0.1.0",
)

# CORS middleware for frontend
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure properly for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(dashboard.router, tags=["dashboard"])


@app.on_event("startup")
def startup_event():
    """Initialize database tables and restore the last used place."""
    init_db()
    get_default_orchestrator().startup()
    logger.info("Dashboard ready with %d saved places", len(get_default_orchestrator().store.visited))


@app.get("/")
async def root():
    """Health check endpoint."""
    return {"status": "ok", "service": "Weather Places API"}


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "healthy"}
