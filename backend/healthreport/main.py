"""
Health Progress Report - FastAPI Application

This is the entry point for the backend. It:
1. Configures logging
2. Creates the FastAPI app instance
3. Configures CORS (so the dashboard frontend can talk to us)
4. Registers route handlers

Run with:
    uvicorn healthreport.main:app --reload --port 8000
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from healthreport.config import settings
from healthreport.routers import reports

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown logging."""
    logger.info("Starting Health Progress Report API (%s)", settings.APP_ENV)
    yield
    logger.info("Shutting down Health Progress Report API")


app = FastAPI(
    title="Health Progress Report API",
    description="Summary statistics, recommendations and PDF progress reports "
                "for personal health tracking",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(reports.router)


# --- Health Check Endpoints ---

@app.get("/", tags=["health"])
async def root():
    """Root endpoint, confirms the API is alive."""
    return {
        "service": "Health Progress Report",
        "status": "running",
        "version": "1.0.0",
    }


@app.get("/health", tags=["health"])
async def health_check():
    """Liveness check for load balancers and monitoring."""
    return {
        "status": "healthy",
        "environment": settings.APP_ENV,
    }
