"""
TrustTeams API - Main Application Entry Point

This module initializes and configures the FastAPI application including:
- Logging
- Database connection
- Background job scheduler
- CORS middleware
- API routing
- Health check and development debug endpoints
"""

import logging
from contextlib import asynccontextmanager

from fastapi import APIRouter, Depends, FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from trustteams import __version__
from trustteams.api import api_router
from trustteams.core.config import settings
from trustteams.core.database import async_session_maker, close_db, get_db, init_db
from trustteams.core.scheduler import (
    list_registered_jobs,
    pause_job,
    resume_job,
    start_scheduler,
    stop_scheduler,
    trigger_job_manually,
)
from trustteams.modules.auth import service as auth_service
from trustteams.modules.auth.schemas import ResendVerificationRequest
from trustteams.modules.opportunities.jobs import register_opportunity_jobs
from trustteams.modules.shared import ServiceError, raise_http_error

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)


@asynccontextmanager
async def lifespan(_app: FastAPI):
    """
    Application lifespan manager.

    Handles startup and shutdown events including:
    - Database connection
    - Background job scheduler
    """
    # Startup
    print(f"Starting TrustTeams API in {settings.python_env} mode...")

    # Initialize Database
    try:
        await init_db()
        print("[OK] Database connected")
    except Exception as e:
        print(f"[FAIL] Database connection failed: {e}")
        if settings.is_production:
            raise

    # Initialize Background Job Scheduler
    try:
        # Register jobs before starting the scheduler
        register_opportunity_jobs()

        await start_scheduler()
        print("[OK] Background scheduler started")
    except Exception as e:
        print(f"[FAIL] Background scheduler failed to start: {e}")
        if settings.is_production:
            raise

    yield  # Application runs here

    # Shutdown
    print("Shutting down TrustTeams API...")

    # Stop the scheduler first (wait for running jobs)
    await stop_scheduler()
    print("[OK] Background scheduler stopped")

    await close_db()
    print("[OK] Cleanup complete")


app = FastAPI(
    title="TrustTeams API",
    description="Opportunities and applications platform for students, universities and industry",
    version=__version__,
    docs_url="/docs" if settings.is_development else None,
    redoc_url="/redoc" if settings.is_development else None,
    lifespan=lifespan,
)

app.include_router(api_router, prefix="/api/v1")

# CORS configuration
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/", tags=["Root"])
async def root() -> dict[str, str]:
    """Root endpoint - API welcome message."""
    return {
        "message": "Welcome to TrustTeams API",
        "status": "running",
        "environment": settings.python_env,
    }


@app.get("/health", tags=["Health"])
async def health_check() -> dict[str, str]:
    """Health check endpoint for container orchestration."""
    return {"status": "healthy"}


@app.get("/ready", tags=["Health"])
async def readiness_check() -> dict[str, str]:
    """Readiness check endpoint."""
    return {"status": "ready"}


# ============================================
# Debug Endpoints (development only)
# ============================================
# Manual job control and a verification bypass for local testing.
# In production, jobs run on schedule and users verify by email.

debug_router = APIRouter(prefix="/debug", tags=["Debug"])


@debug_router.get("/db")
async def debug_db():
    """Test database connection."""
    try:
        async with async_session_maker() as session:
            result = await session.execute(text("SELECT 1"))
            return {"database": "connected", "result": result.scalar()}
    except Exception as e:
        return {"database": "error", "message": str(e)}


@debug_router.get("/jobs")
async def list_jobs():
    """
    List all registered background jobs and their status.

    Returns:
        List of job information including next run time and pause status.
    """
    return {"jobs": list_registered_jobs()}


@debug_router.post("/jobs/{job_id}/trigger")
async def trigger_job(job_id: str):
    """
    Manually trigger a background job.

    Args:
        job_id: The ID of the job to trigger. Available jobs:
            - opportunities_auto_close_expired

    Raises:
        HTTPException 400: If job_id is not found.
    """
    try:
        return await trigger_job_manually(job_id)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e


@debug_router.post("/jobs/{job_id}/pause")
async def pause_job_endpoint(job_id: str):
    """Pause a scheduled job. It stays registered and can be resumed."""
    return {"job_id": job_id, "paused": pause_job(job_id)}


@debug_router.post("/jobs/{job_id}/resume")
async def resume_job_endpoint(job_id: str):
    return {"job_id": job_id, "resumed": resume_job(job_id)}


@debug_router.post("/users/verify-email")
async def force_verify_email(
    data: ResendVerificationRequest,
    db: AsyncSession = Depends(get_db),
):
    """Mark a user's email as verified without a token."""
    try:
        user = await auth_service.force_verify_email(db, data.email)
    except ServiceError as e:
        raise_http_error(e)
    return {"message": "Email marked as verified", "user_id": user.id, "email": user.email}


if settings.is_development:
    app.include_router(debug_router)
