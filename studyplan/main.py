"""
Study Plan FastAPI Application Entry Point.

Run with: uvicorn studyplan.main:app --reload
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from studyplan.config import get_settings, sanitize_error
from studyplan.api.routes import (
    curriculum,
    goals,
    study_plans,
    tasks,
)
from studyplan.errors import PersistenceError, StudyPlanError

settings = get_settings()

logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager for startup/shutdown."""
    # Startup
    logger.info("Starting %s (%s)", settings.app_name, settings.environment)
    yield
    # Shutdown


app = FastAPI(
    title=settings.app_name,
    description="Exam and description study plan scheduling API",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(goals.router)
app.include_router(curriculum.subjects_router)
app.include_router(curriculum.router)
app.include_router(study_plans.router)
app.include_router(tasks.router)


@app.exception_handler(StudyPlanError)
async def study_plan_error_handler(request: Request, exc: StudyPlanError) -> JSONResponse:
    """Answer planning errors with their status code and a safe message."""
    message = exc.message
    if isinstance(exc, PersistenceError):
        message = sanitize_error(exc, generic_message="Could not save your changes.")
    logger.warning("%s on %s: %s", type(exc).__name__, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"detail": message})


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint."""
    return {"status": "healthy"}
