"""
Campus Placement Engine - Main Application

FastAPI backend with:
- Relational store (PostgreSQL, SQLite for tests) as the source of truth
- Eligibility rules and the application state machine in services/
- OpenAI-compatible matcher (DeepSeek) for resume/job analysis
- JWT authentication for coordinators and students

Run: uvicorn campus_placement.main:app --reload
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from campus_placement import __version__
from campus_placement.api.routes import api_router
from campus_placement.core.errors import PlacementError, ValidationFailedError, describe_errors
from campus_placement.core.logging_config import setup_logging
from campus_placement.db.database import init_schema, test_database_connection

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Configure logging and create missing tables on startup."""
    setup_logging()
    init_schema()
    logger.info("Campus placement engine %s started", __version__)
    yield


# Create FastAPI app
app = FastAPI(
    title="Campus Placement Engine",
    description="""
    Eligibility matching and application lifecycle for campus placements.

    ## Features
    - **Authentication**: JWT-based auth for coordinators and students
    - **Drives**: Coordinators post drives with eligibility rules
    - **Applications**: Register -> Shortlisted -> Interview -> Selected / Rejected
    - **Resumes**: Multiple resumes per student, one default
    - **AI Analysis**: Cached resume/job match score and suggestions
    - **Community**: Discussions, replies, likes and direct messages
    """,
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)

# CORS middleware (allow all for development)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(PlacementError)
async def placement_error_handler(request: Request, exc: PlacementError):
    """Map domain errors onto HTTP status codes."""
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    """Malformed request bodies get the same 400 shape as service-level validation."""
    return JSONResponse(
        status_code=ValidationFailedError.status_code,
        content={"detail": describe_errors(exc.errors())},
    )


# Include API routes
app.include_router(api_router, prefix="/api")


@app.get("/health", tags=["Health"])
def health_check():
    """Detailed health check."""
    return {
        "status": "healthy",
        "database": "connected" if test_database_connection() else "disconnected",
    }
