"""
API Routes - Combines all route modules into single router.
"""

from fastapi import APIRouter

from campus_placement.api.routes.auth_routes import router as auth_router
from campus_placement.api.routes.drive_routes import router as drive_router
from campus_placement.api.routes.application_routes import router as application_router
from campus_placement.api.routes.resume_routes import router as resume_router
from campus_placement.api.routes.coordinator_routes import router as coordinator_router
from campus_placement.api.routes.student_routes import router as student_router
from campus_placement.api.routes.community_routes import router as community_router

# Main API router
api_router = APIRouter()

# Include all sub-routers
api_router.include_router(auth_router)
api_router.include_router(drive_router)
api_router.include_router(application_router)
api_router.include_router(resume_router)
api_router.include_router(coordinator_router)
api_router.include_router(student_router)
api_router.include_router(community_router)
