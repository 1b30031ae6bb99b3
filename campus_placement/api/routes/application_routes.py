"""
Application Routes

POST /applications - Register for a drive (student only)
GET /applications - My applications (student only)
GET /applications/{application_id} - Application details
DELETE /applications/{application_id} - Withdraw while Registered (student only)
PUT /applications/{application_id}/status - Move through the pipeline (coordinator only)
POST /analyze - AI resume/job analysis for an application
"""

from fastapi import APIRouter, Depends
from typing import List

from campus_placement.core.auth import get_current_principal, require_coordinator, require_student
from campus_placement.schemas.schemas import (
    AIAnalysis, AnalyzeRequest, Application, ApplicationStatusUpdate, ApplyRequest,
    MessageResponse, Principal, StudentApplicationView
)
from campus_placement.services.analysis_service import get_analysis_service
from campus_placement.services.application_service import get_application_service

router = APIRouter(tags=["Applications"])


@router.post("/applications", response_model=Application, status_code=201)
def apply_to_drive(request: ApplyRequest, principal: Principal = Depends(require_student)):
    """Register for a drive. Eligibility is checked against the current profile."""
    return get_application_service().apply(principal, request.drive_id, request.resume_id, request.notes)


@router.get("/applications", response_model=List[StudentApplicationView])
def list_my_applications(principal: Principal = Depends(require_student)):
    return get_application_service().list_for_student(principal)


@router.get("/applications/{application_id}", response_model=Application)
def get_application(application_id: int, principal: Principal = Depends(get_current_principal)):
    return get_application_service().get_application(principal, application_id)


@router.delete("/applications/{application_id}", response_model=MessageResponse)
def withdraw_application(application_id: int, principal: Principal = Depends(require_student)):
    get_application_service().withdraw(principal, application_id)
    return MessageResponse(message="Application withdrawn")


@router.put("/applications/{application_id}/status", response_model=Application)
def update_application_status(
    application_id: int,
    update: ApplicationStatusUpdate,
    principal: Principal = Depends(require_coordinator)
):
    """Selected also marks the student Placed with the drive's company and CTC."""
    return get_application_service().set_status(principal, application_id, update.status, update.notes)


@router.post("/analyze", response_model=AIAnalysis)
def analyze_application(request: AnalyzeRequest, principal: Principal = Depends(get_current_principal)):
    """Cached AI analysis; the first request computes and stores it."""
    return get_analysis_service().analyze(principal, request.application_id)
