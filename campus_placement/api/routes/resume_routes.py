"""
Resume Routes (student only)

POST /resumes - Register resume metadata (file already stored by the client)
GET /resumes - List my resumes
GET /resumes/{resume_id} - Resume details (owner or their coordinator)
PUT /resumes/{resume_id}/default - Make default
DELETE /resumes/{resume_id} - Delete resume
"""

from fastapi import APIRouter, Depends, HTTPException, Query
from typing import List

from campus_placement.core.auth import get_current_principal, require_student
from campus_placement.schemas.schemas import MessageResponse, Principal, Resume, ResumeUpload
from campus_placement.services.resume_service import get_resume_service

router = APIRouter(prefix="/resumes", tags=["Resumes"])


@router.post("", response_model=Resume, status_code=201)
def upload_resume(
    meta: ResumeUpload,
    is_default: bool = Query(False),
    principal: Principal = Depends(require_student)
):
    """
    Register a resume. Allowed: PDF, DOCX, TXT.
    The first resume always becomes the default.
    """
    return get_resume_service().upload(principal, meta, is_default=is_default)


@router.get("", response_model=List[Resume])
def list_resumes(principal: Principal = Depends(require_student)):
    return get_resume_service().list_resumes(principal)


@router.get("/{resume_id}", response_model=Resume)
def get_resume(resume_id: int, principal: Principal = Depends(get_current_principal)):
    return get_resume_service().get_resume(principal, resume_id)


@router.put("/{resume_id}/default", response_model=MessageResponse)
def set_default_resume(resume_id: int, principal: Principal = Depends(require_student)):
    if not get_resume_service().set_default(principal, resume_id):
        raise HTTPException(status_code=404, detail="Resume not found")
    return MessageResponse(message="Default resume updated")


@router.delete("/{resume_id}", response_model=MessageResponse)
def delete_resume(resume_id: int, principal: Principal = Depends(require_student)):
    if not get_resume_service().delete(principal, resume_id):
        raise HTTPException(status_code=404, detail="Resume not found")
    return MessageResponse(message="Resume deleted")
