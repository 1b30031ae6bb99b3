"""
Drive Routes

POST /drives - Create drive (coordinator only)
GET /drives - List drives in the caller's university with registration counts
GET /drives/eligible - Drives the student can register for (student only)
GET /drives/{drive_id} - Get drive details
PUT /drives/{drive_id} - Update drive, including status (coordinator only)
GET /drives/{drive_id}/applications - Applicants (coordinator only)
"""

from fastapi import APIRouter, Depends
from typing import List

from campus_placement.core.auth import get_current_principal, require_coordinator, require_student
from campus_placement.schemas.schemas import (
    Drive, DriveApplicationView, DriveCreate, DriveSummary, DriveUpdate, Principal
)
from campus_placement.services.application_service import get_application_service
from campus_placement.services.drive_service import get_drive_service

router = APIRouter(prefix="/drives", tags=["Drives"])


@router.post("", response_model=Drive, status_code=201)
def create_drive(drive: DriveCreate, principal: Principal = Depends(require_coordinator)):
    """Create a new placement drive. It starts Active."""
    return get_drive_service().create(principal, drive)


@router.get("", response_model=List[DriveSummary])
def list_drives(principal: Principal = Depends(get_current_principal)):
    return get_drive_service().list_drives(principal)


@router.get("/eligible", response_model=List[Drive])
def list_eligible_drives(principal: Principal = Depends(require_student)):
    """Active drives the student qualifies for, soonest deadline first."""
    return get_drive_service().browse_eligible(principal)


@router.get("/{drive_id}", response_model=Drive)
def get_drive(drive_id: int, principal: Principal = Depends(get_current_principal)):
    return get_drive_service().get_drive(principal, drive_id)


@router.put("/{drive_id}", response_model=Drive)
def update_drive(drive_id: int, patch: DriveUpdate, principal: Principal = Depends(require_coordinator)):
    """Partial update. Set status to Completed or Cancelled to close the drive."""
    return get_drive_service().update(principal, drive_id, patch.model_dump(exclude_unset=True))


@router.get("/{drive_id}/applications", response_model=List[DriveApplicationView])
def list_drive_applications(drive_id: int, principal: Principal = Depends(require_coordinator)):
    return get_application_service().list_for_drive(principal, drive_id)
