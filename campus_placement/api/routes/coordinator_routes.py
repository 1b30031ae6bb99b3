"""
Coordinator Routes (coordinator only)

GET /coordinator/stats - Dashboard statistics
GET /coordinator/students - Students with registration counts
PUT /coordinator/students/{student_id}/placement - Mark Opted Out / Not Placed
DELETE /coordinator/students/{student_id} - Remove student and their data
"""

from fastapi import APIRouter, Depends
from typing import List

from campus_placement.core.auth import require_coordinator
from campus_placement.schemas.schemas import (
    CoordinatorStats, MessageResponse, PlacementUpdate, Principal, Student, StudentSummary
)
from campus_placement.services.identity_service import get_identity_service
from campus_placement.services.stats_service import get_stats_service

router = APIRouter(prefix="/coordinator", tags=["Coordinator"])


@router.get("/stats", response_model=CoordinatorStats)
def get_coordinator_stats(principal: Principal = Depends(require_coordinator)):
    return get_stats_service().coordinator_stats(principal)


@router.get("/students", response_model=List[StudentSummary])
def list_students(principal: Principal = Depends(require_coordinator)):
    return get_identity_service().list_students(principal)


@router.put("/students/{student_id}/placement", response_model=Student)
def update_student_placement(
    student_id: int,
    update: PlacementUpdate,
    principal: Principal = Depends(require_coordinator)
):
    """'Placed' is rejected here; it is set when an application is Selected."""
    return get_identity_service().update_placement(principal, student_id, update.placement_status)


@router.delete("/students/{student_id}", response_model=MessageResponse)
def delete_student(student_id: int, principal: Principal = Depends(require_coordinator)):
    get_identity_service().delete_student(principal, student_id)
    return MessageResponse(message="Student deleted")
