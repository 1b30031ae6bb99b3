"""
Student Routes (student only)

GET /student/stats - Dashboard statistics
GET /student/peers - Students from the same university (messaging directory)
"""

from fastapi import APIRouter, Depends
from typing import List

from campus_placement.core.auth import require_student
from campus_placement.schemas.schemas import PeerSummary, Principal, StudentStats
from campus_placement.services.identity_service import get_identity_service
from campus_placement.services.stats_service import get_stats_service

router = APIRouter(prefix="/student", tags=["Students"])


@router.get("/stats", response_model=StudentStats)
def get_student_stats(principal: Principal = Depends(require_student)):
    return get_stats_service().student_stats(principal)


@router.get("/peers", response_model=List[PeerSummary])
def list_peers(principal: Principal = Depends(require_student)):
    return get_identity_service().list_peers(principal)
