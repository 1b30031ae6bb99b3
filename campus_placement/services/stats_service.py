"""
Dashboard Statistics

Aggregates for the coordinator and student dashboards. Nothing here is
stored; every number is computed from the current rows.
"""

from sqlalchemy import func, select

from campus_placement.core.config import get_settings
from campus_placement.db.database import get_db_session
from campus_placement.db.tables import applications, drives, students
from campus_placement.schemas.schemas import (
    CoordinatorStats,
    DriveStatus,
    PlacementStatus,
    Principal,
    StudentStats,
)
from campus_placement.services.drive_service import DriveService
from campus_placement.services.eligibility import closing_soon, eligible_drives
from campus_placement.services.identity_service import (
    IdentityService,
    require_coordinator,
    require_student,
)


class StatsService:

    def __init__(self):
        self.identity = IdentityService()
        self.drives = DriveService()

    def coordinator_stats(self, principal: Principal) -> CoordinatorStats:
        require_coordinator(principal)
        coordinator = self.identity.get_coordinator(principal.id)

        placed = students.c.placement_status == PlacementStatus.placed.value
        with get_db_session() as db:
            active_drives = db.execute(
                select(func.count(drives.c.id))
                .where(drives.c.coordinator_id == principal.id)
                .where(drives.c.status == DriveStatus.active.value)
            ).scalar_one()
            total_students = db.execute(
                select(func.count(students.c.id)).where(students.c.coordinator_id == principal.id)
            ).scalar_one()
            placed_students, avg_package = db.execute(
                select(func.count(students.c.id), func.avg(students.c.placed_package))
                .where(students.c.coordinator_id == principal.id)
                .where(placed)
            ).one()

        placement_rate = round(placed_students / total_students * 100) if total_students else 0
        return CoordinatorStats(
            active_drives=active_drives,
            total_students=total_students,
            placed_students=placed_students,
            placement_rate=placement_rate,
            avg_package=round(float(avg_package), 1) if avg_package is not None else 0.0,
            invite_code=coordinator.invite_code,
        )

    def student_stats(self, principal: Principal) -> StudentStats:
        require_student(principal)
        student = self.identity.get_student(principal.id)
        scope = self.drives.list_scope_drives(student.coordinator_id)

        with get_db_session() as db:
            application_count = db.execute(
                select(func.count(applications.c.id)).where(applications.c.student_id == student.id)
            ).scalar_one()

        return StudentStats(
            eligible_drives=len(eligible_drives(student, scope)),
            applications=application_count,
            upcoming_deadlines=len(
                closing_soon(student, scope, within_days=get_settings().upcoming_deadline_days)
            ),
            student=student,
        )


# ============================================================
# CONVENIENCE FUNCTIONS
# ============================================================

def get_stats_service() -> StatsService:
    """Get stats service instance."""
    return StatsService()
