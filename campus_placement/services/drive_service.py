"""
Drive Registry

Recruitment drives posted by coordinators. A drive carries the
eligibility rules (min CGPA, max backlogs, allowed branches, deadline)
that the Eligibility Evaluator checks students against.

Registration counts are never stored: they are derived from the
applications table on every read.
"""

import logging
from typing import List

from sqlalchemy import func, insert, select, update

from campus_placement.core.config import get_settings
from campus_placement.core.errors import NotFoundError, ValidationFailedError, validate_payload
from campus_placement.db.database import get_db_session
from campus_placement.db.tables import applications, drives, utcnow
from campus_placement.schemas.schemas import (
    Drive,
    DriveCreate,
    DriveStatus,
    DriveSummary,
    DriveUpdate,
    Principal,
)
from campus_placement.services.eligibility import eligible_drives
from campus_placement.services.identity_service import IdentityService, require_coordinator, require_student

logger = logging.getLogger(__name__)


def check_drive_rules(fields: dict) -> None:
    """
    Range rules every stored drive satisfies.
    Raises ValidationFailedError on the first violation.
    """
    if fields["ctc_min"] <= 0 or fields["ctc_max"] <= 0:
        raise ValidationFailedError("CTC values must be positive")
    if fields["ctc_min"] >= fields["ctc_max"]:
        raise ValidationFailedError("Minimum CTC must be less than maximum CTC")
    if fields["min_cgpa"] < 0 or fields["min_cgpa"] > 10:
        raise ValidationFailedError("Minimum CGPA must be between 0 and 10")
    if fields["max_backlogs"] < 0:
        raise ValidationFailedError("Maximum backlogs cannot be negative")

    branches = fields["allowed_branches"]
    if not branches:
        raise ValidationFailedError("At least one branch must be allowed")
    vocabulary = get_settings().branch_vocabulary
    unknown = [b for b in branches if b not in vocabulary]
    if unknown:
        raise ValidationFailedError(
            f"Unknown branches: {', '.join(unknown)}. Allowed: {', '.join(vocabulary)}"
        )


class DriveService:
    """
    Create, update and list drives.
    """

    def __init__(self):
        self.identity = IdentityService()

    def create(self, principal: Principal, fields) -> Drive:
        require_coordinator(principal)
        data = validate_payload(DriveCreate, fields)
        values = data.model_dump()
        # Duplicates are meaningless and would skew the branch filter
        values["allowed_branches"] = list(dict.fromkeys(values["allowed_branches"]))

        check_drive_rules(values)
        if values["registration_deadline"] <= utcnow():
            raise ValidationFailedError("Registration deadline must be in the future")

        with get_db_session() as db:
            result = db.execute(
                insert(drives).values(
                    **values,
                    status=DriveStatus.active.value,
                    coordinator_id=principal.id,
                )
            )
            drive_id = result.inserted_primary_key[0]

        logger.info("Coordinator %s created drive %s (%s)", principal.id, drive_id, values["company_name"])
        return self._load(drive_id)

    def update(self, principal: Principal, drive_id: int, patch) -> Drive:
        """
        Apply a partial update. Any status change is allowed; the merged
        drive must still satisfy the range rules.
        """
        require_coordinator(principal)
        data = validate_payload(DriveUpdate, patch)
        changes = data.model_dump(exclude_unset=True)
        changes = {k: v for k, v in changes.items() if v is not None}

        current = self.get_drive(principal, drive_id)
        if not changes:
            return current

        if "status" in changes:
            changes["status"] = DriveStatus(changes["status"]).value
        if "allowed_branches" in changes:
            changes["allowed_branches"] = list(dict.fromkeys(changes["allowed_branches"]))

        merged = current.model_dump()
        merged.update(changes)
        check_drive_rules(merged)

        with get_db_session() as db:
            db.execute(update(drives).where(drives.c.id == drive_id).values(**changes))

        logger.info("Coordinator %s updated drive %s: %s", principal.id, drive_id, sorted(changes))
        return self._load(drive_id)

    # ------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------

    def _load(self, drive_id: int) -> Drive:
        with get_db_session() as db:
            row = db.execute(select(drives).where(drives.c.id == drive_id)).fetchone()
        if not row:
            raise NotFoundError("Drive not found")
        return Drive.model_validate(dict(row._mapping))

    def scope_coordinator_id(self, principal: Principal) -> int:
        """Coordinator whose drives the principal can see."""
        if principal.is_coordinator:
            return principal.id
        return self.identity.get_student(principal.id).coordinator_id

    def get_drive(self, principal: Principal, drive_id: int) -> Drive:
        """Drive visible to the principal; NotFound outside their coordinator."""
        drive = self._load(drive_id)
        if drive.coordinator_id != self.scope_coordinator_id(principal):
            raise NotFoundError("Drive not found")
        return drive

    def registration_count(self, drive_id: int) -> int:
        with get_db_session() as db:
            return db.execute(
                select(func.count(applications.c.id)).where(applications.c.drive_id == drive_id)
            ).scalar_one()

    def list_drives(self, principal: Principal) -> List[DriveSummary]:
        """All drives in the principal's scope, newest first, with registration counts."""
        coordinator_id = self.scope_coordinator_id(principal)

        query = (
            select(drives, func.count(applications.c.id).label("registrations_count"))
            .select_from(drives.outerjoin(applications, applications.c.drive_id == drives.c.id))
            .where(drives.c.coordinator_id == coordinator_id)
            .group_by(drives.c.id)
            .order_by(drives.c.created_at.desc(), drives.c.id.desc())
        )
        with get_db_session() as db:
            rows = db.execute(query).fetchall()

        return [DriveSummary.model_validate(dict(row._mapping)) for row in rows]

    def list_scope_drives(self, coordinator_id: int) -> List[Drive]:
        with get_db_session() as db:
            rows = db.execute(
                select(drives).where(drives.c.coordinator_id == coordinator_id).order_by(drives.c.id)
            ).fetchall()
        return [Drive.model_validate(dict(row._mapping)) for row in rows]

    def browse_eligible(self, principal: Principal) -> List[Drive]:
        """Drives the student may register for right now, soonest deadline first."""
        require_student(principal)
        student = self.identity.get_student(principal.id)
        candidates = self.list_scope_drives(student.coordinator_id)
        return sorted(eligible_drives(student, candidates), key=lambda d: d.registration_deadline)


# ============================================================
# CONVENIENCE FUNCTIONS
# ============================================================

def get_drive_service() -> DriveService:
    """Get drive service instance."""
    return DriveService()
