"""
Application Lifecycle Manager

PURPOSE:
Students register for drives; coordinators move the resulting
applications through the recruitment pipeline.

STATE MACHINE (monotonic, terminal states are final):
    Registered  -> Shortlisted | Rejected
    Shortlisted -> Interview   | Rejected
    Interview   -> Selected    | Rejected

SIDE EFFECTS:
- Selected marks the student Placed with the drive's company and
  maximum CTC, in the same transaction as the status write.
- Withdrawal is only possible while still Registered.
- Status writes and withdrawals are conditional on the status just read,
  so a concurrent change turns them into an illegal-transition error.

The UNIQUE (student_id, drive_id) constraint is the authoritative guard
against duplicate registrations; the pre-check only gives a nicer error.
"""

import logging
from typing import Dict, List, Optional, Set

from sqlalchemy import delete, insert, select, update
from sqlalchemy.exc import IntegrityError

from campus_placement.core.errors import (
    ConflictError,
    IllegalTransitionError,
    IllegalWithdrawalError,
    IneligibleOperationError,
    NotFoundError,
    ValidationFailedError,
)
from campus_placement.db.database import get_db_session
from campus_placement.db.tables import applications, drives, resumes, students, utcnow
from campus_placement.schemas.schemas import (
    ApplicantSummary,
    Application,
    ApplicationStatus,
    Drive,
    DriveApplicationView,
    DriveStatus,
    PlacementStatus,
    Principal,
    StudentApplicationView,
)
from campus_placement.services.drive_service import DriveService
from campus_placement.services.eligibility import ineligibility_reasons
from campus_placement.services.identity_service import (
    IdentityService,
    require_coordinator,
    require_student,
)

logger = logging.getLogger(__name__)


ALLOWED_TRANSITIONS: Dict[ApplicationStatus, Set[ApplicationStatus]] = {
    ApplicationStatus.registered: {ApplicationStatus.shortlisted, ApplicationStatus.rejected},
    ApplicationStatus.shortlisted: {ApplicationStatus.interview, ApplicationStatus.rejected},
    ApplicationStatus.interview: {ApplicationStatus.selected, ApplicationStatus.rejected},
    ApplicationStatus.selected: set(),
    ApplicationStatus.rejected: set(),
}


def can_transition(current, new) -> bool:
    return ApplicationStatus(new) in ALLOWED_TRANSITIONS[ApplicationStatus(current)]


class ApplicationService:
    """
    Apply, withdraw and status updates for drive applications.
    """

    def __init__(self):
        self.identity = IdentityService()
        self.drives = DriveService()

    # ------------------------------------------------------------
    # Student actions
    # ------------------------------------------------------------

    def apply(
        self,
        principal: Principal,
        drive_id: int,
        resume_id: int,
        notes: Optional[str] = None
    ) -> Application:
        """
        Register the calling student for a drive with one of their resumes.

        Raises (checked in this order):
            NotFoundError: drive missing or outside the student's coordinator
            IneligibleOperationError: drive not Active / deadline passed
            NotFoundError: resume missing or not the student's
            IneligibleOperationError: eligibility rules fail
            ConflictError: already registered
        """
        require_student(principal)
        student = self.identity.get_student(principal.id)
        drive = self.drives.get_drive(principal, drive_id)
        now = utcnow()

        if drive.status != DriveStatus.active:
            raise IneligibleOperationError(
                f"Drive is {DriveStatus(drive.status).value}, not accepting registrations"
            )
        if drive.registration_deadline <= now:
            raise IneligibleOperationError("Registration deadline has passed")

        with get_db_session() as db:
            resume = db.execute(
                select(resumes.c.id)
                .where(resumes.c.id == resume_id)
                .where(resumes.c.student_id == student.id)
            ).fetchone()
        if not resume:
            raise NotFoundError("Resume not found")

        reasons = ineligibility_reasons(student, drive, now)
        if reasons:
            raise IneligibleOperationError("Not eligible: " + "; ".join(reasons))

        try:
            with get_db_session() as db:
                if self._already_applied(db, student.id, drive.id):
                    raise ConflictError("Already registered for this drive")
                result = db.execute(
                    insert(applications).values(
                        drive_id=drive.id,
                        student_id=student.id,
                        resume_id=resume_id,
                        status=ApplicationStatus.registered.value,
                        notes=notes,
                    )
                )
                application_id = result.inserted_primary_key[0]
        except IntegrityError as exc:
            raise ConflictError("Already registered for this drive") from exc

        logger.info("Student %s applied to drive %s (application %s)", student.id, drive.id, application_id)
        return self._load(application_id)

    def _already_applied(self, db, student_id: int, drive_id: int) -> bool:
        row = db.execute(
            select(applications.c.id)
            .where(applications.c.student_id == student_id)
            .where(applications.c.drive_id == drive_id)
        ).fetchone()
        return row is not None

    def withdraw(self, principal: Principal, application_id: int) -> None:
        """Delete the caller's application while it is still Registered."""
        require_student(principal)
        with get_db_session() as db:
            row = db.execute(
                select(applications.c.status)
                .where(applications.c.id == application_id)
                .where(applications.c.student_id == principal.id)
            ).fetchone()
            if not row:
                raise NotFoundError("Application not found")
            if row.status != ApplicationStatus.registered.value:
                raise IllegalWithdrawalError(row.status)

            # Conditional on the status just read; a concurrent status change wins
            result = db.execute(
                delete(applications)
                .where(applications.c.id == application_id)
                .where(applications.c.status == ApplicationStatus.registered.value)
            )
            if result.rowcount == 0:
                raise IllegalWithdrawalError(self._current_status(db, application_id))

        logger.info("Student %s withdrew application %s", principal.id, application_id)

    # ------------------------------------------------------------
    # Coordinator actions
    # ------------------------------------------------------------

    def set_status(
        self,
        principal: Principal,
        application_id: int,
        new_status,
        notes: Optional[str] = None
    ) -> Application:
        """
        Move an application along the pipeline.

        Selected also places the student (company + package) in the
        same transaction; if either write fails neither is kept.
        """
        require_coordinator(principal)
        try:
            new_status = ApplicationStatus(new_status)
        except ValueError as exc:
            raise ValidationFailedError(f"Unknown application status '{new_status}'") from exc

        with get_db_session() as db:
            row = db.execute(
                select(
                    applications.c.status.label("application_status"),
                    applications.c.student_id,
                    drives,
                )
                .join(drives, drives.c.id == applications.c.drive_id)
                .where(applications.c.id == application_id)
            ).fetchone()
            if not row or row.coordinator_id != principal.id:
                raise NotFoundError("Application not found")

            if not can_transition(row.application_status, new_status):
                raise IllegalTransitionError(row.application_status, new_status.value)

            values = {"status": new_status.value}
            if notes is not None:
                values["notes"] = notes
            result = db.execute(
                update(applications)
                .where(applications.c.id == application_id)
                .where(applications.c.status == row.application_status)
                .values(**values)
            )
            if result.rowcount == 0:
                raise IllegalTransitionError(self._current_status(db, application_id), new_status.value)

            if new_status == ApplicationStatus.selected:
                drive = Drive.model_validate(dict(row._mapping))
                self._mark_placed(db, row.student_id, drive)

        logger.info(
            "Coordinator %s moved application %s from %s to %s",
            principal.id, application_id, row.application_status, new_status.value
        )
        return self._load(application_id)

    def _current_status(self, db, application_id: int) -> str:
        return db.execute(
            select(applications.c.status).where(applications.c.id == application_id)
        ).scalar_one_or_none()

    def _mark_placed(self, db, student_id: int, drive: Drive) -> None:
        db.execute(
            update(students)
            .where(students.c.id == student_id)
            .values(
                placement_status=PlacementStatus.placed.value,
                placed_company=drive.company_name,
                placed_package=drive.ctc_max,
            )
        )
        logger.info("Student %s placed at %s (%.2f)", student_id, drive.company_name, drive.ctc_max)

    # ------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------

    def _load(self, application_id: int) -> Application:
        with get_db_session() as db:
            row = db.execute(select(applications).where(applications.c.id == application_id)).fetchone()
        if not row:
            raise NotFoundError("Application not found")
        return Application.model_validate(dict(row._mapping))

    def get_application(self, principal: Principal, application_id: int) -> Application:
        """Visible to the applying student and the coordinator owning the drive."""
        with get_db_session() as db:
            row = db.execute(
                select(applications, drives.c.coordinator_id)
                .join(drives, drives.c.id == applications.c.drive_id)
                .where(applications.c.id == application_id)
            ).fetchone()

        if not row:
            raise NotFoundError("Application not found")
        if principal.is_student and row.student_id != principal.id:
            raise NotFoundError("Application not found")
        if principal.is_coordinator and row.coordinator_id != principal.id:
            raise NotFoundError("Application not found")
        return Application.model_validate(dict(row._mapping))

    def list_for_student(self, principal: Principal) -> List[StudentApplicationView]:
        """The caller's applications with drive and resume names, newest first."""
        require_student(principal)
        query = (
            select(
                applications,
                drives.c.company_name,
                drives.c.job_role,
                resumes.c.name.label("resume_name"),
            )
            .join(drives, drives.c.id == applications.c.drive_id)
            .join(resumes, resumes.c.id == applications.c.resume_id)
            .where(applications.c.student_id == principal.id)
            .order_by(applications.c.applied_at.desc(), applications.c.id.desc())
        )
        with get_db_session() as db:
            rows = db.execute(query).fetchall()
        return [StudentApplicationView.model_validate(dict(row._mapping)) for row in rows]

    def list_for_drive(self, principal: Principal, drive_id: int) -> List[DriveApplicationView]:
        """Applicants of one of the caller's drives, newest first."""
        require_coordinator(principal)
        self.drives.get_drive(principal, drive_id)

        query = (
            select(
                applications,
                students.c.name.label("student_name"),
                students.c.roll_number,
                students.c.branch,
                students.c.cgpa,
                resumes.c.name.label("resume_name"),
            )
            .join(students, students.c.id == applications.c.student_id)
            .join(resumes, resumes.c.id == applications.c.resume_id)
            .where(applications.c.drive_id == drive_id)
            .order_by(applications.c.applied_at.desc(), applications.c.id.desc())
        )
        with get_db_session() as db:
            rows = db.execute(query).fetchall()

        views = []
        for row in rows:
            data = dict(row._mapping)
            data["student"] = ApplicantSummary(
                id=data["student_id"],
                name=data.pop("student_name"),
                roll_number=data.pop("roll_number"),
                branch=data.pop("branch"),
                cgpa=data.pop("cgpa"),
            )
            views.append(DriveApplicationView.model_validate(data))
        return views


# ============================================================
# CONVENIENCE FUNCTIONS
# ============================================================

def get_application_service() -> ApplicationService:
    """Get application service instance."""
    return ApplicationService()
