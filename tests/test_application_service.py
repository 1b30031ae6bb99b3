from datetime import timedelta

import pytest
from sqlalchemy import event, update

from campus_placement.core.errors import (
    ConflictError,
    IllegalTransitionError,
    IllegalWithdrawalError,
    IneligibleOperationError,
    NotFoundError,
    ValidationFailedError,
)
from campus_placement.db.database import get_db_session
from campus_placement.db.tables import applications, utcnow
from campus_placement.schemas.schemas import ApplicationStatus, PlacementStatus
from campus_placement.services import application_service
from campus_placement.services.application_service import (
    ALLOWED_TRANSITIONS,
    ApplicationService,
    can_transition,
)
from campus_placement.services.drive_service import DriveService
from campus_placement.services.identity_service import IdentityService

from tests.conftest import principal_of


def force_status(application_id, status):
    with get_db_session() as db:
        db.execute(update(applications).where(applications.c.id == application_id).values(status=status))


# ============================================================
# APPLY
# ============================================================

def test_apply_creates_registered_application(student, drive, resume):
    application = ApplicationService().apply(principal_of(student), drive.id, resume.id, notes="Keen")
    assert application.status == ApplicationStatus.registered
    assert application.match_score is None
    assert application.notes == "Keen"
    assert (application.student_id, application.drive_id, application.resume_id) == (student.id, drive.id, resume.id)


def test_apply_twice_conflicts(student, drive, resume):
    service = ApplicationService()
    service.apply(principal_of(student), drive.id, resume.id)
    with pytest.raises(ConflictError):
        service.apply(principal_of(student), drive.id, resume.id)


def test_unique_constraint_guards_when_precheck_is_bypassed(monkeypatch, student, drive, resume):
    service = ApplicationService()
    service.apply(principal_of(student), drive.id, resume.id)

    monkeypatch.setattr(ApplicationService, "_already_applied", lambda self, db, s, d: False)
    with pytest.raises(ConflictError):
        service.apply(principal_of(student), drive.id, resume.id)


def test_apply_to_missing_drive(student, resume):
    with pytest.raises(NotFoundError):
        ApplicationService().apply(principal_of(student), 9999, resume.id)


def test_apply_to_other_universitys_drive(factory, student, resume):
    foreign = factory.drive(factory.coordinator())
    with pytest.raises(NotFoundError):
        ApplicationService().apply(principal_of(student), foreign.id, resume.id)


@pytest.mark.parametrize("status", ["Completed", "Cancelled"])
def test_apply_to_closed_drive(coordinator, student, drive, resume, status):
    DriveService().update(principal_of(coordinator), drive.id, {"status": status})
    with pytest.raises(IneligibleOperationError, match=status):
        ApplicationService().apply(principal_of(student), drive.id, resume.id)


def test_apply_after_deadline(coordinator, student, drive, resume):
    DriveService().update(
        principal_of(coordinator), drive.id, {"registration_deadline": utcnow() - timedelta(seconds=1)}
    )
    with pytest.raises(IneligibleOperationError, match="deadline"):
        ApplicationService().apply(principal_of(student), drive.id, resume.id)


def test_apply_with_someone_elses_resume(factory, coordinator, student, drive):
    factory.resume(student)
    other_resume = factory.resume(factory.student(coordinator))
    with pytest.raises(NotFoundError):
        ApplicationService().apply(principal_of(student), drive.id, other_resume.id)


def test_apply_when_ineligible(factory, coordinator, drive):
    weak = factory.student(coordinator, cgpa=6.0, active_backlogs=2)
    weak_resume = factory.resume(weak)
    with pytest.raises(IneligibleOperationError) as excinfo:
        ApplicationService().apply(principal_of(weak), drive.id, weak_resume.id)
    assert "CGPA" in excinfo.value.detail
    assert "backlogs" in excinfo.value.detail


def test_failure_order_closed_drive_before_resume(coordinator, student, drive):
    DriveService().update(principal_of(coordinator), drive.id, {"status": "Cancelled"})
    with pytest.raises(IneligibleOperationError):
        ApplicationService().apply(principal_of(student), drive.id, 9999)


def test_coordinator_cannot_apply(coordinator, drive, resume):
    with pytest.raises(IneligibleOperationError):
        ApplicationService().apply(principal_of(coordinator), drive.id, resume.id)


# ============================================================
# WITHDRAW
# ============================================================

def test_withdraw_registered(student, drive, resume):
    service = ApplicationService()
    application = service.apply(principal_of(student), drive.id, resume.id)
    service.withdraw(principal_of(student), application.id)
    with pytest.raises(NotFoundError):
        service.get_application(principal_of(student), application.id)


@pytest.mark.parametrize("status", ["Shortlisted", "Interview", "Selected", "Rejected"])
def test_withdraw_after_processing_started(student, drive, resume, status):
    service = ApplicationService()
    application = service.apply(principal_of(student), drive.id, resume.id)
    force_status(application.id, status)

    with pytest.raises(IllegalWithdrawalError) as excinfo:
        service.withdraw(principal_of(student), application.id)
    assert isinstance(excinfo.value, IneligibleOperationError)
    assert service.get_application(principal_of(student), application.id).status == status


def test_withdraw_loses_to_concurrent_shortlist(engine, student, drive, resume):
    service = ApplicationService()
    application = service.apply(principal_of(student), drive.id, resume.id)
    shortlisted = []

    def shortlist_first(conn, cursor, statement, parameters, context, executemany):
        if statement.lstrip().upper().startswith("DELETE FROM APPLICATIONS") and not shortlisted:
            shortlisted.append(True)
            force_status(application.id, "Shortlisted")

    event.listen(engine, "before_cursor_execute", shortlist_first)
    try:
        with pytest.raises(IllegalWithdrawalError) as excinfo:
            service.withdraw(principal_of(student), application.id)
    finally:
        event.remove(engine, "before_cursor_execute", shortlist_first)

    assert excinfo.value.current == "Shortlisted"
    assert service.get_application(principal_of(student), application.id).status == ApplicationStatus.shortlisted


def test_withdraw_someone_elses_application(factory, coordinator, student, drive, resume):
    application = ApplicationService().apply(principal_of(student), drive.id, resume.id)
    other = factory.student(coordinator)
    with pytest.raises(NotFoundError):
        ApplicationService().withdraw(principal_of(other), application.id)


# ============================================================
# STATUS TRANSITIONS
# ============================================================

def test_transition_table():
    statuses = list(ApplicationStatus)
    allowed = {(a, b) for a, targets in ALLOWED_TRANSITIONS.items() for b in targets}
    assert allowed == {
        (ApplicationStatus.registered, ApplicationStatus.shortlisted),
        (ApplicationStatus.registered, ApplicationStatus.rejected),
        (ApplicationStatus.shortlisted, ApplicationStatus.interview),
        (ApplicationStatus.shortlisted, ApplicationStatus.rejected),
        (ApplicationStatus.interview, ApplicationStatus.selected),
        (ApplicationStatus.interview, ApplicationStatus.rejected),
    }
    for current in statuses:
        for new in statuses:
            assert can_transition(current.value, new.value) is ((current, new) in allowed)


def test_full_pipeline_to_selected_places_student(coordinator, student, drive, resume):
    service = ApplicationService()
    application = service.apply(principal_of(student), drive.id, resume.id)
    for status in ["Shortlisted", "Interview", "Selected"]:
        application = service.set_status(principal_of(coordinator), application.id, status)

    assert application.status == ApplicationStatus.selected
    placed = IdentityService().get_student(student.id)
    assert placed.placement_status == PlacementStatus.placed
    assert placed.placed_company == drive.company_name
    assert placed.placed_package == drive.ctc_max


def test_rejected_does_not_place(coordinator, student, drive, resume):
    service = ApplicationService()
    application = service.apply(principal_of(student), drive.id, resume.id)
    service.set_status(principal_of(coordinator), application.id, "Rejected", notes="Not a fit")

    refreshed = service.get_application(principal_of(coordinator), application.id)
    assert refreshed.status == ApplicationStatus.rejected
    assert refreshed.notes == "Not a fit"
    assert IdentityService().get_student(student.id).placement_status == PlacementStatus.not_placed


@pytest.mark.parametrize("current,requested", [
    ("Registered", "Selected"),
    ("Registered", "Interview"),
    ("Registered", "Registered"),
    ("Interview", "Shortlisted"),
    ("Selected", "Registered"),
    ("Rejected", "Shortlisted"),
])
def test_illegal_transitions_rejected(coordinator, student, drive, resume, current, requested):
    service = ApplicationService()
    application = service.apply(principal_of(student), drive.id, resume.id)
    force_status(application.id, current)

    with pytest.raises(IllegalTransitionError):
        service.set_status(principal_of(coordinator), application.id, requested)
    assert service.get_application(principal_of(coordinator), application.id).status == current


def test_unknown_status_is_validation_failure(coordinator, student, drive, resume):
    application = ApplicationService().apply(principal_of(student), drive.id, resume.id)
    with pytest.raises(ValidationFailedError):
        ApplicationService().set_status(principal_of(coordinator), application.id, "Hired")


def test_other_coordinator_cannot_set_status(factory, student, drive, resume):
    application = ApplicationService().apply(principal_of(student), drive.id, resume.id)
    with pytest.raises(NotFoundError):
        ApplicationService().set_status(principal_of(factory.coordinator()), application.id, "Shortlisted")


def test_concurrent_rejection_is_not_overwritten(monkeypatch, coordinator, student, drive, resume):
    service = ApplicationService()
    application = service.apply(principal_of(student), drive.id, resume.id)
    force_status(application.id, "Interview")

    def reject_meanwhile(current, requested):
        # Another coordinator request commits between the read and the write
        force_status(application.id, "Rejected")
        return can_transition(current, requested)

    monkeypatch.setattr(application_service, "can_transition", reject_meanwhile)
    with pytest.raises(IllegalTransitionError) as excinfo:
        service.set_status(principal_of(coordinator), application.id, "Selected")

    assert excinfo.value.current == "Rejected"
    assert service.get_application(principal_of(coordinator), application.id).status == ApplicationStatus.rejected
    assert IdentityService().get_student(student.id).placement_status == PlacementStatus.not_placed


def test_selected_cascade_is_atomic(monkeypatch, coordinator, student, drive, resume):
    service = ApplicationService()
    application = service.apply(principal_of(student), drive.id, resume.id)
    force_status(application.id, "Interview")

    def explode(self, db, student_id, drive):
        raise RuntimeError("placement write failed")

    monkeypatch.setattr(ApplicationService, "_mark_placed", explode)
    with pytest.raises(RuntimeError):
        service.set_status(principal_of(coordinator), application.id, "Selected")

    assert service.get_application(principal_of(coordinator), application.id).status == ApplicationStatus.interview
    assert IdentityService().get_student(student.id).placement_status == PlacementStatus.not_placed


# ============================================================
# READS
# ============================================================

def test_list_views(factory, coordinator, student, drive, resume):
    service = ApplicationService()
    application = service.apply(principal_of(student), drive.id, resume.id)

    mine = service.list_for_student(principal_of(student))
    assert [a.id for a in mine] == [application.id]
    assert mine[0].company_name == drive.company_name
    assert mine[0].resume_name == resume.name

    applicants = service.list_for_drive(principal_of(coordinator), drive.id)
    assert applicants[0].student.roll_number == student.roll_number
    assert applicants[0].student.cgpa == student.cgpa

    with pytest.raises(NotFoundError):
        service.list_for_drive(principal_of(factory.coordinator()), drive.id)
