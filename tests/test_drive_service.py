from datetime import timedelta

import pytest

from campus_placement.core.errors import IneligibleOperationError, NotFoundError, ValidationFailedError
from campus_placement.db.tables import utcnow
from campus_placement.schemas.schemas import DriveStatus
from campus_placement.services.application_service import ApplicationService
from campus_placement.services.drive_service import DriveService

from tests.conftest import principal_of


def drive_fields(**overrides):
    fields = {
        "company_name": "Globex",
        "job_role": "Data Analyst",
        "ctc_min": 5.0,
        "ctc_max": 9.0,
        "job_description": "Analyse placement data and build dashboards.",
        "min_cgpa": 6.5,
        "max_backlogs": 1,
        "allowed_branches": ["CSE", "ECE"],
        "registration_deadline": utcnow() + timedelta(days=10),
    }
    fields.update(overrides)
    return fields


def test_create_starts_active(coordinator):
    drive = DriveService().create(principal_of(coordinator), drive_fields())
    assert drive.status == DriveStatus.active
    assert drive.coordinator_id == coordinator.id
    assert drive.allowed_branches == ["CSE", "ECE"]


def test_equal_ctc_range_rejected(coordinator):
    with pytest.raises(ValidationFailedError, match="less than"):
        DriveService().create(principal_of(coordinator), drive_fields(ctc_min=10, ctc_max=10))


@pytest.mark.parametrize("overrides", [
    {"ctc_min": 12.0, "ctc_max": 9.0},
    {"ctc_min": 0, "ctc_max": 9.0},
    {"ctc_min": 5.0, "ctc_max": -1},
    {"allowed_branches": []},
    {"allowed_branches": ["CSE", "Astrology"]},
    {"registration_deadline": utcnow() - timedelta(minutes=1)},
    {"min_cgpa": -0.5},
    {"min_cgpa": 10.5},
    {"max_backlogs": -1},
])
def test_create_validation_failures(coordinator, overrides):
    with pytest.raises(ValidationFailedError):
        DriveService().create(principal_of(coordinator), drive_fields(**overrides))


def test_students_cannot_create_drives(student):
    with pytest.raises(IneligibleOperationError):
        DriveService().create(principal_of(student), drive_fields())


def test_update_status_and_fields(coordinator, drive):
    service = DriveService()
    updated = service.update(principal_of(coordinator), drive.id, {"status": "Cancelled", "ctc_max": 20.0})
    assert updated.status == DriveStatus.cancelled
    assert updated.ctc_max == 20.0
    assert updated.company_name == drive.company_name


def test_update_allows_past_deadline(coordinator, drive):
    past = utcnow() - timedelta(days=1)
    updated = DriveService().update(principal_of(coordinator), drive.id, {"registration_deadline": past})
    assert updated.registration_deadline < utcnow()


def test_update_keeps_range_rules(coordinator, drive):
    with pytest.raises(ValidationFailedError):
        DriveService().update(principal_of(coordinator), drive.id, {"ctc_min": drive.ctc_max})


def test_update_by_other_coordinator_is_not_found(factory, drive):
    other = factory.coordinator()
    with pytest.raises(NotFoundError):
        DriveService().update(principal_of(other), drive.id, {"status": "Completed"})


def test_drives_are_scoped_to_coordinator(factory, coordinator, student, drive):
    other = factory.coordinator()
    foreign = factory.drive(other, company_name="Initech")
    service = DriveService()

    assert [d.id for d in service.list_drives(principal_of(student))] == [drive.id]
    with pytest.raises(NotFoundError):
        service.get_drive(principal_of(student), foreign.id)


def test_registration_count_is_derived(factory, coordinator, drive, student, resume):
    other_student = factory.student(coordinator)
    other_resume = factory.resume(other_student)
    applications = ApplicationService()
    applications.apply(principal_of(student), drive.id, resume.id)
    second = applications.apply(principal_of(other_student), drive.id, other_resume.id)

    service = DriveService()
    assert service.registration_count(drive.id) == 2
    assert service.list_drives(principal_of(coordinator))[0].registrations_count == 2

    applications.withdraw(principal_of(other_student), second.id)
    assert service.registration_count(drive.id) == 1


def test_browse_eligible_sorted_by_deadline(factory, coordinator, student):
    late = factory.drive(coordinator, registration_deadline=utcnow() + timedelta(days=20))
    soon = factory.drive(coordinator, registration_deadline=utcnow() + timedelta(days=2))
    factory.drive(coordinator, allowed_branches=["Civil"])
    closed = factory.drive(coordinator)
    DriveService().update(principal_of(coordinator), closed.id, {"status": "Completed"})

    result = DriveService().browse_eligible(principal_of(student))
    assert [d.id for d in result] == [soon.id, late.id]


def test_branch_vocabulary_read_at_call_time(override_settings, coordinator):
    service = DriveService()
    with pytest.raises(ValidationFailedError, match="AIML"):
        service.create(principal_of(coordinator), drive_fields(allowed_branches=["AIML"]))

    override_settings(BRANCH_VOCABULARY='["CSE", "AIML"]')
    drive = service.create(principal_of(coordinator), drive_fields(allowed_branches=["AIML"]))
    assert drive.allowed_branches == ["AIML"]
