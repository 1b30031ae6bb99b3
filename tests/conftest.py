import itertools
from datetime import timedelta

import pytest

from campus_placement.core.auth import BcryptHasher, set_password_hasher
from campus_placement.core.config import get_settings
from campus_placement.db import database
from campus_placement.db.tables import utcnow
from campus_placement.schemas.schemas import Coordinator, Principal, UserRole
from campus_placement.services.drive_service import DriveService
from campus_placement.services.identity_service import IdentityService
from campus_placement.services.resume_service import ResumeService

PASSWORD = "secret123"


@pytest.fixture(autouse=True)
def fast_hasher():
    set_password_hasher(BcryptHasher(rounds=4))
    yield
    set_password_hasher(None)


@pytest.fixture(autouse=True)
def engine(tmp_path, fast_hasher):
    """Fresh SQLite file per test, foreign keys on."""
    engine = database.configure_engine(f"sqlite:///{tmp_path / 'placement.db'}")
    database.init_schema()
    yield engine
    engine.dispose()


@pytest.fixture
def override_settings(monkeypatch):
    """Set environment overrides and rebuild the cached Settings."""
    def apply(**env):
        for key, value in env.items():
            monkeypatch.setenv(key, value)
        get_settings.cache_clear()

    yield apply
    get_settings.cache_clear()


def principal_of(record) -> Principal:
    role = UserRole.coordinator if isinstance(record, Coordinator) else UserRole.student
    return Principal(id=record.id, role=role)


class Factory:
    """Creates records through the real services."""

    def __init__(self):
        self.identity = IdentityService()
        self.drives = DriveService()
        self.resumes = ResumeService()
        self._seq = itertools.count(1)

    def coordinator(self, **overrides):
        n = next(self._seq)
        payload = {
            "email": f"coordinator{n}@university.edu",
            "password": PASSWORD,
            "name": f"Coordinator {n}",
            "university_name": f"University {n}",
        }
        payload.update(overrides)
        return self.identity.register_coordinator(payload)

    def student(self, coordinator, **overrides):
        n = next(self._seq)
        payload = {
            "email": f"student{n}@university.edu",
            "password": PASSWORD,
            "name": f"Student {n}",
            "roll_number": f"ROLL{n:04d}",
            "branch": "CSE",
            "graduation_year": 2025,
            "cgpa": 8.0,
            "active_backlogs": 0,
            "invite_code": coordinator.invite_code,
        }
        payload.update(overrides)
        return self.identity.register_student(payload)

    def drive(self, coordinator, **overrides):
        fields = {
            "company_name": "Acme Corp",
            "job_role": "Software Engineer",
            "ctc_min": 6.0,
            "ctc_max": 12.0,
            "job_description": "Build and maintain backend services in Python.",
            "min_cgpa": 7.0,
            "max_backlogs": 0,
            "allowed_branches": ["CSE", "IT"],
            "registration_deadline": utcnow() + timedelta(days=30),
        }
        fields.update(overrides)
        return self.drives.create(principal_of(coordinator), fields)

    def resume(self, student, is_default=False, **overrides):
        n = next(self._seq)
        meta = {"name": f"Resume {n}", "file_name": f"resume{n}.pdf", "file_ref": f"uploads/resume{n}.pdf"}
        meta.update(overrides)
        return self.resumes.upload(principal_of(student), meta, is_default=is_default)


@pytest.fixture
def factory():
    return Factory()


@pytest.fixture
def coordinator(factory):
    return factory.coordinator()


@pytest.fixture
def student(factory, coordinator):
    return factory.student(coordinator)


@pytest.fixture
def drive(factory, coordinator):
    return factory.drive(coordinator)


@pytest.fixture
def resume(factory, student):
    return factory.resume(student)
