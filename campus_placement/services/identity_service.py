"""
Identity Store

Coordinators and students, credentials and the invite-code relationship
that binds every student to exactly one coordinator.

FLOW:
1. Coordinator registers -> receives a unique invite code (XXXX-XXXX-XXXX)
2. Student registers with that invite code -> bound to the coordinator
3. Either logs in with email + password + role -> Principal

Credential hashing is pluggable (PasswordHasher); bcrypt by default.
"""

import logging
import secrets
import string
from typing import List, Optional

from sqlalchemy import delete, func, insert, select, update
from sqlalchemy.exc import IntegrityError

from campus_placement.core.auth import PasswordHasher, get_password_hasher
from campus_placement.core.config import get_settings
from campus_placement.core.errors import (
    ConflictError,
    IneligibleOperationError,
    InvalidCredentialsError,
    NotFoundError,
    ValidationFailedError,
    validate_payload,
)
from campus_placement.db.database import get_db_session
from campus_placement.db.tables import applications, coordinators, students
from campus_placement.schemas.schemas import (
    Coordinator,
    CoordinatorRegister,
    PeerSummary,
    PlacementStatus,
    Principal,
    Student,
    StudentRegister,
    StudentSummary,
    UserRole,
)

logger = logging.getLogger(__name__)

INVITE_CODE_ALPHABET = string.ascii_uppercase + string.digits
INVITE_CODE_ATTEMPTS = 10


def generate_invite_code() -> str:
    """Three dash-separated groups of four characters from A-Z0-9."""
    return "-".join(
        "".join(secrets.choice(INVITE_CODE_ALPHABET) for _ in range(4))
        for _ in range(3)
    )


def require_coordinator(principal: Principal) -> None:
    if not principal.is_coordinator:
        raise IneligibleOperationError("Only coordinators can perform this operation")


def require_student(principal: Principal) -> None:
    if not principal.is_student:
        raise IneligibleOperationError("Only students can perform this operation")


class IdentityService:
    """
    Registration, authentication and profile lookups.
    """

    def __init__(self, hasher: Optional[PasswordHasher] = None):
        self.hasher = hasher or get_password_hasher()

    # ------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------

    def register_coordinator(self, payload) -> Coordinator:
        """Create a coordinator account and issue its invite code."""
        data = validate_payload(CoordinatorRegister, payload)
        email = data.email.lower()

        try:
            with get_db_session() as db:
                existing = db.execute(
                    select(coordinators.c.id).where(coordinators.c.email == email)
                ).fetchone()
                if existing:
                    raise ConflictError("Email already registered")

                invite_code = self._unused_invite_code(db)
                result = db.execute(
                    insert(coordinators).values(
                        email=email,
                        password_hash=self.hasher.hash(data.password),
                        name=data.name,
                        university_name=data.university_name,
                        invite_code=invite_code,
                    )
                )
                coordinator_id = result.inserted_primary_key[0]
        except IntegrityError as exc:
            raise ConflictError("Email already registered") from exc

        logger.info("Registered coordinator %s with invite code %s", coordinator_id, invite_code)
        return self.get_coordinator(coordinator_id)

    def _unused_invite_code(self, db) -> str:
        for _ in range(INVITE_CODE_ATTEMPTS):
            code = generate_invite_code()
            taken = db.execute(
                select(coordinators.c.id).where(coordinators.c.invite_code == code)
            ).fetchone()
            if not taken:
                return code
        # 36^12 codes; reaching this means the generator is broken
        raise ConflictError("Could not allocate a unique invite code")

    def register_student(self, payload) -> Student:
        """
        Create a student bound to the coordinator owning the invite code.

        Raises:
            ValidationFailedError: unknown invite code or branch
            ConflictError: email or roll number already registered
        """
        data = validate_payload(StudentRegister, payload)
        email = data.email.lower()

        vocabulary = get_settings().branch_vocabulary
        if data.branch not in vocabulary:
            raise ValidationFailedError(
                f"Invalid branch '{data.branch}'. Allowed: {', '.join(vocabulary)}"
            )

        coordinator = self.coordinator_by_invite_code(data.invite_code)
        if coordinator is None:
            raise ValidationFailedError("Invalid invite code")

        try:
            with get_db_session() as db:
                existing = db.execute(
                    select(students.c.email, students.c.roll_number).where(
                        (students.c.email == email) | (students.c.roll_number == data.roll_number)
                    )
                ).fetchone()
                if existing:
                    if existing.email == email:
                        raise ConflictError("Email already registered")
                    raise ConflictError("Roll number already registered")

                result = db.execute(
                    insert(students).values(
                        email=email,
                        password_hash=self.hasher.hash(data.password),
                        name=data.name,
                        roll_number=data.roll_number,
                        branch=data.branch,
                        graduation_year=data.graduation_year,
                        cgpa=data.cgpa,
                        active_backlogs=data.active_backlogs,
                        placement_status=PlacementStatus.not_placed.value,
                        coordinator_id=coordinator.id,
                    )
                )
                student_id = result.inserted_primary_key[0]
        except IntegrityError as exc:
            raise ConflictError("Email or roll number already registered") from exc

        logger.info("Registered student %s under coordinator %s", student_id, coordinator.id)
        return self.get_student(student_id)

    # ------------------------------------------------------------
    # Authentication
    # ------------------------------------------------------------

    def authenticate(self, email: str, password: str, role) -> Principal:
        """Check credentials for the given role; InvalidCredentialsError on any mismatch."""
        role = UserRole(role)
        table = coordinators if role == UserRole.coordinator else students

        with get_db_session() as db:
            row = db.execute(
                select(table.c.id, table.c.password_hash).where(table.c.email == email.lower())
            ).fetchone()

        if not row or not self.hasher.verify(password, row.password_hash):
            raise InvalidCredentialsError("Invalid email or password")

        return Principal(id=row.id, role=role)

    # ------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------

    def get_coordinator(self, coordinator_id: int) -> Coordinator:
        with get_db_session() as db:
            row = db.execute(
                select(coordinators).where(coordinators.c.id == coordinator_id)
            ).fetchone()
        if not row:
            raise NotFoundError("Coordinator not found")
        return Coordinator.model_validate(dict(row._mapping))

    def get_student(self, student_id: int) -> Student:
        with get_db_session() as db:
            row = db.execute(select(students).where(students.c.id == student_id)).fetchone()
        if not row:
            raise NotFoundError("Student not found")
        return Student.model_validate(dict(row._mapping))

    def coordinator_by_invite_code(self, invite_code: str) -> Optional[Coordinator]:
        with get_db_session() as db:
            row = db.execute(
                select(coordinators).where(coordinators.c.invite_code == invite_code.strip().upper())
            ).fetchone()
        return Coordinator.model_validate(dict(row._mapping)) if row else None

    def get_profile(self, principal: Principal):
        """Coordinator or Student record of the caller."""
        if principal.is_coordinator:
            return self.get_coordinator(principal.id)
        return self.get_student(principal.id)

    def get_owned_student(self, principal: Principal, student_id: int) -> Student:
        """Student visible to a coordinator; NotFound for other coordinators' students."""
        require_coordinator(principal)
        student = self.get_student(student_id)
        if student.coordinator_id != principal.id:
            raise NotFoundError("Student not found")
        return student

    def list_students(self, principal: Principal) -> List[StudentSummary]:
        """Coordinator's students with their drive registration counts, newest first."""
        require_coordinator(principal)

        query = (
            select(students, func.count(applications.c.id).label("registrations_count"))
            .select_from(students.outerjoin(applications, applications.c.student_id == students.c.id))
            .where(students.c.coordinator_id == principal.id)
            .group_by(students.c.id)
            .order_by(students.c.created_at.desc(), students.c.id.desc())
        )
        with get_db_session() as db:
            rows = db.execute(query).fetchall()

        return [StudentSummary.model_validate(dict(row._mapping)) for row in rows]

    def list_peers(self, principal: Principal) -> List[PeerSummary]:
        """Other students under the same coordinator (messaging directory)."""
        require_student(principal)
        me = self.get_student(principal.id)

        with get_db_session() as db:
            rows = db.execute(
                select(
                    students.c.id,
                    students.c.name,
                    students.c.branch,
                    students.c.graduation_year,
                    students.c.placement_status,
                    students.c.placed_company,
                )
                .where(students.c.coordinator_id == me.coordinator_id)
                .where(students.c.id != me.id)
                .order_by(students.c.name)
            ).fetchall()

        return [PeerSummary.model_validate(dict(row._mapping)) for row in rows]

    # ------------------------------------------------------------
    # Coordinator actions on students
    # ------------------------------------------------------------

    def update_placement(self, principal: Principal, student_id: int, placement_status) -> Student:
        """
        Manually mark a student Opted Out or reset to Not Placed.

        Placed is reachable only through a Selected application, which
        also records company and package.
        """
        new_status = PlacementStatus(placement_status)
        if new_status == PlacementStatus.placed:
            raise ValidationFailedError(
                "Placement status 'Placed' is set only when an application is Selected"
            )

        self.get_owned_student(principal, student_id)
        with get_db_session() as db:
            db.execute(
                update(students)
                .where(students.c.id == student_id)
                .values(
                    placement_status=new_status.value,
                    placed_company=None,
                    placed_package=None,
                )
            )

        logger.info("Coordinator %s set student %s placement to %s", principal.id, student_id, new_status.value)
        return self.get_student(student_id)

    def delete_student(self, principal: Principal, student_id: int) -> None:
        """Remove a student; resumes, applications and community data cascade."""
        self.get_owned_student(principal, student_id)
        with get_db_session() as db:
            db.execute(delete(students).where(students.c.id == student_id))
        logger.info("Coordinator %s deleted student %s", principal.id, student_id)


# ============================================================
# CONVENIENCE FUNCTIONS
# ============================================================

def get_identity_service() -> IdentityService:
    """Get identity service instance."""
    return IdentityService()
