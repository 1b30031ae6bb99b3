"""
Resume Registry

Students keep several resumes and pick one per application. At most one
resume per student is the default: the service clears the old default
in the same transaction that sets the new one, and a partial unique
index on (student_id) WHERE is_default backs it up.
"""

import logging
from typing import List, Optional

from sqlalchemy import delete, func, insert, select, update
from sqlalchemy.exc import IntegrityError

from campus_placement.core.errors import ConflictError, NotFoundError, validate_payload
from campus_placement.db.database import get_db_session
from campus_placement.db.tables import applications, resumes, students
from campus_placement.schemas.schemas import Principal, Resume, ResumeUpload
from campus_placement.services.identity_service import require_student
from campus_placement.utils.resume_files import validate_resume_file_name

logger = logging.getLogger(__name__)


def _clear_defaults(db, student_id: int) -> None:
    db.execute(
        update(resumes)
        .where(resumes.c.student_id == student_id)
        .where(resumes.c.is_default.is_(True))
        .values(is_default=False)
    )


class ResumeService:

    def upload(self, principal: Principal, meta, is_default: bool = False) -> Resume:
        """
        Register resume metadata for the calling student.
        The first resume always becomes the default.
        """
        require_student(principal)
        data = validate_payload(ResumeUpload, meta)
        validate_resume_file_name(data.file_name)

        try:
            with get_db_session() as db:
                existing = db.execute(
                    select(func.count(resumes.c.id)).where(resumes.c.student_id == principal.id)
                ).scalar_one()
                make_default = is_default or existing == 0
                if make_default:
                    _clear_defaults(db, principal.id)

                result = db.execute(
                    insert(resumes).values(
                        student_id=principal.id,
                        name=data.name,
                        file_name=data.file_name,
                        file_ref=data.file_ref,
                        is_default=make_default,
                    )
                )
                resume_id = result.inserted_primary_key[0]
        except IntegrityError as exc:
            raise ConflictError("Default resume changed concurrently, please retry") from exc

        logger.info("Student %s uploaded resume %s (default=%s)", principal.id, resume_id, make_default)
        return self._load(resume_id)

    def set_default(self, principal: Principal, resume_id: int) -> bool:
        """Make resume_id the default. False (and no change) if it is not the caller's."""
        require_student(principal)
        try:
            with get_db_session() as db:
                owned = db.execute(
                    select(resumes.c.id)
                    .where(resumes.c.id == resume_id)
                    .where(resumes.c.student_id == principal.id)
                ).fetchone()
                if not owned:
                    return False
                _clear_defaults(db, principal.id)
                db.execute(update(resumes).where(resumes.c.id == resume_id).values(is_default=True))
        except IntegrityError as exc:
            raise ConflictError("Default resume changed concurrently, please retry") from exc

        logger.info("Student %s set default resume %s", principal.id, resume_id)
        return True

    def delete(self, principal: Principal, resume_id: int) -> bool:
        """
        Delete one of the caller's resumes. False if it is not theirs.
        Deleting the default leaves the student without one.

        Raises:
            ConflictError: an application still references the resume
        """
        require_student(principal)
        with get_db_session() as db:
            owned = db.execute(
                select(resumes.c.id)
                .where(resumes.c.id == resume_id)
                .where(resumes.c.student_id == principal.id)
            ).fetchone()
            if not owned:
                return False

            in_use = db.execute(
                select(func.count(applications.c.id)).where(applications.c.resume_id == resume_id)
            ).scalar_one()
            if in_use:
                raise ConflictError("Resume is attached to an application and cannot be deleted")

            db.execute(delete(resumes).where(resumes.c.id == resume_id))

        logger.info("Student %s deleted resume %s", principal.id, resume_id)
        return True

    # ------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------

    def _load(self, resume_id: int) -> Resume:
        with get_db_session() as db:
            row = db.execute(select(resumes).where(resumes.c.id == resume_id)).fetchone()
        if not row:
            raise NotFoundError("Resume not found")
        return Resume.model_validate(dict(row._mapping))

    def list_resumes(self, principal: Principal) -> List[Resume]:
        require_student(principal)
        with get_db_session() as db:
            rows = db.execute(
                select(resumes)
                .where(resumes.c.student_id == principal.id)
                .order_by(resumes.c.uploaded_at.desc(), resumes.c.id.desc())
            ).fetchall()
        return [Resume.model_validate(dict(row._mapping)) for row in rows]

    def get_resume(self, principal: Principal, resume_id: int) -> Resume:
        """Visible to the owning student and to that student's coordinator."""
        with get_db_session() as db:
            row = db.execute(
                select(resumes, students.c.coordinator_id)
                .join(students, students.c.id == resumes.c.student_id)
                .where(resumes.c.id == resume_id)
            ).fetchone()

        if not row:
            raise NotFoundError("Resume not found")
        if principal.is_student and row.student_id != principal.id:
            raise NotFoundError("Resume not found")
        if principal.is_coordinator and row.coordinator_id != principal.id:
            raise NotFoundError("Resume not found")
        return Resume.model_validate(dict(row._mapping))

    def default_resume(self, student_id: int) -> Optional[Resume]:
        with get_db_session() as db:
            row = db.execute(
                select(resumes)
                .where(resumes.c.student_id == student_id)
                .where(resumes.c.is_default.is_(True))
            ).fetchone()
        return Resume.model_validate(dict(row._mapping)) if row else None


# ============================================================
# CONVENIENCE FUNCTIONS
# ============================================================

def get_resume_service() -> ResumeService:
    """Get resume service instance."""
    return ResumeService()
