"""
Relational schema for the placement engine.

Tables are declared with SQLAlchemy Core so the same DDL runs on
PostgreSQL (production) and SQLite (tests). Constraints here are the
authoritative guards for the engine's invariants:

- applications: UNIQUE (student_id, drive_id)
- ai_analyses: UNIQUE (application_id), one cached analysis per application
- discussion_likes: UNIQUE (discussion_id, student_id)
- resumes: partial unique index, at most one default per student
- ON DELETE CASCADE from students to everything they own
"""

from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    JSON,
    MetaData,
    Numeric,
    String,
    Table,
    Text,
    UniqueConstraint,
)

metadata = MetaData()


def utcnow() -> datetime:
    """Naive UTC timestamp, the storage convention for every DateTime column."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


coordinators = Table(
    "coordinators",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("email", String(255), nullable=False, unique=True),
    Column("password_hash", String(255), nullable=False),
    Column("name", String(100), nullable=False),
    Column("university_name", String(200), nullable=False),
    Column("invite_code", String(14), nullable=False, unique=True),
    Column("created_at", DateTime, nullable=False, default=utcnow),
)

students = Table(
    "students",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("email", String(255), nullable=False, unique=True),
    Column("password_hash", String(255), nullable=False),
    Column("name", String(100), nullable=False),
    Column("roll_number", String(50), nullable=False, unique=True),
    Column("branch", String(50), nullable=False),
    Column("graduation_year", Integer, nullable=False),
    Column("cgpa", Numeric(4, 2, asdecimal=False), nullable=False),
    Column("active_backlogs", Integer, nullable=False, default=0),
    Column("placement_status", String(20), nullable=False, default="Not Placed"),
    Column("placed_company", String(200)),
    Column("placed_package", Numeric(7, 2, asdecimal=False)),
    Column(
        "coordinator_id",
        Integer,
        ForeignKey("coordinators.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    ),
    Column("created_at", DateTime, nullable=False, default=utcnow),
    CheckConstraint("cgpa >= 0 AND cgpa <= 10", name="ck_students_cgpa_range"),
    CheckConstraint("active_backlogs >= 0", name="ck_students_backlogs_non_negative"),
)

drives = Table(
    "drives",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("company_name", String(200), nullable=False),
    Column("job_role", String(200), nullable=False),
    Column("ctc_min", Numeric(7, 2, asdecimal=False), nullable=False),
    Column("ctc_max", Numeric(7, 2, asdecimal=False), nullable=False),
    Column("job_description", Text, nullable=False),
    Column("min_cgpa", Numeric(4, 2, asdecimal=False), nullable=False),
    Column("max_backlogs", Integer, nullable=False, default=0),
    Column("allowed_branches", JSON, nullable=False),
    Column("registration_deadline", DateTime, nullable=False),
    Column("status", String(20), nullable=False, default="Active"),
    Column(
        "coordinator_id",
        Integer,
        ForeignKey("coordinators.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    ),
    Column("created_at", DateTime, nullable=False, default=utcnow),
    CheckConstraint("ctc_min > 0 AND ctc_max > 0 AND ctc_min < ctc_max", name="ck_drives_ctc_range"),
)

resumes = Table(
    "resumes",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column(
        "student_id",
        Integer,
        ForeignKey("students.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    ),
    Column("name", String(200), nullable=False),
    Column("file_name", String(255), nullable=False),
    Column("file_ref", String(500), nullable=False),
    Column("is_default", Boolean, nullable=False, default=False),
    Column("uploaded_at", DateTime, nullable=False, default=utcnow),
)

Index(
    "uq_resumes_single_default",
    resumes.c.student_id,
    unique=True,
    postgresql_where=resumes.c.is_default.is_(True),
    sqlite_where=resumes.c.is_default.is_(True),
)

applications = Table(
    "applications",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column(
        "drive_id",
        Integer,
        ForeignKey("drives.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    ),
    Column(
        "student_id",
        Integer,
        ForeignKey("students.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    ),
    # No cascade: a resume attached to an application cannot be deleted
    Column("resume_id", Integer, ForeignKey("resumes.id"), nullable=False),
    Column("status", String(20), nullable=False, default="Registered"),
    Column("match_score", Integer),
    Column("notes", Text),
    Column("applied_at", DateTime, nullable=False, default=utcnow),
    Column("updated_at", DateTime, nullable=False, default=utcnow, onupdate=utcnow),
    UniqueConstraint("student_id", "drive_id", name="uq_applications_student_drive"),
)

ai_analyses = Table(
    "ai_analyses",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column(
        "application_id",
        Integer,
        ForeignKey("applications.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    ),
    Column("match_score", Integer, nullable=False),
    Column("missing_keywords", JSON, nullable=False),
    Column("suggestions", JSON, nullable=False),
    Column("analyzed_at", DateTime, nullable=False, default=utcnow),
)

discussions = Table(
    "discussions",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("title", String(200), nullable=False),
    Column("content", Text, nullable=False),
    Column(
        "author_id",
        Integer,
        ForeignKey("students.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    ),
    Column("tags", JSON, nullable=False),
    Column("likes_count", Integer, nullable=False, default=0),
    Column("created_at", DateTime, nullable=False, default=utcnow),
    CheckConstraint("likes_count >= 0", name="ck_discussions_likes_non_negative"),
)

discussion_likes = Table(
    "discussion_likes",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column(
        "discussion_id",
        Integer,
        ForeignKey("discussions.id", ondelete="CASCADE"),
        nullable=False,
    ),
    Column(
        "student_id",
        Integer,
        ForeignKey("students.id", ondelete="CASCADE"),
        nullable=False,
    ),
    Column("created_at", DateTime, nullable=False, default=utcnow),
    UniqueConstraint("discussion_id", "student_id", name="uq_discussion_likes_pair"),
)

discussion_replies = Table(
    "discussion_replies",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column(
        "discussion_id",
        Integer,
        ForeignKey("discussions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    ),
    Column(
        "author_id",
        Integer,
        ForeignKey("students.id", ondelete="CASCADE"),
        nullable=False,
    ),
    Column("content", Text, nullable=False),
    Column("created_at", DateTime, nullable=False, default=utcnow),
)

messages = Table(
    "messages",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column(
        "sender_id",
        Integer,
        ForeignKey("students.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    ),
    Column(
        "receiver_id",
        Integer,
        ForeignKey("students.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    ),
    Column("content", Text, nullable=False),
    Column("is_read", Boolean, nullable=False, default=False),
    Column("created_at", DateTime, nullable=False, default=utcnow),
)
