"""
Pydantic Schemas - Domain records, request payloads and responses.

All schemas in one file for simplicity. Records mirror table rows
(field names == column names) so rows convert with model_validate.
"""

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from typing import Optional, List
from datetime import datetime, timezone
from enum import Enum


def to_naive_utc(value: datetime) -> datetime:
    """Storage convention: aware datetimes are converted to UTC and stripped."""
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


# ============================================================
# ENUMS
# ============================================================

class UserRole(str, Enum):
    coordinator = "coordinator"
    student = "student"


class DriveStatus(str, Enum):
    active = "Active"
    completed = "Completed"
    cancelled = "Cancelled"


class ApplicationStatus(str, Enum):
    registered = "Registered"
    shortlisted = "Shortlisted"
    interview = "Interview"
    selected = "Selected"
    rejected = "Rejected"


class PlacementStatus(str, Enum):
    not_placed = "Not Placed"
    placed = "Placed"
    opted_out = "Opted Out"


# ============================================================
# IDENTITY
# ============================================================

class Principal(BaseModel):
    """Authenticated caller, passed explicitly into every service call."""
    model_config = ConfigDict(frozen=True)

    id: int
    role: UserRole

    @property
    def is_coordinator(self) -> bool:
        return self.role == UserRole.coordinator

    @property
    def is_student(self) -> bool:
        return self.role == UserRole.student


class CoordinatorRegister(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=6)
    name: str = Field(..., min_length=2, max_length=100)
    university_name: str = Field(..., min_length=2, max_length=200)


class StudentRegister(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=6)
    name: str = Field(..., min_length=2, max_length=100)
    roll_number: str = Field(..., min_length=2, max_length=50)
    branch: str = Field(..., min_length=2)
    graduation_year: int = Field(..., ge=2020, le=2030)
    cgpa: float = Field(..., ge=0, le=10)
    active_backlogs: int = Field(0, ge=0)
    invite_code: str = Field(..., min_length=1)

    @field_validator("invite_code")
    @classmethod
    def normalize_invite_code(cls, v: str) -> str:
        return v.strip().upper()


class LoginRequest(BaseModel):
    email: EmailStr
    password: str
    role: UserRole


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user_id: int
    role: str


class Coordinator(BaseModel):
    id: int
    email: str
    name: str
    university_name: str
    invite_code: str
    created_at: datetime


class Student(BaseModel):
    id: int
    email: str
    name: str
    roll_number: str
    branch: str
    graduation_year: int
    cgpa: float
    active_backlogs: int
    placement_status: PlacementStatus = PlacementStatus.not_placed
    placed_company: Optional[str] = None
    placed_package: Optional[float] = None
    coordinator_id: int
    created_at: datetime


class StudentSummary(Student):
    registrations_count: int = 0


class PeerSummary(BaseModel):
    id: int
    name: str
    branch: str
    graduation_year: int
    placement_status: PlacementStatus
    placed_company: Optional[str] = None


class PlacementUpdate(BaseModel):
    placement_status: PlacementStatus


# ============================================================
# DRIVES
# ============================================================

class DriveCreate(BaseModel):
    company_name: str = Field(..., min_length=2, max_length=200)
    job_role: str = Field(..., min_length=2, max_length=200)
    ctc_min: float = Field(..., gt=0)
    ctc_max: float = Field(..., gt=0)
    job_description: str = Field(..., min_length=10)
    min_cgpa: float = Field(..., ge=0, le=10)
    max_backlogs: int = Field(0, ge=0)
    allowed_branches: List[str]
    registration_deadline: datetime

    @field_validator("registration_deadline")
    @classmethod
    def deadline_naive_utc(cls, v: datetime) -> datetime:
        return to_naive_utc(v)


class DriveUpdate(BaseModel):
    company_name: Optional[str] = Field(None, min_length=2, max_length=200)
    job_role: Optional[str] = Field(None, min_length=2, max_length=200)
    ctc_min: Optional[float] = Field(None, gt=0)
    ctc_max: Optional[float] = Field(None, gt=0)
    job_description: Optional[str] = Field(None, min_length=10)
    min_cgpa: Optional[float] = Field(None, ge=0, le=10)
    max_backlogs: Optional[int] = Field(None, ge=0)
    allowed_branches: Optional[List[str]] = None
    registration_deadline: Optional[datetime] = None
    status: Optional[DriveStatus] = None

    @field_validator("registration_deadline")
    @classmethod
    def deadline_naive_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        return to_naive_utc(v) if v is not None else None


class Drive(BaseModel):
    id: int
    company_name: str
    job_role: str
    ctc_min: float
    ctc_max: float
    job_description: str
    min_cgpa: float
    max_backlogs: int
    allowed_branches: List[str]
    registration_deadline: datetime
    status: DriveStatus = DriveStatus.active
    coordinator_id: int
    created_at: datetime


class DriveSummary(Drive):
    registrations_count: int = 0


# ============================================================
# RESUMES
# ============================================================

class ResumeUpload(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    file_name: str = Field(..., min_length=1, max_length=255)
    file_ref: str = Field(..., min_length=1, max_length=500)


class Resume(BaseModel):
    id: int
    student_id: int
    name: str
    file_name: str
    file_ref: str
    is_default: bool
    uploaded_at: datetime


# ============================================================
# APPLICATIONS
# ============================================================

class ApplyRequest(BaseModel):
    drive_id: int
    resume_id: int
    notes: Optional[str] = None


class ApplicationStatusUpdate(BaseModel):
    status: ApplicationStatus
    notes: Optional[str] = None


class Application(BaseModel):
    id: int
    drive_id: int
    student_id: int
    resume_id: int
    status: ApplicationStatus
    match_score: Optional[int] = None
    notes: Optional[str] = None
    applied_at: datetime
    updated_at: datetime


class StudentApplicationView(Application):
    company_name: str
    job_role: str
    resume_name: str


class ApplicantSummary(BaseModel):
    id: int
    name: str
    roll_number: str
    branch: str
    cgpa: float


class DriveApplicationView(Application):
    student: ApplicantSummary
    resume_name: str


# ============================================================
# AI ANALYSIS
# ============================================================

class AnalyzeRequest(BaseModel):
    application_id: int


class MatchResult(BaseModel):
    """Payload returned by the external resume/job matcher."""
    match_score: int = Field(..., ge=0, le=100)
    missing_keywords: List[str] = []
    suggestions: List[str] = []


class AIAnalysis(BaseModel):
    id: int
    application_id: int
    match_score: int
    missing_keywords: List[str]
    suggestions: List[str]
    analyzed_at: datetime


# ============================================================
# COMMUNITY
# ============================================================

class DiscussionCreate(BaseModel):
    title: str = Field(..., min_length=3, max_length=200)
    content: str = Field(..., min_length=10)
    tags: List[str] = []


class ReplyCreate(BaseModel):
    content: str = Field(..., min_length=1)


class MessageCreate(BaseModel):
    receiver_id: int
    content: str = Field(..., min_length=1)


class AuthorSummary(BaseModel):
    name: str
    branch: str


class Discussion(BaseModel):
    id: int
    title: str
    content: str
    author_id: int
    tags: List[str]
    likes_count: int
    created_at: datetime


class DiscussionView(Discussion):
    author: AuthorSummary
    replies_count: int = 0


class Reply(BaseModel):
    id: int
    discussion_id: int
    author_id: int
    content: str
    created_at: datetime


class ReplyView(Reply):
    author: AuthorSummary


class Message(BaseModel):
    id: int
    sender_id: int
    receiver_id: int
    content: str
    is_read: bool
    created_at: datetime


class MessageView(Message):
    is_own: bool


class LikeResponse(BaseModel):
    liked: bool
    likes_count: int


# ============================================================
# STATS
# ============================================================

class CoordinatorStats(BaseModel):
    active_drives: int
    total_students: int
    placed_students: int
    placement_rate: int
    avg_package: float
    invite_code: str


class StudentStats(BaseModel):
    eligible_drives: int
    applications: int
    upcoming_deadlines: int
    student: Student


# ============================================================
# GENERIC SCHEMAS
# ============================================================

class MessageResponse(BaseModel):
    message: str
    success: bool = True