"""
Eligibility Evaluator

A student may register for a drive iff ALL of:
1. drive is Active
2. registration deadline is strictly in the future
3. student CGPA >= drive minimum CGPA
4. student active backlogs <= drive maximum backlogs
5. student branch is one of the drive's allowed branches

Pure functions over Student/Drive records, no database access.
Callers pass `now` explicitly when they need a fixed clock.
"""

from datetime import datetime, timedelta
from typing import Iterable, List, Optional

from campus_placement.db.tables import utcnow
from campus_placement.schemas.schemas import Drive, DriveStatus, Student


def ineligibility_reasons(student: Student, drive: Drive, now: Optional[datetime] = None) -> List[str]:
    """
    List every failed predicate, in the order above.
    An empty list means the student is eligible.
    """
    now = now or utcnow()
    reasons = []

    if drive.status != DriveStatus.active:
        reasons.append(f"Drive is {DriveStatus(drive.status).value}, not accepting registrations")
    if drive.registration_deadline <= now:
        reasons.append("Registration deadline has passed")
    if student.cgpa < drive.min_cgpa:
        reasons.append(f"CGPA {student.cgpa:.2f} is below the minimum {drive.min_cgpa:.2f}")
    if student.active_backlogs > drive.max_backlogs:
        reasons.append(
            f"{student.active_backlogs} active backlogs exceed the maximum {drive.max_backlogs}"
        )
    if student.branch not in drive.allowed_branches:
        reasons.append(f"Branch {student.branch} is not allowed for this drive")

    return reasons


def is_eligible(student: Student, drive: Drive, now: Optional[datetime] = None) -> bool:
    now = now or utcnow()
    return (
        drive.status == DriveStatus.active
        and drive.registration_deadline > now
        and student.cgpa >= drive.min_cgpa
        and student.active_backlogs <= drive.max_backlogs
        and student.branch in drive.allowed_branches
    )


def eligible_drives(student: Student, drives: Iterable[Drive], now: Optional[datetime] = None) -> List[Drive]:
    """Filter drives to those the student may register for, keeping input order."""
    now = now or utcnow()
    return [drive for drive in drives if is_eligible(student, drive, now)]


def closing_soon(
    student: Student,
    drives: Iterable[Drive],
    now: Optional[datetime] = None,
    within_days: int = 7
) -> List[Drive]:
    """Eligible drives whose deadline falls within the next `within_days` days."""
    now = now or utcnow()
    horizon = now + timedelta(days=within_days)
    return [
        drive for drive in eligible_drives(student, drives, now)
        if drive.registration_deadline <= horizon
    ]
