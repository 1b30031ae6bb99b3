"""
AI Analysis Service

Scores an application's resume against its drive using the external
matcher and caches the result per application.

HOW IT WORKS:
1. Cached analysis exists -> return it verbatim (no external call)
2. Otherwise call the matcher OUTSIDE any transaction
3. One short transaction inserts the analysis row and copies the score
   onto applications.match_score
4. UNIQUE (application_id) makes the first write win; a losing
   concurrent writer discards its result and returns the stored row

If the matcher fails for any reason the default analysis below is stored
instead, so callers always get a result.
"""

import logging
from typing import Optional

from sqlalchemy import insert, select, update
from sqlalchemy.exc import IntegrityError

from campus_placement.core.errors import ExternalServiceFailure, NotFoundError
from campus_placement.db.database import get_db_session
from campus_placement.db.tables import ai_analyses, applications, drives
from campus_placement.schemas.schemas import AIAnalysis, Drive, MatchResult, Principal
from campus_placement.services.application_service import ApplicationService
from campus_placement.services.matcher_client import MatcherClient, get_matcher_client

logger = logging.getLogger(__name__)


DEFAULT_MATCH_RESULT = MatchResult(
    match_score=70,
    missing_keywords=[
        "Technical Skills",
        "Projects",
        "Internship Experience",
        "Problem Solving",
        "Communication",
    ],
    suggestions=[
        "Add relevant technical projects that demonstrate your skills",
        "Include quantifiable achievements where possible",
        "Highlight any internship or work experience",
    ],
)


class AnalysisService:

    def __init__(self, matcher: Optional[MatcherClient] = None):
        self.matcher = matcher or get_matcher_client()
        self.applications = ApplicationService()

    def get_analysis(self, application_id: int) -> Optional[AIAnalysis]:
        with get_db_session() as db:
            row = db.execute(
                select(ai_analyses).where(ai_analyses.c.application_id == application_id)
            ).fetchone()
        return AIAnalysis.model_validate(dict(row._mapping)) if row else None

    def analyze(self, principal: Principal, application_id: int) -> AIAnalysis:
        """
        Cached-or-computed analysis for an application visible to the caller
        (the applying student or the coordinator owning the drive).
        """
        application = self.applications.get_application(principal, application_id)

        cached = self.get_analysis(application_id)
        if cached is not None:
            logger.info("Analysis cache hit for application %s", application_id)
            return cached

        logger.info("Analysis cache miss for application %s, calling matcher", application_id)
        result = self._score(self._drive_for(application.drive_id))

        try:
            with get_db_session() as db:
                db.execute(
                    insert(ai_analyses).values(
                        application_id=application_id,
                        match_score=result.match_score,
                        missing_keywords=result.missing_keywords,
                        suggestions=result.suggestions,
                    )
                )
                db.execute(
                    update(applications)
                    .where(applications.c.id == application_id)
                    .values(match_score=result.match_score)
                )
        except IntegrityError:
            stored = self.get_analysis(application_id)
            if stored is None:
                # Application deleted while the matcher was running
                raise NotFoundError("Application not found")
            logger.info("Analysis for application %s already stored by a concurrent request", application_id)
            return stored

        return self.get_analysis(application_id)

    def _drive_for(self, drive_id: int) -> Drive:
        with get_db_session() as db:
            row = db.execute(select(drives).where(drives.c.id == drive_id)).fetchone()
        if not row:
            raise NotFoundError("Drive not found")
        return Drive.model_validate(dict(row._mapping))

    def _score(self, drive: Drive) -> MatchResult:
        criteria = {
            "job_role": drive.job_role,
            "company_name": drive.company_name,
            "min_cgpa": drive.min_cgpa,
            "max_backlogs": drive.max_backlogs,
            "allowed_branches": drive.allowed_branches,
        }
        try:
            return self.matcher.score(drive.job_description, criteria)
        except ExternalServiceFailure:
            logger.warning("Matcher failed for drive %s, using default analysis", drive.id, exc_info=True)
            return DEFAULT_MATCH_RESULT


# ============================================================
# CONVENIENCE FUNCTIONS
# ============================================================

def get_analysis_service() -> AnalysisService:
    """Get analysis service instance."""
    return AnalysisService()
