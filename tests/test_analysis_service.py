from types import SimpleNamespace

import pytest
from sqlalchemy import func, insert, select

from campus_placement.core.errors import ExternalServiceFailure, NotFoundError
from campus_placement.db.database import get_db_session
from campus_placement.db.tables import ai_analyses
from campus_placement.schemas.schemas import MatchResult
from campus_placement.services.analysis_service import DEFAULT_MATCH_RESULT, AnalysisService
from campus_placement.services.application_service import ApplicationService
from campus_placement.services.matcher_client import MatcherClient

from tests.conftest import principal_of


class FakeMatcher:
    def __init__(self, result=None, error=None):
        self.result = result or MatchResult(
            match_score=82, missing_keywords=["Docker"], suggestions=["Mention cloud deployments"]
        )
        self.error = error
        self.calls = []

    def score(self, job_description, eligibility_criteria):
        self.calls.append((job_description, eligibility_criteria))
        if self.error:
            raise self.error
        return self.result


def analysis_rows(application_id):
    with get_db_session() as db:
        return db.execute(
            select(func.count(ai_analyses.c.id)).where(ai_analyses.c.application_id == application_id)
        ).scalar_one()


@pytest.fixture
def application(student, drive, resume):
    return ApplicationService().apply(principal_of(student), drive.id, resume.id)


def test_analyze_stores_result_and_score(student, drive, application):
    matcher = FakeMatcher()
    analysis = AnalysisService(matcher=matcher).analyze(principal_of(student), application.id)

    assert analysis.match_score == 82
    assert analysis.missing_keywords == ["Docker"]
    assert matcher.calls[0][0] == drive.job_description
    assert matcher.calls[0][1]["allowed_branches"] == drive.allowed_branches
    refreshed = ApplicationService().get_application(principal_of(student), application.id)
    assert refreshed.match_score == 82


def test_analyze_is_idempotent(student, coordinator, application):
    matcher = FakeMatcher()
    service = AnalysisService(matcher=matcher)
    first = service.analyze(principal_of(student), application.id)
    second = service.analyze(principal_of(coordinator), application.id)

    assert first == second
    assert len(matcher.calls) == 1
    assert analysis_rows(application.id) == 1


def test_matcher_failure_uses_default_payload(student, application):
    matcher = FakeMatcher(error=ExternalServiceFailure("timeout"))
    analysis = AnalysisService(matcher=matcher).analyze(principal_of(student), application.id)

    assert analysis.match_score == 70
    assert analysis.missing_keywords == DEFAULT_MATCH_RESULT.missing_keywords
    assert analysis.suggestions == DEFAULT_MATCH_RESULT.suggestions
    assert len(analysis.missing_keywords) == 5
    assert len(analysis.suggestions) == 3


def test_unconfigured_matcher_falls_back(student, application):
    analysis = AnalysisService(matcher=MatcherClient(client=None)).analyze(principal_of(student), application.id)
    assert analysis.match_score == DEFAULT_MATCH_RESULT.match_score


def test_non_finite_score_falls_back(student, application):
    content = '{"matchScore": 1e999, "missingKeywords": [], "suggestions": []}'
    message = SimpleNamespace(content=content)
    completions = SimpleNamespace(
        create=lambda **kwargs: SimpleNamespace(choices=[SimpleNamespace(message=message)])
    )
    client = SimpleNamespace(chat=SimpleNamespace(completions=completions))

    analysis = AnalysisService(matcher=MatcherClient(client=client)).analyze(principal_of(student), application.id)
    assert analysis.match_score == DEFAULT_MATCH_RESULT.match_score
    assert analysis.suggestions == DEFAULT_MATCH_RESULT.suggestions


def test_first_write_wins(student, application):
    class RacingMatcher(FakeMatcher):
        def score(self, job_description, eligibility_criteria):
            # A concurrent request stores its analysis while this one is scoring
            with get_db_session() as db:
                db.execute(
                    insert(ai_analyses).values(
                        application_id=application.id,
                        match_score=41,
                        missing_keywords=["SQL"],
                        suggestions=["Add a database project"],
                    )
                )
            return super().score(job_description, eligibility_criteria)

    analysis = AnalysisService(matcher=RacingMatcher()).analyze(principal_of(student), application.id)

    assert analysis.match_score == 41
    assert analysis.missing_keywords == ["SQL"]
    assert analysis_rows(application.id) == 1


def test_analysis_hidden_from_other_students(factory, coordinator, application):
    other = factory.student(coordinator)
    with pytest.raises(NotFoundError):
        AnalysisService(matcher=FakeMatcher()).analyze(principal_of(other), application.id)


def test_withdraw_removes_cached_analysis(student, application):
    AnalysisService(matcher=FakeMatcher()).analyze(principal_of(student), application.id)
    ApplicationService().withdraw(principal_of(student), application.id)
    assert analysis_rows(application.id) == 0
