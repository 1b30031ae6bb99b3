"""
Resume/Job Matcher Client

The matcher is an OpenAI-compatible chat API (DeepSeek by default), so we
use the openai library.

COST OPTIMIZATION:
- Use deepseek-chat model (cheapest)
- Keep prompts short and structured
- Results are cached per application in ai_analyses (never re-scored)

Every failure (not configured, network error, timeout, non-JSON output,
wrong shapes) surfaces as ExternalServiceFailure. The client never retries;
the analysis service decides what to do instead.
"""

import json
import logging
import re
from typing import List, Optional

from openai import OpenAI, OpenAIError

from campus_placement.core.config import get_settings
from campus_placement.core.errors import ExternalServiceFailure
from campus_placement.schemas.schemas import MatchResult

logger = logging.getLogger(__name__)

JSON_OBJECT_PATTERN = re.compile(r"\{[\s\S]*\}")

SYSTEM_PROMPT = """You are an expert career counselor and resume analyst.
Return ONLY valid JSON, no explanation."""

USER_PROMPT_TEMPLATE = """Analyze the following job description and provide feedback for a candidate.

Job Role: {job_role}
Company: {company_name}
Job Description:
{job_description}

Required Skills/Qualifications:
- Minimum CGPA: {min_cgpa}
- Maximum Backlogs Allowed: {max_backlogs}
- Eligible Branches: {allowed_branches}

Based on this job description, provide:
1. A match score from 0-100 (consider this is for a fresh graduate with the given qualifications)
2. 5-7 important keywords/skills that should be in the resume
3. 3-5 specific suggestions to improve the resume for this role

Output format:
{{
  "matchScore": <number>,
  "missingKeywords": ["keyword1", "keyword2"],
  "suggestions": ["suggestion1", "suggestion2"]
}}"""


# ============================================================
# JSON VALIDATION HELPERS
# ============================================================

def _string_list(value, field: str) -> List[str]:
    if not isinstance(value, list):
        raise ExternalServiceFailure(f"Matcher field '{field}' is not a list")
    return [str(item).strip() for item in value if item is not None and str(item).strip()]


def validate_match_result(data: dict) -> MatchResult:
    """
    Validate and sanitize matcher output.
    Accepts camelCase or snake_case keys; clamps the score to 0..100.
    """
    if not isinstance(data, dict):
        raise ExternalServiceFailure("Matcher output is not a JSON object")

    raw_score = data.get("matchScore", data.get("match_score"))
    if isinstance(raw_score, bool) or raw_score is None:
        raise ExternalServiceFailure("Matcher output has no numeric matchScore")
    try:
        score = int(round(float(raw_score)))
    except (ValueError, TypeError, OverflowError) as exc:
        raise ExternalServiceFailure("Matcher output has no numeric matchScore") from exc

    return MatchResult(
        match_score=max(0, min(100, score)),
        missing_keywords=_string_list(
            data.get("missingKeywords", data.get("missing_keywords", [])), "missingKeywords"
        ),
        suggestions=_string_list(data.get("suggestions", []), "suggestions"),
    )


class MatcherClient:
    """
    Wrapper for the external matcher with an explicit timeout and no retries.
    """

    def __init__(self, client: Optional[OpenAI] = None):
        settings = get_settings()
        self.model = settings.matcher_model
        self.max_tokens = settings.matcher_max_tokens
        if client is None and settings.matcher_api_key:
            client = OpenAI(
                api_key=settings.matcher_api_key,
                base_url=settings.matcher_base_url,
                timeout=settings.matcher_timeout_seconds,
                max_retries=0
            )
        self.client = client

    @property
    def configured(self) -> bool:
        return self.client is not None

    def _call_api(self, system_prompt: str, user_content: str, max_tokens: int = 1000) -> str:
        """
        Internal method to call the matcher API.
        Returns raw text response.
        """
        if not self.configured:
            raise ExternalServiceFailure("Matcher API key is not configured")

        try:
            response = self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_content}
                ],
                max_tokens=max_tokens,
                temperature=0.1  # Low temp for consistent structured output
            )
        except OpenAIError as exc:
            raise ExternalServiceFailure(f"Matcher request failed: {exc}") from exc

        if not response.choices or not response.choices[0].message.content:
            raise ExternalServiceFailure("Matcher returned an empty response")
        return response.choices[0].message.content

    def _extract_json(self, text: str) -> dict:
        """
        Extract the JSON object from an API response.
        Handles cases where model wraps JSON in markdown code blocks or prose.
        """
        text = text.strip()
        if text.startswith("```json"):
            text = text[7:]
        if text.startswith("```"):
            text = text[3:]
        if text.endswith("```"):
            text = text[:-3]

        match = JSON_OBJECT_PATTERN.search(text)
        if not match:
            raise ExternalServiceFailure("No JSON object found in matcher response")
        try:
            return json.loads(match.group(0))
        except json.JSONDecodeError as exc:
            raise ExternalServiceFailure("Matcher response is not valid JSON") from exc

    def score(self, job_description: str, eligibility_criteria: dict) -> MatchResult:
        """
        Score resume fit for a drive.

        eligibility_criteria keys: job_role, company_name, min_cgpa,
        max_backlogs, allowed_branches.
        """
        user_content = USER_PROMPT_TEMPLATE.format(
            job_role=eligibility_criteria.get("job_role", ""),
            company_name=eligibility_criteria.get("company_name", ""),
            job_description=job_description,
            min_cgpa=eligibility_criteria.get("min_cgpa", 0),
            max_backlogs=eligibility_criteria.get("max_backlogs", 0),
            allowed_branches=", ".join(eligibility_criteria.get("allowed_branches", [])),
        )
        response = self._call_api(SYSTEM_PROMPT, user_content, max_tokens=self.max_tokens)
        return validate_match_result(self._extract_json(response))

    def test_connection(self) -> bool:
        """Test if the matcher API is reachable"""
        try:
            response = self._call_api(
                "You are a test assistant.",
                "Reply with exactly: OK",
                max_tokens=10
            )
            return "OK" in response.upper()
        except ExternalServiceFailure:
            logger.exception("Matcher connection failed")
            return False


# Singleton instance
_matcher_client: MatcherClient = None


def get_matcher_client() -> MatcherClient:
    """Get or create matcher client (singleton pattern)"""
    global _matcher_client
    if _matcher_client is None:
        _matcher_client = MatcherClient()
    return _matcher_client
