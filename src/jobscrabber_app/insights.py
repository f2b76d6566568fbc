#!src/jobscrabber_app/insights.py
from __future__ import annotations

from typing import Any, Mapping, Optional

from jobscrabber_app.llm.errors import ClientRateLimitedError, UnparseableResponseError
from jobscrabber_app.llm.normalizer import extract_json
from jobscrabber_app.llm.router import AIRouter
from jobscrabber_app.prompts.library import (
    COMPANY_INSIGHTS,
    PERSONALIZED_PREP,
    SALARY_NEGOTIATION,
    SWOT_ANALYSIS,
)
from jobscrabber_app.prompts.template import PromptTemplate
from jobscrabber_app.utils.logger import get_logger
from jobscrabber_app.utils.rate_limit import SlidingWindowRateLimiter, ai_limiter

logger = get_logger(__name__)

MAX_DESCRIPTION_CHARS = 15000
MAX_CV_CHARS = 5000
MAX_CV_SUMMARY_CHARS = 1000
NO_CV = "No CV provided."
NO_SALARY = "Not specified"

ANALYSIS_TEMPERATURE = 0.2
FRAMEWORK_TEMPERATURE = 0.3


def _clip(text: Optional[str], limit: int) -> str:
    return str(text or "")[:limit]


class InsightService:
    """Renders an insight prompt, routes it for the user and returns the JSON object.

    Every call is charged to the user's AI budget first, so a burst of
    requests never reaches the providers.
    """

    def __init__(
        self,
        router: AIRouter,
        limiter: Optional[SlidingWindowRateLimiter] = None,
    ) -> None:
        self._router = router
        self._limiter = limiter if limiter is not None else ai_limiter()

    def run_template(
        self,
        template: PromptTemplate,
        values: Mapping[str, str],
        *,
        user_id: str,
        temperature: Optional[float] = None,
    ) -> dict[str, Any]:
        """Render, route and parse.

        Raises:
            ClientRateLimitedError: The user spent the AI budget for this window.
            NoProvidersConfiguredError: The user has no usable key.
            AllProvidersExhaustedError: Every candidate failed.
            UnparseableResponseError: The completion is not a JSON object.
        """
        prompt = template.render(values)

        decision = self._limiter.check(f"ai:{user_id}")
        if not decision.success:
            logger.warning(
                f"Insight rate limited, template={template.name}, user_id={user_id}, reset={decision.reset_seconds}s"
            )
            raise ClientRateLimitedError(reset_seconds=decision.reset_seconds)

        text = self._router.route_for_user(prompt, user_id, temperature)
        parsed = extract_json(text)
        if not isinstance(parsed, dict):
            raise UnparseableResponseError(
                f"expected a JSON object for {template.name}, got {type(parsed).__name__}",
                raw_text=text,
            )
        logger.info(
            f"Insight generated, template={template.name}, user_id={user_id}, keys={len(parsed)}"
        )
        return parsed

    def company_insights(
        self,
        *,
        user_id: str,
        company: str,
        description: str,
        cv_text: Optional[str] = None,
    ) -> dict[str, Any]:
        return self.run_template(
            COMPANY_INSIGHTS,
            {
                "COMPANY": str(company or ""),
                "DESCRIPTION": _clip(description, MAX_DESCRIPTION_CHARS),
                "CV": _clip(cv_text, MAX_CV_CHARS) or NO_CV,
            },
            user_id=user_id,
        )

    def swot_analysis(
        self,
        *,
        user_id: str,
        description: str,
        cv_text: str,
    ) -> dict[str, Any]:
        """Evidence-cited gap analysis of the CV against one posting."""
        return self.run_template(
            SWOT_ANALYSIS,
            {
                "DESCRIPTION": _clip(description, MAX_DESCRIPTION_CHARS),
                "CV": _clip(cv_text, MAX_CV_CHARS) or NO_CV,
            },
            user_id=user_id,
            temperature=ANALYSIS_TEMPERATURE,
        )

    def personalized_prep(
        self,
        *,
        user_id: str,
        description: str,
        cv_text: Optional[str] = None,
        cv_summary: Optional[str] = None,
    ) -> dict[str, Any]:
        """Interview talking points bridging the CV to the posting.

        Args:
            user_id: Pool owner.
            description: Job posting text.
            cv_text: Raw CV, used when no summary exists.
            cv_summary: Summary from an earlier CV analysis.
        """
        summary = str(cv_summary or "").strip() or _clip(cv_text, MAX_CV_SUMMARY_CHARS)
        return self.run_template(
            PERSONALIZED_PREP,
            {
                "CV_SUMMARY": summary or NO_CV,
                "DESCRIPTION": _clip(description, MAX_DESCRIPTION_CHARS),
            },
            user_id=user_id,
            temperature=ANALYSIS_TEMPERATURE,
        )

    def salary_negotiation(
        self,
        *,
        user_id: str,
        title: str,
        company: str,
        description: str,
        location: Optional[str] = None,
        current_salary: Optional[str] = None,
    ) -> dict[str, Any]:
        return self.run_template(
            SALARY_NEGOTIATION,
            {
                "TITLE": str(title or ""),
                "COMPANY": str(company or ""),
                "LOCATION": str(location or ""),
                "CURRENT_SALARY": str(current_salary or "").strip() or NO_SALARY,
                "DESCRIPTION": _clip(description, MAX_DESCRIPTION_CHARS),
            },
            user_id=user_id,
            temperature=FRAMEWORK_TEMPERATURE,
        )
