#!filepath: tests/test_prompts_and_insights.py
from __future__ import annotations

from typing import Optional

import pytest

from jobscrabber_app.insights import (
    MAX_CV_SUMMARY_CHARS,
    MAX_DESCRIPTION_CHARS,
    NO_CV,
    NO_SALARY,
    InsightService,
)
from jobscrabber_app.llm.errors import ClientRateLimitedError, ErrorKind, UnparseableResponseError
from jobscrabber_app.prompts.library import (
    COMPANY_INSIGHTS,
    PERSONALIZED_PREP,
    SALARY_NEGOTIATION,
    SWOT_ANALYSIS,
    get_template,
)
from jobscrabber_app.prompts.template import PromptTemplate
from jobscrabber_app.utils.rate_limit import SlidingWindowRateLimiter


def test_render_fills_placeholders_and_keeps_json_braces() -> None:
    t = PromptTemplate(name="t", text='Hi {{NAME}}. Return {"a": 1}')
    assert t.placeholders == {"NAME"}
    assert t.render({"NAME": "Ana"}) == 'Hi Ana. Return {"a": 1}'


def test_render_missing_value_raises() -> None:
    with pytest.raises(ValueError, match="NAME"):
        PromptTemplate(name="t", text="{{NAME}}").render({})


def test_render_is_single_pass() -> None:
    t = PromptTemplate(name="t", text="{{A}} {{B}}")
    assert t.render({"A": "{{B}}", "B": "x"}) == "{{B}} x"


def test_library_templates() -> None:
    assert COMPANY_INSIGHTS.placeholders == {"COMPANY", "DESCRIPTION", "CV"}
    assert SWOT_ANALYSIS.placeholders == {"DESCRIPTION", "CV"}
    assert PERSONALIZED_PREP.placeholders == {"CV_SUMMARY", "DESCRIPTION"}
    assert SALARY_NEGOTIATION.placeholders == {
        "TITLE",
        "COMPANY",
        "LOCATION",
        "CURRENT_SALARY",
        "DESCRIPTION",
    }
    assert get_template("swot_analysis") is SWOT_ANALYSIS
    with pytest.raises(KeyError):
        get_template("nope")


class RecordingRouter:
    def __init__(self, reply: str) -> None:
        self.reply = reply
        self.prompts: list[str] = []
        self.temperatures: list[Optional[float]] = []

    def route_for_user(self, prompt: str, user_id: str, temperature: Optional[float] = None) -> str:
        self.prompts.append(prompt)
        self.temperatures.append(temperature)
        return self.reply


def test_company_insights_renders_and_parses() -> None:
    router = RecordingRouter('```json\n{"strategicFocus": "growth"}\n```')
    out = InsightService(router).company_insights(
        user_id="u1", company="Acme", description="x" * (MAX_DESCRIPTION_CHARS + 50)
    )
    assert out == {"strategicFocus": "growth"}
    prompt = router.prompts[0]
    assert "Company: Acme" in prompt
    assert NO_CV in prompt
    assert "x" * (MAX_DESCRIPTION_CHARS + 1) not in prompt


def test_swot_requires_json_object() -> None:
    router = RecordingRouter("[1, 2, 3]")
    with pytest.raises(UnparseableResponseError) as ei:
        InsightService(router).swot_analysis(user_id="u1", description="d", cv_text="cv")
    assert ei.value.raw_text == "[1, 2, 3]"


def test_swot_prompt_asks_for_cited_evidence_and_summary() -> None:
    router = RecordingRouter('{"strengths": [], "matchScore": 70, "summary": "ok"}')
    out = InsightService(router).swot_analysis(
        user_id="u1", description="Needs Kubernetes", cv_text="Ran Kubernetes clusters"
    )
    assert out["summary"] == "ok"
    prompt = router.prompts[0]
    assert "JOB_DESCRIPTION: Needs Kubernetes" in prompt
    assert "CANDIDATE_CV: Ran Kubernetes clusters" in prompt
    assert "you MUST cite evidence" in prompt
    assert '"summary"' in prompt
    assert router.temperatures == [0.2]


def test_personalized_prep_prefers_cv_summary() -> None:
    router = RecordingRouter('{"keyTalkingPoints": [], "questionsToAsk": [], "tailoredAdvice": "x"}')
    svc = InsightService(router)

    out = svc.personalized_prep(
        user_id="u1", description="Lead a data team", cv_text="raw cv", cv_summary="Data lead, 8 years"
    )
    assert out["tailoredAdvice"] == "x"
    assert "CV_ANALYSIS: Data lead, 8 years" in router.prompts[0]

    svc.personalized_prep(user_id="u1", description="d", cv_text="y" * 5000)
    assert "y" * MAX_CV_SUMMARY_CHARS in router.prompts[1]
    assert "y" * (MAX_CV_SUMMARY_CHARS + 1) not in router.prompts[1]


def test_salary_negotiation_renders_defaults() -> None:
    router = RecordingRouter(
        'Here you go:\n{"marketRange": {"low": "$90k"}, "timingAdvice": "after the offer"}'
    )
    out = InsightService(router).salary_negotiation(
        user_id="u1", title="Backend Engineer", company="Acme", description="Python APIs"
    )
    assert out["marketRange"] == {"low": "$90k"}
    prompt = router.prompts[0]
    assert "- TITLE: Backend Engineer" in prompt
    assert f"- CURRENT/EXPECTED: {NO_SALARY}" in prompt
    assert router.temperatures == [0.3]


def test_budget_exhausted_skips_routing() -> None:
    router = RecordingRouter('{"a": 1}')
    limiter = SlidingWindowRateLimiter(interval_seconds=60, limit=1, clock=lambda: 100.0)
    svc = InsightService(router, limiter=limiter)

    svc.company_insights(user_id="u1", company="Acme", description="d")
    with pytest.raises(ClientRateLimitedError) as ei:
        svc.company_insights(user_id="u1", company="Acme", description="d")

    assert ei.value.kind is ErrorKind.RATE_LIMIT
    assert ei.value.details.retry_after_seconds == 60
    assert len(router.prompts) == 1

    svc.company_insights(user_id="u2", company="Acme", description="d")
    assert len(router.prompts) == 2
