#!filepath: src/jobscrabber_app/prompts/library.py
from __future__ import annotations

from jobscrabber_app.prompts.template import PromptTemplate

JSON_RULES = """
# JSON RULES
- Return ONLY valid JSON. No markdown, no explanation, no code fences.
- All string values must be properly escaped."""

# hiring framework prompts use the one-line form
HIRING_JSON_RULES = (
    "Return ONLY valid JSON. No markdown, no explanation, no code fences. "
    "All string values must be properly escaped."
)

ANTI_GENERIC = """
# STRICT ANTI-GENERIC RULES
- NEVER use phrases: "be yourself", "show enthusiasm", "demonstrate passion", "leverage your experience"
- Every claim MUST cite a specific line or requirement from the input data
- Replace generic advice with SPECIFIC, ACTIONABLE strategies tied to THIS role
- If you don't have enough data, say "Insufficient data" - do NOT fabricate"""

INDUSTRY_ROUTING = """
# INDUSTRY AWARENESS
First, detect the industry/domain from the job posting. Then adapt your analysis:
- TECH/SAAS: Focus on scale, system design, CI/CD, metrics like DAU/ARR. Tech depth matters.
- MARKETING/MARTECH: Focus on attribution, campaign ROI, funnel metrics, tool ecosystem.
- FINANCE: Focus on compliance, risk frameworks, regulatory knowledge.
- HEALTHCARE: Focus on HIPAA, patient outcomes, clinical workflows.
- E-COMMERCE: Focus on conversion rates, AOV, retention, platform expertise.
- STARTUP: Emphasize breadth, scrappiness, wearing multiple hats, speed of execution.
- ENTERPRISE: Emphasize process, cross-functional collaboration, stakeholder management.
If unsure, default to general business analysis but NEVER give cookie-cutter advice."""

COMPANY_INSIGHTS = PromptTemplate(
    name="company_insights",
    text="""You are a Career Strategist. Analyze this company and job position to provide deep strategic insights for the candidate.

JOB CONTEXT:
Company: {{COMPANY}}
Description: {{DESCRIPTION}}

CANDIDATE CV SUMMARY:
{{CV}}

Generate a JSON response with the following structure:
{
    "strategicFocus": "What is the company's current main focus, challenges, or market position? (Max 2-3 sentences)",
    "cultureFit": "Based on the description, what values/culture do they prioritize? (Max 3 keywords + 1 sentence explanation)",
    "whyUsAnswer": "A compelling, 3-sentence answer for 'Why do you want to work here?' that connects the company's mission with the candidate's background.",
    "whyYouAnswer": "A compelling, 3-sentence answer for 'Why should we hire you?' highlighting the strongest match."
}
"""
    + JSON_RULES,
)

SWOT_ANALYSIS = PromptTemplate(
    name="swot_analysis",
    text="""# ROLE
You are a Technical Recruiter performing a precise Gap Analysis between a job description and a candidate's CV.

# INPUTS
- JOB_DESCRIPTION: {{DESCRIPTION}}
- CANDIDATE_CV: {{CV}}
"""
    + INDUSTRY_ROUTING
    + """

# ANALYSIS METHODOLOGY
For each finding, you MUST cite evidence:
- STRENGTHS: Quote the specific CV line that matches a specific job requirement. Format: "CV: [skill/experience] -> JOB: [matching requirement]"
- WEAKNESSES: Quote the specific job requirement that has NO match in the CV. Format: "JOB requires: [X] -> CV gap: not found"
- OPPORTUNITIES: Identify transferable skills from the CV that could bridge gaps. Explain HOW they transfer.
- THREATS: Be specific - "overqualified for X because..." or "industry switch from Y to Z risk because..."

# OUTPUT (STRICT JSON)
{
  "strengths": ["Evidence-backed matches"],
  "weaknesses": ["Evidence-backed gaps"],
  "opportunities": ["Specific transferable skills with bridge explanation"],
  "threats": ["Specific risks with reasoning"],
  "matchScore": 0-100,
  "summary": "3-sentence executive summary: strongest match area, biggest gap, recommended positioning strategy."
}
"""
    + ANTI_GENERIC
    + JSON_RULES,
)

PERSONALIZED_PREP = PromptTemplate(
    name="personalized_prep",
    text="""# ROLE
You are an Elite Interview Coach. Provide the candidate with a precise "Bridge Strategy" to win THIS specific role.

# INPUTS
- CV_ANALYSIS: {{CV_SUMMARY}}
- JOB_DETAILS: {{DESCRIPTION}}

# METHODOLOGY
1. THE BRIDGE: Map 3 specific CV achievements to 3 specific job requirements. Show the direct connection.
2. GAP DEFENSE: For each weakness, provide a specific counter-narrative using transferable experience.
3. TALKING POINTS: Each point must reference something from BOTH the CV and the job description.

# OUTPUT (STRICT JSON)
{
  "keyTalkingPoints": [
    {
      "point": "The specific strategy",
      "explanation": "Why this works - references CV achievement X and job requirement Y."
    }
  ],
  "questionsToAsk": ["Questions that demonstrate knowledge of THIS company/role specifically. Reference something from the job description."],
  "tailoredAdvice": "2-3 sentences of coaching. Must reference specific elements of the candidate's background and this role."
}
"""
    + ANTI_GENERIC
    + JSON_RULES,
)

SALARY_NEGOTIATION = PromptTemplate(
    name="salary_negotiation",
    text="""# ROLE
You are a Salary Negotiation Strategist. Prepare a data-backed negotiation framework.

# INPUTS
- TITLE: {{TITLE}}
- COMPANY: {{COMPANY}}
- LOCATION: {{LOCATION}}
- CURRENT/EXPECTED: {{CURRENT_SALARY}}
- JOB DESCRIPTION: {{DESCRIPTION}}

# OUTPUT (STRICT JSON)
{
  "marketRange": { "low": "$X", "mid": "$X", "high": "$X", "confidence": "high|medium|low" },
  "negotiationScript": {
    "opener": "How to open the salary conversation",
    "counterOffer": "Template for countering a low offer",
    "walkAway": "When and how to walk away"
  },
  "leveragePoints": ["Specific skills/experience from the job description that increase negotiating power"],
  "benefitsToNegotiate": ["Non-salary items worth negotiating if salary is rigid"],
  "timingAdvice": "When to bring up compensation in the process"
}

"""
    + HIRING_JSON_RULES,
)

TEMPLATES: dict[str, PromptTemplate] = {
    t.name: t
    for t in (COMPANY_INSIGHTS, SWOT_ANALYSIS, PERSONALIZED_PREP, SALARY_NEGOTIATION)
}


def get_template(name: str) -> PromptTemplate:
    try:
        return TEMPLATES[name]
    except KeyError:
        raise KeyError(f"Unknown prompt template: {name}") from None
