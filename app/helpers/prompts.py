NAME_SYSTEM_PROMPT = """Extract the candidate's full name from resume text.
Return ONLY JSON: {"name": "Full Name"}. If no name is present return {"name": "Unknown"}.
Do NOT include titles, degrees, company names, or locations."""

NAME_USER_PROMPT = """Extract name from resume:

{resume}
"""

SCORING_SYSTEM_PROMPT = """ATS scoring engine. Score CV vs JD (0-100).

RULES:
- Skills (40%), Experience (30%), Role (20%), Education (10%)
- DIFFERENT CVs = DIFFERENT scores
- 80-95%: Perfect match
- 50-70%: Partial
- 20-50%: Minimal
- 0-20%: No match
- seniority_fit is one of: Strong, Medium, Weak

Return ONLY JSON (no other text):
{
  "match_score": 85,
  "skills_match": "80%",
  "seniority_fit": "Strong",
  "summary": "2 sentences max"
}"""

SCORING_USER_PROMPT = """Analyze this CV against the JD and provide a detailed matching score.

RESUME:
{resume}

JOB DESCRIPTION:
{jd}

Provide detailed analysis considering skill gaps, experience level, and role alignment.
"""
