import os

os.environ.setdefault("ENVIRONMENT", "testing")

import pytest

from app.models.ai_settings import LLMSettings
from app.models.models import ScoreResult, SeniorityFit, UploadedDocument


@pytest.fixture
def openai_settings():
    return LLMSettings(
        api_key="sk-test",
        base_url="https://api.openai.com/v1/",
        model_name="gpt-4o-mini",
        request_delay=0.0,
        timeout=5,
    )


@pytest.fixture
def anthropic_settings():
    return LLMSettings(
        api_key="ak-test",
        base_url="https://api.anthropic.com/v1",
        model_name="claude-test",
        request_delay=0.0,
        timeout=5,
    )


def make_doc(filename: str, text: str) -> UploadedDocument:
    return UploadedDocument(filename=filename, content=text.encode("utf-8"))


class FakeScoringClient:
    """Scores by looking up the resume's first line; raises for names in ``failing``."""

    def __init__(self, scores=None, failing=(), names=None):
        self.scores = scores or {}
        self.failing = set(failing)
        self.names = names or {}
        self.score_calls = []
        self.name_calls = []

    async def score(self, resume_text, jd_text):
        key = resume_text.splitlines()[0]
        self.score_calls.append(key)
        if key in self.failing:
            from app.utils.exceptions import ProviderError
            raise ProviderError("Rate limit exceeded", status_code=429)
        return ScoreResult(
            match_score=self.scores.get(key, 50),
            seniority_fit=SeniorityFit.STRONG,
            skills_match="70%",
            summary=f"Summary for {key}",
        )

    async def extract_name(self, text, resume_id):
        self.name_calls.append(resume_id)
        return self.names.get(resume_id)
