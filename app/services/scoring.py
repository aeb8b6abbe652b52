"""
LLM scoring client.

Supports two wire shapes: OpenAI-style chat completions (system prompt as a
message) used by OpenAI, Groq, Perplexity, DeepSeek, Ollama and any custom
endpoint, and Anthropic messages (system prompt as a separate field). The
provider is detected once from the configured base URL.
"""
import asyncio
import functools
from enum import Enum
from typing import Any, Dict, Optional
from urllib.parse import urlparse

import requests

from app.helpers.prompts import (
    NAME_SYSTEM_PROMPT,
    NAME_USER_PROMPT,
    SCORING_SYSTEM_PROMPT,
    SCORING_USER_PROMPT,
)
from app.models.ai_settings import LLMSettings
from app.models.models import UNKNOWN_NAME, ScoreResult, SeniorityFit
from app.services.throttle import RequestThrottle
from app.utils.exceptions import MalformedResponse, ProviderError, ResumeMatcherError
from app.utils.logging_config import get_logger
from app.utils.utils import coerce_score, find_json_object

logger = get_logger(__name__)

ANTHROPIC_VERSION = "2023-06-01"


class Provider(str, Enum):
    ANTHROPIC = "ANTHROPIC"
    OPENAI = "OPENAI"
    PERPLEXITY = "PERPLEXITY"
    DEEPSEEK = "DEEPSEEK"
    GROQ = "GROQ"
    OLLAMA = "OLLAMA"
    CUSTOM = "CUSTOM"


_HOST_MARKERS = [
    ("anthropic", Provider.ANTHROPIC),
    ("openai", Provider.OPENAI),
    ("perplexity", Provider.PERPLEXITY),
    ("deepseek", Provider.DEEPSEEK),
    ("groq", Provider.GROQ),
]
_LOCAL_HOSTS = {"localhost", "127.0.0.1", "0.0.0.0", "::1"}


def detect_provider(base_url: str) -> Provider:
    host = (urlparse(base_url).hostname or "").lower()
    for marker, provider in _HOST_MARKERS:
        if marker in host:
            return provider
    if host in _LOCAL_HOSTS:
        return Provider.OLLAMA
    return Provider.CUSTOM


class ProviderAdapter:
    """Builds provider requests and pulls the reply text out of responses."""

    provider: Provider = Provider.CUSTOM

    def __init__(self, settings: LLMSettings, provider: Provider = None):
        self.settings = settings
        if provider is not None:
            self.provider = provider

    @property
    def url(self) -> str:
        raise NotImplementedError

    def headers(self) -> Dict[str, str]:
        raise NotImplementedError

    def build_payload(self, system: str, user: str, temperature: float, max_tokens: int) -> Dict[str, Any]:
        raise NotImplementedError

    def reply_text(self, data: Dict[str, Any]) -> str:
        raise NotImplementedError


class ChatCompletionsAdapter(ProviderAdapter):
    """OpenAI-compatible /chat/completions."""

    @property
    def url(self) -> str:
        return f"{self.settings.base_url}/chat/completions"

    def headers(self) -> Dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.settings.api_key}",
        }

    def build_payload(self, system, user, temperature, max_tokens):
        return {
            "model": self.settings.model_name,
            "temperature": temperature,
            "max_tokens": max_tokens,
            "messages": [
                {"role": "system", "content": system},
                {"role": "user", "content": user},
            ],
        }

    def reply_text(self, data):
        return data["choices"][0]["message"]["content"]


class AnthropicMessagesAdapter(ProviderAdapter):
    """Anthropic /messages with a top-level system field."""

    provider = Provider.ANTHROPIC

    @property
    def url(self) -> str:
        return f"{self.settings.base_url}/messages"

    def headers(self) -> Dict[str, str]:
        return {
            "Content-Type": "application/json",
            "x-api-key": self.settings.api_key,
            "anthropic-version": ANTHROPIC_VERSION,
        }

    def build_payload(self, system, user, temperature, max_tokens):
        return {
            "model": self.settings.model_name,
            "temperature": temperature,
            "max_tokens": max_tokens,
            "system": system,
            "messages": [
                {"role": "user", "content": user},
            ],
        }

    def reply_text(self, data):
        return data["content"][0]["text"]


def adapter_for(settings: LLMSettings) -> ProviderAdapter:
    provider = detect_provider(settings.base_url)
    if provider is Provider.ANTHROPIC:
        return AnthropicMessagesAdapter(settings)
    return ChatCompletionsAdapter(settings, provider=provider)


def _error_message(response: requests.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return (response.text or "").strip()[:200] or f"HTTP {response.status_code}"
    if isinstance(body, dict):
        err = body.get("error")
        if isinstance(err, dict) and err.get("message"):
            return str(err["message"])
        if isinstance(err, str) and err:
            return err
        if body.get("message"):
            return str(body["message"])
    return str(body)[:200]


def parse_seniority(value: Any) -> SeniorityFit:
    if isinstance(value, str):
        for fit in SeniorityFit:
            if value.strip().lower() == fit.value.lower():
                return fit
    return SeniorityFit.MEDIUM


def parse_score_reply(content: str) -> ScoreResult:
    """Turn the provider's reply text into a ScoreResult."""
    data = find_json_object(content)
    if data is None:
        raise MalformedResponse(reply=content)

    skills_match = data.get("skills_match")
    summary = data.get("summary")
    return ScoreResult(
        match_score=coerce_score(data.get("match_score")),
        seniority_fit=parse_seniority(data.get("seniority_fit")),
        skills_match=str(skills_match) if skills_match is not None else None,
        summary=str(summary) if summary is not None else "",
    )


class ScoringClient:
    """Talks to the configured LLM provider through the shared throttle."""

    def __init__(self, settings: LLMSettings, throttle: RequestThrottle, adapter: ProviderAdapter = None):
        self.settings = settings
        self.throttle = throttle
        self.adapter = adapter or adapter_for(settings)

    @property
    def provider(self) -> Provider:
        return self.adapter.provider

    def _post(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """Blocking HTTP call; runs in the default executor."""
        try:
            response = requests.post(
                self.adapter.url,
                headers=self.adapter.headers(),
                json=payload,
                timeout=self.settings.timeout,
            )
        except requests.RequestException as e:
            raise ProviderError(f"LLM request failed: {e}", provider=self.provider.value, cause=e) from e

        if not response.ok:
            raise ProviderError(
                _error_message(response),
                provider=self.provider.value,
                status_code=response.status_code,
            )
        try:
            return response.json()
        except ValueError as e:
            raise MalformedResponse("LLM response body is not JSON", reply=response.text, cause=e) from e

    async def complete(self, system: str, user: str, temperature: float, max_tokens: int) -> str:
        """Send one prompt through the throttle and return the reply text."""
        payload = self.adapter.build_payload(system, user, temperature, max_tokens)

        async def call():
            loop = asyncio.get_running_loop()
            return await loop.run_in_executor(None, functools.partial(self._post, payload))

        try:
            data = await self.throttle.enqueue(call)
        except asyncio.TimeoutError as e:
            raise ProviderError(
                f"LLM request timed out after {self.throttle.call_timeout}s",
                provider=self.provider.value,
                cause=e,
            ) from e

        try:
            content = self.adapter.reply_text(data)
        except (KeyError, IndexError, TypeError) as e:
            raise MalformedResponse("Unexpected LLM response envelope", reply=str(data), cause=e) from e
        if not isinstance(content, str):
            raise MalformedResponse("LLM reply content is not text", reply=str(content))
        return content

    async def score(self, resume_text: str, jd_text: str) -> ScoreResult:
        content = await self.complete(
            SCORING_SYSTEM_PROMPT,
            SCORING_USER_PROMPT.format(resume=resume_text, jd=jd_text),
            temperature=0.2,
            max_tokens=500,
        )
        result = parse_score_reply(content)
        logger.debug(f"Scored resume: {result.match_score} ({result.seniority_fit.value})")
        return result

    async def extract_name(self, text: str, resume_id: str) -> Optional[str]:
        """Ask the model for the candidate's name. Failures yield None."""
        try:
            content = await self.complete(
                NAME_SYSTEM_PROMPT,
                NAME_USER_PROMPT.format(resume=text),
                temperature=0.1,
                max_tokens=50,
            )
        except ResumeMatcherError as e:
            logger.warning(f"LLM name extraction failed for {resume_id}: {e.message}")
            return None

        data = find_json_object(content)
        if data is None:
            logger.warning(f"LLM name extraction for {resume_id} returned no JSON")
            return None
        name = data.get("name")
        if not isinstance(name, str) or not name.strip() or name.strip() == UNKNOWN_NAME:
            return None
        return name.strip()
