import pytest
from unittest.mock import MagicMock, patch

import requests

from app.models.models import SeniorityFit
from app.services.scoring import (
    AnthropicMessagesAdapter,
    ChatCompletionsAdapter,
    Provider,
    ScoringClient,
    adapter_for,
    detect_provider,
    parse_score_reply,
)
from app.services.throttle import RequestThrottle
from app.utils.exceptions import MalformedResponse, ProviderError


def chat_response(content, status_code=200):
    response = MagicMock()
    response.status_code = status_code
    response.ok = 200 <= status_code < 300
    response.json.return_value = {"choices": [{"message": {"content": content}}]}
    response.text = content
    return response


def error_response(status_code, body):
    response = MagicMock()
    response.status_code = status_code
    response.ok = False
    response.json.return_value = body
    response.text = str(body)
    return response


class TestProviderDetection:
    """Provider detection from the configured endpoint"""

    @pytest.mark.parametrize("url,expected", [
        ("https://api.anthropic.com/v1", Provider.ANTHROPIC),
        ("https://api.openai.com/v1", Provider.OPENAI),
        ("https://api.perplexity.ai", Provider.PERPLEXITY),
        ("https://api.deepseek.com", Provider.DEEPSEEK),
        ("https://api.groq.com/openai/v1", Provider.GROQ),
        ("http://localhost:11434/v1", Provider.OLLAMA),
        ("http://127.0.0.1:8080/v1", Provider.OLLAMA),
        ("https://llm.internal.example.com/v1", Provider.CUSTOM),
    ])
    def test_detect_provider(self, url, expected):
        assert detect_provider(url) == expected

    def test_openai_path_does_not_fool_detection(self):
        # groq serves under /openai/v1 but is still groq
        assert detect_provider("https://api.groq.com/openai/v1") == Provider.GROQ

    def test_adapter_selection(self, openai_settings, anthropic_settings):
        assert isinstance(adapter_for(anthropic_settings), AnthropicMessagesAdapter)
        assert isinstance(adapter_for(openai_settings), ChatCompletionsAdapter)


class TestAdapters:
    """Wire shapes for the two provider families"""

    def test_chat_completions_payload(self, openai_settings):
        adapter = ChatCompletionsAdapter(openai_settings)
        payload = adapter.build_payload("sys", "usr", temperature=0.2, max_tokens=500)

        assert adapter.url == "https://api.openai.com/v1/chat/completions"
        assert adapter.headers()["Authorization"] == "Bearer sk-test"
        assert payload["model"] == "gpt-4o-mini"
        assert payload["temperature"] == 0.2
        assert payload["max_tokens"] == 500
        assert payload["messages"] == [
            {"role": "system", "content": "sys"},
            {"role": "user", "content": "usr"},
        ]

    def test_anthropic_payload(self, anthropic_settings):
        adapter = AnthropicMessagesAdapter(anthropic_settings)
        payload = adapter.build_payload("sys", "usr", temperature=0.1, max_tokens=50)
        headers = adapter.headers()

        assert adapter.url == "https://api.anthropic.com/v1/messages"
        assert headers["x-api-key"] == "ak-test"
        assert "anthropic-version" in headers
        assert "Authorization" not in headers
        assert payload["system"] == "sys"
        assert payload["messages"] == [{"role": "user", "content": "usr"}]

    def test_anthropic_reply_text(self, anthropic_settings):
        adapter = AnthropicMessagesAdapter(anthropic_settings)
        assert adapter.reply_text({"content": [{"type": "text", "text": "hi"}]}) == "hi"


class TestParseScoreReply:
    """Score coercion and JSON location"""

    def test_json_inside_prose(self):
        result = parse_score_reply(
            'Here you go:\n{"match_score": 72, "skills_match": "65%", '
            '"seniority_fit": "strong", "summary": "Good fit."}\nThanks!'
        )
        assert result.match_score == 72
        assert result.seniority_fit == SeniorityFit.STRONG
        assert result.skills_match == "65%"
        assert result.summary == "Good fit."

    def test_score_above_range_is_clamped(self):
        assert parse_score_reply('{"match_score": 150, "summary": "x"}').match_score == 100

    def test_negative_score_is_clamped(self):
        assert parse_score_reply('{"match_score": -20}').match_score == 0

    def test_non_numeric_score_defaults_to_50(self):
        assert parse_score_reply('{"match_score": "N/A"}').match_score == 50

    def test_missing_score_defaults_to_50(self):
        assert parse_score_reply('{"summary": "no score"}').match_score == 50

    def test_percent_string_and_float(self):
        assert parse_score_reply('{"match_score": "85%"}').match_score == 85
        assert parse_score_reply('{"match_score": 77.9}').match_score == 77

    def test_zero_score_is_kept(self):
        assert parse_score_reply('{"match_score": 0}').match_score == 0

    def test_unknown_seniority_is_medium(self):
        assert parse_score_reply('{"match_score": 60, "seniority_fit": "Junior"}').seniority_fit == SeniorityFit.MEDIUM

    def test_no_json_is_malformed(self):
        with pytest.raises(MalformedResponse):
            parse_score_reply("I cannot score this resume.")

    def test_broken_json_is_malformed(self):
        with pytest.raises(MalformedResponse):
            parse_score_reply('{"match_score": 80, "summary": ')


class TestScoringClient:
    """HTTP behaviour of the scoring client"""

    @pytest.mark.asyncio
    @patch('app.services.scoring.requests.post')
    async def test_score_success(self, mock_post, openai_settings):
        mock_post.return_value = chat_response(
            '{"match_score": 88, "skills_match": "90%", "seniority_fit": "Strong", "summary": "Great."}'
        )
        client = ScoringClient(openai_settings, RequestThrottle(delay=0))

        result = await client.score("resume text", "jd text")

        assert result.match_score == 88
        assert result.seniority_fit == SeniorityFit.STRONG
        args, kwargs = mock_post.call_args
        assert args[0] == "https://api.openai.com/v1/chat/completions"
        assert kwargs["timeout"] == 5
        user_prompt = kwargs["json"]["messages"][1]["content"]
        assert "resume text" in user_prompt and "jd text" in user_prompt
        assert "Skills (40%)" in kwargs["json"]["messages"][0]["content"]
        await client.throttle.aclose()

    @pytest.mark.asyncio
    @patch('app.services.scoring.requests.post')
    async def test_provider_error_carries_message(self, mock_post, openai_settings):
        mock_post.return_value = error_response(429, {"error": {"message": "Rate limit exceeded"}})
        client = ScoringClient(openai_settings, RequestThrottle(delay=0))

        with pytest.raises(ProviderError) as exc_info:
            await client.score("resume", "jd")

        assert exc_info.value.message == "Rate limit exceeded"
        assert exc_info.value.details["status_code"] == 429
        await client.throttle.aclose()

    @pytest.mark.asyncio
    @patch('app.services.scoring.requests.post')
    async def test_transport_error_is_provider_error(self, mock_post, openai_settings):
        mock_post.side_effect = requests.ConnectionError("refused")
        client = ScoringClient(openai_settings, RequestThrottle(delay=0))

        with pytest.raises(ProviderError):
            await client.score("resume", "jd")
        await client.throttle.aclose()

    @pytest.mark.asyncio
    @patch('app.services.scoring.requests.post')
    async def test_unexpected_envelope_is_malformed(self, mock_post, openai_settings):
        response = chat_response("")
        response.json.return_value = {"unexpected": True}
        mock_post.return_value = response
        client = ScoringClient(openai_settings, RequestThrottle(delay=0))

        with pytest.raises(MalformedResponse):
            await client.score("resume", "jd")
        await client.throttle.aclose()

    @pytest.mark.asyncio
    @patch('app.services.scoring.requests.post')
    async def test_non_text_content_is_malformed(self, mock_post, openai_settings):
        response = chat_response("")
        response.json.return_value = {
            "choices": [{"message": {"content": [{"type": "text", "text": '{"match_score": 80}'}]}}]
        }
        mock_post.return_value = response
        client = ScoringClient(openai_settings, RequestThrottle(delay=0))

        with pytest.raises(MalformedResponse):
            await client.score("resume", "jd")
        assert await client.extract_name("Jane Doe", "jane.pdf") is None
        await client.throttle.aclose()

    @pytest.mark.asyncio
    @patch('app.services.scoring.requests.post')
    async def test_extract_name(self, mock_post, openai_settings):
        mock_post.return_value = chat_response('{"name": "Jane Doe"}')
        client = ScoringClient(openai_settings, RequestThrottle(delay=0))

        assert await client.extract_name("Jane Doe\nEngineer", "jane.pdf") == "Jane Doe"
        payload = mock_post.call_args.kwargs["json"]
        assert payload["max_tokens"] == 50
        await client.throttle.aclose()

    @pytest.mark.asyncio
    @patch('app.services.scoring.requests.post')
    async def test_extract_name_unknown_sentinel(self, mock_post, openai_settings):
        mock_post.return_value = chat_response('{"name": "Unknown"}')
        client = ScoringClient(openai_settings, RequestThrottle(delay=0))

        assert await client.extract_name("...", "blank.pdf") is None
        await client.throttle.aclose()

    @pytest.mark.asyncio
    @patch('app.services.scoring.requests.post')
    async def test_extract_name_failures_are_swallowed(self, mock_post, openai_settings):
        mock_post.return_value = error_response(500, {"error": {"message": "boom"}})
        client = ScoringClient(openai_settings, RequestThrottle(delay=0))

        assert await client.extract_name("Jane Doe", "jane.pdf") is None

        mock_post.return_value = chat_response("no json here")
        assert await client.extract_name("Jane Doe", "jane.pdf") is None
        await client.throttle.aclose()

    @pytest.mark.asyncio
    @patch('app.services.scoring.requests.post')
    async def test_anthropic_round_trip(self, mock_post, anthropic_settings):
        response = MagicMock()
        response.status_code = 200
        response.ok = True
        response.json.return_value = {"content": [{"type": "text", "text": '{"match_score": 40, "seniority_fit": "Weak"}'}]}
        mock_post.return_value = response
        client = ScoringClient(anthropic_settings, RequestThrottle(delay=0))

        result = await client.score("resume", "jd")

        assert client.provider == Provider.ANTHROPIC
        assert result.match_score == 40
        assert result.seniority_fit == SeniorityFit.WEAK
        assert mock_post.call_args.args[0] == "https://api.anthropic.com/v1/messages"
        await client.throttle.aclose()
