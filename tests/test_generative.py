"""
Test cases for generative text and model JSON parsing
"""

from types import SimpleNamespace
from unittest.mock import AsyncMock, Mock

import httpx
import openai
import pytest

from civicpulse.errors import (
    MalformedResponse,
    UpstreamAuthFailure,
    UpstreamError,
    UpstreamRateLimited,
    UpstreamUnavailable,
)
from civicpulse.services.generative_service import (
    GenerativeService,
    Parsed,
    Unparsed,
    parse_model_json,
    translate_openai_error,
)

REQUEST = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")


def status_error(cls, status, code=None):
    body = {"message": "failed", "code": code} if code else None
    return cls("failed", response=httpx.Response(status, request=REQUEST), body=body)


def completion(content):
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])


def openai_client(**create_kwargs):
    client = Mock()
    client.chat.completions.create = AsyncMock(**create_kwargs)
    return client


class TestParseModelJson:

    def test_plain_json(self):
        assert parse_model_json('{"amount": 5}') == Parsed({"amount": 5})

    def test_code_fenced_json(self):
        text = '```json\n{"democratSupport": 80, "republicanSupport": 20}\n```'

        result = parse_model_json(text)

        assert isinstance(result, Parsed)
        assert result.value["democratSupport"] == 80

    def test_object_inside_chatter(self):
        result = parse_model_json('Here is my estimate: {"amount": 45200000} Hope that helps!')

        assert result == Parsed({"amount": 45200000})

    def test_prose_is_unparsed(self):
        result = parse_model_json("About $45.2M, up +23%")

        assert isinstance(result, Unparsed)
        assert result.raw == "About $45.2M, up +23%"
        assert result.kind == "unparsed"


class TestErrorTranslation:

    def test_quota_exhaustion_is_auth_failure(self):
        error = status_error(openai.RateLimitError, 429, code="insufficient_quota")

        assert isinstance(translate_openai_error(error), UpstreamAuthFailure)

    def test_plain_rate_limit(self):
        error = status_error(openai.RateLimitError, 429)

        assert isinstance(translate_openai_error(error), UpstreamRateLimited)

    def test_rejected_key(self):
        error = status_error(openai.AuthenticationError, 401)

        translated = translate_openai_error(error)
        assert isinstance(translated, UpstreamAuthFailure)
        assert translated.status_code == 401

    def test_server_error(self):
        error = status_error(openai.InternalServerError, 500)

        assert isinstance(translate_openai_error(error), UpstreamUnavailable)

    def test_connection_error(self):
        error = openai.APIConnectionError(request=REQUEST)

        assert isinstance(translate_openai_error(error), UpstreamUnavailable)

    def test_bad_request(self):
        error = status_error(openai.BadRequestError, 400)

        translated = translate_openai_error(error)
        assert type(translated) is UpstreamError
        assert translated.status_code == 400


class TestGenerativeService:

    @pytest.mark.asyncio
    async def test_disabled_without_client(self):
        service = GenerativeService(None)

        assert service.enabled is False
        with pytest.raises(UpstreamAuthFailure):
            await service.generate("hello")

    @pytest.mark.asyncio
    async def test_generate_passes_sampling_options(self):
        client = openai_client(return_value=completion("  An answer.  "))
        service = GenerativeService(client, model="gpt-4o-mini")

        text = await service.generate("hello", temperature=0.3, max_tokens=150)

        assert text == "An answer."
        kwargs = client.chat.completions.create.await_args.kwargs
        assert kwargs["model"] == "gpt-4o-mini"
        assert kwargs["temperature"] == 0.3
        assert kwargs["max_tokens"] == 150

    @pytest.mark.asyncio
    async def test_empty_completion(self):
        service = GenerativeService(openai_client(return_value=completion(None)))

        with pytest.raises(MalformedResponse):
            await service.generate("hello")

    @pytest.mark.asyncio
    async def test_sdk_errors_are_translated(self):
        client = openai_client(side_effect=status_error(openai.AuthenticationError, 401))
        service = GenerativeService(client)

        with pytest.raises(UpstreamAuthFailure):
            await service.generate("hello")

    @pytest.mark.asyncio
    async def test_generate_json(self):
        service = GenerativeService(openai_client(return_value=completion('```\n{"ok": true}\n```')))

        assert await service.generate_json("hello") == Parsed({"ok": True})

    @pytest.mark.asyncio
    async def test_generate_json_unparsed(self):
        service = GenerativeService(openai_client(return_value=completion("not json")))

        assert await service.generate_json("hello") == Unparsed("not json")
