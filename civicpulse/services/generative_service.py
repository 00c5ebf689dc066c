"""
Generative text through the OpenAI chat completions API.

Model output that is expected to be JSON is returned as a tagged result:
`Parsed(value)` when it decodes, `Unparsed(raw)` otherwise, so callers can
fall back to explicit text extraction instead of guessing at shapes.
"""

import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Optional, Union

import openai

from civicpulse.errors import (
    MalformedResponse,
    UpstreamAuthFailure,
    UpstreamError,
    UpstreamRateLimited,
    UpstreamTimeout,
    UpstreamUnavailable,
)

logger = logging.getLogger(__name__)

CODE_FENCE = re.compile(r"^```(?:json)?\s*|\s*```$", re.IGNORECASE)


@dataclass(frozen=True)
class Parsed:
    value: Any
    kind: str = "parsed"


@dataclass(frozen=True)
class Unparsed:
    raw: str
    kind: str = "unparsed"


ModelResult = Union[Parsed, Unparsed]


def parse_model_json(text: str) -> ModelResult:
    """Decode model output as JSON, tolerating markdown code fences and chatter
    around a single top-level object."""
    cleaned = CODE_FENCE.sub("", (text or "").strip()).strip()
    try:
        return Parsed(json.loads(cleaned))
    except ValueError:
        pass

    start, end = cleaned.find("{"), cleaned.rfind("}")
    if 0 <= start < end:
        try:
            return Parsed(json.loads(cleaned[start:end + 1]))
        except ValueError:
            pass
    return Unparsed(text or "")


def translate_openai_error(error: openai.OpenAIError, provider: str = "openai") -> UpstreamError:
    """Map an OpenAI SDK exception to the CivicPulse error kinds"""
    if isinstance(error, openai.APITimeoutError):
        return UpstreamTimeout(provider, "request timed out")
    if isinstance(error, openai.APIConnectionError):
        return UpstreamUnavailable(provider, f"connection failed: {error}")
    if isinstance(error, openai.RateLimitError):
        if getattr(error, "code", None) == "insufficient_quota":
            return UpstreamAuthFailure(provider, "quota exhausted", 429)
        return UpstreamRateLimited(provider, "rate limited", 429)
    if isinstance(error, (openai.AuthenticationError, openai.PermissionDeniedError)):
        return UpstreamAuthFailure(provider, "request rejected", error.status_code)
    if isinstance(error, openai.APIStatusError):
        if error.status_code >= 500:
            return UpstreamUnavailable(provider, f"server error {error.status_code}", error.status_code)
        return UpstreamError(provider, str(error), error.status_code)
    return UpstreamError(provider, str(error))


class GenerativeService:
    def __init__(self, client: Optional[openai.AsyncOpenAI], model: str = "gpt-4o-mini"):
        self.client = client
        self.model = model

    @property
    def enabled(self) -> bool:
        return self.client is not None

    async def generate(self, prompt: str, temperature: float = 0.3, max_tokens: int = 512) -> str:
        if self.client is None:
            raise UpstreamAuthFailure("openai", "API key not configured")

        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=[{"role": "user", "content": prompt}],
                temperature=temperature,
                max_tokens=max_tokens,
            )
        except openai.OpenAIError as e:
            raise translate_openai_error(e) from e

        if not response.choices or response.choices[0].message.content is None:
            raise MalformedResponse("openai", "empty completion")
        return response.choices[0].message.content.strip()

    async def generate_json(self, prompt: str, temperature: float = 0.2, max_tokens: int = 512) -> ModelResult:
        text = await self.generate(prompt, temperature=temperature, max_tokens=max_tokens)
        result = parse_model_json(text)
        if isinstance(result, Unparsed):
            logger.warning("Model output was not valid JSON (%d chars)", len(result.raw))
        return result
