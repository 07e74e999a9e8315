from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING, Any

import httpx
from pydantic import BaseModel, Field, ValidationError

from backend.constants import (
    APP_REFERER,
    APP_TITLE,
    DEFAULT_MAX_TOKENS,
    DEFAULT_TEMPERATURE,
    PROMPT_CACHE_FAMILIES,
)
from backend.errors import ProviderError
from backend.schemas import ProviderKind, ProviderResponse, TokenUsage

if TYPE_CHECKING:
    from backend.config.settings import OrchestratorConfig

logger = logging.getLogger(__name__)


# =============================================================================
# Wire decoders
# =============================================================================


class _AggregatorMessage(BaseModel):
    content: str | None = None


class _AggregatorChoice(BaseModel):
    message: _AggregatorMessage


class _AggregatorUsage(BaseModel):
    prompt_tokens: int | None = None
    completion_tokens: int | None = None
    total_tokens: int | None = None


class AggregatorResponse(BaseModel):
    """OpenAI-style chat completion returned by the gateway."""

    choices: list[_AggregatorChoice] = Field(min_length=1)
    usage: _AggregatorUsage | None = None

    def to_provider_response(self) -> ProviderResponse:
        content = self.choices[0].message.content or ""
        usage = self.usage or _AggregatorUsage()
        return ProviderResponse(
            content=content,
            usage=_usage(usage.prompt_tokens, usage.completion_tokens, usage.total_tokens),
        )


class _DirectPart(BaseModel):
    text: str = ""


class _DirectContent(BaseModel):
    parts: list[_DirectPart] = Field(min_length=1)


class _DirectCandidate(BaseModel):
    content: _DirectContent


class _DirectUsage(BaseModel):
    prompt_token_count: int | None = Field(default=None, alias="promptTokenCount")
    candidates_token_count: int | None = Field(default=None, alias="candidatesTokenCount")
    total_token_count: int | None = Field(default=None, alias="totalTokenCount")


class DirectResponse(BaseModel):
    """generateContent response from the vendor API."""

    candidates: list[_DirectCandidate] = Field(min_length=1)
    usage_metadata: _DirectUsage | None = Field(default=None, alias="usageMetadata")

    def to_provider_response(self) -> ProviderResponse:
        content = "".join(part.text for part in self.candidates[0].content.parts)
        usage = self.usage_metadata or _DirectUsage()
        return ProviderResponse(
            content=content,
            usage=_usage(
                usage.prompt_token_count, usage.candidates_token_count, usage.total_token_count
            ),
        )


DecodedResponse = AggregatorResponse | DirectResponse


def _usage(prompt: int | None, completion: int | None, total: int | None) -> TokenUsage:
    # Vendors may omit usage or send null counts
    prompt = max(prompt or 0, 0)
    completion = max(completion or 0, 0)
    total = total or 0
    return TokenUsage(
        prompt_tokens=prompt,
        completion_tokens=completion,
        total_tokens=total if total > 0 else prompt + completion,
    )


def _error_message(response: httpx.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        data = None
    if isinstance(data, dict):
        error = data.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
        if isinstance(error, str) and error:
            return error
    return response.reason_phrase or f"HTTP {response.status_code}"


def supports_prompt_cache(model: str) -> bool:
    return any(model.startswith(family) for family in PROMPT_CACHE_FAMILIES)


# =============================================================================
# Router
# =============================================================================


class ProviderRouter:
    """Sends one completion request to whichever protocol the model speaks.

    No retries happen here; a failure of any kind surfaces as ProviderError.
    """

    def __init__(
        self, config: OrchestratorConfig, client: httpx.AsyncClient | None = None
    ) -> None:
        self._config = config
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            timeout=httpx.Timeout(
                config.request_timeout_seconds,
                connect=min(10.0, config.request_timeout_seconds),
            )
        )

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> ProviderRouter:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    def _aggregator_request(
        self, model: str, system_prompt: str, user_text: str, max_tokens: int, temperature: float
    ) -> tuple[str, dict[str, str], dict[str, Any], dict[str, str] | None]:
        api_key = self._config.openrouter_api_key
        if not api_key:
            raise ProviderError(model, "OPENROUTER_API_KEY is not set")

        system_msg: dict[str, Any] = {"role": "system", "content": system_prompt}
        user_msg: dict[str, Any] = {"role": "user", "content": user_text}
        if supports_prompt_cache(model):
            system_msg["cache_control"] = {"type": "ephemeral"}
            user_msg["cache_control"] = {"type": "ephemeral"}

        url = f"{self._config.openrouter_base_url.rstrip('/')}/chat/completions"
        headers = {
            "Authorization": f"Bearer {api_key}",
            "HTTP-Referer": APP_REFERER,
            "X-Title": APP_TITLE,
        }
        body = {
            "model": model,
            "messages": [system_msg, user_msg],
            "max_tokens": max_tokens,
            "temperature": temperature,
        }
        return url, headers, body, None

    def _direct_request(
        self, model: str, system_prompt: str, user_text: str, max_tokens: int, temperature: float
    ) -> tuple[str, dict[str, str], dict[str, Any], dict[str, str] | None]:
        api_key = self._config.gemini_api_key
        if not api_key:
            raise ProviderError(model, "GEMINI_API_KEY is not set")

        url = f"{self._config.gemini_base_url.rstrip('/')}/models/{model}:generateContent"
        body = {
            "contents": [{"role": "user", "parts": [{"text": user_text}]}],
            "systemInstruction": {"parts": [{"text": system_prompt}]},
            "generationConfig": {"temperature": temperature, "maxOutputTokens": max_tokens},
        }
        return url, {}, body, {"key": api_key}

    async def route(
        self,
        model: str,
        system_prompt: str,
        user_text: str,
        *,
        max_tokens: int = DEFAULT_MAX_TOKENS,
        temperature: float = DEFAULT_TEMPERATURE,
    ) -> ProviderResponse:
        kind = self._config.registry.kind_for(model)
        decoder: type[DecodedResponse]
        if kind == ProviderKind.AGGREGATOR:
            url, headers, body, params = self._aggregator_request(
                model, system_prompt, user_text, max_tokens, temperature
            )
            decoder = AggregatorResponse
        else:
            url, headers, body, params = self._direct_request(
                model, system_prompt, user_text, max_tokens, temperature
            )
            decoder = DirectResponse

        logger.info(
            "LLM request starting (model=%s, provider=%s, max_tokens=%d)", model, kind, max_tokens
        )
        start_time = time.perf_counter()
        try:
            response = await self._client.post(url, headers=headers, params=params, json=body)
        except httpx.TimeoutException as e:
            raise ProviderError(
                model, f"request timed out after {time.perf_counter() - start_time:.1f}s"
            ) from e
        except httpx.HTTPError as e:
            raise ProviderError(model, f"{type(e).__name__}: {e}") from e

        if not response.is_success:
            raise ProviderError(model, _error_message(response), response.status_code)

        try:
            data = response.json()
        except ValueError as e:
            raise ProviderError(model, "response body is not JSON", response.status_code) from e

        try:
            decoded = decoder.model_validate(data)
        except ValidationError as e:
            raise ProviderError(
                model, f"malformed response ({e.error_count()} invalid field(s))"
            ) from e

        result = decoded.to_provider_response()
        if not result.content:
            raise ProviderError(model, "provider returned empty content")

        logger.info(
            "LLM request completed in %.2fs (model=%s)", time.perf_counter() - start_time, model
        )
        return result
