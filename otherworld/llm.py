"""LLM client for the narrative generator.

Game components call an LLM as a coroutine:

    async def __call__(self, stage: str, prompt: str) -> str: ...

The stage decides what is asked of the backend:

  "turn"      a batch of life events. The backend is asked for JSON output
              constrained to the BatchTurnResult schema (camelCase keys).
  "analysis"  the end-of-life rewrite of the 宇外荒经 scripture, free text.

HttpLLM talks to a KoboldCpp or OpenAI-compatible completion endpoint.
Tests patch httpx or pass an AsyncMock instead.
"""

from __future__ import annotations

import logging
from typing import Any, Literal, NamedTuple, Protocol

import httpx

from otherworld.models import BatchTurnResult

logger = logging.getLogger(__name__)


class LLM(Protocol):
    async def __call__(self, stage: str, prompt: str) -> str: ...


class StageProfile(NamedTuple):
    max_tokens: int
    schema: dict[str, Any] | None = None


STAGES: dict[str, StageProfile] = {
    "turn": StageProfile(1024, BatchTurnResult.model_json_schema(by_alias=True)),
    "analysis": StageProfile(512),
}
_DEFAULT_STAGE = StageProfile(512)

ProviderFormat = Literal["koboldcpp", "openai"]


class HttpLLM:
    """Async HTTP client for the narrative generator.

    koboldcpp: POST /api/v1/generate with {"prompt", "max_length"} plus
    "json_schema" for structured stages; reads results[0].text.
    openai: POST /v1/completions with {"prompt", "max_tokens", "model"} plus
    "response_format" for structured stages; reads choices[0].text.

    An empty provider_url makes every call fail with LLMError, so the game
    falls back to its in-world error event until a connection is configured.
    """

    def __init__(
        self,
        provider_url: str,
        api_key: str = "",
        provider_format: ProviderFormat = "koboldcpp",
        model: str = "",
        timeout: float = 120.0,
    ) -> None:
        self.provider_url = provider_url.rstrip("/")
        self.api_key = api_key
        self.provider_format = provider_format
        self.model = model
        self.timeout = timeout

    @classmethod
    def from_connection(cls, conn: dict[str, Any]) -> HttpLLM:
        """Build a client from a config.json `llm_connection` dict."""
        return cls(
            provider_url=conn.get("provider_url", ""),
            api_key=conn.get("api_key", ""),
            provider_format=conn.get("provider_format", "koboldcpp"),
            model=conn.get("model", ""),
        )

    def request_for(self, stage: str, prompt: str) -> tuple[str, dict[str, Any]]:
        """Return (url, body) for one generation call."""
        profile = STAGES.get(stage)
        if profile is None:
            logger.debug("unknown llm stage %r, sending as plain text", stage)
            profile = _DEFAULT_STAGE

        if self.provider_format == "openai":
            body: dict[str, Any] = {"prompt": prompt, "max_tokens": profile.max_tokens}
            if self.model:
                body["model"] = self.model
            if profile.schema is not None:
                body["response_format"] = {
                    "type": "json_schema",
                    "json_schema": {"name": f"{stage}_batch", "schema": profile.schema},
                }
            return f"{self.provider_url}/v1/completions", body

        body = {"prompt": prompt, "max_length": profile.max_tokens}
        if profile.schema is not None:
            body["json_schema"] = profile.schema
        return f"{self.provider_url}/api/v1/generate", body

    def _completion_text(self, data: dict[str, Any]) -> str:
        key = "choices" if self.provider_format == "openai" else "results"
        items = data.get(key)
        if not items or "text" not in items[0]:
            raise LLMError(f"Unexpected response format from {self.provider_format} backend")
        return items[0]["text"]

    async def __call__(self, stage: str, prompt: str) -> str:
        if not self.provider_url:
            raise LLMError("No LLM provider configured")

        url, body = self.request_for(stage, prompt)
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        logger.debug(
            "llm call stage=%s url=%s structured=%s prompt_len=%d",
            stage, url, "json_schema" in body or "response_format" in body, len(prompt),
        )

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                resp = await client.post(url, json=body, headers=headers)
                resp.raise_for_status()
        except httpx.ConnectError as e:
            raise LLMError(f"Cannot connect to LLM backend at {self.provider_url}") from e
        except httpx.HTTPStatusError as e:
            raise LLMError(f"LLM backend returned HTTP {e.response.status_code}") from e
        except httpx.TimeoutException as e:
            raise LLMError(f"LLM backend timed out after {self.timeout}s") from e

        text = self._completion_text(resp.json())
        logger.debug("llm response stage=%s len=%d", stage, len(text))
        return text


class LLMError(RuntimeError):
    """Raised when the LLM backend cannot be reached or returns an error."""
