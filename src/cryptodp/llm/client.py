"""Text generation clients used for market commentary.

Two HTTP backends are supported:
- Ollama's native ``/api/generate`` endpoint (local models, the default).
- Any OpenAI-compatible ``/v1/chat/completions`` endpoint.

Every transport or payload problem surfaces as LLMGenerationError so the
caller can treat a failed narrative as one recoverable cycle.
"""

import re
from abc import ABC, abstractmethod

import httpx

from cryptodp.config import LLMSettings
from cryptodp.exceptions import LLMGenerationError
from cryptodp.logging import get_logger

logger = get_logger(__name__)

# Reasoning models wrap their scratchpad in <think> tags
_THINK_BLOCK = re.compile(r"<think>.*?</think>", re.DOTALL)


def clean_completion(text: str) -> str:
    return _THINK_BLOCK.sub("", text).strip()


class TextGenerator(ABC):
    """Abstract prompt -> text completion service."""

    @abstractmethod
    async def generate(self, prompt: str, temperature: float, max_tokens: int) -> str:
        """Return the completion for ``prompt``.

        Raises:
            LLMGenerationError: the service failed or returned no text.
        """
        ...

    @abstractmethod
    async def close(self) -> None:
        ...


class _HttpTextGenerator(TextGenerator):
    def __init__(
        self,
        settings: LLMSettings,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._settings = settings
        self._owns_client = http_client is None
        if http_client is None:
            headers = {}
            api_key = settings.api_key.get_secret_value()
            if api_key:
                headers["Authorization"] = f"Bearer {api_key}"
            http_client = httpx.AsyncClient(
                base_url=settings.base_url,
                timeout=settings.timeout,
                headers=headers,
            )
        self._client = http_client

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def _post(self, path: str, body: dict) -> dict:
        try:
            response = await self._client.post(path, json=body)
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPStatusError as e:
            raise LLMGenerationError(
                f"{self._settings.provider} returned HTTP {e.response.status_code}"
            ) from e
        except httpx.HTTPError as e:
            raise LLMGenerationError(f"{self._settings.provider} request failed: {e}") from e
        except ValueError as e:
            raise LLMGenerationError(f"{self._settings.provider} returned invalid JSON") from e

        if not isinstance(payload, dict):
            raise LLMGenerationError(f"{self._settings.provider} returned unexpected payload")
        return payload


class OllamaClient(_HttpTextGenerator):
    """Ollama ``/api/generate`` with streaming disabled."""

    async def generate(self, prompt: str, temperature: float, max_tokens: int) -> str:
        payload = await self._post(
            "/api/generate",
            {
                "model": self._settings.model,
                "prompt": prompt,
                "stream": False,
                "options": {"temperature": temperature, "num_predict": max_tokens},
            },
        )
        text = payload.get("response")
        if not isinstance(text, str):
            raise LLMGenerationError("ollama response missing 'response' text")
        logger.debug("llm_completion", provider="ollama", chars=len(text))
        return clean_completion(text)


class OpenAICompatibleClient(_HttpTextGenerator):
    """OpenAI-style chat completions with a single user message."""

    async def generate(self, prompt: str, temperature: float, max_tokens: int) -> str:
        payload = await self._post(
            "/v1/chat/completions",
            {
                "model": self._settings.model,
                "messages": [{"role": "user", "content": prompt}],
                "temperature": temperature,
                "max_tokens": max_tokens,
            },
        )
        try:
            text = payload["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as e:
            raise LLMGenerationError("chat completion response missing message content") from e
        if not isinstance(text, str):
            raise LLMGenerationError("chat completion content is not text")
        logger.debug("llm_completion", provider="openai", chars=len(text))
        return clean_completion(text)


def create_text_generator(
    settings: LLMSettings,
    http_client: httpx.AsyncClient | None = None,
) -> TextGenerator:
    if settings.provider == "openai":
        return OpenAICompatibleClient(settings, http_client)
    return OllamaClient(settings, http_client)
