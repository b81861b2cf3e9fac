"""
Generative Language API client

Implements the text-completion contract used by the meal, grocery, chat and
foodie-personality features: a prompt goes in, the model's text comes out.
The gamification engine does not depend on this module.
"""

import logging
from typing import Any, Dict, Optional, Protocol, runtime_checkable

import httpx

from chikitsa.config import (
    GEMINI_API_BASE,
    GEMINI_API_KEY,
    GEMINI_MODEL,
    GEMINI_TIMEOUT_SECONDS,
)
from chikitsa.exceptions import ConfigurationError, GeminiAPIError, wrap_external_exception
from chikitsa.monitoring.metrics import track_ai_call
from chikitsa.resilience.retry import MAX_RETRIES, retry_with_backoff

logger = logging.getLogger(__name__)


@runtime_checkable
class TextGenerator(Protocol):
    """Prompt-in, text-out completion function"""

    async def complete(self, prompt: str, call_type: str = "completion") -> str:
        ...


def extract_text(payload: Dict[str, Any]) -> str:
    """
    Concatenate the text parts of the first candidate

    Returns:
        Response text, or an empty string when the payload has none
    """
    candidates = payload.get("candidates") or []
    if not candidates:
        return ""

    parts = (candidates[0].get("content") or {}).get("parts") or []
    return "".join(part.get("text", "") for part in parts)


class GeminiClient:
    """Async client for the generateContent endpoint"""

    def __init__(
        self,
        api_key: str = GEMINI_API_KEY,
        model: str = GEMINI_MODEL,
        base_url: str = GEMINI_API_BASE,
        timeout: float = GEMINI_TIMEOUT_SECONDS,
        http_client: Optional[httpx.AsyncClient] = None,
        max_retries: int = MAX_RETRIES,
    ):
        if not api_key:
            raise ConfigurationError("GEMINI_API_KEY is required", config_key="GEMINI_API_KEY")

        self.api_key = api_key
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.max_retries = max_retries
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(timeout=timeout)

    @property
    def endpoint(self) -> str:
        return f"{self.base_url}/models/{self.model}:generateContent"

    async def complete(self, prompt: str, call_type: str = "completion") -> str:
        """
        Generate text for a prompt

        Args:
            prompt: Full prompt text
            call_type: Label for metrics (meal_plan, grocery_list, chat, ...)

        Returns:
            Model output text

        Raises:
            GeminiAPIError: request failed after retries or returned no text
        """
        with track_ai_call(call_type):
            try:
                payload = await retry_with_backoff(
                    self._generate, prompt, max_retries=self.max_retries
                )
            except httpx.HTTPError as e:
                raise wrap_external_exception(
                    e,
                    operation="gemini_generate_content",
                    context={"call_type": call_type, "model": self.model}
                )

            text = extract_text(payload)
            if not text.strip():
                raise GeminiAPIError(
                    "Gemini returned no text",
                    operation="gemini_generate_content"
                )

        logger.debug(f"Gemini {call_type} returned {len(text)} chars")
        return text

    async def _generate(self, prompt: str) -> Dict[str, Any]:
        response = await self._client.post(
            self.endpoint,
            headers={"x-goog-api-key": self.api_key},
            json={"contents": [{"parts": [{"text": prompt}]}]},
        )
        response.raise_for_status()
        return response.json()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "GeminiClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()
