"""Anthropic (Claude) provider implementation."""

import os
from typing import Any, Dict, Optional, Sequence

from config import settings

from .base import LLMProvider, LLMResponse


class AnthropicProvider(LLMProvider):
    """Provider for Anthropic Claude models."""

    MODELS = {
        "claude-sonnet": "claude-sonnet-4-20250514",
        "claude-opus": "claude-opus-4-20250514",
        "claude-haiku": "claude-3-5-haiku-20241022",
        "sonnet": "claude-sonnet-4-20250514",
        "opus": "claude-opus-4-20250514",
        "haiku": "claude-3-5-haiku-20241022",
    }

    def __init__(self, api_key: Optional[str] = None):
        """Initialize Anthropic provider.

        Args:
            api_key: Anthropic API key. Falls back to settings, then ANTHROPIC_API_KEY.
        """
        self.api_key = api_key or settings.anthropic_api_key or os.environ.get("ANTHROPIC_API_KEY")
        self._client = None
        self._async_client = None

    @property
    def name(self) -> str:
        return "anthropic"

    @property
    def default_model(self) -> str:
        return "claude-sonnet-4-20250514"

    def _get_client(self):
        if self._client is None:
            from anthropic import Anthropic
            self._client = Anthropic(api_key=self.api_key, timeout=settings.api_timeout_seconds)
        return self._client

    def _get_async_client(self):
        if self._async_client is None:
            from anthropic import AsyncAnthropic
            self._async_client = AsyncAnthropic(api_key=self.api_key, timeout=settings.api_timeout_seconds)
        return self._async_client

    def _resolve_model(self, model: Optional[str]) -> str:
        """Resolve model alias to full model name."""
        if model is None:
            return self.default_model
        return self.MODELS.get(model, model)

    def _request(
        self,
        system_prompt: str,
        messages: Sequence[Dict[str, str]],
        model: Optional[str],
        max_tokens: int,
        temperature: Optional[float],
    ) -> Dict[str, Any]:
        request = {
            "model": self._resolve_model(model),
            "max_tokens": max_tokens,
            "system": system_prompt,
            "messages": [{"role": m["role"], "content": m["content"]} for m in messages],
        }
        if temperature is not None:
            request["temperature"] = temperature
        return request

    def _to_response(self, response, model: str) -> LLMResponse:
        text = "".join(
            block.text for block in response.content if getattr(block, "type", None) == "text"
        )
        usage = getattr(response, "usage", None)
        return LLMResponse(
            content=text,
            input_tokens=getattr(usage, "input_tokens", 0) or 0,
            output_tokens=getattr(usage, "output_tokens", 0) or 0,
            model=model,
            provider=self.name,
        )

    def chat(
        self,
        system_prompt: str,
        messages: Sequence[Dict[str, str]],
        model: Optional[str] = None,
        max_tokens: int = 4096,
        temperature: Optional[float] = None,
    ) -> LLMResponse:
        request = self._request(system_prompt, messages, model, max_tokens, temperature)
        response = self._get_client().messages.create(**request)
        return self._to_response(response, request["model"])

    async def achat(
        self,
        system_prompt: str,
        messages: Sequence[Dict[str, str]],
        model: Optional[str] = None,
        max_tokens: int = 4096,
        temperature: Optional[float] = None,
    ) -> LLMResponse:
        request = self._request(system_prompt, messages, model, max_tokens, temperature)
        response = await self._get_async_client().messages.create(**request)
        return self._to_response(response, request["model"])

    def is_available(self) -> bool:
        return bool(self.api_key)
