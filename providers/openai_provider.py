"""OpenAI and OpenAI-compatible (Deepseek) provider implementations."""

import os
from typing import Any, Dict, Optional, Sequence

from config import settings

from .base import LLMProvider, LLMResponse, with_system_message


class OpenAIProvider(LLMProvider):
    """Provider for OpenAI models."""

    MODELS = {
        "gpt-4o": "gpt-4o",
        "gpt-4o-mini": "gpt-4o-mini",
        "gpt-4-turbo": "gpt-4-turbo",
        "gpt-4": "gpt-4",
        "gpt-3.5-turbo": "gpt-3.5-turbo",
        "o1": "o1",
        "o1-mini": "o1-mini",
    }
    BASE_URL: Optional[str] = None
    ENV_KEY = "OPENAI_API_KEY"

    def __init__(self, api_key: Optional[str] = None):
        """Initialize OpenAI provider.

        Args:
            api_key: API key. Falls back to settings, then the provider's env var.
        """
        self.api_key = api_key or self._settings_key() or os.environ.get(self.ENV_KEY)
        self._client = None
        self._async_client = None

    def _settings_key(self) -> str:
        return settings.openai_api_key

    @property
    def name(self) -> str:
        return "openai"

    @property
    def default_model(self) -> str:
        return "gpt-4o"

    def _client_kwargs(self) -> Dict[str, Any]:
        kwargs: Dict[str, Any] = {"api_key": self.api_key, "timeout": settings.api_timeout_seconds}
        if self.BASE_URL:
            kwargs["base_url"] = self.BASE_URL
        return kwargs

    def _get_client(self):
        if self._client is None:
            from openai import OpenAI
            self._client = OpenAI(**self._client_kwargs())
        return self._client

    def _get_async_client(self):
        if self._async_client is None:
            from openai import AsyncOpenAI
            self._async_client = AsyncOpenAI(**self._client_kwargs())
        return self._async_client

    def _resolve_model(self, model: Optional[str]) -> str:
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
            "messages": with_system_message(system_prompt, messages),
        }
        if temperature is not None:
            request["temperature"] = temperature
        return request

    def _to_response(self, response, model: str) -> LLMResponse:
        usage = getattr(response, "usage", None)
        return LLMResponse(
            content=response.choices[0].message.content or "",
            input_tokens=getattr(usage, "prompt_tokens", 0) or 0,
            output_tokens=getattr(usage, "completion_tokens", 0) or 0,
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
        response = self._get_client().chat.completions.create(**request)
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
        response = await self._get_async_client().chat.completions.create(**request)
        return self._to_response(response, request["model"])

    def is_available(self) -> bool:
        return bool(self.api_key)


class DeepseekProvider(OpenAIProvider):
    """Provider for Deepseek models (OpenAI-compatible API)."""

    MODELS = {
        "deepseek-chat": "deepseek-chat",
        "deepseek-coder": "deepseek-coder",
        "deepseek-reasoner": "deepseek-reasoner",
    }
    BASE_URL = "https://api.deepseek.com/v1"
    ENV_KEY = "DEEPSEEK_API_KEY"

    def _settings_key(self) -> str:
        return settings.deepseek_api_key

    @property
    def name(self) -> str:
        return "deepseek"

    @property
    def default_model(self) -> str:
        return "deepseek-chat"
