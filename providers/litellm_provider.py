"""LiteLLM-backed provider. One implementation for any model LiteLLM can route to."""

from typing import Any, Dict, Optional, Sequence

from config import settings

from .base import LLMProvider, LLMResponse, with_system_message


# LiteLLM model strings: provider/model-name (OpenAI can omit prefix)
DEFAULT_MODELS = {
    "anthropic": "anthropic/claude-sonnet-4-20250514",
    "openai": "gpt-4o-mini",
    "gemini": "gemini/gemini-2.0-flash",
    "deepseek": "deepseek/deepseek-chat",
}

# Map provider + optional model -> LiteLLM model string
MODEL_ALIASES = {
    "anthropic": {
        None: "anthropic/claude-sonnet-4-20250514",
        "claude-sonnet": "anthropic/claude-sonnet-4-20250514",
        "claude-opus": "anthropic/claude-opus-4-20250514",
        "claude-haiku": "anthropic/claude-3-5-haiku-20241022",
    },
    "openai": {
        None: "gpt-4o-mini",
        "gpt-4o": "gpt-4o",
        "gpt-4o-mini": "gpt-4o-mini",
        "gpt-4-turbo": "gpt-4-turbo",
    },
    "gemini": {
        None: "gemini/gemini-2.0-flash",
        "gemini-2.0-flash": "gemini/gemini-2.0-flash",
        "gemini-2.5-flash": "gemini/gemini-2.5-flash",
        "gemini-2.5-pro": "gemini/gemini-2.5-pro",
    },
    "deepseek": {
        None: "deepseek/deepseek-chat",
        "deepseek-chat": "deepseek/deepseek-chat",
        "deepseek-reasoner": "deepseek/deepseek-reasoner",
    },
}


def _match_alias(aliases: Dict[Optional[str], str], model_lower: str) -> Optional[str]:
    # Longest alias first, so gpt-4o-mini wins over gpt-4o
    for alias in sorted((a for a in aliases if a), key=len, reverse=True):
        if model_lower == alias or model_lower.startswith(alias + "-") or model_lower.startswith(alias + "."):
            return aliases[alias]
    return None


def to_litellm_model(provider_name: Optional[str], model: Optional[str]) -> str:
    """Map provider + model to a LiteLLM model string."""
    if provider_name:
        key = provider_name.lower()
        if key in ("claude", "gpt", "google"):
            key = "anthropic" if key == "claude" else "openai" if key == "gpt" else "gemini"
        if key in MODEL_ALIASES:
            aliases = MODEL_ALIASES[key]
            if model:
                matched = _match_alias(aliases, model.lower())
                if matched:
                    return matched
                if key == "openai" or "/" in model:
                    return model
                return f"{key}/{model}"
            return aliases[None]
    if model:
        model_lower = model.lower()
        for aliases in MODEL_ALIASES.values():
            matched = _match_alias(aliases, model_lower)
            if matched:
                return matched
        return model
    return DEFAULT_MODELS["openai"]


class LiteLLMProvider(LLMProvider):
    """Single provider that delegates to litellm.completion() / litellm.acompletion()."""

    def __init__(self, default_model: Optional[str] = None, metadata: Optional[dict] = None):
        """Initialize with the LiteLLM model string to use by default.

        Args:
            default_model: LiteLLM model string (e.g. gpt-4o-mini, anthropic/claude-sonnet-4-20250514).
                Derived from settings when omitted.
            metadata: Optional dict passed to litellm with every call (e.g. session id).
        """
        self._default_model = (
            to_litellm_model(settings.default_provider, settings.default_model)
            if default_model is None else default_model
        )
        self._metadata = metadata or {}

    @property
    def name(self) -> str:
        return "litellm"

    @property
    def default_model(self) -> str:
        return self._default_model

    def set_metadata(self, metadata: dict) -> None:
        """Merge metadata sent with subsequent calls."""
        self._metadata.update(metadata)

    def _request(
        self,
        system_prompt: str,
        messages: Sequence[Dict[str, str]],
        model: Optional[str],
        max_tokens: int,
        temperature: Optional[float],
    ) -> Dict[str, Any]:
        request = {
            "model": model or self._default_model,
            "messages": with_system_message(system_prompt, messages),
            "max_tokens": max_tokens,
            "timeout": settings.api_timeout_seconds,
            "metadata": {**self._metadata},
        }
        if temperature is not None:
            request["temperature"] = temperature
        return request

    def _to_response(self, response, model: str) -> LLMResponse:
        content = response.choices[0].message.content or ""
        usage = getattr(response, "usage", None)
        hidden = getattr(response, "_hidden_params", None) or {}
        return LLMResponse(
            content=content,
            input_tokens=getattr(usage, "prompt_tokens", 0) or 0,
            output_tokens=getattr(usage, "completion_tokens", 0) or 0,
            model=getattr(response, "model", None) or model,
            provider=self.name,
            cost=float(hidden.get("response_cost", 0) or 0),
        )

    def chat(
        self,
        system_prompt: str,
        messages: Sequence[Dict[str, str]],
        model: Optional[str] = None,
        max_tokens: int = 4096,
        temperature: Optional[float] = None,
    ) -> LLMResponse:
        import litellm

        request = self._request(system_prompt, messages, model, max_tokens, temperature)
        response = litellm.completion(**request)
        return self._to_response(response, request["model"])

    async def achat(
        self,
        system_prompt: str,
        messages: Sequence[Dict[str, str]],
        model: Optional[str] = None,
        max_tokens: int = 4096,
        temperature: Optional[float] = None,
    ) -> LLMResponse:
        import litellm

        request = self._request(system_prompt, messages, model, max_tokens, temperature)
        response = await litellm.acompletion(**request)
        return self._to_response(response, request["model"])

    def is_available(self) -> bool:
        """LiteLLM reads API keys from env; we consider it available if the model is set."""
        return bool(self._default_model)
