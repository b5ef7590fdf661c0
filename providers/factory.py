"""Factory for creating chat providers."""

from typing import Optional, Dict, Type

from config import settings

from .base import LLMProvider
from .anthropic_provider import AnthropicProvider
from .openai_provider import OpenAIProvider, DeepseekProvider
from .litellm_provider import LiteLLMProvider, to_litellm_model


# Registry of available providers
PROVIDERS: Dict[str, Type[LLMProvider]] = {
    "anthropic": AnthropicProvider,
    "claude": AnthropicProvider,
    "openai": OpenAIProvider,
    "gpt": OpenAIProvider,
    "deepseek": DeepseekProvider,
    "litellm": LiteLLMProvider,
}

ALIASES = ("claude", "gpt")

# Model to provider mapping for auto-detection
MODEL_PROVIDERS: Dict[str, str] = {
    # Anthropic
    "claude": "anthropic",
    "sonnet": "anthropic",
    "opus": "anthropic",
    "haiku": "anthropic",
    # OpenAI
    "gpt-": "openai",
    "o1": "openai",
    # Deepseek
    "deepseek": "deepseek",
}


def _instantiate(provider_key: str, model: Optional[str]) -> LLMProvider:
    if provider_key == "litellm":
        return LiteLLMProvider(default_model=to_litellm_model(None, model) if model else None)
    return PROVIDERS[provider_key]()


def get_provider(
    provider_name: Optional[str] = None,
    model: Optional[str] = None,
) -> LLMProvider:
    """Get a chat provider instance.

    Args:
        provider_name: Explicit provider name (anthropic, openai, deepseek, litellm)
        model: Model name - if provided without provider, will auto-detect provider

    Returns:
        LLMProvider instance

    Examples:
        get_provider("anthropic")
        get_provider(model="gpt-4o")           # OpenAI provider
        get_provider(model="gemini/gemini-2.0-flash")  # LiteLLM, routed by prefix
        get_provider()                          # settings.default_provider
    """
    if provider_name:
        provider_key = provider_name.lower()
        if provider_key not in PROVIDERS:
            raise ValueError(
                f"Unknown provider: {provider_name}. "
                f"Available: {list(PROVIDERS.keys())}"
            )
        return _instantiate(provider_key, model)

    if model:
        model_lower = model.lower()
        for prefix, provider in MODEL_PROVIDERS.items():
            if model_lower.startswith(prefix):
                return PROVIDERS[provider]()
        # Anything else in provider/model form is LiteLLM's to route
        if "/" in model_lower:
            return LiteLLMProvider(default_model=model)

    return get_provider(settings.default_provider)


def list_providers() -> Dict[str, bool]:
    """List all providers and their availability.

    Returns:
        Dict mapping provider name to availability status
    """
    result = {}
    for name in PROVIDERS:
        if name in ALIASES:
            continue
        try:
            result[name] = _instantiate(name, None).is_available()
        except Exception:
            result[name] = False
    return result
