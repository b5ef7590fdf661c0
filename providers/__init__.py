"""Chat provider abstraction for multi-model support."""

from .base import LLMProvider, LLMResponse
from .factory import get_provider, list_providers

__all__ = [
    "LLMProvider",
    "LLMResponse",
    "get_provider",
    "list_providers",
]
