"""Base chat provider interface."""

import asyncio
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence


@dataclass
class LLMResponse:
    """Standardized response from any LLM provider."""
    content: str
    input_tokens: int
    output_tokens: int
    model: str
    provider: str
    cost: float = 0.0


class LLMProvider(ABC):
    """Abstract base class for chat providers.

    ``messages`` is the conversation history as ``{"role", "content"}`` dicts
    with roles ``user`` and ``assistant``, oldest first. The system prompt is
    passed separately because providers place it differently.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Provider name (anthropic, openai, deepseek, litellm)."""
        pass

    @property
    @abstractmethod
    def default_model(self) -> str:
        """Default model for this provider."""
        pass

    @abstractmethod
    def chat(
        self,
        system_prompt: str,
        messages: Sequence[Dict[str, str]],
        model: Optional[str] = None,
        max_tokens: int = 4096,
        temperature: Optional[float] = None,
    ) -> LLMResponse:
        """Generate the next assistant message.

        Args:
            system_prompt: System/instruction prompt
            messages: Conversation history, oldest first
            model: Model to use (defaults to provider's default)
            max_tokens: Maximum tokens in response
            temperature: Sampling temperature (provider default if None)

        Returns:
            LLMResponse with content and token counts
        """
        pass

    async def achat(
        self,
        system_prompt: str,
        messages: Sequence[Dict[str, str]],
        model: Optional[str] = None,
        max_tokens: int = 4096,
        temperature: Optional[float] = None,
    ) -> LLMResponse:
        """Async variant of chat().

        The default runs chat() in a worker thread; cancelling the awaiting
        task stops waiting but cannot interrupt the request itself. Providers
        with an async SDK client override this so cancellation aborts the call.
        """
        return await asyncio.to_thread(
            self.chat, system_prompt, messages, model, max_tokens, temperature
        )

    def complete(
        self,
        system_prompt: str,
        user_message: str,
        model: Optional[str] = None,
        max_tokens: int = 4096,
    ) -> LLMResponse:
        """Single-message convenience wrapper around chat()."""
        return self.chat(
            system_prompt,
            [{"role": "user", "content": user_message}],
            model=model,
            max_tokens=max_tokens,
        )

    def is_available(self) -> bool:
        """Check if this provider is available (API key set, etc.)."""
        return True


def with_system_message(system_prompt: str, messages: Sequence[Dict[str, str]]) -> List[Dict[str, str]]:
    """History in the OpenAI style, with the system prompt as the first message."""
    return [{"role": "system", "content": system_prompt}] + [
        {"role": m["role"], "content": m["content"]} for m in messages
    ]
