"""Shared fixtures: a small template, a controllable clock and a scripted chat provider."""

import asyncio
import json
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, List, Optional, Sequence

import pytest

from contracts import Phase, Section, Template
from orchestrator import ConversationManager
from providers.base import LLMProvider, LLMResponse
from templates import TemplateLoader


SMALL_TEMPLATE = {
    "name": "Small",
    "description": "Two required sections and one optional",
    "sections": [
        {"key": "title", "title": "Product Title", "description": "Name of the product", "mappedPhase": "Discovery", "required": True, "promptHints": ["What is it called?"]},
        {"key": "problem_statement", "title": "Problem Statement", "description": "The problem solved", "mappedPhase": "Discovery", "required": True, "promptHints": ["What hurts?"]},
        {"key": "risks", "title": "Risks", "description": "What could go wrong", "mappedPhase": "Technical", "required": False, "promptHints": ["Any risks?"]},
    ],
}


class FakeClock:
    """Manually advanced UTC clock."""

    def __init__(self, start: Optional[datetime] = None):
        self.now = start or datetime(2024, 1, 1, 9, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


class ScriptedProvider(LLMProvider):
    """Returns queued replies and records every call.

    Set ``error`` to make the next calls fail, ``gate`` to an asyncio.Event to
    hold achat() until it is set, and ``on_call`` to run code mid-turn.
    """

    def __init__(self, replies: Optional[List[str]] = None):
        self.replies = list(replies or [])
        self.calls: List[Dict] = []
        self.error: Optional[Exception] = None
        self.gate: Optional[asyncio.Event] = None
        self.started: Optional[asyncio.Event] = None
        self.on_call: Optional[Callable[[], None]] = None

    @property
    def name(self) -> str:
        return "scripted"

    @property
    def default_model(self) -> str:
        return "scripted-1"

    def chat(
        self,
        system_prompt: str,
        messages: Sequence[Dict[str, str]],
        model: Optional[str] = None,
        max_tokens: int = 4096,
        temperature: Optional[float] = None,
    ) -> LLMResponse:
        self.calls.append({
            "system_prompt": system_prompt,
            "messages": list(messages),
            "model": model,
            "max_tokens": max_tokens,
            "temperature": temperature,
        })
        if self.on_call is not None:
            self.on_call()
        if self.error is not None:
            raise self.error
        content = self.replies.pop(0) if self.replies else "Tell me more."
        return LLMResponse(
            content=content,
            input_tokens=10,
            output_tokens=5,
            model=model or self.default_model,
            provider=self.name,
        )

    async def achat(self, system_prompt, messages, model=None, max_tokens=4096, temperature=None):
        if self.started is not None:
            self.started.set()
        if self.gate is not None:
            await self.gate.wait()
        return self.chat(system_prompt, messages, model, max_tokens, temperature)


@pytest.fixture
def small_template():
    return Template.model_validate(SMALL_TEMPLATE)


@pytest.fixture
def template_dir(tmp_path):
    (tmp_path / "small.json").write_text(json.dumps(SMALL_TEMPLATE), encoding="utf-8")
    return tmp_path


@pytest.fixture
def loader(template_dir):
    return TemplateLoader(template_dir=str(template_dir), default_template="small.json")


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def manager(clock):
    return ConversationManager(
        session_timeout=timedelta(minutes=120),
        removal_window=timedelta(minutes=60),
        cleanup_interval=timedelta(minutes=15),
        completion_threshold=90.0,
        default_template="small.json",
        clock=clock,
    )


@pytest.fixture
def provider():
    return ScriptedProvider()


def make_section(key: str, required: bool = True, order: int = 0, phase: Phase = Phase.DISCOVERY) -> Section:
    return Section(key=key, title=key.replace("_", " ").title(), required=required, order=order, phase=phase)
