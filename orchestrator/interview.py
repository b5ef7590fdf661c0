"""Interview Service - drives one interview turn end to end.

Per turn:
1. Append the user's message (Active sessions only)
2. Build the system prompt and history for the session's current state
3. Await the chat provider
4. Decode the reply into visible text, extracted data and a phase directive
5. Record the visible text, merge the data, apply the phase, rescore

If the provider call fails, nothing after step 1 happens: the user's message
stays in the transcript and retry() can re-run steps 2-5. If the awaiting task
is cancelled, the cancellation propagates and the session is left as it was
after step 1.
"""

import asyncio
import logging
from typing import Dict, List, Optional

from config import settings
from contracts import (
    DocumentPreview,
    GeneratedDocument,
    MessageRole,
    SessionSnapshot,
    StartResult,
    Template,
    TurnResult,
)
from orchestrator.completion import document_gaps, estimate_document, missing_required
from orchestrator.conversation_manager import ConversationManager, get_conversation_manager
from orchestrator.errors import SessionNotActiveError, SessionNotFoundError, UpstreamChatFailure
from protocol import (
    build_document_prompt,
    build_system_prompt,
    build_turns,
    build_welcome_prompt,
    decode_reply,
)
from providers import LLMProvider, get_provider
from templates import TemplateLoader, get_template_loader

logger = logging.getLogger(__name__)

UNTITLED = "Untitled PRD"
MAX_TITLE_LENGTH = 80


def document_title(data: Dict[str, str]) -> str:
    """Title from the 'title' section, else the problem statement's first line."""
    title = data.get("title", "").strip()
    if title:
        return title
    problem = data.get("problem_statement", "").strip()
    if problem:
        first_line = problem.split("\n")[0].strip()
        if len(first_line) > MAX_TITLE_LENGTH:
            return first_line[:MAX_TITLE_LENGTH - 3] + "..."
        return first_line
    return UNTITLED


def _response_body(error: Exception) -> Optional[str]:
    """Body of an SDK HTTP error, when the exception carries one."""
    response = getattr(error, "response", None)
    return getattr(response, "text", None)


class InterviewService:
    """Runs interview turns against a chat provider.

    Owns no state of its own: sessions live in the ConversationManager,
    templates come from the TemplateLoader.
    """

    def __init__(
        self,
        manager: Optional[ConversationManager] = None,
        templates: Optional[TemplateLoader] = None,
        provider: Optional[LLMProvider] = None,
        provider_name: Optional[str] = None,
        model: Optional[str] = None,
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
        max_conversation_turns: Optional[int] = None,
    ):
        """Initialize the service.

        Args:
            manager: Session owner. Defaults to the shared manager.
            templates: Template loader. Defaults to the shared loader.
            provider: Chat provider instance. Built from provider_name/model if omitted.
            provider_name: Provider to build (anthropic, openai, deepseek, litellm)
            model: Model override passed on every call
            max_tokens: Reply size limit
            temperature: Sampling temperature for interview turns
            max_conversation_turns: Exchanges of history sent per turn
        """
        self.manager = manager or get_conversation_manager()
        self.templates = templates or get_template_loader()
        self.llm_provider = provider or get_provider(provider_name=provider_name, model=model)
        self.model = model
        self.max_tokens = max_tokens or settings.max_tokens
        self.temperature = settings.temperature if temperature is None else temperature
        self.max_conversation_turns = max_conversation_turns or settings.max_conversation_turns

    async def start(
        self,
        template_name: Optional[str] = None,
        project_context: Optional[str] = None,
    ) -> StartResult:
        """Open a session and get the interviewer's first message.

        The opening instruction is sent to the model but not kept in the transcript.
        """
        session = self.manager.create_session(template_name, project_context)
        template = self.templates.load(session.template_name)
        snapshot = session.snapshot()
        turns = [{"role": MessageRole.USER.value, "content": build_welcome_prompt(project_context)}]

        content = await self._send(snapshot, template, turns)
        decoded = decode_reply(content)
        self.manager.add_assistant_message(session.id, decoded.reply)
        outcome = self.manager.apply_extraction_result(session.id, decoded.extracted, template, decoded.phase)
        return StartResult(session_id=session.id, welcome_message=decoded.reply, phase=outcome.phase)

    async def chat(self, session_id: str, message: str) -> TurnResult:
        """Send a user message and return the interviewer's reply.

        Raises:
            ValueError: Empty message
            SessionNotFoundError / SessionExpiredError / SessionNotActiveError
            UpstreamChatFailure: Provider call failed; the user message is kept
        """
        if not message or not message.strip():
            raise ValueError("Message cannot be empty.")
        self.manager.add_user_message(session_id, message)
        return await self._respond(session_id)

    async def retry(self, session_id: str) -> TurnResult:
        """Re-run the assistant step for the last, unanswered user message."""
        session = self.manager.get_session(session_id)
        snapshot = session.snapshot()
        if not snapshot.messages or snapshot.messages[-1].role != MessageRole.USER:
            raise ValueError(f"Session '{session_id}' has no unanswered message to retry.")
        if not session.is_active:
            raise SessionNotActiveError(session_id, snapshot.status)
        return await self._respond(session_id)

    async def _respond(self, session_id: str) -> TurnResult:
        session = self.manager.get_session(session_id)
        template = self.templates.load(session.template_name)
        snapshot = session.snapshot()
        turns = build_turns(snapshot.messages, self.max_conversation_turns, snapshot.project_context)

        content = await self._send(snapshot, template, turns)
        decoded = decode_reply(content)
        self.manager.add_assistant_message(session_id, decoded.reply)
        outcome = self.manager.apply_extraction_result(session_id, decoded.extracted, template, decoded.phase)

        preview = None
        if session.extracted_data:
            preview = self.manager.build_preview(session, template)
        return TurnResult(
            session_id=session_id,
            reply=decoded.reply,
            phase=outcome.phase,
            completion=outcome.completion,
            is_complete=outcome.is_complete,
            missing_sections=outcome.missing_sections,
            preview=preview,
        )

    async def _send(
        self,
        snapshot: SessionSnapshot,
        template: Template,
        turns: List[Dict[str, str]],
        system_prompt: Optional[str] = None,
        temperature: Optional[float] = None,
    ) -> str:
        """Call the provider. Any provider error becomes UpstreamChatFailure."""
        if system_prompt is None:
            system_prompt = build_system_prompt(
                template,
                snapshot.phase,
                snapshot.extracted_data,
                missing_required(snapshot.extracted_data, template),
                snapshot.project_context,
            )
        try:
            response = await self.llm_provider.achat(
                system_prompt,
                turns,
                model=self.model,
                max_tokens=self.max_tokens,
                temperature=self.temperature if temperature is None else temperature,
            )
        except asyncio.CancelledError:
            logger.info("Turn cancelled for session %s", snapshot.session_id)
            raise
        except Exception as e:
            logger.error("Chat provider %s failed for session %s: %s", self.llm_provider.name, snapshot.session_id, e)
            raise UpstreamChatFailure(
                f"Chat provider '{self.llm_provider.name}' failed: {e}",
                session_id=snapshot.session_id,
                provider=self.llm_provider.name,
                response_body=_response_body(e),
            ) from e
        return response.content

    def preview(self, session_id: str) -> DocumentPreview:
        """Current preview. A read-only lookup: does not extend the session's life."""
        session = self.manager.try_get_session(session_id)
        if session is None:
            raise SessionNotFoundError(session_id)
        template = self.templates.load(session.template_name)
        return self.manager.build_preview(session, template)

    def export(self, session_id: str) -> SessionSnapshot:
        """Full copy of a session's state. Does not extend the session's life."""
        session = self.manager.try_get_session(session_id)
        if session is None:
            raise SessionNotFoundError(session_id)
        return session.snapshot()

    async def generate_document(self, session_id: str) -> GeneratedDocument:
        """Have the model write the full document, then mark the session PrdGenerated."""
        session = self.manager.get_session(session_id)
        template = self.templates.load(session.template_name)
        snapshot = session.snapshot()
        system_prompt, user_message = build_document_prompt(snapshot.extracted_data, template)

        markdown = await self._send(
            snapshot,
            template,
            [{"role": MessageRole.USER.value, "content": user_message}],
            system_prompt=system_prompt,
            temperature=settings.document_temperature,
        )
        estimate = estimate_document(snapshot.extracted_data, template)
        document = GeneratedDocument(
            session_id=session_id,
            title=document_title(snapshot.extracted_data),
            markdown=markdown,
            completeness_score=estimate.score,
            gaps=document_gaps(snapshot.extracted_data, template),
        )
        self.manager.mark_prd_generated(session_id)
        logger.info("Document generated for session %s (%.1f%% complete)", session_id, estimate.score)
        return document
