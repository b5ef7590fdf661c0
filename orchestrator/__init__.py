"""Orchestrator module: session lifecycle, scoring and the interview turn flow."""

from .completion import (
    estimate_document,
    estimate_session,
    missing_required,
    document_gaps,
    phase_bonus,
)
from .conversation_manager import (
    ConversationManager,
    SessionSweeper,
    merge_content,
    get_conversation_manager,
    reset_conversation_manager,
)
from .errors import (
    ConversationError,
    SessionNotFoundError,
    SessionExpiredError,
    SessionNotActiveError,
    SessionIdCollisionError,
    UpstreamChatFailure,
)
from .interview import InterviewService, document_title
from .session import Session

__all__ = [
    "estimate_document",
    "estimate_session",
    "missing_required",
    "document_gaps",
    "phase_bonus",
    "ConversationManager",
    "SessionSweeper",
    "merge_content",
    "get_conversation_manager",
    "reset_conversation_manager",
    "ConversationError",
    "SessionNotFoundError",
    "SessionExpiredError",
    "SessionNotActiveError",
    "SessionIdCollisionError",
    "UpstreamChatFailure",
    "InterviewService",
    "document_title",
    "Session",
]
