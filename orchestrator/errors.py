"""Errors raised by the conversation layer.

Each error carries a ``status_code`` so a boundary (CLI, HTTP layer) can map it
to a client-visible signal: not found, gone, conflict, or bad gateway. None of
them leave in-memory session state half-updated.
"""

from typing import Optional

from contracts import SessionStatus


class ConversationError(Exception):
    """Base class for session and turn errors."""

    status_code = 500

    def __init__(self, message: str, session_id: Optional[str] = None):
        super().__init__(message)
        self.session_id = session_id


class SessionNotFoundError(ConversationError):
    """No session with this id exists."""

    status_code = 404

    def __init__(self, session_id: str):
        super().__init__(f"Session '{session_id}' not found.", session_id)


class SessionExpiredError(ConversationError):
    """The session exists but timed out."""

    status_code = 410

    def __init__(self, session_id: str):
        super().__init__(f"Session '{session_id}' has expired.", session_id)


class SessionNotActiveError(ConversationError):
    """The session's status does not allow the requested change."""

    status_code = 409

    def __init__(self, session_id: str, status: SessionStatus):
        super().__init__(f"Session '{session_id}' is {status.value}.", session_id)
        self.status = status


class SessionIdCollisionError(ConversationError):
    """A freshly generated id is already in use."""

    def __init__(self, session_id: str):
        super().__init__(f"Session id collision: '{session_id}'.", session_id)


class UpstreamChatFailure(ConversationError):
    """The chat provider call failed. The turn can be retried."""

    status_code = 502

    def __init__(
        self,
        message: str,
        session_id: Optional[str] = None,
        provider: Optional[str] = None,
        response_body: Optional[str] = None,
    ):
        super().__init__(message, session_id)
        self.provider = provider
        self.response_body = response_body
