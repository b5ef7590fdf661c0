"""Interview session state.

A Session is owned by the ConversationManager. Other components may append to
its transcript or merge extracted data through the manager, but only the
manager changes ``status`` or ``id``. Multi-field updates happen under the
session's own lock, so work on one session never waits on another.
"""

import threading
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional

from contracts import (
    Message,
    MessageRole,
    Phase,
    PHASE_ORDER,
    SessionSnapshot,
    SessionStatus,
    SessionSummary,
    utcnow,
)


def new_session_id() -> str:
    """Random 128-bit id, hex encoded."""
    return uuid.uuid4().hex


@dataclass
class Session:
    """One interview's accumulated state."""
    template_name: str
    project_context: Optional[str] = None
    id: str = field(default_factory=new_session_id)
    status: SessionStatus = SessionStatus.ACTIVE
    phase: Phase = PHASE_ORDER[0]
    messages: List[Message] = field(default_factory=list)
    extracted_data: Dict[str, str] = field(default_factory=dict)
    created_at: datetime = field(default_factory=utcnow)
    last_activity: Optional[datetime] = None
    lock: threading.RLock = field(default_factory=threading.RLock, repr=False, compare=False)

    def __post_init__(self):
        if self.last_activity is None:
            self.last_activity = self.created_at

    def touch(self, now: datetime) -> None:
        """Record activity. last_activity never moves backwards."""
        with self.lock:
            if now > self.last_activity:
                self.last_activity = now

    def add_message(self, role: MessageRole, content: str, now: datetime) -> Message:
        with self.lock:
            message = Message(role=role, content=content, timestamp=now)
            self.messages.append(message)
            self.touch(now)
            return message

    @property
    def is_active(self) -> bool:
        return self.status == SessionStatus.ACTIVE

    @property
    def turn_count(self) -> int:
        """Number of user messages in the transcript."""
        return sum(1 for m in self.messages if m.role == MessageRole.USER)

    def summary(self) -> SessionSummary:
        with self.lock:
            return SessionSummary(
                session_id=self.id,
                status=self.status,
                phase=self.phase,
                message_count=len(self.messages),
                created_at=self.created_at,
                last_activity=self.last_activity,
            )

    def snapshot(self) -> SessionSnapshot:
        with self.lock:
            return SessionSnapshot(
                session_id=self.id,
                status=self.status,
                phase=self.phase,
                messages=list(self.messages),
                extracted_data=dict(self.extracted_data),
                template_name=self.template_name,
                project_context=self.project_context,
                created_at=self.created_at,
                last_activity=self.last_activity,
            )
