"""Session contracts: lifecycle status, transcript messages and turn results."""

from pydantic import BaseModel, ConfigDict, Field
from typing import Dict, List, Optional
from enum import Enum
from datetime import datetime, timezone

from .template_contracts import Phase


def utcnow() -> datetime:
    """Timezone-aware current UTC time."""
    return datetime.now(timezone.utc)


class SessionStatus(str, Enum):
    """Lifecycle status of an interview session."""
    ACTIVE = "Active"
    CANCELLED = "Cancelled"
    EXPIRED = "Expired"
    PRD_GENERATED = "PrdGenerated"
    SUBMITTED_TO_JIRA = "SubmittedToJira"


class MessageRole(str, Enum):
    """Author of a transcript message."""
    USER = "user"
    ASSISTANT = "assistant"


class Message(BaseModel):
    """A single transcript entry. Messages are never edited once appended."""
    model_config = ConfigDict(frozen=True)

    role: MessageRole
    content: str
    timestamp: datetime = Field(default_factory=utcnow)


class SessionSummary(BaseModel):
    """Listing view of a session."""
    session_id: str
    status: SessionStatus
    phase: Phase
    message_count: int = Field(..., ge=0)
    created_at: datetime
    last_activity: datetime


class SessionSnapshot(BaseModel):
    """Read-only copy of a session, taken under the session's lock."""
    model_config = ConfigDict(frozen=True)

    session_id: str
    status: SessionStatus
    phase: Phase
    messages: List[Message] = Field(default_factory=list)
    extracted_data: Dict[str, str] = Field(default_factory=dict)
    template_name: str
    project_context: Optional[str] = None
    created_at: datetime
    last_activity: datetime


class CompletionEstimate(BaseModel):
    """Completeness score and the required sections still missing."""
    score: float = Field(..., ge=0.0, le=100.0)
    missing_required: List[str] = Field(default_factory=list, description="Titles, in document order")


class ExtractionOutcome(BaseModel):
    """State of a session after a reply's extracted data has been merged."""
    completion: float = Field(..., ge=0.0, le=100.0)
    missing_sections: List[str] = Field(default_factory=list)
    is_complete: bool = False
    phase: Phase
    phase_changed: bool = False


class DocumentPreview(BaseModel):
    """Section-by-section view of what the interview has gathered so far."""
    sections: Dict[str, str] = Field(default_factory=dict, description="Section title -> content or placeholder")
    missing_sections: List[str] = Field(default_factory=list)
    completeness_score: float = Field(..., ge=0.0, le=100.0)


class SweepReport(BaseModel):
    """What one pass of the session sweeper did."""
    expired: List[str] = Field(default_factory=list)
    removed: List[str] = Field(default_factory=list)


class StartResult(BaseModel):
    """Outcome of opening a new interview."""
    session_id: str
    welcome_message: str
    phase: Phase


class TurnResult(BaseModel):
    """Outcome of one user turn."""
    session_id: str
    reply: str
    phase: Phase
    completion: float = Field(..., ge=0.0, le=100.0)
    is_complete: bool = False
    missing_sections: List[str] = Field(default_factory=list)
    preview: Optional[DocumentPreview] = None


class GeneratedDocument(BaseModel):
    """Full document written by the model from the gathered interview data."""
    session_id: str
    title: str
    markdown: str
    completeness_score: float = Field(..., ge=0.0, le=100.0)
    gaps: List[str] = Field(default_factory=list)
    generated_at: datetime = Field(default_factory=utcnow)
