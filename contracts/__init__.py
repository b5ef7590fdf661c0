"""Pydantic contracts for the PRD interview assistant.

Everything that crosses a component boundary is typed through these contracts.
"""

from .template_contracts import (
    Phase,
    PHASE_ORDER,
    parse_phase,
    phase_index,
    Section,
    Template,
)

from .session_contracts import (
    utcnow,
    SessionStatus,
    MessageRole,
    Message,
    SessionSummary,
    SessionSnapshot,
    CompletionEstimate,
    ExtractionOutcome,
    DocumentPreview,
    SweepReport,
    StartResult,
    TurnResult,
    GeneratedDocument,
)

from .protocol_contracts import (
    AnomalyKind,
    ProtocolDecodeAnomaly,
    DecodedReply,
)

__all__ = [
    # Template
    "Phase",
    "PHASE_ORDER",
    "parse_phase",
    "phase_index",
    "Section",
    "Template",
    # Session
    "utcnow",
    "SessionStatus",
    "MessageRole",
    "Message",
    "SessionSummary",
    "SessionSnapshot",
    "CompletionEstimate",
    "ExtractionOutcome",
    "DocumentPreview",
    "SweepReport",
    "StartResult",
    "TurnResult",
    "GeneratedDocument",
    # Protocol
    "AnomalyKind",
    "ProtocolDecodeAnomaly",
    "DecodedReply",
]
