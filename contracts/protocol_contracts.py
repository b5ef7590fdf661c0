"""Protocol contracts for decoded model replies."""

from pydantic import BaseModel, Field
from typing import Dict, List, Optional
from enum import Enum

from .template_contracts import Phase


class AnomalyKind(str, Enum):
    """Kinds of malformed markup the reply decoder tolerates."""
    UNTERMINATED_BLOCK = "unterminated_block"
    UNMATCHED_KEY = "unmatched_key"
    STRAY_CLOSE_TAG = "stray_close_tag"
    BLANK_KEY = "blank_key"
    EMPTY_ENTRY = "empty_entry"
    UNTERMINATED_DIRECTIVE = "unterminated_directive"
    UNKNOWN_PHASE = "unknown_phase"


class ProtocolDecodeAnomaly(BaseModel):
    """Something malformed in a reply. Recorded, never raised."""
    kind: AnomalyKind
    detail: str = ""
    position: int = Field(default=-1, description="Index in the scanned text, -1 if not applicable")


class DecodedReply(BaseModel):
    """A model reply split into visible text and structured data."""
    reply: str = Field(..., description="Reply text with markers removed")
    extracted: Dict[str, str] = Field(default_factory=dict, description="Section key -> extracted text")
    phase: Optional[Phase] = Field(None, description="Requested phase transition, if any")
    anomalies: List[ProtocolDecodeAnomaly] = Field(default_factory=list)

    @property
    def has_data(self) -> bool:
        return bool(self.extracted)
