"""Reply protocol: decoding model replies and building the prompts that describe it."""

from .codec import (
    EXTRACT_START,
    EXTRACT_END,
    PHASE_MARKER,
    decode_reply,
    parse_extracted,
    parse_phase_directive,
    clean_reply_text,
    render_extraction_block,
    render_phase_directive,
    encode_reply,
)
from .prompts import (
    build_system_prompt,
    build_welcome_prompt,
    build_turns,
    build_document_prompt,
    extraction_instructions,
)

__all__ = [
    "EXTRACT_START",
    "EXTRACT_END",
    "PHASE_MARKER",
    "decode_reply",
    "parse_extracted",
    "parse_phase_directive",
    "clean_reply_text",
    "render_extraction_block",
    "render_phase_directive",
    "encode_reply",
    "build_system_prompt",
    "build_welcome_prompt",
    "build_turns",
    "build_document_prompt",
    "extraction_instructions",
]
