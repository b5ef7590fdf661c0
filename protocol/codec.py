"""Reply protocol codec.

Models are instructed to append structured data to their conversational reply
using a small marker grammar:

    <visible reply text>
    ---EXTRACTED---
    [section_key]
    content...
    [/section_key]
    ---/EXTRACTED---
    ---PHASE:PhaseName---

Decoding never raises. Malformed markup degrades to "no data, no phase
change" and is recorded as ProtocolDecodeAnomaly entries on the result.
"""

import logging
from typing import Dict, List, Mapping, Optional, Tuple

from contracts import (
    AnomalyKind,
    DecodedReply,
    Phase,
    ProtocolDecodeAnomaly,
    parse_phase,
)

logger = logging.getLogger(__name__)

EXTRACT_START = "---EXTRACTED---"
EXTRACT_END = "---/EXTRACTED---"
PHASE_MARKER = "---PHASE:"
DIRECTIVE_END = "---"


def _locate_block(text: str) -> Optional[Tuple[int, int]]:
    """Index of the first start marker and the first end marker, if they pair up."""
    start = text.find(EXTRACT_START)
    end = text.find(EXTRACT_END)
    if start < 0 or end < 0 or end <= start:
        return None
    return start, end


def _scan_entries(block: str, anomalies: List[ProtocolDecodeAnomaly]) -> Dict[str, str]:
    """Scan [key] ... [/key] pairs left to right.

    States per iteration: look for an opening '[', read the token up to ']',
    then either skip it (close tag or blank key), or look for its matching
    close tag. An unmatched opener is skipped and the scan resumes right after it.
    """
    data: Dict[str, str] = {}
    pos = 0
    while pos < len(block):
        open_at = block.find("[", pos)
        if open_at < 0:
            break
        token_end = block.find("]", open_at)
        if token_end < 0:
            break

        key = block[open_at + 1:token_end]
        if key.startswith("/"):
            anomalies.append(ProtocolDecodeAnomaly(
                kind=AnomalyKind.STRAY_CLOSE_TAG, detail=key, position=open_at,
            ))
            pos = token_end + 1
            continue
        if not key.strip():
            anomalies.append(ProtocolDecodeAnomaly(
                kind=AnomalyKind.BLANK_KEY, position=open_at,
            ))
            pos = token_end + 1
            continue

        close_tag = f"[/{key}]"
        close_at = block.find(close_tag, token_end)
        if close_at < 0:
            anomalies.append(ProtocolDecodeAnomaly(
                kind=AnomalyKind.UNMATCHED_KEY, detail=key, position=open_at,
            ))
            pos = token_end + 1
            continue

        value = block[token_end + 1:close_at].strip()
        if value:
            data[key] = value
        else:
            anomalies.append(ProtocolDecodeAnomaly(
                kind=AnomalyKind.EMPTY_ENTRY, detail=key, position=open_at,
            ))
        pos = close_at + len(close_tag)
    return data


def parse_extracted(text: str, anomalies: Optional[List[ProtocolDecodeAnomaly]] = None) -> Dict[str, str]:
    """Extract section key -> content pairs from the reply's extraction block.

    Args:
        text: Raw model reply
        anomalies: Optional list that receives any malformed-markup records

    Returns:
        Mapping of section key to trimmed, non-empty content. Empty if the
        block is absent or malformed.
    """
    if anomalies is None:
        anomalies = []
    located = _locate_block(text)
    if located is None:
        if EXTRACT_START in text:
            anomalies.append(ProtocolDecodeAnomaly(
                kind=AnomalyKind.UNTERMINATED_BLOCK, position=text.find(EXTRACT_START),
            ))
        return {}
    start, end = located
    block = text[start + len(EXTRACT_START):end].strip()
    return _scan_entries(block, anomalies)


def parse_phase_directive(text: str, anomalies: Optional[List[ProtocolDecodeAnomaly]] = None) -> Optional[Phase]:
    """Phase named by the first ---PHASE:Name--- directive, if it is a known phase."""
    if anomalies is None:
        anomalies = []
    marker_at = text.find(PHASE_MARKER)
    if marker_at < 0:
        return None
    name_start = marker_at + len(PHASE_MARKER)
    name_end = text.find(DIRECTIVE_END, name_start)
    if name_end < 0:
        anomalies.append(ProtocolDecodeAnomaly(
            kind=AnomalyKind.UNTERMINATED_DIRECTIVE, position=marker_at,
        ))
        return None
    name = text[name_start:name_end].strip()
    phase = parse_phase(name)
    if phase is None:
        anomalies.append(ProtocolDecodeAnomaly(
            kind=AnomalyKind.UNKNOWN_PHASE, detail=name, position=marker_at,
        ))
    return phase


def clean_reply_text(text: str) -> str:
    """Remove extraction blocks and phase directives; trim the rest.

    This is the text shown to the user, so no marker may survive it. Only the
    first block and the first directive carry data, but later ones are removed
    as well. Leftovers of malformed markup are dropped too: an unterminated
    block loses everything from its start marker on, a stray end marker is
    deleted, and an unterminated directive loses the rest of its line.
    """
    cleaned = text
    while True:
        start = cleaned.find(EXTRACT_START)
        if start < 0:
            break
        end = cleaned.find(EXTRACT_END, start)
        if end < 0:
            cleaned = cleaned[:start]
            break
        cleaned = cleaned[:start] + cleaned[end + len(EXTRACT_END):]
    cleaned = cleaned.replace(EXTRACT_END, "")

    while True:
        marker_at = cleaned.find(PHASE_MARKER)
        if marker_at < 0:
            break
        directive_end = cleaned.find(DIRECTIVE_END, marker_at + len(PHASE_MARKER))
        if directive_end >= 0:
            cleaned = cleaned[:marker_at] + cleaned[directive_end + len(DIRECTIVE_END):]
        else:
            line_end = cleaned.find("\n", marker_at)
            cleaned = cleaned[:marker_at] + ("" if line_end < 0 else cleaned[line_end:])
    return cleaned.strip()


def decode_reply(text: Optional[str]) -> DecodedReply:
    """Split a raw model reply into visible text, extracted data and phase directive."""
    text = text or ""
    anomalies: List[ProtocolDecodeAnomaly] = []
    extracted = parse_extracted(text, anomalies)
    phase = parse_phase_directive(text, anomalies)
    for anomaly in anomalies:
        logger.debug("Reply protocol anomaly: %s %s at %d", anomaly.kind.value, anomaly.detail, anomaly.position)
    return DecodedReply(
        reply=clean_reply_text(text),
        extracted=extracted,
        phase=phase,
        anomalies=anomalies,
    )


def render_extraction_block(data: Mapping[str, str]) -> str:
    """Write key -> content pairs in the extraction block grammar."""
    if not data:
        return ""
    lines = [EXTRACT_START]
    for key, value in data.items():
        lines.extend([f"[{key}]", value, f"[/{key}]"])
    lines.append(EXTRACT_END)
    return "\n".join(lines)


def render_phase_directive(phase: Phase) -> str:
    return f"{PHASE_MARKER}{phase.value}{DIRECTIVE_END}"


def encode_reply(
    text: str,
    extracted: Optional[Mapping[str, str]] = None,
    phase: Optional[Phase] = None,
) -> str:
    """Compose a reply the way a model following the protocol would."""
    parts = [text]
    if extracted:
        parts.append(render_extraction_block(extracted))
    if phase is not None:
        parts.append(render_phase_directive(phase))
    return "\n".join(parts)
