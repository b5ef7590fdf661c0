"""Prompt construction for interview turns and document generation.

The system prompt is rebuilt on every turn: the list of missing sections
shrinks as data accumulates and the phase-specific guidance follows the
session's current phase.
"""

from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from contracts import Message, MessageRole, Phase, PHASE_ORDER, Template

from .codec import EXTRACT_END, EXTRACT_START, PHASE_MARKER, DIRECTIVE_END


INTERVIEWER_PROMPT = """You are an expert product manager conducting a stakeholder interview to gather requirements for a PRD.

## Your Behavior

- Ask focused, open-ended questions one or two at a time
- Listen carefully and ask smart follow-up questions
- Acknowledge the stakeholder's input before moving on
- Transition naturally between topics
- Be conversational but professional
- If answers are vague, probe deeper with specific examples
- Do NOT write the PRD yourself - only gather information
"""

DOCUMENT_WRITER_PROMPT = """You are a senior product manager writing a PRD.

Generate a complete, professional PRD in Markdown using the template sections below.
Fill every section from the extracted interview data provided.
If data for a section is missing, write "[TO BE COMPLETED]".

## Template Sections
"""


def _format_phase_sections(template: Template, phase: Phase) -> str:
    sections = template.sections_for_phase(phase)
    if not sections:
        return "No specific sections mapped to this phase."
    lines = []
    for s in sections:
        lines.append(f"- {s.title}: {s.description}")
        lines.append(f"  Hints: {', '.join(s.hints)}")
    return "\n".join(lines)


def format_extracted_data(data: Mapping[str, str]) -> str:
    if not data:
        return "No data extracted yet."
    return "\n\n".join(f"### {key}\n{value}" for key, value in data.items())


def extraction_instructions(template: Template) -> str:
    """The marker grammar, the valid section keys and the valid phase names."""
    keys = ", ".join(template.section_keys())
    phases = ", ".join(p.value for p in PHASE_ORDER)
    return (
        "## IMPORTANT - Structured Data Extraction\n"
        "After your conversational reply, you MUST append a data block in this exact format:\n\n"
        f"{EXTRACT_START}\n"
        "[section_key]\n"
        "extracted content here\n"
        "[/section_key]\n"
        f"{EXTRACT_END}\n\n"
        "Only include sections where the user provided NEW information in their latest message.\n"
        f"Use these section keys: {keys}\n\n"
        f"If the user message does not contain extractable PRD data, omit the {EXTRACT_START} block entirely.\n\n"
        "## Phase Transition\n"
        "If you believe the current phase is sufficiently covered, append:\n"
        f"{PHASE_MARKER}NextPhaseName{DIRECTIVE_END}\n"
        f"Valid phases: {phases}"
    )


def build_system_prompt(
    template: Template,
    phase: Phase,
    extracted_data: Mapping[str, str],
    missing_required: Sequence[str],
    project_context: Optional[str] = None,
) -> str:
    """Build the interviewer's system prompt for the next turn.

    Args:
        template: Template being filled in
        phase: Session's current phase
        extracted_data: Data gathered so far
        missing_required: Titles of required sections not yet covered
        project_context: Optional free-text context supplied at session start

    Returns:
        The complete system prompt
    """
    parts = [INTERVIEWER_PROMPT]
    parts.append(f"\n## Current Interview Phase: {phase.value}\n")
    parts.append("## Sections to Cover in This Phase\n")
    parts.append(_format_phase_sections(template, phase))
    parts.append("\n\n## Still Missing (required sections not yet covered)\n")
    parts.append(", ".join(missing_required) if missing_required else "None")
    parts.append("\n")
    if project_context:
        parts.append(f"\n## Project Context\n{project_context}\n")
    parts.append("\n## Extracted Data So Far\n")
    parts.append(format_extracted_data(extracted_data))
    parts.append("\n\n")
    parts.append(extraction_instructions(template))
    return "".join(parts)


def build_welcome_prompt(project_context: Optional[str] = None) -> str:
    """Opening instruction that asks the model to introduce itself and start."""
    ctx = f" The project context is: {project_context}" if project_context else ""
    return (
        "Please introduce yourself and begin the stakeholder interview to gather "
        f"requirements for a PRD.{ctx} Start with the Discovery phase - ask about "
        "the problem being solved and who the target users are."
    )


def build_turns(
    messages: Sequence[Message],
    max_turns: int,
    project_context: Optional[str] = None,
) -> List[Dict[str, str]]:
    """Provider-ready conversation history.

    Keeps the last ``max_turns * 2`` messages. Chat APIs expect the history to
    open with a user turn, so if the window starts with an assistant message
    the welcome prompt is put in front of it.
    """
    window = list(messages)[-(max_turns * 2):]
    turns = [{"role": m.role.value, "content": m.content} for m in window]
    if not turns or turns[0]["role"] != MessageRole.USER.value:
        turns.insert(0, {"role": MessageRole.USER.value, "content": build_welcome_prompt(project_context)})
    return turns


def build_document_prompt(data: Mapping[str, str], template: Template) -> Tuple[str, str]:
    """System prompt and user message asking for the full Markdown document."""
    section_list = "\n".join(
        f"- **{s.title}** (key: {s.key}): {s.description}"
        for s in template.sections_in_order()
    )
    data_block = "\n".join(f"[{key}]\n{value}" for key, value in data.items())
    user_message = (
        "Here is the extracted interview data:\n\n"
        f"{data_block}\n\n"
        "Please generate the complete PRD document in Markdown."
    )
    return DOCUMENT_WRITER_PROMPT + section_list, user_message
