"""Completion estimation for interview data against a template.

Two formulas share the same weighting (required sections count 2.0, optional
1.0, a section is filled when its value is present and not blank):

- document level: filled / total * 100
- session level: filled / total * 90, plus a bonus of up to 10 for how far the
  session has progressed through PHASE_ORDER, capped at 100

Scores are rounded to one decimal with Python's round(), i.e. ties go to the
even digit (11.25 -> 11.2).
"""

from typing import List, Mapping, Tuple

from contracts import CompletionEstimate, Phase, PHASE_ORDER, Template, phase_index

SESSION_BASE_SCALE = 90.0
DOCUMENT_SCALE = 100.0
MAX_PHASE_BONUS = 10.0


def is_filled(data: Mapping[str, str], key: str) -> bool:
    value = data.get(key)
    return value is not None and bool(value.strip())


def _weights(data: Mapping[str, str], template: Template) -> Tuple[float, float]:
    total = sum(s.weight for s in template.sections)
    filled = sum(s.weight for s in template.sections if is_filled(data, s.key))
    return total, filled


def missing_required(data: Mapping[str, str], template: Template) -> List[str]:
    """Titles of required sections that are absent or blank, in document order."""
    return [
        s.title for s in template.sections_in_order()
        if s.required and not is_filled(data, s.key)
    ]


def document_gaps(data: Mapping[str, str], template: Template) -> List[str]:
    """Same sections as missing_required, described as 'Title: Description'."""
    return [
        f"{s.title}: {s.description}" for s in template.sections_in_order()
        if s.required and not is_filled(data, s.key)
    ]


def phase_bonus(phase: Phase) -> float:
    """0.0 for the first phase up to MAX_PHASE_BONUS for the last."""
    return phase_index(phase) / (len(PHASE_ORDER) - 1) * MAX_PHASE_BONUS


def estimate_document(data: Mapping[str, str], template: Template) -> CompletionEstimate:
    """Completeness of a finished document's data. No phase bonus."""
    if not template.sections:
        return CompletionEstimate(score=0.0, missing_required=[])
    total, filled = _weights(data, template)
    score = round(filled / total * DOCUMENT_SCALE, 1)
    return CompletionEstimate(score=score, missing_required=missing_required(data, template))


def estimate_session(data: Mapping[str, str], phase: Phase, template: Template) -> CompletionEstimate:
    """Completeness of an interview in progress, rewarding phase progression."""
    if not template.sections:
        return CompletionEstimate(score=0.0, missing_required=[])
    total, filled = _weights(data, template)
    base = round(filled / total * SESSION_BASE_SCALE, 1)
    score = min(DOCUMENT_SCALE, round(base + phase_bonus(phase), 1))
    return CompletionEstimate(score=score, missing_required=missing_required(data, template))
