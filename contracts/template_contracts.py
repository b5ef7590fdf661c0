"""Template contracts: interview phases and the sections of a target document."""

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from typing import Any, Dict, List, Optional, Tuple
from enum import Enum
import logging

logger = logging.getLogger(__name__)


class Phase(str, Enum):
    """Interview stage. Values are the names models use in phase directives."""
    DISCOVERY = "Discovery"
    REQUIREMENTS = "Requirements"
    TECHNICAL = "Technical"
    ACCEPTANCE_CRITERIA = "AcceptanceCriteria"
    REVIEW = "Review"


# Canonical progression. Completion bonuses are computed from a phase's rank here,
# never from the enum's declaration order.
PHASE_ORDER: Tuple[Phase, ...] = (
    Phase.DISCOVERY,
    Phase.REQUIREMENTS,
    Phase.TECHNICAL,
    Phase.ACCEPTANCE_CRITERIA,
    Phase.REVIEW,
)


def parse_phase(name: Optional[str]) -> Optional[Phase]:
    """Match a phase name case-insensitively. Unknown names give None."""
    if not name:
        return None
    wanted = name.strip().lower()
    for phase in PHASE_ORDER:
        if phase.value.lower() == wanted:
            return phase
    return None


def phase_index(phase: Phase) -> int:
    """0-based rank of a phase in PHASE_ORDER."""
    return PHASE_ORDER.index(phase)


class Section(BaseModel):
    """One section of the target document."""
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    key: str = Field(..., min_length=1, description="Identifier used in extraction blocks")
    title: str = Field(..., description="Human readable section title")
    description: str = Field(default="", description="What the section should contain")
    required: bool = Field(default=True, description="Whether the section counts as missing when empty")
    order: int = Field(default=0, ge=0, description="Document ordering; 0 means 'use load position'")
    phase: Optional[Phase] = Field(default=Phase.DISCOVERY, alias="mappedPhase", description="Interview phase that covers this section; None if the name is unknown")
    hints: Tuple[str, ...] = Field(default=(), alias="promptHints", description="Questions that help the model cover the section")

    @field_validator("phase", mode="before")
    @classmethod
    def parse_phase_name(cls, value: Any) -> Any:
        """Accept phase names in any letter case.

        An unknown name keeps the section but maps it to no phase, so no
        phase's guidance lists it.
        """
        if isinstance(value, str):
            parsed = parse_phase(value)
            if parsed is None:
                logger.warning("Unknown phase '%s'; section is not mapped to a phase", value)
            return parsed
        return value

    @property
    def weight(self) -> float:
        """Completion weight: required sections count double."""
        return 2.0 if self.required else 1.0


class Template(BaseModel):
    """Ordered catalog of document sections. Immutable once loaded."""
    model_config = ConfigDict(frozen=True, extra="ignore")

    name: str = Field(default="", description="Template name")
    description: str = Field(default="", description="What kind of document this template produces")
    version: str = Field(default="1.0", description="Template version")
    sections: Tuple[Section, ...] = Field(default=(), description="Sections in load order")

    @model_validator(mode="before")
    @classmethod
    def fill_missing_order(cls, data: Any) -> Any:
        """Sections without an explicit order take their 1-based load position."""
        if not isinstance(data, dict):
            return data
        raw_sections = data.get("sections") or data.get("Sections")
        if not raw_sections:
            return data
        filled = []
        for position, section in enumerate(raw_sections, start=1):
            if isinstance(section, dict):
                section = dict(section)
                order_key = "order" if "order" in section else "Order"
                if not section.get(order_key):
                    section[order_key] = position
                # Keys may arrive as "Order"; normalise for the Section model
                section = {(k[0].lower() + k[1:] if k else k): v for k, v in section.items()}
            filled.append(section)
        data = {(k[0].lower() + k[1:] if k else k): v for k, v in data.items()}
        data["sections"] = filled
        return data

    @model_validator(mode="after")
    def check_unique_keys(self) -> "Template":
        """Section keys must identify sections uniquely."""
        seen = set()
        for section in self.sections:
            if section.key in seen:
                raise ValueError(f"Duplicate section key: {section.key}")
            seen.add(section.key)
        return self

    def sections_in_order(self) -> List[Section]:
        """Sections sorted by order; ties keep load order."""
        return sorted(self.sections, key=lambda s: s.order)

    def get_section(self, key: str) -> Optional[Section]:
        for section in self.sections:
            if section.key == key:
                return section
        return None

    def sections_for_phase(self, phase: Phase) -> List[Section]:
        """Sections the given phase is meant to cover, in document order."""
        return [s for s in self.sections_in_order() if s.phase == phase]

    def section_keys(self) -> List[str]:
        """Every valid extraction key, in load order."""
        return [s.key for s in self.sections]

    def titles_by_key(self) -> Dict[str, str]:
        return {s.key: s.title for s in self.sections}
