"""Template loader for the documents an interview fills in.

Templates are JSON files in the template directory. Loaded templates are cached
by name; a template that is missing or fails to parse is replaced by the
built-in default so that a bad file never fails an interview.
"""
from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Dict, List, Optional

from pydantic import ValidationError

from config import settings
from contracts import Phase, Section, Template

logger = logging.getLogger(__name__)

BUILTIN_TEMPLATE_LABEL = "default-prd-template.json (built-in)"


def builtin_template() -> Template:
    """The standard 14-section PRD template."""

    def section(key, title, order, description, phase, required, hint):
        return Section(
            key=key,
            title=title,
            order=order,
            description=description,
            phase=phase,
            required=required,
            hints=(hint,),
        )

    return Template(
        name="Default PRD Template",
        description="Standard product requirements document template",
        version="1.0",
        sections=(
            section("title", "Product Title", 1, "Name of the product or feature", Phase.DISCOVERY, True, "What is the name?"),
            section("problem_statement", "Problem Statement", 2, "The problem this product solves", Phase.DISCOVERY, True, "What problem are you solving?"),
            section("target_users", "Target Users", 3, "Primary and secondary users", Phase.DISCOVERY, True, "Who will use this?"),
            section("goals_objectives", "Goals & Objectives", 4, "Business goals and objectives", Phase.DISCOVERY, True, "What does success look like?"),
            section("user_stories", "User Stories", 5, "Key user stories", Phase.REQUIREMENTS, True, "Describe user workflows"),
            section("functional_requirements", "Functional Requirements", 6, "Features and capabilities", Phase.REQUIREMENTS, True, "Must-have features?"),
            section("non_functional_requirements", "Non-Functional Requirements", 7, "Performance and security", Phase.TECHNICAL, True, "Performance needs?"),
            section("technical_constraints", "Technical Constraints", 8, "Technical limitations", Phase.TECHNICAL, False, "Integration constraints?"),
            section("scope_boundaries", "Scope & Boundaries", 9, "In and out of scope", Phase.REQUIREMENTS, True, "What is out of scope?"),
            section("acceptance_criteria", "Acceptance Criteria", 10, "Completion conditions", Phase.ACCEPTANCE_CRITERIA, True, "How to verify?"),
            section("success_metrics", "Success Metrics", 11, "KPIs to measure success", Phase.ACCEPTANCE_CRITERIA, True, "What KPIs?"),
            section("timeline_milestones", "Timeline & Milestones", 12, "Key dates and phases", Phase.REQUIREMENTS, False, "Any deadlines?"),
            section("risks_dependencies", "Risks & Dependencies", 13, "Risks and mitigation", Phase.TECHNICAL, False, "What could go wrong?"),
            section("open_questions", "Open Questions", 14, "Unresolved questions", Phase.REVIEW, False, "Anything unclear?"),
        ),
    )


class TemplateLoader:
    """Loads and caches document templates.

    The cache is read-mostly: it is written on the first load of a name and
    emptied by clear_cache(). Two threads loading the same uncached name may
    both parse the file; whichever stores last wins, which is harmless because
    the parses are identical.
    """

    def __init__(self, template_dir: Optional[str] = None, default_template: Optional[str] = None):
        """Initialize the loader.

        Args:
            template_dir: Directory holding JSON templates. Defaults to config setting.
            default_template: Name used when load() is called without one.
        """
        self.template_dir = Path(template_dir or settings.template_dir)
        self.default_template = default_template or settings.default_template
        self._cache: Dict[str, Template] = {}

    def load(self, name: Optional[str] = None) -> Template:
        """Load a template by file name, falling back to the built-in default.

        Args:
            name: Template file name (e.g. 'default-prd-template.json')

        Returns:
            The parsed template, or the built-in default if the file is
            missing or invalid.
        """
        name = name or self.default_template
        cached = self._cache.get(name)
        if cached is not None:
            return cached

        path = self.template_dir / name
        if not path.is_file():
            logger.warning("Template '%s' not found, using built-in default", name)
            template = builtin_template()
        else:
            try:
                template = self._parse(path)
            except (OSError, ValueError, ValidationError) as e:
                logger.error("Failed to load template '%s': %s", name, e)
                template = builtin_template()

        self._cache[name] = template
        return template

    def _parse(self, path: Path) -> Template:
        data = json.loads(path.read_text(encoding="utf-8"))
        if not isinstance(data, dict):
            raise ValueError(f"Template '{path.name}' is not a JSON object")
        return Template.model_validate(data)

    def list_templates(self) -> List[str]:
        """Names of the JSON templates available in the template directory."""
        if not self.template_dir.is_dir():
            return [BUILTIN_TEMPLATE_LABEL]
        return sorted(p.name for p in self.template_dir.glob("*.json"))

    def clear_cache(self) -> None:
        self._cache.clear()
        logger.info("Template cache cleared")

    def is_cached(self, name: str) -> bool:
        return name in self._cache


_loader: Optional[TemplateLoader] = None


def get_template_loader() -> TemplateLoader:
    """Get the shared template loader, creating one if needed."""
    global _loader
    if _loader is None:
        _loader = TemplateLoader()
    return _loader
