"""Tests for the template loader: file parsing, caching and the built-in fallback."""

import json
import logging
from pathlib import Path

from contracts import Phase
from templates import TemplateLoader, builtin_template
from templates.loader import BUILTIN_TEMPLATE_LABEL


LIBRARY_DIR = Path(__file__).resolve().parent.parent / "templates" / "library"


class TestBuiltinTemplate:
    """Test the built-in default template."""

    def test_has_fourteen_sections(self):
        template = builtin_template()
        assert len(template.sections) == 14
        assert template.sections_in_order()[0].key == "title"
        assert template.sections_in_order()[-1].key == "open_questions"

    def test_required_and_optional(self):
        template = builtin_template()
        optional = [s.key for s in template.sections if not s.required]
        assert optional == ["technical_constraints", "timeline_milestones", "risks_dependencies", "open_questions"]

    def test_every_phase_covered(self):
        template = builtin_template()
        for phase in Phase:
            assert template.sections_for_phase(phase), phase


class TestTemplateLoader:
    """Test TemplateLoader."""

    def test_loads_json_file(self, loader):
        template = loader.load("small.json")
        assert template.name == "Small"
        assert template.section_keys() == ["title", "problem_statement", "risks"]
        assert [s.order for s in template.sections] == [1, 2, 3]

    def test_default_name(self, loader):
        assert loader.load().name == "Small"

    def test_missing_file_falls_back(self, loader, caplog):
        with caplog.at_level(logging.WARNING, logger="templates.loader"):
            template = loader.load("nope.json")
        assert len(template.sections) == 14
        assert "not found" in caplog.text

    def test_invalid_json_falls_back(self, template_dir, loader, caplog):
        (template_dir / "broken.json").write_text("{not json", encoding="utf-8")
        with caplog.at_level(logging.ERROR, logger="templates.loader"):
            template = loader.load("broken.json")
        assert template == builtin_template()
        assert "broken.json" in caplog.text

    def test_duplicate_keys_fall_back(self, template_dir, loader):
        data = {"sections": [{"key": "a", "title": "A"}, {"key": "a", "title": "B"}]}
        (template_dir / "dupes.json").write_text(json.dumps(data), encoding="utf-8")
        assert len(loader.load("dupes.json").sections) == 14

    def test_unknown_phase_keeps_template(self, template_dir, loader, caplog):
        data = {
            "name": "Mine",
            "sections": [{"key": "a", "title": "A", "mappedPhase": "Design"}, {"key": "b", "title": "B"}],
        }
        (template_dir / "mine.json").write_text(json.dumps(data), encoding="utf-8")
        with caplog.at_level(logging.WARNING, logger="contracts.template_contracts"):
            template = loader.load("mine.json")
        assert template.name == "Mine"
        assert template.get_section("a").phase is None
        assert [s.key for s in template.sections_for_phase(Phase.DISCOVERY)] == ["b"]
        assert "Design" in caplog.text

    def test_non_object_falls_back(self, template_dir, loader):
        (template_dir / "list.json").write_text("[]", encoding="utf-8")
        assert len(loader.load("list.json").sections) == 14

    def test_cache(self, template_dir, loader):
        first = loader.load("small.json")
        assert loader.is_cached("small.json")
        (template_dir / "small.json").write_text("{}", encoding="utf-8")
        assert loader.load("small.json") is first

        loader.clear_cache()
        assert not loader.is_cached("small.json")
        assert loader.load("small.json").sections == ()

    def test_fallback_is_cached_under_requested_name(self, loader):
        loader.load("nope.json")
        assert loader.is_cached("nope.json")

    def test_list_templates(self, template_dir, loader):
        (template_dir / "b.json").write_text("{}", encoding="utf-8")
        (template_dir / "notes.txt").write_text("x", encoding="utf-8")
        assert loader.list_templates() == ["b.json", "small.json"]

    def test_list_templates_without_directory(self, tmp_path):
        loader = TemplateLoader(template_dir=str(tmp_path / "missing"))
        assert loader.list_templates() == [BUILTIN_TEMPLATE_LABEL]


class TestShippedTemplates:
    """Test the JSON templates shipped in templates/library."""

    def test_default_matches_builtin_keys(self):
        loader = TemplateLoader(template_dir=str(LIBRARY_DIR))
        template = loader.load("default-prd-template.json")
        assert template.section_keys() == builtin_template().section_keys()
        assert template.get_section("acceptance_criteria").phase == Phase.ACCEPTANCE_CRITERIA

    def test_feature_brief(self):
        loader = TemplateLoader(template_dir=str(LIBRARY_DIR))
        template = loader.load("feature-brief.json")
        assert template.name == "Feature Brief"
        assert [s.order for s in template.sections] == [1, 2, 3, 4, 5]
        assert not template.get_section("technical_constraints").required
