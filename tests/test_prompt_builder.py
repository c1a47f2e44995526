"""Tests for prompt composition."""

from idempiere_codegen.models import ProjectContext
from idempiere_codegen.prompt_builder import (
    COMPONENT_DESCRIPTIONS,
    OUTPUT_FORMAT,
    build_prompt,
    describe_component,
    user_instructions,
)


def _ctx(**kwargs) -> ProjectContext:
    defaults = dict(plugin_id="org.example.plugin", base_package="org.example.plugin")
    defaults.update(kwargs)
    return ProjectContext(**defaults)


class TestDescriptions:
    def test_known_type(self):
        assert describe_component("callout") == COMPONENT_DESCRIPTIONS["callout"]

    def test_unknown_type_gets_generic_description(self):
        assert describe_component("widget") == "An iDempiere widget component."


class TestUserInstructions:
    def test_prompt_entry(self):
        assert user_instructions({"prompt": "Validate totals"}) == "Validate totals"

    def test_blank_or_missing(self):
        assert user_instructions(None) is None
        assert user_instructions({}) is None
        assert user_instructions({"prompt": "   "}) is None
        assert user_instructions({"prompt": 42}) is None


class TestBuildPrompt:
    def test_skill_text_embedded(self):
        prompt = build_prompt("# Callout skill\nDo X.", _ctx(), "callout", "MyCallout")
        assert "## Skill Instructions\n# Callout skill\nDo X." in prompt
        assert "## Component Type" not in prompt

    def test_description_without_skill(self):
        prompt = build_prompt(None, _ctx(), "process", "MyProcess")
        assert "## Component Type\n" + COMPONENT_DESCRIPTIONS["process"] in prompt
        assert "## Skill Instructions" not in prompt

    def test_project_context_lines(self):
        ctx = _ctx(
            platform_version=13,
            existing_classes=["Activator", "MyCallout"],
            has_activator=True,
        )
        prompt = build_prompt(None, ctx, "callout", "Other")
        assert "- Plugin ID: org.example.plugin" in prompt
        assert "- Base package: org.example.plugin" in prompt
        assert "- Platform version: iDempiere 13" in prompt
        assert "- Existing classes: [Activator, MyCallout]" in prompt
        assert "- Has Activator: true" in prompt
        assert "- Has CalloutFactory: false" in prompt

    def test_optional_context_omitted(self):
        prompt = build_prompt(None, _ctx(), "callout", "X")
        assert "Platform version" not in prompt
        assert "Existing classes" not in prompt
        assert "## Current MANIFEST.MF" not in prompt

    def test_manifest_included(self):
        prompt = build_prompt(None, _ctx(manifest_content="Bundle-Version: 1.0"), "callout", "X")
        assert "## Current MANIFEST.MF\n```\nBundle-Version: 1.0\n```" in prompt

    def test_task_and_extra_parameters(self):
        prompt = build_prompt(
            None, _ctx(), "callout", "OrderCallout",
            {"prompt": "Set the discount", "table": "C_Order", "column": "C_BPartner_ID"},
        )
        assert "## Task\nGenerate a callout named OrderCallout." in prompt
        assert "## User Instructions\nSet the discount" in prompt
        assert "Additional parameters: {column=C_BPartner_ID, table=C_Order}" in prompt

    def test_ends_with_output_contract(self):
        prompt = build_prompt(None, _ctx(), "callout", "X")
        assert prompt.endswith(OUTPUT_FORMAT)
        assert '"files"' in prompt
        assert "manifest_additions" in prompt
