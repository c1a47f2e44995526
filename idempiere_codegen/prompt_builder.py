"""
Prompt Builder
==============
Assembles the generation request sent to the AI backend.

A skill (SKILL.md) is embedded verbatim when available; otherwise a short
built-in description of the component type stands in.  The prompt always
ends with the JSON output contract that the response parser relies on.
"""

from typing import Any, Dict, Optional

from idempiere_codegen.models import ProjectContext

# Built-in component descriptions used when no SKILL.md is available.
COMPONENT_DESCRIPTIONS: Dict[str, str] = {
    "callout": (
        "An iDempiere column-level callout implementing IColumnCallout. "
        "Use @Callout(tableName, columnName) annotation for registration. "
        "The existing CalloutFactory scans the package for all @Callout classes automatically."
    ),
    "process": (
        "An iDempiere server-side process extending SvrProcess. "
        "Use @Process annotation with its own AnnotationBasedProcessFactory."
    ),
    "process-mapped": (
        "An iDempiere process using MappedProcessFactory (2Pack compatible). "
        "Extends SvrProcess, registered via MappedProcessFactory in Activator."
    ),
    "event-handler": (
        "An iDempiere model event handler using @EventDelegate annotation. "
        "Handles lifecycle events like BeforeNew, AfterChange on model objects."
    ),
    "zk-form": "A ZK programmatic form extending ADForm for iDempiere UI.",
    "zk-form-zul": "A ZUL-based form with separate .zul layout file and Controller class.",
    "listbox-group": "A form with grouped/collapsible Listbox using GroupsModel.",
    "wlistbox-editor": "A form with custom WListbox column editors.",
    "report": "An iDempiere report process extending SvrProcess.",
    "jasper-report": "A Jasper report with Activator and sample .jrxml template.",
    "window-validator": "An iDempiere window-level event validator.",
    "rest-extension": "A REST API resource extension using JAX-RS annotations.",
    "facts-validator": "An iDempiere accounting facts validator.",
    "base-test": "A JUnit test class using AbstractTestCase (iDempiere test infrastructure).",
}

OUTPUT_FORMAT = """
## Output Format
Respond with ONLY a JSON object (no markdown fences, no explanation):
{
  "files": [
    {"path": "relative/path/from/plugin/root/File.java", "content": "full file content"}
  ],
  "manifest_additions": ["Import-Package lines to add"],
  "build_properties_additions": ["lines to add to build.properties"]
}

IMPORTANT:
- Paths are relative to the plugin root directory
- Include full file content, not snippets
- Use the exact package based on the Plugin ID
- Follow the naming conventions visible in existing classes
"""


def describe_component(component_type: str) -> str:
    """Return the built-in description for a component type."""
    return COMPONENT_DESCRIPTIONS.get(
        component_type, f"An iDempiere {component_type} component."
    )


def user_instructions(extra: Optional[Dict[str, Any]]) -> Optional[str]:
    """Return the non-blank free-form ``prompt`` entry of ``extra``, if any."""
    if not extra:
        return None
    value = extra.get("prompt")
    if isinstance(value, str) and value.strip():
        return value
    return None


def _flag(value: bool) -> str:
    return "true" if value else "false"


def build_prompt(
    skill: Optional[str],
    ctx: ProjectContext,
    component_type: str,
    name: str,
    extra: Optional[Dict[str, Any]] = None,
) -> str:
    """Compose the prompt for one component generation request.

    Args:
        skill: SKILL.md text, or None to use the built-in description.
        ctx: Analysed project context.
        component_type: Component type tag (e.g. ``"callout"``).
        name: Component (class) name to generate.
        extra: Optional parameters; a ``"prompt"`` entry is rendered as
            user instructions, the rest as additional parameters.

    Returns:
        The full prompt text.
    """
    parts = ["You are generating an iDempiere plugin component.\n"]

    if skill is not None:
        parts.append("## Skill Instructions")
        parts.append(skill + "\n")
    else:
        parts.append("## Component Type")
        parts.append(describe_component(component_type) + "\n")

    parts.append("## Project Context")
    parts.append(f"- Plugin ID: {ctx.plugin_id}")
    parts.append(f"- Base package: {ctx.base_package}")
    if ctx.platform_version is not None:
        parts.append(f"- Platform version: iDempiere {ctx.platform_version}")
    if ctx.existing_classes:
        parts.append(f"- Existing classes: [{', '.join(ctx.existing_classes)}]")
    parts.append(f"- Uses annotation pattern: {_flag(ctx.uses_annotation_pattern)}")
    parts.append(f"- Has Activator: {_flag(ctx.has_activator)}")
    parts.append(f"- Has CalloutFactory: {_flag(ctx.has_callout_factory)}")
    parts.append(f"- Has EventManager: {_flag(ctx.has_event_manager)}")

    if ctx.manifest_content is not None:
        parts.append("\n## Current MANIFEST.MF\n```\n" + ctx.manifest_content + "\n```")

    parts.append("\n## Task")
    parts.append(f"Generate a {component_type} named {name}.")

    if extra:
        instructions = user_instructions(extra)
        if instructions:
            parts.append("\n## User Instructions")
            parts.append(instructions)
        params = {k: v for k, v in extra.items() if k != "prompt"}
        if params:
            rendered = ", ".join(f"{k}={params[k]}" for k in sorted(params))
            parts.append(f"Additional parameters: {{{rendered}}}")

    return "\n".join(parts) + "\n" + OUTPUT_FORMAT
