"""
Shared Models
=============
Data types passed between the prompt, parser, guardrail and generator
stages: the generated file set, the analysed project context and
validation issues.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Iterable, List, Optional

from pydantic import BaseModel, ConfigDict, field_validator

logger = logging.getLogger("idempiere_codegen.models")

_IMPORT_HEADER = "Import-Package:"
_BUILD_PROPS_LABEL = re.compile(r"^\s*build\.properties\s*:\s*", re.IGNORECASE)


# ---------------------------------------------------------------------------
# Generated file set
# ---------------------------------------------------------------------------

class GeneratedFile(BaseModel):
    """One file produced by the AI, relative to the plugin root."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    path: str
    content: Optional[str] = None

    @property
    def is_java(self) -> bool:
        return self.path.endswith(".java")

    @property
    def is_blank(self) -> bool:
        return self.content is None or not self.content.strip()


class GeneratedCode(BaseModel):
    """Structured file set extracted from an AI response.

    Mirrors the JSON contract requested in the prompt::

        {"files": [{"path": ..., "content": ...}],
         "manifest_additions": [...],
         "build_properties_additions": [...]}
    """

    model_config = ConfigDict(extra="ignore", frozen=True)

    files: List[GeneratedFile] = []
    manifest_additions: List[str] = []
    build_properties_additions: List[str] = []

    @field_validator("files", "manifest_additions", "build_properties_additions", mode="before")
    @classmethod
    def none_as_empty(cls, v):
        return [] if v is None else v

    def write_to(self, plugin_dir) -> List[Path]:
        """Persist files and apply manifest/build.properties additions.

        Args:
            plugin_dir: Root directory of the target plugin.

        Returns:
            Paths of the files written.

        Raises:
            ValueError: If a file path resolves outside ``plugin_dir``.
            OSError: If a file cannot be written.
        """
        root = Path(plugin_dir).resolve()
        targets = []
        for generated in self.files:
            target = (root / generated.path).resolve()
            if target != root and root not in target.parents:
                raise ValueError(f"Refusing to write outside plugin root: {generated.path}")
            targets.append((target, generated.content or ""))

        written: List[Path] = []
        for target, content in targets:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(content, encoding="utf-8")
            written.append(target)

        if self.manifest_additions:
            _merge_manifest(root / "META-INF" / "MANIFEST.MF", self.manifest_additions)
        if self.build_properties_additions:
            _merge_build_properties(root / "build.properties", self.build_properties_additions)

        logger.info("Wrote %d generated file(s) to %s", len(written), root)
        return written


def _split_manifest_entries(value: str) -> List[str]:
    """Split an Import-Package value on commas outside quotes."""
    entries: List[str] = []
    current: List[str] = []
    in_quotes = False
    for char in value:
        if char == '"':
            in_quotes = not in_quotes
        if char == "," and not in_quotes:
            entries.append("".join(current).strip())
            current = []
        else:
            current.append(char)
    entries.append("".join(current).strip())
    return [e for e in entries if e]


def _package_name(entry: str) -> str:
    return entry.split(";", 1)[0].strip()


def _merge_manifest(manifest: Path, additions: Iterable[str]) -> None:
    if not manifest.is_file():
        logger.debug("No manifest at %s, skipping Import-Package additions", manifest)
        return

    wanted: List[str] = []
    for line in additions:
        line = line.strip()
        if line.startswith(_IMPORT_HEADER):
            line = line[len(_IMPORT_HEADER):]
        wanted.extend(_split_manifest_entries(line))

    lines = manifest.read_text(encoding="utf-8").splitlines()
    start = next((i for i, l in enumerate(lines) if l.startswith(_IMPORT_HEADER)), None)

    if start is None:
        existing: List[str] = []
        end = len(lines)
        while end > 0 and not lines[end - 1].strip():
            end -= 1
        start = end
    else:
        end = start + 1
        while end < len(lines) and lines[end].startswith(" "):
            end += 1
        header = lines[start][len(_IMPORT_HEADER):] + "".join(l[1:] for l in lines[start + 1:end])
        existing = _split_manifest_entries(header)

    known = {_package_name(e) for e in existing}
    for entry in wanted:
        if _package_name(entry) not in known:
            existing.append(entry)
            known.add(_package_name(entry))
    if not existing:
        return

    block = [f"{_IMPORT_HEADER} {existing[0]}" + ("," if len(existing) > 1 else "")]
    for i, entry in enumerate(existing[1:], start=2):
        block.append(f" {entry}" + ("," if i < len(existing) else ""))

    merged = lines[:start] + block + lines[end:]
    manifest.write_text("\n".join(merged) + "\n", encoding="utf-8")


def _merge_build_properties(build_properties: Path, additions: Iterable[str]) -> None:
    if not build_properties.is_file():
        logger.debug("No build.properties at %s, skipping additions", build_properties)
        return

    text = build_properties.read_text(encoding="utf-8")
    present = {l.strip() for l in text.splitlines()}
    new_lines = []
    for line in additions:
        line = _BUILD_PROPS_LABEL.sub("", line).strip()
        if line and line not in present:
            new_lines.append(line)
            present.add(line)

    if new_lines:
        if text and not text.endswith("\n"):
            text += "\n"
        build_properties.write_text(text + "\n".join(new_lines) + "\n", encoding="utf-8")


# ---------------------------------------------------------------------------
# Project context
# ---------------------------------------------------------------------------

@dataclass
class ProjectContext:
    """Context gathered from an existing plugin, fed into the prompt.

    Attributes:
        plugin_id: Bundle-SymbolicName of the plugin.
        base_package: Java base package (defaults to the plugin id).
        version: Bundle-Version.
        platform_version: Major iDempiere version, if detected.
        existing_classes: Simple names of classes already under ``src/``.
    """

    plugin_id: Optional[str] = None
    base_package: Optional[str] = None
    version: Optional[str] = None
    platform_version: Optional[int] = None
    existing_classes: List[str] = field(default_factory=list)
    has_activator: bool = False
    has_callout_factory: bool = False
    has_event_manager: bool = False
    has_process_factory: bool = False
    uses_annotation_pattern: bool = False
    manifest_content: Optional[str] = None


# ---------------------------------------------------------------------------
# Validation issues
# ---------------------------------------------------------------------------

class Severity(str, Enum):
    BLOCKER = "BLOCKER"
    WARN = "WARN"


@dataclass(frozen=True)
class ValidationIssue:
    """A single guardrail finding.

    Attributes:
        severity: BLOCKER stops the write, WARN is advisory.
        message: Human-readable description.
        symbol: Offending symbol, when the issue concerns a reference.
        path: Generated file the issue was found in.
    """

    severity: Severity
    message: str
    symbol: Optional[str] = None
    path: Optional[str] = None

    @property
    def blocking(self) -> bool:
        return self.severity is Severity.BLOCKER

    def __str__(self) -> str:
        return f"{self.severity.value}: {self.message}"


def has_blocking_issue(issues: Iterable[ValidationIssue]) -> bool:
    """Return True if any issue is a BLOCKER."""
    return any(issue.blocking for issue in issues)
