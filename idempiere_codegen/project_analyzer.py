"""
Project Analyzer
================
Extracts prompt context from an existing plugin: bundle identity,
platform version and which structural pieces (Activator, factories,
annotation usage) are already in place.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Iterable, Optional

from idempiere_codegen.models import ProjectContext

logger = logging.getLogger("idempiere_codegen.project_analyzer")

LATEST_PLATFORM_VERSION = 13

_BUNDLE_SYMBOLIC_NAME = re.compile(r"Bundle-SymbolicName:\s*([^;\s]+)")
_BUNDLE_VERSION = re.compile(r"Bundle-Version:\s*(\S+)")
_TYCHO_VERSION = re.compile(r"<tycho\.version>([^<]+)</tycho\.version>")
_JAVA_SE_VERSION = re.compile(r"JavaSE-(\d+)")


def _read_quietly(path: Path) -> Optional[str]:
    try:
        return path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError):
        return None


def _version_tuple(version: str):
    return tuple(int(p) for p in re.findall(r"\d+", version)[:3])


class ProjectAnalyzer:
    """Builds a :class:`ProjectContext` for a plugin directory."""

    def analyze(self, plugin_dir) -> ProjectContext:
        plugin_dir = Path(plugin_dir)
        ctx = ProjectContext()

        manifest = _read_quietly(plugin_dir / "META-INF" / "MANIFEST.MF")
        ctx.manifest_content = manifest
        if manifest is not None:
            name = _BUNDLE_SYMBOLIC_NAME.search(manifest)
            if name:
                ctx.plugin_id = name.group(1).strip()
            version = _BUNDLE_VERSION.search(manifest)
            if version:
                ctx.version = version.group(1).strip()
        ctx.base_package = ctx.plugin_id

        pom = _read_quietly(plugin_dir / "pom.xml")
        ctx.platform_version = self.detect_platform_version(pom, manifest)

        src_dir = plugin_dir / "src"
        if src_dir.is_dir():
            sources = sorted(src_dir.rglob("*.java"))
            ctx.existing_classes = [p.stem for p in sources]
            texts = [t for t in (_read_quietly(p) for p in sources) if t is not None]
            ctx.has_activator = _contains_any(texts, "extends BundleActivator", "implements BundleActivator")
            ctx.has_callout_factory = _contains_any(texts, "IColumnCalloutFactory")
            ctx.has_event_manager = _contains_any(texts, "extends AbstractEventHandler", "@EventTopics")
            ctx.has_process_factory = _contains_any(texts, "MappedProcessFactory")
            ctx.uses_annotation_pattern = _contains_any(texts, "@Callout", "@Process", "@EventTopics")

        logger.debug("Analyzed plugin %s at %s", ctx.plugin_id, plugin_dir)
        return ctx

    @staticmethod
    def detect_platform_version(pom: Optional[str], manifest: Optional[str]) -> int:
        """Guess the major iDempiere version from build metadata.

        Tycho 4.0.5+ means iDempiere 13, older means 12; failing that a
        JavaSE-21+ execution environment means 13.
        """
        if pom:
            tycho = _TYCHO_VERSION.search(pom)
            if tycho:
                return 13 if _version_tuple(tycho.group(1)) >= (4, 0, 5) else 12
        if manifest:
            java = _JAVA_SE_VERSION.search(manifest)
            if java:
                return 13 if int(java.group(1)) >= 21 else 12
        return LATEST_PLATFORM_VERSION


def _contains_any(texts: Iterable[str], *needles: str) -> bool:
    return any(needle in text for text in texts for needle in needles)
