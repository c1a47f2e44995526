"""
Skill Manager
=============
Resolves SKILL.md instruction files for component types across the
configured skill sources (lowest ``priority`` value wins).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional

from idempiere_codegen.config import SkillsConfig, SkillSourceConfig

logger = logging.getLogger("idempiere_codegen.skills")

SKILL_FILE = "SKILL.md"

# Component type -> skill directory name in the idempiere-skills layout
TYPE_TO_SKILL: Dict[str, str] = {
    "callout": "idempiere-callout-generator",
    "process": "idempiere-annotation-process",
    "process-mapped": "idempiere-mapped-process",
    "event-handler": "idempiere-event-annotation",
    "zk-form": "idempiere-zul-form",
    "zk-form-zul": "idempiere-zul-form",
    "rest-extension": "idempiere-rest-resource",
    "window-validator": "idempiere-window-validator",
    "listbox-group": "idempiere-grouped-listbox",
    "wlistbox-editor": "idempiere-wlistbox-custom-editor",
    "report": "idempiere-osgi-event-handler",
}


@dataclass(frozen=True)
class SkillResolution:
    source_name: str
    skill_dir: str
    skill_path: Path


@dataclass
class SkillSourceInfo:
    name: str
    location: str
    available_skills: List[str] = field(default_factory=list)


class SkillManager:
    """Loads skill text for a component type.

    Args:
        config: ``SkillsConfig`` (uses defaults if None).
    """

    def __init__(self, config: Optional[SkillsConfig] = None):
        self._config = config or SkillsConfig()

    def _sorted_sources(self) -> List[SkillSourceConfig]:
        return sorted(self._config.sources, key=lambda s: s.priority)

    def resolve_skill(self, component_type: str) -> Optional[SkillResolution]:
        """Find which source provides the skill for ``component_type``."""
        skill_dir = TYPE_TO_SKILL.get(component_type)
        if skill_dir is None:
            return None

        for source in self._sorted_sources():
            source_dir = Path(source.path).expanduser()
            if not source_dir.is_dir():
                continue
            skill_path = source_dir / skill_dir / SKILL_FILE
            if skill_path.is_file():
                return SkillResolution(source.name, skill_dir, skill_path)
        return None

    def load_skill(self, component_type: str) -> Optional[str]:
        """Return the SKILL.md content for ``component_type``, or None."""
        resolution = self.resolve_skill(component_type)
        if resolution is None:
            return None
        try:
            return resolution.skill_path.read_text(encoding="utf-8")
        except OSError as e:
            logger.warning("Could not read skill %s: %s", resolution.skill_path, e)
            return None

    def list_sources(self) -> List[SkillSourceInfo]:
        """List configured sources and the skills each one provides."""
        infos = []
        for source in self._config.sources:
            source_dir = Path(source.path).expanduser()
            skills: List[str] = []
            if source_dir.is_dir():
                skills = sorted(
                    d.name for d in source_dir.iterdir()
                    if d.is_dir() and (d / SKILL_FILE).is_file()
                )
            infos.append(SkillSourceInfo(source.name, source.path, skills))
        return infos
