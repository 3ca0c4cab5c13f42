"""
Local registries used when sessions run in-process.

Skills are directories containing a SKILL.md whose YAML front matter
describes them:

    ---
    name: web-search
    description: Search the web and summarize results
    version: 1.2.0
    tags: [search, web]
    ---
    (instructions for the model follow)
"""

import asyncio
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from sessionbot.logging_config import bot_logger as logger
from .base import ServerInfo, SkillInfo

SKILL_FILE = "SKILL.md"


def parse_front_matter(text: str) -> Optional[Dict[str, Any]]:
    """Return the YAML front matter of a markdown document, or None if there is none."""
    lines = text.splitlines()
    if not lines or lines[0].strip() != "---":
        return None

    for index, line in enumerate(lines[1:], start=1):
        if line.strip() == "---":
            data = yaml.safe_load("\n".join(lines[1:index]))
            return data if isinstance(data, dict) else {}
    return None


def _as_tags(value: Any) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [tag.strip() for tag in value.split(",") if tag.strip()]
    return [str(tag) for tag in value]


class FileSkillRegistry:
    def __init__(self, skills_dir: str | Path):
        self.skills_dir = Path(skills_dir)

    def _load(self, skill_file: Path) -> Optional[SkillInfo]:
        try:
            meta = parse_front_matter(skill_file.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, yaml.YAMLError) as e:
            logger.warning(f"Skipping unreadable skill {skill_file}: {e}")
            return None

        if meta is None:
            meta = {}
        return SkillInfo(
            name=str(meta.get("name") or skill_file.parent.name),
            description=str(meta.get("description") or ""),
            version=str(meta.get("version") or ""),
            tags=_as_tags(meta.get("tags")),
        )

    def _scan(self) -> list[SkillInfo]:
        if not self.skills_dir.is_dir():
            return []

        skills = []
        for skill_file in sorted(self.skills_dir.glob(f"*/{SKILL_FILE}")):
            skill = self._load(skill_file)
            if skill:
                skills.append(skill)
        return skills

    async def list_skills(self) -> list[SkillInfo]:
        # Disk reads stay off the event loop shared by all chats
        return await asyncio.to_thread(self._scan)


class NullIntegrationRegistry:
    """In-process sessions have no external integrations."""

    async def list_servers(self) -> list[ServerInfo]:
        return []
