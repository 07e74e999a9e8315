from __future__ import annotations

import json
import logging
import re
from collections.abc import Iterable
from pathlib import Path
from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError

from backend.constants import (
    SKILL_EXPORT_FILENAME,
    SKILL_REFERENCE_FILENAMES,
    SKILLS_INDEX_FILENAME,
)
from backend.schemas import DetectedSkill, DetectionPattern, SkillDefinition, SkillFile

logger = logging.getLogger(__name__)

_SECTION_HEADING = re.compile(r"^##(?!#)\s+(.*?)\s*$")
_FENCE = re.compile(r"^\s*(```|~~~)")


M = TypeVar("M", bound=BaseModel)


def _validate_entries(
    raw_entries: Any, model_cls: type[M], section: str, index_path: Path
) -> list[M]:
    if not isinstance(raw_entries, list):
        logger.warning("Skills registry '%s' is not a list: %s", section, index_path)
        return []

    valid: list[M] = []
    for i, entry in enumerate(raw_entries):
        try:
            valid.append(model_cls.model_validate(entry))
        except ValidationError as e:
            logger.warning("Skipping invalid %s entry %d in %s: %s", section, i, index_path, e)
    return valid


def parse_sections(markdown: str) -> dict[str, str]:
    """Split a reference document into an ordered ``## heading -> body`` map.

    Text before the first level-2 heading is kept under the empty heading.
    Headings inside fenced code blocks are not section breaks. A repeated
    heading has its bodies joined.
    """
    sections: dict[str, str] = {}
    heading = ""
    buffer: list[str] = []
    in_fence = False

    def _flush() -> None:
        body = "\n".join(buffer).strip("\n")
        if not heading and not body:
            return
        if heading in sections and body:
            sections[heading] = f"{sections[heading]}\n{body}" if sections[heading] else body
        else:
            sections.setdefault(heading, body)

    for line in markdown.splitlines():
        if _FENCE.match(line):
            in_fence = not in_fence
        match = None if in_fence else _SECTION_HEADING.match(line)
        if match:
            _flush()
            heading = match.group(1)
            buffer = []
        else:
            buffer.append(line)
    _flush()
    return sections


class SkillRegistry:
    """Skill definitions and detection patterns, loaded once from disk."""

    def __init__(
        self,
        skills: Iterable[SkillDefinition] = (),
        patterns: Iterable[DetectionPattern] = (),
        skills_dir: Path | None = None,
    ) -> None:
        self._skills: dict[str, SkillDefinition] = {}
        for skill in skills:
            self._skills.setdefault(skill.name, skill)
        self._patterns = list(patterns)
        self._skills_dir = skills_dir

    @classmethod
    def empty(cls) -> SkillRegistry:
        return cls()

    @classmethod
    def load(cls, skills_dir: str | Path) -> SkillRegistry:
        skills_dir = Path(skills_dir)
        index_path = skills_dir / SKILLS_INDEX_FILENAME
        if not index_path.is_file():
            logger.warning("Skills registry not found at: %s", index_path)
            return cls.empty()

        try:
            raw = json.loads(index_path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.warning("Failed to load skills registry from %s: %s", index_path, e)
            return cls.empty()
        if not isinstance(raw, dict):
            logger.warning("Failed to load skills registry from %s: not an object", index_path)
            return cls.empty()

        usage = raw.get("usage")
        if not isinstance(usage, dict):
            usage = {}
        entries = _validate_entries(raw.get("skills", []), SkillDefinition, "skills", index_path)
        patterns = _validate_entries(
            usage.get("detection_patterns", []), DetectionPattern, "detection_patterns", index_path
        )

        triggers: dict[str, list[str]] = {}
        for pattern in patterns:
            bucket = triggers.setdefault(pattern.skill, [])
            bucket.extend(t for t in pattern.trigger if t not in bucket)

        skills: list[SkillDefinition] = []
        for skill in entries:
            doc_path = cls._find_reference(skills_dir, skill.name)
            content = ""
            if doc_path is None:
                logger.warning("Skill reference not found: %s", skill.name)
            else:
                try:
                    content = doc_path.read_text(encoding="utf-8")
                except OSError as e:
                    logger.warning("Error loading skill %s: %s", skill.name, e)
            skills.append(
                skill.model_copy(
                    update={
                        "trigger_keywords": triggers.get(skill.name, []),
                        "doc_path": doc_path,
                        "content": content,
                        "sections": parse_sections(content),
                    }
                )
            )

        unknown = sorted(set(triggers) - {s.name for s in skills})
        if unknown:
            logger.warning("Detection patterns reference unknown skills: %s", ", ".join(unknown))

        logger.info(
            "Loaded %d skill(s) and %d detection pattern(s) from %s",
            len(skills),
            len(patterns),
            skills_dir,
        )
        return cls(skills, patterns, skills_dir)

    @staticmethod
    def _find_reference(skills_dir: Path, name: str) -> Path | None:
        for filename in SKILL_REFERENCE_FILENAMES:
            candidate = skills_dir / name / filename
            if candidate.is_file():
                return candidate
        return None

    @property
    def skills(self) -> list[SkillDefinition]:
        return list(self._skills.values())

    @property
    def patterns(self) -> list[DetectionPattern]:
        return list(self._patterns)

    def get(self, name: str) -> SkillDefinition | None:
        return self._skills.get(name)

    def __len__(self) -> int:
        return len(self._skills)

    def export_skill_files(self, detected: Iterable[DetectedSkill]) -> list[SkillFile]:
        """Standalone SKILL.md files for the detected skills that ship one."""
        if self._skills_dir is None:
            return []

        files: list[SkillFile] = []
        for item in detected:
            path = self._skills_dir / item.name / SKILL_EXPORT_FILENAME
            if not path.is_file():
                logger.warning("SKILL.md not found for %s, skipping export", item.name)
                continue
            try:
                content = path.read_text(encoding="utf-8")
            except OSError as e:
                logger.warning("Error loading SKILL.md for %s: %s", item.name, e)
                continue
            files.append(
                SkillFile(filename=f"{item.name}-SKILL.md", content=content, skill_name=item.name)
            )
        return files
