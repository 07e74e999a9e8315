import logging
from collections.abc import Iterable, Sequence

from backend.schemas import DetectedSkill, Feature
from backend.skills.registry import SkillRegistry

logger = logging.getLogger(__name__)


def build_detection_context(
    research: str = "",
    prd: str = "",
    features: Iterable[Feature] = (),
) -> list[str]:
    """Flatten the generation context into the free-text fields scanned for triggers."""
    fields = [research or "", prd or ""]
    fields.extend(f"{f.name} {f.description} {f.user_story}" for f in features)
    return fields


def detect_skills(registry: SkillRegistry, texts: Sequence[str]) -> list[DetectedSkill]:
    """Match trigger keywords against the concatenated, case-folded text.

    Output follows pattern order, then foundational skills in registry order.
    Each skill appears once; the first pattern that matches it wins.
    """
    all_text = " ".join(texts).casefold()
    detected: list[DetectedSkill] = []
    seen: set[str] = set()

    for pattern in registry.patterns:
        matched = [kw for kw in pattern.trigger if kw.strip() and kw.casefold() in all_text]
        if not matched or pattern.skill in seen:
            continue
        skill = registry.get(pattern.skill)
        if skill is None:
            logger.warning("Detection pattern references unknown skill: %s", pattern.skill)
            continue
        detected.append(DetectedSkill(skill=skill, matched_keywords=matched))
        seen.add(skill.name)

    for skill in registry.skills:
        if skill.is_foundational and skill.name not in seen:
            detected.append(DetectedSkill(skill=skill, matched_keywords=[]))
            seen.add(skill.name)

    if detected:
        logger.info("Detected skills: %s", ", ".join(d.name for d in detected))
    return detected
