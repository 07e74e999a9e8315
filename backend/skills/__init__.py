"""Integration skills: keyword detection and prompt bundling."""

from backend.skills.bundler import build_bundle, render_enrichment
from backend.skills.detector import build_detection_context, detect_skills
from backend.skills.registry import SkillRegistry, parse_sections

__all__ = [
    "SkillRegistry",
    "build_bundle",
    "build_detection_context",
    "detect_skills",
    "parse_sections",
    "render_enrichment",
]
