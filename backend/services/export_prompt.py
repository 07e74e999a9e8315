import logging
from collections.abc import Sequence

from pydantic import BaseModel, Field

from backend.llm.orchestrator import FallbackOrchestrator
from backend.llm.task_types import TaskName
from backend.prompts import get_export_system_prompt
from backend.schemas import (
    DetailLevel,
    DetectedSkillSummary,
    Feature,
    PromptBundle,
    SkillFile,
    TaskOverrides,
    UsageRecord,
)
from backend.skills.bundler import build_bundle, render_enrichment
from backend.skills.detector import build_detection_context, detect_skills
from backend.skills.registry import SkillRegistry

logger = logging.getLogger(__name__)

PRD_CONTEXT_CHARS = 4000


class ExportPromptResult(BaseModel):
    prompt: str
    detected_skills: list[DetectedSkillSummary] = Field(default_factory=list)
    skill_files: list[SkillFile] = Field(default_factory=list)
    usage: UsageRecord


def format_features(features: Sequence[Feature]) -> str:
    blocks = []
    for f in features:
        text = f"### {f.name}"
        if f.user_story:
            text += f"\n{f.user_story}"
        text += f"\n{f.description}"
        if f.acceptance_criteria:
            criteria = "\n".join(f"- [ ] {c}" for c in f.acceptance_criteria)
            text += f"\n\nAcceptance Criteria:\n{criteria}"
        blocks.append(text)
    return "\n\n".join(blocks)


def build_export_user_message(
    artifact_format: str,
    features: Sequence[Feature],
    prd: str,
    bundle: PromptBundle,
) -> str:
    message = (
        f"Create {artifact_format.upper()} instructions for this specific project.\n\n"
        f"PROJECT FEATURES:\n{format_features(features)}\n\n"
        f"PRD CONTEXT:\n{(prd or '')[:PRD_CONTEXT_CHARS]}\n"
    )
    enrichment = render_enrichment(bundle, artifact_format)
    if enrichment:
        message += f"\n{enrichment}\n\n"
    message += "Generate comprehensive, PROJECT-SPECIFIC instructions. Not generic templates."
    return message


async def generate_export_prompt(
    orchestrator: FallbackOrchestrator,
    skills: SkillRegistry,
    artifact_format: str,
    *,
    research: str = "",
    features: Sequence[Feature] = (),
    prd: str = "",
    detail_level: DetailLevel = DetailLevel.QUICK_START,
    overrides: TaskOverrides | None = None,
) -> ExportPromptResult:
    """Generate coding-agent instructions enriched with the detected integration skills."""
    detected = detect_skills(skills, build_detection_context(research, prd, features))
    bundle = build_bundle(detected, detail_level)
    logger.info(
        "Export prompt (%s): %d skill(s) detected: %s",
        artifact_format,
        len(detected),
        ", ".join(d.name for d in detected) or "none",
    )

    result = await orchestrator.execute(
        TaskName.EXPORT,
        get_export_system_prompt(artifact_format),
        build_export_user_message(artifact_format, features, prd, bundle),
        overrides,
    )
    return ExportPromptResult(
        prompt=result.content,
        detected_skills=bundle.detected_skills,
        skill_files=skills.export_skill_files(detected),
        usage=result.usage,
    )
