from __future__ import annotations

from enum import StrEnum

from backend.schemas import ModelTier


class TaskName(StrEnum):
    ANALYSIS = "analysis"
    REFINE_FEATURES = "refine_features"
    CHAT_WITH_EXPORT = "chat_with_export"
    FEATURES = "features"
    DESIGN_BRIEF = "design_brief"
    DATABASE_SCHEMA = "database_schema"
    API_ENDPOINTS = "api_endpoints"
    COMPONENT_TREE = "component_tree"
    PRD = "prd"
    STORY_FILES = "story_files"
    EXPORT = "export"
    EXPAND_HOMEPAGE = "expand_homepage"


# Default tier per task; models.yaml may override it per entry.
TASK_TIERS: dict[TaskName, ModelTier] = {
    TaskName.ANALYSIS: ModelTier.SPEED,
    TaskName.REFINE_FEATURES: ModelTier.SPEED,
    TaskName.CHAT_WITH_EXPORT: ModelTier.SPEED,
    TaskName.FEATURES: ModelTier.MEDIUM,
    TaskName.DESIGN_BRIEF: ModelTier.MEDIUM,
    TaskName.DATABASE_SCHEMA: ModelTier.MEDIUM,
    TaskName.API_ENDPOINTS: ModelTier.MEDIUM,
    TaskName.COMPONENT_TREE: ModelTier.MEDIUM,
    TaskName.PRD: ModelTier.MAX,
    TaskName.STORY_FILES: ModelTier.MAX,
    TaskName.EXPORT: ModelTier.MAX,
    TaskName.EXPAND_HOMEPAGE: ModelTier.MAX,
}


def get_task_tier(task_name: str) -> ModelTier | None:
    try:
        return TASK_TIERS[TaskName(task_name)]
    except ValueError:
        return None
