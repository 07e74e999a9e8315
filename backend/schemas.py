from __future__ import annotations

from datetime import UTC, datetime
from enum import StrEnum
from pathlib import Path
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, computed_field, model_validator

from backend.constants import (
    DEFAULT_MAX_TOKENS,
    DEFAULT_TEMPERATURE,
    FOUNDATIONAL_COMPLEXITY,
    QUICK_START_HEADING,
)
from backend.errors import ConfigurationError

# =============================================================================
# Model / Task Registry
# =============================================================================


class ProviderKind(StrEnum):
    AGGREGATOR = "aggregator"
    DIRECT = "direct"


def resolve_provider_kind(model_id: str) -> ProviderKind:
    """vendor/model identifiers go through the gateway, bare names go direct."""
    return ProviderKind.AGGREGATOR if "/" in model_id else ProviderKind.DIRECT


class ModelTier(StrEnum):
    SPEED = "speed"
    MEDIUM = "medium"
    MAX = "max"


class TaskConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    task_name: str
    primary_model: str
    fallback_model: str
    max_tokens: int = Field(default=DEFAULT_MAX_TOKENS, gt=0)
    temperature: float = Field(default=DEFAULT_TEMPERATURE, ge=0.0, le=2.0)
    tier: ModelTier | None = None
    primary_kind: ProviderKind
    fallback_kind: ProviderKind

    @model_validator(mode="before")
    @classmethod
    def _resolve_kinds(cls, data: Any) -> Any:
        if isinstance(data, dict):
            data = dict(data)
            if "primary_kind" not in data and isinstance(data.get("primary_model"), str):
                data["primary_kind"] = resolve_provider_kind(data["primary_model"])
            if "fallback_kind" not in data and isinstance(data.get("fallback_model"), str):
                data["fallback_kind"] = resolve_provider_kind(data["fallback_model"])
        return data


class ModelPricing(BaseModel):
    model_config = ConfigDict(frozen=True, protected_namespaces=())

    model_id: str
    input_price_per_million: float = Field(ge=0.0)
    output_price_per_million: float = Field(ge=0.0)
    kind: ProviderKind

    @model_validator(mode="before")
    @classmethod
    def _resolve_kind(cls, data: Any) -> Any:
        if isinstance(data, dict) and "kind" not in data and isinstance(data.get("model_id"), str):
            data = {**data, "kind": resolve_provider_kind(data["model_id"])}
        return data


class DesignVariationsConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    models: list[str] = Field(min_length=1)
    max_tokens: int = Field(default=DEFAULT_MAX_TOKENS, gt=0)
    temperature: float = Field(default=DEFAULT_TEMPERATURE, ge=0.0, le=2.0)


class ModelRegistry(BaseModel):
    model_config = ConfigDict(frozen=True)

    tasks: dict[str, TaskConfig]
    pricing: dict[str, ModelPricing] = Field(default_factory=dict)
    design_variations: DesignVariationsConfig | None = None

    def get_task(self, task_name: str) -> TaskConfig:
        config = self.tasks.get(task_name)
        if config is None:
            available = ", ".join(sorted(self.tasks))
            raise ConfigurationError(f"Unknown task: {task_name}. Available tasks: {available}")
        return config

    def kind_for(self, model_id: str) -> ProviderKind:
        pricing = self.pricing.get(model_id)
        if pricing is not None:
            return pricing.kind
        for task in self.tasks.values():
            if task.primary_model == model_id:
                return task.primary_kind
            if task.fallback_model == model_id:
                return task.fallback_kind
        return resolve_provider_kind(model_id)


# =============================================================================
# Provider Calls & Usage
# =============================================================================


class TokenUsage(BaseModel):
    prompt_tokens: int = Field(default=0, ge=0)
    completion_tokens: int = Field(default=0, ge=0)
    total_tokens: int = Field(default=0, ge=0)


class ProviderResponse(BaseModel):
    content: str
    usage: TokenUsage


class CostBreakdown(BaseModel):
    model_config = ConfigDict(frozen=True)

    input: float = Field(default=0.0, ge=0.0)
    output: float = Field(default=0.0, ge=0.0)
    total: float = Field(default=0.0, ge=0.0)
    priced: bool = True


class UsageRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    model: str
    prompt_tokens: int = Field(default=0, ge=0)
    completion_tokens: int = Field(default=0, ge=0)
    total_tokens: int = Field(default=0, ge=0)
    cost: CostBreakdown = Field(default_factory=CostBreakdown)
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))
    task_name: str = ""
    fell_back: bool = False


class CompletionResult(BaseModel):
    content: str
    usage: UsageRecord


class TaskOverrides(BaseModel):
    model: str | None = None
    max_tokens: int | None = Field(default=None, gt=0)
    temperature: float | None = Field(default=None, ge=0.0, le=2.0)


class VariationResult(BaseModel):
    variation_id: str
    model: str
    content: str = ""
    usage: UsageRecord | None = None
    error: str | None = None

    @property
    def failed(self) -> bool:
        return self.error is not None


class TaskCostBreakdown(BaseModel):
    task_name: str
    prompt_tokens: int = 0
    completion_tokens: int = 0
    calls: int = 0
    cost_usd: float = 0.0

    @computed_field  # type: ignore[prop-decorator]
    @property
    def total_tokens(self) -> int:
        return self.prompt_tokens + self.completion_tokens


class SessionUsage(BaseModel):
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_calls: int = 0
    fallback_calls: int = 0
    total_cost_usd: float = 0.0
    unpriced_models: list[str] = Field(default_factory=list)
    task_breakdown: list[TaskCostBreakdown] = Field(default_factory=list)


# =============================================================================
# Skills
# =============================================================================


class DetailLevel(StrEnum):
    QUICK_START = "quick-start"
    FULL = "full"


class SkillDefinition(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str
    category: str = ""
    description: str = ""
    complexity: str = ""
    required_tools: list[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("required_tools", "requires_tools", "requires_mcp"),
    )
    trigger_keywords: list[str] = Field(default_factory=list)
    doc_path: Path | None = None
    content: str = ""
    sections: dict[str, str] = Field(default_factory=dict)

    @property
    def is_foundational(self) -> bool:
        return self.complexity == FOUNDATIONAL_COMPLEXITY

    def full_document(self) -> str:
        if self.content:
            return self.content.strip()
        parts: list[str] = []
        for heading, body in self.sections.items():
            if heading:
                parts.append(f"## {heading}\n{body}" if body else f"## {heading}")
            elif body:
                parts.append(body)
        return "\n".join(parts).strip()

    def document(self, level: DetailLevel) -> str:
        """Documentation at the requested detail level.

        quick-start returns only the Quick Start section, or the whole document
        when the skill has no such section.
        """
        if level == DetailLevel.QUICK_START and QUICK_START_HEADING in self.sections:
            body = self.sections[QUICK_START_HEADING]
            return f"## {QUICK_START_HEADING}\n{body}".strip()
        return self.full_document()


class DetectionPattern(BaseModel):
    model_config = ConfigDict(frozen=True)

    skill: str
    trigger: list[str] = Field(default_factory=list)


class DetectedSkill(BaseModel):
    skill: SkillDefinition
    matched_keywords: list[str] = Field(default_factory=list)

    @property
    def name(self) -> str:
        return self.skill.name


class DetectedSkillSummary(BaseModel):
    name: str
    category: str
    description: str
    matched_keywords: list[str] = Field(default_factory=list)


class PromptBundle(BaseModel):
    skill_sections: list[str] = Field(default_factory=list)
    tool_setup_instructions: str = ""
    detected_skills: list[DetectedSkillSummary] = Field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.detected_skills

    @property
    def skills_content(self) -> str:
        return "\n".join(self.skill_sections)


class SkillFile(BaseModel):
    filename: str
    content: str
    skill_name: str


# =============================================================================
# Generation Context
# =============================================================================


class Feature(BaseModel):
    name: str
    description: str = ""
    user_story: str = Field(default="", validation_alias=AliasChoices("user_story", "userStory"))
    acceptance_criteria: list[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("acceptance_criteria", "acceptanceCriteria"),
    )
