import logging
import os
import re
from pathlib import Path
from typing import Any, TypeVar

import yaml
from pydantic import BaseModel, ValidationError

from backend.constants import DEFAULT_MODEL_CONFIG_PATH
from backend.errors import ConfigurationError
from backend.llm.task_types import get_task_tier
from backend.schemas import DesignVariationsConfig, ModelPricing, ModelRegistry, TaskConfig

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)

_ENV_VAR_PATTERN = re.compile(r"\$\{([^}:]+)(?::-(.*?))?\}")


def _substitute_env_vars(value: str) -> str:
    def _replace(match: re.Match[str]) -> str:
        var_name = match.group(1)
        default = match.group(2)
        env_val = os.environ.get(var_name)
        if env_val is not None:
            return env_val
        return default if default is not None else ""

    return _ENV_VAR_PATTERN.sub(_replace, value)


def _substitute_recursive(obj: Any) -> Any:
    if isinstance(obj, str):
        return _substitute_env_vars(obj)
    if isinstance(obj, dict):
        return {k: _substitute_recursive(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_substitute_recursive(item) for item in obj]
    return obj


def _validate_entries(
    raw_entries: Any, model_cls: type[M], section: str, config_path: str
) -> list[M]:
    if not isinstance(raw_entries, list):
        logger.warning("Model config '%s' is not a list: %s", section, config_path)
        return []

    valid: list[M] = []
    for i, entry in enumerate(raw_entries):
        entry = _substitute_recursive(entry)
        if section == "tasks" and isinstance(entry, dict) and "tier" not in entry:
            tier = get_task_tier(str(entry.get("task_name", "")))
            if tier is not None:
                entry["tier"] = tier
        try:
            valid.append(model_cls.model_validate(entry))
        except ValidationError as e:
            logger.warning("Skipping invalid %s entry %d in %s: %s", section, i, config_path, e)
    return valid


def load_model_config(config_path: str | Path | None = None) -> ModelRegistry | None:
    if not config_path:
        return None

    path = Path(config_path)
    if not path.is_file():
        logger.warning("Model config file not found: %s", config_path)
        return None

    try:
        raw = path.read_text(encoding="utf-8")
        data = yaml.safe_load(raw)
    except (OSError, yaml.YAMLError) as e:
        logger.warning("Failed to load model config from %s: %s", config_path, e)
        return None

    if not isinstance(data, dict) or "tasks" not in data:
        logger.warning("Model config missing 'tasks' key: %s", config_path)
        return None

    tasks = _validate_entries(data["tasks"], TaskConfig, "tasks", str(config_path))
    if not tasks:
        logger.warning("No valid tasks loaded from %s", config_path)
        return None

    pricing = _validate_entries(data.get("pricing", []), ModelPricing, "pricing", str(config_path))

    variations: DesignVariationsConfig | None = None
    raw_variations = data.get("design_variations")
    if raw_variations is not None:
        try:
            variations = DesignVariationsConfig.model_validate(
                _substitute_recursive(raw_variations)
            )
        except ValidationError as e:
            logger.warning("Ignoring invalid design_variations in %s: %s", config_path, e)

    registry = ModelRegistry(
        tasks={t.task_name: t for t in tasks},
        pricing={p.model_id: p for p in pricing},
        design_variations=variations,
    )

    unpriced = sorted(
        {m for t in tasks for m in (t.primary_model, t.fallback_model)} - set(registry.pricing)
    )
    if unpriced:
        logger.warning("Models without pricing (cost reported as $0): %s", ", ".join(unpriced))

    logger.info(
        "Loaded %d task(s) and %d price(s) from YAML config: %s",
        len(registry.tasks),
        len(registry.pricing),
        config_path,
    )
    return registry


def load_registry(config_path: str | Path | None = None) -> ModelRegistry:
    """Load the configured registry, falling back to the bundled models.yaml."""
    if config_path:
        registry = load_model_config(config_path)
        if registry is not None:
            return registry
        logger.warning("Falling back to bundled model config: %s", DEFAULT_MODEL_CONFIG_PATH)

    registry = load_model_config(DEFAULT_MODEL_CONFIG_PATH)
    if registry is None:
        raise ConfigurationError(f"No usable task table in {DEFAULT_MODEL_CONFIG_PATH}")
    return registry
