"""Configuration constants with trade-off documentation.

Each constant has a rationale explaining why this specific value was chosen.
Model assignments and prices are NOT here: they live in config/models.yaml so
they can change without a code release.
"""

import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

# =============================================================================
# Environment Variable Helpers
# =============================================================================


def _parse_int_env(name: str, default: int, min_val: int, max_val: int) -> int:
    """Parse an integer environment variable with bounds clamping.

    Returns default if env var is unset or unparseable. Clamps to [min_val, max_val].
    """
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        value = int(raw)
    except ValueError:
        return default
    return max(min_val, min(max_val, value))


def _parse_float_env(name: str, default: float, min_val: float, max_val: float) -> float:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        value = float(raw)
    except ValueError:
        return default
    return max(min_val, min(max_val, value))


# =============================================================================
# Provider Endpoints
# =============================================================================

OPENROUTER_BASE_URL = "https://openrouter.ai/api/v1"
GEMINI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"

APP_REFERER = "https://ideaforge.app"
APP_TITLE = "IdeaForge"
# Sent as HTTP-Referer / X-Title so the gateway attributes usage to the app.

PROMPT_CACHE_FAMILIES: tuple[str, ...] = ("anthropic/claude",)
# Why only Claude: the gateway forwards cache_control to Anthropic, which bills
# cached prefixes at ~10% of the input price. Other vendors ignore the field.

# =============================================================================
# Generation Defaults
# =============================================================================

DEFAULT_MODEL = "gemini-2.0-flash-001"
# Why: cheapest direct-vendor model; only used for ad-hoc calls that name no
# task and no model. Every task in models.yaml carries its own pair.

ADHOC_TASK_NAME = "adhoc"
DESIGN_VARIATIONS_TASK_NAME = "design_variations"
# Usage-ledger labels for calls that do not go through the task table.

DEFAULT_MAX_TOKENS = 4000
DEFAULT_TEMPERATURE = 0.7
# Why 4000 / 0.7: matches the speed tier budget, enough for chat-sized answers.

# =============================================================================
# Resilience
# =============================================================================

LLM_TIMEOUT_SECONDS = _parse_float_env(
    "LLM_TIMEOUT_SECONDS", default=120.0, min_val=5.0, max_val=600.0
)
# Why 120: PRD and story generation emit 12-15k tokens and take 60-90s on the
# max tier. A timeout is treated like any provider error and triggers fallback.

LLM_ATTEMPTS_PER_MODEL = _parse_int_env("LLM_ATTEMPTS_PER_MODEL", default=1, min_val=1, max_val=5)
# Why 1: the fallback model is the resilience mechanism. Retrying the same
# model doubles latency on a hard outage. Raise for flaky networks.

LLM_RETRY_BACKOFF_SECONDS = _parse_float_env(
    "LLM_RETRY_BACKOFF_SECONDS", default=0.0, min_val=0.0, max_val=60.0
)
# Only consulted when LLM_ATTEMPTS_PER_MODEL > 1.

# =============================================================================
# Cost Estimation
# =============================================================================

ESTIMATE_PROMPT_TOKENS = 2000
ESTIMATE_COMPLETION_TOKENS = 1500
# Why 2000/1500: measured average across the eight wizard steps (research +
# context in, one artifact out). Used only for up-front budgeting.

COST_ROUND_DIGITS = 6
# Why 6: a single call can cost $0.000004; fewer digits rounds it to zero.

# =============================================================================
# Skills
# =============================================================================

_PACKAGE_ROOT = Path(__file__).resolve().parent

SKILLS_DIR = Path(os.getenv("SKILLS_DIR", str(_PACKAGE_ROOT / "skills" / "library")))
SKILLS_INDEX_FILENAME = "index.json"
SKILL_REFERENCE_FILENAMES: tuple[str, ...] = ("reference.md", "skill.md")
# reference.md is the current layout; skill.md is the legacy one.
SKILL_EXPORT_FILENAME = "SKILL.md"

QUICK_START_HEADING = "Quick Start"

FOUNDATIONAL_COMPLEXITY = "foundational"

DEFAULT_MODEL_CONFIG_PATH = _PACKAGE_ROOT / "config" / "models.yaml"
