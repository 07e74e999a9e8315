from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

from backend.config.loader import load_registry
from backend.constants import (
    DEFAULT_MODEL,
    GEMINI_BASE_URL,
    LLM_ATTEMPTS_PER_MODEL,
    LLM_RETRY_BACKOFF_SECONDS,
    LLM_TIMEOUT_SECONDS,
    OPENROUTER_BASE_URL,
    _parse_float_env,
    _parse_int_env,
)
from backend.schemas import ModelRegistry

LOG_FORMAT = "%(asctime)s %(name)s %(levelname)s %(message)s"


def configure_logging(level: int = logging.INFO) -> None:
    logging.basicConfig(level=level, format=LOG_FORMAT)


@dataclass(frozen=True)
class OrchestratorConfig:
    """Everything the orchestrator needs, built once and injected.

    Nothing in the llm package reads the process environment at call time.
    """

    registry: ModelRegistry
    openrouter_api_key: str = field(default="", repr=False)
    gemini_api_key: str = field(default="", repr=False)
    openrouter_base_url: str = OPENROUTER_BASE_URL
    gemini_base_url: str = GEMINI_BASE_URL
    default_model: str = DEFAULT_MODEL
    request_timeout_seconds: float = LLM_TIMEOUT_SECONDS
    attempts_per_model: int = LLM_ATTEMPTS_PER_MODEL
    retry_backoff_seconds: float = LLM_RETRY_BACKOFF_SECONDS

    def __post_init__(self) -> None:
        if self.attempts_per_model < 1:
            raise ValueError("attempts_per_model must be >= 1")
        if self.request_timeout_seconds <= 0:
            raise ValueError("request_timeout_seconds must be > 0")
        if self.retry_backoff_seconds < 0:
            raise ValueError("retry_backoff_seconds must be >= 0")

    @classmethod
    def from_env(
        cls, registry: ModelRegistry | None = None, env_file: str | Path | None = None
    ) -> OrchestratorConfig:
        """Build the config from the process environment after loading a .env file.

        Variables already set in the environment win over the file.
        """
        load_dotenv(env_file)
        if registry is None:
            registry = load_registry(os.environ.get("MODEL_CONFIG_PATH", ""))
        return cls(
            registry=registry,
            openrouter_api_key=os.environ.get("OPENROUTER_API_KEY", ""),
            gemini_api_key=os.environ.get("GEMINI_API_KEY", ""),
            openrouter_base_url=os.environ.get("OPENROUTER_BASE_URL", OPENROUTER_BASE_URL),
            gemini_base_url=os.environ.get("GEMINI_BASE_URL", GEMINI_BASE_URL),
            default_model=os.environ.get("DEFAULT_MODEL", DEFAULT_MODEL),
            request_timeout_seconds=_parse_float_env(
                "LLM_TIMEOUT_SECONDS", default=LLM_TIMEOUT_SECONDS, min_val=5.0, max_val=600.0
            ),
            attempts_per_model=_parse_int_env(
                "LLM_ATTEMPTS_PER_MODEL", default=LLM_ATTEMPTS_PER_MODEL, min_val=1, max_val=5
            ),
            retry_backoff_seconds=_parse_float_env(
                "LLM_RETRY_BACKOFF_SECONDS",
                default=LLM_RETRY_BACKOFF_SECONDS,
                min_val=0.0,
                max_val=60.0,
            ),
        )
