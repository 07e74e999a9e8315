import json

import pytest

from backend.config.settings import OrchestratorConfig
from backend.schemas import DesignVariationsConfig, ModelPricing, ModelRegistry, TaskConfig

SONNET = "anthropic/claude-4.5-sonnet-20250929"
GPT = "openai/gpt-5.2"
FLASH = "gemini-2.0-flash-001"
GROK = "x-ai/grok-4.1-fast"


@pytest.fixture
def registry() -> ModelRegistry:
    tasks = [
        TaskConfig(task_name="prd", primary_model=SONNET, fallback_model=GPT, max_tokens=12000),
        TaskConfig(
            task_name="analysis",
            primary_model=FLASH,
            fallback_model=GROK,
            max_tokens=6000,
            temperature=0.5,
        ),
    ]
    pricing = [
        ModelPricing(model_id=SONNET, input_price_per_million=3.00, output_price_per_million=15.00),
        ModelPricing(model_id=GPT, input_price_per_million=1.75, output_price_per_million=14.00),
        ModelPricing(model_id=FLASH, input_price_per_million=0.10, output_price_per_million=0.40),
    ]
    return ModelRegistry(
        tasks={t.task_name: t for t in tasks},
        pricing={p.model_id: p for p in pricing},
        design_variations=DesignVariationsConfig(
            models=["google/gemini-3-flash-preview", SONNET, "deepseek/deepseek-v3.2"],
            max_tokens=4000,
            temperature=0.7,
        ),
    )


@pytest.fixture
def config(registry) -> OrchestratorConfig:
    return OrchestratorConfig(
        registry=registry,
        openrouter_api_key="or-test-key",
        gemini_api_key="gm-test-key",
        openrouter_base_url="https://openrouter.test/api/v1",
        gemini_base_url="https://gemini.test/v1beta",
    )


@pytest.fixture
def skills_index() -> dict:
    return {
        "skills": [
            {
                "name": "nextjs-app-router",
                "category": "framework",
                "description": "Next.js App Router",
                "complexity": "foundational",
                "requires_tools": ["context7"],
            },
            {
                "name": "stripe-billing",
                "category": "payments",
                "description": "Stripe Checkout and webhooks",
                "complexity": "intermediate",
                "requires_tools": ["stripe", "context7"],
            },
            {
                "name": "firebase-auth",
                "category": "authentication",
                "description": "Firebase Authentication",
                "complexity": "intermediate",
                "requires_mcp": ["firebase", "context7"],
            },
        ],
        "usage": {
            "detection_patterns": [
                {"skill": "stripe-billing", "trigger": ["stripe", "checkout"]},
                {"skill": "firebase-auth", "trigger": ["firebase", "login"]},
                {"skill": "nextjs-app-router", "trigger": ["next.js"]},
            ]
        },
    }


@pytest.fixture
def skills_docs() -> dict[str, str]:
    return {
        "nextjs-app-router": (
            "# Next.js\n\n## Quick Start\nnpx create-next-app\n\n## Full Implementation\nlayouts"
        ),
        "stripe-billing": (
            "# Stripe\n\nIntro text.\n\n## Quick Start\nnpm install stripe\n\n"
            "## Full Implementation\n```ts\n## not a heading\n```\nwebhooks"
        ),
        "firebase-auth": "# Firebase\n\n## Setup\nnpm install firebase",
    }


@pytest.fixture
def skills_dir(tmp_path, skills_index, skills_docs):
    root = tmp_path / "skills"
    root.mkdir()
    (root / "index.json").write_text(json.dumps(skills_index), encoding="utf-8")
    for name, text in skills_docs.items():
        (root / name).mkdir()
        (root / name / "reference.md").write_text(text, encoding="utf-8")
    return root
