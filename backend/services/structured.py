import logging
from typing import Any

from backend.llm.orchestrator import FallbackOrchestrator
from backend.schemas import CompletionResult, TaskOverrides
from backend.utils.json_extract import extract_json_object

logger = logging.getLogger(__name__)


async def execute_json(
    orchestrator: FallbackOrchestrator,
    task_name: str,
    system_prompt: str,
    user_text: str,
    overrides: TaskOverrides | None = None,
) -> tuple[dict[str, Any] | None, CompletionResult]:
    """Run a task whose answer is a JSON object.

    The raw completion is always returned so the caller keeps the usage even
    when the content could not be parsed.
    """
    result = await orchestrator.execute(task_name, system_prompt, user_text, overrides)
    parsed = extract_json_object(result.content)
    if parsed is None:
        logger.warning(
            "[%s] %s returned no parseable JSON object", task_name, result.usage.model
        )
    return parsed, result
