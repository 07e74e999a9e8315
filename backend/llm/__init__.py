"""Model runtime for IdeaForge.

Provider routing by model identifier, plus the task names used in models.yaml.
The fallback orchestrator lives in backend.llm.orchestrator.
"""

from backend.llm.router import AggregatorResponse, DirectResponse, ProviderRouter
from backend.llm.task_types import TaskName

__all__ = ["AggregatorResponse", "DirectResponse", "ProviderRouter", "TaskName"]
