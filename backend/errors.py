class IdeaForgeError(Exception):
    pass


class ConfigurationError(IdeaForgeError):
    """Raised for an unknown task name or an unusable task table."""


class ProviderError(IdeaForgeError):
    """A single provider call failed. Recovered by the orchestrator's fallback."""

    def __init__(self, model: str, message: str, status_code: int | None = None) -> None:
        self.model = model
        self.message = message
        self.status_code = status_code
        super().__init__(f"{model}: {message}")


class CompositeFallbackError(IdeaForgeError):
    """Both the primary and the fallback model failed for one task."""

    def __init__(
        self,
        task_name: str,
        primary_model: str,
        primary_error: str,
        fallback_model: str,
        fallback_error: str,
    ) -> None:
        self.task_name = task_name
        self.primary_model = primary_model
        self.primary_error = primary_error
        self.fallback_model = fallback_model
        self.fallback_error = fallback_error
        super().__init__(
            f"Both models failed for task '{task_name}'. "
            f"Primary ({primary_model}): {primary_error}. "
            f"Fallback ({fallback_model}): {fallback_error}"
        )
