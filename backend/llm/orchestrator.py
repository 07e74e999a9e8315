from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_none,
    wait_random_exponential,
)

from backend.accounting.cost_tracker import UsageTracker, calculate_cost, format_cost
from backend.constants import (
    ADHOC_TASK_NAME,
    DEFAULT_MAX_TOKENS,
    DEFAULT_TEMPERATURE,
    DESIGN_VARIATIONS_TASK_NAME,
)
from backend.errors import CompositeFallbackError, ConfigurationError, ProviderError
from backend.llm.router import ProviderRouter
from backend.schemas import (
    CompletionResult,
    ProviderResponse,
    TaskOverrides,
    UsageRecord,
    VariationResult,
)

if TYPE_CHECKING:
    from backend.config.settings import OrchestratorConfig

logger = logging.getLogger(__name__)


class FallbackOrchestrator:
    """Runs a named task against its primary model, substituting the fallback once.

    The same model is never called again after it fails unless
    attempts_per_model is raised above 1 in the config.
    """

    def __init__(
        self,
        config: OrchestratorConfig,
        router: ProviderRouter | None = None,
        tracker: UsageTracker | None = None,
    ) -> None:
        self._config = config
        self._router = router or ProviderRouter(config)
        self._tracker = tracker

    @property
    def config(self) -> OrchestratorConfig:
        return self._config

    async def aclose(self) -> None:
        await self._router.aclose()

    async def _call_model(
        self,
        model: str,
        system_prompt: str,
        user_text: str,
        max_tokens: int,
        temperature: float,
    ) -> ProviderResponse:
        attempts = self._config.attempts_per_model
        if attempts == 1:
            return await self._router.route(
                model, system_prompt, user_text, max_tokens=max_tokens, temperature=temperature
            )

        backoff = self._config.retry_backoff_seconds
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(attempts),
            wait=wait_random_exponential(min=backoff, max=backoff * 8) if backoff else wait_none(),
            retry=retry_if_exception_type(ProviderError),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        ):
            with attempt:
                return await self._router.route(
                    model,
                    system_prompt,
                    user_text,
                    max_tokens=max_tokens,
                    temperature=temperature,
                )
        raise RuntimeError("retry loop exited without a result")

    def _to_result(
        self, task_name: str, model: str, response: ProviderResponse, fell_back: bool
    ) -> CompletionResult:
        usage = response.usage
        cost = calculate_cost(
            model, usage.prompt_tokens, usage.completion_tokens, self._config.registry.pricing
        )
        record = UsageRecord(
            model=model,
            prompt_tokens=usage.prompt_tokens,
            completion_tokens=usage.completion_tokens,
            total_tokens=usage.total_tokens,
            cost=cost,
            task_name=task_name,
            fell_back=fell_back,
        )
        logger.info(
            "[%s] %s%s | input: %d tokens (%s) | output: %d tokens (%s) | total: %s",
            task_name,
            model,
            " (fallback succeeded)" if fell_back else "",
            record.prompt_tokens,
            format_cost(cost.input),
            record.completion_tokens,
            format_cost(cost.output),
            format_cost(cost.total),
        )
        if self._tracker is not None:
            self._tracker.record(record)
        return CompletionResult(content=response.content, usage=record)

    async def execute(
        self,
        task_name: str,
        system_prompt: str,
        user_text: str,
        overrides: TaskOverrides | None = None,
    ) -> CompletionResult:
        task = self._config.registry.get_task(task_name)
        overrides = overrides or TaskOverrides()

        primary = overrides.model or task.primary_model
        fallback = task.fallback_model if task.fallback_model != primary else task.primary_model
        max_tokens = overrides.max_tokens or task.max_tokens
        temperature = task.temperature if overrides.temperature is None else overrides.temperature

        logger.info("[%s] Calling primary model: %s", task_name, primary)
        try:
            response = await self._call_model(
                primary, system_prompt, user_text, max_tokens, temperature
            )
            return self._to_result(task_name, primary, response, fell_back=False)
        except ProviderError as primary_error:
            if fallback == primary:
                logger.error("[%s] Model %s failed, no distinct fallback", task_name, primary)
                raise CompositeFallbackError(
                    task_name, primary, primary_error.message, fallback, "not attempted"
                ) from primary_error
            logger.warning(
                "[%s] Primary model (%s) failed: %s. Retrying with fallback model: %s",
                task_name,
                primary,
                primary_error.message,
                fallback,
            )
            try:
                response = await self._call_model(
                    fallback, system_prompt, user_text, max_tokens, temperature
                )
            except ProviderError as fallback_error:
                logger.error(
                    "[%s] Fallback model (%s) also failed: %s",
                    task_name,
                    fallback,
                    fallback_error.message,
                )
                raise CompositeFallbackError(
                    task_name, primary, primary_error.message, fallback, fallback_error.message
                ) from fallback_error
            return self._to_result(task_name, fallback, response, fell_back=True)

    async def complete(
        self,
        system_prompt: str,
        user_text: str,
        model: str | None = None,
        *,
        max_tokens: int = DEFAULT_MAX_TOKENS,
        temperature: float = DEFAULT_TEMPERATURE,
    ) -> CompletionResult:
        """One call outside the task table, against the configured default model.

        There is no fallback; a failure surfaces as ProviderError.
        """
        model = model or self._config.default_model
        response = await self._call_model(model, system_prompt, user_text, max_tokens, temperature)
        return self._to_result(ADHOC_TASK_NAME, model, response, fell_back=False)

    async def _variation(
        self,
        index: int,
        model: str,
        system_prompt: str,
        user_text: str,
        max_tokens: int,
        temperature: float,
    ) -> VariationResult:
        variation_id = f"variation-{index + 1}"
        try:
            response = await self._router.route(
                model,
                system_prompt,
                user_text,
                max_tokens=max_tokens,
                temperature=temperature,
            )
        except ProviderError as e:
            logger.warning("[%s] Model %s failed: %s", variation_id, model, e.message)
            return VariationResult(variation_id=variation_id, model=model, error=e.message)

        result = self._to_result(DESIGN_VARIATIONS_TASK_NAME, model, response, fell_back=False)
        return VariationResult(
            variation_id=variation_id, model=model, content=result.content, usage=result.usage
        )

    async def generate_variations(
        self, system_prompt: str, user_text: str
    ) -> list[VariationResult]:
        """Ask every design-variation model the same question concurrently.

        Branches fail independently; a failed branch carries its error instead
        of aborting the others.
        """
        variations = self._config.registry.design_variations
        if variations is None:
            raise ConfigurationError("No design_variations models configured")

        results = await asyncio.gather(
            *(
                self._variation(
                    i,
                    model,
                    system_prompt,
                    user_text,
                    variations.max_tokens,
                    variations.temperature,
                )
                for i, model in enumerate(variations.models)
            )
        )
        failed = sum(1 for r in results if r.failed)
        if failed:
            logger.warning("Design variations: %d of %d branches failed", failed, len(results))
        return list(results)
