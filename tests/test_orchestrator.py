import asyncio
import logging
from dataclasses import replace
from unittest.mock import AsyncMock, MagicMock

import pytest

from backend.accounting.cost_tracker import UsageTracker
from backend.errors import CompositeFallbackError, ConfigurationError, ProviderError
from backend.llm.orchestrator import FallbackOrchestrator
from backend.llm.router import ProviderRouter
from backend.schemas import ProviderResponse, TaskOverrides, TokenUsage

SONNET = "anthropic/claude-4.5-sonnet-20250929"
GPT = "openai/gpt-5.2"
FLASH = "gemini-2.0-flash-001"


def _response(content: str = "ok", prompt: int = 2000, completion: int = 1500) -> ProviderResponse:
    return ProviderResponse(
        content=content,
        usage=TokenUsage(
            prompt_tokens=prompt, completion_tokens=completion, total_tokens=prompt + completion
        ),
    )


def _orchestrator(config, side_effect, tracker: UsageTracker | None = None):
    router = MagicMock(spec=ProviderRouter)
    router.route = AsyncMock(side_effect=side_effect)
    router.aclose = AsyncMock()
    return FallbackOrchestrator(config, router=router, tracker=tracker), router


def _called_models(router) -> list[str]:
    return [c.args[0] for c in router.route.await_args_list]


class TestExecute:
    @pytest.mark.asyncio
    async def test_primary_success(self, config):
        orchestrator, router = _orchestrator(config, [_response("the prd")])

        result = await orchestrator.execute("prd", "sys", "user")

        assert result.content == "the prd"
        assert result.usage.model == SONNET
        assert result.usage.fell_back is False
        assert result.usage.task_name == "prd"
        assert result.usage.cost.total == pytest.approx(0.0285)
        router.route.assert_awaited_once_with(
            SONNET, "sys", "user", max_tokens=12000, temperature=0.7
        )

    @pytest.mark.asyncio
    async def test_primary_failure_falls_back_once(self, config):
        orchestrator, router = _orchestrator(
            config, [ProviderError(SONNET, "overloaded", 529), _response("from fallback")]
        )

        result = await orchestrator.execute("prd", "sys", "user")

        assert result.content == "from fallback"
        assert result.usage.model == GPT
        assert result.usage.fell_back is True
        assert _called_models(router) == [SONNET, GPT]

    @pytest.mark.asyncio
    async def test_fallback_cost_uses_fallback_pricing(self, config):
        orchestrator, _ = _orchestrator(
            config, [ProviderError(SONNET, "down"), _response(prompt=1_000_000, completion=0)]
        )
        result = await orchestrator.execute("prd", "sys", "user")
        assert result.usage.cost.total == pytest.approx(1.75)

    @pytest.mark.asyncio
    async def test_fallback_logs_warning(self, config, caplog):
        orchestrator, _ = _orchestrator(config, [ProviderError(SONNET, "overloaded"), _response()])
        with caplog.at_level(logging.WARNING):
            await orchestrator.execute("prd", "sys", "user")
        assert "Retrying with fallback model" in caplog.text
        assert "overloaded" in caplog.text

    @pytest.mark.asyncio
    async def test_both_fail_raises_composite(self, config):
        orchestrator, router = _orchestrator(
            config,
            [ProviderError(SONNET, "rate limited", 429), ProviderError(GPT, "server error", 500)],
        )

        with pytest.raises(CompositeFallbackError) as exc_info:
            await orchestrator.execute("prd", "sys", "user")

        error = exc_info.value
        assert error.primary_model == SONNET
        assert error.fallback_model == GPT
        assert error.primary_error == "rate limited"
        assert error.fallback_error == "server error"
        message = str(error)
        assert SONNET in message and GPT in message
        assert "rate limited" in message and "server error" in message
        assert router.route.await_count == 2

    @pytest.mark.asyncio
    async def test_unknown_task_makes_no_call(self, config):
        orchestrator, router = _orchestrator(config, [_response()])

        with pytest.raises(ConfigurationError, match="Unknown task: nope"):
            await orchestrator.execute("nope", "sys", "user")
        router.route.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_tracker_records_answering_model(self, config):
        tracker = UsageTracker()
        orchestrator, _ = _orchestrator(
            config, [ProviderError(SONNET, "down"), _response()], tracker=tracker
        )

        await orchestrator.execute("prd", "sys", "user")

        assert len(tracker.records) == 1
        assert tracker.records[0].model == GPT
        assert tracker.summary().fallback_calls == 1

    @pytest.mark.asyncio
    async def test_failed_call_not_recorded(self, config):
        tracker = UsageTracker()
        orchestrator, _ = _orchestrator(
            config, [ProviderError(SONNET, "a"), ProviderError(GPT, "b")], tracker=tracker
        )
        with pytest.raises(CompositeFallbackError):
            await orchestrator.execute("prd", "sys", "user")
        assert tracker.records == []


class TestOverrides:
    @pytest.mark.asyncio
    async def test_model_override_replaces_primary(self, config):
        orchestrator, router = _orchestrator(config, [ProviderError(FLASH, "down"), _response()])

        result = await orchestrator.execute("prd", "sys", "user", TaskOverrides(model=FLASH))

        assert _called_models(router) == [FLASH, GPT]
        assert result.usage.model == GPT

    @pytest.mark.asyncio
    async def test_override_equal_to_fallback_uses_task_primary(self, config):
        orchestrator, router = _orchestrator(config, [ProviderError(GPT, "down"), _response()])

        await orchestrator.execute("prd", "sys", "user", TaskOverrides(model=GPT))

        assert _called_models(router) == [GPT, SONNET]

    @pytest.mark.asyncio
    async def test_budget_override_applies_to_both_attempts(self, config):
        orchestrator, router = _orchestrator(config, [ProviderError(SONNET, "down"), _response()])

        await orchestrator.execute(
            "prd", "sys", "user", TaskOverrides(max_tokens=500, temperature=0.0)
        )

        for call in router.route.await_args_list:
            assert call.kwargs == {"max_tokens": 500, "temperature": 0.0}

    @pytest.mark.asyncio
    async def test_same_primary_and_fallback_not_retried(self, config, registry):
        task = registry.tasks["prd"].model_copy(update={"fallback_model": SONNET})
        same = registry.model_copy(update={"tasks": {"prd": task}})
        orchestrator, router = _orchestrator(
            replace(config, registry=same), [ProviderError(SONNET, "down")]
        )

        with pytest.raises(CompositeFallbackError) as exc_info:
            await orchestrator.execute("prd", "sys", "user")

        assert exc_info.value.fallback_error == "not attempted"
        router.route.assert_awaited_once()


class TestRetryPolicy:
    @pytest.mark.asyncio
    async def test_default_never_retries_same_model(self, config):
        orchestrator, router = _orchestrator(
            config, [ProviderError(SONNET, "flaky"), ProviderError(GPT, "flaky")]
        )
        with pytest.raises(CompositeFallbackError):
            await orchestrator.execute("prd", "sys", "user")
        assert _called_models(router) == [SONNET, GPT]

    @pytest.mark.asyncio
    async def test_attempts_per_model_retries_before_fallback(self, config):
        orchestrator, router = _orchestrator(
            replace(config, attempts_per_model=2),
            [ProviderError(SONNET, "flaky"), _response("second try")],
        )

        result = await orchestrator.execute("prd", "sys", "user")

        assert result.content == "second try"
        assert result.usage.fell_back is False
        assert _called_models(router) == [SONNET, SONNET]

    @pytest.mark.asyncio
    async def test_retries_exhausted_then_fallback(self, config):
        orchestrator, router = _orchestrator(
            replace(config, attempts_per_model=2),
            [ProviderError(SONNET, "a"), ProviderError(SONNET, "b"), _response()],
        )

        result = await orchestrator.execute("prd", "sys", "user")

        assert result.usage.model == GPT
        assert _called_models(router) == [SONNET, SONNET, GPT]


class TestComplete:
    @pytest.mark.asyncio
    async def test_uses_default_model(self, config):
        orchestrator, router = _orchestrator(config, [_response("hi")])

        result = await orchestrator.complete("sys", "user")

        assert result.content == "hi"
        assert result.usage.model == FLASH
        assert result.usage.task_name == "adhoc"
        assert _called_models(router) == [FLASH]

    @pytest.mark.asyncio
    async def test_failure_is_not_recovered(self, config):
        orchestrator, _ = _orchestrator(config, [ProviderError(SONNET, "down")])
        with pytest.raises(ProviderError):
            await orchestrator.complete("sys", "user", SONNET)


class TestGenerateVariations:
    @pytest.mark.asyncio
    async def test_partial_success(self, config):
        def _route(model, *args, **kwargs):
            if model.startswith("deepseek/"):
                raise ProviderError(model, "bad gateway", 502)
            return _response(f"<div>{model}</div>")

        tracker = UsageTracker()
        orchestrator, router = _orchestrator(config, _route, tracker=tracker)

        results = await orchestrator.generate_variations("sys", "brief")

        assert [r.variation_id for r in results] == ["variation-1", "variation-2", "variation-3"]
        assert [r.failed for r in results] == [False, False, True]
        assert results[2].error == "bad gateway"
        assert results[0].usage is not None
        assert results[1].content == f"<div>{SONNET}</div>"
        assert router.route.await_count == 3
        assert len(tracker.records) == 2

    @pytest.mark.asyncio
    async def test_branches_run_concurrently(self, config):
        started: list[str] = []
        release = asyncio.Event()

        async def _route(model, *args, **kwargs):
            started.append(model)
            if len(started) == 3:
                release.set()
            await asyncio.wait_for(release.wait(), timeout=1)
            return _response()

        orchestrator, _ = _orchestrator(config, _route)
        results = await orchestrator.generate_variations("sys", "brief")

        assert len(started) == 3
        assert not any(r.failed for r in results)

    @pytest.mark.asyncio
    async def test_requires_configured_models(self, config, registry):
        bare = registry.model_copy(update={"design_variations": None})
        orchestrator, router = _orchestrator(replace(config, registry=bare), [])

        with pytest.raises(ConfigurationError):
            await orchestrator.generate_variations("sys", "brief")
        router.route.assert_not_awaited()


class TestLifecycle:
    @pytest.mark.asyncio
    async def test_aclose_closes_router(self, config):
        orchestrator, router = _orchestrator(config, [])
        await orchestrator.aclose()
        router.aclose.assert_awaited_once()
