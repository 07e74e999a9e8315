import logging
from decimal import ROUND_HALF_UP, Decimal

from backend.constants import (
    COST_ROUND_DIGITS,
    ESTIMATE_COMPLETION_TOKENS,
    ESTIMATE_PROMPT_TOKENS,
)
from backend.schemas import (
    CostBreakdown,
    ModelPricing,
    SessionUsage,
    TaskConfig,
    TaskCostBreakdown,
    UsageRecord,
)

logger = logging.getLogger(__name__)

_TOKENS_PER_UNIT = 1_000_000


def calculate_cost(
    model: str,
    prompt_tokens: int,
    completion_tokens: int,
    pricing: dict[str, ModelPricing],
) -> CostBreakdown:
    """USD cost of one call, priced per million tokens.

    Unknown models cost zero with priced=False so callers can tell "free"
    from "not in the price table".
    """
    price = pricing.get(model)
    if price is None:
        logger.warning("Unknown model pricing: %s, reporting $0", model)
        return CostBreakdown(input=0.0, output=0.0, total=0.0, priced=False)

    input_cost = (max(prompt_tokens, 0) / _TOKENS_PER_UNIT) * price.input_price_per_million
    output_cost = (max(completion_tokens, 0) / _TOKENS_PER_UNIT) * price.output_price_per_million
    return CostBreakdown(
        input=round(input_cost, COST_ROUND_DIGITS),
        output=round(output_cost, COST_ROUND_DIGITS),
        total=round(input_cost + output_cost, COST_ROUND_DIGITS),
    )


def _quantize(value: Decimal, places: int) -> str:
    return str(value.quantize(Decimal(1).scaleb(-places), rounding=ROUND_HALF_UP))


def format_cost(cost: float) -> str:
    """Human-readable cost.

    Sub-tenth-of-a-cent amounts are shown in thousandths of a dollar with a K
    suffix. Rounding is half-up on the shortest decimal form of the float.
    """
    value = Decimal(repr(float(cost)))
    if value < Decimal("0.001"):
        return f"${_quantize(value * 1000, 4)}K"
    if value < Decimal("0.01"):
        return f"${_quantize(value, 4)}"
    if value < 1:
        return f"${_quantize(value, 3)}"
    return f"${_quantize(value, 2)}"


def estimate_task_cost(
    task: TaskConfig,
    pricing: dict[str, ModelPricing],
    prompt_tokens: int = ESTIMATE_PROMPT_TOKENS,
    completion_tokens: int = ESTIMATE_COMPLETION_TOKENS,
) -> CostBreakdown:
    return calculate_cost(task.primary_model, prompt_tokens, completion_tokens, pricing)


class UsageTracker:
    """Per-session usage ledger. One instance per logical caller; not shared."""

    def __init__(self) -> None:
        self._records: list[UsageRecord] = []

    @property
    def records(self) -> list[UsageRecord]:
        return list(self._records)

    def record(self, usage: UsageRecord) -> None:
        self._records.append(usage)

    def reset(self) -> None:
        self._records.clear()

    def total_cost(self) -> float:
        return round(sum(r.cost.total for r in self._records), COST_ROUND_DIGITS)

    def summary(self) -> SessionUsage:
        task_agg: dict[str, TaskCostBreakdown] = {}
        for r in self._records:
            name = r.task_name or "unknown"
            agg = task_agg.setdefault(name, TaskCostBreakdown(task_name=name))
            agg.prompt_tokens += r.prompt_tokens
            agg.completion_tokens += r.completion_tokens
            agg.calls += 1
            agg.cost_usd += r.cost.total

        for agg in task_agg.values():
            agg.cost_usd = round(agg.cost_usd, COST_ROUND_DIGITS)

        return SessionUsage(
            prompt_tokens=sum(r.prompt_tokens for r in self._records),
            completion_tokens=sum(r.completion_tokens for r in self._records),
            total_calls=len(self._records),
            fallback_calls=sum(1 for r in self._records if r.fell_back),
            total_cost_usd=self.total_cost(),
            unpriced_models=sorted({r.model for r in self._records if not r.cost.priced}),
            task_breakdown=[task_agg[k] for k in sorted(task_agg)],
        )
