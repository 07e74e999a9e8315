import json
import logging
import re
from typing import Any

from pydantic import BaseModel, Field

from backend.constants import COST_ROUND_DIGITS
from backend.llm.orchestrator import FallbackOrchestrator
from backend.prompts import DESIGN_VARIATION_SYSTEM_PROMPT
from backend.schemas import UsageRecord, VariationResult

logger = logging.getLogger(__name__)

_HTML_FENCE = re.compile(r"```html\s*(.*?)\s*```", re.DOTALL)
_DOCTYPE_FENCE = re.compile(r"```\s*(<!DOCTYPE.*?)\s*```", re.DOTALL | re.IGNORECASE)
_STYLE = re.compile(r"<style[^>]*>(.*?)</style>", re.DOTALL | re.IGNORECASE)
_SCRIPT = re.compile(r"<script[^>]*>(.*?)</script>", re.DOTALL | re.IGNORECASE)

ERROR_HTML = "<div>Error generating variation</div>"


class DesignVariation(BaseModel):
    id: str
    model: str
    html: str
    css: str = ""
    js: str = ""
    component_type: str
    description: str
    usage: UsageRecord | None = None
    error: str | None = None


class DesignVariationsResult(BaseModel):
    variations: list[DesignVariation] = Field(default_factory=list)
    models: list[str] = Field(default_factory=list)
    total_tokens: int = 0
    total_cost: float = 0.0

    @property
    def succeeded(self) -> int:
        return sum(1 for v in self.variations if v.error is None)


def split_html(content: str) -> tuple[str, str, str]:
    """Strip markdown fences and pull out the first <style> and <script> bodies."""
    html = content.strip()
    match = _HTML_FENCE.search(content) or _DOCTYPE_FENCE.search(content)
    if match and match.group(1):
        html = match.group(1).strip()

    css_match = _STYLE.search(html)
    js_match = _SCRIPT.search(html)
    css = css_match.group(1).strip() if css_match else ""
    js = js_match.group(1).strip() if js_match else ""
    return html, css, js


def detect_component_type(html: str) -> str:
    for kind in ("hero", "pricing", "card"):
        if kind in html:
            return kind
    return "component"


def _to_variation(result: VariationResult) -> DesignVariation:
    if result.failed:
        return DesignVariation(
            id=result.variation_id,
            model=result.model,
            html=ERROR_HTML,
            component_type="error",
            description=f"Failed: {result.error}",
            error=result.error,
        )

    html, css, js = split_html(result.content)
    short_name = result.model.split("/")[-1]
    return DesignVariation(
        id=result.variation_id,
        model=result.model,
        html=html,
        css=css,
        js=js,
        component_type=detect_component_type(html),
        description=f"{short_name} design variation",
        usage=result.usage,
    )


async def generate_design_variations(
    orchestrator: FallbackOrchestrator, design_brief: dict[str, Any]
) -> DesignVariationsResult:
    user_text = (
        f"Design Brief:\n{json.dumps(design_brief, indent=2)}\n\n"
        "Create a distinctive, production-ready component that embodies this design system."
    )
    results = await orchestrator.generate_variations(DESIGN_VARIATION_SYSTEM_PROMPT, user_text)
    variations = [_to_variation(r) for r in results]

    usages = [v.usage for v in variations if v.usage is not None]
    summary = DesignVariationsResult(
        variations=variations,
        models=[r.model for r in results],
        total_tokens=sum(u.total_tokens for u in usages),
        total_cost=round(sum(u.cost.total for u in usages), COST_ROUND_DIGITS),
    )
    logger.info(
        "Design variations: %d/%d succeeded, %d tokens",
        summary.succeeded,
        len(variations),
        summary.total_tokens,
    )
    return summary
