import logging
from collections.abc import Iterable, Sequence

from backend.schemas import DetailLevel, DetectedSkill, DetectedSkillSummary, PromptBundle
from backend.skills.tool_guides import get_tool_guide

logger = logging.getLogger(__name__)

_SEPARATOR = "=" * 80


def _unique(items: Iterable[str]) -> list[str]:
    seen: set[str] = set()
    ordered: list[str] = []
    for item in items:
        if item not in seen:
            seen.add(item)
            ordered.append(item)
    return ordered


def required_tools(detected: Iterable[DetectedSkill]) -> list[str]:
    """Union of required tools across skills, in first-seen order."""
    return _unique(tool for item in detected for tool in item.skill.required_tools)


def _skill_tool_block(skill_name: str, tools: Sequence[str]) -> str:
    lines = [f"### MCP Tools for {skill_name}", "", "Before implementing, use these MCP servers:"]
    for tool in _unique(tools):
        lines.append(f"- **{tool}**: {get_tool_guide(tool).summary}")
    lines.append("")
    return "\n".join(lines)


def _skill_section(item: DetectedSkill, detail_level: DetailLevel) -> str:
    skill = item.skill
    lines = [
        "---",
        "",
        f"## {skill.name}",
        f"**Category:** {skill.category}",
        f"**Description:** {skill.description}",
    ]
    if item.matched_keywords:
        lines.append(f"**Detected from:** {', '.join(item.matched_keywords)}")
    lines.append("")

    if skill.required_tools:
        lines.append(_skill_tool_block(skill.name, skill.required_tools))

    document = skill.document(detail_level)
    if document:
        lines.append(document)
    else:
        logger.warning("No documentation available for skill %s", skill.name)
    lines.append("")
    return "\n".join(lines)


def build_tool_setup(tools: Sequence[str]) -> str:
    """One pre-flight section with a single setup block per distinct tool."""
    tools = _unique(tools)
    if not tools:
        return ""

    lines = [
        "# REQUIRED MCP SERVERS & SETUP",
        "",
        "## Pre-Flight Check",
        "",
        "**CRITICAL:** Before writing any code, verify and install required MCP servers.",
        "",
        "### Step 1: Check Claude Code Version",
        "```bash",
        "claude --version",
        "# Ensure you have Claude Code CLI installed",
        "```",
        "",
        "### Step 2: Install Required MCP Servers",
        "",
    ]
    for tool in tools:
        guide = get_tool_guide(tool)
        lines.extend([f"**{guide.title}**", "```bash", *guide.install, "```", ""])
        if guide.when_to_use:
            lines.append("**When to use:**")
            lines.extend(f"- {use}" for use in guide.when_to_use)
            lines.append("")
        if guide.usage_examples:
            lines.extend(["**How to use:**", "```", *guide.usage_examples, "```", ""])

    lines.extend(
        [
            "### Step 3: Verification",
            "```bash",
            "# List all installed MCP servers",
            "claude mcp list",
            "",
            "# You should see:",
            *(f"#   - {tool}" for tool in tools),
            "```",
            "",
            "---",
            "",
        ]
    )
    return "\n".join(lines)


def build_bundle(
    detected: Sequence[DetectedSkill],
    detail_level: DetailLevel = DetailLevel.QUICK_START,
) -> PromptBundle:
    if not detected:
        return PromptBundle()

    return PromptBundle(
        skill_sections=[_skill_section(item, detail_level) for item in detected],
        tool_setup_instructions=build_tool_setup(required_tools(detected)),
        detected_skills=[
            DetectedSkillSummary(
                name=item.skill.name,
                category=item.skill.category,
                description=item.skill.description,
                matched_keywords=list(item.matched_keywords),
            )
            for item in detected
        ],
    )


def render_enrichment(bundle: PromptBundle, artifact_format: str) -> str:
    """Text appended to an export prompt. Empty for an empty bundle."""
    if bundle.is_empty:
        return ""

    detected_lines = []
    for s in bundle.detected_skills:
        matched = f" - matched: {', '.join(s.matched_keywords)}" if s.matched_keywords else ""
        detected_lines.append(f"- {s.name} ({s.category}){matched}")

    parts = [_SEPARATOR, "DETECTED INTEGRATIONS:", *detected_lines, _SEPARATOR, ""]
    if bundle.tool_setup_instructions:
        parts.extend([bundle.tool_setup_instructions, ""])
    if bundle.skill_sections:
        parts.extend(
            [
                "# INTEGRATION SKILLS",
                "",
                "The following integration patterns have been detected and should be used:",
                "",
                bundle.skills_content,
                "",
                _SEPARATOR,
                "",
            ]
        )
    parts.append(
        f"IMPORTANT: Use the integration patterns above when generating the "
        f"{artifact_format.upper()} file. Include MCP usage instructions so the coding agent "
        f"knows to fetch latest documentation."
    )
    return "\n".join(parts)
