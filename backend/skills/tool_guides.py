"""Setup templates for the external tools (MCP servers) that skills depend on."""

from dataclasses import dataclass


@dataclass(frozen=True)
class ToolGuide:
    name: str
    title: str
    summary: str
    install: tuple[str, ...]
    when_to_use: tuple[str, ...] = ()
    usage_examples: tuple[str, ...] = ()


TOOL_GUIDES: dict[str, ToolGuide] = {
    "context7": ToolGuide(
        name="context7",
        title="Context7 (Latest Library Documentation)",
        summary="Fetch the latest documentation for libraries used in this skill",
        install=(
            "# Install context7 MCP server",
            "claude mcp add context7 -- npx -y @upstash/context7-mcp",
            "",
            "# Verify installation",
            "claude mcp list | grep context7",
        ),
        when_to_use=(
            "Fetch latest documentation for ANY library (React, Next.js, Stripe, etc.)",
            "Get up-to-date API references",
            "Find code examples and best practices",
        ),
        usage_examples=(
            '"Use context7 to get the latest Stripe Node.js SDK documentation"',
            '"Fetch Next.js 14 App Router docs via context7"',
        ),
    ),
    "stripe": ToolGuide(
        name="stripe",
        title="Stripe (Payment Integration)",
        summary="Access Stripe API for payment integration",
        install=(
            "# Install Stripe MCP server",
            "claude mcp add stripe -- npx -y @stripe/mcp",
            "",
            "# Set Stripe API key (get from https://dashboard.stripe.com/apikeys)",
            "export STRIPE_API_KEY=sk_test_...",
            "",
            "# Verify installation",
            "claude mcp list | grep stripe",
        ),
        when_to_use=(
            "Verify Stripe product and price IDs",
            "Check webhook endpoint configuration",
            "Validate API keys and test mode settings",
        ),
    ),
    "firebase": ToolGuide(
        name="firebase",
        title="Firebase (Backend Services)",
        summary="Access Firebase project configuration and services",
        install=(
            "# Install Firebase MCP server",
            "claude mcp add firebase -- npx -y @firebase/mcp",
            "",
            "# Authenticate with Google",
            "# (Claude will prompt you through the flow)",
        ),
        when_to_use=(
            "Access Firebase project configuration",
            "Validate Firestore security rules",
            "Check Firebase Auth settings",
        ),
    ),
}


def get_tool_guide(name: str) -> ToolGuide:
    guide = TOOL_GUIDES.get(name)
    if guide is not None:
        return guide
    return ToolGuide(
        name=name,
        title=name,
        summary="Required for this integration",
        install=(
            f"# Install {name} MCP server",
            f"claude mcp add {name} -- <install command for {name}>",
            "",
            f"# Configure authentication for {name}",
            f"# <API key, token or login step required by {name}>",
            "",
            "# Verify installation",
            f"claude mcp list | grep {name}",
        ),
    )
