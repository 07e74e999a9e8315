"""IdeaForge backend: model orchestration, cost accounting and skill enrichment."""
