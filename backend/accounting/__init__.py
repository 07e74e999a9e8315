from backend.accounting.cost_tracker import (
    UsageTracker,
    calculate_cost,
    estimate_task_cost,
    format_cost,
)

__all__ = ["UsageTracker", "calculate_cost", "estimate_task_cost", "format_cost"]
