"""Goal formula and summaries over the protein log."""

from __future__ import annotations

from .goals import apply_goal_adjustment, calculate_protein_goal
from .summary import DailySummary, MonthlyStats, build_daily_summary, current_streak, monthly_stats

__all__ = [
    "DailySummary",
    "MonthlyStats",
    "apply_goal_adjustment",
    "build_daily_summary",
    "calculate_protein_goal",
    "current_streak",
    "monthly_stats",
]
