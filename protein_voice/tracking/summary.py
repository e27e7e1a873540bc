"""Daily, streak and monthly views over the protein log."""
from __future__ import annotations

import calendar
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import List, Mapping

from ..storage.logs import ProteinLogService
from ..storage.models import ProteinLogEntry
from .goals import round_half_up

MAX_STREAK_DAYS = 365


@dataclass
class DailySummary:
    date: str
    total_protein: float
    goal_protein: int
    entries: List[ProteinLogEntry] = field(default_factory=list)
    percentage_complete: int = 0
    remaining_protein: float = 0.0

    @property
    def goal_met(self) -> bool:
        return self.total_protein >= self.goal_protein


@dataclass
class MonthlyStats:
    year: int
    month: int
    success_rate: int
    goals_crushed: int
    daily_average: int
    total_protein: float
    days_with_data: int
    days_goal_met: int
    days_below_goal: int


def build_daily_summary(day: date, entries: List[ProteinLogEntry], goal: int) -> DailySummary:
    if goal <= 0:
        raise ValueError("Protein goal must be positive")
    total = sum(entry.amount for entry in entries)
    return DailySummary(
        date=day.isoformat(),
        total_protein=total,
        goal_protein=goal,
        entries=list(entries),
        percentage_complete=min(100, round_half_up(total / goal * 100)),
        remaining_protein=max(0.0, goal - total),
    )


def current_streak(log: ProteinLogService, goal: int, today: date) -> int:
    """Count consecutive days meeting ``goal`` ending today or yesterday.

    A logged-but-unmet today breaks the streak; an empty today does not, so
    the streak survives until the day is over.
    """

    totals = log.totals_for_range(today - timedelta(days=MAX_STREAK_DAYS + 1), today)

    streak = 0
    today_total = totals.get(today.isoformat())
    if today_total is not None:
        if today_total < goal:
            return 0
        streak = 1

    day = today - timedelta(days=1)
    for _ in range(MAX_STREAK_DAYS):
        total = totals.get(day.isoformat())
        if total is None or total < goal:
            break
        streak += 1
        day -= timedelta(days=1)
    return streak


def monthly_stats(totals_by_date: Mapping[str, float], goal: int, year: int, month: int) -> MonthlyStats:
    """Aggregate the days of one calendar month that have logged protein."""

    _, days_in_month = calendar.monthrange(year, month)
    total_protein = 0.0
    days_with_data = 0
    days_goal_met = 0
    for day_number in range(1, days_in_month + 1):
        total = totals_by_date.get(date(year, month, day_number).isoformat())
        if total is None:
            continue
        days_with_data += 1
        total_protein += total
        if total >= goal:
            days_goal_met += 1

    return MonthlyStats(
        year=year,
        month=month,
        success_rate=round_half_up(days_goal_met / days_with_data * 100) if days_with_data else 0,
        goals_crushed=days_goal_met,
        daily_average=round_half_up(total_protein / days_with_data) if days_with_data else 0,
        total_protein=total_protein,
        days_with_data=days_with_data,
        days_goal_met=days_goal_met,
        days_below_goal=days_with_data - days_goal_met,
    )


def month_bounds(year: int, month: int) -> tuple[date, date]:
    _, days_in_month = calendar.monthrange(year, month)
    return date(year, month, 1), date(year, month, days_in_month)


__all__ = [
    "DailySummary",
    "MonthlyStats",
    "build_daily_summary",
    "current_streak",
    "month_bounds",
    "monthly_stats",
]
