from __future__ import annotations

from datetime import date
from types import SimpleNamespace

import pytest
from sqlalchemy.orm import Session

from protein_voice.storage.logs import ProteinLogService
from protein_voice.tracking.summary import build_daily_summary, current_streak, month_bounds, monthly_stats

TODAY = date(2024, 5, 10)


def _entries(*amounts: float):
    return [SimpleNamespace(amount=amount) for amount in amounts]


def test_daily_summary_in_progress() -> None:
    summary = build_daily_summary(TODAY, _entries(40, 20), 150)

    assert summary.date == "2024-05-10"
    assert summary.total_protein == 60
    assert summary.percentage_complete == 40
    assert summary.remaining_protein == 90
    assert not summary.goal_met


def test_daily_summary_caps_at_goal() -> None:
    summary = build_daily_summary(TODAY, _entries(120, 80), 150)

    assert summary.percentage_complete == 100
    assert summary.remaining_protein == 0
    assert summary.goal_met


def test_daily_summary_empty_day() -> None:
    summary = build_daily_summary(TODAY, [], 150)

    assert summary.total_protein == 0
    assert summary.percentage_complete == 0
    assert summary.remaining_protein == 150


def test_daily_summary_rejects_zero_goal() -> None:
    with pytest.raises(ValueError):
        build_daily_summary(TODAY, [], 0)


@pytest.fixture()
def log(db_session: Session) -> ProteinLogService:
    return ProteinLogService(db_session)


def test_streak_survives_until_today_is_logged(log: ProteinLogService) -> None:
    for day in ("2024-05-07", "2024-05-08", "2024-05-09"):
        log.add_entry(day, 120)

    assert current_streak(log, 100, TODAY) == 3

    log.add_entry(TODAY, 110)
    assert current_streak(log, 100, TODAY) == 4


def test_unmet_today_breaks_streak(log: ProteinLogService) -> None:
    log.add_entry("2024-05-09", 120)
    log.add_entry(TODAY, 50)

    assert current_streak(log, 100, TODAY) == 0


def test_gap_ends_streak(log: ProteinLogService) -> None:
    log.add_entry("2024-05-07", 120)
    log.add_entry("2024-05-09", 60)
    log.add_entry("2024-05-09", 60)

    assert current_streak(log, 100, TODAY) == 1


def test_monthly_stats_only_counts_days_in_month() -> None:
    totals = {
        "2024-01-31": 500.0,
        "2024-02-01": 150.0,
        "2024-02-02": 90.0,
        "2024-02-29": 200.0,
        "2024-03-01": 500.0,
    }

    stats = monthly_stats(totals, 150, 2024, 2)

    assert stats.days_with_data == 3
    assert stats.days_goal_met == 2
    assert stats.goals_crushed == 2
    assert stats.days_below_goal == 1
    assert stats.success_rate == 67
    assert stats.daily_average == 147
    assert stats.total_protein == 440


def test_monthly_stats_empty_month() -> None:
    stats = monthly_stats({}, 150, 2024, 4)

    assert stats.success_rate == 0
    assert stats.daily_average == 0
    assert stats.days_with_data == 0


def test_month_bounds() -> None:
    assert month_bounds(2024, 2) == (date(2024, 2, 1), date(2024, 2, 29))
    assert month_bounds(2023, 12) == (date(2023, 12, 1), date(2023, 12, 31))
