"""Pydantic schemas for the protein log and its summaries."""
from __future__ import annotations

from datetime import datetime
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

DATE_KEY_PATTERN = r"^\d{4}-\d{2}-\d{2}$"


class ProteinEntryCreate(BaseModel):
    """Payload used to log protein manually."""

    date: str = Field(..., pattern=DATE_KEY_PATTERN, description="Local date key (YYYY-MM-DD)")
    amount: float = Field(..., gt=0.0, description="Protein in grams")
    description: Optional[str] = Field(default=None, description="What was eaten")
    source: Literal["voice", "manual"] = Field(default="manual")


class ProteinEntry(BaseModel):
    """Stored protein log entry."""

    id: str
    date: str
    amount: float
    description: Optional[str] = None
    source: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ProteinEntriesByDate(BaseModel):
    entries: Dict[str, List[ProteinEntry]] = Field(default_factory=dict)


class DailySummaryResponse(BaseModel):
    """Progress towards the goal for one day."""

    date: str
    total_protein: float
    goal_protein: int
    percentage_complete: int
    remaining_protein: float
    entries: List[ProteinEntry] = Field(default_factory=list)

    model_config = ConfigDict(from_attributes=True)


class MonthlyStatsResponse(BaseModel):
    """Calendar statistics for one month."""

    year: int
    month: int
    success_rate: int = Field(..., description="Percent of logged days meeting the goal")
    goals_crushed: int
    daily_average: int
    total_protein: float
    days_with_data: int
    days_goal_met: int
    days_below_goal: int

    model_config = ConfigDict(from_attributes=True)


class StreakResponse(BaseModel):
    streak: int = Field(..., ge=0, description="Consecutive days meeting the goal")
    goal_protein: int
