"""Pydantic schemas for the protein goal calculation."""
from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, Field, model_validator


class GoalRequest(BaseModel):
    """Biometrics collected during onboarding."""

    weight_lbs: Optional[float] = Field(default=None, gt=0.0)
    weight_kg: Optional[float] = Field(default=None, gt=0.0)
    fitness_goal: Optional[str] = Field(
        default=None, description="Free text such as 'build muscle' or 'lose weight'"
    )
    adjustment: Literal["perfect", "too-low", "too-high", "custom"] = Field(default="perfect")
    custom_goal: Optional[int] = Field(default=None, gt=0)

    @model_validator(mode="after")
    def _custom_requires_value(self) -> "GoalRequest":
        if self.adjustment == "custom" and self.custom_goal is None:
            raise ValueError("custom_goal is required when adjustment is 'custom'")
        return self


class GoalResponse(BaseModel):
    calculated_goal: int = Field(..., description="Formula result before adjustment")
    goal: int = Field(..., description="Daily goal after the user's adjustment")
