"""Daily protein goal formula used during onboarding."""
from __future__ import annotations

from typing import Dict, Optional

DEFAULT_BASE_GOAL = 140
GRAMS_PER_LB = 0.8
GRAMS_PER_KG = 1.8
MUSCLE_MULTIPLIER = 1.3
WEIGHT_MULTIPLIER = 1.4

GOAL_ADJUSTMENTS: Dict[str, int] = {
    "perfect": 0,
    "too-low": 25,
    "too-high": -25,
}
CUSTOM_ADJUSTMENT = "custom"


def round_half_up(value: float) -> int:
    # Halves round away from zero; round() would round them to even.
    return int(value + 0.5) if value >= 0 else -int(-value + 0.5)


def calculate_protein_goal(
    weight_lbs: Optional[float] = None,
    weight_kg: Optional[float] = None,
    fitness_goal: Optional[str] = None,
) -> int:
    """Return the recommended grams of protein per day, rounded to 5 g.

    Pounds take precedence over kilograms. Goals mentioning "muscle" or
    "weight" scale the base up.
    """

    goal = DEFAULT_BASE_GOAL
    if weight_lbs:
        goal = round_half_up(weight_lbs * GRAMS_PER_LB)
    elif weight_kg:
        goal = round_half_up(weight_kg * GRAMS_PER_KG)

    lowered = (fitness_goal or "").lower()
    if "muscle" in lowered:
        goal = round_half_up(goal * MUSCLE_MULTIPLIER)
    elif "weight" in lowered:
        goal = round_half_up(goal * WEIGHT_MULTIPLIER)

    return round_half_up(goal / 5) * 5


def apply_goal_adjustment(goal: int, choice: str, custom: Optional[int] = None) -> int:
    """Apply the user's reaction to the recommended goal."""

    if choice == CUSTOM_ADJUSTMENT:
        if custom is None or custom <= 0:
            raise ValueError("A positive custom goal is required")
        return custom
    try:
        adjusted = goal + GOAL_ADJUSTMENTS[choice]
    except KeyError as exc:
        raise ValueError(f"Unknown goal adjustment '{choice}'") from exc
    return max(adjusted, 5)


__all__ = [
    "CUSTOM_ADJUSTMENT",
    "GOAL_ADJUSTMENTS",
    "apply_goal_adjustment",
    "calculate_protein_goal",
    "round_half_up",
]
