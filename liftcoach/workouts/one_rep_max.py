"""One-rep-max estimation and percentage-based weight suggestions.

Formulas:
- Epley: 1RM = weight * (1 + reps / 30), most accurate for 1-10 reps
- Brzycki: 1RM = weight * 36 / (37 - reps), most accurate for 2-10 reps
- Lander: 1RM = 100 * weight / (101.3 - 2.67123 * reps), higher rep ranges

Reps in reserve are added to the performed reps before estimating:
8 reps at 3 RIR is treated as 11 reps to failure.
"""

import re
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Literal

Confidence = Literal["high", "medium", "low"]

_CONFIDENCE_RANK: dict[Confidence, int] = {"high": 3, "medium": 2, "low": 1}

# Fraction of 1RM per rep target
HEAVY_RANGE = (0.85, 0.90)  # 3-5 reps
MODERATE_RANGE = (0.75, 0.80)  # 6-12 reps
LIGHT_RANGE = (0.65, 0.75)  # 12+ reps

PLATE_INCREMENT = 2.5

_RANGE_SEPARATOR = re.compile(r"\s*(?:-|–|\bto\b)\s*", re.IGNORECASE)
_LEADING_INT = re.compile(r"\d+")


@dataclass(frozen=True)
class OneRepMaxEstimate:
    estimated_1rm: float
    formula: str
    confidence: Confidence


def epley(weight: float, reps: int) -> float:
    return weight * (1 + reps / 30)


def brzycki(weight: float, reps: int) -> float:
    if reps >= 37:
        return weight
    return weight * (36 / (37 - reps))


def lander(weight: float, reps: int) -> float:
    denominator = 101.3 - (2.67123 * reps)
    if denominator <= 0:
        return weight
    return (100 * weight) / denominator


def estimate_one_rep_max(weight: float, reps: int, rir: int | None = 0) -> OneRepMaxEstimate:
    """Estimate 1RM for a single set, choosing the formula by rep range.

    Args:
        weight: Load lifted
        reps: Repetitions performed
        rir: Reps in reserve (None is treated as 0, i.e. to failure)

    Returns:
        OneRepMaxEstimate rounded to 2 decimals
    """
    reps_to_failure = reps + (rir or 0)

    if reps_to_failure <= 5:
        value, formula, confidence = epley(weight, reps_to_failure), "Epley", "high"
    elif reps_to_failure <= 10:
        value = (epley(weight, reps_to_failure) + brzycki(weight, reps_to_failure)) / 2
        formula, confidence = "Epley + Brzycki Average", "high"
    elif reps_to_failure <= 15:
        value, formula, confidence = lander(weight, reps_to_failure), "Lander", "medium"
    else:
        value, formula, confidence = lander(weight, reps_to_failure), "Lander (High Rep)", "low"

    return OneRepMaxEstimate(estimated_1rm=round(value, 2), formula=formula, confidence=confidence)


def best_one_rep_max(sets: Iterable[tuple[float | None, int | None, int | None]]) -> OneRepMaxEstimate | None:
    """Pick the best estimate across (weight, reps, rir) sets.

    Sets without a positive weight and rep count are ignored. Higher
    confidence wins; within a confidence level the larger estimate wins.
    """
    estimates = [
        estimate_one_rep_max(weight, reps, rir)
        for weight, reps, rir in sets
        if weight and reps and weight > 0 and reps > 0
    ]
    if not estimates:
        return None
    return max(estimates, key=lambda e: (_CONFIDENCE_RANK[e.confidence], e.estimated_1rm))


def parse_target_reps(target_reps: int | str) -> int:
    """Turn a rep target like "8-12" or "6 to 8" into a single rep count.

    A range gives its rounded midpoint. Each side of a range contributes its
    leading integer only, so "10 (5 per side)" is 10 reps.

    Raises:
        ValueError: If the target holds no integer
    """
    if isinstance(target_reps, int):
        return target_reps
    numbers = []
    for part in _RANGE_SEPARATOR.split(target_reps):
        match = _LEADING_INT.search(part)
        if match:
            numbers.append(int(match.group()))
    if not numbers:
        raise ValueError(f"No rep count in target {target_reps!r}")
    if len(numbers) >= 2:
        return round((numbers[0] + numbers[1]) / 2)
    return numbers[0]


def intensity_range(target_reps: int | str) -> tuple[float, float]:
    """Return the (low, high) fraction of 1RM for a rep target."""
    reps = parse_target_reps(target_reps)
    if reps <= 5:
        return HEAVY_RANGE
    if reps <= 12:
        return MODERATE_RANGE
    return LIGHT_RANGE


def suggest_weight(one_rep_max: float, target_reps: int | str) -> float:
    """Suggest a working weight for a rep target from an estimated 1RM.

    Returns the middle of the policy range rounded to the nearest plate
    increment. If rounding would leave the range, the unrounded midpoint is
    returned instead, so the result always lies in the range.

    >>> suggest_weight(100, "8-12")
    77.5
    """
    low, high = intensity_range(target_reps)
    midpoint = one_rep_max * (low + high) / 2
    rounded = round(midpoint / PLATE_INCREMENT) * PLATE_INCREMENT
    if one_rep_max * low <= rounded <= one_rep_max * high:
        return rounded
    return round(midpoint, 2)
