"""
Shared rounding for confidences and percentages.
"""
import math


def round_half_up(value: float) -> int:
    """Round to the nearest integer with halves going up (62.5 -> 63, -0.5 -> 0)."""
    return int(math.floor(value + 0.5))
