"""
Score arithmetic shared by every signal.

Rounding is half-up (2.5 -> 3) rather than Python's banker's rounding so
that a score of 72.5 never lands in a lower verdict band than expected.
"""

import math


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def clamp(value, low, high):
    return max(low, min(high, value))
