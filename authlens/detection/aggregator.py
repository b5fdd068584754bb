"""
Collapses breakdown entries into one overall score and verdict band.
"""

from typing import Iterable, List, Sequence

from authlens.detection.scoring import round_half_up
from authlens.schemas.analysis import SignalResult, Verdict

AUTHENTIC_ABOVE = 70
SUSPICIOUS_ABOVE = 40


def overall_score(breakdown: Sequence[SignalResult]) -> int:
    """Unweighted mean of every entry present, rounded half-up."""
    if not breakdown:
        raise ValueError("Cannot aggregate an empty breakdown")
    return round_half_up(sum(item.score for item in breakdown) / len(breakdown))


def dedupe_warnings(warnings: Iterable[str]) -> List[str]:
    """Exact-string dedupe, keeping first-appearance order."""
    return list(dict.fromkeys(warnings))


def classify_verdict(score: int) -> Verdict:
    if score > AUTHENTIC_ABOVE:
        return Verdict.AUTHENTIC
    if score > SUSPICIOUS_ABOVE:
        return Verdict.SUSPICIOUS
    return Verdict.FAKE
