from enum import Enum
from typing import List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator

from authlens.detection.scoring import clamp, round_half_up


class TextSubject(BaseModel):
    model_config = ConfigDict(frozen=True)

    content: str


class ImageSubject(BaseModel):
    model_config = ConfigDict(frozen=True)

    data: bytes
    declared_mime_type: str = ""
    decoded_dimensions: Optional[Tuple[int, int]] = None  # (width, height)


class SignalResult(BaseModel):
    """One breakdown entry. Scores are forced into 0–100 on construction."""
    name: str
    score: int

    @field_validator("score", mode="before")
    @classmethod
    def _clamp_score(cls, value):
        return clamp(round_half_up(float(value)), 0, 100)


class Verdict(str, Enum):
    AUTHENTIC = "authentic"
    SUSPICIOUS = "suspicious"
    FAKE = "fake"


class AnalysisState(str, Enum):
    AGGREGATED = "aggregated"                            # every source answered
    AGGREGATED_WITH_FALLBACK = "aggregated_with_fallback"  # at least one substituted


class AnalysisReport(BaseModel):
    overall_score: int
    verdict: Verdict
    summary: str
    state: AnalysisState = AnalysisState.AGGREGATED
    breakdown: List[SignalResult] = Field(min_length=1)
    warnings: List[str] = []


class TextAnalysisReport(AnalysisReport):
    word_count: int = 0
    sentence_count: int = 0
    perplexity: str = "N/A"   # "Low" | "Medium" | "High"
    burstiness: str = "N/A"
    is_ai_generated: bool = False


class ImageAnalysisReport(AnalysisReport):
    format: str = "Unknown"
    is_ai_generated: bool = False
    deepfake_score: int = 0
    is_deepfake: bool = False
    manipulation_score: int = 0
    is_manipulated: bool = False


class TextAnalysisRequest(BaseModel):
    text: str
