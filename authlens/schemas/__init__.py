from authlens.schemas.analysis import (
    AnalysisReport,
    AnalysisState,
    ImageAnalysisReport,
    ImageSubject,
    SignalResult,
    TextAnalysisReport,
    TextAnalysisRequest,
    TextSubject,
    Verdict,
)

__all__ = [
    "AnalysisReport",
    "AnalysisState",
    "ImageAnalysisReport",
    "ImageSubject",
    "SignalResult",
    "TextAnalysisReport",
    "TextAnalysisRequest",
    "TextSubject",
    "Verdict",
]
