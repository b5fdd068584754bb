"""
Signal sources: one uniform `run(subject)` capability per measurement.

Remote sources wrap the inference client; local sources wrap the heuristic
scorers. Every source reads only the immutable subject and returns its own
`SignalOutcome`, so the pipeline can run them concurrently and swap any of
them for a stand-in.
"""

import asyncio
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Sequence, Tuple, Union

from authlens.config import settings
from authlens.detection.image_heuristics import analyze_pixel_patterns
from authlens.detection.metadata_scorer import analyze_metadata
from authlens.detection.text_heuristics import (
    analyze_linguistics,
    analyze_patterns,
    fallback_ai_score,
)
from authlens.integrations import inference
from authlens.schemas.analysis import ImageSubject, SignalResult, TextSubject

Subject = Union[TextSubject, ImageSubject]

LOW_REALNESS = 40


@dataclass
class SignalOutcome:
    results: List[SignalResult]
    warnings: List[str] = field(default_factory=list)
    details: Dict[str, Any] = field(default_factory=dict)

    @property
    def primary_score(self) -> int:
        return self.results[0].score


class SignalSource(ABC):
    name: str = "signal"

    @abstractmethod
    async def run(self, subject: Subject) -> SignalOutcome:
        """Produce scores for the subject or raise."""

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name!r}>"


# ---------------------------------------------------------------------------
# Remote
# ---------------------------------------------------------------------------


class RemoteModelSignal(SignalSource):
    """Realness score from one hosted classifier."""

    def __init__(
        self,
        name: str,
        credential: str,
        model_id: str,
        vocabulary: inference.LabelVocabulary,
        low_score_warning: str,
    ):
        self.name = name
        self.credential = credential
        self.model_id = model_id
        self.vocabulary = vocabulary
        self.low_score_warning = low_score_warning

    async def _realness(self, subject: Subject) -> int:
        return await inference.infer(subject, self.model_id, self.credential, self.vocabulary)

    async def run(self, subject: Subject) -> SignalOutcome:
        realness = await self._realness(subject)
        warnings = [self.low_score_warning] if realness < LOW_REALNESS else []
        return SignalOutcome(
            results=[SignalResult(name=self.name, score=realness)],
            warnings=warnings,
        )


class TextDetectorSignal(RemoteModelSignal):
    def __init__(self, credential: str):
        super().__init__(
            name="AI Detection Model (RoBERTa)",
            credential=credential,
            model_id=settings.text_detector_model,
            vocabulary=inference.TEXT_DETECTOR_LABELS,
            low_score_warning="AI detection model indicates high probability of machine-generated content",
        )

    async def _realness(self, subject: Subject) -> int:
        return await inference.infer_text_realness(subject, self.credential)


def image_detector_signal(credential: str) -> RemoteModelSignal:
    return RemoteModelSignal(
        name="AI Image Detection",
        credential=credential,
        model_id=settings.image_detector_model,
        vocabulary=inference.IMAGE_DETECTOR_LABELS,
        low_score_warning="Image shows strong indicators of AI generation",
    )


def deepfake_detector_signal(credential: str) -> RemoteModelSignal:
    return RemoteModelSignal(
        name="Deepfake Detection",
        credential=credential,
        model_id=settings.deepfake_detector_model,
        vocabulary=inference.DEEPFAKE_LABELS,
        low_score_warning="Deepfake indicators detected in the image",
    )


# ---------------------------------------------------------------------------
# Local: text
# ---------------------------------------------------------------------------


class HeuristicDetectorSignal(SignalSource):
    name = "AI Detection (Heuristic Fallback)"

    async def run(self, subject: TextSubject) -> SignalOutcome:
        score, warnings = fallback_ai_score(subject.content)
        return SignalOutcome(results=[SignalResult(name=self.name, score=score)], warnings=warnings)


class LinguisticSignal(SignalSource):
    name = "Linguistic Analysis"

    async def run(self, subject: TextSubject) -> SignalOutcome:
        profile = analyze_linguistics(subject.content)
        return SignalOutcome(
            results=[
                SignalResult(name="Linguistic Diversity", score=profile.diversity_score),
                SignalResult(name="Sentence Variation", score=profile.variation_score),
                SignalResult(name="Vocabulary Richness", score=profile.vocabulary_score),
            ],
            warnings=profile.warnings,
            details={"perplexity": profile.perplexity, "burstiness": profile.burstiness},
        )


class PatternSignal(SignalSource):
    name = "Pattern Analysis"

    async def run(self, subject: TextSubject) -> SignalOutcome:
        profile = analyze_patterns(subject.content)
        return SignalOutcome(
            results=[
                SignalResult(name="Writing Pattern Naturalness", score=profile.natural_score),
                SignalResult(name="Content Credibility Signals", score=profile.credibility_score),
            ],
            warnings=profile.warnings,
        )


# ---------------------------------------------------------------------------
# Local: image
# ---------------------------------------------------------------------------


class MetadataSignal(SignalSource):
    name = "Metadata Analysis"

    async def run(self, subject: ImageSubject) -> SignalOutcome:
        profile = analyze_metadata(subject)
        return SignalOutcome(
            results=[
                SignalResult(name="File Integrity", score=profile.integrity_score),
                SignalResult(name="Metadata Consistency", score=profile.metadata_score),
            ],
            warnings=profile.warnings,
            details={"fell_back": profile.fell_back},
        )


class PixelPatternSignal(SignalSource):
    name = "Pixel Pattern Analysis"

    async def run(self, subject: ImageSubject) -> SignalOutcome:
        # Decoding is CPU-bound; keep it off the event loop.
        profile = await asyncio.to_thread(analyze_pixel_patterns, subject.data)
        return SignalOutcome(
            results=[SignalResult(name=self.name, score=profile.score)],
            warnings=profile.warnings,
            details={"fell_back": profile.fell_back},
        )


class StaticSignal(SignalSource):
    """Fixed neutral scores used in place of an unavailable source."""

    def __init__(self, name: str, entries: Sequence[Tuple[str, int]]):
        self.name = name
        self.entries = tuple(entries)

    async def run(self, subject: Subject) -> SignalOutcome:
        return SignalOutcome(results=[SignalResult(name=n, score=s) for n, s in self.entries])
