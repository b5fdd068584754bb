"""
Top-level analysis pipelines: public entry points for the /analyze routes.

`analyze_text` and `analyze_image` orchestrate:
  1. Subject validation (the only error a caller ever sees)
  2. Concurrent fan-out to every signal source; each one may fail alone
  3. Substitution of a heuristic or fixed neutral score for failed sources
  4. Aggregation into one score, verdict band and deduplicated warnings

No timeout is applied here. The remote client may keep retrying a loading
model; callers that need a deadline wrap these coroutines in
`asyncio.timeout()`.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

from authlens.detection.aggregator import classify_verdict, dedupe_warnings, overall_score
from authlens.detection.signals import (
    HeuristicDetectorSignal,
    LinguisticSignal,
    MetadataSignal,
    PatternSignal,
    PixelPatternSignal,
    SignalOutcome,
    SignalSource,
    StaticSignal,
    Subject,
    TextDetectorSignal,
    deepfake_detector_signal,
    image_detector_signal,
)
from authlens.detection.text_heuristics import split_sentences, split_words
from authlens.schemas.analysis import (
    AnalysisState,
    ImageAnalysisReport,
    ImageSubject,
    SignalResult,
    TextAnalysisReport,
    TextSubject,
    Verdict,
)

logger = logging.getLogger(__name__)

FLAG_THRESHOLD = 50

TEXT_SUMMARIES = {
    Verdict.AUTHENTIC: "Likely Authentic",
    Verdict.SUSPICIOUS: "Suspicious",
    Verdict.FAKE: "Likely AI-Generated",
}

IMAGE_SUMMARIES = {
    Verdict.AUTHENTIC: "Likely Authentic",
    Verdict.SUSPICIOUS: "Potentially Manipulated",
    Verdict.FAKE: "Likely Manipulated/AI-Generated",
}


class InvalidSubjectError(ValueError):
    """Empty or malformed content; the analysis cannot start."""


# ---------------------------------------------------------------------------
# Signal sets
# ---------------------------------------------------------------------------


@dataclass
class TextSignalSet:
    detector: SignalSource
    linguistics: SignalSource = field(default_factory=LinguisticSignal)
    patterns: SignalSource = field(default_factory=PatternSignal)
    detector_fallback: SignalSource = field(default_factory=HeuristicDetectorSignal)


@dataclass
class ImageSignalSet:
    ai_detector: SignalSource
    deepfake_detector: SignalSource
    metadata: SignalSource = field(default_factory=MetadataSignal)
    pixels: SignalSource = field(default_factory=PixelPatternSignal)
    ai_fallback: SignalSource = field(
        default_factory=lambda: StaticSignal("AI Detection (Heuristic)", [("AI Detection (Heuristic)", 60)])
    )
    deepfake_fallback: SignalSource = field(
        default_factory=lambda: StaticSignal("Deepfake Detection", [("Deepfake Detection", 70)])
    )
    metadata_fallback: SignalSource = field(
        default_factory=lambda: StaticSignal(
            "Metadata Analysis", [("File Integrity", 65), ("Metadata Consistency", 60)]
        )
    )
    pixels_fallback: SignalSource = field(
        default_factory=lambda: StaticSignal("Pixel Pattern Analysis", [("Pixel Pattern Analysis", 60)])
    )


def default_text_signals(credential: str) -> TextSignalSet:
    return TextSignalSet(detector=TextDetectorSignal(credential))


def default_image_signals(credential: str) -> ImageSignalSet:
    return ImageSignalSet(
        ai_detector=image_detector_signal(credential),
        deepfake_detector=deepfake_detector_signal(credential),
    )


# ---------------------------------------------------------------------------
# Orchestration helpers
# ---------------------------------------------------------------------------


async def collect_outcomes(
    sources: Sequence[SignalSource], subject: Subject
) -> List[Optional[SignalOutcome]]:
    """
    Run every source concurrently and wait for all of them.

    A failed source becomes None in its slot; the others are untouched.
    Cancellation of the caller still propagates.
    """
    settled = await asyncio.gather(*(s.run(subject) for s in sources), return_exceptions=True)

    outcomes: List[Optional[SignalOutcome]] = []
    for source, outcome in zip(sources, settled):
        if isinstance(outcome, Exception):
            logger.warning(f"[PIPELINE] {source.name} failed: {type(outcome).__name__}: {outcome}")
            outcomes.append(None)
        elif isinstance(outcome, BaseException):
            raise outcome
        else:
            outcomes.append(outcome)
    return outcomes


async def _settle(
    outcome: Optional[SignalOutcome], fallback: SignalSource, subject: Subject
) -> Tuple[SignalOutcome, bool]:
    """Returns (outcome, used_fallback)."""
    if outcome is not None:
        return outcome, False
    logger.info(f"[PIPELINE] Substituting {fallback.name}")
    return await fallback.run(subject), True


def _merge(outcomes: Sequence[SignalOutcome]) -> Tuple[List[SignalResult], List[str]]:
    breakdown: List[SignalResult] = []
    warnings: List[str] = []
    for outcome in outcomes:
        breakdown.extend(outcome.results)
        warnings.extend(outcome.warnings)
    return breakdown, dedupe_warnings(warnings)


def _absorbed_failure(outcome: SignalOutcome) -> bool:
    return bool(outcome.details.get("fell_back"))


def _score_of(breakdown: Sequence[SignalResult], name: str) -> Optional[int]:
    for item in breakdown:
        if item.name == name:
            return item.score
    return None


# ---------------------------------------------------------------------------
# Subject validation
# ---------------------------------------------------------------------------


def build_text_subject(content) -> TextSubject:
    if not isinstance(content, str) or not content.strip():
        raise InvalidSubjectError("Text content is empty")
    return TextSubject(content=content)


def validate_image_subject(subject) -> ImageSubject:
    if not isinstance(subject, ImageSubject):
        raise InvalidSubjectError(f"Expected ImageSubject, got {type(subject).__name__}")
    if not subject.data:
        raise InvalidSubjectError("Image payload is empty")
    return subject


def image_format(mime_type: str) -> str:
    """'image/jpeg' → 'JPEG'; anything unparsable → 'Unknown'."""
    parts = (mime_type or "").split("/")
    if len(parts) < 2 or not parts[1]:
        return "Unknown"
    return parts[1].upper()


# ---------------------------------------------------------------------------
# Text
# ---------------------------------------------------------------------------


async def analyze_text(
    content: str, credential: str, signals: Optional[TextSignalSet] = None
) -> TextAnalysisReport:
    subject = build_text_subject(content)
    signals = signals or default_text_signals(credential)

    logger.info(f"[PIPELINE] Text analysis dispatched ({len(content)} chars)")

    detector, linguistics, patterns = await collect_outcomes(
        [signals.detector, signals.linguistics, signals.patterns], subject
    )

    detector, used_fallback = await _settle(detector, signals.detector_fallback, subject)
    ai_score = detector.primary_score

    settled = [detector] + [o for o in (linguistics, patterns) if o is not None]
    breakdown, warnings = _merge(settled)

    degraded = used_fallback or linguistics is None or patterns is None
    score = overall_score(breakdown)
    verdict = classify_verdict(score)

    report = TextAnalysisReport(
        overall_score=score,
        verdict=verdict,
        summary=TEXT_SUMMARIES[verdict],
        state=AnalysisState.AGGREGATED_WITH_FALLBACK if degraded else AnalysisState.AGGREGATED,
        breakdown=breakdown,
        warnings=warnings,
        word_count=len(split_words(content)),
        sentence_count=len(split_sentences(content)),
        perplexity=linguistics.details.get("perplexity", "N/A") if linguistics else "N/A",
        burstiness=linguistics.details.get("burstiness", "N/A") if linguistics else "N/A",
        is_ai_generated=ai_score < FLAG_THRESHOLD,
    )

    logger.info(
        f"[PIPELINE] Text verdict={verdict.value} score={score} "
        f"entries={len(breakdown)} state={report.state.value}"
    )
    return report


# ---------------------------------------------------------------------------
# Image
# ---------------------------------------------------------------------------


async def analyze_image(
    subject: ImageSubject, credential: str, signals: Optional[ImageSignalSet] = None
) -> ImageAnalysisReport:
    subject = validate_image_subject(subject)
    signals = signals or default_image_signals(credential)

    logger.info(
        f"[PIPELINE] Image analysis dispatched ({len(subject.data)} bytes, "
        f"{subject.declared_mime_type or 'unknown type'})"
    )

    ai_outcome, deepfake_outcome, metadata_outcome, pixel_outcome = await collect_outcomes(
        [signals.ai_detector, signals.deepfake_detector, signals.metadata, signals.pixels], subject
    )

    ai, ai_fell_back = await _settle(ai_outcome, signals.ai_fallback, subject)
    deepfake, df_fell_back = await _settle(deepfake_outcome, signals.deepfake_fallback, subject)
    metadata, meta_fell_back = await _settle(metadata_outcome, signals.metadata_fallback, subject)
    pixels, px_fell_back = await _settle(pixel_outcome, signals.pixels_fallback, subject)

    breakdown, warnings = _merge([ai, deepfake, metadata, pixels])
    # Local scorers absorb their own decode failures and report them in details
    degraded = (
        ai_fell_back or df_fell_back or meta_fell_back or px_fell_back
        or _absorbed_failure(metadata) or _absorbed_failure(pixels)
    )

    score = overall_score(breakdown)
    verdict = classify_verdict(score)

    ai_score = ai.primary_score
    deepfake_realness = deepfake.primary_score
    integrity = _score_of(metadata.results, "File Integrity")

    report = ImageAnalysisReport(
        overall_score=score,
        verdict=verdict,
        summary=IMAGE_SUMMARIES[verdict],
        state=AnalysisState.AGGREGATED_WITH_FALLBACK if degraded else AnalysisState.AGGREGATED,
        breakdown=breakdown,
        warnings=warnings,
        format=image_format(subject.declared_mime_type),
        is_ai_generated=ai_score < FLAG_THRESHOLD,
        deepfake_score=0 if df_fell_back else 100 - deepfake_realness,
        is_deepfake=deepfake_realness < FLAG_THRESHOLD,
        manipulation_score=0 if meta_fell_back or integrity is None else 100 - integrity,
        is_manipulated=integrity is not None and integrity < FLAG_THRESHOLD,
    )

    logger.info(
        f"[PIPELINE] Image verdict={verdict.value} score={score} "
        f"entries={len(breakdown)} state={report.state.value}"
    )
    return report
