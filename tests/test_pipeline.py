"""
Unit tests for authlens/detection/pipeline.py: analyze_text() and analyze_image().

Remote models are either scripted through MockInferenceSession or replaced
outright by stub signal sources; local heuristics run for real.
"""

import asyncio

import pytest

from authlens.config import settings
from authlens.detection.pipeline import (
    ImageSignalSet,
    InvalidSubjectError,
    TextSignalSet,
    analyze_image,
    analyze_text,
    collect_outcomes,
    image_format,
)
from authlens.schemas.analysis import AnalysisState, ImageSubject, TextSubject, Verdict
from tests.conftest import NEUTRAL_TEXT, make_gray_png, make_noise_png
from tests.mocks.inference_mock import MockInferenceSession, error, install, loading, ok
from tests.mocks.signal_stubs import FailingSignal, FixedSignal


def _text_models_down():
    return MockInferenceSession({
        settings.text_detector_model: [error(503, "Service Unavailable")],
        settings.text_alternate_model: [error(503, "Service Unavailable")],
    })


def _names(report):
    return [item.name for item in report.breakdown]


def _score(report, name):
    return next(item.score for item in report.breakdown if item.name == name)


# ---------------------------------------------------------------------------
# Text: remote detector unavailable
# ---------------------------------------------------------------------------


async def test_text_falls_back_to_heuristic_detector(monkeypatch):
    install(monkeypatch, _text_models_down())

    report = await analyze_text(NEUTRAL_TEXT, "tok")

    assert _names(report) == [
        "AI Detection (Heuristic Fallback)",
        "Linguistic Diversity",
        "Sentence Variation",
        "Vocabulary Richness",
        "Writing Pattern Naturalness",
        "Content Credibility Signals",
    ]
    assert _score(report, "AI Detection (Heuristic Fallback)") == 75
    # (75 + 83 + 71 + 95 + 70 + 70) / 6 = 77.3
    assert report.overall_score == 77
    assert report.verdict == Verdict.AUTHENTIC
    assert report.summary == "Likely Authentic"
    assert report.state == AnalysisState.AGGREGATED_WITH_FALLBACK
    assert report.warnings == []
    assert report.is_ai_generated is False
    assert report.word_count == 40
    assert report.sentence_count == 4
    assert report.perplexity == "High"
    assert report.burstiness == "High"


async def test_text_detector_loading_then_ready(monkeypatch):
    sess = install(monkeypatch, MockInferenceSession({
        settings.text_detector_model: [loading(), ok([{"label": "Real", "score": 0.9}, {"label": "Fake", "score": 0.1}])],
        settings.text_alternate_model: [],
    }))

    report = await analyze_text(NEUTRAL_TEXT, "tok")

    assert _names(report)[0] == "AI Detection Model (RoBERTa)"
    assert _score(report, "AI Detection Model (RoBERTa)") == 90
    assert report.state == AnalysisState.AGGREGATED
    # (90 + 83 + 71 + 95 + 70 + 70) / 6 = 79.8
    assert report.overall_score == 80
    assert len(sess.calls_for(settings.text_detector_model)) == 2


async def test_low_realness_flags_ai_text():
    signals = TextSignalSet(
        detector=FixedSignal([("AI Detection Model (RoBERTa)", 12)], warnings=["machine-generated"]),
    )

    report = await analyze_text(NEUTRAL_TEXT, "tok", signals=signals)

    assert report.is_ai_generated is True
    assert "machine-generated" in report.warnings
    assert report.state == AnalysisState.AGGREGATED


async def test_text_analysis_is_idempotent(monkeypatch):
    body = [{"label": "Fake", "score": 0.36}, {"label": "Real", "score": 0.64}]
    sess = install(monkeypatch, MockInferenceSession({
        settings.text_detector_model: [ok(body), ok(body)],
        settings.text_alternate_model: [],
    }))

    first = await analyze_text(NEUTRAL_TEXT, "tok")
    second = await analyze_text(NEUTRAL_TEXT, "tok")

    assert len(sess.calls_for(settings.text_detector_model)) == 2
    assert _score(first, "AI Detection Model (RoBERTa)") == 64
    assert first.model_dump() == second.model_dump()


async def test_image_analysis_is_idempotent(monkeypatch):
    install(monkeypatch, MockInferenceSession({
        settings.image_detector_model: [ok([{"label": "human", "score": 0.7}])] * 2,
        settings.deepfake_detector_model: [ok([{"label": "Real", "score": 0.8}])] * 2,
    }))
    subject = ImageSubject(data=make_noise_png(), declared_mime_type="image/png")

    first = await analyze_image(subject, "tok")
    second = await analyze_image(subject, "tok")

    assert first.model_dump() == second.model_dump()


async def test_failed_local_source_is_omitted_not_fatal():
    detector = FixedSignal([("AI Detection Model (RoBERTa)", 80)])
    signals = TextSignalSet(detector=detector, linguistics=FailingSignal(RuntimeError("boom")))

    report = await analyze_text(NEUTRAL_TEXT, "tok", signals=signals)

    assert _names(report) == [
        "AI Detection Model (RoBERTa)",
        "Writing Pattern Naturalness",
        "Content Credibility Signals",
    ]
    assert report.overall_score == 73
    assert report.perplexity == "N/A"
    assert report.state == AnalysisState.AGGREGATED_WITH_FALLBACK
    assert detector.runs == 1


async def test_duplicate_warnings_from_sources_collapse():
    signals = TextSignalSet(
        detector=FixedSignal([("AI Detection Model (RoBERTa)", 70)], warnings=["Same finding", "First only"]),
        linguistics=FixedSignal([("Linguistic Diversity", 60)], warnings=["Same finding"]),
        patterns=FixedSignal([("Writing Pattern Naturalness", 50)], warnings=["Same finding", "Last only"]),
    )

    report = await analyze_text(NEUTRAL_TEXT, "tok", signals=signals)

    assert report.warnings == ["Same finding", "First only", "Last only"]


@pytest.mark.parametrize("content", ["", "   \n\t"])
async def test_empty_text_rejected_before_any_signal(content):
    detector = FixedSignal([("AI Detection Model (RoBERTa)", 50)])

    with pytest.raises(InvalidSubjectError):
        await analyze_text(content, "tok", signals=TextSignalSet(detector=detector))

    assert detector.runs == 0


# ---------------------------------------------------------------------------
# Image
# ---------------------------------------------------------------------------


async def test_image_with_remote_models(monkeypatch):
    install(monkeypatch, MockInferenceSession({
        settings.image_detector_model: [ok([{"label": "artificial", "score": 0.8}, {"label": "human", "score": 0.2}])],
        settings.deepfake_detector_model: [loading(), ok([[{"label": "Real", "score": 0.9}, {"label": "Fake", "score": 0.1}]])],
    }))
    subject = ImageSubject(data=make_noise_png(), declared_mime_type="image/png")

    report = await analyze_image(subject, "tok")

    assert _names(report) == [
        "AI Image Detection",
        "Deepfake Detection",
        "File Integrity",
        "Metadata Consistency",
        "Pixel Pattern Analysis",
    ]
    # (20 + 90 + 70 + 65 + 60) / 5
    assert report.overall_score == 61
    assert report.verdict == Verdict.SUSPICIOUS
    assert report.summary == "Potentially Manipulated"
    assert report.state == AnalysisState.AGGREGATED
    assert report.format == "PNG"
    assert report.is_ai_generated is True
    assert report.deepfake_score == 10
    assert report.is_deepfake is False
    assert report.manipulation_score == 30
    assert report.is_manipulated is False
    assert report.warnings == [
        "Image shows strong indicators of AI generation",
        "Unusually smooth color distribution (potential AI generation indicator)",
    ]


def _remote_down_image_signals():
    return ImageSignalSet(ai_detector=FailingSignal(), deepfake_detector=FailingSignal())


async def test_uniform_gray_scores_below_noise_control():
    gray = await analyze_image(ImageSubject(data=make_gray_png(512, 512)), "tok", _remote_down_image_signals())
    control = await analyze_image(ImageSubject(data=make_noise_png()), "tok", _remote_down_image_signals())

    assert _score(gray, "Metadata Consistency") < _score(control, "Metadata Consistency")
    assert _score(gray, "Pixel Pattern Analysis") < _score(control, "Pixel Pattern Analysis")
    # (60 + 70 + 60 + 40 + 52) / 5 = 56.4 vs (60 + 70 + 70 + 65 + 60) / 5 = 65
    assert gray.overall_score == 56
    assert control.overall_score == 65
    assert "Image dimensions (512×512) match common AI generation sizes" in gray.warnings


async def test_remote_failures_use_fixed_neutral_scores():
    report = await analyze_image(ImageSubject(data=make_noise_png()), "tok", _remote_down_image_signals())

    assert _names(report)[:2] == ["AI Detection (Heuristic)", "Deepfake Detection"]
    assert _score(report, "AI Detection (Heuristic)") == 60
    assert _score(report, "Deepfake Detection") == 70
    assert report.deepfake_score == 0
    assert report.is_ai_generated is False
    assert report.is_deepfake is False
    assert report.state == AnalysisState.AGGREGATED_WITH_FALLBACK


async def test_metadata_failure_uses_fixed_scores():
    signals = ImageSignalSet(
        ai_detector=FixedSignal([("AI Image Detection", 80)]),
        deepfake_detector=FixedSignal([("Deepfake Detection", 85)]),
        metadata=FailingSignal(OSError("truncated header")),
    )

    report = await analyze_image(ImageSubject(data=make_noise_png()), "tok", signals)

    assert _score(report, "File Integrity") == 65
    assert _score(report, "Metadata Consistency") == 60
    assert report.manipulation_score == 0
    assert report.is_manipulated is False
    assert report.deepfake_score == 15


async def test_undecodable_image_reports_degraded_state():
    signals = ImageSignalSet(
        ai_detector=FixedSignal([("AI Image Detection", 80)]),
        deepfake_detector=FixedSignal([("Deepfake Detection", 85)]),
    )

    report = await analyze_image(ImageSubject(data=b"not an image at all"), "tok", signals)

    assert _score(report, "Pixel Pattern Analysis") == 60
    assert _score(report, "Metadata Consistency") == 65
    assert report.state == AnalysisState.AGGREGATED_WITH_FALLBACK


async def test_decodable_image_with_answering_sources_is_aggregated():
    signals = ImageSignalSet(
        ai_detector=FixedSignal([("AI Image Detection", 80)]),
        deepfake_detector=FixedSignal([("Deepfake Detection", 85)]),
    )

    report = await analyze_image(ImageSubject(data=make_noise_png()), "tok", signals)

    assert report.state == AnalysisState.AGGREGATED


async def test_low_integrity_flags_manipulation():
    signals = ImageSignalSet(
        ai_detector=FixedSignal([("AI Image Detection", 80)]),
        deepfake_detector=FixedSignal([("Deepfake Detection", 85)]),
        metadata=FixedSignal([("File Integrity", 30), ("Metadata Consistency", 65)]),
        pixels=FixedSignal([("Pixel Pattern Analysis", 70)]),
    )

    report = await analyze_image(ImageSubject(data=b"bytes"), "tok", signals)

    assert report.is_manipulated is True
    assert report.manipulation_score == 70


async def test_empty_image_rejected():
    with pytest.raises(InvalidSubjectError):
        await analyze_image(ImageSubject(data=b""), "tok", _remote_down_image_signals())


async def test_non_image_subject_rejected():
    with pytest.raises(InvalidSubjectError):
        await analyze_image(TextSubject(content="hello"), "tok", _remote_down_image_signals())


@pytest.mark.parametrize(
    "mime, expected",
    [("image/jpeg", "JPEG"), ("image/webp", "WEBP"), ("", "Unknown"), ("image", "Unknown")],
)
def test_image_format(mime, expected):
    assert image_format(mime) == expected


# ---------------------------------------------------------------------------
# collect_outcomes
# ---------------------------------------------------------------------------


async def test_collect_outcomes_keeps_slot_order():
    sources = [
        FixedSignal([("a", 10)]),
        FailingSignal(),
        FixedSignal([("c", 30)]),
    ]

    outcomes = await collect_outcomes(sources, TextSubject(content="x"))

    assert outcomes[0].primary_score == 10
    assert outcomes[1] is None
    assert outcomes[2].primary_score == 30


async def test_collect_outcomes_propagates_cancellation():
    with pytest.raises(asyncio.CancelledError):
        await collect_outcomes([FailingSignal(asyncio.CancelledError())], TextSubject(content="x"))
