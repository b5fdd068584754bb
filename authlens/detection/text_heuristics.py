"""
Local statistical analysis of text.

Functions:
  - fallback_ai_score: Stand-in for the remote detector (baseline 75, penalties).
  - analyze_linguistics: Vocabulary richness, sentence-length burstiness, perplexity label.
  - analyze_patterns: Weighted regex rule tables for AI style and misinformation rhetoric.

Tokenization is deliberately simple: words are whitespace-separated, sentences
are whatever lies between runs of '.', '!' or '?'.
"""

import math
import re
from collections import Counter
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

from authlens.detection.scoring import clamp, round_half_up

SENTENCE_SPLIT = re.compile(r"[.!?]+")

FALLBACK_BASELINE = 75
FALLBACK_MIN, FALLBACK_MAX = 5, 95

FORMAL_PHRASES = (
    "it is important to note", "it is worth mentioning",
    "in conclusion", "furthermore", "moreover", "additionally",
    "it should be noted", "one might argue", "it is essential",
    "in today's world", "plays a crucial role",
    "it is imperative", "significantly", "consequently",
)

SENSATIONAL_PHRASES = (
    "shocking", "unbelievable", "you won't believe",
    "breaking", "urgent", "secret", "they don't want you to know",
    "exposed", "bombshell", "mind-blowing", "conspiracy",
    "mainstream media", "cover up", "whistleblower",
)

ABSOLUTE_WORDS = (
    "always", "never", "every", "all", "none",
    "completely", "totally", "absolutely", "definitely",
    "undoubtedly", "certainly", "obviously",
)
ABSOLUTE_REGEX = re.compile(r"\b(?:" + "|".join(ABSOLUTE_WORDS) + r")\b", re.IGNORECASE)


def split_words(text: str) -> List[str]:
    return text.split()


def split_sentences(text: str) -> List[str]:
    return [s for s in SENTENCE_SPLIT.split(text) if s.strip()]


def sentence_lengths(text: str) -> List[int]:
    return [len(s.split()) for s in split_sentences(text)]


def _mean(values: Sequence[float]) -> float:
    return sum(values) / len(values) if values else 0.0


def _population_variance(values: Sequence[float]) -> float:
    if not values:
        return 0.0
    avg = _mean(values)
    return sum((v - avg) ** 2 for v in values) / len(values)


# ---------------------------------------------------------------------------
# Fallback detector
# ---------------------------------------------------------------------------


def fallback_ai_score(text: str) -> Tuple[int, List[str]]:
    """
    Heuristic stand-in for the remote AI-text detector.

    Starts slightly on the authentic side and subtracts for uniform sentence
    lengths, formal connectives, poor vocabulary, sensationalism and absolutes.
    The sensationalism penalty is the largest because it signals misinformation
    risk rather than only machine authorship.
    """
    warnings = []
    score = FALLBACK_BASELINE
    lower_text = text.lower()
    words = split_words(text)

    if _population_variance(sentence_lengths(text)) < 15:
        score -= 15
        warnings.append("Very uniform sentence lengths detected (common in AI text)")

    formal_count = sum(1 for phrase in FORMAL_PHRASES if phrase in lower_text)
    if formal_count > 3:
        score -= 10
        warnings.append("Excessive use of formal transitional phrases")

    if words:
        normalized = {re.sub(r"[^a-z]", "", w.lower()) for w in words}
        if len(normalized) / len(words) < 0.4:
            score -= 10
            warnings.append("Low vocabulary diversity detected")

    sensational_count = sum(1 for phrase in SENSATIONAL_PHRASES if phrase in lower_text)
    if sensational_count > 2:
        score -= 15
        warnings.append("Sensationalist language patterns detected (potential misinformation)")

    if len(ABSOLUTE_REGEX.findall(lower_text)) > 5:
        score -= 8
        warnings.append("Excessive use of absolute/superlative language")

    return clamp(score, FALLBACK_MIN, FALLBACK_MAX), warnings


# ---------------------------------------------------------------------------
# Linguistic diversity
# ---------------------------------------------------------------------------


@dataclass
class LinguisticProfile:
    vocabulary_score: int
    variation_score: int
    diversity_score: int
    burstiness_value: float
    perplexity_value: int
    perplexity: str
    burstiness: str
    warnings: List[str] = field(default_factory=list)


def _level(value: float, high: float, medium: float) -> str:
    if value > high:
        return "High"
    if value > medium:
        return "Medium"
    return "Low"


def analyze_linguistics(text: str) -> LinguisticProfile:
    clean_words = [re.sub(r"[^a-z']", "", w.lower()) for w in split_words(text)]
    clean_words = [w for w in clean_words if w]
    total = len(clean_words)

    ttr = len(set(clean_words)) / total if total else 0.0
    vocabulary_score = round_half_up(min(ttr * 130, 95))

    std_dev = math.sqrt(_population_variance(sentence_lengths(text)))
    burstiness_value = round_half_up(std_dev * 10) / 10
    variation_score = round_half_up(min(std_dev * 8, 95))

    # Simulated perplexity: how much of the text the ten commonest words cover
    top_mass = sum(count for _, count in Counter(clean_words).most_common(10))
    top_ratio = top_mass / total if total else 1.0
    perplexity_value = round_half_up((1 - top_ratio) * 100)

    diversity_score = round_half_up((vocabulary_score + variation_score) / 2)

    warnings = []
    if variation_score < 35:
        warnings.append("Low sentence length variation (typical of AI-generated text)")
    if vocabulary_score < 35:
        warnings.append("Limited vocabulary diversity")
    if burstiness_value < 3:
        warnings.append("Unusually consistent writing rhythm")

    return LinguisticProfile(
        vocabulary_score=vocabulary_score,
        variation_score=variation_score,
        diversity_score=diversity_score,
        burstiness_value=burstiness_value,
        perplexity_value=perplexity_value,
        perplexity=_level(perplexity_value, 60, 30),
        burstiness=_level(burstiness_value, 6, 3),
        warnings=warnings,
    )


# ---------------------------------------------------------------------------
# Pattern rules
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PatternRule:
    pattern: re.Pattern
    weight: int
    message: Optional[str] = None


def _rule(expr: str, weight: int, message: Optional[str] = None) -> PatternRule:
    return PatternRule(re.compile(expr, re.IGNORECASE), weight, message)


AI_STYLE_RULES = (
    _rule(r"as an ai", -30, "Contains AI self-reference"),
    _rule(r"i cannot|i can't (provide|generate|create)", -20, "Contains AI refusal patterns"),
    _rule(r"\bdelve\b", -5, 'Uses common AI vocabulary ("delve")'),
    _rule(r"\blandscape\b.*\b(ever-changing|evolving|dynamic)\b", -5),
    _rule(r"in (today's|the modern|the current) (world|era|age|landscape)", -8, "Uses generic temporal phrases"),
    _rule(r"it'?s (important|crucial|essential|vital) to (note|understand|recognize|remember)", -8),
)

MISINFORMATION_RULES = (
    _rule(r"share (this|before|with everyone)", -15, "Contains viral sharing prompts"),
    _rule(
        r"(they|the government|media) (don'?t|doesn'?t|won'?t) (want|let) you (know|see)",
        -20, "Contains conspiracy language",
    ),
    _rule(r"100%|guaranteed|proven|scientifically proven", -10, "Makes absolute claims without sourcing"),
    _rule(r"wake up|sheeple|open your eyes", -15, "Uses manipulation language"),
    _rule(r"mainstream media|msm|big pharma|big tech", -10, "Uses anti-establishment rhetoric"),
)

LINK_REGEX = re.compile(r"(https?://|www\.)", re.IGNORECASE)
SOURCE_REGEX = re.compile(
    r"(according to|study (published|found|shows)|researchers? (at|from)|journal of|university of)",
    re.IGNORECASE,
)
QUOTE_REGEX = re.compile(r"[“”\"].*?[“”\"]")

PATTERN_START = 70
PATTERN_MIN, PATTERN_MAX = 5, 95
UNSOURCED_LENGTH = 500


def apply_rules(text: str, rules: Sequence[PatternRule], start: int) -> Tuple[int, List[str]]:
    """Each matching rule adds its weight once; messages are collected in rule order."""
    score = start
    warnings = []
    for rule in rules:
        if rule.pattern.search(text):
            score += rule.weight
            if rule.message:
                warnings.append(rule.message)
    return score, warnings


@dataclass
class PatternProfile:
    natural_score: int
    credibility_score: int
    warnings: List[str] = field(default_factory=list)


def analyze_patterns(text: str) -> PatternProfile:
    natural_score, warnings = apply_rules(text, AI_STYLE_RULES, PATTERN_START)
    credibility_score, misinfo_warnings = apply_rules(text, MISINFORMATION_RULES, PATTERN_START)
    warnings.extend(misinfo_warnings)

    has_links = bool(LINK_REGEX.search(text))
    has_source = bool(SOURCE_REGEX.search(text))

    if has_source or has_links:
        credibility_score += 10
    if QUOTE_REGEX.search(text):
        credibility_score += 5

    if not has_source and not has_links and len(text) > UNSOURCED_LENGTH:
        credibility_score -= 5
        warnings.append("No sources or references cited for claims made")

    return PatternProfile(
        natural_score=clamp(natural_score, PATTERN_MIN, PATTERN_MAX),
        credibility_score=clamp(credibility_score, PATTERN_MIN, PATTERN_MAX),
        warnings=warnings,
    )
