"""
Confidence Calculator
=====================
Pure functions turning raw per-category or per-analyzer confidence numbers
into normalized, weighted or algorithmically combined scores.

Every value entering or leaving this module is clamped to [0, 1].

Aggregation algorithms (``aggregate_analyzer_confidences``):
    weighted_average — reliability-weighted mean, optional data-quality boost
    harmonic_mean    — reliability-weighted harmonic mean (pulls toward the lowest value)
    geometric_mean   — reliability-weighted geometric mean
    consensus        — rewards agreement, penalizes spread

Ordering guarantee: with the same weights, harmonic ≤ geometric ≤ weighted
average ≤ max(confidences).
"""
import math
from typing import Dict, List, Optional, Sequence, Tuple

from pydantic import BaseModel

from readme_engine.core.constants import (
    CATEGORY_WEIGHTS,
    CONFLICT_THRESHOLD,
    CONSENSUS_THRESHOLD,
    DEFAULT_RELIABILITY_WEIGHT,
    DEFAULT_SOURCE_WEIGHT,
    EXTRA_CONFLICT_PENALTY,
    HIGH_DATA_QUALITY,
    SEVERITY_HIGH_THRESHOLD,
    SEVERITY_MEDIUM_THRESHOLD,
    SEVERITY_PENALTIES,
    SOURCE_WEIGHTS,
)
from readme_engine.scoring.reliability import get_reliability_weights

ALGORITHMS = ("weighted_average", "harmonic_mean", "geometric_mean", "consensus")

# Differences are rounded before threshold comparison so 0.7 - 0.1 counts as 0.6
_DIFF_PRECISION = 9

_SEVERITY_ORDER = {"low": 1, "medium": 2, "high": 3}


class ConfidenceConflict(BaseModel):
    analyzers: Tuple[str, str]
    difference: float
    severity: str                           # low / medium / high
    confidence_range: Tuple[float, float]


class ConflictAnalysis(BaseModel):
    confidence: float
    conflicts: List[ConfidenceConflict] = []


def normalize_confidence(value) -> float:
    """Clamp a confidence to [0, 1]. Non-numeric and NaN values become 0."""
    try:
        value = float(value)
    except (TypeError, ValueError):
        return 0.0
    if math.isnan(value):
        return 0.0
    return min(1.0, max(0.0, value))


def calculate_overall_confidence(scores: Dict[str, float]) -> float:
    """
    Fixed-weight dot product of the five category confidences.

    Missing categories count as 0. Each input is clamped before weighting and
    the sum is clamped again.
    """
    total = 0.0
    for category, weight in CATEGORY_WEIGHTS.items():
        total += normalize_confidence(scores.get(category, 0.0)) * weight
    return normalize_confidence(total)


def calculate_source_based_confidence(
    sources: Sequence[str],
    weights: Optional[Dict[str, float]] = None,
) -> float:
    """Average evidence weight of the given source tags; unknown tags weigh 0.5."""
    if not sources:
        return 0.0
    table = SOURCE_WEIGHTS if weights is None else weights
    total = sum(normalize_confidence(table.get(s, DEFAULT_SOURCE_WEIGHT)) for s in sources)
    return normalize_confidence(total / len(sources))


def combine_confidence_scores(
    scores: Sequence[float],
    weights: Optional[Sequence[float]] = None,
) -> float:
    """
    Weighted average of scores.

    Falls back to equal weighting when weights are missing, the wrong length,
    or sum to zero.
    """
    if not scores:
        return 0.0
    clamped = [normalize_confidence(s) for s in scores]
    if weights is None or len(weights) != len(clamped):
        weights = [1.0] * len(clamped)
    weight_sum = sum(weights)
    if weight_sum <= 0:
        return normalize_confidence(sum(clamped) / len(clamped))
    return normalize_confidence(sum(s * w for s, w in zip(clamped, weights)) / weight_sum)


# ---------------------------------------------------------------------------
# Per-analyzer aggregation
# ---------------------------------------------------------------------------
def reliability_weight(analyzer_name: str, weights: Optional[Dict[str, float]] = None) -> float:
    """Trust weight for an analyzer; unknown names get the conservative default."""
    table = get_reliability_weights() if weights is None else weights
    return table.get(analyzer_name, DEFAULT_RELIABILITY_WEIGHT)


def _data_quality(result) -> float:
    metadata = getattr(result, "metadata", None)
    return normalize_confidence(getattr(metadata, "data_quality", 0.0)) if metadata else 0.0


def _weighted_pairs(results, reliability_weights) -> List[Tuple[float, float]]:
    return [
        (normalize_confidence(r.confidence), reliability_weight(r.analyzer_name, reliability_weights))
        for r in results
    ]


def _weighted_average(results, reliability_weights, quality_boost: float) -> float:
    total = 0.0
    weight_sum = 0.0
    for r in results:
        conf = normalize_confidence(r.confidence)
        weight = reliability_weight(r.analyzer_name, reliability_weights)
        if quality_boost > 0 and _data_quality(r) >= HIGH_DATA_QUALITY:
            conf = normalize_confidence(conf * (1.0 + quality_boost))
        total += conf * weight
        weight_sum += weight
    return total / weight_sum if weight_sum > 0 else 0.0


def _usable_weights(pairs: List[Tuple[float, float]]) -> List[Tuple[float, float]]:
    """Equal weights when the given ones are negative or sum to zero."""
    if any(w < 0 for _, w in pairs) or sum(w for _, w in pairs) <= 0:
        return [(conf, 1.0) for conf, _ in pairs]
    return pairs


def _harmonic_mean(pairs: List[Tuple[float, float]]) -> float:
    if any(conf == 0.0 for conf, _ in pairs):
        return 0.0
    pairs = _usable_weights(pairs)
    weight_sum = sum(w for _, w in pairs)
    return weight_sum / sum(w / conf for conf, w in pairs)


def _geometric_mean(pairs: List[Tuple[float, float]]) -> float:
    if any(conf == 0.0 for conf, _ in pairs):
        return 0.0
    pairs = _usable_weights(pairs)
    weight_sum = sum(w for _, w in pairs)
    return math.exp(sum(w * math.log(conf) for conf, w in pairs) / weight_sum)


def _consensus(confidences: List[float], threshold: float) -> float:
    mean = sum(confidences) / len(confidences)
    spread = max(confidences) - min(confidences)
    if spread <= threshold:
        # Tight agreement: boost scales with how far inside the threshold we are
        closeness = 1.0 - (spread / threshold) if threshold > 0 else 1.0
        return mean + (1.0 - mean) * 0.2 * closeness
    # Penalty grows linearly from 0 at the threshold to 0.5 at full spread
    penalty = 0.5 * (spread - threshold) / (1.0 - threshold)
    return mean * (1.0 - penalty)


def aggregate_analyzer_confidences(
    results: Sequence,
    algorithm: str = "weighted_average",
    reliability_weights: Optional[Dict[str, float]] = None,
    quality_boost: float = 0.0,
    consensus_threshold: float = CONSENSUS_THRESHOLD,
) -> float:
    """
    Combine per-analyzer confidences into one score.

    Parameters
    ----------
    results : sequence of AnalyzerResult
        Anything exposing ``analyzer_name``, ``confidence`` and ``metadata``.
    algorithm : str
        One of ``ALGORITHMS``.
    reliability_weights : dict | None
        Name → weight override; defaults to the global reliability table.
    quality_boost : float
        weighted_average only. Results with data_quality ≥ 0.8 have their
        confidence scaled by (1 + quality_boost) before weighting.
    consensus_threshold : float
        consensus only. Max spread still considered agreement.

    Raises
    ------
    ValueError
        Unknown algorithm name.
    """
    if algorithm not in ALGORITHMS:
        raise ValueError(f"Unknown confidence algorithm: {algorithm}")
    if not results:
        return 0.0

    if algorithm == "weighted_average":
        value = _weighted_average(results, reliability_weights, quality_boost)
    elif algorithm == "harmonic_mean":
        value = _harmonic_mean(_weighted_pairs(results, reliability_weights))
    elif algorithm == "geometric_mean":
        value = _geometric_mean(_weighted_pairs(results, reliability_weights))
    else:
        value = _consensus([normalize_confidence(r.confidence) for r in results], consensus_threshold)
    return normalize_confidence(value)


# ---------------------------------------------------------------------------
# Conflict-aware aggregation
# ---------------------------------------------------------------------------
def confidence_difference(a: float, b: float) -> float:
    return round(abs(normalize_confidence(a) - normalize_confidence(b)), _DIFF_PRECISION)


def classify_conflict_severity(difference: float, threshold: float = CONFLICT_THRESHOLD) -> Optional[str]:
    """Map a confidence difference to low / medium / high, or None below threshold."""
    if difference < threshold:
        return None
    if difference >= SEVERITY_HIGH_THRESHOLD:
        return "high"
    if difference >= SEVERITY_MEDIUM_THRESHOLD:
        return "medium"
    if difference >= threshold:
        return "low"
    return None


def detect_confidence_conflicts(
    results: Sequence,
    conflict_threshold: float = CONFLICT_THRESHOLD,
) -> List[ConfidenceConflict]:
    """Every pair of results whose confidences differ by at least the threshold."""
    conflicts: List[ConfidenceConflict] = []
    for i, first in enumerate(results):
        for second in results[i + 1:]:
            diff = confidence_difference(first.confidence, second.confidence)
            severity = classify_conflict_severity(diff, conflict_threshold)
            if severity is None:
                continue
            low = min(first.confidence, second.confidence)
            high = max(first.confidence, second.confidence)
            conflicts.append(ConfidenceConflict(
                analyzers=(first.analyzer_name, second.analyzer_name),
                difference=diff,
                severity=severity,
                confidence_range=(normalize_confidence(low), normalize_confidence(high)),
            ))
    return conflicts


def aggregate_with_conflict_resolution(
    results: Sequence,
    conflict_threshold: float = CONFLICT_THRESHOLD,
) -> ConflictAnalysis:
    """
    Weighted-average aggregate, penalized by detected pairwise conflicts.

    The penalty is keyed by the worst severity found, plus a small extra
    penalty per additional conflict, so any conflict yields a strictly lower
    score than the conflict-free aggregate (for a non-zero base).
    """
    if not results:
        return ConflictAnalysis(confidence=0.0)
    if len(results) == 1:
        return ConflictAnalysis(confidence=normalize_confidence(results[0].confidence))

    base = aggregate_analyzer_confidences(results, "weighted_average")
    conflicts = detect_confidence_conflicts(results, conflict_threshold)
    if not conflicts:
        return ConflictAnalysis(confidence=base)

    worst = max(conflicts, key=lambda c: _SEVERITY_ORDER[c.severity]).severity
    penalty = SEVERITY_PENALTIES[worst] + EXTRA_CONFLICT_PENALTY * (len(conflicts) - 1)
    penalty = min(penalty, 0.9)
    return ConflictAnalysis(
        confidence=normalize_confidence(base * (1.0 - penalty)),
        conflicts=conflicts,
    )
