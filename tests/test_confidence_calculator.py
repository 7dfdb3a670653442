"""
Confidence Calculator Tests
===========================
Normalization, fixed-weight overall score, source weighting, the four
aggregation algorithms and conflict-aware aggregation.
"""
import math

import pytest

from readme_engine.models.analyzer_result import AnalyzerResult, ResultMetadata
from readme_engine.scoring.confidence import (
    aggregate_analyzer_confidences,
    aggregate_with_conflict_resolution,
    calculate_overall_confidence,
    calculate_source_based_confidence,
    classify_conflict_severity,
    combine_confidence_scores,
    normalize_confidence,
    reliability_weight,
)


def _result(name, confidence, data_quality=0.0):
    return AnalyzerResult(
        analyzer_name=name,
        data={},
        confidence=confidence,
        metadata=ResultMetadata(data_quality=data_quality),
    )


# ===================================================================
# normalize_confidence
# ===================================================================
@pytest.mark.parametrize("raw,expected", [
    (-0.5, 0.0),
    (0.0, 0.0),
    (0.42, 0.42),
    (1.0, 1.0),
    (1.5, 1.0),
])
def test_normalize_clamps(raw, expected):
    assert normalize_confidence(raw) == expected


def test_normalize_is_idempotent_and_monotonic():
    values = [-1.0, 0.1, 0.3, 0.9, 2.0]
    normalized = [normalize_confidence(v) for v in values]
    assert normalized == sorted(normalized)
    assert [normalize_confidence(v) for v in normalized] == normalized


def test_normalize_non_numeric_is_zero():
    assert normalize_confidence(float("nan")) == 0.0
    assert normalize_confidence("high") == 0.0
    assert normalize_confidence(None) == 0.0


# ===================================================================
# calculate_overall_confidence
# ===================================================================
def test_overall_confidence_weighted_sum():
    scores = {"languages": 1.0, "dependencies": 0.8, "commands": 0.6, "testing": 0.4, "metadata": 0.2}
    assert calculate_overall_confidence(scores) == pytest.approx(0.66)


def test_overall_confidence_clamps_inputs():
    scores = {"languages": 5.0, "dependencies": 5.0, "commands": 5.0, "testing": 5.0, "metadata": 5.0}
    assert calculate_overall_confidence(scores) == pytest.approx(1.0)
    assert calculate_overall_confidence({"languages": -3.0}) == 0.0


def test_overall_confidence_missing_categories_count_as_zero():
    assert calculate_overall_confidence({"languages": 1.0}) == pytest.approx(0.25)


# ===================================================================
# calculate_source_based_confidence
# ===================================================================
def test_source_confidence_default_weights():
    value = calculate_source_based_confidence(["code-block", "file-reference", "text-mention"])
    assert value == pytest.approx(0.7667, abs=0.001)


def test_source_confidence_unknown_tag_and_empty():
    assert calculate_source_based_confidence(["hearsay"]) == pytest.approx(0.5)
    assert calculate_source_based_confidence([]) == 0.0


def test_source_confidence_custom_weights():
    assert calculate_source_based_confidence(["a", "b"], {"a": 1.0, "b": 0.0}) == pytest.approx(0.5)


# ===================================================================
# combine_confidence_scores
# ===================================================================
def test_combine_mismatched_weights_falls_back_to_equal():
    scores = [0.2, 0.8]
    assert combine_confidence_scores(scores, [1.0]) == combine_confidence_scores(scores)
    assert combine_confidence_scores(scores) == pytest.approx(0.5)


def test_combine_weighted():
    assert combine_confidence_scores([0.2, 0.8], [3.0, 1.0]) == pytest.approx(0.35)


def test_combine_empty_is_zero():
    assert combine_confidence_scores([]) == 0.0


# ===================================================================
# aggregate_analyzer_confidences
# ===================================================================
@pytest.mark.parametrize("algorithm", ["weighted_average", "harmonic_mean", "geometric_mean", "consensus"])
def test_all_algorithms_empty_is_zero(algorithm):
    assert aggregate_analyzer_confidences([], algorithm) == 0.0


def test_unknown_algorithm_raises():
    with pytest.raises(ValueError):
        aggregate_analyzer_confidences([_result("LanguageDetector", 0.5)], "median")


def test_weighted_average_uses_reliability_weights():
    results = [_result("LanguageDetector", 0.9), _result("TestingDetector", 0.3)]
    expected = (0.9 * 1.0 + 0.3 * 0.7) / 1.7
    assert aggregate_analyzer_confidences(results) == pytest.approx(expected)


def test_unknown_analyzer_gets_default_weight():
    assert reliability_weight("SomethingNew") == 0.5
    assert reliability_weight("SomethingNew") < min(
        reliability_weight(n) for n in
        ("LanguageDetector", "DependencyExtractor", "CommandExtractor", "TestingDetector", "MetadataExtractor")
    )


def test_quality_boost_applies_only_to_high_quality():
    boosted = [_result("LanguageDetector", 0.5, data_quality=0.9)]
    plain = [_result("LanguageDetector", 0.5, data_quality=0.5)]
    assert aggregate_analyzer_confidences(boosted, quality_boost=0.2) == pytest.approx(0.6)
    assert aggregate_analyzer_confidences(plain, quality_boost=0.2) == pytest.approx(0.5)


def test_mean_ordering():
    results = [
        _result("LanguageDetector", 0.9),
        _result("TestingDetector", 0.4),
        _result("MetadataExtractor", 0.6),
    ]
    harmonic = aggregate_analyzer_confidences(results, "harmonic_mean")
    geometric = aggregate_analyzer_confidences(results, "geometric_mean")
    weighted = aggregate_analyzer_confidences(results, "weighted_average")
    assert harmonic <= geometric <= weighted <= 0.9


def test_zero_confidence_zeroes_harmonic_and_geometric():
    results = [_result("LanguageDetector", 0.9), _result("TestingDetector", 0.0)]
    assert aggregate_analyzer_confidences(results, "harmonic_mean") == 0.0
    assert aggregate_analyzer_confidences(results, "geometric_mean") == 0.0


@pytest.mark.parametrize("algorithm", ["harmonic_mean", "geometric_mean"])
def test_zero_weight_sum_falls_back_to_equal_weights(algorithm):
    results = [_result("A", 0.5), _result("B", 0.7)]

    zeroed = aggregate_analyzer_confidences(results, algorithm, reliability_weights={"A": 0, "B": 0})
    equal = aggregate_analyzer_confidences(results, algorithm, reliability_weights={"A": 1, "B": 1})

    assert zeroed == pytest.approx(equal)
    assert 0.5 <= zeroed <= 0.7


def test_consensus_rewards_agreement():
    tight = [_result("A", 0.7), _result("B", 0.75), _result("C", 0.8)]
    wide = [_result("A", 0.5), _result("B", 0.75), _result("C", 1.0)]

    tight_score = aggregate_analyzer_confidences(tight, "consensus")
    wide_score = aggregate_analyzer_confidences(wide, "consensus")

    assert tight_score >= 0.75
    assert wide_score < 0.75
    assert tight_score > wide_score


def test_consensus_penalizes_wider_spread_more():
    narrower = [_result("A", 0.1), _result("B", 0.9)]
    widest = [_result("A", 0.0), _result("B", 1.0)]

    assert aggregate_analyzer_confidences(narrower, "consensus") > aggregate_analyzer_confidences(widest, "consensus")
    assert aggregate_analyzer_confidences(widest, "consensus") == pytest.approx(0.25)


# ===================================================================
# Conflict-aware aggregation
# ===================================================================
@pytest.mark.parametrize("diff,expected", [
    (0.6, "high"),
    (0.45, "medium"),
    (0.35, "low"),
    (0.02, None),
])
def test_severity_bands(diff, expected):
    assert classify_conflict_severity(diff, 0.3) == expected


def test_high_conflict_detected():
    results = [_result("LanguageDetector", 0.9), _result("TestingDetector", 0.3)]
    analysis = aggregate_with_conflict_resolution(results)

    assert len(analysis.conflicts) == 1
    conflict = analysis.conflicts[0]
    assert conflict.severity == "high"
    assert conflict.confidence_range == (0.3, 0.9)
    assert analysis.confidence < aggregate_analyzer_confidences(results)


def test_low_conflict_detected():
    results = [_result("LanguageDetector", 0.8), _result("CommandExtractor", 0.45)]
    analysis = aggregate_with_conflict_resolution(results, 0.3)
    assert [c.severity for c in analysis.conflicts] == ["low"]


def test_small_difference_is_not_a_conflict():
    results = [_result("LanguageDetector", 0.8), _result("CommandExtractor", 0.78)]
    analysis = aggregate_with_conflict_resolution(results)
    assert analysis.conflicts == []
    assert analysis.confidence == pytest.approx(aggregate_analyzer_confidences(results))


def test_more_severe_conflicts_penalize_more():
    low = aggregate_with_conflict_resolution([_result("A", 0.7), _result("B", 0.35)])
    high = aggregate_with_conflict_resolution([_result("A", 0.7), _result("B", 0.05)])
    low_base = aggregate_analyzer_confidences([_result("A", 0.7), _result("B", 0.35)])
    high_base = aggregate_analyzer_confidences([_result("A", 0.7), _result("B", 0.05)])
    assert math.isclose(low.confidence / low_base, 0.9)
    assert math.isclose(high.confidence / high_base, 0.7)


def test_single_and_empty_results():
    single = aggregate_with_conflict_resolution([_result("LanguageDetector", 0.42)])
    assert single.confidence == pytest.approx(0.42)
    assert single.conflicts == []

    empty = aggregate_with_conflict_resolution([])
    assert empty.confidence == 0.0
    assert empty.conflicts == []
