"""
Result Aggregator Tests
=======================
Merge with fallbacks, duplicate handling, confidence and data-consistency
conflicts, low-confidence warnings and completeness validation.
"""
import pytest
from unittest.mock import patch

from readme_engine.aggregation.result_aggregator import ResultAggregator
from readme_engine.core.constants import (
    ANALYZER_PARTIAL_FAILURE,
    DATA_CONSISTENCY_CONFLICT,
    LOW_CONFIDENCE_RESULT,
)
from readme_engine.models.analyzer_result import AnalyzerResult, ParseError, ResultMetadata
from readme_engine.models.categories import DependencyInfo, ProjectMetadata
from readme_engine.utils.event_logger import RegistrationEventLogger


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------
def _meta(quality=0.8):
    return ResultMetadata(processing_time=12, data_quality=quality, completeness=0.9)


def _languages(confidence=0.9, language="JavaScript"):
    return AnalyzerResult(
        analyzer_name="LanguageDetector",
        data=[{"name": language, "confidence": confidence, "sources": ["code-block"]}],
        confidence=confidence,
        sources=["code-block"],
        metadata=_meta(),
    )


def _dependencies(confidence=0.8, manager="npm", package="express"):
    return AnalyzerResult(
        analyzer_name="DependencyExtractor",
        data={"packages": [{"name": package, "manager": manager}]},
        confidence=confidence,
        metadata=_meta(),
    )


def _commands(confidence=0.8, command="npm test"):
    return AnalyzerResult(
        analyzer_name="CommandExtractor",
        data={"test": [{"command": command, "confidence": confidence}]},
        confidence=confidence,
        metadata=_meta(),
    )


def _testing(confidence=0.8):
    return AnalyzerResult(
        analyzer_name="TestingDetector",
        data={"frameworks": ["jest"]},
        confidence=confidence,
        metadata=_meta(),
    )


def _metadata(confidence=0.8):
    return AnalyzerResult(
        analyzer_name="MetadataExtractor",
        data={"name": "demo", "description": "A demo project"},
        confidence=confidence,
        metadata=_meta(),
    )


def _failed(name):
    return AnalyzerResult(
        analyzer_name=name,
        success=False,
        data=None,
        errors=[ParseError(code="PARSE_ERROR", message="could not parse", component=name)],
    )


def _conflicts(result, conflict_type):
    return [c for c in result.integration_metadata.conflicts_resolved if c.conflict_type == conflict_type]


def _issues(result, severity):
    return [i for i in result.validation_status.issues if i.severity == severity]


@pytest.fixture
def events():
    logger = RegistrationEventLogger()
    yield logger
    logger.close()


@pytest.fixture
def aggregator(events):
    return ResultAggregator(events=events)


# ===================================================================
# Healthy run
# ===================================================================
def test_consistent_results_aggregate_cleanly(aggregator):
    result = aggregator.aggregate([
        _languages(), _dependencies(), _commands(), _testing(), _metadata(),
    ])

    assert result.languages[0].name == "JavaScript"
    assert result.dependencies.packages[0].name == "express"
    assert result.commands.test[0].command == "npm test"
    assert result.testing.frameworks == ["jest"]
    assert result.metadata.name == "demo"

    assert result.integration_metadata.conflicts_resolved == []
    assert result.integration_metadata.completeness == 1.0
    assert result.integration_metadata.data_quality == pytest.approx(0.8)
    assert result.confidence.overall == pytest.approx(0.825)
    assert result.validation_status.is_valid is True
    assert result.validation_status.issues == []
    assert aggregator.get_warnings() == []
    assert aggregator.get_errors() == []


# ===================================================================
# Partial failures & fallbacks
# ===================================================================
def test_null_data_becomes_partial_failure(aggregator):
    result = aggregator.aggregate([_languages(), _failed("DependencyExtractor")])

    errors = aggregator.get_errors()
    assert len(errors) == 1
    assert errors[0].code == ANALYZER_PARTIAL_FAILURE
    assert errors[0].details["analyzer_name"] == "DependencyExtractor"

    assert result.dependencies == DependencyInfo()
    assert result.languages[0].name == "JavaScript"

    partial = [i for i in result.validation_status.issues if i.type == "partial_failure"]
    assert len(partial) == 1
    assert partial[0].severity == "warning"
    assert partial[0].component == "ResultAggregator"
    assert "partial failures" in partial[0].message
    assert "DependencyExtractor" in partial[0].message


def test_empty_data_is_not_a_failure(aggregator):
    empty = AnalyzerResult(analyzer_name="LanguageDetector", data=[], confidence=0.7)
    result = aggregator.aggregate([empty])

    assert aggregator.get_errors() == []
    assert result.languages == []
    missing = [i for i in result.validation_status.issues if i.component == "LanguageDetector"]
    assert missing[0].severity == "warning"


def test_metadata_fallback_shape(aggregator):
    result = aggregator.aggregate([_languages(), _failed("MetadataExtractor")])
    assert result.metadata == ProjectMetadata(name=None, description=None, structure=[], environment=[])


def test_data_that_does_not_fit_category_falls_back(aggregator):
    bad = AnalyzerResult(analyzer_name="DependencyExtractor", data="express, react", confidence=0.8)
    result = aggregator.aggregate([_languages(), bad])

    assert result.dependencies == DependencyInfo()
    assert aggregator.get_errors()[0].details["analyzer_name"] == "DependencyExtractor"


def test_missing_metadata_block_is_tolerated(aggregator):
    result = aggregator.aggregate([
        AnalyzerResult(analyzer_name="LanguageDetector", data=[{"name": "Go"}], confidence=0.9, metadata=None),
    ])
    assert result.languages[0].name == "Go"
    assert result.integration_metadata.data_quality == 0.0


# ===================================================================
# Conflicts
# ===================================================================
def test_confidence_conflict_prioritizes_reliable_analyzer(aggregator, events):
    result = aggregator.aggregate([_languages(0.9), _testing(0.3)])

    conflicts = result.integration_metadata.conflicts_resolved
    assert len(conflicts) == 1
    assert conflicts[0].conflict_type == "confidence_conflict"
    assert conflicts[0].resolution == "prioritized_LanguageDetector"
    assert conflicts[0].severity == "high"
    assert conflicts[0].confidence_range == (0.3, 0.9)
    assert events.get_history("conflict_detected")


def test_unknown_analyzer_loses_confidence_conflict(aggregator):
    custom = AnalyzerResult(analyzer_name="CustomAnalyzer", data={"anything": 1}, confidence=0.95)
    result = aggregator.aggregate([_languages(0.5), custom])

    conflict = _conflicts(result, "confidence_conflict")[0]
    assert conflict.resolution == "prioritized_LanguageDetector"
    assert "CustomAnalyzer" in result.integration_metadata.analyzers_used


def test_python_with_npm_is_data_consistency_conflict(aggregator):
    result = aggregator.aggregate([_languages(0.9, "Python"), _dependencies(0.8, "npm")])

    conflicts = _conflicts(result, "data_consistency")
    assert len(conflicts) == 1
    assert conflicts[0].conflicting_analyzers == ["LanguageDetector", "DependencyExtractor"]
    assert conflicts[0].resolution == "language_priority"
    assert any(w.code == DATA_CONSISTENCY_CONFLICT for w in aggregator.get_warnings())
    # Language analyzer wins for conceptual data
    assert result.languages[0].name == "Python"


def test_java_with_npm_commands_is_command_conflict(aggregator):
    result = aggregator.aggregate([_languages(0.9, "Java"), _commands(0.85, "npm run build")])

    conflicts = _conflicts(result, "command_language_consistency")
    assert len(conflicts) == 1
    assert conflicts[0].resolution == "command_priority"
    assert conflicts[0].conflicting_analyzers == ["LanguageDetector", "CommandExtractor"]
    assert result.commands.test[0].command == "npm run build"


def test_matching_ecosystems_produce_no_conflicts(aggregator):
    result = aggregator.aggregate([
        _languages(0.9, "Python"),
        _dependencies(0.85, "pip", "requests"),
        _commands(0.85, "pytest -q"),
    ])
    assert result.integration_metadata.conflicts_resolved == []


def test_javascript_with_npm_has_no_conflicts(aggregator):
    result = aggregator.aggregate([_languages(0.9), _dependencies(0.85), _commands(0.85)])
    assert result.integration_metadata.conflicts_resolved == []


def test_duplicate_analyzer_keeps_higher_confidence(aggregator):
    result = aggregator.aggregate([_languages(0.6, "Python"), _languages(0.9, "Rust")])

    duplicates = _conflicts(result, "duplicate_analyzer")
    assert len(duplicates) == 1
    assert result.languages[0].name == "Rust"
    assert result.integration_metadata.analyzers_used == ["LanguageDetector"]


def test_duplicate_prefers_usable_result(aggregator):
    result = aggregator.aggregate([_languages(0.4, "Go"), _failed("LanguageDetector")])
    assert result.languages[0].name == "Go"
    assert aggregator.get_errors() == []


# ===================================================================
# Confidence warnings & validation
# ===================================================================
def test_low_confidence_result_warning(aggregator):
    aggregator.aggregate([_languages(0.9), _dependencies(0.85), _commands(0.2)])

    low = [w for w in aggregator.get_warnings() if w.code == LOW_CONFIDENCE_RESULT]
    assert len(low) == 1
    assert low[0].details["analyzer_name"] == "CommandExtractor"
    assert low[0].details["confidence"] == pytest.approx(0.2)


def test_missing_categories_issue_severities(aggregator):
    result = aggregator.aggregate([])
    by_component = {i.component: i for i in result.validation_status.issues if i.type == "missing_data"}

    assert by_component["LanguageDetector"].severity == "warning"
    assert by_component["DependencyExtractor"].severity == "info"
    assert by_component["CommandExtractor"].severity == "warning"


def test_critically_low_confidence_invalidates_result(aggregator):
    result = aggregator.aggregate([
        _languages(0.05), _dependencies(0.05), _commands(0.05), _testing(0.05), _metadata(0.05),
    ])

    assert result.validation_status.is_valid is False
    errors = _issues(result, "error")
    assert len(errors) == 1
    assert errors[0].type == "low_confidence"
    assert errors[0].component == "ResultAggregator"


def test_low_overall_confidence_is_only_a_warning(aggregator):
    result = aggregator.aggregate([_languages(0.9)])

    assert result.confidence.overall == pytest.approx(0.225)
    assert result.validation_status.is_valid is True
    assert any(i.type == "low_confidence" and i.severity == "warning" for i in result.validation_status.issues)


def test_upstream_errors_invalidate_result(aggregator):
    cycle = ParseError(
        code="CIRCULAR_DEPENDENCY",
        message="Circular dependency among analyzers: A, B",
        component="ResultAggregator",
    )
    result = aggregator.aggregate([_languages(0.9)], errors=[cycle])

    assert result.validation_status.is_valid is False
    errors = _issues(result, "error")
    assert len(errors) == 1
    assert errors[0].type == "circular_dependency"
    assert "circular dependency" in errors[0].message.lower()
    assert aggregator.get_errors() == [cycle]


def test_upstream_warnings_do_not_invalidate_result(aggregator):
    note = ParseError(code="SLOW_ANALYZER", message="slow", severity="warning")
    result = aggregator.aggregate([_languages(0.9)], errors=[note])

    assert result.validation_status.is_valid is True
    assert _issues(result, "error") == []


def test_low_completeness_is_informational(aggregator):
    result = aggregator.aggregate([_languages(0.9), _dependencies(0.9)])
    incomplete = [i for i in result.validation_status.issues if i.type == "incomplete"]
    assert incomplete[0].severity == "info"
    assert result.integration_metadata.completeness == pytest.approx(0.4)


def test_warnings_reset_between_runs(aggregator):
    aggregator.aggregate([_languages(0.9, "Python"), _dependencies(0.8, "npm")])
    assert aggregator.get_warnings()
    aggregator.aggregate([_languages(0.9), _dependencies(0.8)])
    assert aggregator.get_warnings() == []


def test_aggregate_never_raises(aggregator):
    with patch(
        "readme_engine.aggregation.result_aggregator.calculate_overall_confidence",
        side_effect=RuntimeError("boom"),
    ):
        result = aggregator.aggregate([_languages()])

    assert result.validation_status.is_valid is False
    assert result.validation_status.issues[0].type == "aggregation_error"
    assert "boom" in result.validation_status.issues[0].message
