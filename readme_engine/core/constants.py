"""
Constants
Centralised storage for confidence weights, thresholds, analyzer roles and event names.
"""

# ---------------------------------------------------------------------------
# Result categories
# ---------------------------------------------------------------------------
CATEGORIES = ["languages", "dependencies", "commands", "testing", "metadata"]

# Overall-confidence weights (must sum to exactly 1.0)
CATEGORY_WEIGHTS = {
    "languages": 0.25,
    "dependencies": 0.25,
    "commands": 0.20,
    "testing": 0.15,
    "metadata": 0.15,
}

# ---------------------------------------------------------------------------
# Evidence source weights
# ---------------------------------------------------------------------------
SOURCE_WEIGHTS = {
    "code-block": 0.9,
    "file-reference": 0.8,
    "text-mention": 0.6,
}
DEFAULT_SOURCE_WEIGHT = 0.5

# ---------------------------------------------------------------------------
# Analyzer roles → category they populate
# ---------------------------------------------------------------------------
LANGUAGE_DETECTOR = "LanguageDetector"
DEPENDENCY_EXTRACTOR = "DependencyExtractor"
COMMAND_EXTRACTOR = "CommandExtractor"
TESTING_DETECTOR = "TestingDetector"
METADATA_EXTRACTOR = "MetadataExtractor"

ANALYZER_CATEGORY = {
    LANGUAGE_DETECTOR: "languages",
    DEPENDENCY_EXTRACTOR: "dependencies",
    COMMAND_EXTRACTOR: "commands",
    TESTING_DETECTOR: "testing",
    METADATA_EXTRACTOR: "metadata",
}

# Static trust weights, (0, 1]. Unknown analyzers fall back to the default.
RELIABILITY_WEIGHTS = {
    LANGUAGE_DETECTOR: 1.0,
    DEPENDENCY_EXTRACTOR: 0.9,
    COMMAND_EXTRACTOR: 0.85,
    TESTING_DETECTOR: 0.7,
    METADATA_EXTRACTOR: 0.6,
}
DEFAULT_RELIABILITY_WEIGHT = 0.5

# ---------------------------------------------------------------------------
# Confidence thresholds
# ---------------------------------------------------------------------------
LOW_CONFIDENCE_THRESHOLD = 0.5            # per analyzer → warning
LOW_OVERALL_CONFIDENCE_THRESHOLD = 0.3    # overall → warning
CRITICAL_CONFIDENCE_THRESHOLD = 0.1       # overall → result invalid
LOW_COMPLETENESS_THRESHOLD = 0.5

CONFLICT_THRESHOLD = 0.3
SEVERITY_HIGH_THRESHOLD = 0.6
SEVERITY_MEDIUM_THRESHOLD = 0.4

# Penalty applied to the aggregate, keyed by worst conflict severity
SEVERITY_PENALTIES = {"high": 0.3, "medium": 0.2, "low": 0.1}
EXTRA_CONFLICT_PENALTY = 0.05

CONSENSUS_THRESHOLD = 0.2
HIGH_DATA_QUALITY = 0.8

# ---------------------------------------------------------------------------
# Registration
# ---------------------------------------------------------------------------
REQUIRED_METHODS = ["analyze", "get_capabilities", "validate_interface"]
REQUIRED_PROPERTIES = ["name"]
SLOW_ANALYZER_THRESHOLD_MS = 5000

# ---------------------------------------------------------------------------
# Aggregator error / warning codes
# ---------------------------------------------------------------------------
ANALYZER_PARTIAL_FAILURE = "ANALYZER_PARTIAL_FAILURE"
LOW_CONFIDENCE_RESULT = "LOW_CONFIDENCE_RESULT"
DATA_CONSISTENCY_CONFLICT = "DATA_CONSISTENCY_CONFLICT"
ANALYZER_EXECUTION_FAILED = "ANALYZER_EXECUTION_FAILED"
ANALYZER_TIMEOUT = "ANALYZER_TIMEOUT"
CIRCULAR_DEPENDENCY = "CIRCULAR_DEPENDENCY"

AGGREGATOR_COMPONENT = "ResultAggregator"
