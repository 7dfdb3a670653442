"""
Result Aggregator
=================
Merges per-analyzer results into one AggregatedResult.

Pipeline (one run per ``aggregate`` call):
    collect → dedupe → merge → detect conflicts → resolve → validate → emit

Rules:
    - A failed analyzer (success False, data None, error-severity errors, or
      data that does not fit its category) is replaced by the category's
      empty fallback and an ANALYZER_PARTIAL_FAILURE error is recorded.
    - Empty-but-valid data (e.g. ``[]``) is not a failure.
    - Duplicate results for the same analyzer role: keep the higher
      reliability weight, then the higher confidence.
    - Confidence conflicts are resolved in favour of the higher reliability
      weight (``prioritized_<name>``).
    - Language vs package-manager / command ecosystem mismatches are
      resolved as ``language_priority`` / ``command_priority`` and raise a
      DATA_CONSISTENCY_CONFLICT warning.

``aggregate`` never raises; problems are reported in ``validation_status``.
"""
import logging
import time
from typing import Any, Dict, List, Optional, Sequence, Set, Tuple

from pydantic import ValidationError

from readme_engine.aggregation.ecosystems import (
    command_ecosystem,
    is_consistent,
    language_ecosystem,
    package_file_ecosystem,
    tool_ecosystem,
)
from readme_engine.core.constants import (
    AGGREGATOR_COMPONENT,
    ANALYZER_CATEGORY,
    ANALYZER_PARTIAL_FAILURE,
    CATEGORIES,
    COMMAND_EXTRACTOR,
    CONFLICT_THRESHOLD,
    CRITICAL_CONFIDENCE_THRESHOLD,
    DATA_CONSISTENCY_CONFLICT,
    DEPENDENCY_EXTRACTOR,
    LANGUAGE_DETECTOR,
    LOW_COMPLETENESS_THRESHOLD,
    LOW_CONFIDENCE_RESULT,
    LOW_CONFIDENCE_THRESHOLD,
    LOW_OVERALL_CONFIDENCE_THRESHOLD,
)
from readme_engine.models.aggregated_result import (
    AggregatedResult,
    ConfidenceBreakdown,
    ConflictRecord,
    IntegrationMetadata,
    ValidationIssue,
    ValidationStatus,
)
from readme_engine.models.analyzer_result import AnalyzerResult, ParseError
from readme_engine.models.categories import (
    CommandInfo,
    DependencyInfo,
    LanguageInfo,
    coerce_category,
    fallback_for,
)
from readme_engine.scoring.confidence import (
    calculate_overall_confidence,
    detect_confidence_conflicts,
    normalize_confidence,
    reliability_weight,
)
from readme_engine.utils.event_logger import RegistrationEventLogger

logger = logging.getLogger(__name__)


class ResultAggregator:
    """
    Reconciles analyzer outputs into a single trustworthy record.

    Usage:
        aggregator = ResultAggregator(events=events)
        result = aggregator.aggregate(results)
        aggregator.get_warnings()   # warnings of the last run
    """

    def __init__(
        self,
        events: Optional[RegistrationEventLogger] = None,
        reliability_weights: Optional[Dict[str, float]] = None,
        conflict_threshold: float = CONFLICT_THRESHOLD,
    ) -> None:
        self._events = events or RegistrationEventLogger()
        self._weights = reliability_weights
        self._conflict_threshold = conflict_threshold
        self._warnings: List[ParseError] = []
        self._errors: List[ParseError] = []

    def get_warnings(self) -> List[ParseError]:
        return list(self._warnings)

    def get_errors(self) -> List[ParseError]:
        return list(self._errors)

    # ------------------------------------------------------------------
    # Entry point
    # ------------------------------------------------------------------
    def aggregate(
        self,
        results: Sequence[AnalyzerResult],
        errors: Optional[Sequence[ParseError]] = None,
    ) -> AggregatedResult:
        """
        Merge ``results`` into one record.

        ``errors`` are problems found before aggregation (e.g. a dependency
        cycle among the analyzers that produced the results). They are kept
        with this run's errors and error-severity ones invalidate the result.
        """
        self._warnings = []
        self._errors = list(errors or [])
        started = time.perf_counter()

        try:
            return self._run(list(results or []), started)
        except Exception as e:
            logger.exception("Aggregation failed")
            return AggregatedResult(
                validation_status=ValidationStatus(
                    is_valid=False,
                    issues=[ValidationIssue(
                        type="aggregation_error",
                        component=AGGREGATOR_COMPONENT,
                        severity="error",
                        message=f"Aggregation failed: {type(e).__name__}: {e}",
                    )],
                ),
            )

    def _run(self, results: List[AnalyzerResult], started: float) -> AggregatedResult:
        logger.info(f"Aggregating {len(results)} analyzer results")
        conflicts: List[ConflictRecord] = []

        # 1. Dedupe
        unique = self._dedupe(results, conflicts)

        # 2. Merge
        merged, category_confidence, healthy = self._merge(unique)

        # 3-4. Conflicts
        conflicts.extend(self._resolve_confidence_conflicts(healthy))
        conflicts.extend(self._check_data_consistency(merged, healthy))

        # Low confidence on individual analyzers
        for r in healthy:
            if r.confidence < LOW_CONFIDENCE_THRESHOLD:
                self._warnings.append(ParseError(
                    code=LOW_CONFIDENCE_RESULT,
                    message=f"Analyzer {r.analyzer_name} returned low confidence ({r.confidence:.2f})",
                    component=r.analyzer_name,
                    severity="warning",
                    details={"analyzer_name": r.analyzer_name, "confidence": r.confidence},
                ))

        breakdown = ConfidenceBreakdown(
            **category_confidence,
            overall=calculate_overall_confidence(category_confidence),
        )

        completeness = sum(
            1 for c in CATEGORIES if merged[c] != fallback_for(c)
        ) / len(CATEGORIES)
        qualities = [r.metadata.data_quality for r in healthy if r.metadata is not None]

        result = AggregatedResult(
            **merged,
            confidence=breakdown,
            integration_metadata=IntegrationMetadata(
                analyzers_used=[r.analyzer_name for r in unique],
                conflicts_resolved=conflicts,
                data_quality=sum(qualities) / len(qualities) if qualities else 0.0,
                completeness=completeness,
                processing_time=(time.perf_counter() - started) * 1000,
            ),
        )

        # 5. Validate
        result = result.model_copy(update={"validation_status": self.validate_integration(result)})
        logger.info(
            f"Aggregation complete: overall={breakdown.overall:.2f}, "
            f"conflicts={len(conflicts)}, valid={result.validation_status.is_valid}"
        )
        return result

    # ------------------------------------------------------------------
    # Dedupe & merge
    # ------------------------------------------------------------------
    def _rank(self, result: AnalyzerResult) -> Tuple[bool, float, float]:
        return (not result.has_failed, reliability_weight(result.analyzer_name, self._weights), result.confidence)

    def _dedupe(self, results: List[AnalyzerResult], conflicts: List[ConflictRecord]) -> List[AnalyzerResult]:
        kept: Dict[str, AnalyzerResult] = {}
        for r in results:
            current = kept.get(r.analyzer_name)
            if current is None:
                kept[r.analyzer_name] = r
                continue

            winner = r if self._rank(r) > self._rank(current) else current
            kept[r.analyzer_name] = winner
            record = ConflictRecord(
                conflict_type="duplicate_analyzer",
                conflicting_analyzers=[r.analyzer_name, r.analyzer_name],
                resolution="kept_usable_result" if r.has_failed != current.has_failed else "kept_highest_confidence",
                confidence_range=(min(r.confidence, current.confidence), max(r.confidence, current.confidence)),
                details="Same analyzer role reported more than once",
            )
            conflicts.append(record)
            self._events.log_conflict(record.conflict_type, record.conflicting_analyzers, record.resolution)
        return list(kept.values())

    def _merge(
        self, results: List[AnalyzerResult]
    ) -> Tuple[Dict[str, Any], Dict[str, float], List[AnalyzerResult]]:
        """
        Build the category payloads.

        Returns
        -------
        tuple
            (payload per category, confidence per category, results with usable data)
        """
        merged: Dict[str, Any] = {c: fallback_for(c) for c in CATEGORIES}
        confidence: Dict[str, float] = {c: 0.0 for c in CATEGORIES}
        healthy: List[AnalyzerResult] = []

        for r in results:
            category = ANALYZER_CATEGORY.get(r.analyzer_name)

            if r.has_failed:
                self._record_partial_failure(r, category, [e.message for e in r.errors])
                continue

            if category is None:
                # Unknown roles still take part in confidence scoring
                healthy.append(r)
                continue

            try:
                merged[category] = coerce_category(category, r.data)
            except ValidationError as e:
                self._record_partial_failure(
                    r, category, [f"Data does not fit {category}: {e.error_count()} validation errors"]
                )
                continue

            confidence[category] = r.confidence
            healthy.append(r)

        return merged, confidence, healthy

    def _record_partial_failure(self, result: AnalyzerResult, category: Optional[str], reasons: List[str]) -> None:
        target = f"; using fallback {category} data" if category else ""
        logger.warning(f"Analyzer {result.analyzer_name} failed{target}")
        self._errors.append(ParseError(
            code=ANALYZER_PARTIAL_FAILURE,
            message=f"Analyzer {result.analyzer_name} failed{target}",
            component=AGGREGATOR_COMPONENT,
            severity="error",
            details={
                "analyzer_name": result.analyzer_name,
                "category": category,
                "errors": reasons,
            },
        ))

    # ------------------------------------------------------------------
    # Conflicts
    # ------------------------------------------------------------------
    def _resolve_confidence_conflicts(self, results: List[AnalyzerResult]) -> List[ConflictRecord]:
        by_name = {r.analyzer_name: r for r in results}
        records: List[ConflictRecord] = []
        for conflict in detect_confidence_conflicts(results, self._conflict_threshold):
            first, second = (by_name[n] for n in conflict.analyzers)
            winner = first if self._rank(first) >= self._rank(second) else second
            record = ConflictRecord(
                conflict_type="confidence_conflict",
                conflicting_analyzers=list(conflict.analyzers),
                resolution=f"prioritized_{winner.analyzer_name}",
                confidence_range=conflict.confidence_range,
                severity=conflict.severity,
                details=f"Confidence difference {conflict.difference:.2f}",
            )
            records.append(record)
            self._events.log_conflict(record.conflict_type, record.conflicting_analyzers, record.resolution)
        return records

    def _check_data_consistency(
        self, merged: Dict[str, Any], results: List[AnalyzerResult]
    ) -> List[ConflictRecord]:
        """Cross-check the primary language against dependency and command ecosystems."""
        contributors = {r.analyzer_name for r in results}
        if LANGUAGE_DETECTOR not in contributors:
            return []
        language = _primary_language(merged["languages"])
        expected = language_ecosystem(language)
        if expected is None:
            return []

        records: List[ConflictRecord] = []

        if DEPENDENCY_EXTRACTOR in contributors:
            found = _dependency_ecosystems(merged["dependencies"])
            if found and not any(is_consistent(language, eco) for eco in found):
                records.append(self._consistency_conflict(
                    "data_consistency",
                    [LANGUAGE_DETECTOR, DEPENDENCY_EXTRACTOR],
                    "language_priority",
                    f"Language {language} does not match package ecosystem(s): {', '.join(sorted(found))}",
                ))

        if COMMAND_EXTRACTOR in contributors:
            found = _command_ecosystems(merged["commands"])
            if found and not any(is_consistent(language, eco) for eco in found):
                records.append(self._consistency_conflict(
                    "command_language_consistency",
                    [LANGUAGE_DETECTOR, COMMAND_EXTRACTOR],
                    "command_priority",
                    f"Commands for {', '.join(sorted(found))} do not match language {language}",
                ))

        return records

    def _consistency_conflict(
        self, conflict_type: str, analyzers: List[str], resolution: str, details: str
    ) -> ConflictRecord:
        self._warnings.append(ParseError(
            code=DATA_CONSISTENCY_CONFLICT,
            message=details,
            component=AGGREGATOR_COMPONENT,
            severity="warning",
            details={"conflict_type": conflict_type, "analyzers": analyzers, "resolution": resolution},
        ))
        self._events.log_conflict(conflict_type, analyzers, resolution)
        return ConflictRecord(
            conflict_type=conflict_type,
            conflicting_analyzers=analyzers,
            resolution=resolution,
            details=details,
        )

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------
    def validate_integration(self, result: AggregatedResult) -> ValidationStatus:
        """
        Completeness and confidence checks on an aggregated record.

        Partial failures and other errors are taken from the last ``aggregate``
        run. Only error-severity issues make the result invalid.
        """
        issues: List[ValidationIssue] = []

        if not result.languages:
            issues.append(ValidationIssue(
                type="missing_data", component=LANGUAGE_DETECTOR, severity="warning",
                message="No programming languages detected",
            ))
        if not _has_dependency_data(result.dependencies):
            issues.append(ValidationIssue(
                type="missing_data", component=DEPENDENCY_EXTRACTOR, severity="info",
                message="No dependencies detected",
            ))
        if not result.commands.all_commands():
            issues.append(ValidationIssue(
                type="missing_data", component=COMMAND_EXTRACTOR, severity="warning",
                message="No build, test or run commands detected",
            ))

        overall = result.confidence.overall
        if overall < CRITICAL_CONFIDENCE_THRESHOLD:
            issues.append(ValidationIssue(
                type="low_confidence", component=AGGREGATOR_COMPONENT, severity="error",
                message=f"Overall confidence critically low ({overall:.2f})",
            ))
        elif overall < LOW_OVERALL_CONFIDENCE_THRESHOLD:
            issues.append(ValidationIssue(
                type="low_confidence", component=AGGREGATOR_COMPONENT, severity="warning",
                message=f"Overall confidence is low ({overall:.2f})",
            ))

        for warning in self._warnings:
            if warning.code == LOW_CONFIDENCE_RESULT:
                issues.append(ValidationIssue(
                    type="low_confidence", component=warning.component, severity="warning",
                    message=warning.message,
                ))

        failed = [e.details.get("analyzer_name") for e in self._errors if e.code == ANALYZER_PARTIAL_FAILURE]
        if failed:
            issues.append(ValidationIssue(
                type="partial_failure", component=AGGREGATOR_COMPONENT, severity="warning",
                message=f"{len(failed)} analyzer(s) had partial failures: {', '.join(failed)}",
            ))

        for error in self._errors:
            if error.code != ANALYZER_PARTIAL_FAILURE and error.severity == "error":
                issues.append(ValidationIssue(
                    type=error.code.lower(), component=AGGREGATOR_COMPONENT, severity="error",
                    message=error.message,
                ))

        completeness = result.integration_metadata.completeness
        if completeness < LOW_COMPLETENESS_THRESHOLD:
            issues.append(ValidationIssue(
                type="incomplete", component=AGGREGATOR_COMPONENT, severity="info",
                message=f"Only {completeness:.0%} of result categories carry data",
            ))

        return ValidationStatus(
            is_valid=not any(i.severity == "error" for i in issues),
            issues=issues,
        )


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------
def _primary_language(languages: List[LanguageInfo]) -> Optional[str]:
    """Highest-confidence language; first wins on ties."""
    if not languages:
        return None
    best = languages[0]
    for lang in languages[1:]:
        if normalize_confidence(lang.confidence) > normalize_confidence(best.confidence):
            best = lang
    return best.name


def _dependency_ecosystems(deps: DependencyInfo) -> Set[str]:
    found: Set[str] = set()
    for pkg in (*deps.packages, *deps.dependencies, *deps.dev_dependencies):
        eco = tool_ecosystem(pkg.manager)
        if eco:
            found.add(eco)
    for pf in deps.package_files:
        eco = tool_ecosystem(pf.type) or package_file_ecosystem(pf.name)
        if eco:
            found.add(eco)
    for cmd in deps.install_commands:
        eco = command_ecosystem(cmd.command)
        if eco:
            found.add(eco)
    return found


def _command_ecosystems(commands: CommandInfo) -> Set[str]:
    return {eco for eco in (command_ecosystem(c.command) for c in commands.all_commands()) if eco}


def _has_dependency_data(deps: DependencyInfo) -> bool:
    return bool(
        deps.packages or deps.dependencies or deps.dev_dependencies
        or deps.package_files or deps.install_commands
    )
