"""
Analyzer Registry
=================
Admits or rejects analyzers using the RegistrationValidator and owns all
registration state: registered analyzers (insertion order kept), the
registration order, failure records and the overall validation status.

Admission policy (RegistrationOptions):
    validate_interfaces — run the contract check on every register()
    allow_duplicates    — admit a second analyzer under an existing name
    fail_on_error       — strict: reject non-compliant analyzers
                          lenient: record the failure, admit with warnings
    registration_timeout — ms budget for one registration
    enable_logging      — forward structured events to the logging backend

Recovery:
    The single auto-recovery path is relaxed re-registration for
    interface-validation failures in register_multiple(). Duplicates and
    None analyzers are never recovered.

State is mutated only inside register / register_multiple / clear_registry;
callers read it through get_registration_state() snapshots. Not safe for
concurrent writers from multiple threads.
"""
import logging
import time
from collections import deque
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence, Union

from readme_engine.models.registration import (
    AnalyzerConfig,
    AnalyzerStatus,
    DependencyValidationResult,
    ErrorDiagnostics,
    RegistrationFailure,
    RegistrationOptions,
    RegistrationResult,
    RegistrationState,
    RegistrationStatistics,
    RegistryIssue,
    RegistryStatus,
    RegistryValidationResult,
    ValidationDetails,
)
from readme_engine.registry.errors import (
    AnalyzerRegistrationError,
    CapabilityValidationError,
    DependencyResolutionError,
    InterfaceValidationError,
    RegistrationStateError,
    RegistrationTimeoutError,
)
from readme_engine.registry.validator import RegistrationValidator
from readme_engine.utils.event_logger import RegistrationEventLogger

logger = logging.getLogger(__name__)

RELAXED_VALIDATION_WARNING = "Registered with relaxed validation due to interface issues"
INTERFACE_CONTINUE_WARNING = "Interface validation failed but registration continued"

# Duplicate registrations are stored as "<name>#2", "<name>#3", ...
_DUPLICATE_SEPARATOR = "#"

_REPEATED_FAILURE_LIMIT = 2


def role_name(registration_key: str) -> str:
    """Strip the duplicate suffix from a registration key."""
    return registration_key.split(_DUPLICATE_SEPARATOR, 1)[0]


class AnalyzerRegistry:

    def __init__(
        self,
        options: RegistrationOptions,
        events: Optional[RegistrationEventLogger] = None,
        validator: Optional[RegistrationValidator] = None,
    ) -> None:
        self._options = options
        self._events = events or RegistrationEventLogger(enabled=options.enable_logging)
        self._validator = validator or RegistrationValidator()

        self._analyzers: Dict[str, Any] = {}
        self._order: List[str] = []
        self._failures: List[RegistrationFailure] = []
        self._timestamps: Dict[str, datetime] = {}
        self._durations_ms: deque = deque(maxlen=200)
        self._status = RegistryStatus.PENDING

    @property
    def options(self) -> RegistrationOptions:
        return self._options

    @property
    def events(self) -> RegistrationEventLogger:
        return self._events

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------
    def register(self, analyzer: Any, name: Optional[str] = None) -> RegistrationResult:
        """
        Admit a single analyzer.

        Never raises for analyzer problems; the outcome (including the error
        kind) is carried by the returned RegistrationResult.
        """
        analyzer_name = name or self._declared_name(analyzer)
        timestamp = datetime.now(timezone.utc)
        started = time.perf_counter()
        cid = self._events.log_registration_start(analyzer_name)
        details: Optional[ValidationDetails] = None
        warnings: List[str] = []

        try:
            if analyzer is None:
                raise RegistrationStateError(
                    "Analyzer cannot be None", analyzer_name, "pre-validation"
                )

            if analyzer_name in self._analyzers and not self._options.allow_duplicates:
                raise RegistrationStateError(
                    f"Analyzer '{analyzer_name}' is already registered", analyzer_name, "duplicate-check"
                )

            if self._options.validate_interfaces:
                details = self._validate(analyzer, analyzer_name, cid, warnings)

            elapsed_ms = (time.perf_counter() - started) * 1000
            if elapsed_ms > self._options.registration_timeout:
                raise RegistrationTimeoutError(
                    f"Registration timeout after {elapsed_ms:.0f}ms "
                    f"(limit {self._options.registration_timeout}ms)",
                    analyzer_name,
                    self._options.registration_timeout,
                    elapsed_ms,
                )

            key = self._store(analyzer_name, analyzer, timestamp)
            self._durations_ms.append((time.perf_counter() - started) * 1000)
            self._events.log_registration_success(key, warnings, cid)

            return RegistrationResult(
                success=True,
                analyzer_name=key,
                warnings=warnings or None,
                validation_details=details,
                registration_timestamp=timestamp,
            )

        except AnalyzerRegistrationError as e:
            return self._fail(e, details, timestamp, cid)
        except Exception as e:
            wrapped = AnalyzerRegistrationError(
                f"Unexpected error during registration: {e}", analyzer_name, "registration", cause=e
            )
            logger.exception(f"Unexpected error registering {analyzer_name}")
            return self._fail(wrapped, details, timestamp, cid)

    def register_multiple(
        self,
        entries: Sequence[Union[AnalyzerConfig, Any]],
        recover: bool = True,
    ) -> List[RegistrationResult]:
        """
        Register analyzers sequentially, highest priority first.

        Disabled configs are skipped. A failure never aborts later
        registrations nor removes analyzers already admitted.
        """
        configs = [self._as_config(e) for e in entries]
        ordered = sorted(configs, key=lambda c: c.priority, reverse=True)
        cid = self._events.generate_correlation_id()
        self._events.log(logging.INFO, "batch_registration_started",
                         f"Starting batch registration of {len(configs)} analyzers", cid,
                         {"analyzer_names": [c.name for c in configs]})

        results: List[RegistrationResult] = []
        for config in ordered:
            if not config.enabled:
                self._events.log(logging.DEBUG, "analyzer_skipped",
                                 f"Skipping disabled analyzer: {config.name}", cid)
                continue

            result = self.register(config.analyzer, config.name)
            if not result.success and recover and self._should_attempt_recovery(result):
                recovered = self._attempt_recovery(config, cid)
                if recovered is not None:
                    result = recovered
            results.append(result)

        succeeded = sum(1 for r in results if r.success)
        self._events.log(logging.INFO, "batch_registration_completed",
                         f"Batch registration completed: {succeeded} successful, "
                         f"{len(results) - succeeded} failed", cid)
        return results

    def clear_registry(self) -> None:
        self._analyzers.clear()
        self._order.clear()
        self._failures.clear()
        self._timestamps.clear()
        self._durations_ms.clear()
        self._status = RegistryStatus.PENDING
        self._events.log(logging.INFO, "registry_cleared", "Registry cleared")

    def set_registration_options(self, **changes: Any) -> None:
        """Update options; invalid values raise (programmer misuse)."""
        merged = self._options.model_dump()
        merged.update(changes)
        self._options = RegistrationOptions(**merged)
        self._events.enabled = self._options.enable_logging

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------
    def get_registration_state(self) -> RegistrationState:
        return RegistrationState(
            registered_analyzers=dict(self._analyzers),
            registration_order=list(self._order),
            failed_registrations=[f.model_copy() for f in self._failures],
            registration_timestamps=dict(self._timestamps),
            validation_status=self._status,
            options=self._options.model_copy(),
        )

    def get_registered_analyzers(self) -> List[str]:
        return list(self._analyzers.keys())

    def get_analyzer(self, name: str) -> Optional[Any]:
        return self._analyzers.get(name)

    def is_analyzer_registered(self, name: str) -> bool:
        return name in self._analyzers

    def get_registration_order(self) -> List[str]:
        return list(self._order)

    def get_failed_analyzers(self) -> List[str]:
        return [f.analyzer_name for f in self._failures]

    def get_analyzer_status(self, name: str) -> Optional[AnalyzerStatus]:
        is_registered = name in self._analyzers
        failure = self._find_failure(name)
        if not is_registered and failure is None:
            return None

        return AnalyzerStatus(
            name=name,
            is_registered=is_registered,
            status="registered" if is_registered else "failed",
            registration_timestamp=self._timestamps.get(name) or (failure.timestamp if failure else None),
            registration_order=self._order.index(name) if name in self._order else None,
            dependencies=self._declared_dependencies(self._analyzers.get(name)),
            dependents=self._find_dependents(name),
            last_error=failure.error if failure else None,
            retry_count=failure.retry_count if failure else 0,
        )

    def get_registration_statistics(self) -> RegistrationStatistics:
        # Lenient admissions appear in both maps; count each name once
        names = set(self._analyzers) | {f.analyzer_name for f in self._failures}
        registered = len(self._analyzers)
        failed = len(names) - registered
        total = len(names)
        durations = list(self._durations_ms)
        return RegistrationStatistics(
            total_analyzers=total,
            registered_analyzers=registered,
            failed_analyzers=failed,
            success_rate=registered / total if total else 0.0,
            average_registration_time=sum(durations) / len(durations) if durations else 0.0,
            dependency_chain_length=self._max_chain_length(),
        )

    # ------------------------------------------------------------------
    # Dependencies
    # ------------------------------------------------------------------
    def get_dependency_order(self) -> List[str]:
        """Registered analyzers ordered so that dependencies come first."""
        return self.resolve_dependencies([
            AnalyzerConfig(name=key, analyzer=a, dependencies=self._declared_dependencies(a))
            for key, a in self._analyzers.items()
        ])

    def resolve_dependencies(self, configs: Sequence[AnalyzerConfig]) -> List[str]:
        """
        Kahn topological sort over the configs' declared dependencies.

        Dependencies that are not themselves configs are listed first.
        Analyzers caught in a cycle are left out and a
        ``circular_dependency_detected`` event is logged.
        """
        graph: Dict[str, List[str]] = {}
        in_degree: Dict[str, int] = {}
        for config in configs:
            deps = list(dict.fromkeys(config.dependencies))
            graph[config.name] = deps
            in_degree[config.name] = len(deps)
            for dep in deps:
                in_degree.setdefault(dep, 0)

        queue = deque(n for n, d in in_degree.items() if d == 0)
        resolved: List[str] = []
        while queue:
            current = queue.popleft()
            resolved.append(current)
            for name, deps in graph.items():
                if current in deps:
                    in_degree[name] -= 1
                    if in_degree[name] == 0:
                        queue.append(name)

        unresolved = [c.name for c in configs if c.name not in resolved]
        if unresolved:
            self._events.log(logging.WARNING, "circular_dependency_detected",
                             f"Circular dependency among: {', '.join(unresolved)}",
                             data={"unresolved_analyzers": unresolved})
        return resolved

    # ------------------------------------------------------------------
    # Registry-wide validation & diagnostics
    # ------------------------------------------------------------------
    def validate_registration(self) -> RegistryValidationResult:
        """Re-validate every registered analyzer and update the registry status."""
        issues: List[RegistryIssue] = []
        valid = 0
        for key, analyzer in self._analyzers.items():
            details = self._validator.validate_analyzer(analyzer)
            if details.interface_compliance.is_valid:
                valid += 1
            else:
                issues.append(RegistryIssue(
                    analyzer_name=key,
                    type="interface",
                    severity="error",
                    message="Interface validation failed: " + "; ".join(details.interface_compliance.details),
                ))
            if not details.capability_validation.is_valid:
                issues.append(RegistryIssue(
                    analyzer_name=key,
                    type="capability",
                    severity="warning",
                    message="Capability issues: " + "; ".join(details.capability_validation.issues),
                ))
            missing = [d for d in self._declared_dependencies(analyzer) if d not in self._roles()]
            if missing:
                issues.append(RegistryIssue(
                    analyzer_name=key,
                    type="dependency",
                    severity="warning",
                    message=f"Dependencies not registered: {', '.join(missing)}",
                ))

        recommendations: List[str] = []
        if not self._analyzers:
            recommendations.append("No analyzers registered")
        if self._failures:
            recommendations.append(f"{len(self._failures)} failed registrations. Check logs for details.")

        is_valid = not any(i.severity == "error" for i in issues)
        if is_valid:
            self._status = RegistryStatus.VALID
        elif valid > 0:
            self._status = RegistryStatus.PARTIAL
        else:
            self._status = RegistryStatus.INVALID

        total = len(self._analyzers)
        return RegistryValidationResult(
            is_valid=is_valid,
            total_analyzers=total,
            valid_analyzers=valid,
            invalid_analyzers=total - valid,
            issues=issues,
            recommendations=recommendations,
        )

    def get_error_diagnostics(self) -> ErrorDiagnostics:
        by_kind: Dict[str, int] = {}
        for f in self._failures:
            by_kind[f.error_kind] = by_kind.get(f.error_kind, 0) + 1
        return ErrorDiagnostics(
            total_failures=len(self._failures),
            failures_by_analyzer={f.analyzer_name: f.model_copy() for f in self._failures},
            failures_by_kind=by_kind,
            recovery_recommendations=self._recovery_recommendations(),
            log_diagnostics=self._events.generate_diagnostics_report(),
        )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    def _validate(self, analyzer: Any, name: str, cid: str, warnings: List[str]) -> ValidationDetails:
        """Run the validator and apply the strict / lenient policy to its findings."""
        self._events.log_validation_start(name, cid)
        details = self._validator.validate_analyzer(analyzer)
        interface = details.interface_compliance
        self._events.log_validation_complete(name, interface.compliance_score, interface.is_valid, cid)

        if not interface.is_valid:
            error = InterfaceValidationError(
                f"Interface validation failed: {', '.join(interface.details)}",
                name, interface.missing_methods, interface.invalid_methods,
            )
            if self._options.fail_on_error:
                raise error
            self._record_failure(name, error, details)
            self._events.log_recovery_attempt(name, "continue-with-invalid-interface", cid)
            warnings.append(INTERFACE_CONTINUE_WARNING)

        capability = details.capability_validation
        if not capability.is_valid:
            if self._options.fail_on_error:
                raise CapabilityValidationError(
                    f"Capability validation failed: {', '.join(capability.issues)}", name, capability.issues
                )
            warnings.append(f"Capability issues: {', '.join(capability.issues)}")

        dependency = self._check_dependencies(name, details.dependency_validation.resolution_order)
        details = details.model_copy(update={"dependency_validation": dependency})
        if dependency.circular_dependencies:
            error = DependencyResolutionError(
                f"Circular dependency: {' -> '.join(dependency.circular_dependencies)}",
                name, dependency.missing_dependencies, dependency.circular_dependencies,
            )
            if self._options.fail_on_error:
                raise error
            self._record_failure(name, error, details)
            warnings.append(error.message)
        if dependency.missing_dependencies:
            warnings.append(f"Dependencies not yet registered: {', '.join(dependency.missing_dependencies)}")

        return details

    def _check_dependencies(self, name: str, declared: List[str]) -> DependencyValidationResult:
        """Missing = not registered yet; circular = a registered dependency leads back to name."""
        roles = self._roles()
        missing = [d for d in declared if d not in roles]
        cycle = self._find_cycle(name, declared)
        return DependencyValidationResult(
            is_valid=not missing and not cycle,
            missing_dependencies=missing,
            circular_dependencies=cycle,
            resolution_order=declared,
        )

    def _find_cycle(self, name: str, declared: List[str]) -> List[str]:
        graph = {role_name(k): self._declared_dependencies(a) for k, a in self._analyzers.items()}
        graph[name] = list(declared)

        def walk(node: str, path: List[str]) -> List[str]:
            for dep in graph.get(node, []):
                if dep == name:
                    return path + [dep]
                if dep in path:
                    continue
                found = walk(dep, path + [dep])
                if found:
                    return found
            return []

        return walk(name, [name])

    def _store(self, name: str, analyzer: Any, timestamp: datetime) -> str:
        key = name
        if key in self._analyzers:
            n = 2
            while f"{name}{_DUPLICATE_SEPARATOR}{n}" in self._analyzers:
                n += 1
            key = f"{name}{_DUPLICATE_SEPARATOR}{n}"
        self._analyzers[key] = analyzer
        self._order.append(key)
        self._timestamps[key] = timestamp
        return key

    def _fail(
        self,
        error: AnalyzerRegistrationError,
        details: Optional[ValidationDetails],
        timestamp: datetime,
        cid: str,
    ) -> RegistrationResult:
        self._record_failure(error.analyzer_name, error, details)
        self._events.log_registration_failure(error.analyzer_name, error.message, error.error_kind, cid)
        suggestions = error.get_recovery_suggestions()
        if suggestions:
            self._events.log(logging.INFO, "recovery_suggestions",
                             f"Recovery suggestions for {error.analyzer_name}: {'; '.join(suggestions)}",
                             cid, error.get_structured_data())
        return RegistrationResult(
            success=False,
            analyzer_name=error.analyzer_name,
            error=error.message,
            error_kind=error.error_kind,
            validation_details=details,
            registration_timestamp=timestamp,
        )

    def _record_failure(
        self,
        name: str,
        error: AnalyzerRegistrationError,
        details: Optional[ValidationDetails],
    ) -> None:
        existing = self._find_failure(name)
        now = datetime.now(timezone.utc)
        if existing is not None:
            existing.retry_count += 1
            existing.error = error.message
            existing.error_kind = error.error_kind
            existing.timestamp = now
            existing.validation_details = details
            return
        self._failures.append(RegistrationFailure(
            analyzer_name=name,
            error=error.message,
            error_kind=error.error_kind,
            timestamp=now,
            validation_details=details,
        ))

    def _find_failure(self, name: str) -> Optional[RegistrationFailure]:
        return next((f for f in self._failures if f.analyzer_name == name), None)

    @staticmethod
    def _should_attempt_recovery(result: RegistrationResult) -> bool:
        return result.error_kind == "interface"

    def _attempt_recovery(self, config: AnalyzerConfig, cid: str) -> Optional[RegistrationResult]:
        """Retry with interface validation switched off; restore options afterwards."""
        strategy = "relaxed-validation"
        self._events.log_recovery_attempt(config.name, strategy, cid)
        saved = self._options
        self._options = saved.model_copy(update={"validate_interfaces": False})
        try:
            result = self.register(config.analyzer, config.name)
        finally:
            self._options = saved

        if not result.success:
            self._events.log_recovery_failure(config.name, strategy, result.error or "unknown", cid)
            return None

        self._events.log_recovery_success(config.name, strategy, cid)
        return result.model_copy(update={
            "warnings": [*(result.warnings or []), RELAXED_VALIDATION_WARNING],
        })

    def _recovery_recommendations(self) -> List[str]:
        if not self._failures:
            return ["No failures detected - system is healthy"]

        recommendations: List[str] = []
        interface = [f for f in self._failures if f.error_kind == "interface"]
        dependency = [f for f in self._failures if f.error_kind == "dependency"]
        other = [f for f in self._failures if f.error_kind not in ("interface", "dependency")]

        if interface:
            recommendations.append(
                f"{len(interface)} analyzers failed interface validation. "
                "Review analyzer implementations for missing or invalid methods."
            )
        if dependency:
            recommendations.append(
                f"{len(dependency)} analyzers have dependency issues. "
                "Ensure all required dependencies are registered first."
            )
        if other:
            recommendations.append(
                f"{len(other)} registrations failed for other reasons "
                "(duplicates, timeouts, capability issues). Check the registry logs."
            )
        repeated = [f for f in self._failures if f.retry_count > _REPEATED_FAILURE_LIMIT]
        if repeated:
            recommendations.append(
                f"{len(repeated)} analyzers have failed multiple times. "
                "Consider reviewing their implementation or removing them."
            )
        return recommendations

    def _roles(self) -> set:
        return {role_name(k) for k in self._analyzers}

    def _find_dependents(self, name: str) -> List[str]:
        target = role_name(name)
        return [k for k, a in self._analyzers.items() if target in self._declared_dependencies(a)]

    def _max_chain_length(self) -> int:
        graph = {role_name(k): self._declared_dependencies(a) for k, a in self._analyzers.items()}

        def depth(node: str, seen: frozenset) -> int:
            if node in seen or node not in graph:
                return 0
            deps = graph[node]
            if not deps:
                return 1
            return 1 + max(depth(d, seen | {node}) for d in deps)

        return max((depth(n, frozenset()) for n in graph), default=0)

    @staticmethod
    def _declared_name(analyzer: Any) -> str:
        name = getattr(analyzer, "name", None) if analyzer is not None else None
        return name if isinstance(name, str) and name else "<unnamed>"

    @staticmethod
    def _declared_dependencies(analyzer: Any) -> List[str]:
        if analyzer is None:
            return []
        try:
            capabilities = analyzer.get_capabilities()
        except Exception:
            return []
        deps = capabilities.get("dependencies") if isinstance(capabilities, dict) else \
            getattr(capabilities, "dependencies", None)
        return [str(d) for d in deps] if isinstance(deps, (list, tuple)) else []

    @staticmethod
    def _as_config(entry: Union[AnalyzerConfig, Any]) -> AnalyzerConfig:
        if isinstance(entry, AnalyzerConfig):
            return entry
        return AnalyzerConfig(
            name=AnalyzerRegistry._declared_name(entry),
            analyzer=entry,
            dependencies=AnalyzerRegistry._declared_dependencies(entry),
        )
