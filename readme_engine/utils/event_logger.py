"""
Registration Event Logger
=========================
Structured event sink injected into the AnalyzerRegistry, the orchestrator
and the ResultAggregator.

Every event carries a name (``registration_started``, ``conflict_detected``,
...), a level, a correlation id tying together the events of one operation,
and a free-form data dict. Events are forwarded to a standard
``logging.Logger`` and kept in a bounded in-memory history for diagnostics.

Lifecycle is explicit: construct one instance, pass it to the components
that need it, call ``close()`` when the run is over. There is no shared
process-wide instance.
"""
import logging
import uuid
from collections import Counter, deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from readme_engine.core.config import EVENT_HISTORY_LIMIT

# ---------------------------------------------------------------------------
# Event names
# ---------------------------------------------------------------------------
REGISTRATION_STARTED = "registration_started"
REGISTRATION_SUCCEEDED = "registration_succeeded"
REGISTRATION_FAILED = "registration_failed"
VALIDATION_STARTED = "validation_started"
VALIDATION_COMPLETED = "validation_completed"
CONFLICT_DETECTED = "conflict_detected"
RECOVERY_ATTEMPTED = "recovery_attempted"
RECOVERY_SUCCEEDED = "recovery_succeeded"
RECOVERY_FAILED = "recovery_failed"


@dataclass(frozen=True)
class RegistryEvent:
    """One structured event as stored in the diagnostics history."""
    event: str
    level: int
    message: str
    correlation_id: str
    timestamp: datetime
    data: Dict[str, Any] = field(default_factory=dict)


class RegistrationEventLogger:
    """
    Structured event logger with bounded history.

    Usage:
        events = RegistrationEventLogger()
        registry = AnalyzerRegistry(options, events=events)
        ...
        report = events.generate_diagnostics_report()
        events.close()
    """

    def __init__(
        self,
        logger: Optional[logging.Logger] = None,
        history_limit: int = EVENT_HISTORY_LIMIT,
        enabled: bool = True,
    ) -> None:
        self._logger = logger or logging.getLogger("readme_engine.events")
        self._history: deque = deque(maxlen=max(1, history_limit))
        self.enabled = enabled
        self._closed = False

    @staticmethod
    def generate_correlation_id() -> str:
        return uuid.uuid4().hex[:12]

    def log(
        self,
        level: int,
        event: str,
        message: str,
        correlation_id: Optional[str] = None,
        data: Optional[Dict[str, Any]] = None,
    ) -> Optional[RegistryEvent]:
        """Record an event and forward it to the logging backend."""
        if self._closed:
            return None
        record = RegistryEvent(
            event=event,
            level=level,
            message=message,
            correlation_id=correlation_id or self.generate_correlation_id(),
            timestamp=datetime.now(timezone.utc),
            data=dict(data or {}),
        )
        self._history.append(record)
        if self.enabled:
            self._logger.log(level, f"[{record.correlation_id}] {event}: {message}")
        return record

    # ------------------------------------------------------------------
    # Registration lifecycle
    # ------------------------------------------------------------------
    def log_registration_start(self, analyzer_name: str) -> str:
        cid = self.generate_correlation_id()
        self.log(logging.DEBUG, REGISTRATION_STARTED,
                 f"Registering analyzer {analyzer_name}", cid,
                 {"analyzer_name": analyzer_name})
        return cid

    def log_registration_success(self, analyzer_name: str, warnings: Optional[List[str]], correlation_id: str) -> None:
        self.log(logging.INFO, REGISTRATION_SUCCEEDED,
                 f"Analyzer {analyzer_name} registered", correlation_id,
                 {"analyzer_name": analyzer_name, "warnings": warnings or []})

    def log_registration_failure(self, analyzer_name: str, error: str, kind: str, correlation_id: str) -> None:
        self.log(logging.ERROR, REGISTRATION_FAILED,
                 f"Analyzer {analyzer_name} rejected: {error}", correlation_id,
                 {"analyzer_name": analyzer_name, "error": error, "kind": kind})

    def log_validation_start(self, analyzer_name: str, correlation_id: str) -> None:
        self.log(logging.DEBUG, VALIDATION_STARTED,
                 f"Validating analyzer {analyzer_name}", correlation_id,
                 {"analyzer_name": analyzer_name})

    def log_validation_complete(self, analyzer_name: str, compliance_score: float, is_valid: bool,
                                correlation_id: str) -> None:
        level = logging.DEBUG if is_valid else logging.WARNING
        self.log(level, VALIDATION_COMPLETED,
                 f"Analyzer {analyzer_name} compliance {compliance_score:.2f}", correlation_id,
                 {"analyzer_name": analyzer_name, "compliance_score": compliance_score, "is_valid": is_valid})

    # ------------------------------------------------------------------
    # Conflicts and recovery
    # ------------------------------------------------------------------
    def log_conflict(self, conflict_type: str, analyzers: List[str], resolution: str) -> None:
        self.log(logging.WARNING, CONFLICT_DETECTED,
                 f"{conflict_type} between {', '.join(analyzers)} resolved as {resolution}",
                 data={"conflict_type": conflict_type, "analyzers": list(analyzers), "resolution": resolution})

    def log_recovery_attempt(self, analyzer_name: str, strategy: str, correlation_id: str) -> None:
        self.log(logging.INFO, RECOVERY_ATTEMPTED,
                 f"Attempting {strategy} recovery for {analyzer_name}", correlation_id,
                 {"analyzer_name": analyzer_name, "strategy": strategy})

    def log_recovery_success(self, analyzer_name: str, strategy: str, correlation_id: str) -> None:
        self.log(logging.INFO, RECOVERY_SUCCEEDED,
                 f"Recovered {analyzer_name} via {strategy}", correlation_id,
                 {"analyzer_name": analyzer_name, "strategy": strategy})

    def log_recovery_failure(self, analyzer_name: str, strategy: str, error: str, correlation_id: str) -> None:
        self.log(logging.ERROR, RECOVERY_FAILED,
                 f"Recovery of {analyzer_name} via {strategy} failed: {error}", correlation_id,
                 {"analyzer_name": analyzer_name, "strategy": strategy, "error": error})

    # ------------------------------------------------------------------
    # Diagnostics
    # ------------------------------------------------------------------
    def get_history(self, event: Optional[str] = None) -> List[RegistryEvent]:
        if event is None:
            return list(self._history)
        return [e for e in self._history if e.event == event]

    def generate_diagnostics_report(self) -> Dict[str, Any]:
        """Counts by level and event name plus the most recent errors."""
        by_level = Counter(logging.getLevelName(e.level) for e in self._history)
        by_event = Counter(e.event for e in self._history)
        recent_errors = [
            {"event": e.event, "message": e.message, "correlation_id": e.correlation_id}
            for e in self._history if e.level >= logging.ERROR
        ][-10:]
        return {
            "total_events": len(self._history),
            "events_by_level": dict(by_level),
            "events_by_type": dict(by_event),
            "recent_errors": recent_errors,
        }

    def clear(self) -> None:
        self._history.clear()

    def close(self) -> None:
        """Dispose of the logger; later events are dropped."""
        self._history.clear()
        self._closed = True
