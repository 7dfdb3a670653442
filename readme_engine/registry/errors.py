"""
Registration Errors
===================
Exception taxonomy for analyzer admission.

These are raised inside the registry and converted into RegistrationResult
objects before they reach callers; they never escape ``register``.

Kinds (``error_kind``):
    interface   — missing / invalid contract methods or properties
    capability  — malformed capability descriptor
    dependency  — missing or circular analyzer dependencies
    state       — None analyzer, duplicate / already-registered analyzer
    timeout     — registration exceeded registration_timeout
    registration — anything else that went wrong while admitting
"""
from typing import Any, Dict, List, Optional


class AnalyzerRegistrationError(Exception):
    error_kind = "registration"

    def __init__(self, message: str, analyzer_name: str, phase: str = "registration",
                 cause: Optional[BaseException] = None) -> None:
        super().__init__(message)
        self.message = message
        self.analyzer_name = analyzer_name
        self.phase = phase
        self.cause = cause

    def get_structured_data(self) -> Dict[str, Any]:
        data = {
            "kind": self.error_kind,
            "message": self.message,
            "analyzer_name": self.analyzer_name,
            "phase": self.phase,
        }
        if self.cause is not None:
            data["cause"] = f"{type(self.cause).__name__}: {self.cause}"
        return data

    def get_recovery_suggestions(self) -> List[str]:
        return ["Check the analyzer implementation and registration logs"]


class InterfaceValidationError(AnalyzerRegistrationError):
    error_kind = "interface"

    def __init__(self, message: str, analyzer_name: str, missing_methods: List[str],
                 invalid_methods: List[str]) -> None:
        super().__init__(message, analyzer_name, "interface-validation")
        self.missing_methods = list(missing_methods)
        self.invalid_methods = list(invalid_methods)

    def get_structured_data(self) -> Dict[str, Any]:
        data = super().get_structured_data()
        data["missing_methods"] = self.missing_methods
        data["invalid_methods"] = self.invalid_methods
        return data

    def get_recovery_suggestions(self) -> List[str]:
        suggestions = [f"Implement missing method: {m}" for m in self.missing_methods]
        suggestions += [f"Fix signature or return type of: {m}" for m in self.invalid_methods]
        if not suggestions:
            suggestions.append("Make validate_interface() return True and give the analyzer a string name")
        return suggestions


class CapabilityValidationError(AnalyzerRegistrationError):
    error_kind = "capability"

    def __init__(self, message: str, analyzer_name: str, issues: List[str]) -> None:
        super().__init__(message, analyzer_name, "capability-validation")
        self.issues = list(issues)

    def get_recovery_suggestions(self) -> List[str]:
        return [f"Fix capability descriptor: {issue}" for issue in self.issues]


class DependencyResolutionError(AnalyzerRegistrationError):
    error_kind = "dependency"

    def __init__(self, message: str, analyzer_name: str, missing: List[str], circular: List[str]) -> None:
        super().__init__(message, analyzer_name, "dependency-resolution")
        self.missing_dependencies = list(missing)
        self.circular_dependencies = list(circular)

    def get_structured_data(self) -> Dict[str, Any]:
        data = super().get_structured_data()
        data["missing_dependencies"] = self.missing_dependencies
        data["circular_dependencies"] = self.circular_dependencies
        return data

    def get_recovery_suggestions(self) -> List[str]:
        suggestions = [f"Register dependency first: {d}" for d in self.missing_dependencies]
        if self.circular_dependencies:
            suggestions.append(f"Break dependency cycle: {' -> '.join(self.circular_dependencies)}")
        return suggestions


class RegistrationStateError(AnalyzerRegistrationError):
    error_kind = "state"

    def get_recovery_suggestions(self) -> List[str]:
        return ["Register under a different name or enable allow_duplicates"]


class RegistrationTimeoutError(AnalyzerRegistrationError):
    error_kind = "timeout"

    def __init__(self, message: str, analyzer_name: str, timeout_ms: int, elapsed_ms: float) -> None:
        super().__init__(message, analyzer_name, "registration")
        self.timeout_ms = timeout_ms
        self.elapsed_ms = elapsed_ms

    def get_recovery_suggestions(self) -> List[str]:
        return [
            "Move expensive setup out of get_capabilities() / validate_interface()",
            f"Raise registration_timeout above {self.timeout_ms}ms",
        ]
