"""
Registration Validator
======================
Structural check of a candidate analyzer against the capability contract.

Every check is independent and never raises: problems become entries in
the returned result objects. This is the admission gate for dynamically
loaded plugins; first-party analyzers subclassing BaseAnalyzer pass the
method checks by construction.

Checks (interface):
    1. ``name``                — present and a str
    2. ``analyze``             — callable, accepts at least (ast, content)
    3. ``get_capabilities``    — callable
    4. ``validate_interface``  — callable, returns a bool, and returns True

compliance_score = passing checks / 4
"""
import inspect
import logging
from typing import Any, List

from readme_engine.core.constants import (
    REQUIRED_METHODS,
    REQUIRED_PROPERTIES,
    SLOW_ANALYZER_THRESHOLD_MS,
)
from readme_engine.models.registration import (
    CapabilityValidationResult,
    DependencyValidationResult,
    InterfaceValidationResult,
    ValidationDetails,
)

logger = logging.getLogger(__name__)

_TOTAL_CHECKS = len(REQUIRED_METHODS) + len(REQUIRED_PROPERTIES)

_SENTINEL = object()


def _safe_getattr(obj: Any, attr: str) -> Any:
    """getattr that treats a raising property the same as a missing one."""
    try:
        return getattr(obj, attr, _SENTINEL)
    except Exception:
        return _SENTINEL


def _capability_field(capabilities: Any, field_name: str) -> Any:
    """Read a descriptor field from a model, plain object or dict."""
    if isinstance(capabilities, dict):
        return capabilities.get(field_name, _SENTINEL)
    return _safe_getattr(capabilities, field_name)


def _positional_capacity(func: Any) -> int:
    """How many positional arguments a callable accepts (large for *args)."""
    try:
        signature = inspect.signature(func)
    except (TypeError, ValueError):
        # Builtins without signatures: assume they accept anything
        return 99
    count = 0
    for param in signature.parameters.values():
        if param.kind == inspect.Parameter.VAR_POSITIONAL:
            return 99
        if param.kind in (inspect.Parameter.POSITIONAL_ONLY, inspect.Parameter.POSITIONAL_OR_KEYWORD):
            count += 1
    return count


class RegistrationValidator:

    def validate_analyzer(self, candidate: Any) -> ValidationDetails:
        """Run interface, dependency and capability checks in one pass."""
        return ValidationDetails(
            interface_compliance=self.validate_interface(candidate),
            dependency_validation=self.validate_dependencies(candidate),
            capability_validation=self.validate_capabilities(candidate),
        )

    def validate_interface(self, candidate: Any) -> InterfaceValidationResult:
        if candidate is None:
            return InterfaceValidationResult(
                is_valid=False,
                missing_methods=list(REQUIRED_METHODS),
                compliance_score=0.0,
                details=["Analyzer is None"],
            )

        missing: List[str] = []
        invalid: List[str] = []
        details: List[str] = []
        name_ok = True
        self_validation_ok = True

        # 1. name property
        name = _safe_getattr(candidate, "name")
        if name is _SENTINEL:
            name_ok = False
            details.append("Missing required property: name")
        elif not isinstance(name, str):
            name_ok = False
            details.append("Property 'name' must be a string")

        # 2-4. required methods
        for method_name in REQUIRED_METHODS:
            attr = _safe_getattr(candidate, method_name)
            if attr is _SENTINEL:
                missing.append(method_name)
                details.append(f"Missing required method: {method_name}")
            elif not callable(attr):
                invalid.append(method_name)
                details.append(f"Property '{method_name}' must be callable")

        analyze = _safe_getattr(candidate, "analyze")
        if callable(analyze) and "analyze" not in invalid:
            if _positional_capacity(analyze) < 2:
                invalid.append("analyze")
                details.append("analyze method must accept at least 2 parameters (ast, content)")

        # Self-validation gate
        self_check = _safe_getattr(candidate, "validate_interface")
        if callable(self_check) and "validate_interface" not in invalid:
            try:
                verdict = self_check()
            except Exception as e:
                self_validation_ok = False
                details.append(f"Error calling validate_interface: {type(e).__name__}: {e}")
            else:
                if not isinstance(verdict, bool):
                    invalid.append("validate_interface")
                    details.append("validate_interface method must return a boolean")
                elif not verdict:
                    self_validation_ok = False
                    details.append("Analyzer self-validation failed")

        passed = _TOTAL_CHECKS - len(missing) - len(invalid) - (0 if name_ok else 1)
        compliance = max(0, passed) / _TOTAL_CHECKS
        is_valid = not missing and not invalid and name_ok and self_validation_ok

        return InterfaceValidationResult(
            is_valid=is_valid,
            missing_methods=missing,
            invalid_methods=invalid,
            compliance_score=compliance,
            details=details,
        )

    def validate_capabilities(self, candidate: Any) -> CapabilityValidationResult:
        issues: List[str] = []
        recommendations: List[str] = []

        get_caps = _safe_getattr(candidate, "get_capabilities")
        if not callable(get_caps):
            return CapabilityValidationResult(
                is_valid=False,
                issues=["get_capabilities method is not implemented"],
            )

        try:
            capabilities = get_caps()
        except Exception as e:
            return CapabilityValidationResult(
                is_valid=False,
                issues=[f"Error validating capabilities: {type(e).__name__}: {e}"],
            )

        if capabilities is None:
            return CapabilityValidationResult(
                is_valid=False,
                issues=["get_capabilities method returned None"],
            )

        content_types = _capability_field(capabilities, "supported_content_types")
        if not isinstance(content_types, (list, tuple, set, frozenset)):
            issues.append("supported_content_types must be a list")
        elif len(content_types) == 0:
            recommendations.append("Consider specifying supported content types for better optimization")

        for flag in ("requires_context", "can_process_large_files"):
            if not isinstance(_capability_field(capabilities, flag), bool):
                issues.append(f"{flag} must be a boolean")

        processing_time = _capability_field(capabilities, "estimated_processing_time")
        if isinstance(processing_time, bool) or not isinstance(processing_time, (int, float)):
            issues.append("estimated_processing_time must be a number")
        elif processing_time < 0:
            issues.append("estimated_processing_time must be non-negative")
        elif processing_time > SLOW_ANALYZER_THRESHOLD_MS:
            recommendations.append(
                f"Consider optimizing analyzer for better performance (>{SLOW_ANALYZER_THRESHOLD_MS}ms processing time)"
            )

        dependencies = _capability_field(capabilities, "dependencies")
        if not isinstance(dependencies, (list, tuple)):
            issues.append("dependencies must be a list")

        return CapabilityValidationResult(
            is_valid=not issues,
            issues=issues,
            recommendations=recommendations,
        )

    def validate_dependencies(self, candidate: Any) -> DependencyValidationResult:
        """
        Report declared dependencies as a proposed resolution order.

        Missing/circular detection needs the whole registry and happens in
        AnalyzerRegistry; here an absent or raising get_capabilities simply
        yields an empty valid result.
        """
        get_caps = _safe_getattr(candidate, "get_capabilities")
        if not callable(get_caps):
            return DependencyValidationResult()
        try:
            capabilities = get_caps()
        except Exception as e:
            logger.debug(f"get_capabilities raised during dependency validation: {e}")
            return DependencyValidationResult()

        dependencies = _capability_field(capabilities, "dependencies") if capabilities is not None else None
        if not isinstance(dependencies, (list, tuple)):
            return DependencyValidationResult()
        return DependencyValidationResult(
            resolution_order=[str(d) for d in dependencies],
        )
