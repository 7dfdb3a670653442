"""
Registration Models
===================
Pydantic models describing analyzer admission: options, validation details,
per-registration results, failure records and the registry state snapshot.

RegistrationOptions is the only model here that raises: malformed options
are programmer misuse, everything else about a candidate analyzer is
reported as data.
"""
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, field_validator


class RegistrationOptions(BaseModel):
    validate_interfaces: bool
    allow_duplicates: bool
    fail_on_error: bool
    registration_timeout: int       # milliseconds
    enable_logging: bool

    @field_validator("registration_timeout")
    @classmethod
    def _positive_timeout(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("registration_timeout must be positive")
        return v


class RegistryStatus(str, Enum):
    PENDING = "pending"
    VALID = "valid"
    PARTIAL = "partial"
    INVALID = "invalid"


# ---------------------------------------------------------------------------
# Validation results
# ---------------------------------------------------------------------------
class InterfaceValidationResult(BaseModel):
    is_valid: bool
    missing_methods: List[str] = []
    invalid_methods: List[str] = []
    compliance_score: float = 0.0
    details: List[str] = []


class DependencyValidationResult(BaseModel):
    is_valid: bool = True
    missing_dependencies: List[str] = []
    circular_dependencies: List[str] = []
    resolution_order: List[str] = []


class CapabilityValidationResult(BaseModel):
    is_valid: bool
    issues: List[str] = []
    recommendations: List[str] = []


class ValidationDetails(BaseModel):
    interface_compliance: InterfaceValidationResult
    dependency_validation: DependencyValidationResult
    capability_validation: CapabilityValidationResult


# ---------------------------------------------------------------------------
# Registration bookkeeping
# ---------------------------------------------------------------------------
class AnalyzerConfig(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True)

    name: str
    analyzer: Any
    dependencies: List[str] = []
    priority: int = 0
    enabled: bool = True
    description: str = ""


class RegistrationResult(BaseModel):
    success: bool
    analyzer_name: str
    error: Optional[str] = None
    error_kind: Optional[str] = None        # interface / capability / dependency / state / timeout / ...
    warnings: Optional[List[str]] = None
    validation_details: Optional[ValidationDetails] = None
    registration_timestamp: Optional[datetime] = None


class RegistrationFailure(BaseModel):
    analyzer_name: str
    error: str
    error_kind: str = "registration"
    timestamp: datetime
    retry_count: int = 0
    validation_details: Optional[ValidationDetails] = None


class RegistrationState(BaseModel):
    """Snapshot copy of the registry's internals; mutating it changes nothing."""
    model_config = ConfigDict(arbitrary_types_allowed=True)

    registered_analyzers: Dict[str, Any]
    registration_order: List[str]
    failed_registrations: List[RegistrationFailure]
    registration_timestamps: Dict[str, datetime]
    validation_status: RegistryStatus
    options: RegistrationOptions


class AnalyzerStatus(BaseModel):
    name: str
    is_registered: bool
    status: str                     # registered / failed
    registration_timestamp: Optional[datetime] = None
    registration_order: Optional[int] = None
    dependencies: List[str] = []
    dependents: List[str] = []
    last_error: Optional[str] = None
    retry_count: int = 0


class RegistrationStatistics(BaseModel):
    total_analyzers: int
    registered_analyzers: int
    failed_analyzers: int
    success_rate: float
    average_registration_time: float        # milliseconds
    dependency_chain_length: int


class RegistryIssue(BaseModel):
    analyzer_name: str
    type: str                   # interface / dependency / capability / configuration
    severity: str               # error / warning / info
    message: str


class RegistryValidationResult(BaseModel):
    is_valid: bool
    total_analyzers: int
    valid_analyzers: int
    invalid_analyzers: int
    issues: List[RegistryIssue] = []
    recommendations: List[str] = []


class ErrorDiagnostics(BaseModel):
    total_failures: int
    failures_by_analyzer: Dict[str, RegistrationFailure]
    failures_by_kind: Dict[str, int]
    recovery_recommendations: List[str]
    log_diagnostics: Dict[str, Any] = {}
