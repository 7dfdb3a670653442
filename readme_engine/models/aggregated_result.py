"""
Aggregated Result Model
=======================
Pydantic models for the single reconciled record produced by the aggregator.

Fields:
    languages / dependencies / commands / testing / metadata
                        — merged, typed category payloads (fallbacks when missing)
    confidence          — per-category breakdown plus the weighted overall score
    integration_metadata — analyzers used, conflicts resolved, aggregate quality
    validation_status   — is_valid + issues; only error-severity issues invalidate

Used by:
    - ResultAggregator (producer)
    - Downstream config / report generators (read-only consumers)
    - POST /api/aggregate response body
"""
from typing import List, Optional, Tuple

from pydantic import BaseModel

from readme_engine.models.categories import (
    CommandInfo,
    DependencyInfo,
    LanguageInfo,
    ProjectMetadata,
    TestingInfo,
)


class ConflictRecord(BaseModel):
    conflict_type: str                  # confidence_conflict / data_consistency / ...
    conflicting_analyzers: List[str]
    resolution: str                     # prioritized_<name> / language_priority / ...
    confidence_range: Optional[Tuple[float, float]] = None
    severity: Optional[str] = None
    details: str = ""


class ConfidenceBreakdown(BaseModel):
    languages: float = 0.0
    dependencies: float = 0.0
    commands: float = 0.0
    testing: float = 0.0
    metadata: float = 0.0
    overall: float = 0.0


class IntegrationMetadata(BaseModel):
    analyzers_used: List[str] = []
    conflicts_resolved: List[ConflictRecord] = []
    data_quality: float = 0.0
    completeness: float = 0.0
    processing_time: float = 0.0


class ValidationIssue(BaseModel):
    type: str               # missing_data / low_confidence / partial_failure / incomplete / ...
    component: str
    severity: str           # info / warning / error
    message: str


class ValidationStatus(BaseModel):
    is_valid: bool = True
    issues: List[ValidationIssue] = []


class AggregatedResult(BaseModel):
    languages: List[LanguageInfo] = []
    dependencies: DependencyInfo = DependencyInfo()
    commands: CommandInfo = CommandInfo()
    testing: TestingInfo = TestingInfo()
    metadata: ProjectMetadata = ProjectMetadata()
    confidence: ConfidenceBreakdown = ConfidenceBreakdown()
    integration_metadata: IntegrationMetadata = IntegrationMetadata()
    validation_status: ValidationStatus = ValidationStatus()
