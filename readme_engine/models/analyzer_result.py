"""
Analyzer Result Model
=====================
Pydantic model for the output of a single analyzer in a single run.
This is the contract between the orchestrator and the result aggregator.

Fields:
    analyzer_name   — name the analyzer was registered under
    success         — False when the analyzer raised, timed out or gave up
    data            — category payload (raw dict/list or typed model), None on failure
    confidence      — clamped to [0, 1] on construction
    sources         — evidence tags (code-block, file-reference, text-mention, ...)
    errors          — structured ParseError entries
    metadata        — processing_time (ms), data_quality and completeness (both [0, 1])

Results are frozen: created once per analyzer per run, never mutated.
"""
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from readme_engine.scoring.confidence import normalize_confidence


class ParseError(BaseModel):
    model_config = ConfigDict(frozen=True)

    code: str
    message: str
    component: str = ""
    severity: str = "error"     # info / warning / error
    details: Dict[str, Any] = {}


class ResultMetadata(BaseModel):
    model_config = ConfigDict(frozen=True)

    processing_time: float = 0.0
    data_quality: float = 0.0
    completeness: float = 0.0

    @field_validator("data_quality", "completeness", mode="before")
    @classmethod
    def _clamp_fraction(cls, v):
        return normalize_confidence(v)

    @field_validator("processing_time", mode="before")
    @classmethod
    def _non_negative(cls, v):
        try:
            return max(0.0, float(v))
        except (TypeError, ValueError):
            return 0.0


class AnalyzerResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    analyzer_name: str
    success: bool = True
    data: Any = None
    confidence: float = 0.0
    sources: List[str] = []
    errors: List[ParseError] = []
    metadata: Optional[ResultMetadata] = Field(default_factory=ResultMetadata)

    @field_validator("confidence", mode="before")
    @classmethod
    def _clamp_confidence(cls, v):
        return normalize_confidence(v)

    @property
    def has_failed(self) -> bool:
        """True when the result carries no usable data."""
        if not self.success or self.data is None:
            return True
        return any(e.severity == "error" for e in self.errors)

    @classmethod
    def failure(
        cls,
        analyzer_name: str,
        code: str,
        message: str,
        processing_time: float = 0.0,
    ) -> "AnalyzerResult":
        """Build the failed result used when an analyzer raises or times out."""
        return cls(
            analyzer_name=analyzer_name,
            success=False,
            data=None,
            confidence=0.0,
            errors=[ParseError(
                code=code,
                message=message,
                component=analyzer_name,
                severity="error",
            )],
            metadata=ResultMetadata(processing_time=processing_time),
        )
