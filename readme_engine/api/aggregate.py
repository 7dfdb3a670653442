"""
POST /api/aggregate
POST /api/confidence/aggregate
==============================
Stateless aggregation endpoints.

/api/aggregate takes analyzer results produced elsewhere and returns the
reconciled AggregatedResult with the run's warnings and errors.
/api/confidence/aggregate scores a result set with one confidence
algorithm plus the conflict-aware aggregate.
"""
import logging
from typing import Dict, List, Optional

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, field_validator

from readme_engine.aggregation.result_aggregator import ResultAggregator
from readme_engine.core.constants import CONFLICT_THRESHOLD, CONSENSUS_THRESHOLD
from readme_engine.models.aggregated_result import AggregatedResult
from readme_engine.models.analyzer_result import AnalyzerResult, ParseError
from readme_engine.scoring.confidence import (
    ConfidenceConflict,
    aggregate_analyzer_confidences,
    aggregate_with_conflict_resolution,
)
from readme_engine.utils.event_logger import RegistrationEventLogger

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Aggregation"])


# ---------------------------------------------------------------------------
# Request / Response schemas
# ---------------------------------------------------------------------------
class AggregateRequest(BaseModel):
    results: List[AnalyzerResult]


class AggregateResponse(BaseModel):
    result: AggregatedResult
    warnings: List[ParseError]
    errors: List[ParseError]


class ConfidenceRequest(BaseModel):
    results: List[AnalyzerResult]
    algorithm: str = "weighted_average"
    quality_boost: float = 0.0
    consensus_threshold: float = CONSENSUS_THRESHOLD
    conflict_threshold: float = CONFLICT_THRESHOLD
    reliability_weights: Optional[Dict[str, float]] = None

    @field_validator("reliability_weights")
    @classmethod
    def weights_must_be_positive(cls, v):
        if v is not None:
            bad = sorted(name for name, weight in v.items() if weight <= 0)
            if bad:
                raise ValueError(f"Reliability weights must be positive: {', '.join(bad)}")
        return v


class ConfidenceResponse(BaseModel):
    algorithm: str
    confidence: float
    conflict_adjusted_confidence: float
    conflicts: List[ConfidenceConflict]


@router.post("/aggregate", response_model=AggregateResponse)
async def aggregate_results(request: AggregateRequest):
    logger.info(f"[API] Aggregating {len(request.results)} analyzer results")
    events = RegistrationEventLogger()
    try:
        aggregator = ResultAggregator(events=events)
        result = aggregator.aggregate(request.results)
        return AggregateResponse(
            result=result,
            warnings=aggregator.get_warnings(),
            errors=aggregator.get_errors(),
        )
    finally:
        events.close()


@router.post("/confidence/aggregate", response_model=ConfidenceResponse)
async def aggregate_confidence(request: ConfidenceRequest):
    try:
        confidence = aggregate_analyzer_confidences(
            request.results,
            algorithm=request.algorithm,
            reliability_weights=request.reliability_weights,
            quality_boost=request.quality_boost,
            consensus_threshold=request.consensus_threshold,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    analysis = aggregate_with_conflict_resolution(request.results, request.conflict_threshold)
    return ConfidenceResponse(
        algorithm=request.algorithm,
        confidence=confidence,
        conflict_adjusted_confidence=analysis.confidence,
        conflicts=analysis.conflicts,
    )
