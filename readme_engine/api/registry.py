"""
GET  /api/registry
POST /api/analyze
=================
Endpoints backed by the application's AnalyzerRegistry (app.state.registry),
which is built at startup from the ANALYZER_PLUGINS setting.
"""
import logging
from typing import Any, List, Optional

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel

from readme_engine.agents.orchestrator import AnalysisOrchestrator
from readme_engine.aggregation.result_aggregator import ResultAggregator
from readme_engine.models.aggregated_result import AggregatedResult
from readme_engine.models.registration import (
    ErrorDiagnostics,
    RegistrationFailure,
    RegistrationStatistics,
    RegistryStatus,
)
from readme_engine.registry.analyzer_registry import AnalyzerRegistry

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Registry"])


def get_registry(request: Request) -> AnalyzerRegistry:
    return request.app.state.registry


class RegistryResponse(BaseModel):
    registered_analyzers: List[str]
    registration_order: List[str]
    failed_registrations: List[RegistrationFailure]
    validation_status: RegistryStatus
    statistics: RegistrationStatistics
    diagnostics: ErrorDiagnostics


class AnalyzeRequest(BaseModel):
    content: str
    ast: Optional[Any] = None
    context: Optional[Any] = None


@router.get("/registry", response_model=RegistryResponse)
async def registry_state(registry: AnalyzerRegistry = Depends(get_registry)):
    state = registry.get_registration_state()
    return RegistryResponse(
        registered_analyzers=list(state.registered_analyzers.keys()),
        registration_order=state.registration_order,
        failed_registrations=state.failed_registrations,
        validation_status=state.validation_status,
        statistics=registry.get_registration_statistics(),
        diagnostics=registry.get_error_diagnostics(),
    )


@router.post("/analyze", response_model=AggregatedResult)
async def analyze_document(request: AnalyzeRequest, registry: AnalyzerRegistry = Depends(get_registry)):
    """Run every registered analyzer over the document and aggregate the results."""
    logger.info(f"[API] Analyzing document ({len(request.content)} chars) "
                f"with {len(registry.get_registered_analyzers())} analyzers")
    orchestrator = AnalysisOrchestrator(registry, ResultAggregator(events=registry.events))
    return await orchestrator.run(request.ast, request.content, request.context)
