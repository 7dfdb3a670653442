"""
Analysis Orchestrator
=====================
Runs every registered analyzer against the same parsed document and hands
the complete result set to the ResultAggregator.

Flow:
    Registry (admitted analyzers) → one asyncio task per analyzer
    → wait for every task to settle → ResultAggregator.aggregate()

Fault tolerance:
    - An analyzer that raises becomes a failed result (ANALYZER_EXECUTION_FAILED)
    - An analyzer exceeding the per-analyzer timeout becomes a failed result (ANALYZER_TIMEOUT)
    - A non-AnalyzerResult return value becomes a failed result
    - A dependency cycle among registered analyzers is passed to the
      aggregator as a CIRCULAR_DEPENDENCY error, which invalidates the result
    Sibling tasks are never cancelled by one analyzer's failure.
"""
import asyncio
import logging
import time
from typing import Any, List, Optional

from readme_engine.aggregation.result_aggregator import ResultAggregator
from readme_engine.core.config import ANALYZER_TIMEOUT_SECONDS
from readme_engine.core.constants import (
    AGGREGATOR_COMPONENT,
    ANALYZER_EXECUTION_FAILED,
    ANALYZER_TIMEOUT,
    CIRCULAR_DEPENDENCY,
)
from readme_engine.models.aggregated_result import AggregatedResult
from readme_engine.models.analyzer_result import AnalyzerResult, ParseError
from readme_engine.registry.analyzer_registry import AnalyzerRegistry, role_name
from readme_engine.utils.event_logger import RegistrationEventLogger

logger = logging.getLogger(__name__)


class AnalysisOrchestrator:
    """
    Parallel analyzer runner.

    Usage:
        orchestrator = AnalysisOrchestrator(registry, ResultAggregator(events=events), events=events)
        result = await orchestrator.run(ast, content)
    """

    def __init__(
        self,
        registry: AnalyzerRegistry,
        aggregator: Optional[ResultAggregator] = None,
        analyzer_timeout: float = ANALYZER_TIMEOUT_SECONDS,
        events: Optional[RegistrationEventLogger] = None,
    ) -> None:
        self.registry = registry
        self.events = events or registry.events
        self.aggregator = aggregator or ResultAggregator(events=self.events)
        self.analyzer_timeout = analyzer_timeout

    async def run(self, ast: Any, content: str, context: Optional[Any] = None) -> AggregatedResult:
        """Collect every analyzer's result, then aggregate them."""
        results = await self.collect(ast, content, context)
        cycle_errors = self.dependency_errors()
        if cycle_errors:
            return self.aggregator.aggregate(results, errors=cycle_errors)
        return self.aggregator.aggregate(results)

    def dependency_errors(self) -> List[ParseError]:
        """A CIRCULAR_DEPENDENCY error when some registered analyzers cannot be ordered."""
        ordered = set(self.registry.get_dependency_order())
        stuck = [key for key in self.registry.get_registration_order() if key not in ordered]
        if not stuck:
            return []
        message = f"Circular dependency among analyzers: {', '.join(stuck)}"
        logger.error(message)
        return [ParseError(
            code=CIRCULAR_DEPENDENCY,
            message=message,
            component=AGGREGATOR_COMPONENT,
            severity="error",
            details={"analyzers": stuck},
        )]

    async def collect(self, ast: Any, content: str, context: Optional[Any] = None) -> List[AnalyzerResult]:
        """Run all registered analyzers concurrently; never raises for analyzer faults."""
        keys = self.registry.get_registration_order()
        if not keys:
            logger.warning("No analyzers registered; nothing to run")
            return []

        logger.info("Running %d analyzers", len(keys))
        tasks = [
            self._run_one(role_name(key), self.registry.get_analyzer(key), ast, content, context)
            for key in keys
        ]
        # _run_one converts every analyzer fault, so gather only settles
        results = await asyncio.gather(*tasks)

        failed = sum(1 for r in results if r.has_failed)
        logger.info("Analyzers settled: %d succeeded, %d failed", len(results) - failed, failed)
        return list(results)

    async def _run_one(
        self,
        name: str,
        analyzer: Any,
        ast: Any,
        content: str,
        context: Optional[Any],
    ) -> AnalyzerResult:
        started = time.perf_counter()

        def elapsed_ms() -> float:
            return (time.perf_counter() - started) * 1000

        try:
            result = await asyncio.wait_for(
                analyzer.analyze(ast, content, context),
                timeout=self.analyzer_timeout,
            )
        except asyncio.TimeoutError:
            message = f"Analyzer {name} timed out after {self.analyzer_timeout}s"
            logger.error(message)
            self.events.log(logging.ERROR, "analyzer_timeout", message, data={"analyzer_name": name})
            return AnalyzerResult.failure(name, ANALYZER_TIMEOUT, message, elapsed_ms())
        except Exception as exc:
            message = f"Analyzer {name} failed: {type(exc).__name__}: {exc}"
            logger.error(message, exc_info=True)
            self.events.log(logging.ERROR, "analyzer_failed", message, data={"analyzer_name": name})
            return AnalyzerResult.failure(name, ANALYZER_EXECUTION_FAILED, message, elapsed_ms())

        if not isinstance(result, AnalyzerResult):
            message = f"Analyzer {name} returned {type(result).__name__} instead of AnalyzerResult"
            logger.error(message)
            return AnalyzerResult.failure(name, ANALYZER_EXECUTION_FAILED, message, elapsed_ms())

        # Results are routed by the role the analyzer was registered under
        if result.analyzer_name != name:
            result = result.model_copy(update={"analyzer_name": name})
        return result
