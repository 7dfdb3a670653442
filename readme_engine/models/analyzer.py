"""
Analyzer Contract
=================
The capability contract every analyzer implements.

First-party analyzers subclass ``BaseAnalyzer``; missing methods are then a
TypeError at instantiation. Plugins loaded dynamically may be any object with
the same shape and are checked at registration time by RegistrationValidator.

Contract:
    name                                  — str
    async analyze(ast, content, context)  — AnalyzerResult
    get_capabilities()                    — AnalyzerCapabilities (or a dict of the same fields)
    validate_interface()                  — bool self-check
"""
from abc import ABC, abstractmethod
from typing import Any, List, Optional

from pydantic import BaseModel

from readme_engine.models.analyzer_result import AnalyzerResult


class AnalyzerCapabilities(BaseModel):
    supported_content_types: List[str] = []
    requires_context: bool = False
    can_process_large_files: bool = True
    estimated_processing_time: float = 0.0     # milliseconds
    dependencies: List[str] = []


class BaseAnalyzer(ABC):
    """Base class for analyzers that extract one category from a parsed document."""

    name: str = ""

    @abstractmethod
    async def analyze(self, ast: Any, content: str, context: Optional[Any] = None) -> AnalyzerResult:
        """Extract this analyzer's category from the shared AST / raw content."""

    @abstractmethod
    def get_capabilities(self) -> AnalyzerCapabilities:
        """Describe what content this analyzer handles and what it depends on."""

    def validate_interface(self) -> bool:
        return isinstance(self.name, str) and bool(self.name)
