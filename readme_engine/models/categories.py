"""
Category Payload Models
=======================
Typed payloads for the five result categories.

Each category has exactly one payload type and one empty fallback, so the
aggregator's merge step is exhaustive: raw analyzer data is coerced through
``coerce_category`` and a failed analyzer is replaced by ``fallback_for``.
"""
from typing import Any, List, Optional, Union

from pydantic import BaseModel, TypeAdapter


# ---------------------------------------------------------------------------
# languages
# ---------------------------------------------------------------------------
class LanguageInfo(BaseModel):
    name: str
    confidence: float = 0.0
    sources: List[str] = []
    frameworks: List[str] = []


# ---------------------------------------------------------------------------
# dependencies
# ---------------------------------------------------------------------------
class PackageFile(BaseModel):
    name: str
    type: str = ""          # npm, pip, maven, cargo, ...
    mentioned: bool = False
    confidence: float = 0.0


class Package(BaseModel):
    name: str
    manager: str = ""
    version: Optional[str] = None
    confidence: float = 0.0


class Command(BaseModel):
    command: str
    confidence: float = 0.0
    language: Optional[str] = None


class DependencyInfo(BaseModel):
    package_files: List[PackageFile] = []
    install_commands: List[Command] = []
    packages: List[Package] = []
    dependencies: List[Package] = []
    dev_dependencies: List[Package] = []


# ---------------------------------------------------------------------------
# commands
# ---------------------------------------------------------------------------
class CommandInfo(BaseModel):
    build: List[Command] = []
    test: List[Command] = []
    run: List[Command] = []
    install: List[Command] = []
    other: List[Command] = []

    def all_commands(self) -> List[Command]:
        return [*self.build, *self.test, *self.run, *self.install, *self.other]


# ---------------------------------------------------------------------------
# testing
# ---------------------------------------------------------------------------
class CoverageInfo(BaseModel):
    enabled: bool = False
    tools: List[str] = []


class TestingInfo(BaseModel):
    __test__ = False  # keep pytest from collecting this model

    frameworks: List[str] = []
    tools: List[str] = []
    config_files: List[str] = []
    test_files: List[str] = []
    commands: List[Command] = []
    coverage: CoverageInfo = CoverageInfo()


# ---------------------------------------------------------------------------
# metadata
# ---------------------------------------------------------------------------
class ProjectMetadata(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    structure: List[str] = []
    environment: List[str] = []


CategoryPayload = Union[List[LanguageInfo], DependencyInfo, CommandInfo, TestingInfo, ProjectMetadata]

_LANGUAGE_LIST = TypeAdapter(List[LanguageInfo])

_MODELS = {
    "dependencies": DependencyInfo,
    "commands": CommandInfo,
    "testing": TestingInfo,
    "metadata": ProjectMetadata,
}


def fallback_for(category: str) -> CategoryPayload:
    """Return the empty-but-well-typed value for a category."""
    if category == "languages":
        return []
    try:
        return _MODELS[category]()
    except KeyError:
        raise ValueError(f"Unknown result category: {category}") from None


def coerce_category(category: str, data: Any) -> CategoryPayload:
    """
    Validate raw analyzer data into the category's payload type.

    Raises pydantic.ValidationError when the data does not fit the category;
    the aggregator treats that the same as a failed analyzer.
    """
    if category == "languages":
        return _LANGUAGE_LIST.validate_python(data)
    model = _MODELS.get(category)
    if model is None:
        raise ValueError(f"Unknown result category: {category}")
    if isinstance(data, model):
        return data
    return model.model_validate(data)
