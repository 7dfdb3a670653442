"""
Plugin Loader
=============
Resolves ``module.path:ClassName`` strings (ANALYZER_PLUGINS) into analyzer
instances wrapped in AnalyzerConfig, ready for register_multiple().

A plugin that cannot be imported or instantiated is logged and skipped;
admission checks are left to the registry.
"""
import importlib
import logging
from typing import Iterable, List

from readme_engine.models.registration import AnalyzerConfig

logger = logging.getLogger(__name__)


def parse_plugin_specs(raw: str) -> List[str]:
    """Split a comma-separated ANALYZER_PLUGINS value."""
    if not raw:
        return []
    return [s.strip() for s in raw.split(",") if s.strip()]


def load_plugins(specs: Iterable[str]) -> List[AnalyzerConfig]:
    configs: List[AnalyzerConfig] = []
    for index, spec in enumerate(specs):
        module_path, _, attr = spec.partition(":")
        if not module_path or not attr:
            logger.warning(f"Invalid plugin spec {spec!r}; expected 'module.path:ClassName'")
            continue
        try:
            factory = getattr(importlib.import_module(module_path), attr)
            analyzer = factory()
        except Exception as e:
            logger.error(f"Could not load analyzer plugin {spec}: {type(e).__name__}: {e}")
            continue

        name = getattr(analyzer, "name", None)
        configs.append(AnalyzerConfig(
            name=name if isinstance(name, str) and name else attr,
            analyzer=analyzer,
            # Earlier entries in the list register first
            priority=-index,
            description=f"Loaded from {spec}",
        ))
        logger.info(f"Loaded analyzer plugin {spec}")
    return configs
