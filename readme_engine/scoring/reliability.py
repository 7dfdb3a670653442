"""
Reliability Weights
===================
Static analyzer-name → trust-weight lookup used to weight aggregation and
break ties during conflict resolution.

The built-in table lives in core.constants. An optional YAML file named by
ANALYZER_WEIGHTS_FILE may override or extend it::

    LanguageDetector: 1.0
    MyCustomAnalyzer: 0.65

Weights are clamped to (0, 1]. Non-positive or non-numeric entries are
skipped with a warning. Unknown analyzers always get
DEFAULT_RELIABILITY_WEIGHT, which is lower than every built-in entry.
"""
import logging
import os
from typing import Dict, Optional

import yaml

from readme_engine.core import config
from readme_engine.core.constants import RELIABILITY_WEIGHTS

logger = logging.getLogger(__name__)

_cached_weights: Optional[Dict[str, float]] = None


def load_weight_overrides(path: str) -> Dict[str, float]:
    """
    Read weight overrides from a YAML mapping.

    Returns an empty dict when the file is missing or malformed; a bad
    weights file never prevents a run.
    """
    if not path or not os.path.isfile(path):
        if path:
            logger.warning(f"Analyzer weights file not found: {path}")
        return {}

    try:
        with open(path, "r", encoding="utf-8") as f:
            raw = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        logger.warning(f"Could not read analyzer weights from {path}: {e}")
        return {}

    if not isinstance(raw, dict):
        logger.warning(f"Analyzer weights file {path} must contain a mapping")
        return {}

    overrides: Dict[str, float] = {}
    for name, value in raw.items():
        try:
            weight = float(value)
        except (TypeError, ValueError):
            logger.warning(f"Skipping non-numeric weight for {name!r}: {value!r}")
            continue
        if weight <= 0:
            logger.warning(f"Skipping non-positive weight for {name!r}: {weight}")
            continue
        overrides[str(name)] = min(weight, 1.0)
    return overrides


def get_reliability_weights() -> Dict[str, float]:
    """Built-in table merged with file overrides (loaded once per process)."""
    global _cached_weights
    if _cached_weights is None:
        weights = dict(RELIABILITY_WEIGHTS)
        if config.ANALYZER_WEIGHTS_FILE:
            weights.update(load_weight_overrides(config.ANALYZER_WEIGHTS_FILE))
        _cached_weights = weights
    return _cached_weights


def reset_reliability_weights() -> None:
    """Drop the cached table so the next lookup re-reads the environment."""
    global _cached_weights
    _cached_weights = None
