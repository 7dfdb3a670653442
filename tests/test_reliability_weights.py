"""
Reliability Weight Tests
========================
Built-in table plus YAML overrides from ANALYZER_WEIGHTS_FILE.
"""
import pytest

from readme_engine.core import config
from readme_engine.scoring import reliability
from readme_engine.scoring.confidence import reliability_weight


@pytest.fixture(autouse=True)
def fresh_weights():
    reliability.reset_reliability_weights()
    yield
    reliability.reset_reliability_weights()


def test_builtin_table_ordering():
    weights = reliability.get_reliability_weights()
    assert weights["LanguageDetector"] == 1.0
    assert weights["LanguageDetector"] > weights["DependencyExtractor"] > weights["MetadataExtractor"]


def test_yaml_overrides(tmp_path, monkeypatch):
    path = tmp_path / "weights.yaml"
    path.write_text(
        "MetadataExtractor: 0.75\n"
        "CustomAnalyzer: 0.65\n"
        "TooHigh: 3\n"
        "Negative: -1\n"
        "Words: high\n"
    )
    monkeypatch.setattr(config, "ANALYZER_WEIGHTS_FILE", str(path))

    weights = reliability.get_reliability_weights()
    assert weights["MetadataExtractor"] == 0.75
    assert weights["CustomAnalyzer"] == 0.65
    assert weights["TooHigh"] == 1.0
    assert "Negative" not in weights
    assert "Words" not in weights
    assert reliability_weight("CustomAnalyzer") == 0.65


def test_missing_file_keeps_builtin_table(tmp_path, monkeypatch):
    monkeypatch.setattr(config, "ANALYZER_WEIGHTS_FILE", str(tmp_path / "absent.yaml"))
    assert reliability.get_reliability_weights()["TestingDetector"] == 0.7


def test_non_mapping_file_is_ignored(tmp_path):
    path = tmp_path / "list.yaml"
    path.write_text("- LanguageDetector\n- 0.4\n")
    assert reliability.load_weight_overrides(str(path)) == {}


def test_malformed_yaml_is_ignored(tmp_path):
    path = tmp_path / "broken.yaml"
    path.write_text("LanguageDetector: [0.4\n")
    assert reliability.load_weight_overrides(str(path)) == {}


def test_explicit_weights_bypass_table():
    assert reliability_weight("LanguageDetector", {"LanguageDetector": 0.2}) == 0.2
    assert reliability_weight("Other", {}) == 0.5
