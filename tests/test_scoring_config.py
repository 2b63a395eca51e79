"""
Tests for the declarative scoring configuration.
"""

import json
from pathlib import Path
import sys

import pytest

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from core.scoring import (
    DEFAULT_SCORING_CONFIG_PATH,
    MetricCategory,
    ScoringConfig,
    ScoringMetricConfig,
    load_scoring_config,
)


# =============================================================================
# Test: Bundled Configuration
# =============================================================================

class TestBundledConfig:

    def test_bundled_file_exists(self):
        assert DEFAULT_SCORING_CONFIG_PATH.exists()

    def test_weights_sum_to_hundred(self):
        config = load_scoring_config()

        assert config.total_weight == 100

    def test_tiers_descending(self):
        config = load_scoring_config()
        thresholds = [tier.threshold for tier in config.recommendation_tiers]

        assert thresholds == sorted(thresholds, reverse=True)
        assert config.fallback_level == "Avoid"

    def test_categories(self):
        config = load_scoring_config()
        financial = [m.key for m in config.metrics if m.category == MetricCategory.FINANCIAL]

        assert financial == ["price_per_sqm", "fee_per_sqm", "debt_per_sqm", "cashflow_per_sqm"]
        assert len(config.metrics) == 12


# =============================================================================
# Test: Parsing and Validation
# =============================================================================

class TestConfigParsing:

    def test_round_trip(self):
        config = load_scoring_config()

        assert ScoringConfig.from_dict(config.to_dict()) == config

    def test_custom_file(self, tmp_path):
        path = tmp_path / "scoring.json"
        path.write_text(json.dumps({
            "metrics": [{"key": "price_per_sqm", "weight": 1, "lower_is_better": True}],
            "recommendation_tiers": [{"threshold": 50, "level": "Go"}],
            "fallback_level": "Stop",
        }))

        config = load_scoring_config(path)

        assert config.metrics[0].name == "price_per_sqm"
        assert config.metrics[0].category == MetricCategory.FINANCIAL
        assert config.recommendation_tiers[0].level == "Go"
        assert config.fallback_level == "Stop"

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text("{not json")

        with pytest.raises(ValueError, match="Invalid scoring config JSON"):
            load_scoring_config(path)

    def test_missing_key(self):
        with pytest.raises(ValueError, match="Missing scoring config field"):
            ScoringConfig.from_dict({"metrics": [{"weight": 1}]})

    def test_duplicate_keys(self):
        with pytest.raises(ValueError, match="Duplicate"):
            ScoringConfig.from_dict({"metrics": [{"key": "a"}, {"key": "a"}]})

    def test_invalid_category(self):
        with pytest.raises(ValueError, match="category"):
            ScoringMetricConfig.from_dict({"key": "a", "category": "emotional"})

    def test_negative_weight(self):
        with pytest.raises(ValueError, match="non-negative"):
            ScoringMetricConfig(
                key="a", name="a", weight=-1, lower_is_better=True,
                category=MetricCategory.FINANCIAL,
            )
