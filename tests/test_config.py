"""Tests for codonphase configuration module."""

import os
import pytest
from pathlib import Path
from unittest.mock import patch

# Add src to path for imports
import sys
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from codonphase.config import CallerConfig, get_config, reset_config


class TestConfig:
    """Test suite for CallerConfig class."""

    def setup_method(self):
        """Reset config before each test."""
        reset_config()

    def teardown_method(self):
        """Clean up after each test."""
        reset_config()

    def test_config_creation(self):
        """Test basic config creation."""
        config = CallerConfig(use_environment=False)
        assert config.alpha == 0.01
        assert config.low_coverage_reads == 10
        assert config.label_alphabet_size == 26
        assert config.msa_context_flank == 3
        assert not config.drm_only

    def test_config_singleton(self):
        """Test that get_config returns singleton."""
        config1 = get_config()
        config2 = get_config()
        assert config1 is config2

    def test_reset_config(self):
        """Test config reset."""
        config1 = get_config()
        reset_config()
        config2 = get_config()
        assert config1 is not config2

    @patch.dict(os.environ, {"CODONPHASE_ALPHA": "0.05"})
    def test_env_alpha(self):
        """Test loading CODONPHASE_ALPHA from environment."""
        config = CallerConfig()
        assert config.alpha == 0.05

    @patch.dict(os.environ, {"CODONPHASE_LOW_COV_READS": "3"})
    def test_env_low_coverage(self):
        """Test loading CODONPHASE_LOW_COV_READS from environment."""
        config = CallerConfig()
        assert config.low_coverage_reads == 3

    @patch.dict(os.environ, {"CODONPHASE_LOW_COV_READS": "many"})
    def test_env_invalid(self):
        """Test invalid environment value falls back to default."""
        config = CallerConfig()
        assert config.low_coverage_reads == 10

    @patch.dict(os.environ, {"CODONPHASE_MIN_PERCENT": "2.5"})
    def test_explicit_argument_wins(self):
        """Test explicit arguments take precedence over the environment."""
        assert CallerConfig(minimal_percent=1.0).minimal_percent == 1.0
        assert CallerConfig().minimal_percent == 2.5

    @patch.dict(os.environ, {"CODONPHASE_ALPHA": "0.05", "CODONPHASE_LOW_COV_READS": "3"})
    def test_explicit_default_value_wins(self):
        """Test an explicit argument equal to the default still beats the environment."""
        config = CallerConfig(alpha=0.01, low_coverage_reads=10)
        assert config.alpha == 0.01
        assert config.low_coverage_reads == 10

    @patch.dict(os.environ, {"CODONPHASE_ALPHA": "0.05"})
    def test_environment_disabled(self):
        """Test use_environment=False ignores the environment."""
        assert CallerConfig(use_environment=False).alpha == 0.01

    def test_to_dict(self):
        """Test exporting config as dictionary."""
        d = CallerConfig(use_environment=False).to_dict()
        assert isinstance(d, dict)
        assert d["alpha"] == 0.01
        assert "merge_outliers" in d
        assert "use_environment" not in d

    def test_validate_defaults(self):
        """Test the defaults are valid."""
        is_valid, errors = CallerConfig(use_environment=False).validate()
        assert is_valid
        assert errors == []

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"alpha": 0.0},
            {"alpha": 1.5},
            {"variable_site_fraction": 0.0},
            {"low_coverage_reads": -1},
            {"label_alphabet_size": 27},
            {"label_alphabet_size": 0},
            {"msa_context_flank": -1},
            {"minimal_percent": -5.0},
            {"maximal_percent": 150.0},
        ],
    )
    def test_validate_out_of_range(self, kwargs):
        """Test validation rejects out-of-range values."""
        is_valid, errors = CallerConfig(use_environment=False, **kwargs).validate()
        assert not is_valid
        assert len(errors) == 1

    def test_validate_percent_order(self):
        """Test minimal percent may not exceed maximal percent."""
        config = CallerConfig(use_environment=False, minimal_percent=60.0, maximal_percent=40.0)
        is_valid, errors = config.validate()
        assert not is_valid
        assert any("exceeds" in e for e in errors)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
