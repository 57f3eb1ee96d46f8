"""Tests for configuration management module."""

import logging
import os
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from han_excel.config import Settings
from han_excel.models import BuilderConfig, BuildOptions
from han_excel.utils.exceptions import ErrorCode
from han_excel.utils.exceptions import ValidationError as HanValidationError


class TestSettings:
    """Tests for the Settings class."""

    def test_default_values(self) -> None:
        """Test default configuration values."""
        with patch.dict(os.environ, {}, clear=True):
            settings = Settings(_env_file=None)

        assert settings.log_level == "INFO"
        assert settings.debug is False
        assert settings.enable_validation is True
        assert settings.enable_events is True
        assert settings.enable_performance_monitoring is False
        assert settings.max_worksheets == 255
        assert settings.max_rows_per_worksheet == 1_048_576
        assert settings.max_columns_per_worksheet == 16_384
        assert settings.memory_limit_mb == 512
        assert settings.compression_level == 6
        assert settings.default_row_height == 20
        assert settings.default_col_width == 10
        assert settings.default_author == "han-excel"

    def test_environment_variable_prefix(self) -> None:
        """Test that environment variables use the HAN_EXCEL_ prefix."""
        env_vars = {
            "HAN_EXCEL_COMPRESSION_LEVEL": "9",
            "HAN_EXCEL_MAX_WORKSHEETS": "3",
            "HAN_EXCEL_LOG_LEVEL": "debug",
        }
        with patch.dict(os.environ, env_vars, clear=True):
            settings = Settings(_env_file=None)

        assert settings.compression_level == 9
        assert settings.max_worksheets == 3
        assert settings.log_level == "DEBUG"

    def test_computed_properties(self) -> None:
        """Test memory_limit_bytes and log_level_int."""
        with patch.dict(os.environ, {"HAN_EXCEL_MEMORY_LIMIT_MB": "2"}, clear=True):
            settings = Settings(_env_file=None)

        assert settings.memory_limit_bytes == 2 * 1024 * 1024
        assert settings.log_level_int == logging.INFO

    def test_to_dict(self) -> None:
        """to_dict should expose every field."""
        with patch.dict(os.environ, {}, clear=True):
            data = Settings(_env_file=None).to_dict()
        assert data["default_author"] == "han-excel"
        assert "compression_level" in data


class TestSettingsValidation:
    """Tests for Settings field validators."""

    @pytest.mark.parametrize(
        ("env_name", "value"),
        [
            ("HAN_EXCEL_LOG_LEVEL", "LOUD"),
            ("HAN_EXCEL_COMPRESSION_LEVEL", "10"),
            ("HAN_EXCEL_MAX_WORKSHEETS", "0"),
            ("HAN_EXCEL_MAX_WORKSHEETS", "256"),
            ("HAN_EXCEL_MAX_ROWS_PER_WORKSHEET", "1048577"),
            ("HAN_EXCEL_MAX_COLUMNS_PER_WORKSHEET", "16385"),
            ("HAN_EXCEL_MEMORY_LIMIT_MB", "0"),
            ("HAN_EXCEL_DEFAULT_ROW_HEIGHT", "-1"),
        ],
    )
    def test_out_of_range_values_rejected(self, env_name: str, value: str) -> None:
        """Out-of-range values should fail validation."""
        with patch.dict(os.environ, {env_name: value}, clear=True):
            with pytest.raises(ValidationError):
                Settings(_env_file=None)


class TestBuilderConfigFromSettings:
    """Tests for BuilderConfig.from_settings."""

    def test_seeds_from_settings(self) -> None:
        """Limits and switches come from the given settings."""
        with patch.dict(
            os.environ,
            {"HAN_EXCEL_MAX_WORKSHEETS": "4", "HAN_EXCEL_ENABLE_EVENTS": "false"},
            clear=True,
        ):
            settings = Settings(_env_file=None)

        config = BuilderConfig.from_settings(settings)
        assert config.max_worksheets == 4
        assert config.enable_events is False
        assert config.metadata.author == "han-excel"

    def test_overrides_take_precedence(self) -> None:
        """Explicit overrides win over settings."""
        config = BuilderConfig.from_settings(max_worksheets=2)
        assert config.max_worksheets == 2


class TestBuildOptions:
    """Tests for BuildOptions validation."""

    def test_invalid_compression_level(self) -> None:
        """Compression levels outside 0-9 are rejected."""
        with pytest.raises(HanValidationError) as exc_info:
            BuildOptions(compression_level=12)
        assert exc_info.value.error_code == ErrorCode.INVALID_OPTION
        assert exc_info.value.field == "compression_level"
