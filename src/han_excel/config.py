"""Configuration management for han-excel.

This module provides centralized configuration using pydantic-settings.
All configuration options can be set via environment variables with the
HAN_EXCEL_ prefix, or via a .env file in the project root.

Environment Variables:
    HAN_EXCEL_LOG_LEVEL: Logging level (default: INFO)
    HAN_EXCEL_DEBUG: Enable debug mode (default: false)
    HAN_EXCEL_ENABLE_VALIDATION: Validate worksheet names and limits (default: true)
    HAN_EXCEL_ENABLE_EVENTS: Emit builder lifecycle events (default: true)
    HAN_EXCEL_ENABLE_PERFORMANCE_MONITORING: Log phase timings (default: false)
    HAN_EXCEL_MAX_WORKSHEETS: Maximum worksheets per workbook (default: 255)
    HAN_EXCEL_MAX_ROWS_PER_WORKSHEET: Row ceiling per worksheet (default: 1048576)
    HAN_EXCEL_MAX_COLUMNS_PER_WORKSHEET: Column ceiling per worksheet (default: 16384)
    HAN_EXCEL_MEMORY_LIMIT_MB: Advisory memory ceiling in MB (default: 512)
    HAN_EXCEL_COMPRESSION_LEVEL: Default zip compression level 0-9 (default: 6)
    HAN_EXCEL_DEFAULT_ROW_HEIGHT: Default worksheet row height (default: 20)
    HAN_EXCEL_DEFAULT_COL_WIDTH: Default worksheet column width (default: 10)
    HAN_EXCEL_DEFAULT_AUTHOR: Default workbook author (default: han-excel)
"""

import logging
from typing import Any

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

EXCEL_MAX_ROWS = 1_048_576
EXCEL_MAX_COLUMNS = 16_384
EXCEL_MAX_WORKSHEETS = 255


class Settings(BaseSettings):
    """Package settings loaded from environment variables.

    Example .env file:
        HAN_EXCEL_LOG_LEVEL=DEBUG
        HAN_EXCEL_COMPRESSION_LEVEL=9
        HAN_EXCEL_MAX_WORKSHEETS=10
    """

    model_config = SettingsConfigDict(
        env_prefix="HAN_EXCEL_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # =========================================================================
    # Logging Settings
    # =========================================================================

    log_level: str = "INFO"
    """Logging level: DEBUG, INFO, WARNING, ERROR, or CRITICAL."""

    debug: bool = False
    """Enable debug mode with additional logging."""

    # =========================================================================
    # Builder Behaviour
    # =========================================================================

    enable_validation: bool = True
    """Reject worksheet names Excel would refuse and enforce worksheet limits."""

    enable_events: bool = True
    """Emit lifecycle events through the builder's event bus."""

    enable_performance_monitoring: bool = False
    """Log per-phase timings after each build."""

    # =========================================================================
    # Limits
    # =========================================================================

    max_worksheets: int = EXCEL_MAX_WORKSHEETS
    """Maximum number of worksheets in one workbook (1-255)."""

    max_rows_per_worksheet: int = EXCEL_MAX_ROWS
    """Highest row index a worksheet may write to."""

    max_columns_per_worksheet: int = EXCEL_MAX_COLUMNS
    """Highest column index a worksheet may write to."""

    memory_limit_mb: int = 512
    """Advisory memory ceiling reported in build stats."""

    # =========================================================================
    # Output Defaults
    # =========================================================================

    compression_level: int = 6
    """Zip deflate level used when serializing workbooks (0-9)."""

    default_row_height: float = 20
    """Default row height for new worksheets."""

    default_col_width: float = 10
    """Default column width for new worksheets."""

    default_author: str = "han-excel"
    """Author written to workbook properties when none is given."""

    # =========================================================================
    # Validators
    # =========================================================================

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is a valid Python logging level."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper_v = v.upper()
        if upper_v not in valid_levels:
            raise ValueError(
                f"Invalid log level: {v}. Must be one of: {', '.join(valid_levels)}"
            )
        return upper_v

    @field_validator("max_worksheets")
    @classmethod
    def validate_max_worksheets(cls, v: int) -> int:
        if not 1 <= v <= EXCEL_MAX_WORKSHEETS:
            raise ValueError(
                f"max_worksheets must be between 1 and {EXCEL_MAX_WORKSHEETS}, got {v}"
            )
        return v

    @field_validator("max_rows_per_worksheet")
    @classmethod
    def validate_max_rows(cls, v: int) -> int:
        if not 1 <= v <= EXCEL_MAX_ROWS:
            raise ValueError(
                f"max_rows_per_worksheet must be between 1 and {EXCEL_MAX_ROWS}, "
                f"got {v}"
            )
        return v

    @field_validator("max_columns_per_worksheet")
    @classmethod
    def validate_max_columns(cls, v: int) -> int:
        if not 1 <= v <= EXCEL_MAX_COLUMNS:
            raise ValueError(
                f"max_columns_per_worksheet must be between 1 and "
                f"{EXCEL_MAX_COLUMNS}, got {v}"
            )
        return v

    @field_validator("compression_level")
    @classmethod
    def validate_compression_level(cls, v: int) -> int:
        """Validate compression level is a valid deflate level."""
        if not 0 <= v <= 9:
            raise ValueError(f"compression_level must be between 0 and 9, got {v}")
        return v

    @field_validator("memory_limit_mb")
    @classmethod
    def validate_memory_limit(cls, v: int) -> int:
        if v < 1:
            raise ValueError(f"memory_limit_mb must be at least 1, got {v}")
        return v

    @field_validator("default_row_height", "default_col_width")
    @classmethod
    def validate_dimension(cls, v: float) -> float:
        """Validate default dimensions are positive."""
        if v <= 0:
            raise ValueError(f"Default dimensions must be positive, got {v}")
        return v

    # =========================================================================
    # Computed Properties
    # =========================================================================

    @property
    def memory_limit_bytes(self) -> int:
        """Get the memory limit in bytes."""
        return self.memory_limit_mb * 1024 * 1024

    @property
    def log_level_int(self) -> int:
        """Get log level as integer for logging module."""
        level: int = getattr(logging, self.log_level)
        return level

    def to_dict(self) -> dict[str, Any]:
        """Convert settings to a plain dictionary."""
        return self.model_dump()


# Create the global settings instance
settings = Settings()
