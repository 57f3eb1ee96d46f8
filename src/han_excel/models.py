"""Configuration, option and statistics models used by the builder."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Any

from han_excel.cells import CellPosition, DataCell, FooterCell, HeaderCell
from han_excel.config import Settings, settings
from han_excel.utils.exceptions import ErrorCode, ValidationError

if TYPE_CHECKING:
    from han_excel.styles.style import Color, Style


XLSX_MIME_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
TABLE_BORDER_COLOR = "FF8EAADB"
TABLE_STRIPE_COLOR = "FFF2F2F2"


# =============================================================================
# Worksheet models
# =============================================================================


class WorksheetState(str, Enum):
    """Lifecycle state of a worksheet."""

    STAGING = "staging"
    BUILT = "built"


@dataclass
class PageMargins:
    top: float | None = None
    left: float | None = None
    bottom: float | None = None
    right: float | None = None
    header: float | None = None
    footer: float | None = None


@dataclass
class PageSetup:
    """Print setup for a worksheet."""

    orientation: str | None = None
    paper_size: int | None = None
    fit_to_page: bool = False
    fit_to_width: int | None = None
    fit_to_height: int | None = None
    scale: int | None = None
    horizontal_centered: bool = False
    vertical_centered: bool = False
    margins: PageMargins | None = None


@dataclass
class AutoFilter:
    """Auto filter range given by 1-based row/column bounds."""

    start_row: int = 1
    start_column: int = 1
    end_row: int | None = None
    end_column: int | None = None


@dataclass
class WorksheetConfig:
    """Per-worksheet configuration.

    Attributes:
        name: Worksheet name as shown on the tab.
        default_row_height: Default height for every row.
        default_col_width: Default width for every column.
        tab_color: Tab color (hex string, RGBColor or ThemeColor).
        hidden: Whether the worksheet is hidden.
        show_grid_lines: Whether grid lines are displayed.
        zoom: Zoom percentage for the sheet view.
        freeze_panes: Top-left cell of the scrollable region.
        protection_password: Protects the sheet with this password when set.
        page_setup: Print setup.
        auto_filter: Auto filter range.
    """

    name: str
    default_row_height: float = field(default_factory=lambda: settings.default_row_height)
    default_col_width: float = field(default_factory=lambda: settings.default_col_width)
    tab_color: Color | None = None
    hidden: bool = False
    show_grid_lines: bool = True
    zoom: int | None = None
    freeze_panes: CellPosition | None = None
    protection_password: str | None = None
    page_setup: PageSetup | None = None
    auto_filter: AutoFilter | None = None


@dataclass
class Table:
    """A group of header, sub-header, body and footer rows on one worksheet."""

    name: str
    headers: list[HeaderCell] = field(default_factory=list)
    sub_headers: list[HeaderCell] = field(default_factory=list)
    body: list[list[DataCell]] = field(default_factory=list)
    footers: list[FooterCell] = field(default_factory=list)
    show_borders: bool = True
    show_stripes: bool = True
    border_color: str = TABLE_BORDER_COLOR
    stripe_color: str = TABLE_STRIPE_COLOR

    @property
    def is_empty(self) -> bool:
        return not (self.headers or self.sub_headers or self.body or self.footers)

    def snapshot(self) -> Table:
        """Return a copy whose staging lists are detached from this table."""
        return Table(
            name=self.name,
            headers=list(self.headers),
            sub_headers=list(self.sub_headers),
            body=[list(row) for row in self.body],
            footers=list(self.footers),
            show_borders=self.show_borders,
            show_stripes=self.show_stripes,
            border_color=self.border_color,
            stripe_color=self.stripe_color,
        )


# =============================================================================
# Builder models
# =============================================================================


@dataclass
class WorkbookMetadata:
    """Document properties written into the workbook."""

    author: str | None = None
    title: str | None = None
    subject: str | None = None
    keywords: str | None = None
    category: str | None = None
    description: str | None = None
    company: str | None = None
    manager: str | None = None
    created: datetime | None = None
    modified: datetime | None = None


@dataclass
class DefaultStyles:
    """Styles applied to cells of each role that carry no style of their own."""

    header: Style | None = None
    subheader: Style | None = None
    data: Style | None = None
    footer: Style | None = None


@dataclass
class BuilderConfig:
    """Behaviour and limits of an ExcelBuilder."""

    metadata: WorkbookMetadata = field(default_factory=WorkbookMetadata)
    default_styles: DefaultStyles = field(default_factory=DefaultStyles)
    enable_validation: bool = True
    enable_events: bool = True
    enable_performance_monitoring: bool = False
    max_worksheets: int = 255
    max_rows_per_worksheet: int = 1_048_576
    max_columns_per_worksheet: int = 16_384
    memory_limit_mb: int = 512

    @classmethod
    def from_settings(cls, s: Settings | None = None, **overrides: Any) -> BuilderConfig:
        """Create a config seeded from package settings.

        Args:
            s: Settings to read; defaults to the global settings instance.
            **overrides: Field values that take precedence over settings.
        """
        s = s or settings
        values: dict[str, Any] = {
            "metadata": WorkbookMetadata(author=s.default_author),
            "enable_validation": s.enable_validation,
            "enable_events": s.enable_events,
            "enable_performance_monitoring": s.enable_performance_monitoring,
            "max_worksheets": s.max_worksheets,
            "max_rows_per_worksheet": s.max_rows_per_worksheet,
            "max_columns_per_worksheet": s.max_columns_per_worksheet,
            "memory_limit_mb": s.memory_limit_mb,
        }
        values.update(overrides)
        return cls(**values)


@dataclass
class BuildOptions:
    """Per-build switches."""

    include_styles: bool = True
    include_formulas: bool = True
    include_comments: bool = True
    include_validation: bool = True
    include_conditional_formatting: bool = True
    compression_level: int = field(default_factory=lambda: settings.compression_level)

    def __post_init__(self) -> None:
        if not 0 <= self.compression_level <= 9:
            raise ValidationError(
                f"compression_level must be between 0 and 9, got {self.compression_level}",
                error_code=ErrorCode.INVALID_OPTION,
                field="compression_level",
            )


@dataclass
class DownloadOptions(BuildOptions):
    """Build options plus where and how the file is saved."""

    directory: Path | str = "."
    mime_type: str = XLSX_MIME_TYPE


# =============================================================================
# Statistics
# =============================================================================


@dataclass
class PhaseTimings:
    """Seconds spent in each build phase."""

    headers_time: float = 0.0
    data_time: float = 0.0
    styles_time: float = 0.0
    write_time: float = 0.0


@dataclass
class WorksheetBuildStats:
    """Counters collected while emitting one worksheet."""

    rows_written: int = 0
    cells_written: int = 0
    styles_applied: int = 0
    formulas_used: int = 0
    conditional_formats_used: int = 0
    merges: int = 0
    timings: PhaseTimings = field(default_factory=PhaseTimings)


@dataclass
class BuildStats:
    """Statistics of the most recent build."""

    total_worksheets: int = 0
    total_cells: int = 0
    memory_usage: int = 0
    build_time: float = 0.0
    file_size: int = 0
    styles_used: int = 0
    formulas_used: int = 0
    conditional_formats_used: int = 0
    performance: PhaseTimings = field(default_factory=PhaseTimings)

    def add_worksheet(self, ws_stats: WorksheetBuildStats) -> None:
        self.total_worksheets += 1
        self.total_cells += ws_stats.cells_written
        self.styles_used += ws_stats.styles_applied
        self.formulas_used += ws_stats.formulas_used
        self.conditional_formats_used += ws_stats.conditional_formats_used
        self.performance.headers_time += ws_stats.timings.headers_time
        self.performance.data_time += ws_stats.timings.data_time
        self.performance.styles_time += ws_stats.timings.styles_time

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


# =============================================================================
# Events
# =============================================================================


class BuilderEventType(str, Enum):
    """Lifecycle events emitted by ExcelBuilder."""

    WORKSHEET_ADDED = "worksheetAdded"
    WORKSHEET_REMOVED = "worksheetRemoved"
    BUILD_STARTED = "buildStarted"
    BUILD_PROGRESS = "buildProgress"
    BUILD_COMPLETED = "buildCompleted"
    BUILD_ERROR = "buildError"
    DOWNLOAD_STARTED = "downloadStarted"
    DOWNLOAD_COMPLETED = "downloadCompleted"
    DOWNLOAD_ERROR = "downloadError"


@dataclass
class BuilderEvent:
    """Event payload delivered to listeners."""

    type: BuilderEventType | str
    data: dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=datetime.now)

    @property
    def type_name(self) -> str:
        return self.type.value if isinstance(self.type, Enum) else self.type
