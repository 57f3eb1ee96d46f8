"""Workbook orchestrator.

ExcelBuilder owns the worksheets of one workbook, builds them in insertion
order into a fresh openpyxl workbook, serializes the result and reports
progress through its event bus.

Public operations return Result values. Only programmer errors raise:
adding a duplicate worksheet name, exceeding the worksheet limit, or an
invalid worksheet name when validation is enabled.
"""

import asyncio
import copy
import re
import time
import uuid
from datetime import datetime
from pathlib import Path
from typing import Any

from openpyxl import Workbook
from openpyxl.packaging.custom import StringProperty

from han_excel.config import settings
from han_excel.events import EventBus, EventListener, ListenerOptions
from han_excel.models import (
    BuilderConfig,
    BuilderEvent,
    BuilderEventType,
    BuildOptions,
    BuildStats,
    DownloadOptions,
    WorkbookMetadata,
    WorksheetConfig,
)
from han_excel.output.export import Blob, save_as, serialize_workbook
from han_excel.result import Failure, Result, Success, failure, failure_from_exception
from han_excel.services.worksheet import Worksheet
from han_excel.utils.exceptions import (
    ErrorCode,
    ErrorType,
    WorksheetError,
    WorksheetExistsError,
)
from han_excel.utils.logging import (
    LogContext,
    PerformanceMetrics,
    ProgressTracker,
    get_logger,
    timed_operation,
)

logger = get_logger(__name__)

DEFAULT_AUTHOR = "Han Excel Builder"
MAX_WORKSHEET_NAME_LENGTH = 31
_INVALID_NAME_CHARS = re.compile(r"[\[\]:*?/\\]")


def validate_worksheet_name(name: str) -> None:
    """Check a worksheet name against the rules Excel enforces.

    Raises:
        WorksheetError: If the name is empty, too long, contains one of
            ``[]:*?/\\`` or starts or ends with an apostrophe.
    """
    problem = None
    if not name or not name.strip():
        problem = "must not be empty"
    elif len(name) > MAX_WORKSHEET_NAME_LENGTH:
        problem = f"must be at most {MAX_WORKSHEET_NAME_LENGTH} characters"
    elif _INVALID_NAME_CHARS.search(name):
        problem = "must not contain any of []:*?/\\"
    elif name.startswith("'") or name.endswith("'"):
        problem = "must not start or end with an apostrophe"
    if problem:
        raise WorksheetError(
            f'Invalid worksheet name "{name}": {problem}',
            error_code=ErrorCode.INVALID_WORKSHEET_NAME,
            worksheet_name=name,
        )


class ExcelBuilder:
    """Fluent workbook builder.

    Usage:
        builder = ExcelBuilder()
        sheet = builder.add_worksheet("Sales")
        sheet.add_header(HeaderCell(key="title", value="Sales", merge_cell=True))
        result = await builder.build()
        if result.success:
            payload = result.data
    """

    def __init__(self, config: BuilderConfig | None = None) -> None:
        self.config = config or BuilderConfig.from_settings()
        self.worksheets: dict[str, Worksheet] = {}
        self.is_building = False
        self.stats = BuildStats()
        self._current_name: str | None = None
        self._events = EventBus()

    # ------------------------------------------------------------------ #
    # Worksheets
    # ------------------------------------------------------------------ #

    @property
    def current_worksheet(self) -> Worksheet | None:
        if self._current_name is None:
            return None
        return self.worksheets.get(self._current_name)

    def add_worksheet(self, name: str, **config: Any) -> Worksheet:
        """Create a worksheet, make it current and return it.

        Args:
            name: Unique worksheet name.
            **config: WorksheetConfig fields (tab_color, page_setup, ...).

        Raises:
            WorksheetExistsError: If the name is already used.
            WorksheetError: If the worksheet limit is reached or, with
                validation enabled, the name is not a valid Excel name.
        """
        if name in self.worksheets:
            raise WorksheetExistsError(name)
        if len(self.worksheets) >= self.config.max_worksheets:
            raise WorksheetError(
                f"Cannot add worksheet \"{name}\": limit of "
                f"{self.config.max_worksheets} worksheets reached",
                error_code=ErrorCode.WORKSHEET_LIMIT_EXCEEDED,
                worksheet_name=name,
            )
        if self.config.enable_validation:
            validate_worksheet_name(name)

        worksheet = Worksheet(
            WorksheetConfig(name=name, **config),
            max_rows=self.config.max_rows_per_worksheet,
            max_columns=self.config.max_columns_per_worksheet,
            default_styles=self.config.default_styles,
        )
        self.worksheets[name] = worksheet
        self._current_name = name
        logger.debug("Worksheet added", worksheet=name)
        self._emit_sync(BuilderEventType.WORKSHEET_ADDED, {"worksheet_name": name})
        return worksheet

    def get_worksheet(self, name: str) -> Worksheet | None:
        return self.worksheets.get(name)

    def remove_worksheet(self, name: str) -> bool:
        if name not in self.worksheets:
            return False
        del self.worksheets[name]
        if self._current_name == name:
            self._current_name = None
        logger.debug("Worksheet removed", worksheet=name)
        self._emit_sync(BuilderEventType.WORKSHEET_REMOVED, {"worksheet_name": name})
        return True

    def set_current_worksheet(self, name: str) -> bool:
        if name not in self.worksheets:
            return False
        self._current_name = name
        return True

    # ------------------------------------------------------------------ #
    # Build
    # ------------------------------------------------------------------ #

    async def build(self, options: BuildOptions | None = None) -> Result[bytes]:
        """Build every worksheet and serialize the workbook.

        Returns:
            Success with the .xlsx bytes, or Failure(BUILD_ERROR) if a build
            is already running or anything goes wrong on the way.
        """
        if self.is_building:
            return failure(
                ErrorType.BUILD_ERROR,
                "Build already in progress",
                details={"error_code": ErrorCode.BUILD_IN_PROGRESS.value},
            )

        self.is_building = True
        build_id = uuid.uuid4().hex[:8]
        started = time.perf_counter()
        opts = options or BuildOptions()
        monitoring = self.config.enable_performance_monitoring

        with LogContext(build_id=build_id):
            try:
                logger.info("Build started", worksheets=len(self.worksheets))
                await self._emit(BuilderEventType.BUILD_STARTED, {"build_id": build_id})

                stats = BuildStats()
                workbook = self._create_workbook()

                tracker = ProgressTracker(
                    logger, "Building worksheets", total=len(self.worksheets)
                )
                worksheets = list(self.worksheets.values())
                for index, worksheet in enumerate(worksheets, start=1):
                    await worksheet.build(workbook, opts)
                    stats.add_worksheet(worksheet.last_build_stats)
                    tracker.update(details=worksheet.name)
                    await self._emit(
                        BuilderEventType.BUILD_PROGRESS,
                        {
                            "worksheet_name": worksheet.name,
                            "current": index,
                            "total": len(worksheets),
                            "progress": index / len(worksheets) * 100,
                        },
                    )

                tracker.complete()

                with timed_operation(logger, "serialize", enabled=monitoring) as metrics:
                    data = await asyncio.to_thread(
                        serialize_workbook, workbook, opts.compression_level
                    )
                    metrics.bytes_written = len(data)
                    metrics.worksheets_built = stats.total_worksheets
                    metrics.cells_written = stats.total_cells

                stats.performance.write_time = metrics.duration_seconds
                stats.build_time = time.perf_counter() - started
                stats.file_size = len(data)
                stats.memory_usage = len(data)
                self.stats = stats

                if monitoring:
                    self._log_phase_timings(stats)
                logger.log_build_result(
                    success=True,
                    duration_seconds=stats.build_time,
                    worksheets=stats.total_worksheets,
                    file_size=stats.file_size,
                )
                await self._emit(
                    BuilderEventType.BUILD_COMPLETED,
                    {"build_time": stats.build_time, "file_size": stats.file_size},
                )
                return Success(data)
            except Exception as e:
                result = failure_from_exception(e, ErrorType.BUILD_ERROR)
                logger.log_build_result(
                    success=False,
                    duration_seconds=time.perf_counter() - started,
                    worksheets=len(self.worksheets),
                    error_message=result.error.message,
                )
                await self._emit(
                    BuilderEventType.BUILD_ERROR, {"error": result.error.to_dict()}
                )
                return result
            finally:
                self.is_building = False

    def _create_workbook(self) -> Workbook:
        workbook = Workbook()
        # Keep openpyxl's default sheet only when there is nothing else to write
        if self.worksheets:
            workbook.remove(workbook.active)
        self._apply_metadata(workbook, self.config.metadata)
        return workbook

    @staticmethod
    def _apply_metadata(workbook: Workbook, metadata: WorkbookMetadata) -> None:
        props = workbook.properties
        author = metadata.author or DEFAULT_AUTHOR
        props.creator = author
        props.lastModifiedBy = author
        props.created = metadata.created or datetime.now()
        props.modified = metadata.modified or datetime.now()
        if metadata.title:
            props.title = metadata.title
        if metadata.subject:
            props.subject = metadata.subject
        if metadata.keywords:
            props.keywords = metadata.keywords
        if metadata.category:
            props.category = metadata.category
        if metadata.description:
            props.description = metadata.description
        # openpyxl writes no extended properties, so these become custom ones
        custom = {"Company": metadata.company, "Manager": metadata.manager}
        for name, value in custom.items():
            if value:
                workbook.custom_doc_props.append(StringProperty(name=name, value=value))

    def _log_phase_timings(self, stats: BuildStats) -> None:
        metrics = PerformanceMetrics(operation="build")
        metrics.worksheets_built = stats.total_worksheets
        metrics.cells_written = stats.total_cells
        metrics.styles_applied = stats.styles_used
        metrics.bytes_written = stats.file_size
        metrics.custom_metrics = {
            "headers_time": f"{stats.performance.headers_time:.4f}",
            "data_time": f"{stats.performance.data_time:.4f}",
            "styles_time": f"{stats.performance.styles_time:.4f}",
            "write_time": f"{stats.performance.write_time:.4f}",
        }
        metrics.duration_seconds = stats.build_time
        logger.log_performance(metrics)

    # ------------------------------------------------------------------ #
    # Export
    # ------------------------------------------------------------------ #

    async def generate_and_download(
        self, file_name: str, options: DownloadOptions | None = None
    ) -> Result[Path]:
        """Build the workbook and save it to ``options.directory / file_name``."""
        opts = options or DownloadOptions()
        build_result = await self.build(opts)
        if isinstance(build_result, Failure):
            return build_result

        try:
            await self._emit(BuilderEventType.DOWNLOAD_STARTED, {"file_name": file_name})
            blob = Blob(build_result.data, mime_type=opts.mime_type)
            path = await asyncio.to_thread(save_as, blob, file_name, opts.directory)
            await self._emit(
                BuilderEventType.DOWNLOAD_COMPLETED,
                {"file_name": file_name, "path": str(path), "size": blob.size},
            )
            return Success(path)
        except Exception as e:
            result = failure_from_exception(e, ErrorType.BUILD_ERROR)
            logger.error("Download failed", file_name=file_name, error=result.error.message)
            await self._emit(
                BuilderEventType.DOWNLOAD_ERROR, {"error": result.error.to_dict()}
            )
            return result

    async def to_buffer(self, options: BuildOptions | None = None) -> Result[bytes]:
        return await self.build(options)

    async def to_blob(self, options: BuildOptions | None = None) -> Result[Blob]:
        build_result = await self.build(options)
        if isinstance(build_result, Failure):
            return build_result
        return Success(Blob(build_result.data))

    # ------------------------------------------------------------------ #
    # Validation and state
    # ------------------------------------------------------------------ #

    def validate(self) -> Result[bool]:
        """Check that there is at least one worksheet and each one is valid."""
        if not self.worksheets:
            return failure(
                ErrorType.VALIDATION_ERROR,
                "No worksheets found",
                details={
                    "validation_errors": ["No worksheets found"],
                    "error_code": ErrorCode.EMPTY_WORKBOOK.value,
                },
            )

        errors: list[str] = []
        for name, worksheet in self.worksheets.items():
            result = worksheet.validate()
            if isinstance(result, Failure):
                errors.append(f'Worksheet "{name}": {result.error.message}')

        if errors:
            return failure(
                ErrorType.VALIDATION_ERROR,
                "; ".join(errors),
                details={
                    "validation_errors": errors,
                    "error_code": ErrorCode.VALIDATION_FAILED.value,
                },
            )
        return Success(True)

    def clear(self) -> None:
        self.worksheets.clear()
        self._current_name = None

    def get_stats(self) -> BuildStats:
        """Return a copy of the statistics of the last successful build."""
        return copy.deepcopy(self.stats)

    # ------------------------------------------------------------------ #
    # Events
    # ------------------------------------------------------------------ #

    def on(
        self,
        event_type: BuilderEventType | str,
        listener: EventListener,
        options: ListenerOptions | None = None,
    ) -> str:
        return self._events.on(event_type, listener, options)

    def once(
        self,
        event_type: BuilderEventType | str,
        listener: EventListener,
        options: ListenerOptions | None = None,
    ) -> str:
        return self._events.once(event_type, listener, options)

    def off(self, event_type: BuilderEventType | str, listener_id: str) -> bool:
        return self._events.off(event_type, listener_id)

    def remove_all_listeners(self, event_type: BuilderEventType | str | None = None) -> None:
        if event_type is None:
            self._events.clear()
        else:
            self._events.off_all(event_type)

    @property
    def events(self) -> EventBus:
        return self._events

    async def _emit(self, event_type: BuilderEventType, data: dict[str, Any]) -> None:
        if self.config.enable_events:
            await self._events.emit(BuilderEvent(type=event_type, data=data))

    def _emit_sync(self, event_type: BuilderEventType, data: dict[str, Any]) -> None:
        if self.config.enable_events:
            self._events.emit_sync(BuilderEvent(type=event_type, data=data))


def create_builder(**overrides: Any) -> ExcelBuilder:
    """Create a builder configured from settings with field overrides."""
    return ExcelBuilder(BuilderConfig.from_settings(settings, **overrides))

