"""Tests for the ExcelBuilder orchestrator."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from pathlib import Path

import pytest
from openpyxl import Workbook

from han_excel.cells import DataCell, FooterCell, HeaderCell
from han_excel.models import (
    XLSX_MIME_TYPE,
    BuilderConfig,
    BuilderEvent,
    BuilderEventType,
    DownloadOptions,
    WorkbookMetadata,
)
from han_excel.output.export import Blob
from han_excel.result import Failure, Success
from han_excel.services.excel_builder import (
    ExcelBuilder,
    create_builder,
    validate_worksheet_name,
)
from han_excel.utils.exceptions import (
    ErrorCode,
    ErrorType,
    WorksheetError,
    WorksheetExistsError,
)


def add_sales_sheet(
    builder: ExcelBuilder,
    name: str = "Sales",
    rows: int = 1,
) -> None:
    sheet = builder.add_worksheet(name)
    sheet.add_header(HeaderCell(key="title", value=f"{name} Report", merge_cell=True))
    sheet.add_sub_headers(
        [HeaderCell(key="product", value="Product"), HeaderCell(key="amount", value="Amount")]
    )
    for i in range(rows):
        sheet.add_row(
            [
                DataCell(key=f"p{i}", value=f"Item {i}", header="product"),
                DataCell(key=f"a{i}", value=i * 10, header="amount"),
            ]
        )
    sheet.add_footer(FooterCell(key="total", value="Total", merge_cell=True, merge_to=2))


class TestWorksheetManagement:
    """Tests for adding, selecting and removing worksheets."""

    def test_add_worksheet_sets_current(self, builder: ExcelBuilder) -> None:
        sheet = builder.add_worksheet("Sales", tab_color="#00FF00")
        assert builder.current_worksheet is sheet
        assert builder.get_worksheet("Sales") is sheet
        assert sheet.config.tab_color == "#00FF00"

    def test_duplicate_name_raises(self, builder: ExcelBuilder) -> None:
        builder.add_worksheet("Sales")
        with pytest.raises(WorksheetExistsError) as exc_info:
            builder.add_worksheet("Sales")
        assert exc_info.value.error_code == ErrorCode.WORKSHEET_EXISTS
        assert len(builder.worksheets) == 1

    def test_worksheet_limit(self) -> None:
        builder = ExcelBuilder(BuilderConfig(max_worksheets=1))
        builder.add_worksheet("One")
        with pytest.raises(WorksheetError) as exc_info:
            builder.add_worksheet("Two")
        assert exc_info.value.error_code == ErrorCode.WORKSHEET_LIMIT_EXCEEDED

    @pytest.mark.parametrize("name", ["", "   ", "x" * 32, "bad/name", "what?", "'quoted'"])
    def test_invalid_names_rejected(self, builder: ExcelBuilder, name: str) -> None:
        with pytest.raises(WorksheetError) as exc_info:
            builder.add_worksheet(name)
        assert exc_info.value.error_code == ErrorCode.INVALID_WORKSHEET_NAME
        assert builder.worksheets == {}

    def test_name_validation_can_be_disabled(self) -> None:
        builder = ExcelBuilder(BuilderConfig(enable_validation=False))
        builder.add_worksheet("x" * 40)
        assert len(builder.worksheets) == 1

    def test_valid_name_passes(self) -> None:
        validate_worksheet_name("Q3 Sales (final)")

    def test_remove_worksheet(self, builder: ExcelBuilder) -> None:
        builder.add_worksheet("Sales")
        assert builder.remove_worksheet("Sales") is True
        assert builder.remove_worksheet("Sales") is False
        assert builder.current_worksheet is None

    def test_set_current_worksheet(self, builder: ExcelBuilder) -> None:
        first = builder.add_worksheet("First")
        builder.add_worksheet("Second")
        assert builder.set_current_worksheet("First") is True
        assert builder.current_worksheet is first
        assert builder.set_current_worksheet("Missing") is False
        assert builder.current_worksheet is first

    def test_clear(self, builder: ExcelBuilder) -> None:
        builder.add_worksheet("Sales")
        builder.clear()
        assert builder.worksheets == {}
        assert builder.current_worksheet is None


class TestValidate:
    """Tests for ExcelBuilder.validate."""

    def test_no_worksheets(self, builder: ExcelBuilder) -> None:
        result = builder.validate()
        assert isinstance(result, Failure)
        assert result.error.kind == ErrorType.VALIDATION_ERROR
        assert "No worksheets found" in result.error.message
        assert result.error.details["error_code"] == ErrorCode.EMPTY_WORKBOOK.value

    def test_empty_worksheet_reported(self, builder: ExcelBuilder) -> None:
        builder.add_worksheet("Empty")
        result = builder.validate()
        assert isinstance(result, Failure)
        assert 'Worksheet "Empty"' in result.error.message
        assert result.error.details["error_code"] == ErrorCode.VALIDATION_FAILED.value

    def test_valid_builder(self, builder: ExcelBuilder) -> None:
        add_sales_sheet(builder)
        assert isinstance(builder.validate(), Success)

    def test_removing_all_worksheets_invalidates(self, builder: ExcelBuilder) -> None:
        """A builder that was valid fails again once its last sheet is removed."""
        add_sales_sheet(builder)
        assert isinstance(builder.validate(), Success)

        assert builder.remove_worksheet("Sales") is True
        result = builder.validate()

        assert isinstance(result, Failure)
        assert result.error.kind == ErrorType.VALIDATION_ERROR
        assert result.error.details["error_code"] == ErrorCode.EMPTY_WORKBOOK.value


class TestBuild:
    """Tests for ExcelBuilder.build."""

    async def test_round_trip(
        self, builder: ExcelBuilder, load_xlsx: Callable[[bytes], Workbook]
    ) -> None:
        add_sales_sheet(builder, rows=2)
        add_sales_sheet(builder, name="Returns")

        result = await builder.build()

        assert isinstance(result, Success)
        wb = load_xlsx(result.data)
        assert wb.sheetnames == ["Sales", "Returns"]
        ws = wb["Sales"]
        assert ws["A1"].value == "Sales Report"
        assert ws["B2"].value == "Amount"
        assert ws["A4"].value == "Item 1"
        assert ws["B4"].value == 10
        assert ws["A5"].value == "Total"
        assert {str(r) for r in ws.merged_cells.ranges} == {"A1:B1", "A5:B5"}

    async def test_empty_builder_keeps_default_sheet(
        self, builder: ExcelBuilder, load_xlsx: Callable[[bytes], Workbook]
    ) -> None:
        result = await builder.build()
        assert isinstance(result, Success)
        assert load_xlsx(result.data).sheetnames == ["Sheet"]

    async def test_metadata(self, load_xlsx: Callable[[bytes], Workbook]) -> None:
        builder = ExcelBuilder(
            BuilderConfig(
                metadata=WorkbookMetadata(
                    title="Quarterly", subject="Sales", company="Acme", manager="Kim"
                )
            )
        )
        add_sales_sheet(builder)
        result = await builder.build()

        wb = load_xlsx(result.data)
        assert wb.properties.creator == "Han Excel Builder"
        assert wb.properties.title == "Quarterly"
        assert wb.properties.subject == "Sales"
        custom = {prop.name: prop.value for prop in wb.custom_doc_props.props}
        assert custom == {"Company": "Acme", "Manager": "Kim"}

    async def test_stats(self, builder: ExcelBuilder) -> None:
        add_sales_sheet(builder, rows=3)
        result = await builder.build()

        stats = builder.get_stats()
        assert stats.total_worksheets == 1
        # title, two sub-headers, three rows of two cells, footer
        assert stats.total_cells == 10
        assert stats.file_size == len(result.data)
        assert stats.build_time > 0

        stats.total_cells = 0
        assert builder.get_stats().total_cells == 10

    async def test_concurrent_build_rejected(self, builder: ExcelBuilder) -> None:
        add_sales_sheet(builder)
        results = await asyncio.gather(builder.build(), builder.build())

        failures = [r for r in results if isinstance(r, Failure)]
        assert len(failures) == 1
        assert failures[0].error.kind == ErrorType.BUILD_ERROR
        assert failures[0].error.message == "Build already in progress"
        assert builder.is_building is False

    async def test_build_again_after_success(self, builder: ExcelBuilder) -> None:
        add_sales_sheet(builder)
        first = await builder.build()
        second = await builder.build()
        assert isinstance(first, Success)
        assert isinstance(second, Success)

    async def test_failure_resets_flag(self) -> None:
        builder = ExcelBuilder(BuilderConfig(max_rows_per_worksheet=2))
        add_sales_sheet(builder, rows=5)

        result = await builder.build()

        assert isinstance(result, Failure)
        assert result.error.kind == ErrorType.BUILD_ERROR
        assert result.error.details["error_code"] == ErrorCode.ROW_LIMIT_EXCEEDED.value
        assert result.error.stack
        assert builder.is_building is False

    async def test_to_blob(self, builder: ExcelBuilder) -> None:
        add_sales_sheet(builder)
        result = await builder.to_blob()
        assert isinstance(result, Success)
        assert isinstance(result.data, Blob)
        assert result.data.mime_type == XLSX_MIME_TYPE
        assert result.data.size == len(result.data.data)

    async def test_to_buffer(self, builder: ExcelBuilder) -> None:
        add_sales_sheet(builder)
        result = await builder.to_buffer()
        assert isinstance(result.data, bytes)
        assert result.data[:2] == b"PK"


class TestDownload:
    """Tests for generate_and_download."""

    async def test_writes_file(self, builder: ExcelBuilder, tmp_path: Path) -> None:
        add_sales_sheet(builder)
        result = await builder.generate_and_download(
            "report", DownloadOptions(directory=tmp_path)
        )

        assert isinstance(result, Success)
        assert result.data == tmp_path / "report.xlsx"
        assert result.data.read_bytes()[:2] == b"PK"

    async def test_unwritable_directory(self, builder: ExcelBuilder, tmp_path: Path) -> None:
        blocker = tmp_path / "blocker"
        blocker.write_text("not a directory")
        add_sales_sheet(builder)
        events: list[BuilderEvent] = []
        builder.on(BuilderEventType.DOWNLOAD_ERROR, events.append)

        result = await builder.generate_and_download(
            "report.xlsx", DownloadOptions(directory=blocker)
        )

        assert isinstance(result, Failure)
        assert result.error.details["error_code"] == ErrorCode.DOWNLOAD_FAILED.value
        assert len(events) == 1

    async def test_build_failure_is_returned(self, tmp_path: Path) -> None:
        builder = ExcelBuilder(BuilderConfig(max_rows_per_worksheet=1))
        add_sales_sheet(builder)
        result = await builder.generate_and_download(
            "report", DownloadOptions(directory=tmp_path)
        )
        assert isinstance(result, Failure)
        assert not (tmp_path / "report.xlsx").exists()


class TestEvents:
    """Tests for builder lifecycle events."""

    def test_worksheet_added_and_removed(self, builder: ExcelBuilder) -> None:
        events: list[BuilderEvent] = []
        builder.on(BuilderEventType.WORKSHEET_ADDED, events.append)
        builder.on(BuilderEventType.WORKSHEET_REMOVED, events.append)

        builder.add_worksheet("Sales")
        builder.remove_worksheet("Sales")

        assert [e.type for e in events] == [
            BuilderEventType.WORKSHEET_ADDED,
            BuilderEventType.WORKSHEET_REMOVED,
        ]
        assert events[0].data == {"worksheet_name": "Sales"}

    async def test_build_events_in_order(self, builder: ExcelBuilder) -> None:
        events: list[BuilderEvent] = []
        for event_type in (
            BuilderEventType.BUILD_STARTED,
            BuilderEventType.BUILD_PROGRESS,
            BuilderEventType.BUILD_COMPLETED,
        ):
            builder.on(event_type, events.append)
        add_sales_sheet(builder, name="One")
        add_sales_sheet(builder, name="Two")

        await builder.build()

        assert [e.type_name for e in events] == [
            "buildStarted",
            "buildProgress",
            "buildProgress",
            "buildCompleted",
        ]
        assert events[2].data["current"] == 2
        assert events[2].data["progress"] == 100
        assert events[3].data["file_size"] > 0

    async def test_build_error_event(self) -> None:
        builder = ExcelBuilder(BuilderConfig(max_rows_per_worksheet=1))
        events: list[BuilderEvent] = []
        builder.on(BuilderEventType.BUILD_ERROR, events.append)
        add_sales_sheet(builder)

        await builder.build()

        assert len(events) == 1
        assert events[0].data["error"]["kind"] == "BUILD_ERROR"

    async def test_events_disabled(self) -> None:
        builder = ExcelBuilder(BuilderConfig(enable_events=False))
        events: list[BuilderEvent] = []
        builder.on(BuilderEventType.BUILD_STARTED, events.append)
        add_sales_sheet(builder)
        await builder.build()
        assert events == []

    def test_off_and_remove_all_listeners(self, builder: ExcelBuilder) -> None:
        listener_id = builder.on(BuilderEventType.BUILD_STARTED, lambda e: None)
        builder.once(BuilderEventType.BUILD_COMPLETED, lambda e: None)
        builder.on(BuilderEventType.BUILD_COMPLETED, lambda e: None)

        assert builder.off(BuilderEventType.BUILD_STARTED, listener_id) is True
        builder.remove_all_listeners(BuilderEventType.BUILD_COMPLETED)
        assert builder.events.listener_count(BuilderEventType.BUILD_COMPLETED) == 0

        builder.on(BuilderEventType.BUILD_ERROR, lambda e: None)
        builder.remove_all_listeners()
        assert builder.events.event_types() == []


class TestCreateBuilder:
    """Tests for the create_builder factory."""

    def test_overrides(self) -> None:
        builder = create_builder(max_worksheets=3, enable_events=False)
        assert builder.config.max_worksheets == 3
        assert builder.config.enable_events is False
        assert builder.config.metadata.author == "han-excel"
