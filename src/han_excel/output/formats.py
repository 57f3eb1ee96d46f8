"""Dataclasses representing the shapes produced by ExcelReader."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

import pandas as pd


class OutputFormat(str, Enum):
    """Projection selected by ReaderOptions.output_format."""

    WORKSHEET = "worksheet"
    DETAILED = "detailed"
    FLAT = "flat"


def _without_none(values: dict[str, Any]) -> dict[str, Any]:
    return {key: value for key, value in values.items() if value is not None}


@dataclass
class JsonCell:
    """A single cell with its value type and A1 reference."""

    value: Any
    type: str
    reference: str
    formatted_value: str | None = None
    formula: str | None = None
    comment: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "value": self.value,
            **_without_none(
                {
                    "type": self.type,
                    "reference": self.reference,
                    "formatted_value": self.formatted_value,
                    "formula": self.formula,
                    "comment": self.comment,
                }
            ),
        }


@dataclass
class JsonRow:
    """A worksheet row; ``data`` maps header names to values when headers are used."""

    row_number: int
    cells: list[JsonCell] = field(default_factory=list)
    data: dict[str, Any] | None = None

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "row_number": self.row_number,
            "cells": [cell.to_dict() for cell in self.cells],
        }
        if self.data is not None:
            result["data"] = self.data
        return result


@dataclass
class JsonSheet:
    """Represents one worksheet in the nested projection."""

    name: str
    index: int
    rows: list[JsonRow] = field(default_factory=list)
    headers: list[str] | None = None
    total_rows: int = 0
    total_columns: int = 0

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "name": self.name,
            "index": self.index,
            "rows": [row.to_dict() for row in self.rows],
            "total_rows": self.total_rows,
            "total_columns": self.total_columns,
        }
        if self.headers is not None:
            result["headers"] = self.headers
        return result


@dataclass
class JsonWorkbook:
    """Nested projection: sheets containing rows containing cells."""

    sheets: list[JsonSheet] = field(default_factory=list)
    total_sheets: int = 0
    metadata: dict[str, Any] | None = None

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "sheets": [sheet.to_dict() for sheet in self.sheets],
            "total_sheets": self.total_sheets,
        }
        if self.metadata is not None:
            result["metadata"] = self.metadata
        return result


@dataclass
class DetailedCell:
    """A cell annotated with its sheet and grid position."""

    value: Any
    text: str
    column: int
    column_letter: str
    row: int
    reference: str
    sheet: str
    type: str | None = None
    formatted_value: str | None = None
    formula: str | None = None
    comment: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "value": self.value,
            **_without_none(
                {
                    "text": self.text,
                    "column": self.column,
                    "column_letter": self.column_letter,
                    "row": self.row,
                    "reference": self.reference,
                    "sheet": self.sheet,
                    "type": self.type,
                    "formatted_value": self.formatted_value,
                    "formula": self.formula,
                    "comment": self.comment,
                }
            ),
        }


@dataclass
class DetailedFormat:
    """Detailed projection: one flat list of cells across all selected sheets."""

    cells: list[DetailedCell] = field(default_factory=list)
    total_cells: int = 0
    metadata: dict[str, Any] | None = None

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "cells": [cell.to_dict() for cell in self.cells],
            "total_cells": self.total_cells,
        }
        if self.metadata is not None:
            result["metadata"] = self.metadata
        return result


@dataclass
class FlatSheet:
    """Flat projection of one sheet.

    ``data`` holds dicts keyed by header when headers were read from the
    first row, and plain lists of values otherwise.
    """

    data: list[dict[str, Any] | list[Any]] = field(default_factory=list)
    headers: list[str] | None = None
    sheet: str = ""
    total_rows: int = 0

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "data": self.data,
            "total_rows": self.total_rows,
            "sheet": self.sheet,
        }
        if self.headers is not None:
            result["headers"] = self.headers
        return result

    def to_dataframe(self) -> pd.DataFrame:
        """Return the rows as a pandas DataFrame."""
        if self.headers is not None:
            return pd.DataFrame(self.data, columns=self.headers)
        return pd.DataFrame(self.data)


@dataclass
class FlatWorkbook:
    """Flat projection of several sheets keyed by sheet name."""

    sheets: dict[str, FlatSheet] = field(default_factory=dict)
    total_sheets: int = 0
    metadata: dict[str, Any] | None = None

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "sheets": {name: sheet.to_dict() for name, sheet in self.sheets.items()},
            "total_sheets": self.total_sheets,
        }
        if self.metadata is not None:
            result["metadata"] = self.metadata
        return result
