"""Cell descriptors staged on worksheets before a build."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any

from openpyxl.utils import get_column_letter

if TYPE_CHECKING:
    from han_excel.styles.style import Style


class CellType(str, Enum):
    """Kind of value a cell holds."""

    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    DATE = "date"
    PERCENTAGE = "percentage"
    CURRENCY = "currency"
    LINK = "link"
    FORMULA = "formula"


class NumberFormat(str, Enum):
    """Common Excel number format codes."""

    GENERAL = "General"
    NUMBER = "#,##0"
    NUMBER_DECIMALS = "#,##0.00"
    CURRENCY = "$#,##0.00"
    CURRENCY_INTEGER = "$#,##0"
    PERCENTAGE = "0%"
    PERCENTAGE_DECIMALS = "0.00%"
    DATE = "dd/mm/yyyy"
    DATE_TIME = "dd/mm/yyyy hh:mm"
    TIME = "hh:mm:ss"


@dataclass
class DataValidationRule:
    """Data validation attached to a single cell.

    Attributes:
        type: Validation kind (list, whole, decimal, date, time, textLength, custom).
        operator: Comparison operator for numeric kinds (between, equal, ...).
        formula1: First formula or literal; for ``list`` a comma-separated
            string or a list of allowed values.
        formula2: Second bound for ``between`` style operators.
        allow_blank: Whether empty input is accepted.
        show_error_message: Whether Excel shows the error box.
        error_title: Title of the error box.
        error: Body of the error box.
        prompt_title: Title of the input prompt.
        prompt: Body of the input prompt.
    """

    type: str = "list"
    operator: str | None = None
    formula1: str | list[Any] | None = None
    formula2: str | None = None
    allow_blank: bool = True
    show_error_message: bool = True
    error_title: str | None = None
    error: str | None = None
    prompt_title: str | None = None
    prompt: str | None = None


@dataclass
class BaseCell:
    """Fields shared by header, data and footer cells."""

    key: str
    value: Any = None
    type: CellType = CellType.STRING
    styles: Style | None = None
    number_format: str | NumberFormat | None = None
    merge_cell: bool = False
    merge_to: int | None = None
    children: list[Any] = field(default_factory=list)
    row_height: float | None = None
    col_width: float | None = None
    link: str | None = None
    mask: str | None = None
    formula: str | None = None
    comment: str | None = None
    validation: DataValidationRule | None = None
    protected: bool | None = None
    hidden: bool | None = None

    @property
    def has_children(self) -> bool:
        return bool(self.children)

    def resolved_number_format(self) -> str | None:
        if isinstance(self.number_format, NumberFormat):
            return self.number_format.value
        return self.number_format


@dataclass
class HeaderCell(BaseCell):
    """Title row or sub-header column cell."""

    children: list[HeaderCell] = field(default_factory=list)


@dataclass
class DataCell(BaseCell):
    """Body cell; ``header`` names the sub-header column it belongs to."""

    header: str | None = None
    children: list[DataCell] = field(default_factory=list)


@dataclass
class FooterCell(BaseCell):
    """Footer row cell."""

    header: str | None = None
    children: list[FooterCell] = field(default_factory=list)


@dataclass(frozen=True)
class CellPosition:
    """1-based grid coordinate recorded for named header cells."""

    row: int
    col: int

    @property
    def reference(self) -> str:
        return f"{get_column_letter(self.col)}{self.row}"
