"""Immutable style descriptors attached to cells."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Literal


class HorizontalAlignment(str, Enum):
    LEFT = "left"
    CENTER = "center"
    RIGHT = "right"
    FILL = "fill"
    JUSTIFY = "justify"
    CENTER_CONTINUOUS = "centerContinuous"
    DISTRIBUTED = "distributed"


class VerticalAlignment(str, Enum):
    TOP = "top"
    MIDDLE = "middle"
    BOTTOM = "bottom"
    DISTRIBUTED = "distributed"
    JUSTIFY = "justify"


class BorderStyle(str, Enum):
    THIN = "thin"
    MEDIUM = "medium"
    THICK = "thick"
    DOTTED = "dotted"
    DASHED = "dashed"
    DOUBLE = "double"
    HAIR = "hair"
    MEDIUM_DASHED = "mediumDashed"
    DASH_DOT = "dashDot"
    MEDIUM_DASH_DOT = "mediumDashDot"
    DASH_DOT_DOT = "dashDotDot"
    MEDIUM_DASH_DOT_DOT = "mediumDashDotDot"
    SLANT_DASH_DOT = "slantDashDot"


class FontStyle(str, Enum):
    NORMAL = "normal"
    BOLD = "bold"
    ITALIC = "italic"
    BOLD_ITALIC = "bold italic"


@dataclass(frozen=True)
class RGBColor:
    """Color given as 0-255 red, green and blue components."""

    r: int
    g: int
    b: int


@dataclass(frozen=True)
class ThemeColor:
    """Color taken from the workbook theme palette by index."""

    theme: int
    tint: float = 0.0


# A hex string ("#RGB", "RRGGBB" or "AARRGGBB"), RGB components or a theme slot.
Color = str | RGBColor | ThemeColor


@dataclass(frozen=True)
class Font:
    name: str | None = None
    family: str | None = None
    size: float | None = None
    style: FontStyle | None = None
    color: Color | None = None
    bold: bool | None = None
    italic: bool | None = None
    underline: bool | None = None
    strikethrough: bool | None = None


@dataclass(frozen=True)
class GradientStop:
    position: float
    color: Color


@dataclass(frozen=True)
class Fill:
    """Pattern or gradient fill.

    For solid pattern fills ``background_color`` is the visible cell color.
    """

    type: Literal["pattern", "gradient"] = "pattern"
    pattern: str | None = "solid"
    background_color: Color | None = None
    foreground_color: Color | None = None
    gradient: Literal["linear", "path"] = "linear"
    stops: tuple[GradientStop, ...] = ()
    angle: float = 0.0


@dataclass(frozen=True)
class BorderSide:
    style: BorderStyle | str | None = None
    color: Color | None = None


@dataclass(frozen=True)
class Border:
    top: BorderSide | None = None
    left: BorderSide | None = None
    bottom: BorderSide | None = None
    right: BorderSide | None = None
    diagonal: BorderSide | None = None
    diagonal_direction: Literal["up", "down", "both"] | None = None


@dataclass(frozen=True)
class Alignment:
    horizontal: HorizontalAlignment | str | None = None
    vertical: VerticalAlignment | str | None = None
    wrap_text: bool | None = None
    shrink_to_fit: bool | None = None
    indent: int | None = None
    text_rotation: int | None = None
    reading_order: Literal["left-to-right", "right-to-left"] | None = None


@dataclass(frozen=True)
class Protection:
    locked: bool | None = None
    hidden: bool | None = None


@dataclass(frozen=True)
class ConditionalFormat:
    """Conditional formatting rule scoped to the cell it is attached to.

    Attributes:
        type: ``cellIs``, ``expression`` or ``containsText``.
        operator: Comparison operator for ``cellIs`` rules.
        values: Operands for ``cellIs`` rules, or the searched text.
        formula: Formula for ``expression`` rules.
        style: Style applied when the rule matches.
        priority: Rule priority.
        stop_if_true: Stop evaluating lower rules when this one matches.
    """

    type: str = "cellIs"
    operator: str | None = None
    values: tuple[Any, ...] = ()
    formula: str | None = None
    style: Style | None = None
    priority: int | None = None
    stop_if_true: bool = False


@dataclass(frozen=True)
class Style:
    """Complete style descriptor; every part is optional."""

    font: Font | None = None
    fill: Fill | None = None
    border: Border | None = None
    alignment: Alignment | None = None
    protection: Protection | None = None
    number_format: str | None = None
    striped: bool = False
    conditional_formats: tuple[ConditionalFormat, ...] = field(default_factory=tuple)

    @property
    def is_empty(self) -> bool:
        return (
            self.font is None
            and self.fill is None
            and self.border is None
            and self.alignment is None
            and self.protection is None
            and self.number_format is None
        )
