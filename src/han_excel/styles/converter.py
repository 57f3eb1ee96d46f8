"""Conversion of Style descriptors into openpyxl style objects.

The converter never raises. Parts that openpyxl cannot express (malformed
colors, unknown alignment keywords, unsupported border styles) are dropped
and logged so that a single bad style does not abort a workbook build.
"""

import re
from typing import Any

from openpyxl.cell.cell import Cell
from openpyxl.formatting.rule import CellIsRule, FormulaRule, Rule
from openpyxl.styles import Alignment as XLAlignment
from openpyxl.styles import Border as XLBorder
from openpyxl.styles import Color as XLColor
from openpyxl.styles import Font as XLFont
from openpyxl.styles import GradientFill, PatternFill, Side
from openpyxl.styles import Protection as XLProtection
from openpyxl.styles.differential import DifferentialStyle
from openpyxl.styles.fills import Stop

from han_excel.styles.style import (
    Alignment,
    Border,
    BorderSide,
    Color,
    ConditionalFormat,
    Fill,
    Font,
    FontStyle,
    Protection,
    RGBColor,
    Style,
    ThemeColor,
)
from han_excel.utils.logging import get_logger

logger = get_logger(__name__)

_HEX_RE = re.compile(r"^[0-9A-Fa-f]+$")

_HORIZONTAL = {
    "general",
    "left",
    "center",
    "right",
    "fill",
    "justify",
    "centerContinuous",
    "distributed",
}
_VERTICAL = {"top", "center", "bottom", "justify", "distributed"}
_VERTICAL_ALIASES = {"middle": "center"}
_READING_ORDER = {"left-to-right": 1, "right-to-left": 2}
MAX_TEXT_ROTATION = 180

STYLE_KEYS = ("font", "fill", "border", "alignment", "protection", "number_format")


def _enum_value(value: Any) -> Any:
    return getattr(value, "value", value)


def to_argb(color: str | RGBColor) -> str | None:
    """Normalize a hex string or RGB triple to an uppercase AARRGGBB string.

    Returns:
        The ARGB string, or None when the input is not a valid color.
    """
    if isinstance(color, RGBColor):
        components = (color.r, color.g, color.b)
        if not all(isinstance(c, int) and 0 <= c <= 255 for c in components):
            return None
        return "FF" + "".join(f"{c:02X}" for c in components)

    hex_value = color.strip().lstrip("#")
    if not hex_value or not _HEX_RE.match(hex_value):
        return None
    if len(hex_value) == 3:
        hex_value = "".join(c * 2 for c in hex_value)
    if len(hex_value) == 6:
        hex_value = "FF" + hex_value
    if len(hex_value) != 8:
        return None
    return hex_value.upper()


def convert_color(color: Color | None) -> XLColor | None:
    """Convert a color descriptor to an openpyxl Color."""
    if color is None:
        return None
    if isinstance(color, ThemeColor):
        return XLColor(theme=color.theme, tint=color.tint)
    argb = to_argb(color)
    if argb is None:
        logger.warning("Dropping invalid color", color=color)
        return None
    return XLColor(rgb=argb)


def _font_style(value: FontStyle | str | None) -> FontStyle | None:
    if value is None:
        return None
    try:
        return FontStyle(_enum_value(value))
    except ValueError:
        logger.warning("Dropping unknown font style", value=value)
        return None


def _convert_font(font: Font) -> XLFont:
    bold = font.bold
    italic = font.italic
    style = _font_style(font.style)
    if style is not None:
        if style in (FontStyle.BOLD, FontStyle.BOLD_ITALIC):
            bold = True
        if style in (FontStyle.ITALIC, FontStyle.BOLD_ITALIC):
            italic = True

    kwargs: dict[str, Any] = {}
    name = font.name or font.family
    if name is not None:
        kwargs["name"] = name
    if font.size is not None:
        kwargs["size"] = font.size
    if bold is not None:
        kwargs["bold"] = bold
    if italic is not None:
        kwargs["italic"] = italic
    if font.underline:
        kwargs["underline"] = "single"
    if font.strikethrough is not None:
        kwargs["strike"] = font.strikethrough
    color = convert_color(font.color)
    if color is not None:
        kwargs["color"] = color
    return XLFont(**kwargs)


def _convert_fill(fill: Fill) -> PatternFill | GradientFill | None:
    if fill.type == "gradient":
        stops = []
        for stop in fill.stops:
            color = convert_color(stop.color)
            if color is not None:
                stops.append(Stop(color, stop.position))
        if not stops:
            logger.warning("Dropping gradient fill without valid stops")
            return None
        return GradientFill(type=fill.gradient, degree=fill.angle, stop=stops)

    pattern = fill.pattern or "solid"
    if pattern == "none":
        return PatternFill(fill_type=None)

    background = convert_color(fill.background_color)
    foreground = convert_color(fill.foreground_color)
    if pattern == "solid":
        # openpyxl paints solid fills with the foreground slot
        color = background or foreground
        if color is None:
            return None
        return PatternFill(fill_type="solid", fgColor=color, bgColor=color)

    kwargs: dict[str, Any] = {"fill_type": pattern}
    if foreground is not None:
        kwargs["fgColor"] = foreground
    if background is not None:
        kwargs["bgColor"] = background
    try:
        return PatternFill(**kwargs)
    except (TypeError, ValueError):
        logger.warning("Dropping unsupported fill pattern", pattern=pattern)
        return None


def convert_side(side: BorderSide | None) -> Side | None:
    if side is None or side.style is None:
        return None
    style = _enum_value(side.style)
    try:
        return Side(style=style, color=convert_color(side.color))
    except (TypeError, ValueError):
        logger.warning("Dropping unsupported border style", style=style)
        return None


def _convert_border(border: Border) -> XLBorder:
    kwargs: dict[str, Any] = {}
    for name in ("top", "left", "bottom", "right", "diagonal"):
        side = convert_side(getattr(border, name))
        if side is not None:
            kwargs[name] = side
    if border.diagonal_direction in ("up", "both"):
        kwargs["diagonalUp"] = True
    if border.diagonal_direction in ("down", "both"):
        kwargs["diagonalDown"] = True
    return XLBorder(**kwargs)


def _convert_alignment(alignment: Alignment) -> XLAlignment:
    kwargs: dict[str, Any] = {}

    if alignment.horizontal is not None:
        horizontal = _enum_value(alignment.horizontal)
        if horizontal in _HORIZONTAL:
            kwargs["horizontal"] = horizontal
        else:
            logger.warning("Dropping unknown horizontal alignment", value=horizontal)

    if alignment.vertical is not None:
        vertical = _enum_value(alignment.vertical)
        vertical = _VERTICAL_ALIASES.get(vertical, vertical)
        if vertical in _VERTICAL:
            kwargs["vertical"] = vertical
        else:
            logger.warning("Dropping unknown vertical alignment", value=vertical)

    if alignment.wrap_text is not None:
        kwargs["wrap_text"] = alignment.wrap_text
    if alignment.shrink_to_fit is not None:
        kwargs["shrink_to_fit"] = alignment.shrink_to_fit
    if alignment.indent is not None:
        if alignment.indent >= 0:
            kwargs["indent"] = alignment.indent
        else:
            logger.warning("Dropping negative indent", value=alignment.indent)
    if alignment.text_rotation is not None:
        if 0 <= alignment.text_rotation <= MAX_TEXT_ROTATION:
            kwargs["text_rotation"] = alignment.text_rotation
        else:
            logger.warning(
                "Dropping out of range text rotation", value=alignment.text_rotation
            )
    if alignment.reading_order is not None:
        kwargs["readingOrder"] = _READING_ORDER.get(alignment.reading_order, 0)
    return XLAlignment(**kwargs)


def _convert_protection(protection: Protection) -> XLProtection:
    kwargs: dict[str, Any] = {}
    if protection.locked is not None:
        kwargs["locked"] = protection.locked
    if protection.hidden is not None:
        kwargs["hidden"] = protection.hidden
    return XLProtection(**kwargs)


def convert_style(style: Style | None) -> dict[str, Any]:
    """Convert a Style into openpyxl style objects.

    Args:
        style: Style descriptor, or None.

    Returns:
        Dictionary holding only the parts present on the input, keyed by
        ``font``, ``fill``, ``border``, ``alignment``, ``protection`` and
        ``number_format``. An absent style gives an empty dictionary.
    """
    if style is None:
        return {}

    converted: dict[str, Any] = {}
    if style.font is not None:
        converted["font"] = _convert_font(style.font)
    if style.fill is not None:
        fill = _convert_fill(style.fill)
        if fill is not None:
            converted["fill"] = fill
    if style.border is not None:
        converted["border"] = _convert_border(style.border)
    if style.alignment is not None:
        converted["alignment"] = _convert_alignment(style.alignment)
    if style.protection is not None:
        converted["protection"] = _convert_protection(style.protection)
    if style.number_format is not None:
        converted["number_format"] = style.number_format
    return converted


def apply_style(cell: Cell, converted: dict[str, Any]) -> None:
    """Assign converted style parts to an openpyxl cell."""
    for key in STYLE_KEYS:
        if key in converted:
            setattr(cell, key, converted[key])


def _formula_operand(value: Any) -> str:
    if isinstance(value, str):
        if value.startswith("="):
            return value[1:]
        escaped = value.replace('"', '""')
        return f'"{escaped}"'
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    return str(value)


def convert_conditional_format(rule: ConditionalFormat, reference: str) -> Rule | None:
    """Convert a conditional format entry for the cell at ``reference``.

    Supports ``cellIs``, ``expression`` and ``containsText`` rules; other
    kinds are dropped and logged.
    """
    parts = convert_style(rule.style)
    style_kwargs = {k: parts[k] for k in ("font", "fill", "border") if k in parts}

    if rule.type == "cellIs":
        if not rule.operator or not rule.values:
            logger.warning("Dropping cellIs rule without operator or values")
            return None
        xl_rule = CellIsRule(
            operator=rule.operator,
            formula=[_formula_operand(v) for v in rule.values],
            stopIfTrue=rule.stop_if_true,
            **style_kwargs,
        )
    elif rule.type == "expression":
        if not rule.formula:
            logger.warning("Dropping expression rule without formula")
            return None
        xl_rule = FormulaRule(
            formula=[rule.formula.lstrip("=")],
            stopIfTrue=rule.stop_if_true,
            **style_kwargs,
        )
    elif rule.type == "containsText":
        if not rule.values:
            logger.warning("Dropping containsText rule without text")
            return None
        text = str(rule.values[0])
        escaped = text.replace('"', '""')
        xl_rule = Rule(
            type="containsText",
            operator="containsText",
            text=text,
            formula=[f'NOT(ISERROR(SEARCH("{escaped}",{reference})))'],
            stopIfTrue=rule.stop_if_true,
            dxf=DifferentialStyle(**style_kwargs),
        )
    else:
        logger.warning("Dropping unsupported conditional format", type=rule.type)
        return None

    if rule.priority is not None:
        xl_rule.priority = rule.priority
    return xl_rule
