"""Style descriptors, the fluent StyleBuilder and openpyxl conversion."""

from han_excel.styles.builder import StyleBuilder
from han_excel.styles.converter import apply_style, convert_color, convert_style
from han_excel.styles.style import (
    Alignment,
    Border,
    BorderSide,
    BorderStyle,
    Color,
    ConditionalFormat,
    Fill,
    Font,
    FontStyle,
    GradientStop,
    HorizontalAlignment,
    Protection,
    RGBColor,
    Style,
    ThemeColor,
    VerticalAlignment,
)
from han_excel.styles.themes import (
    StylePreset,
    StyleTheme,
    ThemePalette,
    create_default_theme,
    get_theme,
)

__all__ = [
    "Alignment",
    "Border",
    "BorderSide",
    "BorderStyle",
    "Color",
    "ConditionalFormat",
    "Fill",
    "Font",
    "FontStyle",
    "GradientStop",
    "HorizontalAlignment",
    "Protection",
    "RGBColor",
    "Style",
    "StyleBuilder",
    "StylePreset",
    "StyleTheme",
    "ThemeColor",
    "ThemePalette",
    "VerticalAlignment",
    "apply_style",
    "convert_color",
    "convert_style",
    "create_default_theme",
    "get_theme",
]
