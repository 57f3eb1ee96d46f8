"""Named style themes with presets for common cell roles."""

from dataclasses import dataclass, field
from enum import Enum

from han_excel.styles.builder import StyleBuilder
from han_excel.styles.style import BorderStyle, Color, Style
from han_excel.utils.exceptions import ErrorCode, StyleError


class StylePreset(str, Enum):
    HEADER = "header"
    SUBHEADER = "subheader"
    DATA = "data"
    FOOTER = "footer"
    TOTAL = "total"
    HIGHLIGHT = "highlight"
    WARNING = "warning"
    ERROR = "error"
    SUCCESS = "success"
    INFO = "info"


@dataclass(frozen=True)
class ThemePalette:
    primary: Color
    secondary: Color
    accent: Color
    background: Color
    text: Color
    border: Color
    success: Color
    warning: Color
    error: Color
    info: Color


@dataclass(frozen=True)
class StyleTheme:
    """A palette, a base font and one style per preset."""

    name: str
    colors: ThemePalette
    font_family: str
    font_size: float
    presets: dict[StylePreset, Style] = field(default_factory=dict)
    description: str | None = None

    def get(self, preset: StylePreset | str) -> Style:
        """Return the style for ``preset``.

        Raises:
            StyleError: If the theme has no such preset.
        """
        try:
            return self.presets[StylePreset(preset)]
        except (KeyError, ValueError) as e:
            raise StyleError(
                f'Theme "{self.name}" has no preset "{preset}"',
                error_code=ErrorCode.INVALID_STYLE,
                details={"theme": self.name, "preset": str(preset)},
            ) from e


def _base(palette: ThemePalette, family: str, size: float) -> StyleBuilder:
    return (
        StyleBuilder.create()
        .font_name(family)
        .font_size(size)
        .font_color(palette.text)
        .border(BorderStyle.THIN, palette.border)
    )


def _build_presets(
    palette: ThemePalette, family: str, size: float
) -> dict[StylePreset, Style]:
    def banner(background: Color) -> Style:
        return (
            _base(palette, family, size)
            .font_bold()
            .font_color("#FFFFFF")
            .background_color(background)
            .build()
        )

    return {
        StylePreset.HEADER: (
            _base(palette, family, size + 2)
            .font_bold()
            .font_color("#FFFFFF")
            .background_color(palette.primary)
            .build()
        ),
        StylePreset.SUBHEADER: banner(palette.secondary),
        StylePreset.DATA: _base(palette, family, size).left_align().build(),
        StylePreset.FOOTER: (
            _base(palette, family, size)
            .font_italic()
            .background_color(palette.background)
            .build()
        ),
        StylePreset.TOTAL: (
            _base(palette, family, size)
            .font_bold()
            .border_top(BorderStyle.DOUBLE, palette.border)
            .background_color(palette.background)
            .build()
        ),
        StylePreset.HIGHLIGHT: (
            _base(palette, family, size).background_color(palette.accent).build()
        ),
        StylePreset.WARNING: banner(palette.warning),
        StylePreset.ERROR: banner(palette.error),
        StylePreset.SUCCESS: banner(palette.success),
        StylePreset.INFO: banner(palette.info),
    }


def create_default_theme() -> StyleTheme:
    """Blue office-style theme used when no other theme is chosen."""
    palette = ThemePalette(
        primary="#4472C4",
        secondary="#5B9BD5",
        accent="#FFC000",
        background="#F2F2F2",
        text="#000000",
        border="#8EAADB",
        success="#70AD47",
        warning="#ED7D31",
        error="#C00000",
        info="#4BACC6",
    )
    return StyleTheme(
        name="default",
        description="Blue headers, light borders",
        colors=palette,
        font_family="Calibri",
        font_size=11,
        presets=_build_presets(palette, "Calibri", 11),
    )


def create_dark_theme() -> StyleTheme:
    palette = ThemePalette(
        primary="#262626",
        secondary="#404040",
        accent="#FFD966",
        background="#D9D9D9",
        text="#000000",
        border="#7F7F7F",
        success="#548235",
        warning="#C55A11",
        error="#9C0006",
        info="#2F5597",
    )
    return StyleTheme(
        name="dark",
        description="Charcoal headers, grey borders",
        colors=palette,
        font_family="Arial",
        font_size=10,
        presets=_build_presets(palette, "Arial", 10),
    )


_THEMES = {
    "default": create_default_theme,
    "dark": create_dark_theme,
}


def get_theme(name: str = "default") -> StyleTheme:
    """Look up a built-in theme by name.

    Raises:
        StyleError: If no theme has that name.
    """
    factory = _THEMES.get(name.lower())
    if factory is None:
        raise StyleError(
            f'Unknown theme "{name}"',
            error_code=ErrorCode.INVALID_STYLE,
            details={"available": sorted(_THEMES)},
        )
    return factory()
