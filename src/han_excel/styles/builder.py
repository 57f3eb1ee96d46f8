"""Chainable builder producing immutable Style descriptors.

Setters accumulate into a mutable draft and return the builder, so a style
reads as one expression:

    style = (
        StyleBuilder.create()
        .font_bold()
        .font_color("#FFFFFF")
        .background_color("#4472C4")
        .border(BorderStyle.THIN)
        .build()
    )

``build()`` copies the draft into frozen dataclasses; later setter calls do
not affect styles that were already built.
"""

import copy
from typing import Any

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
    HorizontalAlignment,
    Style,
    VerticalAlignment,
)


def _default_alignment() -> dict[str, Any]:
    return {
        "horizontal": HorizontalAlignment.CENTER,
        "vertical": VerticalAlignment.MIDDLE,
        "wrap_text": True,
        "shrink_to_fit": True,
    }


class StyleBuilder:
    """Fluent accumulator for a Style.

    A new builder starts with centered, middle, wrapped and shrink-to-fit
    alignment.
    """

    def __init__(self) -> None:
        self._draft: dict[str, Any] = {}
        self.reset()

    @classmethod
    def create(cls) -> "StyleBuilder":
        return cls()

    def _part(self, name: str) -> dict[str, Any]:
        return self._draft.setdefault(name, {})

    # -- font -----------------------------------------------------------------

    def font_name(self, name: str) -> "StyleBuilder":
        self._part("font")["name"] = name
        return self

    def font_size(self, size: float) -> "StyleBuilder":
        self._part("font")["size"] = size
        return self

    def font_style(self, style: FontStyle) -> "StyleBuilder":
        self._part("font")["style"] = style
        return self

    def font_color(self, color: Color) -> "StyleBuilder":
        self._part("font")["color"] = color
        return self

    def font_bold(self) -> "StyleBuilder":
        self._part("font")["bold"] = True
        return self

    def font_italic(self) -> "StyleBuilder":
        self._part("font")["italic"] = True
        return self

    def font_underline(self) -> "StyleBuilder":
        self._part("font")["underline"] = True
        return self

    # -- border ---------------------------------------------------------------

    def _border_side(
        self, sides: tuple[str, ...], style: BorderStyle | str, color: Color | None
    ) -> "StyleBuilder":
        border = self._part("border")
        for side in sides:
            border[side] = BorderSide(style=style, color=color)
        return self

    def border(
        self, style: BorderStyle | str, color: Color | None = None
    ) -> "StyleBuilder":
        """Set the same border on all four sides."""
        return self._border_side(("top", "left", "bottom", "right"), style, color)

    def border_top(
        self, style: BorderStyle | str, color: Color | None = None
    ) -> "StyleBuilder":
        return self._border_side(("top",), style, color)

    def border_left(
        self, style: BorderStyle | str, color: Color | None = None
    ) -> "StyleBuilder":
        return self._border_side(("left",), style, color)

    def border_bottom(
        self, style: BorderStyle | str, color: Color | None = None
    ) -> "StyleBuilder":
        return self._border_side(("bottom",), style, color)

    def border_right(
        self, style: BorderStyle | str, color: Color | None = None
    ) -> "StyleBuilder":
        return self._border_side(("right",), style, color)

    # -- fill -----------------------------------------------------------------

    def background_color(self, color: Color) -> "StyleBuilder":
        """Use a solid fill of the given color."""
        fill = self._part("fill")
        fill["type"] = "pattern"
        fill["pattern"] = "solid"
        fill["background_color"] = color
        return self

    # -- alignment ------------------------------------------------------------

    def horizontal_align(self, alignment: HorizontalAlignment | str) -> "StyleBuilder":
        self._part("alignment")["horizontal"] = alignment
        return self

    def vertical_align(self, alignment: VerticalAlignment | str) -> "StyleBuilder":
        self._part("alignment")["vertical"] = alignment
        return self

    def center_align(self) -> "StyleBuilder":
        alignment = self._part("alignment")
        alignment["horizontal"] = HorizontalAlignment.CENTER
        alignment["vertical"] = VerticalAlignment.MIDDLE
        return self

    def left_align(self) -> "StyleBuilder":
        return self.horizontal_align(HorizontalAlignment.LEFT)

    def right_align(self) -> "StyleBuilder":
        return self.horizontal_align(HorizontalAlignment.RIGHT)

    def wrap_text(self, enabled: bool = True) -> "StyleBuilder":
        self._part("alignment")["wrap_text"] = enabled
        return self

    # -- misc -----------------------------------------------------------------

    def number_format(self, fmt: str) -> "StyleBuilder":
        self._draft["number_format"] = fmt
        return self

    def striped(self) -> "StyleBuilder":
        self._draft["striped"] = True
        return self

    def conditional_format(self, rule: ConditionalFormat) -> "StyleBuilder":
        self._draft.setdefault("conditional_formats", []).append(rule)
        return self

    # -- lifecycle ------------------------------------------------------------

    def build(self) -> Style:
        """Freeze the current draft into a Style."""
        draft = copy.deepcopy(self._draft)
        return Style(
            font=Font(**draft["font"]) if "font" in draft else None,
            fill=Fill(**draft["fill"]) if "fill" in draft else None,
            border=Border(**draft["border"]) if "border" in draft else None,
            alignment=Alignment(**draft["alignment"]) if "alignment" in draft else None,
            number_format=draft.get("number_format"),
            striped=draft.get("striped", False),
            conditional_formats=tuple(draft.get("conditional_formats", ())),
        )

    def reset(self) -> "StyleBuilder":
        """Discard the draft and restore the default alignment."""
        self._draft = {"alignment": _default_alignment()}
        return self

    def clone(self) -> "StyleBuilder":
        cloned = StyleBuilder()
        cloned._draft = copy.deepcopy(self._draft)
        return cloned
