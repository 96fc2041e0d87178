"""Layout engine for fitting a chat message onto the OLED.

Converts a ``ChatMessage`` into a header line and a list of wrapped body
lines positioned in pixel coordinates. The body box has a fixed width and
a height fitted to its content, so text is never dropped by the layout.
"""

from __future__ import annotations

import re
import string
from dataclasses import dataclass

from matrix_oled.channel import ChatMessage
from matrix_oled.font import FONT_5X7, MonoFont

DISPLAY_WIDTH = 128
HEADER_BASELINE_Y = 7
BODY_TOP_Y = 9

_WORD_SEPARATORS = re.compile(r"[^\S\n]+")
# Only a-z are mapped so the header keeps one glyph per character
_ASCII_UPPER = str.maketrans(string.ascii_lowercase, string.ascii_uppercase)


@dataclass
class LayoutData:
    """Positioned text for one screen."""

    header: str  # Upper-cased sender label
    header_origin: tuple[int, int]  # Top-left of the header cell row
    body_lines: list[str]
    body_origin: tuple[int, int]  # Top-left of the body box
    line_height: int

    @property
    def body_height(self) -> int:
        """Height of the body box, fitted to the wrapped text."""
        return len(self.body_lines) * self.line_height

    def body_line_origins(self) -> list[tuple[int, int]]:
        x, y = self.body_origin
        return [(x, y + index * self.line_height) for index in range(len(self.body_lines))]


class LayoutEngine:
    """Compute header and body placement for a message.

    Words are kept whole: a line break only happens at whitespace, and a
    word wider than the box goes on a line of its own and runs past the
    right edge.
    """

    def __init__(self, font: MonoFont = FONT_5X7, width: int = DISPLAY_WIDTH):
        self.font = font
        self.width = width

    def process(self, message: ChatMessage) -> LayoutData:
        header = message.sender.translate(_ASCII_UPPER)
        header_top = HEADER_BASELINE_Y - self.font.baseline

        return LayoutData(
            header=header,
            header_origin=(0, header_top),
            body_lines=self.wrap(message.content, self.width),
            body_origin=(0, BODY_TOP_Y),
            line_height=self.font.cell_height,
        )

    def wrap(self, text: str, width: int) -> list[str]:
        """Wrap text into lines that fit ``width`` pixels.

        Args:
            text: Body text, may contain newlines
            width: Box width in pixels

        Returns:
            Wrapped lines; explicit newlines always start a new line
        """
        columns = self.font.columns_for(width)
        lines: list[str] = []

        for paragraph in text.replace("\r\n", "\n").split("\n"):
            lines.extend(self._wrap_paragraph(paragraph, columns))

        # A trailing newline does not add a visible line
        while lines and not lines[-1]:
            lines.pop()

        return lines

    def _wrap_paragraph(self, paragraph: str, columns: int) -> list[str]:
        words = [word for word in _WORD_SEPARATORS.split(paragraph) if word]
        if not words:
            return [""]

        lines: list[str] = []
        current = ""

        for word in words:
            candidate = f"{current} {word}" if current else word
            if len(candidate) <= columns:
                current = candidate
                continue

            if current:
                lines.append(current)
            # Over-long words stay whole on their own line
            current = word

        lines.append(current)
        return lines
