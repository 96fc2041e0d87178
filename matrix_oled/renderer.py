"""Message renderer for the OLED.

Draws a ``LayoutData`` onto the display surface in a fixed sequence:
clear, header, body, flush.
"""

from __future__ import annotations

import logging

from matrix_oled.display import DisplayDevice
from matrix_oled.font import FONT_5X7, MonoFont
from matrix_oled.layout_engine import LayoutData

logger = logging.getLogger(__name__)


class MessageRenderer:
    """Draws laid-out messages onto a display.

    The renderer does not own the display; it is handed the device by the
    render loop and never stores frames of its own.
    """

    def __init__(self, display: DisplayDevice, font: MonoFont = FONT_5X7):
        self.display = display
        self.font = font

    def render(self, layout: LayoutData) -> None:
        """Render a complete screen and commit it to the device.

        Raises:
            DisplayFlushError: If the device write fails
        """
        self.display.clear()

        surface = self.display.surface
        self.font.draw_text(surface, layout.header_origin, layout.header)

        for origin, line in zip(layout.body_line_origins(), layout.body_lines):
            self.font.draw_text(surface, origin, line)

        self.display.flush()

        if layout.body_origin[1] + layout.body_height > self.display.height:
            logger.debug(
                "Message body is %dpx tall, overflows %dpx display",
                layout.body_height,
                self.display.height,
            )

    def blank(self) -> None:
        """Clear the surface and flush it, asserting a known blank state."""
        self.display.clear()
        self.display.flush()
