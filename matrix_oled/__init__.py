"""Matrix to OLED bridge - relay Matrix chat messages to a small I2C display.

This package listens to a Matrix account and shows each incoming text
message, with the sender's name as a header, on a 128x64 SH1106 OLED.

Target Platform: Raspberry Pi Zero (I2C bus 1, display at 0x3C)

Architecture:
- event_adapter.py: Matrix event -> ChatMessage, sender name resolution
- channel.py: Bounded FIFO between event handling and rendering
- layout_engine.py: Header placement and word wrapping
- renderer.py: Draws a layout onto the display surface
- display.py: SH1106 device and in-memory display
- matrix_client.py: Matrix login, event dispatch and sync loop
- config.py: Configuration loading from config.yaml
- main.py: Main event loop and coordinator

Usage:
    python -m matrix_oled

Environment Variables:
    MATRIX_OLED_CONFIG - Config file path (default: ./config.yaml)
    MATRIX_OLED_PASSWORD - Overrides the password from the config file
"""

__version__ = "0.1.0"

from matrix_oled.channel import ChatMessage
from matrix_oled.config import Config

__all__ = ["ChatMessage", "Config"]
