"""Display hardware abstraction for the OLED.

Drawing happens on an in-memory Pillow surface; ``flush()`` commits the
surface to the physical device. The render loop is the only code that
touches a display instance.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Protocol

from luma.core.error import Error as LumaError
from luma.core.interface.serial import i2c
from luma.oled.device import sh1106
from PIL import Image, ImageDraw

from matrix_oled.exceptions import BusAcquisitionError, DisplayFlushError

if TYPE_CHECKING:
    from matrix_oled.config import DisplayConfig

logger = logging.getLogger(__name__)


class DisplayDevice(Protocol):
    """Interface the render loop drives."""

    width: int
    height: int

    def init(self) -> None:
        """Run the device initialization sequence."""
        ...

    def clear(self) -> None:
        """Blank the logical surface. Nothing is sent to the device."""
        ...

    @property
    def surface(self) -> ImageDraw.ImageDraw:
        """Drawing context for the logical surface."""
        ...

    def flush(self) -> None:
        """Commit the logical surface to the device."""
        ...

    def close(self) -> None:
        """Release the device."""
        ...


class SurfaceDisplay:
    """Common surface handling for display implementations."""

    def __init__(self, width: int, height: int):
        self.width = width
        self.height = height
        self.image = Image.new("1", (width, height), 0)
        self._draw = ImageDraw.Draw(self.image)

    @property
    def surface(self) -> ImageDraw.ImageDraw:
        return self._draw

    def clear(self) -> None:
        self._draw.rectangle((0, 0, self.width - 1, self.height - 1), fill=0)

    def snapshot(self) -> bytes:
        """Raw bytes of the current logical surface."""
        return self.image.tobytes()


class Sh1106Display(SurfaceDisplay):
    """SH1106 128x64 OLED driven through luma.oled."""

    def __init__(self, serial: i2c, width: int = 128, height: int = 64, rotate: int = 0):
        # Logical surface follows the rotated orientation
        if rotate in (1, 3):
            super().__init__(height, width)
        else:
            super().__init__(width, height)
        self._serial = serial
        self._panel_size = (width, height)
        self._rotate = rotate
        self._device: sh1106 | None = None

    def init(self) -> None:
        width, height = self._panel_size
        try:
            # First write to the controller happens in the constructor
            self._device = sh1106(self._serial, width=width, height=height, rotate=self._rotate)
        except (OSError, LumaError) as error:
            raise BusAcquisitionError(f"SH1106 not responding: {error}") from error
        logger.info("SH1106 initialized: %dx%d rotate=%d", width, height, self._rotate)

    def flush(self) -> None:
        if self._device is None:
            raise DisplayFlushError("Display flushed before init()")

        try:
            self._device.display(self.image)
        except (OSError, LumaError) as error:
            raise DisplayFlushError(f"Failed to write frame to display: {error}") from error

    def close(self) -> None:
        if self._device is not None:
            self._device.cleanup()
            self._device = None
            logger.debug("SH1106 released")


class MemoryDisplay(SurfaceDisplay):
    """Display that keeps flushed frames in memory.

    Used for development without hardware and in tests.
    """

    def __init__(self, width: int = 128, height: int = 64):
        super().__init__(width, height)
        self.initialized = False
        self.frames: list[Image.Image] = []

    def init(self) -> None:
        self.initialized = True
        logger.info("MemoryDisplay initialized: %dx%d", self.width, self.height)

    def flush(self) -> None:
        if not self.initialized:
            raise DisplayFlushError("Display flushed before init()")
        self.frames.append(self.image.copy())

    def close(self) -> None:
        self.initialized = False

    @property
    def last_frame(self) -> Image.Image | None:
        return self.frames[-1] if self.frames else None


def acquire_bus(port: int, address: int) -> i2c:
    """Open the I2C bus to the display controller.

    Raises:
        BusAcquisitionError: If the bus or device is unavailable
    """
    try:
        serial = i2c(port=port, address=address)
    except (OSError, LumaError) as error:
        raise BusAcquisitionError(
            f"Unable to open I2C bus {port} at address 0x{address:02X}: {error}"
        ) from error

    logger.debug("I2C bus %d acquired at 0x%02X", port, address)
    return serial


def create_display(config: DisplayConfig) -> DisplayDevice:
    """Construct the configured display. The bus is acquired here."""
    if config.driver == "memory":
        return MemoryDisplay(config.width, config.height)

    serial = acquire_bus(config.i2c_port, config.i2c_address)
    return Sh1106Display(serial, width=config.width, height=config.height, rotate=config.rotate)
