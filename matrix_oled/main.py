"""Main entry point for the Matrix to OLED bridge.

This module runs the Matrix sync loop and the display render loop
concurrently. The delivery channel is the only link between them, and
the process ends as soon as either loop ends.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import signal
import sys
from typing import Callable

from matrix_oled.channel import MessageReceiver, open_channel
from matrix_oled.config import Config, DisplayConfig, load_config
from matrix_oled.display import DisplayDevice, create_display
from matrix_oled.event_adapter import MemberResolver, RoomMessageAdapter
from matrix_oled.exceptions import BridgeError, ConfigError
from matrix_oled.layout_engine import LayoutEngine
from matrix_oled.logging_config import configure_logging
from matrix_oled.matrix_client import EventDispatcher, MatrixSession
from matrix_oled.renderer import MessageRenderer

logger = logging.getLogger(__name__)

DisplayFactory = Callable[[DisplayConfig], DisplayDevice]


class RenderLoop:
    """Sole owner of the display.

    Acquires and initializes the display, then renders each message from
    the channel in arrival order until the channel reaches end of stream.
    Drawing and flush errors are not caught.
    """

    def __init__(
        self,
        display_config: DisplayConfig,
        receiver: MessageReceiver,
        layout_engine: LayoutEngine | None = None,
        display_factory: DisplayFactory = create_display,
    ):
        self.display_config = display_config
        self.receiver = receiver
        self.layout_engine = layout_engine
        self._display_factory = display_factory
        self.rendered = 0

    async def run(self) -> None:
        """Run until the channel closes.

        Raises:
            BusAcquisitionError: If the display bus cannot be opened
            DisplayFlushError: If a frame cannot be written
        """
        display = self._display_factory(self.display_config)
        try:
            display.init()
            if self.layout_engine is None:
                # Wrap to the logical surface, which is narrower when rotated
                self.layout_engine = LayoutEngine(width=display.width)
            renderer = MessageRenderer(display)
            renderer.blank()
            logger.info("Display ready: %dx%d", display.width, display.height)

            async for message in self.receiver:
                layout = self.layout_engine.process(message)
                renderer.render(layout)
                self.rendered += 1
                logger.debug("Rendered message from %s", message.sender)
        finally:
            self.receiver.close()
            display.close()

        logger.info("Delivery channel closed, render loop finished")


class MatrixOledBridge:
    """Application coordinator.

    Wires the Matrix session, the event dispatcher and the render loop
    around one delivery channel and runs both loops until one ends.
    """

    def __init__(
        self,
        config: Config,
        session: MatrixSession | None = None,
        display_factory: DisplayFactory = create_display,
    ):
        self.config = config
        sender, receiver = open_channel(config.queue_capacity)

        self.session = session or MatrixSession(config)
        adapter = RoomMessageAdapter(MemberResolver(self.session.client))
        self.dispatcher = EventDispatcher(adapter, sender)
        self.render_loop = RenderLoop(config.display, receiver, display_factory=display_factory)

        self._tasks: list[asyncio.Task[None]] = []
        self._stop_requested = False

        logger.info("Bridge initialized for %s", config.user_id)
        logger.info("Queue capacity: %d", config.queue_capacity)

    async def run(self) -> None:
        """Log in, then run the sync and render loops concurrently.

        Raises:
            SessionError: If login fails
            BridgeError: Or any other error that ended one of the loops
        """
        login = asyncio.create_task(self.session.login(), name="matrix-login")
        self._tasks = [login]
        try:
            await login
        except asyncio.CancelledError:
            if not self._stop_requested:
                raise
        if self._stop_requested:
            logger.info("Stop requested during login, not starting loops")
            return

        self.session.register(self.dispatcher)

        self._tasks = [
            asyncio.create_task(self.session.sync_forever(), name="matrix-sync"),
            asyncio.create_task(self.render_loop.run(), name="render-loop"),
        ]

        try:
            done, _ = await asyncio.wait(self._tasks, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for task in self._tasks:
                if not task.done():
                    task.cancel()
                    with contextlib.suppress(asyncio.CancelledError):
                        await task

        for task in done:
            if task.cancelled():
                continue
            error = task.exception()
            if error is not None:
                logger.error("%s stopped with an error", task.get_name())
                raise error
            logger.info("%s finished", task.get_name())

    def stop(self) -> None:
        """Cancel login or both loops, whichever is running."""
        self._stop_requested = True
        for task in self._tasks:
            task.cancel()

    async def shutdown(self) -> None:
        """Release the sender and close the Matrix session."""
        logger.info("Shutting down...")
        await self.dispatcher.aclose()
        await self.session.close()
        logger.info("Shutdown complete")


async def main() -> int:
    """Main entry point. Returns the process exit status."""
    try:
        config = load_config()
    except ConfigError as error:
        configure_logging()
        logger.error("Configuration error: %s", error)
        return 2

    configure_logging(config.log_level)

    bridge = MatrixOledBridge(config)

    loop = asyncio.get_running_loop()

    def signal_handler(sig: signal.Signals) -> None:
        logger.info("Received signal: %s", sig.name)
        bridge.stop()

    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(sig, signal_handler, sig)

    try:
        await bridge.run()
    except BridgeError as error:
        logger.error("Fatal error: %s", error)
        return 1
    finally:
        await bridge.shutdown()

    return 0


def run() -> None:
    """Console script entry point."""
    try:
        sys.exit(asyncio.run(main()))
    except KeyboardInterrupt:
        logger.info("Received KeyboardInterrupt")
    except Exception:
        logger.exception("Fatal error")
        sys.exit(1)


if __name__ == "__main__":
    run()
