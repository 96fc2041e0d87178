"""Matrix session and event dispatch for the bridge.

Wraps ``nio.AsyncClient`` with the small surface the bridge needs:
homeserver discovery, password login, registration of the room message
handler, and the long-running sync loop.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import aiohttp
from nio import (
    AsyncClient,
    DiscoveryInfoResponse,
    LoginResponse,
    MatrixRoom,
    RoomMessage,
)

from matrix_oled.channel import MessageSender
from matrix_oled.config import Config
from matrix_oled.event_adapter import RoomMessageAdapter
from matrix_oled.exceptions import SessionError

logger = logging.getLogger(__name__)

SYNC_TIMEOUT_MS = 30000


class EventDispatcher:
    """Run the event adapter once per inbound room message.

    Every event is handled in its own task with its own sender handle, so
    a slow member lookup or a full channel never holds up the sync loop.
    Failures are logged and counted here and do not reach the sync loop.
    """

    def __init__(self, adapter: RoomMessageAdapter, sender: MessageSender):
        self.adapter = adapter
        self._sender = sender
        self._tasks: set[asyncio.Task[bool]] = set()
        self.failed_events = 0

    @property
    def in_flight(self) -> int:
        return len(self._tasks)

    async def dispatch(self, room: MatrixRoom, event: Any) -> None:
        """nio event callback."""
        handle = self._sender.clone()
        task = asyncio.create_task(
            self._handle(room, event, handle),
            name=f"event-{getattr(event, 'event_id', '?')}",
        )
        self._tasks.add(task)
        task.add_done_callback(self._on_done)

    async def _handle(self, room: MatrixRoom, event: Any, handle: MessageSender) -> bool:
        try:
            return await self.adapter.handle(room, event, handle)
        finally:
            handle.close()

    def _on_done(self, task: asyncio.Task[bool]) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return

        error = task.exception()
        if error is not None:
            self.failed_events += 1
            logger.error("Failed to handle %s: %s", task.get_name(), error, exc_info=error)

    async def aclose(self) -> None:
        """Wait for in-flight events, then release the dispatcher's sender."""
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)
        self._sender.close()


class MatrixSession:
    """Matrix client session for the bot account."""

    def __init__(self, config: Config, client: AsyncClient | None = None):
        self.config = config
        homeserver = config.homeserver or f"https://{config.server_name}"
        self.client = client or AsyncClient(homeserver, config.user_id)

    async def login(self) -> None:
        """Resolve the homeserver and log in with the configured password.

        Raises:
            SessionError: If discovery transport fails or login is refused
        """
        try:
            if self.config.homeserver is None:
                await self._discover_homeserver()

            response = await self.client.login(
                self.config.password, device_name=self.config.device_name
            )
        except (aiohttp.ClientError, asyncio.TimeoutError) as error:
            raise SessionError(f"Unable to reach homeserver {self.client.homeserver}: {error}") from error

        if not isinstance(response, LoginResponse):
            reason = getattr(response, "message", None) or type(response).__name__
            raise SessionError(f"Login failed for {self.config.user_id}: {reason}")

        logger.info(
            "Logged in as %s on %s (device %s)",
            response.user_id,
            self.client.homeserver,
            response.device_id,
        )

    async def _discover_homeserver(self) -> None:
        response = await self.client.discovery_info()
        if isinstance(response, DiscoveryInfoResponse):
            self.client.homeserver = response.homeserver_url.rstrip("/")
            logger.info("Discovered homeserver %s", self.client.homeserver)
        else:
            logger.debug("No .well-known for %s, using %s", self.config.server_name, self.client.homeserver)

    def register(self, dispatcher: EventDispatcher) -> None:
        self.client.add_event_callback(dispatcher.dispatch, RoomMessage)

    async def sync_forever(self) -> None:
        logger.info("Starting sync loop")
        await self.client.sync_forever(timeout=SYNC_TIMEOUT_MS, full_state=True)

    async def close(self) -> None:
        await self.client.close()
        logger.debug("Matrix client closed")
