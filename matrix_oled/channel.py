"""Bounded delivery channel between the event adapter and the render loop.

Many producers (one per inbound event) write through reference-counted
``MessageSender`` handles; a single ``MessageReceiver`` reads messages in
the order their enqueue completed. A full channel suspends senders instead
of dropping messages.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass

logger = logging.getLogger(__name__)

DEFAULT_CAPACITY = 32


@dataclass(frozen=True)
class ChatMessage:
    """Normalized chat message ready for display."""

    sender: str  # Display name, or localpart of the user id
    content: str  # Raw message body, may contain newlines


class DeliveryChannel:
    """Shared state behind a sender/receiver pair.

    Use ``open_channel()`` rather than instantiating this directly.
    """

    def __init__(self, capacity: int = DEFAULT_CAPACITY):
        if capacity < 1:
            raise ValueError(f"Channel capacity must be at least 1, got {capacity}")

        self.capacity = capacity
        # None marks end of stream
        self._queue: asyncio.Queue[ChatMessage | None] = asyncio.Queue(maxsize=capacity)
        self._senders = 0
        self._receiver_gone = asyncio.Event()
        self._eos_task: asyncio.Task[None] | None = None

    @property
    def receiver_closed(self) -> bool:
        return self._receiver_gone.is_set()

    @property
    def writers(self) -> int:
        """Number of live sender handles."""
        return self._senders

    def pending(self) -> int:
        """Number of accepted messages not yet received."""
        return self._queue.qsize()

    def _acquire_sender(self) -> None:
        self._senders += 1

    def _release_sender(self) -> None:
        self._senders -= 1
        if self._senders > 0 or self.receiver_closed:
            return

        logger.debug("Last sender released, closing channel for writing")
        try:
            self._queue.put_nowait(None)
        except asyncio.QueueFull:
            # Queue behind the remaining messages so they are drained first
            self._eos_task = asyncio.get_running_loop().create_task(self._queue.put(None))

    async def _put(self, message: ChatMessage) -> bool:
        if self.receiver_closed:
            return False

        put = asyncio.ensure_future(self._queue.put(message))
        gone = asyncio.ensure_future(self._receiver_gone.wait())
        try:
            await asyncio.wait((put, gone), return_when=asyncio.FIRST_COMPLETED)
        finally:
            gone.cancel()
            if not put.done():
                put.cancel()

        # A put that lands after the receiver left is never delivered
        return put.done() and not put.cancelled() and not self.receiver_closed

    async def _get(self) -> ChatMessage | None:
        message = await self._queue.get()
        if message is None:
            # Keep end of stream sticky for repeated recv() calls
            self._queue.put_nowait(None)
        return message

    def _close_receiver(self) -> None:
        if self.receiver_closed:
            return

        self._receiver_gone.set()
        discarded = 0
        while not self._queue.empty():
            if self._queue.get_nowait() is not None:
                discarded += 1
        if self._eos_task is not None and not self._eos_task.done():
            self._eos_task.cancel()

        if discarded:
            logger.debug("Receiver closed, discarded %d undelivered messages", discarded)


class MessageSender:
    """Write end of a delivery channel.

    Handles are cheap: ``clone()`` one per concurrent producer and
    ``close()`` it when done. The channel closes for writing once every
    handle has been closed.
    """

    def __init__(self, channel: DeliveryChannel):
        self._channel = channel
        self._closed = False
        channel._acquire_sender()

    @property
    def closed(self) -> bool:
        return self._closed

    async def send(self, message: ChatMessage) -> bool:
        """Enqueue a message, waiting while the channel is full.

        Returns:
            True if the message was accepted, False if the receiver is gone

        Raises:
            RuntimeError: If this handle has already been closed
        """
        if self._closed:
            raise RuntimeError("send() on a closed MessageSender")

        return await self._channel._put(message)

    def clone(self) -> MessageSender:
        if self._closed:
            raise RuntimeError("clone() on a closed MessageSender")

        return MessageSender(self._channel)

    def close(self) -> None:
        if self._closed:
            return

        self._closed = True
        self._channel._release_sender()

    def __enter__(self) -> MessageSender:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


class MessageReceiver:
    """Read end of a delivery channel. There is exactly one per channel."""

    def __init__(self, channel: DeliveryChannel):
        self._channel = channel

    async def recv(self) -> ChatMessage | None:
        """Wait for the next message.

        Returns:
            The next message in FIFO order, or None once every sender has
            been closed and all accepted messages have been received
        """
        if self._channel.receiver_closed:
            return None

        return await self._channel._get()

    def close(self) -> None:
        """Stop receiving. Later sends return False instead of blocking."""
        self._channel._close_receiver()

    def __aiter__(self) -> MessageReceiver:
        return self

    async def __anext__(self) -> ChatMessage:
        message = await self.recv()
        if message is None:
            raise StopAsyncIteration
        return message


def open_channel(capacity: int = DEFAULT_CAPACITY) -> tuple[MessageSender, MessageReceiver]:
    """Create a bounded channel and return its first sender and its receiver."""
    channel = DeliveryChannel(capacity)
    return MessageSender(channel), MessageReceiver(channel)
