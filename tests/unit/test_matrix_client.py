"""Tests for the Matrix session wrapper and the event dispatcher."""

import asyncio
import logging
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import aiohttp
import pytest
from nio import DiscoveryInfoResponse, LoginResponse, RoomMessage

from matrix_oled.channel import ChatMessage, open_channel
from matrix_oled.exceptions import MembershipLookupError, SessionError
from matrix_oled.matrix_client import SYNC_TIMEOUT_MS, EventDispatcher, MatrixSession


class FakeAdapter:
    """Adapter stand-in that forwards the event body or fails on request."""

    def __init__(self, fail_on: set[str] | None = None):
        self.fail_on = fail_on or set()
        self.seen: list[str] = []

    async def handle(self, room, event, sender):
        self.seen.append(event.body)
        if event.body in self.fail_on:
            raise MembershipLookupError(room.room_id, event.sender)
        return await sender.send(ChatMessage(sender=event.sender, content=event.body))


def _event(body: str):
    return SimpleNamespace(body=body, sender="@alice:example.org", event_id=f"${body}")


ROOM = SimpleNamespace(room_id="!lobby:example.org")


class TestEventDispatcher:
    async def test_each_event_forwarded(self):
        sender, receiver = open_channel()
        dispatcher = EventDispatcher(FakeAdapter(), sender)

        await dispatcher.dispatch(ROOM, _event("one"))
        await dispatcher.dispatch(ROOM, _event("two"))
        await dispatcher.aclose()

        contents = [message.content async for message in receiver]
        assert contents == ["one", "two"]

    async def test_failed_event_does_not_stop_others(self, caplog):
        sender, receiver = open_channel()
        adapter = FakeAdapter(fail_on={"bad"})
        dispatcher = EventDispatcher(adapter, sender)

        with caplog.at_level(logging.ERROR, logger="matrix_oled.matrix_client"):
            for body in ("first", "bad", "last"):
                await dispatcher.dispatch(ROOM, _event(body))
            await dispatcher.aclose()

        assert adapter.seen == ["first", "bad", "last"]
        assert dispatcher.failed_events == 1
        assert "Cannot resolve member" in caplog.text
        assert [message.content async for message in receiver] == ["first", "last"]

    async def test_dispatch_returns_before_handling_completes(self):
        sender, receiver = open_channel(capacity=1)
        dispatcher = EventDispatcher(FakeAdapter(), sender)

        for body in ("a", "b", "c"):
            await dispatcher.dispatch(ROOM, _event(body))
        await asyncio.sleep(0.01)

        # Channel holds one message; the other two wait on backpressure
        assert dispatcher.in_flight == 2

        assert [await receiver.recv() for _ in range(3)] == [
            ChatMessage(sender="@alice:example.org", content=body) for body in ("a", "b", "c")
        ]
        await dispatcher.aclose()
        assert await receiver.recv() is None

    async def test_sender_handles_released(self):
        sender, _receiver = open_channel()
        dispatcher = EventDispatcher(FakeAdapter(fail_on={"x"}), sender)

        await dispatcher.dispatch(ROOM, _event("x"))
        await dispatcher.dispatch(ROOM, _event("y"))
        await dispatcher.aclose()

        assert sender._channel.writers == 0


@pytest.fixture
def client():
    fake = MagicMock()
    fake.homeserver = "https://example.org"
    fake.login = AsyncMock(return_value=LoginResponse("@oled-bot:example.org", "DEVICEID", "token"))
    fake.discovery_info = AsyncMock()
    fake.sync_forever = AsyncMock()
    fake.close = AsyncMock()
    return fake


class TestMatrixSession:
    async def test_login_with_configured_homeserver(self, config, client):
        session = MatrixSession(config, client=client)

        await session.login()

        client.discovery_info.assert_not_awaited()
        client.login.assert_awaited_once_with("s3cret", device_name="pi-zero")

    async def test_homeserver_discovered_without_config(self, config, client):
        config.homeserver = None
        client.discovery_info.return_value = DiscoveryInfoResponse(
            homeserver_url="https://matrix.example.org/", identity_server_url=None
        )
        session = MatrixSession(config, client=client)

        await session.login()

        assert client.homeserver == "https://matrix.example.org"

    async def test_discovery_failure_keeps_server_name(self, config, client):
        config.homeserver = None
        client.discovery_info.return_value = SimpleNamespace(message="not found")
        session = MatrixSession(config, client=client)

        await session.login()

        assert client.homeserver == "https://example.org"
        client.login.assert_awaited_once()

    async def test_login_refused(self, config, client):
        client.login.return_value = SimpleNamespace(message="Invalid password")

        with pytest.raises(SessionError, match="Invalid password"):
            await MatrixSession(config, client=client).login()

    async def test_transport_error(self, config, client):
        client.login.side_effect = aiohttp.ClientConnectionError("connection refused")

        with pytest.raises(SessionError, match="Unable to reach homeserver"):
            await MatrixSession(config, client=client).login()

    def test_register_adds_room_message_callback(self, config, client):
        session = MatrixSession(config, client=client)
        dispatcher = EventDispatcher(FakeAdapter(), MagicMock())

        session.register(dispatcher)

        client.add_event_callback.assert_called_once_with(dispatcher.dispatch, RoomMessage)

    async def test_sync_forever(self, config, client):
        await MatrixSession(config, client=client).sync_forever()

        client.sync_forever.assert_awaited_once_with(timeout=SYNC_TIMEOUT_MS, full_state=True)

    async def test_default_client_uses_server_name(self, config):
        config.homeserver = None

        session = MatrixSession(config)

        assert session.client.homeserver == "https://example.org"
        assert session.client.user == "@oled-bot:example.org"
        await session.close()
