"""Shared fixtures for matrix_oled tests."""

from collections.abc import Generator
from typing import Any, Callable

import pytest
from nio import MatrixRoom, RoomMessageEmote, RoomMessageImage, RoomMessageText

from matrix_oled.config import Config, DisplayConfig
from matrix_oled.display import MemoryDisplay

ROOM_ID = "!lobby:example.org"
BOT_ID = "@oled-bot:example.org"

_ENV_VARS = (
    "MATRIX_OLED_CONFIG",
    "MATRIX_OLED_PASSWORD",
    "MATRIX_OLED_HOMESERVER",
    "MATRIX_OLED_LOG_LEVEL",
    "MATRIX_OLED_DEBUG",
)


@pytest.fixture(autouse=True)
def clean_test_environment(monkeypatch: Any) -> Generator[None, Any, None]:
    """Keep MATRIX_OLED_* variables from the host out of the tests."""
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    yield


@pytest.fixture
def config() -> Config:
    """Config using the in-memory display and a fixed homeserver."""
    return Config(
        user_id=BOT_ID,
        password="s3cret",
        homeserver="https://matrix.example.org",
        display=DisplayConfig(driver="memory"),
    )


@pytest.fixture
def memory_display() -> MemoryDisplay:
    display = MemoryDisplay(128, 64)
    display.init()
    return display


@pytest.fixture
def room() -> MatrixRoom:
    """Room with one member who has a display name and one who has none."""
    matrix_room = MatrixRoom(ROOM_ID, BOT_ID)
    matrix_room.add_member("@bob:example.org", "Bob W.", None)
    matrix_room.add_member("@alice:example.org", None, None)
    return matrix_room


def _event_source(sender: str, content: dict[str, Any], event_id: str) -> dict[str, Any]:
    return {
        "event_id": event_id,
        "sender": sender,
        "origin_server_ts": 1700000000000,
        "type": "m.room.message",
        "room_id": ROOM_ID,
        "content": content,
    }


@pytest.fixture
def text_event() -> Callable[..., RoomMessageText]:
    """Factory for plain ``m.text`` events."""
    counter = {"n": 0}

    def make(sender: str = "@alice:example.org", body: str = "hello", **content: Any) -> RoomMessageText:
        counter["n"] += 1
        source = _event_source(
            sender, {"msgtype": "m.text", "body": body, **content}, f"$text{counter['n']}"
        )
        event = RoomMessageText.from_dict(source)
        assert isinstance(event, RoomMessageText)
        return event

    return make


@pytest.fixture
def image_event() -> RoomMessageImage:
    source = _event_source(
        "@alice:example.org",
        {"msgtype": "m.image", "body": "cat.png", "url": "mxc://example.org/cat"},
        "$image1",
    )
    event = RoomMessageImage.from_dict(source)
    assert isinstance(event, RoomMessageImage)
    return event


@pytest.fixture
def emote_event() -> RoomMessageEmote:
    source = _event_source(
        "@alice:example.org", {"msgtype": "m.emote", "body": "waves"}, "$emote1"
    )
    event = RoomMessageEmote.from_dict(source)
    assert isinstance(event, RoomMessageEmote)
    return event
