"""Convert Matrix room message events into display messages.

Only plain text messages are relayed. The sender is shown by display
name when the room member has one, otherwise by the localpart of the
user id.
"""

from __future__ import annotations

import logging
from typing import Any

from nio import JoinedMembersResponse, MatrixRoom, RoomMessageText

from matrix_oled.channel import ChatMessage, MessageSender
from matrix_oled.exceptions import MembershipLookupError

logger = logging.getLogger(__name__)


def localpart(user_id: str) -> str:
    """Return the localpart of a Matrix user id (``@alice:example.org`` -> ``alice``)."""
    name = user_id[1:] if user_id.startswith("@") else user_id
    return name.split(":", 1)[0] or user_id


class MemberResolver:
    """Resolve an event sender to the name shown on the display.

    The room's cached member list is consulted first; unknown senders are
    looked up on the homeserver.
    """

    def __init__(self, client: Any):
        self.client = client

    async def display_name(self, room: MatrixRoom, user_id: str) -> str:
        """Return the member's display name, or their localpart if unset.

        Raises:
            MembershipLookupError: If the member cannot be found in the room
        """
        member = room.users.get(user_id)
        if member is not None:
            name = member.display_name
        else:
            name = await self._fetch_display_name(room, user_id)

        return name or localpart(user_id)

    async def _fetch_display_name(self, room: MatrixRoom, user_id: str) -> str | None:
        logger.debug("Member %s not cached in %s, fetching member list", user_id, room.room_id)
        response = await self.client.joined_members(room.room_id)

        if not isinstance(response, JoinedMembersResponse):
            reason = getattr(response, "message", None) or type(response).__name__
            raise MembershipLookupError(room.room_id, user_id, reason)

        for member in response.members:
            if member.user_id == user_id:
                return member.display_name

        raise MembershipLookupError(room.room_id, user_id, "not a joined member")


class RoomMessageAdapter:
    """Event adapter between the Matrix client and the delivery channel."""

    def __init__(self, resolver: MemberResolver):
        self.resolver = resolver

    async def handle(self, room: MatrixRoom, event: Any, sender: MessageSender) -> bool:
        """Normalize one event and enqueue it.

        Args:
            room: Room the event was received in
            event: Any ``m.room.message`` event
            sender: Channel handle owned by this invocation

        Returns:
            True if a message was accepted by the channel

        Raises:
            MembershipLookupError: If the sender cannot be resolved
        """
        # Formatted text is still RoomMessageText; emotes and notices are not
        if not isinstance(event, RoomMessageText):
            logger.debug("Ignoring %s from %s", type(event).__name__, event.sender)
            return False

        name = await self.resolver.display_name(room, event.sender)
        message = ChatMessage(sender=name, content=event.body)

        accepted = await sender.send(message)
        if not accepted:
            logger.debug("Display loop gone, dropped message from %s", name)
        else:
            logger.debug("Queued message from %s (%d chars)", name, len(message.content))
        return accepted
