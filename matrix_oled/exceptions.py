"""Exception hierarchy for the Matrix to OLED bridge.

Startup and hardware errors are fatal and are only caught in
``matrix_oled.main.main()``. Per-event errors are reported by the event
dispatcher and never stop the sync or render loops.
"""


class BridgeError(Exception):
    """Base exception for all bridge errors."""


class ConfigError(BridgeError):
    """Configuration could not be loaded or validated.

    Raised when:
    - The config file is missing or unreadable
    - The YAML is malformed or the top level is not a mapping
    - Credentials are missing or the user id is not ``@localpart:server``
    - A numeric value is outside its allowed range
    """


class SessionError(BridgeError):
    """The Matrix session could not be established (discovery or login)."""


class BusAcquisitionError(BridgeError):
    """The I2C bus or the display controller on it could not be opened."""


class DisplayFlushError(BridgeError):
    """Committing the logical surface to the physical display failed."""


class MembershipLookupError(BridgeError):
    """The sender of an event could not be resolved to a room member.

    Attributes:
        room_id: Room the event was received in
        user_id: Matrix user id of the sender
    """

    def __init__(self, room_id: str, user_id: str, reason: str = "") -> None:
        self.room_id = room_id
        self.user_id = user_id
        message = f"Cannot resolve member {user_id} in {room_id}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)
