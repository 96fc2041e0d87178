"""Configuration loading for the Matrix to OLED bridge.

The config file is YAML, read once at startup. A few settings can be
overridden from the environment so credentials do not have to live in
the file.
"""

from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from matrix_oled.channel import DEFAULT_CAPACITY
from matrix_oled.exceptions import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = "config.yaml"
DEFAULT_DEVICE_NAME = "pi-zero"

_USER_ID_RE = re.compile(r"^@(?P<localpart>[^:\s]+):(?P<server>[A-Za-z0-9.\-\[\]:]+)$")
_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
_DISPLAY_DRIVERS = ("sh1106", "memory")


def parse_user_id(user_id: str) -> tuple[str, str]:
    """Split a Matrix user id into ``(localpart, server_name)``.

    Raises:
        ConfigError: If the id is not of the form ``@localpart:server``
    """
    match = _USER_ID_RE.match(user_id)
    if match is None:
        raise ConfigError(f"Invalid Matrix user id {user_id!r}, expected @localpart:server")
    return match.group("localpart"), match.group("server")


@dataclass
class DisplayConfig:
    """OLED settings."""

    driver: str = "sh1106"
    i2c_port: int = 1
    i2c_address: int = 0x3C
    width: int = 128
    height: int = 64
    rotate: int = 0  # 0, 1, 2, 3 (quarter turns)

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> DisplayConfig:
        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ConfigError("Config `display` must be a mapping")

        driver = str(data.get("driver", "sh1106")).lower()
        if driver not in _DISPLAY_DRIVERS:
            raise ConfigError(f"Unknown display driver {driver!r}, expected one of {_DISPLAY_DRIVERS}")

        rotate = _coerce_int(data, "rotate", 0)
        if rotate not in (0, 1, 2, 3):
            raise ConfigError(f"display.rotate must be 0-3, got {rotate}")

        width = _coerce_int(data, "width", 128)
        height = _coerce_int(data, "height", 64)
        if width <= 0 or height <= 0:
            raise ConfigError(f"Display size must be positive, got {width}x{height}")

        return cls(
            driver=driver,
            i2c_port=_coerce_int(data, "i2c_port", 1),
            i2c_address=_coerce_int(data, "i2c_address", 0x3C),
            width=width,
            height=height,
            rotate=rotate,
        )


@dataclass
class Config:
    """Bridge configuration.

    Fields:
        user_id: Matrix user id of the bot account (``@bot:example.org``)
        password: Password for the bot account
        homeserver: Homeserver URL; discovered from the user id when None
        device_name: Device display name used at login
        queue_capacity: Maximum number of messages waiting to be displayed
        log_level: Logging level name
        display: OLED settings
    """

    user_id: str
    password: str = field(repr=False)
    homeserver: str | None = None
    device_name: str = DEFAULT_DEVICE_NAME
    queue_capacity: int = DEFAULT_CAPACITY
    log_level: str = "INFO"
    display: DisplayConfig = field(default_factory=DisplayConfig)

    @property
    def server_name(self) -> str:
        return parse_user_id(self.user_id)[1]

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Config:
        """Create a Config from a parsed mapping, validating every field.

        Raises:
            ConfigError: On missing credentials or invalid values
        """
        user_id = data.get("user_id")
        password = data.get("password")
        if not user_id:
            raise ConfigError("Config is missing `user_id`")
        if not password:
            raise ConfigError("Config is missing `password`")

        user_id = str(user_id)
        parse_user_id(user_id)

        homeserver = data.get("homeserver")
        if homeserver is not None:
            homeserver = str(homeserver).rstrip("/")

        queue_capacity = _coerce_int(data, "queue_capacity", DEFAULT_CAPACITY)
        if queue_capacity < 1:
            raise ConfigError(f"queue_capacity must be at least 1, got {queue_capacity}")

        log_level = str(data.get("log_level", "INFO")).upper()
        if log_level not in _LOG_LEVELS:
            logger.warning("Unknown log_level %r; using INFO", log_level)
            log_level = "INFO"

        return cls(
            user_id=user_id,
            password=str(password),
            homeserver=homeserver or None,
            device_name=str(data.get("device_name", DEFAULT_DEVICE_NAME)),
            queue_capacity=queue_capacity,
            log_level=log_level,
            display=DisplayConfig.from_dict(data.get("display")),
        )


def _coerce_int(data: dict[str, Any], key: str, default: int) -> int:
    raw = data.get(key, default)
    if isinstance(raw, bool):
        raise ConfigError(f"Config `{key}` must be an integer, got {raw!r}")
    if isinstance(raw, str):
        try:
            # Accept hex strings such as "0x3C" for bus addresses
            return int(raw, 0)
        except ValueError:
            raise ConfigError(f"Config `{key}` must be an integer, got {raw!r}") from None
    try:
        return int(raw)
    except (TypeError, ValueError):
        raise ConfigError(f"Config `{key}` must be an integer, got {raw!r}") from None


def _apply_env_overrides(data: dict[str, Any]) -> dict[str, Any]:
    """Overlay environment variables on the file contents.

    Environment Variables:
        MATRIX_OLED_PASSWORD - Bot account password
        MATRIX_OLED_HOMESERVER - Homeserver URL
        MATRIX_OLED_LOG_LEVEL - Logging level (DEBUG, INFO, WARNING, ERROR)
    """
    overrides = {
        "password": os.getenv("MATRIX_OLED_PASSWORD"),
        "homeserver": os.getenv("MATRIX_OLED_HOMESERVER"),
        "log_level": os.getenv("MATRIX_OLED_LOG_LEVEL"),
    }
    merged = dict(data)
    for key, value in overrides.items():
        if value:
            merged[key] = value
    return merged


def load_config(path: str | Path | None = None) -> Config:
    """Load and validate the bridge configuration.

    Args:
        path: Config file path. Defaults to ``$MATRIX_OLED_CONFIG`` or
              ``./config.yaml``.

    Raises:
        ConfigError: If the file is missing, unreadable, malformed, or
                     contains invalid values
    """
    p = Path(path or os.getenv("MATRIX_OLED_CONFIG", DEFAULT_CONFIG_PATH))
    logger.debug("Loading config from %s", p)

    try:
        text = p.read_text(encoding="utf-8")
    except FileNotFoundError:
        raise ConfigError(f"Config file {p} not found") from None
    except OSError as error:
        raise ConfigError(f"Unable to read config file {p}: {error}") from error

    try:
        raw = yaml.safe_load(text)
    except yaml.YAMLError as error:
        raise ConfigError(f"Config file {p} is not valid YAML: {error}") from error

    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        raise ConfigError(f"Config file {p} must contain a mapping at top level")

    cfg = Config.from_dict(_apply_env_overrides(raw))
    logger.info("Loaded configuration from %s", p)
    logger.debug("Configuration values: %s", cfg)
    return cfg
