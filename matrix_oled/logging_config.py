"""
Central logging configuration for matrix_oled.

Keeps the bridge's own loggers at the configured level while quieting the
chatty third-party libraries it runs on.
"""

import logging
import os
import sys

_NOISY_LOGGERS: dict[str, int] = {
    "nio": logging.WARNING,  # Sync responses are logged per request
    "nio.client.async_client": logging.WARNING,
    "nio.rooms": logging.WARNING,  # Member/state updates on every sync
    "nio.responses": logging.WARNING,
    "aiohttp.client": logging.WARNING,
    "asyncio": logging.WARNING,
    "PIL": logging.INFO,
}


def configure_logging(level: str = "INFO") -> None:
    """Configure the root logger and third-party logger levels.

    Args:
        level: Level name for the bridge's own loggers

    Environment Variables:
        MATRIX_OLED_DEBUG: Set to '1', 'true', 'yes' to force debug logging
    """
    if os.getenv("MATRIX_OLED_DEBUG", "").lower() in ("1", "true", "yes"):
        level = "DEBUG"

    log_level = getattr(logging, level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    if not root_logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(
            logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
        )
        root_logger.addHandler(handler)

    for logger_name, logger_level in _NOISY_LOGGERS.items():
        logging.getLogger(logger_name).setLevel(logger_level)

    logging.getLogger("matrix_oled").setLevel(log_level)
    logging.getLogger(__name__).debug("Logging configured: level=%s", logging.getLevelName(log_level))
