# Author: easyble contributors

"""
Configuration for easyble.

Fixed constants live at module level; tunables are collected in BLEConfig,
which can be overridden from the environment.
"""
import os
from dataclasses import dataclass

from logging_setup import get_logger

logger = get_logger(__name__)

DEFAULT_SCAN_TIMEOUT = 5.0      # Seconds spent scanning before choosing a device
DEFAULT_HOST = "127.0.0.1"      # HTTP bridge bind address
DEFAULT_PORT = 5000             # HTTP bridge port
DEFAULT_LOG_LEVEL = "INFO"

ENV_PREFIX = "EASYBLE_"


@dataclass
class BLEConfig:
    """Runtime settings for the client and the HTTP bridge."""

    scan_timeout: float = DEFAULT_SCAN_TIMEOUT
    log_level: str = DEFAULT_LOG_LEVEL
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT

    @classmethod
    def from_env(cls, environ=None) -> "BLEConfig":
        """
        Build a config from EASYBLE_* environment variables.

        Unparseable numbers are logged and replaced with the default.
        """
        env = os.environ if environ is None else environ
        config = cls()

        scan_timeout = env.get(f"{ENV_PREFIX}SCAN_TIMEOUT")
        if scan_timeout:
            try:
                config.scan_timeout = float(scan_timeout)
            except ValueError:
                logger.warning("Invalid %sSCAN_TIMEOUT %r, using %s",
                               ENV_PREFIX, scan_timeout, DEFAULT_SCAN_TIMEOUT)

        port = env.get(f"{ENV_PREFIX}PORT")
        if port:
            try:
                config.port = int(port)
            except ValueError:
                logger.warning("Invalid %sPORT %r, using %d", ENV_PREFIX, port, DEFAULT_PORT)

        config.host = env.get(f"{ENV_PREFIX}HOST", config.host)
        config.log_level = env.get(f"{ENV_PREFIX}LOG_LEVEL", config.log_level).upper()
        return config
