"""
Server configuration
Environment variables, optionally seeded from .env and .env.local files.
"""

import os
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, Optional

from dotenv import dotenv_values

logger = logging.getLogger(__name__)

DEFAULT_HA_URL = "http://homeassistant.local:8123"
ENV_FILENAMES = ('.env', '.env.local')
TRANSPORTS = ('stdio', 'http')


def default_env_paths() -> list:
    """Dotenv files in the working directory, then beside the package"""
    package_dir = Path(__file__).parent
    return [Path(name) for name in ENV_FILENAMES] + [package_dir / name for name in ENV_FILENAMES]


def load_environment(paths: Optional[Iterable[Path]] = None) -> Dict[str, str]:
    """
    Seed os.environ from dotenv files

    Later files win over earlier ones; variables already set in the process
    are never overridden.

    Returns:
        The merged values read from the files
    """
    config: Dict[str, str] = {}
    for path in (paths if paths is not None else default_env_paths()):
        path = Path(path)
        if path.exists():
            config.update({k: v for k, v in dotenv_values(path).items() if v is not None})

    for key, value in config.items():
        os.environ.setdefault(key, value)
    return config


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() == 'true'


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw == '':
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(
            f"Invalid {name} value '{raw}'.\n"
            f"To fix:\n"
            f"  • Set {name} to a whole number (default: {default})"
        )


def mask_secret(value: str) -> str:
    """Keep the first and last four characters of a secret"""
    if not value:
        return ""
    if len(value) <= 8:
        return "****"
    return f"{value[:4]}...{value[-4:]}"


@dataclass(frozen=True)
class Settings:
    """Effective server settings"""
    ha_url: str = DEFAULT_HA_URL
    ha_token: str = ""
    verify_ssl: bool = True
    timeout: int = 30
    transport: str = "stdio"
    host: str = "0.0.0.0"
    port: int = 8080
    log_level: str = "INFO"
    debug: bool = False

    @classmethod
    def from_env(cls) -> "Settings":
        """Read settings from the process environment"""
        port = _env_int('HA_MCP_PORT', 8080)
        if not 0 < port < 65536:
            raise ValueError(
                f"Invalid HA_MCP_PORT value '{port}'.\n"
                "To fix:\n"
                "  • Use a port between 1 and 65535"
            )
        timeout = _env_int('HA_TIMEOUT', 30)
        if timeout <= 0:
            raise ValueError(
                f"Invalid HA_TIMEOUT value '{timeout}'.\n"
                "To fix:\n"
                "  • Use a positive number of seconds"
            )

        return cls(
            ha_url=(os.getenv('HA_URL') or DEFAULT_HA_URL).rstrip('/'),
            ha_token=os.getenv('HA_TOKEN', ''),
            verify_ssl=_env_bool('HA_VERIFY_SSL', 'true'),
            timeout=timeout,
            transport=os.getenv('HA_MCP_TRANSPORT', 'stdio').lower(),
            host=os.getenv('HA_MCP_HOST', '0.0.0.0'),
            port=port,
            log_level=os.getenv('HA_MCP_LOG_LEVEL', 'INFO').upper(),
            debug=_env_bool('DEBUG', 'false'),
        )

    @property
    def effective_log_level(self) -> int:
        if self.debug:
            return logging.DEBUG
        return getattr(logging, self.log_level, logging.INFO)

    @property
    def is_configured(self) -> bool:
        return bool(self.ha_url and self.ha_token)

    def validate(self, require_token: bool = True) -> None:
        """
        Check that the server can run with these settings

        Args:
            require_token: Also require a Home Assistant token. The server
                itself starts without one and reports every tool call as
                not configured.

        Raises:
            ValueError: With setup instructions when something is missing
        """
        if require_token and not self.ha_token:
            raise ValueError(
                "Home Assistant token not configured.\n"
                "To fix:\n"
                "  • Create a long-lived access token in your Home Assistant profile\n"
                "  • Set HA_TOKEN in the environment, .env or .env.local"
            )
        if self.transport not in TRANSPORTS:
            raise ValueError(
                f"Unknown transport '{self.transport}'.\n"
                f"To fix:\n"
                f"  • Set HA_MCP_TRANSPORT to one of: {', '.join(TRANSPORTS)}"
            )

    def to_dict(self, mask_secrets: bool = True) -> Dict[str, Any]:
        return {
            "ha_url": self.ha_url,
            "ha_token": mask_secret(self.ha_token) if mask_secrets else self.ha_token,
            "ha_verify_ssl": self.verify_ssl,
            "ha_timeout": self.timeout,
            "transport": self.transport,
            "host": self.host,
            "port": self.port,
            "log_level": self.log_level,
            "debug_mode": self.debug,
        }
