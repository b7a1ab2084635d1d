"""Environment-driven configuration for the Entra MCP server."""

import logging
import os
import sys
from dataclasses import dataclass, field
from typing import List, Optional

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

SINK_MODES = ("kv", "sql", "both")


class ConfigurationError(Exception):
    """Raised when a component is constructed without its required settings."""


def _env_flag(name: str, default: bool = True) -> bool:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    return value.strip().lower() not in ("0", "false", "no", "off")


def _env_int(name: str, default: Optional[int] = None) -> Optional[int]:
    value = os.getenv(name)
    if not value:
        return default
    try:
        return int(value)
    except ValueError:
        logger.warning(f"Ignoring non-integer value for {name}: {value!r}")
        return default


def load_env_file() -> Optional[str]:
    """Load the first .env file found next to the entry point, its parent,
    the working directory or this package.

    Returns:
        The path that was loaded, or None when python-dotenv fell back to
        its own search.
    """
    main_dir = os.path.dirname(os.path.abspath(sys.argv[0]))
    env_locations = [
        os.path.join(main_dir, ".env"),
        os.path.join(os.path.dirname(main_dir), ".env"),
        os.path.join(os.getcwd(), ".env"),
        os.path.join(os.path.dirname(os.path.abspath(__file__)), ".env"),
    ]

    for env_path in env_locations:
        if os.path.exists(env_path):
            logger.info(f"Loading .env from {env_path}")
            load_dotenv(env_path)
            return env_path

    logger.info("No .env file found in expected locations, trying current directory")
    load_dotenv()
    return None


@dataclass
class ImmudbConfig:
    """Connection and sink settings for the audit store."""

    host: Optional[str] = None
    port: Optional[int] = None
    user: Optional[str] = None
    password: Optional[str] = None
    database: Optional[str] = None
    mode: str = "kv"
    enabled: bool = True

    @classmethod
    def from_env(cls) -> "ImmudbConfig":
        return cls(
            host=os.getenv("IMMUDB_HOST"),
            port=_env_int("IMMUDB_PORT"),
            user=os.getenv("IMMUDB_USER"),
            password=os.getenv("IMMUDB_PASSWORD"),
            database=os.getenv("IMMUDB_DATABASE"),
            mode=os.getenv("IMMUDB_MODE", "kv"),
            enabled=_env_flag("IMMUDB_ENABLED", True),
        )

    def missing_fields(self) -> List[str]:
        """Names of required connection settings that are unset."""
        required = {
            "host": self.host,
            "port": self.port,
            "user": self.user,
            "password": self.password,
            "database": self.database,
        }
        return [name for name, value in required.items() if not value]


@dataclass
class AzureConfig:
    """App registration used to call Microsoft Graph."""

    tenant_id: Optional[str] = None
    client_id: Optional[str] = None
    client_secret: Optional[str] = None

    @classmethod
    def from_env(cls) -> "AzureConfig":
        return cls(
            tenant_id=os.getenv("AZURE_TENANT_ID"),
            client_id=os.getenv("AZURE_CLIENT_ID"),
            client_secret=os.getenv("AZURE_CLIENT_SECRET"),
        )


@dataclass
class OpenAIConfig:
    """Reasoning provider settings."""

    api_key: Optional[str] = None
    model: str = "gpt-4o-mini"
    timeout: Optional[float] = None

    @classmethod
    def from_env(cls) -> "OpenAIConfig":
        timeout = os.getenv("OPENAI_TIMEOUT")
        return cls(
            api_key=os.getenv("OPENAI_API_KEY"),
            model=os.getenv("OPENAI_MODEL", "gpt-4o-mini") or "gpt-4o-mini",
            timeout=float(timeout) if timeout else None,
        )


@dataclass
class ServerConfig:
    host: str = "0.0.0.0"
    port: int = 3001

    @classmethod
    def from_env(cls) -> "ServerConfig":
        return cls(
            host=os.getenv("MCP_HOST", "0.0.0.0"),
            port=_env_int("MCP_PORT", 3001) or 3001,
        )


@dataclass
class Settings:
    """All settings the server reads at startup."""

    immudb: ImmudbConfig = field(default_factory=ImmudbConfig)
    azure: AzureConfig = field(default_factory=AzureConfig)
    openai: OpenAIConfig = field(default_factory=OpenAIConfig)
    server: ServerConfig = field(default_factory=ServerConfig)
    debug: bool = False

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            immudb=ImmudbConfig.from_env(),
            azure=AzureConfig.from_env(),
            openai=OpenAIConfig.from_env(),
            server=ServerConfig.from_env(),
            debug=bool(os.getenv("ENTRA_MCP_DEBUG")),
        )
