"""SSH tunnel - forward a local TCP port to a destination behind an SSH server."""

from .api import open_tunnel
from .config import (
    DEFAULT_SSH_PORT,
    LOOPBACK_HOST,
    TunnelConfig,
    resolve_config,
)
from .connection import TunnelConnection
from .events import EventEmitter, TunnelEvent
from .exceptions import (
    CloseError,
    ConfigurationError,
    ConnectionRegistryError,
    ErrorOrigin,
    ListenError,
    SessionError,
    SSHTunnelError,
    TunnelConnectionError,
    TunnelError,
)
from .logging import get_logger, setup_logging
from .registry import ConnectionRegistry
from .session import (
    AsyncSSHSession,
    RemoteSession,
    SessionFactory,
    default_session_factory,
)
from .tunnel import ListenerState, SSHTunnel

__version__ = "0.1.0"

__all__ = [
    # Tunnel
    "SSHTunnel",
    "ListenerState",
    "open_tunnel",
    # Configuration
    "TunnelConfig",
    "resolve_config",
    "DEFAULT_SSH_PORT",
    "LOOPBACK_HOST",
    # Connections and sessions
    "TunnelConnection",
    "ConnectionRegistry",
    "RemoteSession",
    "AsyncSSHSession",
    "SessionFactory",
    "default_session_factory",
    # Events
    "EventEmitter",
    "TunnelEvent",
    # Exceptions
    "SSHTunnelError",
    "ConfigurationError",
    "ListenError",
    "CloseError",
    "ConnectionRegistryError",
    "ErrorOrigin",
    "TunnelError",
    "SessionError",
    "TunnelConnectionError",
    # Logging
    "get_logger",
    "setup_logging",
]
