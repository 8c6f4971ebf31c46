"""Custom exceptions for the SSH tunnel."""

from enum import Enum


class SSHTunnelError(Exception):
    """Base exception for all SSH tunnel errors."""
    pass


class ConfigurationError(SSHTunnelError):
    """Raised when tunnel configuration is invalid."""
    pass


class ListenError(SSHTunnelError):
    """Raised when the local listener cannot be bound."""
    pass


class CloseError(SSHTunnelError):
    """Raised when the local listener cannot be closed."""
    pass


class ConnectionRegistryError(SSHTunnelError):
    """Raised for connection registry operations."""
    pass


class ErrorOrigin(str, Enum):
    """Subsystem that detected a per-connection error."""

    SSH_CLIENT = "ssh-client"
    CONNECTION = "connection"


class TunnelError(SSHTunnelError):
    """Per-connection error tagged with the subsystem that detected it."""

    def __init__(self, message: str, origin: ErrorOrigin):
        super().__init__(message)
        self.origin = origin


class SessionError(TunnelError):
    """Raised when the SSH session or its forwarded channel fails."""

    def __init__(self, message: str):
        super().__init__(message, ErrorOrigin.SSH_CLIENT)


class TunnelConnectionError(TunnelError):
    """Raised when the local client socket fails."""

    def __init__(self, message: str):
        super().__init__(message, ErrorOrigin.CONNECTION)
