"""Tunnel configuration model and resolver."""

from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .exceptions import ConfigurationError
from .utils import MAX_PORT, validate_non_empty_string, validate_port

LOOPBACK_HOST = "127.0.0.1"
DEFAULT_SSH_PORT = 22

FORWARDING_FIELDS = frozenset(
    {"source_host", "source_port", "destination_host", "destination_port"}
)
LOCAL_LISTENER_FIELDS = frozenset({"local_host", "local_port"})
TUNNEL_FIELDS = FORWARDING_FIELDS | LOCAL_LISTENER_FIELDS

# None is treated as "unset" for these; session options pass None through
# (asyncssh gives meaning to e.g. known_hosts=None)
_NULLABLE_AS_UNSET = TUNNEL_FIELDS | {"port"}
_OPTIONAL_CREDENTIALS = ("username", "password")


class TunnelConfig(BaseModel):
    """Fully resolved tunnel configuration.

    Forwarding and listener fields are always set. Any extra keyword is an
    SSH connection option handed to ``asyncssh.connect`` unchanged.
    """

    model_config = ConfigDict(frozen=True, extra="allow")

    source_host: str = Field(description="Originator host reported to the SSH server")
    source_port: int = Field(ge=0, le=MAX_PORT, description="Originator port, 0 if unspecified")
    destination_host: str = Field(description="Host the SSH server connects to")
    destination_port: int = Field(ge=0, le=MAX_PORT, description="Port the SSH server connects to")
    local_host: str = Field(description="Local listener bind address")
    local_port: int = Field(ge=0, le=MAX_PORT, description="Local listener port, 0 for any")

    host: str | None = Field(default=None, description="SSH server hostname")
    port: int = Field(default=DEFAULT_SSH_PORT, description="SSH server port")
    username: str | None = Field(default=None, description="SSH username")
    password: str | None = Field(default=None, description="SSH password")

    @field_validator("source_host", "destination_host", "local_host", "host")
    @classmethod
    def validate_host(cls, v: str | None) -> str | None:
        if v is not None:
            validate_non_empty_string(v, "Host")
        return v

    @field_validator("port")
    @classmethod
    def validate_ssh_port(cls, v: int) -> int:
        return validate_port(v, "SSH port", allow_zero=False)

    def connect_options(self) -> dict[str, Any]:
        """Return the SSH connection options, without forwarding fields.

        Returns:
            Keyword arguments for ``asyncssh.connect``
        """
        options = self.model_dump(exclude=set(TUNNEL_FIELDS))
        for name in _OPTIONAL_CREDENTIALS:
            if options.get(name) is None:
                options.pop(name, None)
        return options


def resolve_config(
    partial: Mapping[str, Any] | TunnelConfig | None = None, **settings: Any
) -> TunnelConfig:
    """Merge partial settings with defaults into a complete TunnelConfig.

    Destination and local ports default to the SSH port; explicit values
    always win over computed defaults.

    Args:
        partial: User settings, a mapping or an existing TunnelConfig
        **settings: Additional settings, overriding ``partial``

    Returns:
        Resolved, immutable configuration

    Raises:
        ConfigurationError: If a setting fails validation
    """
    if isinstance(partial, TunnelConfig):
        partial = partial.model_dump()

    user = {**(partial or {}), **settings}
    user = {
        key: value
        for key, value in user.items()
        if not (key in _NULLABLE_AS_UNSET and value is None)
    }

    session_options = {
        key: value for key, value in user.items() if key not in TUNNEL_FIELDS
    }
    ssh_port = session_options.get("port", DEFAULT_SSH_PORT)

    defaults: dict[str, Any] = {
        "port": DEFAULT_SSH_PORT,
        "source_host": LOOPBACK_HOST,
        "source_port": 0,
        "destination_host": LOOPBACK_HOST,
        "destination_port": ssh_port,
        "local_host": LOOPBACK_HOST,
        "local_port": ssh_port,
    }

    try:
        return TunnelConfig(**{**defaults, **user})
    except ValidationError as e:
        raise ConfigurationError(f"Invalid tunnel configuration: {e}") from e
