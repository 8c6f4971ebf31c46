"""Validation and log-sanitising helpers."""

from typing import Any

MIN_PORT = 0
MAX_PORT = 65535

SENSITIVE_FIELDS = {
    "password",
    "passphrase",
    "client_keys",
    "client_host_keys",
    "key",
    "secret",
    "token",
}


def validate_port(port: int, port_name: str = "Port", allow_zero: bool = True) -> int:
    """Validate a TCP port number.

    Args:
        port: Port number to validate
        port_name: Name of the port for error messages
        allow_zero: Whether 0 ("any free port") is accepted

    Returns:
        The validated port

    Raises:
        ValueError: If port is outside the accepted range
    """
    low = MIN_PORT if allow_zero else MIN_PORT + 1
    if isinstance(port, bool) or not isinstance(port, int) or not (low <= port <= MAX_PORT):
        raise ValueError(f"{port_name} must be between {low} and {MAX_PORT}")
    return port


def validate_non_empty_string(value: str, field_name: str) -> str:
    """Validate that a string is not empty or only whitespace.

    Args:
        value: String value to validate
        field_name: Name of the field for error messages

    Returns:
        Stripped string value

    Raises:
        ValueError: If string is empty or only whitespace
    """
    if not value or not value.strip():
        raise ValueError(f"{field_name} cannot be empty")
    return value.strip()


def mask_sensitive_data(
    value: str | None, mask_char: str = "*", show_chars: int = 4
) -> str:
    """Mask sensitive data for logging while preserving the last characters.

    Args:
        value: Sensitive string to mask (e.g., password, passphrase)
        mask_char: Character to use for masking
        show_chars: Number of characters to show at the end

    Returns:
        Masked string safe for logging
    """
    if not value:
        return "<None>"

    if len(value) <= show_chars:
        return mask_char * len(value)

    masked_length = len(value) - show_chars
    return mask_char * masked_length + value[-show_chars:]


def sanitize_log_data(data: dict[str, Any]) -> dict[str, Any]:
    """Return a copy of ``data`` with sensitive SSH settings masked.

    Nested dictionaries are sanitised as well.
    """
    sanitized: dict[str, Any] = {}
    for key, value in data.items():
        if isinstance(value, dict):
            sanitized[key] = sanitize_log_data(value)
        elif any(field in key.lower() for field in SENSITIVE_FIELDS):
            sanitized[key] = mask_sensitive_data(str(value) if value else None)
        else:
            sanitized[key] = value

    return sanitized
