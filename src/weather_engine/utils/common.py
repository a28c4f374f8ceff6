import os
from datetime import date, datetime, timezone
from typing import Optional


def get_env_var(name: str) -> str:
    """Return the value of a required environment variable.

    This helper reads an environment variable and raises an error if it is
    not set or is an empty string. Use it to enforce required configuration
    at startup.

    Args:
        name (str): Name of the environment variable to read.

    Returns:
        str: The non-empty value of the requested environment variable.

    Raises:
        EnvironmentError: If the environment variable is not set or empty.
    """
    value = os.environ.get(name)
    if not value:
        raise EnvironmentError(f"{name} environment variable not set")
    return value


def get_optional_env_var(
    name: str, default: Optional[str] = None
) -> Optional[str]:
    """Return an environment variable, or `default` when unset or empty."""
    value = os.environ.get(name)
    return value if value else default


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def utc_today() -> date:
    return utc_now().date()
