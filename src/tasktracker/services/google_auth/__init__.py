"""Google Authentication services."""

from .auth import (
    delete_credentials,
    get_calendar_service,
    get_credentials,
    has_credentials,
    store_credentials,
)

__all__ = [
    "get_calendar_service",
    "get_credentials",
    "has_credentials",
    "store_credentials",
    "delete_credentials",
]
