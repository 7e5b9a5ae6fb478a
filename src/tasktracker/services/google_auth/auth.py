"""Stored Google credentials for the calendar integration.

The consent flow that produces a token happens outside this service; here we
only load, refresh, and discard the per-owner token files it leaves behind.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional

import google.oauth2.credentials
from google.auth.exceptions import RefreshError
from google.auth.transport.requests import Request
from googleapiclient.discovery import build

from ...errors import CalendarNotConnectedError

logger = logging.getLogger(__name__)

CALENDAR_SCOPE = "https://www.googleapis.com/auth/calendar"
SCOPES = [CALENDAR_SCOPE]


def _extract_token_scopes(token_data: Dict[str, Any]) -> set[str]:
    """Extract OAuth scopes from a stored token payload."""

    scopes_field = token_data.get("scopes")
    if isinstance(scopes_field, list):
        return set(scopes_field)

    scope_field = token_data.get("scope")
    if isinstance(scope_field, str):
        return set(scope_field.split())

    return set()


def get_token_path(owner_id: str, token_dir: Path) -> Path:
    """
    Get the path where an owner's token is stored.

    Args:
        owner_id: Owner identifier, sanitized into the file name.
        token_dir: Directory holding token files.

    Returns:
        Path to the owner's token file.
    """
    filename = owner_id.replace("@", "_at_").replace(".", "_").replace("/", "_") + ".json"
    return token_dir / filename


def has_credentials(owner_id: str, token_dir: Path) -> bool:
    return get_token_path(owner_id, token_dir).exists()


def get_credentials(owner_id: str, token_dir: Path) -> Optional[Any]:
    """
    Get the stored credentials for an owner, refreshing if necessary.

    Args:
        owner_id: Owner identifier.
        token_dir: Directory holding token files.

    Returns:
        Credentials object if valid credentials exist, None otherwise.
    """
    token_path = get_token_path(owner_id, token_dir)

    if not token_path.exists():
        return None

    with open(token_path, "r") as token_file:
        token_data = json.load(token_file)

    if not set(SCOPES).issubset(_extract_token_scopes(token_data)):
        logger.info("Stored calendar token for %s lacks required scopes", owner_id)
        return None

    creds = google.oauth2.credentials.Credentials.from_authorized_user_info(
        token_data, SCOPES
    )

    if creds and creds.expired and creds.refresh_token:
        try:
            creds.refresh(Request())
        except RefreshError as exc:
            logger.warning("Calendar token refresh failed for %s: %s", owner_id, exc)
            return None
        store_credentials(owner_id, creds, token_dir)

    return creds if creds and not creds.expired else None


def store_credentials(owner_id: str, credentials: Any, token_dir: Path) -> None:
    """
    Store owner credentials to a file.

    Args:
        owner_id: Owner identifier.
        credentials: Credentials object to store.
        token_dir: Directory holding token files.
    """
    token_dir.mkdir(parents=True, exist_ok=True)
    token_path = get_token_path(owner_id, token_dir)

    with open(token_path, "w") as token_file:
        token_file.write(credentials.to_json())


def delete_credentials(owner_id: str, token_dir: Path) -> bool:
    """Remove an owner's stored token. Returns False if none was stored."""

    token_path = get_token_path(owner_id, token_dir)
    if not token_path.exists():
        return False
    token_path.unlink()
    return True


def get_calendar_service(owner_id: str, token_dir: Path) -> Any:
    """
    Get an authenticated Google Calendar API service for an owner.

    Raises:
        CalendarNotConnectedError: If no valid credentials are found.
    """
    credentials = get_credentials(owner_id, token_dir)

    if not credentials:
        raise CalendarNotConnectedError(
            "Google Calendar not connected. Please connect your calendar first.",
            owner_id=owner_id,
        )

    return build("calendar", "v3", credentials=credentials, cache_discovery=False)


__all__ = [
    "CALENDAR_SCOPE",
    "SCOPES",
    "get_token_path",
    "has_credentials",
    "get_credentials",
    "store_credentials",
    "delete_credentials",
    "get_calendar_service",
]
