"""Locate the Joplin API token and port from the local environment."""

from __future__ import annotations

import json
import logging
import os
import sys
from pathlib import Path

from .constants import DEFAULT_PORT

logger = logging.getLogger(__name__)

TOKEN_KEY = "api.token"


def joplin_settings_path(
    platform: str | None = None,
    home: Path | None = None,
    appdata: str | None = None,
) -> Path:
    """Return where Joplin desktop keeps ``settings.json`` on ``platform``."""
    platform = platform or sys.platform
    home = home or Path.home()
    if platform == "darwin":
        return home / "Library" / "Application Support" / "joplin-desktop" / "settings.json"
    if platform == "win32":
        base = appdata if appdata is not None else os.environ.get("APPDATA", "")
        return Path(base) / "joplin-desktop" / "settings.json"
    return home / ".config" / "joplin-desktop" / "settings.json"


def discover_token(settings_path: Path | None = None) -> str | None:
    """Read the Web Clipper token from Joplin desktop's settings file.

    Returns ``None`` (after logging why) when the file is missing, unreadable,
    not JSON, or has no token.
    """
    path = settings_path or joplin_settings_path()
    if not path.exists():
        logger.info("Joplin settings not found at: %s", path)
        return None

    try:
        settings = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        logger.warning("Failed to auto-discover Joplin token: %s", exc)
        return None

    token = settings.get(TOKEN_KEY) if isinstance(settings, dict) else None
    if not token or not isinstance(token, str):
        logger.info("API token not found in Joplin settings")
        logger.info("Make sure Web Clipper is enabled in Joplin settings")
        return None

    logger.info("Successfully auto-discovered Joplin API token")
    return token


def resolve_port(raw: str | int | None) -> int:
    """Validate a configured port, falling back to the default on bad input."""
    if raw is None or (isinstance(raw, str) and not raw.strip()):
        return DEFAULT_PORT
    try:
        port = int(raw)
    except (TypeError, ValueError):
        port = 0
    if 0 < port <= 65535:
        return port
    logger.warning(
        'Invalid JOPLIN_PORT: "%s". Falling back to default port %d.', raw, DEFAULT_PORT
    )
    return DEFAULT_PORT
