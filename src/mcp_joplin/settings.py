"""Application settings (env/.env) and Joplin connection resolution."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Literal

from pydantic import AnyHttpUrl, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .discovery import discover_token, resolve_port

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Settings for the MCP server and Joplin Data API."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    joplin_token: str = Field(default="", alias="JOPLIN_TOKEN")
    # Kept raw so an invalid value falls back to the default instead of failing startup.
    joplin_port: str | None = Field(default=None, alias="JOPLIN_PORT")
    joplin_host: str = Field(default="localhost", alias="JOPLIN_HOST")
    joplin_base_url: AnyHttpUrl | None = Field(default=None, alias="JOPLIN_BASE_URL")

    http_timeout_seconds: float | None = Field(
        default=None,
        alias="HTTP_TIMEOUT_SECONDS",
        gt=0,
    )

    mcp_transport: Literal["stdio", "streamable-http"] = Field(
        default="stdio", alias="MCP_TRANSPORT"
    )
    mcp_api_key: str | None = Field(default=None, alias="MCP_API_KEY")
    mcp_host: str = Field(default="127.0.0.1", alias="MCP_HOST")
    mcp_port: int = Field(default=5005, alias="MCP_PORT", ge=1, le=65535)

    log_level: str = Field(default="INFO", alias="LOG_LEVEL")


@dataclass(frozen=True, slots=True)
class ConnectionConfig:
    """Where the Joplin Data API lives and how to authenticate against it."""

    base_url: str
    token: str
    timeout_seconds: float | None = None


def resolve_connection(
    settings: Settings,
    *,
    discover: Callable[[], str | None] = discover_token,
) -> ConnectionConfig:
    """Build the connection from settings, discovering the token if needed.

    A missing token is not fatal: requests will fail with an authorization
    error from Joplin instead.
    """
    if settings.joplin_base_url is not None:
        base_url = str(settings.joplin_base_url).rstrip("/")
    else:
        port = resolve_port(settings.joplin_port)
        base_url = f"http://{settings.joplin_host}:{port}"

    token = settings.joplin_token or discover() or ""
    if not token:
        logger.error("Could not find Joplin API token")
        logger.error(
            "Please ensure: 1. Joplin desktop app is installed "
            "2. Web Clipper is enabled in Settings > Web Clipper"
        )
        logger.error("Alternatively, set the JOPLIN_TOKEN environment variable")

    return ConnectionConfig(
        base_url=base_url,
        token=token,
        timeout_seconds=settings.http_timeout_seconds,
    )
