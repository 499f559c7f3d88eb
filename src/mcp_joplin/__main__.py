"""CLI entrypoint."""

from __future__ import annotations

import logging

import uvicorn

from .asgi import create_app
from .mcp_server import create_mcp_server
from .settings import Settings

logger = logging.getLogger(__name__)


def main() -> None:
    settings = Settings()
    # basicConfig writes to stderr, which keeps stdout free for the stdio transport.
    logging.basicConfig(level=settings.log_level.upper())

    if settings.mcp_transport == "streamable-http":
        uvicorn.run(
            create_app(settings),
            host=settings.mcp_host,
            port=settings.mcp_port,
            log_level=settings.log_level.lower(),
        )
        return

    logger.info("Starting Joplin MCP server on stdio")
    create_mcp_server(settings).run(transport="stdio")


if __name__ == "__main__":
    main()
