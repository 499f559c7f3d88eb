"""Domain errors."""

from __future__ import annotations

from dataclasses import dataclass


class JoplinError(RuntimeError):
    """Base class for every failure raised while talking to Joplin."""


@dataclass(eq=False)
class JoplinConnectionError(JoplinError):
    """Raised when the Joplin Data API cannot be reached at all.

    Refused connections, DNS failures and timeouts all end up here so callers
    only have to handle a single "service unreachable" case.
    """

    reason: str

    def __str__(self) -> str:
        return f"Failed to connect to Joplin: {self.reason}"


@dataclass(eq=False)
class JoplinApiError(JoplinError):
    """Raised when the Joplin Data API returns a non-success response."""

    status_code: int
    method: str
    url: str
    response_text: str

    def __str__(self) -> str:
        return (
            f"Joplin API error {self.status_code} for {self.method} {self.url}: "
            f"{self.response_text}"
        )


@dataclass(eq=False)
class JoplinProtocolError(JoplinError):
    """Raised when Joplin answers with a body that does not fit the endpoint."""

    endpoint: str
    detail: str

    def __str__(self) -> str:
        return f"{self.detail}: {self.endpoint}"


@dataclass(eq=False)
class TagNotFoundError(JoplinError):
    """Raised when no tag title matches a requested name exactly."""

    name: str

    def __str__(self) -> str:
        return f"Tag not found: {self.name}"
