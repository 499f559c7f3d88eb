"""Policies layered over the raw API groups."""

from __future__ import annotations

import logging
from typing import Any

from .resources import ResourcesApi

logger = logging.getLogger(__name__)


async def delete_resource_if_unused(resources: ResourcesApi, resource_id: str) -> dict[str, Any]:
    """Delete a resource only when no note references it.

    When notes still embed the resource nothing is deleted and the result
    carries a warning plus the referencing notes instead.
    """
    notes = await resources.get_resource_notes(resource_id)
    if notes:
        logger.info("Refusing to delete resource %s: used by %d note(s)", resource_id, len(notes))
        return {
            "deleted": False,
            "id": resource_id,
            "warning": (
                f"This resource is used in {len(notes)} note(s). "
                "Deleting it will break those references."
            ),
            "notes": notes,
        }

    await resources.delete_resource(resource_id)
    return {"deleted": True, "id": resource_id}
