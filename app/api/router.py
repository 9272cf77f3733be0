from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence

from fastapi import APIRouter, Depends


# Error responses every plan route can produce
DEFAULT_ERROR_RESPONSES: Dict[int, Dict[str, Any]] = {
    400: {"description": "Missing or invalid parameters"},
    401: {"description": "Missing or invalid bearer token"},
    404: {"description": "Plan job not found"},
    429: {"description": "Too many plan requests"},
    500: {"description": "Internal Server Error"},
}


def create_router(
    *,
    name: Optional[str] = None,
    tags: Optional[List[str]] = None,
    dependencies: Optional[Sequence[Depends]] = None,
) -> APIRouter:
    """Create an APIRouter carrying the shared error responses.

    Args:
        name: Optional logical name for the router, used in logs.
        tags: OpenAPI tags for every route of the router.
        dependencies: Optional dependencies applied to all routes in the router.

    Returns:
        Configured APIRouter instance.
    """
    router = APIRouter(
        tags=list(tags) if tags else None,
        dependencies=list(dependencies) if dependencies else None,
        responses=DEFAULT_ERROR_RESPONSES,
    )
    if name:
        setattr(router, "name", name)
    return router
