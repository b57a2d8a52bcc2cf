import logging
from typing import Literal

from fastapi import APIRouter, Depends, HTTPException, Query

from medfile.models.patient import UserDisplayName
from medfile.models.views import MediaReference
from medfile.services.assembler import display_name
from medfile.services.fetching import fetch_within_timeout
from medfile.services.media import resolve_media_reference
from medfile.services.store import EntityStore, StoreError, get_store
from medfile.services.view_scope import view_scopes

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["views"])


@router.get("/media/resolve", response_model=MediaReference)
async def resolve_media(url: str = Query(..., min_length=1)):
    """Tell the viewer how to load an imaging reference."""
    return resolve_media_reference(url)


@router.get("/users/{user_type}/{user_id}/display-name", response_model=UserDisplayName)
async def get_display_name(
    user_type: Literal["patient", "doctor"],
    user_id: str,
    store: EntityStore = Depends(get_store),
):
    try:
        name = await fetch_within_timeout(user_type, display_name(store, user_type, user_id))
    except StoreError as exc:
        logger.warning("Display name lookup failed for %s %s: %s", user_type, user_id, exc)
        raise HTTPException(status_code=503, detail="User data unavailable") from None
    if name is None:
        raise HTTPException(status_code=404, detail="User not found")
    return UserDisplayName(user_type=user_type, user_id=user_id, display_name=name)


@router.delete("/views/{viewer_id}/{slot}")
async def dismiss_view(viewer_id: str, slot: str):
    """Dismiss a scoped view; any in-flight load for it is cancelled."""
    cancelled = view_scopes.dismiss(viewer_id, slot)
    return {"viewer_id": viewer_id, "slot": slot, "cancelled": cancelled}
