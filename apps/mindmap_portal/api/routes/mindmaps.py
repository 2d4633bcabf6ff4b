"""
Mind Map Routes
================

GET    /mindmaps       - Public maps, plus the caller's own when signed in
POST   /mindmaps       - Create a map (signed in; owner = caller)
GET    /mindmaps/{id}  - Read one map (public, or owned by the caller)
PUT    /mindmaps/{id}  - Update a map (owner only)
DELETE /mindmaps/{id}  - Delete a map (owner only)

A private map that belongs to someone else answers 404, exactly like a
map that does not exist.
"""

from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from ..dependencies import get_caller, get_current_user, get_store
from ..models.database import MindmapStore, UnknownOwnerError
from ..services.access_control import (
    Action,
    Caller,
    Identified,
    caller_id,
    check_mindmap_access,
    raise_for_decision,
)
from src.utils.safe_logging import get_safe_logger

logger = get_safe_logger(__name__)

router = APIRouter()

NOT_FOUND_MESSAGE = "Mindmap not found"


def _epoch_ms(timestamp: str) -> int:
    """ISO-8601 text from the store -> epoch milliseconds"""
    return int(datetime.fromisoformat(timestamp).timestamp() * 1000)


# ============================================================
# Request/Response Models
# ============================================================

class MindMapRequest(BaseModel):
    """Create/update body. Title and content are checked in the route."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    title: Optional[str] = None
    content: Optional[str] = None
    description: Optional[str] = None
    is_public: Optional[bool] = None


class MindMapSummary(BaseModel):
    """Listing entry (no content). Timestamps are epoch milliseconds."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str
    title: str
    description: Optional[str] = None
    is_public: bool
    user_id: Optional[str] = None
    created_at: int
    updated_at: int

    @classmethod
    def from_row(cls, row: dict):
        values = dict(row)
        for key in ("created_at", "updated_at"):
            values[key] = _epoch_ms(values[key])
        return cls(**values)


class MindMapDetail(MindMapSummary):
    content: str


class MindMapListResponse(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    mind_maps: List[MindMapSummary]


class MindMapResponse(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    mind_map: MindMapDetail


class MessageResponse(BaseModel):
    message: str


def _require_title_and_content(request: MindMapRequest):
    if not request.title or not request.content:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Title and content are required",
        )


# ============================================================
# Routes
# ============================================================

@router.get("", response_model=MindMapListResponse)
def list_mindmaps(
    caller: Caller = Depends(get_caller),
    store: MindmapStore = Depends(get_store),
):
    """
    List mind maps, most recently updated first.

    Anonymous callers see public maps; signed-in callers also see their
    own private maps.
    """
    rows = store.list_mindmaps_visible_to(caller_id(caller))
    return MindMapListResponse(mind_maps=[MindMapSummary.from_row(row) for row in rows])


@router.post("", response_model=MindMapResponse, status_code=status.HTTP_201_CREATED)
def create_mindmap(
    request: MindMapRequest,
    user: Identified = Depends(get_current_user),
    store: MindmapStore = Depends(get_store),
):
    """Create a mind map owned by the caller. Public unless isPublic is false."""
    raise_for_decision(check_mindmap_access(user, None, Action.CREATE))
    _require_title_and_content(request)

    try:
        row = store.insert_mindmap(
            owner_id=user.user_id,
            title=request.title,
            content=request.content,
            description=request.description or None,
            is_public=True if request.is_public is None else request.is_public,
        )
    except UnknownOwnerError:
        # Token outlived its account
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Account no longer exists",
            headers={"WWW-Authenticate": "Bearer"},
        )

    logger.info("Mind map created", mindmap_id=row["id"], user_id=user.user_id)
    return MindMapResponse(mind_map=MindMapDetail.from_row(row))


@router.get("/{mindmap_id}", response_model=MindMapResponse)
def get_mindmap(
    mindmap_id: str,
    caller: Caller = Depends(get_caller),
    store: MindmapStore = Depends(get_store),
):
    """Get a single mind map including its Markdown content."""
    row = store.find_mindmap_visible_to(mindmap_id, caller_id(caller))
    raise_for_decision(check_mindmap_access(caller, row, Action.READ), NOT_FOUND_MESSAGE)
    return MindMapResponse(mind_map=MindMapDetail.from_row(row))


@router.put("/{mindmap_id}", response_model=MindMapResponse)
def update_mindmap(
    mindmap_id: str,
    request: MindMapRequest,
    user: Identified = Depends(get_current_user),
    store: MindmapStore = Depends(get_store),
):
    """
    Update title, description, content and (optionally) visibility.

    The store filters on id AND owner in one statement, so a
    non-owner's attempt finds no row and gets 404.
    """
    _require_title_and_content(request)

    row = store.update_mindmap_for_owner(
        mindmap_id,
        owner_id=user.user_id,
        title=request.title,
        content=request.content,
        description=request.description or None,
        is_public=request.is_public,
    )
    raise_for_decision(check_mindmap_access(user, row, Action.MODIFY), NOT_FOUND_MESSAGE)
    return MindMapResponse(mind_map=MindMapDetail.from_row(row))


@router.delete("/{mindmap_id}", response_model=MessageResponse)
def delete_mindmap(
    mindmap_id: str,
    user: Identified = Depends(get_current_user),
    store: MindmapStore = Depends(get_store),
):
    """Delete a mind map owned by the caller."""
    if not store.delete_mindmap_for_owner(mindmap_id, owner_id=user.user_id):
        raise_for_decision(check_mindmap_access(user, None, Action.MODIFY), NOT_FOUND_MESSAGE)

    logger.info("Mind map deleted", mindmap_id=mindmap_id, user_id=user.user_id)
    return MessageResponse(message="Mindmap deleted successfully")
