"""Reactions API routes."""
from fastapi import APIRouter, Depends

from fileshare.dependencies import get_session
from fileshare.services import reaction_engine
from fileshare.services.session import Session

router = APIRouter(prefix="/api/reactions", tags=["reactions"])


@router.get("/{user_id}")
async def get_user_reactions(user_id: str, session: Session = Depends(get_session)):
    """Get a user's reactions keyed by file ID."""
    reactions = await reaction_engine.get_user_reactions(session.for_user(user_id))
    return {
        "success": True,
        "reactions": {file_id: r.value for file_id, r in reactions.items()},
    }
