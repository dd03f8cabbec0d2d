"""Reaction request/response schemas."""
from typing import Any, Optional

from pydantic import BaseModel

from fileshare.reactions import ReactionType
from fileshare.schemas.base import CamelModel


class ReactionRequest(CamelModel):
    # Left untyped so out-of-enum values reach the engine and get a 400
    reaction: Any = None
    user_id: str


class ReactionOutcome(BaseModel):
    """Result of one reaction transaction. ``reaction`` is None when toggled off."""
    reaction: Optional[ReactionType] = None
    like_delta: int = 0
    dislike_delta: int = 0
    likes: int = 0
    dislikes: int = 0
