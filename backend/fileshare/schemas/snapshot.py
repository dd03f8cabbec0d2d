"""Export/import snapshot schema."""
from datetime import datetime, timezone

from pydantic import BaseModel, Field

from fileshare.reactions import ReactionType
from fileshare.schemas.file import FileEntry

SNAPSHOT_VERSION = "1.0"


class Snapshot(BaseModel):
    files: list[FileEntry]
    user_reactions: dict[str, dict[str, ReactionType]] = {}
    export_date: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    version: str = SNAPSHOT_VERSION
