"""File request/response schemas."""
from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, Field

from fileshare.schemas.base import CamelModel


class FileEntry(BaseModel):
    """Backend-neutral file record, as every record store returns it.

    Field names match the JSON the API serves for ``GET /api/files``.
    """
    file_id: str
    name: str
    type: str
    size: int = Field(ge=0)
    content: str
    text_content: Optional[str] = None
    caption: str = ""
    upload_date: datetime
    views: int = Field(default=0, ge=0)
    likes: int = Field(default=0, ge=0)
    dislikes: int = Field(default=0, ge=0)
    uploader_id: str

    model_config = {"from_attributes": True}

    def uploaded_at(self) -> datetime:
        """Upload date as an aware UTC datetime; SQLite hands back naive values."""
        if self.upload_date.tzinfo is None:
            return self.upload_date.replace(tzinfo=timezone.utc)
        return self.upload_date


class FileUpload(CamelModel):
    """File fields posted by the client inside ``fileData``."""
    name: str
    type: str
    size: int
    content: str
    text_content: Optional[str] = None
    caption: Optional[str] = None
    uploader_id: Optional[str] = None


class UploadRequest(CamelModel):
    file_data: Optional[str] = None
    caption: Optional[str] = None


class AggregateStats(BaseModel):
    total_files: int = 0
    total_views: int = 0
    total_likes: int = 0


class StorageInfo(BaseModel):
    """Bytes the local store's document takes, against its quota."""
    files_bytes: int
    reactions_bytes: int
    total_bytes: int
    quota_bytes: int
    percentage_used: float
