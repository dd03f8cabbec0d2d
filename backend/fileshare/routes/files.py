"""Files API routes."""
import json
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import ValidationError

from fileshare.errors import InvalidArgumentError
from fileshare.dependencies import get_session
from fileshare.schemas.file import FileEntry, FileUpload, UploadRequest
from fileshare.schemas.reaction import ReactionRequest
from fileshare.services import file_engine, reaction_engine
from fileshare.services.session import Session

router = APIRouter(prefix="/api", tags=["files"])


@router.get("/files")
async def list_files(
    search: Optional[str] = None,
    category: Optional[str] = None,
    sort: str = "newest",
    session: Session = Depends(get_session),
):
    """List files. Search by name or caption, filter by category, sort (newest, oldest, most-liked, most-viewed)."""
    files = await file_engine.list_files(session, query=search, category=category, sort=sort)
    return {"success": True, "files": [_to_response(f) for f in files]}


@router.get("/files/{file_id}")
async def get_file(file_id: str, session: Session = Depends(get_session)):
    """Get a single file by ID."""
    entry = await file_engine.get_file(session, file_id)
    return {"success": True, "file": _to_response(entry)}


@router.post("/upload")
async def upload_file(body: UploadRequest, session: Session = Depends(get_session)):
    """Upload a file. ``fileData`` is a JSON string of the file fields."""
    if not body.file_data:
        raise InvalidArgumentError("No file data provided")
    try:
        upload = FileUpload.model_validate(json.loads(body.file_data))
    except (json.JSONDecodeError, ValidationError) as e:
        raise InvalidArgumentError(f"Invalid file data: {e}") from e

    entry = await file_engine.upload_file(session, upload, caption=body.caption)
    return {
        "success": True,
        "message": "File uploaded successfully",
        "fileId": entry.file_id,
    }


@router.post("/files/{file_id}/view")
async def record_view(file_id: str, session: Session = Depends(get_session)):
    """Increment file views."""
    entry = await file_engine.record_view(session, file_id)
    return {"success": True, "views": entry.views}


@router.post("/files/{file_id}/reaction")
async def react_to_file(
    file_id: str,
    body: ReactionRequest,
    session: Session = Depends(get_session),
):
    """Like or dislike a file. Repeating the same reaction removes it."""
    outcome = await reaction_engine.apply_reaction(session.for_user(body.user_id), file_id, body.reaction)
    return {"success": True, **outcome.model_dump(mode="json")}


@router.delete("/files/{file_id}")
async def delete_file(file_id: str, session: Session = Depends(get_session)):
    """Delete a file and its reactions."""
    await file_engine.delete_file(session, file_id)
    return {"success": True, "deleted": True, "id": file_id}


def _to_response(entry: FileEntry) -> dict:
    """Convert a file record to its JSON shape."""
    return entry.model_dump(mode="json")
