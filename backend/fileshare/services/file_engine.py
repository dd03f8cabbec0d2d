"""File engine: upload, list, view, delete, stats, export/import.

Every operation goes through the session's availability selector, so it
lands on the remote store when reachable and on the local store otherwise.
"""
import logging
from datetime import datetime, timezone
from typing import Any, Optional

from pydantic import ValidationError

from fileshare.config import settings
from fileshare.errors import InvalidArgumentError
from fileshare.ids import generate_file_id, generate_user_id
from fileshare.schemas.file import AggregateStats, FileEntry, FileUpload, StorageInfo
from fileshare.schemas.snapshot import Snapshot
from fileshare.services.session import Session

logger = logging.getLogger(__name__)

# Supported MIME types and the gallery category they render under
SUPPORTED_TYPES = {
    "image/png": "image",
    "image/jpeg": "image",
    "image/jpg": "image",
    "text/plain": "text",
    "application/pdf": "document",
    "application/vnd.ms-excel": "document",
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet": "document",
    "application/vnd.ms-powerpoint": "document",
    "application/vnd.openxmlformats-officedocument.presentationml.presentation": "document",
    "application/msword": "document",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document": "document",
}

FILE_CATEGORIES = frozenset(SUPPORTED_TYPES.values())

# Sort key and whether it runs descending
SORT_ORDERS = {
    "newest": (lambda f: f.uploaded_at(), True),
    "oldest": (lambda f: f.uploaded_at(), False),
    "most-liked": (lambda f: f.likes, True),
    "most-viewed": (lambda f: f.views, True),
}


def file_category(mime_type: str) -> str:
    return SUPPORTED_TYPES.get(mime_type, "other")


def validate_upload(upload: FileUpload) -> None:
    """Reject unsupported types, oversize files and unreasonable names."""
    if upload.type not in SUPPORTED_TYPES:
        raise InvalidArgumentError(f"{upload.name}: File type not supported ({upload.type})")
    if upload.size < 0:
        raise InvalidArgumentError(f"{upload.name}: Invalid file size")
    if upload.size > settings.MAX_UPLOAD_BYTES:
        raise InvalidArgumentError(
            f"{upload.name}: File size exceeds {settings.MAX_UPLOAD_BYTES // (1024 * 1024)} MB limit"
        )
    if not upload.name or len(upload.name) > settings.MAX_FILENAME_LENGTH:
        raise InvalidArgumentError("File name missing or too long")


async def upload_file(session: Session, upload: FileUpload, caption: Optional[str] = None) -> FileEntry:
    """Validate and store a new file with zeroed counters."""
    validate_upload(upload)
    record = FileEntry(
        file_id=generate_file_id(),
        name=upload.name,
        type=upload.type,
        size=upload.size,
        content=upload.content,
        text_content=upload.text_content,
        caption=caption if caption is not None else (upload.caption or ""),
        upload_date=datetime.now(timezone.utc),
        uploader_id=upload.uploader_id or session.user_id or generate_user_id(),
    )
    return await session.selector.run_with_fallback(
        f"Upload of {upload.name}",
        lambda store: store.insert_file(record),
        mirror=lambda local, stored: local.mirror_files([stored]),
    )


async def list_files(
    session: Session,
    query: Optional[str] = None,
    category: Optional[str] = None,
    sort: str = "newest",
) -> list[FileEntry]:
    """List files, optionally searched by name or caption, filtered by category and sorted.

    ``category`` is one of FILE_CATEGORIES, or "all" / None for every file;
    ``sort`` is one of SORT_ORDERS.
    """
    if sort not in SORT_ORDERS:
        raise InvalidArgumentError(f"Unknown sort order: {sort}")
    if category not in (None, "all") and category not in FILE_CATEGORIES:
        raise InvalidArgumentError(f"Unknown file category: {category}")

    files = await session.selector.run_with_fallback(
        "Loading files",
        lambda store: store.get_all_files(),
        mirror=lambda local, result: local.mirror_files(result),
    )
    return filter_files(files, query=query, category=category, sort=sort)


def filter_files(
    files: list[FileEntry],
    query: Optional[str] = None,
    category: Optional[str] = None,
    sort: str = "newest",
) -> list[FileEntry]:
    needle = (query or "").strip().lower()
    if needle:
        files = [f for f in files if needle in f.name.lower() or needle in (f.caption or "").lower()]
    if category and category != "all":
        files = [f for f in files if file_category(f.type) == category]
    key, descending = SORT_ORDERS[sort]
    return sorted(files, key=key, reverse=descending)


async def get_file(session: Session, file_id: str) -> FileEntry:
    return await session.selector.run_with_fallback(
        f"Loading file {file_id}",
        lambda store: store.get_file(file_id),
        mirror=lambda local, entry: local.mirror_files([entry]),
    )


async def delete_file(session: Session, file_id: str) -> None:
    await session.selector.run_with_fallback(
        f"Deleting file {file_id}",
        lambda store: store.delete_file(file_id),
        mirror=lambda local, _: local.mirror_deletion(file_id),
    )


async def record_view(session: Session, file_id: str) -> FileEntry:
    return await session.selector.run_with_fallback(
        f"Recording view of {file_id}",
        lambda store: store.increment_views(file_id),
        mirror=lambda local, entry: local.mirror_files([entry]),
    )


async def get_stats(session: Session) -> AggregateStats:
    return await session.selector.run_with_fallback(
        "Loading stats", lambda store: store.get_aggregate_stats()
    )


async def export_data(session: Session) -> Snapshot:
    return await session.selector.run_with_fallback(
        "Export", lambda store: store.export_snapshot()
    )


async def import_data(session: Session, data: Any) -> Snapshot:
    """Replace the selected store's contents with an exported snapshot.

    Accepts a Snapshot or its JSON-decoded form; a missing or non-list
    ``files`` entry is rejected.
    """
    if isinstance(data, Snapshot):
        snapshot = data
    else:
        if not isinstance(data, dict) or not isinstance(data.get("files"), list):
            raise InvalidArgumentError("Invalid data format")
        try:
            snapshot = Snapshot.model_validate(data)
        except ValidationError as e:
            raise InvalidArgumentError(f"Invalid data format: {e.error_count()} error(s)") from e

    await session.selector.run_with_fallback(
        "Import", lambda store: store.import_snapshot(snapshot)
    )
    return snapshot


async def local_storage_info(session: Session) -> StorageInfo:
    return await session.local.storage_info()


async def clear_local_data(session: Session) -> None:
    """Wipe the local store. The remote, if any, is left alone."""
    await session.local.clear()
    logger.warning(f"All data in {session.local.name} was cleared")
