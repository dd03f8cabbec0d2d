"""Explicit caller context passed to every engine operation.

Created once by the caller at startup (or per request on the server) and
carried explicitly; engines never look up the current user or the stores
from module state.
"""
from dataclasses import dataclass, replace
from typing import Optional

from fileshare.config import settings
from fileshare.ids import generate_user_id
from fileshare.services.availability import AvailabilitySelector
from fileshare.stores.base import RecordStore
from fileshare.stores.http import HttpRecordStore
from fileshare.stores.local import LocalRecordStore


@dataclass(frozen=True)
class Session:
    local: LocalRecordStore
    remote: Optional[RecordStore] = None
    user_id: Optional[str] = None

    @classmethod
    def create(
        cls,
        local: LocalRecordStore,
        remote: Optional[RecordStore] = None,
        user_id: Optional[str] = None,
    ) -> "Session":
        """Start a client session, generating an anonymous user id if none was persisted."""
        return cls(local=local, remote=remote, user_id=user_id or generate_user_id())

    def for_user(self, user_id: str) -> "Session":
        return replace(self, user_id=user_id)

    @property
    def selector(self) -> AvailabilitySelector:
        return AvailabilitySelector(remote=self.remote, local=self.local)


def build_client_session(user_id: Optional[str] = None) -> Session:
    """Client-side session: the FileShare server as remote, a local JSON store as fallback."""
    return Session.create(
        local=LocalRecordStore(settings.LOCAL_STORE_PATH, quota_bytes=settings.LOCAL_STORE_QUOTA_BYTES),
        remote=HttpRecordStore(settings.REMOTE_API_URL, timeout=settings.REMOTE_TIMEOUT_SECONDS),
        user_id=user_id,
    )
