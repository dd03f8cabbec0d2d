"""Record store capability interface.

Every backend (relational, local key-value, HTTP) implements the same async
operations so the engines never branch on which one they were handed.
"""
from abc import ABC, abstractmethod

from fileshare.reactions import ReactionType
from fileshare.schemas.file import AggregateStats, FileEntry
from fileshare.schemas.reaction import ReactionOutcome
from fileshare.schemas.snapshot import Snapshot


class RecordStore(ABC):
    """Durable persistence of file records and reaction records."""

    name: str = "store"

    @abstractmethod
    async def ping(self) -> None:
        """Cheap read. Raises ConnectionFailureError when the store is unreachable."""

    @abstractmethod
    async def get_all_files(self) -> list[FileEntry]:
        """All file records, newest upload first."""

    @abstractmethod
    async def get_file(self, file_id: str) -> FileEntry:
        ...

    @abstractmethod
    async def insert_file(self, record: FileEntry) -> FileEntry:
        """Persist a new record. Returns it as stored (a remote store may assign its own id)."""

    @abstractmethod
    async def delete_file(self, file_id: str) -> None:
        """Remove a file and every reaction placed on it."""

    @abstractmethod
    async def increment_views(self, file_id: str) -> FileEntry:
        ...

    @abstractmethod
    async def get_reactions_for_user(self, user_id: str) -> dict[str, ReactionType]:
        ...

    @abstractmethod
    async def apply_reaction_transaction(
        self, file_id: str, user_id: str, desired: ReactionType
    ) -> ReactionOutcome:
        """Read the current reaction, apply the transition and counter deltas atomically."""

    @abstractmethod
    async def get_aggregate_stats(self) -> AggregateStats:
        ...

    @abstractmethod
    async def export_snapshot(self) -> Snapshot:
        ...

    @abstractmethod
    async def import_snapshot(self, snapshot: Snapshot) -> None:
        """Replace the whole store contents with the snapshot, all or nothing."""

    async def close(self) -> None:
        """Release held resources. No-op by default."""

    # Offline copy. The local fallback store overrides these so that what the
    # remote last returned is still there once the remote goes away.

    async def mirror_files(self, entries: list[FileEntry]) -> None:
        """Insert or overwrite these records as the remote returned them."""

    async def mirror_deletion(self, file_id: str) -> None:
        """Drop a record the remote deleted."""

    async def mirror_reaction(self, file_id: str, user_id: str, outcome: ReactionOutcome) -> None:
        """Record a reaction the remote applied, with its resulting counters."""

    async def mirror_user_reactions(self, user_id: str, reactions: dict[str, ReactionType]) -> None:
        """Record a user's reactions as the remote reported them."""
