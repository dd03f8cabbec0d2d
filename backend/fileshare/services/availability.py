"""Remote/local backend selection.

Reachability is probed on every top-level operation, with no retry and no
cached liveness: one failed probe means "unavailable" for that call. A
remote write that fails with a connection or transaction error is re-run
once against the local store; nothing is queued for later replay.

What the remote returns is mirrored into the local store, so records that
were only ever created remotely are still there to read and react to once
the remote goes away.
"""
import logging
from typing import Awaitable, Callable, Optional, TypeVar

from fileshare.errors import FALLBACK_ERRORS, FileShareError
from fileshare.stores.base import RecordStore

logger = logging.getLogger(__name__)

T = TypeVar("T")


class AvailabilitySelector:
    """Picks the remote store when reachable, otherwise the local one."""

    def __init__(self, remote: Optional[RecordStore], local: RecordStore):
        self.remote = remote
        self.local = local

    async def is_remote_available(self) -> bool:
        if self.remote is None:
            return False
        try:
            await self.remote.ping()
            return True
        except Exception as e:
            logger.info(f"{self.remote.name} unavailable: {e}")
            return False

    async def select(self) -> RecordStore:
        if await self.is_remote_available():
            return self.remote
        return self.local

    async def run_with_fallback(
        self,
        action: str,
        operation: Callable[[RecordStore], Awaitable[T]],
        mirror: Optional[Callable[[RecordStore, T], Awaitable[None]]] = None,
    ) -> T:
        """Run ``operation`` against the selected store, falling back to local once.

        ``mirror`` is called with the local store and the remote's result after
        the remote served the operation.
        """
        store = await self.select()
        if store is self.local:
            return await operation(self.local)
        try:
            result = await operation(store)
        except FALLBACK_ERRORS as e:
            # No reconciliation exists: what lands locally stays local
            logger.warning(
                f"{action} failed on {store.name} ({e}); "
                f"falling back to {self.local.name} for this operation"
            )
            return await operation(self.local)

        if mirror is not None:
            try:
                await mirror(self.local, result)
            except FileShareError as e:
                # The remote has already committed the operation
                logger.warning(f"Could not mirror {action} into {self.local.name}: {e}")
        return result
