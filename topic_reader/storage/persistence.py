"""
Local-first, remote-best-effort persistence of summaries.
"""
import logging
import time
from typing import Any, Callable, List, Optional

from topic_reader.errors import LocalStoreError, RemoteStoreError
from topic_reader.models.summary import SaveResult, Summary
from topic_reader.storage.summary_store import SummaryStore

logger = logging.getLogger(__name__)

REMOTE_NOT_CONFIGURED = "Summary API is not configured (set BACKEND_API_URL); summary saved locally only"


def make_local_id(thread_id: str, now_ms: Optional[int] = None) -> str:
    """ID for a summary that has never been persisted: ``<threadId>-<epoch ms>``."""
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    return f"{thread_id}-{now_ms}"


class DualWritePersistence:
    """
    Saves every summary locally first, then tries the remote API once.

    A local failure aborts the save (LocalStoreError propagates). A remote
    failure is reported in the SaveResult and never raised, so a generated
    summary is never lost because the API is down.
    """

    def __init__(
        self,
        local: SummaryStore,
        remote: Optional[Any] = None,
        clock: Callable[[], float] = time.time,
    ):
        """
        Args:
            local: Local summary store
            remote: Remote store with ``save_summary`` and ``get_summary_by_thread``,
                or None when no API is configured
            clock: Time source used for local IDs
        """
        self.local = local
        self.remote = remote
        self._clock = clock

    def save(self, summary: Summary) -> SaveResult:
        """
        Persist a summary.

        Args:
            summary: Summary to save; an ID is assigned when it has none

        Returns:
            SaveResult with the final ID and whether the remote save succeeded

        Raises:
            LocalStoreError: If the local write fails
        """
        local_id = summary.id or make_local_id(summary.thread_id, int(self._clock() * 1000))
        local_summary = summary.model_copy(update={"id": local_id})
        self.local.put(local_summary)
        logger.debug(f"Saved summary {local_id} locally")

        if self.remote is None:
            return SaveResult(final_id=local_id, backend_saved=False, error=REMOTE_NOT_CONFIGURED)

        try:
            remote_summary = self.remote.save_summary(local_summary)
        except RemoteStoreError as e:
            logger.warning(f"Failed to save summary to backend API: {e}")
            logger.warning("Summary saved locally only")
            return SaveResult(final_id=local_id, backend_saved=False, error=str(e))

        remote_id = remote_summary.id
        if remote_id and remote_id != local_id:
            try:
                self.local.rekey(local_id, remote_id)
            except LocalStoreError as e:
                # Both tiers hold the summary; only the local ID is stale
                logger.warning(f"Could not re-key local summary {local_id} to {remote_id}: {e}")
                return SaveResult(
                    final_id=local_id,
                    backend_saved=True,
                    error=f"Saved to the summary API as {remote_id}, but the local copy kept ID {local_id}: {e}",
                )
            return SaveResult(final_id=remote_id, backend_saved=True)
        return SaveResult(final_id=local_id, backend_saved=True)

    def get_summary(self, summary_id: str) -> Optional[Summary]:
        return self.local.get(summary_id)

    def get_summary_by_thread(self, thread_id: str) -> Optional[Summary]:
        """
        Current summary of a thread: the newest local one, else the remote one.

        Remote lookup failures are logged and treated as "no summary".
        """
        summary = self.local.get_by_thread(thread_id)
        if summary is not None or self.remote is None:
            return summary
        try:
            return self.remote.get_summary_by_thread(thread_id)
        except RemoteStoreError as e:
            logger.warning(f"Could not check the summary API for thread {thread_id}: {e}")
            return None

    def list_summaries(
        self,
        channel_id: Optional[str] = None,
        category: Optional[str] = None,
    ) -> List[Summary]:
        if channel_id:
            return self.local.get_by_channel(channel_id)
        if category:
            return self.local.get_by_category(category)
        return self.local.get_all()

    def search(self, query: str) -> List[Summary]:
        return self.local.search(query)

    def delete(self, summary_id: str) -> bool:
        """
        Delete locally, and remotely when configured.

        Returns:
            True if a local record was removed
        """
        deleted = self.local.delete(summary_id)
        if self.remote is not None:
            try:
                self.remote.delete_summary(summary_id)
            except RemoteStoreError as e:
                logger.warning(f"Failed to delete summary {summary_id} from backend API: {e}")
        return deleted
