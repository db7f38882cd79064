"""
Orchestrates channel/thread lookup, message fetching, summary generation and persistence.
"""
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional

from topic_reader.client.discord_client import DiscordClient
from topic_reader.errors import ChannelNotFound, ThreadNotFound
from topic_reader.models.message import Channel, Message, Thread
from topic_reader.models.summary import SaveResult, Summary
from topic_reader.pipeline.message_fetcher import MessageFetcher
from topic_reader.processor.summary_generator import SummaryGenerator
from topic_reader.storage.persistence import DualWritePersistence
from topic_reader.utils.thread_url import ThreadUrlResolver

logger = logging.getLogger(__name__)

# confirm(thread, message_count) -> proceed?
ConfirmCallback = Callable[[Thread, int], bool]


class OutcomeStatus(str, Enum):
    EXISTING = "existing"
    EMPTY = "empty"
    CANCELLED = "cancelled"
    SAVED = "saved"


@dataclass
class SummarizeOutcome:
    status: OutcomeStatus
    thread: Thread
    summary: Optional[Summary] = None
    save_result: Optional[SaveResult] = None
    message_count: int = 0


class ThreadSummarizer:
    """
    The thread-to-summary pipeline.

    Every collaborator is passed in, so tests can substitute fakes.
    """

    def __init__(
        self,
        discord_client: DiscordClient,
        generator: SummaryGenerator,
        persistence: DualWritePersistence,
        fetcher: Optional[MessageFetcher] = None,
        url_resolver: Optional[ThreadUrlResolver] = None,
    ):
        """
        Initialize the summarizer.

        Args:
            discord_client: Channel/thread directory and message page source
            generator: Summary generator
            persistence: Dual-write summary persistence
            fetcher: Message fetcher; built on ``discord_client`` when None
            url_resolver: Deep-link parser; default host allow-list when None
        """
        self.discord_client = discord_client
        self.generator = generator
        self.persistence = persistence
        self.fetcher = fetcher or MessageFetcher(discord_client)
        self.url_resolver = url_resolver or ThreadUrlResolver()

    def list_channels(self, guild_id: Optional[str] = None) -> List[Channel]:
        return self.discord_client.list_channels(guild_id)

    def list_threads(self, channel_id: str) -> List[Thread]:
        return self.discord_client.list_threads(channel_id)

    def get_messages(self, thread_id: str) -> List[Message]:
        return self.fetcher.fetch(thread_id)

    def generate_summary(
        self,
        messages: List[Message],
        thread_id: str,
        channel_id: str,
        channel_name: Optional[str] = None,
        thread_name: Optional[str] = None,
    ) -> Summary:
        return self.generator.generate(messages, thread_id, channel_id, channel_name, thread_name)

    def save_summary(self, summary: Summary) -> SaveResult:
        return self.persistence.save(summary)

    def get_summary_by_thread(self, thread_id: str) -> Optional[Summary]:
        return self.persistence.get_summary_by_thread(thread_id)

    def resolve_url(self, url: str) -> Optional[Thread]:
        """
        Find the thread a deep-link points at.

        The channel segment is tried first; the message segment of a
        three-segment link is tried only if the first lookup says the thread
        does not exist.

        Args:
            url: Discord deep-link

        Returns:
            The thread, or None if the URL is not a thread link

        Raises:
            ThreadNotFound: If no candidate resolves to a thread
        """
        reference = self.url_resolver.extract(url)
        if reference is None:
            return None

        try:
            return self.discord_client.get_thread(reference.thread_id)
        except ThreadNotFound:
            if not reference.message_id:
                raise
            logger.info(
                f"{reference.thread_id} is not a thread, trying message {reference.message_id}"
            )
            return self.discord_client.get_thread(reference.message_id)

    def _channel_name(self, channel_id: str) -> Optional[str]:
        if not channel_id:
            return None
        try:
            return self.discord_client.get_channel(channel_id).get("name")
        except ChannelNotFound:
            logger.warning(f"Parent channel {channel_id} not found, continuing without a name")
            return None

    def summarize_thread(
        self,
        thread_id: str,
        confirm: Optional[ConfirmCallback] = None,
        force: bool = False,
    ) -> SummarizeOutcome:
        """
        Summarize a thread end to end.

        Args:
            thread_id: Thread to summarize
            confirm: Consent gate called before generation; declining cancels
            force: Generate even if a summary already exists for the thread

        Returns:
            SummarizeOutcome describing what happened

        Raises:
            FetchError, GenerationError, LocalStoreError: Propagated from the stages
        """
        thread = self.discord_client.get_thread(thread_id)

        if not force:
            existing = self.get_summary_by_thread(thread.id)
            if existing is not None:
                logger.info(f"Summary {existing.id} already exists for thread {thread.id}")
                return SummarizeOutcome(OutcomeStatus.EXISTING, thread, summary=existing)

        messages = self.fetcher.fetch(thread.id, verify=False)
        if not messages:
            logger.warning(f"Thread {thread.id} has no messages, nothing to summarize")
            return SummarizeOutcome(OutcomeStatus.EMPTY, thread)

        if confirm is not None and not confirm(thread, len(messages)):
            logger.info(f"Summary generation for thread {thread.id} cancelled")
            return SummarizeOutcome(OutcomeStatus.CANCELLED, thread, message_count=len(messages))

        summary = self.generate_summary(
            messages,
            thread.id,
            thread.channel_id,
            self._channel_name(thread.channel_id),
            thread.name,
        )
        result = self.save_summary(summary)
        saved = summary.model_copy(update={"id": result.final_id})

        logger.info(
            f"Saved summary {result.final_id} for thread {thread.id} "
            f"(backend saved: {result.backend_saved})"
        )
        return SummarizeOutcome(
            OutcomeStatus.SAVED,
            thread,
            summary=saved,
            save_result=result,
            message_count=len(messages),
        )
