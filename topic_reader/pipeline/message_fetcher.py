"""
Exhaustive retrieval of a thread's message history.
"""
import logging
from typing import Iterator, List, Optional

from topic_reader.client.discord_client import MAX_PAGE_SIZE, DiscordClient
from topic_reader.models.message import Message

logger = logging.getLogger(__name__)


class MessageFetcher:
    """
    Pages backwards through a thread until the history is exhausted.

    Discord returns messages newest first; each request asks for messages
    older than the oldest one seen so far, so pages never overlap.
    """

    def __init__(self, client: DiscordClient, page_size: int = MAX_PAGE_SIZE):
        self.client = client
        self.page_size = page_size

    def iter_pages(self, thread_id: str) -> Iterator[List[Message]]:
        """
        Yield pages of messages, newest page first.

        The sequence ends after the first page shorter than ``page_size``.
        An empty thread yields nothing.

        Args:
            thread_id: Thread to read

        Yields:
            Lists of messages in the platform's newest-first order
        """
        before: Optional[str] = None
        while True:
            raw_page = self.client.fetch_message_page(thread_id, before=before, limit=self.page_size)
            logger.debug(f"Fetched {len(raw_page)} messages from {thread_id} (before={before})")
            if not raw_page:
                return

            page = [Message.from_discord(raw, thread_id) for raw in raw_page]
            yield page

            if len(page) < self.page_size:
                return
            before = page[-1].id

    def fetch(self, thread_id: str, verify: bool = True) -> List[Message]:
        """
        Fetch every message of a thread in chronological order.

        Args:
            thread_id: Thread to read
            verify: Check that the ID is a thread before paging

        Returns:
            Messages, oldest first

        Raises:
            ThreadNotFound: If the ID does not resolve to a thread
            AccessDenied, NetworkError: Surfaced from the client without retry
        """
        # Fails fast for IDs that are plain channels or messages
        if verify:
            self.client.get_thread(thread_id)

        messages: List[Message] = []
        for page in self.iter_pages(thread_id):
            messages.extend(page)
        messages.reverse()

        logger.info(f"Fetched {len(messages)} messages from thread {thread_id}")
        return messages
