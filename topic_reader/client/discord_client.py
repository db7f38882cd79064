"""
Discord REST API client with rate limit handling and error mapping.
"""
import logging
import time
from typing import Any, Callable, Dict, List, Optional

import httpx

from topic_reader.errors import (
    AccessDenied,
    ChannelNotFound,
    ConfigurationError,
    FetchError,
    NetworkError,
    PlatformApiError,
    ThreadNotFound,
)
from topic_reader.models.config import DiscordConfig
from topic_reader.models.message import Channel, Thread

logger = logging.getLogger(__name__)

# Discord's hard limit for GET /channels/{id}/messages
MAX_PAGE_SIZE = 100

# https://discord.com/developers/docs/resources/channel#channel-object-channel-types
THREAD_CHANNEL_TYPES = {10, 11, 12}
TEXT_CHANNEL_TYPES = {0, 2, 5, 13}

INVALID_TOKEN_MESSAGE = (
    "❌ Invalid Discord Bot Token!\n\n"
    "The Discord bot token provided is invalid or has expired.\n"
    "Please check your DISCORD_BOT_TOKEN in the .env file and ensure:\n"
    "  • The token is correct and complete\n"
    "  • The token hasn't been regenerated in Discord Developer Portal\n"
    "  • There are no extra spaces or quotes around the token\n\n"
    "To get a new token:\n"
    "  1. Go to https://discord.com/developers/applications\n"
    "  2. Select your application\n"
    '  3. Go to "Bot" section\n'
    '  4. Click "Reset Token" or copy the existing token\n'
    "  5. Update your .env file with the new token"
)


class DiscordClient:
    """
    A thin wrapper around the Discord REST API that handles rate limiting and
    turns HTTP failures into topic_reader errors.
    """

    def __init__(
        self,
        config: DiscordConfig,
        transport: Optional[httpx.BaseTransport] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """
        Initialize the Discord client.

        Args:
            config: Discord configuration (token, API base, retries)
            transport: Optional httpx transport, used by tests
            sleep: Function used to wait when rate limited
        """
        self.config = config
        self.max_retries = config.max_retries
        self._transport = transport
        self._sleep = sleep
        self._client: Optional[httpx.Client] = None

    def _get_client(self) -> httpx.Client:
        """Lazy-initialize the HTTP client."""
        if self._client is None:
            if not self.config.bot_token:
                raise ConfigurationError(
                    "❌ Discord Bot Token Not Configured!\n\n"
                    "Please set DISCORD_BOT_TOKEN in your .env file."
                )
            self._client = httpx.Client(
                base_url=self.config.api_base,
                headers={
                    "Authorization": f"Bot {self.config.bot_token}",
                    "Accept": "application/json",
                },
                timeout=self.config.timeout,
                transport=self._transport,
            )
        return self._client

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None

    def make_api_call(
        self,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        not_found: Optional[Callable[[], FetchError]] = None,
        resource: str = "this resource",
    ) -> Any:
        """
        Make a GET request with retry logic for rate limits.

        Args:
            path: API path relative to the configured base URL
            params: Query parameters
            not_found: Factory for the error raised on HTTP 404
            resource: Human readable name of what is being read, for error text

        Returns:
            The decoded JSON body

        Raises:
            ConfigurationError: If the bot token is rejected
            AccessDenied: If the bot lacks permission for the resource
            ThreadNotFound, ChannelNotFound: On 404, depending on ``not_found``
            NetworkError: If Discord cannot be reached
            PlatformApiError: For any other error response
        """
        client = self._get_client()
        params = {k: v for k, v in (params or {}).items() if v is not None}

        for attempt in range(self.max_retries + 1):
            try:
                response = client.get(path, params=params)
            except httpx.TransportError as e:
                logger.error(f"Discord request to {path} failed: {e}")
                raise NetworkError("Discord servers", str(e)) from e

            if response.status_code == 429:
                if attempt == self.max_retries:
                    break
                retry_after = self._retry_after(response)
                logger.warning(f"Rate limited. Waiting {retry_after} seconds...")
                self._sleep(retry_after)
                continue

            if response.is_success:
                return response.json()

            self._raise_for_status(response, not_found, resource)

        logger.error(f"Still rate limited after {self.max_retries} retries: {path}")
        raise PlatformApiError(429, "Rate limited by Discord, please try again later")

    @staticmethod
    def _retry_after(response: httpx.Response) -> float:
        """Seconds to wait, from the Retry-After header or the JSON body."""
        header = response.headers.get("Retry-After")
        if header:
            return float(header)
        try:
            return float(response.json().get("retry_after", 1.0))
        except (ValueError, AttributeError):
            return 1.0

    @staticmethod
    def _raise_for_status(
        response: httpx.Response,
        not_found: Optional[Callable[[], FetchError]],
        resource: str,
    ) -> None:
        try:
            detail = response.json().get("message", response.reason_phrase)
        except (ValueError, AttributeError):
            detail = response.reason_phrase

        status = response.status_code
        if status == 401:
            raise ConfigurationError(INVALID_TOKEN_MESSAGE)
        if status == 403:
            raise AccessDenied(resource)
        if status == 404 and not_found is not None:
            raise not_found()
        raise PlatformApiError(status, detail)

    def get_channel(self, channel_id: str) -> Dict[str, Any]:
        """Get the raw channel object for a channel or thread ID."""
        return self.make_api_call(
            f"/channels/{channel_id}",
            not_found=lambda: ChannelNotFound(channel_id),
            resource=f"channel {channel_id}",
        )

    def get_thread(self, thread_id: str) -> Thread:
        """
        Get a thread by ID.

        Raises:
            ThreadNotFound: If the ID is unknown or not a thread
        """
        payload = self.make_api_call(
            f"/channels/{thread_id}",
            not_found=lambda: ThreadNotFound(thread_id),
            resource=f"thread {thread_id}",
        )
        if payload.get("type") not in THREAD_CHANNEL_TYPES:
            raise ThreadNotFound(thread_id)
        return Thread.from_discord(payload)

    def list_guild_ids(self) -> List[str]:
        guilds = self.make_api_call("/users/@me/guilds", resource="the bot's server list")
        return [str(guild["id"]) for guild in guilds]

    def list_channels(self, guild_id: Optional[str] = None) -> List[Channel]:
        """
        List text channels (threads excluded).

        Args:
            guild_id: Restrict to one guild; all guilds of the bot when None

        Returns:
            List of Channel objects
        """
        guild_ids = [guild_id] if guild_id else self.list_guild_ids()
        channels = []
        for gid in guild_ids:
            payload = self.make_api_call(f"/guilds/{gid}/channels", resource=f"server {gid}")
            for raw in payload:
                if raw.get("type") in TEXT_CHANNEL_TYPES:
                    channels.append(
                        Channel(id=str(raw["id"]), name=raw.get("name", ""), type=raw["type"], guild_id=gid)
                    )
        return channels

    def list_threads(self, channel_id: str) -> List[Thread]:
        """
        List active threads followed by public archived threads of a channel.

        Args:
            channel_id: Parent text channel ID

        Returns:
            List of Thread objects
        """
        channel = self.get_channel(channel_id)
        if channel.get("type") not in TEXT_CHANNEL_TYPES:
            raise ChannelNotFound(channel_id)

        threads: List[Thread] = []
        guild_id = channel.get("guild_id")
        if guild_id:
            active = self.make_api_call(
                f"/guilds/{guild_id}/threads/active",
                resource=f"active threads of server {guild_id}",
            )
            threads.extend(
                Thread.from_discord(raw)
                for raw in active.get("threads", [])
                if str(raw.get("parent_id")) == str(channel_id)
            )

        archived = self.make_api_call(
            f"/channels/{channel_id}/threads/archived/public",
            params={"limit": MAX_PAGE_SIZE},
            not_found=lambda: ChannelNotFound(channel_id),
            resource=f"archived threads of channel {channel_id}",
        )
        threads.extend(Thread.from_discord(raw) for raw in archived.get("threads", []))

        logger.debug(f"Found {len(threads)} threads in channel {channel_id}")
        return threads

    def fetch_message_page(
        self,
        thread_id: str,
        before: Optional[str] = None,
        limit: int = MAX_PAGE_SIZE,
    ) -> List[Dict[str, Any]]:
        """
        Fetch one page of messages, newest first.

        Args:
            thread_id: Thread to read
            before: Only return messages older than this message ID
            limit: Page size, at most 100

        Returns:
            List of raw message objects
        """
        return self.make_api_call(
            f"/channels/{thread_id}/messages",
            params={"limit": min(limit, MAX_PAGE_SIZE), "before": before},
            not_found=lambda: ThreadNotFound(thread_id),
            resource=f"the messages of thread {thread_id}",
        )
