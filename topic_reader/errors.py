"""
Errors raised by the thread-to-summary pipeline.

Every message is meant to be shown to the user as-is, so it says what went
wrong and how to fix it.
"""


class TopicReaderError(Exception):
    """Base class for all errors raised by topic_reader."""


class ConfigurationError(TopicReaderError):
    """A credential or setting is missing or malformed."""


# Fetch layer

class FetchError(TopicReaderError):
    """Failure while reading channels, threads or messages from Discord."""


class ThreadNotFound(FetchError):
    def __init__(self, thread_id: str):
        self.thread_id = thread_id
        super().__init__(
            f"❌ Thread Not Found!\n\n"
            f"No thread with ID {thread_id} is visible to the bot.\n"
            "Please check that the thread exists, that the ID or URL is correct, "
            "and that the bot has been added to the server."
        )


class ChannelNotFound(FetchError):
    def __init__(self, channel_id: str):
        self.channel_id = channel_id
        super().__init__(
            f"❌ Channel Not Found!\n\n"
            f"No channel with ID {channel_id} is visible to the bot, "
            "or it is not a text channel."
        )


class AccessDenied(FetchError):
    def __init__(self, resource: str):
        self.resource = resource
        super().__init__(
            f"❌ Access Denied!\n\n"
            f"The bot is not allowed to read {resource}.\n"
            "Please check:\n"
            "  • The bot has the 'View Channel' and 'Read Message History' permissions\n"
            "  • MESSAGE CONTENT INTENT is enabled in the Discord Developer Portal\n"
            "  • Private threads include the bot as a member"
        )


class NetworkError(FetchError):
    def __init__(self, service: str, detail: str = ""):
        self.service = service
        message = (
            f"❌ Connection Error!\n\n"
            f"Unable to connect to {service}.\n"
            "Please check your internet connection and try again."
        )
        if detail:
            message += f"\n\nDetails: {detail}"
        super().__init__(message)


class PlatformApiError(FetchError):
    def __init__(self, status_code: int, detail: str):
        self.status_code = status_code
        super().__init__(f"❌ Discord API Error ({status_code}): {detail}")


# Generation layer

class GenerationError(TopicReaderError):
    """The generative-text service did not produce a usable summary."""


class UpstreamError(GenerationError):
    """Error response from the generative-text service."""


class UpstreamRateLimited(UpstreamError):
    pass


class UpstreamAuthInvalid(UpstreamError):
    pass


class UpstreamModelUnavailable(UpstreamError):
    pass


class MalformedResponse(GenerationError):
    def __init__(self, detail: str):
        super().__init__(
            "❌ Malformed Summary Response!\n\n"
            f"The model's answer did not match the expected JSON structure: {detail}\n"
            "Try generating the summary again, or check that a custom prompt still "
            "asks for title, summary, keywords and category."
        )


# Persistence layer

class StorageError(TopicReaderError):
    """Failure while persisting or reading summaries and prompts."""


class LocalStoreError(StorageError):
    pass


class RemoteStoreError(StorageError):
    pass
