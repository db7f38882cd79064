"""
Models for Discord channels, threads and messages.
"""
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

DISCORD_EPOCH_MS = 1420070400000


def snowflake_to_datetime(snowflake: str) -> datetime:
    """Decode the creation time embedded in a Discord snowflake ID."""
    millis = (int(snowflake) >> 22) + DISCORD_EPOCH_MS
    return datetime.fromtimestamp(millis / 1000, tz=timezone.utc)


class Attachment(BaseModel):
    """File attached to a message."""
    id: str = Field(description="Attachment ID")
    filename: str = Field(default="", description="Original file name")
    url: str = Field(description="CDN URL of the file")
    content_type: Optional[str] = Field(default=None, description="MIME type if known")
    size: Optional[int] = Field(default=None, description="Size in bytes")

    class Config:
        frozen = True

    @classmethod
    def from_discord(cls, payload: Dict[str, Any]) -> "Attachment":
        return cls(
            id=str(payload["id"]),
            filename=payload.get("filename") or "",
            url=payload.get("url", ""),
            content_type=payload.get("content_type"),
            size=payload.get("size") or None,
        )


class Author(BaseModel):
    """Message author."""
    id: str
    username: str
    display_name: Optional[str] = None

    class Config:
        frozen = True


class Message(BaseModel):
    """A single message of a thread, immutable once fetched."""
    id: str = Field(description="Platform-unique message ID")
    content: str = Field(default="", description="Message text")
    author: Author
    attachments: List[Attachment] = Field(default_factory=list)
    timestamp: datetime = Field(description="When the message was posted")
    thread_id: str = Field(description="ID of the thread owning the message")

    class Config:
        frozen = True

    @classmethod
    def from_discord(cls, payload: Dict[str, Any], thread_id: str) -> "Message":
        """
        Build a Message from a Discord API message object.

        Args:
            payload: Message object as returned by GET /channels/{id}/messages
            thread_id: Thread the message was fetched from

        Returns:
            Message instance
        """
        author = payload.get("author") or {}
        return cls(
            id=str(payload["id"]),
            content=payload.get("content") or "",
            author=Author(
                id=str(author.get("id", "")),
                username=author.get("username", "Unknown"),
                display_name=author.get("global_name"),
            ),
            attachments=[Attachment.from_discord(a) for a in payload.get("attachments", [])],
            timestamp=payload["timestamp"],
            thread_id=thread_id,
        )


class Channel(BaseModel):
    """A text channel in a guild."""
    id: str
    name: str
    type: int
    guild_id: Optional[str] = None


class Thread(BaseModel):
    """A thread inside a text channel."""
    id: str
    name: str
    channel_id: str = Field(description="ID of the parent channel")
    message_count: int = 0
    last_activity: Optional[datetime] = None
    archived: bool = False

    @classmethod
    def from_discord(cls, payload: Dict[str, Any]) -> "Thread":
        last_message_id = payload.get("last_message_id")
        metadata = payload.get("thread_metadata") or {}
        return cls(
            id=str(payload["id"]),
            name=payload.get("name") or "",
            channel_id=str(payload.get("parent_id") or ""),
            message_count=payload.get("message_count") or 0,
            last_activity=snowflake_to_datetime(last_message_id) if last_message_id else None,
            archived=bool(metadata.get("archived", False)),
        )
