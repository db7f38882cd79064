"""
Models for generated summaries, prompt templates and save results.
"""
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from topic_reader.models.message import Attachment


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Category(str, Enum):
    """Categories the model is asked to choose from."""
    TECHNICAL = "Technical"
    DISCUSSION = "Discussion"
    QUESTION = "Question"
    ANNOUNCEMENT = "Announcement"
    PLANNING = "Planning"
    BUG_REPORT = "Bug Report"
    FEATURE_REQUEST = "Feature Request"
    OTHER = "Other"


class Summary(BaseModel):
    """Structured summary of one thread."""
    id: Optional[str] = Field(default=None, description="Absent until first persisted")
    title: str
    summary: str
    keywords: List[str] = Field(default_factory=list)
    # Not validated against Category: whatever the model returns is kept.
    category: str = Field(default=Category.OTHER.value)
    thread_id: str = Field(description="Source thread ID")
    channel_id: str = Field(description="Source channel ID")
    channel_name: Optional[str] = None
    thread_name: Optional[str] = None
    attachments: List[Attachment] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=utcnow)

    def to_api_payload(self) -> Dict[str, Any]:
        """Serialize to the camelCase JSON shape used by the summary API."""
        payload = {
            "title": self.title,
            "summary": self.summary,
            "keywords": list(self.keywords),
            "category": self.category,
            "threadId": self.thread_id,
            "channelId": self.channel_id,
            "channelName": self.channel_name,
            "threadName": self.thread_name,
            "attachments": [
                {
                    "id": a.id,
                    "filename": a.filename,
                    "url": a.url,
                    "contentType": a.content_type,
                    "size": a.size,
                }
                for a in self.attachments
            ],
            "createdAt": self.created_at.isoformat(),
        }
        if self.id:
            payload["id"] = self.id
        return payload

    @classmethod
    def from_api_payload(cls, data: Dict[str, Any]) -> "Summary":
        return cls(
            id=str(data["id"]) if data.get("id") is not None else None,
            title=data.get("title", ""),
            summary=data.get("summary", ""),
            keywords=data.get("keywords") or [],
            category=data.get("category") or Category.OTHER.value,
            thread_id=str(data.get("threadId", "")),
            channel_id=str(data.get("channelId", "")),
            channel_name=data.get("channelName"),
            thread_name=data.get("threadName"),
            attachments=[
                Attachment(
                    id=str(a.get("id", "")),
                    filename=a.get("filename") or "",
                    url=a.get("url", ""),
                    content_type=a.get("contentType"),
                    size=a.get("size"),
                )
                for a in data.get("attachments") or []
            ],
            created_at=data.get("createdAt") or utcnow(),
        )


class Prompt(BaseModel):
    """Prompt template stored under a key."""
    key: str = "default"
    prompt: str = Field(description="Template with {{channelName}}, {{threadName}}, {{messagesText}}")
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class SaveResult(BaseModel):
    """Outcome of a dual-write save."""
    final_id: str
    backend_saved: bool
    error: Optional[str] = None
