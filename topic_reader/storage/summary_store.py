"""
SQLite-based local storage for thread summaries.
"""
import logging
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import JSON, Column, DateTime, String, Text, select

from topic_reader.models.message import Attachment
from topic_reader.models.summary import Summary
from topic_reader.storage.database import Base, Database

logger = logging.getLogger(__name__)


def _as_utc(value: datetime) -> datetime:
    """SQLite drops timezone info, so everything is stored as naive UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class SummaryRecord(Base):
    """Model for storing summaries."""
    __tablename__ = "summaries"

    id = Column(String, primary_key=True)
    title = Column(String, nullable=False)
    summary = Column(Text, nullable=False)
    keywords = Column(JSON, nullable=False, default=list)
    category = Column(String, nullable=False, index=True)
    thread_id = Column(String, nullable=False, index=True)
    channel_id = Column(String, nullable=False, index=True)
    channel_name = Column(String, nullable=True)
    thread_name = Column(String, nullable=True)
    attachments = Column(JSON, nullable=False, default=list)
    created_at = Column(DateTime, nullable=False, index=True)

    def __repr__(self):
        return f"<SummaryRecord(id={self.id}, thread={self.thread_id})>"

    @classmethod
    def from_summary(cls, summary: Summary) -> "SummaryRecord":
        return cls(
            id=summary.id,
            title=summary.title,
            summary=summary.summary,
            keywords=list(summary.keywords),
            category=summary.category,
            thread_id=summary.thread_id,
            channel_id=summary.channel_id,
            channel_name=summary.channel_name,
            thread_name=summary.thread_name,
            attachments=[a.model_dump() for a in summary.attachments],
            created_at=_as_utc(summary.created_at).replace(tzinfo=None),
        )

    def to_summary(self) -> Summary:
        return Summary(
            id=self.id,
            title=self.title,
            summary=self.summary,
            keywords=list(self.keywords or []),
            category=self.category,
            thread_id=self.thread_id,
            channel_id=self.channel_id,
            channel_name=self.channel_name,
            thread_name=self.thread_name,
            attachments=[Attachment(**a) for a in self.attachments or []],
            created_at=_as_utc(self.created_at),
        )


class SummaryStore:
    """
    Manages storage and retrieval of summaries in the local database.
    Records are keyed by ``id``; writes are upserts.
    """

    def __init__(self, database: Database):
        self.database = database

    def put(self, summary: Summary) -> Summary:
        """
        Insert or replace a summary.

        Args:
            summary: Summary with an ID

        Returns:
            The stored summary
        """
        if not summary.id:
            raise ValueError("Summary must have an id before it is stored locally")
        with self.database.session() as session:
            session.merge(SummaryRecord.from_summary(summary))
            session.commit()
        return summary

    def get(self, summary_id: str) -> Optional[Summary]:
        with self.database.session() as session:
            record = session.get(SummaryRecord, summary_id)
            return record.to_summary() if record else None

    def _query(self, *criteria) -> List[Summary]:
        stmt = select(SummaryRecord).where(*criteria).order_by(SummaryRecord.created_at.desc())
        with self.database.session() as session:
            return [record.to_summary() for record in session.scalars(stmt)]

    def get_all(self) -> List[Summary]:
        """All summaries, newest first."""
        return self._query()

    def get_by_channel(self, channel_id: str) -> List[Summary]:
        return self._query(SummaryRecord.channel_id == channel_id)

    def get_by_category(self, category: str) -> List[Summary]:
        return self._query(SummaryRecord.category == category)

    def get_by_thread(self, thread_id: str) -> Optional[Summary]:
        """
        Most recent summary of a thread.

        Args:
            thread_id: Source thread ID

        Returns:
            The newest summary by creation time, or None
        """
        stmt = (
            select(SummaryRecord)
            .where(SummaryRecord.thread_id == thread_id)
            .order_by(SummaryRecord.created_at.desc())
            .limit(1)
        )
        with self.database.session() as session:
            record = session.scalars(stmt).first()
            return record.to_summary() if record else None

    def search(self, query: str) -> List[Summary]:
        """Case-insensitive substring search over title, body and keywords."""
        needle = query.lower()
        return [
            s for s in self.get_all()
            if needle in s.title.lower()
            or needle in s.summary.lower()
            or any(needle in kw.lower() for kw in s.keywords)
        ]

    def delete(self, summary_id: str) -> bool:
        """Delete a summary. Returns False if it did not exist."""
        with self.database.session() as session:
            record = session.get(SummaryRecord, summary_id)
            if record is None:
                return False
            session.delete(record)
            session.commit()
            return True

    def rekey(self, old_id: str, new_id: str) -> Optional[Summary]:
        """
        Move a record to a new ID in one transaction.

        Args:
            old_id: Current ID of the record
            new_id: ID to move it to

        Returns:
            The summary under its new ID, or None if ``old_id`` was unknown
        """
        if old_id == new_id:
            return self.get(old_id)
        with self.database.session() as session:
            record = session.get(SummaryRecord, old_id)
            if record is None:
                return None
            summary = record.to_summary().model_copy(update={"id": new_id})
            session.delete(record)
            session.merge(SummaryRecord.from_summary(summary))
            session.commit()
        logger.info(f"Re-keyed local summary {old_id} -> {new_id}")
        return summary
