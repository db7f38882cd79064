"""
Local storage for prompt templates, keyed by name.
"""
import logging
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import Column, DateTime, String, Text

from topic_reader.models.summary import Prompt
from topic_reader.storage.database import Base, Database

logger = logging.getLogger(__name__)


class PromptRecord(Base):
    """Model for storing prompt templates."""
    __tablename__ = "prompts"

    key = Column(String, primary_key=True)
    prompt = Column(Text, nullable=False)
    created_at = Column(DateTime, nullable=False)
    updated_at = Column(DateTime, nullable=False)

    def __repr__(self):
        return f"<PromptRecord(key={self.key})>"


class PromptStore:
    """Get/put/delete prompt templates with upsert semantics."""

    def __init__(self, database: Database):
        self.database = database

    def get_prompt(self, key: str = "default") -> Optional[Prompt]:
        with self.database.session() as session:
            record = session.get(PromptRecord, key)
            return Prompt.model_validate(record) if record else None

    def save_prompt(self, prompt: Prompt) -> Prompt:
        """
        Create the prompt on first save, update it in place afterwards.

        Args:
            prompt: Prompt to store; ``key`` defaults to "default"

        Returns:
            The stored prompt with its timestamps
        """
        now = datetime.now(timezone.utc).replace(tzinfo=None)
        with self.database.session() as session:
            record = session.get(PromptRecord, prompt.key)
            if record is None:
                record = PromptRecord(key=prompt.key, prompt=prompt.prompt, created_at=now, updated_at=now)
                session.add(record)
                logger.info(f"Created prompt '{prompt.key}'")
            else:
                record.prompt = prompt.prompt
                record.updated_at = now
                logger.info(f"Updated prompt '{prompt.key}'")
            session.commit()
            return Prompt.model_validate(record)

    def delete_prompt(self, key: str = "default") -> bool:
        with self.database.session() as session:
            record = session.get(PromptRecord, key)
            if record is None:
                return False
            session.delete(record)
            session.commit()
            return True
