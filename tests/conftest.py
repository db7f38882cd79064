"""Shared fixtures."""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

import pytest

from topic_reader.errors import ChannelNotFound, ThreadNotFound
from topic_reader.models.message import Thread
from topic_reader.storage.database import Database

BASE_TIME = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


def raw_message(index: int, thread_id: str = "900", attachments: Optional[list] = None) -> Dict[str, Any]:
    """Discord message payload; IDs and timestamps grow with ``index``."""
    return {
        "id": str(1000 + index),
        "content": f"message {index}",
        "author": {"id": "42", "username": "alice", "global_name": "Alice"},
        "attachments": attachments or [],
        "timestamp": (BASE_TIME + timedelta(minutes=index)).isoformat(),
        "channel_id": thread_id,
    }


class FakeDiscord:
    """In-memory stand-in for DiscordClient."""

    def __init__(self, message_count: int = 0, threads: Optional[Dict[str, Thread]] = None):
        self.messages = [raw_message(i) for i in range(message_count)]
        self.threads = threads if threads is not None else {
            "900": Thread(id="900", name="bug-1", channel_id="100"),
        }
        self.channels = {"100": {"id": "100", "name": "general", "type": 0}}
        self.page_calls: List[Optional[str]] = []
        self.thread_lookups: List[str] = []

    def get_thread(self, thread_id: str) -> Thread:
        self.thread_lookups.append(thread_id)
        if thread_id not in self.threads:
            raise ThreadNotFound(thread_id)
        return self.threads[thread_id]

    def get_channel(self, channel_id: str) -> Dict[str, Any]:
        if channel_id not in self.channels:
            raise ChannelNotFound(channel_id)
        return self.channels[channel_id]

    def fetch_message_page(self, thread_id: str, before: Optional[str] = None, limit: int = 100):
        self.page_calls.append(before)
        older = [m for m in self.messages if before is None or int(m["id"]) < int(before)]
        return list(reversed(older))[:limit]


@pytest.fixture
def database(tmp_path) -> Database:
    db = Database(f"sqlite:///{tmp_path / 'test.db'}")
    yield db
    db.close()


@pytest.fixture
def make_discord():
    """Factory for FakeDiscord instances."""
    return FakeDiscord


@pytest.fixture
def make_raw_message():
    return raw_message
