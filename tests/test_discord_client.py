"""Tests for the Discord REST client using a mocked transport."""

from typing import Callable, List

import httpx
import pytest

from topic_reader.client.discord_client import DiscordClient
from topic_reader.errors import (
    AccessDenied,
    ChannelNotFound,
    ConfigurationError,
    NetworkError,
    PlatformApiError,
    ThreadNotFound,
)
from topic_reader.models.config import DiscordConfig

API = "/api/v10"


def _client(handler: Callable[[httpx.Request], httpx.Response], sleeps: List[float] = None, **config):
    sleeps = sleeps if sleeps is not None else []
    return DiscordClient(
        DiscordConfig(bot_token="test-token", **config),
        transport=httpx.MockTransport(handler),
        sleep=sleeps.append,
    )


def _thread_payload(thread_id: str = "900", parent_id: str = "100", archived: bool = False) -> dict:
    return {
        "id": thread_id,
        "type": 11,
        "name": f"thread-{thread_id}",
        "parent_id": parent_id,
        "message_count": 3,
        "last_message_id": "1234567890123456789",
        "thread_metadata": {"archived": archived},
    }


def test_requests_carry_bot_token() -> None:
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json=_thread_payload())

    thread = _client(handler).get_thread("900")

    assert seen[0].headers["Authorization"] == "Bot test-token"
    assert seen[0].url.path == f"{API}/channels/900"
    assert thread.name == "thread-900"
    assert thread.channel_id == "100"
    assert thread.message_count == 3
    assert thread.last_activity is not None


def test_missing_token_is_configuration_error() -> None:
    client = DiscordClient(DiscordConfig(bot_token=""), transport=httpx.MockTransport(lambda r: httpx.Response(200)))
    with pytest.raises(ConfigurationError, match="DISCORD_BOT_TOKEN"):
        client.get_thread("900")


def test_rate_limit_waits_and_retries() -> None:
    responses = iter([
        httpx.Response(429, headers={"Retry-After": "2.5"}, json={"retry_after": 2.5}),
        httpx.Response(429, json={"retry_after": 0.5}),
        httpx.Response(200, json=_thread_payload()),
    ])
    sleeps: List[float] = []

    thread = _client(lambda request: next(responses), sleeps).get_thread("900")

    assert thread.id == "900"
    assert sleeps == [2.5, 0.5]


def test_rate_limit_gives_up_after_max_retries() -> None:
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(429, json={"retry_after": 1})

    sleeps: List[float] = []
    with pytest.raises(PlatformApiError) as exc_info:
        _client(handler, sleeps, max_retries=2).get_thread("900")

    assert exc_info.value.status_code == 429
    assert len(calls) == 3
    assert sleeps == [1.0, 1.0]


@pytest.mark.parametrize(
    "status,expected",
    [
        (401, ConfigurationError),
        (403, AccessDenied),
        (404, ThreadNotFound),
        (500, PlatformApiError),
    ],
)
def test_error_statuses_are_mapped(status: int, expected: type) -> None:
    client = _client(lambda request: httpx.Response(status, json={"message": "nope", "code": 0}))
    with pytest.raises(expected):
        client.get_thread("900")


def test_unauthorized_message_explains_token_reset() -> None:
    client = _client(lambda request: httpx.Response(401, json={"message": "401: Unauthorized"}))
    with pytest.raises(ConfigurationError, match="Invalid Discord Bot Token"):
        client.list_channels("1")


def test_platform_error_carries_detail() -> None:
    client = _client(lambda request: httpx.Response(502, text="bad gateway"))
    with pytest.raises(PlatformApiError, match=r"\(502\)"):
        client.get_channel("100")


def test_channel_404_is_channel_not_found() -> None:
    client = _client(lambda request: httpx.Response(404, json={"message": "Unknown Channel"}))
    with pytest.raises(ChannelNotFound) as exc_info:
        client.get_channel("100")
    assert exc_info.value.channel_id == "100"


def test_connection_failure_is_network_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(NetworkError, match="Discord"):
        _client(handler).get_thread("900")


def test_non_thread_channel_is_thread_not_found() -> None:
    client = _client(lambda request: httpx.Response(200, json={"id": "100", "type": 0, "name": "general"}))
    with pytest.raises(ThreadNotFound):
        client.get_thread("100")


def test_fetch_message_page_passes_cursor_and_limit() -> None:
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json=[])

    client = _client(handler)
    client.fetch_message_page("900")
    client.fetch_message_page("900", before="1150", limit=500)

    assert seen[0].url.path == f"{API}/channels/900/messages"
    assert dict(seen[0].url.params) == {"limit": "100"}
    assert dict(seen[1].url.params) == {"limit": "100", "before": "1150"}


def test_list_channels_keeps_text_channels_of_all_guilds() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        path = request.url.path
        if path == f"{API}/users/@me/guilds":
            return httpx.Response(200, json=[{"id": "1"}, {"id": "2"}])
        if path == f"{API}/guilds/1/channels":
            return httpx.Response(200, json=[
                {"id": "10", "type": 0, "name": "general"},
                {"id": "11", "type": 2, "name": "voice"},
                {"id": "12", "type": 4, "name": "category"},
            ])
        if path == f"{API}/guilds/2/channels":
            return httpx.Response(200, json=[{"id": "20", "type": 5, "name": "news"}])
        return httpx.Response(404)

    channels = _client(handler).list_channels()

    assert [(c.id, c.guild_id) for c in channels] == [("10", "1"), ("11", "1"), ("20", "2")]


def test_list_threads_merges_active_and_archived() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        path = request.url.path
        if path == f"{API}/channels/100":
            return httpx.Response(200, json={"id": "100", "type": 0, "name": "general", "guild_id": "1"})
        if path == f"{API}/guilds/1/threads/active":
            return httpx.Response(200, json={"threads": [
                _thread_payload("900", parent_id="100"),
                _thread_payload("950", parent_id="999"),
            ]})
        if path == f"{API}/channels/100/threads/archived/public":
            assert request.url.params["limit"] == "100"
            return httpx.Response(200, json={"threads": [_thread_payload("800", archived=True)]})
        return httpx.Response(404)

    threads = _client(handler).list_threads("100")

    assert [t.id for t in threads] == ["900", "800"]
    assert [t.archived for t in threads] == [False, True]


def test_list_threads_of_non_text_channel() -> None:
    client = _client(lambda request: httpx.Response(200, json=_thread_payload()))
    with pytest.raises(ChannelNotFound):
        client.list_threads("900")
