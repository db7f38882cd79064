"""Tests for summary generation and upstream error mapping."""

import json
from datetime import datetime, timezone
from typing import Any, List, Optional

import httpx
import openai
import pytest
from llama_index.core.llms import ChatMessage, ChatResponse, MessageRole

from topic_reader.errors import (
    ConfigurationError,
    MalformedResponse,
    NetworkError,
    RemoteStoreError,
    UpstreamAuthInvalid,
    UpstreamError,
    UpstreamModelUnavailable,
    UpstreamRateLimited,
)
from topic_reader.models.config import OpenAIConfig
from topic_reader.models.message import Attachment, Author, Message
from topic_reader.models.summary import Prompt
from topic_reader.processor.prompt_builder import DEFAULT_PROMPT
from topic_reader.processor.summary_generator import SummaryGenerator, validate_api_key

VALID_KEY = "sk-test-0123456789abcdefghij"
OPENAI_URL = "https://api.openai.com/v1/chat/completions"


class _FakeLLM:
    def __init__(self, content: Optional[str] = None, error: Optional[Exception] = None):
        self.content = content
        self.error = error
        self.calls: List[List[ChatMessage]] = []

    def chat(self, messages: List[ChatMessage], **kwargs: Any) -> ChatResponse:
        self.calls.append(messages)
        if self.error is not None:
            raise self.error
        return ChatResponse(message=ChatMessage(role=MessageRole.ASSISTANT, content=self.content))


class _PromptStore:
    def __init__(self, prompt: Optional[Prompt] = None, error: Optional[Exception] = None):
        self.prompt = prompt
        self.error = error

    def get_prompt(self, key: str = "default") -> Optional[Prompt]:
        if self.error is not None:
            raise self.error
        return self.prompt


def _status_error(cls, status: int, body: dict) -> openai.APIStatusError:
    request = httpx.Request("POST", OPENAI_URL)
    response = httpx.Response(status, request=request, json={"error": body})
    return cls(f"Error code: {status}", response=response, body=body)


def _messages() -> List[Message]:
    stamp = datetime(2024, 1, 1, tzinfo=timezone.utc)
    return [
        Message(
            id="1",
            content="the build is broken",
            author=Author(id="u1", username="alice"),
            attachments=[Attachment(id="a1", filename="build.log", url="https://cdn/build.log")],
            timestamp=stamp,
            thread_id="900",
        ),
        Message(
            id="2",
            content="fixed in main",
            author=Author(id="u2", username="bob"),
            attachments=[Attachment(id="a2", filename="patch.diff", url="https://cdn/patch.diff")],
            timestamp=stamp,
            thread_id="900",
        ),
    ]


def _generator(llm: _FakeLLM, prompt_store=None, api_key: str = VALID_KEY) -> SummaryGenerator:
    return SummaryGenerator(OpenAIConfig(api_key=api_key), prompt_store=prompt_store, llm=llm)


def test_generate_builds_summary_from_json() -> None:
    llm = _FakeLLM(json.dumps({
        "title": "Broken build",
        "summary": "The build broke and was fixed.",
        "keywords": ["build", "ci"],
        "category": "Bug Report",
    }))
    before = datetime.now(timezone.utc)
    summary = _generator(llm).generate(_messages(), "900", "100", "general", "bug-1")

    assert summary.id is None
    assert summary.title == "Broken build"
    assert summary.keywords == ["build", "ci"]
    assert summary.category == "Bug Report"
    assert (summary.thread_id, summary.channel_id) == ("900", "100")
    assert (summary.channel_name, summary.thread_name) == ("general", "bug-1")
    assert [a.filename for a in summary.attachments] == ["build.log", "patch.diff"]
    assert summary.created_at >= before


def test_prompt_sent_to_model_is_rendered_default_template() -> None:
    llm = _FakeLLM(json.dumps({"title": "t", "summary": "s"}))
    _generator(llm).generate(_messages(), "900", "100", "general", "bug-1")

    system, user = llm.calls[0]
    assert system.role == MessageRole.SYSTEM
    assert "valid JSON" in system.content
    assert "- Channel: general" in user.content
    assert "- Thread: bug-1" in user.content
    assert "[alice]: the build is broken\n[Attachments: build.log]" in user.content


def test_missing_category_and_keywords_get_defaults() -> None:
    llm = _FakeLLM(json.dumps({"title": "t", "summary": "s"}))
    summary = _generator(llm).generate(_messages(), "900", "100")
    assert summary.category == "Other"
    assert summary.keywords == []


def test_unknown_category_is_passed_through() -> None:
    llm = _FakeLLM(json.dumps({"title": "t", "summary": "s", "category": "Gossip"}))
    assert _generator(llm).generate(_messages(), "900", "100").category == "Gossip"


def test_stored_prompt_is_used() -> None:
    llm = _FakeLLM(json.dumps({"title": "t", "summary": "s"}))
    store = _PromptStore(Prompt(key="default", prompt="Custom {{threadName}}: {{messagesText}}"))
    _generator(llm, store).generate(_messages(), "900", "100", "general", "bug-1")
    assert llm.calls[0][1].content.startswith("Custom bug-1: [alice]")


@pytest.mark.parametrize(
    "store",
    [
        _PromptStore(None),
        _PromptStore(error=RemoteStoreError("down")),
        None,
    ],
)
def test_prompt_lookup_falls_back_to_default(store) -> None:
    generator = _generator(_FakeLLM(), store)
    assert generator.get_prompt_template() == DEFAULT_PROMPT


@pytest.mark.parametrize("key", ["", "   ", None])
def test_missing_api_key_is_configuration_error(key) -> None:
    llm = _FakeLLM(json.dumps({"title": "t", "summary": "s"}))
    with pytest.raises(ConfigurationError, match="Not Configured"):
        _generator(llm, api_key=key or "").generate(_messages(), "900", "100")
    assert llm.calls == []


@pytest.mark.parametrize("key", ["pk-0123456789abcdefghijkl", "sk-short"])
def test_malformed_api_key_is_configuration_error(key: str) -> None:
    with pytest.raises(ConfigurationError, match="Format"):
        validate_api_key(key)


def test_api_key_is_stripped() -> None:
    assert validate_api_key(f"  {VALID_KEY}\n") == VALID_KEY


@pytest.mark.parametrize(
    "content,match",
    [
        ("not json", "invalid JSON"),
        ("[1, 2]", "JSON object"),
        (json.dumps({"summary": "s"}), "title"),
        (json.dumps({"title": "t"}), "summary"),
        (json.dumps({"title": "t", "summary": "s", "keywords": "a,b"}), "keywords"),
        ("", "empty"),
    ],
)
def test_malformed_responses(content: str, match: str) -> None:
    with pytest.raises(MalformedResponse, match=match):
        _generator(_FakeLLM(content)).generate(_messages(), "900", "100")


@pytest.mark.parametrize(
    "error,expected",
    [
        (_status_error(openai.AuthenticationError, 401, {"code": "invalid_api_key", "message": "bad"}),
         UpstreamAuthInvalid),
        (_status_error(openai.RateLimitError, 429, {"code": "insufficient_quota", "message": "quota"}),
         UpstreamRateLimited),
        (_status_error(openai.NotFoundError, 404,
                       {"code": "model_not_found", "message": "The model `gpt-9` does not exist"}),
         UpstreamModelUnavailable),
        (_status_error(openai.PermissionDeniedError, 403,
                       {"code": None, "message": "Project does not have access, you do not have access"}),
         UpstreamModelUnavailable),
    ],
)
def test_upstream_errors_are_mapped(error: Exception, expected: type) -> None:
    with pytest.raises(expected) as exc_info:
        _generator(_FakeLLM(error=error)).generate(_messages(), "900", "100")
    assert str(exc_info.value).startswith("❌")


def test_other_upstream_error_keeps_message() -> None:
    error = _status_error(openai.InternalServerError, 500, {"code": None, "message": "overloaded"})
    with pytest.raises(UpstreamError, match="OpenAI API Error: overloaded") as exc_info:
        _generator(_FakeLLM(error=error)).generate(_messages(), "900", "100")
    assert type(exc_info.value) is UpstreamError


def test_upstream_error_without_message_reports_status() -> None:
    error = _status_error(openai.InternalServerError, 503, {})
    with pytest.raises(UpstreamError, match=r"\(503\)"):
        _generator(_FakeLLM(error=error)).generate(_messages(), "900", "100")


def test_connection_error_is_network_error() -> None:
    error = openai.APIConnectionError(request=httpx.Request("POST", OPENAI_URL))
    with pytest.raises(NetworkError, match="OpenAI"):
        _generator(_FakeLLM(error=error)).generate(_messages(), "900", "100")
