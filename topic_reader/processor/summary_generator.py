"""
Generate structured thread summaries with the OpenAI chat API.
"""
import json
import logging
from typing import Any, Dict, List, Optional

import openai
from llama_index.core.llms import LLM, ChatMessage, MessageRole

from topic_reader.errors import (
    ConfigurationError,
    MalformedResponse,
    NetworkError,
    StorageError,
    UpstreamAuthInvalid,
    UpstreamError,
    UpstreamModelUnavailable,
    UpstreamRateLimited,
)
from topic_reader.llm.openai_integration import setup_openai_llm
from topic_reader.models.config import OpenAIConfig
from topic_reader.models.message import Attachment, Message
from topic_reader.models.summary import Category, Summary, utcnow
from topic_reader.processor.prompt_builder import DEFAULT_PROMPT, PromptBuilder

logger = logging.getLogger(__name__)

DEFAULT_PROMPT_KEY = "default"
API_KEY_PREFIX = "sk-"
MIN_API_KEY_LENGTH = 20

SYSTEM_PROMPT = (
    "You are a helpful assistant that analyzes Discord conversations and creates "
    "structured summaries. Always respond with valid JSON."
)

MISSING_KEY_MESSAGE = (
    "❌ OpenAI API Key Not Configured!\n\n"
    "Please add your OpenAI API key to the .env file (OPENAI_API_KEY).\n\n"
    "To get your API key:\n"
    "  1. Go to https://platform.openai.com/api-keys\n"
    "  2. Click '+ Create new secret key'\n"
    "  3. Copy the full key (starts with 'sk-')\n"
    "  4. Set OPENAI_API_KEY in your .env file"
)

MALFORMED_KEY_MESSAGE = (
    "❌ Invalid OpenAI API Key Format!\n\n"
    "The API key appears to be incomplete or incorrectly formatted.\n\n"
    "OpenAI API keys:\n"
    "  • Start with 'sk-' or 'sk-proj-'\n"
    "  • Are typically 40-60+ characters long\n"
    "  • Should not contain spaces or quotes\n\n"
    "Please check OPENAI_API_KEY and ensure you copied the complete key."
)

INVALID_KEY_MESSAGE = (
    "❌ Invalid OpenAI API Key!\n\n"
    "The API key provided is invalid or has been revoked.\n\n"
    "Please check:\n"
    "  • Your API key is correct and complete\n"
    "  • The key hasn't been deleted or regenerated\n"
    "  • There are no extra spaces or quotes around the key\n\n"
    "To get a new key:\n"
    "  1. Go to https://platform.openai.com/api-keys\n"
    "  2. Click '+ Create new secret key'\n"
    "  3. Copy the key immediately (you can only see it once)\n"
    "  4. Update OPENAI_API_KEY with the new key"
)

QUOTA_MESSAGE = (
    "❌ API Quota Exceeded!\n\n"
    "You've exceeded your OpenAI API quota or rate limit.\n\n"
    "Please check:\n"
    "  • Your OpenAI account has available credits\n"
    "  • You haven't exceeded your usage limits\n"
    "  • Visit https://platform.openai.com/usage to check your usage"
)


def validate_api_key(api_key: Optional[str]) -> str:
    """
    Cheap shape check of the OpenAI key.

    Returns:
        The stripped key

    Raises:
        ConfigurationError: If the key is missing or obviously malformed
    """
    if not api_key or not api_key.strip():
        raise ConfigurationError(MISSING_KEY_MESSAGE)
    key = api_key.strip()
    if not key.startswith(API_KEY_PREFIX) or len(key) < MIN_API_KEY_LENGTH:
        raise ConfigurationError(MALFORMED_KEY_MESSAGE)
    return key


def map_upstream_error(error: openai.APIStatusError) -> UpstreamError:
    """Turn an OpenAI error response into an actionable UpstreamError."""
    body = error.body if isinstance(error.body, dict) else {}
    code = body.get("code") or getattr(error, "code", None)
    detail = body.get("message") or ""
    status = error.status_code

    if code == "invalid_api_key" or status == 401:
        return UpstreamAuthInvalid(INVALID_KEY_MESSAGE)
    if code == "insufficient_quota" or status == 429:
        return UpstreamRateLimited(QUOTA_MESSAGE)
    if "does not exist" in detail or "you do not have access" in detail or status == 404:
        return UpstreamModelUnavailable(
            "❌ Model Access Error!\n\n"
            f"{detail}\n\n"
            "The model you're trying to use is not available for your account.\n\n"
            "Available models you can use:\n"
            "  • gpt-4o (recommended - latest GPT-4)\n"
            "  • gpt-4o-mini (faster, cheaper)\n"
            "  • gpt-3.5-turbo (most accessible)\n\n"
            "Set OPENAI_MODEL to a model your account can access."
        )
    if detail:
        return UpstreamError(f"❌ OpenAI API Error: {detail}")
    return UpstreamError(f"❌ OpenAI API Error ({status}): {code or 'Unknown error'}")


def parse_summary_payload(content: Optional[str]) -> Dict[str, Any]:
    """
    Decode and check the JSON object returned by the model.

    Raises:
        MalformedResponse: If the content is not a JSON object with a title and summary
    """
    if not content:
        raise MalformedResponse("the response was empty")
    try:
        data = json.loads(content)
    except json.JSONDecodeError as e:
        raise MalformedResponse(f"invalid JSON ({e.msg})") from e
    if not isinstance(data, dict):
        raise MalformedResponse("expected a JSON object")

    for field in ("title", "summary"):
        if not isinstance(data.get(field), str):
            raise MalformedResponse(f"missing '{field}' field")

    keywords = data.get("keywords") or []
    if not isinstance(keywords, list):
        raise MalformedResponse("'keywords' must be a list")

    return {
        "title": data["title"],
        "summary": data["summary"],
        "keywords": [str(k) for k in keywords],
        "category": str(data.get("category") or Category.OTHER.value),
    }


class SummaryGenerator:
    """
    Renders the active prompt, asks the model for a JSON summary and builds a
    Summary from the answer.
    """

    def __init__(
        self,
        config: OpenAIConfig,
        prompt_store: Optional[Any] = None,
        llm: Optional[LLM] = None,
        prompt_builder: Optional[PromptBuilder] = None,
    ):
        """
        Args:
            config: OpenAI settings; the key is checked on every generate call
            prompt_store: Anything with ``get_prompt(key)`` returning a Prompt or None
            llm: Preconfigured LLM; built from ``config`` on first use when None
            prompt_builder: Template renderer
        """
        self.config = config
        self.prompt_store = prompt_store
        self.prompt_builder = prompt_builder or PromptBuilder()
        self._llm = llm

    def _get_llm(self) -> LLM:
        if self._llm is None:
            self._llm = setup_openai_llm(self.config)
        return self._llm

    def get_prompt_template(self, key: str = DEFAULT_PROMPT_KEY) -> str:
        """Stored template for ``key``, or the built-in default."""
        if self.prompt_store is None:
            return DEFAULT_PROMPT
        try:
            saved = self.prompt_store.get_prompt(key)
        except StorageError as e:
            logger.info(f"Using default prompt (prompt lookup failed: {e})")
            return DEFAULT_PROMPT
        if saved is None or not saved.prompt:
            logger.info("Using default prompt (no saved prompt found)")
            return DEFAULT_PROMPT
        return saved.prompt

    def generate(
        self,
        messages: List[Message],
        thread_id: str,
        channel_id: str,
        channel_name: Optional[str] = None,
        thread_name: Optional[str] = None,
    ) -> Summary:
        """
        Generate a summary for a thread.

        Args:
            messages: Thread messages, oldest first
            thread_id: Source thread ID
            channel_id: Source channel ID
            channel_name: Channel display name
            thread_name: Thread display name

        Returns:
            Summary without an ID

        Raises:
            ConfigurationError: If the API key is missing or malformed
            UpstreamAuthInvalid, UpstreamRateLimited, UpstreamModelUnavailable,
            UpstreamError: If the API rejects the request
            NetworkError: If the API cannot be reached
            MalformedResponse: If the answer is not the expected JSON object
        """
        validate_api_key(self.config.api_key)

        template = self.get_prompt_template()
        prompt = self.prompt_builder.render(template, channel_name, thread_name, messages)
        attachments: List[Attachment] = [a for m in messages for a in m.attachments]

        chat = [
            ChatMessage(role=MessageRole.SYSTEM, content=SYSTEM_PROMPT),
            ChatMessage(role=MessageRole.USER, content=prompt),
        ]
        try:
            response = self._get_llm().chat(chat)
        except openai.APIStatusError as e:
            logger.error(f"Error generating summary for thread {thread_id}: {e}")
            raise map_upstream_error(e) from e
        except openai.APIConnectionError as e:
            logger.error(f"Error generating summary for thread {thread_id}: {e}")
            raise NetworkError("the OpenAI API", str(e)) from e

        fields = parse_summary_payload(response.message.content)
        logger.info(f"Generated summary '{fields['title']}' for thread {thread_id}")

        return Summary(
            **fields,
            thread_id=thread_id,
            channel_id=channel_id,
            channel_name=channel_name,
            thread_name=thread_name,
            attachments=attachments,
            created_at=utcnow(),
        )
