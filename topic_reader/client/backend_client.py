"""
HTTP client for the remote summary API.
"""
import logging
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import httpx
from pydantic import ValidationError

from topic_reader.errors import RemoteStoreError
from topic_reader.models.config import BackendConfig
from topic_reader.models.summary import Prompt, Summary

logger = logging.getLogger(__name__)


class BackendApiClient:
    """
    Remote summary and prompt store.

    Lookups that find nothing return None; every other failure raises
    RemoteStoreError.
    """

    def __init__(self, config: BackendConfig, transport: Optional[httpx.BaseTransport] = None):
        """
        Args:
            config: Backend configuration; ``api_url`` must be set
            transport: Optional httpx transport, used by tests
        """
        if not config.api_url:
            raise ValueError("BackendConfig.api_url is required")
        self.base_url = config.api_url.rstrip("/")
        self.timeout = config.timeout
        self._transport = transport
        self._client: Optional[httpx.Client] = None

    def _get_client(self) -> httpx.Client:
        """Lazy-initialize the HTTP client."""
        if self._client is None:
            self._client = httpx.Client(
                base_url=self.base_url,
                headers={"Accept": "application/json"},
                timeout=self.timeout,
                transport=self._transport,
            )
        return self._client

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None

    def _request(
        self,
        method: str,
        path: str,
        allow_not_found: bool = False,
        **kwargs: Any,
    ) -> Optional[Any]:
        try:
            response = self._get_client().request(method, path, **kwargs)
        except httpx.RequestError as e:
            logger.error(f"Summary API request {method} {path} failed: {e}")
            raise RemoteStoreError(
                f"Unable to reach the summary API at {self.base_url}: {e}"
            ) from e

        if allow_not_found and response.status_code == 404:
            return None
        if response.is_error:
            try:
                detail = response.json().get("error", response.reason_phrase)
            except (ValueError, AttributeError):
                detail = response.reason_phrase
            raise RemoteStoreError(f"Summary API error ({response.status_code}): {detail}")

        if response.status_code == 204 or not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise RemoteStoreError(f"Summary API returned invalid JSON for {method} {path}") from e

    @staticmethod
    def _to_summary(data: Any) -> Summary:
        try:
            return Summary.from_api_payload(data)
        except (ValidationError, AttributeError, TypeError) as e:
            logger.error(f"Summary API returned an unusable summary: {e}")
            raise RemoteStoreError(f"Summary API returned an invalid summary: {e}") from e

    def _summaries(self, path: str) -> List[Summary]:
        data = self._request("GET", path) or []
        if not isinstance(data, list):
            raise RemoteStoreError(f"Summary API returned a non-list response for {path}")
        return [self._to_summary(row) for row in data]

    # Summaries

    def save_summary(self, summary: Summary) -> Summary:
        """
        Store a summary remotely.

        Returns:
            The summary with the ID assigned by the API
        """
        data = self._request("POST", "/summaries", json=summary.to_api_payload())
        if not isinstance(data, dict):
            raise RemoteStoreError("Summary API returned an empty response when saving")
        return self._to_summary({**summary.to_api_payload(), **data})

    def get_summary(self, summary_id: str) -> Optional[Summary]:
        data = self._request("GET", f"/summaries/{quote(summary_id, safe='')}", allow_not_found=True)
        return self._to_summary(data) if data else None

    def get_all_summaries(self) -> List[Summary]:
        return self._summaries("/summaries")

    def get_summaries_by_channel(self, channel_id: str) -> List[Summary]:
        return self._summaries(f"/summaries/channel/{quote(channel_id, safe='')}")

    def get_summary_by_thread(self, thread_id: str) -> Optional[Summary]:
        data = self._request(
            "GET", f"/summaries/thread/{quote(thread_id, safe='')}", allow_not_found=True
        )
        return self._to_summary(data) if data else None

    def get_summaries_by_category(self, category: str) -> List[Summary]:
        return self._summaries(f"/summaries/category/{quote(category, safe='')}")

    def search_summaries(self, query: str) -> List[Summary]:
        return self._summaries(f"/summaries/search/{quote(query, safe='')}")

    def delete_summary(self, summary_id: str) -> None:
        self._request("DELETE", f"/summaries/{quote(summary_id, safe='')}")

    # Prompts

    def get_prompt(self, key: str = "default") -> Optional[Prompt]:
        data = self._request("GET", "/config/prompt", params={"key": key}, allow_not_found=True)
        return self._to_prompt(data) if data else None

    def save_prompt(self, prompt: Prompt) -> Prompt:
        data = self._request("POST", "/config/prompt", json={"key": prompt.key, "prompt": prompt.prompt})
        return self._to_prompt(data) if data else prompt

    def delete_prompt(self, key: str = "default") -> bool:
        self._request("DELETE", "/config/prompt", params={"key": key})
        return True

    @staticmethod
    def _to_prompt(data: Dict[str, Any]) -> Prompt:
        try:
            return Prompt(
                key=data.get("key", "default"),
                prompt=data.get("prompt", ""),
                created_at=data.get("createdAt"),
                updated_at=data.get("updatedAt"),
            )
        except (ValidationError, AttributeError) as e:
            raise RemoteStoreError(f"Summary API returned an invalid prompt: {e}") from e
