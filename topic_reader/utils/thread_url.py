"""
Parse Discord deep-links into thread identifiers.
"""
import re
from dataclasses import dataclass
from typing import Iterable, List, Optional

DEFAULT_ALLOWED_HOSTS = (
    "discord.com",
    "www.discord.com",
    "ptb.discord.com",
    "canary.discord.com",
    "discordapp.com",
)

_URL_RE = re.compile(
    r"^(?P<scheme>https?)://(?P<host>[^/]+)"
    r"/channels/(?P<guild>[0-9]+)/(?P<first>[0-9]+)(?:/(?P<second>[0-9]+))?/?$",
    re.IGNORECASE,
)


@dataclass(frozen=True)
class ThreadReference:
    """
    Candidate identifiers extracted from a deep-link.

    With a three-segment link the thread may be either the channel segment
    (``thread_id``) or a thread started from the message (``message_id``).
    Callers try ``thread_id`` first and fall back to ``message_id`` only when
    the first lookup reports the thread as missing.
    """
    thread_id: str
    message_id: Optional[str] = None

    @property
    def candidates(self) -> List[str]:
        return [c for c in (self.thread_id, self.message_id) if c]


class ThreadUrlResolver:
    """Extracts thread candidates from ``/channels/{guild}/{id}[/{id}]`` links."""

    def __init__(self, allowed_hosts: Iterable[str] = DEFAULT_ALLOWED_HOSTS):
        self.allowed_hosts = {host.lower() for host in allowed_hosts}

    def extract(self, url: str) -> Optional[ThreadReference]:
        """
        Parse a deep-link.

        Args:
            url: Link copied from the Discord client

        Returns:
            ThreadReference, or None when the input is not a recognised link
        """
        if not isinstance(url, str):
            return None

        # Query string and fragment are irrelevant to the match
        candidate = url.strip().split("#", 1)[0].split("?", 1)[0]
        match = _URL_RE.match(candidate)
        if not match or match.group("host").lower() not in self.allowed_hosts:
            return None

        return ThreadReference(
            thread_id=match.group("first"),
            message_id=match.group("second"),
        )


def extract_thread_reference(url: str) -> Optional[ThreadReference]:
    """Shortcut using the default host allow-list."""
    return ThreadUrlResolver().extract(url)
