"""
Prompt template rendering.
"""
import re
from typing import Iterable, Optional

from topic_reader.models.message import Message

CHANNEL_PLACEHOLDER = "{{channelName}}"
THREAD_PLACEHOLDER = "{{threadName}}"
MESSAGES_PLACEHOLDER = "{{messagesText}}"

UNKNOWN_LABEL = "Unknown"

_PLACEHOLDER_RE = re.compile(
    "|".join(re.escape(p) for p in (CHANNEL_PLACEHOLDER, THREAD_PLACEHOLDER, MESSAGES_PLACEHOLDER))
)

DEFAULT_PROMPT = """Analyze the following Discord thread conversation and create a comprehensive summary.

Thread Context:
- Channel: {{channelName}}
- Thread: {{threadName}}

Conversation:
{{messagesText}}

Please provide a JSON response with the following structure:
{
  "title": "A concise, descriptive title for this discussion",
  "summary": "A detailed summary of what was discussed, including key points and decisions",
  "keywords": ["keyword1", "keyword2", "keyword3"],
  "category": "One of: Technical, Discussion, Question, Announcement, Planning, Bug Report, Feature Request, Other"
}

Include references to any attachments or files mentioned in the conversation."""


def format_message(message: Message) -> str:
    """Serialize one message as ``[author]: content`` plus an attachment note."""
    line = f"[{message.author.username}]: {message.content}"
    if message.attachments:
        names = ", ".join(a.filename for a in message.attachments)
        line += f"\n[Attachments: {names}]"
    return line


def format_messages(messages: Iterable[Message]) -> str:
    return "\n\n".join(format_message(m) for m in messages)


class PromptBuilder:
    """Fills the three placeholders of a prompt template.

    Replacement is literal and global, done in a single pass over the
    template. Substituted values are never scanned again, so placeholder
    tokens inside a channel name, thread name or message are kept verbatim.
    """

    def render(
        self,
        template: str,
        channel_name: Optional[str],
        thread_name: Optional[str],
        messages: Iterable[Message],
    ) -> str:
        values = {
            CHANNEL_PLACEHOLDER: channel_name or UNKNOWN_LABEL,
            THREAD_PLACEHOLDER: thread_name or UNKNOWN_LABEL,
            MESSAGES_PLACEHOLDER: format_messages(messages),
        }
        return _PLACEHOLDER_RE.sub(lambda match: values[match.group(0)], template)
