"""
Command line interface for the Discord thread summarizer.
"""

import argparse
import logging
import sys
from typing import List, Optional

from topic_reader.client.backend_client import BackendApiClient
from topic_reader.client.discord_client import DiscordClient
from topic_reader.errors import TopicReaderError
from topic_reader.models.config import AppConfig
from topic_reader.models.message import Thread
from topic_reader.models.summary import Category, Prompt, Summary
from topic_reader.pipeline.thread_summarizer import OutcomeStatus, ThreadSummarizer
from topic_reader.processor.prompt_builder import DEFAULT_PROMPT
from topic_reader.processor.summary_generator import SummaryGenerator
from topic_reader.storage.database import Database
from topic_reader.storage.persistence import DualWritePersistence
from topic_reader.storage.prompt_store import PromptStore
from topic_reader.storage.summary_store import SummaryStore
from topic_reader.utils.config import load_app_config
from topic_reader.utils.logger import setup_logger
from topic_reader.utils.thread_url import ThreadUrlResolver

logger = logging.getLogger(__name__)


class Components:
    """Long-lived collaborators, created once per process."""

    def __init__(self, config: AppConfig):
        self.config = config
        self.database = Database(config.storage.database_url)
        self.discord_client = DiscordClient(config.discord)
        self.backend = BackendApiClient(config.backend) if config.backend.enabled else None
        # Prompts live next to the summaries they shape: remote when configured
        self.prompt_store = self.backend or PromptStore(self.database)
        self.persistence = DualWritePersistence(SummaryStore(self.database), self.backend)
        self.summarizer = ThreadSummarizer(
            discord_client=self.discord_client,
            generator=SummaryGenerator(config.openai, prompt_store=self.prompt_store),
            persistence=self.persistence,
            url_resolver=ThreadUrlResolver(config.allowed_hosts),
        )

    def close(self) -> None:
        self.discord_client.close()
        if self.backend is not None:
            self.backend.close()
        self.database.close()


def format_summary(summary: Summary) -> str:
    lines = [
        f"# {summary.title}",
        f"ID: {summary.id}    Category: {summary.category}    Created: {summary.created_at:%Y-%m-%d %H:%M}",
        f"Channel: {summary.channel_name or summary.channel_id}    Thread: {summary.thread_name or summary.thread_id}",
        "",
        summary.summary,
    ]
    if summary.keywords:
        lines += ["", "Keywords: " + ", ".join(summary.keywords)]
    if summary.attachments:
        lines += ["", "Attachments:"]
        lines += [f"  • {a.filename} ({a.url})" for a in summary.attachments]
    return "\n".join(lines)


def format_summary_row(summary: Summary) -> str:
    return f"{summary.id}  [{summary.category}]  {summary.title}  ({summary.thread_name or summary.thread_id})"


def confirm_generation(thread: Thread, message_count: int) -> bool:
    """Ask before spending API quota."""
    answer = input(
        f"Generate a summary of '{thread.name}' ({message_count} messages) with OpenAI? [y/N] "
    )
    return answer.strip().lower() in ("y", "yes")


def cmd_channels(components: Components, args: argparse.Namespace) -> int:
    for channel in components.summarizer.list_channels(args.guild):
        print(f"{channel.id}  #{channel.name}  (guild {channel.guild_id})")
    return 0


def cmd_threads(components: Components, args: argparse.Namespace) -> int:
    threads = components.summarizer.list_threads(args.channel_id)
    if not threads:
        print("No threads found in this channel.")
    for thread in threads:
        state = "archived" if thread.archived else "active"
        activity = f", last activity {thread.last_activity:%Y-%m-%d}" if thread.last_activity else ""
        print(f"{thread.id}  {thread.name}  ({thread.message_count} messages, {state}{activity})")
    return 0


def cmd_summarize(components: Components, args: argparse.Namespace) -> int:
    summarizer = components.summarizer
    thread_id = args.thread
    if args.url:
        thread = summarizer.resolve_url(args.url)
        if thread is None:
            print(
                "❌ Invalid thread URL.\n"
                "Expected a link like https://discord.com/channels/<server>/<channel>/<thread>",
                file=sys.stderr,
            )
            return 1
        thread_id = thread.id

    outcome = summarizer.summarize_thread(
        thread_id,
        confirm=None if args.yes else confirm_generation,
        force=args.force,
    )

    if outcome.status == OutcomeStatus.EXISTING:
        print("A summary already exists for this thread (use --force to regenerate):\n")
        print(format_summary(outcome.summary))
    elif outcome.status == OutcomeStatus.EMPTY:
        print(f"Thread '{outcome.thread.name}' has no messages to summarize.")
    elif outcome.status == OutcomeStatus.CANCELLED:
        print("Cancelled, no summary generated.")
    else:
        print(format_summary(outcome.summary))
        if not outcome.save_result.backend_saved:
            print(f"\n⚠️  Saved locally only: {outcome.save_result.error}", file=sys.stderr)
        elif outcome.save_result.error:
            print(f"\n⚠️  {outcome.save_result.error}", file=sys.stderr)
    return 0


def cmd_show(components: Components, args: argparse.Namespace) -> int:
    summary = components.summarizer.get_summary_by_thread(args.thread_id)
    if summary is None:
        print(f"No summary found for thread {args.thread_id}.")
        return 1
    print(format_summary(summary))
    return 0


def cmd_list(components: Components, args: argparse.Namespace) -> int:
    summaries = components.persistence.list_summaries(channel_id=args.channel, category=args.category)
    if not summaries:
        print("No summaries saved yet.")
    for summary in summaries:
        print(format_summary_row(summary))
    return 0


def cmd_search(components: Components, args: argparse.Namespace) -> int:
    for summary in components.persistence.search(args.query):
        print(format_summary_row(summary))
    return 0


def cmd_delete(components: Components, args: argparse.Namespace) -> int:
    if not components.persistence.delete(args.summary_id):
        print(f"No local summary with ID {args.summary_id}.")
        return 1
    print(f"Deleted summary {args.summary_id}.")
    return 0


def cmd_prompt(components: Components, args: argparse.Namespace) -> int:
    store = components.prompt_store
    if args.action == "show":
        prompt = store.get_prompt(args.key)
        print(prompt.prompt if prompt else DEFAULT_PROMPT)
    elif args.action == "set":
        if not args.file:
            print("❌ 'prompt set' needs a template file.", file=sys.stderr)
            return 1
        with open(args.file, "r", encoding="utf-8") as f:
            template = f.read()
        store.save_prompt(Prompt(key=args.key, prompt=template))
        print(f"Saved prompt '{args.key}'.")
    else:
        store.delete_prompt(args.key)
        print(f"Prompt '{args.key}' reset to the built-in default.")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="topic-reader",
        description="Summarize Discord threads with OpenAI.",
    )
    parser.add_argument("--env-file", help="Path to a .env file")
    parser.add_argument("--config", help="Path to a YAML settings file")
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: LOG_LEVEL or INFO)",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("channels", help="List text channels")
    p.add_argument("--guild", help="Only list channels of this server ID")
    p.set_defaults(func=cmd_channels)

    p = sub.add_parser("threads", help="List threads of a channel")
    p.add_argument("channel_id")
    p.set_defaults(func=cmd_threads)

    p = sub.add_parser("summarize", help="Summarize a thread")
    target = p.add_mutually_exclusive_group(required=True)
    target.add_argument("--thread", help="Thread ID")
    target.add_argument("--url", help="Discord link to the thread")
    p.add_argument("--yes", "-y", action="store_true", help="Skip the confirmation prompt")
    p.add_argument("--force", action="store_true", help="Regenerate even if a summary exists")
    p.set_defaults(func=cmd_summarize)

    p = sub.add_parser("show", help="Show the current summary of a thread")
    p.add_argument("thread_id")
    p.set_defaults(func=cmd_show)

    p = sub.add_parser("list", help="List saved summaries")
    group = p.add_mutually_exclusive_group()
    group.add_argument("--channel", help="Filter by channel ID")
    group.add_argument("--category", choices=[c.value for c in Category], help="Filter by category")
    p.set_defaults(func=cmd_list)

    p = sub.add_parser("search", help="Search saved summaries")
    p.add_argument("query")
    p.set_defaults(func=cmd_search)

    p = sub.add_parser("delete", help="Delete a saved summary")
    p.add_argument("summary_id")
    p.set_defaults(func=cmd_delete)

    p = sub.add_parser("prompt", help="Show, set or reset the prompt template")
    p.add_argument("action", choices=["show", "set", "reset"])
    p.add_argument("file", nargs="?", help="Template file for 'set'")
    p.add_argument("--key", default="default", help="Prompt key (default: default)")
    p.set_defaults(func=cmd_prompt)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI interface."""
    args = build_parser().parse_args(argv)

    try:
        config = load_app_config(env_path=args.env_file, config_path=args.config)
    except TopicReaderError as e:
        print(str(e), file=sys.stderr)
        return 1

    setup_logger("topic_reader", args.log_level or config.log_level)

    components = Components(config)
    try:
        return args.func(components, args)
    except TopicReaderError as e:
        print(str(e), file=sys.stderr)
        return 1
    finally:
        components.close()


if __name__ == "__main__":
    sys.exit(main())
