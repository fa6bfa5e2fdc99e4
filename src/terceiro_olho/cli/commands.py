# src/terceiro_olho/cli/commands.py

from __future__ import annotations

import contextlib
import json
import logging
from collections.abc import Callable
from datetime import datetime
from pathlib import Path

from ..api.client import ApiError, friendly_api_error_message
from ..core.models import COVER_IDS, parse_iso, vote_stats
from ..core.state import AppState
from ..storage.areas import cleanup_storage
from ..visits import chart_data, format_count, visit_trend

CommandEmitter = Callable[[str], None]
CommandHandler = Callable[[AppState, list[str], CommandEmitter | None], str]

logger = logging.getLogger(__name__)


class CommandRegistry:
    """Simple slash-command registry used by the console (/help, /visits, ...)."""

    def __init__(self) -> None:
        self._handlers: dict[str, CommandHandler] = {}
        self._help: dict[str, str] = {}

    def register(
        self,
        name: str,
        handler: CommandHandler,
        help_text: str,
        aliases: list[str] | None = None,
    ) -> None:
        aliases = aliases or []
        key = name.lower()
        self._handlers[key] = handler
        self._help[key] = help_text
        for alias in aliases:
            self._handlers[alias.lower()] = handler

    def handle(self, state: AppState, line: str, emit: CommandEmitter | None = None) -> str | None:
        """
        Handle a string like "/command args".
        Returns a reply string or None if not a command.
        """
        if not line.startswith("/"):
            return None

        parts = line[1:].split()
        if not parts:
            return "Empty command. Use /help to list available commands."

        name = parts[0].lower()
        args = parts[1:]

        handler = self._handlers.get(name)
        if not handler:
            return f"Unknown command: /{name}. Use /help to list available commands."

        try:
            return handler(state, args, emit)
        except ApiError as e:
            logger.info("Command /%s failed: %s", name, e)
            return friendly_api_error_message(e)

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        return "\n".join(lines)


registry = CommandRegistry()


def _fmt_date(raw: str) -> str:
    created = parse_iso(raw)
    if created is None:
        return raw or "?"
    return created.astimezone().strftime("%d/%m/%Y %H:%M")


def _emit(emit: CommandEmitter | None, text: str) -> None:
    if emit:
        with contextlib.suppress(Exception):
            emit(text)


def cmd_help(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    return registry.build_help()


def cmd_status(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    manager = state.comments
    usage = state.store.usage_info()
    next_retry = (
        datetime.fromtimestamp(manager.next_retry_at).strftime("%H:%M:%S")
        if manager.next_retry_at
        else "-"
    )
    return (
        "Status:\n"
        f"  API: {state.api.base_url}\n"
        f"  Connection: {'ONLINE' if manager.is_online else 'OFFLINE'}\n"
        f"  Offline mode: {'ON' if manager.enable_offline else 'OFF'}\n"
        f"  Pending comments: {len(manager.pending_comments)} (next retry: {next_retry})\n"
        f"  Voted: {state.voting.user_vote() or 'no'}\n"
        f"  Local store: {usage['used']} bytes ({usage['percentage']}%)"
    )


def cmd_visits(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    """
    /visits        -> total visits
    /visits cover  -> cover page visits
    """
    counter = state.cover_visits if args and args[0].lower() == "cover" else state.visits
    counter.fetch_visits()
    stats = counter.get_stats()

    label = "Cover page visits" if counter.page == "cover" else "Total visits"
    lines = [f"{label}: {counter.display_count()}"]
    lines.append(f"  Daily average: {format_count(stats['avg_daily'])}")
    lines.append(f"  Cover share: {stats['cover_percentage']}%")
    if counter.error:
        lines.append(f"  ({counter.error})")
    return "\n".join(lines)


def cmd_stats(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    stats = state.comments.get_stats()
    state.visits.fetch_visits()
    trend = visit_trend(state.visits.visits.daily)

    arrow = {"up": "+", "down": "-"}.get(trend["direction"], "=")
    last_days = ", ".join(f"{day[5:]}: {n}" for day, n in stats.last_7_days.items())
    text = (
        "Comments:\n"
        f"  Total: {stats.total} (approved {stats.approved}, pending {stats.pending})\n"
        f"  Today: {stats.today} | week: {stats.this_week} | month: {stats.this_month}\n"
        f"  Avg/day: {stats.avg_per_day} | approval rate: {stats.approval_rate}%\n"
        f"  Last 7 days: {last_days}\n"
        "Visits:\n"
        f"  Trend: {trend['direction']} ({arrow}{trend['percentage']}%)"
    )
    points = chart_data(state.visits.visits.daily)[-7:]
    if points:
        text += "\n  Daily: " + ", ".join(f"{p['formatted']}: {p['count']}" for p in points)
    return text


def cmd_news(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    """
    /news             -> all news, newest first
    /news featured    -> featured only
    /news <category>  -> one category
    """
    if not args:
        items = state.news.get_all()
    elif args[0].lower() == "featured":
        items = state.news.get_featured()
    else:
        items = state.news.by_category(" ".join(args))

    if not items:
        return "No news."

    unread = {n.id for n in state.news.unread(items)}
    lines = ["News:"]
    for n in items:
        marks = ("*" if n.featured else " ") + ("N" if n.id in unread else " ")
        lines.append(f"  [{marks}] #{n.id} {n.title} ({n.category}, {n.author}, {_fmt_date(n.date)})")
    if state.news.from_cache:
        lines.append("  (from local cache)")
    return "\n".join(lines)


def cmd_comments(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    """
    /comments              -> first page of the default page's comments
    /comments <page>       -> first page for another page/post
    /comments <page> more  -> load the next page
    """
    post_id = args[0] if args else str(getattr(state.settings, "default_page", "geral"))
    feed = state.feed(post_id)

    if len(args) > 1 and args[1].lower() == "more":
        feed.load_more()
    else:
        feed.refresh()

    if feed.is_empty:
        return f"No comments on '{post_id}'." + (f" ({feed.error})" if feed.error else "")

    lines = [f"Comments on '{post_id}' ({len(feed.comments)} of {feed.total or len(feed.comments)}):"]
    for c in feed.comments:
        lines.append(f"  {_fmt_date(c.date)} {c.name}: {c.message}")
    if feed.from_cache:
        lines.append("  (from local cache)")
    elif feed.has_more:
        lines.append(f"  Use /comments {post_id} more for older comments.")
    return "\n".join(lines)


def cmd_comment(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    """/comment name | email | message"""
    fields = [p.strip() for p in " ".join(args).split("|")]
    if len(fields) != 3:
        return "Usage: /comment name | email | message"

    name, email, message = fields
    _emit(emit, "[COMMENTS] Sending...")
    result = state.comments.add_comment(
        {
            "name": name,
            "email": email,
            "message": message,
            "page": str(getattr(state.settings, "default_page", "geral")),
        }
    )
    return result.message


def cmd_pending(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    pending = state.comments.pending_comments
    if not pending:
        return "No pending comments."
    lines = [f"Pending comments ({len(pending)}):"]
    for p in pending:
        lines.append(
            f"  {p.get('id')} attempts={p.get('attempts', 0)}/{state.comments.max_retries} "
            f"{p.get('name')}: {p.get('message')}"
        )
    return "\n".join(lines)


def cmd_retry(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    if not state.comments.is_online:
        return "Offline. Pending comments will be sent once the connection is back."
    report = state.comments.retry_pending_comments()
    return (
        f"Retry done: sent={report.successful} failed={report.failed} "
        f"remaining={report.remaining}"
    )


def cmd_vote(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    if not args or args[0] not in COVER_IDS:
        return f"Usage: /vote <{'|'.join(COVER_IDS)}>"
    result = state.voting.vote(args[0])
    if not result.accepted:
        return f"You already voted ({state.voting.user_vote()})."
    suffix = " (saved offline)" if result.offline else ""
    return f"Vote for {result.cover_id} recorded{suffix}.\n" + _format_votes(result.votes)


def _format_votes(votes: dict[str, int]) -> str:
    stats = vote_stats(votes)
    lines = [f"Votes (total {stats['total']}):"]
    for cover_id, count in sorted(stats["votes"].items(), key=lambda kv: kv[1], reverse=True):
        lines.append(f"  {cover_id}: {count} ({stats['percentages'][cover_id]}%)")
    return "\n".join(lines)


def cmd_votes(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    return _format_votes(state.voting.get_votes())


def cmd_online(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    """
    /online        -> show connection state
    /online on     -> mark online (schedules a retry of pending comments)
    /online off    -> mark offline (new comments are queued)
    /online check  -> ask the server
    """
    manager = state.comments
    if not args:
        return f"Connection is {'ONLINE' if manager.is_online else 'OFFLINE'}."

    arg = args[0].lower()
    if arg in ("on", "1", "true", "yes"):
        manager.set_online(True)
        return "Marked ONLINE."
    if arg in ("off", "0", "false", "no"):
        manager.set_online(False)
        return "Marked OFFLINE."
    if arg == "check":
        _emit(emit, "[API] Checking server...")
        online = manager.check_connectivity()
        return f"Server is {'reachable' if online else 'unreachable'}."
    return "Usage: /online on | off | check"


def cmd_sync(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    _emit(emit, "[SYNC] Syncing with the server...")
    state.visits.force_sync()
    comments = state.comments.fetch_comments()
    report = state.comments.retry_pending_comments()
    return (
        f"Sync done: visits={format_count(state.visits.visits.total)} "
        f"comments={len(comments)} sent={report.successful} remaining={report.remaining}"
    )


def cmd_cleanup(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    result = cleanup_storage(state.store)
    return (
        f"Cleanup done: {result['cache_removed']} cache entries, "
        f"{result['sessions_removed']} old sessions removed."
    )


def cmd_export(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    """/export <file> -> write every local store key to a JSON file"""
    if not args:
        return "Usage: /export <file>"
    data = state.store.export_data()
    try:
        Path(args[0]).write_text(json.dumps(data, ensure_ascii=False, indent=2), encoding="utf-8")
    except OSError as e:
        logger.warning("Export to %s failed: %s", args[0], e)
        return f"Could not write {args[0]}: {e.strerror or e}"
    return f"Exported {len(data)} keys to {args[0]}."


def cmd_import(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    """
    /import <file>            -> load keys that are not set yet
    /import <file> overwrite  -> replace existing keys too
    """
    if not args:
        return "Usage: /import <file> [overwrite]"
    try:
        data = json.loads(Path(args[0]).read_text(encoding="utf-8"))
    except OSError as e:
        return f"Could not read {args[0]}: {e.strerror or e}"
    except ValueError:
        return f"{args[0]} is not a JSON export."
    if not isinstance(data, dict):
        return f"{args[0]} is not a JSON export."

    overwrite = len(args) > 1 and args[1].lower() == "overwrite"
    blobs = {str(k): v if isinstance(v, str) else json.dumps(v) for k, v in data.items()}
    written = state.store.import_data(blobs, overwrite=overwrite)
    return f"Imported {written} of {len(data)} keys."


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])
registry.register("status", cmd_status, help_text="Show connection, queue and store status.")
registry.register("visits", cmd_visits, help_text="Visit counters: /visits | /visits cover.")
registry.register("stats", cmd_stats, help_text="Comment statistics and visit trend.")
registry.register("news", cmd_news, help_text="News: /news | /news featured | /news <category>.")
registry.register(
    "comments", cmd_comments, help_text="List comments: /comments [page] [more]."
)
registry.register("comment", cmd_comment, help_text="Post a comment: /comment name | email | message.")
registry.register("pending", cmd_pending, help_text="List comments waiting to be sent.")
registry.register("retry", cmd_retry, help_text="Resend pending comments now.")
registry.register("vote", cmd_vote, help_text="Vote for a cover: /vote cover1|cover2|cover3.")
registry.register("votes", cmd_votes, help_text="Show the cover vote tally.")
registry.register("online", cmd_online, help_text="Connection: /online [on|off|check].")
registry.register("sync", cmd_sync, help_text="Refresh visits and comments, resend pending ones.")
registry.register("cleanup", cmd_cleanup, help_text="Remove expired cache entries and old sessions.")
registry.register("export", cmd_export, help_text="Back up the local store: /export <file>.")
registry.register("import", cmd_import, help_text="Restore a backup: /import <file> [overwrite].")
