# tests/test_commands.py

from __future__ import annotations

from pathlib import Path

from terceiro_olho.cli.commands import CommandRegistry, registry

from .fakes import FakeSiteApi

COMMENT_LINE = "/comment Ana | ana@example.com | Gostei muito do capítulo!"


def test_command_registry_routes_and_emits(state) -> None:
    reg = CommandRegistry()
    notes: list[str] = []

    def handler(state, args, emit):
        if emit is not None:
            emit("note")
        return "|".join(args)

    reg.register("echo", handler, "echo", aliases=["e"])

    assert reg.handle(state, "/echo a b", emit=notes.append) == "a|b"
    assert reg.handle(state, "/E x") == "x"
    assert notes == ["note"]


def test_command_registry_unknown_and_non_command(state) -> None:
    reg = CommandRegistry()
    assert reg.handle(state, "hello") is None
    assert "Unknown command" in (reg.handle(state, "/nope") or "")
    assert "Empty command" in (reg.handle(state, "/") or "")


def test_help_lists_every_command(state) -> None:
    text = registry.handle(state, "/help") or ""
    for name in (
        "status", "visits", "stats", "news", "comments", "comment",
        "pending", "retry", "vote", "votes", "online", "sync", "cleanup", "export", "import",
    ):
        assert f"/{name} " in text


def test_comment_and_list(state, api: FakeSiteApi) -> None:
    assert registry.handle(state, "/comment only-a-name") == "Usage: /comment name | email | message"

    reply = registry.handle(state, COMMENT_LINE)
    assert reply == "Comment added successfully!"
    assert api.calls_to("add_comment")[0]["page"] == "geral"

    listing = registry.handle(state, "/comments") or ""
    assert "Ana: Gostei muito do capítulo!" in listing

    assert "No comments on 'capitulo-9'" in (registry.handle(state, "/comments capitulo-9") or "")


def test_offline_queue_and_retry(state, api: FakeSiteApi) -> None:
    assert registry.handle(state, "/online off") == "Marked OFFLINE."
    assert "saved offline" in (registry.handle(state, COMMENT_LINE) or "")

    pending = registry.handle(state, "/pending") or ""
    assert "Pending comments (1)" in pending
    assert "attempts=0/3" in pending

    assert "Offline" in (registry.handle(state, "/retry") or "")

    registry.handle(state, "/online on")
    assert registry.handle(state, "/retry") == "Retry done: sent=1 failed=0 remaining=0"
    assert registry.handle(state, "/pending") == "No pending comments."


def test_online_check(state, api: FakeSiteApi) -> None:
    api.fail_with = "offline"
    assert registry.handle(state, "/online check") == "Server is unreachable."
    assert registry.handle(state, "/online") == "Connection is OFFLINE."
    assert "Usage" in (registry.handle(state, "/online maybe") or "")


def test_vote_commands(state, api: FakeSiteApi) -> None:
    assert "Usage: /vote" in (registry.handle(state, "/vote") or "")
    assert "Usage: /vote" in (registry.handle(state, "/vote cover7") or "")

    reply = registry.handle(state, "/vote cover3") or ""
    assert reply.startswith("Vote for cover3 recorded.")
    assert "cover3: 24" in reply

    assert registry.handle(state, "/vote cover1") == "You already voted (cover3)."

    tally = registry.handle(state, "/votes") or ""
    assert tally.splitlines()[0] == "Votes (total 101):"
    assert tally.splitlines()[1].startswith("  cover1: 45")


def test_visits_and_stats(state, api: FakeSiteApi) -> None:
    api.visits = {"total": 2500, "coverPage": 500, "daily": {"2024-01-01": 4}, "lastUpdate": None}
    visits = registry.handle(state, "/visits") or ""
    assert visits.startswith("Total visits: 2.500")
    assert "Cover share: 20%" in visits

    assert (registry.handle(state, "/visits cover") or "").startswith("Cover page visits: 500")

    api.fail_with = "offline"
    assert "(Using local data (offline))" in (registry.handle(state, "/visits") or "")
    api.fail_with = None

    stats = registry.handle(state, "/stats") or ""
    assert "Total: 0" in stats
    assert "Trend: stable" in stats
    assert "Daily: 01/01/2024: 4" in stats


def test_news_command(state, api: FakeSiteApi) -> None:
    assert registry.handle(state, "/news") == "No news."
    state.news.add({"title": "Capítulo novo", "content": "Saiu!", "featured": True})

    listing = registry.handle(state, "/news") or ""
    assert "Capítulo novo (Geral, Administrador" in listing
    assert "[*N]" in listing
    assert "Capítulo novo" in (registry.handle(state, "/news featured") or "")
    assert registry.handle(state, "/news Eventos") == "No news."


def test_api_errors_become_friendly_messages(state, api: FakeSiteApi) -> None:
    api.fail_with = 503
    assert registry.handle(state, "/news") == "Server error. Try again later."


def test_status_sync_cleanup(state, api: FakeSiteApi) -> None:
    status = registry.handle(state, "/status") or ""
    assert "API: http://fake/api" in status
    assert "Pending comments: 0" in status

    assert (registry.handle(state, "/sync") or "").startswith("Sync done:")
    assert registry.handle(state, "/cleanup") == (
        "Cleanup done: 0 cache entries, 0 old sessions removed."
    )


def test_export_then_import_restores_keys(state, tmp_path: Path) -> None:
    backup = tmp_path / "backup.json"
    registry.handle(state, "/vote cover2")

    assert (registry.handle(state, f"/export {backup}") or "").startswith("Exported ")
    state.store.remove("has_voted")
    assert state.voting.has_voted() is False

    assert (registry.handle(state, f"/import {backup}") or "").startswith("Imported 1 of ")
    assert state.voting.has_voted() is True


def test_import_rejects_bad_files(state, tmp_path: Path) -> None:
    assert registry.handle(state, "/import") == "Usage: /import <file> [overwrite]"
    assert "Could not read" in (registry.handle(state, f"/import {tmp_path / 'missing.json'}") or "")

    junk = tmp_path / "junk.json"
    junk.write_text("not json", encoding="utf-8")
    assert registry.handle(state, f"/import {junk}") == f"{junk} is not a JSON export."
