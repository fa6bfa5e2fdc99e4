# tests/test_comment_feed.py

from __future__ import annotations

import pytest

from terceiro_olho.api.client import ApiError
from terceiro_olho.comments.feed import CommentFeed
from terceiro_olho.comments.validation import CommentValidationError
from terceiro_olho.core.models import iso_now
from terceiro_olho.storage.areas import PreferencesStorage

from .fakes import FakeSiteApi

BASE_TS = 1_700_000_000.0


def _seed(api: FakeSiteApi, n: int, page: str = "capitulo-1") -> None:
    for i in range(n):
        api.comments.append(
            {
                "id": i + 1,
                "name": f"Leitor {i + 1}",
                "email": f"l{i}@x.com",
                "message": f"Comentario numero {i + 1}",
                "page": page,
                "date": iso_now(BASE_TS + i * 60),
                "approved": True,
                "likes": i % 3,
            }
        )
    api.comments.append(
        {"id": 999, "name": "Outro", "message": "Outra pagina", "page": "geral", "approved": True}
    )


def _feed(api, store, **kwargs) -> CommentFeed:
    return CommentFeed(api, store, PreferencesStorage(store), post_id="capitulo-1", page_size=3, **kwargs)


def test_requires_post_id(api, store) -> None:
    with pytest.raises(ValueError):
        CommentFeed(api, store, PreferencesStorage(store), post_id="")


def test_first_page_newest_first_and_pagination(api: FakeSiteApi, store) -> None:
    _seed(api, 7)
    feed = _feed(api, store)

    feed.load()
    assert [c.id for c in feed.comments] == [7, 6, 5]
    assert feed.total == 7
    assert feed.has_more is True

    feed.load_more()
    feed.load_more()
    assert [c.id for c in feed.comments] == [7, 6, 5, 4, 3, 2, 1]
    assert feed.has_more is False
    assert feed.load_more() == []


def test_sort_orders(api: FakeSiteApi, store) -> None:
    _seed(api, 5)
    oldest = _feed(api, store, sort_by="oldest")
    oldest.load()
    assert [c.id for c in oldest.comments] == [1, 2, 3]

    popular = _feed(api, store, sort_by="popular")
    popular.load()
    assert [c.id for c in popular.comments] == [3, 2, 5]

    # unknown order falls back to newest
    assert _feed(api, store, sort_by="random").sort_by == "newest"


def test_later_pages_skip_known_ids(api: FakeSiteApi, store) -> None:
    _seed(api, 4)
    feed = _feed(api, store)
    feed.load()
    # a new comment shifts the server list by one
    api.add_comment({"name": "Nova", "email": "n@x.com", "message": "Novo comentario aqui", "page": "capitulo-1"})
    feed.load_more()
    ids = [c.id for c in feed.comments]
    assert len(ids) == len(set(ids))


def test_search_is_debounced_and_filters(api: FakeSiteApi, store) -> None:
    _seed(api, 12)
    feed = _feed(api, store, debounce_ms=10_000)
    feed.load()
    fetches = len(api.calls_to("get_comments"))

    feed.search("numero 1")
    feed.search("numero 11")
    assert len(api.calls_to("get_comments")) == fetches

    feed.flush_search()
    assert len(api.calls_to("get_comments")) == fetches + 1
    assert feed.search_term == "numero 11"
    assert [c.id for c in feed.comments] == [11]

    feed.search("LEITOR 1")
    feed.flush_search()
    assert {c.id for c in feed.comments} == {12, 11, 10}
    assert feed.total == 4
    feed.close()


def test_failure_falls_back_to_cached_first_page(api: FakeSiteApi, store) -> None:
    _seed(api, 5)
    _feed(api, store).load()

    api.fail_with = "offline"
    feed = _feed(api, store)
    assert feed.load() == []
    assert feed.from_cache is True
    assert feed.error
    assert [c.id for c in feed.comments] == [5, 4, 3]


def test_create_comment_prepends_and_clears_draft(api: FakeSiteApi, store) -> None:
    feed = _feed(api, store)
    feed.save_draft("new", "rascunho")

    comment = feed.create_comment(" Ana ", "ana@x.com", " Belo capitulo! ")
    assert comment is not None
    assert feed.comments[0].id == comment.id
    assert api.calls_to("add_comment")[0] == {
        "name": "Ana",
        "email": "ana@x.com",
        "message": "Belo capitulo!",
        "page": "capitulo-1",
    }
    assert feed.has_unsaved_drafts is False


def test_create_comment_failure_keeps_draft(api: FakeSiteApi, store) -> None:
    feed = _feed(api, store)
    api.fail_with = "offline"
    with pytest.raises(ApiError):
        feed.create_comment("Ana", "ana@x.com", "Texto que nao pode sumir")
    assert feed.get_draft("new") == "Texto que nao pode sumir"
    assert feed.has_unsaved_drafts is True


def test_invalid_comment_is_rejected_before_sending(api: FakeSiteApi, store) -> None:
    with pytest.raises(CommentValidationError) as exc:
        _feed(api, store).create_comment("A", "ana@x.com", "Texto bem longo aqui")
    assert exc.value.errors == ["Name must be at least 2 characters"]
    assert api.calls_to("add_comment") == []


def test_blank_comment_is_ignored(api: FakeSiteApi, store) -> None:
    assert _feed(api, store).create_comment("Ana", "a@x.com", "   ") is None
    assert api.calls_to("add_comment") == []


def test_drafts_are_per_post(api: FakeSiteApi, store) -> None:
    a = _feed(api, store)
    b = CommentFeed(api, store, PreferencesStorage(store), post_id="capitulo-2")
    a.save_draft(1, "resposta")
    assert a.get_draft(1) == "resposta"
    assert b.get_draft(1) == ""
    a.clear_draft(1)
    assert a.has_unsaved_drafts is False


def test_toggle_like_is_local_and_persisted(api: FakeSiteApi, store) -> None:
    _seed(api, 1)
    feed = _feed(api, store)
    feed.load()
    [c] = feed.comments
    before = c.likes

    assert feed.toggle_like(c.id) is True
    assert c.likes == before + 1

    # a reload keeps the reader's like applied
    feed.refresh()
    assert feed.comments[0].likes == before + 1

    assert feed.toggle_like(c.id) is False
    assert feed.comments[0].likes == before
    assert feed.toggle_like("missing") is None


def test_toggle_like_reverts_when_not_saved(api: FakeSiteApi, store, monkeypatch) -> None:
    _seed(api, 1)
    feed = _feed(api, store)
    feed.load()
    [c] = feed.comments
    before = c.likes

    monkeypatch.setattr(store, "set", lambda key, value: False)
    assert feed.toggle_like(c.id) is False
    assert c.likes == before
    assert feed.error == "Could not save like"


def test_stats_and_empty(api: FakeSiteApi, store) -> None:
    feed = _feed(api, store)
    assert feed.is_empty is True
    assert feed.stats() == {"total": 0, "total_likes": 0, "average_likes": 0}

    _seed(api, 3)
    feed.load()
    assert feed.stats() == {"total": 3, "total_likes": 3, "average_likes": 1}
