"""Tests for the Atlas facade wired to a mocked backend."""

from __future__ import annotations

import asyncio

import httpx

from wikiatlas.atlas import Atlas, build_provider
from wikiatlas.config import AppConfig, GatewayConfig, load_config
from wikiatlas.core.types import DraftSnapshot, Identity
from wikiatlas.gateway import AtlasGateway

ROWS = [
    {"id": "art-1", "title": "Kvant fizikasi", "content": "Kvant fizikasi atomlarni o'rganadi.", "category": "Fan"},
    {"id": "art-1", "title": "Kvant fizikasi", "content": "Dublikat.", "category": "Fan"},
    {"id": "b", "title": "Zahiriddin Muhammad Bobur Tavalludi", "content": "Andijonda tug'ilgan.", "category": "Tarix"},
    {"id": "c", "title": "Amir Temur", "content": "Sohibqiron haqida.", "category": "Tarix"},
    {"id": "d", "title": "qwertyuiopasdf", "content": "Bu matn tasodifiy.", "category": "Boshqa"},
    {"title": "Idsiz maqola", "content": "Yo'qoladi."},
]


class _Matcher:
    def __init__(self, ids):
        self.ids = ids

    async def suggest_matches(self, query, articles):
        return self.ids


def _atlas(cfg: AppConfig | None = None, provider=None, handler=None) -> Atlas:
    cfg = cfg or AppConfig(gateway=GatewayConfig(base_url="http://atlas.test/api"))

    def default_handler(request):
        if request.method == "GET" and request.url.path == "/api/articles":
            return httpx.Response(200, json=ROWS)
        return httpx.Response(404, json={"error": "Not found"})

    transport = httpx.MockTransport(handler or default_handler)
    return Atlas(cfg, gateway=AtlasGateway(cfg.gateway, transport=transport), provider=provider)


def _run(atlas: Atlas, action):
    async def scenario():
        async with atlas:
            return await action(atlas)

    return asyncio.run(scenario())


def test_fetch_articles_deduplicates():
    articles = _run(_atlas(), lambda atlas: atlas.fetch_articles())

    assert [a.id for a in articles] == ["art-1", "b", "c", "d"]
    assert articles[0].content == "Kvant fizikasi atomlarni o'rganadi."


def test_fetch_articles_ids_are_unique_with_any_dedup_config(tmp_path, monkeypatch):
    monkeypatch.delenv("WIKIATLAS_API_URL", raising=False)
    path = tmp_path / "config.yaml"
    path.write_text(
        "gateway:\n  base_url: http://atlas.test/api\ndedup:\n  enabled: false\n  title_similarity_threshold: 95\n",
        encoding="utf-8",
    )
    cfg = load_config(str(path))

    articles = _run(_atlas(cfg), lambda a: a.fetch_articles())
    ids = [a.id for a in articles]

    assert None not in ids
    assert len(ids) == len(set(ids)) == 4


def test_search_lexical_then_semantic():
    lexical = _run(_atlas(provider=_Matcher(["c"])), lambda atlas: atlas.search("bobur"))
    semantic = _run(_atlas(provider=_Matcher(["c"])), lambda atlas: atlas.search("sarkarda"))
    nothing = _run(_atlas(), lambda atlas: atlas.search("xyz123nonexistent"))

    assert lexical.ids == ["b"]
    assert semantic.ids == ["c"]
    assert semantic.strategy == "semantic"
    assert nothing.articles == []


def test_blank_search_returns_empty_without_fetching():
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(200, json=ROWS)

    result = _run(_atlas(handler=handler), lambda atlas: atlas.search("   "))

    assert result.articles == []
    assert calls == []


def test_paging_related_and_count():
    async def action(atlas):
        return (
            await atlas.articles_page(1, limit=2),
            await atlas.related_articles("Tarix", exclude_id="b"),
            await atlas.article_count(),
        )

    page, related, count = _run(_atlas(), action)

    assert [a.id for a in page] == ["c", "d"]
    assert [a.id for a in related] == ["c"]
    assert count == 4


def test_find_garbage_previews_cleanup():
    garbage = _run(_atlas(), lambda atlas: atlas.find_garbage())

    assert [a.id for a in garbage] == ["d"]


def test_new_autosave_persists_through_gateway():
    created = []

    def handler(request):
        if request.method == "POST" and request.url.path == "/api/articles":
            created.append(request)
            return httpx.Response(201, json={"id": "new-1", "title": "Bobur", "content": "Matn"})
        return httpx.Response(404)

    async def action(atlas):
        coordinator = atlas.new_autosave()
        coordinator.observe(DraftSnapshot(title="Bobur", content="Matn"), Identity(id="u1"))
        return await coordinator.flush()

    saved = _run(_atlas(handler=handler), action)

    assert saved.id == "new-1"
    assert len(created) == 1


def test_new_autosave_disabled_returns_none():
    atlas = _atlas()
    atlas.cfg.autosave.enabled = False

    assert atlas.new_autosave() is None
    asyncio.run(atlas.aclose())


def test_build_provider_without_key_disables_ai(monkeypatch):
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    monkeypatch.delenv("GOOGLE_API_KEY", raising=False)

    assert build_provider(AppConfig()) is None


def test_autosave_does_not_recreate_when_backend_omits_id():
    methods = []

    def handler(request):
        methods.append(request.method)
        return httpx.Response(201)

    async def action(atlas):
        coordinator = atlas.new_autosave()
        for content in ("v1", "v2", "v3"):
            coordinator.observe(DraftSnapshot(title="Bobur", content=content), Identity(id="u1"))
            await asyncio.sleep(0.05)
            await coordinator.wait_idle()
        return coordinator

    atlas = _atlas(handler=handler)
    atlas.cfg.autosave.delay_seconds = 0.01
    coordinator = _run(atlas, action)

    assert methods == ["POST"]
    assert coordinator.article_id is None
    assert coordinator.has_unsaved_changes
